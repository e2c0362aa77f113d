"""Storage configuration.

Paths come from environment variables so the CLI and batch runner can be
pointed at other directories without code changes.
"""

import os

from .file_repo import FileAdventureRepository, FileReportRepository
from .repository import AdventureRepository, ReportRepository

# Default configuration (can be overridden via environment variables)
DEFAULT_ADVENTURES_PATH = "adventures"
DEFAULT_REPORTS_PATH = "reports"


def get_adventures_path() -> str:
    """Get configured adventures path from environment."""
    return os.environ.get("ADVENTURE_SIM_ADVENTURES_PATH", DEFAULT_ADVENTURES_PATH)


def get_reports_path() -> str:
    """Get configured reports path from environment."""
    return os.environ.get("ADVENTURE_SIM_REPORTS_PATH", DEFAULT_REPORTS_PATH)


def get_adventure_repository(path: str | None = None) -> AdventureRepository:
    """Factory function to create the adventure repository.

    Args:
        path: Adventures directory. If None, uses environment config.
    """
    return FileAdventureRepository(path or get_adventures_path())


def get_report_repository(path: str | None = None) -> ReportRepository:
    """Factory function to create the report repository.

    Args:
        path: Reports directory. If None, uses environment config.
    """
    return FileReportRepository(path or get_reports_path())
