"""Storage module for the adventure simulator.

This module provides repository interfaces and file implementations for
reading adventures and persisting run reports.

Usage:
    from adventure_sim.storage import get_adventure_repository, get_report_repository

    adventures = get_adventure_repository()
    graph = adventures.load("neon-requiem")
    reports = get_report_repository()

Configuration via environment variables:
    ADVENTURE_SIM_ADVENTURES_PATH: Path to adventures directory (default: "adventures")
    ADVENTURE_SIM_REPORTS_PATH: Path to reports directory (default: "reports")
"""

from .config import (
    get_adventure_repository,
    get_adventures_path,
    get_report_repository,
    get_reports_path,
)
from .file_repo import FileAdventureRepository, FileReportRepository, slugify
from .repository import AdventureRepository, ReportRepository

__all__ = [
    # Abstract interfaces
    "AdventureRepository",
    "ReportRepository",
    # File implementations
    "FileAdventureRepository",
    "FileReportRepository",
    "slugify",
    # Configuration
    "get_adventures_path",
    "get_reports_path",
    # Factory functions
    "get_adventure_repository",
    "get_report_repository",
]
