"""Abstract repository interfaces for adventure and report storage.

These interfaces decouple the CLI and batch runner from where adventures
are read and reports are written.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from adventure_sim.content.loader import ContentGraph


class AdventureRepository(ABC):
    """Abstract base class for adventure storage."""

    @abstractmethod
    def list_adventures(self) -> list[dict]:
        """Return metadata for all available adventures.

        Returns:
            List of dicts with 'id', 'title', and 'scenes' keys,
            sorted by id.
        """
        pass

    @abstractmethod
    def get_adventure_path(self, adventure_id: str) -> Optional[Path]:
        """Directory holding an adventure, or None if it does not exist."""
        pass

    @abstractmethod
    def load(self, adventure_id: str) -> ContentGraph:
        """Load and validate an adventure.

        Raises:
            ContentError: If the adventure is missing or invalid
        """
        pass


class ReportRepository(ABC):
    """Abstract base class for run report storage."""

    @abstractmethod
    def save_report(self, report_dict: dict, text: str) -> str:
        """Persist a run report in JSON and text form.

        Args:
            report_dict: Report.to_dict() output
            text: render_text() output

        Returns:
            Report id
        """
        pass

    @abstractmethod
    def save_aggregate(self, name: str, aggregate: dict, text: str) -> str:
        """Persist batch statistics, return the aggregate id."""
        pass

    @abstractmethod
    def load_report(self, report_id: str) -> Optional[dict]:
        """Load a report by id, or None if not found."""
        pass

    @abstractmethod
    def list_reports(self, adventure_id: Optional[str] = None) -> list[dict]:
        """List report metadata, optionally filtered by adventure."""
        pass
