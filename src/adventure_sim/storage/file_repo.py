"""File-based repository implementations.

Adventures are directories under the adventures path, each holding an
adventure.json and a scenes/ directory. Reports are written under the
reports path as <adventure>/<report id>.json plus a matching .txt summary.
"""

import json
import re
from pathlib import Path
from typing import Optional

from adventure_sim.content.loader import ADVENTURE_FILE, SCENES_DIR, ContentGraph, load_adventure
from adventure_sim.errors import ContentError

from .repository import AdventureRepository, ReportRepository


def slugify(text: str) -> str:
    """Convert text to a filesystem-friendly slug.

    Examples:
        >>> slugify("Neon Requiem")
        'neon-requiem'
        >>> slugify("fair-thorough-detective-seed7")
        'fair-thorough-detective-seed7'
    """
    text = text.lower()
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"[^a-z0-9-]", "", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


class FileAdventureRepository(AdventureRepository):
    """Adventures stored as directories on disk."""

    def __init__(self, adventures_path: str | Path = "adventures"):
        """Initialize repository.

        Args:
            adventures_path: Directory containing one subdirectory per adventure
        """
        self.adventures_path = Path(adventures_path)

    def list_adventures(self) -> list[dict]:
        """Return metadata for all adventures with an adventure.json."""
        if not self.adventures_path.is_dir():
            return []
        adventures = []
        for path in sorted(self.adventures_path.iterdir()):
            document = path / ADVENTURE_FILE
            if not document.is_file():
                continue
            with open(document, encoding="utf-8") as f:
                data = json.load(f)
            adventures.append({
                "id": path.name,
                "title": data.get("title", path.name),
                "scenes": len(list((path / SCENES_DIR).glob("*.json"))),
            })
        return adventures

    def get_adventure_path(self, adventure_id: str) -> Optional[Path]:
        """Resolve an adventure id, or a direct path to an adventure directory."""
        direct = Path(adventure_id)
        if (direct / ADVENTURE_FILE).is_file():
            return direct
        path = self.adventures_path / adventure_id
        if (path / ADVENTURE_FILE).is_file():
            return path
        return None

    def load(self, adventure_id: str) -> ContentGraph:
        path = self.get_adventure_path(adventure_id)
        if path is None:
            raise ContentError(f"Adventure {adventure_id!r} not found in {self.adventures_path}")
        return load_adventure(path)


class FileReportRepository(ReportRepository):
    """Reports stored as JSON and text files.

    Report ids are "<adventure id>/<slugified run label>", so re-running the
    same configuration overwrites its previous report.
    """

    def __init__(self, reports_path: str | Path = "reports"):
        """Initialize repository.

        Args:
            reports_path: Directory for reports (created if missing)
        """
        self.reports_path = Path(reports_path)
        self.reports_path.mkdir(parents=True, exist_ok=True)

    def _get_report_path(self, report_id: str) -> Path:
        return self.reports_path / f"{report_id}.json"

    def _write(self, report_id: str, data: dict, text: str) -> str:
        path = self._get_report_path(report_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        with open(path.with_suffix(".txt"), "w", encoding="utf-8") as f:
            f.write(text)
        return report_id

    def save_report(self, report_dict: dict, text: str) -> str:
        """Persist a report; the id is derived from adventure and run label."""
        adventure_id = slugify(report_dict["adventure_id"])
        report_id = f"{adventure_id}/{slugify(report_dict['label'])}"
        return self._write(report_id, report_dict, text)

    def save_aggregate(self, name: str, aggregate: dict, text: str) -> str:
        """Persist batch statistics under <name>/aggregate."""
        return self._write(f"{slugify(name)}/aggregate", aggregate, text)

    def load_report(self, report_id: str) -> Optional[dict]:
        path = self._get_report_path(report_id)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def list_reports(self, adventure_id: Optional[str] = None) -> list[dict]:
        """List run reports (aggregates excluded), sorted by id."""
        reports = []
        for path in sorted(self.reports_path.glob("*/*.json")):
            if path.stem == "aggregate":
                continue
            if adventure_id is not None and path.parent.name != slugify(adventure_id):
                continue
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            reports.append({
                "id": f"{path.parent.name}/{path.stem}",
                "adventure_id": data.get("adventure_id", path.parent.name),
                "label": data.get("label", path.stem),
                "verdict": data.get("verdict", ""),
            })
        return reports
