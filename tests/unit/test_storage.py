"""Tests for the storage module.

Tests cover:
- slugify
- FileAdventureRepository listing, path resolution and loading
- FileReportRepository save/load/list round trip and aggregates
- Storage configuration from environment variables
"""

import pytest

from adventure_sim.errors import ContentError
from adventure_sim.storage import (
    FileAdventureRepository,
    FileReportRepository,
    get_adventure_repository,
    get_adventures_path,
    get_report_repository,
    get_reports_path,
    slugify,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Neon Requiem", "neon-requiem"),
        ("fair-thorough-detective-seed7", "fair-thorough-detective-seed7"),
        ("chaos_agent  run!", "chaos-agent-run"),
        ("--Edge--", "edge"),
    ],
)
def test_slugify(text, expected):
    """Test slugs are lowercase, hyphenated and stripped."""
    assert slugify(text) == expected


# ============================================================================
# FileAdventureRepository
# ============================================================================


class TestFileAdventureRepository:
    """Tests for FileAdventureRepository."""

    def test_list_adventures(self, write_adventure, linear_scenes, linear_fields, tmp_path):
        """Test listing returns id, title and scene count."""
        write_adventure(linear_scenes, **linear_fields)
        (tmp_path / "adventures" / "notes").mkdir()
        repo = FileAdventureRepository(tmp_path / "adventures")
        assert repo.list_adventures() == [{"id": "test-adventure", "title": "Test Adventure", "scenes": 3}]

    def test_missing_directory_lists_nothing(self, tmp_path):
        """Test a missing adventures directory is empty, not an error."""
        assert FileAdventureRepository(tmp_path / "nowhere").list_adventures() == []

    def test_resolves_id_and_direct_path(self, write_adventure, linear_scenes, linear_fields, tmp_path):
        """Test adventures can be addressed by id or by directory path."""
        path = write_adventure(linear_scenes, **linear_fields)
        repo = FileAdventureRepository(tmp_path / "adventures")
        assert repo.get_adventure_path("test-adventure") == path
        assert repo.get_adventure_path(str(path)) == path
        assert repo.get_adventure_path("missing") is None

    def test_load(self, write_adventure, linear_scenes, linear_fields, tmp_path):
        """Test loading builds a content graph."""
        write_adventure(linear_scenes, **linear_fields)
        graph = FileAdventureRepository(tmp_path / "adventures").load("test-adventure")
        assert graph.adventure_id == "test-adventure"
        assert graph.start_scene.id == "arrival"

    def test_load_missing_raises(self, tmp_path):
        """Test an unknown adventure raises ContentError."""
        with pytest.raises(ContentError, match="not found"):
            FileAdventureRepository(tmp_path).load("missing")


# ============================================================================
# FileReportRepository
# ============================================================================


class TestFileReportRepository:
    """Tests for FileReportRepository."""

    @pytest.fixture
    def repo(self, tmp_path):
        return FileReportRepository(tmp_path / "reports")

    def test_save_and_load(self, repo, tmp_path):
        """Test a saved report is written as JSON and text and loads back."""
        report = {"adventure_id": "Neon Requiem", "label": "fair-thorough-detective-seed7", "verdict": "pass"}
        report_id = repo.save_report(report, "REPORT TEXT\n")
        assert report_id == "neon-requiem/fair-thorough-detective-seed7"
        assert repo.load_report(report_id) == report
        text_path = tmp_path / "reports" / "neon-requiem" / "fair-thorough-detective-seed7.txt"
        assert text_path.read_text(encoding="utf-8") == "REPORT TEXT\n"

    def test_load_missing_returns_none(self, repo):
        """Test loading an unknown id returns None."""
        assert repo.load_report("nope/nothing") is None

    def test_list_reports_excludes_aggregates(self, repo):
        """Test aggregates are saved beside reports but not listed."""
        repo.save_report({"adventure_id": "a", "label": "run-1", "verdict": "warn"}, "")
        repo.save_report({"adventure_id": "b", "label": "run-1", "verdict": "pass"}, "")
        assert repo.save_aggregate("a", {"runs": 1}, "") == "a/aggregate"
        assert [r["id"] for r in repo.list_reports()] == ["a/run-1", "b/run-1"]
        assert repo.list_reports("a") == [{"id": "a/run-1", "adventure_id": "a", "label": "run-1", "verdict": "warn"}]
        assert repo.load_report("a/aggregate") == {"runs": 1}

    def test_same_label_overwrites(self, repo):
        """Test re-running a configuration replaces its report."""
        repo.save_report({"adventure_id": "a", "label": "run-1", "verdict": "fail"}, "")
        repo.save_report({"adventure_id": "a", "label": "run-1", "verdict": "pass"}, "")
        assert repo.list_reports() == [{"id": "a/run-1", "adventure_id": "a", "label": "run-1", "verdict": "pass"}]


# ============================================================================
# Storage configuration
# ============================================================================


class TestStorageConfig:
    """Tests for environment-driven storage configuration."""

    def test_defaults(self, monkeypatch):
        """Test default paths when no environment variables are set."""
        monkeypatch.delenv("ADVENTURE_SIM_ADVENTURES_PATH", raising=False)
        monkeypatch.delenv("ADVENTURE_SIM_REPORTS_PATH", raising=False)
        assert get_adventures_path() == "adventures"
        assert get_reports_path() == "reports"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        """Test environment variables redirect both repositories."""
        monkeypatch.setenv("ADVENTURE_SIM_ADVENTURES_PATH", str(tmp_path / "adv"))
        monkeypatch.setenv("ADVENTURE_SIM_REPORTS_PATH", str(tmp_path / "out"))
        adventures = get_adventure_repository()
        reports = get_report_repository()
        assert isinstance(adventures, FileAdventureRepository)
        assert adventures.adventures_path == tmp_path / "adv"
        assert isinstance(reports, FileReportRepository)
        assert (tmp_path / "out").is_dir()

    def test_explicit_path_wins(self, monkeypatch, tmp_path):
        """Test an explicit path takes precedence over the environment."""
        monkeypatch.setenv("ADVENTURE_SIM_ADVENTURES_PATH", str(tmp_path / "env"))
        repo = get_adventure_repository(str(tmp_path / "explicit"))
        assert repo.adventures_path == tmp_path / "explicit"
