"""Tests for adventure_sim.analysis.difficulty.

Tests cover:
- Rating bands and monotonicity
- Difficulty spike detection and rest resets
- Metrics computed from an event log
"""

import pytest

from adventure_sim.analysis.difficulty import (
    DifficultyRating,
    calculate_difficulty,
    find_difficulty_spikes,
    rate_difficulty,
)
from adventure_sim.models.issues import IssueType, Severity
from adventure_sim.models.state import EventLogEntry, GameState, StateSnapshot


def _check(step: int, scene: str, difficulty: int, success: bool = False) -> EventLogEntry:
    return EventLogEntry(
        step=step,
        actor="player",
        action="check:c",
        scene_id=scene,
        delta={"check": {"difficulty": difficulty, "success": success}},
    )


def _log(*entries: tuple) -> list[EventLogEntry]:
    """Build a log from (scene, kind, value) tuples."""
    log = []
    for step, (scene, kind, value) in enumerate(entries):
        if kind == "check":
            log.append(_check(step, scene, value))
        elif kind == "enter":
            log.append(EventLogEntry(step, "gm", f"enter_scene:{scene}", scene, {"to_scene": scene, **value}))
        else:
            log.append(EventLogEntry(step, "gm", kind, scene, value))
    return log


class TestRateDifficulty:
    """Tests for rate_difficulty bands."""

    @pytest.mark.parametrize(
        "wounds_per_scene,fail_rate,expected",
        [
            (0.0, 0.0, DifficultyRating.TRIVIAL),
            (0.49, 0.09, DifficultyRating.TRIVIAL),
            (0.5, 0.0, DifficultyRating.EASY),
            (1.5, 0.0, DifficultyRating.MODERATE),
            (2.5, 0.0, DifficultyRating.HARD),
            (3.5, 0.0, DifficultyRating.DEADLY),
            (0.0, 0.3, DifficultyRating.MODERATE),
            (0.0, 0.6, DifficultyRating.DEADLY),
            (1.5, 0.45, DifficultyRating.HARD),
        ],
    )
    def test_bands(self, wounds_per_scene, fail_rate, expected):
        """Test the harder of the two bands wins."""
        assert rate_difficulty(wounds_per_scene, fail_rate) == expected

    @pytest.mark.parametrize(
        "wounds_per_scene,expected",
        [
            (0.5, DifficultyRating.EASY),
            (1.0, DifficultyRating.MODERATE),
            (2.0, DifficultyRating.HARD),
            (3.0, DifficultyRating.HARD),
            (3.01, DifficultyRating.DEADLY),
        ],
    )
    def test_wound_band_edges(self, wounds_per_scene, expected):
        """Test bands start at their threshold and deadly starts above three."""
        assert rate_difficulty(wounds_per_scene, 0.0) == expected

    def test_monotonic_in_both_inputs(self):
        """Test the rating never decreases as either input grows."""
        wounds = [i * 0.25 for i in range(17)]
        fails = [i * 0.05 for i in range(21)]
        for w in wounds:
            levels = [rate_difficulty(w, f).level for f in fails]
            assert levels == sorted(levels)
        for f in fails:
            levels = [rate_difficulty(w, f).level for w in wounds]
            assert levels == sorted(levels)


class TestDifficultySpikes:
    """Tests for find_difficulty_spikes."""

    def test_three_hard_checks_in_a_row(self):
        """Test three consecutive checks above baseline + delta raise one warning."""
        log = _log(("a", "check", 16), ("a", "check", 18), ("b", "check", 20))
        issues = find_difficulty_spikes(log, baseline=10, delta=4)
        assert len(issues) == 1
        assert issues[0].type == IssueType.DIFFICULTY_SPIKE
        assert issues[0].severity == Severity.WARNING
        assert issues[0].scenes == ("a", "b")
        assert issues[0].details["difficulties"] == [16, 18, 20]

    def test_threshold_is_exclusive(self):
        """Test a check exactly at the threshold breaks the streak."""
        log = _log(("a", "check", 16), ("a", "check", 14), ("a", "check", 16), ("a", "check", 16))
        assert find_difficulty_spikes(log, baseline=10, delta=4) == []

    def test_rest_scene_resets_streak(self):
        """Test entering a rest scene ends the streak."""
        log = _log(
            ("a", "check", 18), ("a", "check", 18),
            ("camp", "enter", {"rest": True}),
            ("b", "check", 18), ("b", "check", 18),
        )
        assert find_difficulty_spikes(log) == []

    def test_healing_resets_streak(self):
        """Test healing ends the streak."""
        log = _log(("a", "check", 18), ("a", "check", 18), ("a", "potion", {"healed": 1}), ("a", "check", 18))
        assert find_difficulty_spikes(log) == []

    def test_two_separate_spikes(self):
        """Test each closed streak is reported separately."""
        log = _log(
            ("a", "check", 18), ("a", "check", 18), ("a", "check", 18),
            ("a", "check", 5),
            ("b", "check", 19), ("b", "check", 19), ("b", "check", 19), ("b", "check", 19),
        )
        issues = find_difficulty_spikes(log)
        assert [len(i.details["difficulties"]) for i in issues] == [3, 4]


class TestCalculateDifficulty:
    """Tests for calculate_difficulty."""

    def test_metrics_from_log(self):
        """Test wounds, checks and DCs are summed from the log."""
        log = [
            _check(0, "a", 12, success=True),
            _check(1, "a", 16),
            EventLogEntry(2, "gm", "fire_trigger:t", "a", {"wounds": 2}),
            EventLogEntry(3, "gm", "heal", "b", {"healed": 1}),
        ]
        state = GameState(scene_id="b", max_wounds=6, wounds=1, visited=["a", "b", "a"])
        metrics = calculate_difficulty(log, StateSnapshot.from_state(state))
        assert metrics.wounds_taken == 2
        assert metrics.scenes_visited == 2
        assert metrics.checks_made == 2
        assert metrics.checks_passed == 1
        assert metrics.fail_rate == 0.5
        assert metrics.average_dc == 14.0
        assert metrics.max_dc == 16
        assert metrics.wounds_per_scene == 1.0
        assert metrics.rating == DifficultyRating.HARD

    def test_empty_log_is_trivial(self):
        """Test a run with no checks or wounds is trivial."""
        state = GameState(scene_id="a", max_wounds=6, visited=["a"])
        metrics = calculate_difficulty([], StateSnapshot.from_state(state))
        assert metrics.rating == DifficultyRating.TRIVIAL
        assert metrics.to_dict()["fail_rate"] == 0.0
