"""Difficulty metrics computed from a run's event log.

Rating bands are fixed. A run is rated by wounds per scene and by check
fail rate independently; the final rating is the harder of the two, so the
rating never drops when either input grows.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from adventure_sim.models.issues import Issue, IssueType, Severity
from adventure_sim.models.state import EventLogEntry, StateSnapshot
from adventure_sim.parameters import (
    DIFFICULTY_SPIKE_BASELINE,
    DIFFICULTY_SPIKE_DELTA,
    DIFFICULTY_SPIKE_RUN,
    FAIL_RATE_BANDS,
    WOUND_BANDS,
)


class DifficultyRating(str, Enum):
    TRIVIAL = "trivial"
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"
    DEADLY = "deadly"

    @property
    def level(self) -> int:
        return _RATING_ORDER.index(self)


_RATING_ORDER = list(DifficultyRating)


def rate_difficulty(wounds_per_scene: float, fail_rate: float) -> DifficultyRating:
    """Map wounds per scene and fail rate onto a rating.

    Wounds per scene: <0.5 trivial, 0.5-1 easy, 1-2 moderate, 2-3 hard, >3 deadly.
    Fail rate: <0.10 trivial, <0.25 easy, <0.40 moderate, <0.55 hard, else deadly.
    """
    level = max(_wound_level(wounds_per_scene), bisect_right(FAIL_RATE_BANDS, fail_rate))
    return _RATING_ORDER[level]


def _wound_level(wounds_per_scene: float) -> int:
    level = bisect_right(WOUND_BANDS, wounds_per_scene)
    # The top band is open below: exactly the last threshold is still hard
    if level == len(WOUND_BANDS) and wounds_per_scene == WOUND_BANDS[-1]:
        level -= 1
    return level


@dataclass
class DifficultyMetrics:
    """Difficulty measures for one run."""

    wounds_taken: int = 0
    near_death_count: int = 0
    scenes_visited: int = 0
    checks_made: int = 0
    checks_passed: int = 0
    average_dc: float = 0.0
    max_dc: int = 0
    rating: DifficultyRating = DifficultyRating.TRIVIAL
    issues: list[Issue] = field(default_factory=list)

    @property
    def fail_rate(self) -> float:
        return (self.checks_made - self.checks_passed) / self.checks_made if self.checks_made else 0.0

    @property
    def wounds_per_scene(self) -> float:
        return self.wounds_taken / self.scenes_visited if self.scenes_visited else 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "wounds_taken": self.wounds_taken,
            "near_death_count": self.near_death_count,
            "scenes_visited": self.scenes_visited,
            "checks_made": self.checks_made,
            "checks_passed": self.checks_passed,
            "fail_rate": round(self.fail_rate, 4),
            "wounds_per_scene": round(self.wounds_per_scene, 4),
            "average_dc": round(self.average_dc, 2),
            "max_dc": self.max_dc,
            "rating": self.rating.value,
        }


def find_difficulty_spikes(
    log: Sequence[EventLogEntry],
    baseline: int = DIFFICULTY_SPIKE_BASELINE,
    delta: int = DIFFICULTY_SPIKE_DELTA,
    run_length: int = DIFFICULTY_SPIKE_RUN,
) -> list[Issue]:
    """Runs of consecutive checks above baseline + delta with no rest in between.

    Entering a rest scene or healing ends a run; so does any check at or
    below the threshold.
    """
    threshold = baseline + delta
    issues: list[Issue] = []
    streak: list[tuple[str, int]] = []

    def close() -> None:
        if len(streak) >= run_length:
            scenes = tuple(dict.fromkeys(scene_id for scene_id, _ in streak))
            issues.append(Issue(
                type=IssueType.DIFFICULTY_SPIKE,
                severity=Severity.WARNING,
                scenes=scenes,
                description=(
                    f"{len(streak)} consecutive checks above DC {threshold} "
                    f"({', '.join(str(dc) for _, dc in streak)}) with no chance to rest"
                ),
                details={"difficulties": [dc for _, dc in streak], "threshold": threshold},
            ))
        streak.clear()

    for entry in log:
        if entry.delta.get("rest") or entry.delta.get("healed"):
            close()
        check = entry.delta.get("check")
        if check is None:
            continue
        if check["difficulty"] > threshold:
            streak.append((entry.scene_id, check["difficulty"]))
        else:
            close()
    close()
    return issues


def calculate_difficulty(
    log: Sequence[EventLogEntry],
    snapshot: StateSnapshot,
    baseline: int = DIFFICULTY_SPIKE_BASELINE,
    delta: int = DIFFICULTY_SPIKE_DELTA,
) -> DifficultyMetrics:
    """Compute difficulty metrics for a finished run.

    Wounds are summed from the log and never reduced by later healing.
    """
    checks = [entry.delta["check"] for entry in log if "check" in entry.delta]
    metrics = DifficultyMetrics(
        wounds_taken=sum(entry.delta.get("wounds", 0) for entry in log),
        near_death_count=snapshot.near_death_count,
        scenes_visited=len(set(snapshot.visited)),
        checks_made=len(checks),
        checks_passed=sum(1 for c in checks if c["success"]),
    )
    if checks:
        difficulties = [c["difficulty"] for c in checks]
        metrics.average_dc = sum(difficulties) / len(difficulties)
        metrics.max_dc = max(difficulties)
    metrics.rating = rate_difficulty(metrics.wounds_per_scene, metrics.fail_rate)
    metrics.issues = find_difficulty_spikes(log, baseline, delta)
    return metrics
