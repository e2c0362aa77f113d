"""Dice engine with selectable weighting modes.

Modes:
- fair: uniform
- lucky / unlucky: order statistics, draw k uniform values per die and keep
  the max / min
- blessed / cursed: deterministic maximum / minimum face per die
- streaky: a short rolling window of over/under performance puts the engine
  into a hot or cold streak that samples the next roll as lucky or unlucky

All randomness comes from one seeded random.Random, so a given seed always
reproduces the same sequence of rolls.
"""

from __future__ import annotations

import random
import re
from collections import deque
from dataclasses import dataclass, field

from adventure_sim.models.config import DiceMode
from adventure_sim.parameters import (
    CRITICAL_FAILURE,
    CRITICAL_SUCCESS,
    LUCKY_DRAWS,
    STREAK_THRESHOLD,
    STREAK_WINDOW,
)

_FORMULA_RE = re.compile(r"^\s*(\d*)\s*d\s*(\d+)\s*(?:([+-])\s*(\d+))?\s*$", re.IGNORECASE)


def parse_formula(formula: str) -> tuple[int, int, int]:
    """Parse an NdF+M dice formula.

    Returns:
        (count, faces, modifier)

    Examples:
        >>> parse_formula("2d6+1")
        (2, 6, 1)
        >>> parse_formula("d20")
        (1, 20, 0)
    """
    match = _FORMULA_RE.match(formula)
    if match is None:
        raise ValueError(f"Invalid dice formula {formula!r}")
    count = int(match.group(1) or 1)
    faces = int(match.group(2))
    modifier = int(match.group(4) or 0)
    if match.group(3) == "-":
        modifier = -modifier
    if count < 1 or faces < 1:
        raise ValueError(f"Invalid dice formula {formula!r}")
    return count, faces, modifier


def success_chance(difficulty: int, bonus: int) -> float:
    """Probability that a fair d20 + bonus meets the difficulty."""
    needed = difficulty - bonus
    return min(1.0, max(0.0, (21 - needed) / 20))


@dataclass(frozen=True)
class RollOutcome:
    """Result of a roll."""

    formula: str
    mode: DiceMode
    dice: tuple[int, ...]
    modifier: int
    total: int

    @property
    def natural(self) -> int:
        """Sum of the dice without modifier."""
        return sum(self.dice)


@dataclass(frozen=True)
class CheckOutcome:
    """Result of a d20 skill check."""

    roll: int
    bonus: int
    total: int
    difficulty: int
    success: bool
    critical: str | None = None  # "success", "failure", or None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "roll": self.roll,
            "bonus": self.bonus,
            "total": self.total,
            "difficulty": self.difficulty,
            "success": self.success,
            "critical": self.critical,
        }


@dataclass
class DiceStats:
    """Running statistics over every die rolled."""

    total_rolls: int = 0
    roll_sum: int = 0
    critical_successes: int = 0
    critical_failures: int = 0
    checks: int = 0
    checks_passed: int = 0
    streak_states: dict[str, int] = field(default_factory=lambda: {"hot": 0, "cold": 0, "neutral": 0})

    @property
    def mean(self) -> float:
        return self.roll_sum / self.total_rolls if self.total_rolls else 0.0

    @property
    def success_rate(self) -> float:
        return self.checks_passed / self.checks if self.checks else 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_rolls": self.total_rolls,
            "mean": round(self.mean, 3),
            "critical_successes": self.critical_successes,
            "critical_failures": self.critical_failures,
            "checks": self.checks,
            "checks_passed": self.checks_passed,
            "success_rate": round(self.success_rate, 4),
            "streak_states": dict(self.streak_states),
        }


class DiceEngine:
    """Seeded dice roller.

    Usage:
        dice = DiceEngine(seed=42, mode=DiceMode.LUCKY)
        dice.roll("2d6+1")
        dice.check(difficulty=15, bonus=3)
    """

    def __init__(
        self,
        seed: int | str | None = None,
        mode: DiceMode = DiceMode.FAIR,
        draws: int = LUCKY_DRAWS,
        window: int = STREAK_WINDOW,
    ):
        self.mode = mode
        self.draws = draws
        self.stats = DiceStats()
        self._rng = random.Random(seed)
        self._history: deque[float] = deque(maxlen=window)

    def roll(self, faces_or_formula: int | str, mode: DiceMode | None = None) -> RollOutcome:
        """Roll dice.

        Args:
            faces_or_formula: Face count of a single die, or an NdF+M formula
            mode: Override the engine's default mode for this roll

        Returns:
            RollOutcome with individual dice and total
        """
        mode = mode or self.mode
        if isinstance(faces_or_formula, int):
            if faces_or_formula < 1:
                raise ValueError(f"Die must have at least one face, got {faces_or_formula}")
            count, faces, modifier = 1, faces_or_formula, 0
            formula = f"d{faces}"
        else:
            count, faces, modifier = parse_formula(faces_or_formula)
            formula = faces_or_formula.strip()

        dice = tuple(self._roll_die(faces, mode) for _ in range(count))
        for value in dice:
            self.stats.total_rolls += 1
            self.stats.roll_sum += value
        return RollOutcome(formula, mode, dice, modifier, sum(dice) + modifier)

    def check(self, difficulty: int, bonus: int = 0, mode: DiceMode | None = None) -> CheckOutcome:
        """Resolve a d20 skill check: roll + bonus >= difficulty."""
        roll = self.roll(20, mode).dice[0]
        total = roll + bonus
        success = total >= difficulty
        critical = None
        if roll == CRITICAL_SUCCESS:
            critical = "success"
            self.stats.critical_successes += 1
        elif roll == CRITICAL_FAILURE:
            critical = "failure"
            self.stats.critical_failures += 1
        self.stats.checks += 1
        if success:
            self.stats.checks_passed += 1
        return CheckOutcome(roll, bonus, total, difficulty, success, critical)

    # -------------------------------------------------------------------------
    # Sampling
    # -------------------------------------------------------------------------

    def _uniform(self, faces: int) -> int:
        return self._rng.randint(1, faces)

    def _roll_die(self, faces: int, mode: DiceMode) -> int:
        if mode == DiceMode.BLESSED:
            return faces
        if mode == DiceMode.CURSED:
            return 1
        if mode == DiceMode.LUCKY:
            return max(self._uniform(faces) for _ in range(self.draws))
        if mode == DiceMode.UNLUCKY:
            return min(self._uniform(faces) for _ in range(self.draws))
        if mode == DiceMode.STREAKY:
            return self._roll_streaky(faces)
        return self._uniform(faces)

    def streak_state(self) -> str:
        """Current streak: "hot", "cold", or "neutral"."""
        if len(self._history) < self._history.maxlen:
            return "neutral"
        momentum = sum(self._history) / len(self._history)
        if momentum >= STREAK_THRESHOLD:
            return "hot"
        if momentum <= -STREAK_THRESHOLD:
            return "cold"
        return "neutral"

    def _roll_streaky(self, faces: int) -> int:
        state = self.streak_state()
        self.stats.streak_states[state] += 1
        if state == "hot":
            value = max(self._uniform(faces) for _ in range(self.draws))
        elif state == "cold":
            value = min(self._uniform(faces) for _ in range(self.draws))
        else:
            value = self._uniform(faces)
        expected = (faces + 1) / 2
        self._history.append((value - expected) / faces)
        return value
