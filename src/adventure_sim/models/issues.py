"""Findings and critiques produced by simulation and analysis.

Issues are first-class analysis output, never exceptions. Critiques are raised
by archetype-driven players and annotated by the GM validator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


# =============================================================================
# Issues
# =============================================================================


class Severity(str, Enum):
    """Severity level for an issue."""

    CRITICAL = "critical"  # Adventure cannot be completed as written
    WARNING = "warning"  # Players will likely notice
    INFO = "info"  # Informational only

    @property
    def rank(self) -> int:
        return {"critical": 0, "warning": 1, "info": 2}[self.value]


class IssueType(str, Enum):
    """Kinds of structural, difficulty, and coherence findings."""

    DEAD_END = "dead_end"
    SOFT_LOCK = "soft_lock"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    WEAK_BREADCRUMB = "weak_breadcrumb"
    NPC_CONTINUITY_BREAK = "npc_continuity_break"
    DIFFICULTY_SPIKE = "difficulty_spike"
    UNREACHABLE_SCENE = "unreachable_scene"
    ITEM_CONTINUITY_BREAK = "item_continuity_break"
    INFORMATION_GAP = "information_gap"
    POSSIBLE_LOOP = "possible_loop"
    TURN_LIMIT = "turn_limit"
    SIMULATION_FAULT = "simulation_fault"


@dataclass(frozen=True)
class Issue:
    """A typed analysis finding.

    Attributes:
        type: What kind of defect was found
        severity: How serious it is
        scenes: Scene ids involved, in narrative order where it matters
        description: Human-readable explanation
        details: Extra structured data (witness assignments, flag names, ...)
    """

    type: IssueType
    severity: Severity
    scenes: tuple[str, ...]
    description: str
    details: dict = field(default_factory=dict, compare=False, hash=False)

    @property
    def key(self) -> tuple[str, tuple[str, ...]]:
        """Identity used to de-duplicate findings across analyzers."""
        return (self.type.value, self.scenes)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "scenes": list(self.scenes),
            "description": self.description,
            "details": self.details,
        }


def dedupe_issues(issues: list[Issue]) -> list[Issue]:
    """Drop repeated findings, keeping the first occurrence of each key."""
    seen: set[tuple[str, tuple[str, ...]]] = set()
    unique = []
    for issue in issues:
        if issue.key in seen:
            continue
        seen.add(issue.key)
        unique.append(issue)
    return unique


# =============================================================================
# Critiques and GM validation
# =============================================================================


class CritiqueKind(str, Enum):
    """What a simulated player is complaining about."""

    QUESTION = "question"
    MISSING_CONTENT = "missing_content"
    UNCLEAR_DIRECTION = "unclear_direction"
    UNHANDLED_ACTION = "unhandled_action"
    SHALLOW_NPC = "shallow_npc"
    EMOTIONAL_GAP = "emotional_gap"
    LOGIC_GAP = "logic_gap"
    BLOCKER = "blocker"


class ValidationStatus(str, Enum):
    """GM assessment of a critique."""

    VALID_ISSUE = "valid_issue"  # Real problem that should be addressed
    INTENTIONAL_MYSTERY = "intentional_mystery"  # Player isn't supposed to know
    DELAYED_REVEAL = "delayed_reveal"  # Explained later in the adventure
    RED_HERRING = "red_herring"  # Intentionally misleading
    GM_DISCRETION = "gm_discretion"  # GM can handle this at the table
    PLAYER_CHOICE = "player_choice"  # Depends on player decisions
    FALSE_POSITIVE = "false_positive"  # Already answered on this path


class Confidence(str, Enum):
    """How a validation was reached."""

    AUTHORED = "authored"  # Matched authored mystery/secret data
    STRUCTURAL = "structural"  # Decided by critique kind alone
    HEURISTIC = "heuristic"  # Keyword overlap; best-effort


@dataclass(frozen=True)
class Critique:
    """A question or failed expectation raised by a simulated player.

    Attributes:
        kind: Category of complaint
        scene_id: Scene where it was raised
        text: The question or attempted action, as the player would say it
        archetype: Archetype id of the player who raised it
        subject: NPC or item id the critique is about, if any
        path: Scenes visited up to and including scene_id
    """

    kind: CritiqueKind
    scene_id: str
    text: str
    archetype: str = ""
    subject: str | None = None
    path: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "scene_id": self.scene_id,
            "text": self.text,
            "archetype": self.archetype,
            "subject": self.subject,
            "path": list(self.path),
        }


@dataclass(frozen=True)
class GMValidation:
    """The GM validator's verdict on a critique."""

    status: ValidationStatus
    justification: str
    confidence: Confidence
    reveal_scene: str | None = None
    mystery_id: str | None = None

    @property
    def is_actionable(self) -> bool:
        return self.status == ValidationStatus.VALID_ISSUE

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "justification": self.justification,
            "confidence": self.confidence.value,
            "reveal_scene": self.reveal_scene,
            "mystery_id": self.mystery_id,
        }


@dataclass(frozen=True)
class ValidatedCritique:
    """A critique paired with its GM validation."""

    critique: Critique
    validation: GMValidation

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {**self.critique.to_dict(), "validation": self.validation.to_dict()}
