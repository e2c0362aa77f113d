"""Data models for the adventure simulator.

This module contains:
- state: Per-run mutable game state, event log, and snapshots
- issues: Issues, critiques, and GM validations
- config: Run configuration and behaviour enumerations
"""

from adventure_sim.models.config import (
    BreadcrumbMatching,
    DiceMode,
    GMBehavior,
    PlayerBehavior,
    RunConfiguration,
    RunMode,
)
from adventure_sim.models.issues import (
    Confidence,
    Critique,
    CritiqueKind,
    GMValidation,
    Issue,
    IssueType,
    Severity,
    ValidatedCritique,
    ValidationStatus,
    dedupe_issues,
)
from adventure_sim.models.state import (
    EventLogEntry,
    FlagValue,
    GameState,
    NPCStatus,
    StateSnapshot,
    TerminationReason,
)

__all__ = [
    # config
    "BreadcrumbMatching",
    "DiceMode",
    "GMBehavior",
    "PlayerBehavior",
    "RunConfiguration",
    "RunMode",
    # issues
    "Confidence",
    "Critique",
    "CritiqueKind",
    "GMValidation",
    "Issue",
    "IssueType",
    "Severity",
    "ValidatedCritique",
    "ValidationStatus",
    "dedupe_issues",
    # state
    "EventLogEntry",
    "FlagValue",
    "GameState",
    "NPCStatus",
    "StateSnapshot",
    "TerminationReason",
]
