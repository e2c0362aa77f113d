"""Run state models for the adventure simulator.

This module defines the mutable per-run game state and the records derived
from it:
- NPCStatus: closed lifecycle enumeration for NPCs
- Interaction: how the player engages an NPC
- EventLogEntry: one immutable, append-only log record
- GameState: everything a single run mutates
- StateSnapshot: frozen copy of GameState for reporting
- InformationLookup: one player question the GM searched the content for
- TerminationReason: why a run ended
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


FlagValue = bool | str


class NPCStatus(str, Enum):
    """Lifecycle state of an NPC.

    defeated -> active/passive/hidden requires an explicit recovery effect.
    """

    ACTIVE = "active"
    PASSIVE = "passive"
    HIDDEN = "hidden"
    DEFEATED = "defeated"
    ABSENT = "absent"

    @property
    def is_present(self) -> bool:
        return self in (NPCStatus.ACTIVE, NPCStatus.PASSIVE)


REVIVING_STATES = frozenset({NPCStatus.ACTIVE, NPCStatus.PASSIVE, NPCStatus.HIDDEN})


class Interaction(str, Enum):
    """How the player engages an NPC."""

    CONVERSE = "converse"
    CONFRONT = "confront"


class TerminationReason(str, Enum):
    """Why a simulation run ended."""

    COMPLETED = "completed"
    PLAYER_DEATH = "player_death"
    DEAD_END = "dead_end"
    SOFT_LOCK = "soft_lock"
    MAX_TURNS = "max_turns_reached"
    TIMEOUT = "timeout"
    SIMULATION_FAULT = "simulation_fault"


@dataclass(frozen=True)
class EventLogEntry:
    """A single append-only event log record.

    Attributes:
        step: Monotonic index within the run (0-based)
        actor: Who caused the event ("gm", "player", "scene", "engine")
        action: Short action identifier, e.g. "fire_trigger:alarm"
        scene_id: Scene the event happened in
        delta: Resulting state change (flags, wounds, inventory, npc_states)
    """

    step: int
    actor: str
    action: str
    scene_id: str
    delta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "step": self.step,
            "actor": self.actor,
            "action": self.action,
            "scene_id": self.scene_id,
            "delta": self.delta,
        }


@dataclass
class GameState:
    """Mutable state owned by exactly one simulation run."""

    scene_id: str
    max_wounds: int
    wounds: int = 0
    near_death_count: int = 0
    inventory: set[str] = field(default_factory=set)
    flags: dict[str, FlagValue] = field(default_factory=dict)
    npc_states: dict[str, NPCStatus] = field(default_factory=dict)
    fired_triggers: set[str] = field(default_factory=set)
    passed_challenges: set[str] = field(default_factory=set)
    attempts: dict[str, int] = field(default_factory=dict)
    visited: list[str] = field(default_factory=list)
    npc_dispositions: dict[str, int] = field(default_factory=dict)
    npc_interactions: dict[str, int] = field(default_factory=dict)

    @property
    def is_dead(self) -> bool:
        return self.wounds >= self.max_wounds

    @property
    def is_near_death(self) -> bool:
        return self.wounds == self.max_wounds - 1

    def visit_count(self, scene_id: str) -> int:
        return self.visited.count(scene_id)


@dataclass(frozen=True)
class StateSnapshot:
    """Frozen copy of GameState at a point in time."""

    scene_id: str
    wounds: int
    max_wounds: int
    near_death_count: int
    inventory: tuple[str, ...]
    flags: tuple[tuple[str, FlagValue], ...]
    npc_states: tuple[tuple[str, NPCStatus], ...]
    fired_triggers: tuple[str, ...]
    visited: tuple[str, ...]
    npc_dispositions: tuple[tuple[str, int], ...] = ()
    npc_interactions: tuple[tuple[str, int], ...] = ()

    @classmethod
    def from_state(cls, state: GameState) -> StateSnapshot:
        return cls(
            scene_id=state.scene_id,
            wounds=state.wounds,
            max_wounds=state.max_wounds,
            near_death_count=state.near_death_count,
            inventory=tuple(sorted(state.inventory)),
            flags=tuple(sorted(state.flags.items())),
            npc_states=tuple(sorted(state.npc_states.items())),
            fired_triggers=tuple(sorted(state.fired_triggers)),
            visited=tuple(state.visited),
            npc_dispositions=tuple(sorted(state.npc_dispositions.items())),
            npc_interactions=tuple(sorted(state.npc_interactions.items())),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "scene_id": self.scene_id,
            "wounds": self.wounds,
            "max_wounds": self.max_wounds,
            "near_death_count": self.near_death_count,
            "inventory": list(self.inventory),
            "flags": dict(self.flags),
            "npc_states": {npc: status.value for npc, status in self.npc_states},
            "fired_triggers": list(self.fired_triggers),
            "visited": list(self.visited),
            "npc_dispositions": dict(self.npc_dispositions),
            "npc_interactions": dict(self.npc_interactions),
        }


@dataclass
class InformationLookup:
    """A player question and where the GM found its answer in the content.

    Attributes:
        question_type: Kind of question asked ("npc_info", "next_steps", ...)
        text: The question as the player put it
        scene_id: Scene the question was asked in
        subject: NPC or item the question is about, if any
        search_path: Content sections searched, in order
        found: Whether any section answered the question
        found_in: Section that answered it
    """

    question_type: str
    text: str
    scene_id: str
    subject: str | None = None
    search_path: list[str] = field(default_factory=list)
    found: bool = False
    found_in: str | None = None

    @property
    def severity(self) -> str:
        """How badly a failed lookup hurts the GM at the table."""
        return "critical" if self.question_type in ("npc_info", "npc_motivation") else "warning"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "question_type": self.question_type,
            "text": self.text,
            "scene_id": self.scene_id,
            "subject": self.subject,
            "search_path": self.search_path,
            "found": self.found,
            "found_in": self.found_in,
        }
