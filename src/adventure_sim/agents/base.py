"""Base policy interface for simulated GMs and players.

Every decision mode is a Policy subclass implementing
choose(view, options) -> Option. Options are plain records describing what
can be done right now; the view gives read-only access to the scene and the
run state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from adventure_sim.content.schemas import Challenge, Effect, Exit, Scene, Trigger
from adventure_sim.engine.dice import success_chance

if TYPE_CHECKING:
    from adventure_sim.content.loader import ContentGraph
    from adventure_sim.models.state import GameState


class OptionKind(str, Enum):
    """What an option does."""

    TRIGGER = "trigger"  # GM fires a trigger
    CHALLENGE = "challenge"  # GM calls for a check
    EXIT = "exit"  # GM moves the party on
    ATTEMPT = "attempt"  # Player attempts the called check
    DECLINE = "decline"  # Player passes on an optional check


@dataclass(frozen=True)
class Option:
    """One action available at a decision point.

    Attributes:
        kind: What the option does
        ref: Trigger id, challenge id, or exit target scene id
        label: Human-readable label
        severity: Narrative weight declared by the author
        difficulty: DC for challenge options
    """

    kind: OptionKind
    ref: str
    label: str = ""
    severity: int = 0
    difficulty: int | None = None

    @classmethod
    def for_trigger(cls, trigger: Trigger) -> Option:
        return cls(OptionKind.TRIGGER, trigger.id, trigger.label, trigger.severity)

    @classmethod
    def for_challenge(cls, challenge: Challenge, difficulty: int | None = None) -> Option:
        return cls(
            OptionKind.CHALLENGE,
            challenge.id,
            challenge.name,
            challenge.severity,
            difficulty if difficulty is not None else challenge.difficulty,
        )

    @classmethod
    def for_exit(cls, exit_: Exit) -> Option:
        return cls(OptionKind.EXIT, exit_.target, exit_.label)


@dataclass(frozen=True)
class SceneView:
    """Read-only view of the run handed to policies."""

    graph: ContentGraph
    state: GameState
    skill_bonuses: dict[str, int]

    @property
    def scene(self) -> Scene:
        return self.graph.scene(self.state.scene_id)

    def trigger(self, option: Option) -> Trigger:
        return self.scene.trigger(option.ref)

    def challenge(self, option: Option) -> Challenge:
        return self.scene.challenge(option.ref)

    def effects_of(self, option: Option) -> list[Effect]:
        """Effects an option can produce (both outcomes for a challenge)."""
        if option.kind == OptionKind.TRIGGER:
            return [self.trigger(option).effects]
        if option.kind in (OptionKind.CHALLENGE, OptionKind.ATTEMPT):
            challenge = self.challenge(option)
            return [challenge.success, challenge.failure]
        return []

    def open_exits(self, flags: dict | None = None) -> list[Exit]:
        flags = self.state.flags if flags is None else flags
        return [e for e in self.scene.exits if self.graph.guard(e.guard).evaluate(flags)]

    def opens_exit(self, option: Option) -> bool:
        """One-step lookahead: would this option open a currently closed exit?"""
        closed = [e for e in self.scene.exits if e not in self.open_exits()]
        if not closed:
            return False
        for effect in self.effects_of(option):
            flags = {**self.state.flags, **effect.set_flags}
            if any(self.graph.guard(e.guard).evaluate(flags) for e in closed):
                return True
        return False

    def success_chance(self, challenge: Challenge, difficulty: int) -> float:
        return success_chance(difficulty, self.skill_bonuses.get(challenge.skill, 0))

    def visits(self, scene_id: str) -> int:
        return self.state.visit_count(scene_id)


class Policy(ABC):
    """Abstract decision policy."""

    name = "policy"

    @abstractmethod
    def choose(self, view: SceneView, options: list[Option]) -> Option:
        """Choose one of the options.

        Args:
            view: Read-only view of the run
            options: Non-empty list of legal options

        Returns:
            The chosen option
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
