"""GM agent and its decision policies.

The GM is a small state machine:

    SELECTING_SCENE -> RESOLVING -> ADVANCING -> SELECTING_SCENE ...

While RESOLVING it fires triggers and calls checks; when its policy picks an
exit it moves to ADVANCING, and the runner moves the party to the chosen
scene, passing back through SELECTING_SCENE. The GM also looks up answers
to player questions in the authored content, the way a GM at the table
searches their notes.

Policies:
- ThoroughGM: everything eligible before advancing
- EfficientGM: only what opens an exit, then the exit nearest an ending
- DramaticGM: highest severity first, advances when significant content is done
- AdversarialGM: thorough, hardest difficulty, plays every NPC aggression
- SupportiveGM: thorough, easiest difficulty, skips optional harmful triggers
- RandomGM: uniform among eligible options (control)
"""

from __future__ import annotations

import logging
import random
from enum import Enum

from adventure_sim.agents.archetypes import QuestionType
from adventure_sim.agents.base import Option, OptionKind, Policy, SceneView
from adventure_sim.content.schemas import Challenge, NPCDef, SceneNPC
from adventure_sim.models.config import GMBehavior
from adventure_sim.models.state import InformationLookup

logger = logging.getLogger(__name__)


class GMPhase(str, Enum):
    SELECTING_SCENE = "selecting_scene"
    RESOLVING = "resolving"
    ADVANCING = "advancing"


DRAMATIC_SEVERITY = 2
"""Triggers and checks at or above this severity are narratively significant."""


def _split(options: list[Option]) -> tuple[list[Option], list[Option]]:
    content = [o for o in options if o.kind != OptionKind.EXIT]
    exits = [o for o in options if o.kind == OptionKind.EXIT]
    return content, exits


class GMPolicy(Policy):
    """Base GM policy with neutral difficulty and aggression choices."""

    name = "gm"

    def select_difficulty(self, challenge: Challenge) -> int:
        return challenge.difficulty

    def plays_aggression(self, npc: SceneNPC) -> bool:
        """Whether to play an NPC's aggression effect on scene entry."""
        return npc.hostile

    def pick_exit(self, view: SceneView, exits: list[Option]) -> Option:
        """Prefer scenes not yet visited, then authored order."""
        unvisited = [o for o in exits if view.visits(o.ref) == 0]
        return (unvisited or exits)[0]


class ThoroughGM(GMPolicy):
    """Fires every eligible trigger and calls every eligible check before advancing."""

    name = GMBehavior.THOROUGH.value

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        content, exits = _split(options)
        triggers = [o for o in content if o.kind == OptionKind.TRIGGER]
        if triggers:
            return triggers[0]
        if content:
            return content[0]
        return self.pick_exit(view, exits)


class EfficientGM(GMPolicy):
    """Does the minimum needed to open an exit, then takes the shortest route."""

    name = GMBehavior.EFFICIENT.value

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        content, exits = _split(options)
        if exits:
            return self.pick_exit(view, exits)
        openers = [o for o in content if view.opens_exit(o)]
        if openers:
            return openers[0]
        guard_flags = set()
        for exit_ in view.scene.exits:
            guard_flags |= view.graph.guard(exit_.guard).referenced_flags
        for option in content:
            if any(set(e.set_flags) & guard_flags for e in view.effects_of(option)):
                return option
        return content[0]

    def pick_exit(self, view: SceneView, exits: list[Option]) -> Option:
        def distance(option: Option) -> tuple[int, int]:
            d = view.graph.distance_to_ending(option.ref)
            return (d if d is not None else 10**6, view.visits(option.ref))

        return min(exits, key=distance)


class DramaticGM(GMPolicy):
    """Plays the highest-stakes content first and skips filler."""

    name = GMBehavior.DRAMATIC.value

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        content, exits = _split(options)
        significant = [o for o in content if o.severity >= DRAMATIC_SEVERITY]
        pool = significant if (significant or exits) else content
        if pool:
            # Stable sort keeps authored order among equal severities
            return sorted(pool, key=lambda o: -o.severity)[0]
        return self.pick_exit(view, exits)


class AdversarialGM(ThoroughGM):
    """Pushes difficulty to the top of each range and unleashes every NPC."""

    name = GMBehavior.ADVERSARIAL.value

    def select_difficulty(self, challenge: Challenge) -> int:
        return challenge.difficulty_choices[1]

    def plays_aggression(self, npc: SceneNPC) -> bool:
        return True


class SupportiveGM(ThoroughGM):
    """Eases difficulty, holds back NPCs, and skips optional harmful triggers."""

    name = GMBehavior.SUPPORTIVE.value

    def select_difficulty(self, challenge: Challenge) -> int:
        return challenge.difficulty_choices[0]

    def plays_aggression(self, npc: SceneNPC) -> bool:
        return False

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        content, exits = _split(options)
        kept = []
        for option in content:
            if option.kind == OptionKind.TRIGGER:
                trigger = view.trigger(option)
                # Harmful triggers stay in play only when they are the way forward
                if trigger.harmful and (exits or not view.opens_exit(option)):
                    continue
            kept.append(option)
        helpful = [o for o in kept if o.kind == OptionKind.TRIGGER and view.trigger(o).helpful]
        if helpful:
            return helpful[0]
        if kept or exits:
            return super().choose(view, kept + exits)
        return content[0]


class RandomGM(GMPolicy):
    """Uniform choice among eligible options."""

    name = GMBehavior.RANDOM.value

    def __init__(self, rng: random.Random):
        self.rng = rng

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        return self.rng.choice(options)


GM_POLICIES: dict[GMBehavior, type[GMPolicy]] = {
    GMBehavior.THOROUGH: ThoroughGM,
    GMBehavior.EFFICIENT: EfficientGM,
    GMBehavior.DRAMATIC: DramaticGM,
    GMBehavior.ADVERSARIAL: AdversarialGM,
    GMBehavior.SUPPORTIVE: SupportiveGM,
    GMBehavior.RANDOM: RandomGM,
}


def create_gm_policy(behavior: GMBehavior, rng: random.Random) -> GMPolicy:
    """Create a GM policy for a behaviour."""
    policy_cls = GM_POLICIES[behavior]
    if policy_cls is RandomGM:
        return RandomGM(rng)
    return policy_cls()


def _npc(view: SceneView, npc_id: str | None) -> NPCDef | None:
    return next((n for n in view.graph.adventure.npcs if n.id == npc_id), None)


def _lookup_sections(view: SceneView, question_type: QuestionType, subject: str | None) -> list[tuple[str, bool]]:
    """Content sections that could answer a question, in search order."""
    scene = view.scene
    npc = _npc(view, subject)
    if question_type in (QuestionType.NPC_INFO, QuestionType.NPC_MOTIVATION, QuestionType.BACKSTORY) and npc:
        field_name = {
            QuestionType.NPC_INFO: "description",
            QuestionType.NPC_MOTIVATION: "motivation",
            QuestionType.BACKSTORY: "backstory",
        }[question_type]
        return [(f"npc:{npc.id}.{field_name}", bool(getattr(npc, field_name)))]
    if question_type == QuestionType.NPC_INFO:
        return [("scene.npcs", any(_npc(view, ref.id).description for ref in scene.npcs))]
    if question_type == QuestionType.NPC_MOTIVATION:
        return [("scene.npcs", any(_npc(view, ref.id).motivation for ref in scene.npcs))]
    if question_type == QuestionType.ENVIRONMENT:
        return [("scene.environment", bool(scene.environment))]
    if question_type in (QuestionType.LOCATION_DETAIL, QuestionType.BACKSTORY):
        return [
            ("scene.environment", bool(scene.location and scene.environment)),
            ("scene.narrative", bool(scene.location and scene.narrative)),
        ]
    if question_type == QuestionType.NEXT_STEPS:
        return [
            ("scene.triggers", any(t.label for t in scene.triggers)),
            ("scene.exits", any(e.label for e in scene.exits)),
        ]
    if question_type == QuestionType.ITEM_INFO:
        described = [item for item in view.graph.adventure.items if item.id in scene.items and item.description]
        return [("scene.items", bool(described))]
    return [("scene.challenges", any(c.description for c in scene.challenges))]


class GMAgent:
    """Drives scene resolution with a GM policy.

    The runner asks the agent for its next decision; the agent tracks which
    phase of the scene it is in and keeps every phase change in `transitions`.
    """

    def __init__(self, policy: GMPolicy):
        self.policy = policy
        self.phase = GMPhase.SELECTING_SCENE
        self.transitions: list[tuple[GMPhase, GMPhase]] = []

    def _move(self, phase: GMPhase) -> None:
        if phase != self.phase:
            self.transitions.append((self.phase, phase))
            self.phase = phase

    def select_scene(self) -> None:
        """The party is between scenes."""
        self._move(GMPhase.SELECTING_SCENE)

    def begin_scene(self) -> None:
        self._move(GMPhase.RESOLVING)

    def decide(self, view: SceneView, options: list[Option], proposal: Option | None = None) -> Option:
        """Choose the next option; an exit choice moves the agent to ADVANCING.

        A player proposal replaces the policy's choice when both are the same
        kind of option, so the policy keeps control of pacing while the player
        picks which trigger, check or exit.
        """
        if not options:
            raise ValueError("GM has no options to choose from")
        self._move(GMPhase.RESOLVING)
        choice = self.policy.choose(view, options)
        if proposal is not None and proposal in options and proposal.kind == choice.kind:
            choice = proposal
        if choice.kind == OptionKind.EXIT:
            self._move(GMPhase.ADVANCING)
        return choice

    def look_up(
        self, view: SceneView, question_type: QuestionType, text: str, subject: str | None = None
    ) -> InformationLookup:
        """Search the authored content for the answer to a player question."""
        lookup = InformationLookup(question_type.value, text, view.scene.id, subject)
        for section, answered in _lookup_sections(view, question_type, subject):
            lookup.search_path.append(section)
            if answered:
                lookup.found, lookup.found_in = True, section
                break
        if not lookup.found:
            logger.debug(f"No answer in {view.scene.id} for {question_type.value}: {text}")
        return lookup
