"""Player agent and its decision policies.

When the GM calls for a check the player is offered ATTEMPT, plus DECLINE
if the check is optional (an exit is already open). The policy decides;
the agent then rolls through the dice engine.

On entering a scene for the first time the policy also decides which NPCs
to engage and how, and which questions to put to the GM.

Policies:
- CautiousPlayer: declines risky optional checks, keeps away from hostile NPCs
- AggressivePlayer: attempts everything, confronts hostile NPCs
- ThoroughPlayer: attempts everything, talks to everyone, asks the most questions
- SpeedrunPlayer: declines every optional check, engages only required NPCs
- OptimalPlayer: attempts optional checks only when the odds are good
- RandomPlayer: coin flip on optional checks and on each NPC
- ArchetypePlayer: delegates to an archetype's approaches and proposes the
  options matching what the archetype wants to do
"""

from __future__ import annotations

import random
import re

from adventure_sim.agents.archetypes import Archetype, ArchetypeModel, QuestionType
from adventure_sim.agents.base import Option, OptionKind, Policy, SceneView
from adventure_sim.content.schemas import Challenge, SceneNPC
from adventure_sim.engine.dice import CheckOutcome, DiceEngine
from adventure_sim.models.config import PlayerBehavior
from adventure_sim.models.state import Interaction

CAUTIOUS_MIN_CHANCE = 0.5
"""Cautious players decline optional checks below this success chance."""

OPTIMAL_MIN_CHANCE = 0.65
"""Optimal players decline optional checks below this success chance."""

RANDOM_ENGAGE_CHANCE = 0.5
"""Chance a random player engages each NPC or asks each question."""

IMPATIENT = 20
"""Archetypes below this patience skip NPCs the main path does not need."""

_QUESTION_TEXT = {
    QuestionType.NPC_INFO: "Who is {npc}?",
    QuestionType.NPC_MOTIVATION: "What does {npc} want?",
    QuestionType.BACKSTORY: "What's {npc}'s history?",
    QuestionType.ENVIRONMENT: "What do I see, hear, and smell here?",
    QuestionType.LOCATION_DETAIL: "What is {place} like?",
    QuestionType.NEXT_STEPS: "What should I do next?",
}

_WORD_RE = re.compile(r"[a-z]+")

Ask = tuple[QuestionType, str | None]


def _pick(options: list[Option], kind: OptionKind) -> Option:
    for option in options:
        if option.kind == kind:
            return option
    return options[0]


class PlayerPolicy(Policy):
    """Base player policy: attempts whatever it is offered and talks to everyone.

    Subclasses narrow the NPCs they engage through interaction() and the
    questions they ask through npc_questions and scene_questions.
    """

    name = "player"
    npc_questions: tuple[QuestionType, ...] = (QuestionType.NPC_INFO,)
    scene_questions: tuple[QuestionType, ...] = (QuestionType.NEXT_STEPS,)

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        return _pick(options, OptionKind.ATTEMPT)

    def interaction(self, view: SceneView, npc: SceneNPC) -> Interaction | None:
        """How to engage an NPC on first entering a scene, or None to leave them be."""
        return Interaction.CONVERSE

    def questions(self, view: SceneView, engaged: list[str]) -> list[Ask]:
        """Questions for the GM about each engaged NPC, then about the scene."""
        asks: list[Ask] = [(t, npc_id) for npc_id in engaged for t in self.npc_questions]
        for question_type in self.scene_questions:
            if question_type == QuestionType.NEXT_STEPS and view.scene.is_ending:
                continue
            asks.append((question_type, None))
        return asks

    def propose(self, view: SceneView, options: list[Option]) -> Option | None:
        """An option the player would like the GM to pick, if any."""
        return None


class CautiousPlayer(PlayerPolicy):
    name = PlayerBehavior.CAUTIOUS.value
    npc_questions = (QuestionType.NPC_INFO, QuestionType.NPC_MOTIVATION)
    scene_questions = (QuestionType.ENVIRONMENT, QuestionType.NEXT_STEPS)

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        attempt = _pick(options, OptionKind.ATTEMPT)
        challenge = view.challenge(attempt)
        risky = view.success_chance(challenge, attempt.difficulty) < CAUTIOUS_MIN_CHANCE
        if risky or challenge.failure.wounds:
            return _pick(options, OptionKind.DECLINE)
        return attempt

    def interaction(self, view: SceneView, npc: SceneNPC) -> Interaction | None:
        return None if npc.hostile else Interaction.CONVERSE


class AggressivePlayer(PlayerPolicy):
    name = PlayerBehavior.AGGRESSIVE.value

    def interaction(self, view: SceneView, npc: SceneNPC) -> Interaction | None:
        return Interaction.CONFRONT if npc.hostile else Interaction.CONVERSE


class ThoroughPlayer(PlayerPolicy):
    name = PlayerBehavior.THOROUGH.value
    npc_questions = (QuestionType.NPC_INFO, QuestionType.NPC_MOTIVATION, QuestionType.BACKSTORY)
    scene_questions = (QuestionType.ENVIRONMENT, QuestionType.LOCATION_DETAIL, QuestionType.NEXT_STEPS)


class SpeedrunPlayer(PlayerPolicy):
    name = PlayerBehavior.SPEEDRUN.value
    npc_questions = ()

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        return _pick(options, OptionKind.DECLINE)

    def interaction(self, view: SceneView, npc: SceneNPC) -> Interaction | None:
        return Interaction.CONVERSE if npc.required else None


class OptimalPlayer(PlayerPolicy):
    name = PlayerBehavior.OPTIMAL.value
    npc_questions = (QuestionType.NPC_INFO, QuestionType.NPC_MOTIVATION)

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        attempt = _pick(options, OptionKind.ATTEMPT)
        challenge = view.challenge(attempt)
        if view.success_chance(challenge, attempt.difficulty) >= OPTIMAL_MIN_CHANCE:
            return attempt
        return _pick(options, OptionKind.DECLINE)

    def interaction(self, view: SceneView, npc: SceneNPC) -> Interaction | None:
        if npc.required or npc.role.lower() != "background":
            return Interaction.CONVERSE
        return None


class RandomPlayer(PlayerPolicy):
    name = PlayerBehavior.RANDOM.value
    npc_questions = ThoroughPlayer.npc_questions
    scene_questions = ThoroughPlayer.scene_questions

    def __init__(self, rng: random.Random):
        self.rng = rng

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        return self.rng.choice(options)

    def interaction(self, view: SceneView, npc: SceneNPC) -> Interaction | None:
        return Interaction.CONVERSE if self.rng.random() < RANDOM_ENGAGE_CHANCE else None

    def questions(self, view: SceneView, engaged: list[str]) -> list[Ask]:
        return [ask for ask in super().questions(view, engaged) if self.rng.random() < RANDOM_ENGAGE_CHANCE]


class ArchetypePlayer(PlayerPolicy):
    """Decisions driven by an archetype's approaches, risk tolerance and preferred actions."""

    npc_questions = ()
    scene_questions = ()

    def __init__(self, archetype: Archetype, model: ArchetypeModel | None = None):
        self.archetype = archetype
        self.model = model
        self.name = archetype.id

    def choose(self, view: SceneView, options: list[Option]) -> Option:
        attempt = _pick(options, OptionKind.ATTEMPT)
        approach = self.archetype.check_approach
        if approach == "avoid":
            return _pick(options, OptionKind.DECLINE)
        if approach == "calculate":
            challenge = view.challenge(attempt)
            needed = 1 - self.archetype.risk_tolerance / 100
            if view.success_chance(challenge, attempt.difficulty) < needed:
                return _pick(options, OptionKind.DECLINE)
        return attempt

    def interaction(self, view: SceneView, npc: SceneNPC) -> Interaction | None:
        if npc.hostile:
            combat = self.archetype.combat_approach
            if combat == "aggressive":
                return Interaction.CONFRONT
            return None if combat == "avoid" else Interaction.CONVERSE
        if self.archetype.patience < IMPATIENT and not npc.required:
            return None
        return Interaction.CONVERSE

    def keywords(self, view: SceneView) -> set[str]:
        """What the archetype is trying to do in the current scene."""
        words = set(self.archetype.action_preferences)
        if self.model is not None:
            for action in self.model.attempted.get(view.scene.id, []):
                words.update(action.keywords)
        return words

    def propose(self, view: SceneView, options: list[Option]) -> Option | None:
        """The option whose label best matches the archetype's actions.

        Ties keep authored order; no match means no proposal.
        """
        keywords = self.keywords(view)
        best, best_score = None, 0
        for option in options:
            label = option.label
            if option.kind == OptionKind.EXIT and not label:
                label = view.graph.scene(option.ref).display_name
            words = _WORD_RE.findall(label.lower())
            score = sum(1 for k in keywords if any(w.startswith(k) for w in words))
            if score > best_score:
                best, best_score = option, score
        return best


PLAYER_POLICIES: dict[PlayerBehavior, type[PlayerPolicy]] = {
    PlayerBehavior.CAUTIOUS: CautiousPlayer,
    PlayerBehavior.AGGRESSIVE: AggressivePlayer,
    PlayerBehavior.THOROUGH: ThoroughPlayer,
    PlayerBehavior.SPEEDRUN: SpeedrunPlayer,
    PlayerBehavior.OPTIMAL: OptimalPlayer,
    PlayerBehavior.RANDOM: RandomPlayer,
}


def create_player_policy(behavior: PlayerBehavior, rng: random.Random) -> PlayerPolicy:
    """Create a player policy for a behaviour."""
    policy_cls = PLAYER_POLICIES[behavior]
    if policy_cls is RandomPlayer:
        return RandomPlayer(rng)
    return policy_cls()


class PlayerAgent:
    """Resolves checks, engages NPCs and, when driven by an archetype, raises critiques."""

    def __init__(
        self,
        policy: PlayerPolicy,
        dice: DiceEngine,
        skill_bonuses: dict[str, int],
        archetype_model: ArchetypeModel | None = None,
    ):
        self.policy = policy
        self.dice = dice
        self.skill_bonuses = skill_bonuses
        self.archetype_model = archetype_model

    @property
    def label(self) -> str:
        return self.policy.name

    def respond(self, view: SceneView, challenge: Challenge, difficulty: int, optional: bool) -> Option:
        """Decide whether to attempt a called check."""
        options = [Option(OptionKind.ATTEMPT, challenge.id, challenge.name, challenge.severity, difficulty)]
        if optional:
            options.append(Option(OptionKind.DECLINE, challenge.id, challenge.name, challenge.severity, difficulty))
        return self.policy.choose(view, options)

    def resolve(self, challenge: Challenge, difficulty: int) -> CheckOutcome:
        """Roll d20 + skill bonus against the difficulty."""
        return self.dice.check(difficulty, self.skill_bonuses.get(challenge.skill, 0))

    def interaction(self, view: SceneView, npc: SceneNPC) -> Interaction | None:
        return self.policy.interaction(view, npc)

    def propose(self, view: SceneView, options: list[Option]) -> Option | None:
        return self.policy.propose(view, options)

    def questions(self, view: SceneView, engaged: list[str]) -> list[tuple[QuestionType, str, str | None]]:
        """(type, text, subject) for every question the player asks in the scene.

        Archetype players ask the questions their archetype generated for
        the scene; everyone else asks their policy's question set.
        """
        scene = view.scene
        if self.archetype_model is not None:
            return [(q.type, q.text, q.subject) for q in self.archetype_model.asked.get(scene.id, [])]
        asked = []
        for question_type, subject in self.policy.questions(view, engaged):
            npc = view.graph.npc(subject).name if subject else ""
            text = _QUESTION_TEXT[question_type].format(npc=npc, place=scene.location or scene.display_name)
            asked.append((question_type, text, subject))
        return asked
