"""Behavioral archetype models for simulated players.

An archetype is a named bundle of personality traits plus preferences for
question types, actions, and approaches to checks, combat, and NPCs. Each
archetype generates, per scene:

1. A ranked list of questions the player would ask, drawn from the scene's
   NPCs, environment, and authored hooks, plus the questions only that
   archetype thinks to ask (Archetype.specific_questions).
2. A ranked list of attempted actions from the archetype's action
   templates, including boundary-testing actions (betraying a companion,
   allying with enemies) for creative archetypes.

Questions the content cannot answer and actions it does not support become
Critiques for the GM validator.

Usage:
    model = ArchetypeModel(get_archetype("detective"), rng)
    questions = model.generate_questions(scene, graph, path)
    critiques = model.critiques(scene, graph, path)
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from adventure_sim.content.schemas import ChallengeType, Hook, Scene
from adventure_sim.models.issues import Critique, CritiqueKind
from adventure_sim.parameters import BOUNDARY_CREATIVITY_THRESHOLD, HOOK_CURIOSITY_THRESHOLD

if TYPE_CHECKING:
    from adventure_sim.content.loader import ContentGraph


class QuestionType(str, Enum):
    """Things a player asks that the GM must look up."""

    NPC_INFO = "npc_info"
    LOCATION_DETAIL = "location_detail"
    ITEM_INFO = "item_info"
    SKILL_CHECK = "skill_check"
    ENVIRONMENT = "environment"
    BACKSTORY = "backstory"
    NEXT_STEPS = "next_steps"
    NPC_MOTIVATION = "npc_motivation"


@dataclass(frozen=True)
class Question:
    """A question a simulated player raises in a scene."""

    type: QuestionType
    text: str
    scene_id: str
    answered: bool
    unanswered_kind: CritiqueKind = CritiqueKind.MISSING_CONTENT
    subject: str | None = None


@dataclass(frozen=True)
class AttemptedAction:
    """An action a simulated player tries, supported or not by the content."""

    text: str
    scene_id: str
    keywords: tuple[str, ...]
    supported: bool
    boundary: bool = False


class ActionTemplate(BaseModel):
    """Something an archetype tries in every scene where it applies.

    `{npc}` in the text is filled with the first hostile NPC, or the first
    NPC present. A template is supported when one of its keywords appears in
    the scene's triggers or checks; a backtrack template is also supported
    by any exit leading back along the path.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    keywords: tuple[str, ...]
    boundary: bool = False
    requires: Literal["npcs", "hostile", "companion"] | None = None
    backtrack: bool = False

    def applies(self, scene: Scene) -> bool:
        if self.requires == "npcs":
            return bool(scene.npcs)
        if self.requires == "hostile":
            return any(ref.hostile for ref in scene.npcs)
        if self.requires == "companion":
            return any("companion" in ref.role.lower() for ref in scene.npcs)
        return True


GENERIC_BOUNDARY = ActionTemplate(
    text="Try to win over the hostile {npc}",
    keywords=("ally", "persuade", "parley", "truce"),
    boundary=True,
    requires="hostile",
)
"""Boundary test for creative archetypes that have none of their own."""


def _scene_corpus(scene: Scene) -> str:
    """All player-actionable text in a scene, lowercased."""
    parts = []
    for trigger in scene.triggers:
        parts += [trigger.label, trigger.text]
    for challenge in scene.challenges:
        parts += [challenge.name, challenge.skill, challenge.description]
    return " ".join(parts).lower()


# =============================================================================
# Archetypes
# =============================================================================


class Archetype(BaseModel):
    """A trait-parameterized behavioral profile."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    motivation: str
    risk_tolerance: int = Field(ge=0, le=100)
    curiosity: int = Field(ge=0, le=100)
    empathy: int = Field(ge=0, le=100)
    suspicion: int = Field(ge=0, le=100)
    creativity: int = Field(ge=0, le=100)
    patience: int = Field(ge=0, le=100)
    question_weights: dict[QuestionType, int]
    observation_focus: tuple[str, ...]
    action_preferences: tuple[str, ...] = ()
    actions: tuple[ActionTemplate, ...] = ()
    check_approach: Literal["avoid", "calculate", "embrace", "creative"]
    combat_approach: Literal["avoid", "tactical", "aggressive", "negotiate"]
    npc_approach: Literal["friendly", "suspicious", "transactional", "deep"]

    def weight(self, question_type: QuestionType) -> int:
        return self.question_weights.get(question_type, 0)

    @property
    def tests_boundaries(self) -> bool:
        return self.creativity >= BOUNDARY_CREATIVITY_THRESHOLD

    @property
    def action_templates(self) -> tuple[ActionTemplate, ...]:
        """Own templates, plus the generic boundary test for creative archetypes lacking one."""
        if self.tests_boundaries and not any(t.boundary for t in self.actions):
            return self.actions + (GENERIC_BOUNDARY,)
        return self.actions

    def specific_questions(self, scene: Scene, graph: ContentGraph, path: tuple[str, ...]) -> list[Question]:
        """Questions only this archetype thinks to ask."""
        return []


class Detective(Archetype):
    def specific_questions(self, scene, graph, path):
        questions = []
        if len(scene.npcs) > 1:
            secretive = [ref.id for ref in scene.npcs if graph.npc(ref.id).secret]
            questions.append(Question(
                QuestionType.NPC_MOTIVATION, "Are any of these NPCs lying or hiding something?",
                scene.id, not secretive, CritiqueKind.QUESTION, secretive[0] if secretive else None,
            ))
        questions.append(Question(
            QuestionType.BACKSTORY, "What happened here before I arrived? What's the timeline?",
            scene.id, bool(scene.environment), CritiqueKind.MISSING_CONTENT,
        ))
        earlier = [graph.scene(sid).location for sid in path[:-1] if graph.scene(sid).location]
        if earlier:
            narrative = scene.narrative.lower()
            connected = any(loc.lower() in narrative for loc in earlier)
            questions.append(Question(
                QuestionType.BACKSTORY, "How does this location connect to what I've seen before?",
                scene.id, connected, CritiqueKind.LOGIC_GAP,
            ))
        return questions


class ChaosAgent(Archetype):
    def specific_questions(self, scene, graph, path):
        corpus = _scene_corpus(scene)
        questions = [Question(
            QuestionType.SKILL_CHECK, "What happens if I do the opposite of what's expected?",
            scene.id, bool(scene.challenges), CritiqueKind.MISSING_CONTENT,
        )]
        if any(ref.hostile for ref in scene.npcs):
            questions.append(Question(
                QuestionType.NPC_MOTIVATION, "Can I ally with the enemies instead of fighting them?",
                scene.id, any(k in corpus for k in ("ally", "alliance", "parley", "truce")),
                CritiqueKind.UNHANDLED_ACTION,
            ))
        if any("companion" in ref.role.lower() for ref in scene.npcs):
            questions.append(Question(
                QuestionType.SKILL_CHECK, "What if I betray or abandon my companion?",
                scene.id, any(k in corpus for k in ("betray", "abandon")), CritiqueKind.UNHANDLED_ACTION,
            ))
        return questions


class Empath(Archetype):
    def specific_questions(self, scene, graph, path):
        questions = []
        for ref in scene.npcs:
            npc = graph.npc(ref.id)
            questions.append(Question(
                QuestionType.NPC_MOTIVATION, f"How is {npc.name} feeling? Are they suffering?",
                scene.id, bool(npc.description or npc.motivation), CritiqueKind.EMOTIONAL_GAP, npc.id,
            ))
        if any(c.skill.lower() in ("combat", "attack") for c in scene.challenges):
            corpus = _scene_corpus(scene)
            questions.append(Question(
                QuestionType.SKILL_CHECK, "Is there a way to resolve this without violence?",
                scene.id, any(k in corpus for k in ("negotiate", "persuade", "peace", "talk")),
                CritiqueKind.UNHANDLED_ACTION,
            ))
        questions.append(Question(
            QuestionType.NEXT_STEPS, "Is there a way to help everyone here? A good ending for all?",
            scene.id, any(t.helpful for t in scene.triggers), CritiqueKind.EMOTIONAL_GAP,
        ))
        return questions


class Skeptic(Archetype):
    def specific_questions(self, scene, graph, path):
        questions = []
        for ref in scene.npcs:
            npc = graph.npc(ref.id)
            questions.append(Question(
                QuestionType.NPC_MOTIVATION, f"Can I trust {npc.name}? What's their real agenda?",
                scene.id, not npc.secret, CritiqueKind.QUESTION, npc.id,
            ))
        dangers = any(c.type == ChallengeType.HIDDEN for c in scene.challenges) or any(
            t.harmful for t in scene.triggers
        )
        questions.append(Question(
            QuestionType.ENVIRONMENT, "Are there any traps or hidden dangers here?",
            scene.id, dangers or bool(scene.environment), CritiqueKind.MISSING_CONTENT,
        ))
        questions.append(Question(
            QuestionType.LOCATION_DETAIL, "What are my escape routes if things go wrong?",
            scene.id, len(scene.exits) > 1 or scene.is_ending, CritiqueKind.MISSING_CONTENT,
        ))
        return questions


class Explorer(Archetype):
    def specific_questions(self, scene, graph, path):
        hidden = any(c.type == ChallengeType.HIDDEN for c in scene.challenges) or bool(scene.loot)
        return [
            Question(
                QuestionType.LOCATION_DETAIL,
                "Are there any hidden rooms, secret passages, or unexplored areas?",
                scene.id, hidden, CritiqueKind.MISSING_CONTENT,
            ),
            Question(
                QuestionType.ENVIRONMENT, "What objects can I interact with here?",
                scene.id, bool(scene.items or scene.loot or scene.triggers), CritiqueKind.MISSING_CONTENT,
            ),
            Question(
                QuestionType.BACKSTORY, "What's the history of this place? Any interesting lore?",
                scene.id, bool(scene.environment), CritiqueKind.MISSING_CONTENT,
            ),
        ]


def _weights(npc_info, location, item, skill, environment, backstory, next_steps, motivation):
    return {
        QuestionType.NPC_INFO: npc_info,
        QuestionType.LOCATION_DETAIL: location,
        QuestionType.ITEM_INFO: item,
        QuestionType.SKILL_CHECK: skill,
        QuestionType.ENVIRONMENT: environment,
        QuestionType.BACKSTORY: backstory,
        QuestionType.NEXT_STEPS: next_steps,
        QuestionType.NPC_MOTIVATION: motivation,
    }


def _action(text, keywords, boundary=False, requires=None, backtrack=False) -> ActionTemplate:
    return ActionTemplate(text=text, keywords=keywords, boundary=boundary, requires=requires, backtrack=backtrack)


ARCHETYPES: dict[str, Archetype] = {
    "detective": Detective(
        id="detective",
        name="The Detective",
        description="Examines everything, asks probing questions, connects clues.",
        motivation="Uncover the truth",
        risk_tolerance=40, curiosity=95, empathy=50, suspicion=80, creativity=60, patience=70,
        question_weights=_weights(90, 70, 85, 40, 80, 95, 30, 100),
        observation_focus=("clues", "inconsistencies", "hidden_details", "npc_behavior"),
        action_preferences=("investigate", "question", "search"),
        actions=(
            _action("Examine every item for clues", ("examine", "clue", "inspect")),
            _action("Cross-reference NPC statements", ("statement", "testimony", "interrogate"), requires="npcs"),
            _action("Search for hidden documents", ("search", "document", "records")),
            _action("Analyze physical evidence", ("evidence", "analy", "forensic")),
        ),
        check_approach="calculate",
        combat_approach="avoid",
        npc_approach="suspicious",
    ),
    "chaos_agent": ChaosAgent(
        id="chaos_agent",
        name="The Chaos Agent",
        description="Makes unexpected choices, tests boundaries, does the wrong thing.",
        motivation="Test the limits",
        risk_tolerance=95, curiosity=80, empathy=20, suspicion=60, creativity=100, patience=30,
        question_weights=_weights(40, 50, 60, 70, 40, 30, 20, 50),
        observation_focus=("exploits", "boundaries", "unexpected_options", "consequences"),
        action_preferences=("betray", "provoke", "steal"),
        actions=(
            _action("Attempt to betray companion", ("betray", "abandon"), True, "companion"),
            _action("Try to ally with enemies", ("ally", "alliance", "parley", "truce"), True, "hostile"),
            _action("Refuse to cooperate with the plot", ("refuse", "decline"), True),
            _action("Steal from friendly NPCs", ("steal", "pickpocket", "theft"), True, "npcs"),
            _action("Attack {npc} unprovoked", ("attack", "fight", "combat", "ambush"), True, "npcs"),
        ),
        check_approach="creative",
        combat_approach="aggressive",
        npc_approach="transactional",
    ),
    "empath": Empath(
        id="empath",
        name="The Empath",
        description="Focuses on relationships, tries to help everyone, avoids violence.",
        motivation="Help and connect",
        risk_tolerance=30, curiosity=60, empathy=100, suspicion=20, creativity=50, patience=90,
        question_weights=_weights(80, 40, 30, 30, 50, 70, 40, 100),
        observation_focus=("emotions", "relationships", "suffering", "redemption"),
        action_preferences=("help", "negotiate", "comfort"),
        actions=(
            _action("Try to save everyone", ("save", "rescue", "protect")),
            _action("Negotiate with hostile NPCs", ("negotiate", "persuade", "parley"), requires="hostile"),
            _action("Ask for consent before major decisions", ("consent", "agree")),
            _action("Look for non-violent solutions", ("peace", "non-violent", "talk", "negotiate")),
        ),
        check_approach="avoid",
        combat_approach="negotiate",
        npc_approach="deep",
    ),
    "tactician": Archetype(
        id="tactician",
        name="The Tactician",
        description="Plans ahead, assesses risks, looks for advantages.",
        motivation="Win efficiently",
        risk_tolerance=50, curiosity=40, empathy=30, suspicion=70, creativity=40, patience=60,
        question_weights=_weights(60, 50, 80, 90, 70, 30, 80, 50),
        observation_focus=("resources", "threats", "advantages", "escape_routes"),
        action_preferences=("prepare", "scout", "gather"),
        actions=(
            _action("Prepare ambush before combat", ("ambush", "prepare"), requires="hostile"),
            _action("Gather resources before proceeding", ("gather", "supplies", "resources")),
            _action("Scout ahead before committing", ("scout", "recon", "perception")),
            _action("Set up escape route", ("escape", "retreat")),
        ),
        check_approach="calculate",
        combat_approach="tactical",
        npc_approach="transactional",
    ),
    "explorer": Explorer(
        id="explorer",
        name="The Explorer",
        description="Goes off the beaten path, checks every door, reads every sign.",
        motivation="Discover all content",
        risk_tolerance=60, curiosity=100, empathy=50, suspicion=40, creativity=70, patience=80,
        question_weights=_weights(70, 100, 90, 50, 100, 60, 40, 50),
        observation_focus=("exits", "hidden_areas", "interactables", "lore"),
        action_preferences=("explore", "search", "backtrack"),
        actions=(
            _action("Check every door and container", ("door", "container", "chest", "search")),
            _action("Look for secret passages", ("secret", "passage", "hidden")),
            _action("Go back to previous areas", ("return", "back"), backtrack=True),
            _action("Explore off the main path", ("explore", "wander", "path")),
        ),
        check_approach="embrace",
        combat_approach="avoid",
        npc_approach="friendly",
    ),
    "speedrunner": Archetype(
        id="speedrunner",
        name="The Speedrunner",
        description="Skips dialogue, takes shortcuts, ignores side content.",
        motivation="Complete quickly",
        risk_tolerance=70, curiosity=20, empathy=10, suspicion=30, creativity=30, patience=10,
        question_weights=_weights(20, 10, 30, 40, 10, 5, 100, 10),
        observation_focus=("critical_path", "shortcuts", "required_items"),
        action_preferences=("advance",),
        check_approach="embrace",
        combat_approach="aggressive",
        npc_approach="transactional",
    ),
    "roleplayer": Archetype(
        id="roleplayer",
        name="The Roleplayer",
        description="Deep NPC conversations, emotional investment, stays in character.",
        motivation="Immersive experience",
        risk_tolerance=40, curiosity=70, empathy=80, suspicion=40, creativity=80, patience=100,
        question_weights=_weights(90, 70, 50, 40, 80, 100, 30, 95),
        observation_focus=("character_moments", "dialogue", "atmosphere", "immersion"),
        action_preferences=("converse", "perform", "bond"),
        check_approach="creative",
        combat_approach="negotiate",
        npc_approach="deep",
    ),
    "skeptic": Skeptic(
        id="skeptic",
        name="The Skeptic",
        description="Doubts NPC motives, looks for traps, assumes deception.",
        motivation="Avoid being fooled",
        risk_tolerance=20, curiosity=60, empathy=30, suspicion=100, creativity=50, patience=50,
        question_weights=_weights(80, 60, 70, 50, 70, 60, 40, 100),
        observation_focus=("traps", "lies", "hidden_agendas", "escape_routes"),
        action_preferences=("verify", "inspect", "retreat"),
        check_approach="calculate",
        combat_approach="tactical",
        npc_approach="suspicious",
    ),
}


def get_archetype(archetype_id: str) -> Archetype:
    """Look up a built-in archetype.

    Raises:
        ValueError: If the id is unknown
    """
    try:
        return ARCHETYPES[archetype_id]
    except KeyError:
        raise ValueError(
            f"Unknown archetype {archetype_id!r}; choose from {sorted(ARCHETYPES)}"
        ) from None


# =============================================================================
# Generated questions and actions
# =============================================================================


_HOOK_TEMPLATES = {
    "person": ("Who is {text}?", QuestionType.NPC_INFO),
    "place": ("What lies at {text}?", QuestionType.LOCATION_DETAIL),
    "thing": ("What is {text}?", QuestionType.ITEM_INFO),
    "event": ("What really happened with {text}?", QuestionType.BACKSTORY),
}


class ArchetypeModel:
    """Question and action generator for one archetype over one run."""

    def __init__(self, archetype: Archetype, rng: random.Random):
        self.archetype = archetype
        self.rng = rng
        self.raised: list[Critique] = []
        self.asked: dict[str, list[Question]] = {}
        self.attempted: dict[str, list[AttemptedAction]] = {}

    def _should_ask(self, question_type: QuestionType) -> bool:
        return self.rng.random() * 100 < self.archetype.weight(question_type)

    # -------------------------------------------------------------------------
    # Questions
    # -------------------------------------------------------------------------

    def generate_questions(self, scene: Scene, graph: ContentGraph, path: tuple[str, ...]) -> list[Question]:
        """Ranked questions this archetype raises in the scene."""
        questions = self._npc_questions(scene, graph)
        questions += self._environment_questions(scene)
        questions += self._hook_questions(scene)
        questions += self.archetype.specific_questions(scene, graph, path)
        # Stable sort: equal weights keep generation order
        return sorted(questions, key=lambda q: -self.archetype.weight(q.type))

    def _npc_questions(self, scene: Scene, graph: ContentGraph) -> list[Question]:
        questions = []
        for ref in scene.npcs:
            npc = graph.npc(ref.id)
            if self._should_ask(QuestionType.NPC_INFO):
                questions.append(Question(
                    QuestionType.NPC_INFO,
                    f"Who is {npc.name}? What do I know about them?",
                    scene.id, bool(npc.description), CritiqueKind.SHALLOW_NPC, npc.id,
                ))
            if self._should_ask(QuestionType.NPC_MOTIVATION):
                questions.append(Question(
                    QuestionType.NPC_MOTIVATION,
                    f"What does {npc.name} want? Why are they here?",
                    scene.id, bool(npc.motivation), CritiqueKind.SHALLOW_NPC, npc.id,
                ))
            if self._should_ask(QuestionType.BACKSTORY) and ref.role.lower() != "background":
                questions.append(Question(
                    QuestionType.BACKSTORY,
                    f"What's {npc.name}'s history? How did they end up here?",
                    scene.id, bool(npc.backstory), CritiqueKind.SHALLOW_NPC, npc.id,
                ))
        return questions

    def _environment_questions(self, scene: Scene) -> list[Question]:
        questions = []
        if self._should_ask(QuestionType.ENVIRONMENT):
            questions.append(Question(
                QuestionType.ENVIRONMENT, "What do I see, hear, and smell here?",
                scene.id, bool(scene.environment),
            ))
        if self._should_ask(QuestionType.LOCATION_DETAIL):
            place = scene.location or "this place"
            questions.append(Question(
                QuestionType.LOCATION_DETAIL, f"What is {place} like? Describe it in detail.",
                scene.id, bool(scene.location and (scene.environment or scene.narrative)),
            ))
        if self._should_ask(QuestionType.NEXT_STEPS) and not scene.is_ending:
            questions.append(Question(
                QuestionType.NEXT_STEPS, "What should I do next? Where can I go from here?",
                scene.id, any(e.label for e in scene.exits), CritiqueKind.UNCLEAR_DIRECTION,
            ))
        return questions

    def _hook_questions(self, scene: Scene) -> list[Question]:
        if self.archetype.curiosity < HOOK_CURIOSITY_THRESHOLD:
            return []
        questions = []
        for hook in scene.hooks:
            questions.append(self._hook_question(scene, hook))
        return questions

    def _hook_question(self, scene: Scene, hook: Hook) -> Question:
        template, question_type = _HOOK_TEMPLATES[hook.kind]
        return Question(question_type, template.format(text=hook.text), scene.id, False, CritiqueKind.QUESTION)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def generate_actions(self, scene: Scene, graph: ContentGraph, path: tuple[str, ...]) -> list[AttemptedAction]:
        """Ranked actions this archetype attempts, boundary-testing ones first."""
        corpus = _scene_corpus(scene)
        hostile = [ref for ref in scene.npcs if ref.hostile]
        actions = []
        for template in self.archetype.action_templates:
            if not template.applies(scene):
                continue
            target = (hostile or scene.npcs)[0] if scene.npcs else None
            text = template.text.format(npc=graph.npc(target.id).name if target else "an NPC")
            supported = any(k in corpus for k in template.keywords)
            if template.backtrack:
                supported = supported or any(e.target in path[:-1] for e in scene.exits)
            actions.append(AttemptedAction(text, scene.id, template.keywords, supported, template.boundary))
        return sorted(actions, key=lambda a: not a.boundary)

    # -------------------------------------------------------------------------
    # Critiques
    # -------------------------------------------------------------------------

    def critiques(self, scene: Scene, graph: ContentGraph, path: tuple[str, ...]) -> list[Critique]:
        """Generate questions and actions for a scene and turn gaps into critiques."""
        questions = self.generate_questions(scene, graph, path)
        actions = self.generate_actions(scene, graph, path)
        self.asked[scene.id] = questions
        self.attempted[scene.id] = actions

        critiques = []
        for question in questions:
            if not question.answered:
                critiques.append(Critique(
                    kind=question.unanswered_kind,
                    scene_id=scene.id,
                    text=question.text,
                    archetype=self.archetype.id,
                    subject=question.subject,
                    path=path,
                ))
        for action in actions:
            if not action.supported:
                critiques.append(Critique(
                    kind=CritiqueKind.UNHANDLED_ACTION,
                    scene_id=scene.id,
                    text=action.text,
                    archetype=self.archetype.id,
                    path=path,
                ))
        self.raised.extend(critiques)
        return critiques

    def blocker(self, scene: Scene, path: tuple[str, ...], reason: str) -> Critique:
        """Critique raised when the player is stuck."""
        critique = Critique(
            kind=CritiqueKind.BLOCKER,
            scene_id=scene.id,
            text=f"I can't find any way forward from {scene.display_name}: {reason}",
            archetype=self.archetype.id,
            path=path,
        )
        self.raised.append(critique)
        return critique


# =============================================================================
# Archetype report
# =============================================================================


@dataclass
class EmotionalBeat:
    scene_id: str
    tension: int
    satisfaction: int
    engagement: int

    def to_dict(self) -> dict:
        return {
            "scene_id": self.scene_id,
            "tension": self.tension,
            "satisfaction": self.satisfaction,
            "engagement": self.engagement,
        }


@dataclass
class ArchetypeReport:
    """What one archetype experienced over a run."""

    archetype: str
    successful_paths: list[str] = field(default_factory=list)
    failed_actions: list[str] = field(default_factory=list)
    unanswered_questions: list[str] = field(default_factory=list)
    emotional_arc: list[EmotionalBeat] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "archetype": self.archetype,
            "successful_paths": self.successful_paths,
            "failed_actions": self.failed_actions,
            "unanswered_questions": self.unanswered_questions,
            "emotional_arc": [beat.to_dict() for beat in self.emotional_arc],
        }


def _clamp(value: float) -> int:
    return int(max(0, min(100, round(value))))


def build_archetype_report(model: ArchetypeModel, scene_stats: dict[str, dict]) -> ArchetypeReport:
    """Summarize an archetype's run.

    Args:
        model: The archetype model after the run
        scene_stats: Per-scene counters keyed by scene id, with wounds,
            checks_attempted, checks_passed, and triggers_fired
    """
    archetype = model.archetype
    report = ArchetypeReport(archetype=archetype.id)
    for scene_id, questions in model.asked.items():
        actions = model.attempted.get(scene_id, [])
        stats = scene_stats.get(scene_id, {})
        answered = sum(1 for q in questions if q.answered)
        supported = [a for a in actions if a.supported]

        report.successful_paths.extend(f"{scene_id}: {a.text}" for a in supported)
        report.failed_actions.extend(f"{scene_id}: {a.text}" for a in actions if not a.supported)
        report.unanswered_questions.extend(f"{scene_id}: {q.text}" for q in questions if not q.answered)

        attempted = stats.get("checks_attempted", 0)
        failed = attempted - stats.get("checks_passed", 0)
        answer_ratio = answered / len(questions) if questions else 1.0
        pass_ratio = stats.get("checks_passed", 0) / attempted if attempted else 1.0
        tension = stats.get("wounds", 0) * 25 + failed * 15 + stats.get("triggers_fired", 0) * 5
        satisfaction = answer_ratio * 60 + pass_ratio * 40
        engagement = (len(questions) + len(actions)) * 8 + archetype.curiosity * 0.3
        report.emotional_arc.append(
            EmotionalBeat(scene_id, _clamp(tension), _clamp(satisfaction), _clamp(engagement))
        )
    return report
