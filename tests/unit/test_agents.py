"""Tests for adventure_sim.agents player and GM behavior outside the run loop.

Tests cover:
- How each player mode engages NPCs
- Question sets per player mode, and question text
- Archetype players: NPC approach and proposed options
- NPC disposition and interaction counts in the tracker
- GM phases, transitions and adopting player proposals
- GM information lookups
"""

import random

import pytest

from adventure_sim.agents.archetypes import QuestionType, get_archetype
from adventure_sim.agents.base import Option, OptionKind, SceneView
from adventure_sim.agents.gm import GMAgent, GMPhase, ThoroughGM
from adventure_sim.agents.player import (
    ArchetypePlayer,
    PlayerAgent,
    RandomPlayer,
    ThoroughPlayer,
    create_player_policy,
)
from adventure_sim.engine.dice import DiceEngine
from adventure_sim.engine.tracker import GameStateTracker
from adventure_sim.models.config import PlayerBehavior
from adventure_sim.models.state import Interaction

C, X = Interaction.CONVERSE, Interaction.CONFRONT


@pytest.fixture
def square_graph(make_graph):
    """A market square with a thug, a sage the story needs, and a beggar."""
    return make_graph(
        [
            {
                "id": "square",
                "title": "Market Square",
                "location": "Market Square",
                "narrative": "Stalls crowd the square.",
                "npcs": [
                    {"id": "thug", "hostile": True},
                    {"id": "sage", "role": "mentor", "required": True},
                    {"id": "beggar", "role": "background"},
                ],
                "triggers": [
                    {"id": "stalls", "label": "Search the stalls"},
                    {"id": "alms", "label": "Help the beggar"},
                ],
                "exits": [
                    {"target": "archives", "label": "Search the archives"},
                    {"target": "infirmary", "label": "Help the wounded"},
                ],
            },
            {"id": "archives", "index": 1, "title": "Archives", "type": "ending"},
            {"id": "infirmary", "index": 2, "title": "Infirmary", "type": "ending"},
        ],
        npcs=[
            {"id": "thug", "name": "Knuckles", "description": "Scarred and bored."},
            {"id": "sage", "name": "Old Sage", "description": "Blind, sharp.", "motivation": "Find an heir."},
            {"id": "beggar", "name": "Beggar"},
        ],
    )


@pytest.fixture
def tracker(square_graph):
    tracker = GameStateTracker(square_graph)
    tracker.enter_scene("square")
    return tracker


@pytest.fixture
def view(square_graph, tracker):
    return SceneView(square_graph, tracker.state, {})


def _engagement(policy, view):
    return {ref.id: policy.interaction(view, ref) for ref in view.scene.npcs}


# =============================================================================
# Player modes
# =============================================================================


class TestPlayerInteractions:
    """Tests for which NPCs each player mode engages, and how."""

    @pytest.mark.parametrize(
        "behavior, expected",
        [
            (PlayerBehavior.CAUTIOUS, {"thug": None, "sage": C, "beggar": C}),
            (PlayerBehavior.AGGRESSIVE, {"thug": X, "sage": C, "beggar": C}),
            (PlayerBehavior.THOROUGH, {"thug": C, "sage": C, "beggar": C}),
            (PlayerBehavior.SPEEDRUN, {"thug": None, "sage": C, "beggar": None}),
            (PlayerBehavior.OPTIMAL, {"thug": C, "sage": C, "beggar": None}),
        ],
    )
    def test_mode_rules(self, view, behavior, expected):
        """Test each deterministic mode follows its own engagement rule."""
        policy = create_player_policy(behavior, random.Random(0))
        assert _engagement(policy, view) == expected

    def test_modes_diverge(self, view):
        """Test no two deterministic modes engage the square the same way."""
        patterns = [
            tuple(_engagement(create_player_policy(b, random.Random(0)), view).items())
            for b in PlayerBehavior
            if b != PlayerBehavior.RANDOM
        ]
        assert len(set(patterns)) == len(patterns)

    def test_random_engages_some_of_the_time(self, view):
        """Test the random player sometimes talks and sometimes walks past."""
        policy = RandomPlayer(random.Random(3))
        sage = view.scene.npcs[1]
        choices = {policy.interaction(view, sage) for _ in range(50)}
        assert choices == {C, None}


class TestPlayerQuestions:
    """Tests for the questions each player mode puts to the GM."""

    def test_thorough_asks_everything(self, view):
        """Test the thorough player asks about the NPC and the scene."""
        assert ThoroughPlayer().questions(view, ["sage"]) == [
            (QuestionType.NPC_INFO, "sage"),
            (QuestionType.NPC_MOTIVATION, "sage"),
            (QuestionType.BACKSTORY, "sage"),
            (QuestionType.ENVIRONMENT, None),
            (QuestionType.LOCATION_DETAIL, None),
            (QuestionType.NEXT_STEPS, None),
        ]

    def test_speedrunner_only_asks_the_way(self, view):
        """Test the speedrunner skips NPC questions."""
        policy = create_player_policy(PlayerBehavior.SPEEDRUN, random.Random(0))
        assert policy.questions(view, ["sage"]) == [(QuestionType.NEXT_STEPS, None)]

    def test_no_next_steps_at_an_ending(self, square_graph, tracker):
        """Test nobody asks where to go once the adventure is over."""
        tracker.enter_scene("archives")
        ending = SceneView(square_graph, tracker.state, {})
        assert (QuestionType.NEXT_STEPS, None) not in ThoroughPlayer().questions(ending, [])

    def test_question_text(self, view):
        """Test the agent phrases questions with NPC and place names."""
        agent = PlayerAgent(ThoroughPlayer(), DiceEngine(0), {})
        asked = agent.questions(view, ["sage"])
        assert asked[0] == (QuestionType.NPC_INFO, "Who is Old Sage?", "sage")
        assert (QuestionType.LOCATION_DETAIL, "What is Market Square like?", None) in asked


class TestArchetypePlayer:
    """Tests for archetype-driven NPC approaches and proposals."""

    @pytest.mark.parametrize(
        "archetype_id, expected",
        [
            ("chaos_agent", {"thug": X, "sage": C, "beggar": C}),
            ("detective", {"thug": None, "sage": C, "beggar": C}),
            ("empath", {"thug": C, "sage": C, "beggar": C}),
            ("speedrunner", {"thug": X, "sage": C, "beggar": None}),
        ],
    )
    def test_npc_approach(self, view, archetype_id, expected):
        """Test combat approach decides hostile NPCs and patience decides the rest."""
        assert _engagement(ArchetypePlayer(get_archetype(archetype_id)), view) == expected

    @pytest.mark.parametrize(
        "archetype_id, target",
        [("detective", "archives"), ("empath", "infirmary"), ("explorer", "archives")],
    )
    def test_proposes_matching_exit(self, view, archetype_id, target):
        """Test archetypes propose the exit whose label matches what they want to do."""
        exits = [Option.for_exit(e) for e in view.scene.exits]
        assert ArchetypePlayer(get_archetype(archetype_id)).propose(view, exits).ref == target

    def test_proposes_matching_trigger(self, view):
        """Test proposals work on triggers too."""
        triggers = [Option.for_trigger(t) for t in view.scene.triggers]
        assert ArchetypePlayer(get_archetype("empath")).propose(view, triggers).ref == "alms"
        assert ArchetypePlayer(get_archetype("detective")).propose(view, triggers).ref == "stalls"

    def test_no_match_no_proposal(self, view):
        """Test an archetype with nothing it wants to do leaves the GM in charge."""
        exits = [Option.for_exit(e) for e in view.scene.exits]
        assert ArchetypePlayer(get_archetype("speedrunner")).propose(view, exits) is None
        assert ThoroughPlayer().propose(view, exits) is None


# =============================================================================
# Tracker
# =============================================================================


class TestNPCInteractions:
    """Tests for GameStateTracker.interact."""

    def test_converse_warms_confront_cools(self, tracker):
        """Test each interaction shifts disposition and counts once."""
        tracker.interact("sage", Interaction.CONVERSE)
        entry = tracker.interact("thug", Interaction.CONFRONT)
        assert tracker.state.npc_dispositions == {"thug": -20, "sage": 5, "beggar": 0}
        assert tracker.state.npc_interactions == {"thug": 1, "sage": 1, "beggar": 0}
        assert entry.action == "interact:thug"
        assert entry.delta == {"interaction": "confront", "disposition": {"from": 0, "to": -20}, "count": 1}

    def test_disposition_clamped(self, tracker):
        """Test disposition stays within -100..100 while the count keeps growing."""
        for _ in range(6):
            tracker.interact("thug", Interaction.CONFRONT)
        for _ in range(21):
            tracker.interact("sage", Interaction.CONVERSE)
        assert tracker.state.npc_dispositions["thug"] == -100
        assert tracker.state.npc_dispositions["sage"] == 100
        assert tracker.state.npc_interactions["thug"] == 6
        assert tracker.log[-1].delta["disposition"] == {"from": 100, "to": 100}

    def test_snapshot_carries_npc_counters(self, tracker):
        """Test the snapshot exposes dispositions and interaction counts."""
        tracker.interact("sage", Interaction.CONVERSE)
        snapshot = tracker.snapshot()
        assert dict(snapshot.npc_dispositions)["sage"] == 5
        assert snapshot.to_dict()["npc_interactions"] == {"beggar": 0, "sage": 1, "thug": 0}


# =============================================================================
# GM agent
# =============================================================================


class TestGMAgent:
    """Tests for GM phases and decisions."""

    def test_phase_cycle(self, view):
        """Test a scene runs selecting -> resolving -> advancing -> selecting."""
        gm = GMAgent(ThoroughGM())
        assert gm.phase == GMPhase.SELECTING_SCENE
        gm.begin_scene()
        assert gm.phase == GMPhase.RESOLVING
        gm.decide(view, [Option.for_exit(view.scene.exits[0])])
        assert gm.phase == GMPhase.ADVANCING
        gm.select_scene()
        assert gm.transitions == [
            (GMPhase.SELECTING_SCENE, GMPhase.RESOLVING),
            (GMPhase.RESOLVING, GMPhase.ADVANCING),
            (GMPhase.ADVANCING, GMPhase.SELECTING_SCENE),
        ]

    def test_content_keeps_resolving(self, view):
        """Test firing a trigger leaves the GM resolving, with no repeated transitions."""
        gm = GMAgent(ThoroughGM())
        gm.begin_scene()
        choice = gm.decide(view, [Option.for_trigger(t) for t in view.scene.triggers])
        assert choice.kind == OptionKind.TRIGGER
        assert gm.phase == GMPhase.RESOLVING
        assert gm.transitions == [(GMPhase.SELECTING_SCENE, GMPhase.RESOLVING)]

    def test_no_options(self, view):
        """Test deciding with nothing to choose from is an error."""
        with pytest.raises(ValueError, match="no options"):
            GMAgent(ThoroughGM()).decide(view, [])

    def test_adopts_same_kind_proposal(self, view):
        """Test the player's pick wins between two triggers."""
        triggers = [Option.for_trigger(t) for t in view.scene.triggers]
        assert GMAgent(ThoroughGM()).decide(view, triggers, proposal=triggers[1]).ref == "alms"

    def test_ignores_other_kind_proposal(self, view):
        """Test the GM keeps the pacing: an exit proposal does not skip content."""
        triggers = [Option.for_trigger(t) for t in view.scene.triggers]
        exit_ = Option.for_exit(view.scene.exits[1])
        gm = GMAgent(ThoroughGM())
        assert gm.decide(view, triggers + [exit_], proposal=exit_).ref == "stalls"
        assert gm.phase == GMPhase.RESOLVING

    def test_ignores_unoffered_proposal(self, view):
        """Test a proposal that is not among the options is dropped."""
        triggers = [Option.for_trigger(t) for t in view.scene.triggers]
        stale = Option(OptionKind.TRIGGER, "gone", "Long gone")
        assert GMAgent(ThoroughGM()).decide(view, triggers, proposal=stale).ref == "stalls"


class TestLookups:
    """Tests for GMAgent.look_up."""

    def test_npc_field_found(self, view):
        """Test an NPC question is answered from that NPC's entry."""
        lookup = GMAgent(ThoroughGM()).look_up(view, QuestionType.NPC_MOTIVATION, "What does Old Sage want?", "sage")
        assert lookup.found
        assert lookup.found_in == "npc:sage.motivation"
        assert lookup.search_path == ["npc:sage.motivation"]
        assert lookup.scene_id == "square"

    def test_npc_field_missing(self, view):
        """Test an NPC with no description leaves the GM empty-handed."""
        lookup = GMAgent(ThoroughGM()).look_up(view, QuestionType.NPC_INFO, "Who is Beggar?", "beggar")
        assert not lookup.found
        assert lookup.found_in is None
        assert lookup.severity == "critical"
        assert lookup.to_dict()["search_path"] == ["npc:beggar.description"]

    def test_scene_sections_searched_in_order(self, view):
        """Test next steps come from trigger labels before exits."""
        lookup = GMAgent(ThoroughGM()).look_up(view, QuestionType.NEXT_STEPS, "What should I do next?")
        assert lookup.found_in == "scene.triggers"
        assert lookup.search_path == ["scene.triggers"]

    def test_missing_environment(self, view):
        """Test a scene with no sensory detail fails environment questions."""
        lookup = GMAgent(ThoroughGM()).look_up(view, QuestionType.ENVIRONMENT, "What do I see?")
        assert not lookup.found
        assert lookup.severity == "warning"

    def test_location_falls_back_to_narrative(self, view):
        """Test location questions search the environment, then the narrative."""
        lookup = GMAgent(ThoroughGM()).look_up(view, QuestionType.LOCATION_DETAIL, "What is Market Square like?")
        assert lookup.search_path == ["scene.environment", "scene.narrative"]
        assert lookup.found_in == "scene.narrative"
