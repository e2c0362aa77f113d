"""Tests for adventure_sim.analysis.coherence.

Tests cover:
- Exact and fuzzy text matching
- Breadcrumb strength per scene and overall
- NPC and item continuity
- Information gaps, pacing and the combined coherence score
"""

import pytest

from adventure_sim.analysis.coherence import (
    BreadcrumbStrength,
    TextMatcher,
    analyze_coherence,
    information_gaps,
    item_continuity_breaks,
    npc_continuity_breaks,
    overall_strength,
    pace_score,
    score_breadcrumb,
)
from adventure_sim.content.schemas import Effect
from adventure_sim.engine.tracker import GameStateTracker
from adventure_sim.models.config import BreadcrumbMatching
from adventure_sim.models.issues import IssueType, Severity
from adventure_sim.models.state import NPCStatus


class TestTextMatcher:
    """Tests for TextMatcher."""

    def test_exact_is_case_insensitive_substring(self):
        """Test exact mode matches substrings regardless of case."""
        matcher = TextMatcher()
        assert matcher.contains("Head to the OLD GATE now", "Old Gate")
        assert not matcher.contains("Head to the Olde Gate", "Old Gate")

    def test_fuzzy_tolerates_small_differences(self):
        """Test fuzzy mode matches near-identical words."""
        matcher = TextMatcher(BreadcrumbMatching.FUZZY, 0.8)
        assert matcher.contains("Head to the Olde Gate", "Old Gate")
        assert not matcher.contains("Head to the harbor", "Old Gate")

    def test_empty_inputs_never_match(self):
        """Test empty text or phrase never matches."""
        matcher = TextMatcher(BreadcrumbMatching.FUZZY)
        assert not matcher.contains("", "Gate")
        assert not matcher.contains("Gate", "")


def _two_scene(make_graph, **first):
    scene = {"id": "start", "title": "Start", "exits": [{"target": "tower"}], **first}
    return make_graph([scene, {"id": "tower", "index": 1, "title": "Bell Tower", "location": "North Tower",
                               "type": "ending"}])


class TestBreadcrumbs:
    """Tests for breadcrumb scoring."""

    def test_direction_phrase_with_destination_is_strong(self, make_graph):
        """Test an explicit direction to a named destination is strong."""
        graph = _two_scene(make_graph, narrative="The bells stop. Head to the North Tower.")
        assert score_breadcrumb(graph, graph.scene("start"), TextMatcher()) == BreadcrumbStrength.STRONG

    def test_exit_label_naming_destination_is_strong(self, make_graph):
        """Test an exit label that names the destination is strong."""
        graph = make_graph([
            {"id": "start", "exits": [{"target": "tower", "label": "Climb the Bell Tower"}]},
            {"id": "tower", "index": 1, "title": "Bell Tower", "type": "ending"},
        ])
        assert score_breadcrumb(graph, graph.scene("start"), TextMatcher()) == BreadcrumbStrength.STRONG

    def test_mention_without_direction_is_medium(self, make_graph):
        """Test a plain mention in narrative or hooks is medium."""
        graph = _two_scene(make_graph, narrative="The North Tower looms over the square.")
        assert score_breadcrumb(graph, graph.scene("start"), TextMatcher()) == BreadcrumbStrength.MEDIUM
        graph = _two_scene(make_graph, hooks=["the bell tower's silence"])
        assert score_breadcrumb(graph, graph.scene("start"), TextMatcher()) == BreadcrumbStrength.MEDIUM

    def test_environment_only_is_weak(self, make_graph):
        """Test a mention only in the environment description is weak."""
        graph = _two_scene(make_graph, environment="Wind whistles from the North Tower.")
        assert score_breadcrumb(graph, graph.scene("start"), TextMatcher()) == BreadcrumbStrength.WEAK

    def test_nothing_is_none(self, make_graph):
        """Test no hint at all scores none."""
        graph = _two_scene(make_graph, narrative="It is quiet.")
        assert score_breadcrumb(graph, graph.scene("start"), TextMatcher()) == BreadcrumbStrength.NONE

    @pytest.mark.parametrize(
        "strengths,expected",
        [
            ([], BreadcrumbStrength.NONE),
            ([BreadcrumbStrength.STRONG] * 8 + [BreadcrumbStrength.NONE] * 2, BreadcrumbStrength.STRONG),
            ([BreadcrumbStrength.STRONG, BreadcrumbStrength.MEDIUM, BreadcrumbStrength.NONE], BreadcrumbStrength.MEDIUM),
            ([BreadcrumbStrength.MEDIUM] + [BreadcrumbStrength.NONE] * 4, BreadcrumbStrength.WEAK),
            ([BreadcrumbStrength.WEAK], BreadcrumbStrength.WEAK),
            ([BreadcrumbStrength.NONE] * 3, BreadcrumbStrength.NONE),
        ],
    )
    def test_overall_strength(self, strengths, expected):
        """Test the share of strong and medium scenes sets the overall band."""
        assert overall_strength(strengths) == expected


class TestContinuity:
    """Tests for NPC and item continuity."""

    def test_npc_back_from_defeat(self, linear_graph):
        """Test an NPC defeated in one scene and active in a later one is flagged."""
        tracker = GameStateTracker(linear_graph)
        tracker.enter_scene("arrival")
        tracker.apply_effect(Effect(npc_states={"warden": NPCStatus.DEFEATED}), "gm", "ambush")
        tracker.enter_scene("gate")
        issues = npc_continuity_breaks(linear_graph, tracker.log)
        assert len(issues) == 1
        assert issues[0].type == IssueType.NPC_CONTINUITY_BREAK
        assert issues[0].scenes == ("arrival", "gate")
        assert "Warden Hale" in issues[0].description

    def test_explained_recovery_is_fine(self, linear_graph):
        """Test a recovery effect before the return avoids the finding."""
        tracker = GameStateTracker(linear_graph)
        tracker.enter_scene("arrival")
        tracker.apply_effect(Effect(npc_states={"warden": NPCStatus.DEFEATED}), "gm", "ambush")
        tracker.apply_effect(Effect(recover=("warden",)), "gm", "bandage")
        tracker.enter_scene("gate")
        assert npc_continuity_breaks(linear_graph, tracker.log) == []

    def test_item_required_but_never_granted_earlier(self, make_graph):
        """Test a challenge needing an item only granted later is flagged."""
        graph = make_graph(
            [
                {
                    "id": "door",
                    "challenges": [{"id": "unlock", "name": "Unlock", "skill": "Tech", "difficulty": 5,
                                    "requires_item": "key"}],
                    "exits": [{"target": "room"}],
                },
                {"id": "room", "index": 1, "items": ["key"], "type": "ending"},
            ],
            items=[{"id": "key", "name": "Iron Key"}],
        )
        issues = item_continuity_breaks(graph, ["door", "room"])
        assert len(issues) == 1
        assert "Iron Key" in issues[0].description

    def test_item_granted_upstream_is_fine(self, make_graph, linear_scenes, linear_fields):
        """Test an item granted in an earlier scene satisfies the requirement."""
        linear_scenes[1]["challenges"] = [
            {"id": "unlock", "name": "Unlock", "skill": "Tech", "difficulty": 5, "requires_item": "brass_key"}
        ]
        graph = make_graph(linear_scenes, **linear_fields)
        assert item_continuity_breaks(graph, ["arrival", "gate"]) == []


class TestSupplementaryMeasures:
    """Tests for information gaps, pacing and the combined score."""

    def test_information_gaps(self, make_graph):
        """Test hidden checks without description and silent irreversible triggers."""
        graph = make_graph([{
            "id": "crypt",
            "type": "ending",
            "challenges": [{"id": "notice", "name": "Notice", "skill": "Perception", "difficulty": 12,
                            "type": "hidden"}],
            "triggers": [{"id": "seal", "label": "Seal the crypt", "irreversible": True}],
        }])
        gaps = information_gaps(graph)
        assert len(gaps) == 2
        assert all(g.severity == Severity.INFO for g in gaps)

    def test_pace_score(self, linear_graph):
        """Test pacing is 100 for the ideal mix and lower otherwise."""
        scenes = [linear_graph.scene(sid) for sid in linear_graph.scene_order]
        assert 0 <= pace_score(scenes) < 100
        assert pace_score([]) == 50

    def test_analyze_coherence(self, linear_graph):
        """Test a path with strong breadcrumbs and no breaks scores well."""
        tracker = GameStateTracker(linear_graph)
        for scene_id in ("arrival", "gate", "sanctum"):
            tracker.enter_scene(scene_id)
        report = analyze_coherence(linear_graph, ["arrival", "gate", "sanctum"], tracker.log)
        assert report.breadcrumbs == {"arrival": BreadcrumbStrength.STRONG, "gate": BreadcrumbStrength.STRONG}
        assert report.breadcrumb_strength == BreadcrumbStrength.STRONG
        assert report.issues == []
        assert report.score == round((100 + report.pace_score) / 2)
        assert report.to_dict()["breadcrumbs"] == {"arrival": "strong", "gate": "strong"}

    def test_weak_breadcrumb_warning(self, make_graph):
        """Test scenes with no hint produce a weak_breadcrumb warning."""
        graph = _two_scene(make_graph, narrative="It is quiet.")
        report = analyze_coherence(graph, ["start", "tower"], [])
        assert [i.type for i in report.issues] == [IssueType.WEAK_BREADCRUMB]
        assert report.issues[0].scenes == ("start",)
