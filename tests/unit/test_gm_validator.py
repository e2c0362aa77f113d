"""Tests for adventure_sim.analysis.gm_validator.

Tests cover:
- Authored mystery matching: delayed reveal, false positive, red herring,
  intentional mystery
- NPC secrets
- Restrained tone and themes
- Structural and fallback classifications
- Heuristic matching
- Idempotence
"""

import pytest

from adventure_sim.analysis.gm_validator import GMValidator
from adventure_sim.models.issues import Confidence, Critique, CritiqueKind, ValidationStatus


@pytest.fixture
def validator(make_graph):
    graph = make_graph(
        [
            {"id": "s1", "title": "Pier", "exits": [{"target": "s2"}], "npcs": [{"id": "warden"}]},
            {"id": "s2", "index": 1, "title": "Lighthouse", "exits": [{"target": "s3"}]},
            {"id": "s3", "index": 2, "title": "Harbor Office", "type": "ending"},
        ],
        npcs=[
            {"id": "warden", "name": "Warden Hale", "secret": "Smuggles lamp oil"},
            {"id": "clerk", "name": "Clerk Amsel"},
        ],
        mysteries=[
            {
                "id": "benefactor",
                "question": "Who is the secret benefactor?",
                "answer": "The harbormaster",
                "reveal_scene": "s3",
                "patterns": ["benefactor"],
            },
            {"id": "ghost", "question": "Is the lighthouse haunted?", "patterns": ["ghost"], "red_herring": True},
            {"id": "origin", "question": "Where did the lantern come from?", "patterns": ["lantern origin"]},
        ],
    )
    return GMValidator(graph)


def _critique(text, kind=CritiqueKind.QUESTION, path=("s1",), subject=None):
    return Critique(kind=kind, scene_id=path[-1], text=text, archetype="detective", subject=subject, path=path)


class TestAuthoredMysteries:
    """Tests for critiques matching authored mystery patterns."""

    def test_delayed_reveal(self, validator):
        """Test a mystery revealed in a later scene is a delayed reveal."""
        result = validator.validate(_critique("Who is the benefactor?"))
        assert result.validation.status == ValidationStatus.DELAYED_REVEAL
        assert result.validation.reveal_scene == "s3"
        assert result.validation.mystery_id == "benefactor"
        assert result.validation.confidence == Confidence.AUTHORED
        assert "s3" in result.validation.justification

    def test_false_positive_when_reveal_on_path(self, validator):
        """Test a mystery already revealed on the path is a false positive."""
        result = validator.validate(_critique("Who is the benefactor?", path=("s1", "s2", "s3")))
        assert result.validation.status == ValidationStatus.FALSE_POSITIVE

    def test_red_herring(self, validator):
        """Test red herring mysteries are reported as such."""
        result = validator.validate(_critique("Is that a GHOST in the window?"))
        assert result.validation.status == ValidationStatus.RED_HERRING

    def test_never_revealed(self, validator):
        """Test a mystery with no reveal scene is intentional."""
        result = validator.validate(_critique("What is the lantern origin?", CritiqueKind.MISSING_CONTENT))
        assert result.validation.status == ValidationStatus.INTENTIONAL_MYSTERY

    def test_pattern_beats_structural_kind(self, validator):
        """Test authored knowledge is checked before the critique kind."""
        result = validator.validate(_critique("Nothing explains the benefactor", CritiqueKind.LOGIC_GAP))
        assert result.validation.status == ValidationStatus.DELAYED_REVEAL


class TestOtherRules:
    """Tests for secrets, structural kinds, heuristics and fallbacks."""

    def test_npc_secret_is_intentional(self, validator):
        """Test questions about an NPC with a secret are intentional mysteries."""
        result = validator.validate(
            _critique("What does Warden Hale want?", CritiqueKind.SHALLOW_NPC, subject="warden")
        )
        assert result.validation.status == ValidationStatus.INTENTIONAL_MYSTERY
        assert result.validation.confidence == Confidence.AUTHORED

    def test_npc_without_secret_falls_through(self, validator):
        """Test an NPC without a secret does not explain the critique."""
        result = validator.validate(
            _critique("What does Clerk Amsel want?", CritiqueKind.SHALLOW_NPC, subject="clerk")
        )
        assert result.validation.status == ValidationStatus.GM_DISCRETION

    @pytest.mark.parametrize(
        "kind", [CritiqueKind.BLOCKER, CritiqueKind.LOGIC_GAP, CritiqueKind.UNCLEAR_DIRECTION]
    )
    def test_structural_kinds_are_valid_issues(self, validator, kind):
        """Test blockers, logic gaps and unclear direction are actionable."""
        result = validator.validate(_critique("I can't find any way forward", kind))
        assert result.validation.status == ValidationStatus.VALID_ISSUE
        assert result.validation.is_actionable

    def test_heuristic_match(self, validator):
        """Test enough shared terms with a mystery question match heuristically."""
        result = validator.validate(
            _critique("Where did this lantern come from originally?", CritiqueKind.MISSING_CONTENT)
        )
        assert result.validation.status == ValidationStatus.INTENTIONAL_MYSTERY
        assert result.validation.confidence == Confidence.HEURISTIC
        assert result.validation.mystery_id == "origin"

    def test_unhandled_action_is_player_choice(self, validator):
        """Test unsupported actions are left to the players."""
        result = validator.validate(_critique("Attempt to betray companion", CritiqueKind.UNHANDLED_ACTION))
        assert result.validation.status == ValidationStatus.PLAYER_CHOICE

    def test_everything_else_is_gm_discretion(self, validator):
        """Test the fallback classification."""
        result = validator.validate(_critique("What do I smell here?", CritiqueKind.MISSING_CONTENT))
        assert result.validation.status == ValidationStatus.GM_DISCRETION
        assert not result.validation.is_actionable


class TestIdempotence:
    """Tests for repeated validation."""

    def test_revalidating_keeps_status(self, validator):
        """Test validating an already-validated critique gives the same result."""
        critiques = [
            _critique("Who is the benefactor?"),
            _critique("I can't find any way forward", CritiqueKind.BLOCKER),
            _critique("Attempt to betray companion", CritiqueKind.UNHANDLED_ACTION),
        ]
        first = validator.validate_all(critiques)
        second = [validator.validate(vc) for vc in first]
        assert first == second


class TestRestrainedTone:
    """Tests for emotional critiques under a deliberately restrained tone."""

    SCENES = [
        {"id": "s1", "title": "Morgue", "exits": [{"target": "s2"}]},
        {"id": "s2", "index": 1, "title": "Graveside", "type": "ending"},
    ]

    @pytest.mark.parametrize(
        "fields, named",
        [
            ({"tone": "Rain-soaked Noir"}, "Rain-soaked Noir tone"),
            ({"tone": "quietly BLEAK"}, "quietly BLEAK tone"),
            ({"themes": ["revenge", "Grief"]}, "Grief theme"),
        ],
    )
    def test_emotional_gap_is_gm_discretion(self, make_graph, fields, named):
        """Test a restrained tone or grief theme explains missing emotional beats."""
        validator = GMValidator(make_graph(self.SCENES, **fields))
        result = validator.validate(_critique("Why does nobody mourn here?", CritiqueKind.EMOTIONAL_GAP))
        assert result.validation.status == ValidationStatus.GM_DISCRETION
        assert result.validation.confidence == Confidence.AUTHORED
        assert result.validation.justification == f"The {named} may intentionally limit emotional exposition"

    def test_shallow_npc_in_noir(self, make_graph):
        """Test flat NPCs are accepted in a noir adventure."""
        validator = GMValidator(make_graph(self.SCENES, tone="noir"))
        result = validator.validate(_critique("The coroner has no personality", CritiqueKind.SHALLOW_NPC))
        assert "noir tone" in result.validation.justification

    def test_other_tones_fall_through(self, make_graph):
        """Test an upbeat tone gives no cover for emotional gaps."""
        validator = GMValidator(make_graph(self.SCENES, tone="whimsical", themes=["friendship"]))
        result = validator.validate(_critique("Why does nobody mourn here?", CritiqueKind.EMOTIONAL_GAP))
        assert result.validation.confidence == Confidence.STRUCTURAL
        assert result.validation.justification == "The GM can improvise this detail at the table"

    def test_tone_does_not_excuse_blockers(self, make_graph):
        """Test structural problems stay actionable whatever the tone."""
        validator = GMValidator(make_graph(self.SCENES, tone="noir"))
        result = validator.validate(_critique("I can't find any way forward", CritiqueKind.BLOCKER))
        assert result.validation.status == ValidationStatus.VALID_ISSUE
