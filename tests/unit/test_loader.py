"""Tests for adventure_sim.content.loader.

Tests cover:
- Building a ContentGraph from documents and from disk
- Narrative ordering, transitions, and distances to endings
- ContentError reporting for malformed and inconsistent content
"""

import json

import pytest

from adventure_sim.content.loader import ContentGraph, load_adventure, parse_adventure
from adventure_sim.errors import ContentError


class TestContentGraph:
    """Tests for a successfully loaded graph."""

    def test_scenes_in_narrative_order(self, linear_graph):
        """Test scenes are ordered by act, chapter, index."""
        assert linear_graph.scene_order == ("arrival", "gate", "sanctum")
        assert linear_graph.scene_number("sanctum") == 3

    def test_transitions_carry_guards(self, linear_graph):
        """Test edges carry the exit label and parsed guard."""
        assert linear_graph.successors("arrival") == ["gate"]
        edge = linear_graph.graph.edges["gate", "sanctum"]
        assert edge["guard"].referenced_flags == frozenset({"gate_open"})
        assert edge["label"] == "Through the gate to the Sanctum"

    def test_lookups(self, linear_graph):
        """Test start scene, endings, NPC and item lookups."""
        assert linear_graph.start_scene.id == "arrival"
        assert linear_graph.endings == ("sanctum",)
        assert linear_graph.npc("warden").name == "Warden Hale"
        assert linear_graph.item("brass_key").name == "Brass Key"
        assert linear_graph.flag_defaults() == {"gate_open": False}
        assert linear_graph.flag_domains() == {"gate_open": (False, True)}

    def test_distance_to_ending(self, linear_graph):
        """Test edges-to-nearest-ending ignores guards."""
        assert linear_graph.distance_to_ending("arrival") == 2
        assert linear_graph.distance_to_ending("sanctum") == 0

    def test_scenes_are_read_only(self, linear_graph):
        """Test the scene mapping cannot be mutated."""
        with pytest.raises(TypeError):
            linear_graph.scenes["extra"] = linear_graph.start_scene

    def test_guards_parsed_at_load(self, linear_graph):
        """Test every content guard is parsed once at load and looked up afterwards."""
        assert linear_graph.guard("gate_open") is linear_graph.guard("  gate_open ")
        assert linear_graph.guard(None) is linear_graph.guard("")
        assert linear_graph.guard(None).evaluate({})

    def test_unknown_guard_is_a_key_error(self, linear_graph):
        """Test expressions that never appeared in the content are not parsed on demand."""
        with pytest.raises(KeyError, match="gate_closed"):
            linear_graph.guard("gate_closed")

    def test_load_from_disk(self, write_adventure, linear_scenes, linear_fields):
        """Test load_adventure reads adventure.json and scenes/*.json."""
        path = write_adventure(linear_scenes, **linear_fields)
        graph = load_adventure(path)
        assert isinstance(graph, ContentGraph)
        assert graph.adventure_id == "test-adventure"
        assert len(graph.scenes) == 3


class TestContentErrors:
    """Tests for content that must fail at load time."""

    def test_missing_exit_target(self, make_graph):
        """Test an exit to an unknown scene is rejected."""
        with pytest.raises(ContentError, match="target scene does not exist"):
            make_graph([{"id": "a", "exits": [{"target": "nowhere"}]}])

    def test_guard_reads_undeclared_flag(self, make_graph):
        """Test guards may only read declared flags."""
        with pytest.raises(ContentError, match="undeclared flag 'secret'"):
            make_graph([
                {"id": "a", "exits": [{"target": "b", "guard": "secret"}]},
                {"id": "b", "type": "ending"},
            ])

    def test_guard_compares_against_unknown_value(self, make_graph):
        """Test enumerated flag comparisons must use declared values."""
        with pytest.raises(ContentError, match="'ajar' is not a value of flag 'door'"):
            make_graph(
                [
                    {"id": "a", "exits": [{"target": "b", "guard": "door == 'ajar'"}]},
                    {"id": "b", "type": "ending"},
                ],
                flags={"door": {"default": "shut", "values": ["shut", "open"]}},
            )

    def test_effect_writes_invalid_value(self, make_graph):
        """Test effects must write values from the flag's domain."""
        with pytest.raises(ContentError, match="not a valid value for flag 'lit'"):
            make_graph(
                [{"id": "a", "type": "ending", "triggers": [
                    {"id": "t", "label": "Light", "effects": {"set_flags": {"lit": "bright"}}}
                ]}],
                flags={"lit": False},
            )

    def test_unknown_npc_and_item(self, make_graph):
        """Test every problem is collected before raising."""
        with pytest.raises(ContentError) as exc_info:
            make_graph([{"id": "a", "type": "ending", "npcs": [{"id": "ghost"}], "items": ["relic"]}])
        problems = exc_info.value.problems
        assert len(problems) == 2
        assert any("unknown NPC 'ghost'" in p for p in problems)
        assert any("unknown item 'relic'" in p for p in problems)

    def test_invalid_guard_syntax(self, make_graph):
        """Test guard syntax errors surface as content errors."""
        with pytest.raises(ContentError, match="exit to 'b'"):
            make_graph([
                {"id": "a", "exits": [{"target": "b", "guard": "a and"}]},
                {"id": "b", "type": "ending"},
            ])

    def test_schema_violation(self, make_graph):
        """Test field-level validation failures are reported per document."""
        with pytest.raises(ContentError, match="a.json"):
            make_graph([{"id": "a", "challenges": [{"id": "c", "name": "C", "skill": "Tech", "difficulty": 99}]}])

    def test_unknown_start_scene(self):
        """Test start_scene must exist."""
        with pytest.raises(ContentError, match="start_scene 'missing'"):
            parse_adventure({"adventure_id": "x", "start_scene": "missing"}, {"a.json": {"id": "a"}})

    def test_missing_directory(self, tmp_path):
        """Test a missing adventure directory is a content error."""
        with pytest.raises(ContentError, match="does not exist"):
            load_adventure(tmp_path / "nope")

    def test_malformed_json(self, write_adventure, linear_scenes, linear_fields):
        """Test malformed JSON is reported with its location."""
        path = write_adventure(linear_scenes, **linear_fields)
        (path / "scenes" / "99-broken.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ContentError, match="Malformed JSON"):
            load_adventure(path)

    def test_scene_document_must_be_object(self, write_adventure, linear_scenes, linear_fields):
        """Test a scene document holding a JSON list is rejected."""
        path = write_adventure(linear_scenes, **linear_fields)
        (path / "scenes" / "99-list.json").write_text(json.dumps([1, 2]), encoding="utf-8")
        with pytest.raises(ContentError, match="must be a JSON object"):
            load_adventure(path)

    def test_document_not_utf8(self, write_adventure, linear_scenes, linear_fields):
        """Test a scene document with invalid UTF-8 bytes is a content error."""
        path = write_adventure(linear_scenes, **linear_fields)
        (path / "scenes" / "99-latin1.json").write_bytes(b'{"id": "s", "title": "\xff"}')
        with pytest.raises(ContentError, match="not valid UTF-8") as excinfo:
            load_adventure(path)
        assert excinfo.value.problems
