"""Shared pytest fixtures and markers for all tests."""

import json
from pathlib import Path

import pytest

from adventure_sim.content.loader import ADVENTURE_FILE, SCENES_DIR, ContentGraph, parse_adventure


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def adventure_document(scenes: list[dict], adventure_id: str = "test-adventure", **fields) -> dict:
    """Adventure-level document starting at the first scene."""
    return {
        "adventure_id": adventure_id,
        "title": adventure_id.replace("-", " ").title(),
        "start_scene": scenes[0]["id"],
        **fields,
    }


@pytest.fixture
def make_graph():
    """Factory building a ContentGraph from scene dicts without touching disk."""

    def _make(scenes: list[dict], **fields) -> ContentGraph:
        data = adventure_document(scenes, **fields)
        return parse_adventure(data, {f"{scene['id']}.json": scene for scene in scenes})

    return _make


@pytest.fixture
def write_adventure(tmp_path):
    """Factory writing an adventure directory under tmp_path/adventures."""

    def _write(scenes: list[dict], adventure_id: str = "test-adventure", **fields) -> Path:
        root = tmp_path / "adventures" / adventure_id
        (root / SCENES_DIR).mkdir(parents=True)
        with open(root / ADVENTURE_FILE, "w", encoding="utf-8") as f:
            json.dump(adventure_document(scenes, adventure_id, **fields), f)
        for i, scene in enumerate(scenes):
            with open(root / SCENES_DIR / f"{i:02d}-{scene['id']}.json", "w", encoding="utf-8") as f:
                json.dump(scene, f)
        return root

    return _write


# =============================================================================
# Canned adventures
# =============================================================================


@pytest.fixture
def linear_scenes():
    """Docks -> Old Gate (flag-gated) -> Sanctum ending, with clear breadcrumbs."""
    return [
        {
            "id": "arrival",
            "index": 1,
            "title": "Rainy Docks",
            "location": "Docks",
            "narrative": "Rain hammers the docks. Head to the Old Gate, where the warden keeps watch.",
            "environment": "Salt, diesel and gull cries.",
            "items": ["brass_key"],
            "exits": [{"target": "gate", "label": "Walk to the Old Gate"}],
        },
        {
            "id": "gate",
            "index": 2,
            "title": "Old Gate",
            "location": "Old Gate",
            "narrative": "The warden eyes you. Beyond him the path leads to the Sanctum.",
            "environment": "Iron bars slick with rain.",
            "npcs": [{"id": "warden", "role": "guard"}],
            "triggers": [
                {
                    "id": "open_gate",
                    "label": "The warden unbars the gate",
                    "text": "He lifts the bar with a grunt.",
                    "effects": {"set_flags": {"gate_open": True}},
                }
            ],
            "exits": [{"target": "sanctum", "guard": "gate_open", "label": "Through the gate to the Sanctum"}],
        },
        {
            "id": "sanctum",
            "index": 3,
            "title": "Sanctum",
            "location": "Sanctum",
            "type": "ending",
            "narrative": "Candles burn in every alcove.",
        },
    ]


@pytest.fixture
def linear_fields():
    """Catalog entries matching linear_scenes."""
    return {
        "flags": {"gate_open": False},
        "npcs": [
            {
                "id": "warden",
                "name": "Warden Hale",
                "description": "A tired guard in an oilskin coat.",
                "motivation": "Keep the gate shut after dark.",
                "backstory": "Twenty years on the docks.",
            }
        ],
        "items": [{"id": "brass_key", "name": "Brass Key"}],
    }


@pytest.fixture
def linear_graph(make_graph, linear_scenes, linear_fields):
    return make_graph(linear_scenes, **linear_fields)


@pytest.fixture
def vault_scenes():
    """A single DC 20 check is the only way out of the vault."""
    return [
        {
            "id": "vault",
            "title": "Vault",
            "location": "Vault",
            "narrative": "Crack the lock, then make your way to the Loading Bay.",
            "challenges": [
                {
                    "id": "crack",
                    "name": "Crack the vault lock",
                    "skill": "Tech",
                    "difficulty": 20,
                    "success": {"set_flags": {"vault_open": True}},
                }
            ],
            "exits": [{"target": "escape", "guard": "vault_open", "label": "Out to the Loading Bay"}],
        },
        {"id": "escape", "index": 1, "title": "Loading Bay", "location": "Loading Bay", "type": "ending"},
    ]


@pytest.fixture
def vault_graph(make_graph, vault_scenes):
    return make_graph(vault_scenes, flags={"vault_open": False})


@pytest.fixture
def circular_scenes():
    """The gate out of A needs a flag that is only set behind the gate, in B."""
    return [
        {
            "id": "a",
            "title": "Antechamber",
            "exits": [{"target": "b", "guard": "flag_x", "label": "Into the Bell Room"}],
        },
        {
            "id": "b",
            "index": 1,
            "title": "Bell Room",
            "triggers": [{"id": "ring", "label": "Ring the bell", "effects": {"set_flags": {"flag_x": True}}}],
            "exits": [{"target": "c", "label": "Up to the Chapel"}],
        },
        {"id": "c", "index": 2, "title": "Chapel", "type": "ending"},
    ]


@pytest.fixture
def circular_graph(make_graph, circular_scenes):
    return make_graph(circular_scenes, flags={"flag_x": False})


@pytest.fixture
def benefactor_scenes():
    """Five scenes in a row; the hidden benefactor is named in scene_5."""
    scenes = []
    for n in range(1, 6):
        scene = {
            "id": f"scene_{n}",
            "index": n,
            "title": f"Chapter {n}",
            "location": f"Station {n}",
            "narrative": f"Head to Station {n + 1} before the tide turns.",
            "environment": "Fog over the water.",
        }
        if n < 5:
            scene["exits"] = [{"target": f"scene_{n + 1}", "label": f"On to Station {n + 1}"}]
        else:
            scene["type"] = "ending"
            scene["narrative"] = "The harbormaster steps out of the fog."
        scenes.append(scene)
    scenes[0]["hooks"] = [{"text": "the hidden benefactor", "kind": "person"}]
    return scenes


@pytest.fixture
def benefactor_fields():
    return {
        "mysteries": [
            {
                "id": "benefactor",
                "question": "Who is the hidden benefactor?",
                "answer": "The harbormaster",
                "reveal_scene": "scene_5",
                "patterns": ["hidden benefactor"],
            }
        ]
    }
