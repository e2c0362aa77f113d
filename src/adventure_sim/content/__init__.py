"""Adventure content: schemas, guard expressions, and the graph loader.

Usage:
    from adventure_sim.content import load_adventure

    graph = load_adventure("adventures/neon-requiem")
    for scene_id in graph.scene_order:
        print(graph.scene(scene_id).title)
"""

from adventure_sim.content.guards import Guard, GuardSyntaxError, parse_guard
from adventure_sim.content.loader import ContentGraph, load_adventure, parse_adventure
from adventure_sim.content.schemas import (
    AdventureDocument,
    Challenge,
    ChallengeType,
    Effect,
    Exit,
    FlagDecl,
    Hook,
    ItemDef,
    LootEntry,
    Mystery,
    NPCDef,
    Scene,
    SceneNPC,
    SceneType,
    Trigger,
)

__all__ = [
    "AdventureDocument",
    "Challenge",
    "ChallengeType",
    "ContentGraph",
    "Effect",
    "Exit",
    "FlagDecl",
    "Guard",
    "GuardSyntaxError",
    "Hook",
    "ItemDef",
    "LootEntry",
    "Mystery",
    "NPCDef",
    "Scene",
    "SceneNPC",
    "SceneType",
    "Trigger",
    "load_adventure",
    "parse_adventure",
    "parse_guard",
]
