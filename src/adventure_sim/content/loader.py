"""Content graph loader.

Parses an adventure directory into an immutable ContentGraph. Every
cross-reference is resolved here so that malformed content fails at load
time, never mid-simulation.

Usage:
    from adventure_sim.content import load_adventure

    graph = load_adventure("adventures/neon-requiem")
    graph.start_scene.title
    graph.successors("arrival")
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

import networkx as nx
from pydantic import ValidationError

from adventure_sim.content.guards import Guard, GuardSyntaxError
from adventure_sim.content.schemas import (
    AdventureDocument,
    Effect,
    ItemDef,
    Mystery,
    NPCDef,
    Scene,
)
from adventure_sim.errors import ContentError
from adventure_sim.models.state import FlagValue

logger = logging.getLogger(__name__)

ADVENTURE_FILE = "adventure.json"
SCENES_DIR = "scenes"


class ContentGraph:
    """Immutable, fully resolved adventure content.

    Scenes are kept in narrative order (act, chapter, index, id). The scene
    transition graph is a networkx DiGraph whose edges carry the exit label
    and parsed guard.
    """

    def __init__(self, adventure: AdventureDocument, scenes: Iterable[Scene], guards: Mapping[str, Guard]):
        ordered = sorted(scenes, key=lambda s: s.order_key)
        self.adventure = adventure
        self.scenes: Mapping[str, Scene] = MappingProxyType({s.id: s for s in ordered})
        self.scene_order: tuple[str, ...] = tuple(s.id for s in ordered)
        self._guards = {"": Guard(""), **guards}
        for scene in ordered:
            for source in [t.requires for t in scene.triggers] + [e.guard for e in scene.exits]:
                key = _guard_key(source)
                if key not in self._guards:
                    self._guards[key] = Guard(key)
        self._npcs = {npc.id: npc for npc in adventure.npcs}
        self._items = {item.id: item for item in adventure.items}

        self.graph = nx.DiGraph()
        for scene in ordered:
            self.graph.add_node(scene.id, ending=scene.is_ending)
        for scene in ordered:
            for exit_ in scene.exits:
                # First exit wins when two exits share a target
                if not self.graph.has_edge(scene.id, exit_.target):
                    self.graph.add_edge(
                        scene.id, exit_.target, label=exit_.label, guard=self.guard(exit_.guard)
                    )

        self._ending_distance = self._compute_ending_distances()

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @property
    def adventure_id(self) -> str:
        return self.adventure.adventure_id

    @property
    def start_scene(self) -> Scene:
        return self.scenes[self.adventure.start_scene]

    def scene(self, scene_id: str) -> Scene:
        return self.scenes[scene_id]

    def npc(self, npc_id: str) -> NPCDef:
        return self._npcs[npc_id]

    def item(self, item_id: str) -> ItemDef:
        return self._items[item_id]

    @property
    def mysteries(self) -> tuple[Mystery, ...]:
        return self.adventure.mysteries

    @property
    def endings(self) -> tuple[str, ...]:
        return tuple(sid for sid in self.scene_order if self.scenes[sid].is_ending)

    def guard(self, source: str | None) -> Guard:
        """Return the parsed guard for an expression seen at load time.

        Raises:
            KeyError: If the expression does not appear in the content
        """
        key = _guard_key(source)
        try:
            return self._guards[key]
        except KeyError:
            raise KeyError(f"Guard {key!r} is not part of adventure {self.adventure_id!r}") from None

    def successors(self, scene_id: str) -> list[str]:
        return list(self.graph.successors(scene_id))

    def scene_number(self, scene_id: str) -> int:
        """1-based position of a scene in narrative order."""
        return self.scene_order.index(scene_id) + 1

    # -------------------------------------------------------------------------
    # Flags
    # -------------------------------------------------------------------------

    def flag_defaults(self) -> dict[str, FlagValue]:
        return {name: decl.default for name, decl in self.adventure.flags.items()}

    def flag_domains(self) -> dict[str, tuple[FlagValue, ...]]:
        return {name: decl.domain for name, decl in self.adventure.flags.items()}

    # -------------------------------------------------------------------------
    # Distances
    # -------------------------------------------------------------------------

    def _compute_ending_distances(self) -> dict[str, int]:
        endings = self.endings
        if not endings:
            return {}
        reverse = self.graph.reverse(copy=False)
        distances: dict[str, int] = {}
        for ending in endings:
            for node, dist in nx.single_source_shortest_path_length(reverse, ending).items():
                if node not in distances or dist < distances[node]:
                    distances[node] = dist
        return distances

    def distance_to_ending(self, scene_id: str) -> int | None:
        """Edges to the nearest ending, ignoring guards. None if no ending is reachable."""
        return self._ending_distance.get(scene_id)

    def reachable_without_edge(self, source: str, target: str) -> set[str]:
        """Scenes reachable from the start scene if the edge source->target is removed."""
        view = nx.restricted_view(self.graph, [], [(source, target)])
        start = self.adventure.start_scene
        return {start} | nx.descendants(view, start)

    def __repr__(self) -> str:
        return f"ContentGraph({self.adventure_id!r}, scenes={len(self.scenes)})"


# =============================================================================
# Loading
# =============================================================================


def _guard_key(source: str | None) -> str:
    return (source or "").strip()


def _read_json(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ContentError(f"Missing content document {path}") from e
    except UnicodeDecodeError as e:
        raise ContentError(f"Content document {path} is not valid UTF-8", [f"byte {e.start}: {e.reason}"]) from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Malformed JSON in {path}", [f"line {e.lineno}: {e.msg}"]) from e
    if not isinstance(data, dict):
        raise ContentError(f"Content document {path} must be a JSON object")
    return data


def _format_validation_error(source: str, error: ValidationError) -> list[str]:
    problems = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        problems.append(f"{source}: {location}: {err['msg']}")
    return problems


def parse_adventure(data: dict, scene_docs: Mapping[str, dict]) -> ContentGraph:
    """Build a ContentGraph from already-decoded documents.

    Args:
        data: The adventure-level document
        scene_docs: Scene documents keyed by source name (file name or label)

    Raises:
        ContentError: With every problem found, if the content is invalid
    """
    problems: list[str] = []

    try:
        adventure = AdventureDocument.model_validate(data)
    except ValidationError as e:
        raise ContentError("Invalid adventure document", _format_validation_error(ADVENTURE_FILE, e)) from e

    scenes: list[Scene] = []
    for source, doc in scene_docs.items():
        try:
            scenes.append(Scene.model_validate(doc))
        except ValidationError as e:
            problems.extend(_format_validation_error(source, e))
    if problems:
        raise ContentError("Invalid scene documents", problems)

    guards = _check_references(adventure, scenes, problems)
    if problems:
        raise ContentError(f"Inconsistent content in adventure {adventure.adventure_id!r}", problems)

    graph = ContentGraph(adventure, scenes, guards)
    logger.info(
        f"Loaded adventure {adventure.adventure_id!r}: {len(scenes)} scenes, "
        f"{graph.graph.number_of_edges()} transitions, {len(adventure.flags)} flags"
    )
    return graph


def _check_references(
    adventure: AdventureDocument, scenes: list[Scene], problems: list[str]
) -> dict[str, Guard]:
    """Resolve every cross-reference, appending problems. Returns parsed guards."""
    scene_ids = [s.id for s in scenes]
    known_scenes = set(scene_ids)
    npc_ids = {n.id for n in adventure.npcs}
    item_ids = {i.id for i in adventure.items}
    flags = adventure.flags
    guards: dict[str, Guard] = {"": Guard("")}

    for dup in sorted({sid for sid in scene_ids if scene_ids.count(sid) > 1}):
        problems.append(f"Duplicate scene id {dup!r}")
    if adventure.start_scene not in known_scenes:
        problems.append(f"start_scene {adventure.start_scene!r} does not exist")

    for mystery in adventure.mysteries:
        if mystery.reveal_scene is not None and mystery.reveal_scene not in known_scenes:
            problems.append(f"Mystery {mystery.id!r} reveals in missing scene {mystery.reveal_scene!r}")

    def check_guard(where: str, source: str | None) -> None:
        key = _guard_key(source)
        if key in guards:
            guard = guards[key]
        else:
            try:
                guard = Guard(key)
            except GuardSyntaxError as e:
                problems.append(f"{where}: {e}")
                return
            guards[key] = guard
        for name in sorted(guard.referenced_flags):
            if name not in flags:
                problems.append(f"{where}: guard reads undeclared flag {name!r}")
        for name, literal in guard.comparisons():
            decl = flags.get(name)
            if decl is not None and not decl.accepts(literal):
                problems.append(f"{where}: {literal!r} is not a value of flag {name!r}")

    def check_effect(where: str, effect: Effect) -> None:
        for name, value in effect.set_flags.items():
            decl = flags.get(name)
            if decl is None:
                problems.append(f"{where}: writes undeclared flag {name!r}")
            elif not decl.accepts(value):
                problems.append(f"{where}: {value!r} is not a valid value for flag {name!r}")
        for item in effect.items:
            if item not in item_ids:
                problems.append(f"{where}: references unknown item {item!r}")
        for npc in effect.npcs:
            if npc not in npc_ids:
                problems.append(f"{where}: references unknown NPC {npc!r}")

    for scene in scenes:
        prefix = f"scene {scene.id!r}"
        for npc in scene.npcs:
            if npc.id not in npc_ids:
                problems.append(f"{prefix}: references unknown NPC {npc.id!r}")
            if npc.aggression is not None:
                check_effect(f"{prefix} npc {npc.id!r} aggression", npc.aggression)
        for item in scene.items:
            if item not in item_ids:
                problems.append(f"{prefix}: references unknown item {item!r}")
        for entry in scene.loot:
            if entry.item not in item_ids:
                problems.append(f"{prefix}: loot references unknown item {entry.item!r}")
        for challenge in scene.challenges:
            where = f"{prefix} challenge {challenge.id!r}"
            if challenge.requires_item is not None and challenge.requires_item not in item_ids:
                problems.append(f"{where}: requires unknown item {challenge.requires_item!r}")
            check_effect(f"{where} success", challenge.success)
            check_effect(f"{where} failure", challenge.failure)
        for trigger in scene.triggers:
            where = f"{prefix} trigger {trigger.id!r}"
            check_guard(where, trigger.requires)
            check_effect(where, trigger.effects)
        for exit_ in scene.exits:
            where = f"{prefix} exit to {exit_.target!r}"
            if exit_.target not in known_scenes:
                problems.append(f"{where}: target scene does not exist")
            check_guard(where, exit_.guard)

    return guards


def load_adventure(path: str | Path) -> ContentGraph:
    """Load an adventure directory.

    Args:
        path: Directory holding adventure.json and a scenes/ directory

    Returns:
        The resolved ContentGraph

    Raises:
        ContentError: If any document is missing, malformed, or inconsistent
    """
    root = Path(path)
    if not root.is_dir():
        raise ContentError(f"Adventure directory {root} does not exist")

    data = _read_json(root / ADVENTURE_FILE)
    scenes_dir = root / SCENES_DIR
    if not scenes_dir.is_dir():
        raise ContentError(f"Adventure {root} has no {SCENES_DIR}/ directory")

    scene_docs = {
        p.name: _read_json(p) for p in sorted(scenes_dir.glob("*.json"))
    }
    if not scene_docs:
        raise ContentError(f"Adventure {root} has no scene documents")

    logger.debug(f"Read {len(scene_docs)} scene documents from {scenes_dir}")
    return parse_adventure(data, scene_docs)
