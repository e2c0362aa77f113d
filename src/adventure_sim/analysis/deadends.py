"""Dead-end, soft-lock, and circular dependency detection.

Static analysis runs over the content graph before any simulation:

1. A fixpoint over reachable scenes and obtainable flag values, starting from
   the declared defaults. A scene becomes reachable when one of its incoming
   exit guards is satisfiable by some combination of obtainable values.
2. Every reachable, non-ending scene must have an exit guard satisfiable by
   obtainable values; the satisfying assignment is kept as a witness. Scenes
   without one are dead ends. Scenes never reached are reported too.
3. Circular dependencies: a gate whose every source of the required flag
   value lies behind that gate, and cycles of flags that are each only
   produced by triggers requiring another flag in the cycle.

Dynamic detection runs inside a simulation: with zero satisfiable exits and
no remaining action that could make one satisfiable, either directly or
through the guarded triggers and item-gated checks it unlocks, the scene is
a dead end, or a soft lock when failed checks could have opened it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import networkx as nx

from adventure_sim.content.guards import Guard
from adventure_sim.content.schemas import Effect, Scene
from adventure_sim.models.issues import Issue, IssueType, Severity
from adventure_sim.models.state import FlagValue

if TYPE_CHECKING:
    from adventure_sim.content.loader import ContentGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlagSource:
    """Something in a scene that can write flags."""

    scene_id: str
    source: str  # "trigger:<id>", "challenge:<id>:success", "aggression:<npc>"
    effect: Effect
    requires: str | None = None
    requires_item: str | None = None


def scene_sources(scene: Scene) -> Iterator[FlagSource]:
    """Every effect a scene can produce."""
    for trigger in scene.triggers:
        yield FlagSource(scene.id, f"trigger:{trigger.id}", trigger.effects, trigger.requires)
    for challenge in scene.challenges:
        for outcome, effect in (("success", challenge.success), ("failure", challenge.failure)):
            yield FlagSource(
                scene.id, f"challenge:{challenge.id}:{outcome}", effect, requires_item=challenge.requires_item
            )
    for npc in scene.npcs:
        if npc.aggression is not None:
            yield FlagSource(scene.id, f"aggression:{npc.id}", npc.aggression)


def _domains_with(base: dict[str, list[FlagValue]], effects: Iterable[Effect]) -> dict[str, list[FlagValue]]:
    domains = {name: list(values) for name, values in base.items()}
    for effect in effects:
        for name, value in effect.set_flags.items():
            values = domains.setdefault(name, [])
            if value not in values:
                values.append(value)
    return domains


# =============================================================================
# Static analysis
# =============================================================================


@dataclass
class StaticAnalysis:
    """Result of static reachability analysis."""

    reachable: list[str] = field(default_factory=list)
    unreachable: list[str] = field(default_factory=list)
    obtainable: dict[str, list[FlagValue]] = field(default_factory=dict)
    obtainable_items: set[str] = field(default_factory=set)
    witnesses: dict[str, dict[str, FlagValue]] = field(default_factory=dict)
    issues: list[Issue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not any(i.severity == Severity.CRITICAL for i in self.issues)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "reachable": self.reachable,
            "unreachable": self.unreachable,
            "obtainable": self.obtainable,
            "obtainable_items": sorted(self.obtainable_items),
            "witnesses": self.witnesses,
            "issues": [i.to_dict() for i in self.issues],
        }


def _fixpoint(graph: ContentGraph, result: StaticAnalysis) -> None:
    domains: dict[str, list[FlagValue]] = {name: [value] for name, value in graph.flag_defaults().items()}
    items: set[str] = set()
    reachable = [graph.adventure.start_scene]

    changed = True
    while changed:
        changed = False
        for scene_id in list(reachable):
            scene = graph.scene(scene_id)
            new_items = (set(scene.items) | {entry.item for entry in scene.loot}) - items
            if new_items:
                items |= new_items
                changed = True
            for source in scene_sources(scene):
                if source.requires and graph.guard(source.requires).satisfiable(domains) is None:
                    continue
                if source.requires_item and source.requires_item not in items:
                    continue
                for name, value in source.effect.set_flags.items():
                    if value not in domains.setdefault(name, []):
                        domains[name].append(value)
                        changed = True
                if set(source.effect.grant_items) - items:
                    items |= set(source.effect.grant_items)
                    changed = True
            for exit_ in scene.exits:
                if exit_.target in reachable:
                    continue
                if graph.guard(exit_.guard).satisfiable(domains) is not None:
                    reachable.append(exit_.target)
                    changed = True

    order = {sid: i for i, sid in enumerate(graph.scene_order)}
    result.reachable = sorted(reachable, key=order.__getitem__)
    result.unreachable = [sid for sid in graph.scene_order if sid not in reachable]
    result.obtainable = domains
    result.obtainable_items = items


def analyze_static(graph: ContentGraph) -> StaticAnalysis:
    """Run static dead-end and circular dependency analysis."""
    result = StaticAnalysis()
    _fixpoint(graph, result)

    for scene_id in result.reachable:
        scene = graph.scene(scene_id)
        if scene.is_ending:
            continue
        witness = None
        for exit_ in scene.exits:
            witness = graph.guard(exit_.guard).satisfiable(result.obtainable)
            if witness is not None:
                result.witnesses[scene_id] = {"_exit": exit_.target, **witness}
                break
        if witness is None:
            reason = "has no exits" if not scene.exits else "has no exit guard satisfiable by any obtainable flag values"
            result.issues.append(Issue(
                type=IssueType.DEAD_END,
                severity=Severity.CRITICAL,
                scenes=(scene_id,),
                description=f"Scene '{scene.display_name}' {reason}",
                details={"guards": [e.guard or "" for e in scene.exits]},
            ))

    for scene_id in result.unreachable:
        result.issues.append(Issue(
            type=IssueType.UNREACHABLE_SCENE,
            severity=Severity.WARNING,
            scenes=(scene_id,),
            description=f"Scene '{graph.scene(scene_id).display_name}' can never be reached from the start",
        ))

    result.issues.extend(find_gate_cycles(graph, result.reachable))
    result.issues.extend(find_flag_cycles(graph))

    logger.info(
        f"Static analysis of {graph.adventure_id!r}: {len(result.reachable)} reachable, "
        f"{len(result.unreachable)} unreachable, {len(result.issues)} issues"
    )
    return result


# =============================================================================
# Circular dependencies
# =============================================================================


def _required_values(guard: Guard, flag: str, graph: ContentGraph) -> list[FlagValue]:
    """Values of `flag` other than its default that the guard cannot do without.

    Empty when the guard can be satisfied with the flag at its default.
    """
    domains = {name: list(values) for name, values in graph.flag_domains().items()}
    default = graph.flag_defaults()[flag]
    if guard.satisfiable({**domains, flag: [default]}) is not None:
        return []
    return [
        value
        for value in domains[flag]
        if value != default and guard.satisfiable({**domains, flag: [value]}) is not None
    ]


def _all_sources(graph: ContentGraph) -> list[FlagSource]:
    return [source for sid in graph.scene_order for source in scene_sources(graph.scene(sid))]


def find_gate_cycles(graph: ContentGraph, reachable: Iterable[str]) -> list[Issue]:
    """Gates whose every source of the required flag value lies behind the gate."""
    reachable = set(reachable)
    sources = _all_sources(graph)
    order = {sid: i for i, sid in enumerate(graph.scene_order)}

    gates: dict[str, list[tuple[str, str, list[FlagValue]]]] = {}
    for source_id, target_id, data in graph.graph.edges(data=True):
        guard: Guard = data["guard"]
        for flag in sorted(guard.referenced_flags):
            required = _required_values(guard, flag, graph)
            if required:
                gates.setdefault(flag, []).append((source_id, target_id, required))

    issues = []
    for flag, edges in sorted(gates.items()):
        blocked = nx.restricted_view(graph.graph, [], [(a, b) for a, b, _ in edges])
        start = graph.adventure.start_scene
        open_reach = {start} | nx.descendants(blocked, start)

        for gate_scene, target, required in edges:
            if gate_scene not in reachable:
                continue
            producers = [s for s in sources if s.effect.set_flags.get(flag, object()) in required]
            if not producers:
                continue
            external = [
                s for s in producers
                if s.scene_id in open_reach
                and not (s.requires and flag in graph.guard(s.requires).referenced_flags)
            ]
            if external:
                continue
            source_scenes = sorted({s.scene_id for s in producers} - {gate_scene}, key=order.__getitem__)
            issues.append(Issue(
                type=IssueType.CIRCULAR_DEPENDENCY,
                severity=Severity.CRITICAL,
                scenes=(gate_scene, *source_scenes),
                description=(
                    f"Exit {gate_scene} -> {target} requires flag '{flag}', "
                    f"but every source of it lies behind that exit"
                ),
                details={"flag": flag, "required": required, "sources": [s.source for s in producers]},
            ))
    return issues


def find_flag_cycles(graph: ContentGraph) -> list[Issue]:
    """Cycles of flags each produced only by triggers requiring another flag in the cycle."""
    sources = _all_sources(graph)
    defaults = graph.flag_defaults()
    domains = {name: list(values) for name, values in graph.flag_domains().items()}
    order = {sid: i for i, sid in enumerate(graph.scene_order)}

    deps = nx.DiGraph()
    for source in sources:
        if not source.requires:
            continue
        needed = graph.guard(source.requires).referenced_flags
        for produced, value in source.effect.set_flags.items():
            if value == defaults.get(produced):
                continue
            for flag in needed:
                deps.add_edge(flag, produced)

    issues = []
    for cycle in sorted(nx.simple_cycles(deps), key=lambda c: sorted(c)):
        members = set(cycle)
        fixed = {**domains, **{flag: [defaults[flag]] for flag in members}}
        producers = [
            s for s in sources
            if any(name in members and value != defaults[name] for name, value in s.effect.set_flags.items())
        ]
        externally_fireable = [
            s for s in producers
            if not s.requires or graph.guard(s.requires).satisfiable(fixed) is not None
        ]
        if externally_fireable or not producers:
            continue
        flags = sorted(members)
        issues.append(Issue(
            type=IssueType.CIRCULAR_DEPENDENCY,
            severity=Severity.CRITICAL,
            scenes=tuple(sorted({s.scene_id for s in producers}, key=order.__getitem__)),
            description=f"Flags {', '.join(flags)} each require another flag in the cycle and have no external source",
            details={"flags": flags, "sources": [s.source for s in producers]},
        ))
    return issues


# =============================================================================
# Dynamic detection
# =============================================================================


def _closure(
    graph: ContentGraph,
    flags: dict[str, FlagValue],
    inventory: Iterable[str],
    effects: Iterable[Effect],
    pending: Iterable[FlagSource],
) -> dict[str, list[FlagValue]]:
    """Flag values obtainable from the given effects plus every pending source they unlock.

    A pending source joins once its guard is satisfiable by the values
    obtained so far and its required item is held or granted along the way.
    """
    effects = list(effects)
    domains = _domains_with({name: [value] for name, value in flags.items()}, effects)
    items = set(inventory) | {item for effect in effects for item in effect.grant_items}
    waiting = list(pending)

    changed = True
    while changed and waiting:
        changed = False
        for source in list(waiting):
            if source.requires and graph.guard(source.requires).satisfiable(domains) is None:
                continue
            if source.requires_item and source.requires_item not in items:
                continue
            waiting.remove(source)
            domains = _domains_with(domains, [source.effect])
            items |= set(source.effect.grant_items)
            changed = True
    return domains


def detect_dynamic(
    graph: ContentGraph,
    scene: Scene,
    flags: dict[str, FlagValue],
    remaining: Iterable[Effect],
    failed: Iterable[tuple[str, Effect]] = (),
    pending: Iterable[FlagSource] = (),
    inventory: Iterable[str] = (),
) -> Issue | None:
    """Check whether the current scene is stuck.

    Args:
        graph: Content graph
        scene: Current scene
        flags: Current flag values
        remaining: Effects of every action available in the scene right now
        failed: (challenge id, success effect) for checks that were failed
            and can no longer be attempted
        pending: Scene sources not available yet that an available action
            could unlock (guarded triggers, checks needing an item)
        inventory: Items currently held

    Returns:
        A dead_end or soft_lock issue, or None if an exit is or may become open
    """
    if scene.is_ending:
        return None
    remaining = list(remaining)
    pending = list(pending)
    inventory = list(inventory)
    reachable = _closure(graph, flags, inventory, remaining, pending)
    guards = [graph.guard(e.guard) for e in scene.exits]
    if any(g.satisfiable(reachable) is not None for g in guards):
        return None

    failed = list(failed)
    with_failed = _closure(graph, flags, inventory, remaining + [effect for _, effect in failed], pending)
    if failed and any(g.satisfiable(with_failed) is not None for g in guards):
        names = ", ".join(cid for cid, _ in failed)
        return Issue(
            type=IssueType.SOFT_LOCK,
            severity=Severity.CRITICAL,
            scenes=(scene.id,),
            description=(
                f"Scene '{scene.display_name}': failed checks ({names}) were the only way to open an exit "
                f"and cannot be retried"
            ),
            details={"failed_checks": [cid for cid, _ in failed]},
        )

    reason = "has no exits" if not scene.exits else "has no exit that any remaining action can open"
    return Issue(
        type=IssueType.DEAD_END,
        severity=Severity.CRITICAL,
        scenes=(scene.id,),
        description=f"Scene '{scene.display_name}' {reason}",
        details={"flags": dict(sorted(flags.items()))},
    )
