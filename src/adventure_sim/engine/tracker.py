"""Game state tracker.

Owns all mutable state for one run. Every mutation goes through this class
and appends exactly one entry to the append-only event log; no mutation is
silently dropped. The log is only exposed as an immutable tuple.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from adventure_sim.content.schemas import Challenge, Effect, Scene, Trigger
from adventure_sim.engine.dice import CheckOutcome
from adventure_sim.errors import SimulationFault
from adventure_sim.models.state import (
    REVIVING_STATES,
    EventLogEntry,
    GameState,
    Interaction,
    NPCStatus,
    StateSnapshot,
)
from adventure_sim.parameters import (
    CONFRONT_DISPOSITION,
    CONVERSE_DISPOSITION,
    DISPOSITION_MAX,
    DISPOSITION_MIN,
)

if TYPE_CHECKING:
    from adventure_sim.content.loader import ContentGraph

logger = logging.getLogger(__name__)


class GameStateTracker:
    """Mutable session state plus its event log.

    Usage:
        tracker = GameStateTracker(graph)
        tracker.enter_scene(graph.adventure.start_scene)
        tracker.fire_trigger(scene.triggers[0])
        tracker.is_terminal()
    """

    def __init__(self, graph: ContentGraph, max_wounds: int | None = None):
        self.graph = graph
        self.state = GameState(
            scene_id=graph.adventure.start_scene,
            max_wounds=max_wounds or graph.adventure.max_wounds,
            flags=graph.flag_defaults(),
            npc_states={npc.id: npc.initial_state for npc in graph.adventure.npcs},
            npc_dispositions={npc.id: 0 for npc in graph.adventure.npcs},
            npc_interactions={npc.id: 0 for npc in graph.adventure.npcs},
        )
        self._log: list[EventLogEntry] = []

    @property
    def log(self) -> tuple[EventLogEntry, ...]:
        return tuple(self._log)

    @property
    def scene(self) -> Scene:
        return self.graph.scene(self.state.scene_id)

    def _append(self, actor: str, action: str, delta: dict) -> EventLogEntry:
        entry = EventLogEntry(
            step=len(self._log),
            actor=actor,
            action=action,
            scene_id=self.state.scene_id,
            delta=delta,
        )
        self._log.append(entry)
        return entry

    # =========================================================================
    # Mutations
    # =========================================================================

    def apply_effect(self, effect: Effect, actor: str, action: str, extra: dict | None = None) -> EventLogEntry:
        """Apply an effect atomically and log the resulting delta.

        The whole delta is computed before any state changes, then committed
        and logged as a single entry.
        """
        state = self.state
        delta: dict = dict(extra or {})

        flag_changes = {
            name: {"from": state.flags.get(name), "to": value}
            for name, value in sorted(effect.set_flags.items())
            if state.flags.get(name) != value
        }
        npc_changes = self._npc_changes(effect)
        granted = sorted(set(effect.grant_items) - state.inventory)
        removed = sorted(set(effect.remove_items) & state.inventory)
        healed = min(effect.heal, state.wounds + effect.wounds)

        if flag_changes:
            delta["flags"] = flag_changes
        if npc_changes:
            delta["npc_states"] = npc_changes
        if granted:
            delta["items_gained"] = granted
        if removed:
            delta["items_lost"] = removed
        if effect.wounds:
            delta["wounds"] = effect.wounds
        if healed:
            delta["healed"] = healed

        for name, change in flag_changes.items():
            state.flags[name] = change["to"]
        for npc_id, change in npc_changes.items():
            state.npc_states[npc_id] = NPCStatus(change["to"])
        state.inventory.update(granted)
        state.inventory.difference_update(removed)
        if effect.wounds:
            state.wounds += effect.wounds
            if state.is_near_death:
                state.near_death_count += 1
                delta["near_death"] = True
            elif state.is_dead:
                delta["death"] = True
        state.wounds -= healed

        return self._append(actor, action, delta)

    def _npc_changes(self, effect: Effect) -> dict[str, dict]:
        changes = {}
        targets = dict(effect.npc_states)
        for npc_id in effect.recover:
            targets.setdefault(npc_id, NPCStatus.ACTIVE)
        for npc_id, new in sorted(targets.items()):
            changes.update(self._transition(npc_id, new, recovered=npc_id in effect.recover))
        return changes

    def _transition(self, npc_id: str, new: NPCStatus, recovered: bool) -> dict[str, dict]:
        old = self.state.npc_states.get(npc_id, NPCStatus.ABSENT)
        if old == new:
            return {}
        explained = not (old == NPCStatus.DEFEATED and new in REVIVING_STATES) or recovered
        if not explained:
            logger.debug(f"NPC {npc_id} returned from defeat in {self.state.scene_id} without recovery")
        return {npc_id: {"from": old.value, "to": new.value, "explained": explained}}

    def enter_scene(self, scene_id: str, actor: str = "gm") -> EventLogEntry:
        """Move to a scene and apply its per-scene NPC states."""
        scene = self.graph.scene(scene_id)
        previous = self.state.scene_id if self.state.visited else None
        self.state.scene_id = scene_id
        self.state.visited.append(scene_id)

        delta: dict = {"from_scene": previous, "to_scene": scene_id}
        npc_changes = {}
        for npc in scene.npcs:
            npc_changes.update(self._transition(npc.id, npc.state, recovered=False))
        for npc_id, change in npc_changes.items():
            self.state.npc_states[npc_id] = NPCStatus(change["to"])
        if npc_changes:
            delta["npc_states"] = npc_changes
        if scene.rest:
            delta["rest"] = True
        return self._append(actor, f"enter_scene:{scene_id}", delta)

    def mark_trigger_fired(self, trigger: Trigger) -> None:
        """Record that a trigger fired in the current scene.

        Raises:
            SimulationFault: If an irreversible trigger has already fired
        """
        key = f"{self.state.scene_id}:{trigger.id}"
        if trigger.irreversible and key in self.state.fired_triggers:
            raise SimulationFault(
                f"Irreversible trigger {trigger.id!r} fired twice", scene_id=self.state.scene_id
            )
        self.state.fired_triggers.add(key)

    def fire_trigger(self, trigger: Trigger, actor: str = "gm") -> EventLogEntry:
        """Fire a trigger and apply its effects as one logged mutation."""
        self.mark_trigger_fired(trigger)
        return self.apply_effect(
            trigger.effects,
            actor,
            f"fire_trigger:{trigger.id}",
            extra={"irreversible": trigger.irreversible, "severity": trigger.severity},
        )

    def record_check(self, challenge: Challenge, outcome: CheckOutcome, actor: str = "player") -> EventLogEntry:
        """Record a check attempt and apply its success or failure effect."""
        key = f"{self.state.scene_id}:{challenge.id}"
        self.state.attempts[key] = self.state.attempts.get(key, 0) + 1
        if outcome.success:
            self.state.passed_challenges.add(key)
        effect = challenge.success if outcome.success else challenge.failure
        return self.apply_effect(
            effect,
            actor,
            f"check:{challenge.id}",
            extra={"check": {**outcome.to_dict(), "skill": challenge.skill}},
        )

    def interact(self, npc_id: str, interaction: Interaction, actor: str = "player") -> EventLogEntry:
        """Record the player engaging an NPC and shift its disposition.

        Disposition is clamped to the configured range; the interaction
        count grows by one either way.
        """
        state = self.state
        change = CONVERSE_DISPOSITION if interaction == Interaction.CONVERSE else CONFRONT_DISPOSITION
        old = state.npc_dispositions.get(npc_id, 0)
        new = max(DISPOSITION_MIN, min(DISPOSITION_MAX, old + change))
        state.npc_dispositions[npc_id] = new
        state.npc_interactions[npc_id] = state.npc_interactions.get(npc_id, 0) + 1
        return self._append(actor, f"interact:{npc_id}", {
            "interaction": interaction.value,
            "disposition": {"from": old, "to": new},
            "count": state.npc_interactions[npc_id],
        })

    def record_event(self, actor: str, action: str, delta: dict | None = None) -> EventLogEntry:
        """Log an event that changes no state (declined checks, findings)."""
        return self._append(actor, action, dict(delta or {}))

    # =========================================================================
    # Queries
    # =========================================================================

    def has_fired(self, trigger: Trigger) -> bool:
        return f"{self.state.scene_id}:{trigger.id}" in self.state.fired_triggers

    def has_passed(self, challenge: Challenge) -> bool:
        return f"{self.state.scene_id}:{challenge.id}" in self.state.passed_challenges

    def attempts(self, challenge: Challenge) -> int:
        return self.state.attempts.get(f"{self.state.scene_id}:{challenge.id}", 0)

    def is_terminal(self) -> bool:
        """Character death, or an ending scene reached."""
        return self.state.is_dead or self.scene.is_ending

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot.from_state(self.state)
