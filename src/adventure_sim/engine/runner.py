"""Simulation runner.

Drives one run of an adventure: the GM agent picks triggers, checks and
exits; the player agent resolves checks through the dice engine; every
state change goes through the GameStateTracker. When the run ends, the
analyzers run over the event log and the results are assembled into a
Report.

A run is sequential and fully determined by the content and its
RunConfiguration (seed included). Each random source gets its own stream
derived from the seed, so adding a roll in one place never reshuffles the
choices made in another.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable

from adventure_sim.agents.archetypes import ArchetypeModel, build_archetype_report, get_archetype
from adventure_sim.agents.base import Option, OptionKind, SceneView
from adventure_sim.agents.gm import GMAgent, create_gm_policy
from adventure_sim.agents.player import ArchetypePlayer, PlayerAgent, create_player_policy
from adventure_sim.analysis.coherence import analyze_coherence
from adventure_sim.analysis.deadends import FlagSource, StaticAnalysis, analyze_static, detect_dynamic
from adventure_sim.analysis.difficulty import calculate_difficulty
from adventure_sim.analysis.gm_validator import GMValidator
from adventure_sim.content.loader import ContentGraph
from adventure_sim.content.schemas import Challenge, ChallengeType, Effect, Scene
from adventure_sim.engine.dice import DiceEngine
from adventure_sim.engine.tracker import GameStateTracker
from adventure_sim.errors import SimulationFault, TimeoutTermination
from adventure_sim.models.config import RunConfiguration
from adventure_sim.models.issues import Issue, IssueType, Severity, dedupe_issues
from adventure_sim.models.state import InformationLookup, NPCStatus, TerminationReason
from adventure_sim.parameters import POSSIBLE_LOOP_VISITS
from adventure_sim.reporting.report import Report, build_report, scene_breakdowns, scene_stats

logger = logging.getLogger(__name__)

_STUCK_REASONS = {
    IssueType.DEAD_END: TerminationReason.DEAD_END,
    IssueType.SOFT_LOCK: TerminationReason.SOFT_LOCK,
}


class SimulationRunner:
    """Runs one simulation of an adventure.

    Usage:
        runner = SimulationRunner(graph, RunConfiguration(seed=3, dice_mode=DiceMode.CURSED))
        report = runner.run()
        report.verdict

    A runner is single-use: create a new one per run.
    """

    def __init__(
        self,
        graph: ContentGraph,
        config: RunConfiguration | None = None,
        static: StaticAnalysis | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Set up agents, dice and state for a run.

        Args:
            graph: Loaded adventure content
            config: Run configuration (defaults used if not provided)
            static: Precomputed static analysis, shared across runs of a batch
            clock: Monotonic clock used for the wall-clock timeout

        Raises:
            ValueError: If the configuration names an unknown archetype
        """
        self.graph = graph
        self.config = config or RunConfiguration()
        self.static = static
        self.clock = clock

        seed = self.config.seed
        self.dice = DiceEngine(f"{seed}:dice", self.config.dice_mode, self.config.lucky_draws)
        self.tracker = GameStateTracker(graph)
        self.gm = GMAgent(create_gm_policy(self.config.gm_behavior, random.Random(f"{seed}:gm")))

        archetype_model = None
        if self.config.archetype:
            archetype = get_archetype(self.config.archetype)
            archetype_model = ArchetypeModel(archetype, random.Random(f"{seed}:archetype"))
            policy = ArchetypePlayer(archetype, archetype_model)
        else:
            policy = create_player_policy(self.config.player_behavior, random.Random(f"{seed}:player"))
        self.skill_bonuses = dict(graph.adventure.skill_bonuses)
        self.player = PlayerAgent(policy, self.dice, self.skill_bonuses, archetype_model)
        self.validator = GMValidator(graph)

        self.issues: list[Issue] = []
        self.lookups: list[InformationLookup] = []
        self.turns = 0
        self._declined: set[str] = set()
        self._loop_flagged: set[str] = set()
        self._stuck_in: str | None = None
        self._started = False

    # =========================================================================
    # Run loop
    # =========================================================================

    def run(self) -> Report:
        """Play the adventure to an end condition and build the report."""
        if self._started:
            raise RuntimeError("SimulationRunner instances are single-use")
        self._started = True

        logger.info(
            f"Starting run {self.config.label} of {self.graph.adventure_id} (player: {self.player.label})"
        )
        start = self.clock()
        try:
            self._enter(self.graph.adventure.start_scene)
            termination, details = self._loop(start)
        except TimeoutTermination as e:
            termination, details = TerminationReason.TIMEOUT, str(e)
            self.issues.append(Issue(
                type=IssueType.TURN_LIMIT,
                severity=Severity.INFO,
                scenes=(self.tracker.state.scene_id,),
                description=str(e),
                details={"elapsed": round(e.elapsed, 3), "limit": e.limit},
            ))
        except SimulationFault as e:
            logger.error(f"Simulation fault in run {self.config.label}: {e}")
            termination, details = TerminationReason.SIMULATION_FAULT, str(e)
            self.issues.append(Issue(
                type=IssueType.SIMULATION_FAULT,
                severity=Severity.CRITICAL,
                scenes=(e.scene_id or self.tracker.state.scene_id,),
                description=str(e),
            ))

        logger.info(f"Run {self.config.label} ended: {termination.value} after {self.turns} turns")
        return self._build_report(termination, details)

    def _loop(self, start: float) -> tuple[TerminationReason, str]:
        while True:
            state = self.tracker.state
            if state.is_dead:
                return (
                    TerminationReason.PLAYER_DEATH,
                    f"Character died in {state.scene_id} ({state.wounds}/{state.max_wounds} wounds)",
                )
            if self.tracker.scene.is_ending:
                return TerminationReason.COMPLETED, f"Reached ending {state.scene_id}"
            if self.turns >= self.config.max_turns:
                self.issues.append(Issue(
                    type=IssueType.TURN_LIMIT,
                    severity=Severity.INFO,
                    scenes=(state.scene_id,),
                    description=f"Run stopped at the turn limit ({self.config.max_turns})",
                ))
                return TerminationReason.MAX_TURNS, f"Turn limit {self.config.max_turns} reached"
            elapsed = self.clock() - start
            if elapsed > self.config.timeout_seconds:
                raise TimeoutTermination(elapsed, self.config.timeout_seconds)

            self.turns += 1
            outcome = self._turn()
            if outcome is not None:
                return outcome

    def _turn(self) -> tuple[TerminationReason, str] | None:
        view = self._view()
        scene = view.scene

        if self._stuck_in == scene.id:
            # Not halting on dead ends: idle until the turn limit ends the run
            self.tracker.record_event("gm", "wait")
            return None

        open_exits = view.open_exits()
        if not open_exits:
            # Declined checks are only optional while an exit is open
            self._declined.clear()
        options = self._options(view)

        if not open_exits:
            remaining = [effect for option in options for effect in view.effects_of(option)]
            finding = detect_dynamic(
                self.graph,
                scene,
                view.state.flags,
                remaining,
                self._failed_checks(scene),
                pending=self._pending(scene, options),
                inventory=view.state.inventory,
            )
            if finding is not None:
                return self._stuck(finding)

        choice = self.gm.decide(view, options, self.player.propose(view, options))
        logger.debug(f"[{self.turns}] {scene.id}: GM chose {choice.kind.value} {choice.ref}")

        if choice.kind == OptionKind.TRIGGER:
            self.tracker.fire_trigger(view.trigger(choice))
        elif choice.kind == OptionKind.CHALLENGE:
            self._call_check(view, view.challenge(choice), choice.difficulty, optional=bool(open_exits))
        elif choice.kind == OptionKind.EXIT:
            self._enter(choice.ref)
        else:
            raise SimulationFault(f"GM chose a player option {choice.kind.value}", scene_id=scene.id)
        return None

    # =========================================================================
    # Decisions
    # =========================================================================

    def _view(self) -> SceneView:
        return SceneView(self.graph, self.tracker.state, self.skill_bonuses)

    def _challenge_open(self, challenge: Challenge) -> bool:
        if self.tracker.has_passed(challenge) or challenge.id in self._declined:
            return False
        if self.tracker.attempts(challenge) >= self.config.retry_limit:
            return False
        return challenge.requires_item is None or challenge.requires_item in self.tracker.state.inventory

    def _options(self, view: SceneView) -> list[Option]:
        """Every legal GM action right now, in authored order."""
        scene = view.scene
        options = []
        for trigger in scene.triggers:
            if not self.tracker.has_fired(trigger) and self.graph.guard(trigger.requires).evaluate(view.state.flags):
                options.append(Option.for_trigger(trigger))
        for challenge in scene.challenges:
            if self._challenge_open(challenge):
                options.append(Option.for_challenge(challenge, self.gm.policy.select_difficulty(challenge)))
        options += [Option.for_exit(exit_) for exit_ in view.open_exits()]
        return options

    def _pending(self, scene: Scene, options: list[Option]) -> list[FlagSource]:
        """Triggers and checks not offered now that a later action could unlock."""
        offered = {(option.kind, option.ref) for option in options}
        pending = []
        for trigger in scene.triggers:
            if self.tracker.has_fired(trigger) or (OptionKind.TRIGGER, trigger.id) in offered:
                continue
            pending.append(FlagSource(scene.id, f"trigger:{trigger.id}", trigger.effects, trigger.requires))
        for challenge in scene.challenges:
            if (OptionKind.CHALLENGE, challenge.id) in offered or self.tracker.has_passed(challenge):
                continue
            if self.tracker.attempts(challenge) >= self.config.retry_limit:
                continue
            for outcome, effect in (("success", challenge.success), ("failure", challenge.failure)):
                pending.append(FlagSource(
                    scene.id, f"challenge:{challenge.id}:{outcome}", effect, requires_item=challenge.requires_item
                ))
        return pending

    def _failed_checks(self, scene: Scene) -> list[tuple[str, Effect]]:
        """Checks attempted, never passed, and out of retries."""
        return [
            (c.id, c.success)
            for c in scene.challenges
            if not self.tracker.has_passed(c) and self.tracker.attempts(c) >= self.config.retry_limit
        ]

    def _call_check(self, view: SceneView, challenge: Challenge, difficulty: int, optional: bool) -> None:
        optional = optional and challenge.type == ChallengeType.ACTIVE
        response = self.player.respond(view, challenge, difficulty, optional)
        if response.kind == OptionKind.DECLINE:
            self._declined.add(challenge.id)
            self.tracker.record_event("player", f"decline:{challenge.id}", {"difficulty": difficulty})
            return
        outcome = self.player.resolve(challenge, difficulty)
        self.tracker.record_check(challenge, outcome)
        logger.debug(
            f"Check {challenge.id} DC {difficulty}: rolled {outcome.roll}+{outcome.bonus} "
            f"-> {'pass' if outcome.success else 'fail'}"
        )

    def _stuck(self, finding: Issue) -> tuple[TerminationReason, str] | None:
        scene = self.tracker.scene
        logger.warning(f"Run {self.config.label}: {finding.description}")
        self.issues.append(finding)
        self.tracker.record_event("engine", f"stuck:{finding.type.value}", {"issue": finding.description})
        model = self.player.archetype_model
        if model is not None:
            model.blocker(scene, tuple(self.tracker.state.visited), finding.description)
        if self.config.halt_on_dead_end:
            return _STUCK_REASONS[finding.type], finding.description
        self._stuck_in = scene.id
        return None

    # =========================================================================
    # Scene entry
    # =========================================================================

    def _enter(self, scene_id: str) -> None:
        tracker = self.tracker
        self.gm.select_scene()
        tracker.enter_scene(scene_id)
        self.gm.begin_scene()
        self._declined.clear()
        scene = tracker.scene
        state = tracker.state
        first_visit = state.visit_count(scene_id) == 1

        if first_visit:
            if scene.items:
                tracker.apply_effect(Effect(grant_items=scene.items), "player", "pick_up")
            for entry in scene.loot:
                roll = self.dice.roll(20)
                if roll.total >= entry.roll:
                    tracker.apply_effect(
                        Effect(grant_items=(entry.item,)), "player", f"loot:{entry.item}", extra={"roll": roll.total}
                    )
            for npc in scene.npcs:
                if npc.aggression is not None and self.gm.policy.plays_aggression(npc):
                    tracker.apply_effect(npc.aggression, "gm", f"aggression:{npc.id}")
            model = self.player.archetype_model
            if model is not None:
                model.critiques(scene, self.graph, tuple(state.visited))
            self._ask(self._engage(scene))
        elif state.visit_count(scene_id) > POSSIBLE_LOOP_VISITS and scene_id not in self._loop_flagged:
            self._loop_flagged.add(scene_id)
            self.issues.append(Issue(
                type=IssueType.POSSIBLE_LOOP,
                severity=Severity.INFO,
                scenes=(scene_id,),
                description=f"Scene '{scene.display_name}' entered {state.visit_count(scene_id)} times",
            ))

    def _engage(self, scene: Scene) -> list[str]:
        """Let the player engage the scene's NPCs. Returns the ids engaged."""
        view = self._view()
        engaged = []
        for npc in scene.npcs:
            if not view.state.npc_states.get(npc.id, NPCStatus.ABSENT).is_present:
                continue
            interaction = self.player.interaction(view, npc)
            if interaction is not None:
                self.tracker.interact(npc.id, interaction)
                engaged.append(npc.id)
        return engaged

    def _ask(self, engaged: list[str]) -> None:
        view = self._view()
        for question_type, text, subject in self.player.questions(view, engaged):
            lookup = self.gm.look_up(view, question_type, text, subject)
            self.lookups.append(lookup)
            self.tracker.record_event(
                "gm", f"lookup:{question_type.value}", {"found": lookup.found, "found_in": lookup.found_in}
            )

    # =========================================================================
    # Report
    # =========================================================================

    def _build_report(self, termination: TerminationReason, details: str) -> Report:
        graph = self.graph
        config = self.config
        snapshot = self.tracker.snapshot()
        log = self.tracker.log

        static = self.static or analyze_static(graph)
        coherence = analyze_coherence(graph, snapshot.visited, log, config.breadcrumb_matching, config.fuzzy_threshold)
        difficulty = calculate_difficulty(log, snapshot, config.spike_baseline, config.spike_delta)
        issues = dedupe_issues(static.issues + self.issues + coherence.issues + difficulty.issues)

        model = self.player.archetype_model
        critiques = self.validator.validate_all(model.raised) if model is not None else []
        archetype_report = None
        if model is not None:
            archetype_report = build_archetype_report(model, scene_stats(scene_breakdowns(graph, log, [])))

        return build_report(
            graph,
            config,
            snapshot,
            log,
            issues,
            critiques,
            difficulty,
            coherence,
            self.dice.stats,
            termination,
            termination_details=details,
            turns=self.turns,
            archetype_report=archetype_report,
            player=self.player.label,
            lookups=self.lookups,
        )


def run_simulation(graph: ContentGraph, config: RunConfiguration | None = None) -> Report:
    """Run one simulation and return its report."""
    return SimulationRunner(graph, config).run()
