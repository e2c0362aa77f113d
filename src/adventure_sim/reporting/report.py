"""Run reports.

build_report is a pure function over everything a finished run produced.
The Report is an immutable output artifact with a JSON form (to_json) and a
fixed-layout plain-text form (render_text). Neither contains timestamps or
durations, so identical runs produce byte-identical output.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from adventure_sim.analysis.coherence import BreadcrumbStrength, CoherenceReport
from adventure_sim.analysis.difficulty import DifficultyMetrics
from adventure_sim.models.config import RunConfiguration
from adventure_sim.models.issues import Issue, IssueType, Severity, ValidatedCritique, ValidationStatus
from adventure_sim.models.state import EventLogEntry, InformationLookup, StateSnapshot, TerminationReason
from adventure_sim.parameters import URGENT_FAILED_LOOKUPS

if TYPE_CHECKING:
    from adventure_sim.agents.archetypes import ArchetypeReport
    from adventure_sim.content.loader import ContentGraph
    from adventure_sim.engine.dice import DiceStats


class Verdict(str, Enum):
    PASS = "pass"  # Completed with no warnings or actionable critiques
    WARN = "warn"  # Completed, but something needs attention
    FAIL = "fail"  # Critical findings
    INVALID = "invalid"  # The run itself broke an engine invariant


_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

_VALIDATION_GROUPS = {
    "valid_issues": (ValidationStatus.VALID_ISSUE,),
    "intentional_design": (
        ValidationStatus.INTENTIONAL_MYSTERY,
        ValidationStatus.DELAYED_REVEAL,
        ValidationStatus.RED_HERRING,
    ),
    "gm_discretion": (ValidationStatus.GM_DISCRETION, ValidationStatus.PLAYER_CHOICE),
    "false_positives": (ValidationStatus.FALSE_POSITIVE,),
}


@dataclass(frozen=True)
class SceneBreakdown:
    """Per-scene activity over a run."""

    scene_id: str
    title: str
    visits: int = 0
    wounds: int = 0
    checks_attempted: int = 0
    checks_passed: int = 0
    triggers_available: int = 0
    triggers_fired: int = 0
    npcs_present: tuple[str, ...] = ()
    npcs_interacted: int = 0
    exits_taken: tuple[str, ...] = ()
    issues: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "scene_id": self.scene_id,
            "title": self.title,
            "visits": self.visits,
            "wounds": self.wounds,
            "checks_attempted": self.checks_attempted,
            "checks_passed": self.checks_passed,
            "triggers_available": self.triggers_available,
            "triggers_fired": self.triggers_fired,
            "npcs_present": list(self.npcs_present),
            "npcs_interacted": self.npcs_interacted,
            "exits_taken": list(self.exits_taken),
            "issues": list(self.issues),
        }


@dataclass(frozen=True)
class Recommendation:
    """A suggested content fix."""

    priority: str  # "high", "medium", "low"
    type: str
    title: str
    description: str
    suggestion: str
    scene: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "priority": self.priority,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "suggestion": self.suggestion,
            "scene": self.scene,
        }


@dataclass(frozen=True)
class Report:
    """Everything known about one finished run."""

    adventure_id: str
    adventure_title: str
    config: RunConfiguration
    verdict: Verdict
    termination: TerminationReason
    termination_scene: str
    termination_details: str
    turns: int
    scenes_total: int
    final_state: StateSnapshot
    scenes: tuple[SceneBreakdown, ...]
    issues: tuple[Issue, ...]
    critiques: tuple[ValidatedCritique, ...]
    difficulty: DifficultyMetrics
    coherence: CoherenceReport
    dice: dict
    recommendations: tuple[Recommendation, ...]
    events: tuple[EventLogEntry, ...] = ()
    archetype_report: ArchetypeReport | None = None
    player: str = ""
    lookups: tuple[InformationLookup, ...] = ()

    @property
    def completed(self) -> bool:
        return self.termination == TerminationReason.COMPLETED

    @property
    def actionable_critiques(self) -> list[ValidatedCritique]:
        return [vc for vc in self.critiques if vc.validation.is_actionable]

    @property
    def failed_lookups(self) -> list[InformationLookup]:
        return [lookup for lookup in self.lookups if not lookup.found]

    def issues_of(self, issue_type: IssueType) -> list[Issue]:
        return [i for i in self.issues if i.type == issue_type]

    def validation_summary(self) -> dict[str, int]:
        """Critique counts by how the GM judged them."""
        return {
            group: sum(1 for vc in self.critiques if vc.validation.status in statuses)
            for group, statuses in _VALIDATION_GROUPS.items()
        }

    def summary(self) -> dict:
        visited = set(self.final_state.visited)
        return {
            "completed": self.completed,
            "scenes_visited": len(visited),
            "scenes_total": self.scenes_total,
            "completion_rate": round(len(visited) / self.scenes_total, 4) if self.scenes_total else 0.0,
            "turns": self.turns,
            "wounds": self.final_state.wounds,
            "deaths": 1 if self.termination == TerminationReason.PLAYER_DEATH else 0,
            "skill_checks_made": self.difficulty.checks_made,
            "skill_checks_passed": self.difficulty.checks_passed,
            "triggers_fired": len(self.final_state.fired_triggers),
            "critical_issues": sum(1 for i in self.issues if i.severity == Severity.CRITICAL),
            "warnings": sum(1 for i in self.issues if i.severity == Severity.WARNING),
            "critiques_raised": len(self.critiques),
            "critiques_actionable": len(self.actionable_critiques),
            "information_lookups_attempted": len(self.lookups),
            "information_lookups_succeeded": len(self.lookups) - len(self.failed_lookups),
            "information_lookups_failed": len(self.failed_lookups),
            "npcs_interacted": sum(1 for _, count in self.final_state.npc_interactions if count),
            "difficulty_rating": self.difficulty.rating.value,
            "coherence_score": self.coherence.score,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "adventure_id": self.adventure_id,
            "adventure_title": self.adventure_title,
            "config": self.config.model_dump(mode="json"),
            "label": self.config.label,
            "player": self.player,
            "verdict": self.verdict.value,
            "termination": {
                "reason": self.termination.value,
                "scene": self.termination_scene,
                "details": self.termination_details,
            },
            "summary": self.summary(),
            "final_state": self.final_state.to_dict(),
            "scenes": [s.to_dict() for s in self.scenes],
            "issues": [i.to_dict() for i in self.issues],
            "critiques": [c.to_dict() for c in self.critiques],
            "validation_summary": self.validation_summary(),
            "information_lookups": [lookup.to_dict() for lookup in self.lookups],
            "difficulty": self.difficulty.to_dict(),
            "coherence": self.coherence.to_dict(),
            "dice": self.dice,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "archetype_report": self.archetype_report.to_dict() if self.archetype_report else None,
            "events": [e.to_dict() for e in self.events],
        }

    def to_json(self, indent: int = 2) -> str:
        """Deterministic JSON: sorted keys, no timestamps."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


# =============================================================================
# Building
# =============================================================================


def _verdict(termination: TerminationReason, issues: Sequence[Issue], critiques: Sequence[ValidatedCritique]) -> Verdict:
    if termination == TerminationReason.SIMULATION_FAULT:
        return Verdict.INVALID
    if termination in (TerminationReason.DEAD_END, TerminationReason.SOFT_LOCK):
        return Verdict.FAIL
    if any(i.severity == Severity.CRITICAL for i in issues):
        return Verdict.FAIL
    if termination != TerminationReason.COMPLETED:
        return Verdict.WARN
    if any(i.severity == Severity.WARNING for i in issues) or any(c.validation.is_actionable for c in critiques):
        return Verdict.WARN
    return Verdict.PASS


def scene_breakdowns(graph: ContentGraph, log: Sequence[EventLogEntry], issues: Sequence[Issue]) -> list[SceneBreakdown]:
    counters: dict[str, dict] = {}
    for entry in log:
        stats = counters.setdefault(entry.scene_id, {
            "visits": 0, "wounds": 0, "checks_attempted": 0, "checks_passed": 0,
            "triggers_fired": 0, "npcs_interacted": set(), "exits_taken": [],
        })
        if entry.action.startswith("enter_scene:"):
            source = entry.delta.get("from_scene")
            if source in counters:
                counters[source]["exits_taken"].append(entry.scene_id)
            stats["visits"] += 1
            continue
        stats["wounds"] += entry.delta.get("wounds", 0)
        if "check" in entry.delta:
            stats["checks_attempted"] += 1
            stats["checks_passed"] += int(entry.delta["check"]["success"])
        if entry.action.startswith("fire_trigger:"):
            stats["triggers_fired"] += 1
        elif entry.action.startswith("interact:"):
            stats["npcs_interacted"].add(entry.action.split(":", 1)[1])

    breakdowns = []
    for scene_id, stats in counters.items():
        scene = graph.scene(scene_id)
        breakdowns.append(SceneBreakdown(
            scene_id=scene_id,
            title=scene.display_name,
            visits=stats["visits"],
            wounds=stats["wounds"],
            checks_attempted=stats["checks_attempted"],
            checks_passed=stats["checks_passed"],
            triggers_available=len(scene.triggers),
            triggers_fired=stats["triggers_fired"],
            npcs_present=tuple(graph.npc(ref.id).name for ref in scene.npcs),
            npcs_interacted=len(stats["npcs_interacted"]),
            exits_taken=tuple(stats["exits_taken"]),
            issues=tuple(f"[{i.type.value}] {i.description}" for i in issues if scene_id in i.scenes),
        ))
    return breakdowns


def scene_stats(report_scenes: Sequence[SceneBreakdown]) -> dict[str, dict]:
    """Per-scene counters in the shape build_archetype_report expects."""
    return {
        s.scene_id: {
            "wounds": s.wounds,
            "checks_attempted": s.checks_attempted,
            "checks_passed": s.checks_passed,
            "triggers_fired": s.triggers_fired,
        }
        for s in report_scenes
    }


def generate_recommendations(
    scenes: Sequence[SceneBreakdown],
    issues: Sequence[Issue],
    critiques: Sequence[ValidatedCritique],
    coherence: CoherenceReport,
    lookups: Sequence[InformationLookup] = (),
) -> list[Recommendation]:
    """Turn findings into prioritized content suggestions."""
    recommendations = []

    blocked = [i for i in issues if i.type in (IssueType.DEAD_END, IssueType.SOFT_LOCK)]
    if blocked:
        scene_ids = sorted({sid for i in blocked for sid in i.scenes})
        recommendations.append(Recommendation(
            priority="high",
            type="dead_end",
            title="Missing Scene Transitions",
            description=f"{len(scene_ids)} scene(s) can leave players with no way forward.",
            suggestion="Add exits or alternative paths so players can progress after failed checks.",
            scene=scene_ids[0],
        ))

    cycles = [i for i in issues if i.type == IssueType.CIRCULAR_DEPENDENCY]
    if cycles:
        recommendations.append(Recommendation(
            priority="high",
            type="dead_end",
            title="Circular Flag Dependency",
            description=f"{len(cycles)} gate(s) can only be opened from behind themselves.",
            suggestion="Move the flag's source in front of the gate it opens.",
            scene=cycles[0].scenes[0] if cycles[0].scenes else None,
        ))

    hard = [s for s in scenes if s.checks_attempted and s.checks_passed / s.checks_attempted < 0.3]
    if hard:
        recommendations.append(Recommendation(
            priority="medium",
            type="difficulty",
            title="High Difficulty Spike",
            description=f'Scene "{hard[0].title}" has a very low pass rate on skill checks.',
            suggestion="Consider lowering DCs or adding alternative paths for failed checks.",
            scene=hard[0].scene_id,
        ))

    bloody = [s for s in scenes if s.wounds >= 2]
    if bloody:
        recommendations.append(Recommendation(
            priority="medium",
            type="balance",
            title="High Damage Scene",
            description=f'Scene "{bloody[0].title}" deals significant damage to players.',
            suggestion="Consider adding healing opportunities before or after this scene.",
            scene=bloody[0].scene_id,
        ))

    if coherence.breadcrumb_strength in (BreadcrumbStrength.NONE, BreadcrumbStrength.WEAK):
        recommendations.append(Recommendation(
            priority="medium",
            type="coherence",
            title="Weak Navigation Breadcrumbs",
            description="Scenes lack clear direction to the next location.",
            suggestion="Add hints in narrative text or NPC dialogue pointing to the next scene.",
        ))

    actionable = [vc for vc in critiques if vc.validation.is_actionable]
    if actionable:
        recommendations.append(Recommendation(
            priority="medium",
            type="information",
            title="Unresolved Player Questions",
            description=f"{len(actionable)} player critique(s) are not covered by authored content.",
            suggestion="Add the missing detail to the scene, or record it as an authored mystery.",
            scene=actionable[0].critique.scene_id,
        ))

    failed = [lookup for lookup in lookups if not lookup.found]
    if failed:
        kinds = ", ".join(sorted({lookup.question_type for lookup in failed}))
        recommendations.append(Recommendation(
            priority="high" if len(failed) > URGENT_FAILED_LOOKUPS else "medium",
            type="information",
            title="Missing Information in GM Overlay",
            description=f"{len(failed)} player question(s) had no answer in the content ({kinds}).",
            suggestion="Add NPC descriptions, motivations and scene detail the GM can read out.",
            scene=failed[0].scene_id,
        ))

    if coherence.npc_continuity_issues:
        recommendations.append(Recommendation(
            priority="low",
            type="npc",
            title="NPC Continuity Issues",
            description=f"Found {len(coherence.npc_continuity_issues)} potential NPC continuity issue(s).",
            suggestion="Review NPC states across scenes to ensure logical progression.",
        ))

    if coherence.pace_score < 50:
        recommendations.append(Recommendation(
            priority="low",
            type="pacing",
            title="Unbalanced Pacing",
            description=f"Adventure pacing score is {coherence.pace_score}/100.",
            suggestion="Consider adding more variety between action, social, and exploration scenes.",
        ))

    return sorted(recommendations, key=lambda r: _PRIORITY_ORDER[r.priority])


def build_report(
    graph: ContentGraph,
    config: RunConfiguration,
    final_state: StateSnapshot,
    log: Sequence[EventLogEntry],
    issues: Sequence[Issue],
    critiques: Sequence[ValidatedCritique],
    difficulty: DifficultyMetrics,
    coherence: CoherenceReport,
    dice: DiceStats,
    termination: TerminationReason,
    termination_details: str = "",
    turns: int = 0,
    archetype_report: ArchetypeReport | None = None,
    player: str = "",
    lookups: Sequence[InformationLookup] = (),
) -> Report:
    """Assemble a Report. Pure: the same inputs always build an equal Report.

    Issues are sorted by severity (stable, so analyzer order is kept within
    a severity).
    """
    ordered = tuple(sorted(issues, key=lambda i: i.severity.rank))
    scenes = scene_breakdowns(graph, log, ordered)
    return Report(
        adventure_id=graph.adventure_id,
        adventure_title=graph.adventure.title or graph.adventure_id,
        config=config,
        verdict=_verdict(termination, ordered, critiques),
        termination=termination,
        termination_scene=final_state.scene_id,
        termination_details=termination_details,
        turns=turns,
        scenes_total=len(graph.scenes),
        final_state=final_state,
        scenes=tuple(scenes),
        issues=ordered,
        critiques=tuple(critiques),
        difficulty=difficulty,
        coherence=coherence,
        dice=dice.to_dict(),
        recommendations=tuple(generate_recommendations(scenes, ordered, critiques, coherence, lookups)),
        events=tuple(log),
        archetype_report=archetype_report,
        player=player,
        lookups=tuple(lookups),
    )


# =============================================================================
# Text rendering
# =============================================================================


def render_text(report: Report) -> str:
    """Plain-text report with fixed section order.

    Sections: header, summary, issues, scene breakdown, unanswered lookups
    (when any), recommendations, and an archetype section when an archetype
    played.
    """
    summary = report.summary()
    lines = ["=" * 80, f"ADVENTURE SIMULATION REPORT: {report.adventure_title}", "=" * 80]
    lines.append(f"Adventure:     {report.adventure_id}")
    lines.append(f"Run:           {report.config.label}")
    lines.append(f"Player:        {report.player}")
    lines.append(f"Verdict:       {report.verdict.value.upper()}")
    lines.append(f"Termination:   {report.termination.value} at {report.termination_scene}")
    if report.termination_details:
        lines.append(f"Details:       {report.termination_details}")

    lines += ["", "-" * 80, "SUMMARY", "-" * 80]
    lines.append(f"Scenes:        {summary['scenes_visited']} / {summary['scenes_total']} visited")
    lines.append(f"Turns:         {summary['turns']}")
    lines.append(f"Wounds:        {summary['wounds']} / {report.final_state.max_wounds}")
    lines.append(f"Near Death:    {report.difficulty.near_death_count}")
    lines.append(f"Skill Checks:  {summary['skill_checks_passed']} / {summary['skill_checks_made']} passed")
    lines.append(f"Triggers:      {summary['triggers_fired']}")
    if report.lookups:
        lines.append(f"Info Lookups:  {summary['information_lookups_succeeded']} / "
                     f"{summary['information_lookups_attempted']} found")
    lines.append(f"Difficulty:    {report.difficulty.rating.value.upper()}")
    lines.append(f"Avg / Max DC:  {report.difficulty.average_dc:.1f} / {report.difficulty.max_dc}")
    lines.append(f"Breadcrumbs:   {report.coherence.breadcrumb_strength.value.upper()}")
    lines.append(f"Pacing:        {report.coherence.pace_score}/100")
    lines.append(f"Coherence:     {report.coherence.score}/100")
    lines.append(f"Dice:          {report.dice['total_rolls']} rolls, mean {report.dice['mean']:.1f}, "
                 f"nat 20s {report.dice['critical_successes']}, nat 1s {report.dice['critical_failures']}")

    lines += ["", "-" * 80, "ISSUES", "-" * 80]
    if not report.issues and not report.critiques:
        lines.append("  (none)")
    for issue in report.issues:
        lines.append(f"  {issue.severity.value.upper():<8} [{issue.type.value}] {issue.description}")
        lines.append(f"           Scenes: {', '.join(issue.scenes)}")
    if report.critiques:
        lines.append(f"  Player critiques: {len(report.critiques)} raised, {len(report.actionable_critiques)} actionable")
        for vc in report.critiques:
            c, v = vc.critique, vc.validation
            lines.append(f"  {v.status.value:<20} ({c.scene_id}) \"{c.text}\"")
            lines.append(f"           {v.justification} [{v.confidence.value}]")

    lines += ["", "-" * 80, "SCENE BREAKDOWN", "-" * 80]
    for i, scene in enumerate(report.scenes, 1):
        line = f"  {i}. {scene.title} ({scene.scene_id})"
        if scene.visits > 1:
            line += f" x{scene.visits}"
        if scene.wounds:
            line += f" wounds {scene.wounds}"
        if scene.checks_attempted:
            line += f" checks {scene.checks_passed}/{scene.checks_attempted}"
        if scene.triggers_available:
            line += f" triggers {scene.triggers_fired}/{scene.triggers_available}"
        if scene.npcs_present:
            line += f" npcs {scene.npcs_interacted}/{len(scene.npcs_present)}"
        lines.append(line)
        for text in scene.issues:
            lines.append(f"      {text}")

    if report.failed_lookups:
        lines += ["", "-" * 80, "UNANSWERED LOOKUPS", "-" * 80]
        for lookup in report.failed_lookups:
            lines.append(f"  {lookup.severity.upper():<8} ({lookup.scene_id}) \"{lookup.text}\"")
            lines.append(f"           Searched: {', '.join(lookup.search_path)}")

    lines += ["", "-" * 80, "RECOMMENDATIONS", "-" * 80]
    if not report.recommendations:
        lines.append("  (none)")
    for rec in report.recommendations:
        lines.append(f"  [{rec.priority.upper()}] [{rec.type.upper()}] {rec.title}")
        lines.append(f"      {rec.description}")
        lines.append(f"      -> {rec.suggestion}")
        if rec.scene:
            lines.append(f"      Scene: {rec.scene}")

    if report.archetype_report is not None:
        ar = report.archetype_report
        lines += ["", "-" * 80, f"ARCHETYPE: {ar.archetype}", "-" * 80]
        for title, entries in (
            ("Successful paths", ar.successful_paths),
            ("Unhandled actions", ar.failed_actions),
            ("Unanswered questions", ar.unanswered_questions),
        ):
            if entries:
                lines.append(f"  {title}:")
                lines += [f"    - {entry}" for entry in entries]
        if ar.emotional_arc:
            lines.append("  Emotional arc (tension / satisfaction / engagement):")
            for beat in ar.emotional_arc:
                lines.append(f"    {beat.scene_id:<24} {beat.tension:>3} / {beat.satisfaction:>3} / {beat.engagement:>3}")

    lines.append("=" * 80)
    return "\n".join(lines) + "\n"
