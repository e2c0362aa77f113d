"""Narrative coherence analysis over a traversed path.

- Breadcrumbs: does each traversed scene point players at where they can go
  next? STRONG is an explicit direction ("head to the Docks"), MEDIUM an
  implicit mention, WEAK an environmental-only hint or a bare exit label,
  NONE nothing at all.
- Continuity: NPC state changes the event log could not explain, and items
  required by a challenge with no earlier way to obtain them.
- Supplementary measures: forward/backward references, information gaps,
  pacing balance, and an overall 0-100 coherence score.
"""

from __future__ import annotations

import difflib
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import networkx as nx

from adventure_sim.content.schemas import ChallengeType, Scene
from adventure_sim.models.config import BreadcrumbMatching
from adventure_sim.models.issues import Issue, IssueType, Severity
from adventure_sim.models.state import EventLogEntry
from adventure_sim.parameters import (
    BREADCRUMB_SCORES,
    DIRECTION_PHRASES,
    FUZZY_THRESHOLD,
    IDEAL_PACING,
    INFORMATION_GAP_PENALTY,
    NPC_CONTINUITY_PENALTY,
)

if TYPE_CHECKING:
    from adventure_sim.content.loader import ContentGraph


class BreadcrumbStrength(str, Enum):
    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"
    NONE = "none"

    @property
    def score(self) -> int:
        return BREADCRUMB_SCORES[self.value]


# =============================================================================
# Text matching
# =============================================================================

_WORD_RE = re.compile(r"[a-z0-9']+")
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


class TextMatcher:
    """Case-insensitive phrase matching, exact or fuzzy.

    Fuzzy matching compares words: every significant word of the phrase
    (three letters or more) must match some word of the text with a
    difflib similarity ratio at or above the threshold.
    """

    def __init__(self, mode: BreadcrumbMatching = BreadcrumbMatching.EXACT, threshold: float = FUZZY_THRESHOLD):
        self.mode = mode
        self.threshold = threshold

    def contains(self, text: str, phrase: str) -> bool:
        if not phrase or not text:
            return False
        text_lower, phrase_lower = text.lower(), phrase.lower()
        if phrase_lower in text_lower:
            return True
        if self.mode == BreadcrumbMatching.EXACT:
            return False
        words = _WORD_RE.findall(text_lower)
        significant = [w for w in _WORD_RE.findall(phrase_lower) if len(w) >= 3]
        if not significant or not words:
            return False
        return all(
            any(difflib.SequenceMatcher(None, target, word).ratio() >= self.threshold for word in words)
            for target in significant
        )


# =============================================================================
# Results
# =============================================================================


@dataclass
class CoherenceReport:
    """Coherence findings for one run."""

    breadcrumbs: dict[str, BreadcrumbStrength] = field(default_factory=dict)
    breadcrumb_strength: BreadcrumbStrength = BreadcrumbStrength.NONE
    forward_references: list[str] = field(default_factory=list)
    backward_references: list[str] = field(default_factory=list)
    npc_continuity_issues: list[str] = field(default_factory=list)
    information_gaps: list[str] = field(default_factory=list)
    pace_score: int = 50
    score: int = 0
    issues: list[Issue] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "breadcrumbs": {sid: s.value for sid, s in self.breadcrumbs.items()},
            "breadcrumb_strength": self.breadcrumb_strength.value,
            "forward_references": self.forward_references,
            "backward_references": self.backward_references,
            "npc_continuity_issues": self.npc_continuity_issues,
            "information_gaps": self.information_gaps,
            "pace_score": self.pace_score,
            "score": self.score,
        }


# =============================================================================
# Breadcrumbs
# =============================================================================


def _destination_names(graph: ContentGraph, scene: Scene) -> list[str]:
    """Names players could be pointed at: target locations, titles, and new NPCs."""
    present = {ref.id for ref in scene.npcs}
    names = []
    for exit_ in scene.exits:
        target = graph.scene(exit_.target)
        names += [target.location, target.title]
        names += [graph.npc(ref.id).name for ref in target.npcs if ref.id not in present]
    seen = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return seen


def score_breadcrumb(graph: ContentGraph, scene: Scene, matcher: TextMatcher) -> BreadcrumbStrength:
    """Classify how clearly a scene points at its exits."""
    names = _destination_names(graph, scene)
    sentences = _SENTENCE_RE.split(scene.narrative)
    for sentence in sentences:
        lowered = sentence.lower()
        if any(phrase in lowered for phrase in DIRECTION_PHRASES) and any(
            matcher.contains(sentence, name) for name in names
        ):
            return BreadcrumbStrength.STRONG
    if any(matcher.contains(e.label, name) for e in scene.exits for name in names):
        return BreadcrumbStrength.STRONG

    hook_text = " ".join(h.text for h in scene.hooks)
    if any(matcher.contains(scene.narrative, n) or matcher.contains(hook_text, n) for n in names):
        return BreadcrumbStrength.MEDIUM
    if any(matcher.contains(scene.environment, n) for n in names) or any(e.label for e in scene.exits):
        return BreadcrumbStrength.WEAK
    return BreadcrumbStrength.NONE


def overall_strength(strengths: Sequence[BreadcrumbStrength]) -> BreadcrumbStrength:
    """Band the share of STRONG/MEDIUM scenes: >0.7 strong, >0.4 medium, >0.1 weak."""
    if not strengths:
        return BreadcrumbStrength.NONE
    good = sum(1 for s in strengths if s in (BreadcrumbStrength.STRONG, BreadcrumbStrength.MEDIUM))
    ratio = good / len(strengths)
    if ratio > 0.7:
        return BreadcrumbStrength.STRONG
    if ratio > 0.4:
        return BreadcrumbStrength.MEDIUM
    if ratio > 0.1 or any(s == BreadcrumbStrength.WEAK for s in strengths):
        return BreadcrumbStrength.WEAK
    return BreadcrumbStrength.NONE


# =============================================================================
# Continuity
# =============================================================================


def npc_continuity_breaks(graph: ContentGraph, log: Sequence[EventLogEntry]) -> list[Issue]:
    """NPC transitions the log records as unexplained."""
    defeated_in: dict[str, str] = {}
    issues = []
    for entry in log:
        for npc_id, change in entry.delta.get("npc_states", {}).items():
            if change["to"] == "defeated":
                defeated_in[npc_id] = entry.scene_id
            elif not change.get("explained", True):
                name = graph.npc(npc_id).name
                origin = defeated_in.get(npc_id, entry.scene_id)
                scenes = (origin, entry.scene_id) if origin != entry.scene_id else (entry.scene_id,)
                issues.append(Issue(
                    type=IssueType.NPC_CONTINUITY_BREAK,
                    severity=Severity.WARNING,
                    scenes=scenes,
                    description=(
                        f"NPC '{name}' was defeated in {origin} but is {change['to']} in "
                        f"{entry.scene_id} with no recovery effect"
                    ),
                    details={"npc": npc_id, "step": entry.step},
                ))
    return issues


def _grant_scenes(graph: ContentGraph, item: str, exclude: tuple[str, str] | None = None) -> set[str]:
    """Scenes that can grant an item, ignoring the (scene, challenge) in exclude."""
    scenes = set()
    for scene_id in graph.scene_order:
        scene = graph.scene(scene_id)
        effects = [t.effects for t in scene.triggers]
        effects += [ref.aggression for ref in scene.npcs if ref.aggression is not None]
        for challenge in scene.challenges:
            if (scene_id, challenge.id) != exclude:
                effects += [challenge.success, challenge.failure]
        if (
            item in scene.items
            or any(entry.item == item for entry in scene.loot)
            or any(item in e.grant_items for e in effects)
        ):
            scenes.add(scene_id)
    return scenes


def item_continuity_breaks(graph: ContentGraph, traversed: Sequence[str]) -> list[Issue]:
    """Challenges on the path requiring an item no earlier scene can grant."""
    issues = []
    for scene_id in dict.fromkeys(traversed):
        scene = graph.scene(scene_id)
        for challenge in scene.challenges:
            item = challenge.requires_item
            if item is None:
                continue
            grants = _grant_scenes(graph, item, exclude=(scene_id, challenge.id))
            if any(g == scene_id or nx.has_path(graph.graph, g, scene_id) for g in grants):
                continue
            issues.append(Issue(
                type=IssueType.ITEM_CONTINUITY_BREAK,
                severity=Severity.WARNING,
                scenes=(scene_id,),
                description=(
                    f"Challenge '{challenge.name}' in '{scene.display_name}' requires "
                    f"'{graph.item(item).name}' but no earlier scene grants it"
                ),
                details={"item": item, "challenge": challenge.id},
            ))
    return issues


# =============================================================================
# Supplementary measures
# =============================================================================


def find_references(graph: ContentGraph, matcher: TextMatcher) -> tuple[list[str], list[str]]:
    """Mentions of later (forward) and earlier (backward) scene locations."""
    forward, backward = [], []
    order = graph.scene_order
    for i, scene_id in enumerate(order):
        scene = graph.scene(scene_id)
        for j, other_id in enumerate(order):
            other = graph.scene(other_id)
            if i == j or not other.location or other.location == scene.location:
                continue
            if matcher.contains(scene.narrative, other.location):
                note = f'Scene "{scene.display_name}" mentions {"future" if j > i else "past"} location "{other.location}"'
                (forward if j > i else backward).append(note)
    return forward, backward


def information_gaps(graph: ContentGraph) -> list[Issue]:
    """Hidden checks without GM text and irreversible triggers without narrative."""
    issues = []
    for scene_id in graph.scene_order:
        scene = graph.scene(scene_id)
        for challenge in scene.challenges:
            if challenge.type == ChallengeType.HIDDEN and not challenge.description:
                issues.append(Issue(
                    type=IssueType.INFORMATION_GAP,
                    severity=Severity.INFO,
                    scenes=(scene_id,),
                    description=f"Hidden check '{challenge.name}' in '{scene.display_name}' has no description for the GM",
                ))
        for trigger in scene.triggers:
            if trigger.irreversible and not trigger.text:
                issues.append(Issue(
                    type=IssueType.INFORMATION_GAP,
                    severity=Severity.INFO,
                    scenes=(scene_id,),
                    description=f"Irreversible trigger '{trigger.label}' in '{scene.display_name}' has no narrative text",
                ))
    return issues


def scene_category(scene: Scene) -> str:
    """Classify a scene as action, social, or exploration for pacing."""
    combat = any(
        "attack" in c.skill.lower() or "combat" in c.skill.lower() or "combat" in c.name.lower()
        for c in scene.challenges
    )
    if combat or any(t.effects.wounds for t in scene.triggers):
        return "action"
    if scene.npcs:
        return "social"
    return "exploration"


def pace_score(scenes: Sequence[Scene]) -> int:
    """100 minus twice the mean deviation (in percent) from the ideal mix."""
    if not scenes:
        return 50
    counts = {"action": 0, "social": 0, "exploration": 0}
    for scene in scenes:
        counts[scene_category(scene)] += 1
    total = len(scenes)
    deviation = sum(abs(counts[k] / total - IDEAL_PACING[k]) for k in counts) / len(counts)
    return int(round(max(0.0, 100 - deviation * 200)))


# =============================================================================
# Entry point
# =============================================================================


def analyze_coherence(
    graph: ContentGraph,
    traversed: Sequence[str],
    log: Sequence[EventLogEntry],
    matching: BreadcrumbMatching = BreadcrumbMatching.EXACT,
    threshold: float = FUZZY_THRESHOLD,
) -> CoherenceReport:
    """Analyze coherence of a traversed path.

    Args:
        graph: Content graph
        traversed: Scene ids in visit order (repeats allowed)
        log: The run's event log
        matching: Breadcrumb text matching mode
        threshold: Fuzzy similarity threshold
    """
    matcher = TextMatcher(matching, threshold)
    report = CoherenceReport()
    unique = list(dict.fromkeys(traversed))

    for scene_id in unique:
        scene = graph.scene(scene_id)
        if scene.is_ending:
            continue
        strength = score_breadcrumb(graph, scene, matcher)
        report.breadcrumbs[scene_id] = strength
        if strength == BreadcrumbStrength.NONE:
            report.issues.append(Issue(
                type=IssueType.WEAK_BREADCRUMB,
                severity=Severity.WARNING,
                scenes=(scene_id,),
                description=f"Scene '{scene.display_name}' gives players no hint of where to go next",
            ))
    report.breadcrumb_strength = overall_strength(list(report.breadcrumbs.values()))

    npc_issues = npc_continuity_breaks(graph, log)
    report.npc_continuity_issues = [i.description for i in npc_issues]
    report.issues.extend(npc_issues)
    report.issues.extend(item_continuity_breaks(graph, unique))

    gaps = information_gaps(graph)
    report.information_gaps = [i.description for i in gaps]
    report.issues.extend(gaps)

    report.forward_references, report.backward_references = find_references(graph, matcher)
    report.pace_score = pace_score([graph.scene(sid) for sid in unique])

    breadcrumb_score = (
        sum(s.score for s in report.breadcrumbs.values()) / len(report.breadcrumbs)
        if report.breadcrumbs
        else BreadcrumbStrength.NONE.score
    )
    score = (breadcrumb_score + report.pace_score) / 2
    score -= NPC_CONTINUITY_PENALTY * len(npc_issues) + INFORMATION_GAP_PENALTY * len(gaps)
    report.score = int(round(max(0.0, min(100.0, score))))
    return report
