"""Analysis over content graphs and finished runs.

This module provides:

1. Dead-end detection - static reachability/satisfiability and in-run
   dead-end and soft-lock detection
2. Coherence analysis - breadcrumbs, NPC and item continuity, pacing
3. Difficulty metrics - rating bands and difficulty spikes
4. GM validation - reclassification of player critiques
5. Aggregation - statistics over batches of reports
"""

from adventure_sim.analysis.aggregate import aggregate_reports, render_aggregate
from adventure_sim.analysis.coherence import (
    BreadcrumbStrength,
    CoherenceReport,
    TextMatcher,
    analyze_coherence,
)
from adventure_sim.analysis.deadends import (
    StaticAnalysis,
    analyze_static,
    detect_dynamic,
    find_flag_cycles,
    find_gate_cycles,
)
from adventure_sim.analysis.difficulty import (
    DifficultyMetrics,
    DifficultyRating,
    calculate_difficulty,
    find_difficulty_spikes,
    rate_difficulty,
)
from adventure_sim.analysis.gm_validator import GMValidator

__all__ = [
    # Aggregate
    "aggregate_reports",
    "render_aggregate",
    # Coherence
    "BreadcrumbStrength",
    "CoherenceReport",
    "TextMatcher",
    "analyze_coherence",
    # Dead ends
    "StaticAnalysis",
    "analyze_static",
    "detect_dynamic",
    "find_flag_cycles",
    "find_gate_cycles",
    # Difficulty
    "DifficultyMetrics",
    "DifficultyRating",
    "calculate_difficulty",
    "find_difficulty_spikes",
    "rate_difficulty",
    # Validation
    "GMValidator",
]
