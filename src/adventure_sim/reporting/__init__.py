"""Run reports: structured Report objects plus deterministic text rendering."""

from adventure_sim.reporting.report import (
    Recommendation,
    Report,
    SceneBreakdown,
    Verdict,
    build_report,
    generate_recommendations,
    render_text,
    scene_breakdowns,
    scene_stats,
)

__all__ = [
    "Recommendation",
    "Report",
    "SceneBreakdown",
    "Verdict",
    "build_report",
    "generate_recommendations",
    "render_text",
    "scene_breakdowns",
    "scene_stats",
]
