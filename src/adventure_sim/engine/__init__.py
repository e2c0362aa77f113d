"""Simulation engine for the adventure simulator.

This module contains the core run machinery:
- dice: Seeded dice engine with weighting modes
- tracker: Mutable game state and append-only event log
- runner: Drives GM and Player agents through one run (import it directly,
  it depends on the agent and analysis packages)

Usage:
    from adventure_sim.content import load_adventure
    from adventure_sim.engine.runner import run_simulation
    from adventure_sim.models import RunConfiguration

    graph = load_adventure("adventures/neon-requiem")
    report = run_simulation(graph, RunConfiguration(seed=7))
    print(report.verdict)
"""

from adventure_sim.engine.dice import (
    CheckOutcome,
    DiceEngine,
    DiceStats,
    RollOutcome,
    parse_formula,
    success_chance,
)
from adventure_sim.engine.tracker import GameStateTracker

__all__ = [
    "CheckOutcome",
    "DiceEngine",
    "DiceStats",
    "GameStateTracker",
    "RollOutcome",
    "parse_formula",
    "success_chance",
]
