"""Batch simulation for the adventure simulator.

Runs many simulations of one adventure in parallel through Python's
multiprocessing and aggregates their reports.

Key classes:
- BatchRunner: Dispatches runs to a process pool and persists reports
- BatchResults: Per-run reports plus aggregate statistics

Usage:
    from adventure_sim.testing import RunMode, run_batch

    results = run_batch("adventures/neon-requiem", RunMode.STRESS, base_seed=100)
    results.aggregate["death_rate"]
"""

from adventure_sim.models.config import RunMode

from .batch_runner import BatchResults, BatchRunner, configs_for_mode, run_batch

__all__ = [
    "BatchResults",
    "BatchRunner",
    "RunMode",
    "configs_for_mode",
    "run_batch",
]
