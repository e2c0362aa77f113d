"""Command-line interface for the adventure simulator.

Subcommands:
    list                    Adventures available in the adventures path
    check <adventure>       Load and statically analyze an adventure
    run <adventure>         One simulation run, report written to disk
    batch <adventure>       A preset batch of runs plus aggregate statistics

Examples:
    adventure-sim list
    adventure-sim check neon-requiem
    adventure-sim run neon-requiem --dice cursed --gm adversarial --seed 7
    adventure-sim run neon-requiem --archetype detective
    adventure-sim batch neon-requiem --mode stress --runs 10 --workers 4
"""

from __future__ import annotations

import argparse
import logging
import sys

from adventure_sim.agents.archetypes import ARCHETYPES
from adventure_sim.analysis.aggregate import render_aggregate
from adventure_sim.analysis.deadends import analyze_static
from adventure_sim.engine.runner import run_simulation
from adventure_sim.errors import ContentError
from adventure_sim.models.config import DiceMode, GMBehavior, PlayerBehavior, RunConfiguration, RunMode
from adventure_sim.parameters import (
    DEFAULT_MAX_TURNS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_RUNS_PER_CONFIG,
    DEFAULT_TIMEOUT_SECONDS,
)
from adventure_sim.reporting.report import Verdict, render_text
from adventure_sim.storage import get_adventure_repository, get_report_repository
from adventure_sim.testing.batch_runner import BatchRunner, configs_for_mode

logger = logging.getLogger(__name__)


def _values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adventure-sim",
        description="Simulate and analyze tabletop adventures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:")[1].rstrip() if __doc__ else None,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--adventures", default=None, help="Adventures directory (default: from environment)")
    parser.add_argument("--reports", default=None, help="Reports directory (default: from environment)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List available adventures")

    check = subparsers.add_parser("check", help="Load and statically analyze an adventure")
    check.add_argument("adventure", help="Adventure id or path to an adventure directory")

    run = subparsers.add_parser("run", help="Run a single simulation")
    run.add_argument("adventure", help="Adventure id or path to an adventure directory")
    run.add_argument("--dice", choices=_values(DiceMode), default=DiceMode.FAIR.value)
    run.add_argument("--gm", choices=_values(GMBehavior), default=GMBehavior.THOROUGH.value)
    run.add_argument("--player", choices=_values(PlayerBehavior), default=PlayerBehavior.THOROUGH.value)
    run.add_argument("--archetype", choices=sorted(ARCHETYPES), default=None, help="Overrides --player")
    run.add_argument("--seed", type=int, default=0)
    run.add_argument("--max-turns", type=int, default=DEFAULT_MAX_TURNS)
    run.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS, help="Wall-clock seconds")
    run.add_argument("--no-halt", action="store_true", help="Keep running after a dead end until the turn limit")
    run.add_argument("--fuzzy", action="store_true", help="Fuzzy breadcrumb matching")
    run.add_argument("--no-save", action="store_true", help="Print the report without writing it")

    batch = subparsers.add_parser("batch", help="Run a preset batch of simulations")
    batch.add_argument("adventure", help="Adventure id or path to an adventure directory")
    batch.add_argument("--mode", choices=_values(RunMode), default=RunMode.QUICK.value)
    batch.add_argument(
        "--runs", type=int, default=DEFAULT_RUNS_PER_CONFIG,
        help=f"Runs per configuration (default: {DEFAULT_RUNS_PER_CONFIG})",
    )
    batch.add_argument("--seed", type=int, default=0, help="Base seed (run i uses seed + i)")
    batch.add_argument(
        "--workers", type=int, default=DEFAULT_MAX_WORKERS,
        help=f"Parallel workers, 1 runs inline (default: {DEFAULT_MAX_WORKERS})",
    )
    batch.add_argument("--max-turns", type=int, default=DEFAULT_MAX_TURNS)
    return parser


# =============================================================================
# Commands
# =============================================================================


def cmd_list(args: argparse.Namespace) -> int:
    adventures = get_adventure_repository(args.adventures).list_adventures()
    if not adventures:
        print("No adventures found")
        return 0
    for adventure in adventures:
        print(f"{adventure['id']:<30} {adventure['scenes']:>4} scenes  {adventure['title']}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    graph = get_adventure_repository(args.adventures).load(args.adventure)
    static = analyze_static(graph)
    print(f"{graph.adventure_id}: {len(graph.scenes)} scenes, {len(static.reachable)} reachable")
    for issue in static.issues:
        print(f"  {issue.severity.value.upper():<8} [{issue.type.value}] {issue.description}")
    print("PASS" if static.passed else "FAIL")
    return 0 if static.passed else 1


def cmd_run(args: argparse.Namespace) -> int:
    graph = get_adventure_repository(args.adventures).load(args.adventure)
    config = RunConfiguration(
        dice_mode=args.dice,
        gm_behavior=args.gm,
        player_behavior=args.player,
        archetype=args.archetype,
        seed=args.seed,
        max_turns=args.max_turns,
        timeout_seconds=args.timeout,
        halt_on_dead_end=not args.no_halt,
        breadcrumb_matching="fuzzy" if args.fuzzy else "exact",
    )
    report = run_simulation(graph, config)
    text = render_text(report)
    print(text, end="")
    if not args.no_save:
        repo = get_report_repository(args.reports)
        report_id = repo.save_report(report.to_dict(), text)
        print(f"Report saved as {report_id}")
    return 1 if report.verdict in (Verdict.FAIL, Verdict.INVALID) else 0


def cmd_batch(args: argparse.Namespace) -> int:
    adventures = get_adventure_repository(args.adventures)
    path = adventures.get_adventure_path(args.adventure)
    if path is None:
        raise ContentError(f"Adventure {args.adventure!r} not found")
    configs = configs_for_mode(RunMode(args.mode), args.seed, args.runs, max_turns=args.max_turns)
    runner = BatchRunner(path, report_repository=get_report_repository(args.reports), max_workers=args.workers)
    try:
        results = runner.run(configs, mode=args.mode)
    except KeyboardInterrupt:
        runner.cancel()
        print("Batch interrupted", file=sys.stderr)
        return 130
    print(render_aggregate(results.aggregate, title=f"{results.adventure_id} {args.mode}"), end="")
    print(f"Completed {results.total_runs} runs in {results.duration_seconds:.1f} seconds")
    return 1 if results.errors else 0


COMMANDS = {
    "list": cmd_list,
    "check": cmd_check,
    "run": cmd_run,
    "batch": cmd_batch,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for the adventure-sim console script."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    try:
        return COMMANDS[args.command](args)
    except ContentError as e:
        print(f"Content error: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
