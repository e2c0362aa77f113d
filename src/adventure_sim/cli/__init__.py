"""Command-line interface for the adventure simulator."""

from adventure_sim.cli.app import build_parser, main

__all__ = ["build_parser", "main"]
