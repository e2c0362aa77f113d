"""Offline simulation and analysis engine for tabletop adventure content."""

__version__ = "0.1.0"
