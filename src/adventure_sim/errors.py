"""Exception taxonomy for the adventure simulator.

- ContentError: malformed or inconsistent adventure content. Raised at load
  time and always surfaced to the caller; no report is produced.
- SimulationFault: an engine invariant was violated mid-run. Aborts only the
  current run, which is reported as invalid.
- TimeoutTermination: a run exceeded its wall-clock budget. Expected and
  non-fatal; the runner converts it into an INFO finding.

Analysis findings are not exceptions; see adventure_sim.models.issues.
"""


class AdventureSimError(Exception):
    """Base class for all simulator errors."""


class ContentError(AdventureSimError, ValueError):
    """Adventure content failed to load.

    Attributes:
        problems: Every problem found, so authors can fix them in one pass
    """

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = list(problems or [])
        if self.problems:
            details = "\n".join(f"  - {p}" for p in self.problems)
            message = f"{message}:\n{details}"
        super().__init__(message)


class SimulationFault(AdventureSimError):
    """An engine invariant was violated during a run."""

    def __init__(self, message: str, scene_id: str | None = None):
        self.scene_id = scene_id
        super().__init__(message)


class TimeoutTermination(AdventureSimError):
    """A run exceeded its wall-clock timeout."""

    def __init__(self, elapsed: float, limit: float):
        self.elapsed = elapsed
        self.limit = limit
        super().__init__(f"Run exceeded {limit:.1f}s timeout after {elapsed:.1f}s")
