"""Run configuration for simulation runs.

A RunConfiguration fully determines a run together with the adventure
content: two runs with equal configurations (including seed) produce
identical reports.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from adventure_sim.parameters import (
    BREADCRUMB_MATCHING,
    DEFAULT_MAX_TURNS,
    DEFAULT_RETRY_LIMIT,
    DEFAULT_TIMEOUT_SECONDS,
    DIFFICULTY_SPIKE_BASELINE,
    DIFFICULTY_SPIKE_DELTA,
    FUZZY_THRESHOLD,
    LUCKY_DRAWS,
)


class RunMode(str, Enum):
    """Batch presets. See adventure_sim.testing.batch_runner.configs_for_mode."""

    QUICK = "quick"
    FULL = "full"
    STRESS = "stress"
    DEAD_END_DETECTION = "dead_end_detection"
    SPEEDRUN = "speedrun"


class DiceMode(str, Enum):
    """Weighting applied by the dice engine."""

    FAIR = "fair"
    LUCKY = "lucky"
    UNLUCKY = "unlucky"
    CURSED = "cursed"
    BLESSED = "blessed"
    STREAKY = "streaky"


class GMBehavior(str, Enum):
    """GM decision policies."""

    THOROUGH = "thorough"
    EFFICIENT = "efficient"
    DRAMATIC = "dramatic"
    ADVERSARIAL = "adversarial"
    SUPPORTIVE = "supportive"
    RANDOM = "random"


class PlayerBehavior(str, Enum):
    """Player decision policies used when no archetype is given."""

    CAUTIOUS = "cautious"
    AGGRESSIVE = "aggressive"
    THOROUGH = "thorough"
    SPEEDRUN = "speedrun"
    OPTIMAL = "optimal"
    RANDOM = "random"


class BreadcrumbMatching(str, Enum):
    """Text matching used for breadcrumb scoring."""

    EXACT = "exact"
    FUZZY = "fuzzy"


class RunConfiguration(BaseModel):
    """Everything that parameterizes a single simulation run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: RunMode = RunMode.QUICK
    dice_mode: DiceMode = DiceMode.FAIR
    gm_behavior: GMBehavior = GMBehavior.THOROUGH
    player_behavior: PlayerBehavior = PlayerBehavior.THOROUGH
    archetype: str | None = Field(
        default=None, description="Archetype id; overrides player_behavior when set"
    )
    seed: int = 0
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=1)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    retry_limit: int = Field(default=DEFAULT_RETRY_LIMIT, ge=1)
    halt_on_dead_end: bool = True
    breadcrumb_matching: BreadcrumbMatching = BreadcrumbMatching(BREADCRUMB_MATCHING)
    fuzzy_threshold: float = Field(default=FUZZY_THRESHOLD, gt=0.0, le=1.0)
    spike_baseline: int = DIFFICULTY_SPIKE_BASELINE
    spike_delta: int = Field(default=DIFFICULTY_SPIKE_DELTA, ge=0)
    lucky_draws: int = Field(default=LUCKY_DRAWS, ge=2)

    @model_validator(mode="after")
    def validate_archetype_id(self) -> "RunConfiguration":
        """Reject blank archetype ids; unknown ids are rejected by the runner."""
        if self.archetype is not None and not self.archetype.strip():
            raise ValueError("archetype must be a non-empty id or omitted")
        return self

    @property
    def label(self) -> str:
        """Short identifier for file names and summaries."""
        player = self.archetype or self.player_behavior.value
        return f"{self.dice_mode.value}-{self.gm_behavior.value}-{player}-seed{self.seed}"
