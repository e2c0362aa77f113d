"""Tunable analysis parameters for the adventure simulator.

This module is the single source of truth for every threshold and default
used by the simulation engine and the analyzers. Run configurations read
their defaults from here; analyzers read their bands from here.

Parameter Categories:
- Run Limits: Turn, time, and retry budgets for a single run
- Dice: Sampling behaviour for the weighted dice modes
- Character: Default wound threshold and skill bonuses
- NPCs: Disposition range and interaction effects
- Difficulty: Rating bands and spike detection
- Coherence: Breadcrumb matching and pacing targets
- Archetypes: Trait thresholds for question and action generation
- Validation: Heuristic matching limits and tone rules for the GM validator
- Lookups: When failed information lookups become urgent
- Batches: Aggregate sizing

Usage:
    from adventure_sim.parameters import DEFAULT_MAX_TURNS, WOUND_BANDS
"""

# =============================================================================
# RUN LIMITS
# =============================================================================

DEFAULT_MAX_TURNS = 200
"""Hard cap on simulation turns before a run is force-terminated.

A turn is one GM decision: firing a trigger, calling a check, or taking an
exit. Adventures with 20-30 scenes typically finish in 60-120 turns under the
thorough GM, so 200 leaves room for revisits without hiding runaway loops.
"""

DEFAULT_TIMEOUT_SECONDS = 30.0
"""Wall-clock budget for a single run, in seconds."""

DEFAULT_RETRY_LIMIT = 3
"""Maximum attempts a player makes at the same challenge within one run.

Once exhausted the challenge is no longer offered, which is what turns a
repeatedly failed gating check into a soft lock.
"""

POSSIBLE_LOOP_VISITS = 2
"""A scene entered more than this many times raises a possible_loop finding."""


# =============================================================================
# DICE
# =============================================================================

LUCKY_DRAWS = 2
"""Number of uniform draws per die in lucky/unlucky mode (keep max/min).

With k=2 on a d20 the expected roll is ~13.8 (lucky) and ~7.2 (unlucky).
"""

STREAK_WINDOW = 3
"""Number of recent rolls considered by the streaky dice mode."""

STREAK_THRESHOLD = 0.15
"""Mean normalised deviation over the window that flips streaky mode hot/cold.

Each roll contributes (roll - expected) / faces, so a window of three rolls
averaging 3+ above expectation on a d20 puts the engine into a hot streak.
"""

CRITICAL_SUCCESS = 20
"""Natural roll counted as a critical success on a d20 check."""

CRITICAL_FAILURE = 1
"""Natural roll counted as a critical failure on a d20 check."""


# =============================================================================
# CHARACTER
# =============================================================================

DEFAULT_MAX_WOUNDS = 6
"""Wound count at which the character dies. Near death is one below this."""

DEFAULT_SKILL_BONUSES: dict[str, int] = {
    "Tech": 6,
    "Netrunning": 5,
    "Perception": 4,
    "Investigation": 3,
    "Stealth": 3,
    "Persuasion": 2,
    "Athletics": 2,
    "Combat": 2,
    "Medicine": 1,
}
"""Skill bonuses used when an adventure does not declare its own."""


# =============================================================================
# NPCS
# =============================================================================

DISPOSITION_MIN = -100
DISPOSITION_MAX = 100
"""Bounds of an NPC's disposition toward the party. Every NPC starts at 0."""

CONVERSE_DISPOSITION = 5
"""Disposition change when the player talks with an NPC."""

CONFRONT_DISPOSITION = -20
"""Disposition change when the player confronts an NPC."""


# =============================================================================
# DIFFICULTY
# =============================================================================

WOUND_BANDS = (0.5, 1.0, 2.0, 3.0)
"""Wounds-per-scene thresholds separating trivial/easy/moderate/hard/deadly.

Each band starts at its threshold, so 0.5 is easy. Deadly is the exception:
it starts strictly above the last threshold, so exactly 3.0 is still hard.
"""

FAIL_RATE_BANDS = (0.10, 0.25, 0.40, 0.55)
"""Check fail-rate thresholds separating trivial/easy/moderate/hard/deadly."""

DIFFICULTY_SPIKE_BASELINE = 10
"""Baseline difficulty class used for spike detection."""

DIFFICULTY_SPIKE_DELTA = 4
"""A check counts toward a spike when its DC exceeds baseline + delta."""

DIFFICULTY_SPIKE_RUN = 3
"""Consecutive over-threshold checks with no rest that constitute a spike."""


# =============================================================================
# COHERENCE
# =============================================================================

BREADCRUMB_MATCHING = "exact"
"""Default breadcrumb text matching: "exact" substring or "fuzzy" token match."""

FUZZY_THRESHOLD = 0.8
"""Minimum similarity for a fuzzy token match (0-1).

Applied per token with difflib; a phrase matches when every significant token
of the phrase has a counterpart in the text at or above this ratio.
"""

DIRECTION_PHRASES = (
    "head to",
    "head for",
    "go to",
    "travel to",
    "make your way to",
    "return to",
    "leads to",
    "lead to",
    "follow",
    "find",
    "meet",
    "seek",
    "toward",
    "towards",
)
"""Phrases that turn a mention of a destination into explicit direction."""

BREADCRUMB_SCORES = {"strong": 100, "medium": 70, "weak": 40, "none": 0}
"""Score contributed by each breadcrumb strength to the coherence score."""

IDEAL_PACING = {"action": 0.3, "social": 0.4, "exploration": 0.3}
"""Target share of action, social, and exploration scenes on a traversed path."""

NPC_CONTINUITY_PENALTY = 10
"""Coherence score points deducted per NPC continuity break."""

INFORMATION_GAP_PENALTY = 5
"""Coherence score points deducted per information gap."""


# =============================================================================
# ARCHETYPES
# =============================================================================

HOOK_CURIOSITY_THRESHOLD = 50
"""Archetypes at or above this curiosity always ask about authored hooks."""

BOUNDARY_CREATIVITY_THRESHOLD = 80
"""Archetypes at or above this creativity attempt boundary-testing actions."""


# =============================================================================
# VALIDATION
# =============================================================================

HEURISTIC_MIN_TERM_LENGTH = 4
"""Minimum word length considered by the heuristic mystery matcher."""

HEURISTIC_MIN_TERM_MATCHES = 2
"""Shared terms required before a heuristic mystery match is accepted."""

RESTRAINED_TONES = ("noir", "bleak", "melancholic")
"""Tone keywords under which sparse emotional exposition is a deliberate choice."""

RESTRAINED_THEMES = ("grief", "loss")
"""Themes under which sparse emotional exposition is a deliberate choice."""


# =============================================================================
# LOOKUPS
# =============================================================================

URGENT_FAILED_LOOKUPS = 2
"""Failed information lookups above this count make the recommendation high priority."""


# =============================================================================
# BATCHES
# =============================================================================

DEFAULT_RUNS_PER_CONFIG = 5
"""Seeds run per configuration in a batch.

Five seeds per (dice mode, GM mode, player mode) cell is enough to separate
structural defects, which reproduce on every seed, from luck-driven ones.
Stress batches should raise this.
"""

DEFAULT_MAX_WORKERS = 4
"""Worker processes used by the batch runner."""
