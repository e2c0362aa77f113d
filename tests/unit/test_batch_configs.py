"""Tests for run-mode presets in adventure_sim.testing.batch_runner.

Tests cover:
- Variant counts per run mode
- Seeds and overrides applied to every run
- Invalid arguments
"""

import pytest

from adventure_sim.agents.archetypes import ARCHETYPES
from adventure_sim.models.config import DiceMode, GMBehavior, PlayerBehavior, RunConfiguration, RunMode
from adventure_sim.testing.batch_runner import BatchResults, configs_for_mode


class TestConfigsForMode:
    """Tests for configs_for_mode."""

    @pytest.mark.parametrize(
        "mode,variants",
        [
            (RunMode.QUICK, 1),
            (RunMode.FULL, 44),
            (RunMode.STRESS, 6),
            (RunMode.DEAD_END_DETECTION, 9),
            (RunMode.SPEEDRUN, 2),
        ],
    )
    def test_variant_counts(self, mode, variants):
        """Test each preset expands to variants x runs configurations."""
        configs = configs_for_mode(mode, runs_per_config=3)
        assert len(configs) == variants * 3
        assert all(isinstance(c, RunConfiguration) and c.mode == mode for c in configs)

    def test_full_covers_every_archetype(self):
        """Test the full preset plays every archetype."""
        configs = configs_for_mode(RunMode.FULL, runs_per_config=1)
        assert {c.archetype for c in configs if c.archetype} == set(ARCHETYPES)

    def test_stress_is_adversarial_and_unlucky(self):
        """Test stress runs use an adversarial GM and bad dice."""
        configs = configs_for_mode(RunMode.STRESS, runs_per_config=1)
        assert {c.gm_behavior for c in configs} == {GMBehavior.ADVERSARIAL}
        assert {c.dice_mode for c in configs} == {DiceMode.UNLUCKY, DiceMode.CURSED}

    def test_seeds_and_overrides(self):
        """Test seeds count up from base_seed and overrides reach every run."""
        configs = configs_for_mode("speedrun", base_seed=100, runs_per_config=2, max_turns=25)
        assert [c.seed for c in configs] == [100, 101, 100, 101]
        assert {c.max_turns for c in configs} == {25}
        assert {c.player_behavior for c in configs} == {PlayerBehavior.SPEEDRUN}

    def test_labels_unique_within_batch(self):
        """Test every run in a preset gets a distinct label."""
        configs = configs_for_mode(RunMode.DEAD_END_DETECTION, runs_per_config=2)
        assert len({c.label for c in configs}) == len(configs)

    def test_invalid_arguments(self):
        """Test bad run counts and unknown modes are rejected."""
        with pytest.raises(ValueError, match="at least 1"):
            configs_for_mode(RunMode.QUICK, runs_per_config=0)
        with pytest.raises(ValueError):
            configs_for_mode("marathon")


class TestBatchResults:
    """Tests for BatchResults bookkeeping."""

    def test_aggregate_sorted_by_label(self):
        """Test aggregation sorts reports and errors by label."""
        results = BatchResults(adventure_id="a", mode="quick")
        results.errors.append({"label": "z", "error": "ValueError: x"})
        results.compute_aggregate()
        assert results.total_runs == 1
        assert results.aggregate["errored_runs"] == 1
        assert results.to_dict()["errors"] == [{"label": "z", "error": "ValueError: x"}]
