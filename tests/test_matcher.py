"""
Tests for the catalog matcher
"""

import pytest

from model_optimizer.catalog import DEFAULT_CATALOG, ModelDescriptor
from model_optimizer.hardware import ResourceProfile
from model_optimizer.matcher import (
    LIGHTWEIGHT_SUGGESTIONS,
    NOTE_FULL_CONTEXT,
    NOTE_REDUCE_ON_OOM,
    NOTE_SLOWER,
    Tier,
    classify,
    match_catalog,
)


def profile_for(available_ram: int, max_size: int) -> ResourceProfile:
    """Build a profile with the given usable RAM and binding constraint"""
    return ResourceProfile(total_ram_gb=available_ram + 4, vram_gb=max_size)


class TestScenarios:
    """Exact outputs for known inputs"""

    @pytest.fixture
    def entry(self):
        return ModelDescriptor("qwen2.5-coder:7b-instruct-q5_K_M", 5, 6, 32768, "Efficient 7B")

    def test_optimal_full_context(self, entry):
        profile = profile_for(available_ram=20, max_size=20)
        assert profile.max_model_size_gb == 20

        fit = classify(entry, profile)
        assert fit.tier is Tier.OPTIMAL
        assert fit.adjusted_context == 32768
        assert fit.note == NOTE_FULL_CONTEXT

    def test_optimal_halved_context(self, entry):
        profile = profile_for(available_ram=8, max_size=8)

        fit = classify(entry, profile)
        assert fit.tier is Tier.OPTIMAL
        assert fit.adjusted_context == 16384
        assert fit.note == NOTE_REDUCE_ON_OOM

    def test_reduced_scales_context(self):
        entry = ModelDescriptor("qwen2.5-coder:14b-instruct-q5_K_M", 12, 16, 32768, "Great 14B")
        profile = profile_for(available_ram=14, max_size=14)

        fit = classify(entry, profile)
        assert fit.tier is Tier.REDUCED
        assert fit.adjusted_context == 28672
        assert fit.note == NOTE_SLOWER

    def test_tiny_host_gets_fallback(self):
        profile = profile_for(available_ram=1, max_size=1)

        result = match_catalog(DEFAULT_CATALOG, profile)
        assert result.optimal == ()
        assert result.reduced == ()
        assert result.is_empty
        assert result.lightweight_suggestions == LIGHTWEIGHT_SUGGESTIONS


class TestTiers:
    def test_rec_boundary_is_optimal(self):
        entry = ModelDescriptor("m:1", 4, 8, 8192, "")
        assert classify(entry, profile_for(available_ram=8, max_size=8)).tier is Tier.OPTIMAL

    def test_min_boundary_is_reduced(self):
        entry = ModelDescriptor("m:1", 4, 8, 8192, "")
        fit = classify(entry, profile_for(available_ram=4, max_size=4))
        assert fit.tier is Tier.REDUCED
        assert fit.adjusted_context == 4096

    def test_below_min_is_unsupported(self):
        entry = ModelDescriptor("m:1", 4, 8, 8192, "")
        assert classify(entry, profile_for(available_ram=3, max_size=3)).tier is Tier.UNSUPPORTED

    def test_headroom_boundary(self):
        entry = ModelDescriptor("m:1", 4, 8, 8192, "")
        # available RAM exactly rec + 4 still gets the full context
        fit = classify(entry, profile_for(available_ram=12, max_size=8))
        assert fit.adjusted_context == 8192
        fit = classify(entry, profile_for(available_ram=11, max_size=8))
        assert fit.adjusted_context == 4096

    def test_reduction_uses_true_division(self):
        # 10/12 floored to 0 would zero the context
        entry = ModelDescriptor("deepseek-coder-v2:16b-lite-instruct-q4_K_M", 10, 12, 16384, "")
        fit = classify(entry, profile_for(available_ram=10, max_size=10))
        assert fit.adjusted_context == 13653

    def test_odd_context_halving_floors(self):
        entry = ModelDescriptor("m:1", 1, 2, 4097, "")
        fit = classify(entry, profile_for(available_ram=2, max_size=2))
        assert fit.adjusted_context == 2048

    @pytest.mark.parametrize("max_size", [0, 2, 3, 5, 6, 8, 10, 12, 14, 16, 20, 24, 64])
    def test_partition_holds_for_default_catalog(self, max_size):
        result = match_catalog(DEFAULT_CATALOG, profile_for(available_ram=max_size, max_size=max_size))
        optimal = {fit.name for fit in result.optimal}
        reduced = {fit.name for fit in result.reduced}

        assert not optimal & reduced
        for d in DEFAULT_CATALOG:
            if max_size >= d.rec_gb:
                assert d.name in optimal
            elif max_size >= d.min_gb:
                assert d.name in reduced
            else:
                assert d.name not in optimal and d.name not in reduced


class TestMatchCatalog:
    def test_order_is_preserved(self, small_catalog):
        # Smallest first to prove the result is not sorted by fit
        catalog = list(reversed(small_catalog))
        result = match_catalog(catalog, profile_for(available_ram=40, max_size=40))
        assert [fit.name for fit in result.optimal] == ["small:7b", "mid:14b", "big:32b"]

    def test_idempotent(self, small_catalog):
        profile = profile_for(available_ram=14, max_size=14)
        assert match_catalog(small_catalog, profile) == match_catalog(small_catalog, profile)

    def test_mixed_tiers(self, small_catalog):
        result = match_catalog(small_catalog, profile_for(available_ram=14, max_size=14))

        assert [fit.name for fit in result.optimal] == ["small:7b"]
        assert [fit.name for fit in result.reduced] == ["mid:14b"]
        assert [fit.name for fit in result.candidates] == ["small:7b", "mid:14b"]
        assert not result.is_empty
        assert result.lightweight_suggestions == ()
        assert result.max_model_size_gb == 14

    def test_vram_is_binding_constraint(self, small_catalog):
        profile = ResourceProfile(total_ram_gb=64, vram_gb=6)
        result = match_catalog(small_catalog, profile)

        assert [fit.name for fit in result.optimal] == ["small:7b"]
        # 60GB usable RAM leaves plenty of headroom
        assert result.optimal[0].adjusted_context == 32768
        assert result.reduced == ()

    def test_unified_memory_uses_ram(self, small_catalog):
        profile = ResourceProfile(total_ram_gb=24, vram_gb=0, is_unified_memory=True)
        assert profile.max_model_size_gb == 20
        result = match_catalog(small_catalog, profile)

        assert [fit.name for fit in result.optimal] == ["mid:14b", "small:7b"]
        assert result.optimal[0].adjusted_context == 32768
        assert result.optimal[1].adjusted_context == 32768
        assert [fit.name for fit in result.reduced] == ["big:32b"]
        assert result.reduced[0].adjusted_context == 27306

    def test_empty_catalog(self):
        result = match_catalog([], profile_for(available_ram=32, max_size=32))
        assert result.is_empty


if __name__ == "__main__":
    pytest.main([__file__])
