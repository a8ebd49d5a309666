"""Tests for pool type dispatch and multi-pool quoting."""

import pytest
from structlog.testing import capture_logs

from poolmath.config import PricingConfig
from poolmath.errors import InvalidPoolConfiguration, MaxInRatioError, UnsupportedOperation
from poolmath.math.fixed_point import ONE
from poolmath.pricing import (
    DEFAULT_REGISTRY,
    ComposableStablePricing,
    LinearPricing,
    MetaStablePricing,
    PhantomStablePricing,
    PoolPricing,
    PoolType,
    PricingRegistry,
    StablePricing,
    SwapKind,
    WeightedPricing,
    build_default_registry,
    get_pricing,
    quote_pools,
)
from tests.helpers import TEN, make_stable_pair, make_weighted_pair


class TestPricingRegistry:
    """Tests for PricingRegistry."""

    @pytest.mark.parametrize(
        ("pool_type", "cls"),
        [
            (PoolType.WEIGHTED, WeightedPricing),
            (PoolType.STABLE, StablePricing),
            (PoolType.META_STABLE, MetaStablePricing),
            (PoolType.STABLE_PHANTOM, PhantomStablePricing),
            (PoolType.COMPOSABLE_STABLE, ComposableStablePricing),
            (PoolType.LINEAR, LinearPricing),
        ],
    )
    def test_default_dispatch(self, pool_type, cls):
        """Every pool type maps to its pricing family."""
        pricing = get_pricing(pool_type)
        assert type(pricing) is cls
        assert isinstance(pricing, PoolPricing)

    def test_lookup_by_subgraph_name(self):
        """Pool types can be given by their subgraph names."""
        assert type(get_pricing("ComposableStable")) is ComposableStablePricing
        assert "MetaStable" in DEFAULT_REGISTRY

    def test_unknown_pool_type(self):
        """Unknown names raise UnsupportedOperation."""
        with pytest.raises(UnsupportedOperation):
            get_pricing("Gyro2")
        assert "Gyro2" not in DEFAULT_REGISTRY

    def test_unregistered_pool_type(self):
        """Known but unregistered types raise UnsupportedOperation."""
        registry = PricingRegistry()
        registry.register(PoolType.WEIGHTED, WeightedPricing())
        assert registry.supported_types() == [PoolType.WEIGHTED]
        with pytest.raises(UnsupportedOperation):
            registry.get(PoolType.LINEAR)

    def test_shared_config(self):
        """build_default_registry hands one config to every family."""
        config = PricingConfig(enforce_ratio_limits=False)
        registry = build_default_registry(config)
        assert len(registry.supported_types()) == len(PoolType)
        for pool_type in PoolType:
            assert registry.get(pool_type).config is config


class TestQuotePools:
    """Tests for quote_pools."""

    def test_quotes_in_order(self, weighted_pair, stable_pair):
        """Each candidate gets its own quote, in input order."""
        results = quote_pools(
            [("w", PoolType.WEIGHTED, weighted_pair), ("s", "Stable", stable_pair)],
            SwapKind.EXACT_IN,
            TEN,
        )
        assert [r.pool_id for r in results] == ["w", "s"]
        assert results[0].amount == WeightedPricing().exact_in_for_out(weighted_pair, TEN)
        assert results[1].amount == StablePricing().exact_in_for_out(stable_pair, TEN)
        assert all(r.ok for r in results)

    def test_exact_out(self, weighted_pair):
        """EXACT_OUT quotes amounts in."""
        (result,) = quote_pools([("w", PoolType.WEIGHTED, weighted_pair)], SwapKind.EXACT_OUT, TEN)
        assert result.amount == WeightedPricing().in_for_exact_out(weighted_pair, TEN)

    def test_failing_pool_is_excluded(self, stable_pair):
        """A pool whose math raises is reported, never quoted as zero."""
        with capture_logs() as logs:
            results = quote_pools(
                [
                    ("meta", PoolType.META_STABLE, stable_pair),
                    ("ok", PoolType.STABLE, stable_pair),
                ],
                SwapKind.EXACT_IN,
                TEN,
            )
        failed, ok = results
        assert failed.amount is None
        assert not failed.ok
        assert isinstance(failed.error, InvalidPoolConfiguration)
        assert ok.ok
        assert ok.amount > 0

        excluded = [log for log in logs if log["event"] == "quote_pool_excluded"]
        assert len(excluded) == 1
        assert excluded[0]["log_level"] == "warning"
        assert excluded[0]["pool_id"] == "meta"
        assert excluded[0]["error_type"] == "InvalidPoolConfiguration"

    def test_swap_limit_excludes_pool(self):
        """Ratio limit breaches exclude the pool."""
        pair = make_weighted_pair()
        (result,) = quote_pools([("w", PoolType.WEIGHTED, pair)], SwapKind.EXACT_IN, 500 * ONE)
        assert isinstance(result.error, MaxInRatioError)

    def test_unknown_type_excludes_pool(self):
        """An unknown pool type is excluded like any other failure."""
        (result,) = quote_pools([("x", "Gyro2", make_stable_pair())], SwapKind.EXACT_IN, TEN)
        assert isinstance(result.error, UnsupportedOperation)

    def test_custom_registry(self, weighted_pair):
        """quote_pools dispatches through the registry it is given."""
        registry = build_default_registry(PricingConfig(enforce_ratio_limits=False))
        (result,) = quote_pools(
            [("w", PoolType.WEIGHTED, weighted_pair)], SwapKind.EXACT_IN, 500 * ONE, registry
        )
        assert result.ok


ZERO_AMOUNT_CASES = [
    pytest.param(PoolType.WEIGHTED, "weighted_pair", id="weighted"),
    pytest.param(PoolType.STABLE, "stable_pair", id="stable"),
    pytest.param(PoolType.STABLE_PHANTOM, "phantom_pair", id="phantom"),
    pytest.param(PoolType.LINEAR, "linear_pair", id="linear"),
]


@pytest.mark.parametrize(("pool_type", "pair_fixture"), ZERO_AMOUNT_CASES)
class TestZeroAmounts:
    """A zero amount quotes zero for every family."""

    def test_exact_in(self, request, pool_type, pair_fixture):
        """Selling nothing buys nothing."""
        pair = request.getfixturevalue(pair_fixture)
        assert get_pricing(pool_type).exact_in_for_out(pair, 0) == 0

    def test_exact_out(self, request, pool_type, pair_fixture):
        """Buying nothing costs nothing."""
        pair = request.getfixturevalue(pair_fixture)
        assert get_pricing(pool_type).in_for_exact_out(pair, 0) == 0
