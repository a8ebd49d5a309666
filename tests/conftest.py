"""Pytest configuration and fixtures."""

import pytest
from hypothesis import HealthCheck, settings

from poolmath.config import PricingConfig
from poolmath.pools.pair_data import (
    LinearPoolPairData,
    StablePoolPairData,
    WeightedPoolPairData,
)
from poolmath.pricing import (
    ComposableStablePricing,
    LinearPricing,
    MetaStablePricing,
    PhantomStablePricing,
    StablePricing,
    WeightedPricing,
)
from tests.helpers import (
    THOUSAND,
    make_linear_pair,
    make_phantom_pair,
    make_stable_pair,
    make_weighted_pair,
)

# Stable math runs Newton iterations on big integers; keep property tests short
settings.register_profile(
    "poolmath",
    max_examples=50,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile("poolmath")


@pytest.fixture
def pricing_config() -> PricingConfig:
    """Return the default pricing configuration."""
    return PricingConfig()


@pytest.fixture
def weighted_pair() -> WeightedPoolPairData:
    """50/50 weighted pool, 1000/1000, 0.3% fee."""
    return make_weighted_pair()


@pytest.fixture
def stable_pair() -> StablePoolPairData:
    """Balanced three-token stable pool, A = 200, 0.04% fee."""
    return make_stable_pair()


@pytest.fixture
def imbalanced_stable_pair() -> StablePoolPairData:
    """Three-token stable pool away from balance."""
    return make_stable_pair(balances=(THOUSAND, 3 * THOUSAND // 2, 4 * THOUSAND // 5))


@pytest.fixture
def phantom_pair() -> StablePoolPairData:
    """Phantom stable pool with BPT at index 0 and 3000 BPT in circulation."""
    return make_phantom_pair()


@pytest.fixture
def linear_pair() -> LinearPoolPairData:
    """Linear pool (main, wrapped, BPT) with its main balance inside the band."""
    return make_linear_pair()


@pytest.fixture
def weighted_pricing() -> WeightedPricing:
    return WeightedPricing()


@pytest.fixture
def stable_pricing() -> StablePricing:
    return StablePricing()


@pytest.fixture
def meta_stable_pricing() -> MetaStablePricing:
    return MetaStablePricing()


@pytest.fixture
def phantom_pricing() -> PhantomStablePricing:
    return PhantomStablePricing()


@pytest.fixture
def composable_pricing() -> ComposableStablePricing:
    return ComposableStablePricing()


@pytest.fixture
def linear_pricing() -> LinearPricing:
    return LinearPricing()
