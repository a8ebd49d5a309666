"""Tests for PricingConfig."""

import pytest

from poolmath.config import DEFAULT_PRICING_CONFIG, MAX_TOKEN_BALANCE, PricingConfig
from poolmath.errors import InvalidPoolConfiguration
from poolmath.math.fixed_point import ONE

ENV_VARS = (
    "POOLMATH_ENFORCE_RATIO_LIMITS",
    "POOLMATH_MAX_IN_RATIO",
    "POOLMATH_MAX_OUT_RATIO",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestPricingConfig:
    """Tests for PricingConfig defaults and validation."""

    def test_defaults(self):
        """Defaults carry the on-chain limits."""
        config = DEFAULT_PRICING_CONFIG
        assert config.enforce_ratio_limits is True
        assert config.max_in_ratio == 3 * 10**17
        assert config.max_out_ratio == 3 * 10**17
        assert config.max_invariant_ratio == 3 * ONE
        assert config.min_invariant_ratio == 7 * 10**17
        assert config.max_token_balance == MAX_TOKEN_BALANCE == 2**112 - 1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_in_ratio": 0},
            {"max_out_ratio": ONE + 1},
            {"max_invariant_ratio": ONE - 1},
            {"min_invariant_ratio": 0},
            {"max_token_balance": 0},
        ],
    )
    def test_invalid_values(self, kwargs):
        """Out-of-range limits are rejected."""
        with pytest.raises(InvalidPoolConfiguration):
            PricingConfig(**kwargs)

    def test_frozen(self):
        """Configs are immutable."""
        with pytest.raises(AttributeError):
            DEFAULT_PRICING_CONFIG.max_in_ratio = ONE  # type: ignore[misc]


class TestFromEnv:
    """Tests for PricingConfig.from_env."""

    def test_unset_keeps_defaults(self, clean_env):
        """No variables, default config."""
        assert PricingConfig.from_env() == PricingConfig()

    def test_reads_variables(self, clean_env):
        """POOLMATH_* variables override the defaults."""
        clean_env.setenv("POOLMATH_ENFORCE_RATIO_LIMITS", "false")
        clean_env.setenv("POOLMATH_MAX_IN_RATIO", str(5 * 10**17))
        config = PricingConfig.from_env()
        assert config.enforce_ratio_limits is False
        assert config.max_in_ratio == 5 * 10**17
        assert config.max_out_ratio == 3 * 10**17

    @pytest.mark.parametrize("raw", ["1", "true", "YES", " True "])
    def test_truthy_flags(self, clean_env, raw):
        """Common truthy spellings enable the limits."""
        clean_env.setenv("POOLMATH_ENFORCE_RATIO_LIMITS", raw)
        assert PricingConfig.from_env().enforce_ratio_limits is True

    def test_non_integer_ratio(self, clean_env):
        """Ratios must be integers in wei."""
        clean_env.setenv("POOLMATH_MAX_OUT_RATIO", "0.3")
        with pytest.raises(InvalidPoolConfiguration):
            PricingConfig.from_env()

    def test_out_of_range_ratio(self, clean_env):
        """Values from the environment are validated like any other."""
        clean_env.setenv("POOLMATH_MAX_IN_RATIO", str(2 * ONE))
        with pytest.raises(InvalidPoolConfiguration):
            PricingConfig.from_env()
