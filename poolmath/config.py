"""Pricing configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from poolmath.errors import InvalidPoolConfiguration
from poolmath.math.fixed_point import (
    MAX_IN_RATIO,
    MAX_INVARIANT_RATIO,
    MAX_OUT_RATIO,
    MIN_INVARIANT_RATIO,
    ONE,
)

# Phantom stable pools premint this much BPT; the pool holds whatever is not circulating.
MAX_TOKEN_BALANCE = 2**112 - 1


@dataclass(frozen=True)
class PricingConfig:
    """Centralized configuration for the pricing modules.

    The stable solver's iteration cap (255) and convergence tolerance (1 wei)
    are part of the on-chain contract and are intentionally not configurable.

    Attributes:
        enforce_ratio_limits: If True, weighted swaps above max_in_ratio /
            max_out_ratio of the balance raise. If False, only the hard
            balance bound applies.
        max_in_ratio: Max fraction of balance_in a weighted swap may add (1e18 = 100%)
        max_out_ratio: Max fraction of balance_out a weighted swap may remove
        max_invariant_ratio: Max invariant growth of a single-token weighted join
        min_invariant_ratio: Min invariant ratio left by a single-token weighted exit
        max_token_balance: Preminted BPT of phantom stable pools
    """

    enforce_ratio_limits: bool = True
    max_in_ratio: int = MAX_IN_RATIO.value
    max_out_ratio: int = MAX_OUT_RATIO.value
    max_invariant_ratio: int = MAX_INVARIANT_RATIO.value
    min_invariant_ratio: int = MIN_INVARIANT_RATIO.value
    max_token_balance: int = MAX_TOKEN_BALANCE

    def __post_init__(self) -> None:
        for name in ("max_in_ratio", "max_out_ratio"):
            value = getattr(self, name)
            if not 0 < value <= ONE:
                raise InvalidPoolConfiguration(f"{name} must be in (0, 1e18], got {value}")
        if self.max_invariant_ratio < ONE:
            raise InvalidPoolConfiguration("max_invariant_ratio must be at least 1e18")
        if not 0 < self.min_invariant_ratio <= ONE:
            raise InvalidPoolConfiguration("min_invariant_ratio must be in (0, 1e18]")
        if self.max_token_balance <= 0:
            raise InvalidPoolConfiguration("max_token_balance must be positive")

    @classmethod
    def from_env(cls) -> PricingConfig:
        """Build a config from POOLMATH_* environment variables.

        Unset variables keep their defaults. Ratios are given in wei (1e18 = 100%).
        """
        kwargs: dict[str, bool | int] = {}
        enforce = os.environ.get("POOLMATH_ENFORCE_RATIO_LIMITS")
        if enforce is not None:
            kwargs["enforce_ratio_limits"] = enforce.strip().lower() in ("1", "true", "yes")
        for name in ("max_in_ratio", "max_out_ratio"):
            raw = os.environ.get(f"POOLMATH_{name.upper()}")
            if raw is not None:
                try:
                    kwargs[name] = int(raw)
                except ValueError as e:
                    raise InvalidPoolConfiguration(
                        f"POOLMATH_{name.upper()} must be an integer, got {raw!r}"
                    ) from e
        return cls(**kwargs)  # type: ignore[arg-type]


# Default configuration instance
DEFAULT_PRICING_CONFIG = PricingConfig()
