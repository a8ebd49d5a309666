"""Exact fixed-point pricing for Balancer-style AMM pools."""

from poolmath.config import DEFAULT_PRICING_CONFIG, PricingConfig
from poolmath.errors import PoolMathError
from poolmath.pools import (
    LinearPoolPairData,
    PairType,
    StablePoolPairData,
    SwapKind,
    WeightedPoolPairData,
)
from poolmath.pricing import PoolType, get_pricing, quote_pools

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_PRICING_CONFIG",
    "LinearPoolPairData",
    "PairType",
    "PoolMathError",
    "PoolType",
    "PricingConfig",
    "StablePoolPairData",
    "SwapKind",
    "WeightedPoolPairData",
    "get_pricing",
    "quote_pools",
]
