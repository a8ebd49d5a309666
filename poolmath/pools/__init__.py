"""Pool snapshots and per-family pool math."""

from poolmath.pools.balances import BalancesView
from poolmath.pools.linear_math import LinearParams
from poolmath.pools.pair_data import (
    LinearPoolPairData,
    PairType,
    StablePoolPairData,
    SwapKind,
    WeightedPoolPairData,
)

__all__ = [
    "BalancesView",
    "LinearParams",
    "LinearPoolPairData",
    "PairType",
    "StablePoolPairData",
    "SwapKind",
    "WeightedPoolPairData",
]
