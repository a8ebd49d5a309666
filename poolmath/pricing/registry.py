"""Pool type dispatch.

Maps each pool type to the pricing family that handles it, so callers never
branch on pool kind themselves.

Usage:
    pricing = get_pricing(PoolType.COMPOSABLE_STABLE)
    amount_out = pricing.exact_in_for_out(pair, amount_in)

    # Or price many pools at once, dropping the ones whose math fails:
    results = quote_pools(candidates, SwapKind.EXACT_IN, amount)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from poolmath.config import DEFAULT_PRICING_CONFIG, PricingConfig
from poolmath.errors import PoolMathError, UnsupportedOperation
from poolmath.pools.pair_data import SwapKind
from poolmath.pricing.base import PoolPricing
from poolmath.pricing.linear import LinearPricing
from poolmath.pricing.stable import (
    ComposableStablePricing,
    MetaStablePricing,
    PhantomStablePricing,
    StablePricing,
)
from poolmath.pricing.weighted import WeightedPricing

logger = structlog.get_logger()


class PoolType(str, Enum):
    """Pool kinds, named as the Balancer subgraph names them."""

    WEIGHTED = "Weighted"
    STABLE = "Stable"
    META_STABLE = "MetaStable"
    STABLE_PHANTOM = "StablePhantom"
    COMPOSABLE_STABLE = "ComposableStable"
    LINEAR = "Linear"


class PricingRegistry:
    """Registry of pricing families keyed by pool type.

    Usage:
        registry = PricingRegistry()
        registry.register(PoolType.WEIGHTED, WeightedPricing())
        pricing = registry.get(PoolType.WEIGHTED)
    """

    def __init__(self) -> None:
        """Initialize an empty pricing registry."""
        self._pricings: dict[PoolType, PoolPricing] = {}

    def register(self, pool_type: PoolType, pricing: PoolPricing) -> None:
        """Register (or replace) the pricing family for a pool type."""
        self._pricings[pool_type] = pricing

    def get(self, pool_type: PoolType | str) -> PoolPricing:
        """Get the pricing family for a pool type.

        Args:
            pool_type: A PoolType, or its subgraph name (e.g. "MetaStable")

        Raises:
            UnsupportedOperation: If nothing is registered for the pool type
        """
        try:
            key = PoolType(pool_type)
        except ValueError as e:
            raise UnsupportedOperation(f"Unknown pool type {pool_type!r}") from e
        pricing = self._pricings.get(key)
        if pricing is None:
            raise UnsupportedOperation(f"No pricing registered for {key.value}")
        return pricing

    def __contains__(self, pool_type: object) -> bool:
        try:
            return PoolType(pool_type) in self._pricings
        except ValueError:
            return False

    def supported_types(self) -> list[PoolType]:
        return list(self._pricings)


def build_default_registry(config: PricingConfig = DEFAULT_PRICING_CONFIG) -> PricingRegistry:
    """Registry with every pool family, sharing one config."""
    registry = PricingRegistry()
    registry.register(PoolType.WEIGHTED, WeightedPricing(config))
    registry.register(PoolType.STABLE, StablePricing(config))
    registry.register(PoolType.META_STABLE, MetaStablePricing(config))
    registry.register(PoolType.STABLE_PHANTOM, PhantomStablePricing(config))
    registry.register(PoolType.COMPOSABLE_STABLE, ComposableStablePricing(config))
    registry.register(PoolType.LINEAR, LinearPricing(config))
    return registry


DEFAULT_REGISTRY = build_default_registry()


def get_pricing(
    pool_type: PoolType | str, registry: PricingRegistry = DEFAULT_REGISTRY
) -> PoolPricing:
    """Look up the pricing family for a pool type in the default registry."""
    return registry.get(pool_type)


@dataclass(frozen=True)
class QuoteResult:
    """Outcome of quoting one pool.

    Attributes:
        pool_id: Caller-chosen identifier of the pool
        amount: Amount out (exact in) or amount in (exact out); None on failure
        error: The math error that excluded the pool, if any
    """

    pool_id: str
    amount: int | None
    error: PoolMathError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def quote_pools(
    candidates: Iterable[tuple[str, PoolType | str, Any]],
    kind: SwapKind,
    amount: int,
    registry: PricingRegistry = DEFAULT_REGISTRY,
) -> list[QuoteResult]:
    """Quote the same swap against several pools.

    A pool whose math raises is excluded from the quotes: its result carries
    the error and no amount. It is never quoted as zero.

    Args:
        candidates: (pool_id, pool_type, pair_data) triples
        kind: EXACT_IN quotes amounts out, EXACT_OUT quotes amounts in
        amount: The fixed side of the swap
        registry: Registry to dispatch through

    Returns:
        One QuoteResult per candidate, in input order
    """
    results: list[QuoteResult] = []
    for pool_id, pool_type, pair in candidates:
        try:
            pricing = registry.get(pool_type)
            if kind is SwapKind.EXACT_IN:
                quoted = pricing.exact_in_for_out(pair, amount)
            else:
                quoted = pricing.in_for_exact_out(pair, amount)
        except PoolMathError as e:
            logger.warning(
                "quote_pool_excluded",
                pool_id=pool_id,
                pool_type=str(pool_type),
                kind=kind.value,
                amount=amount,
                error=str(e),
                error_type=type(e).__name__,
            )
            results.append(QuoteResult(pool_id, None, e))
            continue
        results.append(QuoteResult(pool_id, quoted))
    return results


__all__ = [
    "DEFAULT_REGISTRY",
    "PoolType",
    "PricingRegistry",
    "QuoteResult",
    "build_default_registry",
    "get_pricing",
    "quote_pools",
]
