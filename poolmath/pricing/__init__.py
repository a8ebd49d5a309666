"""Pricing families and the pool type dispatcher."""

from poolmath.pricing.base import BasePricing, PairType, PoolPricing, SwapKind
from poolmath.pricing.linear import LinearPricing
from poolmath.pricing.registry import (
    DEFAULT_REGISTRY,
    PoolType,
    PricingRegistry,
    QuoteResult,
    build_default_registry,
    get_pricing,
    quote_pools,
)
from poolmath.pricing.stable import (
    ComposableStablePricing,
    MetaStablePricing,
    PhantomStablePricing,
    StablePricing,
)
from poolmath.pricing.weighted import WeightedPricing

__all__ = [
    "DEFAULT_REGISTRY",
    "BasePricing",
    "ComposableStablePricing",
    "LinearPricing",
    "MetaStablePricing",
    "PairType",
    "PhantomStablePricing",
    "PoolPricing",
    "PoolType",
    "PricingRegistry",
    "QuoteResult",
    "StablePricing",
    "SwapKind",
    "WeightedPricing",
    "build_default_registry",
    "get_pricing",
    "quote_pools",
]
