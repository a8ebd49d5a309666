"""Pricing contract shared by every pool family.

Each family turns a pair-data snapshot into exact swap amounts, spot prices
and price derivatives. Amounts and prices are 18-decimal integers; prices are
quoted as token in per token out.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar, Protocol, runtime_checkable

import structlog

from poolmath.config import DEFAULT_PRICING_CONFIG, PricingConfig
from poolmath.errors import ZeroBalanceError
from poolmath.pools.pair_data import PairType, SwapKind

logger = structlog.get_logger()

__all__ = ["BasePricing", "PairType", "PoolPricing", "SwapKind"]


@runtime_checkable
class PoolPricing(Protocol):
    """What the dispatcher expects from a pool family."""

    def exact_in_for_out(self, pair: Any, amount_in: int) -> int:
        """Amount out for selling exactly amount_in."""
        ...

    def in_for_exact_out(self, pair: Any, amount_out: int) -> int:
        """Amount in needed to buy exactly amount_out."""
        ...

    def spot_price_after_swap(self, kind: SwapKind, pair: Any, amount: int) -> int:
        """Marginal price once the swap of `amount` has executed."""
        ...

    def derivative_of_spot_price(self, kind: SwapKind, pair: Any, amount: int) -> int:
        """Slope of spot_price_after_swap with respect to `amount`."""
        ...

    def bpt_out_given_exact_tokens_in(self, pair: Any, amounts_in: Sequence[int]) -> int: ...

    def tokens_out_given_exact_bpt_in(self, pair: Any, bpt_amount_in: int) -> tuple[int, ...]: ...

    def bpt_in_given_exact_tokens_out(self, pair: Any, amounts_out: Sequence[int]) -> int: ...

    def token_out_given_exact_bpt_in(
        self, pair: Any, bpt_amount_in: int, token_index: int | None = None
    ) -> int: ...

    def token_in_given_exact_bpt_out(
        self, pair: Any, bpt_amount_out: int, token_index: int | None = None
    ) -> int: ...


class BasePricing(ABC):
    """Shared degenerate-input policy and swap-kind dispatch.

    Subclasses implement the underscored hooks; the public methods screen out
    zero amounts and empty pools first.
    """

    family: ClassVar[str] = "base"

    def __init__(self, config: PricingConfig = DEFAULT_PRICING_CONFIG) -> None:
        self.config = config

    def pair_balances(self, pair: Any) -> tuple[int, int]:
        """Balances that must be non-zero for a swap to be priced."""
        return pair.balance_in, pair.balance_out

    def exact_in_for_out(self, pair: Any, amount_in: int) -> int:
        """Amount out for selling exactly amount_in.

        Returns 0 for a zero amount or an empty side of the pool.
        """
        balance_in, balance_out = self.pair_balances(pair)
        if amount_in == 0 or balance_in == 0 or balance_out == 0:
            logger.debug(
                "pricing_zero_exact_in",
                family=self.family,
                amount_in=amount_in,
                balance_in=balance_in,
                balance_out=balance_out,
            )
            return 0
        return self._exact_in_for_out(pair, amount_in)

    def in_for_exact_out(self, pair: Any, amount_out: int) -> int:
        """Amount in needed to buy exactly amount_out.

        Returns 0 for a zero amount.

        Raises:
            ZeroBalanceError: If either side of the pool is empty
        """
        if amount_out == 0:
            logger.debug("pricing_zero_exact_out", family=self.family)
            return 0
        balance_in, balance_out = self.pair_balances(pair)
        if balance_in == 0 or balance_out == 0:
            raise ZeroBalanceError(
                f"Cannot price exact out against empty balance ({balance_in}, {balance_out})"
            )
        return self._in_for_exact_out(pair, amount_out)

    def spot_price_after_swap(self, kind: SwapKind, pair: Any, amount: int) -> int:
        if kind is SwapKind.EXACT_IN:
            return self._spot_price_exact_in(pair, amount)
        return self._spot_price_exact_out(pair, amount)

    def derivative_of_spot_price(self, kind: SwapKind, pair: Any, amount: int) -> int:
        """d(price)/d(amount) in real units: 1e18 * d(price_fp)/d(amount_wei)."""
        if kind is SwapKind.EXACT_IN:
            return self._derivative_exact_in(pair, amount)
        return self._derivative_exact_out(pair, amount)

    @abstractmethod
    def _exact_in_for_out(self, pair: Any, amount_in: int) -> int: ...

    @abstractmethod
    def _in_for_exact_out(self, pair: Any, amount_out: int) -> int: ...

    @abstractmethod
    def _spot_price_exact_in(self, pair: Any, amount_in: int) -> int: ...

    @abstractmethod
    def _spot_price_exact_out(self, pair: Any, amount_out: int) -> int: ...

    @abstractmethod
    def _derivative_exact_in(self, pair: Any, amount_in: int) -> int: ...

    @abstractmethod
    def _derivative_exact_out(self, pair: Any, amount_out: int) -> int: ...

    @abstractmethod
    def bpt_out_given_exact_tokens_in(self, pair: Any, amounts_in: Sequence[int]) -> int: ...

    @abstractmethod
    def tokens_out_given_exact_bpt_in(self, pair: Any, bpt_amount_in: int) -> tuple[int, ...]: ...

    @abstractmethod
    def bpt_in_given_exact_tokens_out(self, pair: Any, amounts_out: Sequence[int]) -> int: ...

    @abstractmethod
    def token_out_given_exact_bpt_in(
        self, pair: Any, bpt_amount_in: int, token_index: int | None = None
    ) -> int: ...

    @abstractmethod
    def token_in_given_exact_bpt_out(
        self, pair: Any, bpt_amount_out: int, token_index: int | None = None
    ) -> int: ...
