"""Weighted pool pricing."""

from __future__ import annotations

from collections.abc import Sequence

from poolmath.errors import TokenNotInPool
from poolmath.math.fixed_point import Bfp
from poolmath.pools import weighted_math
from poolmath.pools.pair_data import WeightedPoolPairData
from poolmath.pools.scaling import add_swap_fee_amount, subtract_swap_fee_amount
from poolmath.pricing.base import BasePricing


class WeightedPricing(BasePricing):
    """Token/token swaps and joins/exits for weighted product pools.

    Balances in the pair data are already upscaled to 18 decimals, so no
    price rates apply. Ratio limits follow the pricing config.
    """

    family = "weighted"

    def _ratio_limits(self) -> tuple[Bfp | None, Bfp | None]:
        if not self.config.enforce_ratio_limits:
            return None, None
        return Bfp(self.config.max_in_ratio), Bfp(self.config.max_out_ratio)

    @staticmethod
    def _pair(pair: WeightedPoolPairData) -> tuple[Bfp, Bfp, Bfp, Bfp]:
        return (
            Bfp(pair.balance_in),
            Bfp(pair.weight_in),
            Bfp(pair.balance_out),
            Bfp(pair.weight_out),
        )

    def _exact_in_for_out(self, pair: WeightedPoolPairData, amount_in: int) -> int:
        max_in_ratio, _ = self._ratio_limits()
        amount_in_after_fee = subtract_swap_fee_amount(amount_in, pair.swap_fee)
        amount_out = weighted_math.calc_out_given_in(
            *self._pair(pair),
            Bfp(amount_in_after_fee),
            max_in_ratio=max_in_ratio,
            _version=pair.version,
        )
        return amount_out.value

    def _in_for_exact_out(self, pair: WeightedPoolPairData, amount_out: int) -> int:
        _, max_out_ratio = self._ratio_limits()
        amount_in = weighted_math.calc_in_given_out(
            *self._pair(pair),
            Bfp(amount_out),
            max_out_ratio=max_out_ratio,
            _version=pair.version,
        )
        return add_swap_fee_amount(amount_in.value, pair.swap_fee)

    def _spot_price_exact_in(self, pair: WeightedPoolPairData, amount_in: int) -> int:
        return weighted_math.calc_spot_price_exact_in(
            *self._pair(pair), Bfp(amount_in), Bfp(pair.swap_fee)
        ).value

    def _spot_price_exact_out(self, pair: WeightedPoolPairData, amount_out: int) -> int:
        return weighted_math.calc_spot_price_exact_out(
            *self._pair(pair), Bfp(amount_out), Bfp(pair.swap_fee)
        ).value

    def _derivative_exact_in(self, pair: WeightedPoolPairData, amount_in: int) -> int:
        return weighted_math.calc_derivative_exact_in(
            *self._pair(pair), Bfp(amount_in), Bfp(pair.swap_fee)
        ).value

    def _derivative_exact_out(self, pair: WeightedPoolPairData, amount_out: int) -> int:
        return weighted_math.calc_derivative_exact_out(
            *self._pair(pair), Bfp(amount_out), Bfp(pair.swap_fee)
        ).value

    # --- Joins and exits ---

    @staticmethod
    def _pool(pair: WeightedPoolPairData) -> tuple[list[Bfp], list[Bfp]]:
        return [Bfp(b) for b in pair.balances], [Bfp(w) for w in pair.weights]

    @staticmethod
    def _token_index(pair: WeightedPoolPairData, token_index: int | None, default: int) -> int:
        index = default if token_index is None else token_index
        if not 0 <= index < len(pair.balances):
            raise TokenNotInPool(
                f"token_index {index} out of range for {len(pair.balances)} tokens"
            )
        return index

    def bpt_out_given_exact_tokens_in(
        self, pair: WeightedPoolPairData, amounts_in: Sequence[int]
    ) -> int:
        balances, weights = self._pool(pair)
        return weighted_math.calc_bpt_out_given_exact_tokens_in(
            balances,
            weights,
            [Bfp(a) for a in amounts_in],
            Bfp(pair.total_supply),
            Bfp(pair.swap_fee),
            _version=pair.version,
        ).value

    def tokens_out_given_exact_bpt_in(
        self, pair: WeightedPoolPairData, bpt_amount_in: int
    ) -> tuple[int, ...]:
        balances, _ = self._pool(pair)
        amounts_out = weighted_math.calc_tokens_out_given_exact_bpt_in(
            balances, Bfp(bpt_amount_in), Bfp(pair.total_supply)
        )
        return tuple(a.value for a in amounts_out)

    def bpt_in_given_exact_tokens_out(
        self, pair: WeightedPoolPairData, amounts_out: Sequence[int]
    ) -> int:
        balances, weights = self._pool(pair)
        return weighted_math.calc_bpt_in_given_exact_tokens_out(
            balances,
            weights,
            [Bfp(a) for a in amounts_out],
            Bfp(pair.total_supply),
            Bfp(pair.swap_fee),
            _version=pair.version,
        ).value

    def token_out_given_exact_bpt_in(
        self, pair: WeightedPoolPairData, bpt_amount_in: int, token_index: int | None = None
    ) -> int:
        index = self._token_index(pair, token_index, pair.token_index_out)
        return weighted_math.calc_token_out_given_exact_bpt_in(
            Bfp(pair.balances[index]),
            Bfp(pair.weights[index]),
            Bfp(bpt_amount_in),
            Bfp(pair.total_supply),
            Bfp(pair.swap_fee),
            min_invariant_ratio=Bfp(self.config.min_invariant_ratio),
            _version=pair.version,
        ).value

    def token_in_given_exact_bpt_out(
        self, pair: WeightedPoolPairData, bpt_amount_out: int, token_index: int | None = None
    ) -> int:
        index = self._token_index(pair, token_index, pair.token_index_in)
        return weighted_math.calc_token_in_given_exact_bpt_out(
            Bfp(pair.balances[index]),
            Bfp(pair.weights[index]),
            Bfp(bpt_amount_out),
            Bfp(pair.total_supply),
            Bfp(pair.swap_fee),
            max_invariant_ratio=Bfp(self.config.max_invariant_ratio),
            _version=pair.version,
        ).value
