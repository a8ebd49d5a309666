"""Stable pool pricing: Stable, MetaStable, Phantom and Composable.

One generic engine serves every stable flavour. Balances are multiplied by
their price rates going into the math (identity when the pool has none), the
pool's own BPT is spliced out through BalancesView, and results are divided
by the rate on the way out: rounding down for amounts out, up for amounts in.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar

import structlog

from poolmath.errors import InvalidPoolConfiguration, UnsupportedOperation
from poolmath.math.fixed_point import ONE, complement, div_down, div_up, mul_down, mul_up
from poolmath.pools import stable_math
from poolmath.pools.balances import BalancesView
from poolmath.pools.pair_data import PairType, StablePoolPairData, SwapKind
from poolmath.pools.scaling import (
    add_swap_fee_amount,
    downscale_down,
    downscale_up,
    subtract_swap_fee_amount,
    upscale,
    upscale_array,
)
from poolmath.pricing.base import BasePricing

logger = structlog.get_logger()


@dataclass(frozen=True)
class _MathState:
    """Pool state as the stable math sees it.

    Attributes:
        view: Balances with the BPT removed, in token units
        balances: view balances multiplied by their price rates
        rates: Price rates aligned with the view
        supply: BPT supply used by joins and exits
    """

    view: BalancesView
    balances: tuple[int, ...]
    rates: tuple[int, ...]
    supply: int


class StablePricing(BasePricing):
    """Plain stable pools, with optional per-token price rates."""

    family = "stable"
    requires_rates: ClassVar[bool] = False
    holds_bpt: ClassVar[bool] = False

    def _check_pair(self, pair: StablePoolPairData) -> None:
        if self.requires_rates and pair.price_rates is None:
            raise InvalidPoolConfiguration(f"{self.family} pools need price rates")
        if self.holds_bpt and pair.bpt_index is None:
            raise InvalidPoolConfiguration(f"{self.family} pools need a bpt_index")
        if not self.holds_bpt and pair.bpt_index is not None:
            raise UnsupportedOperation(
                f"{self.family} pricing does not handle pools holding their own BPT"
            )

    def _bpt_supply(self, pair: StablePoolPairData, view: BalancesView) -> int:
        return pair.total_supply

    def _state(self, pair: StablePoolPairData) -> _MathState:
        self._check_pair(pair)
        view = BalancesView.from_balances(pair.balances, pair.bpt_index)
        rates = view.select(pair.rates)
        balances = tuple(upscale_array(view.balances, rates))
        return _MathState(view, balances, rates, self._bpt_supply(pair, view))

    def _indices(self, pair: StablePoolPairData, state: _MathState) -> tuple[int, int]:
        return state.view.index_of(pair.token_index_in), state.view.index_of(pair.token_index_out)

    # --- Token/token swaps ---

    def _exact_in_for_out(self, pair: StablePoolPairData, amount_in: int) -> int:
        state = self._state(pair)
        i, o = self._indices(pair, state)
        amount_in_after_fee = subtract_swap_fee_amount(amount_in, pair.swap_fee)
        amount_out = stable_math.calc_out_given_in(
            pair.amp, state.balances, i, o, upscale(amount_in_after_fee, state.rates[i])
        )
        return downscale_down(amount_out, state.rates[o])

    def _in_for_exact_out(self, pair: StablePoolPairData, amount_out: int) -> int:
        state = self._state(pair)
        i, o = self._indices(pair, state)
        amount_in = stable_math.calc_in_given_out(
            pair.amp, state.balances, i, o, upscale(amount_out, state.rates[o])
        )
        return add_swap_fee_amount(downscale_up(amount_in, state.rates[i]), pair.swap_fee)

    def _after_exact_in(
        self, pair: StablePoolPairData, state: _MathState, amount_in: int
    ) -> list[int]:
        i, o = self._indices(pair, state)
        balances = list(state.balances)
        net_in = upscale(subtract_swap_fee_amount(amount_in, pair.swap_fee), state.rates[i])
        if net_in > 0:
            amount_out = stable_math.calc_out_given_in(pair.amp, state.balances, i, o, net_in)
            balances[i] += net_in
            balances[o] -= amount_out
        return balances

    def _after_exact_out(
        self, pair: StablePoolPairData, state: _MathState, amount_out: int
    ) -> list[int]:
        i, o = self._indices(pair, state)
        balances = list(state.balances)
        scaled_out = upscale(amount_out, state.rates[o])
        if scaled_out > 0:
            amount_in = stable_math.calc_in_given_out(pair.amp, state.balances, i, o, scaled_out)
            balances[i] += amount_in
            balances[o] -= scaled_out
        return balances

    def _token_price(self, state: _MathState, i: int, o: int, price: int) -> int:
        return div_up(mul_up(price, state.rates[o]), state.rates[i])

    def _spot_price_exact_in(self, pair: StablePoolPairData, amount_in: int) -> int:
        state = self._state(pair)
        i, o = self._indices(pair, state)
        balances = self._after_exact_in(pair, state, amount_in)
        price = stable_math.calc_spot_price(pair.amp, balances, i, o, pair.swap_fee)
        return self._token_price(state, i, o, price)

    def _spot_price_exact_out(self, pair: StablePoolPairData, amount_out: int) -> int:
        state = self._state(pair)
        i, o = self._indices(pair, state)
        balances = self._after_exact_out(pair, state, amount_out)
        price = stable_math.calc_spot_price(pair.amp, balances, i, o, pair.swap_fee)
        return self._token_price(state, i, o, price)

    def _derivative_exact_in(self, pair: StablePoolPairData, amount_in: int) -> int:
        state = self._state(pair)
        i, o = self._indices(pair, state)
        balances = self._after_exact_in(pair, state, amount_in)
        derivative = stable_math.calc_spot_price_derivative(pair.amp, balances, i, o)
        # The input rate cancels: price scales by 1/rate_in, amount by rate_in
        return mul_up(derivative, state.rates[o])

    def _derivative_exact_out(self, pair: StablePoolPairData, amount_out: int) -> int:
        state = self._state(pair)
        i, o = self._indices(pair, state)
        balances = self._after_exact_out(pair, state, amount_out)
        price = stable_math.calc_spot_price(pair.amp, balances, i, o, pair.swap_fee)
        derivative = mul_up(stable_math.calc_spot_price_derivative(pair.amp, balances, i, o), price)
        return div_up(mul_up(mul_up(derivative, state.rates[o]), state.rates[o]), state.rates[i])

    # --- Joins and exits ---

    def bpt_out_given_exact_tokens_in(
        self, pair: StablePoolPairData, amounts_in: Sequence[int]
    ) -> int:
        state = self._state(pair)
        amounts = upscale_array(state.view.select(amounts_in), state.rates)
        return stable_math.calc_bpt_out_given_exact_tokens_in(
            pair.amp, state.balances, amounts, state.supply, pair.swap_fee
        )

    def tokens_out_given_exact_bpt_in(
        self, pair: StablePoolPairData, bpt_amount_in: int
    ) -> tuple[int, ...]:
        state = self._state(pair)
        amounts_out = stable_math.calc_tokens_out_given_exact_bpt_in(
            state.view.balances, bpt_amount_in, state.supply
        )
        return state.view.expand(amounts_out)

    def bpt_in_given_exact_tokens_out(
        self, pair: StablePoolPairData, amounts_out: Sequence[int]
    ) -> int:
        state = self._state(pair)
        amounts = upscale_array(state.view.select(amounts_out), state.rates)
        return stable_math.calc_bpt_in_given_exact_tokens_out(
            pair.amp, state.balances, amounts, state.supply, pair.swap_fee
        )

    def token_out_given_exact_bpt_in(
        self, pair: StablePoolPairData, bpt_amount_in: int, token_index: int | None = None
    ) -> int:
        state = self._state(pair)
        t = state.view.index_of(pair.token_index_out if token_index is None else token_index)
        amount_out = stable_math.calc_token_out_given_exact_bpt_in(
            pair.amp, state.balances, t, bpt_amount_in, state.supply, pair.swap_fee
        )
        return downscale_down(amount_out, state.rates[t])

    def token_in_given_exact_bpt_out(
        self, pair: StablePoolPairData, bpt_amount_out: int, token_index: int | None = None
    ) -> int:
        state = self._state(pair)
        t = state.view.index_of(pair.token_index_in if token_index is None else token_index)
        amount_in = stable_math.calc_token_in_given_exact_bpt_out(
            pair.amp, state.balances, t, bpt_amount_out, state.supply, pair.swap_fee
        )
        return downscale_up(amount_in, state.rates[t])


class MetaStablePricing(StablePricing):
    """Stable pools whose tokens carry price rates (e.g. wstETH/WETH)."""

    family = "meta_stable"
    requires_rates = True


class PhantomStablePricing(StablePricing):
    """Stable pools that hold their own BPT as a balance.

    Swaps against the BPT are joins and exits. The swap fee comes off the
    gross input for every pair type and the join/exit math runs fee-free.
    """

    family = "stable_phantom"
    holds_bpt = True
    # Composable pools pass the fee into the join/exit math instead
    fee_in_join_exit: ClassVar[bool] = False

    def _bpt_supply(self, pair: StablePoolPairData, view: BalancesView) -> int:
        return view.virtual_supply(self.config.max_token_balance)

    def pair_balances(self, pair: StablePoolPairData) -> tuple[int, int]:
        if pair.pair_type is PairType.TOKEN_TO_TOKEN:
            return pair.balance_in, pair.balance_out
        view = BalancesView.from_balances(pair.balances, pair.bpt_index)
        supply = self._bpt_supply(pair, view)
        if pair.pair_type is PairType.BPT_TO_TOKEN:
            return supply, pair.balance_out
        return pair.balance_in, supply

    def _token_index(self, pair: StablePoolPairData, state: _MathState) -> int:
        """View index of the non-BPT side of a join or exit."""
        if pair.pair_type is PairType.TOKEN_TO_BPT:
            return state.view.index_of(pair.token_index_in)
        return state.view.index_of(pair.token_index_out)

    def _single(self, state: _MathState, t: int, amount: int) -> list[int]:
        amounts = [0] * len(state.balances)
        amounts[t] = amount
        return amounts

    def _exact_in_for_out(self, pair: StablePoolPairData, amount_in: int) -> int:
        if pair.pair_type is PairType.TOKEN_TO_TOKEN:
            return super()._exact_in_for_out(pair, amount_in)

        state = self._state(pair)
        t = self._token_index(pair, state)
        if self.fee_in_join_exit:
            amount, fee = amount_in, pair.swap_fee
        else:
            amount, fee = subtract_swap_fee_amount(amount_in, pair.swap_fee), 0

        if pair.pair_type is PairType.TOKEN_TO_BPT:
            return stable_math.calc_bpt_out_given_exact_tokens_in(
                pair.amp,
                state.balances,
                self._single(state, t, upscale(amount, state.rates[t])),
                state.supply,
                fee,
            )
        amount_out = stable_math.calc_token_out_given_exact_bpt_in(
            pair.amp, state.balances, t, amount, state.supply, fee
        )
        return downscale_down(amount_out, state.rates[t])

    def _in_for_exact_out(self, pair: StablePoolPairData, amount_out: int) -> int:
        if pair.pair_type is PairType.TOKEN_TO_TOKEN:
            return super()._in_for_exact_out(pair, amount_out)

        state = self._state(pair)
        t = self._token_index(pair, state)
        fee = pair.swap_fee if self.fee_in_join_exit else 0

        if pair.pair_type is PairType.TOKEN_TO_BPT:
            amount_in = downscale_up(
                stable_math.calc_token_in_given_exact_bpt_out(
                    pair.amp, state.balances, t, amount_out, state.supply, fee
                ),
                state.rates[t],
            )
        else:
            amount_in = stable_math.calc_bpt_in_given_exact_tokens_out(
                pair.amp,
                state.balances,
                self._single(state, t, upscale(amount_out, state.rates[t])),
                state.supply,
                fee,
            )
        if self.fee_in_join_exit:
            return amount_in
        return add_swap_fee_amount(amount_in, pair.swap_fee)

    def _bpt_curve(
        self, pair: StablePoolPairData, kind: SwapKind, amount: int
    ) -> tuple[int, int]:
        """Spot price and its derivative for a swap against the BPT.

        Both come from the zero-fee marginal BPT rate r (BPT per math unit of
        token) and its curvature E = -r'/r^2, evaluated after the swap, with
        the fee folded in as constant factors on either side.
        """
        state = self._state(pair)
        t = self._token_index(pair, state)
        rate = state.rates[t]
        fee = pair.swap_fee
        balances = list(state.balances)
        supply = state.supply

        # Composable joins and exits tax only the share of the token not held
        weight = div_down(state.balances[t], sum(state.balances))
        phi = complement(mul_up(fee, complement(weight)))
        psi = weight + div_up(complement(weight), complement(fee))

        if pair.pair_type is PairType.TOKEN_TO_BPT:
            if kind is SwapKind.EXACT_IN:
                bpt_out = self._exact_in_for_out(pair, amount) if amount > 0 else 0
                if self.fee_in_join_exit:
                    balances[t] += mul_down(upscale(amount, rate), phi)
                    fee_factor = phi
                else:
                    balances[t] += upscale(subtract_swap_fee_amount(amount, fee), rate)
                    fee_factor = complement(fee)
                supply += bpt_out
                r, curvature = self._rate_and_curvature(pair, balances, t, supply)
                price = div_up(div_up(ONE, mul_down(fee_factor, r)), rate)
                return price, curvature

            if amount > 0:
                balances[t] += stable_math.calc_token_in_given_exact_bpt_out(
                    pair.amp, state.balances, t, amount, supply, 0
                )
                supply += amount
            r, curvature = self._rate_and_curvature(pair, balances, t, supply)
            if self.fee_in_join_exit:
                price_m = div_up(psi, r)
            else:
                price_m = div_up(ONE, mul_down(complement(fee), r))
            price = div_up(price_m, rate)
            return price, mul_up(curvature, price)

        if kind is SwapKind.EXACT_IN:
            if self.fee_in_join_exit:
                bpt_burned, token_factor, bpt_factor = amount, phi, ONE
            else:
                bpt_burned = subtract_swap_fee_amount(amount, fee)
                token_factor, bpt_factor = ONE, complement(fee)
            if bpt_burned > 0:
                balances[t] -= stable_math.calc_token_out_given_exact_bpt_in(
                    pair.amp, state.balances, t, bpt_burned, supply, 0
                )
                supply -= bpt_burned
            r, curvature = self._rate_and_curvature(pair, balances, t, supply)
            price_m = div_up(r, mul_down(token_factor, bpt_factor))
            derivative_m = div_up(mul_up(curvature, r), token_factor)
            return mul_up(price_m, rate), mul_up(derivative_m, rate)

        token_factor = psi if self.fee_in_join_exit else ONE
        bpt_factor = ONE if self.fee_in_join_exit else complement(fee)
        scaled_out = upscale(amount, rate)
        if scaled_out > 0:
            bpt_burned = stable_math.calc_bpt_in_given_exact_tokens_out(
                pair.amp,
                state.balances,
                self._single(state, t, scaled_out),
                supply,
                fee if self.fee_in_join_exit else 0,
            )
            balances[t] -= mul_up(scaled_out, token_factor)
            supply -= bpt_burned
        r, curvature = self._rate_and_curvature(pair, balances, t, supply)
        price_m = div_up(mul_up(token_factor, r), bpt_factor)
        derivative_m = div_up(
            mul_up(mul_up(token_factor, token_factor), mul_up(curvature, mul_up(r, r))),
            bpt_factor,
        )
        return mul_up(price_m, rate), mul_up(mul_up(derivative_m, rate), rate)

    @staticmethod
    def _rate_and_curvature(
        pair: StablePoolPairData, balances: Sequence[int], t: int, supply: int
    ) -> tuple[int, int]:
        logger.debug("stable_bpt_curve", token_index=t, supply=supply)
        return (
            stable_math.calc_bpt_rate(pair.amp, balances, t, supply),
            stable_math.calc_bpt_rate_curvature(pair.amp, balances, t, supply),
        )

    def _spot_price_exact_in(self, pair: StablePoolPairData, amount_in: int) -> int:
        if pair.pair_type is PairType.TOKEN_TO_TOKEN:
            return super()._spot_price_exact_in(pair, amount_in)
        return self._bpt_curve(pair, SwapKind.EXACT_IN, amount_in)[0]

    def _spot_price_exact_out(self, pair: StablePoolPairData, amount_out: int) -> int:
        if pair.pair_type is PairType.TOKEN_TO_TOKEN:
            return super()._spot_price_exact_out(pair, amount_out)
        return self._bpt_curve(pair, SwapKind.EXACT_OUT, amount_out)[0]

    def _derivative_exact_in(self, pair: StablePoolPairData, amount_in: int) -> int:
        if pair.pair_type is PairType.TOKEN_TO_TOKEN:
            return super()._derivative_exact_in(pair, amount_in)
        return self._bpt_curve(pair, SwapKind.EXACT_IN, amount_in)[1]

    def _derivative_exact_out(self, pair: StablePoolPairData, amount_out: int) -> int:
        if pair.pair_type is PairType.TOKEN_TO_TOKEN:
            return super()._derivative_exact_out(pair, amount_out)
        return self._bpt_curve(pair, SwapKind.EXACT_OUT, amount_out)[1]


class ComposableStablePricing(PhantomStablePricing):
    """Phantom-style pools with a caller-provided total supply.

    BPT swaps pass the fee into the join/exit math, so only the
    non-proportional share of the amount is taxed.
    """

    family = "composable_stable"
    fee_in_join_exit = True

    def _bpt_supply(self, pair: StablePoolPairData, view: BalancesView) -> int:
        return view.virtual_supply(pair.total_supply)
