"""Linear pool pricing.

Swaps between the main token, its wrapped form and the pool's BPT all run on
the nominal curve of linear_math. The fee is the band fee of the pool
parameters; there is no separate swap fee.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from poolmath.errors import TokenNotInPool, UnsupportedOperation
from poolmath.pools import linear_math as lm
from poolmath.pools.pair_data import LinearPoolPairData
from poolmath.pricing.base import BasePricing

MAIN = "main"
WRAPPED = "wrapped"
BPT = "bpt"

# (amount, main_balance, wrapped_balance, virtual_supply, params) -> int
_LinearFn = Callable[[int, int, int, int, lm.LinearParams], int]

_EXACT_IN: dict[tuple[str, str], _LinearFn] = {
    (MAIN, BPT): lm.calc_bpt_out_per_main_in,
    (BPT, MAIN): lm.calc_main_out_per_bpt_in,
    (MAIN, WRAPPED): lambda a, m, w, s, p: lm.calc_wrapped_out_per_main_in(a, m, p),
    (WRAPPED, MAIN): lambda a, m, w, s, p: lm.calc_main_out_per_wrapped_in(a, m, p),
    (WRAPPED, BPT): lm.calc_bpt_out_per_wrapped_in,
    (BPT, WRAPPED): lm.calc_wrapped_out_per_bpt_in,
}

_EXACT_OUT: dict[tuple[str, str], _LinearFn] = {
    (MAIN, BPT): lm.calc_main_in_per_bpt_out,
    (BPT, MAIN): lm.calc_bpt_in_per_main_out,
    (MAIN, WRAPPED): lambda a, m, w, s, p: lm.calc_main_in_per_wrapped_out(a, m, p),
    (WRAPPED, MAIN): lambda a, m, w, s, p: lm.calc_wrapped_in_per_main_out(a, m, p),
    (WRAPPED, BPT): lm.calc_wrapped_in_per_bpt_out,
    (BPT, WRAPPED): lm.calc_bpt_in_per_wrapped_out,
}

_SPOT_EXACT_IN: dict[tuple[str, str], _LinearFn] = {
    (MAIN, BPT): lm.spot_price_bpt_out_per_main_in,
    (BPT, MAIN): lm.spot_price_main_out_per_bpt_in,
    (MAIN, WRAPPED): lambda a, m, w, s, p: lm.spot_price_wrapped_out_per_main_in(a, m, p),
    (WRAPPED, MAIN): lambda a, m, w, s, p: lm.spot_price_main_out_per_wrapped_in(a, m, p),
    (WRAPPED, BPT): lambda a, m, w, s, p: lm.spot_price_wrapped_per_bpt(m, w, s, p),
    (BPT, WRAPPED): lambda a, m, w, s, p: lm.spot_price_bpt_per_wrapped(m, w, s, p),
}

_SPOT_EXACT_OUT: dict[tuple[str, str], _LinearFn] = {
    (MAIN, BPT): lm.spot_price_main_in_per_bpt_out,
    (BPT, MAIN): lm.spot_price_bpt_in_per_main_out,
    (MAIN, WRAPPED): lambda a, m, w, s, p: lm.spot_price_main_in_per_wrapped_out(a, m, p),
    (WRAPPED, MAIN): lambda a, m, w, s, p: lm.spot_price_wrapped_in_per_main_out(a, m, p),
    (WRAPPED, BPT): lambda a, m, w, s, p: lm.spot_price_wrapped_per_bpt(m, w, s, p),
    (BPT, WRAPPED): lambda a, m, w, s, p: lm.spot_price_bpt_per_wrapped(m, w, s, p),
}


def _role(pair: LinearPoolPairData, index: int) -> str:
    if index == pair.main_index:
        return MAIN
    if index == pair.wrapped_index:
        return WRAPPED
    return BPT


class LinearPricing(BasePricing):
    """Main/wrapped/BPT swaps for linear pools."""

    family = "linear"

    def pair_balances(self, pair: LinearPoolPairData) -> tuple[int, int]:
        def side(index: int) -> int:
            return pair.virtual_bpt_supply if index == pair.bpt_index else pair.balances[index]

        return side(pair.token_index_in), side(pair.token_index_out)

    def _call(
        self, table: dict[tuple[str, str], _LinearFn], pair: LinearPoolPairData, amount: int
    ) -> int:
        key = (_role(pair, pair.token_index_in), _role(pair, pair.token_index_out))
        return self._apply(table, key, pair, amount)

    @staticmethod
    def _apply(
        table: dict[tuple[str, str], _LinearFn],
        key: tuple[str, str],
        pair: LinearPoolPairData,
        amount: int,
    ) -> int:
        return table[key](
            amount, pair.main_balance, pair.wrapped_balance, pair.virtual_bpt_supply, pair.params
        )

    def _exact_in_for_out(self, pair: LinearPoolPairData, amount_in: int) -> int:
        return self._call(_EXACT_IN, pair, amount_in)

    def _in_for_exact_out(self, pair: LinearPoolPairData, amount_out: int) -> int:
        return self._call(_EXACT_OUT, pair, amount_out)

    def _spot_price_exact_in(self, pair: LinearPoolPairData, amount_in: int) -> int:
        return self._call(_SPOT_EXACT_IN, pair, amount_in)

    def _spot_price_exact_out(self, pair: LinearPoolPairData, amount_out: int) -> int:
        return self._call(_SPOT_EXACT_OUT, pair, amount_out)

    # The nominal curve is piecewise linear: between breakpoints the price is flat
    def _derivative_exact_in(self, pair: LinearPoolPairData, amount_in: int) -> int:
        return 0

    def _derivative_exact_out(self, pair: LinearPoolPairData, amount_out: int) -> int:
        return 0

    # --- Joins and exits: single-token only ---

    def _single_token(self, pair: LinearPoolPairData, amounts: Sequence[int]) -> tuple[str, int]:
        if len(amounts) != len(pair.balances):
            raise UnsupportedOperation(
                f"Got {len(amounts)} amounts for {len(pair.balances)} balances"
            )
        non_zero = [(i, a) for i, a in enumerate(amounts) if a != 0]
        if not non_zero:
            return MAIN, 0
        if len(non_zero) > 1 or non_zero[0][0] == pair.bpt_index:
            raise UnsupportedOperation("Linear pools join and exit one token at a time")
        index, amount = non_zero[0]
        return _role(pair, index), amount

    def _token_role(self, pair: LinearPoolPairData, token_index: int) -> str:
        if not 0 <= token_index < len(pair.balances):
            raise TokenNotInPool(f"token_index {token_index} out of range for a linear pool")
        role = _role(pair, token_index)
        if role == BPT:
            raise UnsupportedOperation("Cannot join or exit a linear pool with its own BPT")
        return role

    def bpt_out_given_exact_tokens_in(
        self, pair: LinearPoolPairData, amounts_in: Sequence[int]
    ) -> int:
        role, amount = self._single_token(pair, amounts_in)
        if amount == 0:
            return 0
        return self._apply(_EXACT_IN, (role, BPT), pair, amount)

    def tokens_out_given_exact_bpt_in(
        self, pair: LinearPoolPairData, bpt_amount_in: int
    ) -> tuple[int, ...]:
        return lm.calc_tokens_out_given_exact_bpt_in(
            pair.balances, bpt_amount_in, pair.virtual_bpt_supply, pair.bpt_index
        )

    def bpt_in_given_exact_tokens_out(
        self, pair: LinearPoolPairData, amounts_out: Sequence[int]
    ) -> int:
        role, amount = self._single_token(pair, amounts_out)
        if amount == 0:
            return 0
        return self._apply(_EXACT_OUT, (BPT, role), pair, amount)

    def token_out_given_exact_bpt_in(
        self, pair: LinearPoolPairData, bpt_amount_in: int, token_index: int | None = None
    ) -> int:
        role = self._token_role(pair, pair.token_index_out if token_index is None else token_index)
        return self._apply(_EXACT_IN, (BPT, role), pair, bpt_amount_in)

    def token_in_given_exact_bpt_out(
        self, pair: LinearPoolPairData, bpt_amount_out: int, token_index: int | None = None
    ) -> int:
        role = self._token_role(pair, pair.token_index_in if token_index is None else token_index)
        return self._apply(_EXACT_OUT, (role, BPT), pair, bpt_amount_out)
