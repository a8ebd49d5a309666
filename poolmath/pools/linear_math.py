"""Balancer linear pool math.

A linear pool trades a main token against its yield-bearing wrapped form at a
fixed wrapped rate, and both against the pool's own BPT. Inside the target
band [lower_target, upper_target] the main balance trades at par; outside it
a fee is charged on the distance from the band. Matches Balancer's
LinearMath.sol:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/master/pkg/pool-linear/contracts/LinearMath.sol

All values are 18-decimal integers. The BPT supply passed here is the virtual
(circulating) supply.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from poolmath.errors import InvalidPoolConfiguration
from poolmath.math.fixed_point import ONE, complement, div_down, div_up, mul_down, mul_up, sub
from poolmath.pools.scaling import validate_swap_fee


@dataclass(frozen=True)
class LinearParams:
    """Fee band and wrapped rate of a linear pool.

    Attributes:
        fee: Fee charged on main balance outside the band
        rate: Main tokens per wrapped token
        lower_target: Lower edge of the zero-fee band
        upper_target: Upper edge of the zero-fee band
    """

    fee: int
    rate: int
    lower_target: int
    upper_target: int

    def __post_init__(self) -> None:
        validate_swap_fee(self.fee)
        if self.rate <= 0:
            raise InvalidPoolConfiguration(f"Wrapped rate must be positive, got {self.rate}")
        if self.lower_target > self.upper_target:
            raise InvalidPoolConfiguration("lower_target must not exceed upper_target")


# =============================================================================
# Nominal mapping
# =============================================================================


def to_nominal(real: int, params: LinearParams) -> int:
    """Map a real main balance to its nominal value. Fees round down."""
    if real < params.lower_target:
        fees = mul_down(params.lower_target - real, params.fee)
        return sub(real, fees)
    if real <= params.upper_target:
        return real
    fees = mul_down(real - params.upper_target, params.fee)
    return sub(real, fees)


def from_nominal(nominal: int, params: LinearParams) -> int:
    """Inverse of to_nominal. Rounding fees down rounds the real value down."""
    if nominal < params.lower_target:
        return div_down(nominal + mul_down(params.fee, params.lower_target), ONE + params.fee)
    if nominal <= params.upper_target:
        return nominal
    return div_down(nominal - mul_down(params.fee, params.upper_target), ONE - params.fee)


# to_nominal is piecewise linear, so its slope is one-sided at the band edges.
# Left derivatives include the edge in the lower segment, right ones exclude it.


def left_derivative_to_nominal(amount: int, params: LinearParams) -> int:
    if amount <= params.lower_target:
        return ONE + params.fee
    if amount <= params.upper_target:
        return ONE
    return complement(params.fee)


def right_derivative_to_nominal(amount: int, params: LinearParams) -> int:
    if amount < params.lower_target:
        return ONE + params.fee
    if amount < params.upper_target:
        return ONE
    return complement(params.fee)


def left_derivative_from_nominal(amount: int, params: LinearParams) -> int:
    if amount <= params.lower_target:
        return div_up(ONE, ONE + params.fee)
    if amount <= params.upper_target:
        return ONE
    return div_up(ONE, complement(params.fee))


def right_derivative_from_nominal(amount: int, params: LinearParams) -> int:
    if amount < params.lower_target:
        return div_up(ONE, ONE + params.fee)
    if amount < params.upper_target:
        return ONE
    return div_up(ONE, complement(params.fee))


def calc_invariant_up(nominal_main_balance: int, wrapped_balance: int, params: LinearParams) -> int:
    return nominal_main_balance + mul_up(wrapped_balance, params.rate)


def calc_invariant_down(
    nominal_main_balance: int, wrapped_balance: int, params: LinearParams
) -> int:
    return nominal_main_balance + mul_down(wrapped_balance, params.rate)


# =============================================================================
# Swaps. Amounts out round down, amounts in round up.
# =============================================================================


def calc_bpt_out_per_main_in(
    main_in: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    # The first deposit mints BPT at par with nominal main
    if bpt_supply == 0:
        return to_nominal(main_in, params)

    previous_nominal_main = to_nominal(main_balance, params)
    after_nominal_main = to_nominal(main_balance + main_in, params)
    delta_nominal_main = after_nominal_main - previous_nominal_main
    invariant = calc_invariant_up(previous_nominal_main, wrapped_balance, params)
    return div_down(mul_down(bpt_supply, delta_nominal_main), invariant)


def calc_bpt_in_per_main_out(
    main_out: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    previous_nominal_main = to_nominal(main_balance, params)
    after_nominal_main = to_nominal(sub(main_balance, main_out), params)
    delta_nominal_main = previous_nominal_main - after_nominal_main
    invariant = calc_invariant_down(previous_nominal_main, wrapped_balance, params)
    return div_up(mul_up(bpt_supply, delta_nominal_main), invariant)


def calc_wrapped_out_per_main_in(main_in: int, main_balance: int, params: LinearParams) -> int:
    previous_nominal_main = to_nominal(main_balance, params)
    after_nominal_main = to_nominal(main_balance + main_in, params)
    delta_nominal_main = after_nominal_main - previous_nominal_main
    return div_down(delta_nominal_main, params.rate)


def calc_wrapped_in_per_main_out(main_out: int, main_balance: int, params: LinearParams) -> int:
    previous_nominal_main = to_nominal(main_balance, params)
    after_nominal_main = to_nominal(sub(main_balance, main_out), params)
    delta_nominal_main = previous_nominal_main - after_nominal_main
    return div_up(delta_nominal_main, params.rate)


def calc_main_in_per_bpt_out(
    bpt_out: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    if bpt_supply == 0:
        return from_nominal(bpt_out, params)

    previous_nominal_main = to_nominal(main_balance, params)
    invariant = calc_invariant_up(previous_nominal_main, wrapped_balance, params)
    delta_nominal_main = div_up(mul_up(invariant, bpt_out), bpt_supply)
    after_nominal_main = previous_nominal_main + delta_nominal_main
    new_main_balance = from_nominal(after_nominal_main, params)
    return sub(new_main_balance, main_balance)


def calc_main_out_per_bpt_in(
    bpt_in: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    previous_nominal_main = to_nominal(main_balance, params)
    invariant = calc_invariant_down(previous_nominal_main, wrapped_balance, params)
    delta_nominal_main = div_down(mul_down(invariant, bpt_in), bpt_supply)
    after_nominal_main = sub(previous_nominal_main, delta_nominal_main)
    new_main_balance = from_nominal(after_nominal_main, params)
    return sub(main_balance, new_main_balance)


def calc_main_out_per_wrapped_in(wrapped_in: int, main_balance: int, params: LinearParams) -> int:
    previous_nominal_main = to_nominal(main_balance, params)
    delta_nominal_main = mul_down(wrapped_in, params.rate)
    after_nominal_main = sub(previous_nominal_main, delta_nominal_main)
    new_main_balance = from_nominal(after_nominal_main, params)
    return sub(main_balance, new_main_balance)


def calc_main_in_per_wrapped_out(wrapped_out: int, main_balance: int, params: LinearParams) -> int:
    previous_nominal_main = to_nominal(main_balance, params)
    delta_nominal_main = mul_up(wrapped_out, params.rate)
    after_nominal_main = previous_nominal_main + delta_nominal_main
    new_main_balance = from_nominal(after_nominal_main, params)
    return sub(new_main_balance, main_balance)


def calc_bpt_out_per_wrapped_in(
    wrapped_in: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    if bpt_supply == 0:
        # Nominal main value of the deposit
        return mul_down(wrapped_in, params.rate)

    nominal_main = to_nominal(main_balance, params)
    previous_invariant = calc_invariant_up(nominal_main, wrapped_balance, params)
    new_invariant = calc_invariant_down(nominal_main, wrapped_balance + wrapped_in, params)
    new_bpt_balance = div_down(mul_down(bpt_supply, new_invariant), previous_invariant)
    return sub(new_bpt_balance, bpt_supply)


def calc_bpt_in_per_wrapped_out(
    wrapped_out: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    nominal_main = to_nominal(main_balance, params)
    previous_invariant = calc_invariant_up(nominal_main, wrapped_balance, params)
    new_invariant = calc_invariant_down(nominal_main, sub(wrapped_balance, wrapped_out), params)
    new_bpt_balance = div_down(mul_down(bpt_supply, new_invariant), previous_invariant)
    return sub(bpt_supply, new_bpt_balance)


def calc_wrapped_in_per_bpt_out(
    bpt_out: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    if bpt_supply == 0:
        return div_up(bpt_out, params.rate)

    nominal_main = to_nominal(main_balance, params)
    previous_invariant = calc_invariant_up(nominal_main, wrapped_balance, params)
    new_bpt_balance = bpt_supply + bpt_out
    new_wrapped_balance = div_up(
        sub(mul_up(div_up(new_bpt_balance, bpt_supply), previous_invariant), nominal_main),
        params.rate,
    )
    return sub(new_wrapped_balance, wrapped_balance)


def calc_wrapped_out_per_bpt_in(
    bpt_in: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    nominal_main = to_nominal(main_balance, params)
    previous_invariant = calc_invariant_up(nominal_main, wrapped_balance, params)
    new_bpt_balance = sub(bpt_supply, bpt_in)
    new_wrapped_balance = div_up(
        sub(mul_up(div_up(new_bpt_balance, bpt_supply), previous_invariant), nominal_main),
        params.rate,
    )
    return sub(wrapped_balance, new_wrapped_balance)


def calc_tokens_out_given_exact_bpt_in(
    balances: Sequence[int], bpt_amount_in: int, bpt_total_supply: int, bpt_index: int
) -> tuple[int, ...]:
    """Proportional exit. The BPT slot gets 0: the pool-held BPT is not LP-owned."""
    bpt_ratio = div_down(bpt_amount_in, bpt_total_supply)
    return tuple(
        0 if i == bpt_index else mul_down(balance, bpt_ratio) for i, balance in enumerate(balances)
    )


# =============================================================================
# Spot prices after a swap, token in per token out, rounded up.
# The price is piecewise constant in the amount, so its derivative is 0.
# =============================================================================


def _pool_factor(
    main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams, round_up: bool
) -> int:
    """Nominal value backing one BPT (ONE for an empty pool)."""
    if bpt_supply == 0:
        return ONE
    invariant = calc_invariant_down(to_nominal(main_balance, params), wrapped_balance, params)
    if round_up:
        return div_up(invariant, bpt_supply)
    return div_down(invariant, bpt_supply)


def spot_price_bpt_out_per_main_in(
    main_in: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    """main -> BPT, exact in."""
    pool_factor = _pool_factor(main_balance, wrapped_balance, bpt_supply, params, round_up=True)
    return div_up(pool_factor, right_derivative_to_nominal(main_balance + main_in, params))


def spot_price_main_in_per_bpt_out(
    bpt_out: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    """main -> BPT, exact out."""
    pool_factor = _pool_factor(main_balance, wrapped_balance, bpt_supply, params, round_up=True)
    after_nominal_main = to_nominal(main_balance, params) + mul_up(bpt_out, pool_factor)
    return mul_up(pool_factor, right_derivative_from_nominal(after_nominal_main, params))


def spot_price_main_out_per_bpt_in(
    bpt_in: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    """BPT -> main, exact in."""
    pool_factor = _pool_factor(main_balance, wrapped_balance, bpt_supply, params, round_up=False)
    after_nominal_main = sub(to_nominal(main_balance, params), mul_down(bpt_in, pool_factor))
    return div_up(
        ONE, mul_up(pool_factor, left_derivative_from_nominal(after_nominal_main, params))
    )


def spot_price_bpt_in_per_main_out(
    main_out: int, main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    """BPT -> main, exact out."""
    final_main_balance = sub(main_balance, main_out)
    pool_factor = _pool_factor(main_balance, wrapped_balance, bpt_supply, params, round_up=True)
    return div_up(left_derivative_to_nominal(final_main_balance, params), pool_factor)


def spot_price_wrapped_out_per_main_in(
    main_in: int, main_balance: int, params: LinearParams
) -> int:
    """main -> wrapped, exact in."""
    return div_up(params.rate, right_derivative_to_nominal(main_balance + main_in, params))


def spot_price_main_in_per_wrapped_out(
    wrapped_out: int, main_balance: int, params: LinearParams
) -> int:
    """main -> wrapped, exact out."""
    after_nominal_main = to_nominal(main_balance, params) + mul_up(wrapped_out, params.rate)
    return mul_up(params.rate, right_derivative_from_nominal(after_nominal_main, params))


def spot_price_main_out_per_wrapped_in(
    wrapped_in: int, main_balance: int, params: LinearParams
) -> int:
    """wrapped -> main, exact in."""
    after_nominal_main = sub(to_nominal(main_balance, params), mul_down(wrapped_in, params.rate))
    return div_up(
        ONE, mul_up(params.rate, left_derivative_from_nominal(after_nominal_main, params))
    )


def spot_price_wrapped_in_per_main_out(
    main_out: int, main_balance: int, params: LinearParams
) -> int:
    """wrapped -> main, exact out."""
    final_main_balance = sub(main_balance, main_out)
    return div_up(left_derivative_to_nominal(final_main_balance, params), params.rate)


def spot_price_wrapped_per_bpt(
    main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    """wrapped -> BPT, either kind. Both sides are linear in the invariant."""
    pool_factor = _pool_factor(main_balance, wrapped_balance, bpt_supply, params, round_up=True)
    return div_up(pool_factor, params.rate)


def spot_price_bpt_per_wrapped(
    main_balance: int, wrapped_balance: int, bpt_supply: int, params: LinearParams
) -> int:
    """BPT -> wrapped, either kind."""
    pool_factor = _pool_factor(main_balance, wrapped_balance, bpt_supply, params, round_up=False)
    return div_up(params.rate, pool_factor)
