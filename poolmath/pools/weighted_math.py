"""Balancer weighted pool math.

Core math functions for weighted product pools: swaps, closed-form spot
prices and their derivatives, the invariant, and joins and exits. Matches
Balancer's WeightedMath.sol.
"""

from collections.abc import Sequence
from typing import Literal

from poolmath.errors import (
    InsufficientLiquidity,
    InvalidPoolConfiguration,
    InvariantRatioError,
    MaxInRatioError,
    MaxOutRatioError,
    ZeroBalanceError,
    ZeroWeightError,
)
from poolmath.math.fixed_point import (
    MAX_IN_RATIO,
    MAX_INVARIANT_RATIO,
    MAX_OUT_RATIO,
    MIN_INVARIANT_RATIO,
    ONE,
    Bfp,
)

_ONE = Bfp(ONE)

# Exponent paths selectable through _version; v3Plus pools take the integer
# shortcut for exponents 1, 2 and 4
_POW_UP = {"v0": Bfp.pow_up, "v3Plus": Bfp.pow_up_fast}
_POW_DOWN = {"v0": Bfp.pow_down, "v3Plus": Bfp.pow_down_fast}


def _validate_pair(balance_in: Bfp, weight_in: Bfp, balance_out: Bfp, weight_out: Bfp) -> None:
    for name, weight in (("weight_in", weight_in), ("weight_out", weight_out)):
        if weight.value <= 0:
            raise ZeroWeightError(f"{name} is {weight.value}, weights must be positive")
    for name, balance in (("balance_in", balance_in), ("balance_out", balance_out)):
        if balance.value <= 0:
            raise ZeroBalanceError(f"{name} is {balance.value}, the pair needs liquidity")


def _check_ratio(amount: Bfp, balance: Bfp, ratio: Bfp | None, error: type[Exception]) -> None:
    if ratio is not None and amount.value > balance.mul_down(ratio).value:
        raise error(f"{amount.value} is more than {ratio} of the {balance.value} balance")


def calc_out_given_in(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_in: Bfp,
    *,
    max_in_ratio: Bfp | None = MAX_IN_RATIO,
    _version: Literal["v0", "v3Plus"] = "v0",
) -> Bfp:
    """Tokens out for an exact, already fee-free, amount in.

        out = Bo * (1 - (Bi / (Bi + Ai)) ** (Wi / Wo))

    The power is rounded up so that the output rounds down. Passing
    ``max_in_ratio=None`` lifts the 30% trade size cap.

    Raises:
        MaxInRatioError: If amount_in is above balance_in * max_in_ratio
        ZeroWeightError: If either weight is zero
        ZeroBalanceError: If either balance is zero
    """
    _validate_pair(balance_in, weight_in, balance_out, weight_out)
    _check_ratio(amount_in, balance_in, max_in_ratio, MaxInRatioError)

    shrink = balance_in.div_up(balance_in.add(amount_in))
    power = _POW_UP[_version](shrink, weight_in.div_down(weight_out))
    return balance_out.mul_down(power.complement())


def calc_in_given_out(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_out: Bfp,
    *,
    max_out_ratio: Bfp | None = MAX_OUT_RATIO,
    _version: Literal["v0", "v3Plus"] = "v0",
) -> Bfp:
    """Fee-free tokens in for an exact amount out.

        in = Bi * ((Bo / (Bo - Ao)) ** (Wo / Wi) - 1)

    Everything rounds up here, the exponent included. The caller grosses
    the result up by the swap fee.

    Raises:
        MaxOutRatioError: If amount_out is above balance_out * max_out_ratio
        InsufficientLiquidity: If amount_out would empty the pool
        ZeroWeightError: If either weight is zero
        ZeroBalanceError: If either balance is zero
    """
    _validate_pair(balance_in, weight_in, balance_out, weight_out)
    _check_ratio(amount_out, balance_out, max_out_ratio, MaxOutRatioError)
    if amount_out >= balance_out:
        raise InsufficientLiquidity(
            f"cannot take {amount_out.value} out of a {balance_out.value} balance"
        )

    growth = balance_out.div_up(balance_out.sub(amount_out))
    power = _POW_UP[_version](growth, weight_out.div_up(weight_in))
    return balance_in.mul_up(power.sub(_ONE))


# =============================================================================
# Spot prices and derivatives (token in per token out, fee included)
# =============================================================================


def calc_spot_price_exact_in(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_in: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Spot price after selling amount_in (gross of fee).

    Formula:
        SP = (Bi * wo) / (Bo * wi * (1 - f)) * ((Bi + A(1 - f)) / Bi)^((wi + wo) / wo)
    """
    _validate_pair(balance_in, weight_in, balance_out, weight_out)
    fee_complement = swap_fee.complement()
    net_in = amount_in.mul_up(fee_complement)
    exponent = weight_in.add(weight_out).div_up(weight_out)
    power = balance_in.div_up(balance_in.add(net_in)).pow_up(exponent)
    return balance_in.mul_up(weight_out).div_up(
        balance_out.mul_up(weight_in).mul_up(fee_complement).mul_up(power)
    )


def calc_spot_price_exact_out(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_out: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Spot price after buying amount_out.

    Formula:
        SP = (Bi * wo) / (Bo * wi * (1 - f)) * (Bo / (Bo - B))^((wi + wo) / wi)
    """
    _validate_pair(balance_in, weight_in, balance_out, weight_out)
    if amount_out.value >= balance_out.value:
        raise InsufficientLiquidity("amount_out must be less than balance_out")
    exponent = weight_in.add(weight_out).div_up(weight_in)
    power = balance_out.div_up(balance_out.sub(amount_out)).pow_up(exponent)
    return balance_in.mul_up(weight_out).mul_up(power).div_up(
        balance_out.mul_down(weight_in).mul_down(swap_fee.complement())
    )


def calc_derivative_exact_in(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_in: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """d(spot price)/d(amount_in) after selling amount_in.

    Formula:
        ((wi + wo) / wi) * ((Bi + A(1 - f)) / Bi)^(wi / wo) / Bo
    """
    _validate_pair(balance_in, weight_in, balance_out, weight_out)
    net_in = amount_in.mul_up(swap_fee.complement())
    power = balance_in.add(net_in).div_down(balance_in).pow_up(weight_in.div_up(weight_out))
    return weight_in.add(weight_out).div_up(weight_in).mul_up(power).div_up(balance_out)


def calc_derivative_exact_out(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_out: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """d(spot price)/d(amount_out) after buying amount_out.

    Formula:
        SP * ((wi + wo) / wi) / (Bo - B)
    """
    spot_price = calc_spot_price_exact_out(
        balance_in, weight_in, balance_out, weight_out, amount_out, swap_fee
    )
    exponent = weight_in.add(weight_out).div_up(weight_in)
    return spot_price.mul_up(exponent.div_up(balance_out.sub(amount_out)))


# =============================================================================
# Invariant, joins and exits
# =============================================================================


def _validate_pool(balances: Sequence[Bfp], weights: Sequence[Bfp]) -> None:
    if len(balances) != len(weights):
        raise InvalidPoolConfiguration(f"Got {len(weights)} weights for {len(balances)} balances")
    for i, (balance, weight) in enumerate(zip(balances, weights)):
        if weight.value <= 0:
            raise ZeroWeightError(f"Weight at index {i} must be positive")
        if balance.value <= 0:
            raise ZeroBalanceError(f"Balance at index {i} must be positive")


def _validate_amounts(amounts: Sequence[Bfp], balances: Sequence[Bfp]) -> None:
    if len(amounts) != len(balances):
        raise InvalidPoolConfiguration(f"Got {len(amounts)} amounts for {len(balances)} balances")


def _validate_supply(total_supply: Bfp) -> None:
    if total_supply.value <= 0:
        raise InvalidPoolConfiguration(f"BPT total supply must be positive, got {total_supply}")


def calculate_invariant(balances: Sequence[Bfp], weights: Sequence[Bfp]) -> Bfp:
    """Weighted product invariant: prod(balance_i ^ weight_i), rounded down."""
    _validate_pool(balances, weights)
    invariant = _ONE
    for balance, weight in zip(balances, weights):
        invariant = invariant.mul_down(balance.pow_down(weight))
    if invariant.is_zero():
        raise ZeroBalanceError("Weighted invariant is zero")
    return invariant


def calc_bpt_out_given_exact_tokens_in(
    balances: Sequence[Bfp],
    weights: Sequence[Bfp],
    amounts_in: Sequence[Bfp],
    total_supply: Bfp,
    swap_fee: Bfp,
    *,
    _version: Literal["v0", "v3Plus"] = "v0",
) -> Bfp:
    """BPT minted for a (possibly unbalanced) deposit. Rounds down.

    Tokens deposited above the weight-averaged balance ratio are effectively
    swapped into the others, so that excess pays the swap fee.
    """
    _validate_pool(balances, weights)
    _validate_amounts(amounts_in, balances)
    _validate_supply(total_supply)

    balance_ratios_without_fee = []
    weighted_balance_ratio = Bfp(0)
    for balance, weight, amount_in in zip(balances, weights, amounts_in):
        ratio = balance.add(amount_in).div_down(balance)
        balance_ratios_without_fee.append(ratio)
        weighted_balance_ratio = weighted_balance_ratio.add(ratio.mul_down(weight))

    invariant_ratio = _ONE
    for balance, weight, amount_in, ratio in zip(
        balances, weights, amounts_in, balance_ratios_without_fee
    ):
        if weighted_balance_ratio >= ratio or ratio <= _ONE:
            percentage_excess = Bfp(0)
        else:
            percentage_excess = ratio.sub(weighted_balance_ratio).div_up(ratio.sub(_ONE))

        swap_fee_excess = swap_fee.mul_up(percentage_excess)
        amount_in_after_fee = amount_in.mul_down(swap_fee_excess.complement())
        token_balance_ratio = _ONE.add(amount_in_after_fee.div_down(balance))
        invariant_ratio = invariant_ratio.mul_down(
            _POW_DOWN[_version](token_balance_ratio, weight)
        )

    if invariant_ratio <= _ONE:
        return Bfp(0)
    return total_supply.mul_down(invariant_ratio.sub(_ONE))


def calc_token_in_given_exact_bpt_out(
    balance: Bfp,
    weight: Bfp,
    bpt_amount_out: Bfp,
    total_supply: Bfp,
    swap_fee: Bfp,
    *,
    max_invariant_ratio: Bfp = MAX_INVARIANT_RATIO,
    _version: Literal["v0", "v3Plus"] = "v0",
) -> Bfp:
    """Single-token deposit needed to mint exactly bpt_amount_out. Rounds up.

    Raises:
        InvariantRatioError: If the join grows the invariant past max_invariant_ratio
    """
    _validate_pool([balance], [weight])
    _validate_supply(total_supply)

    invariant_ratio = total_supply.add(bpt_amount_out).div_up(total_supply)
    if invariant_ratio > max_invariant_ratio:
        raise InvariantRatioError(
            f"Invariant ratio {invariant_ratio} above maximum {max_invariant_ratio}"
        )

    balance_ratio = _POW_UP[_version](invariant_ratio, _ONE.div_up(weight))
    amount_in_without_fee = balance.mul_up(balance_ratio.sub(_ONE))

    # Only the share not held in this token is swapped and taxed
    swap_fee_excess = swap_fee.mul_up(weight.complement())
    return amount_in_without_fee.div_up(swap_fee_excess.complement())


def calc_bpt_in_given_exact_tokens_out(
    balances: Sequence[Bfp],
    weights: Sequence[Bfp],
    amounts_out: Sequence[Bfp],
    total_supply: Bfp,
    swap_fee: Bfp,
    *,
    _version: Literal["v0", "v3Plus"] = "v0",
) -> Bfp:
    """BPT burned for a (possibly unbalanced) withdrawal. Rounds up."""
    _validate_pool(balances, weights)
    _validate_amounts(amounts_out, balances)
    _validate_supply(total_supply)

    balance_ratios_without_fee = []
    weighted_balance_ratio = Bfp(0)
    for balance, weight, amount_out in zip(balances, weights, amounts_out):
        ratio = balance.sub(amount_out).div_up(balance)
        balance_ratios_without_fee.append(ratio)
        weighted_balance_ratio = weighted_balance_ratio.add(ratio.mul_up(weight))

    invariant_ratio = _ONE
    for balance, weight, amount_out, ratio in zip(
        balances, weights, amounts_out, balance_ratios_without_fee
    ):
        if weighted_balance_ratio <= ratio or ratio >= _ONE:
            percentage_excess = Bfp(0)
        else:
            percentage_excess = weighted_balance_ratio.sub(ratio).div_up(ratio.complement())

        swap_fee_excess = swap_fee.mul_up(percentage_excess)
        amount_out_before_fee = amount_out.div_up(swap_fee_excess.complement())
        token_balance_ratio = amount_out_before_fee.div_up(balance).complement()
        invariant_ratio = invariant_ratio.mul_down(
            _POW_DOWN[_version](token_balance_ratio, weight)
        )

    return total_supply.mul_up(invariant_ratio.complement())


def calc_token_out_given_exact_bpt_in(
    balance: Bfp,
    weight: Bfp,
    bpt_amount_in: Bfp,
    total_supply: Bfp,
    swap_fee: Bfp,
    *,
    min_invariant_ratio: Bfp = MIN_INVARIANT_RATIO,
    _version: Literal["v0", "v3Plus"] = "v0",
) -> Bfp:
    """Single-token withdrawal for burning exactly bpt_amount_in. Rounds down.

    Raises:
        InvariantRatioError: If the exit shrinks the invariant below min_invariant_ratio
    """
    _validate_pool([balance], [weight])
    _validate_supply(total_supply)

    invariant_ratio = total_supply.sub(bpt_amount_in).div_up(total_supply)
    if invariant_ratio < min_invariant_ratio:
        raise InvariantRatioError(
            f"Invariant ratio {invariant_ratio} below minimum {min_invariant_ratio}"
        )

    balance_ratio = _POW_UP[_version](invariant_ratio, _ONE.div_up(weight))
    amount_out_before_fee = balance.mul_down(balance_ratio.complement())

    swap_fee_excess = swap_fee.mul_up(weight.complement())
    return amount_out_before_fee.mul_down(swap_fee_excess.complement())


def calc_tokens_out_given_exact_bpt_in(
    balances: Sequence[Bfp], bpt_amount_in: Bfp, total_supply: Bfp
) -> list[Bfp]:
    """Proportional exit: every balance times bpt_in / supply, rounded down."""
    _validate_supply(total_supply)
    if bpt_amount_in > total_supply:
        raise InvalidPoolConfiguration("bpt_amount_in exceeds total supply")
    bpt_ratio = bpt_amount_in.div_down(total_supply)
    return [balance.mul_down(bpt_ratio) for balance in balances]
