"""Balancer stable pool math.

Core math for stable (StableSwap/Curve-style) pools: the Newton-Raphson
invariant solver, swaps, joins and exits, and closed-form spot prices and
price derivatives. Matches Balancer's StableMath.sol:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/master/pkg/pool-stable/contracts/StableMath.sol

All balances and amounts are 18-decimal integers. Raw (unscaled) products in
the solver use SafeInt so underflow and division by zero surface as typed
errors. Price rates and swap fees on plain swaps are the caller's job; join
and exit functions apply the swap fee to the non-proportional excess only.
"""

from collections.abc import Sequence
from typing import NamedTuple

from poolmath.errors import (
    BalanceDidNotConverge,
    DivisionByZero,
    InsufficientLiquidity,
    InvalidPoolConfiguration,
    InvariantDidNotConverge,
    TokenNotInPool,
    ZeroBalanceError,
)
from poolmath.math.fixed_point import (
    AMP_PRECISION,
    ONE,
    complement,
    div_down,
    div_down_int,
    div_up,
    div_up_int,
    mul_down,
    mul_up,
    sub,
)
from poolmath.safe_int import S

# Iteration budget shared by both Newton loops; convergence means |delta| <= 1 wei
STABLE_MAX_ITERATIONS = 255


def _check_balances(balances: Sequence[int]) -> None:
    if len(balances) < 2:
        raise InvalidPoolConfiguration(f"Stable pool needs 2+ tokens, got {len(balances)}")
    for i, bal in enumerate(balances):
        if bal <= 0:
            raise ZeroBalanceError(f"Balance at index {i} must be positive")


def _check_index(name: str, index: int, n_coins: int) -> None:
    if not 0 <= index < n_coins:
        raise TokenNotInPool(f"{name} {index} out of range for {n_coins} tokens")


def _check_total_supply(total_supply: int) -> None:
    if total_supply <= 0:
        raise InvalidPoolConfiguration(f"BPT total supply must be positive, got {total_supply}")


def _ratio(numerator: int, denominator: int, round_up: bool) -> int:
    """numerator / denominator for a non-negative result, explicit rounding.

    Slopes that rounding pushes below zero clamp to zero.
    """
    if denominator == 0:
        raise DivisionByZero(f"Division by zero: {numerator} / 0")
    if numerator <= 0:
        return 0
    if round_up:
        return div_up_int(numerator, denominator)
    return div_down_int(numerator, denominator)


# =============================================================================
# Invariant solver
# =============================================================================


def calculate_invariant(amp: int, balances: Sequence[int], round_up: bool = True) -> int:
    """Calculate StableSwap invariant D using Newton-Raphson iteration.

    Uses Balancer's parameterization where amp already includes n^(n-1) and
    AMP_PRECISION, so the Newton step uses amp * n instead of A * n^n.

    Algorithm:
        1. Initial guess: D = sum(balances)
        2. P_D = b_0 * n, then P_D = P_D * b_j * n / D for the other balances
        3. D = (n*D^2 + amp*n*S*P_D / AMP) / ((n+1)*D + (amp*n - AMP)*P_D / AMP)
        4. Stop when |D_new - D_old| <= 1 wei, at most 255 iterations

    Args:
        amp: Amplification parameter (scaled by AMP_PRECISION=1000)
        balances: Token balances (18 decimals)
        round_up: Rounding direction of every division in the step

    Returns:
        The invariant D

    Raises:
        InvariantDidNotConverge: If iteration doesn't converge
        ZeroBalanceError: If any balance is zero
    """
    _check_balances(balances)
    if amp <= 0:
        raise InvalidPoolConfiguration(f"Amplification must be positive, got {amp}")

    n_coins = len(balances)
    sum_balances = S(sum(balances))
    invariant = sum_balances
    amp_times_total = S(amp) * n_coins

    for _ in range(STABLE_MAX_ITERATIONS):
        p_d = S(balances[0]) * n_coins
        for bal in balances[1:]:
            p_d = (p_d * bal * n_coins).divide(invariant, round_up)

        prev_invariant = invariant
        numerator = S(n_coins) * invariant * invariant + (
            amp_times_total * sum_balances * p_d
        ).divide(AMP_PRECISION, round_up)
        denominator = S(n_coins + 1) * invariant + (
            (amp_times_total - AMP_PRECISION) * p_d
        ).divide(AMP_PRECISION, not round_up)
        invariant = numerator.divide(denominator, round_up)

        if invariant.within_one(prev_invariant):
            return invariant.value

    raise InvariantDidNotConverge(
        f"Stable invariant did not converge after {STABLE_MAX_ITERATIONS} iterations"
    )


def get_token_balance_given_invariant_and_all_other_balances(
    amp: int,
    balances: Sequence[int],
    invariant: int,
    token_index: int,
    round_up: bool = True,
) -> int:
    """Solve for balance[token_index] given D and all other balances.

    The current value at token_index still enters the c term (it cancels the
    same factor inside P_D), so callers pass the full balances.

    Args:
        amp: Amplification parameter (scaled by AMP_PRECISION=1000)
        balances: Token balances; the value at token_index is replaced
        invariant: The invariant D to preserve
        token_index: Index of the token whose balance we're solving for
        round_up: Rounding of the Newton steps. The pool-favouring choice is
            up when solving a balance that receives tokens; the exit and
            swap paths in this module always round up.

    Returns:
        The calculated balance

    Raises:
        BalanceDidNotConverge: If iteration doesn't converge
        TokenNotInPool: If token_index is out of range
    """
    n_coins = len(balances)
    _check_index("token_index", token_index, n_coins)

    d = S(invariant)
    amp_times_total = S(amp) * n_coins

    sum_balances = S(balances[0])
    p_d = S(balances[0]) * n_coins
    for bal in balances[1:]:
        p_d = (p_d * bal * n_coins) // d
        sum_balances = sum_balances + bal

    sum_others = sum_balances - balances[token_index]

    inv2 = d * d
    # c = inv2 / (ampTimesTotal * P_D) * AMP_PRECISION * balances[tokenIndex]
    c = inv2.ceiling_div(amp_times_total * p_d) * AMP_PRECISION * balances[token_index]
    # b = sum_others + invariant / ampTimesTotal * AMP_PRECISION
    b = sum_others + (d // amp_times_total) * AMP_PRECISION

    token_balance = (inv2 + c).divide(d + b, round_up)

    for _ in range(STABLE_MAX_ITERATIONS):
        prev_token_balance = token_balance

        # tokenBalance = (tokenBalance^2 + c) / (2 * tokenBalance + b - invariant)
        denominator = (token_balance * 2 + b).checked_sub(d)
        if denominator is None or denominator <= 0:
            raise BalanceDidNotConverge("Denominator became non-positive")

        token_balance = (token_balance * token_balance + c).divide(denominator, round_up)

        if token_balance.within_one(prev_token_balance):
            return token_balance.value

    raise BalanceDidNotConverge(
        f"Stable get_balance did not converge after {STABLE_MAX_ITERATIONS} iterations"
    )


# =============================================================================
# Swaps
# =============================================================================


def _check_swap_indices(n_coins: int, token_index_in: int, token_index_out: int) -> None:
    _check_index("token_index_in", token_index_in, n_coins)
    _check_index("token_index_out", token_index_out, n_coins)
    if token_index_in == token_index_out:
        raise InvalidPoolConfiguration("Cannot swap token with itself")


def calc_out_given_in(
    amp: int,
    balances: Sequence[int],
    token_index_in: int,
    token_index_out: int,
    amount_in: int,
    invariant: int | None = None,
) -> int:
    """Calculate output amount for a given input in a stable pool.

    Fee should be subtracted from amount_in BEFORE calling this function.
    Unlike weighted pools, stable pools do not enforce ratio limits.

    Algorithm:
        1. Calculate current invariant D (rounded up)
        2. Add amount_in to balances[token_index_in]
        3. Solve for new balances[token_index_out] given D
        4. Return: old_balance_out - new_balance_out - 1 (1 wei rounding protection)

    Raises:
        InvariantDidNotConverge: If invariant calculation doesn't converge
        BalanceDidNotConverge: If balance calculation doesn't converge
        InvalidPoolConfiguration: If token_index_in == token_index_out
        TokenNotInPool: If token indices are out of range
    """
    _check_swap_indices(len(balances), token_index_in, token_index_out)
    if invariant is None:
        invariant = calculate_invariant(amp, balances, round_up=True)

    new_balances = list(balances)
    new_balances[token_index_in] += amount_in

    new_balance_out = get_token_balance_given_invariant_and_all_other_balances(
        amp, new_balances, invariant, token_index_out
    )

    old_balance_out = balances[token_index_out]
    # A swap too small to move the curve yields nothing
    if new_balance_out >= old_balance_out:
        return 0
    return old_balance_out - new_balance_out - 1


def calc_in_given_out(
    amp: int,
    balances: Sequence[int],
    token_index_in: int,
    token_index_out: int,
    amount_out: int,
    invariant: int | None = None,
) -> int:
    """Calculate input amount for a given output in a stable pool.

    Fee should be added to the result AFTER calling this function.

    Algorithm:
        1. Calculate current invariant D (rounded up)
        2. Subtract amount_out from balances[token_index_out]
        3. Solve for new balances[token_index_in] given D
        4. Return: new_balance_in - old_balance_in + 1 (1 wei rounding protection)

    Raises:
        InsufficientLiquidity: If amount_out >= balance_out
        Underflow: If the solved balance lands below the current one
    """
    _check_swap_indices(len(balances), token_index_in, token_index_out)
    if amount_out >= balances[token_index_out]:
        raise InsufficientLiquidity("amount_out must be less than balance_out")
    if invariant is None:
        invariant = calculate_invariant(amp, balances, round_up=True)

    new_balances = list(balances)
    new_balances[token_index_out] -= amount_out

    new_balance_in = get_token_balance_given_invariant_and_all_other_balances(
        amp, new_balances, invariant, token_index_in
    )
    return sub(new_balance_in, balances[token_index_in]) + 1


# =============================================================================
# Joins and exits
# =============================================================================


def calc_bpt_out_given_exact_tokens_in(
    amp: int,
    balances: Sequence[int],
    amounts_in: Sequence[int],
    total_supply: int,
    swap_fee: int,
) -> int:
    """BPT minted for a (possibly unbalanced) deposit. Rounds down.

    The first pass computes the ideal proportional ratio, weighting each token
    by its share of the balance sum. The second pass charges the swap fee only
    on the part of each deposit above that ratio.
    """
    _check_balances(balances)
    _check_total_supply(total_supply)
    if len(amounts_in) != len(balances):
        raise InvalidPoolConfiguration(
            f"Got {len(amounts_in)} amounts for {len(balances)} balances"
        )

    sum_balances = sum(balances)
    balance_ratios_with_fee = []
    invariant_ratio_with_fees = 0
    for balance, amount_in in zip(balances, amounts_in):
        current_weight = div_down(balance, sum_balances)
        ratio = div_down(balance + amount_in, balance)
        balance_ratios_with_fee.append(ratio)
        invariant_ratio_with_fees += mul_down(ratio, current_weight)

    new_balances = []
    for balance, amount_in, ratio in zip(balances, amounts_in, balance_ratios_with_fee):
        if ratio > invariant_ratio_with_fees:
            non_taxable = (
                mul_down(balance, invariant_ratio_with_fees - ONE)
                if invariant_ratio_with_fees > ONE
                else 0
            )
            taxable = sub(amount_in, non_taxable)
            amount_in_without_fee = non_taxable + mul_down(taxable, complement(swap_fee))
        else:
            amount_in_without_fee = amount_in
        new_balances.append(balance + amount_in_without_fee)

    current_invariant = calculate_invariant(amp, balances, round_up=True)
    new_invariant = calculate_invariant(amp, new_balances, round_up=False)
    invariant_ratio = div_down(new_invariant, current_invariant)

    # If the invariant didn't increase, no BPT is minted
    if invariant_ratio > ONE:
        return mul_down(total_supply, invariant_ratio - ONE)
    return 0


def calc_token_in_given_exact_bpt_out(
    amp: int,
    balances: Sequence[int],
    token_index: int,
    bpt_amount_out: int,
    total_supply: int,
    swap_fee: int,
) -> int:
    """Single-token deposit needed to mint exactly bpt_amount_out. Rounds up."""
    _check_balances(balances)
    _check_index("token_index", token_index, len(balances))
    _check_total_supply(total_supply)

    current_invariant = calculate_invariant(amp, balances, round_up=True)
    new_invariant = mul_up(div_up(total_supply + bpt_amount_out, total_supply), current_invariant)

    new_balance = get_token_balance_given_invariant_and_all_other_balances(
        amp, balances, new_invariant, token_index
    )
    amount_in_without_fee = sub(new_balance, balances[token_index])

    # Only the part of the deposit swapped into the other tokens pays the fee
    current_weight = div_down(balances[token_index], sum(balances))
    taxable = mul_up(amount_in_without_fee, complement(current_weight))
    non_taxable = sub(amount_in_without_fee, taxable)

    return non_taxable + div_up(taxable, complement(swap_fee))


def calc_bpt_in_given_exact_tokens_out(
    amp: int,
    balances: Sequence[int],
    amounts_out: Sequence[int],
    total_supply: int,
    swap_fee: int,
) -> int:
    """BPT burned for a (possibly unbalanced) withdrawal. Rounds up."""
    _check_balances(balances)
    _check_total_supply(total_supply)
    if len(amounts_out) != len(balances):
        raise InvalidPoolConfiguration(
            f"Got {len(amounts_out)} amounts for {len(balances)} balances"
        )

    sum_balances = sum(balances)
    balance_ratios_without_fee = []
    invariant_ratio_without_fees = 0
    for balance, amount_out in zip(balances, amounts_out):
        current_weight = div_up(balance, sum_balances)
        ratio = div_up(sub(balance, amount_out), balance)
        balance_ratios_without_fee.append(ratio)
        invariant_ratio_without_fees += mul_up(ratio, current_weight)

    new_balances = []
    for balance, amount_out, ratio in zip(balances, amounts_out, balance_ratios_without_fee):
        # No token goes in, so the fee is charged on the excess going out
        if invariant_ratio_without_fees > ratio:
            non_taxable = mul_down(balance, complement(invariant_ratio_without_fees))
            taxable = sub(amount_out, non_taxable)
            amount_out_with_fee = non_taxable + div_up(taxable, complement(swap_fee))
        else:
            amount_out_with_fee = amount_out
        new_balances.append(sub(balance, amount_out_with_fee))

    current_invariant = calculate_invariant(amp, balances, round_up=True)
    new_invariant = calculate_invariant(amp, new_balances, round_up=False)
    invariant_ratio = div_down(new_invariant, current_invariant)

    return mul_up(total_supply, complement(invariant_ratio))


def calc_token_out_given_exact_bpt_in(
    amp: int,
    balances: Sequence[int],
    token_index: int,
    bpt_amount_in: int,
    total_supply: int,
    swap_fee: int,
) -> int:
    """Single-token withdrawal for burning exactly bpt_amount_in. Rounds down."""
    _check_balances(balances)
    _check_index("token_index", token_index, len(balances))
    _check_total_supply(total_supply)

    # A bigger new invariant means less out, so both factors round up
    current_invariant = calculate_invariant(amp, balances, round_up=True)
    new_invariant = mul_up(
        div_up(sub(total_supply, bpt_amount_in), total_supply), current_invariant
    )

    new_balance = get_token_balance_given_invariant_and_all_other_balances(
        amp, balances, new_invariant, token_index
    )
    amount_out_without_fee = sub(balances[token_index], new_balance)

    current_weight = div_down(balances[token_index], sum(balances))
    taxable = mul_up(amount_out_without_fee, complement(current_weight))
    non_taxable = sub(amount_out_without_fee, taxable)

    return non_taxable + mul_down(taxable, complement(swap_fee))


def calc_tokens_out_given_exact_bpt_in(
    balances: Sequence[int],
    bpt_amount_in: int,
    total_supply: int,
) -> tuple[int, ...]:
    """Proportional exit: every balance times bpt_in / supply, rounded down."""
    _check_total_supply(total_supply)
    if bpt_amount_in > total_supply:
        raise InvalidPoolConfiguration("bpt_amount_in exceeds total supply")
    bpt_ratio = div_down(bpt_amount_in, total_supply)
    return tuple(mul_down(balance, bpt_ratio) for balance in balances)


# =============================================================================
# Spot prices and derivatives
# =============================================================================


class PairPartials(NamedTuple):
    """Partial derivatives of the two-token slice of the invariant polynomial.

    With a = amp * n and b = a * (S - D) + D * AMP_PRECISION, the slice
    through tokens x and y is a*x*y*(x + y) + b*x*y = const.
    """

    px: int
    py: int
    pxx: int
    pyy: int
    pxy: int


def pair_partials(
    amp: int, balances: Sequence[int], token_index_in: int, token_index_out: int
) -> PairPartials:
    _check_swap_indices(len(balances), token_index_in, token_index_out)
    invariant = calculate_invariant(amp, balances, round_up=True)
    n_coins = len(balances)
    x = balances[token_index_in]
    y = balances[token_index_out]
    others = sum(balances) - x - y

    a = amp * n_coins
    b = a * (others - invariant) + invariant * AMP_PRECISION
    pxx = 2 * a * y
    pyy = 2 * a * x
    return PairPartials(
        px=2 * a * x * y + a * y * y + b * y,
        py=2 * a * x * y + a * x * x + b * x,
        pxx=pxx,
        pyy=pyy,
        pxy=pxx + pyy + b,
    )


def calc_spot_price(
    amp: int,
    balances: Sequence[int],
    token_index_in: int,
    token_index_out: int,
    swap_fee: int,
) -> int:
    """Marginal price (token in per token out, fee included) at the given balances."""
    p = pair_partials(amp, balances, token_index_in, token_index_out)
    # dy/dx = -px/py on the curve; the fee shrinks the effective input
    return _ratio(p.py * ONE * ONE, p.px * complement(swap_fee), round_up=True)


def calc_spot_price_derivative(
    amp: int,
    balances: Sequence[int],
    token_index_in: int,
    token_index_out: int,
) -> int:
    """d(spot price)/d(amount in) at the given balances, 18-decimal fixed point.

    Equals -(dm/dx) / m^2 for m = px / py taken along the curve:

        (2 px py pxy - pxx py^2 - pyy px^2) / (px^2 py)

    The swap fee cancels: it scales the input and the price inversely.
    """
    p = pair_partials(amp, balances, token_index_in, token_index_out)
    numerator = 2 * p.px * p.py * p.pxy - p.pxx * p.py * p.py - p.pyy * p.px * p.px
    denominator = p.px * p.px * p.py
    return _ratio(numerator * ONE * ONE, denominator, round_up=True)


class BptPartials(NamedTuple):
    """Implicit-function terms of the invariant with respect to one balance.

    gx is dG/dx and m is -dG/dD for G(x, D) = 0, the invariant equation
    multiplied through by x, so dD/dx = gx / m.
    """

    gx: int
    m: int
    d_p: int
    invariant: int
    n_coins: int
    alpha: int
    gamma: int


def bpt_partials(amp: int, balances: Sequence[int], token_index: int) -> BptPartials:
    _check_balances(balances)
    n_coins = len(balances)
    _check_index("token_index", token_index, n_coins)
    invariant = calculate_invariant(amp, balances, round_up=True)

    x = balances[token_index]
    others = sum(balances) - x

    # D_P = D^n / (n^n * prod(other balances))
    d_p = invariant // n_coins
    for j, balance in enumerate(balances):
        if j != token_index:
            d_p = d_p * invariant // (n_coins * balance)

    alpha = amp * n_coins
    gamma = AMP_PRECISION - alpha
    gx = 2 * alpha * x + alpha * others + gamma * invariant
    m = d_p * (n_coins + 1) * AMP_PRECISION - gamma * x
    return BptPartials(gx, m, d_p, invariant, n_coins, alpha, gamma)


def calc_bpt_rate(amp: int, balances: Sequence[int], token_index: int, bpt_supply: int) -> int:
    """Marginal BPT minted per unit of token deposited, zero fee.

    r = (B / D) * dD/dx, the inverse of the token-to-BPT spot price.
    """
    _check_total_supply(bpt_supply)
    p = bpt_partials(amp, balances, token_index)
    return _ratio(p.gx * bpt_supply * ONE, p.m * p.invariant, round_up=True)


def calc_bpt_rate_curvature(
    amp: int, balances: Sequence[int], token_index: int, bpt_supply: int
) -> int:
    """-r'/r^2 along a zero-fee single-token join, 18-decimal fixed point.

    This is d(1/r)/dx, the slope of the token-to-BPT spot price. With
    dD/dx = gx/m and dD_P/dx = n * D_P / D * dD/dx it reduces to

        (AMP n (n+1) D_P gx^2 - 2 alpha m^2 D - 2 gamma gx m D) / (B m gx^2)
    """
    _check_total_supply(bpt_supply)
    p = bpt_partials(amp, balances, token_index)
    numerator = (
        AMP_PRECISION * p.n_coins * (p.n_coins + 1) * p.d_p * p.gx * p.gx
        - 2 * p.alpha * p.m * p.m * p.invariant
        - 2 * p.gamma * p.gx * p.m * p.invariant
    )
    denominator = bpt_supply * p.m * p.gx * p.gx
    return _ratio(numerator * ONE * ONE, denominator, round_up=True)
