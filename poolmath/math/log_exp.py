"""Exponential and logarithm functions in 18-decimal fixed point.

Integer-only port of Balancer's LogExpMath.sol:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/6c9e24e22d0c46cca6dd15861d3d33da61a60b98/pkg/solidity-utils/contracts/math/LogExpMath.sol

Exponents are range-reduced against a ladder of 12 precomputed (x_n, e^x_n)
pairs before the residual is evaluated with a Taylor series. Logarithms walk
the same ladder in reverse and finish with the arctanh series in
z = (a - 1) / (a + 1). Arguments within 10% of 1.0 use a 36-decimal variant.
"""

from __future__ import annotations

from poolmath.errors import InvalidExponent, ProductOutOfBounds, XOutOfBounds, YOutOfBounds

__all__ = [
    "natural_exp",
    "natural_log",
    "log_near_one",
    "pow_raw",
    "ONE_18",
    "ONE_20",
    "ONE_36",
    "EXPONENT_LB",
    "EXPONENT_UB",
    "MILD_EXPONENT_BOUND",
]

# =============================================================================
# Constants
# =============================================================================

ONE_18 = 10**18
ONE_20 = 10**20
ONE_36 = 10**36

# Domain of natural_exp: e^EXPONENT_UB still fits 18-decimal uint256 arithmetic,
# e^EXPONENT_LB is the smallest result that does not round to zero.
EXPONENT_UB = 130_700829182905140221
EXPONENT_LB = -41_446531673892822312

LN_36_LOWER_BOUND = ONE_18 - 10**17  # 0.9
LN_36_UPPER_BOUND = ONE_18 + 10**17  # 1.1

# Largest exponent whose product with a 20-decimal log stays below 2^254
MILD_EXPONENT_BOUND = (1 << 254) // ONE_20

# 18-decimal ladder (large arguments). A_18 values carry no decimals.
X_18 = (
    128 * ONE_18,  # 2^7
    64 * ONE_18,  # 2^6
)
A_18 = (
    38877084059945950922200000000000000000000000000000000000,  # e^128
    6235149080811616882910000000,  # e^64
)

# 20-decimal ladder (medium arguments), indices 2..11
X_20 = (
    3_200_000_000_000_000_000_000,  # 2^5
    1_600_000_000_000_000_000_000,  # 2^4
    800_000_000_000_000_000_000,  # 2^3
    400_000_000_000_000_000_000,  # 2^2
    200_000_000_000_000_000_000,  # 2^1
    100_000_000_000_000_000_000,  # 2^0
    50_000_000_000_000_000_000,  # 2^-1
    25_000_000_000_000_000_000,  # 2^-2
    12_500_000_000_000_000_000,  # 2^-3
    6_250_000_000_000_000_000,  # 2^-4
)
A_20 = (
    7_896_296_018_268_069_516_100_000_000_000_000,  # e^32
    888_611_052_050_787_263_676_000_000,  # e^16
    298_095_798_704_172_827_474_000,  # e^8
    5_459_815_003_314_423_907_810,  # e^4
    738_905_609_893_065_022_723,  # e^2
    271_828_182_845_904_523_536,  # e^1
    164_872_127_070_012_814_685,  # e^0.5
    128_402_541_668_774_148_407,  # e^0.25
    113_314_845_306_682_631_683,  # e^0.125
    106_449_445_891_785_942_956,  # e^0.0625
)


def _div_trunc(a: int, b: int) -> int:
    """Integer division truncating toward zero, as Solidity does.

    Python's // rounds toward negative infinity, which differs for operands of
    opposite sign: -7 // 3 == -3 while Solidity gives -2.
    """
    if (a >= 0) == (b >= 0):
        return a // b
    return -(abs(a) // abs(b))


def natural_exp(x: int) -> int:
    """e^x for a signed 18-decimal exponent, returned in 18 decimals.

    Raises:
        InvalidExponent: If x is outside [EXPONENT_LB, EXPONENT_UB]
    """
    if not (EXPONENT_LB <= x <= EXPONENT_UB):
        raise InvalidExponent(f"natural_exp: {x} is outside [{EXPONENT_LB}, {EXPONENT_UB}]")

    if x < 0:
        # e^-x = 1 / e^x
        return (ONE_18 * ONE_18) // natural_exp(-x)

    if x >= X_18[0]:
        x -= X_18[0]
        first_an = A_18[0]
    elif x >= X_18[1]:
        x -= X_18[1]
        first_an = A_18[1]
    else:
        first_an = 1

    # Switch to 20 decimals for the remaining reduction
    x *= 100

    product = ONE_20
    for x_n, a_n in zip(X_20[:8], A_20[:8]):
        if x >= x_n:
            x -= x_n
            product = (product * a_n) // ONE_20

    # e^x = 1 + x + x^2/2! + ... + x^12/12!
    series_sum = ONE_20 + x
    term = x
    for i in range(2, 13):
        term = ((term * x) // ONE_20) // i
        series_sum += term

    return (((product * series_sum) // ONE_20) * first_an) // 100


def _ln(a: int) -> int:
    """Natural logarithm of a positive 18-decimal value, 18-decimal result."""
    if a < ONE_18:
        # ln(a) = -ln(1/a)
        return -_ln((ONE_18 * ONE_18) // a)

    sum_val = 0
    for x_n, a_n in zip(X_18, A_18):
        if a >= a_n * ONE_18:
            a //= a_n
            sum_val += x_n

    sum_val *= 100
    a *= 100

    for x_n, a_n in zip(X_20, A_20):
        if a >= a_n:
            a = (a * ONE_20) // a_n
            sum_val += x_n

    # ln(a) = 2 * (z + z^3/3 + z^5/5 + ... + z^11/11)
    z = ((a - ONE_20) * ONE_20) // (a + ONE_20)
    z_squared = (z * z) // ONE_20

    num = z
    series_sum = num
    for i in range(3, 12, 2):
        num = (num * z_squared) // ONE_20
        series_sum += num // i

    series_sum *= 2

    return (sum_val + series_sum) // 100


def log_near_one(x: int) -> int:
    """Natural logarithm with 36-decimal precision for x close to 1.0.

    Args:
        x: Input value in 18-decimal fixed-point, expected within 10% of ONE_18.

    Returns:
        ln(x) as 36-decimal fixed-point integer.
    """
    x *= ONE_18

    # z is negative when x < 1
    z = _div_trunc((x - ONE_36) * ONE_36, x + ONE_36)
    z_squared = _div_trunc(z * z, ONE_36)

    num = z
    series_sum = num
    for i in range(3, 16, 2):
        num = _div_trunc(num * z_squared, ONE_36)
        series_sum += _div_trunc(num, i)

    return series_sum * 2


def natural_log(a: int) -> int:
    """ln(a) in 18 decimals, switching to the 36-decimal series near 1.

    Raises:
        XOutOfBounds: If a is not positive
    """
    if a <= 0:
        raise XOutOfBounds(f"Logarithm argument {a} must be positive")
    if LN_36_LOWER_BOUND < a < LN_36_UPPER_BOUND:
        return _div_trunc(log_near_one(a), ONE_18)
    return _ln(a)


def pow_raw(x: int, y: int) -> int:
    """x^y for unsigned 18-decimal operands.

    Evaluated as exp(y * ln(x)) with no rounding compensation; see
    pow_up/pow_down in fixed_point for the directional variants.

    Raises:
        XOutOfBounds: If x does not fit in 255 bits
        YOutOfBounds: If y is at or above MILD_EXPONENT_BOUND
        ProductOutOfBounds: If y * ln(x) is outside the exp domain
    """
    if y == 0:
        return ONE_18
    if x == 0:
        return 0

    if x >= (1 << 255):
        raise XOutOfBounds(f"pow base {x} does not fit in 255 bits")
    if y >= MILD_EXPONENT_BOUND:
        raise YOutOfBounds(f"pow exponent {y} is at or above {MILD_EXPONENT_BOUND}")

    if LN_36_LOWER_BOUND < x < LN_36_UPPER_BOUND:
        ln_36_x = log_near_one(x)
        # Split to keep y * ln_36_x within the 36-decimal budget
        div1 = _div_trunc(ln_36_x, ONE_18)
        rem1 = ln_36_x - div1 * ONE_18
        logx_times_y = div1 * y + _div_trunc(rem1 * y, ONE_18)
    else:
        logx_times_y = _ln(x) * y

    logx_times_y = _div_trunc(logx_times_y, ONE_18)

    if not (EXPONENT_LB <= logx_times_y <= EXPONENT_UB):
        raise ProductOutOfBounds(f"y * ln(x) = {logx_times_y} is outside the exp domain")

    return natural_exp(logx_times_y)
