"""Balancer Fixed Point (Bfp) arithmetic.

18-decimal fixed-point arithmetic matching Balancer's FixedPoint.sol. Every
operation exists in a rounding-down and a rounding-up flavour; callers pick the
direction that favours the pool (amounts in round up, amounts out round down).

Values are plain integers scaled by 10^18. The module-level functions work on
ints; Bfp wraps an int for readable chained expressions in pool math.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from functools import total_ordering
from typing import ClassVar

from poolmath.errors import DivisionByZero, Underflow
from poolmath.math.log_exp import ONE_18, pow_raw

__all__ = [
    # Classes
    "Bfp",
    # Functions
    "add",
    "sub",
    "mul_down",
    "mul_up",
    "div_down",
    "div_up",
    "div_down_int",
    "div_up_int",
    "complement",
    "pow_down",
    "pow_up",
    "pow_down_fast",
    "pow_up_fast",
    # Constants
    "ONE",
    "MAX_POW_RELATIVE_ERROR",
    "MAX_IN_RATIO",
    "MAX_OUT_RATIO",
    "MAX_INVARIANT_RATIO",
    "MIN_INVARIANT_RATIO",
    "AMP_PRECISION",
]

ONE = ONE_18
TWO = 2 * ONE
FOUR = 4 * ONE

# 10^-14 relative error budget of pow_raw
MAX_POW_RELATIVE_ERROR = 10000


# =============================================================================
# Integer operations
# =============================================================================


def add(a: int, b: int) -> int:
    return a + b


def sub(a: int, b: int) -> int:
    """Checked subtraction.

    Raises:
        Underflow: If b > a
    """
    if b > a:
        raise Underflow(f"Underflow: {a} - {b}")
    return a - b


def mul_down(a: int, b: int) -> int:
    """a * b / 10^18, truncated."""
    return (a * b) // ONE


def mul_up(a: int, b: int) -> int:
    """a * b / 10^18, rounded away from zero."""
    product = a * b
    if product == 0:
        return 0
    return (product - 1) // ONE + 1


def div_down(a: int, b: int) -> int:
    """Divide with floor rounding: (a * 10^18) // b

    Raises:
        DivisionByZero: If b is zero
    """
    if b == 0:
        raise DivisionByZero(f"Fixed-point division by zero: {a} / 0")
    if a == 0:
        return 0
    return (a * ONE) // b


def div_up(a: int, b: int) -> int:
    """Divide with ceiling rounding.

    Raises:
        DivisionByZero: If b is zero
    """
    if b == 0:
        raise DivisionByZero(f"Fixed-point division by zero: {a} / 0")
    if a == 0:
        return 0
    return (a * ONE - 1) // b + 1


def div_down_int(a: int, b: int) -> int:
    """Unscaled floor division (Solidity Math.divDown)."""
    if b == 0:
        raise DivisionByZero(f"Division by zero: {a} / 0")
    return a // b


def div_up_int(a: int, b: int) -> int:
    """Unscaled ceiling division (Solidity Math.divUp); 0 stays 0."""
    if b == 0:
        raise DivisionByZero(f"Division by zero: {a} / 0")
    if a == 0:
        return 0
    return (a - 1) // b + 1


def complement(x: int) -> int:
    """Return 1 - x, clamped to 0 when x > 1."""
    return ONE - x if x < ONE else 0


def _max_pow_error(raw: int) -> int:
    return mul_up(raw, MAX_POW_RELATIVE_ERROR) + 1


def pow_down(x: int, y: int) -> int:
    """Compute x^y rounded down by the pow error bound."""
    raw = pow_raw(x, y)
    max_error = _max_pow_error(raw)
    if raw < max_error:
        return 0
    return raw - max_error


def pow_up(x: int, y: int) -> int:
    """Compute x^y rounded up by the pow error bound."""
    raw = pow_raw(x, y)
    return raw + _max_pow_error(raw)


def pow_down_fast(x: int, y: int) -> int:
    """pow_down with a direct integer path for exponents 1, 2 and 4.

    Used by newer weighted pools (V3Plus) to avoid the ln/exp round-trip.
    """
    if y == ONE:
        return x
    if y == TWO:
        return mul_down(x, x)
    if y == FOUR:
        square = mul_down(x, x)
        return mul_down(square, square)
    return pow_down(x, y)


def pow_up_fast(x: int, y: int) -> int:
    """pow_up with a direct integer path for exponents 1, 2 and 4."""
    if y == ONE:
        return x
    if y == TWO:
        return mul_up(x, x)
    if y == FOUR:
        square = mul_up(x, x)
        return mul_up(square, square)
    return pow_up(x, y)


# =============================================================================
# Bfp value type
# =============================================================================


def _binary(op):
    def method(self: Bfp, other: Bfp) -> Bfp:
        return Bfp(op(self.value, other.value))

    method.__name__ = op.__name__
    method.__doc__ = op.__doc__
    return method


@total_ordering
class Bfp:
    """Unsigned 18-decimal number used by the weighted pool formulas.

    Wraps the raw scaled integer so the math reads left to right, for example
    ``balance.mul_up(weight).div_down(total)``. Equal values compare equal but
    the type is deliberately left unhashable.
    """

    ONE: ClassVar[int] = ONE

    __slots__ = ("value",)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, value: int) -> None:
        self.value = value

    @classmethod
    def from_wei(cls, wei: int) -> Bfp:
        return cls(wei)

    @classmethod
    def from_int(cls, i: int) -> Bfp:
        """Whole units, so from_int(2) holds 2 * 10^18."""
        return cls(i * cls.ONE)

    @classmethod
    def from_decimal(cls, d: Decimal | str) -> Bfp:
        """Scale a human-readable number, rounding half up to the nearest wei.

        Raises:
            ValueError: If d is negative
        """
        d = Decimal(d)
        if d < 0:
            raise ValueError(f"Bfp.from_decimal requires non-negative input, got {d}")
        return cls(int((d * cls.ONE).quantize(Decimal(1), rounding=ROUND_HALF_UP)))

    def to_decimal(self) -> Decimal:
        return Decimal(self.value) / Decimal(self.ONE)

    add = _binary(add)
    sub = _binary(sub)
    mul_down = _binary(mul_down)
    mul_up = _binary(mul_up)
    div_down = _binary(div_down)
    div_up = _binary(div_up)
    pow_down = _binary(pow_down)
    pow_up = _binary(pow_up)
    pow_down_fast = _binary(pow_down_fast)
    pow_up_fast = _binary(pow_up_fast)

    def complement(self) -> Bfp:
        return Bfp(complement(self.value))

    def is_zero(self) -> bool:
        return not self.value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Bfp):
            return self.value == other.value
        return NotImplemented

    def __lt__(self, other: Bfp) -> bool:
        if isinstance(other, Bfp):
            return self.value < other.value
        return NotImplemented

    def __repr__(self) -> str:
        return f"Bfp({self.value})"

    def __str__(self) -> str:
        return str(self.to_decimal())


# =============================================================================
# Limits used by the pool math
# =============================================================================

# Swaps may move at most 30% of a balance
MAX_IN_RATIO = Bfp(3 * ONE // 10)
MAX_OUT_RATIO = Bfp(3 * ONE // 10)
# Joins may at most triple the invariant, exits may shrink it to 70%
MAX_INVARIANT_RATIO = Bfp(3 * ONE)
MIN_INVARIANT_RATIO = Bfp(7 * ONE // 10)
AMP_PRECISION = 1000
