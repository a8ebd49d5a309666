"""Raw-integer arithmetic for the stable pool Newton loops.

The invariant and balance solvers multiply balances, the invariant and the
amplification together without fixed-point rescaling, then divide with a
rounding direction that alternates between numerator and denominator terms.
SafeInt carries those products so that a zero divisor or a negative
difference stops the loop with a typed PoolMathError instead of a silently
wrong invariant.

Example:
    from poolmath.safe_int import S

    p_d = S(balances[0]) * n_coins
    for bal in balances[1:]:
        p_d = (p_d * bal * n_coins).divide(invariant, round_up)
"""

from __future__ import annotations

from functools import total_ordering

from poolmath.errors import DivisionByZero, Underflow


def _raw(x: SafeInt | int) -> int:
    return x._value if isinstance(x, SafeInt) else x


def _non_negative(result: int, expression: str) -> SafeInt:
    if result < 0:
        raise Underflow(f"Underflow: {expression} = {result}")
    return SafeInt(result)


@total_ordering
class SafeInt:
    """Non-negative solver quantity with checked subtraction and division.

    Addition and multiplication are plain big-int operations. Subtraction
    raises Underflow below zero; every division raises DivisionByZero on a
    zero divisor and rounds in the direction the caller names.
    """

    __slots__ = ("_value",)

    def __init__(self, value: SafeInt | int) -> None:
        if isinstance(value, SafeInt):
            value = value._value
        elif not isinstance(value, int):
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __int__(self) -> int:
        return self._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (SafeInt, int)):
            return self._value == _raw(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _raw(other)

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _raw(other))

    __radd__ = __add__

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _raw(other))

    __rmul__ = __mul__

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        return _non_negative(self._value - _raw(other), f"{self._value} - {_raw(other)}")

    def __rsub__(self, other: int) -> SafeInt:
        return _non_negative(other - self._value, f"{other} - {self._value}")

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        return self.divide(other, round_up=False)

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Round-up division; zero stays zero (Solidity Math.divUp)."""
        return self.divide(other, round_up=True)

    def divide(self, other: SafeInt | int, round_up: bool) -> SafeInt:
        """Integer division in the requested direction.

        Raises:
            DivisionByZero: If other is zero
        """
        divisor = _raw(other)
        if divisor == 0:
            raise DivisionByZero(f"Division by zero: {self._value} / 0")
        if round_up and self._value != 0:
            return SafeInt((self._value - 1) // divisor + 1)
        return SafeInt(self._value // divisor)

    def checked_sub(self, other: SafeInt | int) -> SafeInt | None:
        """self - other, or None where the difference would be negative."""
        result = self._value - _raw(other)
        return SafeInt(result) if result >= 0 else None

    def within_one(self, other: SafeInt | int) -> bool:
        """Newton convergence test: the two iterates differ by at most 1 wei."""
        return abs(self._value - _raw(other)) <= 1


S = SafeInt
