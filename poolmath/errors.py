"""Pool math error classes.

Every failure raised by the engine derives from PoolMathError so callers can
exclude a single pool from a quote without masking programming errors.
Arithmetic failures also derive from ArithmeticError.
"""


class PoolMathError(Exception):
    """Base error for pool pricing operations."""

    pass


# =============================================================================
# Fixed-point arithmetic
# =============================================================================


class FixedPointError(PoolMathError, ArithmeticError):
    """Base class for checked fixed-point arithmetic errors."""

    pass


class DivisionByZero(FixedPointError):
    """Division or modulo by zero."""

    pass


class Underflow(FixedPointError):
    """Subtraction would produce negative result."""

    pass


# =============================================================================
# Exp/Log domain
# =============================================================================


class ExponentOutOfRange(PoolMathError):
    """Input is outside the valid exp/log domain."""

    pass


class XOutOfBounds(ExponentOutOfRange):
    """Error 006: Base x is out of valid range."""

    pass


class YOutOfBounds(ExponentOutOfRange):
    """Error 007: Exponent y exceeds MILD_EXPONENT_BOUND."""

    pass


class ProductOutOfBounds(ExponentOutOfRange):
    """Error 008: Result of y * ln(x) is outside valid range for exp."""

    pass


class InvalidExponent(ExponentOutOfRange):
    """Error 009: Exponent is out of valid range."""

    pass


# =============================================================================
# Iterative solvers
# =============================================================================


class ConvergenceError(PoolMathError):
    """Newton iteration exhausted its budget."""

    pass


class InvariantDidNotConverge(ConvergenceError):
    """Newton-Raphson iteration for stable invariant D did not converge."""

    pass


class BalanceDidNotConverge(ConvergenceError):
    """Newton-Raphson iteration for stable balance Y did not converge."""

    pass


# =============================================================================
# Pool configuration
# =============================================================================


class InvalidPoolConfiguration(PoolMathError):
    """Pool parameters are inconsistent or out of range."""

    pass


class TokenNotInPool(InvalidPoolConfiguration, IndexError):
    """Token index does not address a pool token."""

    pass


class ZeroWeightError(InvalidPoolConfiguration):
    """Token weight must be positive."""

    pass


class ZeroBalanceError(InvalidPoolConfiguration):
    """Token balance must be positive."""

    pass


class InvalidFeeError(InvalidPoolConfiguration):
    """Swap fee must be in range [0, 1)."""

    pass


class UnsupportedOperation(InvalidPoolConfiguration):
    """The pool family cannot price this operation."""

    pass


# =============================================================================
# Swap limits
# =============================================================================


class SwapLimitError(PoolMathError):
    """Requested amount exceeds what the pool accepts."""

    pass


class MaxInRatioError(SwapLimitError):
    """Error 304: Input amount exceeds the max in ratio of balance_in."""

    pass


class MaxOutRatioError(SwapLimitError):
    """Error 305: Output amount exceeds the max out ratio of balance_out."""

    pass


class InsufficientLiquidity(SwapLimitError):
    """Output amount must be less than the pool balance."""

    pass


class InvariantRatioError(SwapLimitError):
    """Error 306/307: Join or exit moves the invariant beyond its ratio bound."""

    pass
