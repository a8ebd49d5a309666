"""Swap fee and price rate helpers.

Rate-bearing pools (MetaStable, Phantom and Composable stable pools) scale
every balance and amount by a per-token price rate before running the stable
math, and scale results back afterwards. Rates are 18-decimal fixed point; a
rate of ONE is the identity.
"""

from collections.abc import Sequence

from poolmath.errors import InvalidFeeError, InvalidPoolConfiguration
from poolmath.math.fixed_point import ONE, complement, div_down, div_up, mul_down, mul_up


def validate_swap_fee(swap_fee: int) -> None:
    """Raise InvalidFeeError unless 0 <= swap_fee < 1e18."""
    if swap_fee < 0 or swap_fee >= ONE:
        raise InvalidFeeError(f"Swap fee must be in range [0, 1e18), got {swap_fee}")


def subtract_swap_fee_amount(amount: int, swap_fee: int) -> int:
    """Subtract swap fee from input amount.

    Used for exact input swaps: fee is deducted before the swap. The fee
    amount rounds up.

    Args:
        amount: Input amount before fee
        swap_fee: Fee as 18-decimal fixed point (3e15 for 0.3%)

    Returns:
        Amount after fee deduction

    Raises:
        InvalidFeeError: If swap_fee is not in range [0, 1e18)
    """
    validate_swap_fee(swap_fee)
    return amount - mul_up(amount, swap_fee)


def add_swap_fee_amount(amount: int, swap_fee: int) -> int:
    """Add swap fee to a calculated input amount.

    Used for exact output swaps: after solving for the raw input, the fee is
    added on top.

    Formula: amount_with_fee = amount / (1 - fee), rounded up

    Raises:
        InvalidFeeError: If swap_fee is not in range [0, 1e18)
    """
    validate_swap_fee(swap_fee)
    return div_up(amount, complement(swap_fee))


def _check_rate(rate: int) -> None:
    if rate <= 0:
        raise InvalidPoolConfiguration(f"Price rate must be positive, got {rate}")


def upscale(amount: int, rate: int) -> int:
    """Apply a price rate to an amount going into the math, rounding down."""
    _check_rate(rate)
    return mul_down(amount, rate)


def upscale_array(amounts: Sequence[int], rates: Sequence[int]) -> list[int]:
    if len(amounts) != len(rates):
        raise InvalidPoolConfiguration(
            f"Expected {len(amounts)} price rates, got {len(rates)}"
        )
    return [upscale(amount, rate) for amount, rate in zip(amounts, rates)]


def downscale_down(amount: int, rate: int) -> int:
    """Remove a price rate from a math result, rounding down (amounts out)."""
    _check_rate(rate)
    return div_down(amount, rate)


def downscale_up(amount: int, rate: int) -> int:
    """Remove a price rate from a math result, rounding up (amounts in)."""
    _check_rate(rate)
    return div_up(amount, rate)
