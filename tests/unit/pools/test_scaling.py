"""Tests for swap fee and price rate helpers."""

import pytest

from poolmath.errors import InvalidFeeError, InvalidPoolConfiguration
from poolmath.math.fixed_point import ONE
from poolmath.pools.scaling import (
    add_swap_fee_amount,
    downscale_down,
    downscale_up,
    subtract_swap_fee_amount,
    upscale,
    upscale_array,
    validate_swap_fee,
)
from tests.helpers import FEE_03, HUNDRED


class TestSwapFee:
    """Tests for fee deduction and gross-up."""

    def test_subtract_fee(self):
        """0.3% comes off the gross input."""
        assert subtract_swap_fee_amount(HUNDRED, FEE_03) == 997 * ONE // 10

    def test_fee_rounds_up(self):
        """The fee on a single wei rounds up to the whole wei."""
        assert subtract_swap_fee_amount(1, FEE_03) == 0
        assert subtract_swap_fee_amount(1000, FEE_03) == 997

    def test_add_fee_inverts_subtract(self):
        """Grossing up a net amount recovers the gross amount."""
        net = subtract_swap_fee_amount(HUNDRED, FEE_03)
        assert add_swap_fee_amount(net, FEE_03) == HUNDRED

    def test_zero_fee_is_identity(self):
        """A zero fee leaves amounts alone in both directions."""
        assert subtract_swap_fee_amount(HUNDRED, 0) == HUNDRED
        assert add_swap_fee_amount(HUNDRED, 0) == HUNDRED

    @pytest.mark.parametrize("fee", [-1, ONE, 2 * ONE])
    def test_invalid_fee_raises(self, fee):
        """Fees must be in [0, 1e18)."""
        with pytest.raises(InvalidFeeError):
            validate_swap_fee(fee)
        with pytest.raises(InvalidFeeError):
            subtract_swap_fee_amount(HUNDRED, fee)
        with pytest.raises(InvalidFeeError):
            add_swap_fee_amount(HUNDRED, fee)


class TestPriceRates:
    """Tests for rate scaling."""

    def test_upscale(self):
        """Amounts are multiplied by the rate going into the math."""
        assert upscale(HUNDRED, 2 * ONE) == 2 * HUNDRED
        assert upscale(3, ONE // 2) == 1

    def test_downscale_rounding(self):
        """Amounts out round down and amounts in round up."""
        assert downscale_down(10, 3 * ONE) == 3
        assert downscale_up(10, 3 * ONE) == 4

    def test_identity_rate(self):
        """A rate of ONE changes nothing."""
        assert upscale(12345, ONE) == 12345
        assert downscale_down(12345, ONE) == 12345
        assert downscale_up(12345, ONE) == 12345

    def test_upscale_array(self):
        """Each amount is scaled by its own rate."""
        assert upscale_array([HUNDRED, HUNDRED], [ONE, 2 * ONE]) == [HUNDRED, 2 * HUNDRED]

    def test_upscale_array_length_mismatch(self):
        """Rates must line up with amounts."""
        with pytest.raises(InvalidPoolConfiguration):
            upscale_array([HUNDRED, HUNDRED], [ONE])

    def test_non_positive_rate_raises(self):
        """Zero or negative rates are rejected."""
        with pytest.raises(InvalidPoolConfiguration):
            upscale(HUNDRED, 0)
        with pytest.raises(InvalidPoolConfiguration):
            downscale_up(HUNDRED, -ONE)
