"""Tests for fixed-point exp, log and pow."""

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from poolmath.errors import (
    ExponentOutOfRange,
    InvalidExponent,
    ProductOutOfBounds,
    XOutOfBounds,
    YOutOfBounds,
)
from poolmath.math.log_exp import (
    EXPONENT_LB,
    EXPONENT_UB,
    MILD_EXPONENT_BOUND,
    ONE_18,
    log_near_one,
    natural_exp,
    natural_log,
    pow_raw,
)


class TestNaturalExp:
    """Tests for natural_exp."""

    def test_exp_zero(self):
        """e^0 is exactly 1."""
        assert natural_exp(0) == ONE_18

    def test_exp_one(self):
        """e^1 matches e to 18 decimals."""
        assert natural_exp(ONE_18) == 2718281828459045235

    def test_exp_negative(self):
        """e^-1 is the fixed-point reciprocal of e."""
        assert abs(natural_exp(-ONE_18) - 367879441171442321) <= 2

    def test_exp_large_argument(self):
        """Arguments above 64 use the 18-decimal ladder."""
        result = natural_exp(100 * ONE_18)
        assert result == pytest.approx(math.exp(100) * 1e18, rel=1e-12)

    def test_exp_bounds(self):
        """Arguments outside [EXPONENT_LB, EXPONENT_UB] raise."""
        natural_exp(EXPONENT_LB)
        with pytest.raises(InvalidExponent):
            natural_exp(EXPONENT_UB + 1)
        with pytest.raises(InvalidExponent):
            natural_exp(EXPONENT_LB - 1)


class TestNaturalLog:
    """Tests for natural_log and its 36-decimal variant."""

    def test_log_one(self):
        """ln(1) is exactly 0."""
        assert natural_log(ONE_18) == 0

    def test_log_e(self):
        """ln(e) is 1 within a few wei."""
        assert abs(natural_log(2718281828459045235) - ONE_18) <= 10**4

    def test_log_below_one_is_negative(self):
        """ln(0.5) = -ln(2)."""
        result = natural_log(ONE_18 // 2)
        assert result == pytest.approx(-math.log(2) * 1e18, rel=1e-14)

    def test_log_near_one_is_36_decimals(self):
        """log_near_one returns 36 decimals."""
        x = ONE_18 + 10**16  # 1.01
        assert log_near_one(x) == pytest.approx(math.log(1.01) * 1e36, rel=1e-14)

    def test_log_non_positive_raises(self):
        """ln of 0 or a negative value raises XOutOfBounds."""
        with pytest.raises(XOutOfBounds):
            natural_log(0)
        with pytest.raises(XOutOfBounds):
            natural_log(-ONE_18)

    @given(st.integers(min_value=10**6, max_value=10**30))
    def test_exp_inverts_log(self, x):
        """exp(ln(x)) returns x to within 1e-12 relative."""
        assert natural_exp(natural_log(x)) == pytest.approx(x, rel=1e-12, abs=10)


class TestPowRaw:
    """Tests for pow_raw."""

    def test_trivial_exponents(self):
        """x^0 is 1 and 0^y is 0."""
        assert pow_raw(5 * ONE_18, 0) == ONE_18
        assert pow_raw(0, 2 * ONE_18) == 0

    def test_known_values(self):
        """2^2, 4^0.5 and 1.05^3 to 1e-14 relative."""
        assert pow_raw(2 * ONE_18, 2 * ONE_18) == pytest.approx(4e18, rel=1e-14)
        assert pow_raw(4 * ONE_18, ONE_18 // 2) == pytest.approx(2e18, rel=1e-14)
        assert pow_raw(105 * 10**16, 3 * ONE_18) == pytest.approx(1.157625e18, rel=1e-14)

    def test_exponent_bound_raises(self):
        """y at or above MILD_EXPONENT_BOUND raises YOutOfBounds."""
        with pytest.raises(YOutOfBounds):
            pow_raw(2 * ONE_18, MILD_EXPONENT_BOUND)

    def test_product_bound_raises(self):
        """y * ln(x) outside the exp domain raises ProductOutOfBounds."""
        with pytest.raises(ProductOutOfBounds):
            pow_raw(10**12 * ONE_18, 50 * ONE_18)

    def test_base_bound_raises(self):
        """x at or above 2^255 raises XOutOfBounds."""
        with pytest.raises(XOutOfBounds):
            pow_raw(1 << 255, ONE_18)

    def test_domain_errors_share_base(self):
        """All domain errors derive from ExponentOutOfRange."""
        for cls in (XOutOfBounds, YOutOfBounds, ProductOutOfBounds, InvalidExponent):
            assert issubclass(cls, ExponentOutOfRange)
