"""Tests for stable pool math: invariant solver, swaps, joins, exits and prices."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from poolmath.errors import (
    BalanceDidNotConverge,
    InsufficientLiquidity,
    InvalidPoolConfiguration,
    InvariantDidNotConverge,
    TokenNotInPool,
    ZeroBalanceError,
)
from poolmath.math.fixed_point import ONE, complement, div_up
from poolmath.pools import stable_math
from tests.helpers import AMP_5, AMP_200, FEE_004, STEP, THOUSAND, TEN, assert_close
from tests.helpers.reference import slope_fp

BALANCED = [THOUSAND, THOUSAND, THOUSAND]
IMBALANCED = [THOUSAND, 3 * THOUSAND // 2, 4 * THOUSAND // 5]


class TestCalculateInvariant:
    """Tests for the Newton-Raphson invariant solver."""

    def test_balanced_pool_invariant_is_sum(self):
        """A perfectly balanced pool has D equal to the balance sum."""
        assert stable_math.calculate_invariant(AMP_200, BALANCED) == 3 * THOUSAND

    def test_invariant_below_sum_when_imbalanced(self):
        """Imbalance pulls D below the sum of balances."""
        invariant = stable_math.calculate_invariant(AMP_200, IMBALANCED)
        assert invariant < sum(IMBALANCED)
        assert invariant > sum(IMBALANCED) * 99 // 100

    def test_rounding_directions_agree(self):
        """Both rounding directions converge to within a few wei."""
        up = stable_math.calculate_invariant(AMP_5, IMBALANCED, round_up=True)
        down = stable_math.calculate_invariant(AMP_5, IMBALANCED, round_up=False)
        assert abs(up - down) <= 4

    def test_zero_balance_raises(self):
        """Every balance must be positive."""
        with pytest.raises(ZeroBalanceError):
            stable_math.calculate_invariant(AMP_200, [THOUSAND, 0])

    def test_single_token_raises(self):
        """A stable pool needs at least two tokens."""
        with pytest.raises(InvalidPoolConfiguration):
            stable_math.calculate_invariant(AMP_200, [THOUSAND])

    def test_non_convergence_raises(self, monkeypatch):
        """Exhausting the iteration budget raises InvariantDidNotConverge."""
        monkeypatch.setattr(stable_math, "STABLE_MAX_ITERATIONS", 1)
        with pytest.raises(InvariantDidNotConverge):
            stable_math.calculate_invariant(AMP_200, [ONE, THOUSAND])


pool_balances = st.lists(
    st.integers(min_value=100 * ONE, max_value=10_000 * ONE), min_size=2, max_size=8
)
amps = st.integers(min_value=1, max_value=5000).map(lambda a: a * 1000)


class TestInvariantProperties:
    """Property tests for the invariant across pool sizes and amplifications."""

    @given(amps, pool_balances)
    def test_converges_between_bounds(self, amp, balances):
        """D lies between n * min(balance) and the balance sum."""
        invariant = stable_math.calculate_invariant(amp, balances)
        assert len(balances) * min(balances) <= invariant <= sum(balances) + 1

    @given(amps, pool_balances)
    def test_deterministic(self, amp, balances):
        """The same inputs always give the same invariant."""
        first = stable_math.calculate_invariant(amp, balances)
        assert stable_math.calculate_invariant(amp, list(balances)) == first

    @given(amps, pool_balances, st.data())
    def test_monotonic_in_each_balance(self, amp, balances, data):
        """Adding to any balance raises D."""
        index = data.draw(st.integers(min_value=0, max_value=len(balances) - 1))
        grown = list(balances)
        grown[index] += ONE
        assert stable_math.calculate_invariant(amp, grown) > stable_math.calculate_invariant(
            amp, balances
        )


class TestGetTokenBalance:
    """Tests for solving one balance given the invariant."""

    def test_recovers_balance(self):
        """Solving a balance at the pool's own invariant returns that balance."""
        invariant = stable_math.calculate_invariant(AMP_200, IMBALANCED)
        for index, balance in enumerate(IMBALANCED):
            solved = stable_math.get_token_balance_given_invariant_and_all_other_balances(
                AMP_200, IMBALANCED, invariant, index
            )
            assert abs(solved - balance) <= 5

    def test_index_out_of_range_raises(self):
        """token_index must address a pool token."""
        with pytest.raises(TokenNotInPool):
            stable_math.get_token_balance_given_invariant_and_all_other_balances(
                AMP_200, BALANCED, 3 * THOUSAND, 3
            )

    def test_non_convergence_raises(self, monkeypatch):
        """Exhausting the iteration budget raises BalanceDidNotConverge."""
        balances = [ONE, THOUSAND]
        invariant = stable_math.calculate_invariant(AMP_200, balances)
        monkeypatch.setattr(stable_math, "STABLE_MAX_ITERATIONS", 1)
        with pytest.raises(BalanceDidNotConverge):
            stable_math.get_token_balance_given_invariant_and_all_other_balances(
                AMP_200, [TEN, THOUSAND], invariant, 0
            )


class TestSwaps:
    """Tests for calc_out_given_in / calc_in_given_out."""

    def test_balanced_swap_near_par(self):
        """A small swap in a high-amp balanced pool trades close to 1:1."""
        amount_out = stable_math.calc_out_given_in(AMP_200, BALANCED, 0, 1, ONE)
        assert ONE * 9999 // 10000 < amount_out < ONE

    def test_out_given_in_monotonic(self):
        """More in gives more out."""
        outs = [
            stable_math.calc_out_given_in(AMP_200, IMBALANCED, 0, 2, amount)
            for amount in (ONE, TEN, 10 * TEN)
        ]
        assert outs[0] < outs[1] < outs[2]

    def test_in_given_out_inverts_out_given_in(self):
        """Pricing the output back gives the input to within solver rounding."""
        amount_out = stable_math.calc_out_given_in(AMP_200, IMBALANCED, 1, 2, TEN)
        amount_in = stable_math.calc_in_given_out(AMP_200, IMBALANCED, 1, 2, amount_out)
        assert abs(amount_in - TEN) <= 10

    def test_out_at_or_above_balance_raises(self):
        """amount_out must be below the balance."""
        with pytest.raises(InsufficientLiquidity):
            stable_math.calc_in_given_out(AMP_200, BALANCED, 0, 1, THOUSAND)

    def test_same_token_raises(self):
        """A token cannot be swapped for itself."""
        with pytest.raises(InvalidPoolConfiguration):
            stable_math.calc_out_given_in(AMP_200, BALANCED, 1, 1, ONE)

    @given(st.integers(min_value=10**12, max_value=300 * ONE))
    def test_round_trip_does_not_create_value(self, amount_in):
        """Selling back what was bought returns at most the input, up to solver rounding."""
        amount_out = stable_math.calc_out_given_in(AMP_200, IMBALANCED, 0, 1, amount_in)
        if amount_out == 0:
            return
        amount_back = stable_math.calc_out_given_in(
            AMP_200,
            [IMBALANCED[0] + amount_in, IMBALANCED[1] - amount_out, IMBALANCED[2]],
            1,
            0,
            amount_out,
        )
        assert amount_back <= amount_in + 2


class TestJoinsAndExits:
    """Tests for BPT joins and exits."""

    def test_proportional_join_mints_proportionally(self):
        """A proportional deposit pays no fee and mints its share of supply."""
        bpt_out = stable_math.calc_bpt_out_given_exact_tokens_in(
            AMP_200, BALANCED, [TEN, TEN, TEN], 3 * THOUSAND, FEE_004
        )
        assert_close(bpt_out, 30 * ONE, rel=1e-12)

    def test_single_token_join_pays_fee(self):
        """A one-sided deposit mints less than a proportional one."""
        single = stable_math.calc_bpt_out_given_exact_tokens_in(
            AMP_200, BALANCED, [30 * ONE, 0, 0], 3 * THOUSAND, FEE_004
        )
        no_fee = stable_math.calc_bpt_out_given_exact_tokens_in(
            AMP_200, BALANCED, [30 * ONE, 0, 0], 3 * THOUSAND, 0
        )
        assert single < no_fee < 30 * ONE

    def test_zero_deposit_mints_nothing(self):
        """Depositing nothing mints no BPT."""
        assert (
            stable_math.calc_bpt_out_given_exact_tokens_in(
                AMP_200, BALANCED, [0, 0, 0], 3 * THOUSAND, FEE_004
            )
            == 0
        )

    def test_token_in_for_bpt_out_inverts_join(self):
        """Token needed for BPT out is close to the deposit that mints it."""
        bpt_out = stable_math.calc_bpt_out_given_exact_tokens_in(
            AMP_200, IMBALANCED, [TEN, 0, 0], 3 * THOUSAND, FEE_004
        )
        token_in = stable_math.calc_token_in_given_exact_bpt_out(
            AMP_200, IMBALANCED, 0, bpt_out, 3 * THOUSAND, FEE_004
        )
        assert_close(token_in, TEN, rel=1e-6)
        assert token_in >= TEN

    def test_bpt_in_for_tokens_out_inverts_exit(self):
        """BPT burned for a token out is close to the BPT that releases it."""
        token_out = stable_math.calc_token_out_given_exact_bpt_in(
            AMP_200, IMBALANCED, 1, TEN, 3 * THOUSAND, FEE_004
        )
        bpt_in = stable_math.calc_bpt_in_given_exact_tokens_out(
            AMP_200, IMBALANCED, [0, token_out, 0], 3 * THOUSAND, FEE_004
        )
        assert_close(bpt_in, TEN, rel=1e-6)
        assert bpt_in >= TEN

    def test_proportional_exit(self):
        """Proportional exit pays each balance times the BPT share."""
        amounts = stable_math.calc_tokens_out_given_exact_bpt_in(
            IMBALANCED, 300 * ONE, 3 * THOUSAND
        )
        assert amounts == tuple(b // 10 for b in IMBALANCED)

    def test_exit_more_than_supply_raises(self):
        """Cannot burn more BPT than exists."""
        with pytest.raises(InvalidPoolConfiguration):
            stable_math.calc_tokens_out_given_exact_bpt_in(BALANCED, 4 * THOUSAND, 3 * THOUSAND)

    def test_zero_supply_raises(self):
        """Joins need a positive supply."""
        with pytest.raises(InvalidPoolConfiguration):
            stable_math.calc_token_in_given_exact_bpt_out(AMP_200, BALANCED, 0, ONE, 0, FEE_004)


class TestSpotPrice:
    """Tests for the closed-form stable spot price and derivative."""

    def test_balanced_price_is_par(self):
        """A balanced pool prices at exactly 1 without fee."""
        assert stable_math.calc_spot_price(AMP_200, BALANCED, 0, 1, 0) == ONE

    def test_fee_grosses_up_price(self):
        """The fee divides the price by 1 - fee."""
        price = stable_math.calc_spot_price(AMP_200, BALANCED, 0, 1, FEE_004)
        assert price == div_up(ONE, complement(FEE_004))

    def test_scarce_token_is_expensive(self):
        """Buying the scarcer token costs more than one unit in."""
        assert stable_math.calc_spot_price(AMP_5, IMBALANCED, 1, 2, 0) > ONE
        assert stable_math.calc_spot_price(AMP_5, IMBALANCED, 2, 1, 0) < ONE

    def test_price_matches_swap_slope(self):
        """The spot price is the inverse slope of amounts out."""
        price = stable_math.calc_spot_price(AMP_5, IMBALANCED, 0, 2, 0)
        amount_in = 10**15
        amount_out = stable_math.calc_out_given_in(AMP_5, IMBALANCED, 0, 2, amount_in)
        assert_close(price, amount_in * ONE // amount_out)

    def test_derivative_matches_price_slope(self):
        """The derivative is the slope of the price along the curve."""

        def price_after(amount_in: int) -> int:
            amount_out = stable_math.calc_out_given_in(AMP_5, IMBALANCED, 0, 2, amount_in)
            balances = [IMBALANCED[0] + amount_in, IMBALANCED[1], IMBALANCED[2] - amount_out]
            return stable_math.calc_spot_price(AMP_5, balances, 0, 2, 0)

        derivative = stable_math.calc_spot_price_derivative(
            AMP_5,
            [
                IMBALANCED[0] + TEN,
                IMBALANCED[1],
                IMBALANCED[2] - stable_math.calc_out_given_in(AMP_5, IMBALANCED, 0, 2, TEN),
            ],
            0,
            2,
        )
        assert derivative > 0
        assert_close(derivative, slope_fp(price_after, TEN, STEP))


class TestBptRate:
    """Tests for the marginal BPT rate of single-token joins."""

    def test_balanced_rate_is_supply_over_invariant(self):
        """In a balanced pool each token adds exactly one unit of D."""
        assert stable_math.calc_bpt_rate(AMP_200, BALANCED, 0, 3 * THOUSAND) == ONE
        assert stable_math.calc_bpt_rate(AMP_200, BALANCED, 1, 6 * THOUSAND) == 2 * ONE

    def test_rate_matches_join_slope(self):
        """The rate is the slope of BPT minted for a fee-free deposit."""

        def minted(amount: int) -> int:
            return stable_math.calc_bpt_out_given_exact_tokens_in(
                AMP_5, IMBALANCED, [0, amount, 0], 3 * THOUSAND, 0
            )

        rate = stable_math.calc_bpt_rate(AMP_5, IMBALANCED, 1, 3 * THOUSAND)
        assert_close(rate, slope_fp(minted, 10**15, 10**15 // 2))

    def test_curvature_positive_for_abundant_token(self):
        """Depositing more of an abundant token makes BPT dearer."""
        assert stable_math.calc_bpt_rate_curvature(AMP_5, IMBALANCED, 1, 3 * THOUSAND) > 0

    def test_zero_supply_raises(self):
        """The rate needs a positive supply."""
        with pytest.raises(InvalidPoolConfiguration):
            stable_math.calc_bpt_rate(AMP_200, BALANCED, 0, 0)
