"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Amounts, fees and amplification parameters
- factories: Pool snapshot factory functions
- reference: Finite-difference oracles for prices and derivatives
"""

from tests.helpers.constants import (
    AMP_5,
    AMP_200,
    FEE_1,
    FEE_03,
    FEE_004,
    HALF,
    HUNDRED,
    ONE,
    PHANTOM_BPT_BALANCE,
    STEP,
    TEN,
    THOUSAND,
    WEIGHTS_50_50,
    WEIGHTS_80_20,
)
from tests.helpers.factories import (
    make_linear_pair,
    make_phantom_pair,
    make_stable_pair,
    make_weighted_pair,
)
from tests.helpers.reference import assert_close, inverse_slope_fp, slope_fp

__all__ = [
    # Constants
    "ONE",
    "TEN",
    "HUNDRED",
    "THOUSAND",
    "STEP",
    "HALF",
    "PHANTOM_BPT_BALANCE",
    "AMP_5",
    "AMP_200",
    "FEE_004",
    "FEE_03",
    "FEE_1",
    "WEIGHTS_50_50",
    "WEIGHTS_80_20",
    # Factories
    "make_weighted_pair",
    "make_stable_pair",
    "make_phantom_pair",
    "make_linear_pair",
    # Reference checks
    "assert_close",
    "slope_fp",
    "inverse_slope_fp",
]
