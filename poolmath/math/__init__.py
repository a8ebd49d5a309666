"""Fixed-point arithmetic and exp/log primitives."""

from poolmath.math.fixed_point import (
    AMP_PRECISION,
    ONE,
    Bfp,
    complement,
    div_down,
    div_up,
    mul_down,
    mul_up,
    pow_down,
    pow_up,
)
from poolmath.math.log_exp import natural_exp, natural_log, pow_raw

__all__ = [
    "AMP_PRECISION",
    "ONE",
    "Bfp",
    "complement",
    "div_down",
    "div_up",
    "mul_down",
    "mul_up",
    "natural_exp",
    "natural_log",
    "pow_down",
    "pow_raw",
    "pow_up",
]
