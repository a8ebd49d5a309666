"""Per-call pool snapshots consumed by the pricing modules.

Callers build one of these fresh for every quote. They are frozen and the
engine never mutates them; every sequence is normalized to a tuple.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from poolmath.config import MAX_TOKEN_BALANCE
from poolmath.errors import (
    InvalidPoolConfiguration,
    TokenNotInPool,
    ZeroWeightError,
)
from poolmath.math.fixed_point import ONE
from poolmath.pools.linear_math import LinearParams
from poolmath.pools.scaling import validate_swap_fee


class SwapKind(str, Enum):
    """Which side of the swap the caller fixes."""

    EXACT_IN = "exact_in"
    EXACT_OUT = "exact_out"


class PairType(Enum):
    """Whether a swap trades the pool's own token."""

    TOKEN_TO_TOKEN = "token_to_token"
    TOKEN_TO_BPT = "token_to_bpt"
    BPT_TO_TOKEN = "bpt_to_token"


def _check_index(name: str, index: int, n_tokens: int) -> None:
    if not 0 <= index < n_tokens:
        raise TokenNotInPool(f"{name} {index} out of range for {n_tokens} tokens")


def _check_balances(balances: tuple[int, ...]) -> None:
    for i, balance in enumerate(balances):
        if balance < 0:
            raise InvalidPoolConfiguration(f"Balance at index {i} is negative: {balance}")


def _check_pair(token_index_in: int, token_index_out: int, n_tokens: int) -> None:
    _check_index("token_index_in", token_index_in, n_tokens)
    _check_index("token_index_out", token_index_out, n_tokens)
    if token_index_in == token_index_out:
        raise InvalidPoolConfiguration("Cannot swap token with itself")


@dataclass(frozen=True)
class WeightedPoolPairData:
    """Weighted pool snapshot.

    Attributes:
        balances: Upscaled balances of every pool token
        weights: Normalized weights, summing to exactly 1e18
        token_index_in: Index of the token sent to the pool
        token_index_out: Index of the token taken from the pool
        swap_fee: Fee as 18-decimal fixed point
        total_supply: BPT supply, needed only for joins and exits
        version: Pool version - V3Plus pools take the integer pow path
    """

    balances: tuple[int, ...]
    weights: tuple[int, ...]
    token_index_in: int
    token_index_out: int
    swap_fee: int
    total_supply: int = 0
    version: Literal["v0", "v3Plus"] = "v0"

    def __post_init__(self) -> None:
        object.__setattr__(self, "balances", tuple(self.balances))
        object.__setattr__(self, "weights", tuple(self.weights))
        n_tokens = len(self.balances)
        if n_tokens < 2:
            raise InvalidPoolConfiguration(f"Weighted pool needs 2+ tokens, got {n_tokens}")
        if len(self.weights) != n_tokens:
            raise InvalidPoolConfiguration(
                f"Got {len(self.weights)} weights for {n_tokens} balances"
            )
        for i, weight in enumerate(self.weights):
            if weight <= 0:
                raise ZeroWeightError(f"Weight at index {i} must be positive")
        if sum(self.weights) != ONE:
            raise InvalidPoolConfiguration(f"Weights sum to {sum(self.weights)}, expected {ONE}")
        _check_balances(self.balances)
        _check_pair(self.token_index_in, self.token_index_out, n_tokens)
        validate_swap_fee(self.swap_fee)
        if self.version not in ("v0", "v3Plus"):
            raise InvalidPoolConfiguration(f"Unknown weighted pool version {self.version!r}")

    @property
    def balance_in(self) -> int:
        return self.balances[self.token_index_in]

    @property
    def balance_out(self) -> int:
        return self.balances[self.token_index_out]

    @property
    def weight_in(self) -> int:
        return self.weights[self.token_index_in]

    @property
    def weight_out(self) -> int:
        return self.weights[self.token_index_out]


@dataclass(frozen=True)
class StablePoolPairData:
    """Stable pool snapshot (Stable, MetaStable, Phantom and Composable).

    Attributes:
        balances: Upscaled balances of every pool token, BPT included when
            bpt_index is set
        amp: Amplification parameter, already multiplied by AMP_PRECISION
        token_index_in: Index of the token sent to the pool
        token_index_out: Index of the token taken from the pool
        swap_fee: Fee as 18-decimal fixed point
        price_rates: Optional per-token price rates (1e18 = identity)
        total_supply: BPT total supply. Plain stable pools use it for joins and
            exits; composable pools subtract the pool-held BPT from it.
        bpt_index: Position of the pool's own token in balances, if any
    """

    balances: tuple[int, ...]
    amp: int
    token_index_in: int
    token_index_out: int
    swap_fee: int
    price_rates: tuple[int, ...] | None = None
    total_supply: int = 0
    bpt_index: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "balances", tuple(self.balances))
        if self.price_rates is not None:
            object.__setattr__(self, "price_rates", tuple(self.price_rates))
        n_tokens = len(self.balances)
        min_tokens = 2 if self.bpt_index is None else 3
        if n_tokens < min_tokens:
            raise InvalidPoolConfiguration(
                f"Stable pool needs {min_tokens}+ balances, got {n_tokens}"
            )
        if self.amp <= 0:
            raise InvalidPoolConfiguration(f"Amplification must be positive, got {self.amp}")
        if self.price_rates is not None:
            if len(self.price_rates) != n_tokens:
                raise InvalidPoolConfiguration(
                    f"Got {len(self.price_rates)} price rates for {n_tokens} balances"
                )
            for i, rate in enumerate(self.price_rates):
                if rate <= 0:
                    raise InvalidPoolConfiguration(f"Price rate at index {i} must be positive")
        if self.bpt_index is not None:
            _check_index("bpt_index", self.bpt_index, n_tokens)
            if self.price_rates is not None and self.price_rates[self.bpt_index] != ONE:
                # BPT amounts are never rate-scaled
                raise InvalidPoolConfiguration(
                    f"BPT price rate must be {ONE}, got {self.price_rates[self.bpt_index]}"
                )
        if self.total_supply < 0:
            raise InvalidPoolConfiguration("total_supply must not be negative")
        _check_balances(self.balances)
        _check_pair(self.token_index_in, self.token_index_out, n_tokens)
        validate_swap_fee(self.swap_fee)

    @property
    def balance_in(self) -> int:
        return self.balances[self.token_index_in]

    @property
    def balance_out(self) -> int:
        return self.balances[self.token_index_out]

    @property
    def rates(self) -> tuple[int, ...]:
        if self.price_rates is None:
            return (ONE,) * len(self.balances)
        return self.price_rates

    @property
    def rate_in(self) -> int:
        return self.rates[self.token_index_in]

    @property
    def rate_out(self) -> int:
        return self.rates[self.token_index_out]

    @property
    def pair_type(self) -> PairType:
        if self.bpt_index is not None:
            if self.token_index_in == self.bpt_index:
                return PairType.BPT_TO_TOKEN
            if self.token_index_out == self.bpt_index:
                return PairType.TOKEN_TO_BPT
        return PairType.TOKEN_TO_TOKEN


@dataclass(frozen=True)
class LinearPoolPairData:
    """Linear pool snapshot: a main token, its wrapped form and the BPT.

    Attributes:
        balances: Upscaled balances of the three pool tokens
        main_index: Position of the main token
        wrapped_index: Position of the wrapped token
        bpt_index: Position of the pool's own token
        token_index_in: Index of the token sent to the pool
        token_index_out: Index of the token taken from the pool
        swap_fee: Fee charged outside the target band
        wrapped_rate: Main tokens per wrapped token (18-decimal)
        lower_target: Lower edge of the zero-fee band
        upper_target: Upper edge of the zero-fee band
        total_supply: BPT total supply including the pool-held premint
    """

    balances: tuple[int, ...]
    main_index: int
    wrapped_index: int
    bpt_index: int
    token_index_in: int
    token_index_out: int
    swap_fee: int
    wrapped_rate: int
    lower_target: int
    upper_target: int
    total_supply: int = MAX_TOKEN_BALANCE

    def __post_init__(self) -> None:
        object.__setattr__(self, "balances", tuple(self.balances))
        if len(self.balances) != 3:
            raise InvalidPoolConfiguration(
                f"Linear pool has exactly 3 balances, got {len(self.balances)}"
            )
        if sorted((self.main_index, self.wrapped_index, self.bpt_index)) != [0, 1, 2]:
            raise InvalidPoolConfiguration("main, wrapped and bpt indices must be 0, 1, 2")
        _check_balances(self.balances)
        _check_pair(self.token_index_in, self.token_index_out, 3)
        validate_swap_fee(self.swap_fee)
        if self.wrapped_rate <= 0:
            raise InvalidPoolConfiguration(
                f"Wrapped rate must be positive, got {self.wrapped_rate}"
            )
        if self.lower_target > self.upper_target:
            raise InvalidPoolConfiguration("lower_target must not exceed upper_target")
        if self.total_supply < self.bpt_balance:
            raise InvalidPoolConfiguration("total_supply is below the pool-held BPT balance")

    @property
    def balance_in(self) -> int:
        return self.balances[self.token_index_in]

    @property
    def balance_out(self) -> int:
        return self.balances[self.token_index_out]

    @property
    def main_balance(self) -> int:
        return self.balances[self.main_index]

    @property
    def wrapped_balance(self) -> int:
        return self.balances[self.wrapped_index]

    @property
    def bpt_balance(self) -> int:
        return self.balances[self.bpt_index]

    @property
    def virtual_bpt_supply(self) -> int:
        """BPT in circulation: total supply minus what the pool holds."""
        return self.total_supply - self.bpt_balance

    @property
    def params(self) -> LinearParams:
        return LinearParams(
            fee=self.swap_fee,
            rate=self.wrapped_rate,
            lower_target=self.lower_target,
            upper_target=self.upper_target,
        )

    @property
    def pair_type(self) -> PairType:
        if self.token_index_in == self.bpt_index:
            return PairType.BPT_TO_TOKEN
        if self.token_index_out == self.bpt_index:
            return PairType.TOKEN_TO_BPT
        return PairType.TOKEN_TO_TOKEN
