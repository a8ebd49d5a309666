"""Balances view that splices the pool's own token out of the balances.

Phantom and composable stable pools hold their BPT as one of the pool
balances. The stable math must never see it, so the BPT entry is removed and
every index above it shifts down by one. BalancesView keeps that remapping in
one place instead of re-slicing arrays at each call site.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from poolmath.errors import InvalidPoolConfiguration, TokenNotInPool


@dataclass(frozen=True)
class BalancesView:
    """Immutable balances with the BPT entry removed.

    Attributes:
        balances: Balances as the math sees them (BPT excluded)
        bpt_index: Original position of the BPT, or None when there is none
        bpt_balance: BPT held by the pool itself (0 when there is no BPT)
    """

    balances: tuple[int, ...]
    bpt_index: int | None = None
    bpt_balance: int = 0

    @classmethod
    def from_balances(cls, balances: Sequence[int], bpt_index: int | None = None) -> BalancesView:
        if bpt_index is None:
            return cls(tuple(balances))
        if not 0 <= bpt_index < len(balances):
            raise TokenNotInPool(f"bpt_index {bpt_index} out of range for {len(balances)} tokens")
        remaining = tuple(b for i, b in enumerate(balances) if i != bpt_index)
        return cls(remaining, bpt_index, balances[bpt_index])

    def __len__(self) -> int:
        return len(self.balances)

    def index_of(self, original_index: int) -> int:
        """Map an index of the full balances onto this view.

        Raises:
            TokenNotInPool: If original_index addresses the BPT or nothing at all
        """
        n_original = len(self.balances) + (0 if self.bpt_index is None else 1)
        if not 0 <= original_index < n_original:
            raise TokenNotInPool(f"Index {original_index} out of range for {n_original} tokens")
        if self.bpt_index is None or original_index < self.bpt_index:
            return original_index
        if original_index == self.bpt_index:
            raise TokenNotInPool(f"Index {original_index} is the pool token")
        return original_index - 1

    def select(self, values: Sequence[int]) -> tuple[int, ...]:
        """Drop the BPT position from a sequence aligned with the full balances."""
        if self.bpt_index is None:
            return tuple(values)
        if len(values) != len(self.balances) + 1:
            raise InvalidPoolConfiguration(
                f"Expected {len(self.balances) + 1} values, got {len(values)}"
            )
        return tuple(v for i, v in enumerate(values) if i != self.bpt_index)

    def expand(self, values: Sequence[int], fill: int = 0) -> tuple[int, ...]:
        """Re-insert the BPT position into a sequence aligned with this view."""
        if self.bpt_index is None:
            return tuple(values)
        expanded = list(values)
        expanded.insert(self.bpt_index, fill)
        return tuple(expanded)

    def virtual_supply(self, total_supply: int) -> int:
        """BPT in circulation: total supply minus the pool-held balance.

        Raises:
            InvalidPoolConfiguration: If the pool holds more BPT than exists
        """
        if total_supply < self.bpt_balance:
            raise InvalidPoolConfiguration(
                f"total_supply {total_supply} below pool-held BPT {self.bpt_balance}"
            )
        return total_supply - self.bpt_balance
