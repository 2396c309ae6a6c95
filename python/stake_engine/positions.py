"""Position and portfolio breakdowns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .types import Position


@dataclass(frozen=True)
class PositionBreakdown:
    staked: float
    storage_fund: float
    pending_staked: float
    pending_withdrawal: float

    @property
    def total_value(self) -> float:
        # pending withdrawals are shown but not counted
        return self.staked + self.storage_fund + self.pending_staked


def position_breakdown(position: Position) -> PositionBreakdown:
    pending = position.pending_deposit.amount if position.pending_deposit else 0.0
    return PositionBreakdown(
        staked=float(position.active_stake),
        storage_fund=float(position.storage_fee_deposit),
        pending_staked=float(pending),
        pending_withdrawal=float(sum(w.gross_withdrawal_amount for w in position.pending_withdrawals)),
    )


def portfolio_breakdown(positions: Iterable[Position]) -> PositionBreakdown:
    """Sum of position breakdowns."""
    staked = storage = pending = withdrawing = 0.0
    for p in positions:
        b = position_breakdown(p)
        staked += b.staked
        storage += b.storage_fund
        pending += b.pending_staked
        withdrawing += b.pending_withdrawal
    return PositionBreakdown(staked, storage, pending, withdrawing)


def staked_positions(positions: Iterable[Position]) -> List[Position]:
    """Positions holding stake, storage fund or a pending deposit, largest first."""
    held = [
        p
        for p in positions
        if p.active_stake > 0 or p.storage_fee_deposit > 0 or p.pending_deposit is not None
    ]
    return sorted(held, key=lambda p: p.total_value, reverse=True)
