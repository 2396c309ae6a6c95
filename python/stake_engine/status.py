"""Pending/complete derivation for deposits and withdrawals.

Status is never stored: it is recomputed from the record and the current
chain snapshot on every read.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from .config import StakingConfig
from .types import COMPLETE, PENDING, DepositRecord, TxStatus, WithdrawalRecord, WithdrawalUnlockStatus


def derive_deposit_status(record: DepositRecord, current_domain_epoch: Optional[int]) -> TxStatus:
    """Pending until the chain reaches the deposit's effective epoch."""
    effective = record.pending_effective_domain_epoch
    if effective is None:
        return COMPLETE
    # unknown current epoch: not yet past the deposit's target epoch
    if current_domain_epoch is None:
        return PENDING
    return PENDING if int(effective) > int(current_domain_epoch) else COMPLETE


def check_withdrawal_unlock_status(unlock_block: int, current_block: int) -> WithdrawalUnlockStatus:
    unlock_block = int(unlock_block)
    current_block = int(current_block)
    return WithdrawalUnlockStatus(
        is_unlocked=current_block >= unlock_block,
        blocks_remaining=max(0, unlock_block - current_block),
    )


def has_unlock_block(record: WithdrawalRecord) -> bool:
    return record.unlock_block is not None and int(record.unlock_block) > 0


def derive_withdrawal_status(
    record: WithdrawalRecord, unlock_status: Optional[WithdrawalUnlockStatus]
) -> TxStatus:
    """Complete once unlocked, or when no unlock block is recorded at all."""
    if not has_unlock_block(record):
        return COMPLETE
    if unlock_status is not None and unlock_status.is_unlocked:
        return COMPLETE
    return PENDING


def withdrawal_unlock_status(
    record: WithdrawalRecord, current_block: Optional[int]
) -> Optional[WithdrawalUnlockStatus]:
    """Unlock status for a record, or None when either side is unknown."""
    if current_block is None or not has_unlock_block(record):
        return None
    return check_withdrawal_unlock_status(record.unlock_block, current_block)


def estimate_unlock_seconds(blocks_remaining: int, block_time_seconds: float = 6.0) -> float:
    return max(0, int(blocks_remaining)) * float(block_time_seconds)


def unlock_countdown(
    unlock_block: int, current_block: int, cfg: StakingConfig = StakingConfig()
) -> timedelta:
    """Approximate wall-clock time until a withdrawal can be claimed."""
    status = check_withdrawal_unlock_status(unlock_block, current_block)
    return timedelta(seconds=estimate_unlock_seconds(status.blocks_remaining, cfg.block_time_seconds))


def resolve_current_epoch(
    rpc_epoch: Optional[int], latest_share_price_epoch: Optional[int]
) -> Optional[int]:
    """Current domain epoch: RPC value, else the latest recorded share-price epoch."""
    if rpc_epoch is not None:
        return int(rpc_epoch)
    if latest_share_price_epoch is not None:
        return int(latest_share_price_epoch)
    return None
