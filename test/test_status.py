from datetime import timedelta

from stake_engine.config import StakingConfig
from stake_engine.status import (
    check_withdrawal_unlock_status,
    derive_deposit_status,
    derive_withdrawal_status,
    estimate_unlock_seconds,
    resolve_current_epoch,
    unlock_countdown,
    withdrawal_unlock_status,
)
from stake_engine.types import DepositRecord, DirectAmount, WithdrawalRecord, WithdrawalUnlockStatus


def deposit(effective_epoch):
    return DepositRecord(
        id="d1",
        operator_id="7",
        domain_id="0",
        address="addr",
        pending_amount="1000",
        pending_storage_fee_deposit="250",
        pending_effective_domain_epoch=effective_epoch,
        timestamp="2025-01-01T00:00:00Z",
        block_height="100",
    )


def withdrawal(unlock_block):
    return WithdrawalRecord(
        id="w1",
        operator_id="7",
        domain_id="0",
        address="addr",
        amount=DirectAmount("1000"),
        total_storage_fee_withdrawal="0",
        unlock_block=unlock_block,
        timestamp="2025-01-01T00:00:00Z",
        block_height="100",
    )


def test_deposit_status_epoch_boundary():
    assert derive_deposit_status(deposit(10), 10) == "complete"
    assert derive_deposit_status(deposit(10), 11) == "complete"
    assert derive_deposit_status(deposit(10), 9) == "pending"


def test_deposit_status_is_idempotent():
    rec = deposit(10)
    assert derive_deposit_status(rec, 9) == derive_deposit_status(rec, 9)


def test_deposit_status_unknown_epoch():
    # no effective epoch recorded: historical
    assert derive_deposit_status(deposit(None), None) == "complete"
    assert derive_deposit_status(deposit(None), 3) == "complete"
    # unknown current epoch is treated conservatively
    assert derive_deposit_status(deposit(10), None) == "pending"


def test_unlock_status_boundary():
    s = check_withdrawal_unlock_status(1000, 1000)
    assert s.is_unlocked and s.blocks_remaining == 0
    s = check_withdrawal_unlock_status(1000, 999)
    assert not s.is_unlocked and s.blocks_remaining == 1
    s = check_withdrawal_unlock_status(1000, 5000)
    assert s.is_unlocked and s.blocks_remaining == 0


def test_withdrawal_status():
    rec = withdrawal(1000)
    assert derive_withdrawal_status(rec, WithdrawalUnlockStatus(True, 0)) == "complete"
    assert derive_withdrawal_status(rec, WithdrawalUnlockStatus(False, 10)) == "pending"
    # unknown unlock status stays pending
    assert derive_withdrawal_status(rec, None) == "pending"
    # no unlock block at all: already resolved upstream
    assert derive_withdrawal_status(withdrawal(None), None) == "complete"


def test_withdrawal_unlock_status_needs_both_sides():
    assert withdrawal_unlock_status(withdrawal(1000), None) is None
    assert withdrawal_unlock_status(withdrawal(None), 5) is None
    assert withdrawal_unlock_status(withdrawal(1000), 400).blocks_remaining == 600


def test_unlock_countdown():
    assert estimate_unlock_seconds(10) == 60.0
    assert estimate_unlock_seconds(-3) == 0.0
    cfg = StakingConfig()
    assert unlock_countdown(cfg.withdrawal_lock_blocks, 0, cfg) == timedelta(days=1)
    assert unlock_countdown(100, 200) == timedelta(0)


def test_resolve_current_epoch_fallback():
    assert resolve_current_epoch(12, 10) == 12
    assert resolve_current_epoch(None, 10) == 10
    assert resolve_current_epoch(None, None) is None
