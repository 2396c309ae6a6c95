import pytest

from stake_engine.positions import portfolio_breakdown, position_breakdown, staked_positions
from stake_engine.types import PendingDeposit, PendingWithdrawal, Position


def test_position_total_excludes_pending_withdrawals():
    p = Position(
        "7",
        active_stake=100.0,
        storage_fee_deposit=20.0,
        pending_deposit=PendingDeposit(5.0, 3),
        pending_withdrawals=(PendingWithdrawal(30.0, 900), PendingWithdrawal(10.0, 950)),
    )
    b = position_breakdown(p)
    assert b.pending_staked == pytest.approx(5.0)
    assert b.pending_withdrawal == pytest.approx(40.0)
    assert b.total_value == pytest.approx(125.0)
    assert p.total_value == pytest.approx(125.0)


def test_portfolio_breakdown_sums_positions():
    positions = [
        Position("1", 10.0, 2.0),
        Position("2", 5.0, 1.0, pending_deposit=PendingDeposit(4.0)),
        Position("3", 0.0, 0.0, pending_withdrawals=(PendingWithdrawal(7.0),)),
    ]
    b = portfolio_breakdown(positions)
    assert b.staked == pytest.approx(15.0)
    assert b.storage_fund == pytest.approx(3.0)
    assert b.pending_staked == pytest.approx(4.0)
    assert b.pending_withdrawal == pytest.approx(7.0)
    assert b.total_value == pytest.approx(22.0)


def test_staked_positions_ordered_by_value():
    positions = [
        Position("small", 1.0, 0.0),
        Position("empty", 0.0, 0.0),
        Position("big", 50.0, 10.0),
        Position("pending", 0.0, 0.0, pending_deposit=PendingDeposit(3.0)),
    ]
    assert [p.operator_id for p in staked_positions(positions)] == ["big", "pending", "small"]


def test_position_from_store_dict():
    p = Position.from_params_dict(
        {
            "operatorId": "7",
            "operatorName": "Seven",
            "positionValue": 100,
            "storageFeeDeposit": 20,
            "pendingDeposit": {"amount": 5, "effectiveEpoch": "12"},
            "pendingWithdrawals": [{"grossWithdrawalAmount": 3, "unlockAtBlock": 900}],
            "somethingElse": True,
        }
    )
    assert p.active_stake == 100.0
    assert p.pending_deposit == PendingDeposit(5.0, 12)
    assert p.pending_withdrawals == (PendingWithdrawal(3.0, 900),)
    assert p.total_value == pytest.approx(125.0)
