"""Withdrawal policy: preview split and the minimum-stake rule."""

from __future__ import annotations

import math
from typing import Optional

from .types import Operator, Position, ValidationResult, WithdrawalPlan, WithdrawalPreview

METHOD_ALL = "all"
METHOD_PARTIAL = "partial"

OPERATOR_NOT_LOADED = "Unable to validate withdrawal: operator data not loaded"
WALLET_NOT_CONNECTED = "Unable to validate withdrawal: wallet not connected"
AMOUNT_NOT_POSITIVE = "Withdrawal amount must be positive"


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def get_withdrawal_preview(
    requested_amount: float,
    method: str,
    active_stake: float,
    storage_fee_deposit: float,
) -> WithdrawalPreview:
    """Split a gross withdrawal into stake and storage-fund refund.

    For partial withdrawals the requested amount is what the nominator wants
    to receive; the storage refund is withdrawn in the same proportion as the
    stake, so both parts scale with ``stake / (stake + storage)``.
    """
    stake = float(active_stake)
    storage = float(storage_fee_deposit)

    if method == METHOD_ALL:
        return WithdrawalPreview(
            gross_withdrawal_amount=stake + storage,
            net_stake_withdrawal=stake,
            storage_fee_refund=storage,
            percentage=100,
        )
    if method != METHOD_PARTIAL:
        raise ValueError(f"Unknown withdrawal method: {method!r}")

    amount = float(requested_amount)
    total = stake + storage
    if amount <= 0 or total <= 0:
        return WithdrawalPreview(0.0, 0.0, 0.0, 0)

    if stake <= 0:
        # only the storage fund is left; gross and percentage follow the clamp
        amount = min(amount, storage)
        refund = amount
        net = 0.0
    else:
        net = amount * stake / total
        refund = amount - net

    return WithdrawalPreview(
        gross_withdrawal_amount=amount,
        net_stake_withdrawal=net,
        storage_fee_refund=refund,
        percentage=_round_half_up(100.0 * amount / total),
    )


def validate_withdrawal(
    requested_amount: float,
    total_position_value: float,
    operator: Operator,
    is_owner: bool,
) -> ValidationResult:
    """Apply the minimum nominator stake rule.

    A non-owner withdrawal that would leave less than the operator minimum
    (measured on total position value, storage fund included) closes the
    whole position instead.
    """
    amount = float(requested_amount)
    total = float(total_position_value)
    remaining = total - amount

    if is_owner:
        return ValidationResult(is_valid=True, will_withdraw_all=amount >= total)

    if amount <= 0:
        return ValidationResult(is_valid=False, warning=AMOUNT_NOT_POSITIVE)

    if remaining <= 0:
        return ValidationResult(is_valid=True, will_withdraw_all=True, actual_withdrawal_amount=total)

    minimum = float(operator.minimum_nominator_stake)
    if remaining < minimum:
        return ValidationResult(
            is_valid=True,
            warning=(
                f"Remaining stake of {remaining:.4f} would fall below the operator minimum "
                f"of {minimum:.4f}. Your full position of {total:.4f} will be withdrawn instead."
            ),
            will_withdraw_all=True,
            actual_withdrawal_amount=total,
        )

    return ValidationResult(is_valid=True, will_withdraw_all=False)


def validate_withdrawal_request(
    requested_amount: float,
    position: Position,
    operator: Optional[Operator],
    account_address: Optional[str],
) -> ValidationResult:
    """validate_withdrawal guarded by data availability (operator, wallet)."""
    if operator is None:
        return ValidationResult(is_valid=False, warning=OPERATOR_NOT_LOADED)
    if not account_address:
        return ValidationResult(is_valid=False, warning=WALLET_NOT_CONNECTED)
    # pending deposits are not shares yet and cannot be withdrawn
    withdrawable = float(position.active_stake) + float(position.storage_fee_deposit)
    return validate_withdrawal(
        requested_amount,
        withdrawable,
        operator,
        is_owner=account_address == operator.owner_account,
    )


def plan_withdrawal(
    requested_amount: float,
    method: str,
    position: Position,
    operator: Optional[Operator],
    account_address: Optional[str],
) -> WithdrawalPlan:
    """Combine preview and validation into what gets displayed and submitted."""
    stake = float(position.active_stake)
    storage = float(position.storage_fee_deposit)
    full_value = stake + storage

    # "all" is validated against the full stake + storage value
    amount = full_value if method == METHOD_ALL else float(requested_amount)
    preview = get_withdrawal_preview(amount, method, stake, storage)
    validation = validate_withdrawal_request(amount, position, operator, account_address)

    withdraw_all = method == METHOD_ALL or bool(validation.will_withdraw_all)
    if validation.actual_withdrawal_amount is not None:
        gross = float(validation.actual_withdrawal_amount)
    else:
        gross = preview.gross_withdrawal_amount

    return WithdrawalPlan(
        withdrawal_type=METHOD_ALL if withdraw_all else METHOD_PARTIAL,
        amount=None if withdraw_all else amount,
        gross_withdrawal_amount=gross,
        net_stake_withdrawal=stake if validation.will_withdraw_all else preview.net_stake_withdrawal,
        storage_fee_refund=storage if validation.will_withdraw_all else preview.storage_fee_refund,
        percentage=100 if validation.will_withdraw_all else preview.percentage,
        validation=validation,
        exceeds_position=method == METHOD_PARTIAL and amount > full_value,
        forced=method == METHOD_PARTIAL and bool(validation.will_withdraw_all),
    )


def estimate_pending_storage_deposit(amount: float, storage_fund_percentage: float) -> float:
    """Storage-fund portion that accompanies a staked ``amount``."""
    p = float(storage_fund_percentage)
    if not 0.0 <= p < 1.0:
        raise ValueError("storage_fund_percentage must be in [0, 1).")
    return float(amount) * (p / (1.0 - p))
