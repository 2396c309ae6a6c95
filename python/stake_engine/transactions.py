"""Transaction list assembly: amounts, statuses and a display frame.

Every derivation in one call uses the same ChainSnapshot, so statuses and
share-price conversions always refer to one consistent chain state.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .config import StakingConfig
from .fixed_point import multiply_shares_by_share_price, shannons_to_tokens, tokens_to_shannons
from .status import derive_deposit_status, derive_withdrawal_status, withdrawal_unlock_status
from .types import (
    PENDING,
    ChainSnapshot,
    DepositRecord,
    DirectAmount,
    Position,
    ShareDenominated,
    Transaction,
    WithdrawalRecord,
)
from .withdrawal import estimate_pending_storage_deposit

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    "id",
    "type",
    "timestamp",
    "block_height",
    "amount",
    "storage_fee",
    "status",
    "effective_epoch",
    "unlock_block",
    "blocks_remaining",
    "synthetic",
]


def resolve_withdrawal_amount(record: WithdrawalRecord, share_prices: Mapping[int, str]) -> Optional[str]:
    """Minor-unit amount of a withdrawal, or None when it cannot be resolved.

    None is deliberately distinct from "0": the caller renders a placeholder.
    """
    amount = record.amount
    if isinstance(amount, DirectAmount):
        return amount.value
    if isinstance(amount, ShareDenominated):
        price = share_prices.get(amount.epoch)
        if price is None:
            logger.debug("No share price for epoch %s (withdrawal %s)", amount.epoch, record.id)
            return None
        return multiply_shares_by_share_price(amount.shares, price)
    return None


def deposit_transaction(record: DepositRecord, snapshot: ChainSnapshot) -> Transaction:
    return Transaction(
        id=record.id,
        type="deposit",
        operator_id=record.operator_id,
        domain_id=record.domain_id,
        address=record.address,
        timestamp=record.timestamp,
        block_height=record.block_height,
        amount=record.pending_amount,
        storage_fee=record.pending_storage_fee_deposit,
        status=derive_deposit_status(record, snapshot.current_domain_epoch),
        effective_epoch=record.pending_effective_domain_epoch,
    )


def withdrawal_transaction(record: WithdrawalRecord, snapshot: ChainSnapshot) -> Transaction:
    unlock_status = withdrawal_unlock_status(record, snapshot.current_domain_block)
    return Transaction(
        id=record.id,
        type="withdrawal",
        operator_id=record.operator_id,
        domain_id=record.domain_id,
        address=record.address,
        timestamp=record.timestamp,
        block_height=record.block_height,
        amount=resolve_withdrawal_amount(record, snapshot.share_prices),
        storage_fee=record.total_storage_fee_withdrawal,
        status=derive_withdrawal_status(record, unlock_status),
        unlock_block=record.unlock_block,
        unlock_status=unlock_status,
    )


def build_transactions(
    deposits: Iterable[DepositRecord],
    withdrawals: Iterable[WithdrawalRecord],
    snapshot: ChainSnapshot,
) -> List[Transaction]:
    """Deposits and withdrawals as display transactions, newest first."""
    txs = [deposit_transaction(d, snapshot) for d in deposits]
    txs += [withdrawal_transaction(w, snapshot) for w in withdrawals]

    unresolved = sum(1 for t in txs if not t.is_resolved)
    if unresolved:
        logger.info("%d withdrawal amount(s) unresolved (missing share price)", unresolved)

    # stable sort keeps deposits before withdrawals on equal timestamps
    return sorted(txs, key=lambda t: t.timestamp, reverse=True)


def _first_domain_id(*groups: Sequence) -> str:
    for group in groups:
        for item in group[:1]:
            if item.domain_id:
                return item.domain_id
    return "0"


def with_synthetic_pending_deposit(
    transactions: Sequence[Transaction],
    position: Optional[Position],
    operator_id: str,
    timestamp: str,
    cfg: StakingConfig = StakingConfig(),
    deposits: Sequence[DepositRecord] = (),
    withdrawals: Sequence[WithdrawalRecord] = (),
) -> List[Transaction]:
    """Prepend a pending deposit row the indexer has not picked up yet.

    Only added when the position reports a pending deposit and no pending
    deposit row is present. The domain id is taken from the first
    transaction, else from the raw ``deposits`` or ``withdrawals``.
    """
    txs = list(transactions)
    if position is None or position.pending_deposit is None:
        return txs
    if any(t.type == "deposit" and t.status == PENDING for t in txs):
        return txs

    pending = position.pending_deposit
    storage = estimate_pending_storage_deposit(pending.amount, cfg.storage_fund_percentage)
    domain_id = _first_domain_id(txs, deposits, withdrawals)
    epoch_label = pending.effective_epoch if pending.effective_epoch is not None else "unknown"
    synthetic = Transaction(
        id=f"synthetic-deposit-{operator_id}-{epoch_label}",
        type="deposit",
        operator_id=operator_id,
        domain_id=domain_id,
        address="",
        timestamp=timestamp,
        block_height="",
        amount=tokens_to_shannons(pending.amount, cfg.token_decimals),
        storage_fee=tokens_to_shannons(storage, cfg.token_decimals),
        status=PENDING,
        effective_epoch=pending.effective_epoch,
        synthetic=True,
    )
    return [synthetic] + txs


def transactions_frame(transactions: Sequence[Transaction], cfg: StakingConfig = StakingConfig()) -> pd.DataFrame:
    """Tabular view in token units; unresolved amounts stay NaN, never 0."""
    rows = []
    for t in transactions:
        rows.append(
            {
                "id": t.id,
                "type": t.type,
                "timestamp": t.timestamp,
                "block_height": t.block_height,
                "amount": shannons_to_tokens(t.amount, cfg.token_decimals) if t.is_resolved else np.nan,
                "storage_fee": shannons_to_tokens(t.storage_fee, cfg.token_decimals),
                "status": t.status,
                "effective_epoch": t.effective_epoch,
                "unlock_block": t.unlock_block,
                "blocks_remaining": t.unlock_status.blocks_remaining if t.unlock_status else None,
                "synthetic": t.synthetic,
            }
        )
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
