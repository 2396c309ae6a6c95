"""Shared types for the valuation & status engine.

The guiding principle is to keep the runtime objects small and explicit.
Display amounts are float token units; minor-unit amounts are integer strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple, Union

TxStatus = str  # 'pending' / 'complete'

PENDING = "pending"
COMPLETE = "complete"


def _opt_int(v) -> Optional[int]:
    return None if v is None or v == "" else int(v)


@dataclass(frozen=True)
class PendingDeposit:
    """Deposit submitted but not yet converted to shares."""

    amount: float
    effective_epoch: Optional[int] = None


@dataclass(frozen=True)
class PendingWithdrawal:
    """Withdrawal requested and still inside the lock period."""

    gross_withdrawal_amount: float
    unlock_block: Optional[int] = None


@dataclass(frozen=True)
class Position:
    """A nominator's stake with one operator."""

    operator_id: str
    active_stake: float
    storage_fee_deposit: float
    pending_deposit: Optional[PendingDeposit] = None
    pending_withdrawals: Tuple[PendingWithdrawal, ...] = ()
    operator_name: str = ""

    @property
    def total_value(self) -> float:
        # pending withdrawals are owed, no longer staked
        pending = self.pending_deposit.amount if self.pending_deposit else 0.0
        return float(self.active_stake + self.storage_fee_deposit + pending)

    @classmethod
    def from_params_dict(cls, d: dict) -> "Position":
        """Create Position from the store's camelCase position dict.

        ``positionValue`` is the active stake. Unknown keys are ignored.
        """
        pending = d.get("pendingDeposit")
        return cls(
            operator_id=str(d["operatorId"]),
            active_stake=float(d.get("positionValue", 0.0)),
            storage_fee_deposit=float(d.get("storageFeeDeposit", 0.0)),
            pending_deposit=(
                PendingDeposit(
                    amount=float(pending["amount"]),
                    effective_epoch=_opt_int(pending.get("effectiveEpoch")),
                )
                if pending
                else None
            ),
            pending_withdrawals=tuple(
                PendingWithdrawal(
                    gross_withdrawal_amount=float(w["grossWithdrawalAmount"]),
                    unlock_block=_opt_int(w.get("unlockAtBlock", w.get("unlockBlock"))),
                )
                for w in d.get("pendingWithdrawals") or ()
            ),
            operator_name=str(d.get("operatorName") or ""),
        )


@dataclass(frozen=True)
class Operator:
    """A staking pool. Never mutated; enrichment builds new instances."""

    id: str
    name: str
    domain_id: str
    owner_account: str
    nomination_tax: float  # percentage 0-100
    minimum_nominator_stake: float
    status: str = "active"  # 'active'/'inactive'/'slashed'/'degraded'
    total_staked: float = 0.0
    total_storage_fund: Optional[float] = None
    total_pool_value: Optional[float] = None
    nominator_count: Optional[int] = None

    # Derived metrics (annualized return as a fraction)
    estimated_return: Optional[float] = None
    estimated_return_windows: Optional[Mapping[str, float]] = None

    @property
    def pool_value(self) -> float:
        if self.total_pool_value is not None:
            return float(self.total_pool_value)
        return float(self.total_staked or 0.0)

    @classmethod
    def from_params_dict(cls, d: dict) -> "Operator":
        """Create Operator from the service's camelCase operator dict."""

        def _opt_float(v):
            return None if v is None or v == "" else float(v)

        return cls(
            id=str(d["id"]),
            name=str(d.get("name") or d["id"]),
            domain_id=str(d.get("domainId", "0")),
            owner_account=str(d.get("ownerAccount", "")),
            nomination_tax=float(d.get("nominationTax", 0.0)),
            minimum_nominator_stake=float(d.get("minimumNominatorStake", 0.0)),
            status=str(d.get("status", "active")),
            total_staked=float(d.get("totalStaked") or 0.0),
            total_storage_fund=_opt_float(d.get("totalStorageFund")),
            total_pool_value=_opt_float(d.get("totalPoolValue")),
            nominator_count=_opt_int(d.get("nominatorCount")),
        )


@dataclass(frozen=True)
class DirectAmount:
    """Withdrawal amount recorded directly, in minor units."""

    value: str


@dataclass(frozen=True)
class ShareDenominated:
    """Withdrawal amount recorded as shares at a given domain epoch."""

    shares: str
    epoch: int


WithdrawalAmount = Union[DirectAmount, ShareDenominated]


@dataclass(frozen=True)
class DepositRecord:
    """Raw deposit row from the indexer."""

    id: str
    operator_id: str
    domain_id: str
    address: str
    pending_amount: str
    pending_storage_fee_deposit: str
    pending_effective_domain_epoch: Optional[int]
    timestamp: str
    block_height: str


@dataclass(frozen=True)
class WithdrawalRecord:
    """Raw withdrawal row from the indexer."""

    id: str
    operator_id: str
    domain_id: str
    address: str
    amount: Optional[WithdrawalAmount]
    total_storage_fee_withdrawal: str
    unlock_block: Optional[int]
    timestamp: str
    block_height: str


@dataclass(frozen=True)
class SharePrice:
    """Fixed-point share price (scaled by 10^18) recorded for an epoch."""

    epoch_index: int
    price: str


@dataclass(frozen=True)
class ChainSnapshot:
    """Consistent chain state used for one round of derivation.

    Share prices must come from the same fetch round as the epoch/block.
    """

    current_domain_epoch: Optional[int] = None
    current_domain_block: Optional[int] = None
    share_prices: Mapping[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class WithdrawalPreview:
    gross_withdrawal_amount: float
    net_stake_withdrawal: float
    storage_fee_refund: float
    percentage: int


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    warning: Optional[str] = None
    will_withdraw_all: Optional[bool] = None
    actual_withdrawal_amount: Optional[float] = None


@dataclass(frozen=True)
class WithdrawalUnlockStatus:
    is_unlocked: bool
    blocks_remaining: int


@dataclass(frozen=True)
class WithdrawalPlan:
    """What a withdrawal form shows and submits after policy checks."""

    withdrawal_type: str  # 'all'/'partial' as submitted to the chain
    amount: Optional[float]  # None for 'all' (the chain withdraws every share)
    gross_withdrawal_amount: float
    net_stake_withdrawal: float
    storage_fee_refund: float
    percentage: int
    validation: ValidationResult
    exceeds_position: bool = False
    # partial request turned into a full withdrawal by the minimum-stake rule
    forced: bool = False


@dataclass(frozen=True)
class Transaction:
    """A deposit or withdrawal ready for display."""

    id: str
    type: str  # 'deposit'/'withdrawal'
    operator_id: str
    domain_id: str
    address: str
    timestamp: str
    block_height: str
    amount: Optional[str]  # minor units; None when it cannot be resolved
    storage_fee: str  # deposit: storage fee deposit, withdrawal: storage refund
    status: TxStatus

    effective_epoch: Optional[int] = None
    unlock_block: Optional[int] = None
    unlock_status: Optional[WithdrawalUnlockStatus] = None
    synthetic: bool = False

    @property
    def is_resolved(self) -> bool:
        return self.amount is not None
