"""Indexer rows -> typed deposit/withdrawal records.

The indexer returns snake_case rows; some callers hand over camelCase dicts
instead. Both are standardized to one schema before building records.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, Mapping, Optional

import pandas as pd

from .errors import InvalidNumericInput
from .fixed_point import parse_minor_units
from .types import DepositRecord, DirectAmount, SharePrice, ShareDenominated, WithdrawalAmount, WithdrawalRecord

logger = logging.getLogger(__name__)

_ALIASES = {
    "operatorid": "operator_id",
    "domainid": "domain_id",
    "blockheight": "block_height",
    "pendingamount": "pending_amount",
    "pendingstoragefeedeposit": "pending_storage_fee_deposit",
    "pendingeffectivedomainepoch": "pending_effective_domain_epoch",
    "totalwithdrawalamount": "total_withdrawal_amount",
    "totalstoragefeewithdrawal": "total_storage_fee_withdrawal",
    "withdrawalinsharesamount": "shares_amount",
    "sharesamount": "shares_amount",
    "withdrawalinsharesdomainepoch": "shares_domain_epoch",
    "sharesdomainepoch": "shares_domain_epoch",
    "withdrawalinsharesunlockblock": "unlock_block",
    "unlockblock": "unlock_block",
    "epochindex": "epoch_index",
    "shareprice": "share_price",
}


def _is_missing(v) -> bool:
    if v is None:
        return True
    if isinstance(v, float) and math.isnan(v):
        return True
    return isinstance(v, str) and not v.strip()


def _standardize_keys(row: Mapping) -> dict:
    out = {}
    for key, value in row.items():
        k = str(key).strip()
        norm = _ALIASES.get(k.replace("_", "").lower(), k)
        # pandas fills absent keys with NaN; treat them as not provided
        out[norm] = None if _is_missing(value) else value
    return out


def _optional_int(v, field: str) -> Optional[int]:
    if _is_missing(v):
        return None
    if isinstance(v, bool):
        raise InvalidNumericInput(field, v)
    if isinstance(v, float):
        # pandas turns integer columns with gaps into floats
        if not v.is_integer() or v < 0:
            raise InvalidNumericInput(field, v)
        return int(v)
    # signs, underscores and unicode digits are rejected, not coerced
    return parse_minor_units(v if isinstance(v, int) else str(v), field)


def _amount(v, field: str, default: Optional[str] = "0") -> Optional[str]:
    if _is_missing(v):
        return default
    return str(parse_minor_units(v if isinstance(v, int) else str(v), field))


def _text(v) -> str:
    return "" if v is None else str(v)


def deposit_from_row(row: Mapping) -> DepositRecord:
    r = _standardize_keys(row)
    return DepositRecord(
        id=_text(r.get("id")),
        operator_id=_text(r.get("operator_id")),
        domain_id=_text(r.get("domain_id")),
        address=_text(r.get("address")),
        pending_amount=_amount(r.get("pending_amount"), "pending_amount"),
        pending_storage_fee_deposit=_amount(r.get("pending_storage_fee_deposit"), "pending_storage_fee_deposit"),
        pending_effective_domain_epoch=_optional_int(
            r.get("pending_effective_domain_epoch"), "pending_effective_domain_epoch"
        ),
        timestamp=_text(r.get("timestamp")),
        block_height=_text(r.get("block_height")),
    )


def _withdrawal_amount(r: dict) -> Optional[WithdrawalAmount]:
    """Pick the amount variant: positive direct amount, else shares at an epoch.

    Shares without an epoch cannot be priced; such a row stays unresolved
    (None) rather than falling back to a zero direct amount.
    """
    direct = _amount(r.get("total_withdrawal_amount"), "total_withdrawal_amount", default=None)
    if direct is not None and int(direct) > 0:
        return DirectAmount(direct)

    shares = _amount(r.get("shares_amount"), "shares_amount", default=None)
    epoch = _optional_int(r.get("shares_domain_epoch"), "shares_domain_epoch")
    if shares is not None and epoch is not None:
        return ShareDenominated(shares=shares, epoch=epoch)
    if shares is not None and int(shares) > 0:
        logger.debug("Withdrawal %s has shares but no epoch", r.get("id"))
        return None

    if direct is not None:
        return DirectAmount(direct)
    return None


def withdrawal_from_row(row: Mapping) -> WithdrawalRecord:
    r = _standardize_keys(row)
    unlock_block = _optional_int(r.get("unlock_block"), "unlock_block")
    return WithdrawalRecord(
        id=_text(r.get("id")),
        operator_id=_text(r.get("operator_id")),
        domain_id=_text(r.get("domain_id")),
        address=_text(r.get("address")),
        amount=_withdrawal_amount(r),
        total_storage_fee_withdrawal=_amount(r.get("total_storage_fee_withdrawal"), "total_storage_fee_withdrawal"),
        unlock_block=unlock_block if unlock_block is not None and unlock_block > 0 else None,
        timestamp=_text(r.get("timestamp")),
        block_height=_text(r.get("block_height")),
    )


def share_price_from_row(row: Mapping) -> SharePrice:
    r = _standardize_keys(row)
    epoch = _optional_int(r.get("epoch_index"), "epoch_index")
    if epoch is None:
        raise InvalidNumericInput("epoch_index", r.get("epoch_index"))
    price = _amount(r.get("share_price"), "share_price", default=None)
    if price is None:
        raise InvalidNumericInput("share_price", None)
    return SharePrice(epoch_index=epoch, price=price)


def share_price_table(prices: Iterable) -> dict[int, str]:
    """{epoch_index: price} from SharePrice objects or raw rows.

    Rows without a usable price are skipped; amounts for that epoch stay
    unresolved while the remaining epochs are still priced.
    """
    table: dict[int, str] = {}
    for p in prices:
        if isinstance(p, SharePrice):
            table[p.epoch_index] = p.price
            continue
        try:
            sp = share_price_from_row(p)
        except InvalidNumericInput as exc:
            logger.warning("Skipping share price row %r: %s", p, exc)
            continue
        table[sp.epoch_index] = sp.price
    return table


def withdrawal_epochs(withdrawals: Iterable[WithdrawalRecord]) -> list[int]:
    """Distinct epochs whose share price is needed to resolve amounts."""
    epochs = {w.amount.epoch for w in withdrawals if isinstance(w.amount, ShareDenominated)}
    return sorted(epochs)


def load_rows(path: str | Path) -> list[dict]:
    """Load a JSON array of indexer rows (as exported from the GraphQL API)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    # keep numeric strings as strings; amounts overflow int64
    df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    if df.empty:
        return []
    df = df.astype(object).where(pd.notna(df), None)
    rows = df.to_dict(orient="records")
    logger.debug("Loaded %d rows from %s", len(rows), path)
    return rows


def load_deposits(path: str | Path) -> list[DepositRecord]:
    return [deposit_from_row(r) for r in load_rows(path)]


def load_withdrawals(path: str | Path) -> list[WithdrawalRecord]:
    return [withdrawal_from_row(r) for r in load_rows(path)]
