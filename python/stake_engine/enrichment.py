"""Best-effort concurrent lookups around the engine.

Lookups run as one asyncio batch; each result is settled on its own, so one
failing request never drops its siblings. Failures degrade to "unknown"
(None / missing share price), never to a fabricated zero.

Clients are duck-typed. A chain client provides these coroutines:

- ``get_current_domain_epoch(domain_id) -> int``
- ``get_current_domain_block(domain_id) -> int``
- ``get_latest_share_price_epoch(operator_id) -> Optional[int]``
- ``get_share_prices(operator_id, domain_id, epochs) -> iterable of rows or SharePrice``
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from .records import share_price_table, withdrawal_epochs
from .status import resolve_current_epoch
from .types import ChainSnapshot, DepositRecord, Operator, WithdrawalRecord

logger = logging.getLogger(__name__)

ReturnsLookup = Callable[[str], Awaitable[Optional[Dict[str, float]]]]
CountLookup = Callable[[str], Awaitable[Optional[int]]]


async def _settle(keys: Sequence[str], lookup: Callable[[str], Awaitable], what: str) -> Dict[str, object]:
    """Run ``lookup`` for every key at once; keep successful non-None results by key."""

    async def _call(key: str):
        # a lookup that raises before returning its awaitable fails only its own key
        return await lookup(key)

    results = await asyncio.gather(*(_call(k) for k in keys), return_exceptions=True)
    out: Dict[str, object] = {}
    for key, res in zip(keys, results):
        if isinstance(res, BaseException):
            logger.warning("%s lookup failed for %s: %s", what, key, res)
            continue
        if res is not None:
            out[key] = res
    return out


async def enrich_operators(
    operators: Sequence[Operator],
    estimate_returns: Optional[ReturnsLookup] = None,
    count_nominators: Optional[CountLookup] = None,
) -> List[Operator]:
    """Attach return windows and nominator counts where the lookups succeed.

    ``estimate_returns(op_id)`` yields windows like ``{"d1": 0.12, "d7": 0.11}``;
    the ``d1`` window doubles as the operator's headline return.
    """
    ids = [op.id for op in operators]

    async def _nothing() -> Dict[str, object]:
        return {}

    windows_task = (
        _settle(ids, estimate_returns, "return estimate") if estimate_returns else _nothing()
    )
    counts_task = (
        _settle(ids, count_nominators, "nominator count") if count_nominators else _nothing()
    )
    windows, counts = await asyncio.gather(windows_task, counts_task)

    enriched = []
    for op in operators:
        changes = {}
        w = windows.get(op.id)
        if w:
            changes["estimated_return_windows"] = dict(w)
            if w.get("d1") is not None:
                changes["estimated_return"] = float(w["d1"])
        if op.id in counts:
            changes["nominator_count"] = int(counts[op.id])
        enriched.append(replace(op, **changes) if changes else op)

    logger.debug(
        "Enriched %d operators (%d with returns, %d with counts)", len(operators), len(windows), len(counts)
    )
    return enriched


def domain_id_of(
    deposits: Iterable[DepositRecord], withdrawals: Iterable[WithdrawalRecord]
) -> Optional[int]:
    """Domain id of a record batch: first deposit, else first withdrawal."""
    for rec in list(deposits)[:1] + list(withdrawals)[:1]:
        if rec.domain_id.strip().isdigit():
            return int(rec.domain_id)
    return None


async def _optional(what: str, fn: Callable[..., Awaitable], *args):
    try:
        return await fn(*args)
    except Exception as exc:  # degrade to unknown
        logger.warning("%s lookup failed: %s", what, exc)
        return None


async def load_chain_snapshot(
    client,
    operator_id: str,
    domain_id: Optional[int],
    withdrawals: Sequence[WithdrawalRecord] = (),
) -> ChainSnapshot:
    """Resolve epoch, block and share prices before any derivation runs."""
    epochs = withdrawal_epochs(withdrawals)

    async def _none():
        return None

    async def _prices():
        rows = await client.get_share_prices(operator_id, domain_id, epochs)
        return share_price_table(rows or ())

    if domain_id is not None:
        epoch_aw = _optional("current epoch", client.get_current_domain_epoch, domain_id)
        block_aw = _optional("current block", client.get_current_domain_block, domain_id)
    else:
        epoch_aw, block_aw = _none(), _none()
    prices_aw = _optional("share price", _prices) if epochs and domain_id is not None else _none()

    rpc_epoch, block, prices = await asyncio.gather(epoch_aw, block_aw, prices_aw)

    latest = None
    if rpc_epoch is None:
        latest = await _optional("latest share price epoch", client.get_latest_share_price_epoch, operator_id)

    return ChainSnapshot(
        current_domain_epoch=resolve_current_epoch(rpc_epoch, latest),
        current_domain_block=int(block) if block is not None else None,
        share_prices=prices or {},
    )
