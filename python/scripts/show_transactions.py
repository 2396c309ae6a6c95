from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from stake_engine.config import StakingConfig
from stake_engine.records import load_deposits, load_withdrawals, share_price_table
from stake_engine.transactions import build_transactions, transactions_frame, with_synthetic_pending_deposit
from stake_engine.types import ChainSnapshot, Position


def load_snapshot(path: str) -> ChainSnapshot:
    """Snapshot JSON: {"currentDomainEpoch", "currentDomainBlock", "sharePrices": [{epoch_index, share_price}]}"""
    d = json.loads(Path(path).read_text(encoding="utf-8"))
    epoch = d.get("currentDomainEpoch")
    block = d.get("currentDomainBlock")
    return ChainSnapshot(
        current_domain_epoch=int(epoch) if epoch is not None else None,
        current_domain_block=int(block) if block is not None else None,
        share_prices=share_price_table(d.get("sharePrices") or []),
    )


def main():
    p = argparse.ArgumentParser(description="Derive amounts and statuses for an operator's transactions.")
    p.add_argument("--deposits", type=str, required=True, help="JSON array of indexer deposit rows.")
    p.add_argument("--withdrawals", type=str, required=True, help="JSON array of indexer withdrawal rows.")
    p.add_argument("--snapshot", type=str, required=True, help="Chain snapshot JSON.")
    p.add_argument("--position", type=str, default=None, help="Position JSON, adds a pending deposit row if needed.")
    p.add_argument("--operator_id", type=str, default="")
    p.add_argument("--storage_fund_pct", type=float, default=0.2)
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    cfg = StakingConfig(storage_fund_percentage=float(args.storage_fund_pct))
    snapshot = load_snapshot(args.snapshot)
    deposits = load_deposits(args.deposits)
    withdrawals = load_withdrawals(args.withdrawals)
    txs = build_transactions(deposits, withdrawals, snapshot)

    if args.position:
        position = Position.from_params_dict(json.loads(Path(args.position).read_text(encoding="utf-8")))
        now = datetime.now(timezone.utc).isoformat()
        txs = with_synthetic_pending_deposit(
            txs, position, args.operator_id or position.operator_id, now, cfg, deposits, withdrawals
        )

    df = transactions_frame(txs, cfg)
    with pd.option_context("display.max_rows", None, "display.width", 200):
        # unresolved amounts print as "--", not 0
        print(df.to_string(index=False, na_rep="--"))


if __name__ == "__main__":
    main()
