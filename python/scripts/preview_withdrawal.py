from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from stake_engine.types import Operator, Position
from stake_engine.withdrawal import plan_withdrawal


def load_json(path: str) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def main():
    p = argparse.ArgumentParser(description="Preview a withdrawal against the minimum-stake rule.")
    p.add_argument("--position", type=str, required=True, help="Position JSON (operatorId, positionValue, storageFeeDeposit, ...).")
    p.add_argument("--operator", type=str, default=None, help="Operator JSON (id, ownerAccount, minimumNominatorStake, ...).")
    p.add_argument("--amount", type=float, default=0.0, help="Gross amount to receive (partial withdrawals).")
    p.add_argument("--method", type=str, default="partial", choices=["partial", "all"])
    p.add_argument("--account", type=str, default=None, help="Connected wallet address.")
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    position = Position.from_params_dict(load_json(args.position))
    operator = Operator.from_params_dict(load_json(args.operator)) if args.operator else None

    plan = plan_withdrawal(args.amount, args.method, position, operator, args.account)
    print(json.dumps(asdict(plan), indent=2))
    if plan.validation.warning:
        print(plan.validation.warning)


if __name__ == "__main__":
    main()
