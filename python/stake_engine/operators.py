"""Operator list reducer: filter, split staked/non-staked, sort.

A pure function of (operators, filters, positions); nothing is stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import FilterState
from .types import Operator, Position

STATUS_ORDER = {"active": 4, "degraded": 3, "inactive": 2, "slashed": 1}


@dataclass(frozen=True)
class FilteredOperators:
    staked: List[Operator]  # operators the user holds a position with, always listed first
    filtered: List[Operator]


def position_values(positions: Iterable[Position]) -> Dict[str, float]:
    return {p.operator_id: p.total_value for p in positions}


def _sort_value(op: Operator, sort_by: str, values: Dict[str, float]):
    if sort_by == "name":
        return op.name.casefold()
    if sort_by == "totalStaked":
        return op.pool_value
    if sort_by == "nominatorCount":
        return float(op.nominator_count or 0)
    if sort_by == "tax":
        return float(op.nomination_tax)
    if sort_by == "apy":
        return float(op.estimated_return or 0.0)
    if sort_by == "status":
        return float(STATUS_ORDER.get(op.status, 0))
    if sort_by == "yourPosition":
        return float(values.get(op.id, 0.0))
    raise ValueError(f"Unknown sort field: {sort_by!r}")


def sort_operators(
    operators: Sequence[Operator], filters: FilterState, values: Dict[str, float]
) -> List[Operator]:
    """Primary key, then pool value (desc), then name (asc)."""
    if not operators:
        return []
    df = pd.DataFrame(
        {
            "primary": [_sort_value(op, filters.sort_by, values) for op in operators],
            "pool": [op.pool_value for op in operators],
            "name": [op.name.casefold() for op in operators],
        }
    )
    keys = ["primary"]
    ascending = [filters.sort_order == "asc"]
    if filters.sort_by != "totalStaked":
        keys.append("pool")
        ascending.append(False)
    if filters.sort_by != "name":
        keys.append("name")
        ascending.append(True)
    order = df.sort_values(keys, ascending=ascending, kind="mergesort").index
    return [operators[i] for i in order]


def apply_filters(
    operators: Sequence[Operator],
    filters: FilterState = FilterState(),
    positions: Iterable[Position] = (),
) -> FilteredOperators:
    values = position_values(positions)
    staked_ids = {op_id for op_id, v in values.items() if v > 0}

    ops = list(operators)
    query = filters.search_query.strip().lower()
    if query:
        ops = [op for op in ops if query in op.name.lower() or query in op.id.lower()]
    if filters.domain_filter != "all":
        ops = [op for op in ops if op.domain_id == filters.domain_filter]
    if filters.status_filter:
        ops = [op for op in ops if op.status in filters.status_filter]
    if filters.my_stakes_only:
        ops = [op for op in ops if op.id in staked_ids]

    is_staked = np.array([op.id in staked_ids for op in ops], dtype=bool)
    staked = [ops[i] for i in np.flatnonzero(is_staked)]
    others = [ops[i] for i in np.flatnonzero(~is_staked)]

    return FilteredOperators(
        staked=sort_operators(staked, filters, values),
        filtered=sort_operators(others, filters, values),
    )


def find_operator(operators: Iterable[Operator], operator_id: str) -> Optional[Operator]:
    for op in operators:
        if op.id == operator_id:
            return op
    return None
