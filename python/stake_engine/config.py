"""Chain constants, operator list filters and network endpoints.

Each object can be built from the camelCase dicts the portal and indexer use
(`from_params_dict`); `NetworkConfig` also reads `STAKE_*` environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


def _from_mapping(mapping: dict, d: Optional[dict]) -> dict:
    kwargs = {}
    for k, v in (d or {}).items():
        if k in mapping:
            kwargs[mapping[k]] = v
    return kwargs


@dataclass(frozen=True)
class StakingConfig:
    """Chain constants used by the valuation engine."""

    # minor units ("shannons") per token
    token_decimals: int = 18
    # share prices are fixed-point integers scaled by this factor
    share_price_scale: int = 10**18

    # Fraction of every deposit routed to the storage fund.
    storage_fund_percentage: float = 0.2

    # Withdrawals unlock after this many domain blocks (~1 day).
    withdrawal_lock_blocks: int = 14_400
    block_time_seconds: float = 6.0

    @classmethod
    def from_params_dict(cls, d: dict) -> "StakingConfig":
        """Create StakingConfig from a camelCase dict (e.g. frontend constants).

        Unknown keys are ignored.
        """
        mapping = {
            "tokenDecimals": "token_decimals",
            "sharePriceScale": "share_price_scale",
            "storageFundPercentage": "storage_fund_percentage",
            "withdrawalLockBlocks": "withdrawal_lock_blocks",
            "blockTimeSeconds": "block_time_seconds",
        }
        kwargs = _from_mapping(mapping, d)
        if "share_price_scale" in kwargs:
            kwargs["share_price_scale"] = int(kwargs["share_price_scale"])
        if not 0.0 <= float(kwargs.get("storage_fund_percentage", 0.0)) < 1.0:
            raise ValueError("storage_fund_percentage must be in [0, 1).")
        return cls(**kwargs)


SORT_FIELDS = ("name", "totalStaked", "nominatorCount", "tax", "apy", "status", "yourPosition")


@dataclass(frozen=True)
class FilterState:
    """Operator list filters and ordering."""

    search_query: str = ""
    domain_filter: str = "all"
    sort_by: str = "totalStaked"
    sort_order: str = "desc"  # 'asc' or 'desc'
    my_stakes_only: bool = False
    status_filter: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.sort_by not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field: {self.sort_by!r}")
        if self.sort_order not in ("asc", "desc"):
            raise ValueError(f"sort_order must be 'asc' or 'desc', got {self.sort_order!r}")

    @classmethod
    def from_params_dict(cls, d: dict) -> "FilterState":
        """Create FilterState from the UI's camelCase filter dict."""
        mapping = {
            "searchQuery": "search_query",
            "domainFilter": "domain_filter",
            "sortBy": "sort_by",
            "sortOrder": "sort_order",
            "myStakesOnly": "my_stakes_only",
            "statusFilter": "status_filter",
        }
        kwargs = _from_mapping(mapping, d)
        if isinstance(kwargs.get("sort_order"), str):
            kwargs["sort_order"] = kwargs["sort_order"].lower()
        if kwargs.get("status_filter") is not None:
            kwargs["status_filter"] = tuple(kwargs["status_filter"])
        else:
            kwargs.pop("status_filter", None)
        return cls(**kwargs)


MAINNET_INDEXER = "https://subql.staking.mainnet.autonomys.xyz/v1/graphql"
MAINNET_EXPLORER = "https://autonomys.subscan.io"
TESTNET_EXPLORER = "https://autonomys-chronos.subscan.io"


@dataclass(frozen=True)
class NetworkConfig:
    """Endpoints the fetch layer talks to. The engine itself does no I/O."""

    network_id: str = "mainnet"
    indexer_endpoint: str = MAINNET_INDEXER
    explorer_base_url: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "NetworkConfig":
        env = os.environ if environ is None else environ
        network_id = (env.get("STAKE_NETWORK_ID") or "").strip() or "mainnet"
        if network_id == "taurus":
            logger.warning(
                'The "taurus" testnet is deprecated. Use "chronos" or "dev" instead.'
            )
        return cls(
            network_id=network_id,
            indexer_endpoint=env.get("STAKE_INDEXER_ENDPOINT") or MAINNET_INDEXER,
            explorer_base_url=env.get("STAKE_EXPLORER_URL") or None,
        )

    def block_url(self, block_height) -> str:
        base = self.explorer_base_url
        if not base:
            base = MAINNET_EXPLORER if self.network_id == "mainnet" else TESTNET_EXPLORER
        return f"{base.rstrip('/')}/block/{block_height}"
