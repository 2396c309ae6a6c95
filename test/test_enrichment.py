import asyncio

from stake_engine.enrichment import domain_id_of, enrich_operators, load_chain_snapshot
from stake_engine.records import deposit_from_row, withdrawal_from_row
from stake_engine.transactions import build_transactions
from stake_engine.types import Operator

ONE = 10**18


def make_ops():
    return [
        Operator(id=i, name=f"op{i}", domain_id="0", owner_account="o", nomination_tax=1.0, minimum_nominator_stake=1.0)
        for i in ("1", "2", "3")
    ]


def test_enrichment_keeps_siblings_when_one_fails():
    async def returns(op_id):
        if op_id == "2":
            raise RuntimeError("rpc down")
        return {"d1": 0.1 * int(op_id), "d7": 0.05}

    async def counts(op_id):
        if op_id == "3":
            raise TimeoutError()
        return None if op_id == "2" else 4

    ops = make_ops()
    out = asyncio.run(enrich_operators(ops, returns, counts))

    assert [o.id for o in out] == ["1", "2", "3"]
    assert out[0].estimated_return == 0.1
    assert out[0].estimated_return_windows == {"d1": 0.1, "d7": 0.05}
    assert out[0].nominator_count == 4
    # failed lookups leave the operator as it was
    assert out[1] is ops[1]
    assert out[2].estimated_return is not None and out[2].nominator_count is None
    # inputs never mutated
    assert ops[0].estimated_return is None


def test_enrichment_without_lookups_is_identity():
    ops = make_ops()
    assert asyncio.run(enrich_operators(ops)) == ops


class FakeClient:
    def __init__(self, fail=()):
        self.fail = set(fail)
        self.price_epochs = None

    async def get_current_domain_epoch(self, domain_id):
        if "epoch" in self.fail:
            raise ConnectionError("epoch")
        return 10

    async def get_current_domain_block(self, domain_id):
        if "block" in self.fail:
            raise ConnectionError("block")
        return 1000

    async def get_latest_share_price_epoch(self, operator_id):
        if "latest" in self.fail:
            raise ConnectionError("latest")
        return 8

    async def get_share_prices(self, operator_id, domain_id, epochs):
        self.price_epochs = list(epochs)
        if "prices" in self.fail:
            raise ConnectionError("prices")
        return [{"epoch_index": e, "share_price": str(ONE)} for e in epochs]


WITHDRAWALS = [
    withdrawal_from_row(
        {"id": "w", "domain_id": "0", "withdrawal_in_shares_amount": str(ONE), "withdrawal_in_shares_domain_epoch": 4}
    )
]


def test_snapshot_loaded_concurrently():
    client = FakeClient()
    snap = asyncio.run(load_chain_snapshot(client, "7", 0, WITHDRAWALS))
    assert snap.current_domain_epoch == 10
    assert snap.current_domain_block == 1000
    assert snap.share_prices == {4: str(ONE)}
    assert client.price_epochs == [4]


def test_snapshot_degrades_per_lookup():
    snap = asyncio.run(load_chain_snapshot(FakeClient(fail={"epoch", "prices"}), "7", 0, WITHDRAWALS))
    # epoch falls back to the latest share price epoch
    assert snap.current_domain_epoch == 8
    assert snap.current_domain_block == 1000
    assert snap.share_prices == {}

    txs = build_transactions([], WITHDRAWALS, snap)
    assert txs[0].amount is None

    snap = asyncio.run(load_chain_snapshot(FakeClient(fail={"epoch", "latest", "block"}), "7", 0, WITHDRAWALS))
    assert snap.current_domain_epoch is None
    assert snap.current_domain_block is None


def test_snapshot_without_domain():
    client = FakeClient()
    snap = asyncio.run(load_chain_snapshot(client, "7", None, WITHDRAWALS))
    assert snap.current_domain_epoch == 8
    assert snap.share_prices == {}
    assert client.price_epochs is None


def test_domain_id_of():
    dep = deposit_from_row({"id": "d", "domain_id": "2"})
    assert domain_id_of([dep], WITHDRAWALS) == 2
    assert domain_id_of([], WITHDRAWALS) == 0
    assert domain_id_of([], []) is None


class MalformedPriceClient(FakeClient):
    async def get_share_prices(self, operator_id, domain_id, epochs):
        return [
            {"epoch_index": 3, "share_price": str(ONE)},
            {"epoch_index": 4, "share_price": "1.2e18"},
        ]


def test_malformed_price_row_keeps_snapshot():
    withdrawals = [
        withdrawal_from_row({"id": i, "domain_id": "0", "shares_amount": str(ONE), "shares_domain_epoch": e})
        for i, e in (("a", 3), ("b", 4))
    ]
    snap = asyncio.run(load_chain_snapshot(MalformedPriceClient(), "7", 0, withdrawals))
    assert snap.current_domain_epoch == 10
    assert snap.current_domain_block == 1000
    assert snap.share_prices == {3: str(ONE)}

    amounts = {t.id: t.amount for t in build_transactions([], withdrawals, snap)}
    assert amounts == {"a": str(ONE), "b": None}


class SyncFailureClient(FakeClient):
    def get_current_domain_block(self, domain_id):
        raise ConnectionError("no coroutine")


def test_lookup_raising_before_await_is_contained():
    snap = asyncio.run(load_chain_snapshot(SyncFailureClient(), "7", 0, WITHDRAWALS))
    assert snap.current_domain_block is None
    assert snap.current_domain_epoch == 10
    assert snap.share_prices == {4: str(ONE)}

    def returns(op_id):
        if op_id == "1":
            raise ValueError("bad id")

        async def _windows():
            return {"d1": 0.2}

        return _windows()

    out = asyncio.run(enrich_operators(make_ops(), returns))
    assert out[0].estimated_return is None
    assert [o.estimated_return for o in out[1:]] == [0.2, 0.2]
