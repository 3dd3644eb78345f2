"""
Тесты Pydantic моделей снапшота

Проверяет:
1. Lookup: Present / Absent вместо значений по умолчанию
2. Frozen модели и ограничения полей
3. Построение снапшота из JSON payload (ключи-строки → int id)
4. SnapshotDiff дельты
"""

import pytest
from pydantic import ValidationError

from cdpsim.core.domain import (
    Safe,
    SnapshotDiff,
    StateSnapshot,
    StabilityPoolUser,
)
from cdpsim.core.domain.lookup import Absent, Present, lookup
from cdpsim.core.domain.units import PRECISION, ZERO_ADDRESS, is_zero_address
from cdpsim.engine import SnapshotUnavailable
from tests.factories import (
    ALICE,
    CDP_ADDRESS,
    E,
    POOL_ADDRESS,
    evolve,
    make_cdp,
    make_pool,
    make_snapshot,
    shift_native,
    shift_token,
    snapshot_payload,
)


class TestLookup:
    """Явное наличие / отсутствие записи"""

    def test_present(self):
        found = lookup({1: "a"}, 1)
        assert found == Present("a")
        assert found.is_present
        assert found.get_or("b") == "a"

    def test_absent_keeps_key(self):
        found = lookup({}, 7)
        assert found == Absent(7)
        assert not found.is_present
        assert found.get_or("b") == "b"

    def test_snapshot_lookups(self):
        snapshot = make_snapshot(make_cdp([Safe(safe_id=3, collateral_amount=5, borrowed_amount=0)]))
        assert snapshot.cdp.safe(3).is_present
        assert snapshot.cdp.owner_of(3) == Present(ALICE.address)
        assert isinstance(snapshot.cdp.safe(4), Absent)
        assert isinstance(snapshot.stability_pool.user(ALICE.address), Absent)
        assert snapshot.native(ALICE.address).is_present
        assert isinstance(snapshot.native("0x" + "77" * 20), Absent)


class TestModels:
    """Ограничения и неизменяемость моделей"""

    def test_safe_is_frozen(self):
        safe = Safe(safe_id=1, collateral_amount=1, borrowed_amount=0)
        with pytest.raises(ValidationError):
            safe.collateral_amount = 2

    def test_safe_id_positive(self):
        with pytest.raises(ValidationError):
            Safe(safe_id=0, collateral_amount=1, borrowed_amount=0)

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            Safe(safe_id=1, collateral_amount=-1, borrowed_amount=0)

    def test_liquidation_key(self):
        safe = Safe(safe_id=1, collateral_amount=4 * E, borrowed_amount=E)
        assert safe.liquidation_key() == PRECISION // 4
        assert Safe(safe_id=2, collateral_amount=0, borrowed_amount=0).liquidation_key() == 0

    def test_pool_user_defaults(self):
        user = StabilityPoolUser(stake=10)
        assert user.cumulative_product_scaling_factor == PRECISION
        assert user.stake_reset_count == 0

    def test_safes_owned_by_skips_closed(self):
        cdp = make_cdp(
            [
                Safe(safe_id=2, collateral_amount=5, borrowed_amount=0),
                Safe(safe_id=1, collateral_amount=0, borrowed_amount=0),
            ]
        )
        assert cdp.safes_owned_by(ALICE.address) == [2]

    def test_zero_address(self):
        assert is_zero_address(ZERO_ADDRESS)
        assert is_zero_address("0X" + "0" * 40)
        assert not is_zero_address(ALICE.address)

    def test_unknown_token_ledger(self):
        with pytest.raises(KeyError):
            make_snapshot().token("usdc")


class TestFromPayload:
    """StateSnapshot.from_payload"""

    def test_round_trip_through_json_payload(self):
        snapshot = make_snapshot(
            make_cdp([Safe(safe_id=12, collateral_amount=4 * E, borrowed_amount=E, weight=7)]),
            pool=make_pool(total_staked_raw=5, users={ALICE.address: StabilityPoolUser(stake=5)}),
        )
        rebuilt = StateSnapshot.from_payload(snapshot_payload(snapshot))

        assert rebuilt == snapshot
        assert 12 in rebuilt.cdp.safes
        assert 12 in rebuilt.liquidation_queue.nodes

    def test_schema_violation_is_snapshot_unavailable(self):
        payload = snapshot_payload(make_snapshot())
        payload["cdp"]["total_debt"] = -1
        with pytest.raises(SnapshotUnavailable):
            StateSnapshot.from_payload(payload)

    def test_missing_section_is_snapshot_unavailable(self):
        payload = snapshot_payload(make_snapshot())
        del payload["stability_pool"]
        with pytest.raises(SnapshotUnavailable):
            StateSnapshot.from_payload(payload)

    def test_missing_contract_balance_is_snapshot_unavailable(self):
        """Нет native баланса stability pool: не подменяется нулём"""
        payload = snapshot_payload(make_snapshot())
        del payload["native_balances"][POOL_ADDRESS]
        with pytest.raises(SnapshotUnavailable, match="missing contract addresses"):
            StateSnapshot.from_payload(payload)

    def test_model_constraint_is_snapshot_unavailable(self):
        """Ключ позиции, не приводимый к int, проходит схему, но не модель"""
        payload = snapshot_payload(make_snapshot())
        payload["cdp"]["owners"] = {"not-an-id": ALICE.address}
        with pytest.raises(SnapshotUnavailable):
            StateSnapshot.from_payload(payload)


class TestSnapshotDiff:
    """Знаковые дельты new - previous"""

    def test_native_and_token_deltas(self):
        previous = make_snapshot(sbd={ALICE.address: 10 * E})
        new = evolve(previous)
        new = shift_native(new, {ALICE.address: -3, CDP_ADDRESS: 3})
        new = shift_token(new, "sbd_token", {ALICE.address: -E}, supply=-E, burned=E)
        diff = SnapshotDiff(previous, new)

        assert diff.native(ALICE.address) == -3
        assert diff.native_sum([ALICE.address, CDP_ADDRESS]) == 0
        assert diff.token("sbd_token", ALICE.address) == -E
        assert diff.supply("sbd_token") == -E
        assert diff.burned("sbd_token") == E

    def test_unknown_address_has_zero_delta(self):
        previous = make_snapshot()
        diff = SnapshotDiff(previous, evolve(previous))
        stranger = "0x" + "77" * 20
        assert diff.native(stranger) == 0
        assert diff.token("dfire_token", stranger) == 0

    def test_sum_counts_each_address_once(self):
        previous = make_snapshot()
        new = shift_native(evolve(previous), {ALICE.address: 5})
        assert SnapshotDiff(previous, new).native_sum([ALICE.address, ALICE.address]) == 5

    def test_totals(self):
        previous = make_snapshot()
        new = evolve(previous, cdp=make_cdp([Safe(safe_id=1, collateral_amount=9, borrowed_amount=2)]))
        diff = SnapshotDiff(previous, new)
        assert diff.total_collateral() == 9
        assert diff.total_debt() == 2
