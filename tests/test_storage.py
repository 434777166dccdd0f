"""Tests for the storage module."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from rf_home_hub.core.bus import EventBus
from rf_home_hub.core.config import DEMO_CARDS_PATH
from rf_home_hub.core.exceptions import CardNotFoundError, DuplicateCardError, StoreError
from rf_home_hub.storage import (
    AlarmCard,
    AlarmDevice,
    CardInserted,
    CardRemoved,
    CardStore,
    CardUpdated,
    CodeStore,
    HubDB,
    SwitchCard,
    SwitchDevice,
    UnknownCard,
)


# ============================================================================
# Database Tests
# ============================================================================


class TestHubDB:
    """Tests for the database handle."""

    def test_context_manager(self) -> None:
        with HubDB(":memory:") as db:
            assert db.is_connected
        assert not db.is_connected

    def test_conn_requires_connect(self) -> None:
        db = HubDB(":memory:")
        with pytest.raises(RuntimeError):
            _ = db.conn

    @pytest.mark.asyncio
    async def test_run_when_closed_raises_store_error(self) -> None:
        db = HubDB(":memory:")
        with pytest.raises(StoreError):
            await db.run(lambda conn: conn.execute("SELECT 1"))

    @pytest.mark.asyncio
    async def test_run_wraps_duckdb_errors(self, db: HubDB) -> None:
        with pytest.raises(StoreError):
            await db.run(lambda conn: conn.execute("SELECT * FROM no_such_table"))

    @pytest.mark.asyncio
    async def test_file_database_persists(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "hub.duckdb"
        with HubDB(path) as db:
            await CodeStore(db).upsert(1234)
            await db.checkpoint()

        with HubDB(path) as db:
            assert await CodeStore(db).get(1234) is not None


# ============================================================================
# Code Store Tests
# ============================================================================


class TestCodeStore:
    """Tests for CodeStore."""

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, codes: CodeStore) -> None:
        """Upserting a code twice keeps one record and the first timestamp."""
        t1 = datetime(2024, 1, 1, 12, 0, 0)
        t2 = t1 + timedelta(minutes=5)

        first = await codes.upsert(1234, seen_at=t1)
        second = await codes.upsert("1234", seen_at=t2)

        assert first.first_seen_at == t1
        assert second.first_seen_at == t1
        assert second.last_seen_at == t2
        assert len(await codes.list_codes()) == 1

    @pytest.mark.asyncio
    async def test_upsert_keeps_ignore_flag(self, codes: CodeStore) -> None:
        await codes.upsert(42)
        await codes.set_ignored(42)

        record = await codes.upsert(42)
        assert record.ignored is True

    @pytest.mark.asyncio
    async def test_get_unknown(self, codes: CodeStore) -> None:
        assert await codes.get(999) is None

    @pytest.mark.asyncio
    async def test_list_most_recent_first(self, codes: CodeStore) -> None:
        now = datetime(2024, 1, 1)
        await codes.upsert(1, seen_at=now)
        await codes.upsert(2, seen_at=now + timedelta(seconds=1))

        assert [r.code for r in await codes.list_codes()] == ["2", "1"]

    @pytest.mark.asyncio
    async def test_list_without_ignored(self, codes: CodeStore) -> None:
        await codes.upsert(1)
        await codes.upsert(2)
        await codes.set_ignored(1)

        assert [r.code for r in await codes.list_codes(include_ignored=False)] == ["2"]

    @pytest.mark.asyncio
    async def test_set_ignored(self, codes: CodeStore) -> None:
        await codes.upsert(7)

        assert await codes.set_ignored(7) is True
        assert (await codes.get(7)).ignored is True

        assert await codes.set_ignored(7, ignored=False) is True
        assert (await codes.get(7)).ignored is False

    @pytest.mark.asyncio
    async def test_set_ignored_unknown_code(self, codes: CodeStore) -> None:
        assert await codes.set_ignored(404) is False

    @pytest.mark.asyncio
    async def test_remove_where_multi(self, codes: CodeStore) -> None:
        for code in (111, 222, 999):
            await codes.upsert(code)

        removed = await codes.remove_where(["111", 222])

        assert removed == 2
        assert [r.code for r in await codes.list_codes()] == ["999"]

    @pytest.mark.asyncio
    async def test_remove_where_single(self, codes: CodeStore) -> None:
        await codes.upsert(111)
        await codes.upsert(222)

        assert await codes.remove_where([111, 222], multi=False) == 1
        assert len(await codes.list_codes()) == 1

    @pytest.mark.asyncio
    async def test_remove_where_single_skips_unobserved(self, codes: CodeStore) -> None:
        """An unobserved first value does not stop a single removal."""
        await codes.upsert(222)

        assert await codes.remove_where([111, 222], multi=False) == 1
        assert await codes.list_codes() == []

    @pytest.mark.asyncio
    async def test_remove_where_nothing_matches(self, codes: CodeStore) -> None:
        await codes.upsert(1)
        assert await codes.remove_where([2, 3]) == 0
        assert await codes.remove_where([]) == 0

    @pytest.mark.asyncio
    async def test_remove(self, codes: CodeStore) -> None:
        await codes.upsert(5)
        assert await codes.remove(5) is True
        assert await codes.remove(5) is False


# ============================================================================
# Card Store Tests
# ============================================================================


def _switch(shortname: str = "S", on: str = "111", off: str = "222") -> SwitchCard:
    return SwitchCard(shortname=shortname, device=SwitchDevice(on_code=on, off_code=off))


def _alarm(shortname: str = "A", trigger: str = "333", armed: bool = False) -> AlarmCard:
    return AlarmCard(shortname=shortname, device=AlarmDevice(trigger_code=trigger, armed=armed))


class TestCardStore:
    """Tests for CardStore."""

    @pytest.mark.asyncio
    async def test_insert_and_get(self, cards: CardStore) -> None:
        await cards.insert(_switch())

        card = await cards.get("S")
        assert isinstance(card, SwitchCard)
        assert card.device.on_code == "111"
        assert card.device.off_code == "222"

    @pytest.mark.asyncio
    async def test_get_missing(self, cards: CardStore) -> None:
        assert await cards.get("nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_shortname(self, cards: CardStore) -> None:
        await cards.insert(_switch())
        with pytest.raises(DuplicateCardError):
            await cards.insert(_alarm(shortname="S"))

    @pytest.mark.asyncio
    async def test_list_in_creation_order(self, cards: CardStore) -> None:
        for name in ("zeta", "alpha", "mid"):
            await cards.insert(_switch(shortname=name, on=f"{name}-on", off=f"{name}-off"))

        assert [c.shortname for c in await cards.list_cards()] == ["zeta", "alpha", "mid"]
        assert await cards.count() == 3

    @pytest.mark.asyncio
    async def test_unknown_type_round_trips(self, cards: CardStore) -> None:
        await cards.insert(UnknownCard(shortname="T", type="thermostat", device={"setpoint": 21}))

        card = await cards.get("T")
        assert isinstance(card, UnknownCard)
        assert card.device == {"setpoint": 21}

    @pytest.mark.asyncio
    async def test_find_by_code(self, cards: CardStore) -> None:
        await cards.insert(_switch())
        await cards.insert(_alarm())

        assert (await cards.find_by_code(222)).shortname == "S"
        assert (await cards.find_by_code("333")).shortname == "A"
        assert await cards.find_by_code(999) is None

    @pytest.mark.asyncio
    async def test_find_by_code_first_card_wins(self, cards: CardStore) -> None:
        """Overlapping bindings resolve to the oldest card."""
        await cards.insert(_switch(shortname="first", on="111", off="222"))
        await cards.insert(_alarm(shortname="second", trigger="111"))

        assert (await cards.find_by_code(111)).shortname == "first"

    @pytest.mark.asyncio
    async def test_find_by_code_skips_unknown_kinds(self, cards: CardStore) -> None:
        """Unhandled card kinds bind nothing, whatever their device holds."""
        await cards.insert(UnknownCard(shortname="T", type="thermostat", device={"on_code": "777"}))
        assert await cards.find_by_code(777) is None

    @pytest.mark.asyncio
    async def test_remove_returns_card(self, cards: CardStore) -> None:
        await cards.insert(_switch())

        removed = await cards.remove("S")

        assert removed.shortname == "S"
        assert await cards.get("S") is None

    @pytest.mark.asyncio
    async def test_remove_missing(self, cards: CardStore) -> None:
        with pytest.raises(CardNotFoundError):
            await cards.remove("ghost")

    @pytest.mark.asyncio
    async def test_set_armed(self, cards: CardStore) -> None:
        await cards.insert(_alarm())

        await cards.set_armed("A", True)
        assert (await cards.get("A")).device.armed is True

        await cards.set_armed("A", False)
        assert (await cards.get("A")).device.armed is False

    @pytest.mark.asyncio
    async def test_set_armed_on_switch(self, cards: CardStore) -> None:
        await cards.insert(_switch())
        with pytest.raises(StoreError):
            await cards.set_armed("S", True)

    @pytest.mark.asyncio
    async def test_set_switch_state(self, cards: CardStore) -> None:
        await cards.insert(_switch())
        card = await cards.set_switch_state("S", True)

        assert card.device.is_on is True
        assert (await cards.get("S")).device.is_on is True

    @pytest.mark.asyncio
    async def test_record_alert(self, cards: CardStore) -> None:
        await cards.insert(_alarm())
        when = datetime(2024, 6, 1, 8, 30)

        await cards.record_alert("A", when)

        assert (await cards.get("A")).device.last_alert == when

    @pytest.mark.asyncio
    async def test_record_alert_missing(self, cards: CardStore) -> None:
        with pytest.raises(CardNotFoundError):
            await cards.record_alert("ghost")

    @pytest.mark.asyncio
    async def test_concurrent_arm_and_alert_both_kept(self, cards: CardStore) -> None:
        """Arming and recording an alert at the same time keeps both changes."""
        await cards.insert(_alarm())
        when = datetime(2024, 6, 1, 8, 30)

        await asyncio.gather(cards.set_armed("A", True), cards.record_alert("A", when))

        device = (await cards.get("A")).device
        assert device.armed is True
        assert device.last_alert == when

        await asyncio.gather(cards.record_alert("A"), cards.set_armed("A", False))

        device = (await cards.get("A")).device
        assert device.armed is False
        assert device.last_alert > when


class TestCardStoreMessages:
    """Tests for change messages published on the bus."""

    @pytest.mark.asyncio
    async def test_messages_follow_writes(self, cards: CardStore, bus: EventBus) -> None:
        received: list[object] = []
        for message_type in (CardInserted, CardUpdated, CardRemoved):
            bus.subscribe(message_type, received.append)

        await cards.insert(_alarm())
        await cards.set_armed("A", True)
        await cards.remove("A")

        assert [type(m) for m in received] == [CardInserted, CardUpdated, CardRemoved]
        assert received[2].card.shortname == "A"

    @pytest.mark.asyncio
    async def test_subscriber_sees_committed_state(self, cards: CardStore, bus: EventBus) -> None:
        """A removal subscriber no longer finds the card in the store."""
        seen: list[object] = []

        async def on_removed(message: CardRemoved) -> None:
            seen.append(await cards.get(message.card.shortname))

        bus.subscribe(CardRemoved, on_removed)
        await cards.insert(_switch())
        await cards.remove("S")

        assert seen == [None]

    @pytest.mark.asyncio
    async def test_record_alert_not_announced(self, cards: CardStore, bus: EventBus) -> None:
        updates: list[CardUpdated] = []
        bus.subscribe(CardUpdated, updates.append)

        await cards.insert(_alarm())
        await cards.record_alert("A")

        assert updates == []


class TestSeedDefaults:
    """Tests for demo card seeding."""

    @pytest.mark.asyncio
    async def test_seeds_packaged_cards(self, cards: CardStore) -> None:
        inserted = await cards.seed_defaults(DEMO_CARDS_PATH)

        assert inserted == len(json.loads(DEMO_CARDS_PATH.read_text()))
        assert await cards.count() == inserted

    @pytest.mark.asyncio
    async def test_skips_when_cards_exist(self, cards: CardStore) -> None:
        await cards.insert(_switch())
        assert await cards.seed_defaults(DEMO_CARDS_PATH) == 0
        assert await cards.count() == 1

    @pytest.mark.asyncio
    async def test_custom_file(self, cards: CardStore, tmp_path: Path) -> None:
        path = tmp_path / "cards.json"
        path.write_text(
            json.dumps([{"shortname": "L", "type": "switch", "device": {"on_code": 1}}])
        )

        assert await cards.seed_defaults(path) == 1
        assert (await cards.get("L")).device.on_code == "1"
