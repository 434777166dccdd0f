"""Repository of user-defined cards.

Every change is announced on the event bus as a typed message
(``CardInserted``, ``CardUpdated``, ``CardRemoved``) once the write has
been committed, so subscribers always observe the new state.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rf_home_hub.core.bus import EventBus
from rf_home_hub.core.exceptions import CardNotFoundError, DuplicateCardError, StoreError
from rf_home_hub.storage.database import HubDB
from rf_home_hub.storage.models import (
    AlarmCard,
    Card,
    SwitchCard,
    normalize_code,
    parse_card,
)

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

logger = logging.getLogger(__name__)

_COLUMNS = "shortname, type, name, room, description, img, device, created_at"


# ============================================================================
# Bus Messages
# ============================================================================


@dataclass(frozen=True)
class CardInserted:
    """A card was added to the store."""

    card: Card


@dataclass(frozen=True)
class CardUpdated:
    """A card's device state changed."""

    card: Card


@dataclass(frozen=True)
class CardRemoved:
    """A card was deleted from the store. Carries the deleted card."""

    card: Card


def _row_to_card(row: tuple[Any, ...]) -> Card:
    shortname, card_type, name, room, description, img, device, created_at = row
    return parse_card(
        {
            "shortname": shortname,
            "type": card_type,
            "name": name,
            "room": room,
            "description": description,
            "img": img,
            "device": json.loads(device) if device else {},
            "created_at": created_at,
        }
    )


def _device_json(card: Card) -> str:
    device = card.device
    if isinstance(device, dict):
        return json.dumps(device)
    return device.model_dump_json()


class CardStore:
    """Cards keyed by shortname, in creation order.

    Example:
        >>> cards = CardStore(db, bus)
        >>> await cards.insert(SwitchCard(shortname="lamp", device=SwitchDevice(on_code="1", off_code="2")))
        >>> (await cards.find_by_code("2")).shortname
        'lamp'
    """

    def __init__(self, db: HubDB, bus: EventBus | None = None) -> None:
        self.db = db
        self.bus = bus or EventBus()

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, shortname: str) -> Card | None:
        """Get a card by shortname."""
        row = await self.db.run(
            lambda conn: conn.execute(
                f"SELECT {_COLUMNS} FROM cards WHERE shortname = ?",  # noqa: S608
                [shortname],
            ).fetchone()
        )
        return _row_to_card(row) if row is not None else None

    async def list_cards(self) -> list[Card]:
        """Get all cards in creation order."""
        rows = await self.db.run(
            lambda conn: conn.execute(
                f"SELECT {_COLUMNS} FROM cards ORDER BY seq"  # noqa: S608
            ).fetchall()
        )
        return [_row_to_card(row) for row in rows]

    async def count(self) -> int:
        row = await self.db.run(lambda conn: conn.execute("SELECT COUNT(*) FROM cards").fetchone())
        return int(row[0])

    async def find_by_code(self, code: Any) -> Card | None:
        """Find the first card, in creation order, that binds a code.

        Each card kind decides which of its device fields count (switch:
        on/off codes, alarm: trigger code). Overlapping bindings are a
        configuration error; the oldest card wins.
        """
        value = normalize_code(code)
        for card in await self.list_cards():
            if value in card.bound_codes():
                return card
        return None

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, card: Card) -> Card:
        """Insert a new card.

        Raises:
            DuplicateCardError: If the shortname is taken.
        """

        def _op(conn: DuckDBPyConnection) -> bool:
            exists = conn.execute(
                "SELECT 1 FROM cards WHERE shortname = ?", [card.shortname]
            ).fetchone()
            if exists:
                return False
            conn.execute(
                f"INSERT INTO cards ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                [
                    card.shortname,
                    card.type,
                    card.name,
                    card.room,
                    card.description,
                    card.img,
                    _device_json(card),
                    card.created_at,
                ],
            )
            return True

        if not await self.db.run(_op):
            raise DuplicateCardError(card.shortname)

        logger.info("Card %s (%s) inserted", card.shortname, card.type)
        await self.bus.publish(CardInserted(card=card))
        return card

    async def remove(self, shortname: str) -> Card:
        """Delete a card and announce it with the deleted card attached.

        Raises:
            CardNotFoundError: If no card has this shortname.
        """
        card = await self.get(shortname)
        if card is None:
            raise CardNotFoundError(shortname)

        await self.db.run(
            lambda conn: conn.execute("DELETE FROM cards WHERE shortname = ?", [shortname])
        )
        logger.info("Card %s removed", shortname)
        await self.bus.publish(CardRemoved(card=card))
        return card

    async def _update_device(
        self,
        shortname: str,
        kind: type[Card],
        label: str,
        mutate: Callable[[Any], None],
        announce: bool = True,
    ) -> Card:
        """Re-read a card, change its device and write it back in one step.

        The read and the write share a single database operation, so
        concurrent device changes on the same card cannot overwrite
        each other.

        Raises:
            CardNotFoundError: If the card does not exist.
            StoreError: If the card is not of the expected kind.
        """

        def _op(conn: DuckDBPyConnection) -> Card | None:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM cards WHERE shortname = ?",  # noqa: S608
                [shortname],
            ).fetchone()
            if row is None:
                return None
            card = _row_to_card(row)
            if not isinstance(card, kind):
                return card
            mutate(card.device)
            conn.execute(
                "UPDATE cards SET device = ? WHERE shortname = ?",
                [_device_json(card), shortname],
            )
            return card

        card = await self.db.run(_op)
        if card is None:
            raise CardNotFoundError(shortname)
        if not isinstance(card, kind):
            raise StoreError(f"Card {shortname} is not {label}", f"type={card.type}")

        if announce:
            await self.bus.publish(CardUpdated(card=card))
        return card

    async def set_armed(self, shortname: str, armed: bool) -> AlarmCard:
        """Arm or disarm an alarm card.

        Raises:
            CardNotFoundError: If the card does not exist.
            StoreError: If the card is not an alarm.
        """

        def _arm(device: Any) -> None:
            device.armed = armed

        card = await self._update_device(shortname, AlarmCard, "an alarm", _arm)
        logger.info("Alarm %s armed=%s", shortname, armed)
        return card  # type: ignore[return-value]

    async def record_alert(self, shortname: str, when: datetime | None = None) -> AlarmCard:
        """Store the time an alarm card last triggered. Not announced.

        Raises:
            CardNotFoundError: If the card does not exist.
            StoreError: If the card is not an alarm.
        """
        stamp = when or datetime.now()

        def _stamp(device: Any) -> None:
            device.last_alert = stamp

        card = await self._update_device(shortname, AlarmCard, "an alarm", _stamp, announce=False)
        return card  # type: ignore[return-value]

    async def set_switch_state(self, shortname: str, is_on: bool) -> SwitchCard:
        """Record the last state sent to a switch card.

        Raises:
            CardNotFoundError: If the card does not exist.
            StoreError: If the card is not a switch.
        """

        def _switch(device: Any) -> None:
            device.is_on = is_on

        card = await self._update_device(shortname, SwitchCard, "a switch", _switch)
        return card  # type: ignore[return-value]

    async def seed_defaults(self, cards_path: Path) -> int:
        """Insert demo cards when the store is empty.

        Args:
            cards_path: JSON file holding a list of card objects.

        Returns:
            Number of cards inserted (0 if the store already had cards).
        """
        if await self.count() > 0:
            return 0

        data = json.loads(Path(cards_path).read_text())
        for entry in data:
            await self.insert(parse_card(entry))

        logger.info("Seeded %d demo card(s) from %s", len(data), cards_path)
        return len(data)
