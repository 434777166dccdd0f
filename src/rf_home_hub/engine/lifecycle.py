"""Side effects of adding and removing cards."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from rf_home_hub.core.bus import EventBus
from rf_home_hub.core.exceptions import StoreError
from rf_home_hub.notify.fanout import NotificationFanout
from rf_home_hub.storage.card_store import CardInserted, CardRemoved, CardUpdated
from rf_home_hub.storage.code_store import CodeStore
from rf_home_hub.storage.models import Card

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    """Outcome of removing a card's dependents."""

    shortname: str
    codes_removed: int = 0
    asset_deleted: bool = False


class CardLifecycleManager:
    """Keep codes, assets and live views consistent with the card list.

    On removal the card's bound codes are deleted from the code store and
    its image asset from disk; neither failure stops the cascade. Every
    insert, update and removal ends with a cards-changed signal, because
    live clients re-read the whole card list rather than patching it.
    """

    def __init__(
        self,
        codes: CodeStore,
        fanout: NotificationFanout,
        assets_dir: str | Path = "www",
    ) -> None:
        self.codes = codes
        self.fanout = fanout
        self.assets_dir = Path(assets_dir)

    def attach(self, bus: EventBus) -> None:
        """Subscribe to card store messages."""
        bus.subscribe(CardInserted, self.on_card_inserted)
        bus.subscribe(CardUpdated, self.on_card_updated)
        bus.subscribe(CardRemoved, self.on_card_removed)

    async def on_card_inserted(self, message: CardInserted) -> None:
        await self.fanout.cards_changed()

    async def on_card_updated(self, message: CardUpdated) -> None:
        await self.fanout.cards_changed()

    async def on_card_removed(self, message: CardRemoved) -> None:
        await self.cascade(message.card)

    async def cascade(self, card: Card) -> CascadeResult:
        """Remove everything that belongs to a deleted card.

        Args:
            card: The card that was deleted.

        Returns:
            What was removed.
        """
        result = CascadeResult(shortname=card.shortname)

        codes = card.bound_codes()
        if codes:
            try:
                result.codes_removed = await self.codes.remove_where(codes, multi=True)
                logger.info("%d code(s) deleted with card %s", result.codes_removed, card.shortname)
            except StoreError as e:
                logger.error("Code cascade for card %s failed: %s", card.shortname, e)

        if card.img:
            result.asset_deleted = await self._delete_asset(card.img)

        logger.info("Card %s deleted", card.shortname)
        await self.fanout.cards_changed()
        return result

    async def _delete_asset(self, img: str) -> bool:
        base = self.assets_dir.resolve()
        path = (base / img).resolve()
        if base not in path.parents:
            logger.warning("Refusing to delete asset outside %s: %s", base, img)
            return False

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, path.unlink)
        except FileNotFoundError:
            logger.warning("Asset file not found: %s", path)
            return False
        except OSError as e:
            logger.error("Could not delete asset %s: %s", path, e)
            return False

        logger.debug("Deleted asset %s", path)
        return True
