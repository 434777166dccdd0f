"""Decide whether an RF code is free, ignored or bound to a card."""

from __future__ import annotations

import logging
from typing import Any

from rf_home_hub.storage.card_store import CardStore
from rf_home_hub.storage.code_store import CodeStore
from rf_home_hub.storage.models import Availability

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """Cross-reference the code and card stores.

    A code is available when it has been observed, is not ignored and no
    card binds it. State is read fresh on every call; nothing is cached
    between events.
    """

    def __init__(self, codes: CodeStore, cards: CardStore) -> None:
        self.codes = codes
        self.cards = cards

    async def resolve(self, code: Any) -> Availability:
        """Resolve a code's availability.

        Args:
            code: Code value.

        Returns:
            Availability. Unknown and ignored codes are unavailable with no
            assignment; bound codes carry the owning card's shortname.
        """
        record = await self.codes.get(code)
        if record is None or record.ignored:
            return Availability.unavailable_ignored()

        card = await self.cards.find_by_code(record.code)
        if card is None:
            return Availability.available()

        return Availability.assigned(card.shortname)
