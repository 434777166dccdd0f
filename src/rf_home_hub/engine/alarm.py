"""Alarm trigger check for codes bound to a card."""

from __future__ import annotations

import logging

from rf_home_hub.core.exceptions import CardNotFoundError
from rf_home_hub.storage.card_store import CardStore
from rf_home_hub.storage.models import AlarmCard, CardType

logger = logging.getLogger(__name__)


class AlarmTriggerWorkflow:
    """Find the alarm card a received code triggers.

    The card is returned whether or not it is armed: live clients always
    see the trigger. Arming only gates the external ``alarm-advise``
    webhook, which is the caller's decision.
    """

    def __init__(self, cards: CardStore, record_alerts: bool = True) -> None:
        """Initialize workflow.

        Args:
            cards: Card repository.
            record_alerts: Store the trigger time on the card.
        """
        self.cards = cards
        self.record_alerts = record_alerts

    async def check(
        self,
        shortname: str,
        card_type: CardType = CardType.ALARM,
    ) -> AlarmCard | None:
        """Return the triggered alarm card, if any.

        Args:
            shortname: Card the code is assigned to.
            card_type: Card kind that may trigger. Only alarms do.

        Returns:
            The alarm card, or None if the card is gone or not an alarm.
        """
        if card_type is not CardType.ALARM:
            return None

        card = await self.cards.get(shortname)
        if card is None:
            logger.debug("Card %s vanished before the alarm check", shortname)
            return None
        if not isinstance(card, AlarmCard):
            return None

        if self.record_alerts:
            try:
                card = await self.cards.record_alert(shortname)
            except CardNotFoundError:
                logger.debug("Card %s vanished before the alert was recorded", shortname)
                return None

        logger.info("Alarm %s triggered (armed=%s)", card.shortname, card.device.armed)
        return card
