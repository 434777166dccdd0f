"""Named engine events mapped onto live and webhook channels."""

from __future__ import annotations

import asyncio
import logging

from rf_home_hub.core.config import (
    HOOK_ALARM_ADVISE,
    HOOK_CODE_DETECTED,
    LIVE_CARDS_CHANGED,
    LIVE_NEW_RF_CODE,
    LIVE_TRIGGER_ALARM,
)
from rf_home_hub.notify.live import LiveChannel
from rf_home_hub.notify.webhooks import WebhookDispatcher
from rf_home_hub.storage.models import AlarmCard, CodeEvent

logger = logging.getLogger(__name__)


class NotificationFanout:
    """Publish engine events.

    Live events (awaited, delivered to every connected subscriber):
        newRFCode       raw code event payload
        uiTriggerAlarm  triggered alarm card
        cardsChanged    no payload, subscribers re-read the card list

    Webhooks (fire-and-forget):
        code-detected   raw code event payload, every received code
        alarm-advise    alarm card, only when the alarm is armed
    """

    def __init__(self, live: LiveChannel, webhooks: WebhookDispatcher) -> None:
        self.live = live
        self.webhooks = webhooks

    async def new_code(self, event: CodeEvent) -> None:
        await self.live.broadcast(LIVE_NEW_RF_CODE, event.payload)

    async def alarm_triggered(self, card: AlarmCard) -> None:
        await self.live.broadcast(LIVE_TRIGGER_ALARM, card.to_payload())

    async def cards_changed(self) -> None:
        await self.live.broadcast(LIVE_CARDS_CHANGED)

    def code_detected(self, event: CodeEvent) -> list[asyncio.Task[bool]]:
        return self.webhooks.trigger(HOOK_CODE_DETECTED, event.payload)

    def alarm_advise(self, card: AlarmCard) -> list[asyncio.Task[bool]]:
        logger.info("Alarm %s is armed, advising subscribers", card.shortname)
        return self.webhooks.trigger(HOOK_ALARM_ADVISE, card.to_payload())
