"""Broadcast channel for connected live clients."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from rf_home_hub.core.bus import Handler, deliver_all

logger = logging.getLogger(__name__)


@dataclass
class LiveMessage:
    """An event pushed to live subscribers."""

    event: str
    payload: Any = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event": self.event,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


class LiveChannel:
    """Deliver events to every connected subscriber.

    No acknowledgment and no retry. A subscriber that raises is logged and
    the others still receive the event.
    """

    def __init__(self) -> None:
        self._subscribers: list[Handler] = []

    def subscribe(self, handler: Callable[[LiveMessage], Any]) -> Callable[[], None]:
        """Connect a subscriber.

        Args:
            handler: Sync or async callable receiving each LiveMessage.

        Returns:
            Function that disconnects the subscriber.
        """
        self._subscribers.append(handler)
        logger.debug("Live subscriber connected (%d total)", len(self._subscribers))

        def unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)
                logger.debug("Live subscriber disconnected (%d left)", len(self._subscribers))

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def broadcast(self, event: str, payload: Any = None) -> LiveMessage:
        """Send an event to all subscribers."""
        message = LiveMessage(event=event, payload=payload)
        failures = await deliver_all(list(self._subscribers), message, event)
        if failures:
            logger.warning("Live event %s failed for %d subscriber(s)", event, failures)
        return message
