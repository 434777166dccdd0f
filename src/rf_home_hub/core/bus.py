"""In-process publish/subscribe for typed messages.

Subscribers register for a message class and are called with every
published instance of that class. Handlers may be plain functions or
coroutines; they run concurrently and a failing handler is logged
without affecting the others.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

M = TypeVar("M")

Handler = Callable[[Any], "Awaitable[None] | None"]


async def deliver(handler: Handler, message: Any) -> None:
    """Call a sync or async handler with a message."""
    result = handler(message)
    if inspect.isawaitable(result):
        await result


async def deliver_all(handlers: list[Handler], message: Any, label: str) -> int:
    """Deliver a message to every handler concurrently.

    Args:
        handlers: Handlers to call.
        message: Message passed to each handler.
        label: Name used when logging failures.

    Returns:
        Number of handlers that failed.
    """
    if not handlers:
        return 0

    results = await asyncio.gather(
        *(deliver(handler, message) for handler in handlers),
        return_exceptions=True,
    )

    failures = 0
    for handler, result in zip(handlers, results, strict=False):
        if isinstance(result, BaseException):
            failures += 1
            logger.error(
                "Handler %s failed on %s: %s",
                getattr(handler, "__qualname__", repr(handler)),
                label,
                result,
            )
    return failures


class EventBus:
    """Typed message bus.

    Example:
        >>> bus = EventBus()
        >>> bus.subscribe(CardRemoved, lifecycle.on_card_removed)
        >>> await bus.publish(CardRemoved(card=card))
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, message_type: type[M], handler: Callable[[M], Any]) -> Callable[[], None]:
        """Register a handler for a message class.

        Returns:
            Function that removes the subscription.
        """
        self._handlers[message_type].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(message_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, message_type: type) -> int:
        return len(self._handlers.get(message_type, []))

    async def publish(self, message: Any) -> None:
        """Deliver a message to every handler of its class and wait for them."""
        handlers = list(self._handlers.get(type(message), []))
        await deliver_all(handlers, message, type(message).__name__)
