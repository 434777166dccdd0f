"""In-memory transport for tests and hardware-less runs."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable
from typing import Any

from rf_home_hub.core.config import CODE_STATUS_RECEIVED
from rf_home_hub.core.exceptions import TransportClosedError
from rf_home_hub.transport.base import PayloadCallback

logger = logging.getLogger(__name__)


class MockTransport:
    """Transport that receives whatever is injected and records what is sent.

    Example:
        >>> transport = MockTransport()
        >>> await transport.open()
        >>> transport.on(print)
        >>> transport.inject({"code": 1234, "status": "received"})
        {"code": 1234, "status": "received"}
    """

    def __init__(self) -> None:
        self._open = False
        self._callback: PayloadCallback | None = None
        self.sent: list[str] = []

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        self._open = True
        logger.info("Mock transport opened")

    def on(self, callback: PayloadCallback) -> None:
        self._callback = callback

    async def send(self, code: str) -> None:
        if not self._open:
            raise TransportClosedError(f"cannot send {code}")
        self.sent.append(str(code))
        logger.debug("Mock transport sent %s", code)

    async def close(self) -> None:
        self._open = False
        logger.info("Mock transport closed")

    def inject(self, payload: str | dict[str, Any]) -> Any:
        """Deliver a payload line to the listener as if it came off the wire.

        Args:
            payload: Raw line, or a dict that is encoded as a JSON line.

        Returns:
            Whatever the listener returns (the ingestor returns its task).
        """
        if self._callback is None:
            logger.debug("No listener registered, payload discarded")
            return None
        line = payload if isinstance(payload, str) else json.dumps(payload)
        return self._callback(line)

    def inject_code(self, code: str | int, status: str = CODE_STATUS_RECEIVED) -> Any:
        """Deliver a received code."""
        return self.inject({"code": code, "status": status})

    async def replay(self, codes: Iterable[str | int], interval: float = 1.0) -> None:
        """Inject codes one after another with a pause between them."""
        for code in codes:
            self.inject_code(code)
            await asyncio.sleep(interval)
