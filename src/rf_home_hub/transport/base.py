"""Contract between the engine and an RF hardware transport."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

PayloadCallback = Callable[[str], Any]


@runtime_checkable
class Transport(Protocol):
    """An RF receiver/transmitter.

    The transport frames the raw radio link into payload lines (one JSON
    object per received code) and hands each line to the single listener
    registered with ``on``. Decoding the line is the engine's job.
    """

    @property
    def is_open(self) -> bool:
        """Whether the channel is currently open."""
        ...

    async def open(self) -> None:
        """Establish the channel. Returns once it is ready.

        Raises:
            TransportOpenError: If the hardware cannot be opened.
        """
        ...

    def on(self, callback: PayloadCallback) -> None:
        """Register the code listener, replacing any previous one."""
        ...

    async def send(self, code: str) -> None:
        """Transmit a code.

        Raises:
            TransportClosedError: If the channel is not open.
        """
        ...

    async def close(self) -> None:
        """Release the channel."""
        ...
