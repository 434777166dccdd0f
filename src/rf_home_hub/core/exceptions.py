"""Custom exception hierarchy for hub operations."""

from __future__ import annotations


class HubError(Exception):
    """Base exception for all hub errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigError(HubError):
    """Invalid or unreadable configuration."""

    pass


class TransportError(HubError):
    """Error related to the RF hardware transport."""

    pass


class TransportOpenError(TransportError):
    """The transport channel could not be opened."""

    def __init__(self, port: str | None, details: str | None = None) -> None:
        self.port = port
        super().__init__(f"Failed to open transport on {port or 'unknown port'}", details)


class TransportClosedError(TransportError):
    """Operation attempted on a transport that is not open."""

    def __init__(self, details: str | None = None) -> None:
        super().__init__("Transport is not open", details)


class MalformedPayloadError(HubError):
    """A transport payload could not be decoded into a code event."""

    def __init__(self, payload: object, details: str | None = None) -> None:
        self.payload = payload
        super().__init__(f"Malformed code payload: {payload!r}", details)


class StoreError(HubError):
    """A repository read or write failed."""

    pass


class CardNotFoundError(StoreError):
    """No card exists with the given shortname."""

    def __init__(self, shortname: str) -> None:
        self.shortname = shortname
        super().__init__(f"Card not found: {shortname}")


class DuplicateCardError(StoreError):
    """A card with the same shortname already exists."""

    def __init__(self, shortname: str) -> None:
        self.shortname = shortname
        super().__init__(f"Card already exists: {shortname}")
