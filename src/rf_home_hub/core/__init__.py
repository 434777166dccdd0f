"""Core hub functionality - configuration, exceptions, event bus."""

from rf_home_hub.core.bus import EventBus
from rf_home_hub.core.config import HubConfig, SerialSettings, load_config
from rf_home_hub.core.exceptions import (
    CardNotFoundError,
    ConfigError,
    DuplicateCardError,
    HubError,
    MalformedPayloadError,
    StoreError,
    TransportClosedError,
    TransportError,
    TransportOpenError,
)

__all__ = [
    "EventBus",
    "HubConfig",
    "SerialSettings",
    "load_config",
    "HubError",
    "ConfigError",
    "TransportError",
    "TransportOpenError",
    "TransportClosedError",
    "MalformedPayloadError",
    "StoreError",
    "CardNotFoundError",
    "DuplicateCardError",
]
