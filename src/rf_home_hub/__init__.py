"""RF Home Hub - 433 MHz code catalog, switch and alarm cards, webhook notifications."""

from rf_home_hub.core.config import HubConfig, load_config
from rf_home_hub.core.exceptions import (
    CardNotFoundError,
    ConfigError,
    HubError,
    MalformedPayloadError,
    StoreError,
    TransportError,
)
from rf_home_hub.hub import Hub, create_transport

__version__ = "0.1.0"

__all__ = [
    # Hub
    "Hub",
    "create_transport",
    # Config
    "HubConfig",
    "load_config",
    # Exceptions
    "HubError",
    "ConfigError",
    "TransportError",
    "MalformedPayloadError",
    "StoreError",
    "CardNotFoundError",
]
