"""Configuration constants and hub settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from rf_home_hub.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# =============================================================================
# Serial Link
# =============================================================================
DEFAULT_BAUDRATE: int = 9600
ARDUINO_RESET_DELAY_S: float = 2.0  # Arduino auto-resets when the port opens
SERIAL_READ_TIMEOUT_S: float = 0.25

# =============================================================================
# Storage
# =============================================================================
DEFAULT_DATA_DIR: Path = Path("data")
DEFAULT_DB_PATH: Path = DEFAULT_DATA_DIR / "hub.duckdb"
DEFAULT_WEBHOOKS_PATH: Path = DEFAULT_DATA_DIR / "webhooks.json"
DEFAULT_ASSETS_DIR: Path = Path("www")
DEMO_CARDS_PATH: Path = Path(__file__).parent.parent / "storage" / "demo_cards.json"

# =============================================================================
# Event Names
# =============================================================================
CODE_STATUS_RECEIVED: str = "received"

LIVE_NEW_RF_CODE: str = "newRFCode"
LIVE_TRIGGER_ALARM: str = "uiTriggerAlarm"
LIVE_CARDS_CHANGED: str = "cardsChanged"

HOOK_CODE_DETECTED: str = "code-detected"
HOOK_ALARM_ADVISE: str = "alarm-advise"

# =============================================================================
# Webhooks
# =============================================================================
DEFAULT_WEBHOOK_TIMEOUT_S: float = 30.0


class SerialSettings(BaseModel):
    """Serial port settings for an Arduino-style receiver."""

    port: str | None = None
    baudrate: int = DEFAULT_BAUDRATE
    open_delay_seconds: float = ARDUINO_RESET_DELAY_S
    read_timeout_seconds: float = SERIAL_READ_TIMEOUT_S


class HubConfig(BaseModel):
    """Hub configuration.

    Loaded from a JSON file; every field has a usable default so an
    empty or missing file yields a working configuration.
    """

    debug: bool = False
    data_dir: Path = DEFAULT_DATA_DIR
    db_path: Path | str = DEFAULT_DB_PATH
    webhooks_path: Path = DEFAULT_WEBHOOKS_PATH
    assets_dir: Path = DEFAULT_ASSETS_DIR
    transport: Literal["serial", "mock"] = "serial"
    serial: SerialSettings = Field(default_factory=SerialSettings)
    webhook_timeout_seconds: float = DEFAULT_WEBHOOK_TIMEOUT_S
    compact_interval_hours: float = 0.0
    seed_demo_cards: bool = True


def load_config(path: str | Path | None = None) -> HubConfig:
    """Load hub configuration from a JSON file.

    Args:
        path: Path to the config file. None or a missing file gives defaults.

    Returns:
        Parsed HubConfig.

    Raises:
        ConfigError: If the file exists but cannot be parsed or validated.
    """
    if path is None:
        return HubConfig()

    config_path = Path(path)
    if not config_path.exists():
        logger.info("Config file %s not found, using defaults", config_path)
        return HubConfig()

    try:
        data = json.loads(config_path.read_text())
        return HubConfig(**data)
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid config file {config_path}", str(e)) from e
