"""Persistent repositories for RF codes and cards.

DuckDB-backed stores with pydantic models:
- CodeStore: observed codes, ignore flag, bulk removal
- CardStore: switch and alarm cards, change messages on the event bus
"""

from rf_home_hub.storage.card_store import CardInserted, CardRemoved, CardStore, CardUpdated
from rf_home_hub.storage.code_store import CodeStore
from rf_home_hub.storage.database import HubDB
from rf_home_hub.storage.models import (
    CARD_TYPES,
    AlarmCard,
    AlarmDevice,
    Availability,
    BaseCard,
    Card,
    CardType,
    CodeEvent,
    RFCode,
    SwitchCard,
    SwitchDevice,
    UnknownCard,
    normalize_code,
    parse_card,
)

__all__ = [
    # Database
    "HubDB",
    # Stores
    "CodeStore",
    "CardStore",
    # Bus messages
    "CardInserted",
    "CardUpdated",
    "CardRemoved",
    # Models
    "RFCode",
    "CodeEvent",
    "Availability",
    "CardType",
    "BaseCard",
    "Card",
    "SwitchCard",
    "SwitchDevice",
    "AlarmCard",
    "AlarmDevice",
    "UnknownCard",
    "CARD_TYPES",
    "normalize_code",
    "parse_card",
]
