"""Pydantic data models for codes, cards and events.

Cards are a tagged union on ``type``: each known kind is a model class
registered in ``CARD_TYPES`` and knows which RF codes it binds. Types the
hub does not know are kept as ``UnknownCard`` so they survive a round
trip through the store without binding anything.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# ============================================================================
# Code Values
# ============================================================================


def normalize_code(value: Any) -> str:
    """Normalize an RF code to its canonical string form.

    Transports report codes as JSON numbers, operators type them as
    strings; both must compare equal.

    Raises:
        ValueError: If the value is empty or not a scalar code.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"invalid RF code: {value!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, (int, float, str)):
        raise ValueError(f"invalid RF code: {value!r}")
    code = str(value).strip()
    if not code:
        raise ValueError("RF code must not be empty")
    return code


def _normalize_optional_code(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return normalize_code(value)


CodeValue = Annotated[str, BeforeValidator(normalize_code)]
OptionalCodeValue = Annotated[Union[str, None], BeforeValidator(_normalize_optional_code)]


class RFCode(BaseModel):
    """An RF code observed by the transport."""

    code: CodeValue = Field(..., description="Code value, unique across the store")
    first_seen_at: datetime = Field(default_factory=datetime.now, description="First observation")
    last_seen_at: datetime = Field(default_factory=datetime.now, description="Last observation")
    ignored: bool = Field(default=False, description="Never offered as available")


class CodeEvent(BaseModel):
    """One code event delivered by the hardware transport.

    ``payload`` holds the decoded object exactly as the transport sent it,
    so subscribers receive it unmodified.
    """

    code: CodeValue
    status: str
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> CodeEvent:
        """Build an event from a decoded transport object."""
        return cls(
            code=payload.get("code"),
            status=str(payload.get("status", "")),
            payload=dict(payload),
        )


class Availability(BaseModel):
    """Result of resolving whether a code can be bound to a new card."""

    is_available: bool
    assigned_to: str | None = None
    ignored: bool = False

    @classmethod
    def available(cls) -> Availability:
        return cls(is_available=True)

    @classmethod
    def unavailable_ignored(cls) -> Availability:
        return cls(is_available=False, ignored=True)

    @classmethod
    def assigned(cls, shortname: str) -> Availability:
        return cls(is_available=False, assigned_to=shortname)


# ============================================================================
# Cards
# ============================================================================


class CardType(str, Enum):
    """Known card kinds."""

    SWITCH = "switch"
    ALARM = "alarm"


class SwitchDevice(BaseModel):
    """Device payload of a switch card."""

    on_code: OptionalCodeValue = None
    off_code: OptionalCodeValue = None
    is_on: bool = False


class AlarmDevice(BaseModel):
    """Device payload of an alarm card."""

    trigger_code: OptionalCodeValue = None
    armed: bool = False
    last_alert: datetime | None = None


class BaseCard(BaseModel):
    """Fields shared by every card kind."""

    model_config = ConfigDict(validate_assignment=True)

    shortname: str = Field(..., min_length=1, description="Unique card identifier")
    type: str
    name: str | None = Field(default=None, description="Display name")
    room: str | None = Field(default=None, description="Room label")
    description: str | None = Field(default=None, description="Free text")
    img: str | None = Field(default=None, description="Asset file relative to the assets dir")
    created_at: datetime = Field(default_factory=datetime.now)

    def bound_codes(self) -> frozenset[str]:
        """Return the RF codes this card binds."""
        raise NotImplementedError

    def binds(self, code: Any) -> bool:
        """Check whether this card binds the given code."""
        return normalize_code(code) in self.bound_codes()

    def to_payload(self) -> dict[str, Any]:
        """Serialize for live subscribers and webhooks."""
        return self.model_dump(mode="json")


class SwitchCard(BaseCard):
    """A remote-controlled switch with an on code and an off code."""

    type: Literal["switch"] = "switch"
    device: SwitchDevice = Field(default_factory=SwitchDevice)

    def bound_codes(self) -> frozenset[str]:
        codes = (self.device.on_code, self.device.off_code)
        return frozenset(c for c in codes if c is not None)


class AlarmCard(BaseCard):
    """A sensor that triggers an alarm when its code is received."""

    type: Literal["alarm"] = "alarm"
    device: AlarmDevice = Field(default_factory=AlarmDevice)

    def bound_codes(self) -> frozenset[str]:
        if self.device.trigger_code is None:
            return frozenset()
        return frozenset({self.device.trigger_code})


class UnknownCard(BaseCard):
    """A card of a kind this hub does not handle. Binds no codes."""

    device: dict[str, Any] = Field(default_factory=dict)

    def bound_codes(self) -> frozenset[str]:
        return frozenset()


Card = Union[SwitchCard, AlarmCard, UnknownCard]

CARD_TYPES: dict[str, type[BaseCard]] = {
    CardType.SWITCH.value: SwitchCard,
    CardType.ALARM.value: AlarmCard,
}


def parse_card(data: dict[str, Any]) -> Card:
    """Build the card model matching ``data["type"]``.

    Args:
        data: Card fields, including ``type`` and ``device``.

    Returns:
        SwitchCard, AlarmCard, or UnknownCard for unregistered types.
    """
    card_cls = CARD_TYPES.get(str(data.get("type")), UnknownCard)
    return card_cls(**data)  # type: ignore[return-value]
