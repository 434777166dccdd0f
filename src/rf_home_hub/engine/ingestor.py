"""Entry point for raw code events coming off the hardware transport.

Each event runs through a fixed pipeline::

    received -> stored -> resolved -> (available | assigned) -> [triggered] -> notified

Steps of one event run strictly in order. Events are independent tasks,
so the pipelines of two codes arriving back to back may interleave;
correctness relies on the idempotent upsert and on resolution re-reading
the stores every time.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from rf_home_hub.core.config import CODE_STATUS_RECEIVED
from rf_home_hub.core.exceptions import MalformedPayloadError, StoreError
from rf_home_hub.engine.alarm import AlarmTriggerWorkflow
from rf_home_hub.engine.availability import AvailabilityResolver
from rf_home_hub.notify.fanout import NotificationFanout
from rf_home_hub.storage.code_store import CodeStore
from rf_home_hub.storage.models import AlarmCard, Availability, CardType, CodeEvent
from rf_home_hub.transport.base import Transport

logger = logging.getLogger(__name__)


class IngestState(str, Enum):
    """Pipeline states of one code event."""

    RECEIVED = "received"
    STORED = "stored"
    RESOLVED = "resolved"
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    TRIGGERED = "triggered"
    NOTIFIED = "notified"
    IGNORED_STATUS = "ignored_status"  # transport-internal status, not processed
    DROPPED = "dropped"  # malformed payload
    FAILED = "failed"  # store error, pipeline aborted


@dataclass
class IngestResult:
    """What happened to one code event."""

    event: CodeEvent | None = None
    trail: list[IngestState] = field(default_factory=list)
    availability: Availability | None = None
    alarm: AlarmCard | None = None
    error: str | None = None

    @property
    def state(self) -> IngestState | None:
        """Final state reached."""
        return self.trail[-1] if self.trail else None

    def advance(self, state: IngestState) -> None:
        self.trail.append(state)


def parse_code_event(raw: Any) -> CodeEvent:
    """Decode a transport payload into a code event.

    Accepts a JSON line (``str`` or ``bytes``), an already decoded ``dict``,
    or a CodeEvent.

    Raises:
        MalformedPayloadError: If the payload is not a JSON object with a code.
    """
    if isinstance(raw, CodeEvent):
        return raw

    data: Any = raw
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayloadError(raw, "not UTF-8") from e

    if isinstance(data, str):
        try:
            data = json.loads(data.strip())
        except json.JSONDecodeError as e:
            raise MalformedPayloadError(raw, f"invalid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise MalformedPayloadError(raw, "expected a JSON object")

    try:
        return CodeEvent.from_payload(data)
    except ValidationError as e:
        raise MalformedPayloadError(raw, "missing or invalid code") from e


class CodeIngestor:
    """Drive one raw code event through storage, resolution and notification.

    Example:
        >>> ingestor = CodeIngestor(codes, resolver, alarms, fanout)
        >>> ingestor.attach(transport)
        >>> result = await ingestor.ingest('{"code": 1234, "status": "received"}')
        >>> result.state
        <IngestState.NOTIFIED: 'notified'>
    """

    def __init__(
        self,
        codes: CodeStore,
        resolver: AvailabilityResolver,
        alarms: AlarmTriggerWorkflow,
        fanout: NotificationFanout,
    ) -> None:
        self.codes = codes
        self.resolver = resolver
        self.alarms = alarms
        self.fanout = fanout
        self._tasks: set[asyncio.Task[IngestResult]] = set()

    def attach(self, transport: Transport) -> None:
        """Register as the transport's code listener."""
        transport.on(self.on_payload)

    def on_payload(self, raw: Any) -> asyncio.Task[IngestResult]:
        """Transport callback. Schedules the pipeline and returns at once."""
        task = asyncio.create_task(self.ingest(raw))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled pipeline to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def ingest(self, raw: Any) -> IngestResult:
        """Process one raw payload.

        Malformed payloads and store failures abort this event only; they
        are logged and reported in the result, never raised.
        """
        result = IngestResult()

        try:
            event = parse_code_event(raw)
        except MalformedPayloadError as e:
            logger.warning("Dropping transport payload: %s", e)
            result.error = str(e)
            result.advance(IngestState.DROPPED)
            return result

        result.event = event
        logger.debug("RF code received: %s", event.payload)

        if event.status != CODE_STATUS_RECEIVED:
            logger.debug("Skipping code %s with status %r", event.code, event.status)
            result.advance(IngestState.IGNORED_STATUS)
            return result
        result.advance(IngestState.RECEIVED)

        try:
            await self.codes.upsert(event.code)
            result.advance(IngestState.STORED)

            availability = await self.resolver.resolve(event.code)
            result.availability = availability
            result.advance(IngestState.RESOLVED)
        except StoreError as e:
            logger.error("Code %s aborted: %s", event.code, e)
            result.error = str(e)
            result.advance(IngestState.FAILED)
            return result

        logger.debug(
            "Code %s available: %s assigned to: %s",
            event.code,
            availability.is_available,
            availability.assigned_to,
        )

        if availability.is_available:
            result.advance(IngestState.AVAILABLE)
            await self.fanout.new_code(event)
        elif availability.assigned_to is not None:
            result.advance(IngestState.ASSIGNED)
            await self._check_alarm(availability.assigned_to, result)

        self.fanout.code_detected(event)
        result.advance(IngestState.NOTIFIED)
        return result

    async def _check_alarm(self, shortname: str, result: IngestResult) -> None:
        try:
            card = await self.alarms.check(shortname, CardType.ALARM)
        except StoreError as e:
            logger.error("Alarm check for %s failed: %s", shortname, e)
            result.error = str(e)
            return

        if card is None:
            return

        result.alarm = card
        result.advance(IngestState.TRIGGERED)
        await self.fanout.alarm_triggered(card)
        if card.device.armed:
            self.fanout.alarm_advise(card)
