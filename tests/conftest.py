"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest

from rf_home_hub.core.bus import EventBus
from rf_home_hub.core.config import HOOK_ALARM_ADVISE, HOOK_CODE_DETECTED
from rf_home_hub.engine import (
    AlarmTriggerWorkflow,
    AvailabilityResolver,
    CardLifecycleManager,
    CodeIngestor,
)
from rf_home_hub.notify import (
    LiveChannel,
    LiveMessage,
    NotificationFanout,
    WebhookDispatcher,
    WebhookRegistry,
)
from rf_home_hub.storage import CardStore, CodeStore, HubDB

CODE_HOOK_URL = "http://hooks.test/code-detected"
ALARM_HOOK_URL = "http://hooks.test/alarm-advise"


class LiveRecorder:
    """Live subscriber that keeps every message it receives."""

    def __init__(self) -> None:
        self.messages: list[LiveMessage] = []

    def __call__(self, message: LiveMessage) -> None:
        self.messages.append(message)

    @property
    def events(self) -> list[str]:
        return [m.event for m in self.messages]

    def of(self, event: str) -> list[LiveMessage]:
        return [m for m in self.messages if m.event == event]

    def clear(self) -> None:
        self.messages.clear()


class WebhookServer:
    """Records requests made through an httpx.MockTransport."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    def bodies(self, url: str) -> list[dict[str, Any]]:
        """JSON bodies posted to one URL, in arrival order."""
        return [json.loads(r.content) for r in self.requests if str(r.url) == url]


@pytest.fixture
def db() -> Iterator[HubDB]:
    """Provide a connected in-memory database."""
    database = HubDB(":memory:")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def codes(db: HubDB) -> CodeStore:
    return CodeStore(db)


@pytest.fixture
def cards(db: HubDB, bus: EventBus) -> CardStore:
    return CardStore(db, bus)


@pytest.fixture
def live() -> LiveChannel:
    return LiveChannel()


@pytest.fixture
def live_recorder(live: LiveChannel) -> LiveRecorder:
    """Provide a connected live subscriber."""
    recorder = LiveRecorder()
    live.subscribe(recorder)
    return recorder


@pytest.fixture
def webhook_server() -> WebhookServer:
    return WebhookServer()


@pytest.fixture
def registry() -> WebhookRegistry:
    """In-memory registry with one URL per hook."""
    hooks = WebhookRegistry()
    hooks.add(HOOK_CODE_DETECTED, CODE_HOOK_URL)
    hooks.add(HOOK_ALARM_ADVISE, ALARM_HOOK_URL)
    return hooks


@pytest.fixture
async def webhooks(
    registry: WebhookRegistry, webhook_server: WebhookServer
) -> AsyncIterator[WebhookDispatcher]:
    """Dispatcher posting into the recording server."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(webhook_server.handler))
    dispatcher = WebhookDispatcher(registry, client=client)
    yield dispatcher
    await dispatcher.close()


@pytest.fixture
def fanout(live: LiveChannel, webhooks: WebhookDispatcher) -> NotificationFanout:
    return NotificationFanout(live, webhooks)


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    path = tmp_path / "www"
    path.mkdir()
    return path


@pytest.fixture
def lifecycle(
    codes: CodeStore, fanout: NotificationFanout, bus: EventBus, assets_dir: Path
) -> CardLifecycleManager:
    manager = CardLifecycleManager(codes, fanout, assets_dir)
    manager.attach(bus)
    return manager


@pytest.fixture
def ingestor(
    codes: CodeStore,
    cards: CardStore,
    fanout: NotificationFanout,
    lifecycle: CardLifecycleManager,
) -> CodeIngestor:
    """Fully wired ingestor over in-memory stores."""
    return CodeIngestor(
        codes,
        AvailabilityResolver(codes, cards),
        AlarmTriggerWorkflow(cards),
        fanout,
    )
