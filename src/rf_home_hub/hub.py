"""Hub bootstrap: wires stores, engine, notifications and transport.

Provides:
- Hub: owns every component and their start/stop order
- create_transport: transport selection from configuration
- run_hub_cli: run until SIGINT/SIGTERM with live events on the console
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Iterable
from types import TracebackType
from typing import Any

import httpx

from rf_home_hub.core.bus import EventBus
from rf_home_hub.core.config import DEMO_CARDS_PATH, HubConfig
from rf_home_hub.core.exceptions import (
    CardNotFoundError,
    ConfigError,
    StoreError,
    TransportError,
)
from rf_home_hub.engine.alarm import AlarmTriggerWorkflow
from rf_home_hub.engine.availability import AvailabilityResolver
from rf_home_hub.engine.ingestor import CodeIngestor
from rf_home_hub.engine.lifecycle import CardLifecycleManager
from rf_home_hub.notify.fanout import NotificationFanout
from rf_home_hub.notify.live import LiveChannel
from rf_home_hub.notify.webhooks import WebhookDispatcher, WebhookRegistry
from rf_home_hub.storage.card_store import CardStore
from rf_home_hub.storage.code_store import CodeStore
from rf_home_hub.storage.database import HubDB
from rf_home_hub.storage.models import SwitchCard, normalize_code
from rf_home_hub.transport.base import Transport
from rf_home_hub.transport.mock import MockTransport
from rf_home_hub.transport.serial_line import SerialTransport

logger = logging.getLogger(__name__)


def create_transport(config: HubConfig) -> Transport:
    """Build the transport named in the configuration.

    Raises:
        ConfigError: If a serial transport is requested without a port.
    """
    if config.transport == "mock":
        return MockTransport()

    if not config.serial.port:
        raise ConfigError("No serial port configured", "set serial.port or pass --port")

    return SerialTransport(
        config.serial.port,
        baudrate=config.serial.baudrate,
        read_timeout=config.serial.read_timeout_seconds,
        open_delay=config.serial.open_delay_seconds,
    )


class Hub:
    """The running home-automation hub.

    Example:
        >>> async with Hub(config, transport=MockTransport()) as hub:
        ...     hub.live.subscribe(print)
        ...     hub.transport.inject_code(1234)
    """

    def __init__(
        self,
        config: HubConfig,
        transport: Transport | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize hub components. Nothing is opened yet.

        Args:
            config: Hub configuration.
            transport: Transport to use (built from config if None).
            http_client: HTTP client for webhooks (created lazily if None).
        """
        self.config = config

        self.db = HubDB(config.db_path)
        self.bus = EventBus()
        self.codes = CodeStore(self.db)
        self.cards = CardStore(self.db, self.bus)

        self.live = LiveChannel()
        self.webhook_registry = WebhookRegistry(config.webhooks_path)
        self.webhooks = WebhookDispatcher(
            self.webhook_registry,
            timeout=config.webhook_timeout_seconds,
            client=http_client,
        )
        self.fanout = NotificationFanout(self.live, self.webhooks)

        self.lifecycle = CardLifecycleManager(self.codes, self.fanout, config.assets_dir)
        self.lifecycle.attach(self.bus)

        self.resolver = AvailabilityResolver(self.codes, self.cards)
        self.alarms = AlarmTriggerWorkflow(self.cards)
        self.ingestor = CodeIngestor(self.codes, self.resolver, self.alarms, self.fanout)

        self.transport = transport or create_transport(config)

        self._running = False
        self._compact_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> Hub:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    @property
    def running(self) -> bool:
        return self._running

    def open_db(self) -> None:
        """Connect the database without starting the transport."""
        if not self.db.is_connected:
            self.db.connect()

    async def start(self) -> None:
        """Open storage, seed demo cards, open the transport and listen.

        Raises:
            TransportOpenError: If the hardware cannot be opened.
        """
        if self._running:
            logger.warning("Hub already running")
            return

        self.open_db()

        if self.config.seed_demo_cards:
            await self.cards.seed_defaults(DEMO_CARDS_PATH)

        await self.transport.open()
        self.ingestor.attach(self.transport)

        if self.config.compact_interval_hours > 0:
            self._compact_task = asyncio.create_task(self._compact_loop())

        self._running = True
        logger.info("Hub started")

    async def stop(self) -> None:
        """Close the transport first, then release everything else.

        In-flight code pipelines and webhook deliveries are not awaited.
        """
        try:
            await self.transport.close()
        except TransportError as e:
            logger.error("Error closing transport: %s", e)

        if self._compact_task:
            self._compact_task.cancel()
            try:
                await self._compact_task
            except asyncio.CancelledError:
                pass
            self._compact_task = None

        await self.webhooks.close()
        self.db.close()

        self._running = False
        logger.info("Hub stopped")

    async def _compact_loop(self) -> None:
        interval = self.config.compact_interval_hours * 3600
        while True:
            await asyncio.sleep(interval)
            try:
                await self.db.checkpoint()
            except StoreError as e:
                logger.error("Database compaction failed: %s", e)

    async def send_code(self, code: Any) -> None:
        """Transmit a raw code through the transport."""
        await self.transport.send(normalize_code(code))

    async def switch(self, shortname: str, on: bool) -> SwitchCard:
        """Turn a switch card on or off by transmitting its code.

        Raises:
            CardNotFoundError: If the card does not exist.
            StoreError: If the card is not a switch or lacks the needed code.
            TransportError: If transmission fails.
        """
        card = await self.cards.get(shortname)
        if card is None:
            raise CardNotFoundError(shortname)
        if not isinstance(card, SwitchCard):
            raise StoreError(f"Card {shortname} is not a switch", f"type={card.type}")

        code = card.device.on_code if on else card.device.off_code
        if code is None:
            raise StoreError(f"Card {shortname} has no {'on' if on else 'off'} code")

        await self.send_code(code)
        logger.info("Switch %s turned %s", shortname, "on" if on else "off")
        return await self.cards.set_switch_state(shortname, on)


async def run_hub_cli(
    config: HubConfig,
    transport: Transport | None = None,
    inject: Iterable[str] | None = None,
) -> None:
    """Run the hub interactively with signal handling.

    Sets up SIGINT/SIGTERM handlers for graceful shutdown and prints live
    events on the console.

    Args:
        config: Hub configuration.
        transport: Transport override.
        inject: Codes to replay through a mock transport after start.
    """
    from rf_home_hub.ui.display import print_banner, print_live_message

    hub = Hub(config, transport=transport)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def handle_signal() -> None:
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    hub.live.subscribe(print_live_message)
    try:
        await hub.start()
    except TransportError:
        await hub.stop()
        raise

    print_banner(
        "RF Home Hub",
        f"transport: {config.transport}"
        + (f" ({config.serial.port})" if config.transport == "serial" else ""),
    )
    print("\nPress Ctrl+C to stop\n")

    replay_task: asyncio.Task[None] | None = None
    if inject and isinstance(hub.transport, MockTransport):
        replay_task = asyncio.create_task(hub.transport.replay(list(inject)))

    await stop_event.wait()

    if replay_task:
        replay_task.cancel()
    await hub.stop()
