"""Named webhooks with fire-and-forget HTTP delivery.

Operators register subscriber URLs under a hook name. Triggering a hook
POSTs the payload as JSON to every URL of that hook. Delivery is best
effort: each URL gets its own task, failures are logged and never retried,
and the caller never waits for or sees the outcome.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import httpx

from rf_home_hub.core.config import DEFAULT_WEBHOOK_TIMEOUT_S

logger = logging.getLogger(__name__)


class WebhookRegistry:
    """Hook name to subscriber URL mapping, persisted as JSON.

    The file holds a single object: ``{"code-detected": ["http://..."]}``.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        """Initialize registry.

        Args:
            path: JSON file for persistence. None keeps hooks in memory only.
        """
        self.path = Path(path) if path is not None else None
        self._hooks: dict[str, list[str]] = {}
        self.load()

    def load(self) -> None:
        """Load hooks from disk, replacing the in-memory mapping."""
        if self.path is None or not self.path.exists():
            self._hooks = {}
            return

        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            logger.error("Webhook file %s is not valid JSON: %s", self.path, e)
            self._hooks = {}
            return

        if not isinstance(data, dict):
            logger.error("Webhook file %s must hold a JSON object", self.path)
            self._hooks = {}
            return

        hooks: dict[str, list[str]] = {}
        for name, urls in data.items():
            if not isinstance(urls, list):
                logger.warning("Skipping webhook %s: expected a list of URLs", name)
                continue
            hooks[str(name)] = [str(u) for u in urls]
        self._hooks = hooks
        logger.debug("Loaded %d webhook(s) from %s", len(self._hooks), self.path)

    def save(self) -> None:
        """Write hooks to disk."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._hooks, indent=2))

    def add(self, name: str, url: str) -> bool:
        """Register a URL under a hook name.

        Returns:
            False if the URL was already registered for this hook.
        """
        urls = self._hooks.setdefault(name, [])
        if url in urls:
            return False
        urls.append(url)
        self.save()
        logger.info("Webhook %s -> %s added", name, url)
        return True

    def remove(self, name: str, url: str | None = None) -> bool:
        """Remove one URL from a hook, or the whole hook when url is None.

        Returns:
            True if anything was removed.
        """
        if name not in self._hooks:
            return False

        if url is None:
            del self._hooks[name]
        elif url in self._hooks[name]:
            self._hooks[name].remove(url)
            if not self._hooks[name]:
                del self._hooks[name]
        else:
            return False

        self.save()
        logger.info("Webhook %s removed%s", name, f" ({url})" if url else "")
        return True

    def get(self, name: str) -> list[str]:
        """Get subscriber URLs for a hook."""
        return list(self._hooks.get(name, []))

    def hooks(self) -> dict[str, list[str]]:
        """Get a copy of every hook and its URLs."""
        return {name: list(urls) for name, urls in self._hooks.items()}


class WebhookDispatcher:
    """Deliver hook payloads to registered URLs.

    Example:
        >>> dispatcher = WebhookDispatcher(WebhookRegistry("data/webhooks.json"))
        >>> dispatcher.trigger("code-detected", {"code": 1234, "status": "received"})
    """

    def __init__(
        self,
        registry: WebhookRegistry,
        timeout: float = DEFAULT_WEBHOOK_TIMEOUT_S,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            registry: Hook registry to read URLs from.
            timeout: Per-request timeout in seconds.
            client: HTTP client to use (created lazily if None).
        """
        self.registry = registry
        self.timeout = timeout
        self._client = client
        self._pending: set[asyncio.Task[bool]] = set()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client lazily."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._pending)

    def trigger(self, name: str, payload: dict[str, Any]) -> list[asyncio.Task[bool]]:
        """Start delivery of a payload to every URL of a hook.

        Must be called from a running event loop. Returns immediately.

        Args:
            name: Hook name.
            payload: JSON-serializable body, sent unmodified.

        Returns:
            One task per URL (empty if the hook has no subscribers).
        """
        urls = self.registry.get(name)
        if not urls:
            logger.debug("No subscribers for webhook %s", name)
            return []

        tasks = []
        for url in urls:
            task = asyncio.create_task(self._post(name, url, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def _post(self, name: str, url: str, payload: dict[str, Any]) -> bool:
        try:
            response = await self._get_client().post(url, json=payload)
        except Exception as e:
            logger.warning("Webhook %s delivery to %s failed: %s", name, url, e)
            return False

        if response.is_success:
            logger.debug("Webhook %s delivered to %s", name, url)
            return True

        logger.warning(
            "Webhook %s: %s returned %d",
            name,
            url,
            response.status_code,
        )
        return False

    async def drain(self) -> list[bool]:
        """Wait for every in-flight delivery.

        Returns:
            Success flag per delivery.
        """
        if not self._pending:
            return []
        results = await asyncio.gather(*list(self._pending), return_exceptions=True)
        return [r if isinstance(r, bool) else False for r in results]

    async def close(self) -> None:
        """Close the HTTP client. In-flight deliveries are not awaited."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
