"""Notification channels for live clients and webhook subscribers."""

from rf_home_hub.notify.fanout import NotificationFanout
from rf_home_hub.notify.live import LiveChannel, LiveMessage
from rf_home_hub.notify.webhooks import WebhookDispatcher, WebhookRegistry

__all__ = [
    "LiveChannel",
    "LiveMessage",
    "NotificationFanout",
    "WebhookDispatcher",
    "WebhookRegistry",
]
