"""Client helpers for the live channel and its polling fallback."""

from chat_client.poller import UnreadCountPoller
from chat_client.live import MessagingClient

__all__ = ["UnreadCountPoller", "MessagingClient"]
