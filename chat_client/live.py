"""Live channel client that degrades to polling while disconnected."""

import logging
from typing import Callable, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

from chat_client.poller import DEFAULT_POLL_INTERVAL, UnreadCountPoller


logger = logging.getLogger(__name__)


class MessagingClient:
    """Socket.IO client for ``send_message`` / ``receive_message``.

    While the socket is down an ``UnreadCountPoller`` keeps the unread badge
    fresh; it is stopped again as soon as the live channel reconnects.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        on_message: Optional[Callable[[dict], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_unread_count: Optional[Callable[[int], None]] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sio: Optional[socketio.Client] = None,
        poller: Optional[UnreadCountPoller] = None,
    ):
        self.base_url = base_url
        self.token = token
        self.on_message = on_message
        self.on_error = on_error
        self._closing = False
        self.sio = sio or socketio.Client(reconnection=True)
        self.poller = poller or UnreadCountPoller(
            base_url, token, on_change=on_unread_count, interval=poll_interval
        )
        self.sio.on("connect", self._handle_connect)
        self.sio.on("disconnect", self._handle_disconnect)
        self.sio.on("receive_message", self._handle_receive)
        self.sio.on("message_error", self._handle_error)

    @property
    def live(self) -> bool:
        return bool(self.sio.connected)

    def connect(self) -> bool:
        try:
            self.sio.connect(self.base_url, auth={"token": self.token}, wait_timeout=10)
        except SocketConnectionError as e:
            logger.warning("Live channel unavailable, falling back to polling: %s", e)
            self.poller.start()
            return False
        return True

    def send(self, receiver_id: int, listing_id: int, content: str, timeout: float = 10) -> dict:
        """Send over the live channel and wait for the server's ack."""
        return self.sio.call(
            "send_message",
            {"receiverId": receiver_id, "listingId": listing_id, "content": content},
            timeout=timeout,
        )

    def close(self) -> None:
        self._closing = True
        if self.sio.connected:
            self.sio.disconnect()
        self.poller.stop()

    def _handle_connect(self):
        logger.info("Live channel connected")
        # runs on the socket event thread; do not wait for an in-flight poll
        self.poller.stop(timeout=0)

    def _handle_disconnect(self, *args):
        if self._closing:
            return
        logger.info("Live channel disconnected, polling unread count")
        self.poller.start()

    def _handle_receive(self, data):
        if self.on_message:
            self.on_message(data)

    def _handle_error(self, data):
        error = (data or {}).get("error") if isinstance(data, dict) else str(data)
        logger.warning("Message error: %s", error)
        if self.on_error:
            self.on_error(error)
