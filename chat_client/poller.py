"""Unread-count polling, the fallback when the live channel is down.

The poller hits ``GET /api/messages/unread-count`` every ``interval`` seconds
(30 by default), so a badge is never more than one interval stale.
"""

import logging
import threading
from typing import Callable, Optional

import requests


logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 30


class UnreadCountPoller:
    def __init__(
        self,
        base_url: str,
        token: str,
        on_change: Optional[Callable[[int], None]] = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
    ):
        self.url = base_url.rstrip("/") + "/api/messages/unread-count"
        self.token = token
        self.on_change = on_change
        self.interval = interval
        self.session = session or requests.Session()
        self.timeout = timeout
        self.last_count: Optional[int] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> Optional[int]:
        """Fetch the count once. Returns None when the request fails."""
        try:
            response = self.session.get(
                self.url,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            count = int(response.json()["data"]["unreadCount"])
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.warning("Unread count poll failed: %s", e)
            return None

        if count != self.last_count:
            self.last_count = count
            if self.on_change:
                self.on_change(count)
        return count

    def start(self) -> None:
        if self.running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), name="unread-count-poller", daemon=True
        )
        self._thread.start()
        logger.info("Unread count polling started (every %ss)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Unread count polling stopped")

    def _run(self, stop: threading.Event) -> None:
        while not stop.is_set():
            self.poll_once()
            stop.wait(self.interval)
