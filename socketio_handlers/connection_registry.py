"""Live connection registry.

Maps an authenticated user to the set of Socket.IO connections they have
open (one per tab or device). One registry is created per application and
handed to whatever needs it; nothing else mutates its maps.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Set

from socketio_handlers.messaging_errors import Unauthenticated


logger = logging.getLogger(__name__)


class Connection:
    """Handle for one live socket, bound to its identity for its lifetime."""

    def __init__(self, sid: str, user_id: int, email: Optional[str] = None, socketio=None, namespace: str = "/"):
        self.sid = sid
        self.user_id = user_id
        self.email = email
        self.socketio = socketio
        self.namespace = namespace
        self.connected_at = datetime.now(timezone.utc)

    def push(self, event: str, payload) -> None:
        if self.socketio is None:
            raise RuntimeError(f"connection {self.sid} has no transport")
        self.socketio.emit(event, payload, to=self.sid, namespace=self.namespace)

    def __eq__(self, other):
        return isinstance(other, Connection) and other.sid == self.sid

    def __hash__(self):
        return hash(self.sid)

    def __repr__(self):
        return f"<Connection {self.sid} user={self.user_id}>"


class ConnectionRegistry:
    def __init__(self):
        self._lock = threading.RLock()
        self._by_user: Dict[int, Set[Connection]] = {}
        self._by_sid: Dict[str, Connection] = {}

    def register(self, identity, connection: Connection) -> None:
        if identity is None or getattr(identity, "user_id", None) is None:
            raise Unauthenticated()
        user_id = identity.user_id
        with self._lock:
            previous = self._by_sid.get(connection.sid)
            if previous is not None and previous.user_id != user_id:
                self._discard(previous.user_id, previous)
            self._by_user.setdefault(user_id, set()).add(connection)
            self._by_sid[connection.sid] = connection
            count = len(self._by_user[user_id])
        logger.info("Registered connection %s for user %s (%s live)", connection.sid, user_id, count)

    def unregister(self, identity, connection: Connection) -> None:
        user_id = getattr(identity, "user_id", identity)
        with self._lock:
            removed = self._discard(user_id, connection)
            if self._by_sid.get(connection.sid) == connection:
                self._by_sid.pop(connection.sid, None)
        if removed:
            logger.info("Unregistered connection %s for user %s", connection.sid, user_id)

    def _discard(self, user_id, connection: Connection) -> bool:
        connections = self._by_user.get(user_id)
        if not connections or connection not in connections:
            return False
        connections.discard(connection)
        if not connections:
            self._by_user.pop(user_id, None)
        return True

    def resolve(self, identity) -> FrozenSet[Connection]:
        user_id = getattr(identity, "user_id", identity)
        with self._lock:
            return frozenset(self._by_user.get(user_id, ()))

    def lookup(self, sid: str) -> Optional[Connection]:
        with self._lock:
            return self._by_sid.get(sid)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._by_sid)

    def online_user_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._by_user)
