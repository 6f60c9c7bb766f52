"""Fan-out of persisted messages to every live connection of both parties."""

from __future__ import annotations

import logging

from socketio_handlers.messaging_errors import DeliveryFailure


logger = logging.getLogger(__name__)

RECEIVE_MESSAGE_EVENT = "receive_message"


class DeliveryRouter:
    """Best-effort live delivery.

    Only ever called with messages that are already committed. A push that
    fails is logged and dropped; the receiver picks the message up on the next
    poll, reconnect or conversation refresh.
    """

    def __init__(self, registry, event: str = RECEIVE_MESSAGE_EVENT):
        self.registry = registry
        self.event = event

    def route(self, message) -> None:
        payload = message.to_dict()
        targets = set(self.registry.resolve(message.sender_id))
        targets.update(self.registry.resolve(message.receiver_id))

        delivered = 0
        for connection in sorted(targets, key=lambda c: c.sid):
            try:
                connection.push(self.event, payload)
                delivered += 1
            except Exception as exc:
                failure = DeliveryFailure(connection, exc)
                logger.warning("Delivery failure for message %s: %s", message.id, failure)
        logger.debug("Message %s pushed to %s/%s connections", message.id, delivered, len(targets))
