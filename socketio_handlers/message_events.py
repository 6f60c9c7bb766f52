"""Socket.IO handlers for buyer/seller messaging."""

from __future__ import annotations

import logging

from flask import request
from flask_socketio import ConnectionRefusedError, emit
from sqlalchemy.exc import SQLAlchemyError

from api.jwt_authorize import token_from_request
from socketio_handlers.connection_registry import Connection
from socketio_handlers.messaging_errors import MessagingError, RateLimited, Unauthenticated


logger = logging.getLogger(__name__)

MESSAGING_NAMESPACE = "/"


def _emit_error(message: str) -> dict:
    emit("message_error", {"error": message})
    return {"ok": False, "error": message}


def init_message_socket(socketio, registry, store, router, authenticator, limiter=None) -> None:
    @socketio.on("connect", namespace=MESSAGING_NAMESPACE)
    def handle_connect(auth=None):
        token = (auth or {}).get("token") if isinstance(auth, dict) else None
        try:
            identity = authenticator.authenticate(token or token_from_request())
        except Unauthenticated as e:
            logger.info("Socket connection %s rejected: %s", request.sid, e.message)
            raise ConnectionRefusedError("Authentication error")

        connection = Connection(
            request.sid,
            identity.user_id,
            email=identity.email,
            socketio=socketio,
            namespace=MESSAGING_NAMESPACE,
        )
        registry.register(identity, connection)
        emit("connected", {"userId": identity.user_id})

    @socketio.on("disconnect", namespace=MESSAGING_NAMESPACE)
    def handle_disconnect(reason=None):
        connection = registry.lookup(request.sid)
        if connection is None:
            return
        registry.unregister(connection.user_id, connection)
        logger.info("User %s disconnected (%s)", connection.user_id, reason or "client")

    @socketio.on("send_message", namespace=MESSAGING_NAMESPACE)
    def handle_send_message(data=None):
        connection = registry.lookup(request.sid)
        if connection is None:
            return _emit_error(Unauthenticated.default_message)

        payload = data if isinstance(data, dict) else {}
        if limiter is not None and limiter.hit(connection.user_id):
            return _emit_error(RateLimited.default_message)

        try:
            message = store.append(
                connection.user_id,
                payload.get("receiverId"),
                payload.get("listingId"),
                payload.get("content"),
            )
        except MessagingError as e:
            return _emit_error(e.message)
        except SQLAlchemyError:
            return _emit_error("Failed to send message")

        router.route(message)
        return {"ok": True, "message": message.to_dict()}
