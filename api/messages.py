"""REST endpoints for buyer/seller messaging."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, g, jsonify, request

from server import db
from model.user import User
from api.jwt_authorize import token_required
from socketio_handlers.messaging_errors import InvalidMessage


logger = logging.getLogger(__name__)

messages_api = Blueprint("messages_api", __name__, url_prefix="/api/messages")


def _store():
    return current_app.extensions["message_store"]


def _router():
    return current_app.extensions["delivery_router"]


def _aggregator():
    return current_app.extensions["conversation_aggregator"]


def _success(data, status_code=200):
    return jsonify({"success": True, "data": data}), status_code


@messages_api.route("", methods=["POST"])
@token_required()
def send_message():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidMessage("Request body must be a JSON object")

    message = _store().append(
        g.current_user.user_id,
        data.get("receiverId"),
        data.get("listingId"),
        data.get("message"),
    )
    _router().route(message)
    return _success({"message": message.to_dict()}, 201)


@messages_api.route("/conversations", methods=["GET"])
@token_required()
def get_conversations():
    conversations = _aggregator().list_for(g.current_user.user_id)
    return _success({"conversations": conversations})


@messages_api.route("/conversations/<int:user_id>", methods=["GET"])
@token_required()
def get_conversation(user_id):
    """Open a thread: marks the counterparty's messages read, then returns it."""
    current_user_id = g.current_user.user_id
    store = _store()
    store.mark_read(current_user_id, user_id, acting_user_id=current_user_id)
    messages = store.history(current_user_id, user_id)
    other = db.session.get(User, user_id)
    return _success({
        "messages": [row.to_dict() for row in messages],
        "otherUser": other.summary() if other else None,
    })


@messages_api.route("/unread-count", methods=["GET"])
@token_required()
def get_unread_count():
    count = _aggregator().unread_count_for(g.current_user.user_id)
    return _success({
        "unreadCount": count,
        "pollInterval": current_app.config.get("UNREAD_POLL_INTERVAL_SECONDS", 30),
    })


@messages_api.route("/<int:message_id>/read", methods=["PATCH"])
@token_required()
def mark_as_read(message_id):
    message = _store().mark_message_read(message_id, g.current_user.user_id)
    return _success({"message": message.to_dict()})
