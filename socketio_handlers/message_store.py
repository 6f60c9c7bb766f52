"""Durable message log.

The store validates and persists messages and flips their read flag. It has
no knowledge of live connections; pushing new messages is the delivery
router's job.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError

from server import db
from model.listing import Listing
from model.message import Message
from model.user import User
from socketio_handlers.messaging_errors import (
    Forbidden,
    InvalidMessage,
    MessageNotFound,
    UnknownCounterparty,
)


logger = logging.getLogger(__name__)

MESSAGE_MIN_LENGTH = 1
MESSAGE_MAX_LENGTH = 2000


def _to_int(value) -> Optional[int]:
    # ints and digit strings only
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class EntityDirectory:
    """Existence checks for the users and listings a message refers to."""

    def user_exists(self, user_id: int) -> bool:
        return db.session.get(User, user_id) is not None

    def listing_exists(self, listing_id: int) -> bool:
        return db.session.get(Listing, listing_id) is not None


class MessageStore:
    def __init__(self, directory: Optional[EntityDirectory] = None, max_length: int = MESSAGE_MAX_LENGTH):
        self.directory = directory or EntityDirectory()
        self.max_length = max_length

    def validate_body(self, body) -> str:
        if body is None or not isinstance(body, str):
            raise InvalidMessage("Message cannot be empty")
        text = body.strip()
        if len(text) < MESSAGE_MIN_LENGTH:
            raise InvalidMessage("Message cannot be empty")
        if len(text) > self.max_length:
            raise InvalidMessage(f"Message cannot exceed {self.max_length} characters")
        return text

    def append(self, sender_id, receiver_id, listing_id, body) -> Message:
        sender = _to_int(sender_id)
        receiver = _to_int(receiver_id)
        listing = _to_int(listing_id)
        if sender is None:
            raise InvalidMessage("Invalid sender ID")
        if receiver is None:
            raise InvalidMessage("Invalid receiver ID")
        if listing is None:
            raise InvalidMessage("Invalid listing ID")
        if sender == receiver:
            raise InvalidMessage("Cannot send message to yourself")
        text = self.validate_body(body)

        if not self.directory.listing_exists(listing):
            raise UnknownCounterparty("Listing not found")
        if not self.directory.user_exists(receiver):
            raise UnknownCounterparty("Receiver not found")
        if not self.directory.user_exists(sender):
            raise UnknownCounterparty("Sender not found")

        row = Message(
            sender_id=sender,
            receiver_id=receiver,
            listing_id=listing,
            body=text,
            read=False,
        )
        try:
            db.session.add(row)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to persist message %s->%s", sender, receiver)
            raise
        logger.debug("Stored message %s (%s->%s, listing %s)", row.id, sender, receiver, listing)
        return row

    def get(self, message_id) -> Optional[Message]:
        message_id = _to_int(message_id)
        if message_id is None:
            return None
        return db.session.get(Message, message_id)

    def history(self, user_a, user_b) -> List[Message]:
        a = _to_int(user_a)
        b = _to_int(user_b)
        if a is None or b is None:
            return []
        return (
            Message.query.filter(
                or_(
                    and_(Message.sender_id == a, Message.receiver_id == b),
                    and_(Message.sender_id == b, Message.receiver_id == a),
                )
            )
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    def mark_read(self, receiver_id, sender_id, acting_user_id) -> int:
        """Mark every unread message from ``sender_id`` to ``receiver_id`` as read.

        Only the receiver may do this. Returns the number of rows that changed,
        so a second call in a row returns 0.
        """
        receiver = _to_int(receiver_id)
        sender = _to_int(sender_id)
        if receiver is None or _to_int(acting_user_id) != receiver:
            raise Forbidden()
        if sender is None:
            return 0

        try:
            updated = (
                Message.query.filter(
                    Message.receiver_id == receiver,
                    Message.sender_id == sender,
                    Message.read.is_(False),
                ).update({Message.read: True}, synchronize_session="fetch")
            )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to mark messages %s->%s read", sender, receiver)
            raise
        if updated:
            logger.debug("Marked %s messages %s->%s read", updated, sender, receiver)
        return int(updated)

    def mark_message_read(self, message_id, acting_user_id) -> Message:
        row = self.get(message_id)
        if row is None:
            raise MessageNotFound()
        if row.receiver_id != _to_int(acting_user_id):
            raise Forbidden()
        if not row.read:
            row.read = True
            try:
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                logger.exception("Failed to mark message %s read", row.id)
                raise
        return row
