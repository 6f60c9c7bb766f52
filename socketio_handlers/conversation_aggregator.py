"""Per-viewer conversation summaries derived from the message log.

Nothing here is cached: every call reads the current rows, so the list and
the unread badge are always consistent with the last append or mark-read.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import func, or_

from server import db
from model.message import Message, utcnow_iso
from model.user import User


class ConversationAggregator:
    def unread_count_for(self, viewer_id: int) -> int:
        return int(
            db.session.query(func.count(Message.id))
            .filter(Message.receiver_id == viewer_id, Message.read.is_(False))
            .scalar()
            or 0
        )

    def unread_by_sender(self, viewer_id: int) -> Dict[int, int]:
        rows = (
            db.session.query(Message.sender_id, func.count(Message.id))
            .filter(Message.receiver_id == viewer_id, Message.read.is_(False))
            .group_by(Message.sender_id)
            .all()
        )
        return {sender_id: int(count) for sender_id, count in rows}

    def list_for(self, viewer_id: int) -> List[Dict]:
        # TODO: replace the full scan with a per-pair summary row once
        # conversation volume makes it worth maintaining on append/mark_read.
        messages = (
            Message.query.filter(or_(Message.sender_id == viewer_id, Message.receiver_id == viewer_id))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .all()
        )

        latest: Dict[int, Message] = {}
        for row in messages:
            other_id = row.receiver_id if row.sender_id == viewer_id else row.sender_id
            if other_id not in latest:
                latest[other_id] = row

        unread = self.unread_by_sender(viewer_id)
        users = {}
        if latest:
            users = {user.id: user for user in User.query.filter(User.id.in_(list(latest))).all()}

        ordered = sorted(latest.items(), key=lambda item: (item[1].created_at, item[1].id), reverse=True)
        return [
            self._summary(other_id, users.get(other_id), row, unread.get(other_id, 0))
            for other_id, row in ordered
        ]

    @staticmethod
    def _summary(other_id: int, other: Optional[User], row: Message, unread_count: int) -> Dict:
        return {
            "userId": other_id,
            "userName": other.name if other else None,
            "userAvatar": other.avatar_url if other else None,
            "lastMessage": row.body,
            "lastMessageId": row.id,
            "lastMessageDate": utcnow_iso(row.created_at),
            "listingId": row.listing_id,
            "unreadCount": unread_count,
        }
