"""Append-only message log between two users about a listing."""

from datetime import timezone

from sqlalchemy import CheckConstraint, Index

from server import db
from model.user import utcnow


def utcnow_iso(value):
    """Serialize a stored (naive UTC) timestamp with an explicit offset."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    listing_id = db.Column(db.Integer, db.ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    body = db.Column(db.Text, nullable=False)
    read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    sender = db.relationship("User", foreign_keys=[sender_id])
    receiver = db.relationship("User", foreign_keys=[receiver_id])
    listing = db.relationship("Listing")

    __table_args__ = (
        CheckConstraint("sender_id != receiver_id", name="ck_messages_not_self"),
        Index("ix_messages_receiver_unread", "receiver_id", "read"),
        # ids are never reused, even after the newest row is deleted
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "listingId": self.listing_id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "message": self.body,
            "read": bool(self.read),
            "createdAt": utcnow_iso(self.created_at),
            "sender": self.sender.summary() if self.sender else None,
            "receiver": self.receiver.summary() if self.receiver else None,
            "listing": self.listing.summary() if self.listing else None,
        }

    def __repr__(self):
        return f"<Message {self.id} {self.sender_id}->{self.receiver_id}>"
