"""User rows owned by the account service.

The messaging system only reads these: existence checks and the display
info embedded in message and conversation payloads.
"""

from datetime import datetime, timezone

from server import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    avatar_url = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    listings = db.relationship("Listing", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "avatarUrl": self.avatar_url,
        }

    def __repr__(self):
        return f"<User {self.id} {self.email}>"
