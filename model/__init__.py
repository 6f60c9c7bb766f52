"""
SQLAlchemy models for the marketplace messaging system.

Importing this package registers every table on ``server.db`` so that
``db.create_all()`` and Flask-Migrate see the full schema.
"""

from model.user import User
from model.listing import Listing
from model.message import Message

__all__ = ["User", "Listing", "Message"]
