"""Error taxonomy for the messaging system.

Every error that reaches a caller carries the HTTP status it maps to on the
REST surface. The live channel reports the same errors as ``message_error``
events instead.
"""


class MessagingError(Exception):
    status_code = 400
    default_message = "Messaging error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message}


class Unauthenticated(MessagingError):
    status_code = 401
    default_message = "Authentication required"


class InvalidMessage(MessagingError):
    status_code = 400
    default_message = "Invalid message"


class UnknownCounterparty(MessagingError):
    status_code = 404
    default_message = "Receiver not found"


class Forbidden(MessagingError):
    status_code = 403
    default_message = "You can only mark your own messages as read"


class MessageNotFound(MessagingError):
    status_code = 404
    default_message = "Message not found"


class RateLimited(MessagingError):
    status_code = 429
    default_message = "You are sending messages too quickly"


class DeliveryFailure(Exception):
    """A live push that could not be completed. Logged, never raised to senders."""

    def __init__(self, connection, cause: Exception):
        self.connection = connection
        self.cause = cause
        super().__init__(f"push to {connection!r} failed: {cause}")
