"""
JWT authentication shared by the REST API and the live channel.

Tokens are HS256 JSON Web Tokens carrying ``userId`` and ``email``. A request
presents one as an ``Authorization: Bearer`` header or, for browser clients,
in the configured JWT cookie. Socket.IO clients send it in the connection
``auth`` payload instead. The user named by the token must still exist.

``token_required`` guards REST endpoints and stores the verified identity in
``g.current_user``.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import NamedTuple, Optional

import jwt
from flask import current_app, g, jsonify, request

from server import db
from model.user import User
from socketio_handlers.messaging_errors import Unauthenticated


class Identity(NamedTuple):
    user_id: int
    email: Optional[str]


def generate_token(user_id: int, email: str, expires_in: Optional[timedelta] = None) -> str:
    if expires_in is None:
        expires_in = timedelta(days=current_app.config.get("JWT_EXPIRY_DAYS", 7))
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET_KEY"], algorithm="HS256")


def extract_token_from_header(auth_header: Optional[str]) -> Optional[str]:
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


def token_from_request() -> Optional[str]:
    token = extract_token_from_header(request.headers.get("Authorization"))
    if token:
        return token
    return request.cookies.get(current_app.config.get("JWT_TOKEN_NAME", "jwt"))


class Authenticator:
    """Verifies bearer credentials and returns the identity they belong to."""

    def __init__(self, secret_key: str, algorithms=("HS256",)):
        self.secret_key = secret_key
        self.algorithms = list(algorithms)

    def authenticate(self, token: Optional[str]) -> Identity:
        if not token:
            raise Unauthenticated("Authentication required")
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=self.algorithms)
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Authentication token expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("Invalid authentication token")

        try:
            user_id = int(payload.get("userId"))
        except (TypeError, ValueError):
            raise Unauthenticated("Invalid authentication token")

        user = db.session.get(User, user_id)
        if user is None:
            raise Unauthenticated("User not found")
        return Identity(user_id=user.id, email=payload.get("email") or user.email)


def get_authenticator() -> Authenticator:
    return current_app.extensions["authenticator"]


def token_required():
    """Decorator that validates the request's JWT.

    Usage:

        @token_required()
        def handler(): ...
    """

    def decorator(func_to_guard):
        @wraps(func_to_guard)
        def decorated(*args, **kwargs):
            # CORS preflight requests should be allowed through
            if request.method == "OPTIONS":
                return ("", 200)
            try:
                g.current_user = get_authenticator().authenticate(token_from_request())
            except Unauthenticated as e:
                return jsonify(e.to_dict()), e.status_code
            return func_to_guard(*args, **kwargs)

        return decorated

    return decorator
