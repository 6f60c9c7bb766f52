"""Flask application factory for the marketplace messaging service."""

import logging
import sqlite3
import sys
from datetime import datetime, timezone

import click
from flask import Flask, jsonify, request
from flask.cli import AppGroup
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

from settings import get_config


db = SQLAlchemy()
migrate = Migrate()

logger = logging.getLogger(__name__)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # cascade deletes from users/listings down to messages
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config_class=None) -> Flask:
    """
    Create and configure the Flask application.

    The messaging components are built here and shared through
    ``app.extensions`` so that REST views and socket handlers use the same
    store, registry and router.

    Args:
        config_class: Optional configuration class (for testing)

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    app.config.from_object(config_class or get_config())

    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)

    CORS(
        app,
        supports_credentials=True,
        origins=[app.config["FRONTEND_URL"]],
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PATCH", "OPTIONS"],
    )

    socketio = SocketIO(
        app,
        cors_allowed_origins=[app.config["FRONTEND_URL"]],
        async_mode=app.config["SOCKETIO_ASYNC_MODE"],
        logger=False,
        engineio_logger=False,
        ping_timeout=app.config["SOCKETIO_PING_TIMEOUT"],
        ping_interval=app.config["SOCKETIO_PING_INTERVAL"],
    )

    _initialize_messaging(app, socketio)
    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cli(app)

    with app.app_context():
        import model  # noqa: F401  registers tables
        db.create_all()

    logger.info("Application ready - registered blueprints: %s", list(app.blueprints))
    return app


def _configure_logging(app: Flask) -> None:
    logging.basicConfig(
        level=logging.DEBUG if app.config.get("DEBUG") else app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )


def _initialize_messaging(app: Flask, socketio: SocketIO) -> None:
    from api.jwt_authorize import Authenticator
    from socketio_handlers.connection_registry import ConnectionRegistry
    from socketio_handlers.conversation_aggregator import ConversationAggregator
    from socketio_handlers.delivery_router import DeliveryRouter
    from socketio_handlers.message_events import init_message_socket
    from socketio_handlers.message_store import MessageStore
    from socketio_handlers.rate_limit import SendRateLimiter

    registry = ConnectionRegistry()
    store = MessageStore(max_length=app.config["MESSAGE_MAX_LENGTH"])
    router = DeliveryRouter(registry)
    authenticator = Authenticator(app.config["JWT_SECRET_KEY"])
    limiter = SendRateLimiter(
        limit=app.config["MESSAGE_RATE_LIMIT"],
        window_seconds=app.config["MESSAGE_RATE_WINDOW_SECONDS"],
    )

    app.extensions["connection_registry"] = registry
    app.extensions["message_store"] = store
    app.extensions["delivery_router"] = router
    app.extensions["conversation_aggregator"] = ConversationAggregator()
    app.extensions["authenticator"] = authenticator

    init_message_socket(socketio, registry, store, router, authenticator, limiter)


def _register_blueprints(app: Flask) -> None:
    from api.messages import messages_api

    app.register_blueprint(messages_api)

    @app.route("/api/health", methods=["GET"])
    def health_check():
        """API health check endpoint"""
        registry = app.extensions["connection_registry"]
        return jsonify({
            "status": "ok",
            "message": "Backend is running",
            "liveConnections": registry.connection_count(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }), 200


def _register_error_handlers(app: Flask) -> None:
    from socketio_handlers.messaging_errors import MessagingError
    from sqlalchemy.exc import SQLAlchemyError

    @app.errorhandler(MessagingError)
    def messaging_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def storage_error(e):
        db.session.rollback()
        logger.error("Storage error on %s: %s", request.path, e, exc_info=True)
        return jsonify({"success": False, "error": "Internal server error"}), 500

    @app.errorhandler(404)
    def page_not_found(e):
        return jsonify({"success": False, "error": "Route not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"success": False, "error": "Internal server error"}), 500


def _register_cli(app: Flask) -> None:
    custom_cli = AppGroup("custom", help="Custom commands")

    @custom_cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created")

    @custom_cli.command("seed")
    def seed():
        """Create two demo users and a listing, and print their tokens."""
        from api.jwt_authorize import generate_token
        from model.listing import Listing
        from model.user import User

        seller = User.query.filter_by(email="seller@example.com").first()
        if seller is None:
            seller = User(name="Demo Seller", email="seller@example.com")
            db.session.add(seller)
        buyer = User.query.filter_by(email="buyer@example.com").first()
        if buyer is None:
            buyer = User(name="Demo Buyer", email="buyer@example.com")
            db.session.add(buyer)
        db.session.flush()
        listing = Listing.query.filter_by(user_id=seller.id).first()
        if listing is None:
            listing = Listing(user_id=seller.id, make="Volvo", model="XC60")
            db.session.add(listing)
        db.session.commit()

        click.echo(f"listing {listing.id}")
        for user in (seller, buyer):
            click.echo(f"{user.email} (id {user.id}): {generate_token(user.id, user.email)}")

    app.cli.add_command(custom_cli)
