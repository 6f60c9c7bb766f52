"""Application configuration read from the environment."""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _database_uri() -> str:
    db_name = os.environ.get("DB_NAME") or "marketplace"
    db_endpoint = os.environ.get("DB_ENDPOINT")
    db_username = os.environ.get("DB_USERNAME")
    db_password = os.environ.get("DB_PASSWORD")
    if db_endpoint and db_username and db_password:
        # Production - Use MySQL
        return f"mysql+pymysql://{db_username}:{db_password}@{db_endpoint}:3306/{db_name}"
    # Development - Use SQLite
    return os.environ.get("DATABASE_URL") or f"sqlite:///{db_name}.db"


class Config:
    """Base configuration."""

    DEBUG = os.environ.get("DEBUG", "false").lower() == "true"
    TESTING = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Browser / token settings
    SECRET_KEY = os.environ.get("SECRET_KEY") or "SECRET_KEY"
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY") or SECRET_KEY
    JWT_TOKEN_NAME = os.environ.get("JWT_TOKEN_NAME") or "jwt_marketplace"
    JWT_EXPIRY_DAYS = int(os.environ.get("JWT_EXPIRY_DAYS", "7"))

    # Database settings
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS / sockets
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "threading")
    SOCKETIO_PING_TIMEOUT = int(os.environ.get("SOCKETIO_PING_TIMEOUT", "60"))
    SOCKETIO_PING_INTERVAL = int(os.environ.get("SOCKETIO_PING_INTERVAL", "25"))

    # Messaging policy
    MESSAGE_MAX_LENGTH = 2000
    MESSAGE_RATE_LIMIT = int(os.environ.get("MESSAGE_RATE_LIMIT", "10"))
    MESSAGE_RATE_WINDOW_SECONDS = int(os.environ.get("MESSAGE_RATE_WINDOW_SECONDS", "8"))
    UNREAD_POLL_INTERVAL_SECONDS = int(os.environ.get("UNREAD_POLL_INTERVAL_SECONDS", "30"))

    FLASK_PORT = int(os.environ.get("FLASK_PORT") or 5000)

    JSON_AS_ASCII = False  # Allow emojis, non-ASCII characters in JSON responses


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    MESSAGE_RATE_LIMIT = 1000


def get_config() -> type:
    """Pick the configuration class from FLASK_ENV."""
    env = os.environ.get("FLASK_ENV", "development").lower()
    config_map = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
    }
    return config_map.get(env, DevelopmentConfig)
