"""
BuildOps Dashboard
Configuration classes for the Flask app factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])

The store is in-memory SQLite unless DATABASE_URL says otherwise, so data
lives for the life of the process and is re-seeded from mock data on start.
"""

import os
import secrets

_SQLITE_MEMORY = "sqlite:///:memory:"

# Random per-process key for development; production must set SECRET_KEY
_DEV_SECRET = secrets.token_hex(32)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _database_url(default: str | None) -> str | None:
    raw = os.getenv("DATABASE_URL", "")
    # Heroku-style URLs use postgres:// but SQLAlchemy wants postgresql://
    return raw.replace("postgres://", "postgresql://", 1) if raw else default


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_MEMORY)

    SEED_MOCK_DATA = _env_flag("SEED_MOCK_DATA", "true")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    LOG_LEVEL = os.getenv("LOG_LEVEL")

    MAX_CONTENT_LENGTH = 2 * 1024 * 1024


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_MEMORY)
    # Tests build their own fixtures
    SEED_MOCK_DATA = False


class ProductionConfig(Config):
    """Production configuration.

    Pool options only apply to a real server database; in-memory SQLite
    runs on a single static connection.
    """

    DEBUG = False
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SEED_MOCK_DATA = _env_flag("SEED_MOCK_DATA", "false")

    def __init__(self):
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")
        if not self.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            self.SQLALCHEMY_ENGINE_OPTIONS = {
                "pool_pre_ping": True,
                "pool_size": 5,
                "max_overflow": 10,
                "pool_recycle": 300,
                "pool_timeout": 20,
            }


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
