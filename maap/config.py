"""
Environment configuration for the MAAP app factory.

``create_app`` picks one of ``config`` by name (``APP_ENV``, default
"development") and instantiates it, so ``ProductionConfig`` can refuse
to start without its environment.
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _database_url(default=None):
    # Heroku-style postgres:// URLs are rejected by SQLAlchemy 2.
    url = os.getenv("DATABASE_URL", "")
    return url.replace("postgres://", "postgresql://", 1) if url else default


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    LOG_FORMAT = os.getenv("LOG_FORMAT")

    # Aspiration finalization records an observable moment on improvement.
    OBSERVABLE_MOMENTS_ENABLED = _env_flag("OBSERVABLE_MOMENTS_ENABLED")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(
        f"sqlite:///{os.path.join(basedir, 'instance', 'maap_dev.db')}"
    )


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    OBSERVABLE_MOMENTS_ENABLED = True


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url()

    # A finalization waiting on a locked tenure row gives up after lock_timeout.
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {"options": "-c statement_timeout=30000 -c lock_timeout=10000"},
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
