"""
MAAP Check-in Core
Flask Application Factory.

Usage:
    from maap import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import os

from flask import Flask
from flask_migrate import Migrate
from sqlalchemy import event as _sa_event, engine as _sa_engine

from maap.config import config
from maap.middleware.logging_config import configure_logging
from maap.models import db


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiate so ProductionConfig can refuse to boot without its env vars.
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)

    # ── Import all models so Alembic can detect them ─────────────────────
    from maap.models import organization as _organization_models  # noqa: F401
    from maap.models import catalog as _catalog_models            # noqa: F401
    from maap.models import tenure as _tenure_models              # noqa: F401
    from maap.models import snapshot as _snapshot_models          # noqa: F401
    from maap.models import check_in as _check_in_models          # noqa: F401
    from maap.models import observable_moment as _moment_models   # noqa: F401
    from maap.models import audit as _audit_models                # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if config_name == "development":
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    return app
