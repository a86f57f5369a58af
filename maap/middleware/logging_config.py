"""
Logging setup for the MAAP services.

Services log through ``logging.getLogger(__name__)`` and attach context as
``extra={...}``.  The formatters below surface the keys in
``STRUCTURED_FIELDS`` so a finalization can be traced by teammate,
check-in and dimension.

    LOG_FORMAT=json      one JSON object per line (default outside DEBUG)
    LOG_FORMAT=readable  short console lines (default in DEBUG/TESTING)
    LOG_LEVEL            overrides the level
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

STRUCTURED_FIELDS = (
    "company_id",
    "teammate_id",
    "check_in_id",
    "dimension",
    "error_kind",
    "tenure_id",
    "snapshot_id",
    "finalized_by_id",
    "change_type",
)


def _context(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in STRUCTURED_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ReadableFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        ctx = " ".join(f"{k}={v}" for k, v in _context(record).items())
        line = f"{ts} {record.levelname:<7} {record.name}: {record.getMessage()}"
        if ctx:
            line += f" [{ctx}]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install one stderr handler on the root logger for *app*'s settings."""
    verbose = app.config.get("DEBUG", False) or app.config.get("TESTING", False)

    fmt = app.config.get("LOG_FORMAT") or ("readable" if verbose else "json")
    level_name = os.getenv("LOG_LEVEL", app.config.get("LOG_LEVEL", "DEBUG" if verbose else "INFO"))
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ReadableFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine", "alembic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.debug("Logging configured: level=%s format=%s", level_name, fmt)
