# backend/cashbook/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    level = app.config.get("LOG_LEVEL", "INFO")
    logging.getLogger("cashbook").setLevel(level)
    app.logger.setLevel(level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .engine import EXTENSION_KEY, LedgerEngine
    from .storage import DatabaseCollectionStore

    app.extensions[EXTENSION_KEY] = LedgerEngine.from_config(DatabaseCollectionStore(), app.config)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
