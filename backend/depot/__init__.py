# backend/depot/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    # Bound how long a writer waits for the SQLite write lock
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        engine_options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
        connect_args = dict(engine_options.get("connect_args") or {})
        connect_args.setdefault("timeout", app.config["DEPOT_DB_LOCK_TIMEOUT_SECONDS"])
        engine_options["connect_args"] = connect_args
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options

    app.logger.setLevel(getattr(logging, str(app.config["DEPOT_LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.checkout import checkout_bp
    from .routes.inventory import inventory_bp
    from .routes.capital import capital_bp
    from .routes.pricing import pricing_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(capital_bp)
    app.register_blueprint(pricing_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
