# backend/petros/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Applied before extensions bind so the engine sees the final URI
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.sales import sales_bp
    from .routes.purchases import purchases_bp
    from .routes.payments import payments_bp
    from .routes.returns import returns_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.quotations import quotations_bp
    from .routes.adjustments import adjustments_bp
    from .routes.till import till_bp
    from .routes.expenses import expenses_bp
    from .routes.reports import reports_bp
    from .routes.items import items_bp
    from .routes.counterparties import customers_bp, suppliers_bp

    app.register_blueprint(sales_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(returns_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(quotations_bp)
    app.register_blueprint(adjustments_bp)
    app.register_blueprint(till_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(suppliers_bp)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
