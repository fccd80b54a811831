# backend/komersh/__init__.py
import logging
import time

from flask import Flask, g, request

from .config import Config, ensure_required_settings
from .extensions import db, migrate

__version__ = "1.0.0"


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config())
    if test_config:
        app.config.update(test_config)

    # Refuse to start without a session secret and a database
    ensure_required_settings(app.config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp, oidc_bp
    from .routes.potential_products import potential_products_bp
    from .routes.inventory import inventory_bp
    from .routes.sales_orders import sales_orders_bp
    from .routes.bank_accounts import bank_accounts_bp
    from .routes.expenses import expenses_bp
    from .routes.tasks import tasks_bp
    from .routes.attachments import attachments_bp
    from .routes.users import users_bp
    from .routes.invitations import invitations_bp
    from .routes.account import account_bp
    from .routes.activity import activity_bp, notifications_bp
    from .routes.dashboard import dashboard_bp, settings_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(oidc_bp)
    app.register_blueprint(potential_products_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_orders_bp)
    app.register_blueprint(bank_accounts_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(attachments_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(invitations_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(activity_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(settings_bp)

    from .errors import register_error_handlers
    register_error_handlers(app)

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_api_request(response):
        if request.path.startswith("/api"):
            started = getattr(g, "request_started", None)
            elapsed_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
            app.logger.info("%s %s %s in %dms", request.method, request.path, response.status_code, elapsed_ms)
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
