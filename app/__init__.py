from __future__ import annotations

import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from app.burials import burials_bp
from app.core.auth import auth_bp
from app.core.config import Config
from app.core.errors import DomainError
from app.core.extensions import db, login_manager, migrate
from app.core.models import Staff, seed_demo_data
from app.core.utils import money
from app.purchases import purchases_bp
from app.purchases.gateway import init_gateway
from app.purchases.reconciliation import init_scheduler, reconcile_stuck_payments
from app.purchases.services import defaulted_purchases

logger = logging.getLogger(__name__)


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    logging.getLogger("app").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    init_gateway(app, app.config.get("PAYMENT_GATEWAY"))

    app.register_blueprint(auth_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(burials_bp)

    register_error_handlers(app)
    register_cli(app)
    init_scheduler(app)
    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def domain_error(error: DomainError):
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"error": error.description}), error.code


def register_cli(app: Flask) -> None:
    @app.cli.command("seed-demo")
    @click.option("--reset", is_flag=True, help="Delete existing data before seed.")
    def seed_demo(reset: bool) -> None:
        """Seed demo staff, products, plans and members."""
        if reset:
            db.drop_all()
            db.create_all()
        if not Staff.query.first():
            seed_demo_data(db.session)
            click.echo("Demo data seeded.")
        else:
            click.echo("Seed skipped: existing staff found.")

    @app.cli.command("payments-reconcile")
    def payments_reconcile() -> None:
        """Re-poll stuck gateway payments once."""
        result = reconcile_stuck_payments()
        click.echo(f"checked={result.checked} finalized={result.finalized} failed={result.failed}")

    @app.cli.command("plans-defaulted")
    def plans_defaulted() -> None:
        """List installment purchases in arrears."""
        rows = defaulted_purchases()
        if not rows:
            click.echo("No defaulted purchases.")
            return
        for row in rows:
            click.echo(
                f"{row['purchase_id']}  {row['member']:<24} {row['plan']:<10} "
                f"behind={row['months_behind']} balance={money(row['balance'])}"
            )
