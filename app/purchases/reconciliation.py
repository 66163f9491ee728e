from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask, current_app

from app.core.extensions import db
from app.core.models import Payment, PaymentStatus, utcnow
from app.purchases.gateway import get_gateway, map_gateway_status
from app.purchases.services import finalize_payment

logger = logging.getLogger(__name__)

RECONCILE_JOB_ID = "payments_reconcile"


@dataclass
class ReconcileResult:
    checked: int = 0
    finalized: int = 0
    failed: int = 0


def stuck_payment_refs(now: datetime | None = None) -> list[tuple[object, str]]:
    now = now or utcnow()
    cutoff = now - timedelta(seconds=current_app.config.get("PAYMENT_STALE_SECONDS", 120))
    rows = (
        Payment.query.filter(
            Payment.status == PaymentStatus.INITIATED,
            Payment.poll_url.isnot(None),
            Payment.created_at < cutoff,
        )
        .order_by(Payment.created_at.asc())
        .all()
    )
    return [(row.id, row.poll_url) for row in rows]


def reconcile_stuck_payments(now: datetime | None = None) -> ReconcileResult:
    """Re-poll payments stuck in INITIATED and settle the ones the gateway resolved."""
    result = ReconcileResult()
    gateway = get_gateway()
    if gateway is None:
        logger.warning("No payment gateway configured, skipping reconciliation")
        return result

    for payment_id, poll_url in stuck_payment_refs(now):
        result.checked += 1
        try:
            status = map_gateway_status(gateway.poll(poll_url))
            if status == PaymentStatus.INITIATED:
                continue
            finalize_payment(payment_id, status, now=now)
            result.finalized += 1
        except Exception:
            db.session.rollback()
            result.failed += 1
            logger.warning("Reconciliation of payment %s failed", payment_id, exc_info=True)

    logger.info(
        "Reconciliation sweep: checked=%s finalized=%s failed=%s",
        result.checked,
        result.finalized,
        result.failed,
    )
    return result


def _run_sweep(app: Flask) -> None:
    with app.app_context():
        reconcile_stuck_payments()
        db.session.remove()


def init_scheduler(app: Flask) -> BackgroundScheduler | None:
    if not app.config.get("SCHEDULER_ENABLED") or app.config.get("TESTING"):
        return None
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        _run_sweep,
        args=[app],
        trigger=IntervalTrigger(minutes=app.config.get("RECONCILE_INTERVAL_MINUTES", 10)),
        id=RECONCILE_JOB_ID,
        name="Reconcile Stuck Payments",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    app.extensions["scheduler"] = scheduler
    logger.info("Payment reconciliation scheduled every %s minutes", app.config.get("RECONCILE_INTERVAL_MINUTES", 10))
    return scheduler
