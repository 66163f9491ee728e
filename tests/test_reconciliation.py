from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.extensions import db
from app.core.models import Payment, PaymentStatus, Purchase, PurchaseStatus, utcnow
from app.purchases.reconciliation import init_scheduler, reconcile_stuck_payments, stuck_payment_refs
from app.purchases.services import create_purchase, start_gateway_payment


@pytest.fixture
def gateway_payment(members, products):
    def _make(poll_url: str, amount: str = "1000", member_name: str = "Tendai"):
        purchase = create_purchase(
            {"member_id": str(members[member_name].id), "product_id": str(products["Lawn Grave"].id)}
        )
        return start_gateway_payment(purchase.id, {"amount": amount, "poll_url": poll_url})

    return _make


def _later():
    return utcnow() + timedelta(minutes=5)


def test_fresh_payments_are_not_stuck(app, gateway_payment):
    gateway_payment("https://pay.example/poll/fresh")
    assert stuck_payment_refs(utcnow()) == []
    assert len(stuck_payment_refs(_later())) == 1


def test_paid_status_finalizes_and_second_sweep_finds_nothing(app, fake_gateway, gateway_payment):
    payment = gateway_payment("https://pay.example/poll/1")
    fake_gateway.statuses["https://pay.example/poll/1"] = "Paid"

    result = reconcile_stuck_payments(_later())
    assert (result.checked, result.finalized, result.failed) == (1, 1, 0)

    settled = db.session.get(Payment, payment.id)
    assert settled.status == PaymentStatus.SUCCESS
    purchase = db.session.get(Purchase, settled.purchase_id)
    assert purchase.status == PurchaseStatus.PAID
    assert purchase.paid_amount == Decimal("1000.00")

    again = reconcile_stuck_payments(_later())
    assert again.checked == 0
    assert db.session.get(Purchase, settled.purchase_id).paid_amount == Decimal("1000.00")


def test_unresolved_status_is_left_initiated(app, fake_gateway, gateway_payment):
    payment = gateway_payment("https://pay.example/poll/pending")

    result = reconcile_stuck_payments(_later())
    assert (result.checked, result.finalized, result.failed) == (1, 0, 0)
    assert fake_gateway.polled == ["https://pay.example/poll/pending"]
    assert db.session.get(Payment, payment.id).status == PaymentStatus.INITIATED


def test_gateway_error_does_not_stop_the_sweep(app, fake_gateway, gateway_payment):
    broken = gateway_payment("https://pay.example/poll/broken")
    cancelled = gateway_payment("https://pay.example/poll/cancelled", member_name="Rudo")
    fake_gateway.statuses.update(
        {
            "https://pay.example/poll/broken": ConnectionError("gateway timeout"),
            "https://pay.example/poll/cancelled": "Cancelled",
        }
    )

    result = reconcile_stuck_payments(_later())
    assert (result.checked, result.finalized, result.failed) == (2, 1, 1)
    assert db.session.get(Payment, broken.id).status == PaymentStatus.INITIATED
    assert db.session.get(Payment, cancelled.id).status == PaymentStatus.FAILED
    assert db.session.get(Purchase, cancelled.purchase_id).paid_amount == Decimal("0.00")


def test_sweep_without_gateway_is_a_noop(app, gateway_payment, caplog):
    gateway_payment("https://pay.example/poll/1")
    with caplog.at_level(logging.WARNING):
        result = reconcile_stuck_payments(_later())
    assert (result.checked, result.finalized, result.failed) == (0, 0, 0)
    assert "No payment gateway configured" in caplog.text


def test_scheduler_is_not_started_under_test(app):
    assert init_scheduler(app) is None
    assert "scheduler" not in app.extensions
