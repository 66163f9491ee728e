from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import configure_mappers

from app.burials.graves import parse_slot_number, price_at_assignment
from app.burials.services import funding_from_payload
from app.core.errors import BadRequestError, parse_optional_uuid, parse_uuid
from app.core.models import (
    BURIAL_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    PURCHASE_TRANSITIONS,
    WAIVER_TRANSITIONS,
    AgeBand,
    BurialStatus,
    Member,
    PaymentStatus,
    PurchaseFunding,
    PurchaseStatus,
    WaiverFunding,
    WaiverStatus,
    WaiverType,
    as_utc,
    check_transition,
)
from app.core.utils import parse_amount, parse_optional_datetime
from app.purchases import pricing
from app.purchases.gateway import PaymentGateway, map_gateway_status
from app.purchases.pricing import age_band, compute_age, installment_total


def test_compute_age_uses_anniversary_rule():
    dob = date(1966, 10, 19)
    assert compute_age(dob, today=date(2026, 10, 18)) == 59
    assert compute_age(dob, today=date(2026, 10, 19)) == 60
    assert compute_age(date(2000, 2, 29), today=date(2026, 2, 28)) == 25


def test_age_band_boundary_is_inclusive_at_sixty():
    assert age_band(59, senior_age=60) == AgeBand.UNDER_60
    assert age_band(60, senior_age=60) == AgeBand.OVER_60
    assert age_band(81, senior_age=60) == AgeBand.OVER_60


def test_installment_total_is_monthly_times_months():
    assert installment_total(Decimal("120.00"), 10) == Decimal("1200.00")
    assert installment_total(Decimal("62.50"), 24) == Decimal("1500.00")


def test_purchase_transition_table():
    check_transition(PURCHASE_TRANSITIONS, PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.PAID, "purchase status")
    check_transition(
        PURCHASE_TRANSITIONS,
        PurchaseStatus.PARTIALLY_PAID,
        PurchaseStatus.PARTIALLY_PAID,
        "purchase status",
    )
    check_transition(PURCHASE_TRANSITIONS, PurchaseStatus.PAID, PurchaseStatus.REDEEMED, "purchase status")
    with pytest.raises(BadRequestError, match="CANCELLED -> PAID"):
        check_transition(PURCHASE_TRANSITIONS, PurchaseStatus.CANCELLED, PurchaseStatus.PAID, "purchase status")
    with pytest.raises(BadRequestError):
        check_transition(PURCHASE_TRANSITIONS, PurchaseStatus.PAID, PurchaseStatus.CANCELLED, "purchase status")


def test_burial_and_waiver_transition_tables_are_linear():
    assert BURIAL_TRANSITIONS[BurialStatus.PENDING_WAIVER_APPROVAL] == {BurialStatus.PENDING_GRAVE_ASSIGNMENT}
    assert BURIAL_TRANSITIONS[BurialStatus.BURIED] == set()
    with pytest.raises(BadRequestError):
        check_transition(
            BURIAL_TRANSITIONS,
            BurialStatus.PENDING_WAIVER_APPROVAL,
            BurialStatus.GRAVE_ASSIGNED,
            "burial status",
        )
    assert WAIVER_TRANSITIONS[WaiverStatus.APPROVED] == set()
    assert WAIVER_TRANSITIONS[WaiverStatus.REJECTED] == set()


def test_funding_is_exclusive():
    purchase_id = uuid.uuid4()
    assert funding_from_payload({"purchase_id": str(purchase_id)}) == PurchaseFunding(purchase_id)
    assert funding_from_payload({"waiver_type": "hardship", "waiver_reason": "No income"}) == WaiverFunding(
        WaiverType.HARDSHIP,
        "No income",
    )
    with pytest.raises(BadRequestError, match="Cannot specify both"):
        funding_from_payload({"purchase_id": str(purchase_id), "waiver_type": "DONATION"})
    with pytest.raises(BadRequestError, match="Cannot specify both"):
        funding_from_payload({"purchase_id": str(purchase_id), "waiver_reason": "Donated plot"})
    with pytest.raises(BadRequestError, match="Must specify either"):
        funding_from_payload({})


def test_parse_uuid_rejects_malformed_identifiers():
    value = uuid.uuid4()
    assert parse_uuid(str(value)) == value
    assert parse_uuid(str(value).upper()) == value
    assert parse_optional_uuid("") is None
    with pytest.raises(BadRequestError, match="must be a valid UUID format"):
        parse_uuid("123", "purchase ID")
    with pytest.raises(BadRequestError):
        parse_uuid(None)


def test_second_slot_discount(app):
    assert price_at_assignment(Decimal("1200.00"), 1) == Decimal("1200.00")
    assert price_at_assignment(Decimal("1200.00"), 2) == Decimal("1080.00")
    assert price_at_assignment(Decimal("999.99"), 2) == Decimal("899.99")


def test_slot_number_must_be_positive():
    assert parse_slot_number("2") == 2
    assert parse_slot_number(1) == 1
    for bad in ("0", "-1", "two", None):
        with pytest.raises(BadRequestError):
            parse_slot_number(bad)


def test_gateway_status_mapping():
    assert map_gateway_status("Paid") == PaymentStatus.SUCCESS
    assert map_gateway_status("Awaiting Delivery") == PaymentStatus.SUCCESS
    assert map_gateway_status("delivered") == PaymentStatus.SUCCESS
    assert map_gateway_status("Cancelled") == PaymentStatus.FAILED
    assert map_gateway_status("failed") == PaymentStatus.FAILED
    assert map_gateway_status("Expired") == PaymentStatus.EXPIRED
    assert map_gateway_status("sent") == PaymentStatus.INITIATED
    assert map_gateway_status(None) == PaymentStatus.INITIATED


def test_amount_and_datetime_parsing():
    assert parse_amount("1,200.5") == Decimal("1200.50")
    assert parse_amount("0", allow_zero=True) == Decimal("0.00")
    with pytest.raises(BadRequestError):
        parse_amount("0")
    with pytest.raises(BadRequestError):
        parse_amount("-5")
    with pytest.raises(BadRequestError):
        parse_amount("abc")
    parsed = parse_optional_datetime("2026-10-20T09:30:00Z", "expected_burial")
    assert parsed == datetime(2026, 10, 20, 9, 30, tzinfo=timezone.utc)
    assert as_utc(datetime(2026, 1, 1)) == datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_mappers_configure_cleanly():
    configure_mappers()
    assert Member.purchases.property.local_remote_pairs[0][1].name == "member_id"


def test_payment_transition_table_only_leaves_initiated():
    check_transition(PAYMENT_TRANSITIONS, PaymentStatus.INITIATED, PaymentStatus.EXPIRED, "payment status")
    with pytest.raises(BadRequestError, match="SUCCESS -> FAILED"):
        check_transition(PAYMENT_TRANSITIONS, PaymentStatus.SUCCESS, PaymentStatus.FAILED, "payment status")
    with pytest.raises(BadRequestError):
        check_transition(PAYMENT_TRANSITIONS, PaymentStatus.INITIATED, PaymentStatus.INITIATED, "payment status")


def test_gateway_without_poll_cannot_be_built():
    class SilentGateway(PaymentGateway):
        pass

    with pytest.raises(TypeError):
        SilentGateway()


def test_compute_age_defaults_to_utc_today(monkeypatch):
    monkeypatch.setattr(pricing, "utcnow", lambda: datetime(2026, 10, 19, 0, 30, tzinfo=timezone.utc))
    assert compute_age(date(1966, 10, 19)) == 60
