from __future__ import annotations

import logging
import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from flask import current_app
from sqlalchemy import select, update

from app.core.errors import BadRequestError, NotFoundError, parse_optional_uuid, parse_uuid
from app.core.extensions import atomic, db
from app.core.models import (
    ASSIGNMENT_REQUEST_TRANSITIONS,
    BURIAL_TRANSITIONS,
    AssignmentRequest,
    AssignmentRequestStatus,
    BurialCase,
    BurialStatus,
    Grave,
    PlotSlot,
    PricingSection,
    PurchaseFunding,
    WaiverFunding,
    WaiverStatus,
    check_transition,
    utcnow,
)
from app.core.notifier import broadcast_state_changed, queue_burial_notification

logger = logging.getLogger(__name__)

SECTION_UNKNOWN = "Cannot determine section: purchase or waiver information missing"
SECTION_REQUIRED_FOR_WAIVER = (
    "Cannot determine section: section must be specified in an assignment request for waiver burials"
)


def parse_grave_number(value: object) -> str:
    grave_number = str(value if value is not None else "").strip()
    if not grave_number:
        raise BadRequestError("Missing grave_number")
    return grave_number


def parse_slot_number(value: object) -> int:
    raw = str(value if value is not None else "").strip()
    if not raw.isdigit() or int(raw) < 1:
        raise BadRequestError("slot_number must be a positive integer")
    return int(raw)


def _locked_case(case_id: uuid.UUID) -> BurialCase:
    case = db.session.execute(
        select(BurialCase).where(BurialCase.id == case_id).with_for_update()
    ).scalar_one_or_none()
    if not case:
        raise NotFoundError("Burial case not found")
    return case


def latest_pending_request(case: BurialCase) -> AssignmentRequest | None:
    return (
        AssignmentRequest.query.filter_by(case_id=case.id, status=AssignmentRequestStatus.PENDING)
        .order_by(AssignmentRequest.created_at.desc())
        .first()
    )


def resolve_section(case: BurialCase) -> PricingSection:
    """Section of the cemetery this case must be buried in.

    Purchase-funded cases follow the purchased product; waiver-funded cases
    take the hint from their newest pending assignment request.
    """
    funding = case.funding
    if isinstance(funding, PurchaseFunding):
        purchase = case.purchase
        if purchase is None or purchase.product is None or purchase.product.pricing_section is None:
            raise BadRequestError(SECTION_UNKNOWN)
        return purchase.product.pricing_section
    if isinstance(funding, WaiverFunding):
        request = latest_pending_request(case)
        if request is None or request.requested_section is None:
            raise BadRequestError(SECTION_REQUIRED_FOR_WAIVER)
        return request.requested_section
    raise BadRequestError(SECTION_UNKNOWN)


def find_or_create_grave(section: PricingSection, grave_number: str) -> Grave:
    grave = Grave.query.filter_by(section=section, grave_number=grave_number).first()
    if grave is None:
        grave = Grave(
            section=section,
            grave_number=grave_number,
            capacity=current_app.config.get("GRAVE_CAPACITY", 2),
        )
        db.session.add(grave)
        db.session.flush()
        logger.info("Grave %s created", grave.location_label)
    return grave


def price_at_assignment(total_amount: Decimal, slot_number: int) -> Decimal:
    price = Decimal(total_amount)
    if slot_number == 2:
        discount = Decimal(current_app.config.get("SECOND_SLOT_DISCOUNT_PCT", Decimal("10.00")))
        price = price * (Decimal("100") - discount) / Decimal("100")
    return price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def link_case_to_slot(
    case: BurialCase,
    grave_number: str,
    slot_number: int,
    staff_id: uuid.UUID | None,
    now: datetime | None = None,
) -> PlotSlot:
    # Caller owns the transaction.
    now = now or utcnow()
    if case.plot_slot is not None:
        raise BadRequestError("Grave already assigned")
    funding = case.funding
    if isinstance(funding, WaiverFunding) and case.waiver.status != WaiverStatus.APPROVED:
        raise BadRequestError("Waiver must be approved before assignment")

    section = resolve_section(case)
    grave = find_or_create_grave(section, grave_number)
    if slot_number > grave.capacity:
        raise BadRequestError(f"Grave {grave_number} only has {grave.capacity} slots")

    slot = PlotSlot.query.filter_by(grave_id=grave.id, slot_number=slot_number).first()
    if slot is not None and slot.case_id is not None:
        raise BadRequestError(f"Slot {slot_number} in grave {grave_number} is already occupied")

    price = None
    if isinstance(funding, PurchaseFunding):
        if PlotSlot.query.filter_by(purchase_id=funding.purchase_id).first() is not None:
            raise BadRequestError("Purchase is already linked to a grave slot")
        price = price_at_assignment(case.purchase.total_amount, slot_number)

    if slot is None:
        slot = PlotSlot(grave_id=grave.id, slot_number=slot_number)
        db.session.add(slot)
    slot.purchase_id = funding.purchase_id if isinstance(funding, PurchaseFunding) else None
    slot.price_at_assignment = price
    db.session.flush()

    linked_rows = db.session.execute(
        update(PlotSlot)
        .where(PlotSlot.id == slot.id, PlotSlot.case_id.is_(None))
        .values(case_id=case.id)
        .execution_options(synchronize_session=False)
    ).rowcount
    if linked_rows != 1:
        raise BadRequestError(f"Slot {slot_number} in grave {grave_number} is already occupied")
    db.session.expire(slot)
    db.session.expire(case, ["plot_slot"])

    check_transition(BURIAL_TRANSITIONS, case.status, BurialStatus.GRAVE_ASSIGNED, "burial status")
    case.status = BurialStatus.GRAVE_ASSIGNED
    db.session.add(case)

    pending = AssignmentRequest.query.filter_by(case_id=case.id, status=AssignmentRequestStatus.PENDING).all()
    for request in pending:
        check_transition(
            ASSIGNMENT_REQUEST_TRANSITIONS,
            request.status,
            AssignmentRequestStatus.COMPLETED,
            "assignment request status",
        )
        request.status = AssignmentRequestStatus.COMPLETED
        request.assigned_by_staff_id = staff_id
        request.assigned_at = now
        db.session.add(request)

    db.session.flush()
    logger.info(
        "Case %s assigned to %s slot %s (price %s)",
        case.id,
        grave.location_label,
        slot_number,
        price,
    )
    return slot


def assign_grave(case_id: object, payload: dict[str, object], staff_id: object | None) -> BurialCase:
    cid = parse_uuid(case_id, "case ID")
    grave_number = parse_grave_number(payload.get("grave_number"))
    slot_number = parse_slot_number(payload.get("slot_number"))
    actor = parse_optional_uuid(staff_id, "staff ID")

    with atomic("Slot or purchase was taken by a concurrent assignment"):
        case = _locked_case(cid)
        link_case_to_slot(case, grave_number, slot_number, actor)
    broadcast_state_changed()
    queue_burial_notification(case)
    return case
