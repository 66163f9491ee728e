from __future__ import annotations

import logging
import math
import uuid

from sqlalchemy import or_

from app.burials.graves import link_case_to_slot, parse_grave_number, parse_slot_number
from app.core.errors import BadRequestError, ForbiddenError, NotFoundError, parse_optional_uuid, parse_uuid
from app.core.extensions import atomic, db
from app.core.models import (
    BURIAL_TRANSITIONS,
    PURCHASE_TRANSITIONS,
    WAIVER_TRANSITIONS,
    AssignmentRequest,
    AssignmentRequestStatus,
    BurialCase,
    BurialStatus,
    NextOfKin,
    PricingSection,
    PurchaseFunding,
    PurchaseStatus,
    Waiver,
    WaiverFunding,
    WaiverStatus,
    WaiverType,
    as_utc,
    check_transition,
    utcnow,
)
from app.core.notifier import broadcast_state_changed, queue_burial_notification
from app.core.utils import (
    parse_date,
    parse_enum,
    parse_optional_date,
    parse_optional_datetime,
    parse_optional_enum,
)
from app.purchases.services import lock_purchase, purchase_by_id, verify_redeem

logger = logging.getLogger(__name__)

CASE_DATETIME_FIELDS = {"expected_burial", "burial_date"}
CASE_TEXT_FIELDS = {"full_name", "gender", "address", "relationship", "cause_of_death", "funeral_parlor", "notes"}
NULLABLE_TEXT_FIELDS = {"cause_of_death", "funeral_parlor", "notes"}
KIN_TEXT_FIELDS = {"full_name", "relationship", "phone", "email", "address"}
ATTRIBUTE_NAMES = {"relationship": "relationship_to_member"}
KIN_ATTRIBUTE_NAMES = {"relationship": "relationship_to_deceased"}
MAX_PAGE_SIZE = 200


def _text(value: object) -> str:
    return str(value if value is not None else "").strip()


def _has(value: object) -> bool:
    return bool(_text(value))


def funding_from_payload(payload: dict[str, object]) -> PurchaseFunding | WaiverFunding:
    has_purchase = _has(payload.get("purchase_id"))
    has_waiver = _has(payload.get("waiver_type")) or _has(payload.get("waiver_reason"))
    if has_purchase and has_waiver:
        raise BadRequestError("Cannot specify both purchase and waiver for the same burial")
    if has_purchase:
        return PurchaseFunding(parse_uuid(payload.get("purchase_id"), "purchase ID"))
    if not _has(payload.get("waiver_type")):
        raise BadRequestError("Must specify either purchase_id or waiver_type")
    return WaiverFunding(
        waiver_type=parse_enum(WaiverType, payload.get("waiver_type"), "waiver type"),
        reason=_text(payload.get("waiver_reason")),
    )


def _case_fields(payload: dict[str, object]) -> dict[str, object]:
    full_name = _text(payload.get("full_name"))
    if not full_name:
        raise BadRequestError("Missing full_name")
    return {
        "full_name": full_name,
        "date_of_birth": parse_optional_date(payload.get("date_of_birth"), "date_of_birth"),
        "gender": _text(payload.get("gender")),
        "address": _text(payload.get("address")),
        "relationship_to_member": _text(payload.get("relationship")),
        "cause_of_death": _text(payload.get("cause_of_death")) or None,
        "funeral_parlor": _text(payload.get("funeral_parlor")) or None,
        "date_of_death": parse_date(payload.get("date_of_death"), "date_of_death"),
        "expected_burial": parse_optional_datetime(payload.get("expected_burial"), "expected_burial"),
        "burial_date": parse_optional_datetime(payload.get("burial_date"), "burial_date"),
        "notes": _text(payload.get("notes")) or None,
    }


def _next_of_kin_fields(raw: object) -> dict[str, object]:
    if not isinstance(raw, dict):
        raise BadRequestError("Next of kin details are required")
    fields = {
        "full_name": _text(raw.get("full_name")),
        "relationship_to_deceased": _text(raw.get("relationship")),
        "phone": _text(raw.get("phone")),
        "email": _text(raw.get("email")) or None,
        "address": _text(raw.get("address")),
        "is_buyer": bool(raw.get("is_buyer", False)),
    }
    for key, label in (("full_name", "full_name"), ("relationship_to_deceased", "relationship"), ("phone", "phone")):
        if not fields[key]:
            raise BadRequestError(f"Missing next of kin {label}")
    return fields


def _inline_assignment(payload: dict[str, object]) -> tuple[str, int] | None:
    has_grave = _has(payload.get("grave_number"))
    has_slot = _has(payload.get("slot_number"))
    if not has_grave and not has_slot:
        return None
    if has_grave != has_slot:
        raise BadRequestError("grave_number and slot_number must be given together")
    return parse_grave_number(payload.get("grave_number")), parse_slot_number(payload.get("slot_number"))


def _create_case(
    funding: PurchaseFunding | WaiverFunding,
    fields: dict[str, object],
    kin: dict[str, object],
    staff_id: uuid.UUID | None,
) -> BurialCase:
    # Caller owns the transaction.
    if isinstance(funding, PurchaseFunding):
        purchase = lock_purchase(funding.purchase_id)
        if purchase.status != PurchaseStatus.PAID:
            raise BadRequestError("Purchase must be fully paid before creating burial")
        if purchase.burial_case is not None:
            raise BadRequestError("Purchase already has a deceased record")
        if purchase.plot_slot is not None:
            raise BadRequestError("Purchase is already linked to a grave slot")
        case = BurialCase(
            purchase_id=purchase.id,
            status=BurialStatus.PENDING_GRAVE_ASSIGNMENT,
            created_by_staff_id=staff_id,
            **fields,
        )
    else:
        case = BurialCase(
            status=BurialStatus.PENDING_WAIVER_APPROVAL,
            created_by_staff_id=staff_id,
            **fields,
        )
        case.waiver = Waiver(
            waiver_type=funding.waiver_type,
            reason=funding.reason,
            status=WaiverStatus.PENDING,
        )
    case.next_of_kin = NextOfKin(**kin)
    db.session.add(case)
    db.session.flush()
    return case


def create_case(payload: dict[str, object], staff_id: object | None) -> BurialCase:
    funding = funding_from_payload(payload)
    fields = _case_fields(payload)
    kin = _next_of_kin_fields(payload.get("next_of_kin"))
    inline = _inline_assignment(payload)
    actor = parse_optional_uuid(staff_id, "staff ID")

    with atomic("Purchase or grave slot was taken by a concurrent request"):
        case = _create_case(funding, fields, kin, actor)
        if inline is not None:
            link_case_to_slot(case, inline[0], inline[1], actor)
    logger.info("Burial case %s created (%s)", case.id, case.status.value)
    broadcast_state_changed()
    if case.status == BurialStatus.GRAVE_ASSIGNED:
        queue_burial_notification(case)
    return case


def redeem_purchase(purchase_id: object, member_id: object, payload: dict[str, object]) -> BurialCase:
    """Member records a death against their own paid-up FUTURE purchase."""
    purchase = verify_redeem(purchase_id, member_id)
    fields = _case_fields(payload)
    kin = _next_of_kin_fields(payload.get("next_of_kin"))

    with atomic("Purchase was redeemed by a concurrent request"):
        case = _create_case(PurchaseFunding(purchase.id), fields, kin, None)
        purchase = case.purchase
        check_transition(PURCHASE_TRANSITIONS, purchase.status, PurchaseStatus.REDEEMED, "purchase status")
        purchase.status = PurchaseStatus.REDEEMED
        purchase.redeemed_at = utcnow()
        purchase.redeemed_by_member_id = purchase.member_id
        db.session.add(purchase)
    logger.info("Purchase %s redeemed into burial case %s", purchase.id, case.id)
    broadcast_state_changed()
    return case


def get_case(case_id: object) -> BurialCase:
    case = db.session.get(BurialCase, parse_uuid(case_id, "case ID"))
    if not case:
        raise NotFoundError("Burial case not found")
    return case


def lookup_purchase(purchase_id: object) -> dict[str, object]:
    purchase = purchase_by_id(purchase_id)
    slot = purchase.plot_slot
    case = purchase.burial_case
    return {
        "id": str(purchase.id),
        "status": purchase.status.value,
        "kind": purchase.kind.value,
        "total_amount": str(purchase.total_amount),
        "paid_amount": str(purchase.paid_amount),
        "balance": str(purchase.balance),
        "paid_at": as_utc(purchase.paid_at).isoformat() if purchase.paid_at else None,
        "member": {
            "id": str(purchase.member.id),
            "full_name": purchase.member.full_name,
            "email": purchase.member.email,
            "phone": purchase.member.phone,
        },
        "product": {
            "id": str(purchase.product.id),
            "title": purchase.product.title,
            "pricing_section": purchase.product.pricing_section.value if purchase.product.pricing_section else None,
            "amount": str(purchase.product.amount),
        },
        "burial_case": {"id": str(case.id), "full_name": case.full_name} if case else None,
        "plot_slot": (
            {
                "id": str(slot.id),
                "slot_number": slot.slot_number,
                "section": slot.grave.section.value,
                "grave_number": slot.grave.grave_number,
            }
            if slot
            else None
        ),
    }


def update_case(case_id: object, payload: dict[str, object]) -> BurialCase:
    if "status" in payload:
        raise BadRequestError("Case status cannot be edited directly")
    cid = parse_uuid(case_id, "case ID")
    with atomic():
        case = get_case(cid)
        for key in CASE_TEXT_FIELDS & payload.keys():
            value = _text(payload[key])
            if key == "full_name" and not value:
                raise BadRequestError("full_name cannot be empty")
            setattr(case, ATTRIBUTE_NAMES.get(key, key), value or (None if key in NULLABLE_TEXT_FIELDS else ""))
        if "date_of_birth" in payload:
            case.date_of_birth = parse_optional_date(payload["date_of_birth"], "date_of_birth")
        if "date_of_death" in payload:
            case.date_of_death = parse_date(payload["date_of_death"], "date_of_death")
        for key in CASE_DATETIME_FIELDS & payload.keys():
            setattr(case, key, parse_optional_datetime(payload[key], key))

        kin_payload = payload.get("next_of_kin")
        if isinstance(kin_payload, dict) and case.next_of_kin is not None:
            kin = case.next_of_kin
            for key in KIN_TEXT_FIELDS & kin_payload.keys():
                value = _text(kin_payload[key])
                if key in {"full_name", "relationship", "phone"} and not value:
                    raise BadRequestError(f"Next of kin {key} cannot be empty")
                setattr(kin, KIN_ATTRIBUTE_NAMES.get(key, key), value or (None if key == "email" else ""))
            if "is_buyer" in kin_payload:
                kin.is_buyer = bool(kin_payload["is_buyer"])
            db.session.add(kin)
        db.session.add(case)
    logger.info("Burial case %s updated", cid)
    broadcast_state_changed()
    return case


def mark_buried(case_id: object, burial_date: object | None = None) -> BurialCase:
    cid = parse_uuid(case_id, "case ID")
    explicit = parse_optional_datetime(burial_date, "burial_date")
    with atomic():
        case = get_case(cid)
        if case.status != BurialStatus.GRAVE_ASSIGNED:
            raise BadRequestError("Burial must be assigned to a grave before marking as buried")
        check_transition(BURIAL_TRANSITIONS, case.status, BurialStatus.BURIED, "burial status")
        case.status = BurialStatus.BURIED
        if case.burial_date is None:
            case.burial_date = explicit or case.expected_burial or utcnow()
        db.session.add(case)
    logger.info("Burial case %s marked buried", cid)
    broadcast_state_changed()
    return case


def list_cases(
    page: int = 1,
    limit: int = 50,
    search: str | None = None,
    status: object | None = None,
) -> dict[str, object]:
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 50), 1), MAX_PAGE_SIZE)
    query = BurialCase.query
    term = _text(search)
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(BurialCase.full_name.ilike(pattern), BurialCase.address.ilike(pattern)))
    status_filter = parse_optional_enum(BurialStatus, status, "burial status")
    if status_filter is not None:
        query = query.filter(BurialCase.status == status_filter)

    total = query.count()
    rows = (
        query.order_by(BurialCase.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "data": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        },
    }


def burial_calendar(start: object, end: object) -> dict[str, list[BurialCase]]:
    start_at = parse_optional_datetime(start, "start")
    end_at = parse_optional_datetime(end, "end")
    if start_at is None or end_at is None:
        raise BadRequestError("Both start and end are required")
    if end_at < start_at:
        raise BadRequestError("end must not be before start")

    cases = (
        BurialCase.query.filter(
            or_(
                BurialCase.burial_date.between(start_at, end_at),
                BurialCase.expected_burial.between(start_at, end_at),
            ),
            BurialCase.status != BurialStatus.PENDING_WAIVER_APPROVAL,
        )
        .order_by(BurialCase.burial_date.asc(), BurialCase.expected_burial.asc())
        .all()
    )
    calendar: dict[str, list[BurialCase]] = {}
    for case in cases:
        when = as_utc(case.burial_date or case.expected_burial)
        if when is None:
            continue
        calendar.setdefault(when.strftime("%Y-%m-%d"), []).append(case)
    return calendar


def create_waiver(case_id: object, payload: dict[str, object]) -> Waiver:
    cid = parse_uuid(case_id, "case ID")
    waiver_type = parse_enum(WaiverType, payload.get("waiver_type"), "waiver type")
    with atomic("Waiver already exists for this case"):
        case = get_case(cid)
        if case.waiver is not None:
            raise BadRequestError("Waiver already exists for this case")
        if case.purchase_id is not None:
            raise BadRequestError("Cannot create waiver for purchase-funded burial")
        waiver = Waiver(
            case_id=case.id,
            waiver_type=waiver_type,
            reason=_text(payload.get("reason")),
            status=WaiverStatus.PENDING,
        )
        db.session.add(waiver)
        db.session.flush()
    logger.info("Waiver %s created for case %s", waiver.id, cid)
    broadcast_state_changed()
    return waiver


def list_waivers(status: object | None = None) -> list[Waiver]:
    query = Waiver.query
    status_filter = parse_optional_enum(WaiverStatus, status, "waiver status")
    if status_filter is not None:
        query = query.filter(Waiver.status == status_filter)
    return query.order_by(Waiver.created_at.desc()).all()


def decide_waiver(
    waiver_id: object,
    payload: dict[str, object],
    staff_id: object,
    staff_level: int,
    min_level: int = 5,
) -> Waiver:
    """Approve or reject a pending waiver.

    ``staff_level`` is the caller's privilege, passed in explicitly.
    Approval moves the owning case on to grave assignment.
    """
    if staff_level < min_level:
        raise ForbiddenError(f"Only level {min_level} staff can approve waivers")
    wid = parse_uuid(waiver_id, "waiver ID")
    actor = parse_uuid(staff_id, "staff ID")
    decision = parse_enum(WaiverStatus, payload.get("status"), "waiver decision")
    if decision == WaiverStatus.PENDING:
        raise BadRequestError("Decision must be APPROVED or REJECTED")

    with atomic():
        waiver = db.session.get(Waiver, wid)
        if not waiver:
            raise NotFoundError("Waiver not found")
        if waiver.status != WaiverStatus.PENDING:
            raise BadRequestError("Waiver is not pending")
        check_transition(WAIVER_TRANSITIONS, waiver.status, decision, "waiver status")
        now = utcnow()
        waiver.status = decision
        if decision == WaiverStatus.APPROVED:
            waiver.approved_by_staff_id = actor
            waiver.approved_at = now
            case = waiver.burial_case
            check_transition(BURIAL_TRANSITIONS, case.status, BurialStatus.PENDING_GRAVE_ASSIGNMENT, "burial status")
            case.status = BurialStatus.PENDING_GRAVE_ASSIGNMENT
            db.session.add(case)
        else:
            waiver.rejected_by_staff_id = actor
            waiver.rejected_at = now
            waiver.rejection_reason = _text(payload.get("rejection_reason")) or None
        db.session.add(waiver)
    logger.info("Waiver %s %s by staff %s", wid, decision.value.lower(), actor)
    broadcast_state_changed()
    return waiver


def create_assignment_request(case_id: object, payload: dict[str, object], staff_id: object | None) -> AssignmentRequest:
    cid = parse_uuid(case_id, "case ID")
    section = parse_optional_enum(PricingSection, payload.get("requested_section"), "section")
    actor = parse_optional_uuid(staff_id, "staff ID")
    with atomic():
        case = get_case(cid)
        if case.plot_slot is not None:
            raise BadRequestError("Grave already assigned")
        if case.status == BurialStatus.PENDING_WAIVER_APPROVAL:
            raise BadRequestError("Cannot create assignment request for pending waiver")
        request = AssignmentRequest(
            case_id=case.id,
            requested_section=section,
            status=AssignmentRequestStatus.PENDING,
            requested_by_staff_id=actor,
            notes=_text(payload.get("notes")) or None,
        )
        db.session.add(request)
        db.session.flush()
    logger.info("Assignment request %s queued for case %s", request.id, cid)
    broadcast_state_changed()
    return request


def list_assignment_requests(status: object | None = None) -> list[AssignmentRequest]:
    query = AssignmentRequest.query
    status_filter = parse_optional_enum(AssignmentRequestStatus, status, "assignment request status")
    if status_filter is not None:
        query = query.filter(AssignmentRequest.status == status_filter)
    return query.order_by(AssignmentRequest.created_at.asc()).all()

