from __future__ import annotations

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from app.burials import burials_bp
from app.burials.graves import assign_grave
from app.burials.services import (
    burial_calendar,
    create_assignment_request,
    create_case,
    create_waiver,
    decide_waiver,
    get_case,
    list_assignment_requests,
    list_cases,
    list_waivers,
    lookup_purchase,
    mark_buried,
    redeem_purchase,
    update_case,
)
from app.core.models import AssignmentRequest, BurialCase, Waiver, as_utc
from app.core.permissions import require_level


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _iso(value) -> str | None:
    if value is None:
        return None
    if hasattr(value, "tzinfo"):
        return as_utc(value).isoformat()
    return value.isoformat()


def waiver_json(waiver: Waiver) -> dict[str, object]:
    return {
        "id": str(waiver.id),
        "case_id": str(waiver.case_id),
        "waiver_type": waiver.waiver_type.value,
        "reason": waiver.reason,
        "status": waiver.status.value,
        "approved_by": str(waiver.approved_by_staff_id) if waiver.approved_by_staff_id else None,
        "approved_at": _iso(waiver.approved_at),
        "rejected_by": str(waiver.rejected_by_staff_id) if waiver.rejected_by_staff_id else None,
        "rejected_at": _iso(waiver.rejected_at),
        "rejection_reason": waiver.rejection_reason,
        "created_at": _iso(waiver.created_at),
    }


def case_json(case: BurialCase) -> dict[str, object]:
    slot = case.plot_slot
    kin = case.next_of_kin
    return {
        "id": str(case.id),
        "purchase_id": str(case.purchase_id) if case.purchase_id else None,
        "full_name": case.full_name,
        "date_of_birth": _iso(case.date_of_birth),
        "gender": case.gender,
        "address": case.address,
        "relationship": case.relationship_to_member,
        "cause_of_death": case.cause_of_death,
        "funeral_parlor": case.funeral_parlor,
        "date_of_death": _iso(case.date_of_death),
        "expected_burial": _iso(case.expected_burial),
        "burial_date": _iso(case.burial_date),
        "notes": case.notes,
        "status": case.status.value,
        "created_at": _iso(case.created_at),
        "next_of_kin": (
            {
                "full_name": kin.full_name,
                "relationship": kin.relationship_to_deceased,
                "phone": kin.phone,
                "email": kin.email,
                "address": kin.address,
                "is_buyer": kin.is_buyer,
            }
            if kin
            else None
        ),
        "waiver": waiver_json(case.waiver) if case.waiver else None,
        "plot_slot": (
            {
                "section": slot.grave.section.value,
                "grave_number": slot.grave.grave_number,
                "slot_number": slot.slot_number,
                "price_at_assignment": str(slot.price_at_assignment) if slot.price_at_assignment is not None else None,
            }
            if slot
            else None
        ),
    }


def assignment_request_json(row: AssignmentRequest) -> dict[str, object]:
    return {
        "id": str(row.id),
        "case_id": str(row.case_id),
        "full_name": row.burial_case.full_name,
        "requested_section": row.requested_section.value if row.requested_section else None,
        "status": row.status.value,
        "notes": row.notes,
        "assigned_at": _iso(row.assigned_at),
        "created_at": _iso(row.created_at),
    }


@burials_bp.get("")
@login_required
def case_list():
    result = list_cases(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 50, type=int),
        search=request.args.get("search"),
        status=request.args.get("status"),
    )
    return jsonify({"data": [case_json(row) for row in result["data"]], "pagination": result["pagination"]})


@burials_bp.post("")
@login_required
def case_create():
    case = create_case(_payload(), current_user.id)
    return jsonify(case_json(case)), 201


@burials_bp.get("/calendar")
@login_required
def calendar():
    grouped = burial_calendar(request.args.get("start"), request.args.get("end"))
    return jsonify({day: [case_json(row) for row in rows] for day, rows in grouped.items()})


@burials_bp.get("/purchases/<purchase_id>")
@login_required
def purchase_lookup(purchase_id: str):
    return jsonify(lookup_purchase(purchase_id))


@burials_bp.post("/purchases/<purchase_id>/redeem")
@login_required
def purchase_redeem(purchase_id: str):
    payload = _payload()
    case = redeem_purchase(purchase_id, payload.get("member_id"), payload)
    return jsonify(case_json(case)), 201


@burials_bp.get("/waivers")
@login_required
def waiver_list():
    return jsonify([waiver_json(row) for row in list_waivers(request.args.get("status"))])


@burials_bp.post("/waivers/<waiver_id>/decision")
@login_required
def waiver_decide(waiver_id: str):
    waiver = decide_waiver(
        waiver_id,
        _payload(),
        current_user.id,
        current_user.level,
        min_level=current_app.config.get("WAIVER_APPROVAL_MIN_LEVEL", 5),
    )
    return jsonify(waiver_json(waiver))


@burials_bp.get("/assignment-requests")
@login_required
def assignment_request_list():
    rows = list_assignment_requests(request.args.get("status"))
    return jsonify([assignment_request_json(row) for row in rows])


@burials_bp.get("/<case_id>")
@login_required
def case_detail(case_id: str):
    return jsonify(case_json(get_case(case_id)))


@burials_bp.patch("/<case_id>")
@login_required
def case_update(case_id: str):
    return jsonify(case_json(update_case(case_id, _payload())))


@burials_bp.post("/<case_id>/buried")
@login_required
@require_level(3)
def case_mark_buried(case_id: str):
    return jsonify(case_json(mark_buried(case_id, _payload().get("burial_date"))))


@burials_bp.post("/<case_id>/waiver")
@login_required
def case_waiver_create(case_id: str):
    return jsonify(waiver_json(create_waiver(case_id, _payload()))), 201


@burials_bp.post("/<case_id>/assignment-requests")
@login_required
def case_assignment_request(case_id: str):
    row = create_assignment_request(case_id, _payload(), current_user.id)
    return jsonify(assignment_request_json(row)), 201


@burials_bp.post("/<case_id>/assign")
@login_required
@require_level(3)
def case_assign(case_id: str):
    case = assign_grave(case_id, _payload(), current_user.id)
    return jsonify(case_json(case))
