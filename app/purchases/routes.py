from __future__ import annotations

from flask import jsonify, request
from flask_login import login_required

from app.core.models import Payment, Purchase, as_utc
from app.core.permissions import require_level
from app.purchases import purchases_bp
from app.purchases.gateway import map_gateway_status
from app.purchases.services import (
    cancel_purchase,
    create_purchase,
    defaulted_purchases,
    finalize_payment,
    list_member_purchases,
    purchase_by_id,
    record_payment,
    register_existing_payer,
    start_gateway_payment,
    verify_redeem,
)


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _iso(value) -> str | None:
    return as_utc(value).isoformat() if value else None


def purchase_json(purchase: Purchase) -> dict[str, object]:
    return {
        "id": str(purchase.id),
        "member_id": str(purchase.member_id),
        "product_id": str(purchase.product_id),
        "kind": purchase.kind.value,
        "plan_id": str(purchase.plan_id) if purchase.plan_id else None,
        "total_amount": str(purchase.total_amount),
        "paid_amount": str(purchase.paid_amount),
        "balance": str(purchase.balance),
        "status": purchase.status.value,
        "created_at": _iso(purchase.created_at),
        "paid_at": _iso(purchase.paid_at),
        "completed_at": _iso(purchase.completed_at),
        "redeemed_at": _iso(purchase.redeemed_at),
    }


def payment_json(payment: Payment) -> dict[str, object]:
    return {
        "id": str(payment.id),
        "purchase_id": str(payment.purchase_id),
        "amount": str(payment.amount),
        "method": payment.method.value,
        "reference": payment.reference,
        "status": payment.status.value,
        "created_at": _iso(payment.created_at),
        "paid_at": _iso(payment.paid_at),
    }


@purchases_bp.post("")
@login_required
def purchase_create():
    purchase = create_purchase(_payload())
    return jsonify(purchase_json(purchase)), 201


@purchases_bp.post("/existing-payers")
@login_required
@require_level(4)
def existing_payer_register():
    purchase = register_existing_payer(_payload())
    return jsonify(purchase_json(purchase)), 201


@purchases_bp.get("/defaulted")
@login_required
@require_level(3)
def defaulted_report():
    rows = defaulted_purchases()
    for row in rows:
        for key in ("monthly_installment", "paid_amount", "balance"):
            row[key] = str(row[key])
    return jsonify({"data": rows, "total": len(rows)})


@purchases_bp.get("/members/<member_id>")
@login_required
def member_purchases(member_id: str):
    return jsonify([purchase_json(row) for row in list_member_purchases(member_id)])


@purchases_bp.get("/<purchase_id>")
@login_required
def purchase_detail(purchase_id: str):
    purchase = purchase_by_id(purchase_id)
    data = purchase_json(purchase)
    data["payments"] = [payment_json(row) for row in purchase.payments]
    return jsonify(data)


@purchases_bp.post("/<purchase_id>/payments")
@login_required
def payment_record(purchase_id: str):
    payload = _payload()
    payment = record_payment(purchase_id, payload, member_id=payload.get("member_id"))
    return jsonify(payment_json(payment)), 201


@purchases_bp.post("/<purchase_id>/gateway-payments")
@login_required
def gateway_payment_start(purchase_id: str):
    payload = _payload()
    payment = start_gateway_payment(purchase_id, payload, member_id=payload.get("member_id"))
    return jsonify(payment_json(payment)), 201


@purchases_bp.post("/payments/<payment_id>/status")
@login_required
@require_level(3)
def payment_status_update(payment_id: str):
    status = map_gateway_status(_payload().get("status"))
    payment = finalize_payment(payment_id, status)
    return jsonify(payment_json(payment))


@purchases_bp.post("/<purchase_id>/cancel")
@login_required
@require_level(3)
def purchase_cancel(purchase_id: str):
    return jsonify(purchase_json(cancel_purchase(purchase_id)))


@purchases_bp.get("/<purchase_id>/redeem-check")
@login_required
def purchase_redeem_check(purchase_id: str):
    purchase = verify_redeem(purchase_id, request.args.get("member_id"))
    return jsonify({"eligible": True, "purchase": purchase_json(purchase)})
