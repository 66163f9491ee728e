from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

from flask import current_app
from sqlalchemy import select, update

from app.core.errors import (
    BadRequestError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    parse_optional_uuid,
    parse_uuid,
)
from app.core.extensions import atomic, db
from app.core.models import (
    PAYMENT_TRANSITIONS,
    PURCHASE_TRANSITIONS,
    InstallmentPlan,
    Member,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Product,
    Purchase,
    PurchaseKind,
    PurchaseStatus,
    as_utc,
    check_transition,
    to_money,
    utcnow,
)
from app.core.notifier import broadcast_state_changed
from app.core.utils import parse_amount, parse_enum, parse_optional_date
from app.purchases.pricing import compute_age, installment_total, resolve_installment

logger = logging.getLogger(__name__)

OPEN_STATUSES = {PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.PARTIALLY_PAID}
COUNTER_METHODS = {PaymentMethod.CASH, PaymentMethod.MANUAL}


def _new_reference(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def member_by_id(member_id: object) -> Member:
    member = db.session.get(Member, parse_uuid(member_id, "member ID"))
    if not member:
        raise NotFoundError("Member not found")
    return member


def product_by_id(product_id: object) -> Product:
    product = db.session.get(Product, parse_uuid(product_id, "product ID"))
    if not product:
        raise NotFoundError("Product not found")
    return product


def plan_by_id(plan_id: object) -> InstallmentPlan:
    plan = db.session.get(InstallmentPlan, parse_uuid(plan_id, "plan ID"))
    if not plan:
        raise NotFoundError("Installment plan not found")
    return plan


def purchase_by_id(purchase_id: object) -> Purchase:
    purchase = db.session.get(Purchase, parse_uuid(purchase_id, "purchase ID"))
    if not purchase:
        raise NotFoundError("Purchase not found")
    return purchase


def lock_purchase(purchase_id: uuid.UUID) -> Purchase:
    # Row lock where the backend supports it; SQLite serialises writers anyway.
    purchase = db.session.execute(
        select(Purchase).where(Purchase.id == purchase_id).with_for_update()
    ).scalar_one_or_none()
    if not purchase:
        raise NotFoundError("Purchase not found")
    return purchase


def _assert_owner(purchase: Purchase, member_id: object | None) -> None:
    if member_id is None:
        return
    if purchase.member_id != parse_uuid(member_id, "member ID"):
        raise ForbiddenError("You do not own this purchase")


def price_purchase(
    product: Product,
    kind: PurchaseKind,
    plan: InstallmentPlan | None,
    member: Member,
    today: date | None = None,
) -> Decimal:
    if not product.active:
        raise BadRequestError("Product is not active")
    if kind == PurchaseKind.FUTURE and plan is not None:
        if member.date_of_birth is None:
            raise BadRequestError("Member date of birth is required for installment pricing")
        monthly = resolve_installment(product, plan, compute_age(member.date_of_birth, today))
        if monthly is None:
            raise BadRequestError("No installment price is available for this product, plan and age")
        total = installment_total(monthly, plan.months)
        if total <= 0:
            raise BadRequestError("Installment total must be greater than zero")
        return total
    return to_money(product.amount)


def _build_purchase(payload: dict[str, object]) -> Purchase:
    member = member_by_id(payload.get("member_id"))
    product = product_by_id(payload.get("product_id"))
    kind = parse_enum(PurchaseKind, payload.get("kind") or PurchaseKind.IMMEDIATE.value, "purchase kind")
    plan_id = parse_optional_uuid(payload.get("plan_id"), "plan ID")
    if plan_id is not None and kind != PurchaseKind.FUTURE:
        raise BadRequestError("Installment plans only apply to FUTURE purchases")
    plan = plan_by_id(plan_id) if plan_id is not None else None

    total = price_purchase(product, kind, plan, member)
    purchase = Purchase(
        member_id=member.id,
        product_id=product.id,
        kind=kind,
        plan_id=plan.id if plan else None,
        total_amount=total,
        paid_amount=Decimal("0.00"),
        balance=total,
        status=PurchaseStatus.PENDING_PAYMENT,
    )
    db.session.add(purchase)
    db.session.flush()
    return purchase


def create_purchase(payload: dict[str, object]) -> Purchase:
    with atomic():
        purchase = _build_purchase(payload)
    logger.info("Purchase %s created (%s, total %s)", purchase.id, purchase.kind.value, purchase.total_amount)
    broadcast_state_changed()
    return purchase


def apply_payment(purchase: Purchase, amount: Decimal, now: datetime | None = None) -> None:
    """Accrue a successful payment onto ``purchase``.

    Caller owns the transaction. Balance is clamped at zero; paid/completed
    timestamps are stamped once, on the move to PAID.
    """
    now = now or utcnow()
    paid = to_money(Decimal(purchase.paid_amount) + amount)
    balance = to_money(Decimal(purchase.total_amount) - paid)
    if balance < 0:
        balance = Decimal("0.00")

    if balance <= 0:
        target = PurchaseStatus.PAID
    elif paid > 0:
        target = PurchaseStatus.PARTIALLY_PAID
    else:
        target = purchase.status
    if target != purchase.status:
        check_transition(PURCHASE_TRANSITIONS, purchase.status, target, "purchase status")

    purchase.paid_amount = paid
    purchase.balance = balance
    purchase.status = target
    if target == PurchaseStatus.PAID:
        if purchase.paid_at is None:
            purchase.paid_at = now
        if purchase.completed_at is None:
            purchase.completed_at = now
    db.session.add(purchase)


def _assert_payable(purchase: Purchase, amount: Decimal) -> None:
    if purchase.status == PurchaseStatus.PAID:
        raise BadRequestError("Purchase is already fully paid")
    if purchase.status not in OPEN_STATUSES:
        raise BadRequestError(f"Purchase is {purchase.status.value.lower()} and cannot take payments")
    if amount > purchase.balance:
        raise BadRequestError("Payment amount exceeds the outstanding balance")


def record_payment(purchase_id: object, payload: dict[str, object], member_id: object | None = None) -> Payment:
    pid = parse_uuid(purchase_id, "purchase ID")
    amount = parse_amount(payload.get("amount"))
    method = parse_enum(PaymentMethod, payload.get("method") or PaymentMethod.CASH.value, "payment method")
    if method not in COUNTER_METHODS:
        raise BadRequestError("Only CASH or MANUAL payments can be recorded at the counter")
    reference = str(payload.get("reference") or "").strip() or _new_reference(method.value)

    now = utcnow()
    with atomic("Payment reference already used"):
        purchase = lock_purchase(pid)
        _assert_owner(purchase, member_id)
        _assert_payable(purchase, amount)
        payment = Payment(
            purchase_id=purchase.id,
            member_id=purchase.member_id,
            amount=amount,
            method=method,
            reference=reference,
            status=PaymentStatus.SUCCESS,
            paid_at=now,
        )
        db.session.add(payment)
        apply_payment(purchase, amount, now)
        db.session.flush()
    logger.info("Payment %s of %s recorded against purchase %s", payment.reference, amount, pid)
    broadcast_state_changed()
    return payment


def start_gateway_payment(purchase_id: object, payload: dict[str, object], member_id: object | None = None) -> Payment:
    pid = parse_uuid(purchase_id, "purchase ID")
    amount = parse_amount(payload.get("amount"))
    poll_url = str(payload.get("poll_url") or "").strip()
    if not poll_url:
        raise BadRequestError("Missing poll_url")
    reference = str(payload.get("reference") or "").strip() or _new_reference(PaymentMethod.PAYNOW.value)

    with atomic("Payment reference already used"):
        purchase = lock_purchase(pid)
        _assert_owner(purchase, member_id)
        _assert_payable(purchase, amount)
        db.session.execute(
            update(Payment)
            .where(Payment.purchase_id == purchase.id, Payment.status == PaymentStatus.INITIATED)
            .values(status=PaymentStatus.EXPIRED)
        )
        payment = Payment(
            purchase_id=purchase.id,
            member_id=purchase.member_id,
            amount=amount,
            method=PaymentMethod.PAYNOW,
            reference=reference,
            status=PaymentStatus.INITIATED,
            poll_url=poll_url,
        )
        db.session.add(payment)
        db.session.flush()
    logger.info("Gateway payment %s initiated for purchase %s", payment.reference, pid)
    return payment


def finalize_payment(payment_id: object, status: PaymentStatus, now: datetime | None = None) -> Payment:
    """Settle an INITIATED payment with the gateway's outcome.

    Safe to call repeatedly: only the first finalizer flips the row out of
    INITIATED, later calls see it settled and change nothing.
    """
    pid = parse_uuid(payment_id, "payment ID")
    now = now or utcnow()
    payment = db.session.get(Payment, pid)
    if not payment:
        raise NotFoundError("Payment not found")
    if status == PaymentStatus.INITIATED or payment.status != PaymentStatus.INITIATED:
        return payment

    settled = False
    with atomic():
        purchase = lock_purchase(payment.purchase_id)
        final = status
        if status == PaymentStatus.SUCCESS and purchase.status == PurchaseStatus.CANCELLED:
            final = PaymentStatus.EXPIRED
        check_transition(PAYMENT_TRANSITIONS, payment.status, final, "payment status")
        result = db.session.execute(
            update(Payment)
            .where(Payment.id == pid, Payment.status == PaymentStatus.INITIATED)
            .values(status=final, paid_at=now if final == PaymentStatus.SUCCESS else None)
        )
        if result.rowcount == 1:
            settled = True
            if final == PaymentStatus.SUCCESS:
                if purchase.status in OPEN_STATUSES:
                    apply_payment(purchase, Decimal(payment.amount), now)
                else:
                    logger.warning(
                        "Payment %s succeeded on %s purchase %s; balance left unchanged",
                        pid,
                        purchase.status.value,
                        purchase.id,
                    )
    db.session.refresh(payment)
    if settled:
        logger.info("Payment %s finalized as %s", pid, payment.status.value)
        broadcast_state_changed()
    else:
        logger.info("Payment %s was already finalized", pid)
    return payment


def _parse_purchased_at(value: object) -> datetime | None:
    purchased_on = parse_optional_date(value, "purchased_on")
    if purchased_on is None:
        return None
    return datetime.combine(purchased_on, time.min, tzinfo=timezone.utc)


def register_existing_payer(payload: dict[str, object]) -> Purchase:
    """Admin backfill for members who paid before the system existed.

    Creates the purchase and, when ``already_paid`` is positive, one LEGACY
    settlement payment, then accrues it like any other payment.
    """
    try:
        already_paid = parse_amount(payload.get("already_paid", "0"), "already_paid", allow_zero=True)
        purchased_at = _parse_purchased_at(payload.get("purchased_on"))
        now = utcnow()
        with atomic():
            purchase = _build_purchase(payload)
            if purchased_at is not None:
                purchase.created_at = purchased_at
            if already_paid > purchase.total_amount:
                raise BadRequestError("Already paid amount cannot exceed the purchase total")
            if already_paid > 0:
                db.session.add(
                    Payment(
                        purchase_id=purchase.id,
                        member_id=purchase.member_id,
                        amount=already_paid,
                        method=PaymentMethod.LEGACY,
                        reference=f"LEGACY-{purchase.id}",
                        status=PaymentStatus.SUCCESS,
                        paid_at=now,
                    )
                )
                apply_payment(purchase, already_paid, now)
            db.session.flush()
    except DomainError:
        raise
    except Exception as exc:
        logger.exception("Existing payer registration failed")
        raise BadRequestError("Failed to register existing payer") from exc
    logger.info("Existing payer registered: purchase %s, already paid %s", purchase.id, already_paid)
    broadcast_state_changed()
    return purchase


def cancel_purchase(purchase_id: object) -> Purchase:
    pid = parse_uuid(purchase_id, "purchase ID")
    with atomic():
        purchase = lock_purchase(pid)
        check_transition(PURCHASE_TRANSITIONS, purchase.status, PurchaseStatus.CANCELLED, "purchase status")
        purchase.status = PurchaseStatus.CANCELLED
        purchase.cancelled_at = utcnow()
        db.session.execute(
            update(Payment)
            .where(Payment.purchase_id == pid, Payment.status == PaymentStatus.INITIATED)
            .values(status=PaymentStatus.EXPIRED)
        )
        db.session.add(purchase)
    logger.info("Purchase %s cancelled", pid)
    broadcast_state_changed()
    return purchase


def verify_redeem(purchase_id: object, member_id: object) -> Purchase:
    purchase = purchase_by_id(purchase_id)
    if purchase.member_id != parse_uuid(member_id, "member ID"):
        raise ForbiddenError("You do not own this purchase")
    if purchase.kind != PurchaseKind.FUTURE:
        raise BadRequestError("Only FUTURE purchases can be redeemed")
    if purchase.redeemed_at is not None or purchase.status == PurchaseStatus.REDEEMED:
        raise BadRequestError("Purchase has already been redeemed")
    if purchase.status != PurchaseStatus.PAID:
        raise BadRequestError("Purchase must be fully paid before it can be redeemed")
    return purchase


def list_member_purchases(member_id: object) -> list[Purchase]:
    member = member_by_id(member_id)
    return (
        Purchase.query.filter(Purchase.member_id == member.id, Purchase.status != PurchaseStatus.CANCELLED)
        .order_by(Purchase.created_at.desc())
        .all()
    )


def months_behind(purchase: Purchase, as_of: datetime | None = None) -> int:
    plan = purchase.plan
    if plan is None or plan.months <= 0:
        return 0
    as_of = as_utc(as_of or utcnow())
    created = as_utc(purchase.created_at)
    elapsed = (as_of.year - created.year) * 12 + (as_of.month - created.month)
    monthly = Decimal(purchase.total_amount) / plan.months
    if monthly <= 0:
        return 0
    covered = int(Decimal(purchase.paid_amount) // monthly)
    return max(elapsed - covered, 0)


def defaulted_purchases(as_of: datetime | None = None) -> list[dict[str, object]]:
    as_of = as_of or utcnow()
    threshold = current_app.config.get("ARREARS_DEFAULT_MONTHS", 3)
    candidates = (
        Purchase.query.filter(
            Purchase.kind == PurchaseKind.FUTURE,
            Purchase.plan_id.isnot(None),
            Purchase.status.in_(OPEN_STATUSES),
            Purchase.balance > 0,
        )
        .order_by(Purchase.created_at.asc())
        .all()
    )
    rows: list[dict[str, object]] = []
    for purchase in candidates:
        behind = months_behind(purchase, as_of)
        if behind < threshold:
            continue
        rows.append(
            {
                "purchase_id": str(purchase.id),
                "member": purchase.member.full_name,
                "phone": purchase.member.phone,
                "product": purchase.product.title,
                "plan": purchase.plan.name,
                "monthly_installment": to_money(Decimal(purchase.total_amount) / purchase.plan.months),
                "paid_amount": to_money(purchase.paid_amount),
                "balance": to_money(purchase.balance),
                "months_behind": behind,
                "created_at": as_utc(purchase.created_at).isoformat(),
            }
        )
    return rows
