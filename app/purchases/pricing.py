from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app

from app.core.models import AgeBand, InstallmentPlan, PlanPrice, Product, to_money, utcnow


def compute_age(date_of_birth: date, today: date | None = None) -> int:
    today = today or utcnow().date()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def age_band(age: int, senior_age: int | None = None) -> AgeBand:
    threshold = senior_age if senior_age is not None else current_app.config.get("SENIOR_AGE", 60)
    return AgeBand.OVER_60 if age >= threshold else AgeBand.UNDER_60


def resolve_installment(product: Product, plan: InstallmentPlan, age: int) -> Decimal | None:
    """Monthly installment for ``product`` on ``plan`` at ``age``.

    Returns None when the product has no pricing section, the matrix has no
    cell for (plan, section, age band), or the cell is not a positive amount.
    """
    if product.pricing_section is None:
        return None
    price = PlanPrice.query.filter_by(
        plan_id=plan.id,
        section=product.pricing_section,
        age_band=age_band(age),
    ).first()
    if price is None or price.monthly_amount is None:
        return None
    monthly = to_money(price.monthly_amount)
    if monthly <= 0:
        return None
    return monthly


def installment_total(monthly: Decimal, months: int) -> Decimal:
    return to_money(monthly * months)
