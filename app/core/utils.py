from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from app.core.errors import BadRequestError


def money(value: Decimal | float | int) -> str:
    return f"${Decimal(value):,.2f}"


def parse_amount(value: object, field_name: str = "amount", allow_zero: bool = False) -> Decimal:
    raw = str(value if value is not None else "").strip().replace(",", "")
    if not raw:
        raise BadRequestError(f"Missing {field_name}")
    try:
        amount = Decimal(raw).quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        raise BadRequestError(f"Invalid {field_name}") from exc
    if amount < 0 or (amount == 0 and not allow_zero):
        raise BadRequestError(f"{field_name} must be greater than zero")
    return amount


def parse_enum(enum_cls, value: object, field_name: str):
    if isinstance(value, enum_cls):
        return value
    raw = str(value or "").strip().upper()
    try:
        return enum_cls(raw)
    except ValueError as exc:
        raise BadRequestError(f"Invalid {field_name}: {value}") from exc


def parse_optional_enum(enum_cls, value: object, field_name: str):
    if value is None or not str(value).strip():
        return None
    return parse_enum(enum_cls, value, field_name)


def parse_optional_date(value: object, field_name: str) -> date | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise BadRequestError(f"Invalid {field_name}: expected YYYY-MM-DD") from exc


def parse_date(value: object, field_name: str) -> date:
    parsed = parse_optional_date(value, field_name)
    if parsed is None:
        raise BadRequestError(f"Missing {field_name}")
    return parsed


def parse_optional_datetime(value: object, field_name: str) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value or "").strip()
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as exc:
            raise BadRequestError(f"Invalid {field_name}: expected an ISO 8601 timestamp") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
