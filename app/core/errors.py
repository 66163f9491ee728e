from __future__ import annotations

import re
import uuid

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


class DomainError(ValueError):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(DomainError):
    status_code = 400


class NotFoundError(DomainError):
    status_code = 404


class ForbiddenError(DomainError):
    status_code = 403


def parse_uuid(value: object, label: str = "ID") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    raw = str(value or "").strip()
    if not UUID_RE.match(raw):
        raise BadRequestError(f"Invalid {label}: must be a valid UUID format")
    return uuid.UUID(raw)


def parse_optional_uuid(value: object, label: str = "ID") -> uuid.UUID | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_uuid(value, label)
