from __future__ import annotations

import logging

from blinker import Namespace
from sqlalchemy.exc import SQLAlchemyError

from app.core.extensions import db
from app.core.models import BurialCase, NotificationOutbox, OutboxStatus

logger = logging.getLogger(__name__)

BURIAL_READY_EVENT = "BURIAL_READY_NOTIFY_TEAMS"

signals = Namespace()
state_changed = signals.signal("state-changed")


def broadcast_state_changed() -> None:
    """Tell listeners that engine state changed. Never raises."""
    try:
        state_changed.send(None)
    except Exception:
        logger.exception("state-changed receiver failed")


def _burial_payload(case: BurialCase) -> dict[str, object]:
    slot = case.plot_slot
    burial_at = case.burial_date or case.expected_burial
    return {
        "case_id": str(case.id),
        "full_name": case.full_name,
        "status": case.status.value,
        "section": slot.grave.section.value if slot else None,
        "grave_number": slot.grave.grave_number if slot else None,
        "slot_number": slot.slot_number if slot else None,
        "burial_at": burial_at.isoformat() if burial_at else None,
        "next_of_kin_phone": case.next_of_kin.phone if case.next_of_kin else None,
    }


def queue_burial_notification(case: BurialCase) -> NotificationOutbox | None:
    # Runs after the owning operation committed; a failure here only loses the message.
    try:
        entry = NotificationOutbox(
            event_type=BURIAL_READY_EVENT,
            payload=_burial_payload(case),
            status=OutboxStatus.PENDING,
        )
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not queue burial notification for case %s", case.id)
        return None
    logger.info("Queued %s for case %s", BURIAL_READY_EVENT, case.id)
    return entry
