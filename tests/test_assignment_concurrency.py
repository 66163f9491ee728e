from __future__ import annotations

import threading

import pytest

from app import create_app
from app.burials.graves import assign_grave
from app.burials.services import create_case
from app.core.config import Config
from app.core.errors import DomainError
from app.core.extensions import db
from app.core.models import BurialCase, BurialStatus, Member, PlotSlot, Product, Staff, seed_demo_data
from app.purchases.services import create_purchase, record_payment


@pytest.fixture
def file_app(tmp_path):
    class FileConfig(Config):
        TESTING = True
        SECRET_KEY = "test-secret"
        SCHEDULER_ENABLED = False
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'race.db'}"

    app = create_app(FileConfig)
    with app.app_context():
        db.create_all()
        seed_demo_data(db.session)
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _paid_case(member: Member, product: Product, full_name: str, staff_id) -> BurialCase:
    purchase = create_purchase({"member_id": str(member.id), "product_id": str(product.id)})
    record_payment(purchase.id, {"amount": str(purchase.total_amount)})
    return create_case(
        {
            "purchase_id": str(purchase.id),
            "full_name": full_name,
            "date_of_death": "2026-10-01",
            "next_of_kin": {"full_name": member.full_name, "relationship": "Child", "phone": member.phone},
        },
        staff_id,
    )


def test_concurrent_assignments_to_one_slot_have_one_winner(file_app):
    with file_app.app_context():
        staff_id = Staff.query.filter_by(email="admin@memorialpark.local").one().id
        lawn = Product.query.filter_by(title="Lawn Grave").one()
        members = {row.first_name: row for row in Member.query.all()}
        case_ids = [
            _paid_case(members["Tendai"], lawn, "Chipo Moyo", staff_id).id,
            _paid_case(members["Rudo"], lawn, "Blessing Chikore", staff_id).id,
        ]

    barrier = threading.Barrier(len(case_ids))
    outcomes: list[str] = []

    def attempt(case_id):
        with file_app.app_context():
            barrier.wait()
            try:
                assign_grave(case_id, {"grave_number": "5", "slot_number": "1"}, staff_id)
                outcomes.append("ok")
            except DomainError as exc:
                outcomes.append(type(exc).__name__)

    threads = [threading.Thread(target=attempt, args=(case_id,)) for case_id in case_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["BadRequestError", "ok"]
    with file_app.app_context():
        assert PlotSlot.query.filter(PlotSlot.case_id.isnot(None)).count() == 1
        statuses = sorted(db.session.get(BurialCase, case_id).status.value for case_id in case_ids)
        assert statuses == [BurialStatus.GRAVE_ASSIGNED.value, BurialStatus.PENDING_GRAVE_ASSIGNMENT.value]
