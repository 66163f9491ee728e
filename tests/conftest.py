from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from app.core.config import Config
from app.core.extensions import db
from app.core.models import InstallmentPlan, Member, Product, Staff, seed_demo_data
from app.purchases.gateway import PaymentGateway
from app.purchases.services import create_purchase, record_payment


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    SCHEDULER_ENABLED = False


class FakeGateway(PaymentGateway):
    def __init__(self, statuses: dict[str, object] | None = None) -> None:
        self.statuses = statuses or {}
        self.polled: list[str] = []

    def poll(self, poll_url: str) -> str:
        self.polled.append(poll_url)
        status = self.statuses.get(poll_url, "sent")
        if isinstance(status, Exception):
            raise status
        return status


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_demo_data(db.session)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _login(client, email: str, password: str):
    return client.post("/auth/login", json={"email": email, "password": password})


@pytest.fixture
def login_admin(client):
    def _do():
        return _login(client, "admin@memorialpark.local", "admin123")

    return _do


@pytest.fixture
def login_office(client):
    def _do():
        return _login(client, "office@memorialpark.local", "office123")

    return _do


@pytest.fixture
def admin(app):
    return Staff.query.filter_by(email="admin@memorialpark.local").first()


@pytest.fixture
def office(app):
    return Staff.query.filter_by(email="office@memorialpark.local").first()


@pytest.fixture
def members(app):
    return {row.first_name: row for row in Member.query.all()}


@pytest.fixture
def products(app):
    return {row.title: row for row in Product.query.all()}


@pytest.fixture
def plans(app):
    return {row.name: row for row in InstallmentPlan.query.all()}


@pytest.fixture
def paid_purchase(members, products):
    def _make(product_title: str = "Lawn Grave", member_name: str = "Tendai"):
        purchase = create_purchase(
            {
                "member_id": str(members[member_name].id),
                "product_id": str(products[product_title].id),
                "kind": "IMMEDIATE",
            }
        )
        record_payment(purchase.id, {"amount": str(purchase.total_amount), "method": "CASH"})
        return purchase

    return _make


@pytest.fixture
def case_payload():
    def _make(**overrides):
        payload = {
            "full_name": "Chipo Moyo",
            "gender": "F",
            "address": "12 Baobab Road, Harare",
            "relationship": "Mother",
            "date_of_death": "2026-10-01",
            "next_of_kin": {
                "full_name": "Tendai Moyo",
                "relationship": "Son",
                "phone": "0771234567",
                "address": "12 Baobab Road, Harare",
                "is_buyer": True,
            },
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def fake_gateway(app):
    from app.purchases.gateway import init_gateway

    gateway = FakeGateway()
    init_gateway(app, gateway)
    return gateway
