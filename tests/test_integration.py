from __future__ import annotations

from app.core.models import (
    BurialCase,
    BurialStatus,
    InstallmentPlan,
    Member,
    NotificationOutbox,
    Payment,
    PaymentStatus,
    Product,
    Purchase,
    PurchaseStatus,
)


def _ids(app):
    with app.app_context():
        members = {row.first_name: str(row.id) for row in Member.query.all()}
        products = {row.title: str(row.id) for row in Product.query.all()}
        plans = {row.name: str(row.id) for row in InstallmentPlan.query.all()}
    return members, products, plans


def _kin():
    return {"full_name": "Tendai Moyo", "relationship": "Son", "phone": "0771234567"}


def test_login_rejects_bad_credentials(client):
    response = client.post("/auth/login", json={"email": "admin@memorialpark.local", "password": "wrong"})
    assert response.status_code == 401
    assert response.get_json() == {"error": "Invalid credentials"}


def test_login_and_me(client, login_admin):
    assert login_admin().status_code == 200
    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.get_json()["level"] == 5

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_endpoints_require_login(client):
    response = client.get("/burials")
    assert response.status_code == 401
    assert "error" in response.get_json()


def test_domain_errors_are_json(app, client, login_admin):
    login_admin()
    _, products, _ = _ids(app)

    bad_uuid = client.post("/purchases", json={"member_id": "abc", "product_id": products["Lawn Grave"]})
    assert bad_uuid.status_code == 400
    assert bad_uuid.get_json() == {"error": "Invalid member ID: must be a valid UUID format"}

    missing = client.get("/burials/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404
    assert missing.get_json() == {"error": "Burial case not found"}


def test_purchase_to_burial_flow(app, client, login_admin):
    login_admin()
    members, products, _ = _ids(app)

    created = client.post("/purchases", json={"member_id": members["Tendai"], "product_id": products["Lawn Grave"]})
    assert created.status_code == 201
    purchase = created.get_json()
    assert purchase["status"] == "PENDING_PAYMENT"
    assert purchase["total_amount"] == "1000.00"

    partial = client.post(f"/purchases/{purchase['id']}/payments", json={"amount": "400", "method": "CASH"})
    assert partial.status_code == 201
    rest = client.post(f"/purchases/{purchase['id']}/payments", json={"amount": "600.00", "method": "MANUAL"})
    assert rest.status_code == 201

    detail = client.get(f"/purchases/{purchase['id']}").get_json()
    assert detail["status"] == "PAID"
    assert detail["balance"] == "0.00"
    assert len(detail["payments"]) == 2

    case_response = client.post(
        "/burials",
        json={
            "purchase_id": purchase["id"],
            "full_name": "Chipo Moyo",
            "date_of_death": "2026-10-01",
            "expected_burial": "2026-10-20T09:00:00Z",
            "next_of_kin": _kin(),
        },
    )
    assert case_response.status_code == 201
    case = case_response.get_json()
    assert case["status"] == "PENDING_GRAVE_ASSIGNMENT"
    assert case["next_of_kin"]["relationship"] == "Son"

    lookup = client.get(f"/burials/purchases/{purchase['id']}").get_json()
    assert lookup["burial_case"]["id"] == case["id"]

    assigned = client.post(f"/burials/{case['id']}/assign", json={"grave_number": "5", "slot_number": 1})
    assert assigned.status_code == 200
    body = assigned.get_json()
    assert body["status"] == "GRAVE_ASSIGNED"
    assert body["plot_slot"] == {
        "section": "LAWN",
        "grave_number": "5",
        "slot_number": 1,
        "price_at_assignment": "1000.00",
    }

    calendar = client.get("/burials/calendar?start=2026-10-19T00:00:00Z&end=2026-10-21T00:00:00Z").get_json()
    assert [row["id"] for row in calendar["2026-10-20"]] == [case["id"]]

    buried = client.post(f"/burials/{case['id']}/buried", json={})
    assert buried.status_code == 200
    assert buried.get_json()["status"] == "BURIED"
    assert buried.get_json()["burial_date"].startswith("2026-10-20T09:00:00")

    with app.app_context():
        assert BurialCase.query.one().status == BurialStatus.BURIED
        assert NotificationOutbox.query.count() == 1


def test_waiver_flow_and_level_checks(app, client, login_admin, login_office):
    login_office()
    created = client.post(
        "/burials",
        json={
            "waiver_type": "HARDSHIP",
            "waiver_reason": "No income",
            "full_name": "Nyasha Dube",
            "date_of_death": "2026-10-05",
            "next_of_kin": _kin(),
        },
    )
    assert created.status_code == 201
    case = created.get_json()
    assert case["status"] == "PENDING_WAIVER_APPROVAL"
    waiver_id = case["waiver"]["id"]

    denied = client.post(f"/burials/waivers/{waiver_id}/decision", json={"status": "APPROVED"})
    assert denied.status_code == 403
    assert denied.get_json() == {"error": "Only level 5 staff can approve waivers"}

    early_request = client.post(f"/burials/{case['id']}/assignment-requests", json={"requested_section": "FAMILY"})
    assert early_request.status_code == 400

    client.post("/auth/logout")
    login_admin()
    approved = client.post(f"/burials/waivers/{waiver_id}/decision", json={"status": "APPROVED"})
    assert approved.status_code == 200
    assert approved.get_json()["status"] == "APPROVED"

    queued = client.post(f"/burials/{case['id']}/assignment-requests", json={"requested_section": "FAMILY"})
    assert queued.status_code == 201
    pending = client.get("/burials/assignment-requests?status=PENDING").get_json()
    assert [row["full_name"] for row in pending] == ["Nyasha Dube"]

    client.post("/auth/logout")
    login_office()
    forbidden = client.post(f"/burials/{case['id']}/assign", json={"grave_number": "3", "slot_number": 1})
    assert forbidden.status_code == 403

    client.post("/auth/logout")
    login_admin()
    assigned = client.post(f"/burials/{case['id']}/assign", json={"grave_number": "3", "slot_number": 1})
    assert assigned.status_code == 200
    assert assigned.get_json()["plot_slot"]["section"] == "FAMILY"
    assert assigned.get_json()["plot_slot"]["price_at_assignment"] is None


def test_case_listing_and_update(app, client, login_admin, paid_purchase):
    login_admin()
    purchase = paid_purchase()
    created = client.post(
        "/burials",
        json={
            "purchase_id": str(purchase.id),
            "full_name": "Chipo Moyo",
            "address": "12 Baobab Road, Harare",
            "date_of_death": "2026-10-01",
            "next_of_kin": _kin(),
        },
    ).get_json()

    listing = client.get("/burials?search=baobab&limit=10").get_json()
    assert listing["pagination"] == {"page": 1, "limit": 10, "total": 1, "total_pages": 1}
    assert listing["data"][0]["id"] == created["id"]

    refused = client.patch(f"/burials/{created['id']}", json={"status": "BURIED"})
    assert refused.status_code == 400

    patched = client.patch(f"/burials/{created['id']}", json={"notes": "Family requests hymn"})
    assert patched.status_code == 200
    assert patched.get_json()["notes"] == "Family requests hymn"


def test_existing_payer_and_redeem_over_http(app, client, login_admin, login_office):
    members, products, plans = _ids(app)
    payload = {
        "member_id": members["Tendai"],
        "product_id": products["Lawn Grave"],
        "kind": "FUTURE",
        "plan_id": plans["10 Months"],
        "already_paid": "1200",
    }

    login_office()
    assert client.post("/purchases/existing-payers", json=payload).status_code == 403
    client.post("/auth/logout")

    login_admin()
    registered = client.post("/purchases/existing-payers", json=payload)
    assert registered.status_code == 201
    purchase = registered.get_json()
    assert purchase["status"] == "PAID"

    wrong_owner = client.get(f"/purchases/{purchase['id']}/redeem-check?member_id={members['Rudo']}")
    assert wrong_owner.status_code == 403
    check = client.get(f"/purchases/{purchase['id']}/redeem-check?member_id={members['Tendai']}")
    assert check.get_json()["eligible"] is True

    redeemed = client.post(
        f"/burials/purchases/{purchase['id']}/redeem",
        json={
            "member_id": members["Tendai"],
            "full_name": "Chipo Moyo",
            "date_of_death": "2026-10-01",
            "next_of_kin": _kin(),
        },
    )
    assert redeemed.status_code == 201
    with app.app_context():
        assert Purchase.query.one().status == PurchaseStatus.REDEEMED

    member_view = client.get(f"/purchases/members/{members['Tendai']}").get_json()
    assert [row["status"] for row in member_view] == ["REDEEMED"]


def test_gateway_status_callback_is_idempotent(app, client, login_admin):
    login_admin()
    members, products, _ = _ids(app)
    purchase = client.post(
        "/purchases", json={"member_id": members["Rudo"], "product_id": products["Chapel Service"]}
    ).get_json()
    started = client.post(
        f"/purchases/{purchase['id']}/gateway-payments",
        json={"amount": "150", "poll_url": "https://pay.example/poll/chapel"},
    )
    assert started.status_code == 201
    payment = started.get_json()
    assert payment["status"] == "INITIATED"

    for _ in range(2):
        settled = client.post(f"/purchases/payments/{payment['id']}/status", json={"status": "Paid"})
        assert settled.status_code == 200
        assert settled.get_json()["status"] == "SUCCESS"

    with app.app_context():
        assert Payment.query.filter_by(status=PaymentStatus.SUCCESS).count() == 1
        assert Purchase.query.one().status == PurchaseStatus.PAID


def test_cancel_and_defaulted_report(app, client, login_admin):
    login_admin()
    members, products, _ = _ids(app)
    purchase = client.post(
        "/purchases", json={"member_id": members["Farai"], "product_id": products["Muhacha Grave"]}
    ).get_json()

    cancelled = client.post(f"/purchases/{purchase['id']}/cancel")
    assert cancelled.status_code == 200
    assert cancelled.get_json()["status"] == "CANCELLED"
    assert client.post(f"/purchases/{purchase['id']}/cancel").status_code == 400

    report = client.get("/purchases/defaulted").get_json()
    assert report == {"data": [], "total": 0}
