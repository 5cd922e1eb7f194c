from datetime import datetime
from types import SimpleNamespace

from fastapi.testclient import TestClient

from salontime.models import Booking, Payment, ServiceCategory
from salontime.services import stripe_service
from tests.conftest import connect_stripe, create_booking, create_salon, create_service, create_user, error_code


def _marketplace(db):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)
    connect_stripe(db, salon, account_id="acct_salon")
    service = create_service(db, salon)
    client_user = create_user(db, full_name="Noor Bakker")
    return owner, salon, service, client_user


# ============================================================================
# Payment intents
# ============================================================================


def test_create_payment_intent_links_booking(client: TestClient, db, auth_headers, monkeypatch):
    _, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service, days_from_now=2, status="pending")
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="pi_123", client_secret="pi_123_secret_abc")

    monkeypatch.setattr(stripe_service, "create_payment_intent", fake_create)

    response = client.post(
        "/api/payments/create-intent",
        json={"amount": 35.5, "serviceId": service.id, "salonId": salon.id, "bookingId": booking.id},
        headers=auth_headers(user.id, user.email),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["client_secret"] == "pi_123_secret_abc"
    assert data["payment_intent_id"] == "pi_123"
    assert data["metadata"]["booking_id"] == booking.id
    assert data["metadata"]["salon_name"] == "Studio Noir"
    assert calls[0]["amount_cents"] == 3550
    assert calls[0]["destination_account"] == "acct_salon"

    db.expire_all()
    payment = db.query(Payment).filter(Payment.booking_id == booking.id).one()
    assert payment.status == "pending"
    assert payment.stripe_payment_intent_id == "pi_123"


def test_create_payment_intent_requires_fields(client: TestClient, db, auth_headers):
    user = create_user(db)

    response = client.post("/api/payments/create-intent", json={"amount": 10}, headers=auth_headers(user.id))

    assert response.status_code == 400
    assert error_code(response) == "MISSING_REQUIRED_FIELDS"


def test_create_payment_intent_rejects_non_positive_amount(client: TestClient, db, auth_headers):
    user = create_user(db)

    response = client.post(
        "/api/payments/create-intent",
        json={"amount": 0, "service_id": "s", "salon_id": "x"},
        headers=auth_headers(user.id),
    )

    assert response.status_code == 400
    assert error_code(response) == "VALIDATION_ERROR"


def test_create_payment_intent_for_salon_without_stripe(client: TestClient, db, auth_headers):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))
    service = create_service(db, salon)
    user = create_user(db)

    response = client.post(
        "/api/payments/create-intent",
        json={"amount": 20, "service_id": service.id, "salon_id": salon.id},
        headers=auth_headers(user.id),
    )

    assert response.status_code == 404
    assert error_code(response) == "SALON_NOT_FOUND"


def test_create_payment_intent_when_stripe_is_down(client: TestClient, db, auth_headers):
    _, salon, service, user = _marketplace(db)

    # No secret key in tests
    response = client.post(
        "/api/payments/create-intent",
        json={"amount": 20, "service_id": service.id, "salon_id": salon.id},
        headers=auth_headers(user.id, user.email),
    )

    assert response.status_code == 503
    assert error_code(response) == "STRIPE_NOT_CONFIGURED"


def test_confirm_payment_completes_local_payment(client: TestClient, db, auth_headers, monkeypatch):
    _, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service)
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", stripe_payment_intent_id="pi_ok"))
    db.commit()
    monkeypatch.setattr(
        stripe_service,
        "retrieve_payment_intent",
        lambda payment_intent_id: SimpleNamespace(id=payment_intent_id, status="succeeded", amount=3500, currency="eur"),
    )

    response = client.get("/api/payments/confirm/pi_ok", headers=auth_headers(user.id, user.email))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "succeeded"
    assert data["payment_intent"]["amount"] == 3500
    db.expire_all()
    assert db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_ok").one().status == "completed"
    assert db.get(Booking, booking.id).payment_status == "paid"


# ============================================================================
# History
# ============================================================================


def test_payment_history_for_client(client: TestClient, db, auth_headers):
    _, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service)
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", status="completed"))
    other = create_booking(db, create_user(db), salon, service)
    db.add(Payment(booking_id=other.id, amount=50.0, currency="EUR", status="completed"))
    db.commit()

    response = client.get("/api/payments/history", headers=auth_headers(user.id, user.email))

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["payments"]) == 1
    assert data["payments"][0]["salon"]["name"] == "Studio Noir"
    assert data["payments"][0]["service"]["name"] == "Haircut"
    assert data["pagination"] == {"page": 1, "limit": 20, "has_more": False}


def test_salon_payments_for_owner(client: TestClient, db, auth_headers):
    owner, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service)
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", status="completed"))
    db.commit()

    response = client.get("/api/payments/salon", headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 200
    payments = response.json()["data"]["payments"]
    assert payments[0]["client"] == {"email": user.email, "full_name": "Noor Bakker"}


def test_salon_payments_require_salon(client: TestClient, db, auth_headers):
    user = create_user(db)

    response = client.get("/api/payments/salon", headers=auth_headers(user.id, user.email))

    assert response.status_code == 403
    assert error_code(response) == "ACCESS_DENIED"


# ============================================================================
# Analytics
# ============================================================================


def test_payment_analytics_for_date_range(client: TestClient, db, auth_headers):
    owner, salon, _, user = _marketplace(db)
    hair = ServiceCategory(name="Hair")
    db.add(hair)
    db.commit()
    cut = create_service(db, salon, name="Cut", category_id=hair.id)
    manicure = create_service(db, salon, name="Manicure")

    def pay(service, amount, created_at, status="completed"):
        booking = create_booking(db, user, salon, service)
        db.add(Payment(booking_id=booking.id, amount=amount, currency="EUR", status=status, created_at=created_at))
        db.commit()

    pay(cut, 40.0, datetime(2026, 1, 5, 10, 0))
    pay(cut, 60.0, datetime(2026, 1, 20, 14, 30))
    pay(manicure, 25.0, datetime(2026, 1, 20, 16, 0))
    pay(cut, 99.0, datetime(2026, 1, 10, 9, 0), status="failed")
    pay(cut, 62.5, datetime(2025, 12, 15, 11, 0))

    response = client.get(
        "/api/payments/analytics",
        params={"start_date": "2026-01-01", "end_date": "2026-01-31"},
        headers=auth_headers(owner.id, owner.email),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"]["start_date"] == "2026-01-01"
    assert data["period"]["days"] == 31
    assert data["summary"]["total_revenue"] == 125.0
    assert data["summary"]["total_transactions"] == 3
    assert data["summary"]["average_transaction"] == 41.67
    assert data["summary"]["currency"] == "EUR"
    assert data["growth"] == {"previous_period_revenue": 62.5, "revenue_growth": 100.0}
    assert data["trends"]["daily"] == {"2026-01-05": 40.0, "2026-01-20": 85.0}
    assert data["trends"]["monthly"] == {"2026-01": 125.0}
    assert data["breakdown"]["by_category"] == {"Hair": 100.0, "Other": 25.0}
    top = data["breakdown"]["top_services"]
    assert [s["name"] for s in top] == ["Cut", "Manicure"]
    assert top[0] == {"name": "Cut", "revenue": 100.0, "transaction_count": 2, "average_value": 50.0}


def test_payment_analytics_empty_period(client: TestClient, db, auth_headers):
    owner, _, _, _ = _marketplace(db)

    response = client.get("/api/payments/analytics", params={"period": 7}, headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"]["days"] == 7
    assert data["summary"]["total_revenue"] == 0
    assert data["summary"]["average_transaction"] == 0
    assert data["growth"]["revenue_growth"] == 0


def test_payment_analytics_rejects_bad_inputs(client: TestClient, db, auth_headers):
    owner, _, _, _ = _marketplace(db)
    headers = auth_headers(owner.id, owner.email)

    bad_period = client.get("/api/payments/analytics", params={"period": 0}, headers=headers)
    assert bad_period.status_code == 400
    assert error_code(bad_period) == "INVALID_PERIOD"

    reversed_range = client.get(
        "/api/payments/analytics", params={"start_date": "2026-02-01", "end_date": "2026-01-01"}, headers=headers
    )
    assert reversed_range.status_code == 400
    assert error_code(reversed_range) == "INVALID_DATE_RANGE"


# ============================================================================
# Owner payment tools
# ============================================================================


def test_owner_marks_cash_payment(client: TestClient, db, auth_headers):
    owner, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service)

    response = client.patch(
        f"/api/payments/bookings/{booking.id}/status",
        json={"status": "completed", "payment_method": "cash"},
        headers=auth_headers(owner.id, owner.email),
    )

    assert response.status_code == 200
    payment = response.json()["data"]["payment"]
    assert payment["status"] == "completed"
    assert payment["payment_method"] == "cash"
    assert payment["amount"] == 35.0
    db.expire_all()
    assert db.get(Booking, booking.id).payment_status == "paid"


def test_owner_refund_updates_booking(client: TestClient, db, auth_headers):
    owner, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service, payment_status="paid")
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", status="completed"))
    db.commit()

    response = client.patch(
        f"/api/payments/bookings/{booking.id}/status",
        json={"status": "refunded"},
        headers=auth_headers(owner.id, owner.email),
    )

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Booking, booking.id).payment_status == "refunded"
    assert db.query(Payment).filter(Payment.booking_id == booking.id).count() == 1


def test_payment_status_must_be_known(client: TestClient, db, auth_headers):
    owner, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service)

    response = client.patch(
        f"/api/payments/bookings/{booking.id}/status",
        json={"status": "paid"},
        headers=auth_headers(owner.id, owner.email),
    )

    assert response.status_code == 400
    assert error_code(response) == "INVALID_PAYMENT_STATUS"


def test_payment_status_only_for_own_salon(client: TestClient, db, auth_headers):
    _, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service)
    intruder = create_user(db, user_type="salon_owner")

    response = client.patch(
        f"/api/payments/bookings/{booking.id}/status",
        json={"status": "completed"},
        headers=auth_headers(intruder.id, intruder.email),
    )

    assert response.status_code == 403
    assert error_code(response) == "ACCESS_DENIED"


def test_generate_payment_link(client: TestClient, db, auth_headers, monkeypatch):
    owner, salon, service, user = _marketplace(db)
    booking = create_booking(db, user, salon, service, days_from_now=1, status="confirmed")
    calls = []

    def fake_session(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.test/cs_test_1", expires_at=1767225600)

    monkeypatch.setattr(stripe_service, "create_checkout_session", fake_session)

    response = client.post(
        f"/api/payments/bookings/{booking.id}/payment-link",
        json={"send_email": True},
        headers=auth_headers(owner.id, owner.email),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data == {
        "payment_link": "https://checkout.test/cs_test_1",
        "checkout_session_id": "cs_test_1",
        "expires_at": 1767225600,
    }
    assert calls[0]["connected_account_id"] == "acct_salon"
    assert calls[0]["amount"] == 35.0
    assert calls[0]["description"].startswith("Haircut - Studio Noir")

    db.expire_all()
    payment = db.query(Payment).filter(Payment.booking_id == booking.id).one()
    assert payment.status == "pending"
    assert payment.stripe_checkout_session_id == "cs_test_1"


def test_payment_link_requires_connected_account(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)
    service = create_service(db, salon)
    booking = create_booking(db, create_user(db), salon, service)

    response = client.post(f"/api/payments/bookings/{booking.id}/payment-link", headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 400
    assert error_code(response) == "STRIPE_NOT_CONFIGURED"


def test_payment_link_unknown_booking(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")

    response = client.post("/api/payments/bookings/missing/payment-link", headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 404
    assert error_code(response) == "BOOKING_NOT_FOUND"
