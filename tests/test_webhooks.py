import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient

from salontime.domain.payments import webhooks
from salontime.models import Booking, Payment, Salon, StripeAccount
from salontime.services import stripe_service
from tests.conftest import connect_stripe, create_booking, create_salon, create_service, create_user, error_code

PRIMARY_SECRET = "whsec_primary_test"
THIN_SECRET = "whsec_thin_test"


def stripe_signature(payload: str, secret: str, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signed}"


def send_event(client: TestClient, event_type: str, obj: dict, secret: str = PRIMARY_SECRET, path="/webhook/stripe"):
    payload = json.dumps({"id": f"evt_{int(time.time() * 1000)}", "type": event_type, "data": {"object": obj}})
    return client.post(
        path,
        content=payload,
        headers={"stripe-signature": stripe_signature(payload, secret), "content-type": "application/json"},
    )


@pytest.fixture
def booking(db):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)
    service = create_service(db, salon)
    client_user = create_user(db)
    return create_booking(db, client_user, salon, service, days_from_now=3, status="pending")


# ============================================================================
# Signature verification
# ============================================================================


def test_unhandled_event_is_acknowledged(client: TestClient):
    response = send_event(client, "customer.created", {"id": "cus_1"})

    assert response.status_code == 200
    assert response.json() == {"received": True}


def test_second_secret_is_accepted(client: TestClient):
    response = send_event(client, "customer.created", {"id": "cus_1"}, secret=THIN_SECRET, path="/api/webhooks/stripe")

    assert response.status_code == 200


def test_invalid_signature_is_rejected(client: TestClient):
    response = send_event(client, "payment_intent.succeeded", {"id": "pi_1"}, secret="whsec_wrong")

    assert response.status_code == 400
    assert error_code(response) == "WEBHOOK_SIGNATURE_INVALID"


def test_missing_signature_is_rejected(client: TestClient):
    response = client.post("/webhook/stripe", content=b"{}")

    assert response.status_code == 400
    assert error_code(response) == "WEBHOOK_SIGNATURE_INVALID"


def test_stale_signature_is_rejected(client: TestClient):
    payload = json.dumps({"id": "evt_old", "type": "customer.created", "data": {"object": {}}})
    signature = stripe_signature(payload, PRIMARY_SECRET, timestamp=int(time.time()) - 3600)

    response = client.post("/webhook/stripe", content=payload, headers={"stripe-signature": signature})

    assert response.status_code == 400


# ============================================================================
# Checkout sessions
# ============================================================================


def test_checkout_completed_creates_payment_and_confirms_booking(client: TestClient, db, booking):
    session = {
        "id": "cs_test_9",
        "payment_intent": "pi_from_checkout",
        "amount_total": 3500,
        "currency": "eur",
        "metadata": {"booking_id": booking.id},
    }

    response = send_event(client, "checkout.session.completed", session)

    assert response.status_code == 200
    db.expire_all()
    payment = db.query(Payment).filter(Payment.booking_id == booking.id).one()
    assert payment.status == "completed"
    assert payment.amount == 35.0
    assert payment.currency == "EUR"
    assert payment.stripe_checkout_session_id == "cs_test_9"
    assert payment.stripe_payment_intent_id == "pi_from_checkout"
    assert payment.payment_method == "card"
    refreshed = db.get(Booking, booking.id)
    assert refreshed.payment_status == "paid"
    assert refreshed.status == "confirmed"


def test_checkout_completed_without_booking_metadata_is_ignored(client: TestClient, db):
    response = send_event(client, "checkout.session.completed", {"id": "cs_orphan", "metadata": {}})

    assert response.status_code == 200
    assert db.query(Payment).count() == 0


# ============================================================================
# Payment intents
# ============================================================================


def test_intent_succeeded_updates_known_payment(client: TestClient, db, booking):
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", stripe_payment_intent_id="pi_known"))
    db.commit()

    response = send_event(client, "payment_intent.succeeded", {"id": "pi_known", "amount": 3500, "currency": "eur"})

    assert response.status_code == 200
    db.expire_all()
    payment = db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_known").one()
    assert payment.status == "completed"
    assert db.get(Booking, booking.id).payment_status == "paid"


def test_intent_succeeded_falls_back_to_booking_metadata(client: TestClient, db, booking):
    intent = {"id": "pi_meta", "amount": 4200, "currency": "eur", "metadata": {"bookingId": booking.id}}

    response = send_event(client, "payment_intent.succeeded", intent)

    assert response.status_code == 200
    db.expire_all()
    payment = db.query(Payment).filter(Payment.booking_id == booking.id).one()
    assert payment.stripe_payment_intent_id == "pi_meta"
    assert payment.amount == 42.0
    assert payment.status == "completed"


def test_intent_succeeded_falls_back_to_latest_booking(client: TestClient, db, booking):
    intent = {
        "id": "pi_latest",
        "amount": 3500,
        "currency": "eur",
        "metadata": {"user_id": booking.client_id, "salon_id": booking.salon_id, "service_id": booking.service_id},
    }

    response = send_event(client, "payment_intent.succeeded", intent)

    assert response.status_code == 200
    db.expire_all()
    payment = db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_latest").one()
    assert payment.booking_id == booking.id


def test_intent_succeeded_without_any_match_is_acknowledged(client: TestClient, db):
    response = send_event(client, "payment_intent.succeeded", {"id": "pi_nowhere", "metadata": {}})

    assert response.status_code == 200
    assert db.query(Payment).count() == 0


def test_late_failure_does_not_undo_success(client: TestClient, db, booking):
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", stripe_payment_intent_id="pi_race"))
    db.commit()

    send_event(client, "payment_intent.succeeded", {"id": "pi_race"})
    response = send_event(client, "payment_intent.payment_failed", {"id": "pi_race"})

    assert response.status_code == 200
    db.expire_all()
    assert db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_race").one().status == "completed"
    assert db.get(Booking, booking.id).payment_status == "paid"


def test_failure_before_success_marks_failed(client: TestClient, db, booking):
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", stripe_payment_intent_id="pi_retry"))
    db.commit()

    send_event(client, "payment_intent.payment_failed", {"id": "pi_retry"})
    db.expire_all()
    assert db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_retry").one().status == "failed"
    assert db.get(Booking, booking.id).payment_status == "pending"

    send_event(client, "payment_intent.succeeded", {"id": "pi_retry"})
    db.expire_all()
    assert db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_retry").one().status == "completed"


def test_duplicate_delivery_is_idempotent(client: TestClient, db, booking):
    intent = {"id": "pi_twice", "amount": 3500, "currency": "eur", "metadata": {"booking_id": booking.id}}

    first = send_event(client, "payment_intent.succeeded", intent)
    second = send_event(client, "payment_intent.succeeded", intent)

    assert first.status_code == second.status_code == 200
    db.expire_all()
    payments = db.query(Payment).filter(Payment.booking_id == booking.id).all()
    assert len(payments) == 1
    assert payments[0].status == "completed"


# ============================================================================
# Connect accounts
# ============================================================================


def test_account_updated_activates_salon(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"), is_active=False)
    connect_stripe(db, salon, account_id="acct_hook", status="pending")
    account = {
        "id": "acct_hook",
        "details_submitted": True,
        "charges_enabled": True,
        "payouts_enabled": True,
        "requirements": {"currently_due": []},
        "capabilities": {"transfers": "active"},
    }

    response = send_event(client, "account.updated", account)

    assert response.status_code == 200
    db.expire_all()
    refreshed = db.get(Salon, salon.id)
    assert refreshed.is_active is True
    assert refreshed.stripe_account_status == "active"
    record = db.query(StripeAccount).filter(StripeAccount.stripe_account_id == "acct_hook").one()
    assert record.onboarding_completed is True
    assert record.capabilities == {"transfers": "active"}


def test_account_updated_restricted_account_stays_pending(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"), is_active=False)
    connect_stripe(db, salon, account_id="acct_restricted", status="pending")

    send_event(client, "account.updated", {"id": "acct_restricted", "details_submitted": True, "charges_enabled": False})

    db.expire_all()
    refreshed = db.get(Salon, salon.id)
    assert refreshed.is_active is False
    assert refreshed.stripe_account_status == "pending"


def test_account_updated_for_unknown_account(client: TestClient):
    response = send_event(client, "account.updated", {"id": "acct_unknown"})

    assert response.status_code == 200


def test_account_updated_without_id_leaves_salons_alone(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"), is_active=False)

    response = send_event(client, "connect.account.updated", {"charges_enabled": False})

    assert response.status_code == 200
    db.expire_all()
    refreshed = db.get(Salon, salon.id)
    assert refreshed.stripe_account_status is None
    assert refreshed.is_active is False


# ============================================================================
# Malformed events and failures
# ============================================================================


def test_intent_events_without_id_are_acknowledged(client: TestClient, db, booking):
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", status="pending"))
    db.commit()
    metadata = {"booking_id": booking.id}

    succeeded = send_event(client, "payment_intent.succeeded", {"amount": 3500, "metadata": metadata})
    failed = send_event(client, "payment_intent.payment_failed", {"metadata": metadata})

    assert succeeded.status_code == failed.status_code == 200
    db.expire_all()
    payment = db.query(Payment).filter(Payment.booking_id == booking.id).one()
    assert payment.status == "pending"
    assert payment.stripe_payment_intent_id is None
    assert db.get(Booking, booking.id).payment_status == "pending"


def test_late_failure_does_not_undo_refund(client: TestClient, db, booking):
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", status="refunded", stripe_payment_intent_id="pi_refunded"))
    booking.payment_status = "refunded"
    db.commit()

    response = send_event(client, "payment_intent.payment_failed", {"id": "pi_refunded"})

    assert response.status_code == 200
    db.expire_all()
    assert db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_refunded").one().status == "refunded"
    assert db.get(Booking, booking.id).payment_status == "refunded"


def test_missing_webhook_secrets_are_reported(client: TestClient, monkeypatch):
    monkeypatch.setattr(stripe_service, "STRIPE_WEBHOOK_SECRET", "")
    monkeypatch.setattr(stripe_service, "STRIPE_WEBHOOK_SECRET_THIN", "")

    response = send_event(client, "customer.created", {"id": "cus_1"})

    assert response.status_code == 400
    assert error_code(response) == "WEBHOOK_SECRET_NOT_CONFIGURED"


def test_non_utf8_payload_is_rejected(client: TestClient):
    response = client.post("/webhook/stripe", content=b"\xff\xfe\x00{", headers={"stripe-signature": "t=1,v1=abc"})

    assert response.status_code == 400
    assert error_code(response) == "WEBHOOK_PAYLOAD_INVALID"


def test_handler_failure_rolls_back_and_returns_500(client: TestClient, db, booking, monkeypatch):
    db.add(Payment(booking_id=booking.id, amount=35.0, currency="EUR", stripe_payment_intent_id="pi_boom"))
    db.commit()

    def explode(session, intent):
        payment = session.query(Payment).filter(Payment.stripe_payment_intent_id == intent["id"]).one()
        payment.status = "completed"
        session.flush()
        raise RuntimeError("downstream failure")

    monkeypatch.setitem(webhooks.EVENT_HANDLERS, "payment_intent.succeeded", explode)

    response = send_event(client, "payment_intent.succeeded", {"id": "pi_boom"})

    assert response.status_code == 500
    assert error_code(response) == "WEBHOOK_HANDLER_FAILED"
    db.expire_all()
    assert db.query(Payment).filter(Payment.stripe_payment_intent_id == "pi_boom").one().status == "pending"
    assert db.get(Booking, booking.id).payment_status == "pending"
