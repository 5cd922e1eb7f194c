import os
import time
import uuid
from datetime import date, timedelta

# Environment must be in place before the app modules read their config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_primary_test"
os.environ["STRIPE_WEBHOOK_SECRET_THIN"] = "whsec_thin_test"
os.environ["GEMINI_API_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ["REDIS_URL"] = ""
os.environ["REDIS_HOST"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from salontime.database import Base, SessionLocal, engine  # noqa: E402
from salontime.main import app  # noqa: E402
from salontime.models import Booking, Salon, Service, StripeAccount, UserProfile  # noqa: E402

JWT_SECRET = "test-jwt-secret"


# ============================================================================
# Database and client
# ============================================================================
# sqlite:// with StaticPool: every session (requests, background tasks and
# the test's own session) shares one in-memory database. Tables are rebuilt
# for each test.


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="db")
def db_fixture():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="client")
def client_fixture():
    with TestClient(app) as client:
        yield client


# ============================================================================
# Auth
# ============================================================================


def make_token(user_id: str, email: str, expires_in: int = 3600, **metadata) -> str:
    claims = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": int(time.time()) + expires_in,
        "user_metadata": metadata,
    }
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for a (new or existing) user id"""

    def _headers(user_id: str = None, email: str = None, **metadata) -> dict:
        user_id = user_id or str(uuid.uuid4())
        email = email or f"{user_id[:8]}@example.com"
        return {"Authorization": f"Bearer {make_token(user_id, email, **metadata)}"}

    return _headers


# ============================================================================
# Data factories
# ============================================================================


def create_user(db, user_type: str = "client", **fields) -> UserProfile:
    user_id = fields.pop("id", None) or str(uuid.uuid4())
    user = UserProfile(
        id=user_id,
        email=fields.pop("email", f"{user_id[:8]}@example.com"),
        user_type=user_type,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_salon(db, owner: UserProfile, **fields) -> Salon:
    values = {
        "business_name": "Studio Noir",
        "city": "Amsterdam",
        "state": "NH",
        "zip_code": "1011AB",
        "country": "NL",
        "email": owner.email,
        "is_active": True,
    }
    values.update(fields)
    salon = Salon(owner_id=owner.id, **values)
    db.add(salon)
    db.commit()
    db.refresh(salon)
    return salon


def connect_stripe(db, salon: Salon, account_id: str = "acct_test123", status: str = "active") -> StripeAccount:
    salon.stripe_account_id = account_id
    salon.stripe_account_status = status
    record = StripeAccount(salon_id=salon.id, stripe_account_id=account_id, account_status=status)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def create_service(db, salon: Salon, **fields) -> Service:
    values = {"name": "Haircut", "price": 35.0, "duration": 45, "is_active": True}
    values.update(fields)
    service = Service(salon_id=salon.id, **values)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def create_booking(db, client: UserProfile, salon: Salon, service: Service, days_from_now: int = -2, **fields) -> Booking:
    values = {
        "appointment_date": date.today() + timedelta(days=days_from_now),
        "start_time": "10:00",
        "status": "completed",
        "payment_status": "pending",
    }
    values.update(fields)
    booking = Booking(client_id=client.id, salon_id=salon.id, service_id=service.id, **values)
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def error_code(response) -> str:
    body = response.json()
    assert body["success"] is False
    return body["error"]["code"]
