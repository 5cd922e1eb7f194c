from types import SimpleNamespace

from fastapi.testclient import TestClient

from salontime.models import Salon, SalonView, StripeAccount, UserProfile
from salontime.services import stripe_service
from tests.conftest import (
    connect_stripe,
    create_booking,
    create_salon,
    create_service,
    create_user,
    error_code,
    make_token,
)

SALON_PAYLOAD = {
    "business_name": "Studio Noir",
    "description": "Cuts & <b>color</b>",
    "address": "Prinsengracht 1",
    "city": "Amsterdam",
    "state": "NH",
    "zip_code": "1011AB",
    "phone": "+31200000000",
}


# ============================================================================
# Create / update
# ============================================================================


def test_create_salon_without_country_skips_stripe(client: TestClient, db, auth_headers):
    user = create_user(db)

    response = client.post("/api/salons", json=SALON_PAYLOAD, headers=auth_headers(user.id, user.email))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["salon"]["business_name"] == "Studio Noir"
    assert data["salon"]["is_active"] is False
    assert data["salon"]["verification_status"] == "pending"
    assert data["salon"]["description"] == "Cuts &amp; &lt;b&gt;color&lt;/b&gt;"
    assert data["stripe_setup"]["account_created"] is False

    db.expire_all()
    assert db.get(UserProfile, user.id).user_type == "salon_owner"


def test_create_salon_with_country_creates_connect_account(client: TestClient, db, auth_headers, monkeypatch):
    monkeypatch.setattr(stripe_service, "create_connect_account", lambda **kwargs: SimpleNamespace(id="acct_new"))
    monkeypatch.setattr(stripe_service, "create_account_link", lambda account_id: f"https://connect.test/{account_id}")
    user = create_user(db)

    response = client.post(
        "/api/salons", json={**SALON_PAYLOAD, "country": "nl"}, headers=auth_headers(user.id, user.email)
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["salon"]["country"] == "NL"
    assert data["salon"]["stripe_account_status"] == "pending"
    assert data["stripe_setup"]["account_created"] is True
    assert data["stripe_setup"]["onboarding_url"] == "https://connect.test/acct_new"
    assert db.query(StripeAccount).filter(StripeAccount.stripe_account_id == "acct_new").count() == 1


def test_create_salon_stripe_failure_still_creates_salon(client: TestClient, db, auth_headers):
    user = create_user(db)

    # Stripe is not configured in tests: account creation fails and is reported
    response = client.post(
        "/api/salons", json={**SALON_PAYLOAD, "country": "NL"}, headers=auth_headers(user.id, user.email)
    )

    assert response.status_code == 201
    stripe_setup = response.json()["data"]["stripe_setup"]
    assert stripe_setup["account_created"] is False
    assert stripe_setup["error"]
    assert db.query(Salon).count() == 1


def test_create_salon_requires_fields(client: TestClient, db, auth_headers):
    user = create_user(db)
    payload = {**SALON_PAYLOAD, "city": "  "}

    response = client.post("/api/salons", json=payload, headers=auth_headers(user.id, user.email))

    assert response.status_code == 400
    assert error_code(response) == "MISSING_CITY"


def test_second_salon_is_rejected(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    create_salon(db, owner)

    response = client.post("/api/salons", json=SALON_PAYLOAD, headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 409
    assert error_code(response) == "SALON_ALREADY_EXISTS"


def test_update_my_salon_merges_address(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    create_salon(db, owner, address={"street": "Old Street 1", "city": "Amsterdam", "country": "NL"})

    response = client.put(
        "/api/salons/my/salon", json={"city": "Utrecht"}, headers=auth_headers(owner.id, owner.email)
    )

    assert response.status_code == 200
    salon = response.json()["data"]["salon"]
    assert salon["city"] == "Utrecht"
    assert salon["address"]["street"] == "Old Street 1"
    assert salon["address"]["city"] == "Utrecht"
    assert salon["address"]["country"] == "NL"


def test_my_salon_not_found(client: TestClient, db, auth_headers):
    user = create_user(db)

    response = client.get("/api/salons/my/salon", headers=auth_headers(user.id, user.email))

    assert response.status_code == 404
    assert error_code(response) == "SALON_NOT_FOUND"


# ============================================================================
# Public discovery
# ============================================================================


def test_public_salon_includes_active_services_only(client: TestClient, db):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)
    create_service(db, salon, name="Cut")
    create_service(db, salon, name="Retired", is_active=False)

    response = client.get(f"/api/salons/{salon.id}")

    assert response.status_code == 200
    data = response.json()["data"]["salon"]
    assert data["id"] == salon.id
    assert [s["name"] for s in data["services"]] == ["Cut"]
    assert "is_favorite" not in data


def test_public_salon_ignores_expired_token(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))
    token = make_token("user-stale", "stale@example.com", expires_in=-60)

    response = client.get(f"/api/salons/{salon.id}", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert "is_favorite" not in response.json()["data"]["salon"]
    assert db.query(UserProfile).filter(UserProfile.id == "user-stale").count() == 0


def test_public_salon_ignores_malformed_token(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))

    response = client.get(f"/api/salons/{salon.id}", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 200


def test_inactive_salon_is_hidden(client: TestClient, db):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner, is_active=False)

    response = client.get(f"/api/salons/{salon.id}")

    assert response.status_code == 404
    assert error_code(response) == "SALON_NOT_FOUND"


def test_search_filters_by_city_and_rating(client: TestClient, db):
    create_salon(db, create_user(db), business_name="Top Cuts", city="Amsterdam", rating_average=4.8)
    create_salon(db, create_user(db), business_name="Fine Cuts", city="Amsterdam", rating_average=3.1)
    create_salon(db, create_user(db), business_name="Rotterdam Cuts", city="Rotterdam", rating_average=4.9)

    response = client.get("/api/salons/search", params={"city": "amsterdam", "min_rating": 4})

    assert response.status_code == 200
    data = response.json()["data"]
    assert [s["business_name"] for s in data["salons"]] == ["Top Cuts"]
    assert data["pagination"]["total"] == 1


def test_search_treats_wildcards_literally(client: TestClient, db):
    create_salon(db, create_user(db), business_name="100% Natural", city="Utrecht")
    create_salon(db, create_user(db), business_name="Studio_Zuid", city="Amsterdam")
    create_salon(db, create_user(db), business_name="Studio Noord", city="Amsterdam")

    percent = client.get("/api/salons/search", params={"q": "%"})
    underscore = client.get("/api/salons/search", params={"q": "studio_"})
    city = client.get("/api/salons/search", params={"city": "_"})

    assert [s["business_name"] for s in percent.json()["data"]["salons"]] == ["100% Natural"]
    assert [s["business_name"] for s in underscore.json()["data"]["salons"]] == ["Studio_Zuid"]
    assert city.json()["data"]["pagination"]["total"] == 0


def test_nearby_orders_by_distance(client: TestClient, db):
    create_salon(db, create_user(db), business_name="Centraal", latitude=52.3791, longitude=4.9003)
    create_salon(db, create_user(db), business_name="Dam", latitude=52.3731, longitude=4.8926)
    create_salon(db, create_user(db), business_name="Utrecht", latitude=52.0907, longitude=5.1214)

    response = client.get("/api/salons/nearby", params={"latitude": 52.3730, "longitude": 4.8925, "radius": 5})

    assert response.status_code == 200
    salons = response.json()["data"]["salons"]
    assert [s["business_name"] for s in salons] == ["Dam", "Centraal"]
    assert salons[0]["distance_km"] < salons[1]["distance_km"]


# ============================================================================
# Business hours
# ============================================================================


def test_update_business_hours_normalizes_days(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)

    response = client.put(
        f"/api/salon/{salon.id}/business-hours",
        json={
            "business_hours": {
                "monday": {"opening": "09:00", "closing": "18:00"},
                "sunday": {"closed": True},
            }
        },
        headers=auth_headers(owner.id, owner.email),
    )

    assert response.status_code == 200
    hours = response.json()["data"]["business_hours"]
    assert hours["monday"] == {"opening": "09:00", "closing": "18:00", "closed": False}
    assert hours["sunday"] == {"closed": True}

    public = client.get(f"/api/salon/{salon.id}/business-hours")
    assert public.json()["data"]["business_hours"]["monday"]["opening"] == "09:00"


def test_business_hours_reject_bad_time(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)

    response = client.put(
        f"/api/salon/{salon.id}/business-hours",
        json={"business_hours": {"monday": {"opening": "9am", "closing": "18:00"}}},
        headers=auth_headers(owner.id, owner.email),
    )

    assert response.status_code == 400
    assert error_code(response) == "INVALID_BUSINESS_HOURS"


def test_business_hours_only_owner_can_update(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)
    stranger = create_user(db)

    response = client.put(
        f"/api/salon/{salon.id}/business-hours",
        json={"business_hours": {"monday": {"closed": True}}},
        headers=auth_headers(stranger.id, stranger.email),
    )

    assert response.status_code == 403
    assert error_code(response) == "UNAUTHORIZED"


# ============================================================================
# Stripe Connect
# ============================================================================


def test_check_stripe_status_activates_salon(client: TestClient, db, auth_headers, monkeypatch):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner, is_active=False)
    connect_stripe(db, salon, status="pending")
    monkeypatch.setattr(
        stripe_service,
        "get_account_status",
        lambda account_id: {
            "id": account_id,
            "details_submitted": True,
            "charges_enabled": True,
            "payouts_enabled": True,
            "requirements": {"currently_due": []},
            "capabilities": {"card_payments": "active"},
        },
    )

    response = client.get("/api/salons/stripe/check-status", headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 200
    assert response.json()["data"]["account_status"] == "active"
    db.expire_all()
    refreshed = db.get(Salon, salon.id)
    assert refreshed.is_active is True
    assert refreshed.stripe_account_status == "active"
    record = db.query(StripeAccount).filter(StripeAccount.salon_id == salon.id).one()
    assert record.onboarding_completed is True
    assert record.capabilities == {"card_payments": "active"}


def test_dashboard_link_requires_active_account(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)
    connect_stripe(db, salon, status="pending")

    response = client.get("/api/salons/stripe/dashboard-link", headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 400
    assert error_code(response) == "ACCOUNT_NOT_READY"


def test_onboarding_link_without_account(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    create_salon(db, owner)

    response = client.get("/api/salons/stripe/onboarding-link", headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 404
    assert error_code(response) == "STRIPE_ACCOUNT_NOT_FOUND"


def test_popular_orders_by_rating_then_count(client: TestClient, db):
    create_salon(db, create_user(db), business_name="Good", rating_average=4.5, rating_count=10)
    create_salon(db, create_user(db), business_name="Best", rating_average=4.9, rating_count=3)
    create_salon(db, create_user(db), business_name="Good Too", rating_average=4.5, rating_count=40)
    create_salon(db, create_user(db), business_name="Hidden", rating_average=5.0, is_active=False)

    response = client.get("/api/salons/popular")

    names = [s["business_name"] for s in response.json()["data"]["salons"]]
    assert names == ["Best", "Good Too", "Good"]


def test_public_salon_services(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))
    create_service(db, salon, name="Cut")
    create_service(db, salon, name="Retired", is_active=False)

    response = client.get(f"/api/salons/{salon.id}/services")

    assert response.status_code == 200
    assert [s["name"] for s in response.json()["data"]["services"]] == ["Cut"]


def test_salon_clients_with_booking_counts(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    salon = create_salon(db, owner)
    service = create_service(db, salon)
    regular = create_user(db, full_name="Regular Client")
    once = create_user(db, full_name="One Timer")
    create_booking(db, regular, salon, service)
    create_booking(db, regular, salon, service, days_from_now=-9)
    create_booking(db, once, salon, service)

    response = client.get("/api/salons/clients", headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 200
    clients = response.json()["data"]["clients"]
    assert [(c["full_name"], c["booking_count"]) for c in clients] == [("Regular Client", 2), ("One Timer", 1)]
    assert clients[0]["email"] == regular.email


def test_second_stripe_account_conflicts(client: TestClient, db, auth_headers):
    owner = create_user(db, user_type="salon_owner")
    connect_stripe(db, create_salon(db, owner))

    response = client.post("/api/salons/stripe/account", headers=auth_headers(owner.id, owner.email))

    assert response.status_code == 409
    assert error_code(response) == "STRIPE_ACCOUNT_EXISTS"


# ============================================================================
# Activity tracking
# ============================================================================


def test_track_view_counts_anonymous_visitors(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))

    response = client.post(f"/api/salons/{salon.id}/track-view", json={"session_id": "sess-1", "source": "map"})

    assert response.status_code == 200
    assert response.json()["data"] == {"view_count": 1, "trending_score": 1.0}
    view = db.query(SalonView).filter(SalonView.salon_id == salon.id).one()
    assert view.user_id is None
    assert view.source == "map"
    assert view.device_type == "unknown"


def test_track_view_records_signed_in_user(client: TestClient, db, auth_headers):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))
    visitor = create_user(db)

    client.post(f"/api/salons/{salon.id}/track-view", headers=auth_headers(visitor.id, visitor.email))

    assert db.query(SalonView).filter(SalonView.salon_id == salon.id).one().user_id == visitor.id


def test_track_view_unknown_salon(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"), is_active=False)

    response = client.post(f"/api/salons/{salon.id}/track-view")

    assert response.status_code == 404
    assert error_code(response) == "SALON_NOT_FOUND"


def test_trending_score_weights_recent_bookings(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))
    create_booking(db, create_user(db), salon, create_service(db, salon))

    response = client.post(f"/api/salons/{salon.id}/track-view")

    assert response.json()["data"]["trending_score"] == 11.0


def test_track_favorite_adds_and_removes(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))

    added = client.post(f"/api/salons/{salon.id}/track-favorite")
    removed = client.post(f"/api/salons/{salon.id}/track-favorite", json={"action": "remove"})
    floor = client.post(f"/api/salons/{salon.id}/track-favorite", json={"action": "remove"})

    assert added.json()["data"]["favorite_count"] == 1
    assert removed.json()["data"]["favorite_count"] == 0
    assert floor.json()["data"]["favorite_count"] == 0
    db.expire_all()
    assert db.get(Salon, salon.id).favorite_count == 0


def test_track_favorite_rejects_unknown_action(client: TestClient, db):
    salon = create_salon(db, create_user(db, user_type="salon_owner"))

    response = client.post(f"/api/salons/{salon.id}/track-favorite", json={"action": "toggle"})

    assert response.status_code == 400
    assert error_code(response) == "INVALID_ACTION"


# ============================================================================
# Recommendations
# ============================================================================


def test_recommendations_follow_booking_history(client: TestClient, db, auth_headers):
    visited = create_salon(db, create_user(db), business_name="Color Lab", description="Balayage specialists")
    similar = create_salon(db, create_user(db), business_name="Sun Streaks", city="Utrecht")
    create_service(db, similar, name="Balayage")
    barber = create_salon(db, create_user(db), business_name="Sharp", city="Rotterdam", description="Barber shop")
    create_service(db, barber, name="Beard trim")
    user = create_user(db)
    create_booking(db, user, visited, create_service(db, visited, name="Balayage color"))

    response = client.get("/api/salons/recommendations/personalized", headers=auth_headers(user.id, user.email))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["personalized"] is True
    names = [s["business_name"] for s in data["salons"]]
    assert names == ["Color Lab", "Sun Streaks"]
    assert data["salons"][0]["match_score"] > data["salons"][1]["match_score"]


def test_recommendations_fall_back_to_popular_salons(client: TestClient, db, auth_headers):
    create_salon(db, create_user(db), business_name="Loved", rating_average=4.6, rating_count=12)
    create_salon(db, create_user(db), business_name="Average", rating_average=3.9, rating_count=40)
    create_salon(db, create_user(db), business_name="Too New", rating_average=4.9, rating_count=2)
    user = create_user(db)

    response = client.get("/api/salons/recommendations/personalized", headers=auth_headers(user.id, user.email))

    data = response.json()["data"]
    assert data["personalized"] is False
    assert [s["business_name"] for s in data["salons"]] == ["Loved"]


def test_recommendations_fallback_respects_location(client: TestClient, db, auth_headers):
    popular = {"rating_average": 4.7, "rating_count": 20}
    create_salon(db, create_user(db), business_name="Dam", latitude=52.3731, longitude=4.8926, **popular)
    create_salon(db, create_user(db), business_name="Utrecht", latitude=52.0907, longitude=5.1214, **popular)
    user = create_user(db)

    response = client.get(
        "/api/salons/recommendations/personalized",
        params={"lat": 52.3730, "lng": 4.8925, "radius": 10},
        headers=auth_headers(user.id, user.email),
    )

    salons = response.json()["data"]["salons"]
    assert [s["business_name"] for s in salons] == ["Dam"]
    assert salons[0]["distance_km"] < 1


def test_recommendations_require_auth(client: TestClient):
    response = client.get("/api/salons/recommendations/personalized")

    assert response.status_code == 401
