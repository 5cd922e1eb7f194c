"""Analytics service - Salon owner dashboard metrics and review management"""

import logging
import math
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...config import STRIPE_DEFAULT_CURRENCY
from ...errors import AppError
from ...models import Salon, UserProfile
from ..salons.repository import SalonRepository
from .repository import AnalyticsRepository

logger = logging.getLogger(__name__)

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled", "no_show")
WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
RECENT_FAVORITES = 5
RECENT_REVIEWS = 10
TOP_ENTRIES = 10


def _display_name(user: Optional[UserProfile]) -> str:
    if user is None:
        return ""
    return user.full_name or " ".join(p for p in (user.first_name, user.last_name) if p)


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0


def group_by_date(items, date_attr: str, amount_attr: Optional[str] = None) -> list[dict]:
    """
    Chart series of {date, value} sorted by day.

    Sums amount_attr per day when given, otherwise counts items.
    """
    grouped: dict[str, float] = defaultdict(float)
    for item in items:
        moment = getattr(item, date_attr)
        if moment is None:
            continue
        day = moment.strftime("%Y-%m-%d")
        if amount_attr:
            grouped[day] += getattr(item, amount_attr) or 0
        else:
            grouped[day] += 1
    return [
        {"date": day, "value": round(value, 2) if amount_attr else int(value)}
        for day, value in sorted(grouped.items())
    ]


class AnalyticsService:
    """Service layer for salon analytics"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AnalyticsRepository()

    def _owner_salon(self, user: UserProfile) -> Salon:
        salon = SalonRepository.get_by_owner(self.db, user.id)
        if not salon:
            raise AppError("Salon not found", 404, "SALON_NOT_FOUND")
        return salon

    def get_salon_analytics(self, user: UserProfile, period: int = 30) -> dict:
        salon = self._owner_salon(user)
        end = datetime.now(timezone.utc).replace(tzinfo=None)
        start = end - timedelta(days=period)
        logger.info(f"📊 Fetching analytics for salon {salon.id} over {period} days")

        scheduled = self.repo.bookings_scheduled_since(self.db, salon.id, start.date())
        return {
            "revenue": self._revenue(salon.id, start),
            "bookings": self._bookings(salon.id, start),
            "views": self._views(salon.id, start),
            "favorites": self._favorites(salon.id),
            "reviews": self._reviews(salon.id, start),
            "metrics": self._salon_metrics(salon),
            "peak_hours": self._peak_hours(scheduled),
            "service_popularity": self._service_popularity(scheduled),
            "client_retention": self._client_retention(salon.id, scheduled, start),
            "performance": self._performance(scheduled),
            "period": {"days": period, "start": start.isoformat(), "end": end.isoformat()},
        }

    # ------------------------------------------------------------------
    # Metric sections
    # ------------------------------------------------------------------

    def _revenue(self, salon_id: str, start: datetime) -> dict:
        payments = self.repo.completed_payments_since(self.db, salon_id, start)
        return {
            "total": round(sum(p.amount for p in payments), 2),
            "count": len(payments),
            "currency": payments[0].currency if payments else STRIPE_DEFAULT_CURRENCY.upper(),
            "timeline": group_by_date(payments, "created_at", "amount"),
        }

    def _bookings(self, salon_id: str, start: datetime) -> dict:
        bookings = self.repo.bookings_created_since(self.db, salon_id, start)
        counts = Counter(b.status for b in bookings)
        logger.debug(f"📋 Found {len(bookings)} bookings for salon {salon_id}")
        return {
            "total": len(bookings),
            "by_status": {status: counts.get(status, 0) for status in BOOKING_STATUSES},
            "timeline": group_by_date(bookings, "created_at"),
        }

    def _views(self, salon_id: str, start: datetime) -> dict:
        views = self.repo.views_since(self.db, salon_id, start)
        return {
            "total": len(views),
            "unique": len({v.user_id for v in views if v.user_id}),
            "timeline": group_by_date(views, "viewed_at"),
        }

    def _favorites(self, salon_id: str) -> dict:
        favorites = self.repo.favorites_for_salon(self.db, salon_id)
        return {
            "total": len(favorites),
            "recent": [
                {
                    "user_id": f.user_id,
                    "name": _display_name(f.user),
                    "avatar": f.user.avatar_url if f.user else None,
                    "created_at": f.created_at,
                }
                for f in favorites[:RECENT_FAVORITES]
            ],
        }

    def _reviews(self, salon_id: str, start: datetime) -> dict:
        reviews = self.repo.reviews_since(self.db, salon_id, start)
        by_rating = {rating: 0 for rating in range(1, 6)}
        for review in reviews:
            if review.rating in by_rating:
                by_rating[review.rating] += 1

        return {
            "total": len(reviews),
            "average": round(sum(r.rating for r in reviews) / len(reviews), 1) if reviews else 0,
            "by_rating": by_rating,
            "recent": [
                {
                    "id": r.id,
                    "rating": r.rating,
                    "comment": r.comment,
                    "created_at": r.created_at,
                    "client": {
                        "name": _display_name(r.client),
                        "avatar": r.client.avatar_url if r.client else None,
                    },
                    "service": r.booking.service.name
                    if r.booking and r.booking.service
                    else "Unknown Service",
                }
                for r in reviews[:RECENT_REVIEWS]
            ],
        }

    def _salon_metrics(self, salon: Salon) -> dict:
        return {
            "view_count": salon.view_count or 0,
            "booking_count": self.repo.count_bookings(self.db, salon.id),
            "favorite_count": salon.favorite_count or 0,
            "trending_score": salon.trending_score or 0,
            "rating_average": salon.rating_average or 0,
            "rating_count": salon.rating_count or 0,
        }

    @staticmethod
    def _peak_hours(scheduled: list) -> dict:
        hours = [0] * 24
        days = [0] * 7
        for booking in scheduled:
            if booking.status == "cancelled":
                continue
            try:
                hour = int((booking.start_time or "").split(":")[0])
            except ValueError:
                hour = None
            if hour is not None and 0 <= hour < 24:
                hours[hour] += 1
            # date.weekday() is Monday=0; the chart starts on Sunday
            days[(booking.appointment_date.weekday() + 1) % 7] += 1

        return {
            "hourly": [{"hour": hour, "count": count} for hour, count in enumerate(hours)],
            "daily": [{"day": label, "count": days[index]} for index, label in enumerate(WEEKDAY_LABELS)],
        }

    @staticmethod
    def _service_popularity(scheduled: list) -> dict:
        services: dict[str, dict] = {}
        categories: dict[str, dict] = {}
        for booking in scheduled:
            if booking.status == "cancelled":
                continue
            service = booking.service
            category = service.category.name if service and service.category else "Other"
            price = service.price if service else 0

            stats = services.setdefault(
                booking.service_id,
                {
                    "id": booking.service_id,
                    "name": service.name if service else "Unknown",
                    "category": category,
                    "bookings": 0,
                    "revenue": 0.0,
                },
            )
            stats["bookings"] += 1
            stats["revenue"] += price

            totals = categories.setdefault(category, {"category": category, "bookings": 0, "revenue": 0.0})
            totals["bookings"] += 1
            totals["revenue"] += price

        top_services = sorted(services.values(), key=lambda s: s["bookings"], reverse=True)[:TOP_ENTRIES]
        by_category = sorted(categories.values(), key=lambda c: c["revenue"], reverse=True)
        return {"top_services": top_services, "by_category": by_category}

    def _client_retention(self, salon_id: str, scheduled: list, start: datetime) -> dict:
        completed = [b for b in scheduled if b.status == "completed"]
        visits = Counter(b.client_id for b in completed)
        returning = self.repo.returning_client_ids(self.db, salon_id, start.date(), set(visits))

        return {
            "new_clients": len(set(visits) - returning),
            "returning_clients": len(returning),
            "retention_rate": _percentage(len(returning), len(visits)),
            "top_clients": [
                {"client_id": client_id, "bookings": count} for client_id, count in visits.most_common(TOP_ENTRIES)
            ],
        }

    @staticmethod
    def _performance(scheduled: list) -> dict:
        counts = Counter(b.status for b in scheduled)
        total = len(scheduled)
        return {
            "cancellation_rate": _percentage(counts["cancelled"], total),
            "completion_rate": _percentage(counts["completed"], total),
            "no_show_rate": _percentage(counts["no_show"], total),
            "total_bookings": total,
            "status_breakdown": {
                "cancelled": counts["cancelled"],
                "completed": counts["completed"],
                "no_show": counts["no_show"],
                "confirmed": counts["confirmed"],
                "pending": counts["pending"],
            },
        }

    # ------------------------------------------------------------------
    # Review management
    # ------------------------------------------------------------------

    def get_reviews(self, user: UserProfile, page: int = 1, limit: int = 20) -> dict:
        salon = self._owner_salon(user)
        reviews, total = self.repo.reviews_page(self.db, salon.id, limit, (page - 1) * limit)
        return {
            "reviews": reviews,
            "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
        }
