"""Salon repository - Database operations for salons and their Stripe accounts"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Booking, Salon, SalonView, Service, StripeAccount, UserFavorite, UserProfile

SORT_COLUMNS = {
    "rating": Salon.rating_average.desc(),
    "name": Salon.business_name.asc(),
    "created_at": Salon.created_at.desc(),
}


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SalonRepository:
    """Repository for salon database operations"""

    @staticmethod
    def get_by_id(db: Session, salon_id: str) -> Optional[Salon]:
        return db.query(Salon).filter(Salon.id == salon_id).first()

    @staticmethod
    def get_active_by_id(db: Session, salon_id: str) -> Optional[Salon]:
        return db.query(Salon).filter(Salon.id == salon_id, Salon.is_active.is_(True)).first()

    @staticmethod
    def get_by_owner(db: Session, owner_id: str) -> Optional[Salon]:
        return db.query(Salon).filter(Salon.owner_id == owner_id).first()

    @staticmethod
    def get_by_stripe_account(db: Session, stripe_account_id: str) -> Optional[Salon]:
        return db.query(Salon).filter(Salon.stripe_account_id == stripe_account_id).first()

    @staticmethod
    def create(db: Session, owner_id: str, **salon_data) -> Salon:
        salon = Salon(owner_id=owner_id, **salon_data)
        db.add(salon)
        db.commit()
        db.refresh(salon)
        return salon

    @staticmethod
    def update(db: Session, salon: Salon, **updates) -> Salon:
        for key, value in updates.items():
            if hasattr(salon, key):
                setattr(salon, key, value)
        db.commit()
        db.refresh(salon)
        return salon

    @staticmethod
    def search(
        db: Session,
        q: Optional[str] = None,
        city: Optional[str] = None,
        min_rating: Optional[float] = None,
        sort: str = "rating",
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Salon], int]:
        query = db.query(Salon).filter(Salon.is_active.is_(True))
        if q:
            pattern = _like_pattern(q)
            query = query.filter(
                or_(
                    Salon.business_name.ilike(pattern, escape="\\"),
                    Salon.description.ilike(pattern, escape="\\"),
                    Salon.city.ilike(pattern, escape="\\"),
                )
            )
        if city:
            query = query.filter(Salon.city.ilike(_like_pattern(city), escape="\\"))
        if min_rating is not None:
            query = query.filter(Salon.rating_average >= min_rating)

        total = query.count()
        salons = query.order_by(SORT_COLUMNS.get(sort, SORT_COLUMNS["rating"])).offset(offset).limit(limit).all()
        return salons, total

    @staticmethod
    def get_popular(db: Session, limit: int = 10) -> list[Salon]:
        return (
            db.query(Salon)
            .filter(Salon.is_active.is_(True))
            .order_by(Salon.rating_average.desc(), Salon.rating_count.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_active_with_coordinates(db: Session) -> list[Salon]:
        return (
            db.query(Salon)
            .filter(
                Salon.is_active.is_(True),
                Salon.latitude.isnot(None),
                Salon.longitude.isnot(None),
            )
            .all()
        )

    @staticmethod
    def get_active_services(db: Session, salon_id: str) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.salon_id == salon_id, Service.is_active.is_(True))
            .order_by(Service.name.asc())
            .all()
        )

    @staticmethod
    def get_clients(db: Session, salon_id: str) -> list[tuple[UserProfile, int]]:
        """Distinct clients who booked at the salon, with their booking count"""
        return (
            db.query(UserProfile, func.count(Booking.id))
            .join(Booking, Booking.client_id == UserProfile.id)
            .filter(Booking.salon_id == salon_id)
            .group_by(UserProfile.id)
            .order_by(func.count(Booking.id).desc())
            .all()
        )

    @staticmethod
    def get_popular_filtered(db: Session, min_rating: float, min_reviews: int, limit: Optional[int] = None) -> list[Salon]:
        return (
            db.query(Salon)
            .filter(
                Salon.is_active.is_(True),
                Salon.rating_average >= min_rating,
                Salon.rating_count >= min_reviews,
            )
            .order_by(Salon.rating_average.desc(), Salon.rating_count.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_recommendation_candidates(db: Session) -> list[Salon]:
        return (
            db.query(Salon)
            .options(selectinload(Salon.services).joinedload(Service.category))
            .filter(Salon.is_active.is_(True))
            .all()
        )

    @staticmethod
    def get_completed_bookings_for_client(db: Session, client_id: str) -> list[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.salon), joinedload(Booking.service).joinedload(Service.category))
            .filter(Booking.client_id == client_id, Booking.status == "completed")
            .all()
        )

    # ------------------------------------------------------------------
    # Activity tracking
    # ------------------------------------------------------------------

    @staticmethod
    def add_view(db: Session, salon_id: str, user_id: Optional[str] = None, **metadata) -> SalonView:
        view = SalonView(salon_id=salon_id, user_id=user_id, **metadata)
        db.add(view)
        return view

    @staticmethod
    def count_recent_activity(db: Session, salon_id: str, since: datetime) -> tuple[int, int, int]:
        """Views, bookings and favorites created since the given time"""
        views = db.query(func.count(SalonView.id)).filter(
            SalonView.salon_id == salon_id, SalonView.viewed_at >= since
        ).scalar()
        bookings = db.query(func.count(Booking.id)).filter(
            Booking.salon_id == salon_id, Booking.created_at >= since
        ).scalar()
        favorites = db.query(func.count(UserFavorite.id)).filter(
            UserFavorite.salon_id == salon_id, UserFavorite.created_at >= since
        ).scalar()
        return views or 0, bookings or 0, favorites or 0


class StripeAccountRepository:
    """Repository for connected Stripe account records"""

    @staticmethod
    def get_by_account_id(db: Session, stripe_account_id: str) -> Optional[StripeAccount]:
        return db.query(StripeAccount).filter(StripeAccount.stripe_account_id == stripe_account_id).first()

    @staticmethod
    def get_by_salon(db: Session, salon_id: str) -> Optional[StripeAccount]:
        return db.query(StripeAccount).filter(StripeAccount.salon_id == salon_id).first()

    @staticmethod
    def create(db: Session, salon_id: str, stripe_account_id: str, **data) -> StripeAccount:
        account = StripeAccount(salon_id=salon_id, stripe_account_id=stripe_account_id, **data)
        db.add(account)
        db.commit()
        db.refresh(account)
        return account
