import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)  # Supabase auth user id
    email = Column(String(255), index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    user_type = Column(String(20), default="client", nullable=False)  # client, salon_owner
    language = Column(String(10), default="en", nullable=False)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    salon = relationship("Salon", back_populates="owner", uselist=False)
    settings = relationship("UserSettings", back_populates="user", uselist=False)


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("user_profiles.id"), unique=True, nullable=False)
    language = Column(String(10), default="en", nullable=False)
    theme = Column(String(20), default="light", nullable=False)
    color_scheme = Column(String(20), default="orange", nullable=False)
    notifications_enabled = Column(Boolean, default=True, nullable=False)
    email_notifications = Column(Boolean, default=True, nullable=False)
    sms_notifications = Column(Boolean, default=False, nullable=False)
    push_notifications = Column(Boolean, default=True, nullable=False)
    booking_reminders = Column(Boolean, default=True, nullable=False)
    marketing_emails = Column(Boolean, default=False, nullable=False)
    location_sharing = Column(Boolean, default=True, nullable=False)
    data_analytics = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("UserProfile", back_populates="settings")


class Salon(Base):
    __tablename__ = "salons"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), ForeignKey("user_profiles.id"), unique=True, nullable=False)
    business_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(JSON, nullable=True)  # {street, city, state, zip_code, country}
    city = Column(String(100), nullable=True, index=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(2), nullable=True)  # ISO 3166-1 alpha-2
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)
    business_hours = Column(JSON, nullable=True)  # {monday: {opening, closing, closed}}
    amenities = Column(JSON, nullable=True)
    images = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=False, nullable=False)
    verification_status = Column(String(20), default="pending", nullable=False)
    rating_average = Column(Float, default=0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    favorite_count = Column(Integer, default=0, nullable=False)
    trending_score = Column(Float, default=0, nullable=False)  # views + 10 x bookings + 5 x favorites, last 7 days
    stripe_account_id = Column(String(255), nullable=True, index=True)
    stripe_account_status = Column(String(20), nullable=True)  # pending, active
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("UserProfile", back_populates="salon")
    services = relationship("Service", back_populates="salon")


class StripeAccount(Base):
    __tablename__ = "stripe_accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    stripe_account_id = Column(String(255), unique=True, nullable=False)
    account_status = Column(String(20), default="pending", nullable=False)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    country = Column(String(2), nullable=True)
    currency = Column(String(3), nullable=True)
    capabilities = Column(JSON, nullable=True)
    requirements = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(100), nullable=True)


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("service_categories.id"), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    salon = relationship("Salon", back_populates="services")
    category = relationship("ServiceCategory")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey("user_profiles.id"), nullable=False, index=True)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=True)
    # pending, confirmed, completed, cancelled, no_show
    status = Column(String(20), default="pending", nullable=False)
    payment_status = Column(String(20), default="pending", nullable=False)  # pending, paid, refunded
    client_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client = relationship("UserProfile")
    salon = relationship("Salon")
    service = relationship("Service")
    payment = relationship("Payment", back_populates="booking", uselist=False)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="EUR", nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, completed, failed, refunded
    payment_method = Column(String(50), nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)
    stripe_checkout_session_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    booking = relationship("Booking", back_populates="payment")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey("user_profiles.id"), nullable=False, index=True)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), unique=True, nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    is_visible = Column(Boolean, default=True, nullable=False)
    owner_reply = Column(Text, nullable=True)
    owner_reply_at = Column(DateTime(timezone=True), nullable=True)
    # Moderation results
    ai_analyzed = Column(Boolean, default=False, nullable=False)
    ai_flag_type = Column(String(50), nullable=True)
    ai_confidence = Column(Float, nullable=True)
    ai_notes = Column(Text, nullable=True)
    human_reviewed = Column(Boolean, default=False, nullable=False)
    human_review_notes = Column(Text, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)  # soft delete by author
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client = relationship("UserProfile")
    salon = relationship("Salon")
    booking = relationship("Booking")


class ReviewReport(Base):
    __tablename__ = "review_reports"
    __table_args__ = (UniqueConstraint("review_id", "reporter_id", name="uq_review_reporter"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    review_id = Column(String(36), ForeignKey("reviews.id"), nullable=False, index=True)
    reporter_id = Column(String(36), ForeignKey("user_profiles.id"), nullable=True)  # null for system reports
    reportee_id = Column(String(36), ForeignKey("user_profiles.id"), nullable=False)
    # spam, harassment, inappropriate, fake, hateful, suicidal, other
    reason = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, reviewed, resolved, dismissed
    ai_flagged = Column(Boolean, default=False, nullable=False)
    ai_flag_reason = Column(Text, nullable=True)
    human_action_required = Column(Boolean, default=False, nullable=False)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    review = relationship("Review")


class UserFavorite(Base):
    __tablename__ = "user_favorites"
    __table_args__ = (UniqueConstraint("user_id", "salon_id", name="uq_user_favorite"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("user_profiles.id"), nullable=False, index=True)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    salon = relationship("Salon")
    user = relationship("UserProfile")


class SalonView(Base):
    __tablename__ = "salon_views"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("user_profiles.id"), nullable=True)  # null for anonymous visitors
    session_id = Column(String(100), nullable=True)
    source = Column(String(50), default="unknown", nullable=False)
    device_type = Column(String(50), default="unknown", nullable=False)
    viewed_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
