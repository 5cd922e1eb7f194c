import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .errors import AppError
from .models import UserProfile

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def verify_supabase_token(token: str) -> dict:
    """
    Verify a Supabase access token (HS256, signed with the project JWT secret).
    Returns the decoded claims.
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise AppError("Authentication is not configured", 500, "AUTH_NOT_CONFIGURED")

    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise AppError("Invalid token", 401, "INVALID_TOKEN")

    try:
        return jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Token expired")
        raise AppError("Token expired", 401, "TOKEN_EXPIRED") from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {str(e)}")
        raise AppError("Invalid token", 401, "INVALID_TOKEN") from e


def _get_or_create_profile(claims: dict, db: Session) -> UserProfile:
    """Find the profile for the token subject, creating it on first sight"""
    user_id = claims.get("sub")
    if not user_id:
        logger.error(f"❌ Token missing sub claim. Available claims: {list(claims.keys())}")
        raise AppError("Invalid token", 401, "INVALID_TOKEN")

    user = db.query(UserProfile).filter(UserProfile.id == user_id).first()
    if user:
        return user

    metadata = claims.get("user_metadata") or {}
    first_name = metadata.get("first_name")
    last_name = metadata.get("last_name")
    full_name = metadata.get("full_name") or " ".join(p for p in (first_name, last_name) if p) or None

    logger.info(f"🆕 Creating profile for new user: {claims.get('email')}")
    user = UserProfile(
        id=user_id,
        email=claims.get("email") or "",
        first_name=first_name,
        last_name=last_name,
        full_name=full_name,
        phone=claims.get("phone") or metadata.get("phone"),
        avatar_url=metadata.get("avatar_url"),
        user_type=metadata.get("user_type") if metadata.get("user_type") in ("client", "salon_owner") else "client",
        language=metadata.get("language") or "en",
    )
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
    except IntegrityError:
        # Concurrent first request created the row already
        db.rollback()
        user = db.query(UserProfile).filter(UserProfile.id == user_id).first()
        if not user:
            raise
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> UserProfile:
    """Get current user from the Supabase bearer token"""
    if not credentials or not credentials.credentials:
        raise AppError("Access token is required", 401, "NO_TOKEN")

    claims = verify_supabase_token(credentials.credentials)
    user = _get_or_create_profile(claims, db)
    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[UserProfile]:
    """Same as get_current_user, but anonymous requests and unusable tokens resolve to None"""
    if not credentials or not credentials.credentials:
        return None
    try:
        claims = verify_supabase_token(credentials.credentials)
        return _get_or_create_profile(claims, db)
    except AppError as e:
        logger.debug(f"🔓 Ignoring unusable token on public route: {e.code}")
        return None

