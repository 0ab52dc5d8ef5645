"""
Account lookup for the document services.

The lifecycle and sharing code only ever need ``resolve(email)``; the rest of
this module is the minimal account registration and bearer-token handling that
backs ``/register``, ``/token`` and ``/me``.
"""
import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from .. import models
from ..config import settings
from ..errors import ValidationFailed

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def validate_email(email: Optional[str], what: str = "email") -> str:
    normalized = normalize_email(email)
    if not EMAIL_RE.match(normalized):
        raise ValidationFailed(f"Invalid {what} format")
    return normalized


def resolve(db: Session, email: Optional[str]) -> Optional[models.User]:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.query(models.User).filter(models.User.email == normalized).first()


def register_user(db: Session, name: str, email: str, password: str) -> models.User:
    email = validate_email(email)
    if not password:
        raise ValidationFailed("Password is required")
    if resolve(db, email):
        raise ValidationFailed("Email already registered")

    user = models.User(
        name=(name or "").strip() or email.split("@", 1)[0],
        email=email,
        hashed_password=generate_password_hash(password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.email)
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[models.User]:
    user = resolve(db, email)
    if not user or not user.hashed_password:
        return None
    if not check_password_hash(user.hashed_password, password or ""):
        return None
    return user


def issue_token(db: Session, user: models.User, ttl_minutes: Optional[int] = None) -> str:
    """
    Start a new session for ``user`` and return its bearer token.

    Each login replaces the previous token, so only the latest session stays
    valid. Tokens stop working ``ttl_minutes`` (``TOKEN_TTL_MINUTES``) after
    issue.
    """
    if ttl_minutes is None:
        ttl_minutes = settings.token_ttl_minutes
    user.api_token = secrets.token_urlsafe(32)
    user.api_token_expires_at = datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)
    db.commit()
    return user.api_token


def _expired(expires_at: Optional[datetime]) -> bool:
    if expires_at is None:
        return True
    # sqlite hands back naive values; they are stored as UTC
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= datetime.now(timezone.utc)


def user_for_token(db: Session, token: Optional[str]) -> Optional[models.User]:
    if not token:
        return None
    user = db.query(models.User).filter(models.User.api_token == token).first()
    if user is None:
        return None
    if _expired(user.api_token_expires_at):
        logger.info("Rejected expired token for user %s", user.id)
        return None
    return user
