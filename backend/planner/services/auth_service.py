"""Auth service — accounts, sign-in methods and profile bootstrap.

Sign-in flows raise ``AuthError`` carrying one of the raw auth messages
(``Invalid login credentials``, ``Email not confirmed``, ``User already
registered``); ``friendly_auth_error`` turns those into display strings.
Links (confirmation and magic link) are delivered by logging them.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from planner.config import settings
from planner.errors import AuthError, Conflict
from planner.middleware.auth import create_access_token, decode_token, hash_password, verify_password
from planner.models.user import Profile, User
from planner.services import audit, class_service
from planner.services.password_strength import check_password_strength

logger = logging.getLogger(__name__)

MAGIC_LINK_PURPOSE = "magic_link"

INVALID_CREDENTIALS = "Invalid login credentials"
EMAIL_NOT_CONFIRMED = "Email not confirmed"
ALREADY_REGISTERED = "User already registered"

FRIENDLY_MESSAGES = {
    INVALID_CREDENTIALS: "Invalid email or password. If you just signed up, please confirm your email first.",
    EMAIL_NOT_CONFIRMED: "Please confirm your email address before logging in.",
    ALREADY_REGISTERED: "This email is already registered. Please sign in instead.",
}


def friendly_auth_error(message: str) -> str:
    for raw, friendly in FRIENDLY_MESSAGES.items():
        if raw in (message or ""):
            return friendly
    return message


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def access_token_for(user: User) -> str:
    return create_access_token({"sub": user.id, "email": user.email})


def ensure_profile(
    db: Session,
    user_id: str,
    email: str,
    display_name: Optional[str] = None,
    class_id: Optional[str] = None,
) -> Profile:
    """Create the user's profile if missing; display name defaults to the email's local part."""
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile:
        return profile
    if not class_id:
        raise ValueError("Please enter your class code.")
    class_service.get_class(db, class_id)

    profile = Profile(
        id=user_id,
        class_id=class_id,
        display_name=(display_name or "").strip() or email.split("@")[0],
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info("Created profile for %s in class %s", user_id, class_id)
    return profile


def _ensure_profile_from_metadata(db: Session, user: User, class_id: Optional[str] = None) -> Profile:
    meta = user.metadata_dict
    return ensure_profile(
        db, user.id, user.email, meta.get("display_name"), class_id or meta.get("class_id")
    )


def issue_link_token(user: User) -> str:
    token = create_access_token(
        {"sub": user.id, "purpose": MAGIC_LINK_PURPOSE},
        expires_minutes=settings.MAGIC_LINK_EXPIRE_MINUTES,
    )
    logger.info("Sign-in link for %s: %s/auth/verify?token=%s", user.email, settings.PUBLIC_BASE_URL, token)
    return token


def sign_up(
    db: Session,
    email: str,
    password: str,
    display_name: Optional[str],
    class_id: str,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> dict:
    """Create a password account.

    Returns ``{"user", "access_token", "message"}``; ``access_token`` is None
    while the account awaits email confirmation.
    """
    if not check_password_strength(password).is_strong:
        raise ValueError("Password is too weak. Please use a stronger password.")

    email = _normalize_email(email)
    if db.query(User).filter(User.email == email).first():
        raise Conflict(ALREADY_REGISTERED)
    class_service.get_class(db, class_id)

    user = User(
        email=email,
        password_hash=hash_password(password),
        user_metadata=json.dumps({"display_name": display_name, "class_id": class_id}),
        confirmed_at=None if settings.REQUIRE_EMAIL_CONFIRMATION else datetime.now(timezone.utc),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    if settings.REQUIRE_EMAIL_CONFIRMATION:
        issue_link_token(user)
        return {"user": user, "access_token": None, "message": "Check your email for the confirmation link!"}

    ensure_profile(db, user.id, email, display_name, class_id)
    audit.log_audit_event(db, "user_signup", user.id, "auth", user.id,
                          user_agent=user_agent, ip_address=ip_address)
    return {"user": user, "access_token": access_token_for(user), "message": "Account created successfully!"}


def sign_in_with_password(
    db: Session,
    email: str,
    password: str,
    class_id: Optional[str] = None,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> tuple[User, str]:
    user = db.query(User).filter(User.email == _normalize_email(email)).first()
    if not user or not verify_password(password, user.password_hash):
        raise AuthError(INVALID_CREDENTIALS)
    if user.confirmed_at is None:
        raise AuthError(EMAIL_NOT_CONFIRMED)

    _ensure_profile_from_metadata(db, user, class_id)
    audit.log_audit_event(db, "user_login", user.id, "auth", user.id,
                          user_agent=user_agent, ip_address=ip_address)
    return user, access_token_for(user)


def sign_in_with_otp(
    db: Session,
    email: str,
    display_name: Optional[str] = None,
    class_id: Optional[str] = None,
) -> str:
    """Send a one-time sign-in link, creating a link-only account on first use."""
    email = _normalize_email(email)
    if not email or "@" not in email:
        raise ValueError("Please enter a valid email address.")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        if class_id:
            class_service.get_class(db, class_id)
        user = User(
            email=email,
            user_metadata=json.dumps({"display_name": display_name, "class_id": class_id}),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    return issue_link_token(user)


def verify_link(
    db: Session,
    token: str,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> tuple[User, str]:
    """Consume a confirmation or magic link; confirms the account and signs in."""
    try:
        payload = decode_token(token, purpose=MAGIC_LINK_PURPOSE)
    except HTTPException:
        raise AuthError("Email link is invalid or has expired")

    user = db.query(User).filter(User.id == payload.get("sub")).first()
    if not user:
        raise AuthError("Email link is invalid or has expired")

    if user.confirmed_at is None:
        user.confirmed_at = datetime.now(timezone.utc)
        db.commit()

    _ensure_profile_from_metadata(db, user)
    audit.log_audit_event(db, "user_login", user.id, "auth", user.id,
                          user_agent=user_agent, ip_address=ip_address)
    return user, access_token_for(user)


def get_session(user: User, payload: dict) -> dict:
    exp = payload.get("exp")
    return {
        "user": {"id": user.id, "email": user.email},
        "expires_at": datetime.fromtimestamp(exp, tz=timezone.utc).isoformat() if exp else None,
    }


def sign_out(db: Session, user: User, user_agent: Optional[str] = None) -> None:
    # Tokens are stateless: the client drops its token, we only record the event.
    audit.log_audit_event(db, "session_revoked", user.id, "session", user.id, user_agent=user_agent)
