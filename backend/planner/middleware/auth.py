"""JWT authentication middleware and dependencies."""

from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from planner.config import settings
from planner.database import get_db
from planner.models.user import Profile, User

security = HTTPBearer()

ACCESS_PURPOSE = "access"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt directly (passlib is broken with bcrypt>=4.1)."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(pwd_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against a bcrypt hash; link-only accounts never match."""
    if not hashed_password:
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def create_access_token(data: dict, expires_minutes: int | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode.update({"exp": expire})
    to_encode.setdefault("purpose", ACCESS_PURPOSE)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str, purpose: str = ACCESS_PURPOSE) -> dict:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    if payload.get("purpose", ACCESS_PURPOSE) != purpose:
        raise HTTPException(status_code=401, detail="Invalid token purpose")
    return payload


def _user_from_payload(payload: dict, db: Session) -> User:
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_token_payload(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    return decode_token(credentials.credentials)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    return _user_from_payload(decode_token(credentials.credentials), db)


def get_user_from_query_token(
    token: str = Query(..., description="JWT access token (EventSource cannot set headers)"),
    db: Session = Depends(get_db),
) -> User:
    return _user_from_payload(decode_token(token), db)


def require_profile(current_user: User = Depends(get_current_user)) -> Profile:
    """The caller's profile; its ``class_id`` is the class every request is scoped to."""
    if not current_user.profile:
        raise HTTPException(status_code=403, detail="Join a class before continuing")
    return current_user.profile


optional_security = HTTPBearer(auto_error=False)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_security),
    db: Session = Depends(get_db),
) -> User | None:
    """The signed-in user, or None for anonymous requests and bad tokens."""
    if credentials is None:
        return None
    try:
        return _user_from_payload(decode_token(credentials.credentials), db)
    except HTTPException:
        return None
