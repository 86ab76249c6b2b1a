"""Auth router — registration, sign-in methods, session and CAPTCHA."""

import math

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from planner.database import get_db
from planner.errors import PlannerError
from planner.middleware.auth import get_current_user, get_token_payload
from planner.middleware.rate_limit import limiter
from planner.models.user import User
from planner.schemas.auth import (
    CaptchaResponse,
    LoginRequest,
    MagicLinkRequest,
    MessageResponse,
    PasswordCheckRequest,
    PasswordStrengthResponse,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
    TokenResponse,
    UserResponse,
    VerifyRequest,
)
from planner.services import auth_service
from planner.services.captcha import captcha_store
from planner.services.password_strength import check_password_strength, strength_label
from planner.services.rate_limiter import rate_limiter

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _client(request: Request) -> tuple[str | None, str | None]:
    return request.headers.get("user-agent"), request.client.host if request.client else None


def _check_attempts(email: str) -> None:
    result = rate_limiter.check(f"auth:{email.strip().lower()}")
    if not result.allowed:
        seconds = math.ceil(result.reset_in / 1000)
        raise HTTPException(
            status_code=429,
            detail=f"Too many attempts. Please try again in {seconds} seconds.",
        )


def _auth_http_error(e: PlannerError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=auth_service.friendly_auth_error(e.message))


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit("20/minute")
def register(request: Request, req: RegisterRequest, db: Session = Depends(get_db)):
    """Create a password account in a class."""
    _check_attempts(req.email)
    user_agent, ip = _client(request)
    try:
        result = auth_service.sign_up(db, req.email, req.password, req.display_name, req.class_id,
                                      user_agent=user_agent, ip_address=ip)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PlannerError as e:
        raise _auth_http_error(e)
    return RegisterResponse(message=result["message"], access_token=result["access_token"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit("20/minute")
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    """Password sign-in. After a failed attempt the next one must carry a solved CAPTCHA."""
    email = req.email.strip().lower()
    _check_attempts(email)

    if captcha_store.is_required(email):
        ok, err = captcha_store.verify(req.captcha_token, req.captcha_answer)
        if not ok:
            raise HTTPException(status_code=400, detail=err)

    user_agent, ip = _client(request)
    try:
        _, token = auth_service.sign_in_with_password(db, email, req.password, req.class_id,
                                                      user_agent=user_agent, ip_address=ip)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PlannerError as e:
        if auth_service.INVALID_CREDENTIALS in e.message:
            captcha_store.require(email)
        raise _auth_http_error(e)

    captcha_store.clear(email)
    return TokenResponse(access_token=token)


@router.post("/magic-link", response_model=MessageResponse)
@limiter.limit("10/minute")
def magic_link(request: Request, req: MagicLinkRequest, db: Session = Depends(get_db)):
    """Email a one-time sign-in link."""
    _check_attempts(req.email)
    try:
        auth_service.sign_in_with_otp(db, req.email, req.display_name, req.class_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PlannerError as e:
        raise _auth_http_error(e)
    return MessageResponse(message="Check your email for the magic link!")


@router.post("/verify", response_model=TokenResponse)
def verify(request: Request, req: VerifyRequest, db: Session = Depends(get_db)):
    """Exchange a confirmation or magic-link token for an access token."""
    user_agent, ip = _client(request)
    try:
        _, token = auth_service.verify_link(db, req.token, user_agent=user_agent, ip_address=ip)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PlannerError as e:
        raise _auth_http_error(e)
    return TokenResponse(access_token=token)


@router.get("/captcha", response_model=CaptchaResponse)
def captcha():
    token, challenge = captcha_store.issue()
    return CaptchaResponse(captcha_token=token, question=f"What is {challenge.question}?")


@router.post("/password-strength", response_model=PasswordStrengthResponse)
def password_strength(req: PasswordCheckRequest):
    result = check_password_strength(req.password)
    return PasswordStrengthResponse(
        score=result.score,
        label=strength_label(result.score),
        feedback=result.feedback,
        is_strong=result.is_strong,
    )


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current user info."""
    profile = current_user.profile
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        display_name=profile.display_name if profile else None,
        avatar_url=profile.avatar_url if profile else None,
        class_id=profile.class_id if profile else None,
        created_at=current_user.created_at.isoformat(),
    )


@router.get("/session", response_model=SessionResponse)
def get_session(
    current_user: User = Depends(get_current_user),
    payload: dict = Depends(get_token_payload),
):
    return SessionResponse(**auth_service.get_session(current_user, payload))


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    auth_service.sign_out(db, current_user, user_agent=request.headers.get("user-agent"))
    return MessageResponse(message="Signed out")
