"""Auth request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str
    password: str
    display_name: Optional[str] = None
    class_id: str


class LoginRequest(BaseModel):
    email: str
    password: str
    class_id: Optional[str] = None
    captcha_token: Optional[str] = None
    captcha_answer: Optional[str] = None


class MagicLinkRequest(BaseModel):
    email: str
    display_name: Optional[str] = None
    class_id: Optional[str] = None


class VerifyRequest(BaseModel):
    token: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RegisterResponse(BaseModel):
    message: str
    access_token: Optional[str] = None
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    message: str


class CaptchaResponse(BaseModel):
    captcha_token: str
    question: str


class PasswordCheckRequest(BaseModel):
    password: str = Field("", max_length=256)


class PasswordStrengthResponse(BaseModel):
    score: int
    label: str
    feedback: list[str]
    is_strong: bool


class UserResponse(BaseModel):
    id: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    class_id: Optional[str] = None
    created_at: str


class SessionResponse(BaseModel):
    user: dict
    expires_at: Optional[str] = None
