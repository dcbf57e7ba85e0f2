"""Authentication routes: register, login, current user, profile."""

import time

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from glasscase.auth import create_access_token, current_user_id, verify_password
from glasscase.config import settings
from glasscase.services import user_service

# ── Login rate limiting ──────────────────────────────────────────────────────
# Track failed login attempts per IP: {ip: [timestamp, ...]}
_login_attempts: dict[str, list[float]] = {}
_RATE_LIMIT_WINDOW = 15 * 60  # 15 minutes
_RATE_LIMIT_MAX = 5  # max failures before lockout


def _check_rate_limit(ip: str) -> None:
    """Raise 429 if this IP has too many recent failed login attempts."""
    now = time.monotonic()
    attempts = [t for t in _login_attempts.get(ip, []) if now - t < _RATE_LIMIT_WINDOW]
    _login_attempts[ip] = attempts
    if len(attempts) >= _RATE_LIMIT_MAX:
        raise HTTPException(
            status_code=429,
            detail="Too many failed login attempts. Try again later.",
        )


def _record_failed_attempt(ip: str) -> None:
    _login_attempts.setdefault(ip, []).append(time.monotonic())


def _clear_attempts(ip: str) -> None:
    _login_attempts.pop(ip, None)


router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)
    full_name: str | None = Field(default=None, max_length=120)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, max_length=120)


class AuthResponse(BaseModel):
    token: str
    expires_in_days: int
    user_id: int


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str | None = None
    created_at: str


def _auth_response(user_id: int) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user_id),
        expires_in_days=settings.token_expiry_days,
        user_id=user_id,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(req: RegisterRequest):
    """Create an account and receive a JWT token."""
    try:
        user = await user_service.create_user(req.email, req.password, req.full_name)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _auth_response(user["id"])


@router.post("/login", response_model=AuthResponse)
async def login(req: LoginRequest, request: Request):
    """Authenticate with email and password and receive a JWT token."""
    client_ip = request.client.host if request.client else "unknown"
    _check_rate_limit(client_ip)

    user = await user_service.get_user_by_email(req.email)
    if user is None or not verify_password(req.password, user["password_hash"]):
        _record_failed_attempt(client_ip)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    _clear_attempts(client_ip)
    return _auth_response(user["id"])


@router.get("/me", response_model=UserResponse)
async def me(user_id: int = Depends(current_user_id)):
    """Return the authenticated user's account."""
    user = await user_service.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    return user


@router.put("/profile", response_model=UserResponse)
async def update_profile(req: ProfileUpdate, user_id: int = Depends(current_user_id)):
    """Set the display name shown on shared collections."""
    full_name = (req.full_name or "").strip() or None
    user = await user_service.update_profile(user_id, full_name)
    if user is None:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    return user
