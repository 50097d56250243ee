import logging

from fastapi import APIRouter, Depends, HTTPException, status

from shortener.config import settings
from shortener.routers.deps import get_current_user
from shortener.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MeResponse,
    OtpDispatchResponse,
    RegisterInitiateRequest,
    RegisterVerifyRequest,
    ResetPasswordRequest,
)
from shortener.schemas.links import MessageResponse
from shortener.services.email import send_otp
from shortener.services.otp import otp_store
from shortener.services.tokens import AccessTokenData, TokenError, create_access_token
from shortener.services.users import (
    AccountBannedError,
    AuthError,
    hash_password,
    user_store,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_token(user_entry) -> AuthResponse:
    try:
        token = create_access_token(user_entry.id, user_entry.email, user_entry.role)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return AuthResponse(token=token, user=user_store.to_public(user_entry))


@router.post("/register/initiate", response_model=OtpDispatchResponse)
def register_initiate(payload: RegisterInitiateRequest) -> OtpDispatchResponse:
    if payload.role == "admin":
        if not settings.admin_secret_key:
            LOGGER.error("ADMIN_SECRET_KEY is not configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Admin registration not configured",
            )
        if payload.admin_secret_key != settings.admin_secret_key:
            LOGGER.warning("Invalid admin secret key attempt for %s", payload.email)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid admin secret key",
            )
    if user_store.exists(payload.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )
    record = otp_store.issue(
        payload.email,
        "register",
        meta={
            "name": payload.name,
            "password_hash": hash_password(payload.password),
            "role": payload.role or "user",
        },
    )
    delivery = send_otp(payload.email, record.code, "register")
    return OtpDispatchResponse(message="Registration code sent", mode=delivery.mode)


@router.post("/register/verify", response_model=AuthResponse)
def register_verify(payload: RegisterVerifyRequest) -> AuthResponse:
    record = otp_store.find_valid(payload.email, "register", payload.code)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired code",
        )
    name = record.meta.get("name")
    password_hash = record.meta.get("password_hash")
    if not name or not password_hash:
        otp_store.consume(record.id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Registration data missing",
        )
    try:
        user_entry = user_store.create_user(
            name, payload.email, password_hash, record.meta.get("role") or "user"
        )
    except AuthError as exc:
        otp_store.consume(record.id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    otp_store.consume(record.id)
    return _issue_token(user_entry)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest) -> AuthResponse:
    try:
        user_entry = user_store.authenticate(payload.email, payload.password)
    except AccountBannedError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(exc),
        ) from exc
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    if user_entry.role == "admin":
        LOGGER.info("Admin logged in: %s", user_entry.email)
    return _issue_token(user_entry)


@router.post("/forgot-password", response_model=OtpDispatchResponse)
def forgot_password(payload: ForgotPasswordRequest) -> OtpDispatchResponse:
    if not user_store.exists(payload.email):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Email not found",
        )
    record = otp_store.issue(payload.email, "reset")
    delivery = send_otp(payload.email, record.code, "reset")
    return OtpDispatchResponse(message="Reset code sent", mode=delivery.mode)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest) -> MessageResponse:
    record = otp_store.find_valid(payload.email, "reset", payload.code)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired code",
        )
    updated = user_store.set_password(payload.email, payload.new_password)
    otp_store.consume(record.id)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return MessageResponse(message="Password reset successful")


@router.get("/me", response_model=MeResponse)
def me(current: AccessTokenData = Depends(get_current_user)) -> MeResponse:
    user_entry = user_store.get_user(current.user_id)
    if user_entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return MeResponse(user=user_store.to_public(user_entry))
