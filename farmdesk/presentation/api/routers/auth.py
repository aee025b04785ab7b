"""API router for signup, login, email verification and password reset."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from ....application.services.account_service import AccountService
from ....core.config import Settings
from ....core.dependencies import get_account_service, get_settings
from ...api.schemas.user_schemas import (
    AccountResponse,
    AuthResponse,
    EmailRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    account_service: AccountService = Depends(get_account_service),
) -> AuthResponse:
    account, token = account_service.signup(payload.name, payload.email, payload.password)
    return AuthResponse(
        message="User created successfully.",
        token=token,
        account=AccountResponse.from_account(account),
    )


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    account_service: AccountService = Depends(get_account_service),
) -> AuthResponse:
    account, token = account_service.login(payload.email, payload.password)
    return AuthResponse(
        message="Login successful",
        token=token,
        account=AccountResponse.from_account(account),
    )


@router.get("/verify")
def verify_email(
    token: Optional[str] = Query(default=None),
    account_service: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Confirm an email address, then send the browser to the login page."""
    account_service.verify_email(token)
    return RedirectResponse(
        url=f"{settings.frontend_base_url.rstrip('/')}/login?verified=true",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@router.post("/resend-verification", response_model=MessageResponse)
def resend_verification(
    payload: EmailRequest,
    account_service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    account_service.resend_verification(payload.email)
    # Same answer whether or not the email exists
    return MessageResponse(message="If the email exists, a verification email has been sent.")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: EmailRequest,
    account_service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    account_service.forgot_password(payload.email)
    return MessageResponse(message="Password reset link sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    account_service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    account_service.reset_password(payload.token, payload.password)
    return MessageResponse(message="Password updated successfully")
