"""API router for the signed-in farmer's own account."""

import pydantic
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError

from farmdesk.application.services.account_service import AccountService
from farmdesk.core.dependencies import get_account_service
from farmdesk.domain.errors import ValidationError
from farmdesk.domain.models.account import Account
from farmdesk.presentation.api.dependencies import require_account, require_session_token
from farmdesk.presentation.api.schemas.user_schemas import (
    AccountEnvelope,
    AccountResponse,
    OnboardingRequest,
    OnboardingResponse,
)

router = APIRouter(prefix="/api/user", tags=["user"])


@router.post(
    "/onboarding",
    response_model=OnboardingResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": OnboardingRequest.model_json_schema()}},
        }
    },
)
async def complete_onboarding(
    request: Request,
    token: str = Depends(require_session_token),
    account_service: AccountService = Depends(get_account_service),
) -> OnboardingResponse:
    """Record location and crops. The body is only read once the token checks out."""
    try:
        raw = await request.json()
    except ValueError as exc:
        raise ValidationError("Invalid JSON body") from exc
    try:
        payload = OnboardingRequest.model_validate(raw)
    except pydantic.ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    account = await run_in_threadpool(
        account_service.complete_onboarding,
        token,
        payload.state,
        payload.district,
        payload.crops,
    )
    return OnboardingResponse(
        message="Onboarding completed",
        account=AccountResponse.from_account(account),
    )


@router.get("/me", response_model=AccountEnvelope)
def get_profile(account: Account = Depends(require_account)) -> AccountEnvelope:
    return AccountEnvelope(account=AccountResponse.from_account(account))
