"""Pydantic schemas for account API endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from farmdesk.domain.models.account import Account


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request fields default to empty so the account service reports missing
# values with its own messages.


class SignupRequest(CamelModel):
    """Request schema for signup."""

    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(CamelModel):
    """Request schema for login."""

    email: str = ""
    password: str = ""


class EmailRequest(CamelModel):
    """Request schema for forgot-password and resend-verification."""

    email: str = ""


class ResetPasswordRequest(CamelModel):
    token: str = ""
    password: str = ""


class OnboardingRequest(CamelModel):
    """Request schema for onboarding completion."""

    state: str = ""
    district: str = ""
    crops: List[str] = []


class LocationResponse(CamelModel):
    state: str
    district: str


class AccountResponse(CamelModel):
    """Public profile of an account. Never carries the password hash or tokens."""

    id: str
    name: str
    email: str
    is_verified: bool
    is_onboarded: bool
    location: Optional[LocationResponse] = None
    crops: List[str] = []

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        location = None
        if account.location:
            location = LocationResponse(
                state=account.location.state, district=account.location.district
            )
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            is_verified=account.is_verified,
            is_onboarded=account.is_onboarded,
            location=location,
            crops=account.crops,
        )


class MessageResponse(CamelModel):
    message: str


class AuthResponse(CamelModel):
    """Response schema for signup and login."""

    message: str
    token: str
    account: AccountResponse


class AccountEnvelope(CamelModel):
    account: AccountResponse


class OnboardingResponse(CamelModel):
    message: str
    account: AccountResponse
