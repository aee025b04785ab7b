"""Account domain model for farmer authentication and onboarding."""

from datetime import datetime, timezone
from typing import List, Optional


class Location:
    """Where a farmer's fields are, captured during onboarding."""

    def __init__(self, state: str, district: str):
        self.state = state
        self.district = district

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return self.state == other.state and self.district == other.district

    def __repr__(self) -> str:
        return f"<Location state={self.state} district={self.district}>"


class Account:
    """
    Account entity for a single farmer.

    Attributes:
        id: Opaque unique identifier
        email: Login email, stored trimmed and lower-cased (unique)
        password_hash: bcrypt hash of the password
        name: Display name
        is_verified: Whether the email address has been confirmed
        verification_token: Single-use token, present only while unverified
        reset_token: Single-use password reset token
        reset_token_expires_at: Absolute expiry of the reset token
        is_onboarded: Whether location and crops have been captured
        location: State and district, set by onboarding
        crops: Selected crops, set by onboarding
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: str,
        email: str,
        password_hash: str,
        name: str,
        is_verified: bool = False,
        verification_token: Optional[str] = None,
        reset_token: Optional[str] = None,
        reset_token_expires_at: Optional[datetime] = None,
        is_onboarded: bool = False,
        location: Optional[Location] = None,
        crops: Optional[List[str]] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.email = email
        self.password_hash = password_hash
        self.name = name
        self.is_verified = is_verified
        self.verification_token = verification_token
        self.reset_token = reset_token
        self.reset_token_expires_at = reset_token_expires_at
        self.is_onboarded = is_onboarded
        self.location = location
        self.crops = list(crops) if crops else []
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or self.created_at

    def __repr__(self) -> str:
        return (
            f"<Account id={self.id} email={self.email} "
            f"verified={self.is_verified} onboarded={self.is_onboarded}>"
        )
