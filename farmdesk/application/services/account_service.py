from __future__ import annotations

import logging
import secrets
import uuid
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from ...core.clock import Clock, utcnow
from ...domain.errors import (
    InvalidCredentials,
    InvalidOrExpiredToken,
    NotFound,
    Unauthorized,
    ValidationError,
)
from ...domain.models import Account, Location
from ...domain.ports.persistence import AccountRepository
from ...services.email_service import Notifier
from ...services.password_hasher import PasswordHasher
from ...services.token_service import InvalidTokenError, SessionTokenService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# bcrypt only reads the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 60


class AccountService:
    """Signup, login, email verification, password reset and onboarding.

    Every operation validates its inputs before the repository is touched and
    reports failures through the ``farmdesk.domain.errors`` taxonomy.
    """

    def __init__(
        self,
        repository: AccountRepository,
        hasher: PasswordHasher,
        tokens: SessionTokenService,
        notifier: Notifier,
        frontend_base_url: str,
        api_base_url: str,
        reset_token_minutes: int = 60,
        clock: Clock = utcnow,
    ) -> None:
        self._repository = repository
        self._hasher = hasher
        self._tokens = tokens
        self._notifier = notifier
        self._frontend_base_url = frontend_base_url.rstrip("/")
        self._api_base_url = api_base_url.rstrip("/")
        self._reset_token_minutes = reset_token_minutes
        self._clock = clock
        # compared against on unknown emails so login cost does not reveal them
        self._dummy_hash = hasher.hash(secrets.token_urlsafe(16))

    # ------------------------------------------------------------------
    def signup(self, name: str, email: str, password: str) -> Tuple[Account, str]:
        """Create an unverified account and return it with a session token."""
        name_clean = _validate_name(name)
        email_clean = _validate_email(email)
        _validate_new_password(password)

        account = Account(
            id=uuid.uuid4().hex,
            email=email_clean,
            password_hash=self._hasher.hash(password),
            name=name_clean,
            verification_token=secrets.token_urlsafe(32),
        )
        created = self._repository.create(account)
        logger.info("Created account %s", created.id)

        self._dispatch_verification(created)
        return created, self._issue_session(created)

    def login(self, email: str, password: str) -> Tuple[Account, str]:
        email_clean = _validate_email(email)
        if not password:
            raise ValidationError("Password is required")

        account = self._repository.find_by_email(email_clean)
        if not account:
            self._hasher.verify(password, self._dummy_hash)
            raise InvalidCredentials()
        if not self._hasher.verify(password, account.password_hash):
            raise InvalidCredentials()
        return account, self._issue_session(account)

    def verify_email(self, token: Optional[str]) -> Account:
        if not token:
            raise ValidationError("Missing token")
        account = self._repository.find_by_verification_token(token)
        if not account:
            raise InvalidOrExpiredToken()
        logger.info("Verified email for account %s", account.id)
        return self._repository.update(
            account.id, {"is_verified": True, "verification_token": None}
        )

    def resend_verification(self, email: str) -> Optional[str]:
        """Issue a fresh verification token.

        Returns None, without saying why, when the email is unknown or already
        verified.
        """
        email_clean = _validate_email(email)
        account = self._repository.find_by_email(email_clean)
        if not account or account.is_verified:
            return None

        token = secrets.token_urlsafe(32)
        account = self._repository.update(account.id, {"verification_token": token})
        self._dispatch_verification(account)
        return token

    def forgot_password(self, email: str) -> str:
        """Start a password reset and return the reset token."""
        email_clean = _validate_email(email)
        account = self._repository.find_by_email(email_clean)
        if not account:
            raise NotFound("No account found with this email")

        token = secrets.token_hex(32)
        expires_at = self._clock() + timedelta(minutes=self._reset_token_minutes)
        self._repository.update(
            account.id, {"reset_token": token, "reset_token_expires_at": expires_at}
        )
        logger.info("Issued password reset token for account %s", account.id)

        reset_url = f"{self._frontend_base_url}/reset-password?token={token}"
        self._dispatch(self._notifier.send_password_reset_email, account.email, reset_url)
        return token

    def reset_password(self, token: str, password: str) -> Account:
        if not token:
            raise ValidationError("Token is required")
        _validate_new_password(password)

        account = self._repository.find_by_reset_token(token)
        if not account:
            raise InvalidOrExpiredToken("Invalid or expired reset token")

        logger.info("Password reset for account %s", account.id)
        return self._repository.update(
            account.id,
            {
                "password_hash": self._hasher.hash(password),
                "reset_token": None,
                "reset_token_expires_at": None,
            },
        )

    def complete_onboarding(
        self,
        session_token: Optional[str],
        state: str,
        district: str,
        crops: Iterable[str],
    ) -> Account:
        account_id = self.authorize(session_token)

        state_clean = (state or "").strip()
        if not state_clean:
            raise ValidationError("State is required")
        district_clean = (district or "").strip()
        if not district_clean:
            raise ValidationError("District is required")
        crop_list = _clean_crops(crops)
        if not crop_list:
            raise ValidationError("At least one crop is required")

        account = self._repository.update(
            account_id,
            {
                "location": Location(state=state_clean, district=district_clean),
                "crops": crop_list,
                "is_onboarded": True,
            },
        )
        logger.info("Account %s completed onboarding", account.id)
        return account

    def get_current_account(self, session_token: Optional[str]) -> Account:
        account = self._repository.find_by_id(self.authorize(session_token))
        if not account:
            raise Unauthorized("User not found")
        return account

    # ------------------------------------------------------------------
    def authorize(self, session_token: Optional[str]) -> str:
        """Return the account id carried by a valid session token."""
        if not session_token:
            raise Unauthorized()
        try:
            claims: Dict[str, Any] = self._tokens.verify(session_token)
        except InvalidTokenError as exc:
            raise Unauthorized("Invalid Token") from exc
        account_id = claims.get("sub")
        if not account_id or not isinstance(account_id, str):
            raise Unauthorized("Invalid Token Payload")
        return account_id

    def _issue_session(self, account: Account) -> str:
        return self._tokens.issue({"sub": account.id, "email": account.email})

    def _dispatch_verification(self, account: Account) -> None:
        if not account.verification_token:
            return
        verification_url = f"{self._api_base_url}/api/auth/verify?token={account.verification_token}"
        self._dispatch(self._notifier.send_verification_email, account.email, verification_url)

    @staticmethod
    def _dispatch(send, to_email: str, url: str) -> None:
        # Delivery is best effort; the calling operation has already succeeded.
        try:
            delivered = send(to_email, url)
        except Exception:
            logger.exception("Notifier raised while emailing %s", to_email)
            return
        if not delivered:
            logger.warning("Could not deliver email to %s", to_email)


def _validate_name(name: str) -> str:
    name_clean = (name or "").strip()
    if len(name_clean) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if len(name_clean) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name cannot be more than {MAX_NAME_LENGTH} characters")
    return name_clean


def _validate_email(email: str) -> str:
    email_clean = (email or "").strip()
    if not email_clean:
        raise ValidationError("Email is required")
    try:
        validate_email(email_clean, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError("Invalid email address") from exc
    return email_clean.lower()


def _validate_new_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")


def _clean_crops(crops: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for crop in crops or []:
        crop_clean = (crop or "").strip()
        if crop_clean and crop_clean not in seen:
            seen.append(crop_clean)
    return seen
