from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from ..models import Account

# Fields an update may touch. id, email and created_at are immutable.
UPDATABLE_FIELDS = frozenset(
    {
        "password_hash",
        "name",
        "is_verified",
        "verification_token",
        "reset_token",
        "reset_token_expires_at",
        "is_onboarded",
        "location",
        "crops",
    }
)


class AccountRepository(Protocol):
    """Abstract storage for farmer accounts.

    Every operation is atomic with respect to a single account. ``create``
    enforces email uniqueness itself, so callers never need a separate
    read-then-write to guard against duplicate signups.
    """

    def create(self, account: Account) -> Account:
        """Persist a new account. Raises ``Conflict`` if the email is taken."""
        ...

    def find_by_email(self, email: str) -> Optional[Account]:
        ...

    def find_by_id(self, account_id: str) -> Optional[Account]:
        ...

    def find_by_verification_token(self, token: str) -> Optional[Account]:
        ...

    def find_by_reset_token(self, token: str) -> Optional[Account]:
        """Return the account only while its reset token is unexpired."""
        ...

    def update(self, account_id: str, changes: Mapping[str, Any]) -> Account:
        """Merge ``changes`` and refresh ``updated_at``.

        A ``None`` value clears an optional field. Raises ``NotFound`` for an
        unknown id and ``ValueError`` for a field outside ``UPDATABLE_FIELDS``.
        """
        ...

    def close(self) -> None:
        ...


def check_update_fields(changes: Mapping[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update account fields: {', '.join(sorted(unknown))}")
