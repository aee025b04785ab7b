from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.account_service import AccountService
from ...core.dependencies import get_account_service
from ...domain.models import Account

_bearer_scheme = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[str]:
    """Raw bearer token, or None when the header is missing or not a bearer scheme."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    return credentials.credentials


def require_account(
    token: Optional[str] = Depends(get_bearer_token),
    account_service: AccountService = Depends(get_account_service),
) -> Account:
    return account_service.get_current_account(token)


def require_session_token(
    token: Optional[str] = Depends(get_bearer_token),
    account_service: AccountService = Depends(get_account_service),
) -> str:
    """Bearer token that has already passed verification."""
    account_service.authorize(token)
    return token  # type: ignore[return-value]
