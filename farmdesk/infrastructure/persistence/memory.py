import copy
import threading
from typing import Any, Dict, Mapping, Optional

from ...core.clock import Clock, utcnow
from ...domain.errors import Conflict, NotFound
from ...domain.models import Account
from ...domain.ports.persistence import AccountRepository, check_update_fields


class InMemoryAccountStore(AccountRepository):
    """Process-local account repository, used for tests and throwaway runs.

    Records are copied in and out so callers never hold a live reference to
    stored state.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._accounts: Dict[str, Account] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def close(self) -> None:
        with self._lock:
            self._accounts.clear()

    def create(self, account: Account) -> Account:
        with self._lock:
            email = account.email.lower()
            if any(existing.email.lower() == email for existing in self._accounts.values()):
                raise Conflict()
            stored = copy.deepcopy(account)
            stored.created_at = stored.updated_at = self._clock()
            self._accounts[stored.id] = stored
            return copy.deepcopy(stored)

    def find_by_id(self, account_id: str) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(account_id)
            return copy.deepcopy(account) if account else None

    def find_by_email(self, email: str) -> Optional[Account]:
        email = email.strip().lower()
        return self._find(lambda account: account.email.lower() == email)

    def find_by_verification_token(self, token: str) -> Optional[Account]:
        return self._find(lambda account: account.verification_token == token)

    def find_by_reset_token(self, token: str) -> Optional[Account]:
        now = self._clock()
        return self._find(
            lambda account: account.reset_token == token
            and account.reset_token_expires_at is not None
            and account.reset_token_expires_at > now
        )

    def update(self, account_id: str, changes: Mapping[str, Any]) -> Account:
        check_update_fields(changes)
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise NotFound()
            for field, value in copy.deepcopy(dict(changes)).items():
                if field == "crops":
                    value = list(value or [])
                setattr(account, field, value)
            account.updated_at = self._clock()
            return copy.deepcopy(account)

    def _find(self, predicate) -> Optional[Account]:
        with self._lock:
            for account in self._accounts.values():
                if predicate(account):
                    return copy.deepcopy(account)
        return None
