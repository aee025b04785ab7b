import copy
import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ...core.clock import Clock, utcnow
from ...domain.errors import Conflict, NotFound, Unavailable
from ...domain.models import Account, Location
from ...domain.ports.persistence import AccountRepository, check_update_fields


class SQLiteAccountStore(AccountRepository):
    """SQLite-backed implementation of the account repository."""

    def __init__(self, path: Union[Path, str], clock: Clock = utcnow) -> None:
        if str(path) != ":memory:":
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._clock = clock
        self._initialize()

    def _initialize(self) -> None:
        with self._lock, self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    password_hash TEXT NOT NULL,
                    name TEXT NOT NULL,
                    is_verified INTEGER NOT NULL DEFAULT 0,
                    verification_token TEXT UNIQUE,
                    reset_token TEXT UNIQUE,
                    reset_token_expires_at TEXT,
                    is_onboarded INTEGER NOT NULL DEFAULT 0,
                    location_state TEXT,
                    location_district TEXT,
                    crops TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    def close(self) -> None:
        self._conn.close()

    # AccountRepository API --------------------------------------------------
    def create(self, account: Account) -> Account:
        account = copy.deepcopy(account)
        now = self._clock()
        account.created_at = now
        account.updated_at = now
        row = self._to_row(account)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    f"INSERT INTO accounts ({columns}) VALUES ({placeholders})",
                    tuple(row.values()),
                )
        except sqlite3.IntegrityError as exc:
            if "accounts.email" in str(exc):
                raise Conflict() from exc
            raise
        except sqlite3.OperationalError as exc:
            raise Unavailable("Account store unavailable") from exc
        return self.find_by_id(account.id)  # type: ignore[return-value]

    def find_by_id(self, account_id: str) -> Optional[Account]:
        return self._find_one("id = ?", (account_id,))

    def find_by_email(self, email: str) -> Optional[Account]:
        return self._find_one("email = ?", (email.strip(),))

    def find_by_verification_token(self, token: str) -> Optional[Account]:
        return self._find_one("verification_token = ?", (token,))

    def find_by_reset_token(self, token: str) -> Optional[Account]:
        account = self._find_one("reset_token = ?", (token,))
        if not account or not account.reset_token_expires_at:
            return None
        if account.reset_token_expires_at <= self._clock():
            return None
        return account

    def update(self, account_id: str, changes: Mapping[str, Any]) -> Account:
        check_update_fields(changes)
        values: Dict[str, Any] = {}
        for field, value in changes.items():
            if field == "location":
                values["location_state"] = value.state if value else None
                values["location_district"] = value.district if value else None
            elif field == "crops":
                values["crops"] = json.dumps(list(value or []), ensure_ascii=False)
            elif field in ("is_verified", "is_onboarded"):
                values[field] = int(bool(value))
            elif field == "reset_token_expires_at":
                values[field] = value.isoformat() if value else None
            else:
                values[field] = value
        values["updated_at"] = self._clock().isoformat()

        assignments = ", ".join(f"{column} = ?" for column in values)
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    f"UPDATE accounts SET {assignments} WHERE id = ?",
                    (*values.values(), account_id),
                )
        except sqlite3.OperationalError as exc:
            raise Unavailable("Account store unavailable") from exc
        if cur.rowcount == 0:
            raise NotFound()
        return self.find_by_id(account_id)  # type: ignore[return-value]

    # helpers ----------------------------------------------------------------
    def _find_one(self, where: str, params: Tuple[Any, ...]) -> Optional[Account]:
        try:
            with self._lock:
                cur = self._conn.execute(f"SELECT * FROM accounts WHERE {where} LIMIT 1", params)
                row = cur.fetchone()
        except sqlite3.OperationalError as exc:
            raise Unavailable("Account store unavailable") from exc
        return self._row_to_account(row) if row else None

    @staticmethod
    def _to_row(account: Account) -> Dict[str, Any]:
        return {
            "id": account.id,
            "email": account.email,
            "password_hash": account.password_hash,
            "name": account.name,
            "is_verified": int(account.is_verified),
            "verification_token": account.verification_token,
            "reset_token": account.reset_token,
            "reset_token_expires_at": (
                account.reset_token_expires_at.isoformat() if account.reset_token_expires_at else None
            ),
            "is_onboarded": int(account.is_onboarded),
            "location_state": account.location.state if account.location else None,
            "location_district": account.location.district if account.location else None,
            "crops": json.dumps(account.crops, ensure_ascii=False),
            "created_at": account.created_at.isoformat(),
            "updated_at": account.updated_at.isoformat(),
        }

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> Account:
        location = None
        if row["location_state"] is not None:
            location = Location(state=row["location_state"], district=row["location_district"])
        reset_expiry = None
        if row["reset_token_expires_at"]:
            reset_expiry = datetime.fromisoformat(row["reset_token_expires_at"])
        crops: List[str] = json.loads(row["crops"] or "[]")
        return Account(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            name=row["name"],
            is_verified=bool(row["is_verified"]),
            verification_token=row["verification_token"],
            reset_token=row["reset_token"],
            reset_token_expires_at=reset_expiry,
            is_onboarded=bool(row["is_onboarded"]),
            location=location,
            crops=crops,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
