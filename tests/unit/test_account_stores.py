"""
Contract tests run against both account store implementations.
"""
import threading
import uuid
from datetime import timedelta

import pytest

from farmdesk.domain.errors import Conflict, NotFound, Unavailable
from farmdesk.domain.models import Account, Location
from farmdesk.infrastructure.persistence.memory import InMemoryAccountStore
from farmdesk.infrastructure.persistence.sqlite import SQLiteAccountStore


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, clock, tmp_path):
    if request.param == "memory":
        store = InMemoryAccountStore(clock=clock)
    else:
        store = SQLiteAccountStore(tmp_path / "accounts.db", clock=clock)
    yield store
    store.close()


def make_account(email="a@x.com", **kwargs):
    return Account(
        id=uuid.uuid4().hex,
        email=email,
        password_hash="$2b$04$hash",
        name="Asha",
        **kwargs,
    )


class TestCreate:
    def test_create_and_find(self, repo):
        created = repo.create(make_account(verification_token="verify-me"))
        assert created.is_verified is False
        assert created.is_onboarded is False
        assert created.crops == []
        assert created.location is None

        assert repo.find_by_id(created.id).email == "a@x.com"
        assert repo.find_by_email("a@x.com").id == created.id
        assert repo.find_by_verification_token("verify-me").id == created.id

    def test_duplicate_email_conflicts(self, repo):
        repo.create(make_account())
        with pytest.raises(Conflict):
            repo.create(make_account())

    def test_email_uniqueness_ignores_case(self, repo):
        repo.create(make_account())
        with pytest.raises(Conflict):
            repo.create(make_account(email="A@X.com"))

    def test_find_by_email_ignores_case(self, repo):
        created = repo.create(make_account())
        assert repo.find_by_email("A@X.COM").id == created.id

    def test_timestamps_set_by_store(self, repo, clock):
        created = repo.create(make_account())
        assert created.created_at == clock.now
        assert created.updated_at == clock.now

    def test_caller_account_left_untouched(self, repo, clock):
        account = make_account()
        original_created_at = account.created_at
        clock.advance(days=1)

        created = repo.create(account)

        assert created.created_at == clock.now
        assert account.created_at == original_created_at
        assert account.updated_at == original_created_at

    def test_concurrent_duplicate_creates_yield_one_account(self, repo):
        emails = ["a@x.com" if i % 2 else "A@x.com" for i in range(20)]
        barrier = threading.Barrier(len(emails))
        results = []
        results_lock = threading.Lock()

        def create(email):
            barrier.wait()
            try:
                repo.create(make_account(email=email))
                outcome = "ok"
            except Conflict:
                outcome = "conflict"
            with results_lock:
                results.append(outcome)

        threads = [threading.Thread(target=create, args=(email,)) for email in emails]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("ok") == 1
        assert results.count("conflict") == len(emails) - 1
        assert repo.find_by_email("a@x.com") is not None

    def test_missing_records(self, repo):
        assert repo.find_by_id("missing") is None
        assert repo.find_by_email("nobody@x.com") is None
        assert repo.find_by_verification_token("nope") is None
        assert repo.find_by_reset_token("nope") is None


class TestUpdate:
    def test_merges_fields_and_refreshes_updated_at(self, repo, clock):
        created = repo.create(make_account(verification_token="verify-me"))
        clock.advance(minutes=5)

        updated = repo.update(created.id, {"is_verified": True, "verification_token": None})

        assert updated.is_verified is True
        assert updated.verification_token is None
        assert updated.name == "Asha"
        assert updated.created_at == created.created_at
        assert updated.updated_at == clock.now
        assert repo.find_by_verification_token("verify-me") is None

    def test_location_and_crops(self, repo):
        created = repo.create(make_account())
        updated = repo.update(
            created.id,
            {
                "location": Location(state="Punjab", district="Ludhiana"),
                "crops": ["Wheat", "Rice"],
                "is_onboarded": True,
            },
        )
        assert updated.location == Location(state="Punjab", district="Ludhiana")
        assert updated.crops == ["Wheat", "Rice"]
        assert repo.find_by_id(created.id).is_onboarded is True

    def test_unknown_id(self, repo):
        with pytest.raises(NotFound):
            repo.update("missing", {"is_verified": True})

    def test_immutable_field_rejected(self, repo):
        created = repo.create(make_account())
        with pytest.raises(ValueError):
            repo.update(created.id, {"email": "b@x.com"})

    def test_returned_records_are_detached(self, repo):
        created = repo.create(make_account())
        created.crops.append("Cotton")
        assert repo.find_by_id(created.id).crops == []


class TestResetToken:
    def _with_reset_token(self, repo, clock):
        created = repo.create(make_account())
        repo.update(
            created.id,
            {"reset_token": "reset-me", "reset_token_expires_at": clock.now + timedelta(hours=1)},
        )
        return created

    def test_found_before_expiry(self, repo, clock):
        created = self._with_reset_token(repo, clock)
        clock.advance(minutes=59)
        assert repo.find_by_reset_token("reset-me").id == created.id

    def test_not_found_after_expiry(self, repo, clock):
        self._with_reset_token(repo, clock)
        clock.advance(minutes=61)
        assert repo.find_by_reset_token("reset-me") is None

    def test_not_found_at_exact_expiry(self, repo, clock):
        self._with_reset_token(repo, clock)
        clock.advance(hours=1)
        assert repo.find_by_reset_token("reset-me") is None

    def test_token_without_expiry_is_ignored(self, repo):
        created = repo.create(make_account())
        repo.update(created.id, {"reset_token": "reset-me"})
        assert repo.find_by_reset_token("reset-me") is None

    def test_cleared_token(self, repo, clock):
        created = self._with_reset_token(repo, clock)
        repo.update(created.id, {"reset_token": None, "reset_token_expires_at": None})
        assert repo.find_by_reset_token("reset-me") is None
        assert repo.find_by_id(created.id).reset_token is None


def test_sqlite_failure_surfaces_as_unavailable(tmp_path, clock):
    store = SQLiteAccountStore(tmp_path / "accounts.db", clock=clock)
    try:
        store._conn.execute("DROP TABLE accounts")
        with pytest.raises(Unavailable):
            store.find_by_email("a@x.com")
    finally:
        store.close()
