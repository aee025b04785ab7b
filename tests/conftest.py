from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Tuple

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from farmdesk.application.services.account_service import AccountService
from farmdesk.core.app_factory import build_container, create_application
from farmdesk.core.config import Settings
from farmdesk.infrastructure.persistence.memory import InMemoryAccountStore
from farmdesk.services.password_hasher import PasswordHasher
from farmdesk.services.token_service import SessionTokenService

TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


class FakeClock:
    """Manually advanced UTC clock for reset-token expiry tests."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    """Captures outgoing links instead of emailing them."""

    def __init__(self):
        self.verifications: List[Tuple[str, str]] = []
        self.resets: List[Tuple[str, str]] = []
        self.fail_with = None
        self.deliver = True

    def send_verification_email(self, to_email: str, verification_url: str) -> bool:
        self._maybe_fail()
        self.verifications.append((to_email, verification_url))
        return self.deliver

    def send_password_reset_email(self, to_email: str, reset_url: str) -> bool:
        self._maybe_fail()
        self.resets.append((to_email, reset_url))
        return self.deliver

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with


class Upstream:
    """httpx.MockTransport stand-in for WeatherAPI and GNews."""

    def __init__(self):
        self.calls: List[httpx.Request] = []
        self.handlers: Dict[str, Callable[[httpx.Request], httpx.Response]] = {
            "api.weatherapi.com": lambda request: httpx.Response(200, json=WEATHER_BODY),
            "gnews.io": lambda request: httpx.Response(200, json=NEWS_BODY),
        }
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self.handlers[request.url.host](request)

    def calls_to(self, host: str) -> List[httpx.Request]:
        return [request for request in self.calls if request.url.host == host]


WEATHER_BODY = {
    "location": {"name": "Ludhiana", "region": "Punjab", "country": "India"},
    "current": {
        "temp_c": 31.6,
        "feelslike_c": 34.2,
        "humidity": 48,
        "wind_kph": 18.0,
        "is_day": 1,
        "last_updated": "2026-10-19 14:30",
        "condition": {"text": "Sunny", "icon": "//cdn.weatherapi.com/weather/64x64/day/113.png"},
    },
}

NEWS_BODY = {
    "totalArticles": 2,
    "articles": [
        {
            "title": "Wheat procurement opens early in Punjab",
            "description": "Mandis prepare for the rabi harvest.",
            "url": "https://news.example.com/wheat",
            "image": "https://news.example.com/wheat.jpg",
            "publishedAt": "2026-10-18T06:00:00Z",
            "source": {"name": "Agri Times"},
        },
        {
            "title": "Monsoon retreat leaves soil moisture high",
            "description": "Good news for paddy growers.",
            "url": "https://news.example.com/monsoon",
            "image": None,
            "publishedAt": "2026-10-17T09:00:00Z",
            "source": {"name": "Krishi Daily"},
        },
    ],
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store(clock) -> InMemoryAccountStore:
    return InMemoryAccountStore(clock=clock)


@pytest.fixture
def tokens() -> SessionTokenService:
    return SessionTokenService(jwt_secret=TEST_JWT_SECRET)


@pytest.fixture
def account_service(store, tokens, notifier, clock) -> AccountService:
    return AccountService(
        repository=store,
        hasher=PasswordHasher(rounds=4),
        tokens=tokens,
        notifier=notifier,
        frontend_base_url="http://frontend.test",
        api_base_url="http://api.test",
        clock=clock,
    )


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture(params=["memory", "sqlite"])
def settings(request, monkeypatch, tmp_path) -> Settings:
    """HTTP scenarios run once per account store backend."""
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("ACCOUNT_STORE", request.param)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "farmdesk.db"))
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("FRONTEND_BASE_URL", "http://frontend.test")
    monkeypatch.setenv("PUBLIC_API_URL", "http://testserver")
    monkeypatch.setenv("WEATHERAPI_KEY", "weather-key")
    monkeypatch.setenv("GNEWS_API_KEY", "news-key")
    return Settings()


@pytest_asyncio.fixture
async def container(settings, clock, notifier, upstream):
    http_client = httpx.AsyncClient(transport=upstream.transport)
    container = build_container(settings, clock=clock, notifier=notifier, http_client=http_client)
    yield container
    await container.aclose()


@pytest_asyncio.fixture
async def client(settings, container):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh container.
    The lifespan is bypassed; the container is attached directly.
    """
    app = create_application(settings)
    app.state.container = container
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest_asyncio.fixture
async def signed_up(client):
    """Factory: sign up through the API and return (token, account json)."""

    async def _signup(
        name: str = "Asha", email: str = "a@x.com", password: str = "secret1"
    ) -> Tuple[str, dict]:
        resp = await client.post(
            "/api/auth/signup",
            json={"name": name, "email": email, "password": password},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["token"], body["account"]

    return _signup
