from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .clock import Clock, utcnow
from .config import DEV_JWT_SECRET, Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.account_service import AccountService
from ..domain.errors import AccountError, Internal
from ..domain.ports.persistence import AccountRepository
from ..infrastructure.persistence.memory import InMemoryAccountStore
from ..infrastructure.persistence.sqlite import SQLiteAccountStore
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import dashboard as dashboard_router
from ..presentation.api.routers import user_router
from ..services.email_service import EmailService, Notifier
from ..services.news_service import NewsService
from ..services.password_hasher import PasswordHasher
from ..services.token_service import SessionTokenService
from ..services.weather_service import WeatherService

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Farmdesk", lifespan=_create_lifespan(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router.router)
    app.include_router(user_router.router)
    app.include_router(dashboard_router.router)
    _register_exception_handlers(app)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def build_container(
    settings: Settings,
    *,
    clock: Clock = utcnow,
    notifier: Optional[Notifier] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ApplicationContainer:
    """Construct every service the routes depend on. The caller owns ``aclose``."""
    store: AccountRepository
    if settings.account_store == "memory":
        store = InMemoryAccountStore(clock=clock)
    else:
        store = SQLiteAccountStore(settings.database_path, clock=clock)

    secret = settings.resolve_jwt_secret()
    if secret == DEV_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; using the development secret. Never do this in production.")
    tokens = SessionTokenService(
        jwt_secret=secret,
        jwt_algorithm=settings.jwt_algorithm,
        expiration_days=settings.session_token_days,
    )

    notifier = notifier or EmailService()
    account_service = AccountService(
        repository=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        tokens=tokens,
        notifier=notifier,
        frontend_base_url=settings.frontend_base_url,
        api_base_url=settings.public_api_url,
        reset_token_minutes=settings.reset_token_minutes,
        clock=clock,
    )

    http_client = http_client or httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)
    weather_service = WeatherService(
        http_client,
        settings.weather_api_key,
        api_url=settings.weather_api_url,
        cache_seconds=settings.weather_cache_seconds,
    )
    news_service = NewsService(
        http_client,
        settings.gnews_api_key,
        api_url=settings.gnews_api_url,
        cache_seconds=settings.news_cache_seconds,
    )

    return ApplicationContainer(
        settings=settings,
        account_store=store,
        notifier=notifier,
        account_service=account_service,
        http_client=http_client,
        weather_service=weather_service,
        news_service=news_service,
    )


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        container = build_container(settings)
        app.state.container = container  # type: ignore[attr-defined]
        logger.info("Farmdesk started (env=%s, store=%s)", settings.app_env, settings.account_store)
        try:
            yield
        finally:
            await container.aclose()

    return lifespan


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccountError)
    async def handle_account_error(request: Request, exc: AccountError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            fields = [str(part) for part in first.get("loc", ()) if part != "body"]
            message = f"{'.'.join(fields)}: {first.get('msg')}" if fields else str(first.get("msg"))
        return JSONResponse({"error": message}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = Internal()
        return JSONResponse({"error": error.message}, status_code=error.status_code)
