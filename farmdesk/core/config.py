import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

DEV_JWT_SECRET = "dev-only-insecure-secret-do-not-deploy"


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.app_env = os.getenv("APP_ENV", "development").lower()
        self.account_store = os.getenv("ACCOUNT_STORE", "sqlite").lower()
        if self.account_store not in ("sqlite", "memory"):
            raise RuntimeError("ACCOUNT_STORE must be 'sqlite' or 'memory'")
        database_path = os.getenv("DATABASE_PATH", "data/farmdesk.db")
        # ":memory:" is a sqlite keyword, not a file name
        self.database_path: Union[Path, str] = (
            database_path if database_path == ":memory:" else Path(database_path).resolve()
        )

        self.jwt_secret = os.getenv("JWT_SECRET") or None
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.session_token_days = self._get_int("SESSION_TOKEN_DAYS", default=7)
        self.reset_token_minutes = self._get_int("RESET_TOKEN_MINUTES", default=60)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12)

        self.frontend_base_url = os.getenv("FRONTEND_BASE_URL", "http://localhost:3000")
        self.public_api_url = os.getenv("PUBLIC_API_URL", "http://localhost:8000")
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = [self.frontend_base_url]

        self.weather_api_key = os.getenv("WEATHERAPI_KEY") or None
        self.weather_api_url = os.getenv("WEATHERAPI_URL", "http://api.weatherapi.com/v1/current.json")
        self.weather_cache_seconds = self._get_int("WEATHER_CACHE_SECONDS", default=30 * 60)
        self.gnews_api_key = os.getenv("GNEWS_API_KEY") or None
        self.gnews_api_url = os.getenv("GNEWS_API_URL", "https://gnews.io/api/v4/search")
        self.news_cache_seconds = self._get_int("NEWS_CACHE_SECONDS", default=5 * 60 * 60)
        self.upstream_timeout_seconds = self._get_int("UPSTREAM_TIMEOUT_SECONDS", default=10)

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def resolve_jwt_secret(self) -> str:
        """Return the signing secret, refusing to fall back to the dev secret in production."""
        if self.jwt_secret:
            return self.jwt_secret
        if self.is_production:
            raise RuntimeError("Missing required environment variable: JWT_SECRET")
        return DEV_JWT_SECRET

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
