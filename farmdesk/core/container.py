from dataclasses import dataclass

import httpx

from ..application.services.account_service import AccountService
from .config import Settings
from ..domain.ports.persistence import AccountRepository
from ..services.email_service import Notifier
from ..services.news_service import NewsService
from ..services.weather_service import WeatherService


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    account_store: AccountRepository
    notifier: Notifier
    account_service: AccountService
    http_client: httpx.AsyncClient
    weather_service: WeatherService
    news_service: NewsService

    async def aclose(self) -> None:
        await self.http_client.aclose()
        self.account_store.close()
