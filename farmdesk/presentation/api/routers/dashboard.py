"""Weather and news lookups rendered on the farmer dashboard."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ....core.dependencies import get_news_service, get_weather_service
from ....services.news_service import NewsService, parse_crop_terms
from ....services.providers import ProviderResult
from ....services.weather_service import WeatherService

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/weather")
async def weather(
    district: str = Query(default=""),
    state: str = Query(default=""),
    refresh: bool = Query(default=False),
    weather_service: WeatherService = Depends(get_weather_service),
) -> JSONResponse:
    result = await weather_service.current(district, state, refresh=refresh)
    return _render(result)


@router.get("/news")
async def news(
    crops: str = Query(default="", description="Crop names joined by ' OR '"),
    state: str = Query(default=""),
    refresh: bool = Query(default=False),
    news_service: NewsService = Depends(get_news_service),
) -> JSONResponse:
    result = await news_service.latest(parse_crop_terms(crops), state, refresh=refresh)
    return _render(result)


def _render(result: ProviderResult) -> JSONResponse:
    return JSONResponse(
        content=result.payload,
        status_code=result.status_code,
        headers={"X-Cache": "HIT" if result.from_cache else "MISS"},
    )
