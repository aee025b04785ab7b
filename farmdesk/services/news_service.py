"""Agriculture news for a farmer's crops and state, via GNews."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from farmdesk.core.clock import Clock, utcnow
from farmdesk.services.providers import ProviderResult, TTLCache

logger = logging.getLogger(__name__)

DEFAULT_GNEWS_URL = "https://gnews.io/api/v4/search"


def parse_crop_terms(raw: Optional[str]) -> List[str]:
    """Split a ``"Wheat OR Rice"`` query parameter into crop terms."""
    if not raw:
        return []
    return [term.strip() for term in raw.split(" OR ") if term.strip()]


def build_query(crops: Sequence[str], state: str = "") -> str:
    if crops:
        return f"{' OR '.join(crops)} agriculture India"
    if state:
        return f"{state} agriculture farming"
    return "India agriculture farming news"


class NewsService:
    """Proxies GNews search with a time-based cache."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        api_url: str = DEFAULT_GNEWS_URL,
        cache_seconds: int = 18000,
        max_articles: int = 10,
        clock: Clock = utcnow,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._api_url = api_url
        self._max_articles = max_articles
        self._cache: TTLCache[Dict[str, Any]] = TTLCache(cache_seconds)
        self._clock = clock

    async def latest(
        self, crops: Sequence[str] = (), state: str = "", refresh: bool = False
    ) -> ProviderResult:
        """
        Fetch recent articles matching the crops, or the state when no crops are given.

        Failures never raise; they come back with an empty ``articles`` list
        and an ``error`` message.
        """
        if not self._api_key:
            return ProviderResult(
                {"error": "GNews API key not configured", "articles": [], "count": 0},
                status_code=503,
            )

        crop_list = [crop.strip() for crop in crops if crop and crop.strip()]
        query = build_query(crop_list, (state or "").strip())
        if not refresh:
            cached = self._cache.get(query)
            if cached is not None:
                return ProviderResult(cached, from_cache=True)

        try:
            response = await self._client.get(
                self._api_url,
                params={
                    "q": query,
                    "country": "in",
                    "lang": "en",
                    "max": self._max_articles,
                    "token": self._api_key,
                },
            )
        except httpx.HTTPError as exc:
            logger.warning("News lookup for %r failed: %s", query, exc)
            return ProviderResult(
                {"error": "Failed to fetch news", "articles": [], "count": 0},
                status_code=503,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_error:
            errors = data.get("errors") or []
            logger.warning("GNews returned %s for %r: %s", response.status_code, query, errors)
            return ProviderResult(
                {
                    "articles": [],
                    "query": query,
                    "error": errors[0] if errors else "GNews API error",
                    "count": 0,
                    "cachedAt": self._clock().isoformat(),
                }
            )

        articles = [_shape_article(item, crop_list) for item in data.get("articles") or []]
        payload = {
            "articles": articles,
            "query": query,
            "cropsSearched": crop_list,
            "count": len(articles),
            "source": "GNews",
            "cachedAt": self._clock().isoformat(),
        }
        self._cache.set(query, payload)
        return ProviderResult(payload)


def _shape_article(item: Dict[str, Any], crops: Sequence[str]) -> Dict[str, Any]:
    title = item.get("title") or ""
    description = item.get("description") or ""
    haystack = f"{title}\n{description}".lower()
    matched = next((crop for crop in crops if crop.lower() in haystack), None)
    return {
        "title": item.get("title"),
        "description": item.get("description"),
        "source": (item.get("source") or {}).get("name"),
        "url": item.get("url"),
        "imageUrl": item.get("image"),
        "publishedAt": item.get("publishedAt"),
        "matchedCrop": matched,
    }
