"""Thin wrapper around the TMDb API used by the catalog import."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.config import get_settings


logger = logging.getLogger(__name__)


class TMDbError(Exception):
    """Raised when TMDb is unreachable, misconfigured or answers with an error."""


class TMDbCategory(str, enum.Enum):
    POPULAR = "popular"
    TOP_RATED = "top_rated"
    UPCOMING = "upcoming"
    NOW_PLAYING = "now_playing"


@dataclass
class TMDbPage:
    items: list[dict[str, Any]] = field(default_factory=list)
    total_results: int = 0
    total_pages: int = 0


class TMDbClient:
    """Simple TMDb HTTP client using API key auth."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        image_base: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.tmdb_api_key
        self.base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self.image_base = (image_base or settings.tmdb_image_base).rstrip("/")
        self.timeout = timeout or settings.tmdb_timeout
        self.transport = transport

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> Any:
        if not self.api_key:
            raise TMDbError("TMDB_API_KEY environment variable is required")
        url = f"{self.base_url}{path}"
        query = {"api_key": self.api_key}
        if params:
            query.update({k: v for k, v in params.items() if v is not None})
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = client.request(method, url, params=query)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise TMDbError(f"TMDb API error: {exc.response.status_code}") from exc
            except httpx.HTTPError as exc:
                raise TMDbError(str(exc)) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise TMDbError("TMDb returned a non-JSON body") from exc

    def fetch_category_page(self, category: TMDbCategory, page: int = 1) -> TMDbPage:
        """Fetch one page of movie summaries for a TMDb list category."""

        payload = self._request("GET", f"/movie/{category.value}", params={"page": page})
        logger.debug("TMDb %s page %s payload: %s", category.value, page, payload)
        return TMDbPage(
            items=list(payload.get("results") or []),
            total_results=payload.get("total_results") or 0,
            total_pages=payload.get("total_pages") or 0,
        )

    def fetch_movie_detail(self, tmdb_id: int) -> dict[str, Any]:
        """Fetch details plus credits; an empty dict stands in for any failure."""

        try:
            return self._request(
                "GET",
                f"/movie/{tmdb_id}",
                params={"append_to_response": "credits"},
            )
        except TMDbError as exc:
            logger.warning("Error fetching TMDb details for %s: %s", tmdb_id, exc)
            return {}

    def poster_url(self, path: str | None) -> str | None:
        if not path:
            return None
        return f"{self.image_base}{path}"
