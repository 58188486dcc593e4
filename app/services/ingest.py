"""Import TMDb list pages into the movie catalog."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db import MovieRepository
from app.services.errors import InvalidArgument
from app.services.models import ImportResult, MovieData
from app.services.tmdb import TMDbCategory, TMDbClient

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "No description available"
DEFAULT_RELEASE_YEAR = 2000
DEFAULT_DURATION_MINUTES = 120
FEATURED_SCORE = 8.0
CAST_LIMIT = 10

movies = MovieRepository()


def _release_year(raw: str | None) -> int:
    if not raw:
        return DEFAULT_RELEASE_YEAR
    try:
        return int(raw[:4])
    except ValueError:
        return DEFAULT_RELEASE_YEAR


def _director(credits: dict[str, Any]) -> str:
    for member in credits.get("crew") or []:
        if member.get("job") == "Director" and member.get("name"):
            return member["name"]
    return "Unknown"


def _cast(credits: dict[str, Any]) -> list[str]:
    names = [person.get("name") for person in credits.get("cast") or [] if person.get("name")]
    return names[:CAST_LIMIT]


def _box_office(revenue: int | None) -> str:
    return f"${revenue:,}" if revenue else ""


def build_movie_data(
    summary: dict[str, Any],
    details: dict[str, Any],
    *,
    client: TMDbClient,
    settings: Settings | None = None,
) -> MovieData:
    """Map a TMDb list item plus its (possibly empty) details onto the catalog shape.

    Anything TMDb leaves out falls back to a placeholder so one sparse item
    never stops an import.
    """

    settings = settings or get_settings()
    credits = details.get("credits") or {}
    countries = details.get("production_countries") or []
    vote_average = summary.get("vote_average") or 0
    return MovieData(
        title=summary.get("title") or details.get("title") or "Untitled",
        description=summary.get("overview") or DEFAULT_DESCRIPTION,
        genres=[genre["name"] for genre in details.get("genres") or [] if genre.get("name")],
        release_year=_release_year(summary.get("release_date")),
        duration_minutes=details.get("runtime") or DEFAULT_DURATION_MINUTES,
        content_rating="R" if details.get("adult") else "PG-13",
        score=float(vote_average),
        thumbnail_url=client.poster_url(summary.get("poster_path")) or settings.placeholder_poster_url,
        video_url=settings.placeholder_video_url,
        trailer_url=settings.placeholder_trailer_url,
        cast=_cast(credits),
        director=_director(credits),
        featured=vote_average > FEATURED_SCORE,
        language=details.get("original_language") or "en",
        country=countries[0].get("name") if countries else "Unknown",
        awards=details.get("awards") or "",
        box_office=_box_office(details.get("revenue")),
        tmdb_id=summary.get("id"),
        imdb_id=details.get("imdb_id") or "",
    )


def import_category(
    session: Session,
    *,
    category: TMDbCategory = TMDbCategory.POPULAR,
    page: int = 1,
    client: TMDbClient | None = None,
) -> ImportResult:
    """Insert every movie on a TMDb list page that the catalog does not hold yet.

    Items are processed one by one and committed as they land, so a failure
    part-way leaves earlier inserts in place; re-running skips them by TMDb id.
    Failing to fetch the list page itself raises ``TMDbError``.
    """

    if page < 1:
        raise InvalidArgument("page must be at least 1")
    client = client or TMDbClient()
    listing = client.fetch_category_page(category, page)

    imported: list[MovieData] = []
    for summary in listing.items:
        tmdb_id = summary.get("id") if isinstance(summary, dict) else None
        if not isinstance(tmdb_id, int) or isinstance(tmdb_id, bool):
            logger.warning("Skipping TMDb item without a numeric id: %r", summary)
            continue
        if movies.get_by_tmdb_id(session, tmdb_id):
            logger.debug("TMDb movie %s already in catalog", tmdb_id)
            continue

        details = client.fetch_movie_detail(tmdb_id)
        if not details:
            logger.warning("Importing TMDb movie %s with summary fields only", tmdb_id)
        try:
            movie_data = build_movie_data(summary, details, client=client)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed TMDb movie %s: %s", tmdb_id, exc)
            continue
        if movies.create_unique(session, **movie_data.as_fields()) is None:
            logger.info("TMDb movie %s was inserted concurrently, skipping", tmdb_id)
            continue
        session.commit()
        imported.append(movie_data)

    logger.info(
        "Imported %d of %d TMDb %s movies from page %d",
        len(imported),
        len(listing.items),
        category.value,
        page,
    )
    return ImportResult(
        movies=imported,
        total_results=listing.total_results,
        total_pages=listing.total_pages,
        current_page=page,
    )
