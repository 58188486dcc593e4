"""Catalog browsing: index selection, post-filters, ranking and recommendations.

Every list operation here is deterministic for a given catalog snapshot
except ``search``, whose ordering belongs to the title search in
``MovieRepository`` and is passed through untouched.
"""

from __future__ import annotations

import base64
import binascii
import enum
import json
import logging
from datetime import date
from typing import Any, Iterable

from sqlalchemy.orm import Session

from app.db import (
    CatalogIndex,
    MovieRepository,
    RatingRepository,
    WatchlistRepository,
    WatchProgressRepository,
)
from app.models import Movie
from app.services.errors import InvalidArgument
from app.services.models import CatalogPage, MovieDetail

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 10
TRENDING_LIMIT = 20
TRENDING_WINDOW_YEARS = 3
TRENDING_MIN_SCORE = 7.0
TOP_RATED_LIMIT = 20
GENRE_LIMIT = 20
SEARCH_LIMIT = 20
RECOMMENDATION_LIMIT = 10
RECOMMENDATION_SCORE_DISTANCE = 1.5

movies = MovieRepository()
watchlist = WatchlistRepository()
ratings = RatingRepository()
progress = WatchProgressRepository()


class SortMode(str, enum.Enum):
    NONE = "none"
    SCORE = "score"
    YEAR = "year"


def select_index(sort_by: SortMode) -> CatalogIndex:
    """Map a sort mode onto the index that serves it."""

    if sort_by is SortMode.SCORE:
        return CatalogIndex.SCORE
    if sort_by is SortMode.YEAR:
        return CatalogIndex.YEAR
    return CatalogIndex.NATURAL


def _index_key(index: CatalogIndex, movie: Movie) -> Any:
    if index is CatalogIndex.SCORE:
        return movie.score
    if index is CatalogIndex.YEAR:
        return movie.release_year
    return movie.id


def encode_cursor(index: CatalogIndex, movie: Movie) -> str:
    payload = json.dumps([index.value, _index_key(index, movie), movie.id])
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(index: CatalogIndex, cursor: str) -> tuple[Any, int]:
    """Return the (key, id) position a cursor points after."""

    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii"))
        index_name, key, last_id = json.loads(raw)
    except (binascii.Error, UnicodeError, ValueError, TypeError) as exc:
        raise InvalidArgument("cursor is malformed") from exc
    if index_name != index.value or not isinstance(last_id, int):
        raise InvalidArgument("cursor does not belong to this sort order")
    return key, last_id


def post_filter(
    page: Iterable[Movie],
    *,
    min_score: float | None = None,
    min_year: int | None = None,
    max_year: int | None = None,
) -> list[Movie]:
    """Apply the optional range filters to an already-fetched page."""

    kept = []
    for movie in page:
        if min_score is not None and movie.score < min_score:
            continue
        if min_year is not None and movie.release_year < min_year:
            continue
        if max_year is not None and movie.release_year > max_year:
            continue
        kept.append(movie)
    return kept


def list_catalog(
    session: Session,
    *,
    num_items: int,
    cursor: str | None = None,
    sort_by: SortMode = SortMode.NONE,
    min_score: float | None = None,
    min_year: int | None = None,
    max_year: int | None = None,
) -> CatalogPage:
    """Page through the catalog in index order, filtering each page after the fetch.

    Range filters are not pushed into the index scan, so a page can hold
    fewer than ``num_items`` movies (even none) while later pages still have
    matches. Callers keep following ``continue_cursor`` until ``is_done``.
    """

    if num_items < 1:
        raise InvalidArgument("num_items must be at least 1")
    index = select_index(sort_by)
    after = decode_cursor(index, cursor) if cursor else None
    fetched, has_more = movies.page_by_index(session, index, limit=num_items, after=after)
    next_cursor = encode_cursor(index, fetched[-1]) if fetched else cursor
    return CatalogPage(
        page=post_filter(fetched, min_score=min_score, min_year=min_year, max_year=max_year),
        continue_cursor=next_cursor,
        is_done=not has_more,
    )


def get_featured(session: Session) -> list[Movie]:
    return movies.list_featured(session, limit=FEATURED_LIMIT)


def trending(catalog: Iterable[Movie], *, year: int) -> list[Movie]:
    recent = [
        movie
        for movie in catalog
        if movie.release_year >= year - TRENDING_WINDOW_YEARS
        and movie.score >= TRENDING_MIN_SCORE
    ]
    recent.sort(key=lambda movie: movie.score, reverse=True)
    return recent[:TRENDING_LIMIT]


def get_trending(session: Session, *, today: date | None = None) -> list[Movie]:
    """Well-scored movies from the last few release years, best first."""

    today = today or date.today()
    return trending(movies.scan_all(session), year=today.year)


def get_top_rated(session: Session) -> list[Movie]:
    return movies.list_by_score_desc(session, limit=TOP_RATED_LIMIT)


def get_by_genre(session: Session, genre: str) -> list[Movie]:
    matched = [movie for movie in movies.scan_all(session) if genre in movie.genres]
    return matched[:GENRE_LIMIT]


def list_genres(session: Session) -> list[str]:
    return sorted({genre for movie in movies.scan_all(session) for genre in movie.genres})


def search(
    session: Session,
    term: str,
    *,
    genre: str | None = None,
    year: int | None = None,
) -> list[Movie]:
    """Title search with an optional year co-filter and genre post-filter."""

    if not term.strip():
        return []
    results = movies.search_titles(session, term, year=year, limit=SEARCH_LIMIT)
    logger.debug("Title search %r matched %d movies", term, len(results))
    if genre:
        results = [movie for movie in results if genre in movie.genres]
    return results


def recommend(base: Movie, catalog: Iterable[Movie]) -> list[Movie]:
    """Genre-overlap, score-proximity neighbours of ``base``, best scored first."""

    base_genres = set(base.genres)
    similar = [
        movie
        for movie in catalog
        if movie.id != base.id
        and base_genres.intersection(movie.genres)
        and abs(movie.score - base.score) <= RECOMMENDATION_SCORE_DISTANCE
    ]
    similar.sort(key=lambda movie: movie.score, reverse=True)
    return similar[:RECOMMENDATION_LIMIT]


def get_recommendations(session: Session, movie_id: int) -> list[Movie]:
    base = movies.get(session, movie_id)
    if base is None:
        return []
    return recommend(base, movies.scan_all(session))


def get_movie(session: Session, movie_id: int) -> Movie | None:
    return movies.get(session, movie_id)


def get_movie_detail(session: Session, movie_id: int, user_id: str | None) -> MovieDetail | None:
    """Load a movie together with the caller's rating, watchlist flag and progress."""

    movie = movies.get(session, movie_id)
    if movie is None:
        return None
    detail = MovieDetail(movie=movie)
    if not user_id:
        return detail

    rating = ratings.get(session, user_id, movie_id)
    history = progress.get(session, user_id, movie_id)
    detail.user_rating = rating.stars if rating else None
    detail.in_watchlist = watchlist.get(session, user_id, movie_id) is not None
    detail.watch_progress = history.percent if history else None
    return detail
