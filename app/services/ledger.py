"""Per-user watchlist, rating and watch-progress records.

Each record kind is unique per (user, movie). Writes are check-then-upsert:
when the insert loses a race against a concurrent writer, the row that won is
re-read and updated in place so the record keeps a single identity.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.db import (
    MovieRepository,
    RatingRepository,
    UserProfileRepository,
    WatchlistRepository,
    WatchProgressRepository,
)
from app.models import Movie, UserProfile
from app.services.errors import InvalidArgument, Unauthenticated
from app.services.models import ProgressMovie, RatingsSummary, RatingView

logger = logging.getLogger(__name__)

MIN_STARS = 1
MAX_STARS = 5
COMPLETED_PERCENT = 90.0
CONTINUE_MIN_PERCENT = 5.0
CONTINUE_LIMIT = 10
RECENTLY_WATCHED_LIMIT = 20
RATINGS_PAGE_SIZE = 20
ANONYMOUS = "Anonymous"

movies = MovieRepository()
watchlist = WatchlistRepository()
ratings = RatingRepository()
progress = WatchProgressRepository()
profiles = UserProfileRepository()


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise Unauthenticated("Not authenticated")
    return user_id


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def add_to_watchlist(
    session: Session, user_id: str | None, movie_id: int, *, now: datetime | None = None
) -> int:
    """Add a movie to the caller's watchlist and return the entry id.

    Adding twice is harmless: the existing entry's id comes back unchanged.
    """

    user_id = _require_user(user_id)
    existing = watchlist.get(session, user_id, movie_id)
    if existing:
        return existing.id
    entry = watchlist.insert(session, user_id=user_id, movie_id=movie_id, added_at=_now(now))
    if entry is None:
        entry = watchlist.get(session, user_id, movie_id)
    return entry.id


def remove_from_watchlist(session: Session, user_id: str | None, movie_id: int) -> None:
    user_id = _require_user(user_id)
    entry = watchlist.get(session, user_id, movie_id)
    if entry:
        watchlist.delete(session, entry)


def is_in_watchlist(session: Session, user_id: str | None, movie_id: int) -> bool:
    if not user_id:
        return False
    return watchlist.get(session, user_id, movie_id) is not None


def list_watchlist(session: Session, user_id: str | None) -> list[Movie]:
    """Watchlisted movies, newest first; entries for deleted movies are skipped."""

    if not user_id:
        return []
    entries = watchlist.list_for_user(session, user_id)
    resolved = movies.get_many(session, (entry.movie_id for entry in entries))
    return [resolved[entry.movie_id] for entry in entries if entry.movie_id in resolved]


def _validate_stars(stars: int) -> int:
    if isinstance(stars, bool) or not isinstance(stars, int):
        raise InvalidArgument("Rating must be a whole number of stars")
    if stars < MIN_STARS or stars > MAX_STARS:
        raise InvalidArgument(f"Rating must be between {MIN_STARS} and {MAX_STARS}")
    return stars


def rate_movie(
    session: Session,
    user_id: str | None,
    movie_id: int,
    stars: int,
    review: str | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """Create or overwrite the caller's rating for a movie; returns the rating id."""

    user_id = _require_user(user_id)
    stars = _validate_stars(stars)
    existing = ratings.get(session, user_id, movie_id)
    if existing is None:
        created = ratings.insert(
            session,
            user_id=user_id,
            movie_id=movie_id,
            stars=stars,
            review=review,
            created_at=_now(now),
        )
        if created is not None:
            return created.id
        existing = ratings.get(session, user_id, movie_id)
    ratings.update(session, existing, stars=stars, review=review)
    return existing.id


def get_ratings_summary(session: Session, movie_id: int) -> RatingsSummary:
    """Most recent ratings for a movie with an average over that page only.

    The average and count cover at most ``RATINGS_PAGE_SIZE`` ratings, not
    the movie's whole rating history.
    """

    recent = ratings.list_recent_for_movie(session, movie_id, limit=RATINGS_PAGE_SIZE)
    names = profiles.display_names(session, (rating.user_id for rating in recent))
    views = [
        RatingView(
            id=rating.id,
            user_id=rating.user_id,
            movie_id=rating.movie_id,
            stars=rating.stars,
            review=rating.review,
            created_at=rating.created_at,
            user_name=names.get(rating.user_id, ANONYMOUS),
        )
        for rating in recent
    ]
    average = sum(view.stars for view in views) / len(views) if views else 0.0
    return RatingsSummary(ratings=views, average_stars=average, total_count=len(views))


def report_progress(
    session: Session,
    user_id: str | None,
    movie_id: int,
    percent: float,
    *,
    now: datetime | None = None,
) -> int:
    """Record the caller's playback position; returns the progress record id.

    Any number is accepted, including ones that move backwards or leave
    0-100. NaN has no position and is rejected.
    """

    user_id = _require_user(user_id)
    if math.isnan(percent):
        raise InvalidArgument("percent must be a number")
    completed = percent >= COMPLETED_PERCENT
    watched_at = _now(now)
    existing = progress.get(session, user_id, movie_id)
    if existing is None:
        created = progress.insert(
            session,
            user_id=user_id,
            movie_id=movie_id,
            percent=percent,
            completed=completed,
            last_watched_at=watched_at,
        )
        if created is not None:
            return created.id
        existing = progress.get(session, user_id, movie_id)
    progress.update(
        session, existing, percent=percent, completed=completed, last_watched_at=watched_at
    )
    return existing.id


def _resolve_progress(session: Session, records) -> list[ProgressMovie]:
    resolved = movies.get_many(session, (record.movie_id for record in records))
    return [
        ProgressMovie(
            movie=resolved[record.movie_id],
            percent=record.percent,
            last_watched_at=record.last_watched_at,
        )
        for record in records
        if record.movie_id in resolved
    ]


def list_continue_watching(session: Session, user_id: str | None) -> list[ProgressMovie]:
    """Partly watched movies (strictly between 5% and 90%), most recent first."""

    if not user_id:
        return []
    records = progress.list_recent_for_user(
        session,
        user_id,
        limit=CONTINUE_LIMIT,
        min_percent=CONTINUE_MIN_PERCENT,
        max_percent=COMPLETED_PERCENT,
    )
    return _resolve_progress(session, records)


def list_recently_watched(session: Session, user_id: str | None) -> list[ProgressMovie]:
    if not user_id:
        return []
    records = progress.list_recent_for_user(session, user_id, limit=RECENTLY_WATCHED_LIMIT)
    return _resolve_progress(session, records)


def update_profile(
    session: Session,
    user_id: str | None,
    *,
    display_name: str | None,
    favorite_genres: list[str] | None = None,
) -> UserProfile:
    user_id = _require_user(user_id)
    if display_name is not None:
        display_name = display_name.strip() or None
    logger.debug("Updating profile for %s", user_id)
    return profiles.upsert(
        session, user_id, display_name=display_name, favorite_genres=favorite_genres
    )
