"""Database session management and repositories."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Iterable, Iterator, TypeVar

from sqlalchemy import Select, String, and_, case, create_engine, delete, event, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings
from app.models import Base, Movie, Rating, UserProfile, WatchlistEntry, WatchProgress

_Record = TypeVar("_Record", bound=Base)


def _database_url() -> str:
    """Return the SQLAlchemy URL from settings (defaults to local SQLite for dev)."""
    return get_settings().database_url


def configure_sqlite(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINTs behave on pysqlite."""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_engine(_database_url(), future=True)
if engine.dialect.name == "sqlite":
    configure_sqlite(engine)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_models(bind: Engine | None = None) -> None:
    """Create tables if they do not exist (handy for local dev)."""
    Base.metadata.create_all(bind=bind or engine)


def get_session() -> Iterator[Session]:
    """FastAPI-friendly dependency that manages commits/rollbacks."""

    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _insert_unique(session: Session, record: _Record, key_query: Select | None) -> _Record | None:
    """Insert under a SAVEPOINT; ``None`` means another row already holds the unique key.

    ``key_query`` selects the row owning the same unique key. Integrity errors
    that leave no such row behind (NOT NULL, CHECK) are re-raised.
    """

    try:
        with session.begin_nested():
            session.add(record)
    except IntegrityError:
        if key_query is None or session.execute(key_query).first() is None:
            raise
        return None
    return record


class CatalogIndex(enum.Enum):
    """Orderings the movies table can be paged through."""

    NATURAL = "natural"
    SCORE = "score"
    YEAR = "release_year"


_INDEX_COLUMNS = {
    CatalogIndex.NATURAL: Movie.id,
    CatalogIndex.SCORE: Movie.score,
    CatalogIndex.YEAR: Movie.release_year,
}


class MovieRepository:
    """Data access helpers for the movie catalog."""

    def get(self, session: Session, movie_id: int) -> Movie | None:
        return session.get(Movie, movie_id)

    def get_many(self, session: Session, movie_ids: Iterable[int]) -> dict[int, Movie]:
        ids = set(movie_ids)
        if not ids:
            return {}
        query = select(Movie).where(Movie.id.in_(ids))
        return {movie.id: movie for movie in session.execute(query).scalars()}

    def get_by_tmdb_id(self, session: Session, tmdb_id: int) -> Movie | None:
        query = select(Movie).where(Movie.tmdb_id == tmdb_id)
        return session.execute(query).scalar_one_or_none()

    def create(self, session: Session, **fields: Any) -> Movie:
        movie = Movie(**fields)
        session.add(movie)
        session.flush()  # assign IDs before leaving scope
        session.refresh(movie)
        return movie

    def create_unique(self, session: Session, **fields: Any) -> Movie | None:
        """Insert a movie unless another row already claims its ``tmdb_id``."""
        tmdb_id = fields.get("tmdb_id")
        key_query = None
        if tmdb_id is not None:
            key_query = select(Movie.id).where(Movie.tmdb_id == tmdb_id)
        movie = _insert_unique(session, Movie(**fields), key_query)
        if movie is not None:
            session.refresh(movie)
        return movie

    def patch(self, session: Session, movie: Movie, **fields: Any) -> Movie:
        for key, value in fields.items():
            setattr(movie, key, value)
        session.flush()
        return movie

    def delete(self, session: Session, movie_id: int) -> bool:
        result = session.execute(delete(Movie).where(Movie.id == movie_id))
        return result.rowcount > 0

    def count(self, session: Session) -> int:
        return session.execute(select(func.count(Movie.id))).scalar_one()

    def scan_all(self, session: Session) -> list[Movie]:
        query = select(Movie).order_by(Movie.id)
        return list(session.execute(query).scalars())

    def page_by_index(
        self,
        session: Session,
        index: CatalogIndex,
        *,
        limit: int,
        after: tuple[Any, int] | None = None,
    ) -> tuple[list[Movie], bool]:
        """Return up to ``limit`` rows in ascending index order plus a has-more flag.

        ``after`` is the (index key, id) of the last row already served; ids
        break ties between equal keys.
        """
        column = _INDEX_COLUMNS[index]
        query = select(Movie)
        if after is not None:
            key, last_id = after
            if index is CatalogIndex.NATURAL:
                query = query.where(Movie.id > last_id)
            else:
                query = query.where(
                    or_(column > key, and_(column == key, Movie.id > last_id))
                )
        if index is CatalogIndex.NATURAL:
            query = query.order_by(Movie.id)
        else:
            query = query.order_by(column, Movie.id)
        rows = list(session.execute(query.limit(limit + 1)).scalars())
        return rows[:limit], len(rows) > limit

    def list_featured(self, session: Session, *, limit: int) -> list[Movie]:
        query = (
            select(Movie)
            .where(Movie.featured.is_(True))
            .order_by(Movie.id)
            .limit(limit)
        )
        return list(session.execute(query).scalars())

    def list_by_score_desc(self, session: Session, *, limit: int) -> list[Movie]:
        query = select(Movie).order_by(Movie.score.desc(), Movie.id.desc()).limit(limit)
        return list(session.execute(query).scalars())

    def search_titles(
        self,
        session: Session,
        term: str,
        *,
        year: int | None = None,
        limit: int,
    ) -> list[Movie]:
        """Match every word of ``term`` against titles, prefix matches first."""
        words = term.lower().split()
        if not words:
            return []
        title = func.lower(Movie.title, type_=String)
        query = select(Movie).where(
            *(title.contains(word, autoescape=True) for word in words)
        )
        if year is not None:
            query = query.where(Movie.release_year == year)
        relevance = case((title.startswith(words[0], autoescape=True), 0), else_=1)
        query = query.order_by(relevance, Movie.id).limit(limit)
        return list(session.execute(query).scalars())


class WatchlistRepository:
    def get(self, session: Session, user_id: str, movie_id: int) -> WatchlistEntry | None:
        query = select(WatchlistEntry).where(
            WatchlistEntry.user_id == user_id,
            WatchlistEntry.movie_id == movie_id,
        )
        return session.execute(query).scalar_one_or_none()

    def insert(
        self, session: Session, *, user_id: str, movie_id: int, added_at: datetime
    ) -> WatchlistEntry | None:
        entry = WatchlistEntry(user_id=user_id, movie_id=movie_id, added_at=added_at)
        key_query = select(WatchlistEntry.id).where(
            WatchlistEntry.user_id == user_id, WatchlistEntry.movie_id == movie_id
        )
        return _insert_unique(session, entry, key_query)

    def delete(self, session: Session, entry: WatchlistEntry) -> None:
        session.delete(entry)
        session.flush()

    def list_for_user(self, session: Session, user_id: str) -> list[WatchlistEntry]:
        query = (
            select(WatchlistEntry)
            .where(WatchlistEntry.user_id == user_id)
            .order_by(WatchlistEntry.added_at.desc(), WatchlistEntry.id.desc())
        )
        return list(session.execute(query).scalars())


class RatingRepository:
    def get(self, session: Session, user_id: str, movie_id: int) -> Rating | None:
        query = select(Rating).where(Rating.user_id == user_id, Rating.movie_id == movie_id)
        return session.execute(query).scalar_one_or_none()

    def insert(
        self,
        session: Session,
        *,
        user_id: str,
        movie_id: int,
        stars: int,
        review: str | None,
        created_at: datetime,
    ) -> Rating | None:
        rating = Rating(
            user_id=user_id,
            movie_id=movie_id,
            stars=stars,
            review=review,
            created_at=created_at,
        )
        key_query = select(Rating.id).where(Rating.user_id == user_id, Rating.movie_id == movie_id)
        return _insert_unique(session, rating, key_query)

    def update(self, session: Session, rating: Rating, *, stars: int, review: str | None) -> Rating:
        rating.stars = stars
        rating.review = review
        session.flush()
        return rating

    def list_recent_for_movie(self, session: Session, movie_id: int, *, limit: int) -> list[Rating]:
        query = (
            select(Rating)
            .where(Rating.movie_id == movie_id)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
            .limit(limit)
        )
        return list(session.execute(query).scalars())


class WatchProgressRepository:
    def get(self, session: Session, user_id: str, movie_id: int) -> WatchProgress | None:
        query = select(WatchProgress).where(
            WatchProgress.user_id == user_id,
            WatchProgress.movie_id == movie_id,
        )
        return session.execute(query).scalar_one_or_none()

    def insert(
        self,
        session: Session,
        *,
        user_id: str,
        movie_id: int,
        percent: float,
        completed: bool,
        last_watched_at: datetime,
    ) -> WatchProgress | None:
        progress = WatchProgress(
            user_id=user_id,
            movie_id=movie_id,
            percent=percent,
            completed=completed,
            last_watched_at=last_watched_at,
        )
        key_query = select(WatchProgress.id).where(
            WatchProgress.user_id == user_id, WatchProgress.movie_id == movie_id
        )
        return _insert_unique(session, progress, key_query)

    def update(
        self,
        session: Session,
        progress: WatchProgress,
        *,
        percent: float,
        completed: bool,
        last_watched_at: datetime,
    ) -> WatchProgress:
        progress.percent = percent
        progress.completed = completed
        progress.last_watched_at = last_watched_at
        session.flush()
        return progress

    def list_recent_for_user(
        self,
        session: Session,
        user_id: str,
        *,
        limit: int,
        min_percent: float | None = None,
        max_percent: float | None = None,
    ) -> list[WatchProgress]:
        """Most recently watched first; percent bounds are exclusive."""
        query = select(WatchProgress).where(WatchProgress.user_id == user_id)
        if min_percent is not None:
            query = query.where(WatchProgress.percent > min_percent)
        if max_percent is not None:
            query = query.where(WatchProgress.percent < max_percent)
        query = query.order_by(
            WatchProgress.last_watched_at.desc(), WatchProgress.id.desc()
        ).limit(limit)
        return list(session.execute(query).scalars())


class UserProfileRepository:
    def get(self, session: Session, user_id: str) -> UserProfile | None:
        return session.get(UserProfile, user_id)

    def display_names(self, session: Session, user_ids: Iterable[str]) -> dict[str, str]:
        ids = set(user_ids)
        if not ids:
            return {}
        query = select(UserProfile).where(UserProfile.user_id.in_(ids))
        return {
            profile.user_id: profile.display_name
            for profile in session.execute(query).scalars()
            if profile.display_name
        }

    def upsert(
        self,
        session: Session,
        user_id: str,
        *,
        display_name: str | None,
        favorite_genres: list[str] | None = None,
    ) -> UserProfile:
        profile = self.get(session, user_id)
        if profile is None:
            profile = _insert_unique(
                session,
                UserProfile(
                    user_id=user_id,
                    display_name=display_name,
                    favorite_genres=favorite_genres or [],
                ),
                select(UserProfile.user_id).where(UserProfile.user_id == user_id),
            )
            if profile is not None:
                session.refresh(profile)
                return profile
            profile = self.get(session, user_id)
        profile.display_name = display_name
        if favorite_genres is not None:
            profile.favorite_genres = favorite_genres
        session.flush()
        session.refresh(profile)
        return profile
