"""SQLAlchemy ORM models.

The catalog lives in ``movies``; the per-user ledger is split across
``watchlist``, ``ratings`` and ``watch_progress``, each keyed by a unique
(user_id, movie_id) pair. Ledger rows hold ``movie_id`` as a plain reference
so that removing a movie never cascades into user history.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Movie(Base):
    """A catalog entry, created by seed load or TMDb import."""

    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    genres: Mapped[list[str]] = mapped_column(JSON, default=list)
    release_year: Mapped[int] = mapped_column(Integer, index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer)
    content_rating: Mapped[str] = mapped_column(String(16))
    score: Mapped[float] = mapped_column(Float, index=True)
    thumbnail_url: Mapped[str] = mapped_column(String(512))
    video_url: Mapped[str] = mapped_column(String(512))
    trailer_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    cast: Mapped[list[str]] = mapped_column(JSON, default=list)
    director: Mapped[str] = mapped_column(String(255))
    featured: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    language: Mapped[str | None] = mapped_column(String(32), nullable=True)
    country: Mapped[str | None] = mapped_column(String(128), nullable=True)
    awards: Mapped[str | None] = mapped_column(String(255), nullable=True)
    box_office: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tmdb_id: Mapped[int | None] = mapped_column(Integer, unique=True, nullable=True)
    imdb_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Movie(id={self.id}, title={self.title}, score={self.score})"


class WatchlistEntry(Base):
    __tablename__ = "watchlist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    movie_id: Mapped[int] = mapped_column(Integer)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_watchlist_user_movie"),
    )


class Rating(Base):
    """One user's star rating (and optional review) of one movie."""

    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    movie_id: Mapped[int] = mapped_column(Integer, index=True)
    stars: Mapped[int] = mapped_column(Integer)
    review: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_ratings_user_movie"),
        CheckConstraint("stars >= 1 AND stars <= 5", name="ck_ratings_stars_range"),
    )


class WatchProgress(Base):
    """Playback position snapshot; ``completed`` reflects the last write only."""

    __tablename__ = "watch_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    movie_id: Mapped[int] = mapped_column(Integer)
    percent: Mapped[float] = mapped_column(Float)
    last_watched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_watch_progress_user_movie"),
    )


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    favorite_genres: Mapped[list[str]] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
