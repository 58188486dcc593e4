"""Shared dataclasses for service layer."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

from app.models import Movie


@dataclass(slots=True)
class MovieData:
    """Catalog-shaped movie metadata ready for insertion."""

    title: str
    description: str
    release_year: int
    duration_minutes: int
    content_rating: str
    score: float
    thumbnail_url: str
    video_url: str
    director: str
    genres: list[str] = field(default_factory=list)
    cast: list[str] = field(default_factory=list)
    trailer_url: str | None = None
    featured: bool = False
    language: str | None = None
    country: str | None = None
    awards: str | None = None
    box_office: str | None = None
    tmdb_id: int | None = None
    imdb_id: str | None = None

    def as_fields(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(slots=True)
class CatalogPage:
    """One page of ``list_catalog`` output."""

    page: list[Movie]
    continue_cursor: str | None
    is_done: bool


@dataclass(slots=True)
class MovieDetail:
    movie: Movie
    user_rating: int | None = None
    in_watchlist: bool = False
    watch_progress: float | None = None


@dataclass(slots=True)
class RatingView:
    id: int
    user_id: str
    movie_id: int
    stars: int
    review: str | None
    created_at: datetime
    user_name: str


@dataclass(slots=True)
class RatingsSummary:
    ratings: list[RatingView]
    average_stars: float
    total_count: int


@dataclass(slots=True)
class ProgressMovie:
    """A movie resolved from a progress record, carrying the stored snapshot."""

    movie: Movie
    percent: float
    last_watched_at: datetime


@dataclass(slots=True)
class ImportResult:
    movies: list[MovieData]
    total_results: int
    total_pages: int
    current_page: int
