"""Request/response models for the HTTP API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from app.services.tmdb import TMDbCategory


class MovieResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    genres: list[str]
    release_year: int
    duration_minutes: int
    content_rating: str
    score: float
    thumbnail_url: str
    video_url: str
    trailer_url: str | None = None
    cast: list[str]
    director: str
    featured: bool = False
    language: str | None = None
    country: str | None = None
    awards: str | None = None
    box_office: str | None = None
    tmdb_id: int | None = None
    imdb_id: str | None = None


class CatalogPageResponse(BaseModel):
    page: list[MovieResponse]
    continue_cursor: str | None = None
    is_done: bool


class MovieDetailResponse(MovieResponse):
    user_rating: int | None = None
    in_watchlist: bool = False
    watch_progress: float | None = None


class ContinueWatchingResponse(MovieResponse):
    percent: float


class RecentlyWatchedResponse(MovieResponse):
    last_watched_at: datetime


class RatingRequest(BaseModel):
    stars: StrictInt = Field(..., description="1-5 star rating")
    review: str | None = None


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    movie_id: int
    stars: int
    review: str | None = None
    created_at: datetime
    user_name: str


class RatingsSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ratings: list[RatingResponse]
    average_stars: float
    total_count: int


class RecordIdResponse(BaseModel):
    id: int


class WatchlistStatusResponse(BaseModel):
    movie_id: int
    in_watchlist: bool


class ProgressRequest(BaseModel):
    percent: float = Field(..., description="Playback position as a percentage")


class ProfileRequest(BaseModel):
    display_name: str | None = None
    favorite_genres: list[str] | None = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    display_name: str | None = None
    favorite_genres: list[str]


class ImportRequest(BaseModel):
    category: TMDbCategory = TMDbCategory.POPULAR
    page: int = Field(default=1, ge=1)


class ImportedMovie(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    release_year: int
    score: float
    tmdb_id: int | None = None


class ImportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    movies: list[ImportedMovie]
    total_results: int
    total_pages: int
    current_page: int


class SeedResponse(BaseModel):
    inserted: int
    message: str
