"""FastAPI entrypoint wiring the catalog, ledger and import services."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.db import get_session, init_models
from app.models import Movie
from app.schemas import (
    CatalogPageResponse,
    ContinueWatchingResponse,
    ImportedMovie,
    ImportRequest,
    ImportResponse,
    MovieDetailResponse,
    MovieResponse,
    ProfileRequest,
    ProfileResponse,
    ProgressRequest,
    RatingRequest,
    RatingResponse,
    RatingsSummaryResponse,
    RecentlyWatchedResponse,
    RecordIdResponse,
    SeedResponse,
    WatchlistStatusResponse,
)
from app.services import catalog, ledger
from app.services.errors import CatalogError, InvalidArgument, Unauthenticated
from app.services.ingest import import_category
from app.services.seed import seed_catalog
from app.services.tmdb import TMDbError


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Ensure database tables before serving."""

    init_models()
    yield


app = FastAPI(title="Movie Streaming Catalog", lifespan=lifespan)


def _to_http_error(exc: CatalogError) -> HTTPException:
    if isinstance(exc, Unauthenticated):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(exc, InvalidArgument):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _movie_to_response(movie: Movie) -> MovieResponse:
    return MovieResponse.model_validate(movie)


def _movies_to_response(movies: list[Movie]) -> list[MovieResponse]:
    return [_movie_to_response(movie) for movie in movies]


@app.get("/movies", response_model=CatalogPageResponse)
def list_movies(
    num_items: int = Query(default=20, ge=1, le=100),
    cursor: str | None = None,
    sort_by: catalog.SortMode = catalog.SortMode.NONE,
    min_score: float | None = None,
    min_year: int | None = None,
    max_year: int | None = None,
    session: Session = Depends(get_session),
) -> CatalogPageResponse:
    try:
        result = catalog.list_catalog(
            session,
            num_items=num_items,
            cursor=cursor,
            sort_by=sort_by,
            min_score=min_score,
            min_year=min_year,
            max_year=max_year,
        )
    except CatalogError as exc:
        raise _to_http_error(exc) from exc
    return CatalogPageResponse(
        page=_movies_to_response(result.page),
        continue_cursor=result.continue_cursor,
        is_done=result.is_done,
    )


@app.get("/movies/featured", response_model=list[MovieResponse])
def featured_movies(session: Session = Depends(get_session)) -> list[MovieResponse]:
    return _movies_to_response(catalog.get_featured(session))


@app.get("/movies/trending", response_model=list[MovieResponse])
def trending_movies(session: Session = Depends(get_session)) -> list[MovieResponse]:
    return _movies_to_response(catalog.get_trending(session))


@app.get("/movies/top-rated", response_model=list[MovieResponse])
def top_rated_movies(session: Session = Depends(get_session)) -> list[MovieResponse]:
    return _movies_to_response(catalog.get_top_rated(session))


@app.get("/movies/genres", response_model=list[str])
def genres(session: Session = Depends(get_session)) -> list[str]:
    return catalog.list_genres(session)


@app.get("/movies/genre/{genre}", response_model=list[MovieResponse])
def movies_by_genre(genre: str, session: Session = Depends(get_session)) -> list[MovieResponse]:
    return _movies_to_response(catalog.get_by_genre(session, genre))


@app.get("/movies/search", response_model=list[MovieResponse])
def search_movies(
    q: str = Query(..., description="Title search term"),
    genre: str | None = None,
    year: int | None = None,
    session: Session = Depends(get_session),
) -> list[MovieResponse]:
    return _movies_to_response(catalog.search(session, q, genre=genre, year=year))


@app.get("/movies/{movie_id}", response_model=MovieDetailResponse)
def movie_detail(
    movie_id: int,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> MovieDetailResponse:
    detail = catalog.get_movie_detail(session, movie_id, user_id)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Movie not found")
    return MovieDetailResponse(
        **_movie_to_response(detail.movie).model_dump(),
        user_rating=detail.user_rating,
        in_watchlist=detail.in_watchlist,
        watch_progress=detail.watch_progress,
    )


@app.get("/movies/{movie_id}/recommendations", response_model=list[MovieResponse])
def recommendations(movie_id: int, session: Session = Depends(get_session)) -> list[MovieResponse]:
    return _movies_to_response(catalog.get_recommendations(session, movie_id))


@app.get("/movies/{movie_id}/ratings", response_model=RatingsSummaryResponse)
def movie_ratings(movie_id: int, session: Session = Depends(get_session)) -> RatingsSummaryResponse:
    summary = ledger.get_ratings_summary(session, movie_id)
    return RatingsSummaryResponse(
        ratings=[RatingResponse.model_validate(view) for view in summary.ratings],
        average_stars=summary.average_stars,
        total_count=summary.total_count,
    )


@app.post("/movies/{movie_id}/ratings", response_model=RecordIdResponse)
def rate_movie(
    movie_id: int,
    payload: RatingRequest,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> RecordIdResponse:
    try:
        rating_id = ledger.rate_movie(session, user_id, movie_id, payload.stars, payload.review)
    except CatalogError as exc:
        raise _to_http_error(exc) from exc
    return RecordIdResponse(id=rating_id)


@app.get("/watchlist", response_model=list[MovieResponse])
def watchlist(
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> list[MovieResponse]:
    return _movies_to_response(ledger.list_watchlist(session, user_id))


@app.get("/watchlist/{movie_id}", response_model=WatchlistStatusResponse)
def watchlist_status(
    movie_id: int,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> WatchlistStatusResponse:
    return WatchlistStatusResponse(
        movie_id=movie_id,
        in_watchlist=ledger.is_in_watchlist(session, user_id, movie_id),
    )


@app.put("/watchlist/{movie_id}", response_model=RecordIdResponse)
def add_to_watchlist(
    movie_id: int,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> RecordIdResponse:
    try:
        entry_id = ledger.add_to_watchlist(session, user_id, movie_id)
    except CatalogError as exc:
        raise _to_http_error(exc) from exc
    return RecordIdResponse(id=entry_id)


@app.delete("/watchlist/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_from_watchlist(
    movie_id: int,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> None:
    try:
        ledger.remove_from_watchlist(session, user_id, movie_id)
    except CatalogError as exc:
        raise _to_http_error(exc) from exc


@app.put("/progress/{movie_id}", response_model=RecordIdResponse)
def report_progress(
    movie_id: int,
    payload: ProgressRequest,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> RecordIdResponse:
    try:
        record_id = ledger.report_progress(session, user_id, movie_id, payload.percent)
    except CatalogError as exc:
        raise _to_http_error(exc) from exc
    return RecordIdResponse(id=record_id)


@app.get("/progress/continue", response_model=list[ContinueWatchingResponse])
def continue_watching(
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> list[ContinueWatchingResponse]:
    return [
        ContinueWatchingResponse(**_movie_to_response(item.movie).model_dump(), percent=item.percent)
        for item in ledger.list_continue_watching(session, user_id)
    ]


@app.get("/progress/recent", response_model=list[RecentlyWatchedResponse])
def recently_watched(
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> list[RecentlyWatchedResponse]:
    return [
        RecentlyWatchedResponse(
            **_movie_to_response(item.movie).model_dump(),
            last_watched_at=item.last_watched_at,
        )
        for item in ledger.list_recently_watched(session, user_id)
    ]


@app.put("/me/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileRequest,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> ProfileResponse:
    try:
        profile = ledger.update_profile(
            session,
            user_id,
            display_name=payload.display_name,
            favorite_genres=payload.favorite_genres,
        )
    except CatalogError as exc:
        raise _to_http_error(exc) from exc
    return ProfileResponse.model_validate(profile)


@app.post("/admin/import", response_model=ImportResponse)
def import_movies(
    payload: ImportRequest,
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> ImportResponse:
    if not user_id:
        raise _to_http_error(Unauthenticated("Not authenticated"))
    try:
        result = import_category(session, category=payload.category, page=payload.page)
    except TMDbError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Error fetching from TMDb: {exc}",
        ) from exc
    except CatalogError as exc:
        raise _to_http_error(exc) from exc
    return ImportResponse(
        movies=[ImportedMovie.model_validate(movie) for movie in result.movies],
        total_results=result.total_results,
        total_pages=result.total_pages,
        current_page=result.current_page,
    )


@app.post("/admin/seed", response_model=SeedResponse)
def seed_movies(
    session: Session = Depends(get_session),
    user_id: str | None = Depends(get_current_user_id),
) -> SeedResponse:
    if not user_id:
        raise _to_http_error(Unauthenticated("Not authenticated"))
    inserted = seed_catalog(session)
    message = f"Seeded {inserted} movies" if inserted else "Movies already seeded"
    return SeedResponse(inserted=inserted, message=message)
