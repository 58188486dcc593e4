import httpx
import pytest
from sqlalchemy import func, select

from app.models import Movie
from app.services import ingest
from app.services.errors import InvalidArgument
from app.services.tmdb import TMDbCategory, TMDbClient, TMDbError

LISTING = {
    "results": [
        {
            "id": 27205,
            "title": "Inception",
            "overview": "Dreams within dreams.",
            "release_date": "2010-07-15",
            "vote_average": 8.4,
            "poster_path": "/inception.jpg",
        },
        {
            "id": 550,
            "title": "Fight Club",
            "overview": "",
            "release_date": "",
            "vote_average": 7.9,
            "poster_path": None,
        },
    ],
    "total_results": 2,
    "total_pages": 1,
}

INCEPTION_DETAIL = {
    "id": 27205,
    "runtime": 148,
    "adult": False,
    "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
    "original_language": "en",
    "production_countries": [{"iso_3166_1": "US", "name": "United States of America"}],
    "revenue": 839030630,
    "imdb_id": "tt1375666",
    "credits": {
        "cast": [{"name": f"Actor {i}"} for i in range(12)],
        "crew": [
            {"job": "Producer", "name": "Emma Thomas"},
            {"job": "Director", "name": "Christopher Nolan"},
        ],
    },
}


def _client(handler) -> TMDbClient:
    return TMDbClient(api_key="test-key", transport=httpx.MockTransport(handler))


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def tmdb(requests_seen):
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request.url.path)
        assert request.url.params["api_key"] == "test-key"
        if request.url.path == "/3/movie/popular":
            return httpx.Response(200, json=LISTING)
        if request.url.path == "/3/movie/27205":
            return httpx.Response(200, json=INCEPTION_DETAIL)
        return httpx.Response(500, json={"status_message": "boom"})

    return _client(handler)


def _movie_count(session) -> int:
    return session.execute(select(func.count(Movie.id))).scalar_one()


def test_import_maps_details_and_defaults(session, tmdb):
    result = ingest.import_category(session, category=TMDbCategory.POPULAR, page=1, client=tmdb)

    assert [m.title for m in result.movies] == ["Inception", "Fight Club"]
    assert (result.total_results, result.total_pages, result.current_page) == (2, 1, 1)

    inception = session.execute(select(Movie).where(Movie.tmdb_id == 27205)).scalar_one()
    assert inception.genres == ["Action", "Science Fiction"]
    assert inception.duration_minutes == 148
    assert inception.director == "Christopher Nolan"
    assert len(inception.cast) == 10
    assert inception.featured is True
    assert inception.box_office == "$839,030,630"
    assert inception.country == "United States of America"
    assert inception.thumbnail_url.endswith("/inception.jpg")

    # Detail fetch failed: summary fields plus defaults.
    fight_club = session.execute(select(Movie).where(Movie.tmdb_id == 550)).scalar_one()
    assert fight_club.description == "No description available"
    assert fight_club.genres == []
    assert fight_club.release_year == 2000
    assert fight_club.duration_minutes == 120
    assert fight_club.content_rating == "PG-13"
    assert fight_club.director == "Unknown"
    assert fight_club.featured is False


def test_import_skips_known_tmdb_ids(session, tmdb, requests_seen):
    ingest.import_category(session, client=tmdb)
    requests_seen.clear()

    again = ingest.import_category(session, client=tmdb)
    assert again.movies == []
    assert _movie_count(session) == 2
    assert requests_seen == ["/3/movie/popular"]


def test_list_failure_aborts_but_keeps_earlier_imports(session, tmdb):
    ingest.import_category(session, client=tmdb)

    def unauthorized(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"status_message": "Invalid API key"})

    with pytest.raises(TMDbError):
        ingest.import_category(session, client=_client(unauthorized))
    session.rollback()
    assert _movie_count(session) == 2


def test_transport_errors_become_tmdb_errors():
    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    client = _client(offline)
    with pytest.raises(TMDbError):
        client.fetch_category_page(TMDbCategory.TOP_RATED, 2)
    assert client.fetch_movie_detail(1) == {}


def test_missing_api_key_is_an_upstream_failure(session):
    with pytest.raises(TMDbError):
        ingest.import_category(session, client=TMDbClient(api_key=None))


def test_invalid_page_is_rejected_before_fetching(session, tmdb, requests_seen):
    with pytest.raises(InvalidArgument):
        ingest.import_category(session, page=0, client=tmdb)
    assert requests_seen == []


def test_build_movie_data_marks_adult_titles_restricted(tmdb):
    data = ingest.build_movie_data(
        {"id": 1, "title": "Late Show", "vote_average": None},
        {"adult": True},
        client=tmdb,
    )
    assert data.content_rating == "R"
    assert data.score == 0.0
    assert data.box_office == ""


def test_malformed_items_are_skipped_with_a_warning(session, caplog):
    listing = {
        "results": [
            "not-an-object",
            {"title": "No Id"},
            {"id": 11, "title": "Bad Date", "release_date": 1977},
            {"id": 12, "title": "Bad Genres", "release_date": "1980-05-21"},
            {"id": 13, "title": "Fine", "release_date": "1983-05-25", "vote_average": 7.0},
        ],
        "total_results": 5,
        "total_pages": 1,
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/3/movie/popular":
            return httpx.Response(200, json=listing)
        if request.url.path == "/3/movie/12":
            return httpx.Response(200, json={"genres": ["Adventure"]})
        return httpx.Response(200, json={"runtime": 131})

    with caplog.at_level("WARNING", logger="app.services.ingest"):
        result = ingest.import_category(session, client=_client(handler))

    assert [m.title for m in result.movies] == ["Fine"]
    assert session.execute(select(Movie.tmdb_id)).scalars().all() == [13]
    assert "Skipping malformed TMDb movie 11" in caplog.text
    assert "Skipping malformed TMDb movie 12" in caplog.text
