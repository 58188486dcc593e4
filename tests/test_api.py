import pytest

from app.services import seed as seed_service
from app.services.models import ImportResult, MovieData
from app.services.tmdb import TMDbError


@pytest.fixture
def seeded(session_factory):
    with session_factory() as session:
        seed_service.seed_catalog(session)
        session.commit()


def _titles(movies):
    return [movie["title"] for movie in movies]


def test_catalog_listing_pages_with_cursor(client, seeded):
    first = client.get("/movies", params={"num_items": 5})
    assert first.status_code == 200
    body = first.json()
    assert len(body["page"]) == 5
    assert body["is_done"] is False

    rest = client.get("/movies", params={"num_items": 5, "cursor": body["continue_cursor"]})
    assert rest.status_code == 200
    assert len(rest.json()["page"]) == 3
    assert rest.json()["is_done"] is True


def test_catalog_listing_rejects_bad_cursor(client, seeded):
    resp = client.get("/movies", params={"cursor": "garbage!!"})
    assert resp.status_code == 422


def test_catalog_listing_sorted_by_year(client, seeded):
    resp = client.get("/movies", params={"sort_by": "year", "num_items": 3})
    assert _titles(resp.json()["page"]) == [
        "Night of the Living Dead",
        "The Godfather",
        "Pulp Fiction",
    ]


def test_browse_endpoints(client, seeded):
    top = client.get("/movies/top-rated").json()
    assert _titles(top)[:3] == ["The Shawshank Redemption", "The Godfather", "The Dark Knight"]

    featured = client.get("/movies/featured").json()
    assert all(movie["featured"] for movie in featured)
    assert len(featured) == 5

    crime = client.get("/movies/genre/Crime").json()
    assert _titles(crime) == ["The Dark Knight", "Pulp Fiction", "The Godfather"]

    assert "Sci-Fi" in client.get("/movies/genres").json()
    assert client.get("/movies/trending").status_code == 200


def test_search_endpoint(client, seeded):
    resp = client.get("/movies/search", params={"q": "dark", "genre": "Action"})
    assert _titles(resp.json()) == ["The Dark Knight"]


def test_movie_detail_and_recommendations(client, seeded, auth_headers):
    matrix = client.get("/movies/search", params={"q": "matrix"}).json()[0]

    anonymous = client.get(f"/movies/{matrix['id']}").json()
    assert anonymous["in_watchlist"] is False

    client.put(f"/watchlist/{matrix['id']}", headers=auth_headers("neo"))
    client.post(f"/movies/{matrix['id']}/ratings", json={"stars": 5}, headers=auth_headers("neo"))
    client.put(f"/progress/{matrix['id']}", json={"percent": 42.0}, headers=auth_headers("neo"))
    detail = client.get(f"/movies/{matrix['id']}", headers=auth_headers("neo")).json()
    assert (detail["in_watchlist"], detail["user_rating"], detail["watch_progress"]) == (
        True,
        5,
        42.0,
    )

    recs = client.get(f"/movies/{matrix['id']}/recommendations").json()
    assert matrix["id"] not in [movie["id"] for movie in recs]
    assert "The Dark Knight" in _titles(recs)


def test_unknown_movie(client, seeded):
    assert client.get("/movies/9999").status_code == 404
    assert client.get("/movies/9999/recommendations").json() == []


def test_ledger_mutations_require_authentication(client, seeded):
    assert client.put("/watchlist/1").status_code == 401
    assert client.delete("/watchlist/1").status_code == 401
    assert client.post("/movies/1/ratings", json={"stars": 3}).status_code == 401
    assert client.put("/progress/1", json={"percent": 10}).status_code == 401
    assert client.get("/watchlist").json() == []


def test_invalid_token_is_rejected(client, seeded):
    resp = client.get("/watchlist", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_rating_out_of_range_is_rejected(client, seeded, auth_headers):
    resp = client.post("/movies/1/ratings", json={"stars": 6}, headers=auth_headers("u"))
    assert resp.status_code == 422
    summary = client.get("/movies/1/ratings").json()
    assert summary["total_count"] == 0


def test_rating_summary_roundtrip(client, seeded, auth_headers):
    client.put("/me/profile", json={"display_name": "Trinity"}, headers=auth_headers("trinity"))
    first = client.post(
        "/movies/1/ratings", json={"stars": 4, "review": "Great"}, headers=auth_headers("trinity")
    ).json()
    second = client.post("/movies/1/ratings", json={"stars": 5}, headers=auth_headers("trinity")).json()
    assert first["id"] == second["id"]

    summary = client.get("/movies/1/ratings").json()
    assert summary["total_count"] == 1
    assert summary["average_stars"] == 5.0
    assert summary["ratings"][0]["user_name"] == "Trinity"


def test_watchlist_flow(client, seeded, auth_headers):
    headers = auth_headers("morpheus")
    first = client.put("/watchlist/2", headers=headers).json()["id"]
    assert client.put("/watchlist/2", headers=headers).json()["id"] == first
    assert client.get("/watchlist/2", headers=headers).json()["in_watchlist"] is True
    assert _titles(client.get("/watchlist", headers=headers).json()) == ["Night of the Living Dead"]

    assert client.delete("/watchlist/2", headers=headers).status_code == 204
    assert client.delete("/watchlist/2", headers=headers).status_code == 204
    assert client.get("/watchlist", headers=headers).json() == []


def test_progress_lists(client, seeded, auth_headers):
    headers = auth_headers("oracle")
    client.put("/progress/1", json={"percent": 50}, headers=headers)
    client.put("/progress/2", json={"percent": 95}, headers=headers)

    continuing = client.get("/progress/continue", headers=headers).json()
    assert [(m["id"], m["percent"]) for m in continuing] == [(1, 50.0)]

    recent = client.get("/progress/recent", headers=headers).json()
    assert {m["id"] for m in recent} == {1, 2}
    assert all("last_watched_at" in m for m in recent)


def test_seed_requires_auth_and_is_one_shot(client, auth_headers):
    assert client.post("/admin/seed").status_code == 401
    first = client.post("/admin/seed", headers=auth_headers("admin")).json()
    assert first["inserted"] == 8
    again = client.post("/admin/seed", headers=auth_headers("admin")).json()
    assert again == {"inserted": 0, "message": "Movies already seeded"}


def test_import_endpoint(client, monkeypatch, auth_headers):
    def fake_import(session, *, category, page):
        assert (category.value, page) == ("top_rated", 2)
        movie = MovieData(
            title="Imported",
            description="",
            release_year=2020,
            duration_minutes=100,
            content_rating="PG-13",
            score=7.5,
            thumbnail_url="",
            video_url="",
            director="Unknown",
            tmdb_id=42,
        )
        return ImportResult(movies=[movie], total_results=40, total_pages=2, current_page=page)

    monkeypatch.setattr("app.main.import_category", fake_import)
    resp = client.post(
        "/admin/import", json={"category": "top_rated", "page": 2}, headers=auth_headers("admin")
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["movies"][0]["tmdb_id"] == 42
    assert (body["total_pages"], body["current_page"]) == (2, 2)


def test_import_endpoint_reports_upstream_failure(client, monkeypatch, auth_headers):
    def failing_import(session, *, category, page):
        raise TMDbError("TMDb API error: 401")

    monkeypatch.setattr("app.main.import_category", failing_import)
    resp = client.post("/admin/import", json={}, headers=auth_headers("admin"))
    assert resp.status_code == 502
    assert client.post("/admin/import", json={}).status_code == 401


def test_rating_rejects_boolean_stars(client, seeded, auth_headers):
    resp = client.post("/movies/1/ratings", json={"stars": True}, headers=auth_headers("u"))
    assert resp.status_code == 422
    assert client.get("/movies/1/ratings").json()["total_count"] == 0


def test_progress_rejects_nan_percent(client, seeded, auth_headers):
    headers = {**auth_headers("u"), "Content-Type": "application/json"}
    resp = client.put("/progress/1", content='{"percent": NaN}', headers=headers)
    assert resp.status_code == 422
    assert client.get("/progress/recent", headers=auth_headers("u")).json() == []
