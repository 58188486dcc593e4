import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import db
from app.core.config import get_settings
from app.main import app

JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture(autouse=True)
def reset_env(monkeypatch):
    # Keep tests independent of any local .env / TMDb credentials
    monkeypatch.setenv("AUTH_JWT_SECRET", JWT_SECRET)
    monkeypatch.delenv("AUTH_JWKS_URL", raising=False)
    monkeypatch.delenv("AUTH_AUDIENCE", raising=False)
    monkeypatch.setenv("TMDB_API_KEY", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    db.configure_sqlite(engine)
    db.init_models(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_movie():
    repo = db.MovieRepository()

    def _make(session, title, *, score, year, genres=(), featured=False, **extra):
        fields = {
            "title": title,
            "description": f"{title} description",
            "genres": list(genres),
            "release_year": year,
            "duration_minutes": 120,
            "content_rating": "PG-13",
            "score": score,
            "thumbnail_url": "https://img.example/poster.jpg",
            "video_url": "https://video.example/movie.mp4",
            "cast": [],
            "director": "Someone",
            "featured": featured,
        }
        fields.update(extra)
        return repo.create(session, **fields)

    return _make


@pytest.fixture
def client(monkeypatch, session_factory):
    monkeypatch.setattr(db, "SessionLocal", session_factory)
    return TestClient(app)


@pytest.fixture
def auth_headers():
    def _headers(user_id: str) -> dict[str, str]:
        token = jwt.encode({"sub": user_id}, JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers
