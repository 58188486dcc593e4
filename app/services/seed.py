"""Starter catalog loaded into an empty database."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db import MovieRepository
from app.services.models import MovieData

logger = logging.getLogger(__name__)

_SAMPLE_VIDEOS = "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample"
_CINEMA_POSTER = "https://images.unsplash.com/photo-1489599735734-79b4f9ab7b34?w=500&h=750&fit=crop"
_DARK_POSTER = "https://images.unsplash.com/photo-1509347528160-9a9e33742cdb?w=500&h=750&fit=crop"
_SPACE_POSTER = "https://images.unsplash.com/photo-1446776653964-20c1d3a81b06?w=500&h=750&fit=crop"

movies = MovieRepository()


def starter_movies() -> list[MovieData]:
    settings = get_settings()
    return [
        MovieData(
            title="The Matrix",
            description="A computer programmer discovers that reality as he knows it is a simulation controlled by machines.",
            genres=["Action", "Sci-Fi", "Thriller"],
            release_year=1999,
            duration_minutes=136,
            content_rating="R",
            score=8.7,
            thumbnail_url=_CINEMA_POSTER,
            video_url=settings.placeholder_video_url,
            trailer_url=settings.placeholder_trailer_url,
            cast=["Keanu Reeves", "Laurence Fishburne", "Carrie-Anne Moss"],
            director="The Wachowskis",
            featured=True,
        ),
        MovieData(
            title="Night of the Living Dead",
            description="A group of people hide from bloodthirsty zombies in a farmhouse. Classic horror film that's now in public domain.",
            genres=["Horror", "Thriller"],
            release_year=1968,
            duration_minutes=96,
            content_rating="R",
            score=7.9,
            thumbnail_url=_DARK_POSTER,
            video_url="https://archive.org/download/night_of_the_living_dead/night_of_the_living_dead_512kb.mp4",
            cast=["Duane Jones", "Judith O'Dea", "Karl Hardman"],
            director="George A. Romero",
            featured=True,
        ),
        MovieData(
            title="The Dark Knight",
            description="Batman faces the Joker, a criminal mastermind who wants to plunge Gotham City into anarchy.",
            genres=["Action", "Crime", "Drama"],
            release_year=2008,
            duration_minutes=152,
            content_rating="PG-13",
            score=9.0,
            thumbnail_url=_DARK_POSTER,
            video_url=f"{_SAMPLE_VIDEOS}/ForBiggerBlazes.mp4",
            cast=["Christian Bale", "Heath Ledger", "Aaron Eckhart"],
            director="Christopher Nolan",
            featured=True,
        ),
        MovieData(
            title="Pulp Fiction",
            description="The lives of two mob hitmen, a boxer, a gangster and his wife intertwine in four tales of violence and redemption.",
            genres=["Crime", "Drama"],
            release_year=1994,
            duration_minutes=154,
            content_rating="R",
            score=8.9,
            thumbnail_url=_CINEMA_POSTER,
            video_url=f"{_SAMPLE_VIDEOS}/ForBiggerEscapes.mp4",
            cast=["John Travolta", "Uma Thurman", "Samuel L. Jackson"],
            director="Quentin Tarantino",
        ),
        MovieData(
            title="The Shawshank Redemption",
            description="Two imprisoned men bond over a number of years, finding solace and eventual redemption through acts of common decency.",
            genres=["Drama"],
            release_year=1994,
            duration_minutes=142,
            content_rating="R",
            score=9.3,
            thumbnail_url=_CINEMA_POSTER,
            video_url=f"{_SAMPLE_VIDEOS}/ForBiggerFun.mp4",
            cast=["Tim Robbins", "Morgan Freeman", "Bob Gunton"],
            director="Frank Darabont",
        ),
        MovieData(
            title="Interstellar",
            description="A team of explorers travel through a wormhole in space in an attempt to ensure humanity's survival.",
            genres=["Adventure", "Drama", "Sci-Fi"],
            release_year=2014,
            duration_minutes=169,
            content_rating="PG-13",
            score=8.6,
            thumbnail_url=_SPACE_POSTER,
            video_url=f"{_SAMPLE_VIDEOS}/ForBiggerJoyrides.mp4",
            cast=["Matthew McConaughey", "Anne Hathaway", "Jessica Chastain"],
            director="Christopher Nolan",
            featured=True,
        ),
        MovieData(
            title="The Godfather",
            description="The aging patriarch of an organized crime dynasty transfers control of his clandestine empire to his reluctant son.",
            genres=["Crime", "Drama"],
            release_year=1972,
            duration_minutes=175,
            content_rating="R",
            score=9.2,
            thumbnail_url=_CINEMA_POSTER,
            video_url=f"{_SAMPLE_VIDEOS}/ForBiggerMeltdowns.mp4",
            cast=["Marlon Brando", "Al Pacino", "James Caan"],
            director="Francis Ford Coppola",
        ),
        MovieData(
            title="Avatar",
            description="A paraplegic Marine dispatched to the moon Pandora on a unique mission becomes torn between following his orders and protecting the world he feels is his home.",
            genres=["Action", "Adventure", "Fantasy"],
            release_year=2009,
            duration_minutes=162,
            content_rating="PG-13",
            score=7.8,
            thumbnail_url=_SPACE_POSTER,
            video_url=f"{_SAMPLE_VIDEOS}/Sintel.mp4",
            cast=["Sam Worthington", "Zoe Saldana", "Sigourney Weaver"],
            director="James Cameron",
            featured=True,
        ),
    ]


def seed_catalog(session: Session) -> int:
    """Insert the starter catalog if no movies exist; returns how many were added."""

    if movies.count(session) > 0:
        return 0
    starters = starter_movies()
    for movie in starters:
        movies.create(session, **movie.as_fields())
    logger.info("Seeded %d movies", len(starters))
    return len(starters)
