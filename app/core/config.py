"""Application configuration loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./movies.db", alias="DATABASE_URL")
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3")
    tmdb_image_base: str = Field(default="https://image.tmdb.org/t/p/w500")
    tmdb_timeout: float = Field(default=10.0)
    placeholder_poster_url: str = Field(
        default="https://images.unsplash.com/photo-1489599735734-79b4f9ab7b34?w=500&h=750&fit=crop"
    )
    placeholder_video_url: str = Field(
        default="https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4"
    )
    placeholder_trailer_url: str = Field(
        default="https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/TearsOfSteel.mp4"
    )
    auth_jwt_secret: str | None = Field(default=None, alias="AUTH_JWT_SECRET")
    auth_jwks_url: str | None = Field(default=None, alias="AUTH_JWKS_URL")
    auth_audience: str | None = Field(default=None, alias="AUTH_AUDIENCE")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
