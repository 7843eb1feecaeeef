"""Application settings loaded from environment."""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service-wide settings loaded from environment variables or .env file.

    Attributes:
        onemap_base_url: Root URL of the OneMap geocoding API.
        onemap_api_token: Optional bearer token sent with OneMap requests.
        onemap_timeout_seconds: Read timeout for a single geocoding call.
        database_path: SQLite file holding subzones, neighbourhoods and
            historical resale transactions.
        spatial_point_queries: Whether the spatial store may answer
            authoritative point-in-polygon queries.
        containment_max_concurrency: Upper bound on concurrent per-candidate
            containment checks.
        street_row_limit: Row cap for each transaction street-name query.
        max_candidates: Maximum number of alternates surfaced per resolution.
        cache_ttl_seconds: Lifetime of a cached resolution.
    """

    onemap_base_url: str = "https://www.onemap.gov.sg"
    onemap_api_token: Optional[str] = None
    onemap_timeout_seconds: float = 10.0

    database_path: str = "data/neighbourly.db"
    spatial_point_queries: bool = True

    containment_max_concurrency: int = 8
    street_row_limit: int = 10
    max_candidates: int = 5

    cache_ttl_seconds: float = 300.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Uses ``lru_cache`` so the .env file is read at most once per process.
    """
    return Settings()
