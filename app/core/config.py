"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_MAJORS = [
    "Computer Science",
    "Engineering",
    "Business",
    "Mathematics",
    "Physics",
    "Chemistry",
    "Biology",
    "Psychology",
    "Economics",
    "Other",
]


class Settings(BaseSettings):
    app_name: str = "RCSSA Match"

    # Which ProfileStore implementation backs the API
    store_backend: Literal["mongo", "postgres", "memory"] = "mongo"

    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "rcssa_match"
    mongodb_server_selection_timeout_ms: int = 15000
    mongodb_socket_timeout_ms: int = 45000

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "match_user"
    postgres_password: str = "password"
    postgres_db: str = "match_db"

    # Matching
    match_max_attempts: int = 3
    orphan_grace_seconds: int = 30

    # Profile form constraints
    min_graduation_year: int = 2024
    max_graduation_year: int = 2030
    majors: List[str] = DEFAULT_MAJORS

    # App
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    debug: bool = False

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def graduation_years(self) -> List[int]:
        return list(range(self.min_graduation_year, self.max_graduation_year + 1))

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
