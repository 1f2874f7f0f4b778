"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Record store
    record_store: str = "mongo"  # "mongo" or "memory"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "placement_engine"

    # JWT (tokens are issued by the identity provider, we only verify them)
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"

    # Allocation rules
    max_applications_per_institution: int = 2
    # Block new applications once the student holds any `admitted` status.
    enforce_admission_exclusivity: bool = True

    # Transactions
    max_commit_attempts: int = 3
    retry_base_delay: float = 0.05
    retry_max_delay: float = 1.0

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    # App
    debug: bool = True

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
