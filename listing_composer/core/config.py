from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from listing_composer.canonical.catalog import MAX_IMAGES, MAX_VARIANTS_PER_LISTING


ENV_PATH = Path(__file__).resolve().parents[2] / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_PATH, env_file_encoding="utf-8", extra="ignore")

    # App
    env: str = "dev"
    service_name: str = "listing-composer"

    # Marketplace REST API
    api_base_url: str = "http://localhost:5000/api"
    api_timeout_seconds: float = 30.0  # image uploads are slow

    # Draft slot backend: "memory" | "redis" | "sql"
    draft_backend: Literal["memory", "redis", "sql"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    draft_database_url: str = "sqlite:///./drafts.sqlite3"
    draft_key_prefix: str = "listing-draft"

    # Autosave
    autosave_interval_seconds: float = 30.0

    # Listing limits (must match server enums)
    max_images: int = MAX_IMAGES
    max_variants: int = MAX_VARIANTS_PER_LISTING

    # Submission error summary: first N messages (+M more)
    error_summary_limit: int = 3

    # Telemetry
    otlp_endpoint: str = "http://localhost:4318"  # Jaeger OTLP HTTP


settings = Settings()
