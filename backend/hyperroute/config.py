"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache): one instance per process
    - App(settings=...) overrides the cached instance for one app
    - default_media_type is always concrete, never */*

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Route conflict handling is a setting, not a hardcoded rule
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hyperroute.core.domain_types import ConflictPolicy, MediaType


class Settings(BaseSettings):
    """Kernel settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="HYPERROUTE_", case_sensitive=False,
    )

    # Routing
    route_conflict_policy: ConflictPolicy = ConflictPolicy.OVERWRITE

    # Responses
    default_media_type: MediaType = MediaType.JSON
    error_help_href: str = "/docs/errors"
    correlation_header: str = "X-Correlation-ID"

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("default_media_type")
    @classmethod
    def reject_wildcard(cls, v: MediaType) -> MediaType:
        if v is MediaType.ANY:
            raise ValueError("default_media_type must be a concrete media type")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
