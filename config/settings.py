"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Catalogue Configuration
    catalogue_source: str = Field(
        default="songs.json",
        description="Path or http(s) URL of the JSON song catalogue",
    )

    @property
    def resolved_catalogue_source(self) -> str:
        """Get the catalogue source, handling empty env var case."""
        if not self.catalogue_source.strip():
            return "songs.json"
        return self.catalogue_source.strip()

    # Application Configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8000, description="Port to run the server on")
    log_level: str = Field(default="INFO", description="Logging level")

    # Feature Flags
    enable_artwork_lookup: bool = Field(
        default=True, description="Enable artwork lookup from the iTunes Search API"
    )
    enable_telemetry: bool = Field(default=True, description="Enable PostHog telemetry")

    # iTunes Lookup Configuration
    itunes_search_url: str = Field(
        default="https://itunes.apple.com/search", description="iTunes Search API endpoint"
    )
    itunes_timeout: float = Field(
        default=10.0, description="Transport timeout in seconds for a single artwork lookup"
    )
    artwork_lookup_limit: int = Field(
        default=1, ge=1, description="Number of candidate results requested per lookup"
    )

    # Artwork Cache Configuration
    artwork_failure_ttl: int | None = Field(
        None,
        description="Seconds before a failed lookup may be retried (unset: never retried)",
    )
    artwork_failure_cache_maxsize: int = Field(
        default=1000, description="Maximum expiring failure entries held at once"
    )

    # Visibility Configuration
    visibility_root_margin: float = Field(
        default=300.0,
        description="Pixels the viewport is expanded by above and below before intersecting",
    )
    visibility_threshold: float = Field(
        default=0.01, description="Minimum visible share of a placeholder to count as visible"
    )
    visibility_render_ttl: float = Field(
        default=1800.0, gt=0, description="Seconds an idle render keeps its watches"
    )
    visibility_max_renders: int = Field(
        default=1000, ge=1, description="Maximum renders tracked at once across all viewers"
    )

    # PostHog Configuration
    posthog_api_key: str | None = Field(None, description="PostHog API key for telemetry")
    posthog_host: str = Field(default="https://us.i.posthog.com", description="PostHog host URL")

    # Sentry Configuration
    sentry_dsn: str | None = Field(None, description="Sentry DSN for error tracking")

    # Application Metadata
    app_name: str = Field(default="Song-Catalogue-Artwork", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
