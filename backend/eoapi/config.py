"""Application configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings are loaded in this priority order (highest to lowest):
    1. Environment variables
    2. .env file (for local development)
    3. Default values

    The replay engine itself never reads these; the CLI and the HTTP
    surface pass the relevant values in as arguments.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    app_name: str = "EO Projector API"
    debug: bool = False

    # =========================================================================
    # CORS
    # =========================================================================
    cors_origins: list[str] = ["http://localhost:4321"]

    # =========================================================================
    # API Settings
    # =========================================================================
    api_v1_prefix: str = "/api/v1"

    # =========================================================================
    # Replay
    # =========================================================================
    # Public builds leave this off; preview builds turn it on to see drafts.
    include_drafts: bool = Field(
        default=False,
        description="Emit draft/private entities (archived stay hidden)",
    )

    # Heuristic window for flagging concurrent wiki edits.
    conflict_window_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Two latest wiki revisions closer than this are a conflict",
    )


settings = Settings()
