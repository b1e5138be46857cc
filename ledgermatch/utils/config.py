"""Application settings.

Pydantic-based configuration loaded from environment variables (prefix
``LEDGERMATCH_``) and an optional ``.env`` file.

Environment Variables:
- LEDGERMATCH_DATABASE_URL: SQLAlchemy URL of the backing store
- LEDGERMATCH_MAX_CANDIDATES: Candidate cap per match run (default: 50)
- LEDGERMATCH_CANDIDATE_WINDOW_DAYS: Coarse pre-filter window (default: 7)
- LEDGERMATCH_SCORING_WORKERS: Threads used to score candidates (default: 4)
- LEDGERMATCH_SCORING_TIMEOUT_SECONDS: Abandon scoring after this many seconds
- LEDGERMATCH_LOG_LEVEL / LEDGERMATCH_JSON_LOGS / LEDGERMATCH_DEBUG
- LEDGERMATCH_PROMETHEUS_ENABLED / LEDGERMATCH_METRICS_PORT
"""

from functools import lru_cache
from pathlib import Path

from platformdirs import PlatformDirs
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

dirs = PlatformDirs("ledgermatch", appauthor=False)


class Settings(BaseSettings):
    """Runtime configuration.

    Example:
        >>> settings = Settings()
        >>> settings.max_candidates
        50
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGERMATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path = Field(
        default=Path(dirs.user_data_dir),
        description="Directory holding the default SQLite database",
    )

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy database URL (defaults to SQLite under data_dir)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")
    debug: bool = Field(default=False, description="Colorful development log output")

    # Candidate selection
    max_candidates: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum candidates scored per match run (newest first)",
    )
    candidate_window_days: int = Field(
        default=7,
        ge=1,
        le=365,
        description="Days around the target date used to pre-filter candidates",
    )

    # Scoring
    scoring_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Worker threads used to score candidates in parallel",
    )
    scoring_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Abandon candidate scoring after this many seconds",
    )

    # Caller-side retry of transient store failures
    store_retry_attempts: int = Field(default=3, ge=0, le=10)
    store_retry_base_delay: float = Field(default=0.5, gt=0, le=30)

    # Metrics
    prometheus_enabled: bool = Field(default=False)
    metrics_port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept only standard logging level names."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @model_validator(mode="after")
    def default_database_url(self) -> "Settings":
        """Point the database at data_dir when no URL is configured."""
        if self.database_url is None:
            self.database_url = f"sqlite:///{self.data_dir / 'ledgermatch.db'}"
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and re-read the environment."""
    get_settings.cache_clear()
    return get_settings()
