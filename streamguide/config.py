from pathlib import Path
from typing import Annotated
import logging

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from streamguide.services.smart_search import ScoringWeights


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    epg_sources: Annotated[list[str] | None, NoDecode] = None
    epg_refresh_cron: str = "0 */6 * * *"  # Every 6 hours
    epg_refresh_misfire_grace_sec: int = 3600  # Allow 1 hour to run missed jobs
    epg_fetch_timeout_sec: float = 120.0
    epg_fetch_max_retries: int = 3
    epg_fetch_backoff_factor: float = 2.0
    epg_parse_timeout_sec: int = 600  # XML parsing timeout, 0 disables timeout
    epg_parse_chunk_size: int = 64 * 1024
    max_concurrent_sources: int = 4

    epg_cache_enabled: bool = True
    epg_cache_path: str = "./data/epg_cache.json"

    scoreboard_timeout_sec: float = 15.0

    log_level: str = "INFO"

    scoring: ScoringWeights = ScoringWeights()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("epg_sources", mode="before")
    @classmethod
    def parse_epg_sources(cls, value):
        """Parse comma-separated URLs or list."""
        if value is None:
            return []
        if isinstance(value, str):
            if not value.strip():
                return []
            return [url.strip() for url in value.split(",") if url.strip()]
        if isinstance(value, list):
            return value
        return []

    @field_validator("epg_sources", mode="after")
    @classmethod
    def validate_epg_sources(cls, value):
        """Validate EPG source URLs are HTTP/HTTPS."""
        if not value:
            return value

        for url in value:
            if not url.lower().startswith(("http://", "https://")):
                raise ValueError(f"EPG source URL must be HTTP/HTTPS: {url}")
        return value

    @field_validator("epg_cache_path")
    @classmethod
    def validate_cache_path(cls, value: str) -> str:
        """Validate the cache path points at a file, not a directory."""
        if not value.strip():
            raise ValueError("epg_cache_path must not be empty")
        if Path(value).is_dir():
            raise ValueError(f"epg_cache_path '{value}' is a directory")
        return value

    @field_validator("epg_parse_timeout_sec", "epg_refresh_misfire_grace_sec")
    @classmethod
    def validate_non_negative(cls, value: int, info) -> int:
        """Validate second-based settings that allow 0."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("epg_parse_chunk_size", "max_concurrent_sources", "epg_fetch_max_retries")
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer sizes and counts are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("epg_fetch_timeout_sec", "scoreboard_timeout_sec")
    @classmethod
    def validate_positive_floats(cls, value: float, info) -> float:
        """Ensure timeouts are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("epg_fetch_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff factor is at least 1."""
        if value < 1:
            raise ValueError("epg_fetch_backoff_factor must be >= 1")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("epg_refresh_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @model_validator(mode="after")
    def validate_epg_configuration(self):
        """Validate cross-field configuration."""
        if not self.epg_sources:
            logger.warning(
                "No EPG sources configured - EPG refresh will not retrieve any data"
            )
        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  EPG Sources: %s configured", len(self.epg_sources or []))
        logger.info("  Refresh Schedule: %s", self.epg_refresh_cron)
        logger.info("  Refresh Misfire Grace: %ss", self.epg_refresh_misfire_grace_sec)
        logger.info(
            "  Fetch: timeout=%.1fs retries=%s backoff=%.1f",
            self.epg_fetch_timeout_sec,
            self.epg_fetch_max_retries,
            self.epg_fetch_backoff_factor,
        )
        logger.info(
            "  Parse Timeout: %s seconds",
            self.epg_parse_timeout_sec or "disabled",
        )
        logger.info("  Parse Chunk Size: %s bytes", self.epg_parse_chunk_size)
        logger.info("  Max Concurrent Sources: %s", self.max_concurrent_sources)
        logger.info(
            "  Schedule Cache: %s",
            self.epg_cache_path if self.epg_cache_enabled else "disabled",
        )
        logger.info("  Scoring Weights: %s", self.scoring.model_dump())


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
