"""
Configuration for flatrepo.

Provides environment-based configuration with Pydantic settings.
"""

from __future__ import annotations

import json
import logging
import sys
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ArchiveSettings(BaseModel):
    """Zip archive settings for folder downloads."""

    # Read from ARCHIVE__COMPRESSION and ARCHIVE__COMPRESS_LEVEL
    compression: str = Field(
        default="deflated",
        description="Zip compression: 'deflated' or 'stored'",
    )
    compress_level: Optional[int] = Field(default=None, ge=0, le=9)

    @field_validator("compression", mode="before")
    @classmethod
    def parse_compression(cls, v):
        value = (v or "deflated").strip().lower()
        if value not in ("deflated", "stored"):
            raise ValueError("compression must be 'deflated' or 'stored'")
        return value


class RepositorySettings(BaseSettings):
    """Settings of the flat repository adapter."""

    service_name: str = Field(
        default="flatrepo",
        validation_alias=AliasChoices("SERVICE_NAME"),
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL"),
    )
    log_format: str = Field(
        default="json",
        validation_alias=AliasChoices("LOG_FORMAT"),
        description="Log format: 'json' or 'text'",
    )

    # Repository behaviour
    deploy_prefix: str = Field(
        default="deploy",
        validation_alias=AliasChoices("DEPLOY_PREFIX", "REPOSITORY__DEPLOY_PREFIX"),
        description="Top-level folder listed two levels deep",
    )
    listener_timeout: float = Field(
        default=5.0,
        gt=0,
        validation_alias=AliasChoices("LISTENER_TIMEOUT", "REPOSITORY__LISTENER_TIMEOUT"),
        description="Seconds to wait for the change listener before detaching",
    )
    hide_technical_revisions: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "HIDE_TECHNICAL_REVISIONS", "REPOSITORY__HIDE_TECHNICAL_REVISIONS"
        ),
    )

    archive: ArchiveSettings = Field(default_factory=ArchiveSettings)

    @field_validator("deploy_prefix", mode="before")
    @classmethod
    def strip_deploy_prefix(cls, v):
        if isinstance(v, str):
            return v.strip("/")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> RepositorySettings:
    """Get cached settings instance."""
    return RepositorySettings()


# Record attributes passed through ``extra=`` that end up in JSON output
CONTEXT_FIELDS = ("component", "path", "repository", "version")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, tagged with the service name."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(settings: Optional[RepositorySettings] = None) -> None:
    """Configure logging based on settings.

    Args:
        settings: Optional settings instance, uses cached settings if not provided
    """
    if settings is None:
        settings = get_settings()

    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if settings.log_format == "json":
        handler.setFormatter(JSONFormatter(settings.service_name))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)
