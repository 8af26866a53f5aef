"""Application settings and configuration."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulingSettings(BaseModel):
    """Defaults applied to newly registered patients."""

    default_inter_protocol_gap_days: int = Field(default=11, ge=0)
    default_entry_frequency_days: int = Field(default=30, ge=1)


class StorageSettings(BaseModel):
    """SQLite storage configuration."""

    db_path: str = "labtrack.db"
    audit_log_limit: int = Field(default=1000, ge=1)


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from ``LABTRACK_``-prefixed environment variables or a
    .env file. Nested values use ``__``, e.g. ``LABTRACK_STORAGE__DB_PATH``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LABTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Scheduling defaults
    scheduling: SchedulingSettings = Field(default_factory=SchedulingSettings)

    # Storage
    storage: StorageSettings = Field(default_factory=StorageSettings)

    # Logging
    log_level: str = "INFO"

    def __init__(self, **data: Any) -> None:
        """Initialize settings with short-form environment variable overrides."""
        super().__init__(**data)
        self._load_env_overrides()

    def _load_env_overrides(self) -> None:
        if db := os.getenv("LABTRACK_DB"):
            self.storage.db_path = db
        if gap := os.getenv("LABTRACK_GAP_DAYS"):
            self.scheduling.default_inter_protocol_gap_days = int(gap)
        if frequency := os.getenv("LABTRACK_FREQUENCY_DAYS"):
            self.scheduling.default_entry_frequency_days = int(frequency)
