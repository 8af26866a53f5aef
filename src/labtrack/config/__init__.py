"""Configuration module."""

from __future__ import annotations

from labtrack.config.settings import SchedulingSettings, Settings, StorageSettings


__all__ = ["SchedulingSettings", "Settings", "StorageSettings"]
