"""Console output helpers."""

from __future__ import annotations

from labtrack.console.logger import TrackerConsole


__all__ = ["TrackerConsole"]
