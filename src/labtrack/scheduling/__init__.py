"""Scheduling core - step advancement, status transitions and timelines."""

from __future__ import annotations

from labtrack.scheduling.scheduler import ProtocolScheduler
from labtrack.scheduling.status import StatusTransitionHandler
from labtrack.scheduling.timeline import TimelineProjector


__all__ = [
    "ProtocolScheduler",
    "StatusTransitionHandler",
    "TimelineProjector",
]
