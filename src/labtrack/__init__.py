"""labtrack - Protocol scheduling for laboratory patients.

This package provides:
- Step-by-step advancement of patients through ordered test protocols
- Inter-protocol waiting periods and legacy periodic recall
- Clinical status transitions that suspend and resume scheduling
- Read-only timeline projection of past, current and future steps
- SQLite storage, a console CLI and HTML timeline export
"""

from __future__ import annotations

from labtrack.config.settings import Settings
from labtrack.core.models import (
    ActionRecord,
    BillingCode,
    Patient,
    Protocol,
    ProtocolPhase,
    ProtocolStep,
)
from labtrack.core.types import PatientStatus
from labtrack.orchestrator.service import TrackingService
from labtrack.scheduling import ProtocolScheduler, StatusTransitionHandler, TimelineProjector


__version__ = "0.1.0"

__all__ = [
    "ActionRecord",
    "BillingCode",
    "Patient",
    "PatientStatus",
    "Protocol",
    "ProtocolPhase",
    "ProtocolScheduler",
    "ProtocolStep",
    "Settings",
    "StatusTransitionHandler",
    "TimelineProjector",
    "TrackingService",
]
