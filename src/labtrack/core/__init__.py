"""Core module - Data models, enums and shared interfaces."""

from __future__ import annotations

from labtrack.core.errors import (
    ActionValidationError,
    DuplicatePatientError,
    EntryNotFoundError,
    InvalidStateError,
    LabTrackError,
    OutOfRangeStepError,
    PatientNotFoundError,
    ProtocolEditError,
    SuspendedPatientError,
    TenderError,
)
from labtrack.core.interfaces import AuditSink, CatalogLookup, PatientStore
from labtrack.core.models import (
    ActionRecord,
    AuditEvent,
    BilledProtocolItem,
    BillingCode,
    Entry,
    Invoice,
    Patient,
    Protocol,
    ProtocolPhase,
    ProtocolProcess,
    ProtocolQuota,
    ProtocolStep,
    QuotaUsage,
    StatusChange,
    Tender,
    TimelineStep,
)
from labtrack.core.types import EntryKind, EventKind, PatientStatus, PhaseState, StepState


__all__ = [
    # Models
    "ActionRecord",
    # Errors
    "ActionValidationError",
    "AuditEvent",
    # Interfaces
    "AuditSink",
    "BilledProtocolItem",
    "BillingCode",
    "CatalogLookup",
    "DuplicatePatientError",
    "Entry",
    "EntryNotFoundError",
    # Types
    "EntryKind",
    "EventKind",
    "InvalidStateError",
    "Invoice",
    "LabTrackError",
    "OutOfRangeStepError",
    "Patient",
    "PatientNotFoundError",
    "PatientStatus",
    "PatientStore",
    "PhaseState",
    "Protocol",
    "ProtocolEditError",
    "ProtocolPhase",
    "ProtocolProcess",
    "ProtocolQuota",
    "ProtocolStep",
    "QuotaUsage",
    "StatusChange",
    "StepState",
    "SuspendedPatientError",
    "Tender",
    "TenderError",
    "TimelineStep",
]
