"""Core type definitions and enums."""

from __future__ import annotations

from enum import Enum


class PatientStatus(str, Enum):
    """Clinical status of a tracked patient."""

    ACTIVE = "active"
    HOSPITALIZED = "hospitalized"
    PAUSED = "paused"
    EX = "ex"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    PatientStatus.ACTIVE: "Active",
    PatientStatus.HOSPITALIZED: "Hospitalized",
    PatientStatus.PAUSED: "Paused",
    PatientStatus.EX: "EX",
    PatientStatus.COMPLETED: "Completed",
    PatientStatus.ARCHIVED: "Archived",
}


class EntryKind(str, Enum):
    """Kinds of ledger entries recorded against a patient."""

    BILLING = "billing"
    STATUS_CHANGE = "status_change"


class EventKind(str, Enum):
    """Kinds of audit events."""

    PATIENT_REGISTERED = "patient_registered"
    PATIENT_DELETED = "patient_deleted"
    ACTION_RECORDED = "action_recorded"
    ENTRY_DELETED = "entry_deleted"
    STATUS_CHANGED = "status_changed"
    PROCESS_UPDATED = "process_updated"
    CATALOG_UPDATED = "catalog_updated"
    TENDER_UPDATED = "tender_updated"
    INVOICE_ADDED = "invoice_added"
    INVOICE_DELETED = "invoice_deleted"


class StepState(str, Enum):
    """Display state of a single protocol step on the timeline."""

    DONE = "done"
    PENDING = "pending"
    PROJECTED = "projected"


class PhaseState(str, Enum):
    """Position of a protocol relative to the active one."""

    PAST = "past"
    CURRENT = "current"
    FUTURE = "future"
