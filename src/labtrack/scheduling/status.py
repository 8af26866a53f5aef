"""Status transitions and their side effects on scheduling state."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import TYPE_CHECKING

from labtrack.core.models import StatusChange
from labtrack.core.types import EventKind, PatientStatus


if TYPE_CHECKING:
    from labtrack.core.interfaces import AuditSink
    from labtrack.core.models import Patient

logger = logging.getLogger(__name__)

SUSPENDED_MARKER = "[SUSPENDED] "
EX_NOTE = "Patient deceased (EX); process cancelled."
EX_SYSTEM_NOTE = "[SYSTEM]: Remaining protocols cancelled because the patient is EX."
REACTIVATED_NOTE = "Process reactivated; re-check required."

TransitionEffect = Callable[["Patient", PatientStatus, date], None]


def _mark_ex(patient: Patient, previous: PatientStatus, effective_date: date) -> None:
    patient.next_scheduled_date = None
    patient.next_scheduled_note = EX_NOTE
    active = patient.active_protocol_id
    if not active or active not in patient.assigned_protocol_ids:
        return
    keep = patient.assigned_protocol_ids.index(active) + 1
    if keep < len(patient.assigned_protocol_ids):
        dropped = patient.assigned_protocol_ids[keep:]
        patient.assigned_protocol_ids = patient.assigned_protocol_ids[:keep]
        patient.notes = f"{patient.notes}\n{EX_SYSTEM_NOTE}" if patient.notes else EX_SYSTEM_NOTE
        logger.info("Patient %s: dropped protocols %s", patient.id, dropped)


def _suspend(patient: Patient, previous: PatientStatus, effective_date: date) -> None:
    note = patient.next_scheduled_note
    if note and not note.startswith(SUSPENDED_MARKER):
        patient.next_scheduled_note = f"{SUSPENDED_MARKER}{note}"


def _reactivate(patient: Patient, previous: PatientStatus, effective_date: date) -> None:
    if previous is PatientStatus.ACTIVE:
        return
    note = (patient.next_scheduled_note or "").replace(SUSPENDED_MARKER, "")
    patient.next_scheduled_note = None if note in ("", EX_NOTE) else note
    # A stale projection is not resumed silently; the patient is due for re-evaluation now.
    if patient.next_scheduled_date is None and patient.last_entry_date is not None:
        patient.next_scheduled_date = effective_date
        patient.next_scheduled_note = REACTIVATED_NOTE


def _no_effect(patient: Patient, previous: PatientStatus, effective_date: date) -> None:
    return


TRANSITIONS: dict[PatientStatus, TransitionEffect] = {
    PatientStatus.ACTIVE: _reactivate,
    PatientStatus.HOSPITALIZED: _suspend,
    PatientStatus.PAUSED: _suspend,
    PatientStatus.EX: _mark_ex,
    PatientStatus.COMPLETED: _no_effect,
    PatientStatus.ARCHIVED: _no_effect,
}

_missing = set(PatientStatus) - set(TRANSITIONS)
if _missing:
    msg = f"No status transition defined for: {sorted(s.value for s in _missing)}"
    raise RuntimeError(msg)


class StatusTransitionHandler:
    """Applies clinical status changes to a patient's scheduling state.

    Every (old, new) status pair is legal; each change is recorded through
    the audit sink.
    """

    def __init__(self, audit: AuditSink) -> None:
        self._audit = audit

    def apply_status(
        self,
        patient: Patient,
        new_status: PatientStatus,
        reason: str,
        effective_date: date,
    ) -> StatusChange:
        previous = patient.status
        updated = patient.model_copy(deep=True)
        TRANSITIONS[new_status](updated, previous, effective_date)
        updated.status = new_status
        updated.status_reason = reason
        updated.status_date = effective_date

        message = (
            f"Patient {patient.protocol_no} status changed: "
            f"{previous.label} -> {new_status.label}"
        )
        if reason:
            message = f"{message} | Reason: {reason}"
        event = self._audit.record(EventKind.STATUS_CHANGED, message)
        logger.info(message)
        return StatusChange(patient=updated, previous_status=previous, event=event)
