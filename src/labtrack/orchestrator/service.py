"""Tracking service: validates actions and wires the stores into the core."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from labtrack.config.settings import Settings
from labtrack.core.errors import (
    ActionValidationError,
    DuplicatePatientError,
    EntryNotFoundError,
    InvalidStateError,
    PatientNotFoundError,
    SuspendedPatientError,
)
from labtrack.core.models import ActionRecord, Entry
from labtrack.core.types import EntryKind, EventKind, PatientStatus
from labtrack.core.utils import days_between
from labtrack.scheduling.scheduler import FIRST_STEP_NOTE, ProtocolScheduler
from labtrack.scheduling.status import StatusTransitionHandler
from labtrack.scheduling.timeline import TimelineProjector
from labtrack.storage.repository import (
    AuditLog,
    CatalogRepository,
    EntryRepository,
    PatientRepository,
)


if TYPE_CHECKING:
    from collections.abc import Iterable

    from labtrack.core.interfaces import AuditSink, CatalogLookup, PatientStore
    from labtrack.core.models import BillingCode, Patient, ProtocolPhase, ProtocolProcess

logger = logging.getLogger(__name__)


def is_due(patient: Patient, today: date) -> bool:
    """Whether an active patient belongs on today's work list."""
    if patient.status is not PatientStatus.ACTIVE:
        return False
    if patient.next_scheduled_date is not None:
        return patient.next_scheduled_date <= today
    if patient.last_entry_date is None:
        return True
    return days_between(patient.last_entry_date, today) >= patient.entry_frequency_days


class TrackingService:
    """Caller layer around the scheduling core.

    Owns the preconditions the core assumes: only active patients receive
    actions, actions carry at least one code and are not dated before
    admission.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        catalog: CatalogLookup | None = None,
        patients: PatientStore | None = None,
        entries: EntryRepository | None = None,
        audit: AuditSink | None = None,
    ) -> None:
        if settings is None:
            settings = Settings()
        self.settings = settings
        db_path = settings.storage.db_path
        self._catalog = catalog or CatalogRepository(db_path)
        self._patients = patients or PatientRepository(db_path)
        self._entries = entries or EntryRepository(db_path)
        self._audit = audit or AuditLog(db_path, limit=settings.storage.audit_log_limit)

        self._scheduler = ProtocolScheduler(self._catalog)
        self._status = StatusTransitionHandler(self._audit)
        self._projector = TimelineProjector(self._catalog)

    @property
    def catalog(self) -> CatalogLookup:
        return self._catalog

    @property
    def entries(self) -> EntryRepository:
        return self._entries

    def get_patient(self, patient_id: str) -> Patient:
        patient = self._patients.load(patient_id)
        if patient is None:
            msg = f"Patient not found: {patient_id}"
            raise PatientNotFoundError(msg)
        return patient

    def find_patient(self, reference: str) -> Patient:
        """Resolve a patient by id or protocol number."""
        patient = self._patients.load(reference) or self._patients.find_by_protocol_no(reference)
        if patient is None:
            msg = f"Patient not found: {reference}"
            raise PatientNotFoundError(msg)
        return patient

    def register_patient(self, patient: Patient) -> Patient:
        """Store a new patient and seed the first step of their starting protocol.

        The starting protocol is ``patient.active_protocol_id`` when given, else the
        first assigned one. Protocols assigned before it count as already done.
        """
        if self._patients.find_by_protocol_no(patient.protocol_no) is not None:
            msg = f"Protocol number already registered: {patient.protocol_no}"
            raise DuplicatePatientError(msg)

        registered = patient.model_copy(deep=True)
        registered.current_step_index = 0
        names = []
        for protocol_id in registered.assigned_protocol_ids:
            protocol = self._catalog.get_protocol(protocol_id)
            if protocol is None:
                msg = f"Unknown protocol: {protocol_id}"
                raise InvalidStateError(msg)
            names.append(protocol.name)
        if registered.assigned_protocol_ids:
            if registered.active_protocol_id is None:
                registered.active_protocol_id = registered.assigned_protocol_ids[0]
            registered.next_scheduled_date = registered.admission_date
            registered.next_scheduled_note = FIRST_STEP_NOTE
            if not registered.test_name:
                registered.test_name = " + ".join(names)

        self._patients.save(registered)
        self._audit.record(
            EventKind.PATIENT_REGISTERED,
            f"Patient {registered.protocol_no} ({registered.test_name or 'manual'}) registered.",
        )
        logger.info("Registered patient %s", registered.protocol_no)
        return registered

    def resolve_codes(self, codes: Iterable[str]) -> list[BillingCode]:
        resolved: list[BillingCode] = []
        for value in codes:
            code = self._catalog.get_billing_code(value)
            if code is None:
                msg = f"Unknown billing code: {value}"
                raise ActionValidationError(msg)
            resolved.append(code)
        return resolved

    def build_action(
        self, patient_id: str, on_date: date, codes: Iterable[str], notes: str = ""
    ) -> ActionRecord:
        return ActionRecord(
            patient_id=patient_id, date=on_date, codes=self.resolve_codes(codes), notes=notes
        )

    def validate_action(self, patient: Patient, action: ActionRecord) -> None:
        """Raise if ``action`` may not be handed to the scheduler."""
        if patient.status is not PatientStatus.ACTIVE:
            msg = f"Patient {patient.protocol_no} is {patient.status.label}; entries are blocked"
            raise SuspendedPatientError(msg)
        if not action.codes:
            msg = "An action needs at least one billing code"
            raise ActionValidationError(msg)
        if action.date < patient.admission_date:
            msg = (
                f"Action date {action.date} is before admission date {patient.admission_date}"
            )
            raise ActionValidationError(msg)

    @staticmethod
    def is_premature(patient: Patient, on_date: date) -> bool:
        """True when ``on_date`` falls before the patient's next scheduled date."""
        return patient.next_scheduled_date is not None and on_date < patient.next_scheduled_date

    def record_action(self, action: ActionRecord) -> Patient:
        """Validate, ledger and apply a billing action; return the updated patient."""
        patient = self.get_patient(action.patient_id)
        self.validate_action(patient, action)
        if self.is_premature(patient, action.date):
            logger.warning(
                "Action for %s on %s precedes scheduled date %s",
                patient.protocol_no, action.date, patient.next_scheduled_date,
            )

        updated = self._scheduler.advance(patient, action)
        entry = Entry.from_action(action)
        self._entries.add(entry)
        self._patients.save(updated)
        self._audit.record(
            EventKind.ACTION_RECORDED,
            f"Patient {patient.protocol_no}: {entry.total_points:g} points entered "
            f"({', '.join(c.code for c in action.codes)}).",
        )
        return updated

    def change_status(
        self,
        patient_id: str,
        new_status: PatientStatus,
        reason: str = "",
        effective_date: date | None = None,
    ) -> Patient:
        if effective_date is None:
            effective_date = date.today()
        patient = self.get_patient(patient_id)
        self._entries.add(
            Entry(
                patient_id=patient.id,
                date=effective_date,
                kind=EntryKind.STATUS_CHANGE,
                notes=(
                    f"STATUS UPDATE: {patient.status.label} -> {new_status.label} "
                    f"| Reason: {reason}"
                ),
            )
        )
        change = self._status.apply_status(patient, new_status, reason, effective_date)
        self._patients.save(change.patient)
        return change.patient

    def timeline(self, patient_id: str) -> list[ProtocolPhase]:
        return self._projector.project(self.get_patient(patient_id))

    def due_patients(self, today: date | None = None) -> list[Patient]:
        if today is None:
            today = date.today()
        due = [p for p in self._patients.list_patients(PatientStatus.ACTIVE) if is_due(p, today)]
        return sorted(due, key=lambda p: (p.next_scheduled_date or date.min, p.protocol_no))

    def delete_entry(self, entry_id: str) -> Entry:
        """Remove a ledger entry. The patient's schedule is left as it is."""
        entry = self._entries.get(entry_id)
        if entry is None:
            msg = f"Entry not found: {entry_id}"
            raise EntryNotFoundError(msg)
        self._entries.delete(entry_id)
        self._audit.record(
            EventKind.ENTRY_DELETED,
            f"Entry {entry_id[:8]} dated {entry.date.isoformat()} deleted "
            f"({entry.total_points:g} points).",
        )
        return entry

    def delete_patient(self, patient_id: str) -> None:
        """Remove a patient and their ledger entries."""
        patient = self.get_patient(patient_id)
        self._patients.delete(patient.id)
        self._audit.record(
            EventKind.PATIENT_DELETED, f"Patient {patient.protocol_no} and their entries deleted."
        )
        logger.info("Deleted patient %s", patient.protocol_no)

    def update_process(self, patient_id: str, process: ProtocolProcess) -> Patient:
        """Insert or replace the process record for ``process.protocol_id``."""
        patient = self.get_patient(patient_id)
        updated = patient.model_copy(deep=True)
        known = {p.protocol_id for p in updated.protocol_processes}
        updated.protocol_processes = [
            process if p.protocol_id == process.protocol_id else p
            for p in updated.protocol_processes
        ]
        if process.protocol_id not in known:
            updated.protocol_processes.append(process)
        self._patients.save(updated)
        self._audit.record(
            EventKind.PROCESS_UPDATED,
            f"Patient {patient.protocol_no}: process dates for {process.protocol_name} updated.",
        )
        return updated
