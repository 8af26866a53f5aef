"""Tests for the tracking service."""

from __future__ import annotations

import logging
from datetime import date

import pytest
from pydantic import ValidationError

from labtrack.core.errors import (
    ActionValidationError,
    DuplicatePatientError,
    EntryNotFoundError,
    InvalidStateError,
    PatientNotFoundError,
    SuspendedPatientError,
)
from labtrack.core.models import Patient, ProtocolProcess
from labtrack.core.types import EntryKind, EventKind, PatientStatus, PhaseState
from labtrack.orchestrator.service import TrackingService, is_due
from labtrack.scheduling.scheduler import FIRST_STEP_NOTE
from labtrack.storage.memory import InMemoryAuditLog
from labtrack.storage.repository import AuditLog, PatientRepository


def _register(service: TrackingService, protocol_no: str = "2025-001", **fields) -> Patient:
    fields.setdefault("admission_date", date(2025, 1, 1))
    fields.setdefault("assigned_protocol_ids", ["panel-a", "panel-b"])
    return service.register_patient(Patient(protocol_no=protocol_no, **fields))


def _audit_kinds(service: TrackingService) -> list[EventKind]:
    return [e.kind for e in AuditLog(service.settings.storage.db_path).recent()]


class TestRegistration:
    def test_seeds_first_protocol(self, service):
        patient = _register(service)

        assert patient.active_protocol_id == "panel-a"
        assert patient.current_step_index == 0
        assert patient.next_scheduled_date == date(2025, 1, 1)
        assert patient.next_scheduled_note == FIRST_STEP_NOTE
        assert patient.test_name == "Panel-A + Panel-B"
        assert service.find_patient("2025-001") == patient
        assert service.find_patient(patient.id) == patient
        assert _audit_kinds(service) == [EventKind.PATIENT_REGISTERED]

    def test_without_protocols(self, service):
        patient = _register(service, assigned_protocol_ids=[], test_name="Biopsy")

        assert patient.active_protocol_id is None
        assert patient.next_scheduled_date is None
        assert patient.test_name == "Biopsy"

    def test_duplicate_protocol_no(self, service):
        _register(service)
        with pytest.raises(DuplicatePatientError):
            _register(service)

    def test_unknown_protocol(self, service):
        with pytest.raises(InvalidStateError, match="retired"):
            _register(service, assigned_protocol_ids=["panel-a", "retired"])
        with pytest.raises(PatientNotFoundError):
            service.find_patient("2025-001")

    def test_repeated_protocol_id_is_rejected(self, service):
        with pytest.raises(ValidationError, match="only once"):
            _register(service, assigned_protocol_ids=["panel-b", "panel-b"])
        with pytest.raises(PatientNotFoundError):
            service.find_patient("2025-001")

    def test_single_protocol_completes_after_its_step(self, service):
        patient = _register(service, assigned_protocol_ids=["panel-b"])
        patient = service.record_action(
            service.build_action(patient.id, date(2025, 1, 1), ["540.1"])
        )

        assert patient.status is PatientStatus.COMPLETED
        assert patient.current_step_index == 1
        with pytest.raises(SuspendedPatientError):
            service.record_action(service.build_action(patient.id, date(2025, 1, 6), ["540.1"]))

    def test_starts_from_chosen_protocol(self, service):
        patient = _register(service, active_protocol_id="panel-b")

        assert patient.active_protocol_id == "panel-b"
        assert patient.current_step_index == 0
        assert patient.next_scheduled_date == date(2025, 1, 1)
        assert patient.test_name == "Panel-A + Panel-B"
        assert [p.state for p in service.timeline(patient.id)] == [
            PhaseState.PAST, PhaseState.CURRENT,
        ]

        patient = service.record_action(
            service.build_action(patient.id, date(2025, 1, 1), ["540.1"])
        )
        assert patient.status is PatientStatus.COMPLETED

    def test_start_protocol_must_be_assigned(self, service):
        with pytest.raises(ValidationError, match="long-panel"):
            _register(service, active_protocol_id="long-panel")


class TestRecordAction:
    def test_runs_patient_through_both_protocols(self, service):
        patient = _register(service, inter_protocol_gap_days=11)

        for on, code in [(date(2025, 1, 1), "530.1"), (date(2025, 1, 15), "530.2")]:
            patient = service.record_action(service.build_action(patient.id, on, [code]))
        assert patient.active_protocol_id == "panel-b"
        assert patient.next_scheduled_date == date(2025, 1, 26)

        patient = service.record_action(
            service.build_action(patient.id, date(2025, 1, 26), ["540.1"], notes="final")
        )
        assert patient.status is PatientStatus.COMPLETED
        assert service.get_patient(patient.id) == patient

        entries = service.entries.for_patient(patient.id)
        assert [e.date for e in entries] == [date(2025, 1, 26), date(2025, 1, 15), date(2025, 1, 1)]
        assert entries[0].notes == "final"
        assert _audit_kinds(service).count(EventKind.ACTION_RECORDED) == 3

    def test_suspended_patient_is_rejected(self, service):
        patient = _register(service)
        service.change_status(patient.id, PatientStatus.HOSPITALIZED, "ward", date(2025, 1, 2))

        action = service.build_action(patient.id, date(2025, 1, 3), ["530.1"])
        with pytest.raises(SuspendedPatientError):
            service.record_action(action)

        kinds = [e.kind for e in service.entries.for_patient(patient.id)]
        assert kinds == [EntryKind.STATUS_CHANGE]
        assert service.get_patient(patient.id).current_step_index == 0

    def test_empty_code_set_is_rejected(self, service):
        patient = _register(service)
        with pytest.raises(ActionValidationError, match="at least one"):
            service.record_action(service.build_action(patient.id, date(2025, 1, 2), []))

    def test_date_before_admission_is_rejected(self, service):
        patient = _register(service)
        with pytest.raises(ActionValidationError, match="before admission"):
            service.record_action(service.build_action(patient.id, date(2024, 12, 31), ["530.1"]))
        assert service.entries.for_patient(patient.id) == []

    def test_unknown_code_is_rejected(self, service):
        patient = _register(service)
        with pytest.raises(ActionValidationError, match="000.0"):
            service.build_action(patient.id, date(2025, 1, 2), ["530.1", "000.0"])

    def test_unknown_patient(self, service):
        with pytest.raises(PatientNotFoundError):
            service.record_action(service.build_action("missing", date(2025, 1, 2), ["530.1"]))

    def test_mismatched_code_still_ledgers(self, service):
        patient = _register(service)
        updated = service.record_action(
            service.build_action(patient.id, date(2025, 1, 2), ["999.9"])
        )

        assert updated.current_step_index == 0
        assert updated.last_entry_date == date(2025, 1, 2)
        assert len(service.entries.for_patient(patient.id)) == 1

    def test_premature_action_warns(self, service, caplog):
        patient = _register(service)
        action = service.build_action(patient.id, date(2025, 1, 1), ["530.1"])
        patient = service.record_action(action)

        with caplog.at_level(logging.WARNING, logger="labtrack.orchestrator.service"):
            service.record_action(service.build_action(patient.id, date(2025, 1, 10), ["530.2"]))
        assert "precedes scheduled date" in caplog.text


def test_is_premature(make_patient):
    patient = make_patient(["panel-a"], next_scheduled_date=date(2025, 1, 15))

    assert TrackingService.is_premature(patient, date(2025, 1, 14))
    assert not TrackingService.is_premature(patient, date(2025, 1, 15))
    assert not TrackingService.is_premature(make_patient(), date(2025, 1, 1))


class TestChangeStatus:
    def test_writes_ledger_entry_and_audit(self, service):
        patient = _register(service)
        updated = service.change_status(
            patient.id, PatientStatus.EX, "deceased", date(2025, 1, 5)
        )

        assert updated.status is PatientStatus.EX
        assert updated.assigned_protocol_ids == ["panel-a"]
        assert service.get_patient(patient.id) == updated

        (entry,) = service.entries.for_patient(patient.id)
        assert entry.kind is EntryKind.STATUS_CHANGE
        assert entry.notes == "STATUS UPDATE: Active -> EX | Reason: deceased"
        assert entry.codes == []
        assert _audit_kinds(service)[0] is EventKind.STATUS_CHANGED

    def test_reactivation_allows_actions_again(self, service):
        patient = _register(service)
        service.change_status(patient.id, PatientStatus.PAUSED, "", date(2025, 1, 2))
        service.change_status(patient.id, PatientStatus.ACTIVE, "", date(2025, 1, 3))

        updated = service.record_action(
            service.build_action(patient.id, date(2025, 1, 3), ["530.1"])
        )
        assert updated.current_step_index == 1

    def test_with_injected_collaborators(self, settings, catalog):
        audit = InMemoryAuditLog()
        service = TrackingService(settings, catalog=catalog, audit=audit)
        patient = _register(service)
        service.change_status(patient.id, PatientStatus.PAUSED, "travel", date(2025, 1, 2))

        assert [e.kind for e in audit.events] == [
            EventKind.PATIENT_REGISTERED, EventKind.STATUS_CHANGED,
        ]


class TestDuePatients:
    def test_work_list(self, service):
        store = PatientRepository(service.settings.storage.db_path)
        admitted = date(2024, 11, 1)
        for patient in [
            Patient(protocol_no="A", admission_date=admitted,
                    next_scheduled_date=date(2025, 1, 10)),
            Patient(protocol_no="B", admission_date=admitted,
                    next_scheduled_date=date(2025, 1, 20)),
            Patient(protocol_no="C", admission_date=admitted),
            Patient(protocol_no="D", admission_date=admitted, last_entry_date=date(2024, 12, 1)),
            Patient(protocol_no="E", admission_date=admitted, last_entry_date=date(2025, 1, 1)),
            Patient(protocol_no="F", admission_date=admitted, next_scheduled_date=date(2025, 1, 1),
                    status=PatientStatus.HOSPITALIZED),
        ]:
            store.save(patient)

        due = service.due_patients(date(2025, 1, 10))
        assert [p.protocol_no for p in due] == ["C", "D", "A"]

    def test_frequency_threshold(self, make_patient):
        patient = make_patient(last_entry_date=date(2025, 1, 1), entry_frequency_days=7)

        assert not is_due(patient, date(2025, 1, 7))
        assert is_due(patient, date(2025, 1, 8))


class TestProcessesAndTimeline:
    def test_update_process_upserts_in_place(self, service):
        patient = _register(service)
        service.update_process(patient.id, ProtocolProcess(protocol_id="panel-a",
                                                           protocol_name="Panel-A"))
        service.update_process(patient.id, ProtocolProcess(protocol_id="panel-b",
                                                           protocol_name="Panel-B"))
        updated = service.update_process(
            patient.id,
            ProtocolProcess(protocol_id="panel-a", protocol_name="Panel-A",
                            report_date=date(2025, 2, 1)),
        )

        assert [p.protocol_id for p in updated.protocol_processes] == ["panel-a", "panel-b"]
        assert updated.protocol_processes[0].report_date == date(2025, 2, 1)
        assert updated.current_step_index == patient.current_step_index
        assert EventKind.PROCESS_UPDATED in _audit_kinds(service)

    def test_timeline(self, service):
        patient = _register(service)
        phases = service.timeline(patient.id)

        assert [p.state for p in phases] == [PhaseState.CURRENT, PhaseState.FUTURE]
        assert phases[0].steps[1].date == date(2025, 1, 15)

    def test_delete_patient(self, service):
        patient = _register(service)
        service.record_action(service.build_action(patient.id, date(2025, 1, 1), ["530.1"]))
        service.delete_patient(patient.id)

        with pytest.raises(PatientNotFoundError):
            service.get_patient(patient.id)
        assert service.entries.for_patient(patient.id) == []
        assert _audit_kinds(service)[0] is EventKind.PATIENT_DELETED


class TestDeleteEntry:
    def test_removes_entry_and_keeps_schedule(self, service):
        patient = _register(service)
        patient = service.record_action(
            service.build_action(patient.id, date(2025, 1, 1), ["530.1"])
        )
        (entry,) = service.entries.for_patient(patient.id)

        assert service.delete_entry(entry.id) == entry
        assert service.entries.for_patient(patient.id) == []
        assert service.get_patient(patient.id) == patient
        assert _audit_kinds(service)[0] is EventKind.ENTRY_DELETED

    def test_unknown_entry(self, service):
        with pytest.raises(EntryNotFoundError, match="missing"):
            service.delete_entry("missing")
        assert EventKind.ENTRY_DELETED not in _audit_kinds(service)
