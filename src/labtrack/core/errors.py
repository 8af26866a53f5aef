"""Exception hierarchy for labtrack."""

from __future__ import annotations


class LabTrackError(Exception):
    """Base class for all labtrack errors."""


class InvalidStateError(LabTrackError):
    """A patient's protocol state cannot be resolved against the catalog."""


class OutOfRangeStepError(InvalidStateError):
    """The step index lies outside the active protocol's steps."""

    def __init__(self, patient_id: str, protocol_id: str, index: int, step_count: int) -> None:
        self.patient_id = patient_id
        self.protocol_id = protocol_id
        self.index = index
        self.step_count = step_count
        super().__init__(
            f"Patient {patient_id}: step index {index} is outside [0, {step_count}] "
            f"for protocol {protocol_id}"
        )


class SuspendedPatientError(LabTrackError):
    """An action was submitted for a patient who is not active."""


class ActionValidationError(LabTrackError):
    """An action failed caller-level validation."""


class PatientNotFoundError(LabTrackError):
    """No patient matches the given reference."""


class DuplicatePatientError(LabTrackError):
    """A patient with the same protocol number is already registered."""


class ProtocolEditError(LabTrackError):
    """A protocol edit referenced a step that does not exist."""


class EntryNotFoundError(LabTrackError):
    """No ledger entry has the given id."""


class TenderError(LabTrackError):
    """A tender or invoice operation could not be carried out."""
