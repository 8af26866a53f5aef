"""Abstract collaborators the scheduling core depends on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from labtrack.core.models import AuditEvent, BillingCode, Patient, Protocol
    from labtrack.core.types import EventKind, PatientStatus


class CatalogLookup(ABC):
    """Read-only access to billing codes and protocol definitions."""

    @abstractmethod
    def get_protocol(self, protocol_id: str) -> Protocol | None:
        """Return the protocol with the given id, or None."""
        ...

    @abstractmethod
    def get_billing_code(self, code: str) -> BillingCode | None:
        """Return the billing code definition, or None."""
        ...


class PatientStore(ABC):
    """Persistence for patient records."""

    @abstractmethod
    def load(self, patient_id: str) -> Patient | None:
        ...

    @abstractmethod
    def save(self, patient: Patient) -> None:
        ...

    @abstractmethod
    def find_by_protocol_no(self, protocol_no: str) -> Patient | None:
        ...

    @abstractmethod
    def list_patients(self, status: PatientStatus | None = None) -> list[Patient]:
        ...

    @abstractmethod
    def delete(self, patient_id: str) -> bool:
        """Delete the patient; return False if there was none."""
        ...


class AuditSink(ABC):
    """Fire-and-forget audit trail."""

    @abstractmethod
    def record(self, kind: EventKind, message: str) -> AuditEvent:
        """Record an event and return it."""
        ...
