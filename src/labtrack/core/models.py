"""Data models for the lab protocol tracker."""

from __future__ import annotations

import datetime as dt
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from labtrack.core.types import (  # noqa: TC001 - Pydantic needs at runtime
    EntryKind,
    EventKind,
    PatientStatus,
    PhaseState,
    StepState,
)


def _new_id() -> str:
    return uuid4().hex


class BillingCode(BaseModel):
    """A billable action from the catalog."""

    model_config = ConfigDict(frozen=True)

    code: str
    description: str = ""
    points: float = 0.0
    price: float = 0.0
    related_test_name: str | None = None
    # Superseded by protocol steps; only used for patients without a protocol.
    legacy_next_action_days: int | None = Field(default=None, ge=0)


class ProtocolStep(BaseModel):
    """One stage of a protocol, gated by a specific billing code."""

    model_config = ConfigDict(frozen=True)

    step_number: int = Field(ge=1)
    required_code: str
    days_after_previous: int = Field(default=0, ge=0)
    note: str | None = None

    @property
    def label(self) -> str:
        return self.note or self.required_code


class Protocol(BaseModel):
    """An ordered list of steps a patient passes through for one test process."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    steps: tuple[ProtocolStep, ...] = ()

    @model_validator(mode="after")
    def _check_step_numbers(self) -> Protocol:
        numbers = [step.step_number for step in self.steps]
        if numbers != list(range(1, len(numbers) + 1)):
            msg = f"Protocol {self.id} steps must be numbered 1..{len(numbers)}, got {numbers}"
            raise ValueError(msg)
        return self

    @property
    def total_days(self) -> int:
        return sum(step.days_after_previous for step in self.steps)


class ProtocolProcess(BaseModel):
    """Operational dates tracked per protocol; never read by the scheduler."""

    protocol_id: str
    protocol_name: str
    work_start_date: dt.date | None = None
    data_share_date: dt.date | None = None
    pre_analysis_date: dt.date | None = None
    report_date: dt.date | None = None
    is_repeated: bool = False
    repeat_work_date: dt.date | None = None


class Patient(BaseModel):
    """A patient and their protocol-progress state."""

    id: str = Field(default_factory=_new_id)
    protocol_no: str
    admission_date: dt.date
    test_name: str = ""
    requesting_doctor: str = ""
    tissue_type: str = ""
    notes: str = ""

    assigned_protocol_ids: list[str] = Field(default_factory=list)
    active_protocol_id: str | None = None
    # Range is checked by the scheduler against the active protocol.
    current_step_index: int = 0
    inter_protocol_gap_days: int = Field(default=11, ge=0)

    entry_frequency_days: int = Field(default=30, ge=1)
    last_entry_date: dt.date | None = None

    next_scheduled_date: dt.date | None = None
    next_scheduled_note: str | None = None

    status: PatientStatus = PatientStatus.ACTIVE
    status_reason: str = ""
    status_date: dt.date | None = None

    protocol_processes: list[ProtocolProcess] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_protocols(self) -> Patient:
        if len(set(self.assigned_protocol_ids)) != len(self.assigned_protocol_ids):
            msg = f"Protocols may be assigned only once, got {self.assigned_protocol_ids}"
            raise ValueError(msg)
        if self.active_protocol_id and self.active_protocol_id not in self.assigned_protocol_ids:
            msg = (
                f"Active protocol {self.active_protocol_id!r} is not among the "
                f"assigned protocols {self.assigned_protocol_ids}"
            )
            raise ValueError(msg)
        return self

    @property
    def on_protocol(self) -> bool:
        return bool(self.active_protocol_id)

    def next_protocol_id(self) -> str | None:
        """Return the protocol assigned right after the active one, if any."""
        if self.active_protocol_id not in self.assigned_protocol_ids:
            return None
        position = self.assigned_protocol_ids.index(self.active_protocol_id)
        if position + 1 < len(self.assigned_protocol_ids):
            return self.assigned_protocol_ids[position + 1]
        return None


class ActionRecord(BaseModel):
    """A billing action submitted against a patient."""

    patient_id: str
    date: dt.date
    codes: list[BillingCode] = Field(default_factory=list)
    notes: str = ""

    @property
    def code_values(self) -> set[str]:
        return {c.code for c in self.codes}


class Entry(BaseModel):
    """A ledger row: either a billing action or a status change."""

    id: str = Field(default_factory=_new_id)
    patient_id: str
    date: dt.date
    codes: list[BillingCode] = Field(default_factory=list)
    notes: str = ""
    kind: EntryKind = EntryKind.BILLING

    @property
    def total_points(self) -> float:
        return sum(c.points for c in self.codes)

    @property
    def total_price(self) -> float:
        return sum(c.price for c in self.codes)

    @classmethod
    def from_action(cls, action: ActionRecord) -> Entry:
        return cls(
            patient_id=action.patient_id,
            date=action.date,
            codes=list(action.codes),
            notes=action.notes,
        )


class AuditEvent(BaseModel):
    """An audit trail event."""

    id: str = Field(default_factory=_new_id)
    timestamp: dt.datetime = Field(default_factory=dt.datetime.now)
    kind: EventKind
    message: str


class StatusChange(BaseModel):
    """Result of applying a status transition."""

    patient: Patient
    previous_status: PatientStatus
    event: AuditEvent


class TimelineStep(BaseModel):
    """A step of the current protocol as shown on the timeline."""

    step_number: int
    required_code: str
    days_after_previous: int
    note: str | None = None
    state: StepState
    date: dt.date | None = None


class ProtocolPhase(BaseModel):
    """One assigned protocol as shown on the timeline."""

    protocol_id: str
    protocol_name: str
    position: int
    state: PhaseState
    steps: list[TimelineStep] = Field(default_factory=list)
    summary: str = ""


class ProtocolQuota(BaseModel):
    """Number of patients a tender funds for one protocol."""

    protocol_id: str
    protocol_name: str
    quota: int = Field(ge=0)


class BilledProtocolItem(BaseModel):
    """How many patients of one protocol an invoice covers."""

    protocol_id: str
    protocol_name: str
    count: int = Field(ge=1)


class Tender(BaseModel):
    """A procurement contract whose budget is drawn down by invoices."""

    id: str = Field(default_factory=_new_id)
    name: str
    start_date: dt.date
    end_date: dt.date
    total_budget: float = Field(ge=0)
    total_patient_quota: int = Field(default=0, ge=0)
    protocol_quotas: list[ProtocolQuota] = Field(default_factory=list)
    # Always the sum of the tender's invoice amounts; maintained by the repository.
    current_spent: float = 0.0
    active: bool = True

    @property
    def remaining_budget(self) -> float:
        return self.total_budget - self.current_spent

    @property
    def percent_used(self) -> float:
        if not self.total_budget:
            return 0.0
        return self.current_spent / self.total_budget * 100


class Invoice(BaseModel):
    """An invoice charged against a tender."""

    id: str = Field(default_factory=_new_id)
    tender_id: str
    date: dt.date
    amount: float = Field(gt=0)
    description: str = ""
    billed_protocols: list[BilledProtocolItem] = Field(default_factory=list)


class QuotaUsage(BaseModel):
    """Realized versus billed patients for one quota line of a tender."""

    protocol_id: str
    protocol_name: str
    quota: int
    realized: int = 0
    billed: int = 0
    total_points: float = 0.0
    total_price: float = 0.0

    @property
    def unbilled(self) -> int:
        return self.realized - self.billed
