"""Protocol scheduler: advances patients through their protocol steps."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from labtrack.core.errors import InvalidStateError, OutOfRangeStepError
from labtrack.core.types import PatientStatus
from labtrack.core.utils import add_days


if TYPE_CHECKING:
    from labtrack.core.interfaces import CatalogLookup
    from labtrack.core.models import ActionRecord, Patient, Protocol, ProtocolStep

logger = logging.getLogger(__name__)

FIRST_STEP_NOTE = "Step 1 (start) pending"
ALL_COMPLETED_NOTE = "All protocols completed"


def step_note(index: int, step: ProtocolStep) -> str:
    """Describe the step at 0-based ``index`` for the schedule note."""
    return f"Step {index + 1}: {step.label}"


def transition_note(protocol_name: str) -> str:
    return f"Transition: {protocol_name} (waiting period)"


def legacy_note(days: int) -> str:
    return f"Periodic action due in {days} days"


class ProtocolScheduler:
    """Computes the next due action after a billing action is recorded.

    The scheduler is a pure transition over the catalog and a patient record:
    it returns an updated copy and leaves the input untouched. Callers must
    reject actions for non-active patients before calling ``advance``.
    """

    def __init__(self, catalog: CatalogLookup) -> None:
        self._catalog = catalog

    def advance(self, patient: Patient, action: ActionRecord) -> Patient:
        """Apply ``action`` to ``patient`` and return the updated patient.

        Raises:
            InvalidStateError: The active protocol is not in the catalog.
            OutOfRangeStepError: The step index is outside the protocol.
        """
        updated = patient.model_copy(deep=True)
        if updated.on_protocol:
            self._advance_protocol(updated, action)
        else:
            self._schedule_legacy(updated, action)
        updated.last_entry_date = action.date
        return updated

    def _schedule_legacy(self, patient: Patient, action: ActionRecord) -> None:
        days = max((c.legacy_next_action_days or 0 for c in action.codes), default=0)
        if days > 0:
            patient.next_scheduled_date = add_days(action.date, days)
            patient.next_scheduled_note = legacy_note(days)
        else:
            patient.next_scheduled_date = None
            patient.next_scheduled_note = None
        logger.debug("Patient %s on periodic recall: next in %d days", patient.id, days)

    def _advance_protocol(self, patient: Patient, action: ActionRecord) -> None:
        protocol = self._require_protocol(patient)
        steps = protocol.steps
        index = patient.current_step_index
        if not 0 <= index <= len(steps):
            raise OutOfRangeStepError(patient.id, protocol.id, index, len(steps))
        if index == len(steps):
            logger.debug("Protocol %s already exhausted for patient %s", protocol.id, patient.id)
            return

        step = steps[index]
        if step.required_code not in action.code_values:
            logger.debug(
                "Patient %s: codes %s do not satisfy step %d (%s)",
                patient.id, sorted(action.code_values), step.step_number, step.required_code,
            )
            return

        next_index = index + 1
        patient.current_step_index = next_index
        if next_index < len(steps):
            next_step = steps[next_index]
            patient.next_scheduled_date = add_days(action.date, next_step.days_after_previous)
            patient.next_scheduled_note = step_note(next_index, next_step)
            logger.info(
                "Patient %s advanced to step %d of %s, due %s",
                patient.id, next_index + 1, protocol.id, patient.next_scheduled_date,
            )
            return
        self._finish_protocol(patient, protocol, action)

    def _finish_protocol(self, patient: Patient, protocol: Protocol, action: ActionRecord) -> None:
        next_id = patient.next_protocol_id()
        if next_id is None:
            patient.next_scheduled_date = None
            patient.next_scheduled_note = ALL_COMPLETED_NOTE
            patient.status = PatientStatus.COMPLETED
            logger.info("Patient %s completed all protocols", patient.id)
            return

        next_protocol = self._catalog.get_protocol(next_id)
        next_name = next_protocol.name if next_protocol else next_id
        # Only the inter-protocol gap applies; the first step's own offset is not added.
        patient.active_protocol_id = next_id
        patient.current_step_index = 0
        patient.next_scheduled_date = add_days(action.date, patient.inter_protocol_gap_days)
        patient.next_scheduled_note = transition_note(next_name)
        logger.info(
            "Patient %s finished %s, starting %s on %s",
            patient.id, protocol.id, next_id, patient.next_scheduled_date,
        )

    def _require_protocol(self, patient: Patient) -> Protocol:
        protocol_id = patient.active_protocol_id or ""
        protocol = self._catalog.get_protocol(protocol_id)
        if protocol is None:
            msg = f"Patient {patient.id}: active protocol {protocol_id!r} not found in catalog"
            raise InvalidStateError(msg)
        return protocol
