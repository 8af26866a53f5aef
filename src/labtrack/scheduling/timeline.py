"""Read-only timeline projection of a patient's protocol sequence."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from labtrack.core.models import ProtocolPhase, TimelineStep
from labtrack.core.types import PatientStatus, PhaseState, StepState
from labtrack.core.utils import add_days


if TYPE_CHECKING:
    from labtrack.core.interfaces import CatalogLookup
    from labtrack.core.models import Patient, Protocol

logger = logging.getLogger(__name__)

PAST_SUMMARY = "All steps complete"


class TimelineProjector:
    """Projects past, current and future protocol phases for display.

    Dates for steps after the pending one are estimates: they assume each
    later action happens exactly on its due date.
    """

    def __init__(self, catalog: CatalogLookup) -> None:
        self._catalog = catalog

    def project(self, patient: Patient) -> list[ProtocolPhase]:
        assigned = patient.assigned_protocol_ids
        active = patient.active_protocol_id
        active_position = assigned.index(active) if active in assigned else None

        phases: list[ProtocolPhase] = []
        for position, protocol_id in enumerate(assigned):
            protocol = self._catalog.get_protocol(protocol_id)
            if protocol is None:
                logger.warning("Skipping unknown protocol %s on timeline", protocol_id)
                continue
            state = self._classify(position, active_position, patient.status)
            phases.append(self._build_phase(patient, protocol, position, state))
        return phases

    @staticmethod
    def _classify(
        position: int, active_position: int | None, status: PatientStatus
    ) -> PhaseState:
        if active_position is None:
            return PhaseState.PAST if status is PatientStatus.COMPLETED else PhaseState.FUTURE
        if position < active_position:
            return PhaseState.PAST
        if position == active_position:
            return PhaseState.CURRENT
        return PhaseState.FUTURE

    def _build_phase(
        self, patient: Patient, protocol: Protocol, position: int, state: PhaseState
    ) -> ProtocolPhase:
        phase = ProtocolPhase(
            protocol_id=protocol.id,
            protocol_name=protocol.name,
            position=position,
            state=state,
        )
        if state is PhaseState.PAST:
            phase.summary = PAST_SUMMARY
        elif state is PhaseState.FUTURE:
            phase.summary = (
                f"Starts {patient.inter_protocol_gap_days} days after predecessor completes"
            )
        else:
            phase.steps = self._expand_steps(patient, protocol)
            done = sum(1 for s in phase.steps if s.state is StepState.DONE)
            phase.summary = f"{done} of {len(protocol.steps)} steps complete"
        return phase

    @staticmethod
    def _expand_steps(patient: Patient, protocol: Protocol) -> list[TimelineStep]:
        current = patient.current_step_index
        running = patient.next_scheduled_date
        steps: list[TimelineStep] = []
        for index, step in enumerate(protocol.steps):
            if index < current:
                state, when = StepState.DONE, None
            elif index == current:
                state, when = StepState.PENDING, patient.next_scheduled_date
            else:
                if running is not None:
                    running = add_days(running, step.days_after_previous)
                state, when = StepState.PROJECTED, running
            steps.append(
                TimelineStep(
                    step_number=step.step_number,
                    required_code=step.required_code,
                    days_after_previous=step.days_after_previous,
                    note=step.note,
                    state=state,
                    date=when,
                )
            )
        return steps
