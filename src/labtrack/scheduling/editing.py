"""Protocol editing.

Edits never patch a step list in place: each function returns a new
``Protocol`` whose steps are renumbered from 1. Patients already running the
protocol are not reconciled; their step index keeps pointing at the same
position.
"""

from __future__ import annotations

from collections.abc import Iterable

from labtrack.core.errors import ProtocolEditError
from labtrack.core.models import Protocol, ProtocolStep


def renumber(steps: Iterable[ProtocolStep]) -> tuple[ProtocolStep, ...]:
    return tuple(
        step.model_copy(update={"step_number": number})
        for number, step in enumerate(steps, start=1)
    )


def replace_steps(protocol: Protocol, steps: Iterable[ProtocolStep]) -> Protocol:
    return Protocol(id=protocol.id, name=protocol.name, steps=renumber(steps))


def add_step(
    protocol: Protocol,
    required_code: str,
    days_after_previous: int = 0,
    note: str | None = None,
) -> Protocol:
    """Append a step to the end of the protocol."""
    step = ProtocolStep(
        step_number=len(protocol.steps) + 1,
        required_code=required_code,
        days_after_previous=days_after_previous,
        note=note,
    )
    return replace_steps(protocol, (*protocol.steps, step))


def remove_step(protocol: Protocol, index: int) -> Protocol:
    """Remove the step at 0-based ``index``."""
    if not 0 <= index < len(protocol.steps):
        msg = f"Protocol {protocol.id} has no step at index {index}"
        raise ProtocolEditError(msg)
    return replace_steps(protocol, protocol.steps[:index] + protocol.steps[index + 1 :])
