"""HTML timeline export."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import DictLoader, Environment, select_autoescape

from labtrack.core.utils import format_date
from labtrack.templates.timeline_template import TIMELINE_TEMPLATE


if TYPE_CHECKING:
    from labtrack.core.models import Patient, ProtocolPhase


logger = logging.getLogger(__name__)

TEMPLATE_NAME = "timeline.html"

_env: Environment | None = None


def _get_env() -> Environment:
    global _env  # noqa: PLW0603
    if _env is None:
        _env = Environment(
            loader=DictLoader({TEMPLATE_NAME: TIMELINE_TEMPLATE}),
            autoescape=select_autoescape(["html", "xml"]),
        )
    return _env


def timeline_template_data(patient: Patient, phases: list[ProtocolPhase]) -> dict[str, Any]:
    """Convert a patient and its projected phases to template data."""
    return {
        "protocol_no": patient.protocol_no,
        "test_name": patient.test_name,
        "status": patient.status.label,
        "next_scheduled_date": format_date(patient.next_scheduled_date),
        "next_scheduled_note": patient.next_scheduled_note or "",
        "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "phases": [
            {
                "protocol_name": phase.protocol_name,
                "position": phase.position,
                "state": phase.state.value,
                "summary": phase.summary,
                "steps": [
                    {
                        "step_number": step.step_number,
                        "required_code": step.required_code,
                        "note": step.note,
                        "days_after_previous": step.days_after_previous,
                        "state": step.state.value,
                        "date": step.date.isoformat() if step.date else None,
                    }
                    for step in phase.steps
                ],
            }
            for phase in phases
        ],
    }


def render_timeline_html(patient: Patient, phases: list[ProtocolPhase]) -> str:
    template = _get_env().get_template(TEMPLATE_NAME)
    return template.render(**timeline_template_data(patient, phases))


def render_timeline(patient: Patient, phases: list[ProtocolPhase], output_path: str | Path) -> Path:
    """Write the timeline HTML to ``output_path`` and return its absolute path."""
    html_content = render_timeline_html(patient, phases)
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(html_content, encoding="utf-8")
    logger.info("Timeline for %s written to %s", patient.protocol_no, output)
    return output.absolute()
