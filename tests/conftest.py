"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from labtrack.config.settings import Settings, StorageSettings
from labtrack.core.models import ActionRecord, BillingCode, Patient, Protocol, ProtocolStep
from labtrack.orchestrator.service import TrackingService
from labtrack.orchestrator.tenders import TenderService
from labtrack.scheduling.scheduler import ProtocolScheduler
from labtrack.scheduling.status import StatusTransitionHandler
from labtrack.scheduling.timeline import TimelineProjector
from labtrack.storage.memory import InMemoryAuditLog, InMemoryCatalog
from labtrack.storage.repository import CatalogRepository


if TYPE_CHECKING:
    from collections.abc import Callable


CODES = {
    "530.1": BillingCode(code="530.1", description="Sample intake", points=120, price=450.0),
    "530.2": BillingCode(code="530.2", description="Control analysis", points=80, price=300.0),
    "540.1": BillingCode(code="540.1", description="Library preparation", points=300, price=1200.0),
    "901.0": BillingCode(code="901.0", description="Consultation", points=20, price=75.0,
                         legacy_next_action_days=30),
    "902.0": BillingCode(code="902.0", description="Follow-up", points=10, price=40.0,
                         legacy_next_action_days=7),
    "999.9": BillingCode(code="999.9", description="Unrelated billing", points=5, price=10.0),
}


@pytest.fixture
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_catalog_path(project_root: Path) -> Path:
    return project_root / "data" / "sample_catalog.json"


@pytest.fixture
def codes() -> dict[str, BillingCode]:
    return dict(CODES)


@pytest.fixture
def panel_a() -> Protocol:
    return Protocol(
        id="panel-a",
        name="Panel-A",
        steps=(
            ProtocolStep(step_number=1, required_code="530.1", note="Intake"),
            ProtocolStep(step_number=2, required_code="530.2", days_after_previous=14),
        ),
    )


@pytest.fixture
def panel_b() -> Protocol:
    return Protocol(
        id="panel-b",
        name="Panel-B",
        steps=(ProtocolStep(step_number=1, required_code="540.1", days_after_previous=5),),
    )


@pytest.fixture
def long_panel() -> Protocol:
    return Protocol(
        id="long-panel",
        name="Long Panel",
        steps=(
            ProtocolStep(step_number=1, required_code="530.1", days_after_previous=0),
            ProtocolStep(step_number=2, required_code="530.2", days_after_previous=14),
            ProtocolStep(step_number=3, required_code="540.1", days_after_previous=7),
            ProtocolStep(step_number=4, required_code="530.2", days_after_previous=3),
        ),
    )


@pytest.fixture
def catalog(panel_a: Protocol, panel_b: Protocol, long_panel: Protocol) -> InMemoryCatalog:
    return InMemoryCatalog(protocols=[panel_a, panel_b, long_panel], billing_codes=CODES.values())


@pytest.fixture
def audit() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def scheduler(catalog: InMemoryCatalog) -> ProtocolScheduler:
    return ProtocolScheduler(catalog)


@pytest.fixture
def status_handler(audit: InMemoryAuditLog) -> StatusTransitionHandler:
    return StatusTransitionHandler(audit)


@pytest.fixture
def projector(catalog: InMemoryCatalog) -> TimelineProjector:
    return TimelineProjector(catalog)


@pytest.fixture
def make_patient() -> Callable[..., Patient]:
    """Build a patient already positioned on its first assigned protocol."""

    def _make(protocols: list[str] | None = None, **overrides: Any) -> Patient:
        protocols = list(protocols or [])
        fields: dict[str, Any] = {
            "protocol_no": "2025-001",
            "admission_date": date(2025, 1, 1),
            "assigned_protocol_ids": protocols,
            "active_protocol_id": protocols[0] if protocols else None,
            "next_scheduled_date": date(2025, 1, 1) if protocols else None,
        }
        fields.update(overrides)
        return Patient(**fields)

    return _make


@pytest.fixture
def action() -> Callable[..., ActionRecord]:
    def _action(on: date, *codes: str, patient_id: str = "p") -> ActionRecord:
        return ActionRecord(patient_id=patient_id, date=on, codes=[CODES[c] for c in codes])

    return _action


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(storage=StorageSettings(db_path=str(tmp_path / "labtrack.db")))


@pytest.fixture
def service(
    settings: Settings, panel_a: Protocol, panel_b: Protocol, long_panel: Protocol
) -> TrackingService:
    """Tracking service on a temporary SQLite database with a loaded catalog."""
    repo = CatalogRepository(settings.storage.db_path)
    for code in CODES.values():
        repo.save_billing_code(code)
    for protocol in (panel_a, panel_b, long_panel):
        repo.save_protocol(protocol)
    return TrackingService(settings)


@pytest.fixture
def tender_service(settings: Settings, service: TrackingService) -> TenderService:
    """Tender service sharing the tracking service's database."""
    return TenderService(settings)
