"""Tests for tender budgets, invoices and quota usage."""

from __future__ import annotations

import logging
from datetime import date

import pytest

from labtrack.core.errors import TenderError
from labtrack.core.models import BilledProtocolItem, Patient, ProtocolQuota, Tender
from labtrack.core.types import EventKind
from labtrack.orchestrator.tenders import TenderService, merge_billed
from labtrack.storage.repository import AuditLog, TenderRepository


def _tender(name: str = "Genetics 2025", budget: float = 10_000.0, **fields) -> Tender:
    fields.setdefault("start_date", date(2025, 1, 1))
    fields.setdefault("end_date", date(2025, 12, 31))
    return Tender(name=name, total_budget=budget, **fields)


def _billed(protocol_id: str, count: int = 1) -> BilledProtocolItem:
    return BilledProtocolItem(
        protocol_id=protocol_id, protocol_name=protocol_id.title(), count=count
    )


def _quota(protocol_id: str, quota: int) -> ProtocolQuota:
    return ProtocolQuota(protocol_id=protocol_id, protocol_name=protocol_id.title(), quota=quota)


def _audit_kinds(tenders: TenderService) -> list[EventKind]:
    return [e.kind for e in AuditLog(tenders.settings.storage.db_path).recent()]


class TestBudget:
    def test_invoices_draw_down_and_deletion_refunds(self, tender_service):
        tender_service.create_tender(_tender())
        first = tender_service.add_invoice(2500.0, "January", on_date=date(2025, 1, 31))
        tender_service.add_invoice(1500.0, "February", on_date=date(2025, 2, 28))

        tender = tender_service.active_tender()
        assert tender.current_spent == 4000.0
        assert tender.remaining_budget == 6000.0
        assert tender.percent_used == 40.0

        assert tender_service.delete_invoice(first.id) == first
        tender = tender_service.active_tender()
        assert tender.current_spent == 1500.0
        assert [i.description for i in tender_service.invoices()] == ["February"]
        assert _audit_kinds(tender_service)[:3] == [
            EventKind.INVOICE_DELETED, EventKind.INVOICE_ADDED, EventKind.INVOICE_ADDED,
        ]

    def test_budget_change_keeps_spent(self, tender_service):
        tender_service.create_tender(_tender())
        tender_service.add_invoice(3000.0)

        tender = tender_service.set_budget(2000.0)
        assert tender.total_budget == 2000.0
        assert tender.current_spent == 3000.0
        assert tender.remaining_budget == -1000.0

    def test_zero_budget_reports_no_usage(self):
        assert _tender(budget=0).percent_used == 0.0

    def test_over_budget_warns(self, tender_service, caplog):
        tender_service.create_tender(_tender(budget=1000.0))
        with caplog.at_level(logging.WARNING, logger="labtrack.orchestrator.tenders"):
            tender_service.add_invoice(1200.0)
        assert "over budget by 200.00" in caplog.text

    @pytest.mark.parametrize("amount", [0, -10.0])
    def test_non_positive_invoice_is_rejected(self, tender_service, amount):
        tender_service.create_tender(_tender())
        with pytest.raises(TenderError, match="positive"):
            tender_service.add_invoice(amount)
        assert tender_service.invoices() == []

    def test_negative_budget_is_rejected(self, tender_service):
        tender_service.create_tender(_tender())
        with pytest.raises(TenderError, match="negative"):
            tender_service.set_budget(-1.0)

    def test_unknown_invoice(self, tender_service):
        tender_service.create_tender(_tender())
        with pytest.raises(TenderError, match="not found"):
            tender_service.delete_invoice("missing")


class TestActiveTender:
    def test_none_yet(self, tender_service):
        with pytest.raises(TenderError, match="No active tender"):
            tender_service.active_tender()
        with pytest.raises(TenderError):
            tender_service.add_invoice(100.0)

    def test_new_tender_replaces_active_one(self, tender_service):
        old = tender_service.create_tender(_tender("2024", start_date=date(2024, 1, 1)))
        tender_service.add_invoice(500.0)
        new = tender_service.create_tender(_tender("2025"))

        assert tender_service.active_tender().id == new.id
        stored = {t.id: t for t in TenderRepository(tender_service.settings.storage.db_path)
                  .list_tenders()}
        assert stored[old.id].active is False
        assert stored[old.id].current_spent == 500.0
        assert tender_service.invoices(old.id)[0].amount == 500.0
        assert tender_service.invoices() == []


class TestQuotas:
    def test_set_quota_upserts_and_zero_removes(self, tender_service):
        tender_service.create_tender(_tender())
        tender_service.set_quota(_quota("panel-a", 5))
        tender_service.set_quota(_quota("panel-b", 2))
        tender = tender_service.set_quota(_quota("panel-a", 8))

        assert [(q.protocol_id, q.quota) for q in tender.protocol_quotas] == [
            ("panel-b", 2), ("panel-a", 8),
        ]
        tender = tender_service.set_quota(_quota("panel-b", 0))
        assert [q.protocol_id for q in tender.protocol_quotas] == ["panel-a"]

    def test_repeated_quota_lines_are_rejected(self, tender_service):
        tender_service.create_tender(_tender())
        with pytest.raises(TenderError, match="panel-a"):
            tender_service.set_quotas([_quota("panel-a", 1), _quota("panel-a", 2)])

    def test_realized_versus_billed(self, service, tender_service):
        tender_service.create_tender(
            _tender(protocol_quotas=[_quota("panel-a", 5), _quota("panel-b", 2)])
        )
        first = service.register_patient(Patient(
            protocol_no="A-1", admission_date=date(2025, 1, 1),
            assigned_protocol_ids=["panel-a", "panel-b"],
        ))
        service.record_action(service.build_action(first.id, date(2025, 1, 1), ["530.1"]))
        for protocol_no, protocols in [("A-2", ["panel-a"]), ("B-1", ["panel-b"])]:
            service.register_patient(Patient(
                protocol_no=protocol_no, admission_date=date(2025, 1, 1),
                assigned_protocol_ids=protocols,
            ))
        tender_service.add_invoice(450.0, billed=[_billed("panel-a")])

        usage = {u.protocol_id: u for u in tender_service.quota_usage()}
        assert (usage["panel-a"].realized, usage["panel-a"].billed) == (2, 1)
        assert usage["panel-a"].unbilled == 1
        assert usage["panel-a"].total_points == 120
        assert usage["panel-a"].total_price == 450.0
        assert (usage["panel-b"].realized, usage["panel-b"].billed) == (1, 0)
        assert usage["panel-b"].quota == 2


def test_invoice_breakdown_merges_repeated_protocols(tender_service):
    tender_service.create_tender(_tender())
    invoice = tender_service.add_invoice(
        900.0, billed=[_billed("panel-a", 2), _billed("panel-b"), _billed("panel-a")]
    )

    assert [(b.protocol_id, b.count) for b in invoice.billed_protocols] == [
        ("panel-a", 3), ("panel-b", 1),
    ]
    (stored,) = tender_service.invoices()
    assert stored.billed_protocols == invoice.billed_protocols


def test_merge_billed_leaves_inputs_untouched():
    items = [_billed("panel-a", 2), _billed("panel-a", 1)]
    assert merge_billed(items)[0].count == 3
    assert [i.count for i in items] == [2, 1]
