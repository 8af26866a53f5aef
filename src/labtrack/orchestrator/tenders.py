"""Tender budget tracking: invoices, protocol quotas and realized-vs-billed usage."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date
from typing import TYPE_CHECKING

from labtrack.config.settings import Settings
from labtrack.core.errors import TenderError
from labtrack.core.models import Invoice, QuotaUsage
from labtrack.core.types import EventKind
from labtrack.storage.repository import (
    AuditLog,
    EntryRepository,
    PatientRepository,
    TenderRepository,
)


if TYPE_CHECKING:
    from collections.abc import Iterable

    from labtrack.core.interfaces import AuditSink, PatientStore
    from labtrack.core.models import BilledProtocolItem, Patient, ProtocolQuota, Tender

logger = logging.getLogger(__name__)


def merge_billed(items: Iterable[BilledProtocolItem]) -> list[BilledProtocolItem]:
    """Collapse repeated protocols into one line, summing their counts."""
    merged: dict[str, BilledProtocolItem] = {}
    for item in items:
        if item.protocol_id in merged:
            current = merged[item.protocol_id]
            merged[item.protocol_id] = current.model_copy(
                update={"count": current.count + item.count}
            )
        else:
            merged[item.protocol_id] = item
    return list(merged.values())


def _counted_protocol(patient: Patient) -> str | None:
    if patient.active_protocol_id:
        return patient.active_protocol_id
    return patient.assigned_protocol_ids[0] if patient.assigned_protocol_ids else None


class TenderService:
    """Manages the active tender and the invoices drawn against it."""

    def __init__(
        self,
        settings: Settings | None = None,
        tenders: TenderRepository | None = None,
        patients: PatientStore | None = None,
        entries: EntryRepository | None = None,
        audit: AuditSink | None = None,
    ) -> None:
        if settings is None:
            settings = Settings()
        self.settings = settings
        db_path = settings.storage.db_path
        self._tenders = tenders or TenderRepository(db_path)
        self._patients = patients or PatientRepository(db_path)
        self._entries = entries or EntryRepository(db_path)
        self._audit = audit or AuditLog(db_path, limit=settings.storage.audit_log_limit)

    def create_tender(self, tender: Tender) -> Tender:
        """Store a tender. An active tender deactivates every other one."""
        self._tenders.save_tender(tender)
        self._audit.record(
            EventKind.TENDER_UPDATED,
            f"Tender {tender.name} created with a budget of {tender.total_budget:,.2f}.",
        )
        logger.info("Created tender %s", tender.id)
        return self._require(tender.id)

    def active_tender(self) -> Tender:
        tender = self._tenders.get_active_tender()
        if tender is None:
            msg = "No active tender"
            raise TenderError(msg)
        return tender

    def set_budget(self, total_budget: float) -> Tender:
        if total_budget < 0:
            msg = f"Budget cannot be negative: {total_budget}"
            raise TenderError(msg)
        tender = self.active_tender()
        self._tenders.save_tender(tender.model_copy(update={"total_budget": total_budget}))
        self._audit.record(
            EventKind.TENDER_UPDATED,
            f"Tender {tender.name} budget changed: "
            f"{tender.total_budget:,.2f} -> {total_budget:,.2f}.",
        )
        return self._require(tender.id)

    def set_quotas(self, quotas: Iterable[ProtocolQuota]) -> Tender:
        """Replace the per-protocol quotas of the active tender."""
        quotas = list(quotas)
        repeated = [pid for pid, n in Counter(q.protocol_id for q in quotas).items() if n > 1]
        if repeated:
            msg = f"Quota defined more than once for: {', '.join(repeated)}"
            raise TenderError(msg)
        tender = self.active_tender()
        self._tenders.save_tender(tender.model_copy(update={"protocol_quotas": quotas}))
        self._audit.record(
            EventKind.TENDER_UPDATED,
            f"Tender {tender.name} quotas updated ({len(quotas)} protocols).",
        )
        return self._require(tender.id)

    def set_quota(self, quota: ProtocolQuota) -> Tender:
        """Insert or replace one quota line. A quota of zero removes the line."""
        current = self.active_tender().protocol_quotas
        lines = [q for q in current if q.protocol_id != quota.protocol_id]
        if quota.quota:
            lines.append(quota)
        return self.set_quotas(lines)

    def add_invoice(
        self,
        amount: float,
        description: str = "",
        billed: Iterable[BilledProtocolItem] = (),
        on_date: date | None = None,
    ) -> Invoice:
        if amount <= 0:
            msg = f"Invoice amount must be positive: {amount}"
            raise TenderError(msg)
        tender = self.active_tender()
        invoice = Invoice(
            tender_id=tender.id,
            date=on_date or date.today(),
            amount=amount,
            description=description,
            billed_protocols=merge_billed(billed),
        )
        self._tenders.add_invoice(invoice)
        self._audit.record(
            EventKind.INVOICE_ADDED,
            f"Invoice of {amount:,.2f} added to {tender.name}: {description}",
        )
        spent = self._require(tender.id)
        if spent.remaining_budget < 0:
            logger.warning(
                "Tender %s is over budget by %.2f", tender.name, -spent.remaining_budget
            )
        return invoice

    def delete_invoice(self, invoice_id: str) -> Invoice:
        """Delete an invoice; its amount goes back to the tender budget."""
        invoice = self._tenders.delete_invoice(invoice_id)
        if invoice is None:
            msg = f"Invoice not found: {invoice_id}"
            raise TenderError(msg)
        self._audit.record(
            EventKind.INVOICE_DELETED,
            f"Invoice of {invoice.amount:,.2f} deleted and refunded to the budget.",
        )
        return invoice

    def invoices(self, tender_id: str | None = None) -> list[Invoice]:
        return self._tenders.invoices_for(tender_id or self.active_tender().id)

    def quota_usage(self, tender: Tender | None = None) -> list[QuotaUsage]:
        """Compare each quota line with registered patients and billed counts.

        A patient counts toward their active protocol, or their first assigned
        one when none is active. Points and prices sum the patient's ledger.
        """
        if tender is None:
            tender = self.active_tender()

        realized: Counter[str] = Counter()
        points: defaultdict[str, float] = defaultdict(float)
        prices: defaultdict[str, float] = defaultdict(float)
        for patient in self._patients.list_patients():
            protocol_id = _counted_protocol(patient)
            if protocol_id is None:
                continue
            realized[protocol_id] += 1
            for entry in self._entries.for_patient(patient.id):
                points[protocol_id] += entry.total_points
                prices[protocol_id] += entry.total_price

        billed: Counter[str] = Counter()
        for invoice in self._tenders.invoices_for(tender.id):
            for item in invoice.billed_protocols:
                billed[item.protocol_id] += item.count

        return [
            QuotaUsage(
                protocol_id=q.protocol_id,
                protocol_name=q.protocol_name,
                quota=q.quota,
                realized=realized[q.protocol_id],
                billed=billed[q.protocol_id],
                total_points=points[q.protocol_id],
                total_price=prices[q.protocol_id],
            )
            for q in tender.protocol_quotas
        ]

    def _require(self, tender_id: str) -> Tender:
        tender = self._tenders.get_tender(tender_id)
        if tender is None:
            msg = f"Tender not found: {tender_id}"
            raise TenderError(msg)
        return tender
