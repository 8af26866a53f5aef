"""Converters for database rows to model objects."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import TYPE_CHECKING

from labtrack.core.models import (
    AuditEvent,
    BilledProtocolItem,
    BillingCode,
    Entry,
    Invoice,
    Patient,
    Protocol,
    ProtocolQuota,
    ProtocolStep,
    Tender,
)
from labtrack.core.types import EntryKind, EventKind


if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Iterable


def row_to_billing_code(row: sqlite3.Row) -> BillingCode:
    return BillingCode(
        code=row["code"],
        description=row["description"] or "",
        points=row["points"] or 0.0,
        price=row["price"] or 0.0,
        related_test_name=row["related_test_name"],
        legacy_next_action_days=row["legacy_next_action_days"],
    )


def row_to_protocol(row: sqlite3.Row, step_rows: Iterable[sqlite3.Row]) -> Protocol:
    """Convert a protocol row and its ordered step rows to a Protocol."""
    steps = tuple(
        ProtocolStep(
            step_number=s["step_number"],
            required_code=s["required_code"],
            days_after_previous=s["days_after_previous"],
            note=s["note"],
        )
        for s in step_rows
    )
    return Protocol(id=row["id"], name=row["name"], steps=steps)


def row_to_patient(row: sqlite3.Row) -> Patient:
    return Patient.model_validate_json(row["data"])


def row_to_entry(row: sqlite3.Row) -> Entry:
    codes = [BillingCode(**c) for c in json.loads(row["codes"] or "[]")]
    return Entry(
        id=row["id"],
        patient_id=row["patient_id"],
        date=date.fromisoformat(row["entry_date"]),
        codes=codes,
        notes=row["notes"] or "",
        kind=EntryKind(row["kind"]),
    )


def row_to_audit_event(row: sqlite3.Row) -> AuditEvent:
    return AuditEvent(
        id=row["id"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        kind=EventKind(row["kind"]),
        message=row["message"],
    )


def row_to_tender(row: sqlite3.Row) -> Tender:
    return Tender(
        id=row["id"],
        name=row["name"],
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]),
        total_budget=row["total_budget"],
        total_patient_quota=row["total_patient_quota"] or 0,
        protocol_quotas=[ProtocolQuota(**q) for q in json.loads(row["protocol_quotas"] or "[]")],
        current_spent=row["current_spent"] or 0.0,
        active=bool(row["active"]),
    )


def row_to_invoice(row: sqlite3.Row) -> Invoice:
    billed = json.loads(row["billed_protocols"] or "[]")
    return Invoice(
        id=row["id"],
        tender_id=row["tender_id"],
        date=date.fromisoformat(row["invoice_date"]),
        amount=row["amount"],
        description=row["description"] or "",
        billed_protocols=[BilledProtocolItem(**item) for item in billed],
    )
