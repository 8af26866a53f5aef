"""SQLite-backed catalog, patient, entry, audit and tender stores."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from labtrack.core.interfaces import AuditSink, CatalogLookup, PatientStore
from labtrack.core.models import AuditEvent, BillingCode, Protocol
from labtrack.storage.converters import (
    row_to_audit_event,
    row_to_billing_code,
    row_to_entry,
    row_to_invoice,
    row_to_patient,
    row_to_protocol,
    row_to_tender,
)
from labtrack.storage.schema import INIT_SCHEMA


if TYPE_CHECKING:
    from collections.abc import Iterator

    from labtrack.core.models import Entry, Invoice, Patient, Tender
    from labtrack.core.types import EventKind, PatientStatus

logger = logging.getLogger(__name__)


class SQLiteStore:
    """Connection handling shared by the SQLite repositories."""

    def __init__(self, db_path: str | Path = "labtrack.db") -> None:
        self.db_path = Path(db_path)
        self._init_db()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connection() as conn:
            conn.executescript(INIT_SCHEMA)


class CatalogRepository(SQLiteStore, CatalogLookup):
    """Billing codes and protocol definitions."""

    def save_billing_code(self, code: BillingCode) -> str:
        with self._connection() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO billing_codes
                (code, description, points, price, related_test_name, legacy_next_action_days)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (code.code, code.description, code.points, code.price,
                 code.related_test_name, code.legacy_next_action_days),
            )
        return code.code

    def get_billing_code(self, code: str) -> BillingCode | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM billing_codes WHERE code = ?", (code,)).fetchone()
        return row_to_billing_code(row) if row else None

    def list_billing_codes(self) -> list[BillingCode]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM billing_codes ORDER BY code").fetchall()
        return [row_to_billing_code(r) for r in rows]

    def save_protocol(self, protocol: Protocol) -> str:
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO protocols (id, name, updated_at) VALUES (?, ?, ?)",
                (protocol.id, protocol.name, datetime.now().isoformat()),
            )
            conn.execute("DELETE FROM protocol_steps WHERE protocol_id = ?", (protocol.id,))
            conn.executemany(
                "INSERT INTO protocol_steps VALUES (?, ?, ?, ?, ?)",
                [(protocol.id, s.step_number, s.required_code, s.days_after_previous, s.note)
                 for s in protocol.steps],
            )
        return protocol.id

    def get_protocol(self, protocol_id: str) -> Protocol | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM protocols WHERE id = ?", (protocol_id,)).fetchone()
            if row is None:
                return None
            steps = conn.execute(
                "SELECT * FROM protocol_steps WHERE protocol_id = ? ORDER BY step_number",
                (protocol_id,),
            ).fetchall()
        return row_to_protocol(row, steps)

    def list_protocols(self) -> list[Protocol]:
        with self._connection() as conn:
            ids = [r["id"] for r in conn.execute("SELECT id FROM protocols ORDER BY name")]
        return [p for p in (self.get_protocol(i) for i in ids) if p is not None]

    def load_json(self, path: str | Path) -> dict[str, int]:
        """Import ``{"billing_codes": [...], "protocols": [...]}`` from a JSON file."""
        data: dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
        codes = [BillingCode.model_validate(c) for c in data.get("billing_codes", [])]
        protocols = [Protocol.model_validate(p) for p in data.get("protocols", [])]
        for code in codes:
            self.save_billing_code(code)
        for protocol in protocols:
            self.save_protocol(protocol)
        logger.info("Loaded %d billing codes and %d protocols", len(codes), len(protocols))
        return {"billing_codes": len(codes), "protocols": len(protocols)}


class PatientRepository(SQLiteStore, PatientStore):
    """Patient records."""

    def save(self, patient: Patient) -> None:
        next_date = patient.next_scheduled_date.isoformat() if patient.next_scheduled_date else None
        with self._connection() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO patients
                (id, protocol_no, status, next_scheduled_date, data, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (patient.id, patient.protocol_no, patient.status.value, next_date,
                 patient.model_dump_json(), datetime.now().isoformat()),
            )

    def load(self, patient_id: str) -> Patient | None:
        with self._connection() as conn:
            row = conn.execute("SELECT data FROM patients WHERE id = ?", (patient_id,)).fetchone()
        return row_to_patient(row) if row else None

    def find_by_protocol_no(self, protocol_no: str) -> Patient | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT data FROM patients WHERE protocol_no = ?", (protocol_no,)
            ).fetchone()
        return row_to_patient(row) if row else None

    def list_patients(self, status: PatientStatus | None = None) -> list[Patient]:
        with self._connection() as conn:
            if status is None:
                rows = conn.execute("SELECT data FROM patients ORDER BY protocol_no").fetchall()
            else:
                rows = conn.execute(
                    "SELECT data FROM patients WHERE status = ? ORDER BY protocol_no",
                    (status.value,),
                ).fetchall()
        return [row_to_patient(r) for r in rows]

    def delete(self, patient_id: str) -> bool:
        """Delete a patient together with their ledger entries."""
        with self._connection() as conn:
            conn.execute("DELETE FROM entries WHERE patient_id = ?", (patient_id,))
            result = conn.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
            return result.rowcount > 0

    def get_stats(self) -> dict[str, Any]:
        with self._connection() as conn:
            total = conn.execute("SELECT COUNT(*) as cnt FROM patients").fetchone()["cnt"]
            by_status = conn.execute(
                "SELECT status, COUNT(*) as cnt FROM patients GROUP BY status"
            ).fetchall()
        return {"total_patients": total, "by_status": {r["status"]: r["cnt"] for r in by_status}}


class EntryRepository(SQLiteStore):
    """Ledger of billing actions and status changes."""

    def add(self, entry: Entry) -> str:
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO entries
                (id, patient_id, entry_date, kind, total_points, total_price, notes, codes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (entry.id, entry.patient_id, entry.date.isoformat(), entry.kind.value,
                 entry.total_points, entry.total_price, entry.notes,
                 json.dumps([c.model_dump() for c in entry.codes])),
            )
        return entry.id

    def for_patient(self, patient_id: str) -> list[Entry]:
        """Entries for a patient, newest first."""
        with self._connection() as conn:
            rows = conn.execute(
                """SELECT * FROM entries WHERE patient_id = ?
                ORDER BY entry_date DESC, created_at DESC, rowid DESC""",
                (patient_id,),
            ).fetchall()
        return [row_to_entry(r) for r in rows]

    def get(self, entry_id: str) -> Entry | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM entries WHERE id = ?", (entry_id,)).fetchone()
        return row_to_entry(row) if row else None

    def delete(self, entry_id: str) -> bool:
        with self._connection() as conn:
            result = conn.execute("DELETE FROM entries WHERE id = ?", (entry_id,))
            return result.rowcount > 0


class AuditLog(SQLiteStore, AuditSink):
    """Audit trail capped at ``limit`` events; the oldest are dropped first."""

    def __init__(self, db_path: str | Path = "labtrack.db", limit: int = 1000) -> None:
        super().__init__(db_path)
        self.limit = limit

    def record(self, kind: EventKind, message: str) -> AuditEvent:
        event = AuditEvent(kind=kind, message=message)
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO audit_log (id, timestamp, kind, message) VALUES (?, ?, ?, ?)",
                (event.id, event.timestamp.isoformat(), event.kind.value, event.message),
            )
            conn.execute(
                """DELETE FROM audit_log WHERE seq NOT IN
                (SELECT seq FROM audit_log ORDER BY seq DESC LIMIT ?)""",
                (self.limit,),
            )
        return event

    def recent(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM audit_log ORDER BY seq DESC LIMIT ?", (limit,)
            ).fetchall()
        return [row_to_audit_event(r) for r in rows]


class TenderRepository(SQLiteStore):
    """Tenders and the invoices charged against them.

    ``current_spent`` is recomputed from the invoice table whenever an
    invoice is added or deleted, so deleting an invoice refunds its amount.
    """

    def save_tender(self, tender: Tender) -> str:
        with self._connection() as conn:
            if tender.active:
                conn.execute("UPDATE tenders SET active = 0 WHERE id != ?", (tender.id,))
            conn.execute(
                """INSERT OR REPLACE INTO tenders
                (id, name, start_date, end_date, total_budget, total_patient_quota,
                 protocol_quotas, current_spent, active)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (tender.id, tender.name, tender.start_date.isoformat(),
                 tender.end_date.isoformat(), tender.total_budget, tender.total_patient_quota,
                 json.dumps([q.model_dump() for q in tender.protocol_quotas]),
                 tender.current_spent, int(tender.active)),
            )
            self._recalculate_spent(conn, tender.id)
        return tender.id

    def get_tender(self, tender_id: str) -> Tender | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM tenders WHERE id = ?", (tender_id,)).fetchone()
        return row_to_tender(row) if row else None

    def get_active_tender(self) -> Tender | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM tenders WHERE active = 1 ORDER BY start_date DESC LIMIT 1"
            ).fetchone()
        return row_to_tender(row) if row else None

    def list_tenders(self) -> list[Tender]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM tenders ORDER BY start_date DESC").fetchall()
        return [row_to_tender(r) for r in rows]

    def add_invoice(self, invoice: Invoice) -> str:
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO invoices
                (id, tender_id, invoice_date, amount, description, billed_protocols)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (invoice.id, invoice.tender_id, invoice.date.isoformat(), invoice.amount,
                 invoice.description,
                 json.dumps([item.model_dump() for item in invoice.billed_protocols])),
            )
            self._recalculate_spent(conn, invoice.tender_id)
        return invoice.id

    def get_invoice(self, invoice_id: str) -> Invoice | None:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM invoices WHERE id = ?", (invoice_id,)).fetchone()
        return row_to_invoice(row) if row else None

    def invoices_for(self, tender_id: str) -> list[Invoice]:
        """Invoices of a tender, newest first."""
        with self._connection() as conn:
            rows = conn.execute(
                """SELECT * FROM invoices WHERE tender_id = ?
                ORDER BY invoice_date DESC, created_at DESC, rowid DESC""",
                (tender_id,),
            ).fetchall()
        return [row_to_invoice(r) for r in rows]

    def delete_invoice(self, invoice_id: str) -> Invoice | None:
        """Delete an invoice and return it, or None if it did not exist."""
        invoice = self.get_invoice(invoice_id)
        if invoice is None:
            return None
        with self._connection() as conn:
            conn.execute("DELETE FROM invoices WHERE id = ?", (invoice_id,))
            self._recalculate_spent(conn, invoice.tender_id)
        return invoice

    @staticmethod
    def _recalculate_spent(conn: sqlite3.Connection, tender_id: str) -> None:
        conn.execute(
            """UPDATE tenders SET current_spent =
            (SELECT COALESCE(SUM(amount), 0) FROM invoices WHERE tender_id = ?)
            WHERE id = ?""",
            (tender_id, tender_id),
        )
