"""Storage layer for catalog, patient records, ledger, audit trail and tenders."""

from labtrack.storage.memory import InMemoryAuditLog, InMemoryCatalog
from labtrack.storage.repository import (
    AuditLog,
    CatalogRepository,
    EntryRepository,
    PatientRepository,
    TenderRepository,
)

__all__ = [
    "AuditLog",
    "CatalogRepository",
    "EntryRepository",
    "InMemoryAuditLog",
    "InMemoryCatalog",
    "PatientRepository",
    "TenderRepository",
]
