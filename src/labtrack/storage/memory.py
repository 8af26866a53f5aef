"""In-memory catalog and audit sink for tests and embedding."""

from __future__ import annotations

from typing import TYPE_CHECKING

from labtrack.core.interfaces import AuditSink, CatalogLookup
from labtrack.core.models import AuditEvent


if TYPE_CHECKING:
    from collections.abc import Iterable

    from labtrack.core.models import BillingCode, Protocol
    from labtrack.core.types import EventKind


class InMemoryCatalog(CatalogLookup):
    """Catalog held in dictionaries."""

    def __init__(
        self,
        protocols: Iterable[Protocol] = (),
        billing_codes: Iterable[BillingCode] = (),
    ) -> None:
        self._protocols = {p.id: p for p in protocols}
        self._codes = {c.code: c for c in billing_codes}

    def get_protocol(self, protocol_id: str) -> Protocol | None:
        return self._protocols.get(protocol_id)

    def get_billing_code(self, code: str) -> BillingCode | None:
        return self._codes.get(code)

    def put_protocol(self, protocol: Protocol) -> None:
        self._protocols[protocol.id] = protocol


class InMemoryAuditLog(AuditSink):
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def record(self, kind: EventKind, message: str) -> AuditEvent:
        event = AuditEvent(kind=kind, message=message)
        self.events.append(event)
        return event
