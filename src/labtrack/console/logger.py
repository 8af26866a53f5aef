"""Rich console output and logging setup for the CLI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from labtrack.console.display import (
    print_audit_log,
    print_catalog,
    print_catalog_stats,
    print_due_patients,
    print_entries,
    print_patient,
    print_patient_stats,
    print_tender,
    print_timeline,
)


if TYPE_CHECKING:
    from datetime import date

    from labtrack.core.models import (
        AuditEvent,
        BillingCode,
        Entry,
        Invoice,
        Patient,
        Protocol,
        ProtocolPhase,
        QuotaUsage,
        Tender,
    )


class TrackerConsole:
    """Rich console interface for tracker commands."""

    def __init__(self, verbose: bool = False) -> None:
        self.console = Console()
        self.verbose = verbose

    def setup_logging(self, level: str = "INFO") -> None:
        logging.basicConfig(
            level=level if self.verbose else "WARNING",
            format="%(message)s",
            handlers=[
                RichHandler(
                    console=self.console, rich_tracebacks=True, show_time=False, show_path=False
                )
            ],
            force=True,
        )

    def print_header(self, title: str, detail: str = "") -> None:
        header = Text()
        header.append("labtrack", style="bold blue")
        header.append(" - Lab Protocol Tracker\n\n", style="dim")
        header.append(title, style="bold")
        if detail:
            header.append(f"\n{detail}", style="dim")
        self.console.print(Panel(header, border_style="blue"))

    def print_patient(self, patient: Patient) -> None:
        print_patient(self.console, patient)

    def print_timeline(self, patient: Patient, phases: list[ProtocolPhase]) -> None:
        print_timeline(self.console, patient, phases)

    def print_due_patients(self, patients: list[Patient], today: date) -> None:
        print_due_patients(self.console, patients, today)

    def print_entries(self, entries: list[Entry]) -> None:
        print_entries(self.console, entries)

    def print_audit_log(self, events: list[AuditEvent]) -> None:
        print_audit_log(self.console, events)

    def print_catalog_stats(self, stats: dict[str, Any]) -> None:
        print_catalog_stats(self.console, stats)

    def print_catalog(self, protocols: list[Protocol], codes: list[BillingCode]) -> None:
        print_catalog(self.console, protocols, codes)

    def print_patient_stats(self, stats: dict[str, Any]) -> None:
        print_patient_stats(self.console, stats)

    def print_tender(
        self, tender: Tender, invoices: list[Invoice], usage: list[QuotaUsage]
    ) -> None:
        print_tender(self.console, tender, invoices, usage)

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, error: str) -> None:
        self.console.print()
        self.console.print(
            Panel(f"[red]{escape(error)}[/red]", title="[red]Error[/red]", border_style="red")
        )
