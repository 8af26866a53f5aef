"""Display components for console output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from labtrack.core.types import PatientStatus, PhaseState, StepState
from labtrack.core.utils import format_date


if TYPE_CHECKING:
    from datetime import date

    from rich.console import Console

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

STATUS_STYLES = {
    PatientStatus.ACTIVE: "green",
    PatientStatus.HOSPITALIZED: "yellow",
    PatientStatus.PAUSED: "yellow",
    PatientStatus.EX: "red",
    PatientStatus.COMPLETED: "blue",
    PatientStatus.ARCHIVED: "dim",
}
PHASE_STYLES = {PhaseState.PAST: "green", PhaseState.CURRENT: "bold blue", PhaseState.FUTURE: "dim"}
STEP_ICONS = {StepState.DONE: "[green]✓[/green]", StepState.PENDING: "[blue]●[/blue]",
              StepState.PROJECTED: "[dim]○[/dim]"}


def status_text(status: PatientStatus) -> str:
    style = STATUS_STYLES[status]
    return f"[{style}]{status.label}[/{style}]"


def print_patient(console: Console, patient: Patient) -> None:
    """Print a patient summary panel."""
    lines = [
        f"[bold]Protocol No:[/bold] {patient.protocol_no}",
        f"[bold]Test:[/bold] {patient.test_name or '-'}",
        f"[bold]Status:[/bold] {status_text(patient.status)}",
        f"[bold]Admitted:[/bold] {format_date(patient.admission_date)}",
        f"[bold]Next action:[/bold] {format_date(patient.next_scheduled_date)} "
        f"[dim]{patient.next_scheduled_note or ''}[/dim]",
    ]
    if patient.status_reason:
        lines.append(f"[bold]Reason:[/bold] {patient.status_reason}")
    console.print(Panel("\n".join(lines), title=f"Patient {patient.id[:8]}", border_style="blue"))


def print_timeline(console: Console, patient: Patient, phases: list[ProtocolPhase]) -> None:
    """Print the protocol timeline as a tree."""
    if not phases:
        console.print("  [yellow]⚠[/yellow] No multi-protocol flow defined for this patient")
        return
    tree = Tree(f"[bold]Timeline[/bold] {patient.protocol_no}")
    for phase in phases:
        style = PHASE_STYLES[phase.state]
        branch = tree.add(
            f"[{style}]{phase.position + 1}. {phase.protocol_name}[/{style}] "
            f"[dim]({phase.state.value}) {phase.summary}[/dim]"
        )
        for step in phase.steps:
            when = ""
            if step.date is not None:
                prefix = "planned" if step.state is StepState.PENDING else "estimated"
                when = f" [dim]{prefix}: {step.date.isoformat()}[/dim]"
            branch.add(
                f"{STEP_ICONS[step.state]} {step.step_number}. {step.required_code} "
                f"[dim](+{step.days_after_previous}d)[/dim]{when}"
            )
    console.print(tree)


def print_due_patients(console: Console, patients: list[Patient], today: date) -> None:
    """Print today's work list."""
    table = Table(title=f"Due on or before {today.isoformat()}", border_style="blue")
    table.add_column("Protocol No", style="bold")
    table.add_column("Test", width=30)
    table.add_column("Next Date", justify="right")
    table.add_column("Note")
    for patient in patients:
        overdue = patient.next_scheduled_date is not None and patient.next_scheduled_date < today
        color = "red" if overdue else "yellow"
        table.add_row(
            patient.protocol_no,
            patient.test_name[:28] + "..." if len(patient.test_name) > 30 else patient.test_name,
            f"[{color}]{format_date(patient.next_scheduled_date)}[/{color}]",
            patient.next_scheduled_note or "",
        )
    console.print(table)
    if not patients:
        console.print("  [green]✓[/green] Nothing due")


def print_entries(console: Console, entries: list[Entry]) -> None:
    table = Table(title="Entries", border_style="dim")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Date")
    table.add_column("Kind")
    table.add_column("Codes")
    table.add_column("Points", justify="right")
    table.add_column("Notes")
    for entry in entries:
        table.add_row(
            entry.id,
            entry.date.isoformat(),
            entry.kind.value.replace("_", " "),
            ", ".join(c.code for c in entry.codes),
            f"{entry.total_points:g}",
            entry.notes,
        )
    console.print(table)


def print_audit_log(console: Console, events: list[AuditEvent]) -> None:
    table = Table(title="Audit Log", border_style="blue")
    table.add_column("Time", style="dim")
    table.add_column("Event")
    table.add_column("Details")
    for event in events:
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            event.kind.value.replace("_", " "),
            event.message,
        )
    console.print(table)


def print_catalog_stats(console: Console, stats: dict[str, Any]) -> None:
    table = Table(title="Catalog Import", border_style="blue")
    table.add_column("Item", style="bold")
    table.add_column("Count", justify="right")
    for item, count in stats.items():
        table.add_row(item.replace("_", " ").title(), str(count))
    console.print(table)


def print_catalog(
    console: Console, protocols: list[Protocol], codes: list[BillingCode]
) -> None:
    """Print protocol definitions and the billing code catalog."""
    for protocol in protocols:
        table = Table(
            title=f"{protocol.name} [dim]({protocol.id}, {protocol.total_days} days)[/dim]",
            border_style="blue",
        )
        table.add_column("#", justify="right")
        table.add_column("Code", style="bold")
        table.add_column("Days", justify="right")
        table.add_column("Note")
        for step in protocol.steps:
            table.add_row(
                str(step.step_number), step.required_code,
                f"+{step.days_after_previous}", step.note or "",
            )
        console.print(table)

    table = Table(title="Billing Codes", border_style="dim")
    table.add_column("Code", style="bold")
    table.add_column("Description")
    table.add_column("Points", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Recall", justify="right")
    for code in codes:
        recall = f"{code.legacy_next_action_days}d" if code.legacy_next_action_days else "-"
        table.add_row(code.code, code.description, f"{code.points:g}", f"{code.price:.2f}", recall)
    console.print(table)


def print_patient_stats(console: Console, stats: dict[str, Any]) -> None:
    table = Table(title="Patients", border_style="blue")
    table.add_column("Status", style="bold")
    table.add_column("Count", justify="right")
    for status in PatientStatus:
        count = stats["by_status"].get(status.value, 0)
        if count:
            table.add_row(status_text(status), str(count))
    table.add_row("[bold]Total[/bold]", str(stats["total_patients"]))
    console.print(table)


def print_tender(
    console: Console, tender: Tender, invoices: list[Invoice], usage: list[QuotaUsage]
) -> None:
    """Print a tender's budget, quota usage and invoices."""
    color = "red" if tender.remaining_budget < 0 else "green"
    lines = [
        f"[bold]Period:[/bold] {format_date(tender.start_date)} - {format_date(tender.end_date)}",
        f"[bold]Budget:[/bold] {tender.total_budget:,.2f}",
        f"[bold]Spent:[/bold] {tender.current_spent:,.2f} ({tender.percent_used:.1f}%)",
        f"[bold]Remaining:[/bold] [{color}]{tender.remaining_budget:,.2f}[/{color}]",
    ]
    if tender.total_patient_quota:
        lines.append(f"[bold]Patient quota:[/bold] {tender.total_patient_quota}")
    console.print(Panel("\n".join(lines), title=f"Tender {tender.name}", border_style="blue"))

    if usage:
        table = Table(title="Protocol Quotas", border_style="blue")
        table.add_column("Protocol", style="bold")
        table.add_column("Quota", justify="right")
        table.add_column("Realized", justify="right")
        table.add_column("Billed", justify="right")
        table.add_column("Unbilled", justify="right")
        table.add_column("Points", justify="right")
        table.add_column("Price", justify="right")
        for line in usage:
            over = "red" if line.realized > line.quota else "white"
            table.add_row(
                line.protocol_name,
                str(line.quota),
                f"[{over}]{line.realized}[/{over}]",
                str(line.billed),
                str(line.unbilled),
                f"{line.total_points:g}",
                f"{line.total_price:,.2f}",
            )
        console.print(table)

    table = Table(title="Invoices", border_style="dim")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Protocols")
    table.add_column("Description")
    for invoice in invoices:
        table.add_row(
            invoice.id,
            invoice.date.isoformat(),
            f"{invoice.amount:,.2f}",
            ", ".join(f"{b.protocol_name} x{b.count}" for b in invoice.billed_protocols),
            invoice.description,
        )
    console.print(table)
    if not invoices:
        console.print("  [dim]No invoices yet[/dim]")
