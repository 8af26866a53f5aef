"""Command-line interface for labtrack."""

from __future__ import annotations

import argparse
import sys
from datetime import date

from labtrack.config.settings import Settings
from labtrack.console.logger import TrackerConsole
from labtrack.core.errors import InvalidStateError
from labtrack.core.models import BilledProtocolItem, Patient, ProtocolQuota, Tender
from labtrack.core.types import EventKind, PatientStatus
from labtrack.orchestrator.service import TrackingService
from labtrack.orchestrator.tenders import TenderService
from labtrack.reporting.html import render_timeline
from labtrack.storage.repository import AuditLog, CatalogRepository, PatientRepository


console = TrackerConsole()


def _settings(db_path: str | None) -> Settings:
    settings = Settings()
    if db_path:
        settings.storage.db_path = db_path
    console.setup_logging(settings.log_level)
    return settings


def _split(value: str | None) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else []


def init_db(db_path: str | None = None) -> None:
    """Create the database tables."""
    settings = _settings(db_path)
    TrackingService(settings)
    console.print_success(f"Database initialized at {settings.storage.db_path}")


def load_catalog(path: str, db_path: str | None = None) -> None:
    settings = _settings(db_path)
    stats = CatalogRepository(settings.storage.db_path).load_json(path)
    AuditLog(settings.storage.db_path, limit=settings.storage.audit_log_limit).record(
        EventKind.CATALOG_UPDATED,
        f"Catalog imported from {path}: {stats['protocols']} protocols, "
        f"{stats['billing_codes']} billing codes.",
    )
    console.print_catalog_stats(stats)


def register_patient(args: argparse.Namespace) -> None:
    settings = _settings(args.db)
    service = TrackingService(settings)
    patient = Patient(
        protocol_no=args.protocol_no,
        admission_date=args.admission or date.today(),
        test_name=args.test_name or "",
        requesting_doctor=args.doctor or "",
        tissue_type=args.tissue or "",
        assigned_protocol_ids=_split(args.protocols),
        active_protocol_id=args.start,
        inter_protocol_gap_days=(
            args.gap
            if args.gap is not None
            else settings.scheduling.default_inter_protocol_gap_days
        ),
        entry_frequency_days=(
            args.frequency
            if args.frequency is not None
            else settings.scheduling.default_entry_frequency_days
        ),
    )
    console.print_patient(service.register_patient(patient))


def record_action(args: argparse.Namespace) -> None:
    service = TrackingService(_settings(args.db))
    patient = service.find_patient(args.patient)
    on_date = args.date or date.today()
    if service.is_premature(patient, on_date):
        console.print_warning(
            f"Entry date {on_date} is before the scheduled date {patient.next_scheduled_date}"
        )
    action = service.build_action(patient.id, on_date, _split(args.codes), args.notes or "")
    console.print_patient(service.record_action(action))


def change_status(args: argparse.Namespace) -> None:
    service = TrackingService(_settings(args.db))
    patient = service.find_patient(args.patient)
    updated = service.change_status(
        patient.id, PatientStatus(args.new_status), args.reason or "", args.date or date.today()
    )
    console.print_patient(updated)


def show_patient(args: argparse.Namespace) -> None:
    service = TrackingService(_settings(args.db))
    patient = service.find_patient(args.patient)
    console.print_patient(patient)
    console.print_entries(service.entries.for_patient(patient.id))


def show_timeline(args: argparse.Namespace) -> None:
    service = TrackingService(_settings(args.db))
    patient = service.find_patient(args.patient)
    phases = service.timeline(patient.id)
    console.print_header(f"Timeline: {patient.protocol_no}", patient.test_name)
    console.print_timeline(patient, phases)
    if args.html:
        output = render_timeline(patient, phases, args.html)
        console.print_success(f"Timeline written to {output}")


def show_due(args: argparse.Namespace) -> None:
    service = TrackingService(_settings(args.db))
    today = args.date or date.today()
    console.print_due_patients(service.due_patients(today), today)


def show_log(args: argparse.Namespace) -> None:
    settings = _settings(args.db)
    console.print_audit_log(AuditLog(settings.storage.db_path).recent(args.limit))


def show_catalog(args: argparse.Namespace) -> None:
    repo = CatalogRepository(_settings(args.db).storage.db_path)
    console.print_catalog(repo.list_protocols(), repo.list_billing_codes())


def show_stats(args: argparse.Namespace) -> None:
    settings = _settings(args.db)
    console.print_patient_stats(PatientRepository(settings.storage.db_path).get_stats())


def delete_patient(args: argparse.Namespace) -> None:
    service = TrackingService(_settings(args.db))
    patient = service.find_patient(args.patient)
    service.delete_patient(patient.id)
    console.print_success(f"Deleted patient {patient.protocol_no}")


def delete_entry(args: argparse.Namespace) -> None:
    service = TrackingService(_settings(args.db))
    entry = service.delete_entry(args.entry_id)
    console.print_success(f"Deleted entry {entry.id} dated {entry.date.isoformat()}")


def _protocol_name(settings: Settings, protocol_id: str) -> str:
    protocol = CatalogRepository(settings.storage.db_path).get_protocol(protocol_id)
    if protocol is None:
        msg = f"Unknown protocol: {protocol_id}"
        raise InvalidStateError(msg)
    return protocol.name


def _billed(settings: Settings, value: str | None) -> list[BilledProtocolItem]:
    """Parse ``panel-a:2,panel-b`` into billed protocol lines."""
    items = []
    for part in _split(value):
        protocol_id, _, count = part.partition(":")
        items.append(
            BilledProtocolItem(
                protocol_id=protocol_id,
                protocol_name=_protocol_name(settings, protocol_id),
                count=int(count) if count else 1,
            )
        )
    return items


def show_tender(tenders: TenderService) -> None:
    tender = tenders.active_tender()
    console.print_tender(tender, tenders.invoices(tender.id), tenders.quota_usage(tender))


def manage_tender(args: argparse.Namespace) -> None:
    settings = _settings(args.db)
    tenders = TenderService(settings)
    if args.action == "create":
        tenders.create_tender(
            Tender(
                name=args.name,
                start_date=args.start,
                end_date=args.end,
                total_budget=args.budget,
                total_patient_quota=args.patients,
            )
        )
    elif args.action == "budget":
        tenders.set_budget(args.amount)
    elif args.action == "quota":
        tenders.set_quota(
            ProtocolQuota(
                protocol_id=args.protocol_id,
                protocol_name=_protocol_name(settings, args.protocol_id),
                quota=args.quota,
            )
        )
    show_tender(tenders)


def manage_invoice(args: argparse.Namespace) -> None:
    settings = _settings(args.db)
    tenders = TenderService(settings)
    if args.action == "add":
        invoice = tenders.add_invoice(
            args.amount,
            args.description or "",
            _billed(settings, args.protocols),
            args.date or date.today(),
        )
        console.print_success(f"Invoice {invoice.id} added")
    else:
        invoice = tenders.delete_invoice(args.invoice_id)
        console.print_success(f"Invoice {invoice.id} deleted, {invoice.amount:,.2f} refunded")
    show_tender(tenders)


def _add_db(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--db", help="Database path (default from settings)")


def main() -> None:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(prog="labtrack", description="Lab Protocol Tracker")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show log output")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_cmd = subparsers.add_parser("init", help="Initialize the database")
    _add_db(init_cmd)

    cat = subparsers.add_parser("load-catalog", help="Import billing codes and protocols")
    cat.add_argument("path", help="JSON file with billing_codes and protocols")
    _add_db(cat)

    reg = subparsers.add_parser("register", help="Register a new patient")
    reg.add_argument("protocol_no", help="Patient protocol number")
    reg.add_argument("--admission", type=date.fromisoformat, help="Admission date (YYYY-MM-DD)")
    reg.add_argument("--protocols", "-p", help="Protocol ids in order (comma-separated)")
    reg.add_argument("--start", help="Protocol id to start from (default: the first)")
    reg.add_argument("--gap", type=int, help="Days between protocols")
    reg.add_argument("--frequency", type=int, help="Recall interval without protocols")
    reg.add_argument("--test-name", help="Test name")
    reg.add_argument("--doctor", help="Requesting doctor")
    reg.add_argument("--tissue", help="Tissue type")
    _add_db(reg)

    rec = subparsers.add_parser("record", help="Record a billing action")
    rec.add_argument("patient", help="Patient id or protocol number")
    rec.add_argument("--codes", "-c", required=True, help="Billing codes (comma-separated)")
    rec.add_argument("--date", type=date.fromisoformat, help="Action date (YYYY-MM-DD)")
    rec.add_argument("--notes", "-n", help="Free-text notes")
    _add_db(rec)

    st = subparsers.add_parser("status", help="Change a patient's status")
    st.add_argument("patient", help="Patient id or protocol number")
    st.add_argument("new_status", choices=[s.value for s in PatientStatus])
    st.add_argument("--reason", "-r", help="Reason for the change")
    st.add_argument("--date", type=date.fromisoformat, help="Effective date (YYYY-MM-DD)")
    _add_db(st)

    show = subparsers.add_parser("show", help="Show a patient and their entries")
    show.add_argument("patient", help="Patient id or protocol number")
    _add_db(show)

    tl = subparsers.add_parser("timeline", help="Show a patient's protocol timeline")
    tl.add_argument("patient", help="Patient id or protocol number")
    tl.add_argument("--html", help="Also write the timeline to this HTML file")
    _add_db(tl)

    due = subparsers.add_parser("due", help="List patients due for an action")
    due.add_argument("--date", type=date.fromisoformat, help="Reference date (YYYY-MM-DD)")
    _add_db(due)

    log_cmd = subparsers.add_parser("log", help="Show the audit log")
    log_cmd.add_argument("--limit", type=int, default=50, help="Number of events")
    _add_db(log_cmd)

    catalog_cmd = subparsers.add_parser("catalog", help="List protocols and billing codes")
    _add_db(catalog_cmd)

    stats_cmd = subparsers.add_parser("stats", help="Show patient counts by status")
    _add_db(stats_cmd)

    delete_cmd = subparsers.add_parser("delete", help="Delete a patient and their entries")
    delete_cmd.add_argument("patient", help="Patient id or protocol number")
    _add_db(delete_cmd)

    del_entry = subparsers.add_parser("delete-entry", help="Delete a ledger entry")
    del_entry.add_argument("entry_id", help="Entry id, as shown by the show command")
    _add_db(del_entry)

    tender_cmd = subparsers.add_parser("tender", help="Manage the active tender")
    tender_actions = tender_cmd.add_subparsers(dest="action", required=True)
    create = tender_actions.add_parser("create", help="Create a tender and make it active")
    create.add_argument("name", help="Tender name")
    create.add_argument("--start", type=date.fromisoformat, required=True, help="Start date")
    create.add_argument("--end", type=date.fromisoformat, required=True, help="End date")
    create.add_argument("--budget", type=float, required=True, help="Total budget")
    create.add_argument("--patients", type=int, default=0, help="Total patient quota")
    _add_db(create)
    tender_show = tender_actions.add_parser("show", help="Show budget, quotas and invoices")
    _add_db(tender_show)
    budget = tender_actions.add_parser("budget", help="Change the total budget")
    budget.add_argument("amount", type=float, help="New total budget")
    _add_db(budget)
    quota = tender_actions.add_parser("quota", help="Set a protocol quota (0 removes it)")
    quota.add_argument("protocol_id", help="Protocol id")
    quota.add_argument("quota", type=int, help="Number of patients funded")
    _add_db(quota)

    invoice_cmd = subparsers.add_parser("invoice", help="Add or delete tender invoices")
    invoice_actions = invoice_cmd.add_subparsers(dest="action", required=True)
    inv_add = invoice_actions.add_parser("add", help="Charge an invoice to the active tender")
    inv_add.add_argument("amount", type=float, help="Invoice amount")
    inv_add.add_argument("--description", "-d", help="Invoice description")
    inv_add.add_argument("--protocols", "-p", help="Billed protocols, e.g. panel-a:2,panel-b")
    inv_add.add_argument("--date", type=date.fromisoformat, help="Invoice date (YYYY-MM-DD)")
    _add_db(inv_add)
    inv_del = invoice_actions.add_parser("delete", help="Delete an invoice and refund it")
    inv_del.add_argument("invoice_id", help="Invoice id")
    _add_db(inv_del)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)
    console.verbose = args.verbose

    try:
        if args.command == "init":
            init_db(args.db)
        elif args.command == "load-catalog":
            load_catalog(args.path, args.db)
        elif args.command == "register":
            register_patient(args)
        elif args.command == "record":
            record_action(args)
        elif args.command == "status":
            change_status(args)
        elif args.command == "show":
            show_patient(args)
        elif args.command == "timeline":
            show_timeline(args)
        elif args.command == "due":
            show_due(args)
        elif args.command == "log":
            show_log(args)
        elif args.command == "catalog":
            show_catalog(args)
        elif args.command == "stats":
            show_stats(args)
        elif args.command == "delete":
            delete_patient(args)
        elif args.command == "delete-entry":
            delete_entry(args)
        elif args.command == "tender":
            manage_tender(args)
        elif args.command == "invoice":
            manage_invoice(args)
    except KeyboardInterrupt:
        console.console.print("\n[yellow]Cancelled by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
