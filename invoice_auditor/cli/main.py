"""Main CLI application"""

import asyncio
import json
import mimetypes
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from invoice_auditor.models.audit import AuditRecord, AuditStatus, Severity
from invoice_auditor.utils.logging import configure_logging

app = typer.Typer(
    name="invoice-auditor",
    help="Audit clinical trial site invoices against their contracts with AI",
    add_completion=False,
)

console = Console(force_terminal=True)

STATUS_STYLES = {
    AuditStatus.PROCESSING: "blue",
    AuditStatus.COMPLETED: "green",
    AuditStatus.FAILED: "red",
}

OVERALL_LABELS = {
    "match": "[green]All Match[/green]",
    "discrepancies_found": "[yellow]Discrepancies Found[/yellow]",
    "major_discrepancies": "[red]Major Discrepancies[/red]",
}

SEVERITY_STYLES = {
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
}


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """Invoice audit pipeline"""
    configure_logging(log_level)


def _money(value, currency: str = "") -> str:
    if value is None:
        return "-"
    return f"{value:,.2f} {currency}".strip()


@app.command("init")
def init():
    """Initialize the local database and storage directory"""
    from invoice_auditor.db.supabase import get_database
    from invoice_auditor.utils.config import get_settings

    settings = get_settings()
    try:
        get_database().init_db()
    except Exception as e:
        console.print(f"[red][FAIL] Database init failed: {e}[/red]")
        raise typer.Exit(1)

    if settings.db_mode != "supabase":
        Path(settings.storage_path).mkdir(parents=True, exist_ok=True)
        console.print(f"[green][OK] SQLite database ready at {settings.database_path}[/green]")
        console.print(f"[green][OK] Local storage ready at {settings.storage_path}[/green]")
    else:
        console.print("[green][OK] Supabase schema verified[/green]")


@app.command("add-document")
def add_document(
    contract_id: str = typer.Argument(..., help="Contract ID"),
    pdf: Path = typer.Argument(..., exists=True, dir_okay=False, help="Contract PDF"),
    primary: bool = typer.Option(False, "--primary", help="Mark as the primary contract document"),
):
    """Upload a contract PDF and register it for a contract"""
    from invoice_auditor.db.supabase import get_blob_store, get_database
    from invoice_auditor.utils.config import get_settings

    settings = get_settings()
    storage_path = f"{contract_id}/{int(time.time() * 1000)}-{pdf.name}"
    get_blob_store().upload(settings.contract_bucket, storage_path, pdf.read_bytes(), "application/pdf")
    doc = get_database().insert_document({
        "contract_id": contract_id,
        "storage_path": storage_path,
        "file_name": pdf.name,
        "is_primary": primary,
    })
    console.print(f"[green][OK] Document {doc['id']} stored at {storage_path}[/green]")


@app.command("submit")
def submit(
    contract_id: str = typer.Argument(..., help="Contract ID"),
    invoice: Path = typer.Argument(..., exists=True, dir_okay=False, help="Invoice PDF"),
    user: str = typer.Option(
        None, "--user", "-u",
        help="Caller ID recorded on the audit (a Supabase user id in supabase mode)",
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Run an invoice audit against the contract's document"""
    from invoice_auditor.services import build_orchestrator
    from invoice_auditor.services.errors import InvoiceAuditError
    from invoice_auditor.utils.config import get_settings

    if user is None:
        if get_settings().db_mode == "supabase":
            console.print("[red]Error: --user is required in supabase mode[/red]")
            raise typer.Exit(1)
        user = "cli"

    orchestrator = build_orchestrator()
    content_type = mimetypes.guess_type(invoice.name)[0] or "application/pdf"

    if not json_output:
        console.print(f"[blue]Auditing {invoice.name} against contract {contract_id}...[/blue]")
    try:
        record = asyncio.run(orchestrator.submit_audit(
            contract_id=contract_id,
            invoice_bytes=invoice.read_bytes(),
            invoice_file_name=invoice.name,
            invoice_content_type=content_type,
            caller_id=user,
        ))
    except InvoiceAuditError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    if json_output:
        print(record.model_dump_json(indent=2))
    else:
        _print_record(record)


@app.command("list")
def list_audits(
    contract_id: str = typer.Argument(..., help="Contract ID"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """List audits of a contract, newest first"""
    from invoice_auditor.db.supabase import get_database

    records = [AuditRecord.model_validate(r) for r in get_database().list_audits(contract_id)]

    if json_output:
        print(json.dumps([r.model_dump(mode="json") for r in records], ensure_ascii=False, indent=2))
        return

    if not records:
        console.print("[yellow]No audits found[/yellow]")
        return

    table = Table(title=f"Invoice Audits: {contract_id}")
    table.add_column("ID", style="cyan", max_width=10)
    table.add_column("Invoice", style="green")
    table.add_column("Status")
    table.add_column("Discrepancies", justify="right")
    table.add_column("Invoiced", justify="right")
    table.add_column("Created")
    for r in records:
        style = STATUS_STYLES[r.status]
        table.add_row(
            r.id[:8] + "...",
            r.invoice_file_name,
            f"[{style}]{r.status.value}[/{style}]",
            str(r.total_discrepancies) if r.total_discrepancies is not None else "-",
            _money(r.invoice_total, r.currency or ""),
            str(r.created_at or "")[:19],
        )
    console.print(table)


@app.command("show")
def show(audit_id: str = typer.Argument(..., help="Audit ID")):
    """Show an audit with its full result"""
    from invoice_auditor.db.supabase import get_database

    row = get_database().get_audit(audit_id)
    if not row:
        console.print(f"[red]Audit not found: {audit_id}[/red]")
        raise typer.Exit(1)
    _print_record(AuditRecord.model_validate(row))


@app.command("watch")
def watch(
    audit_id: str = typer.Argument(..., help="Audit ID"),
    interval: float = typer.Option(5.0, "--interval", "-i", help="Seconds between polls"),
):
    """Poll an audit until it completes or fails"""
    from invoice_auditor.db.supabase import get_database

    db = get_database()
    with console.status("[blue]Waiting for audit...[/blue]"):
        while True:
            row = db.get_audit(audit_id)
            if not row:
                console.print(f"[red]Audit not found: {audit_id}[/red]")
                raise typer.Exit(1)
            record = AuditRecord.model_validate(row)
            if record.status.is_terminal:
                break
            time.sleep(interval)
    _print_record(record)


@app.command("sweep")
def sweep(
    contract_id: str = typer.Argument(..., help="Contract ID"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only list orphaned invoices"),
):
    """Delete invoice files that no audit references"""
    from invoice_auditor.db.supabase import get_blob_store, get_database
    from invoice_auditor.services.sweeper import OrphanSweeper
    from invoice_auditor.utils.config import get_settings

    settings = get_settings()
    sweeper = OrphanSweeper(
        get_database(),
        get_blob_store(),
        invoice_bucket=settings.invoice_bucket,
        grace_minutes=settings.orphan_grace_minutes,
    )
    paths = sweeper.find_orphans(contract_id) if dry_run else sweeper.sweep(contract_id)
    if not paths:
        console.print("[green]No orphaned invoices[/green]")
        return
    verb = "Would remove" if dry_run else "Removed"
    for path in paths:
        console.print(f"  {verb} {path}")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
):
    """Run the HTTP API"""
    import uvicorn

    from invoice_auditor.api.app import create_app

    uvicorn.run(create_app(), host=host, port=port)


# ---- Rendering ----

def _print_record(record: AuditRecord) -> None:
    style = STATUS_STYLES[record.status]
    lines = [
        f"[bold]Contract:[/bold] {record.contract_id}",
        f"[bold]Invoice:[/bold] {record.invoice_file_name} ({record.invoice_file_size_bytes} bytes)",
        f"[bold]Contract document:[/bold] {record.contract_document_path}",
        f"[bold]Status:[/bold] [{style}]{record.status.value}[/{style}]",
        f"[bold]Created:[/bold] {record.created_at} by {record.created_by}",
    ]
    if record.error_message:
        lines.append(f"[bold]Error:[/bold] [red]{record.error_message}[/red]")
    console.print(Panel("\n".join(lines), title=f"Audit: {record.id[:8]}...", border_style=style))

    result = record.audit_result
    if result is None:
        return

    summary = result.summary
    currency = summary.currency or record.currency or ""
    console.print(Panel(
        f"{OVERALL_LABELS.get(summary.overall_status.value, summary.overall_status.value)}"
        f"  (confidence {summary.confidence_score:.0%})\n"
        f"[bold]Invoice:[/bold] {summary.invoice_number or '-'}  {summary.invoice_date or ''}  "
        f"{summary.invoice_period or ''}\n"
        f"[bold]Invoiced:[/bold] {_money(summary.total_invoiced, currency)}   "
        f"[bold]Contracted:[/bold] {_money(summary.total_contracted, currency)}   "
        f"[bold]Difference:[/bold] {_money(summary.total_difference, currency)}",
        title="Summary",
    ))

    if result.line_items:
        table = Table(title="Line Items")
        table.add_column("Description")
        table.add_column("Qty", justify="right")
        table.add_column("Invoice", justify="right")
        table.add_column("Contract", justify="right")
        table.add_column("Diff", justify="right")
        table.add_column("Status")
        for item in result.line_items:
            table.add_row(
                item.description,
                _money(item.invoice_quantity),
                _money(item.invoice_total),
                _money(item.contract_total),
                _money(item.difference),
                item.status.value,
            )
        console.print(table)

    for severity in Severity:
        for disc in result.discrepancies_by_severity(severity):
            color = SEVERITY_STYLES[severity]
            ref = f" ({disc.line_item_reference})" if disc.line_item_reference else ""
            console.print(
                f"[{color}]{severity.value.upper()}[/{color}] {disc.type.value}{ref}: {disc.description}"
            )

    if result.recommendations:
        console.print("\n[cyan]Recommendations:[/cyan]")
        for i, rec in enumerate(result.recommendations, 1):
            console.print(f"  {i}. {rec}")

    terms = result.extracted_contract_terms
    console.print(f"\n[cyan]Contract terms ({terms.currency}):[/cyan]")
    for fee in terms.visit_fees:
        console.print(f"  - {fee.visit_name}: {_money(fee.fee)}")
    for label, value in (
        ("Startup", terms.startup_fee),
        ("Closeout", terms.closeout_fee),
        ("Screen failure", terms.screen_failure_fee),
        ("Patient compensation", terms.patient_compensation),
    ):
        if value is not None:
            console.print(f"  - {label}: {_money(value)}")
    for fee in terms.other_fees:
        console.print(f"  - {fee.description}: {_money(fee.fee)}")
