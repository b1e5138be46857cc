"""Matching CLI commands.

Provides commands to load records, run duplicate detection, suggest and
confirm bank reconciliations, and inspect the match audit trail.
"""

import json
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table
from sqlalchemy.orm import Session

from ...exceptions import LedgerMatchError, NotFoundError, TransientStoreError, ValidationError
from ...storage.session import db_session
from ...utils.config import get_settings
from ...utils.logging import get_logger
from ...utils.retry import RetryConfig, store_retry_config
from ..application.services import DuplicateDetectionService, ReconciliationMatchingService
from ..domain.enums import RecommendedAction
from ..domain.value_objects import MatchDecision, MatchResult
from ..engine import build_engine
from ..infrastructure import MatchRecorder, RecordRepository

app = typer.Typer(name="match", help="🔗 Duplicate detection & bank reconciliation")
console = Console()
logger = get_logger(__name__)

ACTION_STYLES = {
    RecommendedAction.DELETE_DUPLICATE: "bold red",
    RecommendedAction.MERGE: "yellow",
    RecommendedAction.KEEP_BOTH: "green",
    RecommendedAction.REVIEW: "cyan",
}


def _retry_config() -> RetryConfig:
    settings = get_settings()
    return store_retry_config(
        max_retries=settings.store_retry_attempts,
        base_delay=settings.store_retry_base_delay,
    )


def _fail(error: LedgerMatchError) -> NoReturn:
    logger.warning("cli_command_failed", error=str(error), error_type=type(error).__name__)
    console.print(f"[red]❌ {error.message}[/]")
    for key, value in error.context.items():
        console.print(f"   [dim]{key}: {value}[/]")
    raise typer.Exit(1)


def _results_table(title: str, results: list[MatchResult], show_type: bool = False) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("#", style="cyan", width=3)
    table.add_column("Candidate", style="yellow")
    table.add_column("Kind", style="dim")
    table.add_column("Score", justify="right", style="green")
    if show_type:
        table.add_column("Type", style="magenta")
    table.add_column("Matched", style="green")
    table.add_column("Differences", style="red")

    for i, result in enumerate(results, 1):
        row = [
            str(i),
            result.candidate_id,
            result.candidate_kind.value,
            f"{result.composite_score:.1%}",
        ]
        if show_type:
            row.append(result.match_type.value if result.match_type else "-")
        row.append(", ".join(result.matching_fields) or "-")
        row.append(", ".join(d.field for d in result.differences) or "-")
        table.add_row(*row)
    return table


def _print_decision(decision: MatchDecision) -> None:
    if decision.failed:
        console.print(
            f"[yellow]⚠️  Matching unavailable ({decision.failure_reason}); "
            "falling back to a safe decision[/]"
        )

    action = decision.recommended_action
    if action is not None:
        style = ACTION_STYLES.get(action, "white")
        console.print(f"Recommended action: [{style}]{action.value}[/]")
    console.print(f"Duplicate: {'yes' if decision.is_duplicate else 'no'}")
    if decision.auto_apply_allowed:
        console.print("[bold]Auto-apply allowed[/]")

    if decision.matches:
        title = f"🔍 Matches ({len(decision.matches)})"
        console.print(_results_table(title, list(decision.matches)))
    else:
        console.print("[dim]No matching documents[/]")


# ============================================================================
# COMMAND 1: load
# ============================================================================


@app.command()
def load(
    file_path: Path = typer.Argument(..., help="JSON file with an array of records", exists=True),
):
    """📥 Load records (documents, ledger entries, bank transactions) into the store.

    Examples:
        ledgermatch load records.json
    """
    try:
        rows = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]❌ Invalid JSON: {e}[/]")
        raise typer.Exit(1)

    if not isinstance(rows, list):
        console.print("[red]❌ Expected a JSON array of records[/]")
        raise typer.Exit(1)

    try:
        with db_session() as session:
            records = RecordRepository(session).add_many(rows)
            ids = [record.id for record in records]
    except (ValidationError, TransientStoreError) as e:
        _fail(e)

    console.print(f"[green]✅ Loaded {len(ids)} records[/]")
    for record_id in ids:
        console.print(f"  [dim]{record_id}[/]")


# ============================================================================
# COMMAND 2: duplicates
# ============================================================================


@app.command()
def duplicates(
    tenant_id: str = typer.Argument(..., help="Tenant identifier"),
    document_id: str = typer.Argument(..., help="Document to check"),
    max_candidates: int | None = typer.Option(
        None, "--max-candidates", "-n", min=1, help="Candidate cap (default from settings)"
    ),
    run_key: str | None = typer.Option(
        None, "--run-key", help="Idempotency key: skip recording if already recorded"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the decision as JSON"),
):
    """🔁 Check a document for duplicates and recommend an action.

    Examples:
        ledgermatch duplicates acme 3f0c...

        ledgermatch duplicates acme 3f0c... --run-key ingest-42 --json
    """
    try:
        with db_session() as session:
            service = DuplicateDetectionService(
                build_engine(session, get_settings()), retry_config=_retry_config()
            )
            decision = service.detect(
                tenant_id, document_id, run_key=run_key, max_candidates=max_candidates
            )
    except (NotFoundError, ValidationError) as e:
        _fail(e)

    if as_json:
        typer.echo(json.dumps(decision.to_dict(), indent=2))
        return
    _print_decision(decision)


# ============================================================================
# COMMAND 3: reconcile
# ============================================================================


@app.command()
def reconcile(
    tenant_id: str = typer.Argument(..., help="Tenant identifier"),
    transaction_id: str = typer.Argument(..., help="Unmatched bank transaction"),
    max_candidates: int | None = typer.Option(None, "--max-candidates", "-n", min=1),
    as_json: bool = typer.Option(False, "--json", help="Print the matches as JSON"),
):
    """🔍 Suggest documents and ledger entries matching a bank transaction.

    Suggestions are never applied; use `confirm` to reconcile.

    Examples:
        ledgermatch reconcile acme 9a1b...
    """
    try:
        with db_session() as session:
            service = ReconciliationMatchingService(
                build_engine(session, get_settings()),
                RecordRepository(session),
                retry_config=_retry_config(),
            )
            matches = service.find_matches(
                tenant_id, transaction_id, max_candidates=max_candidates
            )
    except (NotFoundError, ValidationError) as e:
        _fail(e)

    if as_json:
        typer.echo(json.dumps([m.to_dict() for m in matches], indent=2))
        return

    if not matches:
        console.print("[yellow]No matches found[/] [dim](review manually)[/]")
        return

    console.print(_results_table("💡 Suggested Matches", matches, show_type=True))
    console.print(
        f"\n[dim]Confirm with: ledgermatch confirm {tenant_id} {transaction_id} <candidate>[/]"
    )


# ============================================================================
# COMMAND 4: confirm
# ============================================================================


@app.command()
def confirm(
    tenant_id: str = typer.Argument(..., help="Tenant identifier"),
    transaction_id: str = typer.Argument(..., help="Bank transaction"),
    candidate_id: str = typer.Argument(..., help="Document or ledger entry to reconcile with"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """✅ Reconcile a bank transaction with a chosen candidate.

    Examples:
        ledgermatch confirm acme 9a1b... 3f0c... --yes
    """
    if not yes and not Confirm.ask(f"Reconcile {transaction_id} with {candidate_id}?"):
        console.print("[dim]Cancelled[/]")
        raise typer.Exit(0)

    try:
        with db_session() as session:
            service = ReconciliationMatchingService(
                build_engine(session, get_settings()), RecordRepository(session)
            )
            service.confirm_match(tenant_id, transaction_id, candidate_id)
    except (NotFoundError, ValidationError, TransientStoreError) as e:
        _fail(e)

    console.print(f"[green]✅ Reconciled {transaction_id} with {candidate_id}[/]")


# ============================================================================
# COMMAND 5: history
# ============================================================================


@app.command()
def history(
    tenant_id: str = typer.Argument(..., help="Tenant identifier"),
    target_id: str = typer.Argument(..., help="Document or transaction"),
):
    """📜 Show the recorded match decisions for a record, newest first.

    Examples:
        ledgermatch history acme 3f0c...
    """
    try:
        with db_session() as session:
            rows = _history_rows(session, tenant_id, target_id)
    except TransientStoreError as e:
        _fail(e)

    if not rows:
        console.print("[dim]No recorded decisions[/]")
        return

    table = Table(title=f"📜 Match history for {target_id}")
    table.add_column("Version", justify="right", style="cyan")
    table.add_column("Profile", style="yellow")
    table.add_column("Recorded", style="dim")
    table.add_column("Candidates", justify="right")
    table.add_column("Top", style="yellow")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Action", style="magenta")
    for row in rows:
        table.add_row(*row)
    console.print(table)


def _history_rows(session: Session, tenant_id: str, target_id: str) -> list[tuple[str, ...]]:
    return [
        (
            str(run.version),
            run.profile,
            run.recorded_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(run.candidate_count),
            run.top_candidate_id or "-",
            f"{float(run.top_score):.1%}" if run.top_score is not None else "-",
            run.recommended_action.value if run.recommended_action else "-",
        )
        for run in MatchRecorder(session).history(tenant_id, target_id)
    ]
