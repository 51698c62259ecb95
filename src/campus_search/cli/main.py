"""
CLI Main - Typer command-line interface.
========================================

Commands:
- reindex: Rebuild the class and employee indices from JSONL snapshots
- search: Run a search and print the ranked hits
- subjects: Print the known subject codes
- occurrences: Show the offerings of one course across terms
- info: Show configuration and cluster status
"""

from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from campus_search.shared.errors import IndexUnavailableError, SearchInputError
from campus_search.shared.logging import (
    get_console,
    get_logger,
    log_level,
    setup_logging_from_settings,
)

logger = get_logger(__name__)

app = typer.Typer(
    name="campussearch",
    help="""🔎 Campus Search - Course and staff search over Elasticsearch

Finds course offerings and staff members by free text, course code,
CRN, email or phone number, scoped to one academic term.

━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

COMMANDS OVERVIEW:

  reindex      Drop and rebuild both indices from JSONL snapshots
               -c, --courses      Course offerings file
               -e, --employees    Employees file

  search       Search one term
               -t, --term         Term id (e.g. 202010)
               -n, --limit        Page size
               --offset           Hits to skip
               -q, --quiet        Hide info logs

  subjects     List subject codes known to the index

  occurrences  Offerings of one course across terms
               --latest           Only the most recent term

  info         Show configuration and cluster status

━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

QUICK START:

  campussearch reindex                       # Load data/*.jsonl
  campussearch search "cs2500" -t 202010     # Course code
  campussearch search "fundies" -t 202010    # Alias

Use 'campussearch <command> --help' for detailed command options.
""",
    add_completion=False,
    rich_markup_mode="rich",
)

console = get_console()


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Reindex Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def reindex(
    courses_file: Optional[Path] = typer.Option(
        None,
        "--courses", "-c",
        help="JSONL file of course offerings. Default: paths.courses_file from settings.",
    ),
    employees_file: Optional[Path] = typer.Option(
        None,
        "--employees", "-e",
        help="JSONL file of employees. Default: paths.employees_file from settings.",
    ),
    batch_size: Optional[int] = typer.Option(
        None,
        "--batch-size", "-b",
        help="Documents per bulk request. Default: ingestion.batch_size from settings.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit with an error if any document was rejected or failed.",
    ),
):
    """
    📊 Drop and rebuild the class and employee indices.

    Validates every record, recreates both indices with fixed mappings and
    writes the documents in batches. Searches return nothing while this runs.

    Examples:
        campussearch reindex
        campussearch reindex -c courses.jsonl -e employees.jsonl
        campussearch reindex --strict
    """
    from campus_search.indexing.elastic_store import get_elastic_store
    from campus_search.indexing.pipeline import IndexPipeline
    from campus_search.indexing.subjects import get_subject_vocabulary
    from campus_search.shared.config import get_settings
    from campus_search.shared.utils import load_jsonl

    settings = get_settings()
    paths = settings.resolved_paths
    courses_file = courses_file or paths.courses_file
    employees_file = employees_file or paths.employees_file

    for path in (courses_file, employees_file):
        if not path.exists():
            _fail(f"Input file not found: {path}")

    console.print(Panel(
        f"[bold]Reindex Configuration[/bold]\n"
        f"Cluster: {settings.get_effective_elastic_url()}\n"
        f"Courses: {courses_file}\n"
        f"Employees: {employees_file}\n"
        f"Batch size: {batch_size or settings.ingestion.batch_size}",
        title="📊 Reindex",
    ))

    store = get_elastic_store()
    try:
        store.wait_until_available()
    except IndexUnavailableError as e:
        _fail(str(e))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Loading snapshots...", total=None)
        courses = list(load_jsonl(courses_file))
        employees = list(load_jsonl(employees_file))
        progress.remove_task(task)
        console.print(f"[green]✓ Loaded {len(courses)} courses and {len(employees)} employees[/green]")

        task = progress.add_task("Writing documents...", total=None)
        pipeline = IndexPipeline(
            store=store,
            batch_size=batch_size,
            vocabulary=get_subject_vocabulary(),
        )
        try:
            report = pipeline.reindex_all(courses, employees)
        except (IndexUnavailableError, SearchInputError) as e:
            progress.remove_task(task)
            _fail(f"Reindex failed: {e}")
        progress.remove_task(task)

    table = Table(title="Reindex Report")
    table.add_column("Outcome")
    table.add_column("Count", justify="right")
    table.add_row("Indexed", str(len(report.indexed)))
    table.add_row("Rejected", str(len(report.rejected)))
    table.add_row("Failed", str(len(report.failed)))
    table.add_row("Batches", str(report.batches))
    console.print(table)

    for issue in (report.rejected + report.failed)[:10]:
        console.print(f"  [yellow]• {issue.id or '-'}: {issue.reason}[/yellow]")

    if strict and (report.rejected or report.failed):
        raise typer.Exit(1)

    console.print("\n[bold green]✓ Reindex complete[/bold green]")


# ─────────────────────────────────────────────────────────────────────────────
# Search Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def search(
    query: str = typer.Argument(
        ...,
        help="Query text, course code, CRN, email or phone (wrap in quotes).",
    ),
    term_id: str = typer.Option(
        ...,
        "--term", "-t",
        help="Term id to search, e.g. 202010.",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit", "-n",
        help="Number of hits to show. Default: search.default_limit from settings.",
    ),
    offset: int = typer.Option(
        0,
        "--offset",
        help="Number of ranked hits to skip.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Only log warnings and errors while searching.",
    ),
):
    """
    💬 Search classes of a term and all employees.

    Examples:
        campussearch search "cs 2500" -t 202010
        campussearch search "a.mislove@northeastern.edu" -t 202010
        campussearch search "fundimentals of compiter science" -t 202010
    """
    from campus_search.search.ranking import get_orchestrator

    # NOTSET defers to the root level configured at startup
    level = "WARNING" if quiet else "NOTSET"
    try:
        with log_level(level, "campus_search"):
            result = get_orchestrator().search(query, term_id, offset=offset, limit=limit)
    except (IndexUnavailableError, SearchInputError) as e:
        _fail(str(e))

    analyzed = result.query
    console.print(f"\n[bold]Query:[/bold] {query}")
    if analyzed is not None:
        console.print(f"[dim]Interpreted as {analyzed.kind.value}: '{analyzed.text}'[/dim]")
        if analyzed.alias_of:
            console.print(f"[dim]Alias of '{analyzed.alias_of}'[/dim]")
    if result.corrected_query:
        console.print(f"[yellow]Showing results for '{result.corrected_query}'[/yellow]")

    if not result.hits:
        console.print("[yellow]No results.[/yellow]")
        raise typer.Exit(0)

    table = Table(show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Result", style="cyan")
    table.add_column("Details")
    table.add_column("Score", justify="right")

    for position, hit in enumerate(result.hits, start=offset + 1):
        if hit.class_ is not None:
            payload = hit.class_
            title = f"{payload.code} - {payload.name[:40]}"
            details = payload.schedule_type or ""
        else:
            employee = hit.employee
            title = employee.name
            details = ", ".join(employee.emails[:1] + employee.phones[:1])
        table.add_row(str(position), hit.type, title, details, f"{hit.score:.3f}")

    console.print(table)
    console.print(f"[dim]{result.total} total hits in {result.took_ms}ms[/dim]")
    if result.skipped:
        console.print(f"[yellow]{len(result.skipped)} unreadable hits skipped[/yellow]")


# ─────────────────────────────────────────────────────────────────────────────
# Subjects Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def subjects():
    """
    📚 List the subject codes known to the class index.

    These are the letter prefixes that turn a query like "thtr1000"
    into a course-code search.
    """
    from campus_search.indexing.subjects import get_subject_vocabulary

    try:
        known = get_subject_vocabulary().subjects()
    except IndexUnavailableError as e:
        _fail(str(e))

    console.print(f"[bold]{len(known)} subjects[/bold]")
    console.print(", ".join(sorted(code.upper() for code in known)))


# ─────────────────────────────────────────────────────────────────────────────
# Occurrences Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def occurrences(
    subject: str = typer.Argument(..., help="Subject code, e.g. CS."),
    class_id: str = typer.Argument(..., help="Class number, e.g. 2500."),
    host: str = typer.Option(
        "neu.edu",
        "--host",
        help="Institution host.",
    ),
    latest: bool = typer.Option(
        False,
        "--latest",
        help="Show only the most recent term.",
    ),
):
    """
    🗓️ Show the offerings of a course across terms, latest first.

    Examples:
        campussearch occurrences CS 2500
        campussearch occurrences cs 2500 --latest
    """
    from campus_search.search.ranking import get_orchestrator

    orchestrator = get_orchestrator()
    try:
        if latest:
            found = orchestrator.get_latest_class_occurrence(host, subject, class_id)
            documents = [found] if found else []
        else:
            documents = orchestrator.get_class_occurrences(host, subject, class_id)
    except IndexUnavailableError as e:
        _fail(str(e))

    if not documents:
        console.print(f"[yellow]No offerings of {subject.upper()} {class_id} on {host}.[/yellow]")
        raise typer.Exit(0)

    table = Table(show_header=True)
    table.add_column("Term")
    table.add_column("Course", style="cyan")
    table.add_column("CRNs")
    for document in documents:
        payload = document.class_
        table.add_row(payload.term_id, f"{payload.code} - {payload.name[:40]}", ", ".join(payload.crns))
    console.print(table)


# ─────────────────────────────────────────────────────────────────────────────
# Info Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def info():
    """
    ℹ️ Show configuration and cluster status.

    Displays:
      • Version information
      • Cluster URL, index names and reachability
      • Data paths and their existence status
      • Configured aliases
    """
    from campus_search import __version__
    from campus_search.indexing.elastic_store import get_elastic_store
    from campus_search.shared.config import get_settings

    settings = get_settings()
    store = get_elastic_store()
    reachable = "✓ reachable" if store.ping() else "✗ unreachable"

    console.print(Panel(
        f"[bold]Campus Search[/bold]\n"
        f"Version: {__version__}\n"
        f"Config: config/settings.yaml\n"
        f"Cluster: {settings.get_effective_elastic_url()} ({reachable})\n"
        f"Indices: {store.class_index}, {store.employee_index}",
        title="ℹ️ Info",
    ))

    console.print("\n[bold]Data Paths:[/bold]")
    resolved_paths = settings.resolved_paths
    path_dict = {
        "data_dir": resolved_paths.data_dir,
        "courses_file": resolved_paths.courses_file,
        "employees_file": resolved_paths.employees_file,
    }
    for name, path in path_dict.items():
        exists = "✓" if path.exists() else "✗"
        console.print(f"  {name}: {path} [{exists}]")

    if settings.aliases:
        console.print("\n[bold]Aliases:[/bold]")
        table = Table()
        table.add_column("Alias")
        table.add_column("Searches for")
        for alias, phrase in sorted(settings.aliases.items()):
            table.add_row(alias, phrase)
        console.print(table)


# ─────────────────────────────────────────────────────────────────────────────
# Entry Point
# ─────────────────────────────────────────────────────────────────────────────


def cli():
    """CLI entry point."""
    setup_logging_from_settings()
    app()


if __name__ == "__main__":
    cli()
