"""Command-line interface for studioreport."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from studioreport import __version__


@click.group()
@click.version_option(version=__version__, prog_name="studioreport")
def main() -> None:
    """studioreport -- budget, payment and timeline rollups for client reports."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _load_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path}: invalid JSON ({e})") from e


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def _echo_model(model: Any) -> None:
    click.echo(model.model_dump_json(indent=2))


# ---------------------------------------------------------------------------
# New
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path())
def new(directory: str) -> None:
    """Scaffold a new project at DIRECTORY."""
    from studioreport.project import scaffold_project

    try:
        result = scaffold_project(Path(directory))
    except FileExistsError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Created project at {result}")


# ---------------------------------------------------------------------------
# Rollup
# ---------------------------------------------------------------------------


@main.command()
@click.option("--budget", type=float, default=0.0, show_default=True, help="Project budget.")
@click.option("--spent", type=float, default=0.0, show_default=True, help="Total spent so far.")
@click.option("--invoiced", type=float, default=0.0, show_default=True, help="Total invoiced to the client.")
@click.option("--paid", type=float, default=0.0, show_default=True, help="Total paid by the client.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def rollup(budget: float, spent: float, invoiced: float, paid: float, as_json: bool) -> None:
    """Compute budget and payment percentages."""
    from studioreport.logging.events import EventType, emit_info
    from studioreport.rollup import FinancialSnapshot, compute_financial_rollup

    try:
        snapshot = FinancialSnapshot(
            budget=budget, total_spent=spent, total_invoiced=invoiced, total_paid=paid
        )
    except ValidationError as e:
        raise click.ClickException(_validation_message(e)) from e

    result = compute_financial_rollup(snapshot)
    emit_info(EventType.rollup_computed, "rollup computed", result.model_dump())

    if as_json:
        _echo_model(result)
        return

    if result.show_budget_cards:
        label = "Overrun" if result.over_budget else "Remaining"
        click.echo(f"Budget:    {budget:,.0f}")
        click.echo(f"Spent:     {spent:,.0f} ({result.spent_pct}% of budget, {result.budget_tone})")
        click.echo(f"{label + ':':10s} {abs(result.remaining_budget):,.0f}")
    else:
        click.echo(f"Spent:     {spent:,.0f} (no budget set)")
    if result.show_payments:
        click.echo(f"Invoiced:  {invoiced:,.0f}")
        click.echo(f"Paid:      {paid:,.0f} ({result.paid_pct}%)")
        click.echo(f"To pay:    {result.remaining_to_pay:,.0f}")


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", default=None, help="Explicit span start (ISO date).")
@click.option("--end", default=None, help="Explicit span end (ISO date).")
def timeline(file: str, start: str | None, end: str | None) -> None:
    """Compute Gantt bar positions for the items listed in FILE (JSON array)."""
    from studioreport.logging.events import EventType, emit_info
    from studioreport.timeline import TimelineItem, compute_timeline

    rows = _load_json(file)
    if not isinstance(rows, list):
        raise click.ClickException(f"{file}: expected a JSON array of items")

    items = [TimelineItem.from_row(r) for r in rows if isinstance(r, dict)]
    try:
        result = compute_timeline(items, start, end)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    emit_info(
        EventType.timeline_computed,
        "timeline computed",
        {"items": len(items), "no_dates": result.no_dates},
    )
    _echo_model(result)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--project-dir",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Project directory for configuration and event logs.",
)
def report(file: str, project_dir: str | None) -> None:
    """Build the client report view from the rows in FILE."""
    from studioreport.errors import ReportError
    from studioreport.logging.events import set_project_dir
    from studioreport.project import load_project_config
    from studioreport.report import build_client_report

    rows = _load_json(file)
    if not isinstance(rows, dict) or not isinstance(rows.get("project"), dict):
        raise click.ClickException(f"{file}: expected an object with a 'project' row")

    config = None
    if project_dir:
        config = load_project_config(Path(project_dir))
        set_project_dir(Path(project_dir))

    try:
        view = build_client_report(
            rows["project"],
            phases=rows.get("phases"),
            tasks=rows.get("tasks"),
            purchase_orders=rows.get("purchase_orders"),
            expenses=rows.get("expenses"),
            invoices=rows.get("invoices"),
            client_report=rows.get("client_report"),
            config=config,
        )
    except ReportError as e:
        raise click.ClickException(str(e)) from e
    _echo_model(view)


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option("--port", type=int, default=8123, show_default=True, help="Port.")
def serve(directory: str, host: str, port: int) -> None:
    """Serve the JSON API for DIRECTORY."""
    import uvicorn

    from studioreport.ui.server import create_app

    app = create_app(Path(directory))
    click.echo(f"Serving API at http://{host}:{port}")
    try:
        uvicorn.run(app, host=host, port=port, log_level="warning")
    except KeyboardInterrupt:
        click.echo("\nStopped.")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def _echo_events(events: list[dict[str, Any]]) -> None:
    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)


@main.command("events")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--project-id", default=None, help="Filter by project ID.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(
    directory: str,
    level: str | None,
    event_type: str | None,
    project_id: str | None,
    limit: int,
) -> None:
    """Show structured event log for DIRECTORY."""
    from studioreport.logging.sink import EventSink

    sink = EventSink(Path(directory))
    events = sink.read_global(
        level=level, event_type=event_type, project_id=project_id, limit=limit
    )
    if not events:
        click.echo("No events found.")
        return
    _echo_events(events)


@main.command("project-log")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.argument("project_id")
def project_log_cmd(directory: str, project_id: str) -> None:
    """Show event log for a specific project."""
    from studioreport.logging.sink import EventSink

    events = EventSink(Path(directory)).read_project_log(project_id)
    if not events:
        click.echo(f"No events found for project {project_id}.")
        return
    _echo_events(events)


if __name__ == "__main__":
    main()
