"""Client report view model.

Assembles the figures shown on a project's client-facing report from rows
fetched by the caller: budget and payment rollups, task progress, the phase
Gantt, the delivery schedule and unexpected events.  All state is passed in
explicitly; the only side effect is structured event logging.
"""

from __future__ import annotations

import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from studioreport.errors import LedgerInputError, ReportInputError
from studioreport.ledger import TaskProgress, snapshot_from_rows, task_progress
from studioreport.logging.events import (
    DATE_UNPARSEABLE,
    LEDGER_NON_NUMERIC,
    SNAPSHOT_NEGATIVE,
    EventType,
    emit_error,
    emit_info,
    emit_warning,
)
from studioreport.project import DEFAULT_CONFIG, rollup_options, timeline_options
from studioreport.rollup import FinancialSnapshot, RollupResult, compute_financial_rollup
from studioreport.status import (
    StatusStyle,
    delivery_status,
    order_delivery_estimates,
    phase_status,
)
from studioreport.timeline import TimelineItem, TimelineResult, compute_timeline, parse_instant


# ────────────────────────────────────────────────────────────────
# View models
# ────────────────────────────────────────────────────────────────


class FinancialsView(BaseModel):
    snapshot: FinancialSnapshot
    rollup: RollupResult


class PhaseView(BaseModel):
    id: str
    name: str
    description: str | None = None
    status: StatusStyle
    start_date: datetime.datetime | None = None
    end_date: datetime.datetime | None = None
    invalid_dates: bool = False
    task_progress_pct: int | None = None


class DeliveryView(BaseModel):
    id: str
    item: str
    estimated_date: datetime.datetime | None = None
    notes: str = ""
    status: StatusStyle
    invalid_date: bool = False


class UnexpectedEventView(BaseModel):
    id: str
    title: str
    description: str = ""
    resolution: str = ""
    status: str = "in_progress"
    date: str | None = None
    handled: bool = False


class ClientReportView(BaseModel):
    project_id: str
    project_name: str = ""
    client_name: str | None = None
    financials: FinancialsView
    progress: TaskProgress
    phases: list[PhaseView]
    phase_timeline: TimelineResult
    deliveries: list[DeliveryView]
    delivery_timeline: TimelineResult
    unexpected_events: list[UnexpectedEventView]
    general_notes: str | None = None


# ────────────────────────────────────────────────────────────────
# Builders
# ────────────────────────────────────────────────────────────────


def _project_bound(project: dict[str, Any], key: str, project_id: str) -> datetime.datetime | None:
    try:
        return parse_instant(project.get(key))
    except ValueError:
        emit_warning(
            EventType.timeline_date_invalid,
            f"Unparseable project {key}: {project.get(key)!r}",
            {"project_id": project_id, "item_id": project_id, "field": key},
            error_code=DATE_UNPARSEABLE,
        )
        return None


def _warn_invalid_items(items: list[TimelineItem], project_id: str, kind: str) -> None:
    for item in items:
        if item.invalid_dates:
            emit_warning(
                EventType.timeline_date_invalid,
                f"{kind} {item.id!r} has an unparseable date; using fallback width",
                {"project_id": project_id, "item_id": item.id, "kind": kind},
                error_code=DATE_UNPARSEABLE,
            )


def _financials(
    project: dict[str, Any],
    purchase_orders: list[dict[str, Any]] | None,
    expenses: list[dict[str, Any]] | None,
    invoices: list[dict[str, Any]] | None,
    config: dict[str, Any],
    project_id: str,
) -> FinancialsView:
    try:
        snapshot = snapshot_from_rows(project.get("budget"), purchase_orders, expenses, invoices)
    except LedgerInputError as exc:
        emit_error(
            EventType.report_input_invalid,
            str(exc),
            {"project_id": project_id, "table": exc.table, "column": exc.column},
            error_code=LEDGER_NON_NUMERIC,
        )
        raise ReportInputError(str(exc), project_id=project_id) from exc
    except ValidationError as exc:
        emit_error(
            EventType.report_input_invalid,
            "Negative financial aggregate",
            {"project_id": project_id, "errors": [e["loc"] for e in exc.errors()]},
            error_code=SNAPSHOT_NEGATIVE,
        )
        raise ReportInputError(
            f"Financial totals must be non-negative: {exc.error_count()} invalid field(s)",
            project_id=project_id,
        ) from exc

    return FinancialsView(snapshot=snapshot, rollup=compute_financial_rollup(snapshot, **rollup_options(config)))


def build_client_report(
    project: dict[str, Any],
    *,
    phases: list[dict[str, Any]] | None = None,
    tasks: list[dict[str, Any]] | None = None,
    purchase_orders: list[dict[str, Any]] | None = None,
    expenses: list[dict[str, Any]] | None = None,
    invoices: list[dict[str, Any]] | None = None,
    client_report: dict[str, Any] | None = None,
    config: dict[str, Any] | None = None,
    now: datetime.datetime | None = None,
) -> ClientReportView:
    """Build the client report view for one project.

    Args:
        project: The project row (``id``, ``name``, ``budget``,
            ``start_date``, ``end_date``, optional ``client``).
        phases: Project phase rows, in display order.
        tasks: Task rows (``status``, ``phase_id``).
        purchase_orders: Purchase order rows (``total_amount``, ``status``).
        expenses: Expense rows (``amount``).
        invoices: Invoice rows (``total``, ``status``).
        client_report: The stored report row with ``delivery_estimates``,
            ``unexpected_events`` and ``general_notes``.
        config: Project configuration; defaults are used when omitted.
        now: Reference instant for default timeline spans.

    Returns:
        A :class:`ClientReportView`.

    Raises:
        ReportInputError: If financial rows cannot be aggregated.
    """
    cfg = dict(DEFAULT_CONFIG)
    cfg.update(config or {})
    project_id = str(project.get("id") or "")
    if not project_id:
        emit_error(EventType.report_input_invalid, "Project row has no id")
        raise ReportInputError("Project row has no id")

    financials = _financials(project, purchase_orders, expenses, invoices, cfg, project_id)
    if financials.rollup.over_budget and financials.rollup.show_budget_cards:
        emit_warning(
            EventType.budget_overrun,
            f"Spending exceeds budget by {-financials.rollup.remaining_budget:,.0f}",
            {"project_id": project_id, "remaining_budget": financials.rollup.remaining_budget},
        )

    progress = task_progress(tasks)
    topts = timeline_options(cfg)

    # Phases
    phase_rows = phases or []
    phase_items = [TimelineItem.from_row(p) for p in phase_rows]
    _warn_invalid_items(phase_items, project_id, "phase")
    phase_timeline = compute_timeline(
        phase_items,
        _project_bound(project, "start_date", project_id),
        _project_bound(project, "end_date", project_id),
        now=now,
        **topts,
    )
    phase_views = [
        PhaseView(
            id=item.id,
            name=item.label,
            description=row.get("description"),
            status=phase_status(row.get("status")),
            start_date=item.start_date,
            end_date=item.end_date,
            invalid_dates=item.invalid_dates,
            task_progress_pct=progress.by_phase.get(item.id),
        )
        for row, item in zip(phase_rows, phase_items)
    ]

    # Deliveries
    report_row = client_report or {}
    estimates = order_delivery_estimates(report_row.get("delivery_estimates") or [])
    delivery_items = [
        TimelineItem.from_row(e, label_key="item", start_key="estimated_date", end_key="estimated_date")
        for e in estimates
    ]
    _warn_invalid_items(delivery_items, project_id, "delivery")
    delivery_timeline = compute_timeline(delivery_items, now=now, **topts)
    delivery_views = [
        DeliveryView(
            id=item.id,
            item=item.label,
            estimated_date=item.start_date,
            notes=str(row.get("notes") or ""),
            status=delivery_status(row.get("status")),
            invalid_date=item.invalid_dates,
        )
        for row, item in zip(estimates, delivery_items)
    ]

    events = [
        UnexpectedEventView(
            id=str(e.get("id", "")),
            title=str(e.get("title") or ""),
            description=str(e.get("description") or ""),
            resolution=str(e.get("resolution") or ""),
            status=str(e.get("status") or "in_progress"),
            date=str(e["date"]) if e.get("date") else None,
            handled=str(e.get("status")) == "handled",
        )
        for e in report_row.get("unexpected_events") or []
    ]

    client = project.get("client")
    view = ClientReportView(
        project_id=project_id,
        project_name=project.get("name") or "",
        client_name=client.get("name") if isinstance(client, dict) else None,
        financials=financials,
        progress=progress,
        phases=phase_views,
        phase_timeline=phase_timeline,
        deliveries=delivery_views,
        delivery_timeline=delivery_timeline,
        unexpected_events=events,
        general_notes=report_row.get("general_notes"),
    )

    emit_info(
        EventType.report_built,
        f"Built client report for {view.project_name or project_id}",
        {
            "project_id": project_id,
            "spent_pct": financials.rollup.spent_pct,
            "paid_pct": financials.rollup.paid_pct,
            "phases": len(phase_views),
            "deliveries": len(delivery_views),
        },
    )
    return view
