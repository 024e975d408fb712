"""FastAPI server exposing the report computations as a JSON API.

Routes are thin wrappers over the pure functions in :mod:`studioreport`.
Request bodies are validated by Pydantic (422 on bad input); report
input errors map to 400.
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Query
from pydantic import BaseModel

from studioreport.errors import ReportError
from studioreport.logging.events import EventType, emit_info, set_project_dir
from studioreport.logging.sink import EventSink
from studioreport.project import load_project_config, rollup_options, timeline_options
from studioreport.report import ClientReportView, build_client_report
from studioreport.rollup import FinancialSnapshot, RollupResult, compute_financial_rollup
from studioreport.timeline import TimelineItem, TimelineResult, compute_timeline

# Set at startup by ``create_app()``.
_project_dir: Path | None = None


def create_app(project_dir: Path) -> FastAPI:
    """Create the FastAPI application for a given project directory.

    Args:
        project_dir: Directory holding ``studioreport.yaml`` and ``logs/``.

    Returns:
        Configured FastAPI instance.
    """
    global _project_dir
    _project_dir = Path(project_dir)
    set_project_dir(_project_dir)

    from studioreport import __version__

    app = FastAPI(title="studioreport", version=__version__)
    app.include_router(_api_router())
    return app


def _config() -> dict[str, Any]:
    if _project_dir is None:
        raise HTTPException(500, "Server not initialised")
    return load_project_config(_project_dir)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class TimelineRequest(BaseModel):
    items: list[dict[str, Any]]
    start: datetime.datetime | datetime.date | None = None
    end: datetime.datetime | datetime.date | None = None


class ReportRequest(BaseModel):
    project: dict[str, Any]
    phases: list[dict[str, Any]] = []
    tasks: list[dict[str, Any]] = []
    purchase_orders: list[dict[str, Any]] = []
    expenses: list[dict[str, Any]] = []
    invoices: list[dict[str, Any]] = []
    client_report: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _api_router() -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.get("/health")
    async def health() -> dict[str, str]:
        from studioreport import __version__

        return {"status": "ok", "version": __version__}

    @router.post("/rollup", response_model=RollupResult)
    async def rollup(snapshot: FinancialSnapshot) -> RollupResult:
        result = compute_financial_rollup(snapshot, **rollup_options(_config()))
        emit_info(EventType.rollup_computed, "rollup computed", result.model_dump())
        return result

    @router.post("/timeline", response_model=TimelineResult)
    async def timeline(req: TimelineRequest) -> TimelineResult:
        items = [TimelineItem.from_row(r) for r in req.items]
        result = compute_timeline(items, req.start, req.end, **timeline_options(_config()))
        emit_info(
            EventType.timeline_computed,
            "timeline computed",
            {"items": len(items), "no_dates": result.no_dates},
        )
        return result

    @router.post("/report", response_model=ClientReportView)
    async def report(req: ReportRequest) -> ClientReportView:
        try:
            return build_client_report(
                req.project,
                phases=req.phases,
                tasks=req.tasks,
                purchase_orders=req.purchase_orders,
                expenses=req.expenses,
                invoices=req.invoices,
                client_report=req.client_report,
                config=_config(),
            )
        except ReportError as e:
            raise HTTPException(400, str(e))

    @router.get("/events")
    async def events(
        level: str | None = Query(None),
        event_type: str | None = Query(None),
        project_id: str | None = Query(None),
        limit: int = Query(200),
    ) -> list[dict[str, Any]]:
        if _project_dir is None:
            raise HTTPException(500, "Server not initialised")
        sink = EventSink(_project_dir)
        return sink.read_global(
            level=level, event_type=event_type, project_id=project_id, limit=limit
        )

    return router
