"""Aggregation of raw backend rows into rollup inputs.

Rows arrive as lists of dicts (one per purchase order, expense, invoice or
task).  They are loaded into Polars frames with a fixed schema so that
missing columns and empty tables aggregate the same way as populated ones.
"""

from __future__ import annotations

import math
from typing import Any

import polars as pl
from pydantic import BaseModel

from studioreport.errors import LedgerInputError
from studioreport.rollup import FinancialSnapshot


class TaskProgress(BaseModel):
    total: int
    completed: int
    progress_pct: int
    by_phase: dict[str, int] = {}


# ────────────────────────────────────────────────────────────────
# Frame construction
# ────────────────────────────────────────────────────────────────


def _num(table: str, column: str, value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise LedgerInputError(table, column, value)
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise LedgerInputError(table, column, value) from None
    if not math.isfinite(out):
        raise LedgerInputError(table, column, value)
    return out


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _frame(
    table: str,
    rows: list[dict[str, Any]] | None,
    amount_col: str,
) -> pl.DataFrame:
    """Build a two-column (amount, status) frame from *rows*."""
    rows = rows or []
    return pl.DataFrame(
        {
            amount_col: [_num(table, amount_col, r.get(amount_col)) for r in rows],
            "status": [_text(r.get("status")) for r in rows],
        },
        schema={amount_col: pl.Float64, "status": pl.Utf8},
    )


def _sum(df: pl.DataFrame, column: str) -> float:
    if df.height == 0:
        return 0.0
    return float(df[column].fill_null(0.0).sum())


# ────────────────────────────────────────────────────────────────
# Financial snapshot
# ────────────────────────────────────────────────────────────────


def snapshot_from_rows(
    budget: Any,
    purchase_orders: list[dict[str, Any]] | None = None,
    expenses: list[dict[str, Any]] | None = None,
    invoices: list[dict[str, Any]] | None = None,
) -> FinancialSnapshot:
    """Aggregate a project's financial rows into a :class:`FinancialSnapshot`.

    Spending is purchase orders (excluding cancelled ones) plus expenses.
    Invoiced is the sum of all invoice totals; paid counts only invoices
    with status ``paid``.  Null amounts count as zero.

    Raises:
        LedgerInputError: If an amount is not numeric.
        pydantic.ValidationError: If an aggregate is negative.
    """
    orders = _frame("purchase_orders", purchase_orders, "total_amount")
    active_orders = orders.filter(pl.col("status").fill_null("") != "cancelled")
    exp = _frame("expenses", expenses, "amount")
    inv = _frame("invoices", invoices, "total")
    paid = inv.filter(pl.col("status").fill_null("") == "paid")

    return FinancialSnapshot(
        budget=_num("projects", "budget", budget) or 0.0,
        total_spent=_sum(active_orders, "total_amount") + _sum(exp, "amount"),
        total_invoiced=_sum(inv, "total"),
        total_paid=_sum(paid, "total"),
    )


# ────────────────────────────────────────────────────────────────
# Task progress
# ────────────────────────────────────────────────────────────────


def _task_frame(tasks: list[dict[str, Any]] | None) -> pl.DataFrame:
    tasks = tasks or []
    return pl.DataFrame(
        {
            "status": [_text(t.get("status")) for t in tasks],
            "phase_id": [
                _text(t.get("phase_id")) for t in tasks
            ],
        },
        schema={"status": pl.Utf8, "phase_id": pl.Utf8},
    )


def _progress(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(math.floor(completed / total * 100 + 0.5))


def task_progress(tasks: list[dict[str, Any]] | None) -> TaskProgress:
    """Count done tasks overall and per phase.

    Tasks without a ``phase_id`` count toward the overall figure only.
    """
    df = _task_frame(tasks).with_columns(
        (pl.col("status").fill_null("") == "done").alias("done")
    )
    total = df.height
    completed = int(df["done"].sum()) if total else 0

    by_phase: dict[str, int] = {}
    grouped = (
        df.filter(pl.col("phase_id").is_not_null())
        .group_by("phase_id")
        .agg(pl.len().alias("total"), pl.col("done").sum().alias("completed"))
        .sort("phase_id")
    )
    for row in grouped.iter_rows(named=True):
        by_phase[row["phase_id"]] = _progress(int(row["completed"]), int(row["total"]))

    return TaskProgress(
        total=total,
        completed=completed,
        progress_pct=_progress(completed, total),
        by_phase=by_phase,
    )


def status_counts(rows: list[dict[str, Any]] | None, column: str = "status") -> dict[str, int]:
    """Count rows per status value, for dashboard charts.

    Missing statuses are counted under ``"unknown"``.
    """
    rows = rows or []
    df = pl.DataFrame(
        {column: [_text(r.get(column)) for r in rows]},
        schema={column: pl.Utf8},
    )
    if df.height == 0:
        return {}
    counts = (
        df.with_columns(pl.col(column).fill_null("unknown"))
        .group_by(column)
        .agg(pl.len().alias("count"))
        .sort(column)
    )
    return {row[column]: int(row["count"]) for row in counts.iter_rows(named=True)}
