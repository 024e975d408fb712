"""Financial rollup calculator for project budget and payment figures.

Provides Pydantic models and a pure rollup function.  Inputs are validated
at model construction, so :func:`compute_financial_rollup` is total over
every :class:`FinancialSnapshot` it can receive.
"""

from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


BudgetTone = Literal["ok", "warning", "critical"]

DEFAULT_WARNING_PCT = 75
DEFAULT_CRITICAL_PCT = 95


# ────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────


class FinancialSnapshot(BaseModel):
    """Raw project totals as aggregated from purchase orders, expenses and invoices."""

    model_config = ConfigDict(frozen=True)

    budget: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    total_spent: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    total_invoiced: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    total_paid: float = Field(default=0.0, ge=0, allow_inf_nan=False)


class RollupResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    remaining_budget: float
    remaining_to_pay: float
    spent_pct: int
    paid_pct: int
    saved_amount: float
    over_budget: bool
    remaining_pct: int
    budget_tone: BudgetTone
    show_budget_cards: bool
    show_payments: bool


# ────────────────────────────────────────────────────────────────
# Calculator
# ────────────────────────────────────────────────────────────────


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _pct(part: float, whole: float) -> int:
    """Percentage of *whole*, rounded and clamped to [0, 100]; 0 when *whole* is 0."""
    if whole <= 0:
        return 0
    return max(0, min(100, _round_half_up(part / whole * 100)))


def budget_tone(
    spent_pct: int,
    *,
    warning_pct: float = DEFAULT_WARNING_PCT,
    critical_pct: float = DEFAULT_CRITICAL_PCT,
) -> BudgetTone:
    """Classify budget usage for the progress bar colour."""
    if spent_pct > critical_pct:
        return "critical"
    if spent_pct > warning_pct:
        return "warning"
    return "ok"


def compute_financial_rollup(
    snapshot: FinancialSnapshot,
    *,
    warning_pct: float = DEFAULT_WARNING_PCT,
    critical_pct: float = DEFAULT_CRITICAL_PCT,
) -> RollupResult:
    """Derive display figures from a financial snapshot.

    Percentages are clamped to [0, 100] even when spending exceeds the
    budget; ``remaining_budget`` itself is left negative so the caller can
    render the overrun.

    Args:
        snapshot: Validated project totals.
        warning_pct: Spent percentage above which the budget bar turns amber.
        critical_pct: Spent percentage above which the budget bar turns red.

    Returns:
        A frozen :class:`RollupResult` of plain numbers.
    """
    remaining_budget = snapshot.budget - snapshot.total_spent
    spent_pct = _pct(snapshot.total_spent, snapshot.budget)
    paid_pct = _pct(snapshot.total_paid, snapshot.total_invoiced)

    return RollupResult(
        remaining_budget=remaining_budget,
        remaining_to_pay=snapshot.total_invoiced - snapshot.total_paid,
        spent_pct=spent_pct,
        paid_pct=paid_pct,
        saved_amount=max(0.0, remaining_budget),
        over_budget=remaining_budget < 0,
        remaining_pct=100 - spent_pct,
        budget_tone=budget_tone(spent_pct, warning_pct=warning_pct, critical_pct=critical_pct),
        show_budget_cards=snapshot.budget > 0,
        show_payments=snapshot.total_invoiced > 0,
    )
