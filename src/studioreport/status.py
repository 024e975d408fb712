"""Status vocabularies for phases and deliveries, and their display variants.

Every lookup falls back to the ``pending`` variant, so an unexpected
status string from the backend always renders as not-started.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel, ConfigDict


class StatusBucket(str, Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    complete = "complete"


class StatusStyle(BaseModel):
    """Display variant for one status value."""

    model_config = ConfigDict(frozen=True)

    key: str
    bucket: StatusBucket
    label: str
    tone: str


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

PHASE_STATUSES: dict[str, StatusStyle] = {
    "pending": StatusStyle(key="pending", bucket=StatusBucket.not_started, label="Not started", tone="gray"),
    "in_progress": StatusStyle(key="in_progress", bucket=StatusBucket.in_progress, label="In progress", tone="blue"),
    "completed": StatusStyle(key="completed", bucket=StatusBucket.complete, label="Completed", tone="emerald"),
}

DELIVERY_STATUSES: dict[str, StatusStyle] = {
    "pending": StatusStyle(key="pending", bucket=StatusBucket.not_started, label="Awaiting order", tone="gray"),
    "ordered": StatusStyle(key="ordered", bucket=StatusBucket.in_progress, label="Ordered / in transit", tone="blue"),
    "delivered": StatusStyle(key="delivered", bucket=StatusBucket.complete, label="Delivered", tone="emerald"),
}

DEFAULT_STATUS = "pending"


def _key(value: Any) -> str:
    return "" if value is None else str(value)


def phase_status(value: str | None) -> StatusStyle:
    """Resolve a project phase status, defaulting to ``pending``."""
    return PHASE_STATUSES.get(_key(value), PHASE_STATUSES[DEFAULT_STATUS])


def delivery_status(value: str | None) -> StatusStyle:
    """Resolve a delivery estimate status, defaulting to ``pending``."""
    return DELIVERY_STATUSES.get(_key(value), DELIVERY_STATUSES[DEFAULT_STATUS])


def status_bucket(value: str | None) -> StatusBucket:
    """Map a status from either vocabulary to its semantic bucket."""
    value = _key(value)
    if value in PHASE_STATUSES:
        return PHASE_STATUSES[value].bucket
    if value in DELIVERY_STATUSES:
        return DELIVERY_STATUSES[value].bucket
    return StatusBucket.not_started


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

T = TypeVar("T")


def _status_of(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("status")
    return getattr(item, "status", None)


def order_delivery_estimates(estimates: Iterable[T]) -> list[T]:
    """Return estimates with outstanding items first, delivered ones last.

    Input order is kept within each group.
    """
    items = list(estimates)
    upcoming = [e for e in items if _status_of(e) != "delivered"]
    delivered = [e for e in items if _status_of(e) == "delivered"]
    return upcoming + delivered
