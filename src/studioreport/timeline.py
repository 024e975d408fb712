"""Gantt bar projection for project phases and delivery estimates.

Items are normalized against a span (explicit project dates, else the
range of dated items, else a default window starting now).  Bars are
returned in input order as percent offsets; colouring is left to the
caller via :mod:`studioreport.status`.
"""

from __future__ import annotations

import datetime
import math
from typing import Any, Iterable

from pydantic import BaseModel, Field, field_validator


DEFAULT_FALLBACK_WIDTH_PCT = 30.0
DEFAULT_MIN_WIDTH_PCT = 2.0
DEFAULT_SPAN_DAYS = 30


# ---------------------------------------------------------------------------
# Date coercion
# ---------------------------------------------------------------------------


def parse_instant(value: Any) -> datetime.datetime | None:
    """Convert a backend date value to an aware UTC datetime.

    Accepts:
    - ``None`` or ``""`` (returned as ``None``)
    - datetime objects (naive values are taken as UTC)
    - date objects (midnight UTC)
    - ISO-8601 strings, with or without a ``Z`` suffix

    Raises:
        ValueError: If *value* cannot be interpreted as a date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        try:
            return value.astimezone(datetime.timezone.utc)
        except OverflowError:
            raise ValueError(f"Date out of range in UTC: {value!r}") from None
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day, tzinfo=datetime.timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            return parse_instant(parsed)
        except ValueError:
            raise ValueError(f"Cannot parse date string: {value!r}") from None
    raise ValueError(f"Cannot coerce {type(value).__name__} to date")


def _ms(value: datetime.datetime) -> float:
    return value.timestamp() * 1000.0


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TimelineItem(BaseModel):
    id: str
    label: str = ""
    status: str | None = None
    start_date: datetime.datetime | None = None
    end_date: datetime.datetime | None = None
    invalid_dates: bool = False

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _coerce_date(cls, v: Any) -> datetime.datetime | None:
        return parse_instant(v)

    @property
    def dated(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        *,
        label_key: str = "name",
        start_key: str = "start_date",
        end_key: str = "end_date",
    ) -> TimelineItem:
        """Build an item from a backend row, tolerating malformed dates.

        A date that cannot be parsed is dropped and ``invalid_dates`` is set,
        so the item renders with the fallback width instead of failing the
        whole timeline.
        """
        invalid = False
        dates: list[datetime.datetime | None] = []
        for key in (start_key, end_key):
            try:
                dates.append(parse_instant(row.get(key)))
            except ValueError:
                dates.append(None)
                invalid = True
        return cls(
            id=str(row.get("id", "")),
            label=str(row.get(label_key) or ""),
            status=None if row.get("status") is None else str(row.get("status")),
            start_date=dates[0],
            end_date=dates[1],
            invalid_dates=invalid,
        )


class TimelineBar(BaseModel):
    id: str
    left_pct: float
    width_pct: float
    dated: bool
    invalid_dates: bool = False


class TimelineResult(BaseModel):
    span_start: datetime.datetime | None = None
    span_end: datetime.datetime | None = None
    bars: list[TimelineBar] | None = Field(default=None)

    @property
    def no_dates(self) -> bool:
        """True when the caller should render an unscaled status list."""
        return self.bars is None


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def compute_span(
    items: list[TimelineItem],
    explicit_start: datetime.datetime | None = None,
    explicit_end: datetime.datetime | None = None,
    *,
    now: datetime.datetime | None = None,
    default_span_days: int = DEFAULT_SPAN_DAYS,
) -> tuple[datetime.datetime, datetime.datetime]:
    """Resolve the normalization span for *items*.

    Each bound is taken from the explicit value, else from the extreme of
    the fully dated items, else from the default window around *now*.
    """
    dated = [i for i in items if i.dated]
    current = parse_instant(now) or datetime.datetime.now(datetime.timezone.utc)

    if explicit_start is not None:
        span_start = explicit_start
    elif dated:
        span_start = min(i.start_date for i in dated)  # type: ignore[type-var]
    else:
        span_start = current

    if explicit_end is not None:
        span_end = explicit_end
    elif dated:
        span_end = max(i.end_date for i in dated)  # type: ignore[type-var]
    else:
        span_end = current + datetime.timedelta(days=default_span_days)

    return span_start, span_end


def compute_timeline(
    items: Iterable[TimelineItem],
    explicit_start: Any = None,
    explicit_end: Any = None,
    *,
    now: datetime.datetime | None = None,
    fallback_width_pct: float = DEFAULT_FALLBACK_WIDTH_PCT,
    min_width_pct: float = DEFAULT_MIN_WIDTH_PCT,
    default_span_days: int = DEFAULT_SPAN_DAYS,
) -> TimelineResult:
    """Project timeline items onto horizontal bar positions.

    Args:
        items: Phases or delivery estimates, in display order.
        explicit_start: Project start date (date, datetime or ISO string).
        explicit_end: Project end date (date, datetime or ISO string).
        now: Reference instant for the default span; defaults to the
            current UTC time.
        fallback_width_pct: Width given to items lacking either date.
        min_width_pct: Minimum width of a dated bar.
        default_span_days: Length of the default span when nothing is dated.

    Returns:
        A :class:`TimelineResult`; ``bars`` is ``None`` when no item is
        fully dated and no explicit bound was given.

    Raises:
        ValueError: If an explicit bound is not a parseable date.
    """
    items = list(items)
    start = parse_instant(explicit_start)
    end = parse_instant(explicit_end)

    if start is None and end is None and not any(i.dated for i in items):
        return TimelineResult()

    span_start, span_end = compute_span(
        items, start, end, now=now, default_span_days=default_span_days
    )
    total_ms = _ms(span_end) - _ms(span_start)
    if total_ms <= 0:
        total_ms = 1.0

    bars: list[TimelineBar] = []
    for item in items:
        if item.dated:
            offset = (_ms(item.start_date) - _ms(span_start)) / total_ms  # type: ignore[arg-type]
            left = max(0.0, min(1.0, offset)) * 100
            width = max(
                min_width_pct,
                (_ms(item.end_date) - _ms(item.start_date)) / total_ms * 100,  # type: ignore[arg-type]
            )
        else:
            left = 0.0
            width = fallback_width_pct
        width = max(0.0, min(width, 100 - left))
        # 100 - left can round up by one ulp
        while width > 0 and left + width > 100:
            width = math.nextafter(width, 0.0)
        bars.append(
            TimelineBar(
                id=item.id,
                left_pct=left,
                width_pct=width,
                dated=item.dated,
                invalid_dates=item.invalid_dates,
            )
        )

    return TimelineResult(span_start=span_start, span_end=span_end, bars=bars)
