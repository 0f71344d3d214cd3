"""KPI aggregation over logged activities."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from dateutil.parser import isoparse
from dateutil.relativedelta import MO, relativedelta

from src.core.supabase import fetch_all, get_supabase_client, read_or_default
from src.schemas.kpi import KpiMode, KpiPreset, KpiResponse

logger = logging.getLogger(__name__)

COUNTED_KINDS = ("DIAL", "CONNECT", "CLOSE")
REVENUE_KINDS = ("CLOSE", "REVENUE")


@dataclass(frozen=True)
class KpiRange:
    """Inclusive datetime range."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return _aware(self.start) <= _aware(moment) <= _aware(self.end)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def _parse_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return isoparse(value)
    return None


def range_from_preset(preset: KpiPreset | str | None, now: datetime | None = None) -> KpiRange:
    """Map a named preset to absolute day boundaries.

    Presets are `today`, `week` (Monday through Sunday), `7d` and `30d`
    (both including today). Anything else falls back to today.

    Args:
        preset: Preset name.
        now: Reference time; defaults to the current UTC time.

    Returns:
        KpiRange: The resolved range.
    """
    now = now or datetime.now(timezone.utc)
    today = _start_of_day(now)

    if preset == KpiPreset.WEEK:
        monday = today + relativedelta(weekday=MO(-1))
        return KpiRange(monday, _end_of_day(monday + timedelta(days=6)))
    if preset == KpiPreset.LAST_7_DAYS:
        return KpiRange(today - timedelta(days=6), _end_of_day(now))
    if preset == KpiPreset.LAST_30_DAYS:
        return KpiRange(today - timedelta(days=29), _end_of_day(now))
    return KpiRange(today, _end_of_day(now))


def range_from_days(days: int, now: datetime | None = None) -> KpiRange:
    """Range covering the last `days` days including today; 0 means today."""
    now = now or datetime.now(timezone.utc)
    today = _start_of_day(now)
    start = today if days <= 0 else today - timedelta(days=days - 1)
    return KpiRange(start, _end_of_day(now))


def conversion_rate(dials: int, closes: int) -> str:
    if dials > 0 and closes > 0:
        return f"{closes / dials * 100:.1f}"
    return "0"


def _kind(activity: dict[str, Any], mode: KpiMode) -> str | None:
    if mode == KpiMode.OUTCOME:
        return activity.get("outcome") if activity.get("type") == "CALL" else None
    return activity.get("type")


def aggregate(
    activities: Iterable[dict[str, Any]],
    kpi_range: KpiRange,
    mode: KpiMode | str = KpiMode.TYPE,
) -> KpiResponse:
    """Sum dial/connect/close counts and revenue over a date range.

    In `type` mode an activity is classified by its `type`. In `outcome`
    mode only CALL activities count, classified by their `outcome`. Revenue
    is summed over closes and over REVENUE activities in both modes.

    Args:
        activities: Activity rows.
        kpi_range: Inclusive range applied to each activity's `date`.
        mode: Classification mode.

    Returns:
        KpiResponse: Aggregated KPIs.
    """
    mode = KpiMode(mode)
    totals = dict.fromkeys(COUNTED_KINDS, 0)
    revenue = 0.0

    for activity in activities:
        moment = _parse_date(activity.get("date"))
        if moment is None or not kpi_range.contains(moment):
            continue

        kind = _kind(activity, mode)
        if kind in totals:
            count = activity.get("count")
            totals[kind] += 1 if count is None else int(count)
        if kind in REVENUE_KINDS or activity.get("type") == "REVENUE":
            revenue += float(activity.get("revenue") or 0)

    return KpiResponse(
        dials=totals["DIAL"],
        connects=totals["CONNECT"],
        closes=totals["CLOSE"],
        revenue=revenue,
        conversion_rate=conversion_rate(totals["DIAL"], totals["CLOSE"]),
    )


class KpiService:
    """Service fetching activities for KPI aggregation."""

    def __init__(self) -> None:
        """Initialize KPI service with Supabase client."""
        self.client = get_supabase_client()

    async def get_kpis(self, kpi_range: KpiRange, mode: KpiMode | str = KpiMode.TYPE) -> KpiResponse:
        """Fetch activities in range and aggregate them.

        Args:
            kpi_range: Inclusive range.
            mode: Classification mode.

        Returns:
            KpiResponse: Aggregated KPIs; zeroed when the schema is missing.
        """
        def _query() -> Any:
            return (
                self.client.table("activities")
                .select("id, type, outcome, count, revenue, date")
                .gte("date", kpi_range.start.isoformat())
                .lte("date", kpi_range.end.isoformat())
                .order("id")
            )

        async def _select() -> list[dict[str, Any]]:
            return fetch_all(_query)

        activities = await read_or_default(_select, [], context="KPI")
        return aggregate(activities, kpi_range, mode)
