"""KPI API routes."""

from datetime import datetime, timezone

from fastapi import APIRouter, Query

from src.api.deps import KpiServiceDep
from src.api.middleware.error_handler import BadRequestError
from src.schemas.kpi import KpiMode, KpiPreset, KpiResponse
from src.services.kpi_service import KpiRange, range_from_days, range_from_preset

router = APIRouter(prefix="/kpis", tags=["kpis"])


@router.get(
    "",
    response_model=KpiResponse,
    summary="Get KPIs for a date range",
    description=(
        "The range is taken from `from`/`to` when both are given, else from `preset`, "
        "else from `days` (default 7, 0 means today)."
    ),
)
async def get_kpis(
    service: KpiServiceDep,
    days: int | None = Query(default=None, ge=0, le=3660),
    preset: KpiPreset | None = Query(default=None),
    range_from: datetime | None = Query(default=None, alias="from"),
    range_to: datetime | None = Query(default=None, alias="to"),
    mode: KpiMode = Query(default=KpiMode.TYPE),
) -> KpiResponse:
    """Aggregate dials, connects, closes and revenue.

    Raises:
        RequestValidationError: 422 for an unknown preset.
        BadRequestError: 400 if only one custom bound is given or bounds are reversed.
    """
    if range_from is not None or range_to is not None:
        if range_from is None or range_to is None:
            raise BadRequestError("Both 'from' and 'to' are required for a custom range")
        range_from = range_from if range_from.tzinfo else range_from.replace(tzinfo=timezone.utc)
        range_to = range_to if range_to.tzinfo else range_to.replace(tzinfo=timezone.utc)
        if range_from > range_to:
            raise BadRequestError("'from' must not be after 'to'")
        kpi_range = KpiRange(range_from, range_to)
    elif preset:
        kpi_range = range_from_preset(preset)
    else:
        kpi_range = range_from_days(7 if days is None else days)

    return await service.get_kpis(kpi_range, mode)
