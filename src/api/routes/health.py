"""Health check endpoints for monitoring and deployment verification."""

import time

from fastapi import APIRouter, Response, status

from src.core.config import get_settings
from src.core.supabase import check_database_connection
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse
from src.services.storage_service import probe_directory

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check() -> HealthResponse:
    """Return basic health status.

    This endpoint should always return 200 if the service is running.
    It does not check external dependencies.

    Returns:
        HealthResponse: Current health status with timestamp.
    """
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Store reachable (possibly without tables)"},
        503: {"description": "Store or data directory unavailable"},
    },
    summary="Readiness check",
    description="Check the store and the data directory. Used for readiness probes.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check readiness of the store and the local data directory.

    A reachable store whose tables are missing reports `degraded` with 200,
    since reads still answer with empty results.

    Args:
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Status of all dependency checks.
    """
    checks: list[CheckResult] = []

    start_time = time.perf_counter()
    db_result = await check_database_connection()
    latency_ms = (time.perf_counter() - start_time) * 1000
    schema_missing = bool(db_result.get("schema_missing"))

    checks.append(
        CheckResult(
            name="database",
            healthy=db_result["healthy"],
            latency_ms=round(latency_ms, 2),
            error="Schema not provisioned" if schema_missing else db_result.get("error"),
        )
    )

    start_time = time.perf_counter()
    dir_result = probe_directory(get_settings().data_path)
    latency_ms = (time.perf_counter() - start_time) * 1000

    checks.append(
        CheckResult(
            name="data_dir",
            healthy=dir_result["success"],
            latency_ms=round(latency_ms, 2),
            error=dir_result.get("error"),
        )
    )

    if all(check.healthy for check in checks):
        overall_status = HealthStatus.HEALTHY
    elif schema_missing and dir_result["success"]:
        overall_status = HealthStatus.DEGRADED
    else:
        overall_status = HealthStatus.UNHEALTHY
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(status=overall_status, checks=checks)
