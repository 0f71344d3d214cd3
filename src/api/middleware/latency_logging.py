"""Request latency logging middleware."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# (slow, very slow) thresholds in milliseconds
DEFAULT_THRESHOLDS_MS = (1000.0, 3000.0)

# Whole-store export, backups, data-dir moves and imports touch every table
BULK_PATH_PREFIXES = ("/api/v1/storage", "/api/v1/imports", "/api/v1/discovery/export")
BULK_THRESHOLDS_MS = (5000.0, 15000.0)

HEALTH_PATHS = frozenset({"/health", "/health/ready"})
HEALTH_DEBUG_THRESHOLD_MS = 100.0


def thresholds_for(path: str) -> tuple[float, float]:
    """Return the (slow, very slow) latency thresholds for a request path."""
    if path.startswith(BULK_PATH_PREFIXES):
        return BULK_THRESHOLDS_MS
    return DEFAULT_THRESHOLDS_MS


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log method, path, status and latency for every request.

    Health probes are logged at debug level and only when slow. Server
    errors and very slow requests are logged as errors; client errors and
    slow requests as warnings.

    Args:
        request: The incoming request.
        call_next: The next middleware/handler in the chain.

    Returns:
        Response: The response from the handler.
    """
    start = time.perf_counter()
    method = request.method
    path = request.url.path

    response = None
    failed = False

    try:
        response = await call_next(request)
        return response
    except Exception:
        failed = True
        raise
    finally:
        latency_ms = (time.perf_counter() - start) * 1000
        status_code = response.status_code if response is not None else 500
        log_data = {"method": method, "path": path, "status_code": status_code, "latency_ms": round(latency_ms, 2)}
        slow_ms, very_slow_ms = thresholds_for(path)

        if path in HEALTH_PATHS:
            if latency_ms > HEALTH_DEBUG_THRESHOLD_MS:
                logger.debug("%s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        elif failed or status_code >= 500:
            logger.error("%s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        elif latency_ms > very_slow_ms:
            logger.error("VERY SLOW REQUEST: %s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        elif latency_ms > slow_ms:
            logger.warning("SLOW REQUEST: %s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        elif status_code >= 400:
            logger.warning("%s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
        else:
            logger.info("%s %s - %d - %.2fms", method, path, status_code, latency_ms, extra=log_data)
