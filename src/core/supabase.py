"""Supabase client singleton and store error helpers."""

import logging
import re
from functools import lru_cache
from typing import Any, Awaitable, Callable, Iterator, TypeVar

from supabase import Client, create_client

from src.core.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgREST/Postgres codes reported when a table has not been provisioned yet
MISSING_TABLE_CODES = frozenset({"42P01", "PGRST205"})
_DOES_NOT_EXIST = re.compile(r"does not exist", re.IGNORECASE)

# Supabase ships with max-rows = 1000; pages never ask for more
PAGE_SIZE = 1000
# Keeps `id=in.(...)` filters well under URL length limits
ID_CHUNK_SIZE = 200


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client singleton for database operations.

    Uses the secret key for backend operations. The CRM is a single-operator
    tool, so every request runs with the same credentials.

    Returns:
        Client: Supabase client instance.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


def is_table_missing(error: BaseException) -> bool:
    """Check whether an error means the queried table has not been provisioned.

    Args:
        error: Exception raised by the store client.

    Returns:
        bool: True for missing-relation errors.
    """
    code = getattr(error, "code", None)
    if code in MISSING_TABLE_CODES:
        return True
    message = getattr(error, "message", None) or str(error)
    return bool(_DOES_NOT_EXIST.search(str(message)))


async def read_or_default(
    operation: Callable[[], Awaitable[T]],
    fallback: T,
    context: str = "DB",
) -> T:
    """Run a read against the store, degrading to a fallback on missing schema.

    Reads against an unmigrated store return the fallback so that a fresh
    deployment shows empty lists. Any other error is re-raised.

    Args:
        operation: Zero-argument coroutine function performing the read.
        fallback: Value returned when the table is missing.
        context: Component tag for log lines.

    Returns:
        The operation result or the fallback.
    """
    try:
        return await operation()
    except Exception as e:
        if is_table_missing(e):
            logger.warning("[%s] Table missing, returning fallback", context)
            return fallback
        raise


def fetch_all(build_query: Callable[[], Any], page_size: int = PAGE_SIZE) -> list[dict[str, Any]]:
    """Read every row of a query, one page at a time.

    PostgREST caps each response at its max-rows setting, so a plain
    `execute()` silently truncates large tables. `build_query` must return a
    fresh, ordered builder on every call; pages are requested with `range()`
    until a short page comes back.

    Args:
        build_query: Zero-argument callable returning a select builder.
        page_size: Rows per request; must not exceed the server's max-rows.

    Returns:
        list[dict]: All rows in query order.
    """
    rows: list[dict[str, Any]] = []
    offset = 0
    while True:
        response = build_query().range(offset, offset + page_size - 1).execute()
        page = response.data or []
        rows.extend(page)
        if len(page) < page_size:
            return rows
        offset += page_size


def chunked(values: list[T], size: int = ID_CHUNK_SIZE) -> Iterator[list[T]]:
    """Split values into lists of at most `size` items for `in_` filters."""
    for start in range(0, len(values), size):
        yield values[start : start + size]


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Performs a simple query to verify database connectivity.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client = get_supabase_client()
        client.table("contacts").select("id").limit(1).execute()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e), "schema_missing": is_table_missing(e)}


def is_unique_violation(error: BaseException) -> bool:
    """Check whether an error is a unique-constraint rejection.

    Args:
        error: Exception raised by the store client.

    Returns:
        bool: True for duplicate-key errors.
    """
    if getattr(error, "code", None) == "23505":
        return True
    message = getattr(error, "message", None) or str(error)
    return "duplicate key" in str(message).lower()
