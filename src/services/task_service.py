"""Task business logic service."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from src.core.supabase import chunked, fetch_all, get_supabase_client, read_or_default
from src.schemas.task import GLOBAL_SCOPE, TaskCreate, TaskFilters, TaskPatch, TaskUpdate

logger = logging.getLogger(__name__)

FOLLOW_UP_HOUR = 10


def follow_up_time(now: datetime | None = None) -> datetime:
    """Tomorrow at 10:00 in the server's local time zone."""
    now = now or datetime.now().astimezone()
    return (now + timedelta(days=1)).replace(hour=FOLLOW_UP_HOUR, minute=0, second=0, microsecond=0)


def _status_columns(status: str | None, now: datetime) -> dict[str, Any]:
    if status == "DONE":
        stamp = now.isoformat()
        return {"archived_at": stamp, "completed_at": stamp}
    if status == "OPEN":
        return {"archived_at": None, "completed_at": None}
    return {}


def build_patch(patch: TaskPatch, now: datetime | None = None) -> dict[str, Any]:
    """Translate a bulk patch into column updates.

    Marking a task DONE archives and completes it at `now`; reopening clears
    both timestamps.

    Args:
        patch: Requested changes.
        now: Timestamp for DONE transitions; defaults to the current UTC time.

    Returns:
        dict: Column values to write.
    """
    now = now or datetime.now(timezone.utc)
    data: dict[str, Any] = {}

    if patch.status:
        data["status"] = patch.status
    if "due_at" in patch.model_fields_set:
        data["due_at"] = patch.due_at.isoformat() if patch.due_at else None
    if patch.priority:
        data["priority"] = patch.priority
    if "label" in patch.model_fields_set:
        data["label"] = patch.label
    if patch.stage:
        data["stage"] = patch.stage

    data.update(_status_columns(patch.status, now))
    return data


def apply_filters(query: Any, filters: TaskFilters) -> Any:
    """Apply filter criteria to a tasks query builder.

    Archived tasks are excluded unless `show_archived` is set.
    """
    if not filters.show_archived:
        query = query.is_("archived_at", "null")
    if filters.status:
        query = query.in_("status", filters.status)
    if filters.stage:
        query = query.in_("stage", filters.stage)
    if filters.priority:
        query = query.in_("priority", filters.priority)
    if filters.contact_id:
        query = query.eq("contact_id", filters.contact_id)
    if filters.q:
        query = query.ilike("title", f"%{filters.q}%")
    if filters.label:
        query = query.ilike("label", f"%{filters.label}%")
    if filters.due_from:
        query = query.gte("due_at", filters.due_from.isoformat())
    if filters.due_to:
        query = query.lte("due_at", filters.due_to.isoformat())
    return query


class TaskService:
    """Service for follow-up tasks."""

    TABLE = "tasks"

    def __init__(self) -> None:
        """Initialize task service with Supabase client."""
        self.client = get_supabase_client()

    async def list_tasks(
        self,
        status: str | None = None,
        contact_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """List tasks, open ones first and then by due date.

        Args:
            status: Optional status filter.
            contact_id: Optional contact filter.

        Returns:
            list[dict]: Matching tasks.
        """
        def _query() -> Any:
            query = self.client.table(self.TABLE).select("*")
            if status:
                query = query.eq("status", status)
            if contact_id:
                query = query.eq("contact_id", contact_id)
            return (
                query.order("status")
                .order("due_at", nullsfirst=False)
                .order("created_at", desc=True)
                .order("id")
            )

        async def _select() -> list[dict[str, Any]]:
            return fetch_all(_query)

        return await read_or_default(_select, [], context="Tasks")

    async def list_overdue(self, now: datetime | None = None) -> list[dict[str, Any]]:
        """List open tasks whose due date has passed."""
        now = now or datetime.now(timezone.utc)

        async def _select() -> list[dict[str, Any]]:
            return fetch_all(
                lambda: self.client.table(self.TABLE)
                .select("*")
                .eq("status", "OPEN")
                .lt("due_at", now.isoformat())
                .order("due_at")
                .order("id")
            )

        return await read_or_default(_select, [], context="Tasks")

    async def get_task(self, task_id: str) -> dict[str, Any] | None:
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", task_id)
            .maybe_single()
            .execute()
        )
        return response.data if response and response.data else None

    async def create_task(self, data: TaskCreate) -> dict[str, Any]:
        """Create a task.

        Args:
            data: Task fields.

        Returns:
            dict: The created task.
        """
        row = {**data.model_dump(mode="json"), "status": "OPEN"}
        response = self.client.table(self.TABLE).insert(row).execute()
        return response.data[0]

    async def create_follow_up(
        self,
        contact_id: str,
        title: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Create a SYSTEM task due tomorrow morning for a contact."""
        return await self.create_task(
            TaskCreate(
                title=title,
                contact_id=contact_id,
                due_at=follow_up_time(now),
                source="SYSTEM",
            )
        )

    async def update_task(self, task_id: str, data: TaskUpdate) -> dict[str, Any] | None:
        """Update a task.

        Status changes archive or unarchive the task the same way bulk
        updates do.

        Args:
            task_id: Task id.
            data: Fields to change.

        Returns:
            dict | None: The updated task or None if not found.
        """
        update_data = data.model_dump(mode="json", exclude_unset=True)
        if not update_data:
            return await self.get_task(task_id)

        update_data.update(_status_columns(update_data.get("status"), datetime.now(timezone.utc)))
        response = (
            self.client.table(self.TABLE)
            .update(update_data)
            .eq("id", task_id)
            .execute()
        )
        return response.data[0] if response.data else None

    async def complete_task(self, task_id: str) -> dict[str, Any] | None:
        return await self.update_task(task_id, TaskUpdate(status="DONE"))

    async def reopen_task(self, task_id: str) -> dict[str, Any] | None:
        return await self.update_task(task_id, TaskUpdate(status="OPEN"))

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task.

        Returns:
            bool: True if a task was deleted.
        """
        response = self.client.table(self.TABLE).delete().eq("id", task_id).execute()
        return bool(response.data)

    async def complete_open_for_contact(self, contact_id: str) -> int:
        """Mark every open task of a contact as done.

        Returns:
            int: Number of tasks closed.
        """
        data = {"status": "DONE", **_status_columns("DONE", datetime.now(timezone.utc))}
        response = (
            self.client.table(self.TABLE)
            .update(data)
            .eq("contact_id", contact_id)
            .eq("status", "OPEN")
            .execute()
        )
        return len(response.data or [])

    async def _count_matching(self, filters: TaskFilters | None) -> int:
        query = self.client.table(self.TABLE).select("id", count="exact")
        response = apply_filters(query, filters or TaskFilters()).limit(1).execute()
        return response.count or 0

    async def bulk_update(
        self,
        scope: str,
        patch: TaskPatch,
        filters: TaskFilters | None = None,
        ids: list[str] | None = None,
    ) -> dict[str, int]:
        """Apply a patch to every task selected by filters or ids.

        GLOBAL scope filters the update itself, so the whole match set is
        changed in one statement. Explicit ids are sent in chunks.

        Args:
            scope: GLOBAL to use `filters`, anything else to use `ids`.
            patch: Changes to apply.
            filters: Filter criteria for GLOBAL scope.
            ids: Task ids for other scopes.

        Returns:
            dict: `matched` and `modified` counts.
        """
        data = build_patch(patch)

        if scope == GLOBAL_SCOPE:
            matched = await self._count_matching(filters)
            modified = 0
            if matched and data:
                query = apply_filters(self.client.table(self.TABLE).update(data), filters or TaskFilters())
                modified = len(query.execute().data or [])
        else:
            task_ids = list(dict.fromkeys(ids or []))
            matched = len(task_ids)
            modified = 0
            if data:
                for chunk in chunked(task_ids):
                    response = self.client.table(self.TABLE).update(data).in_("id", chunk).execute()
                    modified += len(response.data or [])

        logger.info("Bulk task update (%s): matched=%d modified=%d", scope, matched, modified)
        return {"matched": matched, "modified": modified}

    async def bulk_delete(
        self,
        scope: str,
        filters: TaskFilters | None = None,
        ids: list[str] | None = None,
    ) -> dict[str, int]:
        """Delete every task selected by filters or ids.

        Returns:
            dict: `matched` and `deleted` counts.
        """
        if scope == GLOBAL_SCOPE:
            matched = await self._count_matching(filters)
            deleted = 0
            if matched:
                query = apply_filters(self.client.table(self.TABLE).delete(), filters or TaskFilters())
                deleted = len(query.execute().data or [])
        else:
            task_ids = list(dict.fromkeys(ids or []))
            matched = len(task_ids)
            deleted = 0
            for chunk in chunked(task_ids):
                response = self.client.table(self.TABLE).delete().in_("id", chunk).execute()
                deleted += len(response.data or [])

        logger.info("Bulk task delete (%s): matched=%d deleted=%d", scope, matched, deleted)
        return {"matched": matched, "deleted": deleted}
