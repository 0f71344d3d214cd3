"""Activity logging service."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.core.supabase import get_supabase_client, read_or_default
from src.schemas.activity import ActivityCreate
from src.services.contact_service import ContactService
from src.services.task_service import TaskService

logger = logging.getLogger(__name__)

FOLLOW_UP_TITLE = "Follow up on call attempt"


class ActivityService:
    """Service for logging calls, notes and KPI activities."""

    TABLE = "activities"

    def __init__(
        self,
        task_service: TaskService | None = None,
        contact_service: ContactService | None = None,
    ) -> None:
        """Initialize activity service.

        Args:
            task_service: Optional task service for follow-up side effects.
            contact_service: Optional contact service for last-contacted stamps.
        """
        self.client = get_supabase_client()
        self._task_service = task_service or TaskService()
        self._contact_service = contact_service or ContactService()

    async def create(self, data: ActivityCreate) -> dict[str, Any]:
        """Log an activity and apply its follow-up side effects.

        A CALL with outcome DIAL schedules a follow-up task for tomorrow
        morning. A CLOSE outcome completes the contact's open tasks. Any
        activity tied to a contact stamps `last_contacted`.

        Args:
            data: Activity fields.

        Returns:
            dict: The created activity.
        """
        row = data.model_dump(mode="json")
        if row.get("date") is None:
            row["date"] = datetime.now(timezone.utc).isoformat()

        response = self.client.table(self.TABLE).insert(row).execute()
        activity = response.data[0]

        contact_id = data.contact_id
        if contact_id:
            if data.type == "CALL" and data.outcome == "DIAL":
                await self._task_service.create_follow_up(contact_id, FOLLOW_UP_TITLE)
            if data.outcome == "CLOSE":
                closed = await self._task_service.complete_open_for_contact(contact_id)
                logger.info("Closed %d open tasks for contact %s", closed, contact_id)
            await self._contact_service.touch_last_contacted(contact_id)

        return activity

    async def recent(self, contact_id: str | None = None, limit: int = 10) -> list[dict[str, Any]]:
        """Most recent activities, optionally for one contact."""
        async def _select() -> list[dict[str, Any]]:
            query = self.client.table(self.TABLE).select("*")
            if contact_id:
                query = query.eq("contact_id", contact_id)
            response = query.order("date", desc=True).limit(limit).execute()
            return response.data or []

        return await read_or_default(_select, [], context="Activities")
