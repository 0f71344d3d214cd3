"""Application settings row service."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.core.config import get_settings
from src.core.supabase import get_supabase_client, is_table_missing
from src.models.setting import SETTINGS_ROW_ID
from src.schemas.settings import SettingsUpdate

logger = logging.getLogger(__name__)


class SettingsService:
    """Service for the singleton settings row."""

    TABLE = "settings"

    def __init__(self) -> None:
        """Initialize settings service with Supabase client."""
        self.client = get_supabase_client()

    def _defaults(self) -> dict[str, Any]:
        settings = get_settings()
        return {
            "id": SETTINGS_ROW_ID,
            "kixie_url": settings.kixie_url,
            "ics_calendar_url": None,
            "data_dir": settings.data_dir,
        }

    async def get(self) -> dict[str, Any]:
        """Get the settings row, creating it with defaults on first access.

        When the settings table has not been provisioned, in-memory defaults
        are returned instead.

        Returns:
            dict: The settings row.
        """
        try:
            response = (
                self.client.table(self.TABLE)
                .select("*")
                .eq("id", SETTINGS_ROW_ID)
                .maybe_single()
                .execute()
            )
            if response and response.data:
                return response.data

            response = self.client.table(self.TABLE).insert(self._defaults()).execute()
            return response.data[0]
        except Exception as e:
            if not is_table_missing(e):
                raise
            logger.warning("[Settings] Table missing, returning defaults")
            now = datetime.now(timezone.utc)
            return {**self._defaults(), "created_at": now, "updated_at": now}

    async def update(self, data: SettingsUpdate) -> dict[str, Any]:
        """Update the settings row.

        Args:
            data: Fields to change.

        Returns:
            dict: The updated settings row.
        """
        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            return await self.get()

        response = (
            self.client.table(self.TABLE)
            .upsert({"id": SETTINGS_ROW_ID, **update_data}, on_conflict="id")
            .execute()
        )
        logger.info("Settings updated: %s", ", ".join(sorted(update_data)))
        return response.data[0]
