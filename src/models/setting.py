"""Settings model type definitions for database operations."""

from datetime import datetime

from typing_extensions import TypedDict


SETTINGS_ROW_ID = "singleton"


class Setting(TypedDict):
    """Settings table row. There is exactly one row, keyed `singleton`."""

    id: str
    kixie_url: str | None
    ics_calendar_url: str | None
    data_dir: str | None
    created_at: datetime
    updated_at: datetime
