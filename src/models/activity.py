"""Activity model type definitions for database operations."""

from datetime import datetime
from typing import Literal

from typing_extensions import TypedDict


ActivityType = Literal["DIAL", "CONNECT", "CLOSE", "REVENUE", "CALL", "TASK", "NOTE", "EMAIL", "SMS", "MEETING"]

Outcome = Literal["DIAL", "CONNECT", "CLOSE"]

Direction = Literal["INBOUND", "OUTBOUND"]


class Activity(TypedDict):
    """Activities table row representation.

    KPI rows carry a `count` (dials logged in bulk) and optional `revenue`.
    """

    id: str
    contact_id: str | None
    type: ActivityType
    outcome: Outcome | None
    direction: Direction | None
    summary: str | None
    details: str | None
    notes: str | None
    count: int
    revenue: float | None
    voicemail: bool
    sms_sent: bool
    date: datetime
    created_at: datetime
