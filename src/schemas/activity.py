"""Activity Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.activity import ActivityType, Direction, Outcome


class ActivityCreate(BaseModel):
    """Schema for logging an activity."""

    contact_id: str | None = Field(default=None, description="Contact the activity belongs to")
    type: ActivityType = Field(..., description="Activity type")
    outcome: Outcome | None = Field(default=None, description="Call outcome, for CALL activities")
    direction: Direction | None = None
    summary: str | None = Field(default=None, max_length=500)
    details: str | None = None
    notes: str | None = None
    count: int = Field(default=1, ge=0, description="Number of events this row stands for")
    revenue: float | None = Field(default=None, ge=0)
    voicemail: bool = False
    sms_sent: bool = False
    date: datetime | None = Field(default=None, description="When it happened; defaults to now")


class ActivityResponse(BaseModel):
    """Schema for activity API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    contact_id: str | None = None
    type: ActivityType
    outcome: Outcome | None = None
    direction: Direction | None = None
    summary: str | None = None
    details: str | None = None
    notes: str | None = None
    count: int = 1
    revenue: float | None = None
    voicemail: bool = False
    sms_sent: bool = False
    date: datetime | None = None
    created_at: datetime | None = None
