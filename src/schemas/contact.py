"""Contact Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.models.contact import Stage
from src.schemas.activity import ActivityResponse
from src.schemas.task import TaskResponse


class ContactCreate(BaseModel):
    """Schema for creating a new contact."""

    model_config = ConfigDict(from_attributes=True)

    first_name: str = Field(..., min_length=1, max_length=255, description="First name")
    last_name: str = Field(..., min_length=1, max_length=255, description="Last name")
    email: EmailStr | None = Field(default=None, description="Email address")
    phone: str | None = Field(default=None, max_length=50, description="Phone number in any format")
    how_heard: str | None = Field(default=None, description="Lead source")
    ghl_url: str | None = Field(default=None, description="Link to the contact in the external CRM")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    stage: Stage = Field(default="NEW_LEAD", description="Pipeline stage")


class ContactUpdate(BaseModel):
    """Schema for updating a contact.

    All fields are optional for partial updates.
    """

    first_name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    how_heard: str | None = None
    ghl_url: str | None = None
    tags: list[str] | None = None
    stage: Stage | None = None


class ContactResponse(BaseModel):
    """Schema for contact API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Contact unique identifier")
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    how_heard: str | None = None
    ghl_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    stage: Stage
    archived_at: datetime | None = None
    no_show_at: datetime | None = None
    last_contacted: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ContactDetailResponse(ContactResponse):
    """Contact with its recent activities and tasks."""

    activities: list[ActivityResponse] = Field(default_factory=list)
    tasks: list[TaskResponse] = Field(default_factory=list)


class ContactLookupRequest(BaseModel):
    email: str | None = None
    phone: str | None = None


class ContactLookupMatch(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    stage: Stage


class ContactLookupResponse(BaseModel):
    """Schema for POST /contacts/lookup."""

    found: bool
    contact: ContactLookupMatch | None = None
