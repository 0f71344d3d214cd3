"""Contact model type definitions for database operations."""

from datetime import datetime
from typing import Literal

from typing_extensions import TypedDict


# Pipeline stage enum values matching database enum
Stage = Literal["NEW_LEAD", "CONTACTED", "QUOTE", "APPOINTMENT", "NO_SHOW", "SOLD", "LOST"]

STAGES: tuple[str, ...] = ("NEW_LEAD", "CONTACTED", "QUOTE", "APPOINTMENT", "NO_SHOW", "SOLD", "LOST")


class Contact(TypedDict):
    """Contacts table row representation.

    A lead is a contact in one of the pipeline stages. `phone_digits` is the
    normalized phone maintained on every write for duplicate matching.
    """

    id: str
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    phone_digits: str | None
    how_heard: str | None
    ghl_url: str | None
    tags: list[str]
    stage: Stage
    archived_at: datetime | None
    no_show_at: datetime | None
    last_contacted: datetime | None
    created_at: datetime
    updated_at: datetime


class ContactCreate(TypedDict, total=False):
    """Data required to create a new contact."""

    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    phone_digits: str | None
    how_heard: str | None
    ghl_url: str | None
    tags: list[str]
    stage: Stage
