"""Discovery session model type definitions for database operations."""

from datetime import datetime
from typing import Any

from typing_extensions import TypedDict


class RapportNote(TypedDict):
    """A timestamped free-text note captured during a call."""

    text: str
    ts: str


class DiscoverySession(TypedDict):
    """Discovery sessions table row representation.

    `json_payload` is the document of record; the scalar columns and
    `rapport` are denormalized from it on every write.
    """

    id: str
    session_id: str
    client_id: str | None
    client_name: str | None
    primary_dob: str | None
    zip: str | None
    state: str | None
    county: str | None
    json_payload: dict[str, Any]
    yaml_payload: str
    rapport: list[RapportNote]
    created_at: datetime
    updated_at: datetime


class DiscoverySessionColumns(TypedDict):
    """Denormalized columns extracted from a discovery document."""

    client_id: str | None
    client_name: str | None
    primary_dob: str | None
    zip: str | None
    state: str | None
    county: str | None
    rapport: list[RapportNote]
