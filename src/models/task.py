"""Task model type definitions for database operations."""

from datetime import datetime
from typing import Literal

from typing_extensions import TypedDict


TaskStatus = Literal["OPEN", "DONE"]

TaskPriority = Literal["LOW", "MEDIUM", "HIGH"]

TaskSource = Literal["MANUAL", "SYSTEM"]


class Task(TypedDict):
    """Tasks table row representation."""

    id: str
    contact_id: str | None
    title: str
    label: str | None
    status: TaskStatus
    priority: TaskPriority | None
    stage: str | None
    source: TaskSource
    due_at: datetime | None
    completed_at: datetime | None
    archived_at: datetime | None
    created_at: datetime


class TaskUpdate(TypedDict, total=False):
    """Columns a task update may touch.

    All fields are optional for partial updates.
    """

    title: str
    label: str | None
    status: TaskStatus
    priority: TaskPriority
    stage: str
    due_at: str | None
    completed_at: str | None
    archived_at: str | None
