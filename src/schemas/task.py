"""Task Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.task import TaskPriority, TaskSource, TaskStatus


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    title: str = Field(..., min_length=1, max_length=500, description="Task title")
    contact_id: str | None = Field(default=None, description="Contact the task is for")
    due_at: datetime | None = Field(default=None, description="Due date and time")
    label: str | None = None
    priority: TaskPriority | None = None
    stage: str | None = None
    source: TaskSource = Field(default="MANUAL", description="Who created the task")


class TaskUpdate(BaseModel):
    """Schema for updating a task.

    All fields are optional for partial updates. `due_at` and `label` may be
    set to null explicitly.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    status: TaskStatus | None = None
    due_at: datetime | None = None
    label: str | None = None
    priority: TaskPriority | None = None
    stage: str | None = None


class TaskResponse(BaseModel):
    """Schema for task API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    contact_id: str | None = None
    title: str
    label: str | None = None
    status: TaskStatus
    priority: TaskPriority | None = None
    stage: str | None = None
    source: TaskSource = "MANUAL"
    due_at: datetime | None = None
    completed_at: datetime | None = None
    archived_at: datetime | None = None
    created_at: datetime | None = None


# Bulk scope that selects tasks by filter criteria; any other scope uses an id list
GLOBAL_SCOPE = "GLOBAL"


class TaskFilters(BaseModel):
    """Filter criteria for task queries. Unset fields do not filter."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    status: list[TaskStatus] = Field(default_factory=list)
    stage: list[str] = Field(default_factory=list)
    priority: list[TaskPriority] = Field(default_factory=list)
    contact_id: str | None = Field(default=None, alias="contactId")
    q: str | None = Field(default=None, description="Case-insensitive title contains-match")
    label: str | None = Field(default=None, description="Case-insensitive label contains-match")
    due_from: datetime | None = Field(default=None, alias="dueFrom")
    due_to: datetime | None = Field(default=None, alias="dueTo")
    show_archived: bool = Field(default=False, alias="showArchived")


class TaskPatch(BaseModel):
    """Fields a bulk update may change.

    `due_at` and `label` distinguish an explicit null (clear the column)
    from an omitted key (leave it alone).
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    status: TaskStatus | None = None
    due_at: datetime | None = Field(default=None, alias="dueAt")
    priority: TaskPriority | None = None
    label: str | None = None
    stage: str | None = None


class BulkUpdateRequest(BaseModel):
    """Schema for POST /tasks/bulk/update."""

    scope: str = Field(..., min_length=1)
    filters: TaskFilters | None = None
    ids: list[str] = Field(default_factory=list)
    patch: TaskPatch


class BulkDeleteRequest(BaseModel):
    """Schema for POST /tasks/bulk/delete."""

    scope: str = Field(..., min_length=1)
    filters: TaskFilters | None = None
    ids: list[str] = Field(default_factory=list)


class BulkUpdateResponse(BaseModel):
    success: bool = True
    matched: int
    modified: int


class BulkDeleteResponse(BaseModel):
    success: bool = True
    matched: int
    deleted: int
