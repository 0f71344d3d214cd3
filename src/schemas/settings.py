"""Settings and local storage Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SettingsUpdate(BaseModel):
    """Schema for updating settings via PUT /settings.

    All fields are optional for partial updates.
    """

    kixie_url: str | None = Field(default=None, description="Dialer URL")
    ics_calendar_url: str | None = Field(default=None, description="Calendar feed URL")
    data_dir: str | None = Field(default=None, min_length=1, description="Local data directory")


class SettingsResponse(BaseModel):
    """Schema for settings responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    kixie_url: str | None = None
    ics_calendar_url: str | None = None
    data_dir: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BackupInfo(BaseModel):
    """A backup file in the data directory."""

    name: str
    path: str
    size: int = Field(description="File size in bytes")
    created_at: datetime


class BackupResponse(BaseModel):
    success: bool = True
    path: str
    message: str = "Backup created successfully"


class BackupListResponse(BaseModel):
    data_dir: str
    backups: list[BackupInfo] = Field(default_factory=list)


class DirectoryTestRequest(BaseModel):
    path: str = Field(min_length=1)


class DirectoryTestResponse(BaseModel):
    success: bool
    readable: bool = False
    writable: bool = False
    error: str | None = None


class DataDirUpdateRequest(BaseModel):
    path: str = Field(min_length=1, description="New data directory")


class DataDirUpdateResponse(BaseModel):
    success: bool = True
    data_dir: str
    message: str
    backup_path: str | None = None


class ImportAllResponse(BaseModel):
    success: bool = True
    imported: dict[str, int] = Field(default_factory=dict, description="Rows written per collection")
