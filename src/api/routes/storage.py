"""Local storage, backup and restore API routes."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from src.api.deps import StorageServiceDep
from src.api.middleware.error_handler import BadRequestError, StoreError
from src.schemas.settings import (
    BackupInfo,
    BackupListResponse,
    BackupResponse,
    DataDirUpdateRequest,
    DataDirUpdateResponse,
    DirectoryTestRequest,
    DirectoryTestResponse,
    ImportAllResponse,
)
from src.services.storage_service import probe_directory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get(
    "/export",
    summary="Download a full export",
    description="All collections (leads, activities, tasks, settings, contacts, discovery) as one JSON file.",
)
async def export_all(service: StorageServiceDep) -> JSONResponse:
    data = await service.export_all()
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return JSONResponse(
        content=json.loads(json.dumps(data, default=str)),
        headers={"Content-Disposition": f'attachment; filename="insurance-crm-export_{stamp}.json"'},
    )


@router.post(
    "/import",
    response_model=ImportAllResponse,
    summary="Restore from a full export",
)
async def import_all(service: StorageServiceDep, payload: dict[str, Any] = Body(...)) -> ImportAllResponse:
    """Upsert every collection present in an exported document.

    Raises:
        BadRequestError: 400 if a collection has the wrong shape.
    """
    try:
        imported = await service.import_all(payload)
    except ValueError as e:
        raise BadRequestError(str(e)) from e
    return ImportAllResponse(imported=imported)


@router.post(
    "/backups",
    response_model=BackupResponse,
    summary="Create a backup",
)
async def create_backup(service: StorageServiceDep) -> BackupResponse:
    try:
        path = await service.create_backup()
    except OSError as e:
        raise StoreError("Failed to write backup") from e
    return BackupResponse(path=str(path))


@router.get(
    "/backups",
    response_model=BackupListResponse,
    summary="List backups",
)
async def list_backups(service: StorageServiceDep) -> BackupListResponse:
    data_dir = await service.get_data_dir()
    backups = await service.list_backups()
    return BackupListResponse(data_dir=str(data_dir), backups=[BackupInfo(**b) for b in backups])


@router.post(
    "/test-directory",
    response_model=DirectoryTestResponse,
    summary="Check whether a directory is usable",
)
async def check_directory(data: DirectoryTestRequest) -> DirectoryTestResponse:
    return DirectoryTestResponse(**probe_directory(data.path))


@router.post(
    "/data-dir",
    response_model=DataDirUpdateResponse,
    summary="Move the data directory",
    description="Copies the current data directory to the new path, writes a backup there and updates settings.",
)
async def move_data_directory(data: DataDirUpdateRequest, service: StorageServiceDep) -> DataDirUpdateResponse:
    """Point the application at a new data directory.

    Raises:
        BadRequestError: 400 if the target is unusable or already current.
        StoreError: 500 if copying fails.
    """
    try:
        result = await service.move_data_directory(data.path)
    except ValueError as e:
        raise BadRequestError(str(e)) from e
    except OSError as e:
        raise StoreError("Failed to move data directory") from e
    return DataDirUpdateResponse(**result)
