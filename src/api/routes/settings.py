"""Settings API routes."""

from fastapi import APIRouter

from src.api.deps import SettingsServiceDep
from src.schemas.settings import SettingsResponse, SettingsUpdate

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get(
    "",
    response_model=SettingsResponse,
    summary="Get settings",
    description="Returns the settings row, creating it with defaults on first access.",
)
async def get_settings_row(service: SettingsServiceDep) -> SettingsResponse:
    row = await service.get()
    return SettingsResponse(**row)


@router.put(
    "",
    response_model=SettingsResponse,
    summary="Update settings",
)
async def update_settings_row(data: SettingsUpdate, service: SettingsServiceDep) -> SettingsResponse:
    row = await service.update(data)
    return SettingsResponse(**row)
