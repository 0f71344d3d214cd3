"""FastAPI dependency injection functions.

Each service is constructed per request; routes receive it through the
`...Dep` aliases so tests can swap implementations with
`app.dependency_overrides`.
"""

from typing import Annotated

from fastapi import Depends

from src.services.activity_service import ActivityService
from src.services.contact_service import ContactService
from src.services.discovery_session_service import DiscoverySessionService
from src.services.import_service import ImportService
from src.services.kpi_service import KpiService
from src.services.settings_service import SettingsService
from src.services.storage_service import StorageService
from src.services.task_service import TaskService


def get_settings_service() -> SettingsService:
    return SettingsService()


def get_storage_service(
    settings_service: Annotated[SettingsService, Depends(get_settings_service)],
) -> StorageService:
    return StorageService(settings_service)


def get_discovery_session_service(
    storage_service: Annotated[StorageService, Depends(get_storage_service)],
) -> DiscoverySessionService:
    return DiscoverySessionService(storage_service)


def get_contact_service() -> ContactService:
    return ContactService()


def get_task_service() -> TaskService:
    return TaskService()


def get_activity_service(
    task_service: Annotated[TaskService, Depends(get_task_service)],
    contact_service: Annotated[ContactService, Depends(get_contact_service)],
) -> ActivityService:
    return ActivityService(task_service, contact_service)


def get_kpi_service() -> KpiService:
    return KpiService()


def get_import_service(
    contact_service: Annotated[ContactService, Depends(get_contact_service)],
    task_service: Annotated[TaskService, Depends(get_task_service)],
) -> ImportService:
    return ImportService(contact_service, task_service)


# Type aliases for cleaner route signatures
SettingsServiceDep = Annotated[SettingsService, Depends(get_settings_service)]
StorageServiceDep = Annotated[StorageService, Depends(get_storage_service)]
DiscoverySessionServiceDep = Annotated[DiscoverySessionService, Depends(get_discovery_session_service)]
ContactServiceDep = Annotated[ContactService, Depends(get_contact_service)]
TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
ActivityServiceDep = Annotated[ActivityService, Depends(get_activity_service)]
KpiServiceDep = Annotated[KpiService, Depends(get_kpi_service)]
ImportServiceDep = Annotated[ImportService, Depends(get_import_service)]
