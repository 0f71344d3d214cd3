"""Task API routes."""

from fastapi import APIRouter, Query, status

from src.api.deps import TaskServiceDep
from src.api.middleware.error_handler import BadRequestError, NotFoundError
from src.models.task import TaskStatus
from src.schemas.common import SuccessResponse
from src.schemas.task import (
    GLOBAL_SCOPE,
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkUpdateRequest,
    BulkUpdateResponse,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _check_selection(scope: str, has_filters: bool, ids: list[str]) -> None:
    if scope == GLOBAL_SCOPE and not has_filters:
        raise BadRequestError("GLOBAL scope requires filters")
    if scope != GLOBAL_SCOPE and not ids:
        raise BadRequestError("ids are required unless scope is GLOBAL")


@router.get(
    "",
    response_model=list[TaskResponse],
    summary="List tasks",
)
async def list_tasks(
    service: TaskServiceDep,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    contact_id: str | None = Query(default=None, alias="contactId"),
) -> list[TaskResponse]:
    tasks = await service.list_tasks(status=status_filter, contact_id=contact_id)
    return [TaskResponse(**task) for task in tasks]


@router.get(
    "/overdue",
    response_model=list[TaskResponse],
    summary="List overdue open tasks",
)
async def list_overdue_tasks(service: TaskServiceDep) -> list[TaskResponse]:
    tasks = await service.list_overdue()
    return [TaskResponse(**task) for task in tasks]


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
async def create_task(data: TaskCreate, service: TaskServiceDep) -> TaskResponse:
    task = await service.create_task(data)
    return TaskResponse(**task)


@router.post(
    "/bulk/update",
    response_model=BulkUpdateResponse,
    summary="Update many tasks",
    description="GLOBAL scope selects tasks by filters; any other scope uses ids.",
)
async def bulk_update_tasks(data: BulkUpdateRequest, service: TaskServiceDep) -> BulkUpdateResponse:
    _check_selection(data.scope, data.filters is not None, data.ids)
    result = await service.bulk_update(data.scope, data.patch, filters=data.filters, ids=data.ids)
    return BulkUpdateResponse(**result)


@router.post(
    "/bulk/delete",
    response_model=BulkDeleteResponse,
    summary="Delete many tasks",
    description="GLOBAL scope selects tasks by filters; any other scope uses ids.",
)
async def bulk_delete_tasks(data: BulkDeleteRequest, service: TaskServiceDep) -> BulkDeleteResponse:
    _check_selection(data.scope, data.filters is not None, data.ids)
    result = await service.bulk_delete(data.scope, filters=data.filters, ids=data.ids)
    return BulkDeleteResponse(**result)


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Get a task",
)
async def get_task(task_id: str, service: TaskServiceDep) -> TaskResponse:
    task = await service.get_task(task_id)
    if not task:
        raise NotFoundError("Task not found")
    return TaskResponse(**task)


@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Update a task",
)
async def update_task(task_id: str, data: TaskUpdate, service: TaskServiceDep) -> TaskResponse:
    task = await service.update_task(task_id, data)
    if not task:
        raise NotFoundError("Task not found")
    return TaskResponse(**task)


@router.post(
    "/{task_id}/complete",
    response_model=TaskResponse,
    summary="Mark a task done",
)
async def complete_task(task_id: str, service: TaskServiceDep) -> TaskResponse:
    task = await service.complete_task(task_id)
    if not task:
        raise NotFoundError("Task not found")
    return TaskResponse(**task)


@router.post(
    "/{task_id}/reopen",
    response_model=TaskResponse,
    summary="Reopen a task",
)
async def reopen_task(task_id: str, service: TaskServiceDep) -> TaskResponse:
    task = await service.reopen_task(task_id)
    if not task:
        raise NotFoundError("Task not found")
    return TaskResponse(**task)


@router.delete(
    "/{task_id}",
    response_model=SuccessResponse,
    summary="Delete a task",
)
async def delete_task(task_id: str, service: TaskServiceDep) -> SuccessResponse:
    if not await service.delete_task(task_id):
        raise NotFoundError("Task not found")
    return SuccessResponse(message="Task deleted")
