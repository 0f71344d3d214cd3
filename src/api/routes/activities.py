"""Activity API routes."""

from fastapi import APIRouter, Query, status

from src.api.deps import ActivityServiceDep
from src.schemas.activity import ActivityCreate, ActivityResponse

router = APIRouter(prefix="/activities", tags=["activities"])


@router.post(
    "",
    response_model=ActivityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log an activity",
    description=(
        "A CALL with outcome DIAL schedules a follow-up task for tomorrow 10:00. "
        "A CLOSE outcome completes the contact's open tasks."
    ),
)
async def create_activity(data: ActivityCreate, service: ActivityServiceDep) -> ActivityResponse:
    activity = await service.create(data)
    return ActivityResponse(**activity)


@router.get(
    "",
    response_model=list[ActivityResponse],
    summary="List recent activities",
)
async def list_activities(
    service: ActivityServiceDep,
    contact_id: str | None = Query(default=None, alias="contactId"),
    limit: int = Query(default=10, ge=1, le=200),
) -> list[ActivityResponse]:
    activities = await service.recent(contact_id=contact_id, limit=limit)
    return [ActivityResponse(**activity) for activity in activities]
