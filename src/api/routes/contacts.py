"""Contact API routes."""

from fastapi import APIRouter, Query, status

from src.api.deps import ContactServiceDep
from src.api.middleware.error_handler import NotFoundError
from src.models.contact import Stage
from src.schemas.common import SuccessResponse
from src.schemas.contact import (
    ContactCreate,
    ContactDetailResponse,
    ContactLookupMatch,
    ContactLookupRequest,
    ContactLookupResponse,
    ContactResponse,
    ContactUpdate,
)

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get(
    "",
    response_model=list[ContactResponse],
    summary="List contacts",
)
async def list_contacts(
    service: ContactServiceDep,
    q: str | None = Query(default=None, description="Search name, email, phone or lead source"),
    stage: Stage | None = Query(default=None),
    archived: bool = Query(default=False, description="Include archived contacts"),
) -> list[ContactResponse]:
    contacts = await service.list_contacts(search=q, stage=stage, include_archived=archived)
    return [ContactResponse(**contact) for contact in contacts]


@router.post(
    "",
    response_model=ContactResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a contact",
    responses={409: {"description": "Email or phone already in use"}},
)
async def create_contact(data: ContactCreate, service: ContactServiceDep) -> ContactResponse:
    contact = await service.create_contact(data)
    return ContactResponse(**contact)


@router.post(
    "/lookup",
    response_model=ContactLookupResponse,
    summary="Find an existing contact by email or phone",
)
async def lookup_contact(data: ContactLookupRequest, service: ContactServiceDep) -> ContactLookupResponse:
    """Look up a possible duplicate before creating a contact.

    Phones shorter than 10 digits are ignored.
    """
    match = await service.find_match(data.email, data.phone)
    if not match:
        return ContactLookupResponse(found=False)
    return ContactLookupResponse(found=True, contact=ContactLookupMatch(**match))


@router.get(
    "/{contact_id}",
    response_model=ContactDetailResponse,
    summary="Get a contact with activities and tasks",
)
async def get_contact(contact_id: str, service: ContactServiceDep) -> ContactDetailResponse:
    contact = await service.get_contact(contact_id)
    if not contact:
        raise NotFoundError("Contact not found")
    return ContactDetailResponse(**contact)


@router.patch(
    "/{contact_id}",
    response_model=ContactResponse,
    summary="Update a contact",
)
async def update_contact(
    contact_id: str,
    data: ContactUpdate,
    service: ContactServiceDep,
) -> ContactResponse:
    contact = await service.update_contact(contact_id, data)
    if not contact:
        raise NotFoundError("Contact not found")
    return ContactResponse(**contact)


@router.delete(
    "/{contact_id}",
    response_model=SuccessResponse,
    summary="Delete a contact",
)
async def delete_contact(contact_id: str, service: ContactServiceDep) -> SuccessResponse:
    if not await service.delete_contact(contact_id):
        raise NotFoundError("Contact not found")
    return SuccessResponse(message="Contact deleted")


@router.post(
    "/{contact_id}/archive",
    response_model=ContactResponse,
    summary="Archive a contact",
)
async def archive_contact(contact_id: str, service: ContactServiceDep) -> ContactResponse:
    contact = await service.archive_contact(contact_id)
    if not contact:
        raise NotFoundError("Contact not found")
    return ContactResponse(**contact)


@router.post(
    "/{contact_id}/mark-no-show",
    response_model=ContactResponse,
    summary="Mark a contact as a no-show",
)
async def mark_no_show(contact_id: str, service: ContactServiceDep) -> ContactResponse:
    contact = await service.mark_no_show(contact_id)
    if not contact:
        raise NotFoundError("Contact not found")
    return ContactResponse(**contact)
