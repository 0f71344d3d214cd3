"""Contact import API routes."""

from fastapi import APIRouter, Request

from src.api.deps import ImportServiceDep
from src.api.middleware.error_handler import BadRequestError
from src.schemas.imports import ContactImportRequest, ImportResult
from src.services.import_service import parse_csv

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post(
    "/contacts",
    response_model=ImportResult,
    summary="Import contacts from JSON rows",
)
async def import_contacts(data: ContactImportRequest, service: ImportServiceDep) -> ImportResult:
    return await service.import_contacts(data.rows)


@router.post(
    "/contacts/csv",
    response_model=ImportResult,
    summary="Import contacts from CSV",
    description="Body is raw CSV text with a header row (First Name, Last Name, Email, Phone, How Heard).",
    openapi_extra={"requestBody": {"content": {"text/csv": {"schema": {"type": "string"}}}, "required": True}},
)
async def import_contacts_csv(request: Request, service: ImportServiceDep) -> ImportResult:
    """Parse a CSV body and import its rows.

    Raises:
        BadRequestError: 400 if the body is empty, not UTF-8, or has no rows.
    """
    body = await request.body()
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise BadRequestError("CSV must be UTF-8 encoded") from e

    rows = parse_csv(text) if text.strip() else []
    if not rows:
        raise BadRequestError("CSV contains no rows")
    return await service.import_contacts(rows)
