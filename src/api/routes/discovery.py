"""Discovery call session API routes."""

import logging

from fastapi import APIRouter, Body, status

from src.api.deps import DiscoverySessionServiceDep
from src.api.middleware.error_handler import BadRequestError, NotFoundError, StoreError
from src.schemas.discovery import (
    DiscoveryCreateRequest,
    DiscoveryCreateResponse,
    DiscoveryExportRequest,
    DiscoveryExportResponse,
    DiscoveryLookupResponse,
    DiscoveryRenderRequest,
    DiscoveryRenderResponse,
    DiscoverySaveRequest,
    DiscoverySaveResponse,
    DiscoverySessionResponse,
    DiscoverySessionSummary,
    DiscoveryValidateRequest,
    DiscoveryValidateResponse,
    ExportFiles,
    WizardStepStatus,
)
from src.services.discovery_document import normalize_document
from src.services.discovery_serializer import format_summary, to_text
from src.services.discovery_wizard import DiscoveryWizard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/discovery", tags=["discovery"])


@router.get(
    "/by-client/{client_id}",
    response_model=DiscoveryLookupResponse,
    summary="Find a client's latest discovery session",
    description="Returns the most recently updated session for the client, or exists=false.",
)
async def get_session_for_client(
    client_id: str,
    service: DiscoverySessionServiceDep,
) -> DiscoveryLookupResponse:
    """Look up the session to resume for a client.

    Args:
        client_id: Contact id.
        service: Discovery session service.

    Returns:
        DiscoveryLookupResponse: Session summary or an empty result.
    """
    session = await service.get_by_client_id(client_id)
    if not session:
        return DiscoveryLookupResponse(exists=False, client_id=client_id)

    return DiscoveryLookupResponse(
        exists=True,
        session_id=session["session_id"],
        id=session["id"],
        client_id=session.get("client_id") or client_id,
        client_name=session.get("client_name"),
        created_at=session.get("created_at"),
        updated_at=session.get("updated_at"),
    )


@router.get(
    "/by-client/{client_id}/sessions",
    response_model=list[DiscoverySessionSummary],
    summary="List a client's discovery sessions",
)
async def list_sessions_for_client(
    client_id: str,
    service: DiscoverySessionServiceDep,
) -> list[DiscoverySessionSummary]:
    sessions = await service.list_by_client_id(client_id)
    return [DiscoverySessionSummary(**session) for session in sessions]


@router.post(
    "/by-client/{client_id}",
    response_model=DiscoveryCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a discovery session for a client",
)
async def create_session_for_client(
    client_id: str,
    service: DiscoverySessionServiceDep,
    data: DiscoveryCreateRequest | None = Body(default=None),
) -> DiscoveryCreateResponse:
    """Create a new discovery session with a default document.

    Args:
        client_id: Contact id.
        service: Discovery session service.
        data: Optional client name and seed document.

    Returns:
        DiscoveryCreateResponse: Identifiers of the new session.
    """
    data = data or DiscoveryCreateRequest()
    try:
        created = await service.create_for_client(client_id, data.client_name, data.seed)
    except ValueError as e:
        raise BadRequestError(str(e)) from e

    return DiscoveryCreateResponse(**created)


@router.get(
    "/sessions/{session_id}",
    response_model=DiscoverySessionResponse,
    summary="Get a discovery session",
)
async def get_session(
    session_id: str,
    service: DiscoverySessionServiceDep,
) -> DiscoverySessionResponse:
    """Get a full session including its document.

    Raises:
        NotFoundError: 404 if the session does not exist.
    """
    session = await service.get_by_session_id(session_id)
    if not session:
        raise NotFoundError(f"Discovery session {session_id} not found")
    return DiscoverySessionResponse(**session)


@router.post(
    "/save",
    response_model=DiscoverySaveResponse,
    summary="Save a discovery document",
    description="Upserts the session by sessionId. callDuration is merged into meta.callDuration.",
)
async def save_session(
    data: DiscoverySaveRequest,
    service: DiscoverySessionServiceDep,
) -> DiscoverySaveResponse:
    """Persist the wizard's document.

    Saving never blocks on incomplete steps; the response lists the required
    wizard steps the document does not yet satisfy.

    Raises:
        BadRequestError: 400 if the document is malformed.
    """
    try:
        wizard = DiscoveryWizard(service, data.session_id, document=data.data)
        saved = await service.save(
            data.session_id,
            data.data,
            yaml_text=data.yaml_payload,
            call_duration=data.call_duration,
        )
    except ValueError as e:
        raise BadRequestError("Invalid discovery document", details=_errors(e)) from e

    return DiscoverySaveResponse(
        session_id=data.session_id,
        id=saved["id"],
        missing_required_steps=wizard.missing_required_steps(),
    )


@router.post(
    "/validate",
    response_model=DiscoveryValidateResponse,
    summary="Check a discovery document against the wizard steps",
    description="Reports which wizard steps pass their required-answer rules. Nothing is saved.",
)
async def validate_document(
    data: DiscoveryValidateRequest,
    service: DiscoverySessionServiceDep,
) -> DiscoveryValidateResponse:
    try:
        wizard = DiscoveryWizard(service, data.session_id, document=data.data)
    except ValueError as e:
        raise BadRequestError("Invalid discovery document", details=_errors(e)) from e

    steps = wizard.step_report()
    missing = [step["id"] for step in steps if step["required"] and not step["valid"]]
    return DiscoveryValidateResponse(
        steps=[WizardStepStatus(**step) for step in steps],
        missing_required_steps=missing,
        complete=not missing,
    )


@router.post(
    "/export",
    response_model=DiscoveryExportResponse,
    summary="Export a discovery document to files",
    description="Writes JSON and text renderings under <data_dir>/exports/discovery/.",
)
async def export_session(
    data: DiscoveryExportRequest,
    service: DiscoverySessionServiceDep,
) -> DiscoveryExportResponse:
    """Write the document to the export directory.

    Raises:
        BadRequestError: 400 if the document is malformed.
        StoreError: 500 if the files cannot be written.
    """
    try:
        result = await service.export(data.session_id, data.data, yaml_text=data.yaml_payload)
    except OSError as e:
        raise StoreError("Failed to write export files") from e
    except ValueError as e:
        raise BadRequestError("Invalid discovery document", details=_errors(e)) from e

    return DiscoveryExportResponse(
        export_path=result["export_path"],
        files=ExportFiles(json_file=result["json"], yaml_file=result["yaml"]),
    )


@router.post(
    "/render",
    response_model=DiscoveryRenderResponse,
    summary="Render a discovery document",
    description="Returns the text rendering and the call summary without saving anything.",
)
async def render_document(data: DiscoveryRenderRequest) -> DiscoveryRenderResponse:
    try:
        document = normalize_document(data.data)
    except ValueError as e:
        raise BadRequestError("Invalid discovery document", details=_errors(e)) from e
    return DiscoveryRenderResponse(yaml=to_text(document), summary=format_summary(document))


def _errors(error: ValueError) -> list[dict] | None:
    """Field-level details from a pydantic validation error."""
    if hasattr(error, "errors"):
        return [
            {"loc": list(item.get("loc", ())), "msg": item.get("msg", ""), "type": item.get("type", "error")}
            for item in error.errors()
        ]
    return None
