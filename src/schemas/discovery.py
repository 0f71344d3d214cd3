"""Discovery document and discovery session Pydantic schemas.

The document keeps the camelCase keys used by the wizard front end and by
previously exported files, so field names here are not snake_case.
"""

from datetime import date, datetime, timezone
from typing import Any, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_container(annotation: Any) -> bool:
    return get_origin(annotation) is list or (isinstance(annotation, type) and issubclass(annotation, BaseModel))


class _Section(BaseModel):
    """Base for document sections.

    Unknown keys are preserved. Any leaf may be null; a null nested section
    or list is replaced by its default so consumers can always descend.
    """

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _default_null_containers(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        containers = {name for name, field in cls.model_fields.items() if _is_container(field.annotation)}
        return {key: value for key, value in data.items() if value is not None or key not in containers}


class ContactInfoSchema(_Section):
    email: str | None = ""
    phone: str | None = ""


class HouseholdMemberSchema(_Section):
    firstName: str | None = ""
    lastName: str | None = ""
    dob: str | None = ""
    relationship: str | None = ""


class ClientSection(_Section):
    """Who the call is about."""

    firstName: str | None = ""
    lastName: str | None = ""
    dob: str | None = ""
    zip: str | None = ""
    state: str | None = ""
    county: str | None = ""
    household: list[HouseholdMemberSchema] = Field(default_factory=list)
    contact: ContactInfoSchema = Field(default_factory=ContactInfoSchema)


class DiscoveryStatusSchema(_Section):
    losingCoverage: bool | None = False
    payingTooMuch: bool | None = False
    uninsured: bool | None = False


class DiscoverySection(_Section):
    """How the lead found us and why they are shopping."""

    source: str | None = "unknown"
    sourceOther: str | None = ""
    situationSummary: str | None = ""
    status: DiscoveryStatusSchema = Field(default_factory=DiscoveryStatusSchema)
    understoodTwoCallFlow: bool | None = False


class CurrentCoverageSchema(_Section):
    carrier: str | None = ""
    channel: str | None = ""
    cobraOffered: bool | None = False
    cobraCost: float | None = None
    lastDay: str | None = ""
    deductible: float | None = None
    oopm: float | None = None
    copays: str | None = ""
    network: str | None = ""
    premium: float | None = None
    likes: str | None = ""
    dislikes: str | None = ""


class UninsuredCoverageSchema(_Section):
    lastInsuredDate: str | None = ""
    lastCarrier: str | None = ""
    lastPlanDetails: str | None = ""
    lastPremium: float | None = None


class CoverageSection(_Section):
    current: CurrentCoverageSchema = Field(default_factory=CurrentCoverageSchema)
    uninsured: UninsuredCoverageSchema = Field(default_factory=UninsuredCoverageSchema)


class IncomeSection(_Section):
    year: int | None = Field(default_factory=lambda: date.today().year)
    amount: float | None = None
    basis: str | None = ""


class MedicationSchema(_Section):
    name: str | None = ""
    dose: str | None = ""
    frequency: str | None = ""
    purpose: str | None = ""


class HealthSection(_Section):
    conditions: list[str] = Field(default_factory=list)
    medications: list[MedicationSchema] = Field(default_factory=list)


class DoctorSchema(_Section):
    firstName: str | None = ""
    lastName: str | None = ""
    specialty: str | None = ""
    city: str | None = ""
    state: str | None = ""
    clinic: str | None = ""
    notes: str | None = ""


class DentalVisionSection(_Section):
    dental: bool | None = False
    vision: bool | None = False


class LifeInsuranceSection(_Section):
    has: bool | None = False
    type: str | None = ""
    cashValue: float | None = None
    throughEmployer: bool | None = False


class BudgetSection(_Section):
    text: str | None = ""
    min: float | None = None
    max: float | None = None


class TimeSlotSchema(_Section):
    date: str | None = ""
    start: str | None = ""
    end: str | None = ""


class NextCallSection(_Section):
    proposedSlots: list[TimeSlotSchema] = Field(default_factory=list)
    spouseJoining: bool | None = False
    screenShareOk: bool | None = False
    inviteEmail: str | None = ""


class PrivateMpEducationSection(_Section):
    understood: bool | None = False


class RapportNoteSchema(_Section):
    text: str | None = ""
    ts: str | None = Field(default_factory=_now_iso)


class MetaSection(_Section):
    """Session bookkeeping. `sessionId` is the only required field in the document."""

    createdAt: str | None = Field(default_factory=_now_iso)
    updatedAt: str | None = Field(default_factory=_now_iso)
    agent: str | None = ""
    sessionId: str
    clientId: str | None = None
    callDuration: int | None = 0


class DiscoveryDocument(_Section):
    """The full discovery document stored as a session's JSON payload.

    Field order is the canonical section order used by the text renderer.
    """

    client: ClientSection = Field(default_factory=ClientSection)
    discovery: DiscoverySection = Field(default_factory=DiscoverySection)
    coverage: CoverageSection = Field(default_factory=CoverageSection)
    income: IncomeSection = Field(default_factory=IncomeSection)
    health: HealthSection = Field(default_factory=HealthSection)
    doctors: list[DoctorSchema] = Field(default_factory=list)
    priorities: list[str] = Field(default_factory=list)
    dentalVision: DentalVisionSection = Field(default_factory=DentalVisionSection)
    lifeInsurance: LifeInsuranceSection = Field(default_factory=LifeInsuranceSection)
    budget: BudgetSection = Field(default_factory=BudgetSection)
    nextCall: NextCallSection = Field(default_factory=NextCallSection)
    privateMpEducation: PrivateMpEducationSection = Field(default_factory=PrivateMpEducationSection)
    rapport: list[RapportNoteSchema] = Field(default_factory=list)
    meta: MetaSection


# Top-level section keys in canonical order
DOCUMENT_SECTIONS: tuple[str, ...] = tuple(DiscoveryDocument.model_fields)


class DiscoveryCreateRequest(BaseModel):
    """Schema for creating a session via POST /discovery/by-client/{client_id}."""

    model_config = ConfigDict(populate_by_name=True)

    client_name: str | None = Field(default=None, alias="clientName", description="Display name of the client")
    seed: dict[str, Any] | None = Field(default=None, description="Partial document merged over the defaults")


class DiscoveryCreateResponse(BaseModel):
    """Schema for the session creation response."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    session_id: str = Field(serialization_alias="sessionId")
    id: str
    client_id: str | None = Field(default=None, serialization_alias="clientId")
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")


class DiscoveryLookupResponse(BaseModel):
    """Schema for GET /discovery/by-client/{client_id}."""

    exists: bool
    session_id: str | None = Field(default=None, serialization_alias="sessionId")
    id: str | None = None
    client_id: str = Field(serialization_alias="clientId")
    client_name: str | None = Field(default=None, serialization_alias="clientName")
    updated_at: datetime | None = Field(default=None, serialization_alias="updatedAt")
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")


class DiscoverySessionSummary(BaseModel):
    """One entry of a client's session history."""

    id: str
    session_id: str = Field(serialization_alias="sessionId")
    client_name: str | None = Field(default=None, serialization_alias="clientName")
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")
    updated_at: datetime | None = Field(default=None, serialization_alias="updatedAt")


class DiscoverySessionResponse(BaseModel):
    """Full discovery session returned when resuming a call."""

    id: str
    session_id: str = Field(serialization_alias="sessionId")
    client_id: str | None = Field(default=None, serialization_alias="clientId")
    client_name: str | None = Field(default=None, serialization_alias="clientName")
    primary_dob: str | None = Field(default=None, serialization_alias="primaryDob")
    zip: str | None = None
    state: str | None = None
    county: str | None = None
    json_payload: dict[str, Any] = Field(serialization_alias="jsonPayload")
    yaml_payload: str = Field(default="", serialization_alias="yamlPayload")
    rapport: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")
    updated_at: datetime | None = Field(default=None, serialization_alias="updatedAt")


class DiscoverySaveRequest(BaseModel):
    """Schema for POST /discovery/save."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    data: dict[str, Any]
    yaml_payload: str | None = Field(default=None, alias="yamlPayload")
    call_duration: int | None = Field(default=None, alias="callDuration", ge=0)


class DiscoverySaveResponse(BaseModel):
    success: bool = True
    session_id: str = Field(serialization_alias="sessionId")
    id: str
    missing_required_steps: list[str] = Field(default_factory=list, serialization_alias="missingRequiredSteps")


class DiscoveryValidateRequest(BaseModel):
    """Schema for POST /discovery/validate."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str | None = Field(default=None, alias="sessionId")
    data: dict[str, Any]


class WizardStepStatus(BaseModel):
    id: str
    label: str
    required: bool
    valid: bool


class DiscoveryValidateResponse(BaseModel):
    """Per-step validation of a document against the call wizard's rules."""

    steps: list[WizardStepStatus]
    missing_required_steps: list[str] = Field(serialization_alias="missingRequiredSteps")
    complete: bool


class DiscoveryExportRequest(BaseModel):
    """Schema for POST /discovery/export."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    data: dict[str, Any]
    yaml_payload: str | None = Field(default=None, alias="yamlPayload")


class ExportFiles(BaseModel):
    json_file: str = Field(serialization_alias="json")
    yaml_file: str = Field(serialization_alias="yaml")


class DiscoveryExportResponse(BaseModel):
    success: bool = True
    export_path: str = Field(serialization_alias="exportPath")
    files: ExportFiles


class DiscoveryRenderRequest(BaseModel):
    data: dict[str, Any]


class DiscoveryRenderResponse(BaseModel):
    yaml: str
    summary: str
