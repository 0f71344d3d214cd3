"""Contact import Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class ContactImportRow(BaseModel):
    """One contact to import. Accepts snake_case or camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    email: str | None = None
    phone: str | None = None
    how_heard: str | None = Field(default=None, alias="howHeard")
    ghl_url: str | None = Field(default=None, alias="ghlUrl")
    stage: str | None = None
    tags: list[str] = Field(default_factory=list)


class ContactImportRequest(BaseModel):
    rows: list[ContactImportRow] = Field(..., min_length=1)


class ImportResult(BaseModel):
    """Outcome of a contact import."""

    total: int = 0
    imported: int = 0
    skipped: int = Field(default=0, description="Rows matching an existing contact")
    errors: list[str] = Field(default_factory=list, description="First 10 row errors")
