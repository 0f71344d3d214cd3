"""CSV and JSON contact import."""

import csv
import io
import logging
import re
from typing import Any

from src.api.middleware.error_handler import ConflictError
from src.models.contact import STAGES
from src.schemas.contact import ContactCreate
from src.schemas.imports import ContactImportRow, ImportResult
from src.services.contact_service import ContactService, matches_contact, normalize_email, normalize_phone
from src.services.task_service import TaskService

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 10
IMPORT_NOTE = "Imported via CSV"
NEW_LEAD_TASK = "Call new lead"

DEFAULT_MAPPING: dict[str, str] = {
    "First Name": "first_name",
    "Last Name": "last_name",
    "Email": "email",
    "Phone": "phone",
    "How Heard": "how_heard",
}

# Extra header spellings seen in CRM exports
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "first_name": ("first", "given", "fname", "given name", "firstname"),
    "last_name": ("last", "surname", "lname", "family name", "lastname"),
    "email": ("e mail", "mail", "email address", "emailaddress"),
    "phone": ("mobile", "cell", "phone number", "tel", "telephone", "phonenumber"),
    "how_heard": ("source", "lead source", "channel", "utm source", "origin"),
    "stage": ("stage", "status", "pipeline stage", "lead stage", "pipeline"),
    "ghl_url": ("ghl url", "profile url", "profile", "url", "link"),
    "tags": ("tags", "tag", "labels", "label"),
}

STAGE_ALIASES: dict[str, str] = {
    "new": "NEW_LEAD",
    "new lead": "NEW_LEAD",
    "contacted": "CONTACTED",
    "working": "CONTACTED",
    "in progress": "CONTACTED",
    "quote": "QUOTE",
    "quoted": "QUOTE",
    "appointment": "APPOINTMENT",
    "appt set": "APPOINTMENT",
    "booked": "APPOINTMENT",
    "no show": "NO_SHOW",
    "noshow": "NO_SHOW",
    "sold": "SOLD",
    "won": "SOLD",
    "customer": "SOLD",
    "lost": "LOST",
}

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_HEADER_SEPARATORS = re.compile(r"[\s_-]+")
_HEADER_JUNK = re.compile(r"[^\w\s]")
_TAG_SEPARATORS = re.compile(r"[,;|]")


def normalize_header(header: str) -> str:
    """Lowercase a header and collapse separators to single spaces."""
    collapsed = _HEADER_SEPARATORS.sub(" ", header.strip().lower())
    return _HEADER_JUNK.sub("", collapsed).strip()


def resolve_headers(headers: list[str], mapping: dict[str, str] | None = None) -> dict[str, str | None]:
    """Map raw CSV headers to contact fields.

    Exact mapping entries win; otherwise headers are matched against the
    known aliases. Unrecognized headers map to None.
    """
    mapping = mapping or DEFAULT_MAPPING
    by_normalized = {normalize_header(k): v for k, v in mapping.items()}
    for field, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            by_normalized.setdefault(normalize_header(alias), field)
    return {header: by_normalized.get(normalize_header(header)) for header in headers}


def map_stage(value: str | None) -> str:
    if not value:
        return "NEW_LEAD"
    upper = value.strip().upper().replace(" ", "_")
    if upper in STAGES:
        return upper
    return STAGE_ALIASES.get(value.strip().lower(), "NEW_LEAD")


def split_tags(value: str | list[str] | None) -> list[str]:
    if not value:
        return []
    parts = value if isinstance(value, list) else _TAG_SEPARATORS.split(value)
    return list(dict.fromkeys(tag.strip() for tag in parts if tag and tag.strip()))


def parse_csv(text: str, mapping: dict[str, str] | None = None) -> list[ContactImportRow]:
    """Parse CSV text into import rows using a header mapping.

    Args:
        text: CSV content with a header row.
        mapping: Header to field mapping; `DEFAULT_MAPPING` when omitted.

    Returns:
        list[ContactImportRow]: One row per non-empty CSV line.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    header_map = resolve_headers(reader.fieldnames or [], mapping)

    rows = []
    for raw in reader:
        fields: dict[str, Any] = {}
        for header, value in raw.items():
            field = header_map.get(header) if header is not None else None
            if field and value and value.strip() and field not in fields:
                fields[field] = value.strip()
        if not fields:
            continue
        fields["tags"] = split_tags(fields.get("tags"))
        rows.append(ContactImportRow(**fields))
    return rows


class ImportService:
    """Service for bulk contact import."""

    def __init__(
        self,
        contact_service: ContactService | None = None,
        task_service: TaskService | None = None,
    ) -> None:
        """Initialize import service.

        Args:
            contact_service: Optional contact service.
            task_service: Optional task service for new-lead follow-ups.
        """
        self._contacts = contact_service or ContactService()
        self._tasks = task_service or TaskService()

    async def import_contacts(self, rows: list[ContactImportRow]) -> ImportResult:
        """Create contacts from import rows.

        Rows need a first and last name plus an email or phone. Rows matching
        an existing contact, or an earlier row of the same import, are
        skipped. Each new contact gets a NOTE activity and a SYSTEM task due
        tomorrow morning.

        Args:
            rows: Rows to import.

        Returns:
            ImportResult: Counts and the first 10 row errors.
        """
        result = ImportResult(total=len(rows))
        errors: list[str] = []
        seen: list[dict[str, Any]] = []

        for index, row in enumerate(rows, start=1):
            first_name = (row.first_name or "").strip()
            last_name = (row.last_name or "").strip()
            email = normalize_email(row.email)
            if email and not _EMAIL.match(email):
                email = None
            phone = (row.phone or "").strip() or None

            if not first_name or not last_name:
                errors.append(f"Row {index}: first and last name are required")
                continue
            if not email and not normalize_phone(phone):
                errors.append(f"Row {index}: email or phone is required")
                continue
            if any(matches_contact(prior, email, phone) for prior in seen):
                result.skipped += 1
                continue

            try:
                candidate = ContactCreate(
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    phone=phone,
                    how_heard=row.how_heard,
                    ghl_url=row.ghl_url,
                    tags=split_tags(row.tags),
                    stage=map_stage(row.stage),
                )
                contact = await self._contacts.create_contact(candidate, note=IMPORT_NOTE)
            except ConflictError:
                result.skipped += 1
                continue
            except Exception as e:
                logger.warning("[Import] Row %d failed: %s", index, e)
                errors.append(f"Row {index}: failed to import {email or phone}: {e}")
                continue

            seen.append({"email": email, "phone": phone})
            await self._tasks.create_follow_up(contact["id"], NEW_LEAD_TASK)
            result.imported += 1

        result.errors = errors[:MAX_REPORTED_ERRORS]
        logger.info(
            "Import finished: %d imported, %d skipped, %d errors",
            result.imported,
            result.skipped,
            len(errors),
        )
        return result
