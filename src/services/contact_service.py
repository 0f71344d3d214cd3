"""Contact business logic and duplicate detection."""

import logging
import re
from datetime import datetime, timezone
from typing import Any

from src.api.middleware.error_handler import ConflictError
from src.core.supabase import fetch_all, get_supabase_client, read_or_default
from src.schemas.contact import ContactCreate, ContactUpdate

logger = logging.getLogger(__name__)

MIN_PHONE_DIGITS = 10
DETAIL_ACTIVITY_LIMIT = 20
DUPLICATE_MESSAGE = "A contact with this email or phone already exists"

_NON_DIGITS = re.compile(r"\D")
# Characters with meaning inside a PostgREST or=() expression
_FILTER_SYNTAX = re.compile(r"[,()\"*]")


def normalize_email(email: str | None) -> str | None:
    """Lowercase and trim an email; blank becomes None."""
    if not email:
        return None
    return email.strip().lower() or None


def normalize_phone(phone: str | None) -> str:
    """Strip every non-digit character from a phone number."""
    return _NON_DIGITS.sub("", phone or "")


def matches_contact(contact: dict[str, Any], email: str | None = None, phone: str | None = None) -> bool:
    """Check a contact row against a candidate email or phone in memory.

    Uses the same rules as `ContactService.find_match`: email equality after
    normalization, or containment of a phone with at least 10 digits.
    """
    candidate_email = normalize_email(email)
    if candidate_email and normalize_email(contact.get("email")) == candidate_email:
        return True
    digits = normalize_phone(phone)
    if len(digits) >= MIN_PHONE_DIGITS:
        stored = contact.get("phone_digits") or normalize_phone(contact.get("phone"))
        return digits in stored
    return False


def match_filter(email: str | None = None, phone: str | None = None) -> str | None:
    """Build the PostgREST `or` expression used for duplicate lookups.

    Returns:
        str | None: The filter, or None when no condition applies.
    """
    conditions = []
    normalized_email = normalize_email(email)
    if normalized_email:
        conditions.append(f'email.eq."{normalized_email}"')
    digits = normalize_phone(phone)
    if len(digits) >= MIN_PHONE_DIGITS:
        conditions.append(f"phone_digits.like.*{digits}*")
    return ",".join(conditions) or None


def _normalized_columns(data: dict[str, Any]) -> dict[str, Any]:
    if "email" in data:
        data["email"] = normalize_email(data["email"])
    if "phone" in data:
        data["phone_digits"] = normalize_phone(data["phone"]) or None
    return data


class ContactService:
    """Service for managing contacts."""

    TABLE = "contacts"

    def __init__(self) -> None:
        """Initialize contact service with Supabase client."""
        self.client = get_supabase_client()

    async def find_match(
        self,
        email: str | None = None,
        phone: str | None = None,
        exclude_id: str | None = None,
    ) -> dict[str, Any] | None:
        """Find an existing contact by email or phone.

        Args:
            email: Candidate email.
            phone: Candidate phone; ignored with fewer than 10 digits.
            exclude_id: Contact id that never counts as a match.

        Returns:
            dict | None: The first matching contact, or None.
        """
        expression = match_filter(email, phone)
        if expression is None:
            return None

        query = self.client.table(self.TABLE).select("*").or_(expression)
        if exclude_id:
            query = query.neq("id", exclude_id)
        response = query.limit(1).execute()
        return response.data[0] if response.data else None

    async def is_duplicate(
        self,
        email: str | None = None,
        phone: str | None = None,
        exclude_id: str | None = None,
    ) -> bool:
        """Check whether another contact already uses this email or phone."""
        return await self.find_match(email, phone, exclude_id) is not None

    async def list_contacts(
        self,
        search: str | None = None,
        stage: str | None = None,
        include_archived: bool = False,
    ) -> list[dict[str, Any]]:
        """List contacts, newest first.

        Args:
            search: Case-insensitive match on name, email, phone or lead source.
            stage: Optional pipeline stage filter.
            include_archived: Include archived contacts.

        Returns:
            list[dict]: Matching contacts.
        """
        def _query() -> Any:
            query = self.client.table(self.TABLE).select("*")
            if stage:
                query = query.eq("stage", stage)
            if not include_archived:
                query = query.is_("archived_at", "null")
            term = _FILTER_SYNTAX.sub(" ", search or "").strip()
            if term:
                query = query.or_(
                    ",".join(
                        f"{column}.ilike.*{term}*"
                        for column in ("first_name", "last_name", "email", "phone", "how_heard")
                    )
                )
            return query.order("created_at", desc=True).order("id")

        async def _select() -> list[dict[str, Any]]:
            return fetch_all(_query)

        return await read_or_default(_select, [], context="Contacts")

    async def get_contact(self, contact_id: str) -> dict[str, Any] | None:
        """Get a contact with its recent activities and tasks.

        Args:
            contact_id: Contact id.

        Returns:
            dict | None: Contact with `activities` and `tasks`, or None if not found.
        """
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", contact_id)
            .maybe_single()
            .execute()
        )
        if not (response and response.data):
            return None
        contact = response.data

        activities = (
            self.client.table("activities")
            .select("*")
            .eq("contact_id", contact_id)
            .order("created_at", desc=True)
            .limit(DETAIL_ACTIVITY_LIMIT)
            .execute()
        )
        tasks = (
            self.client.table("tasks")
            .select("*")
            .eq("contact_id", contact_id)
            .order("created_at", desc=True)
            .execute()
        )
        return {**contact, "activities": activities.data or [], "tasks": tasks.data or []}

    async def create_contact(self, data: ContactCreate, note: str = "Created via form") -> dict[str, Any]:
        """Create a contact and log a NOTE activity for it.

        Args:
            data: Contact fields.
            note: Summary of the NOTE activity.

        Returns:
            dict: The created contact.

        Raises:
            ConflictError: If the email or phone is already in use.
        """
        if await self.is_duplicate(data.email, data.phone):
            raise ConflictError(DUPLICATE_MESSAGE)

        row = _normalized_columns(data.model_dump(mode="json"))
        response = self.client.table(self.TABLE).insert(row).execute()
        contact = response.data[0]

        self.client.table("activities").insert({
            "contact_id": contact["id"],
            "type": "NOTE",
            "summary": note,
        }).execute()

        logger.info("Created contact %s", contact["id"])
        return contact

    async def update_contact(self, contact_id: str, data: ContactUpdate) -> dict[str, Any] | None:
        """Update a contact, re-normalizing email and phone.

        Returns:
            dict | None: The updated contact or None if not found.

        Raises:
            ConflictError: If the new email or phone belongs to another contact.
        """
        update_data = data.model_dump(mode="json", exclude_unset=True)
        if not update_data:
            return await self._get_row(contact_id)

        if ("email" in update_data or "phone" in update_data) and await self.is_duplicate(
            update_data.get("email"), update_data.get("phone"), exclude_id=contact_id
        ):
            raise ConflictError(DUPLICATE_MESSAGE)

        response = (
            self.client.table(self.TABLE)
            .update(_normalized_columns(update_data))
            .eq("id", contact_id)
            .execute()
        )
        return response.data[0] if response.data else None

    async def delete_contact(self, contact_id: str) -> bool:
        response = self.client.table(self.TABLE).delete().eq("id", contact_id).execute()
        return bool(response.data)

    async def archive_contact(self, contact_id: str) -> dict[str, Any] | None:
        """Archive a contact so it leaves the active pipeline."""
        return await self._stamp(contact_id, {"archived_at": datetime.now(timezone.utc).isoformat()})

    async def mark_no_show(self, contact_id: str) -> dict[str, Any] | None:
        """Move a contact to NO_SHOW and record when it happened."""
        return await self._stamp(
            contact_id,
            {"stage": "NO_SHOW", "no_show_at": datetime.now(timezone.utc).isoformat()},
        )

    async def touch_last_contacted(self, contact_id: str, when: datetime | None = None) -> None:
        moment = when or datetime.now(timezone.utc)
        self.client.table(self.TABLE).update({"last_contacted": moment.isoformat()}).eq("id", contact_id).execute()

    async def _stamp(self, contact_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        response = self.client.table(self.TABLE).update(values).eq("id", contact_id).execute()
        return response.data[0] if response.data else None

    async def _get_row(self, contact_id: str) -> dict[str, Any] | None:
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", contact_id)
            .maybe_single()
            .execute()
        )
        return response.data if response and response.data else None
