"""Discovery document construction and mutation helpers.

A discovery document is a plain nested dict shaped like
`src.schemas.discovery.DiscoveryDocument`. All helpers here mutate the
given document in place and return it, so calls can be chained.
"""

import copy
import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any

from src.models.discovery_session import DiscoverySessionColumns
from src.schemas.discovery import DiscoveryDocument

logger = logging.getLogger(__name__)

SESSION_ID_PREFIX = "discovery"
SESSION_ID_SUFFIX_LENGTH = 9
_BASE36 = string.digits + string.ascii_lowercase

# Paths the generic setter refuses to touch
_PROTECTED_PATHS = frozenset({"rapport", "meta.sessionId"})

SOURCE_OPTIONS: dict[str, str] = {
    "publicsq": "PublicSQ",
    "instagram": "Instagram",
    "social": "Social Media",
    "dcdraino": "DC Draino",
    "truth": "Truth Social",
    "other": "Other",
    "unknown": "Don't Know",
}

CHANNEL_OPTIONS: dict[str, str] = {
    "employer": "Through Employer",
    "marketplace": "Marketplace/Exchange",
    "private": "Private/Direct",
}

PRIORITY_OPTIONS: dict[str, str] = {
    "catastrophic": "Catastrophic Coverage",
    "maternity": "Maternity",
    "preventive": "Preventive Care",
    "accident": "Accident Protection",
    "better": "Better Overall Coverage",
    "hsa": "HSA Compatible",
    "other": "Other",
}


def _child(document: dict[str, Any], key: str, factory: type) -> Any:
    """Return `document[key]`, replacing a missing or null value with `factory()`."""
    value = document.get(key)
    if not isinstance(value, factory):
        value = factory()
        document[key] = value
    return value


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def generate_session_id() -> str:
    """Generate an opaque discovery session identifier.

    Format is `discovery_<epoch millis>_<9 random base36 chars>`. Uniqueness
    is probabilistic; the store's unique constraint is the final arbiter.

    Returns:
        str: New session identifier.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(SESSION_ID_SUFFIX_LENGTH))
    return f"{SESSION_ID_PREFIX}_{millis}_{suffix}"


def create_default(
    session_id: str,
    client_id: str | None = None,
    seed: dict[str, Any] | None = None,
    agent: str = "",
) -> dict[str, Any]:
    """Build a complete default discovery document.

    A seed is merged shallowly: each top-level section present in the seed
    replaces the default section as a whole. Null seed sections are ignored,
    so the default stays in place.

    Args:
        session_id: Identifier stamped into `meta.sessionId`.
        client_id: Optional contact id stamped into `meta.clientId`.
        seed: Optional partial document.
        agent: Agent name stamped into `meta.agent`.

    Returns:
        dict: The new document.

    Raises:
        pydantic.ValidationError: If a seeded section has the wrong type.
    """
    document = DiscoveryDocument(
        meta={"sessionId": session_id, "clientId": client_id, "agent": agent},
    ).model_dump()

    if seed:
        for key, value in seed.items():
            if value is not None:
                document[key] = copy.deepcopy(value)
        # Identity always comes from the caller, never from the seed
        if not isinstance(document.get("meta"), dict):
            document["meta"] = {}
        document["meta"]["sessionId"] = session_id
        document["meta"]["clientId"] = client_id
        DiscoveryDocument.model_validate(document)

    return document


def normalize_document(data: dict[str, Any], session_id: str | None = None) -> dict[str, Any]:
    """Validate a document and fill in every missing field with its default.

    Args:
        data: Possibly partial document.
        session_id: Session id to use when `meta.sessionId` is absent.

    Returns:
        dict: A complete document.

    Raises:
        pydantic.ValidationError: If a field has an incompatible type.
    """
    data = copy.deepcopy(data)
    meta = data.get("meta")
    if not isinstance(meta, dict):
        meta = {}
        data["meta"] = meta
    if session_id and not meta.get("sessionId"):
        meta["sessionId"] = session_id
    return DiscoveryDocument.model_validate(data).model_dump()


def apply_client_name(document: dict[str, Any], full_name: str | None) -> dict[str, Any]:
    """Split a display name into first and last name.

    The first whitespace-separated token becomes `firstName`. With more than
    one token, the rest joined by single spaces becomes `lastName`; a single
    token leaves `lastName` untouched. Names with particles such as
    "Van Der Berg" are split naively.

    Args:
        document: Document to update.
        full_name: Display name.

    Returns:
        dict: The same document.
    """
    tokens = (full_name or "").split()
    if not tokens:
        return document

    client = _child(document, "client", dict)
    client["firstName"] = tokens[0]
    if len(tokens) > 1:
        client["lastName"] = " ".join(tokens[1:])
    return document


def append_rapport(document: dict[str, Any], text: str | None) -> dict[str, Any]:
    """Append a timestamped rapport note.

    Blank text is ignored. Notes are never edited or reordered.

    Args:
        document: Document to update.
        text: Note text.

    Returns:
        dict: The same document.
    """
    if not text or not text.strip():
        return document

    ts = now_iso()
    _child(document, "rapport", list).append({"text": text.strip(), "ts": ts})
    _child(document, "meta", dict)["updatedAt"] = ts
    return document


def set_path(document: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Set a value at a dotted path, creating intermediate objects.

    Args:
        document: Document to update.
        path: Dotted path such as `coverage.current.carrier`.
        value: New value.

    Returns:
        dict: The same document.

    Raises:
        ValueError: If the path is empty or protected.
    """
    if not path or any(not part for part in path.split(".")):
        raise ValueError(f"Invalid document path: {path!r}")
    if path in _PROTECTED_PATHS or path.startswith("rapport."):
        raise ValueError(f"Path {path!r} cannot be set directly")

    *parents, leaf = path.split(".")
    target = document
    for key in parents:
        child = target.get(key)
        if not isinstance(child, dict):
            child = {}
            target[key] = child
        target = child
    target[leaf] = value

    _child(document, "meta", dict)["updatedAt"] = now_iso()
    return document


def client_display_name(document: dict[str, Any]) -> str | None:
    """Join first and last name, or None when both are empty."""
    client = document.get("client") or {}
    parts = [client.get("firstName") or "", client.get("lastName") or ""]
    name = " ".join(part for part in parts if part)
    return name or None


def extract_columns(document: dict[str, Any]) -> DiscoverySessionColumns:
    """Extract the denormalized session columns from a document.

    Args:
        document: The discovery document.

    Returns:
        DiscoverySessionColumns: Values for the scalar query columns.
    """
    client = document.get("client") or {}
    meta = document.get("meta") or {}
    return DiscoverySessionColumns(
        client_id=meta.get("clientId") or None,
        client_name=client_display_name(document),
        primary_dob=client.get("dob") or None,
        zip=client.get("zip") or None,
        state=client.get("state") or None,
        county=client.get("county") or None,
        rapport=list(document.get("rapport") or []),
    )
