"""Text and file rendering of discovery documents.

`to_text` produces an indented YAML-style rendering that lists every known
field, including empty ones, so an exported file doubles as a fill-in form
for follow-up calls. The rendering is display-only; it is never parsed back.
"""

import json
import re
from typing import Any, get_origin

from dateutil import parser as date_parser
from pydantic import BaseModel

from src.schemas.discovery import DOCUMENT_SECTIONS, DiscoveryDocument
from src.services.discovery_document import CHANNEL_OPTIONS, PRIORITY_OPTIONS, SOURCE_OPTIONS

INDENT = "  "
NULL_MARKER = "~"
EMPTY_STRING_MARKER = '""'
EMPTY_LIST_MARKER = "[]"
EMPTY_MAP_MARKER = "{}"

_PLAIN_SCALAR = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 _.,@/()'+:-]*$")
_RESERVED_WORDS = frozenset({"true", "false", "yes", "no", "on", "off", "null", "~"})
_NUMBER_LIKE = re.compile(r"^[-+]?(\d[\d_]*)?(\.\d+)?([eE][-+]?\d+)?$")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def _skeleton(model: type[BaseModel]) -> dict[str, Any]:
    """Empty instance of a schema: nested sections, empty lists, plain defaults.

    Factory-built scalar defaults (timestamps, the current year) become None,
    so the skeleton never depends on the clock.
    """
    out: dict[str, Any] = {}
    for name, field in model.model_fields.items():
        annotation = field.annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseModel):
            out[name] = _skeleton(annotation)
        elif get_origin(annotation) is list:
            out[name] = []
        elif field.default_factory is None and not field.is_required():
            out[name] = field.default
        else:
            out[name] = None
    return out


_DOCUMENT_SKELETON = _skeleton(DiscoveryDocument)


def _overlay(base: Any, value: Any) -> Any:
    # A null section or list renders as its empty form; null leaves stay null
    if value is None and isinstance(base, (dict, list)):
        return base
    if isinstance(base, dict) and isinstance(value, dict):
        merged = {key: _overlay(base[key], value[key]) if key in value else base[key] for key in base}
        for key in sorted(k for k in value if k not in base):
            merged[key] = value[key]
        return merged
    return value


def complete(document: dict[str, Any]) -> dict[str, Any]:
    """Overlay a document on the empty skeleton so every known field is present."""
    ordered = {key: document[key] for key in DOCUMENT_SECTIONS if key in document}
    ordered.update({key: document[key] for key in sorted(document) if key not in ordered})
    return _overlay(_DOCUMENT_SKELETON, ordered)


def _scalar(value: Any) -> str:
    if value is None:
        return NULL_MARKER
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    text = str(value)
    if text == "":
        return EMPTY_STRING_MARKER
    if (
        _PLAIN_SCALAR.match(text)
        and text == text.strip()
        and text.lower() not in _RESERVED_WORDS
        and not _NUMBER_LIKE.match(text)
        and ": " not in text
        and not text.endswith(":")
    ):
        return text
    return json.dumps(text, ensure_ascii=False)


def _render(key: str, value: Any, depth: int, lines: list[str]) -> None:
    pad = INDENT * depth
    if isinstance(value, dict):
        if not value:
            lines.append(f"{pad}{key}: {EMPTY_MAP_MARKER}")
            return
        lines.append(f"{pad}{key}:")
        for child_key, child in value.items():
            _render(str(child_key), child, depth + 1, lines)
    elif isinstance(value, list):
        if not value:
            lines.append(f"{pad}{key}: {EMPTY_LIST_MARKER}")
            return
        lines.append(f"{pad}{key}:")
        for item in value:
            _render_item(item, depth + 1, lines)
    else:
        lines.append(f"{pad}{key}: {_scalar(value)}")


def _render_item(item: Any, depth: int, lines: list[str]) -> None:
    pad = INDENT * depth
    if isinstance(item, dict) and item:
        nested: list[str] = []
        for child_key, child in item.items():
            _render(str(child_key), child, depth + 1, nested)
        # First key shares the line with the dash
        lines.append(f"{pad}- {nested[0].lstrip()}")
        lines.extend(nested[1:])
    elif isinstance(item, dict):
        lines.append(f"{pad}- {EMPTY_MAP_MARKER}")
    elif isinstance(item, list):
        lines.append(f"{pad}- {json.dumps(item, ensure_ascii=False, default=str)}")
    else:
        lines.append(f"{pad}- {_scalar(item)}")


def to_text(document: dict[str, Any]) -> str:
    """Render a discovery document as YAML-style text.

    Args:
        document: The discovery document.

    Returns:
        str: Newline-terminated text, byte-identical for equal input.
    """
    lines: list[str] = []
    for key, value in complete(document).items():
        _render(key, value, 0, lines)
    return "\n".join(lines) + "\n"


def to_json(document: dict[str, Any]) -> str:
    """Pretty-print a discovery document as JSON (2-space indent)."""
    return json.dumps(document, indent=2, ensure_ascii=False, default=str)


def _safe_part(value: Any) -> str:
    text = str(value or "").strip().replace(" ", "_")
    return _UNSAFE_FILENAME_CHARS.sub("", text).lower()


def _date_stamp(created_at: Any) -> str:
    if not created_at:
        return "undated"
    try:
        return date_parser.isoparse(str(created_at)).date().isoformat()
    except (ValueError, OverflowError):
        return "undated"


def filename_for(document: dict[str, Any], extension: str) -> str:
    """Derive a filesystem-safe export file name.

    Format: `<last name or unknown>[_<zip>][_<state>]_<YYYY-MM-DD>_discovery.<ext>`,
    where the date comes from `meta.createdAt`.

    Args:
        document: The discovery document.
        extension: File extension without the dot.

    Returns:
        str: The file name.
    """
    client = document.get("client") or {}
    meta = document.get("meta") or {}

    parts = [_safe_part(client.get("lastName")) or "unknown"]
    for key in ("zip", "state"):
        part = _safe_part(client.get(key))
        if part:
            parts.append(part)
    parts.append(_date_stamp(meta.get("createdAt")))
    parts.append("discovery")

    ext = _safe_part(extension) or "txt"
    return f"{'_'.join(parts)}.{ext}"


def _money(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, (int, float)):
        return f"${value:,}"
    return f"${value}"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _label(options: dict[str, str], value: Any) -> str:
    return options.get(value, _text(value)) if isinstance(value, str) else _text(value)


def _source(discovery: dict[str, Any]) -> str:
    label = _label(SOURCE_OPTIONS, discovery.get("source"))
    other = _text(discovery.get("sourceOther")).strip()
    if discovery.get("source") == "other" and other:
        return f"{label} ({other})"
    return label


def _yes_no(flag: Any) -> str:
    return "Yes" if flag else "No"


def _note_time(ts: str | None) -> str:
    if not ts:
        return ""
    try:
        return date_parser.isoparse(ts).strftime("%I:%M:%S %p")
    except (ValueError, OverflowError, TypeError):
        return str(ts)


def format_summary(document: dict[str, Any]) -> str:
    """Render a human-readable call summary for pasting into an external CRM.

    Optional sections are included only when they carry data. Null fields
    print as empty text; option codes print as their labels.

    Args:
        document: The discovery document.

    Returns:
        str: Multi-line summary.
    """
    doc = complete(document)
    client, discovery = doc["client"], doc["discovery"]
    t = _text
    lines = ["=== DISCOVERY CALL SUMMARY ===", ""]

    lines.append("CLIENT INFORMATION:")
    lines.append(f"Name: {t(client['firstName'])} {t(client['lastName'])}".rstrip())
    lines.append(f"DOB: {t(client['dob'])}")
    lines.append(f"Location: {t(client['zip'])} - {t(client['county'])}, {t(client['state'])}")
    if client["contact"].get("phone"):
        lines.append(f"Phone: {client['contact']['phone']}")
    if client["contact"].get("email"):
        lines.append(f"Email: {client['contact']['email']}")
    lines.append("")

    household = [member for member in client["household"] if isinstance(member, dict)]
    if household:
        lines.append("HOUSEHOLD MEMBERS:")
        for member in household:
            lines.append(
                f"- {t(member.get('firstName'))} {t(member.get('lastName'))} "
                f"({t(member.get('relationship'))}) - DOB: {t(member.get('dob'))}"
            )
        lines.append("")

    status = discovery["status"]
    lines.append("DISCOVERY:")
    lines.append(f"Source: {_source(discovery)}")
    lines.append(f"Situation: {t(discovery['situationSummary'])}")
    flags = [
        label
        for key, label in (
            ("losingCoverage", "Losing Coverage"),
            ("payingTooMuch", "Paying Too Much"),
            ("uninsured", "Currently Uninsured"),
        )
        if status.get(key)
    ]
    lines.append(f"Status: {', '.join(flags)}")
    lines.append("")

    if status.get("losingCoverage") or status.get("payingTooMuch"):
        cov = doc["coverage"]["current"]
        lines.append("CURRENT COVERAGE:")
        if cov["carrier"]:
            lines.append(f"Carrier: {cov['carrier']}")
        if cov["channel"]:
            lines.append(f"Channel: {_label(CHANNEL_OPTIONS, cov['channel'])}")
        if cov["premium"]:
            lines.append(f"Premium: {_money(cov['premium'])}/mo")
        if cov["deductible"]:
            lines.append(f"Deductible: {_money(cov['deductible'])}")
        if cov["oopm"]:
            lines.append(f"Out-of-Pocket Max: {_money(cov['oopm'])}")
        if cov["network"]:
            lines.append(f"Network: {cov['network']}")
        if cov["cobraOffered"]:
            cost = _money(cov["cobraCost"]) if cov["cobraCost"] else "Unknown"
            lines.append(f"COBRA Offered: Yes - Cost: {cost}")
        if cov["lastDay"]:
            lines.append(f"Last Day of Coverage: {cov['lastDay']}")
        if cov["likes"]:
            lines.append(f"Likes: {cov['likes']}")
        if cov["dislikes"]:
            lines.append(f"Dislikes: {cov['dislikes']}")
        lines.append("")

    uninsured = doc["coverage"]["uninsured"]
    if status.get("uninsured") and any(uninsured.values()):
        lines.append("UNINSURED DETAILS:")
        if uninsured["lastInsuredDate"]:
            lines.append(f"Last Insured: {uninsured['lastInsuredDate']}")
        if uninsured["lastCarrier"]:
            lines.append(f"Last Carrier: {uninsured['lastCarrier']}")
        if uninsured["lastPremium"]:
            lines.append(f"Last Premium: {_money(uninsured['lastPremium'])}")
        lines.append("")

    income = doc["income"]
    if income["amount"]:
        lines.append("INCOME:")
        year = f"{income['year']} " if income["year"] else ""
        lines.append(f"{year}Household Income: {_money(income['amount'])} ({t(income['basis'])})")
        lines.append("")

    health = doc["health"]
    if health["conditions"] or health["medications"]:
        lines.append("HEALTH INFORMATION:")
        if health["conditions"]:
            lines.append(f"Conditions: {', '.join(t(c) for c in health['conditions'])}")
        if health["medications"]:
            lines.append("Medications:")
            for med in health["medications"]:
                if not isinstance(med, dict):
                    continue
                lines.append(
                    f"- {t(med.get('name'))} {t(med.get('dose'))} - "
                    f"{t(med.get('frequency'))} ({t(med.get('purpose'))})"
                )
        lines.append("")

    doctors = [doctor for doctor in doc["doctors"] if isinstance(doctor, dict)]
    if doctors:
        lines.append("DOCTORS TO KEEP IN-NETWORK:")
        for doctor in doctors:
            lines.append(
                f"- Dr. {t(doctor.get('firstName'))} {t(doctor.get('lastName'))} "
                f"({t(doctor.get('specialty'))}) - {t(doctor.get('city'))}, {t(doctor.get('state'))}"
            )
            if doctor.get("clinic"):
                lines.append(f"  Clinic: {doctor['clinic']}")
        lines.append("")

    if doc["priorities"]:
        lines.append("PRIORITIES:")
        lines.append(", ".join(_label(PRIORITY_OPTIONS, p) for p in doc["priorities"]))
        lines.append("")

    life = doc["lifeInsurance"]
    lines.append("ADDITIONAL COVERAGE:")
    lines.append(f"Dental: {_yes_no(doc['dentalVision']['dental'])}")
    lines.append(f"Vision: {_yes_no(doc['dentalVision']['vision'])}")
    if life["has"]:
        lines.append(f"Life Insurance: Yes - {t(life['type'])}")
        if life["cashValue"]:
            lines.append(f"  Cash Value: {_money(life['cashValue'])}")
    else:
        lines.append("Life Insurance: No")
    lines.append("")

    budget = doc["budget"]
    if budget["text"] or budget["min"] or budget["max"]:
        lines.append("BUDGET:")
        if budget["text"]:
            lines.append(budget["text"])
        if budget["min"] and budget["max"]:
            lines.append(f"Range: {_money(budget['min'])} - {_money(budget['max'])}")
        lines.append("")

    next_call = doc["nextCall"]
    lines.append("NEXT CALL:")
    slots = [slot for slot in next_call["proposedSlots"] if isinstance(slot, dict)]
    if slots:
        lines.append("Proposed Times:")
        for slot in slots:
            lines.append(f"- {t(slot.get('date'))} from {t(slot.get('start'))} to {t(slot.get('end'))}")
    lines.append(f"Spouse Joining: {_yes_no(next_call['spouseJoining'])}")
    lines.append(f"Screen Share Ready: {_yes_no(next_call['screenShareOk'])}")
    if next_call["inviteEmail"]:
        lines.append(f"Invite Email: {next_call['inviteEmail']}")
    lines.append("")

    notes = [note for note in doc["rapport"] if isinstance(note, dict)]
    if notes:
        lines.append("RAPPORT NOTES:")
        for note in notes:
            lines.append(f"[{_note_time(note.get('ts'))}] {t(note.get('text'))}")
        lines.append("")

    lines.append("=== END OF SUMMARY ===")
    return "\n".join(lines)


def format_duration(seconds: int) -> str:
    """Format a call duration as `M:SS`, or `H:MM:SS` past an hour."""
    seconds = max(int(seconds), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
