"""Discovery call wizard state.

A `DiscoveryWizard` holds one call's document in memory while the agent
moves through the steps, and writes it through the session store only when
`save()` is called. It is a single-writer object; nothing else mutates the
document between saves.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from src.services.discovery_document import (
    append_rapport,
    create_default,
    generate_session_id,
    normalize_document,
    now_iso,
    set_path,
)
from src.services.discovery_serializer import to_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WizardStep:
    id: str
    label: str
    required: bool


WIZARD_STEPS: tuple[WizardStep, ...] = (
    WizardStep("intro", "Introduction", True),
    WizardStep("purpose", "Purpose of Call", True),
    WizardStep("confirm-info", "Confirm Info", True),
    WizardStep("situation", "Situation", True),
    WizardStep("qualification", "Qualification", True),
    WizardStep("education", "Private vs Marketplace", False),
    WizardStep("discounts", "Discounts & Income", False),
    WizardStep("health", "Health & Medications", False),
    WizardStep("doctors", "Doctor Preferences", False),
    WizardStep("priorities", "Priorities", False),
    WizardStep("dental-vision", "Dental & Vision", False),
    WizardStep("life", "Life Insurance", False),
    WizardStep("budget", "Budget", False),
    WizardStep("closing", "Next Steps", True),
)

STEP_IDS: tuple[str, ...] = tuple(step.id for step in WIZARD_STEPS)


class SessionStore(Protocol):
    """Persistence capability the wizard needs."""

    async def save(
        self,
        session_id: str,
        document: dict[str, Any],
        yaml_text: str | None = None,
        call_duration: int | None = None,
    ) -> dict[str, Any]: ...


def _section(document: dict[str, Any], *keys: str) -> dict[str, Any]:
    node: Any = document
    for key in keys:
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


def _intro_ok(doc: dict[str, Any]) -> bool:
    source = _section(doc, "discovery").get("source")
    return bool(source) and source != "unknown"


def _purpose_ok(doc: dict[str, Any]) -> bool:
    return _section(doc, "discovery").get("understoodTwoCallFlow") is True


def _confirm_info_ok(doc: dict[str, Any]) -> bool:
    client = _section(doc, "client")
    return bool(client.get("zip") and client.get("state"))


def _situation_ok(doc: dict[str, Any]) -> bool:
    return bool(_section(doc, "discovery").get("situationSummary"))


def _qualification_ok(doc: dict[str, Any]) -> bool:
    status = _section(doc, "discovery", "status")
    return any(status.get(flag) for flag in ("losingCoverage", "payingTooMuch", "uninsured"))


def _closing_ok(doc: dict[str, Any]) -> bool:
    next_call = _section(doc, "nextCall")
    return bool(next_call.get("proposedSlots")) and bool(next_call.get("inviteEmail"))


# Steps without a rule always validate
STEP_RULES: dict[str, Callable[[dict[str, Any]], bool]] = {
    "intro": _intro_ok,
    "purpose": _purpose_ok,
    "confirm-info": _confirm_info_ok,
    "situation": _situation_ok,
    "qualification": _qualification_ok,
    "closing": _closing_ok,
}


class DiscoveryWizard:
    """In-memory state for one discovery call."""

    def __init__(
        self,
        store: SessionStore,
        session_id: str | None = None,
        document: dict[str, Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Start a wizard for a new or resumed session.

        Args:
            store: Session store used by `save()`.
            session_id: Existing session id; a new one is generated when omitted.
            document: Previously saved document to resume from.
            clock: Monotonic clock used for the call timer.
        """
        self._store = store
        self._clock = clock
        if document is not None:
            session_id = session_id or (document.get("meta") or {}).get("sessionId")
        self.session_id = session_id or generate_session_id()
        if document is not None:
            self.document = normalize_document(document, self.session_id)
        else:
            self.document = create_default(self.session_id)
        self.current_step = STEP_IDS[0]
        self.validation: dict[str, bool] = {}
        self.is_dirty = False
        self.last_saved_at: str | None = None
        self._started = clock()
        # Duration already recorded before this wizard resumed the call
        self._prior_seconds = int((self.document.get("meta") or {}).get("callDuration") or 0)

    @property
    def elapsed_seconds(self) -> int:
        return self._prior_seconds + int(self._clock() - self._started)

    def update(self, path: str, value: Any) -> None:
        set_path(self.document, path, value)
        self.is_dirty = True

    def set_sections(self, partial: dict[str, Any]) -> None:
        """Replace whole top-level sections; `meta` is never replaced."""
        for key, value in partial.items():
            if key == "meta":
                continue
            self.document[key] = value
        self.document.setdefault("meta", {})["updatedAt"] = now_iso()
        self.is_dirty = True

    def add_rapport(self, text: str) -> None:
        before = len(self.document.get("rapport") or [])
        append_rapport(self.document, text)
        if len(self.document["rapport"]) != before:
            self.is_dirty = True

    def go_to(self, step: str) -> None:
        if step not in STEP_IDS:
            raise ValueError(f"Unknown wizard step: {step}")
        self.current_step = step

    def next_step(self) -> str:
        index = STEP_IDS.index(self.current_step)
        self.current_step = STEP_IDS[min(index + 1, len(STEP_IDS) - 1)]
        return self.current_step

    def previous_step(self) -> str:
        index = STEP_IDS.index(self.current_step)
        self.current_step = STEP_IDS[max(index - 1, 0)]
        return self.current_step

    def validate_step(self, step: str) -> bool:
        """Check a step's required answers and record the result.

        Args:
            step: Step id.

        Returns:
            bool: True when the step's rule passes.

        Raises:
            ValueError: If the step id is unknown.
        """
        if step not in STEP_IDS:
            raise ValueError(f"Unknown wizard step: {step}")
        rule = STEP_RULES.get(step)
        valid = rule(self.document) if rule else True
        self.validation[step] = valid
        return valid

    def missing_required_steps(self) -> list[str]:
        return [step.id for step in WIZARD_STEPS if step.required and not self.validate_step(step.id)]

    def step_report(self) -> list[dict[str, Any]]:
        """Validate every step and return one entry per step in wizard order."""
        return [
            {"id": step.id, "label": step.label, "required": step.required, "valid": self.validate_step(step.id)}
            for step in WIZARD_STEPS
        ]

    async def save(self) -> bool:
        """Persist the document with a freshly rendered text payload.

        Returns:
            bool: True on success. On failure the wizard stays dirty so the
                next save retries with the same document.
        """
        duration = self.elapsed_seconds
        self.document.setdefault("meta", {})["callDuration"] = duration
        try:
            await self._store.save(
                self.session_id,
                self.document,
                yaml_text=to_text(self.document),
                call_duration=duration,
            )
        except Exception:
            logger.exception("[Discovery] Failed to save session %s", self.session_id)
            return False

        self.is_dirty = False
        self.last_saved_at = now_iso()
        return True
