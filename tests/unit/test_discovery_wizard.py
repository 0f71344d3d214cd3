"""Unit tests for the discovery call wizard."""

from unittest.mock import AsyncMock

import pytest

from src.services.discovery_wizard import STEP_IDS, STEP_RULES, DiscoveryWizard


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def store() -> AsyncMock:
    store = AsyncMock()
    store.save.return_value = {"id": "row-1"}
    return store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wizard(store: AsyncMock, clock: FakeClock) -> DiscoveryWizard:
    return DiscoveryWizard(store, session_id="s-1", clock=clock)


def _complete_required(wizard: DiscoveryWizard) -> None:
    wizard.update("discovery.source", "instagram")
    wizard.update("discovery.understoodTwoCallFlow", True)
    wizard.update("client.zip", "75001")
    wizard.update("client.state", "TX")
    wizard.update("discovery.situationSummary", "Losing employer plan")
    wizard.update("discovery.status.losingCoverage", True)
    wizard.update("nextCall.proposedSlots", [{"date": "2024-03-08", "start": "10:00", "end": "10:30"}])
    wizard.update("nextCall.inviteEmail", "ann@example.com")


class TestInitialState:
    """Tests for a new or resumed wizard."""

    def test_new_wizard(self, wizard: DiscoveryWizard) -> None:
        assert wizard.session_id == "s-1"
        assert wizard.document["meta"]["sessionId"] == "s-1"
        assert wizard.current_step == "intro"
        assert wizard.is_dirty is False
        assert wizard.last_saved_at is None

    def test_generates_session_id(self, store: AsyncMock) -> None:
        assert DiscoveryWizard(store).session_id.startswith("discovery_")

    def test_resume_takes_session_id_from_document(self, store: AsyncMock) -> None:
        wizard = DiscoveryWizard(store, document={"meta": {"sessionId": "s-9", "callDuration": 300}})

        assert wizard.session_id == "s-9"
        assert wizard.document["client"]["firstName"] == ""
        assert wizard.elapsed_seconds == 300


class TestEditing:
    """Tests for update, set_sections and add_rapport."""

    def test_update_marks_dirty(self, wizard: DiscoveryWizard) -> None:
        wizard.update("client.firstName", "Ann")

        assert wizard.document["client"]["firstName"] == "Ann"
        assert wizard.is_dirty is True

    def test_update_rejects_rapport(self, wizard: DiscoveryWizard) -> None:
        with pytest.raises(ValueError):
            wizard.update("rapport", [])

        assert wizard.is_dirty is False

    def test_set_sections_keeps_meta(self, wizard: DiscoveryWizard) -> None:
        wizard.set_sections({"priorities": ["hsa"], "meta": {"sessionId": "forged"}})

        assert wizard.document["priorities"] == ["hsa"]
        assert wizard.document["meta"]["sessionId"] == "s-1"
        assert wizard.is_dirty is True

    def test_blank_rapport_is_not_a_change(self, wizard: DiscoveryWizard) -> None:
        wizard.add_rapport("   ")

        assert wizard.document["rapport"] == []
        assert wizard.is_dirty is False

    def test_rapport_appends(self, wizard: DiscoveryWizard) -> None:
        wizard.add_rapport("Has a dog named Max")

        assert wizard.document["rapport"][0]["text"] == "Has a dog named Max"
        assert wizard.is_dirty is True


class TestNavigation:
    """Tests for step navigation."""

    def test_next_and_previous(self, wizard: DiscoveryWizard) -> None:
        assert wizard.next_step() == "purpose"
        assert wizard.next_step() == "confirm-info"
        assert wizard.previous_step() == "purpose"

    def test_bounds(self, wizard: DiscoveryWizard) -> None:
        assert wizard.previous_step() == "intro"

        wizard.go_to("closing")

        assert wizard.next_step() == "closing"

    def test_go_to_unknown_step(self, wizard: DiscoveryWizard) -> None:
        with pytest.raises(ValueError):
            wizard.go_to("nope")


class TestValidation:
    """Tests for validate_step and missing_required_steps."""

    def test_new_document_fails_required_steps(self, wizard: DiscoveryWizard) -> None:
        assert wizard.missing_required_steps() == list(STEP_RULES)

    def test_optional_steps_always_pass(self, wizard: DiscoveryWizard) -> None:
        optional = [step for step in STEP_IDS if step not in STEP_RULES]

        assert optional
        assert all(wizard.validate_step(step) for step in optional)

    def test_completed_document_passes(self, wizard: DiscoveryWizard) -> None:
        _complete_required(wizard)

        assert wizard.missing_required_steps() == []
        assert all(wizard.validation[step] for step in STEP_RULES)

    def test_unknown_source_fails_intro(self, wizard: DiscoveryWizard) -> None:
        wizard.update("discovery.source", "unknown")

        assert wizard.validate_step("intro") is False
        assert wizard.validation == {"intro": False}

    def test_closing_needs_slot_and_email(self, wizard: DiscoveryWizard) -> None:
        wizard.update("nextCall.inviteEmail", "ann@example.com")

        assert wizard.validate_step("closing") is False

    def test_validate_unknown_step(self, wizard: DiscoveryWizard) -> None:
        with pytest.raises(ValueError):
            wizard.validate_step("nope")

    def test_step_report_covers_every_step(self, wizard: DiscoveryWizard) -> None:
        wizard.update("client.zip", "75001")
        wizard.update("client.state", "TX")

        report = wizard.step_report()

        assert [entry["id"] for entry in report] == list(STEP_IDS)
        by_id = {entry["id"]: entry for entry in report}
        assert by_id["confirm-info"] == {"id": "confirm-info", "label": "Confirm Info", "required": True, "valid": True}
        assert by_id["intro"]["valid"] is False
        assert by_id["budget"] == {"id": "budget", "label": "Budget", "required": False, "valid": True}
        assert wizard.validation["confirm-info"] is True

    def test_null_sections_fail_without_error(self, store: AsyncMock) -> None:
        wizard = DiscoveryWizard(store, "s-1", document={"discovery": None, "nextCall": {"proposedSlots": None}})

        assert wizard.missing_required_steps() == list(STEP_RULES)


class TestSave:
    """Tests for save."""

    @pytest.mark.asyncio
    async def test_save_success(self, wizard: DiscoveryWizard, store: AsyncMock, clock: FakeClock) -> None:
        wizard.update("client.firstName", "Ann")
        clock.now += 95

        assert await wizard.save() is True

        store.save.assert_awaited_once()
        args, kwargs = store.save.call_args
        assert args[0] == "s-1"
        assert args[1]["client"]["firstName"] == "Ann"
        assert kwargs["call_duration"] == 95
        assert "firstName: Ann" in kwargs["yaml_text"]
        assert wizard.document["meta"]["callDuration"] == 95
        assert wizard.is_dirty is False
        assert wizard.last_saved_at is not None

    @pytest.mark.asyncio
    async def test_save_failure_keeps_dirty(self, wizard: DiscoveryWizard, store: AsyncMock) -> None:
        store.save.side_effect = RuntimeError("store unavailable")
        wizard.update("client.firstName", "Ann")

        assert await wizard.save() is False

        assert wizard.is_dirty is True
        assert wizard.last_saved_at is None

    @pytest.mark.asyncio
    async def test_resumed_duration_accumulates(self, store: AsyncMock, clock: FakeClock) -> None:
        wizard = DiscoveryWizard(store, document={"meta": {"sessionId": "s-2", "callDuration": 60}}, clock=clock)
        clock.now += 30

        await wizard.save()

        assert store.save.call_args.kwargs["call_duration"] == 90
