"""Unit tests for discovery document rendering."""

import pytest

from src.schemas.discovery import DOCUMENT_SECTIONS
from src.services.discovery_document import create_default
from src.services.discovery_serializer import (
    complete,
    filename_for,
    format_duration,
    format_summary,
    to_json,
    to_text,
)


@pytest.fixture
def document() -> dict:
    """A populated discovery document with fixed timestamps."""
    doc = create_default(
        "discovery_1700000000000_abcdefghi",
        client_id="c-1",
        seed={
            "client": {
                "firstName": "Ann",
                "lastName": "Van Der Berg",
                "dob": "1980-01-01",
                "zip": "75001",
                "state": "TX",
                "county": "Dallas",
                "household": [{"firstName": "Bob", "lastName": "Van Der Berg", "relationship": "spouse"}],
                "contact": {"email": "ann@example.com", "phone": "5551234567"},
            },
            "priorities": ["hsa", "maternity"],
        },
    )
    doc["meta"]["createdAt"] = "2024-03-05T14:30:00+00:00"
    doc["meta"]["updatedAt"] = "2024-03-05T14:45:00+00:00"
    return doc


class TestToText:
    """Tests for to_text."""

    def test_is_deterministic(self, document: dict) -> None:
        assert to_text(document) == to_text(dict(document))

    def test_lists_every_section(self, document: dict) -> None:
        text = to_text(document)
        top_level = [line.split(":")[0] for line in text.splitlines() if not line.startswith(" ")]

        assert top_level == list(DOCUMENT_SECTIONS)

    def test_sparse_document_renders_empty_fields(self) -> None:
        """Test that missing fields render as empty placeholders."""
        text = to_text({"meta": {"sessionId": "s-1"}})

        assert "  firstName: \"\"" in text
        assert "  medications: []" in text
        assert "  sessionId: s-1" in text
        assert "  cobraCost: ~" in text

    def test_renders_list_of_objects(self, document: dict) -> None:
        text = to_text(document)

        assert "    - firstName: Bob" in text
        assert "      relationship: spouse" in text
        assert "  - hsa" in text

    def test_quotes_ambiguous_scalars(self) -> None:
        text = to_text({"meta": {"sessionId": "s-1"}, "client": {"zip": "01234", "state": "no"}})

        assert '  zip: "01234"' in text
        assert '  state: "no"' in text

    def test_ends_with_newline(self, document: dict) -> None:
        assert to_text(document).endswith("\n")

    def test_null_leaves_and_sections(self) -> None:
        text = to_text({"meta": {"sessionId": "s-1"}, "client": {"dob": None, "household": None}, "health": None})

        assert "  dob: ~" in text
        assert "  household: []" in text
        assert "  conditions: []" in text


class TestComplete:
    """Tests for complete."""

    def test_keeps_unknown_keys_after_known_sections(self) -> None:
        result = complete({"zzz": 1, "meta": {"sessionId": "s-1"}})

        assert list(result)[: len(DOCUMENT_SECTIONS)] == list(DOCUMENT_SECTIONS)
        assert list(result)[-1] == "zzz"

    def test_skeleton_has_no_clock_values(self) -> None:
        result = complete({})

        assert result["meta"]["createdAt"] is None
        assert result["income"]["year"] is None


class TestToJson:
    def test_two_space_indent(self, document: dict) -> None:
        text = to_json(document)

        assert text.startswith('{\n  "client": {')


class TestFilenameFor:
    """Tests for filename_for."""

    def test_full_name(self, document: dict) -> None:
        assert filename_for(document, "json") == "van_der_berg_75001_tx_2024-03-05_discovery.json"

    def test_missing_client_fields(self) -> None:
        document = {"meta": {"createdAt": "2024-03-05T14:30:00+00:00"}}

        assert filename_for(document, "yaml") == "unknown_2024-03-05_discovery.yaml"

    def test_strips_unsafe_characters(self) -> None:
        document = {"client": {"lastName": "O'Brien/../x"}, "meta": {}}

        assert filename_for(document, "txt") == "obrienx_undated_discovery.txt"


class TestFormatSummary:
    """Tests for format_summary."""

    def test_includes_client_and_sections(self, document: dict) -> None:
        summary = format_summary(document)

        assert summary.startswith("=== DISCOVERY CALL SUMMARY ===")
        assert "Name: Ann Van Der Berg" in summary
        assert "Location: 75001 - Dallas, TX" in summary
        assert "HOUSEHOLD MEMBERS:" in summary
        assert "PRIORITIES:\nHSA Compatible, Maternity" in summary
        assert "Source: Don't Know" in summary
        assert summary.endswith("=== END OF SUMMARY ===")

    def test_omits_empty_optional_sections(self) -> None:
        summary = format_summary({"meta": {"sessionId": "s-1"}})

        assert "HOUSEHOLD MEMBERS:" not in summary
        assert "CURRENT COVERAGE:" not in summary
        assert "RAPPORT NOTES:" not in summary
        assert "Life Insurance: No" in summary

    def test_current_coverage_money(self) -> None:
        document = {
            "meta": {"sessionId": "s-1"},
            "discovery": {"status": {"payingTooMuch": True}},
            "coverage": {"current": {"carrier": "Acme", "premium": 1250.0}},
        }

        summary = format_summary(document)

        assert "Status: Paying Too Much" in summary
        assert "Carrier: Acme" in summary
        assert "Premium: $1,250/mo" in summary

    def test_option_codes_print_as_labels(self) -> None:
        document = {
            "meta": {"sessionId": "s-1"},
            "discovery": {"source": "other", "sourceOther": "Radio ad", "status": {"losingCoverage": True}},
            "coverage": {"current": {"channel": "marketplace"}},
            "priorities": ["preventive", "custom"],
        }

        summary = format_summary(document)

        assert "Source: Other (Radio ad)" in summary
        assert "Channel: Marketplace/Exchange" in summary
        assert "PRIORITIES:\nPreventive Care, custom" in summary

    def test_null_fields_print_empty(self) -> None:
        document = {
            "meta": {"sessionId": "s-1"},
            "client": {"firstName": "Ann", "lastName": None, "dob": None, "household": [None, {"firstName": "Bob"}]},
            "discovery": None,
            "doctors": None,
            "rapport": [{"text": None, "ts": None}],
        }

        summary = format_summary(document)

        assert "None" not in summary
        assert "Name: Ann\n" in summary
        assert "DOB: \n" in summary
        assert "- Bob  () - DOB: " in summary
        assert "DOCTORS TO KEEP IN-NETWORK:" not in summary
        assert "Source: Don't Know" in summary


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0, "0:00"), (59, "0:59"), (61, "1:01"), (3600, "1:00:00"), (3725, "1:02:05"), (-5, "0:00")],
    )
    def test_format(self, seconds: int, expected: str) -> None:
        assert format_duration(seconds) == expected
