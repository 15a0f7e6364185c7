import json
from datetime import datetime, timezone

import pytest

from lead_relay.core.utils import (
    PLACEHOLDER,
    build_sheet_row,
    iso_timestamp,
    normalize_header,
    or_placeholder,
)

MOMENT = datetime(2024, 5, 1, 12, 30, 0, 123000, tzinfo=timezone.utc)

FULL_RECORD = {
    "name": "John Doe",
    "email": "john@example.com",
    "phone": "+1 555 0100",
    "interest": "AI Websites",
    "budget": "5000",
    "customerType": "b2b",
    "usecase": "Landing page",
    "otherInfo": "Needs it by June",
    "company": "Acme",
    "website": "https://acme.test",
}


class TestOrPlaceholder:
    """Tests for placeholder substitution."""

    @pytest.mark.parametrize("value", [None, "", 0, False])
    def test_empty_values(self, value: object) -> None:
        """Missing or empty values become the placeholder."""
        assert or_placeholder(value) == PLACEHOLDER

    def test_text_kept(self) -> None:
        assert or_placeholder("Acme") == "Acme"

    def test_number_as_text(self) -> None:
        assert or_placeholder(5000) == "5000"

    def test_list_joined(self) -> None:
        assert or_placeholder(["AI Websites", "Chatbots"]) == "AI Websites, Chatbots"

    def test_nested_as_json(self) -> None:
        assert or_placeholder({"min": 1000, "max": 5000}) == '{"min":1000,"max":5000}'
        assert or_placeholder([{"a": 1}]) == '[{"a":1}]'

    def test_empty_containers(self) -> None:
        assert or_placeholder([]) == PLACEHOLDER
        assert or_placeholder({}) == PLACEHOLDER


class TestIsoTimestamp:
    """Tests for the timestamp column."""

    def test_format(self) -> None:
        assert iso_timestamp(MOMENT) == "2024-05-01T12:30:00.123Z"

    def test_converts_to_utc(self) -> None:
        """Aware times in other zones are shifted to UTC."""
        moment = datetime.fromisoformat("2024-05-01T14:30:00.123+02:00")
        assert iso_timestamp(moment) == "2024-05-01T12:30:00.123Z"

    def test_now(self) -> None:
        assert iso_timestamp().endswith("Z")


class TestBuildSheetRow:
    """Tests for the Leads row layout."""

    def test_full_record(self) -> None:
        """All fields present: exact ten-column mapping."""
        row = build_sheet_row(FULL_RECORD, MOMENT)

        assert row[:9] == [
            "2024-05-01T12:30:00.123Z",
            "John Doe",
            "john@example.com",
            "Acme",
            "https://acme.test",
            "+1 555 0100",
            "AI Websites",
            "5000",
            "Needs it by June",
        ]
        assert len(row) == 10
        assert json.loads(row[9]) == FULL_RECORD

    @pytest.mark.parametrize(
        ("field", "column"),
        [
            ("name", 1),
            ("email", 2),
            ("company", 3),
            ("website", 4),
            ("phone", 5),
            ("interest", 6),
            ("budget", 7),
            ("otherInfo", 8),
        ],
    )
    @pytest.mark.parametrize("missing", ["absent", "empty", "null"])
    def test_single_missing_field(self, field: str, column: int, missing: str) -> None:
        """Only the column of the missing field gets the placeholder."""
        record = dict(FULL_RECORD)
        if missing == "absent":
            del record[field]
        else:
            record[field] = "" if missing == "empty" else None

        row = build_sheet_row(record, MOMENT)
        expected = build_sheet_row(FULL_RECORD, MOMENT)

        for index in range(1, 9):
            if index == column:
                assert row[index] == PLACEHOLDER
            else:
                assert row[index] == expected[index]

    def test_email_only(self) -> None:
        row = build_sheet_row({"email": "a@b.c"}, MOMENT)
        assert row[2] == "a@b.c"
        assert row.count(PLACEHOLDER) == 7
        assert row[9] == '{"email":"a@b.c"}'

    def test_raw_json_keeps_value_types(self) -> None:
        record = {"email": "a@b.c", "budget": True, "interest": ["Chatbots"], "usecase": {"team": 5}, "phone": 0}
        raw = json.loads(build_sheet_row(record, MOMENT)[9])

        assert raw == record
        assert raw["budget"] is True
        assert isinstance(raw["phone"], int)

    def test_raw_json_keeps_extra_fields_and_unicode(self) -> None:
        record = {"email": "a@b.c", "name": "Zoë", "source": "widget"}
        row = build_sheet_row(record, MOMENT)
        assert "Zoë" in row[9]
        assert json.loads(row[9]) == record


class TestNormalizeHeader:
    """Tests for header normalization."""

    def test_normalize(self) -> None:
        assert normalize_header(" Project Type ") == "project_type"
        assert normalize_header("raw-json") == "raw_json"
        assert normalize_header("Timestamp") == "timestamp"
