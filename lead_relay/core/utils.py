import json
import re
from datetime import datetime, timezone
from typing import Any

PLACEHOLDER = "Not provided"

SHEET_HEADER = [
    "timestamp",
    "name",
    "email",
    "company",
    "website",
    "phone",
    "project_type",
    "budget",
    "notes",
    "raw_json",
]

# Record keys in sheet order, between the timestamp and raw_json columns.
ROW_FIELDS = ["name", "email", "company", "website", "phone", "interest", "budget", "otherInfo"]


def or_placeholder(value: Any) -> str:
    """
    Cell text for a lead field.

    Args:
        value: Raw field value

    Returns:
        str: The value as text, or PLACEHOLDER when it is missing or empty.
            Lists of plain values are comma-joined, other nested values become JSON.
    """
    if not value:
        return PLACEHOLDER
    if isinstance(value, list) and all(isinstance(item, (str, int, float)) for item in value):
        return ", ".join(str(item) for item in value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def iso_timestamp(moment: datetime | None = None) -> str:
    """
    UTC timestamp like 2024-05-01T12:30:00.123Z.

    Args:
        moment: Time to format (now if omitted)

    Returns:
        str: ISO-8601 string with milliseconds
    """
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_sheet_row(record: dict[str, Any], moment: datetime | None = None) -> list[str]:
    """
    Row for the Leads sheet in SHEET_HEADER order.

    Args:
        record: Lead fields as received from the client
        moment: Insertion time (now if omitted)

    Returns:
        list[str]: Ten cells ending with the full record as JSON
    """
    row = [iso_timestamp(moment)]
    row.extend(or_placeholder(record.get(field)) for field in ROW_FIELDS)
    row.append(json.dumps(record, ensure_ascii=False, separators=(",", ":")))
    return row


def normalize_header(cell: str) -> str:
    """'Project Type ' -> 'project_type'."""
    return re.sub(r"[\s\-]+", "_", cell.strip().lower())
