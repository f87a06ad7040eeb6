"""CSV importer - turns a spreadsheet export into ManualGrantInput rows.

Rows are validated one at a time; problems are collected as human-readable
issues and the offending row is skipped, so one bad line never sinks the file.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..models.grant import GrantSource, ManualGrantInput, Priority, Stage, TaskInput, TaskStatus

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["Grant Name", "Agency", "Deadline"]
COLUMN_MAPPING = {
    "title": "Grant Name",
    "agency": "Agency",
    "opportunity_number": "Opportunity Number",
    "close_date": "Deadline",
    "owner": "Owner Email",
    "notes": "Notes",
    "priority": "Priority",
    "stage": "Stage",
    "focus_areas": "Focus Areas",
}

MAX_ROWS = 1000
MAX_SHORT_FIELD_LENGTH = 200
MAX_LONG_FIELD_LENGTH = 2000
MIN_YEAR = 1970
MAX_YEAR = 2100

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TASK_HEADER = re.compile(r"^Task\s*(\d+)?\s*(Name|Due|Owner|Status)?$", re.IGNORECASE)

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%b %d, %Y", "%B %d, %Y", "%d %b %Y")


class CsvImportError(ValueError):
    """The file as a whole cannot be imported (empty, too large, missing columns)."""


@dataclass
class CsvParseResult:
    rows: list[ManualGrantInput] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)


def sanitize_cell(value: Optional[str], max_length: int = MAX_LONG_FIELD_LENGTH) -> str:
    """Replace control characters, collapse whitespace, trim and cap length."""
    if not value:
        return ""
    cleaned = _CONTROL_CHARS.sub(" ", value)
    return _WHITESPACE.sub(" ", cleaned).strip()[:max_length]


def _parse_date(value: str, row_number: int, column: str, issues: list[str]) -> Optional[date]:
    text = sanitize_cell(value, 64)
    if not text:
        return None
    parsed: Optional[date] = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt).date()
                break
            except ValueError:
                continue
    if parsed is None:
        issues.append(
            f'Row {row_number}: Invalid {column} date "{value}". Please use a recognizable date format.'
        )
        return None
    if parsed.year < MIN_YEAR or parsed.year > MAX_YEAR:
        issues.append(
            f'Row {row_number}: {column} date "{value}" must be between {MIN_YEAR} and {MAX_YEAR}.'
        )
        return None
    return parsed


def _parse_email(value: str, row_number: int, issues: list[str]) -> Optional[str]:
    text = sanitize_cell(value, 254)
    if not text:
        return None
    if not _EMAIL.match(text):
        issues.append(f'Row {row_number}: Owner email "{value}" is not a valid email address.')
        return None
    return text.lower()


def _match_enum(enum_cls, value: str, default=None):
    normalized = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == normalized:
            return member
    return default


def _build_tasks(
    headers: list[str], row: dict[str, str], row_number: int, issues: list[str]
) -> list[TaskInput]:
    buckets: dict[int, dict[str, object]] = {}
    for header in headers:
        match = _TASK_HEADER.match(header)
        if not match:
            continue
        index = int(match.group(1)) if match.group(1) else 1
        bucket = buckets.setdefault(index, {})
        value = (row.get(header) or "").strip()
        if not value:
            continue
        kind = (match.group(2) or "name").lower()
        if kind == "name":
            bucket["label"] = sanitize_cell(value, MAX_SHORT_FIELD_LENGTH)
        elif kind == "due":
            bucket["due"] = _parse_date(value, row_number, f"task {index} due", issues)
        elif kind == "owner":
            bucket["owner"] = value
        else:
            bucket["status"] = value

    tasks: list[TaskInput] = []
    for index in sorted(buckets):
        bucket = buckets[index]
        if not bucket.get("label"):
            continue
        due = bucket.get("due")
        owner = bucket.get("owner")
        tasks.append(TaskInput(
            label=bucket["label"],
            due_date=datetime.combine(due, datetime.min.time()) if due else None,
            assignee_email=_parse_email(owner, row_number, issues) if owner else None,
            status=_match_enum(TaskStatus, str(bucket.get("status") or ""), TaskStatus.PENDING),
        ))
    return tasks


def _normalize_row(
    headers: list[str], values: list[str], row_number: int, issues: list[str]
) -> Optional[ManualGrantInput]:
    row = {header: (values[i] if i < len(values) else "") for i, header in enumerate(headers)}

    if any(not (row.get(column) or "").strip() for column in REQUIRED_COLUMNS):
        return None

    title = sanitize_cell(row[COLUMN_MAPPING["title"]], MAX_SHORT_FIELD_LENGTH)
    agency = sanitize_cell(row[COLUMN_MAPPING["agency"]], MAX_SHORT_FIELD_LENGTH)
    if not title or not agency:
        issues.append(f"Row {row_number}: Missing required Grant Name or Agency after cleaning the data.")
        return None

    close_date = _parse_date(row[COLUMN_MAPPING["close_date"]], row_number, "deadline", issues)
    if close_date is None:
        return None

    opportunity_number = sanitize_cell(row.get(COLUMN_MAPPING["opportunity_number"]), MAX_SHORT_FIELD_LENGTH)
    focus_areas = [
        area for area in (
            sanitize_cell(item, MAX_SHORT_FIELD_LENGTH)
            for item in re.split(r"[,;]", row.get(COLUMN_MAPPING["focus_areas"]) or "")
        ) if area
    ]

    return ManualGrantInput(
        id=opportunity_number or title or f"row-{row_number}",
        title=title,
        agency=agency,
        opportunity_number=opportunity_number,
        close_date=close_date,
        owner=_parse_email(row.get(COLUMN_MAPPING["owner"]) or "", row_number, issues),
        notes=sanitize_cell(row.get(COLUMN_MAPPING["notes"])),
        priority=_match_enum(Priority, row.get(COLUMN_MAPPING["priority"]) or "", Priority.MEDIUM),
        stage=_match_enum(Stage, row.get(COLUMN_MAPPING["stage"]) or "", Stage.RESEARCHING),
        focus_areas=focus_areas,
        tasks=_build_tasks(headers, row, row_number, issues),
        source=GrantSource.IMPORTED,
    )


def parse_grant_csv(text: str) -> CsvParseResult:
    """Parse CSV text into importable grant inputs plus per-row issues.

    Row numbers in issues are 1-based spreadsheet lines (header is row 1).

    Raises:
        CsvImportError: If the file has no data, exceeds MAX_ROWS data rows,
            or is missing a required column.
    """
    records = [
        record for record in csv.reader(io.StringIO(text.lstrip("\ufeff")))
        if any(cell.strip() for cell in record)
    ]
    if not records:
        raise CsvImportError("We couldn't find any data in that CSV.")
    if len(records) - 1 > MAX_ROWS:
        raise CsvImportError(
            f"This file contains {len(records) - 1} data rows. "
            f"Please limit uploads to {MAX_ROWS} rows at a time."
        )

    headers = [header.strip() for header in records[0]]
    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise CsvImportError(f"Missing required columns: {', '.join(missing)}")

    result = CsvParseResult()
    for offset, values in enumerate(records[1:]):
        row_number = offset + 2
        issue_count = len(result.issues)
        parsed = _normalize_row(headers, values, row_number, result.issues)
        if parsed is None:
            if len(result.issues) == issue_count:
                result.issues.append(f"Row {row_number}: Missing required values.")
            continue
        result.rows.append(parsed)

    if not result.rows:
        result.issues.append("No valid rows found after validation.")
    logger.info("Parsed CSV: %d rows ready, %d issues", len(result.rows), len(result.issues))
    return result
