#!/usr/bin/env python3
"""Markdown table rendering and lightweight CSV/JSON record parsing."""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

ABSOLUTE_MAX_ROWS = 100
NO_DATA_MESSAGE = "No data available for preview."

SOURCE_DATASTORE = "DataStore"
SOURCE_JSON = "JSON file"
SOURCE_CSV = "CSV file"


@dataclass
class TableSource:
    """Where the rows of a rendered table came from."""

    kind: str
    origin_url: Optional[str] = None
    total_count: Optional[int] = None


def clamp_rows(limit: Any, maximum: int = ABSOLUTE_MAX_ROWS) -> int:
    """Clip a requested row count to ``[1, min(maximum, 100)]``."""
    try:
        value = int(limit)
    except (TypeError, ValueError):
        value = 1
    return max(1, min(value, maximum, ABSOLUTE_MAX_ROWS))


def parse_csv_line(line: str) -> List[str]:
    """Split one CSV line on commas that are outside double quotes.

    A doubled quote inside a quoted field is a literal quote. Each field is
    trimmed of surrounding whitespace.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str, limit: int) -> Tuple[List[str], List[Dict[str, str]]]:
    """Parse CSV text into ``(fields, records)`` keeping at most ``limit`` records."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return [], []

    fields = parse_csv_line(lines[0].lstrip("\ufeff"))
    records = []
    for line in lines[1 : limit + 1]:
        values = parse_csv_line(line)
        records.append(
            {field: (values[i] if i < len(values) else "") for i, field in enumerate(fields)}
        )
    return fields, records


def parse_json_records(
    text: str, limit: int
) -> Tuple[List[str], List[Dict[str, Any]]]:
    """Parse a JSON document holding one record or an array of records."""
    data = json.loads(text)
    if isinstance(data, dict):
        items = [data]
    elif isinstance(data, list):
        items = data[:limit]
    else:
        items = [{"value": data}]

    records = [item if isinstance(item, dict) else {"value": item} for item in items]
    return collect_fields(records), records[:limit]


def collect_fields(records: Sequence[Dict[str, Any]]) -> List[str]:
    """Union of record keys in first-seen order."""
    fields: List[str] = []
    seen = set()
    for record in records:
        for key in record:
            if key not in seen:
                seen.add(key)
                fields.append(key)
    return fields


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = str(value)
    text = " ".join(text.splitlines())
    return text.replace("|", "\\|")


def render_table(
    fields: Sequence[str], records: Sequence[Dict[str, Any]], source: TableSource
) -> str:
    """Render records as a Markdown table preceded by source metadata."""
    if not records or not fields:
        return NO_DATA_MESSAGE

    lines = [f"Source: {source.kind}"]
    if source.origin_url:
        lines.append(f"Download URL: {source.origin_url}")
    if source.total_count is not None:
        lines.append(f"Total Records: {source.total_count}")
    lines.append(f"Showing {len(records)} rows")
    lines.append("")

    lines.append("| " + " | ".join(format_cell(f) for f in fields) + " |")
    lines.append("| " + " | ".join("---" for _ in fields) + " |")
    for record in records:
        lines.append(
            "| " + " | ".join(format_cell(record.get(f)) for f in fields) + " |"
        )

    return "\n".join(lines)
