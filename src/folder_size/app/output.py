"""Rendering of size reports for the command line."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from folder_size.core.normalizer import report_to_record
from folder_size.types.models import SizeReport
from folder_size.utils.formatting import format_count, format_duration, format_size

TABLE_HEADERS: tuple[str, ...] = ("Path", "Strategy", "Size", "Bytes", "Dirs", "Files", "Elapsed")


def _json_default(value: object) -> object:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render_json(reports: Sequence[SizeReport]) -> str:
    """Render reports as a JSON array."""
    records = [report_to_record(report) for report in reports]
    return json.dumps(records, default=_json_default, indent=2)


def render_jsonl(reports: Sequence[SizeReport]) -> str:
    """Render reports as JSON lines, one record per line."""
    return "\n".join(json.dumps(report_to_record(report), default=_json_default) for report in reports)


def render_csv(reports: Sequence[SizeReport]) -> str:
    """Render reports as CSV.

    Columns are the union of the record keys in first-seen order, so
    reports with filter counters and reports without them share one header.
    """
    records = [report_to_record(report) for report in reports]
    fieldnames: list[str] = []
    for record in records:
        for key in record:
            if key not in fieldnames:
                fieldnames.append(key)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, restval="", lineterminator="\n")
    writer.writeheader()
    for record in records:
        writer.writerow(
            {
                key: value.isoformat() if isinstance(value, datetime) else ("" if value is None else value)
                for key, value in record.items()
            }
        )
    return buffer.getvalue().rstrip("\n")


def render_table(reports: Sequence[SizeReport]) -> str:
    """Render reports as an aligned plain-text table."""
    rows: list[tuple[str, ...]] = [
        (
            report.path,
            report.strategy.value,
            format_size(report.total_bytes),
            format_count(report.total_bytes),
            format_count(report.dir_count),
            format_count(report.file_count),
            format_duration(report.elapsed_seconds),
        )
        for report in reports
    ]

    widths = [len(header) for header in TABLE_HEADERS]
    for row in rows:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row, strict=True)]

    def format_row(cells: Sequence[str]) -> str:
        # Path left-aligned, everything else right-aligned
        parts = [cells[0].ljust(widths[0]), cells[1].ljust(widths[1])]
        parts.extend(cell.rjust(width) for cell, width in zip(cells[2:], widths[2:], strict=True))
        return "  ".join(parts).rstrip()

    lines = [format_row(TABLE_HEADERS), "  ".join("-" * width for width in widths)]
    lines.extend(format_row(row) for row in rows)
    return "\n".join(lines)


RENDERERS = {
    "table": render_table,
    "json": render_json,
    "jsonl": render_jsonl,
    "csv": render_csv,
}


def render(reports: Sequence[SizeReport], output_format: str) -> str:
    """Render reports in the requested format.

    Raises:
        ValueError: If the format is unknown
    """
    try:
        renderer = RENDERERS[output_format]
    except KeyError:
        raise ValueError(f"Unknown output format: {output_format}") from None
    return renderer(reports)
