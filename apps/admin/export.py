"""CSV export of recorded matches."""

import csv
import io
from collections.abc import Iterable
from datetime import date, datetime

from models.match import Match

EXPORT_HEADER = ["User", "Email", "Number", "Name", "Message", "Timestamp"]
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: datetime | None) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value else ""


def export_filename(today: date | None = None) -> str:
    today = today or datetime.utcnow().date()
    return f"matches-{today.isoformat()}.csv"


def matches_to_csv(matches: Iterable[Match]) -> str:
    """Render matches as CSV with every cell double-quoted and rows joined by newlines."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    for match in matches:
        writer.writerow(
            [
                match.user_name or "",
                match.user_email or "",
                match.number or "",
                match.name or "",
                match.message or "",
                format_timestamp(match.created_at),
            ]
        )
    # No terminator after the last row
    return buffer.getvalue().removesuffix("\n")
