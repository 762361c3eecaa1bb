"""Bulk insert of number/name pairs from a two-column CSV payload."""

import csv
import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import pairs_skipped_total, pairs_uploaded_total
from models.pair import Pair

logger = logging.getLogger(__name__)


class EmptyPayloadError(ValueError):
    pass


@dataclass
class PairLine:
    line: int
    number: str
    name: str


@dataclass
class LineError:
    line: int
    reason: str


@dataclass
class UploadReport:
    created: int = 0
    errors: list[LineError] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, object]:
        return {
            "created": self.created,
            "skipped": self.skipped,
            "errors": [{"line": e.line, "reason": e.reason} for e in self.errors],
        }


def parse_pairs_payload(payload: str) -> tuple[list[PairLine], list[LineError]]:
    """
    Split a ``number,name`` payload into candidate pairs.

    Each physical line is parsed on its own, so an unbalanced quote cannot
    swallow the lines after it. Blank lines are ignored. Columns past the
    second are ignored. Quoted fields may contain commas.
    """
    lines: list[PairLine] = []
    errors: list[LineError] = []

    for lineno, raw in enumerate(payload.splitlines(), start=1):
        if not raw.strip():
            continue
        cells = [cell.strip() for cell in next(csv.reader([raw]))]
        if len(cells) < 2 or not cells[0] or not cells[1]:
            errors.append(LineError(line=lineno, reason="missing number or name"))
            continue
        lines.append(PairLine(line=lineno, number=cells[0], name=cells[1]))

    return lines, errors


async def upload_pairs(db: AsyncSession, payload: str) -> UploadReport:
    """
    Insert every valid line whose number is not already stored.

    Raises:
        EmptyPayloadError: If the payload has no content
    """
    if not payload or not payload.strip():
        raise EmptyPayloadError("Please provide CSV data to upload")

    lines, errors = parse_pairs_payload(payload)
    report = UploadReport(errors=errors)
    for _ in errors:
        pairs_skipped_total.labels(reason="malformed").inc()

    seen: set[str] = set()
    for item in lines:
        if item.number in seen:
            report.errors.append(LineError(line=item.line, reason=f"duplicate number {item.number}"))
            pairs_skipped_total.labels(reason="duplicate").inc()
            continue

        exists = await db.execute(select(Pair.id).where(Pair.number == item.number))
        if exists.first():
            report.errors.append(LineError(line=item.line, reason=f"duplicate number {item.number}"))
            pairs_skipped_total.labels(reason="duplicate").inc()
            continue

        db.add(Pair(number=item.number, name=item.name))
        try:
            await db.commit()
        except IntegrityError:
            # Concurrent upload inserted the same number
            await db.rollback()
            report.errors.append(LineError(line=item.line, reason=f"duplicate number {item.number}"))
            pairs_skipped_total.labels(reason="duplicate").inc()
            continue

        seen.add(item.number)
        report.created += 1
        pairs_uploaded_total.inc()

    logger.info(f"Pair upload finished: created={report.created}, skipped={report.skipped}")
    return report
