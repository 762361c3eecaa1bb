"""Admin endpoints: pair management, match listing and export."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.admin.export import export_filename, matches_to_csv
from apps.admin.upload import EmptyPayloadError, upload_pairs
from apps.api.deps import get_db, require_admin
from apps.identity.session import UserSession
from apps.matching.service import serialize_match
from core.metrics import exports_total
from models.match import Match
from models.pair import Pair

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


class PairUpdate(BaseModel):
    """Inline edit of a pair."""

    number: str
    name: str


class UploadRequest(BaseModel):
    """Two-column CSV text, one ``number,name`` per line."""

    data: str


@router.get("/pairs")
async def list_pairs(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """List all pairs with their matched flag."""
    matched_ids = set(
        (await db.execute(select(Match.pair_id).where(Match.pair_id.is_not(None)))).scalars().all()
    )
    pairs = (await db.execute(select(Pair).order_by(Pair.id))).scalars().all()
    return [
        {"id": pair.id, "number": pair.number, "name": pair.name, "matched": pair.id in matched_ids}
        for pair in pairs
    ]


@router.patch("/pairs/{pair_id}")
async def update_pair(
    pair_id: int,
    body: PairUpdate,
    db: AsyncSession = Depends(get_db),
    admin: UserSession = Depends(require_admin),
) -> dict[str, Any]:
    """Edit a pair's number and name. Existing matches keep their copy."""
    number, name = body.number.strip(), body.name.strip()
    if not number or not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Number and name are required")

    pair = await db.get(Pair, pair_id)
    if pair is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pair not found")

    clash = await db.execute(select(Pair.id).where(Pair.number == number, Pair.id != pair_id))
    if clash.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Number {number} already exists")

    pair.number = number
    pair.name = name
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Number {number} already exists") from e

    logger.info(f"Pair {pair_id} edited by uid={admin.uid}")
    return {"id": pair.id, "number": pair.number, "name": pair.name}


@router.delete("/pairs/{pair_id}")
async def delete_pair(
    pair_id: int,
    db: AsyncSession = Depends(get_db),
    admin: UserSession = Depends(require_admin),
) -> dict[str, str]:
    """Delete a pair. Matches that referenced it keep their number and name."""
    pair = await db.get(Pair, pair_id)
    if pair is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pair not found")

    # Detach explicitly; SQLite does not enforce ON DELETE SET NULL by default
    await db.execute(
        update(Match).where(Match.pair_id == pair_id).values(pair_id=None).execution_options(synchronize_session=False)
    )
    await db.delete(pair)
    await db.commit()

    logger.info(f"Pair {pair_id} deleted by uid={admin.uid}")
    return {"status": "deleted"}


@router.post("/pairs/upload")
async def upload(body: UploadRequest, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Bulk insert pairs, skipping malformed lines and duplicate numbers."""
    try:
        report = await upload_pairs(db, body.data)
    except EmptyPayloadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return report.to_dict()


@router.get("/matches")
async def list_matches(db: AsyncSession = Depends(get_db)) -> list[dict[str, Any]]:
    """All recorded matches, oldest first."""
    result = await db.execute(select(Match).order_by(Match.created_at, Match.id))
    return [serialize_match(match) for match in result.scalars().all()]


@router.get("/matches/export")
async def export_matches(db: AsyncSession = Depends(get_db)) -> Response:
    """Download all matches as CSV."""
    result = await db.execute(select(Match).order_by(Match.created_at, Match.id))
    content = matches_to_csv(result.scalars().all())
    exports_total.inc()
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
