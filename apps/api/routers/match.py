"""Match endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from apps.api.deps import get_match_service, get_session
from apps.identity.session import UserSession
from apps.matching.service import (
    AlreadyMatchedError,
    InvalidMessageError,
    MatchNotFoundError,
    MatchService,
    MessageAlreadySentError,
    NoPairsAvailableError,
    PairNotFoundError,
    PairUnavailableError,
    serialize_match,
)
from core.security import generate_offer_token, verify_offer_token

router = APIRouter()


class RevealRequest(BaseModel):
    """Request to reveal an offered pair."""

    pair_id: int
    offer_token: str


class SendMessageRequest(BaseModel):
    """Message to the matched person."""

    text: str


@router.get("/me")
async def my_match(
    session: UserSession = Depends(get_session), service: MatchService = Depends(get_match_service)
) -> dict[str, Any]:
    """Current match state: unmatched, exhausted or matched."""
    match = await service.check_existing_match(session)
    if match:
        return {"state": "matched", "match": serialize_match(match)}

    available = await service.available_pairs()
    return {"state": "unmatched" if available else "exhausted", "match": None}


@router.get("/offer")
async def offer_pair(
    session: UserSession = Depends(get_session), service: MatchService = Depends(get_match_service)
) -> dict[str, Any]:
    """
    Offer a random unmatched pair.

    Only the number is disclosed; the name stays hidden until reveal.
    """
    try:
        pair = await service.fetch_random_available_pair(session)
    except AlreadyMatchedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.detail) from e
    except NoPairsAvailableError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail) from e

    return {
        "pair_id": pair.id,
        "number": pair.number,
        "offer_token": generate_offer_token(pair.id, session.uid),
    }


@router.post("/reveal")
async def reveal_pair(
    request: RevealRequest,
    session: UserSession = Depends(get_session),
    service: MatchService = Depends(get_match_service),
) -> dict[str, Any]:
    """Reveal the offered pair's name and record the match."""
    if not verify_offer_token(request.pair_id, session.uid, request.offer_token):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid_offer_token")

    try:
        result = await service.reveal(request.pair_id, session)
    except PairNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail) from e
    except PairUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.detail) from e

    return {"status": "created" if result.created else "existing", "match": serialize_match(result.match)}


@router.post("/message")
async def send_message(
    request: SendMessageRequest,
    session: UserSession = Depends(get_session),
    service: MatchService = Depends(get_match_service),
) -> dict[str, Any]:
    """Send the one allowed message to the matched person."""
    try:
        match = await service.send_message(session, request.text)
    except InvalidMessageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except MatchNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail) from e
    except MessageAlreadySentError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.detail) from e

    return {"status": "sent", "match": serialize_match(match)}
