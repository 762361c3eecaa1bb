"""Match assignment workflow: offer a random free pair, reveal it, message the match."""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.identity.session import UserSession
from core.metrics import match_conflicts_total, matches_created_total, messages_sent_total, offers_total
from models.match import Match
from models.pair import Pair

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class MatchError(Exception):
    """Base class for workflow errors."""

    detail = "match_error"


class AlreadyMatchedError(MatchError):
    detail = "already_matched"

    def __init__(self, match: Match) -> None:
        self.match = match
        super().__init__(f"User already matched (match_id={match.id})")


class NoPairsAvailableError(MatchError):
    detail = "no_pairs_available"


class PairNotFoundError(MatchError):
    detail = "pair_not_found"


class PairUnavailableError(MatchError):
    detail = "pair_taken"


class MatchNotFoundError(MatchError):
    detail = "match_not_found"


class MessageAlreadySentError(MatchError):
    detail = "message_already_sent"


class InvalidMessageError(MatchError):
    detail = "invalid_message"


@dataclass
class RevealResult:
    match: Match
    created: bool


def serialize_match(match: Match) -> dict[str, Any]:
    """Public representation of a match record."""
    return {
        "id": match.id,
        "user": match.user_name,
        "user_email": match.user_email,
        "pair_id": match.pair_id,
        "number": match.number,
        "name": match.name,
        "message": match.message,
        "message_sent_at": match.message_sent_at.isoformat() if match.message_sent_at else None,
        "timestamp": match.created_at.isoformat() if match.created_at else None,
    }


class MatchService:
    """Assigns pairs to users. Uniqueness of user and pair is enforced by the matches table."""

    def __init__(self, db: AsyncSession, rng: random.Random | None = None) -> None:
        self.db = db
        self.rng = rng or random.Random()

    async def check_existing_match(self, user: UserSession) -> Match | None:
        """Return the caller's match, looked up by account id or email."""
        result = await self.db.execute(
            select(Match)
            .where(or_(Match.user_id == user.uid, Match.user_email == user.email))
            .order_by(Match.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def available_pairs(self) -> list[Pair]:
        """All pairs not referenced by any match."""
        matched_ids = select(Match.pair_id).where(Match.pair_id.is_not(None))
        result = await self.db.execute(select(Pair).where(Pair.id.not_in(matched_ids)).order_by(Pair.id))
        return list(result.scalars().all())

    async def fetch_random_available_pair(self, user: UserSession) -> Pair:
        """
        Pick a uniformly random unmatched pair for a user without a match.

        Raises:
            AlreadyMatchedError: If the user already has a match
            NoPairsAvailableError: If every pair has been matched
        """
        existing = await self.check_existing_match(user)
        if existing:
            offers_total.labels(outcome="already_matched").inc()
            raise AlreadyMatchedError(existing)

        candidates = await self.available_pairs()
        if not candidates:
            offers_total.labels(outcome="exhausted").inc()
            raise NoPairsAvailableError("All pairs have already been matched")

        offers_total.labels(outcome="offered").inc()
        return self.rng.choice(candidates)

    async def _pair_taken(self, pair_id: int) -> bool:
        result = await self.db.execute(select(Match.id).where(Match.pair_id == pair_id))
        return result.first() is not None

    async def reveal(self, pair_id: int, user: UserSession) -> RevealResult:
        """
        Record the assignment of a pair to the user.

        A user that is already matched gets the existing record back
        (``created=False``), including when a concurrent reveal for the same
        user commits first.

        Raises:
            PairNotFoundError: If the pair does not exist
            PairUnavailableError: If another user holds the pair
        """
        existing = await self.check_existing_match(user)
        if existing:
            return RevealResult(match=existing, created=False)

        pair = await self.db.get(Pair, pair_id)
        if pair is None:
            raise PairNotFoundError(f"Pair {pair_id} not found")

        if await self._pair_taken(pair_id):
            raise PairUnavailableError(f"Pair {pair_id} already matched")

        match = Match(
            user_id=user.uid,
            pair_id=pair.id,
            user_name=user.display_name,
            user_email=user.email,
            number=pair.number,
            name=pair.name,
        )
        self.db.add(match)

        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race on uq(user_id) or uq(pair_id)
            await self.db.rollback()
            existing = await self.check_existing_match(user)
            if existing:
                match_conflicts_total.labels(constraint="user").inc()
                logger.info(f"Concurrent reveal for uid={user.uid}, returning match {existing.id}")
                return RevealResult(match=existing, created=False)
            match_conflicts_total.labels(constraint="pair").inc()
            raise PairUnavailableError(f"Pair {pair_id} already matched") from e

        await self.db.refresh(match)
        matches_created_total.inc()
        logger.info(f"Match recorded: id={match.id}, uid={user.uid}, pair_id={pair_id}")
        return RevealResult(match=match, created=True)

    async def send_message(self, user: UserSession, text: str) -> Match:
        """
        Attach the user's one message to their match.

        Never creates a match. The update only applies while the message is
        still empty, so a second send cannot overwrite the first.

        Raises:
            InvalidMessageError: On empty or oversized text
            MatchNotFoundError: If the user has no match
            MessageAlreadySentError: If a message was already stored
        """
        text = (text or "").strip()
        if not text:
            raise InvalidMessageError("Message cannot be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise InvalidMessageError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")

        match = await self.check_existing_match(user)
        if match is None:
            raise MatchNotFoundError("No match recorded for user")

        result = await self.db.execute(
            update(Match)
            .where(Match.id == match.id, Match.message.is_(None))
            .values(message=text, message_sent_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise MessageAlreadySentError("Message already sent")

        await self.db.commit()
        await self.db.refresh(match)
        messages_sent_total.inc()
        return match
