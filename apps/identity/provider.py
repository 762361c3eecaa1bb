"""Email/password identity provider backed by the users table."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

import redis.asyncio as redis
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.security import generate_token, hash_password, hash_token, verify_password
from models.user import AuthSession, User

logger = logging.getLogger(__name__)

EMAIL_IN_USE = "auth/email-already-in-use"
INVALID_CREDENTIAL = "auth/invalid-credential"
TOO_MANY_REQUESTS = "auth/too-many-requests"

AUTH_ERROR_MESSAGES = {
    EMAIL_IN_USE: "This email is already registered. Please use a different email or login.",
    INVALID_CREDENTIAL: "Invalid email or password",
    TOO_MANY_REQUESTS: "Too many failed login attempts. Please try again later.",
}


def describe_auth_error(code: str) -> str:
    """Map a provider error code to user-facing text."""
    return AUTH_ERROR_MESSAGES.get(code, "Authentication failed. Please try again.")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityError(Exception):
    """Authentication failure reported by the identity provider."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(describe_auth_error(code))


@dataclass(frozen=True)
class IdentityUser:
    """Authenticated account as seen by the rest of the application."""

    uid: int
    email: str
    display_name: str

    @classmethod
    def from_model(cls, user: User) -> "IdentityUser":
        return cls(uid=user.id, email=user.email, display_name=user.display_name)


class IdentityProvider(ABC):
    """Operations the application consumes from an identity provider."""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> tuple[IdentityUser, str]:
        """Create an account and return it together with a fresh session token."""

    @abstractmethod
    async def set_display_name(self, uid: int, display_name: str) -> IdentityUser:
        """Update the account's display name."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> tuple[IdentityUser, str]:
        """Authenticate and return the account with a fresh session token."""

    @abstractmethod
    async def sign_out(self, token: str) -> None:
        """Revoke a session token."""

    @abstractmethod
    async def resolve(self, token: str) -> IdentityUser | None:
        """Return the account behind a live session token, if any."""


class DatabaseIdentityProvider(IdentityProvider):
    """
    Identity provider storing accounts and sessions in the application database.

    Failed logins are counted per email in Redis; once the count reaches
    ``login_max_failures`` further attempts are refused until the key expires.
    """

    def __init__(self, db: AsyncSession, redis_client: redis.Redis) -> None:
        self.db = db
        self.redis = redis_client

    async def sign_up(self, email: str, password: str) -> tuple[IdentityUser, str]:
        email = normalize_email(email)

        result = await self.db.execute(select(User.id).where(User.email == email))
        if result.first():
            raise IdentityError(EMAIL_IN_USE)

        user = User(email=email, display_name=email.split("@")[0], password_hash=hash_password(password))
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent sign-up with the same email won the unique index
            await self.db.rollback()
            raise IdentityError(EMAIL_IN_USE) from None
        await self.db.refresh(user)

        logger.info(f"Account created: uid={user.id}")
        token = await self._issue_session(user.id)
        return IdentityUser.from_model(user), token

    async def set_display_name(self, uid: int, display_name: str) -> IdentityUser:
        user = await self.db.get(User, uid)
        if user is None:
            raise IdentityError(INVALID_CREDENTIAL)
        user.display_name = display_name.strip()
        await self.db.commit()
        return IdentityUser.from_model(user)

    async def sign_in(self, email: str, password: str) -> tuple[IdentityUser, str]:
        email = normalize_email(email)
        throttle_key = f"rl:login:{email}"

        failures = await self.redis.get(throttle_key)
        if failures is not None and int(failures) >= settings.login_max_failures:
            raise IdentityError(TOO_MANY_REQUESTS)

        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            count = await self.redis.incr(throttle_key)
            if count == 1:
                await self.redis.expire(throttle_key, settings.login_lockout_seconds)
            logger.warning(f"Failed login for {email} ({count} recent failures)")
            raise IdentityError(INVALID_CREDENTIAL)

        await self.redis.delete(throttle_key)
        token = await self._issue_session(user.id)
        return IdentityUser.from_model(user), token

    async def sign_out(self, token: str) -> None:
        await self.db.execute(
            update(AuthSession)
            .where(AuthSession.token_hash == hash_token(token), AuthSession.revoked_at.is_(None))
            .values(revoked_at=datetime.utcnow())
        )
        await self.db.commit()

    async def resolve(self, token: str) -> IdentityUser | None:
        result = await self.db.execute(
            select(User)
            .join(AuthSession, AuthSession.user_id == User.id)
            .where(
                AuthSession.token_hash == hash_token(token),
                AuthSession.revoked_at.is_(None),
                AuthSession.expires_at > datetime.utcnow(),
            )
        )
        user = result.scalar_one_or_none()
        return IdentityUser.from_model(user) if user else None

    async def _issue_session(self, uid: int) -> str:
        token = generate_token()
        self.db.add(
            AuthSession(
                token_hash=hash_token(token),
                user_id=uid,
                expires_at=datetime.utcnow() + timedelta(hours=settings.session_ttl_hours),
            )
        )
        await self.db.commit()
        return token
