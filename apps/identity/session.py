"""Per-request session state and the login/register/logout flows."""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.identity.provider import IdentityProvider, IdentityUser
from core.config import settings
from core.metrics import logins_total, registrations_total
from models.admin import Admin

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Request rejected before any store call."""


@dataclass(frozen=True)
class UserSession:
    """Identity of the caller plus its derived role."""

    uid: int
    email: str
    display_name: str
    is_admin: bool
    token: str

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data.pop("token")
        return data


async def is_admin(db: AsyncSession, uid: int) -> bool:
    """Check whether an AdminFlag exists for the user."""
    result = await db.execute(select(Admin.user_id).where(Admin.user_id == uid))
    return result.first() is not None


async def setup_first_user_as_admin(db: AsyncSession, uid: int) -> bool:
    """
    Make the user an admin if no admin exists yet.

    Returns:
        True if the user became the bootstrap admin
    """
    result = await db.execute(select(Admin.user_id).limit(1))
    if result.first():
        return False

    db.add(Admin(user_id=uid, is_first_user=True))
    try:
        await db.commit()
    except IntegrityError:
        # Another registration claimed the bootstrap slot first
        await db.rollback()
        logger.info(f"First-admin bootstrap lost race: uid={uid}")
        return False
    return True


async def grant_admin(db: AsyncSession, uid: int) -> bool:
    """Create an AdminFlag for the user. Returns False if one already exists."""
    if await is_admin(db, uid):
        return False
    db.add(Admin(user_id=uid, is_first_user=False))
    await db.commit()
    return True


class SessionContext:
    """Login, registration and logout on top of an identity provider."""

    def __init__(self, db: AsyncSession, provider: IdentityProvider) -> None:
        self.db = db
        self.provider = provider

    async def _session_for(self, user: IdentityUser, token: str) -> UserSession:
        return UserSession(
            uid=user.uid,
            email=user.email,
            display_name=user.display_name,
            is_admin=await is_admin(self.db, user.uid),
            token=token,
        )

    async def register(self, name: str, email: str, password: str) -> tuple[UserSession, bool]:
        """
        Create an account, set its display name and sign it in.

        The very first account to register becomes the bootstrap admin.

        Returns:
            The new session and whether the first-admin bootstrap fired

        Raises:
            InvalidInputError: On missing fields or a short password
            IdentityError: If the email is already registered
        """
        if not name.strip() or not email.strip() or not password.strip():
            raise InvalidInputError("All fields are required")
        if len(password) < settings.min_password_length:
            raise InvalidInputError(f"Password must be at least {settings.min_password_length} characters")

        user, token = await self.provider.sign_up(email, password)
        user = await self.provider.set_display_name(user.uid, name)

        first_admin = await setup_first_user_as_admin(self.db, user.uid)
        registrations_total.labels(role="admin" if first_admin else "user").inc()
        logger.info(f"Registered uid={user.uid} first_admin={first_admin}")

        return await self._session_for(user, token), first_admin

    async def login(self, email: str, password: str) -> UserSession:
        """
        Sign in with email and password.

        Raises:
            InvalidInputError: On missing fields
            IdentityError: On bad credentials or too many failed attempts
        """
        if not email.strip() or not password.strip():
            raise InvalidInputError("Email and password are required")

        try:
            user, token = await self.provider.sign_in(email, password)
        except Exception:
            logins_total.labels(outcome="failed").inc()
            raise
        logins_total.labels(outcome="ok").inc()
        return await self._session_for(user, token)

    async def logout(self, token: str) -> None:
        await self.provider.sign_out(token)

    async def resolve(self, token: str) -> UserSession | None:
        """Rebuild the session for a bearer token, re-deriving the admin flag."""
        user = await self.provider.resolve(token)
        if user is None:
            return None
        return await self._session_for(user, token)
