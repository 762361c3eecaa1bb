"""Login, registration and session endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from apps.api.deps import get_session, get_session_context
from apps.identity.provider import EMAIL_IN_USE, TOO_MANY_REQUESTS, IdentityError
from apps.identity.session import InvalidInputError, SessionContext, UserSession
from core.auth import bearer_token

router = APIRouter()
logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    EMAIL_IN_USE: status.HTTP_409_CONFLICT,
    TOO_MANY_REQUESTS: status.HTTP_429_TOO_MANY_REQUESTS,
}


class RegisterRequest(BaseModel):
    """Request to create an account."""

    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    """Request to sign in."""

    email: str
    password: str


def _auth_http_error(error: IdentityError) -> HTTPException:
    return HTTPException(
        status_code=_ERROR_STATUS.get(error.code, status.HTTP_401_UNAUTHORIZED),
        detail=str(error),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest, context: SessionContext = Depends(get_session_context)
) -> dict[str, Any]:
    """
    Register a new account and sign it in.

    The first account ever registered is made an admin.
    """
    try:
        session, first_admin = await context.register(request.name, request.email, request.password)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except IdentityError as e:
        logger.info(f"Registration refused: {e.code}")
        raise _auth_http_error(e) from e

    return {"token": session.token, "session": session.to_dict(), "first_admin": first_admin}


@router.post("/login")
async def login(request: LoginRequest, context: SessionContext = Depends(get_session_context)) -> dict[str, Any]:
    """Sign in with email and password."""
    try:
        session = await context.login(request.email, request.password)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except IdentityError as e:
        raise _auth_http_error(e) from e

    return {"token": session.token, "session": session.to_dict()}


@router.post("/logout")
async def logout(
    token: str = Depends(bearer_token), context: SessionContext = Depends(get_session_context)
) -> dict[str, str]:
    """Revoke the current bearer session."""
    await context.logout(token)
    return {"status": "logged_out"}


@router.get("/me")
async def me(session: UserSession = Depends(get_session)) -> dict[str, Any]:
    """Current session and role."""
    return session.to_dict()
