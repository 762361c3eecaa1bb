"""Bearer token extraction for API requests."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

# HTTPBearer security for session-protected endpoints
_security = HTTPBearer(auto_error=False)


async def bearer_token(credentials: HTTPAuthorizationCredentials | None = Depends(_security)) -> str:
    """
    Extract the session token from the Authorization header.

    Args:
        credentials: Bearer credentials from request

    Returns:
        Raw session token

    Raises:
        HTTPException: If the header is missing or not a bearer token
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
