from typing import Annotated

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User
from app.core.security import decode_token
from app.core.exceptions import UnauthorizedException
from app.services.profile_service import is_token_revoked
from app.services.studio import Studio, studio_registry

# OAuth2 scheme for extracting bearer tokens
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_token_payload(
    token: Annotated[str, Depends(oauth2_scheme)],
) -> dict:
    """Decode the bearer access token, rejecting refresh tokens and signed-out ones."""
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        raise UnauthorizedException()
    if payload.get("user_id") is None:
        raise UnauthorizedException()
    if await is_token_revoked(payload):
        raise UnauthorizedException("Session has been signed out")
    return payload


async def get_current_user(
    payload: Annotated[dict, Depends(get_token_payload)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Dependency that extracts and validates the current user from JWT token.

    Usage:
        @app.get("/protected")
        async def protected_route(current_user: User = Depends(get_current_user)):
            ...
    """
    user = await db.get(User, int(payload["user_id"]))

    if user is None:
        raise UnauthorizedException("User not found")

    if not user.is_active:
        raise UnauthorizedException("User account is inactive")

    return user


async def get_studio(
    current_user: Annotated[User, Depends(get_current_user)],
) -> Studio:
    """
    Dependency that returns the signed-in user's studio, loading the
    profile document on the first request of the session.

    Usage:
        @app.get("/artists")
        async def list_artists(studio: CurrentStudio):
            ...
    """
    return await studio_registry.get_or_start(
        current_user.id,
        display_name=current_user.display_name,
        email=current_user.email,
    )


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
TokenPayload = Annotated[dict, Depends(get_token_payload)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentStudio = Annotated[Studio, Depends(get_studio)]
