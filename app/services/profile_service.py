"""Account and profile-document lifecycle: sign-up, sign-in, federated sign-in, sign-out."""

import logging
import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.exceptions import AuthError
from app.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from app.models.oauth import OAuthAccount
from app.models.profile import Profile
from app.models.user import User
from app.schemas.auth import TokenResponse
from app.services.cache_service import CacheService
from app.services.persistence import empty_document
from app.services.studio import studio_registry

settings = get_settings()
logger = logging.getLogger(__name__)


async def find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    )
    return result.scalar_one_or_none()


async def find_user_by_display_name(db: AsyncSession, display_name: str) -> Optional[User]:
    """Display names are unique case-insensitively, so this is a single lookup."""
    result = await db.execute(
        select(User).where(func.lower(User.display_name) == display_name.strip().lower())
    )
    return result.scalar_one_or_none()


async def ensure_profile(db: AsyncSession, user: User) -> Profile:
    """Create the empty profile document on a user's first-ever sign-in."""
    profile = await db.get(Profile, user.id)
    if profile is None:
        document = empty_document(user.display_name, user.email)
        profile = Profile(user_id=user.id, **document)
        db.add(profile)
        await db.flush()
        logger.info(f"Created profile document for user {user.id}")
    return profile


def issue_tokens(user: User, session_id: Optional[str] = None) -> TokenResponse:
    """A fresh token pair; a new sign-in session unless one is given."""
    session_id = session_id or uuid.uuid4().hex
    return TokenResponse(
        access_token=create_access_token(subject=user.email, user_id=user.id, session_id=session_id),
        refresh_token=create_refresh_token(subject=user.email, user_id=user.id, session_id=session_id),
    )


async def sign_up(db: AsyncSession, email: str, password: str, display_name: str) -> User:
    """
    Create an account and its empty profile document.

    Raises:
        AuthError: display-name-taken or email-in-use
    """
    if await find_user_by_display_name(db, display_name):
        raise AuthError("Display name already taken", "display-name-taken")
    if await find_user_by_email(db, email):
        raise AuthError("Email already registered", "email-in-use")

    user = User(
        display_name=display_name.strip(),
        email=email.strip().lower(),
        password_hash=hash_password(password),
    )
    db.add(user)
    await db.flush()
    await ensure_profile(db, user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"Registered user {user.id}")
    return user


async def sign_in(db: AsyncSession, identifier: str, password: str) -> User:
    """
    Authenticate by email, or by display name resolved to its email.

    Raises:
        AuthError: invalid-credentials or inactive
    """
    identifier = identifier.strip()
    if "@" in identifier:
        user = await find_user_by_email(db, identifier)
    else:
        by_name = await find_user_by_display_name(db, identifier)
        user = await find_user_by_email(db, by_name.email) if by_name else None

    if not user or not verify_password(password, user.password_hash):
        raise AuthError("Incorrect email, display name or password", "invalid-credentials")
    if not user.is_active:
        raise AuthError("User account is inactive", "inactive")

    user.last_login = datetime.now(timezone.utc)
    await ensure_profile(db, user)
    await db.commit()
    return user


async def _unique_display_name(db: AsyncSession, base_name: str) -> str:
    """Derive a free display name from a federated profile name."""
    clean_name = re.sub(r"[^a-zA-Z0-9_ .-]", "", base_name).strip()[:40]
    if len(clean_name) < 3:
        clean_name = f"user_{clean_name}"

    if not await find_user_by_display_name(db, clean_name):
        return clean_name
    for _ in range(10):
        candidate = f"{clean_name}_{secrets.token_hex(3)}"
        if not await find_user_by_display_name(db, candidate):
            return candidate
    return f"user_{secrets.token_hex(8)}"


async def sign_in_federated(
    db: AsyncSession,
    provider: str,
    provider_user_id: str,
    email: Optional[str],
    name: Optional[str],
) -> User:
    """Sign in with an identity provider, linking or creating the account as needed."""
    result = await db.execute(
        select(OAuthAccount).where(
            OAuthAccount.provider == provider,
            OAuthAccount.provider_user_id == provider_user_id,
        )
    )
    oauth_account = result.scalar_one_or_none()

    if oauth_account:
        user = await db.get(User, oauth_account.user_id)
    else:
        user = await find_user_by_email(db, email) if email else None
        if user is None:
            user = User(
                display_name=await _unique_display_name(db, name or (email or "user").split("@")[0]),
                email=email.lower() if email else f"{provider}_{provider_user_id}@oauth.local",
                password_hash=None,
            )
            db.add(user)
            await db.flush()
            logger.info(f"Created user {user.id} from {provider} sign-in")
        db.add(OAuthAccount(
            user_id=user.id,
            provider=provider,
            provider_user_id=provider_user_id,
            provider_email=email,
        ))

    if not user.is_active:
        raise AuthError("User account is inactive", "inactive")

    user.last_login = datetime.now(timezone.utc)
    await ensure_profile(db, user)
    await db.commit()
    await db.refresh(user)
    return user


async def is_token_revoked(payload: dict) -> bool:
    """A token is dead once it was denylisted itself or its sign-in session ended."""
    jti = payload.get("jti")
    if jti and await CacheService.is_token_revoked(jti):
        return True
    sid = payload.get("sid")
    return bool(sid) and await CacheService.is_session_revoked(sid)


async def _revoke(payload: dict) -> None:
    if payload.get("jti") and payload.get("exp"):
        await CacheService.revoke_token(payload["jti"], payload["exp"])


async def refresh_session(db: AsyncSession, refresh_token: str) -> TokenResponse:
    """
    Exchange a refresh token for a new token pair.

    The presented refresh token is revoked, so each one works once.

    Raises:
        AuthError: invalid-token or inactive
    """
    payload = verify_refresh_token(refresh_token)
    if payload is None or payload.get("user_id") is None or await is_token_revoked(payload):
        raise AuthError("Invalid or expired refresh token", "invalid-token")

    user = await db.get(User, int(payload["user_id"]))
    if user is None:
        raise AuthError("User not found", "invalid-token")
    if not user.is_active:
        raise AuthError("User account is inactive", "inactive")

    await _revoke(payload)
    return issue_tokens(user, session_id=payload.get("sid"))


async def sign_out(payload: dict) -> None:
    """
    End the sign-in session: the access token and every refresh token of the
    same sign-in stop working, and the in-memory studio is dropped.
    """
    await _revoke(payload)
    if payload.get("sid"):
        ttl = settings.refresh_token_expire_days * 24 * 60 * 60
        await CacheService.revoke_session(payload["sid"], ttl)
    user_id = payload.get("user_id")
    if user_id is not None:
        studio_registry.end(int(user_id))
        logger.info(f"User {user_id} signed out")
