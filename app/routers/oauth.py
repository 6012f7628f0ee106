"""Federated sign-in with Google."""

import logging
from urllib.parse import urlencode

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from app.config import get_settings
from app.core.exceptions import AuthError, BadRequestException
from app.dependencies import DbSession
from app.models.user import User
from app.services import profile_service
from app.services.oauth_service import oauth, is_provider_configured

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


def create_frontend_redirect(user: User | None, error: str | None = None) -> RedirectResponse:
    """Create redirect to frontend with tokens or error."""
    frontend_url = settings.frontend_url

    if error:
        return RedirectResponse(
            url=f"{frontend_url}/oauth/callback?{urlencode({'error': error})}",
            status_code=302
        )

    tokens = profile_service.issue_tokens(user)
    query = urlencode({
        "access_token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
    })
    return RedirectResponse(url=f"{frontend_url}/oauth/callback?{query}", status_code=302)


@router.get("/google/login")
async def google_login(request: Request):
    """Initiate Google OAuth login."""
    if not is_provider_configured('google'):
        raise BadRequestException("Google OAuth is not configured")

    redirect_uri = f"{settings.backend_url}{settings.api_v1_prefix}/oauth/google/callback"
    return await oauth.google.authorize_redirect(request, redirect_uri)


@router.get("/google/callback")
async def google_callback(request: Request, db: DbSession):
    """Handle Google OAuth callback; first-ever sign-in creates the profile document."""
    if not is_provider_configured('google'):
        raise BadRequestException("Google OAuth is not configured")

    try:
        token = await oauth.google.authorize_access_token(request)
    except OAuthError as e:
        logger.warning(f"Google OAuth failed: {e.error}")
        return create_frontend_redirect(None, error=f"OAuth error: {e.error}")

    # Google returns user info in the ID token
    user_info = token.get('userinfo')
    if not user_info or not user_info.get('sub'):
        return create_frontend_redirect(None, error="Failed to get user info from Google")

    try:
        user = await profile_service.sign_in_federated(
            db,
            provider='google',
            provider_user_id=user_info['sub'],
            email=user_info.get('email'),
            name=user_info.get('name') or user_info.get('given_name'),
        )
    except AuthError as e:
        return create_frontend_redirect(None, error=e.message)

    return create_frontend_redirect(user)
