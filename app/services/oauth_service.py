"""OAuth client registry for federated sign-in."""

from authlib.integrations.starlette_client import OAuth

from app.config import get_settings

settings = get_settings()

oauth = OAuth()

# Google OAuth - OpenID Connect
if settings.google_oauth_client_id and settings.google_oauth_client_secret:
    oauth.register(
        name='google',
        client_id=settings.google_oauth_client_id,
        client_secret=settings.google_oauth_client_secret,
        server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
        client_kwargs={
            'scope': 'openid email profile'
        }
    )


def is_provider_configured(provider: str) -> bool:
    """Check if a provider is properly configured."""
    if provider == 'google':
        return bool(settings.google_oauth_client_id and settings.google_oauth_client_secret)
    return False
