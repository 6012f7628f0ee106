# Import all models so Alembic can detect them
from app.models.user import User
from app.models.profile import Profile
from app.models.oauth import OAuthAccount

__all__ = [
    "User",
    "Profile",
    "OAuthAccount",
]
