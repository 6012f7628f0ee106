"""HTTP exceptions for the API layer and domain errors for the studio services."""

from typing import Optional

from fastapi import HTTPException, status


# ============= HTTP exceptions =============

class BadRequestException(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedException(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


# ============= Domain errors =============

class StudioError(Exception):
    """Base class for every error raised by the studio services."""

    code = "studio_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ArtistValidationError(StudioError):
    """Empty or duplicate artist fields. Nothing was changed."""

    code = "validation_error"

    def __init__(self, message: str, field: str = "name"):
        super().__init__(message)
        self.field = field


class ArtistNotFoundError(StudioError):
    code = "artist_not_found"

    def __init__(self, artist_id: str):
        super().__init__(f"Artist {artist_id} not found")
        self.artist_id = artist_id


class ConfirmationRequiredError(StudioError):
    code = "confirmation_required"


class ImportFormatError(StudioError):
    """Import file rejected before any state was touched."""

    code = "import_error"


class GenerationError(StudioError):
    code = "generation_error"


class CredentialMissingError(GenerationError):
    code = "credential_missing"

    def __init__(self, message: str = "No Gemini API key configured. Add one in your profile."):
        super().__init__(message)


class CredentialRejectedError(GenerationError):
    code = "credential_rejected"

    def __init__(self, message: str = "The Gemini API key was rejected. Check it and try again."):
        super().__init__(message)


class GenerationServiceError(GenerationError):
    code = "service_error"


class GenerationParseError(GenerationError):
    code = "parse_error"


class PersistenceError(StudioError):
    """Backing store write/read failed. In-memory state is left as is."""

    code = "persistence_error"

    HINTS = {
        "unavailable": "The profile store could not be reached. Check your connection and try again.",
        "permission-denied": "The profile store refused the write. Sign out and back in, or check storage permissions.",
        "corrupt": "Stored data could not be read. Export what you have and re-import it.",
        "unknown": "Saving failed. Your changes are kept in this session; try again shortly.",
    }

    def __init__(self, message: str, error_code: str = "unknown"):
        super().__init__(message)
        self.error_code = error_code if error_code in self.HINTS else "unknown"

    @property
    def hint(self) -> str:
        return self.HINTS[self.error_code]


class AuthError(StudioError):
    code = "auth_error"

    def __init__(self, message: str, error_code: str = "invalid-credentials"):
        super().__init__(message)
        self.error_code = error_code


class SessionNotReadyError(StudioError):
    code = "session_not_ready"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Profile is still loading")
