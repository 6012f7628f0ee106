import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from app.config import get_settings
from app.core.exceptions import (
    ArtistNotFoundError,
    ArtistValidationError,
    AuthError,
    ConfirmationRequiredError,
    CredentialMissingError,
    CredentialRejectedError,
    GenerationError,
    ImportFormatError,
    PersistenceError,
    SessionNotReadyError,
)
from app.database import create_tables
from app.routers import artists, auth, history, oauth, profile, songs
from app.services.cache_service import CacheService
from app.services.studio import studio_registry

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    """
    # Startup
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(f"Starting {settings.app_name} (storage: {settings.storage_backend})")
    if settings.is_sqlite:
        await create_tables()
    yield
    # Shutdown
    studio_registry.clear()
    await CacheService.close()
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    description="API for Suno Machine - an AI songwriting studio for your fictional artists",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS Middleware - configure for your frontend domain in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Authlib keeps the OAuth state in the session cookie
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret_key)


# ============= Error handlers =============

def _error(status_code: int, exc, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code, **extra},
    )


@app.exception_handler(ArtistValidationError)
async def artist_validation_handler(request: Request, exc: ArtistValidationError):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc, field=exc.field)


@app.exception_handler(ArtistNotFoundError)
async def artist_not_found_handler(request: Request, exc: ArtistNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(ConfirmationRequiredError)
async def confirmation_handler(request: Request, exc: ConfirmationRequiredError):
    return _error(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(ImportFormatError)
async def import_handler(request: Request, exc: ImportFormatError):
    logger.warning(f"Import rejected: {exc.message}")
    return _error(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(GenerationError)
async def generation_handler(request: Request, exc: GenerationError):
    if isinstance(exc, CredentialMissingError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, CredentialRejectedError):
        status_code = status.HTTP_401_UNAUTHORIZED
    else:
        # Service failures and unusable responses
        status_code = status.HTTP_502_BAD_GATEWAY
    return _error(status_code, exc)


@app.exception_handler(PersistenceError)
async def persistence_handler(request: Request, exc: PersistenceError):
    return _error(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        exc,
        error_code=exc.error_code,
        hint=exc.hint,
    )


@app.exception_handler(AuthError)
async def auth_handler(request: Request, exc: AuthError):
    if exc.error_code in ("display-name-taken", "email-in-use"):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_401_UNAUTHORIZED
    return _error(status_code, exc, error_code=exc.error_code)


@app.exception_handler(SessionNotReadyError)
async def session_handler(request: Request, exc: SessionNotReadyError):
    return _error(status.HTTP_409_CONFLICT, exc)


# ============= Routers =============

app.include_router(
    auth.router,
    prefix=f"{settings.api_v1_prefix}/auth",
    tags=["Authentication"]
)
app.include_router(
    oauth.router,
    prefix=f"{settings.api_v1_prefix}/oauth",
    tags=["OAuth"]
)
app.include_router(
    artists.router,
    prefix=f"{settings.api_v1_prefix}/artists",
    tags=["Artists"]
)
app.include_router(
    history.router,
    prefix=f"{settings.api_v1_prefix}/history",
    tags=["History"]
)
app.include_router(
    songs.router,
    prefix=f"{settings.api_v1_prefix}/songs",
    tags=["Songs"]
)
app.include_router(
    profile.router,
    prefix=f"{settings.api_v1_prefix}/profile",
    tags=["Profile"]
)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API info."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
