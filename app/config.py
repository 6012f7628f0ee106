from functools import lru_cache
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Suno Machine API"
    debug: bool = False
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database (profile documents)
    database_url: str = "sqlite+aiosqlite:///./suno_machine.db"

    # JWT Authentication
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7

    # Redis (sign-out token denylist)
    redis_url: str = "redis://localhost:6379"

    # Google Gemini API
    google_api_key: Optional[str] = None  # Fallback when the user has no key of their own
    gemini_model: str = "gemini-2.5-flash"

    # OAuth - Google
    google_oauth_client_id: Optional[str] = None
    google_oauth_client_secret: Optional[str] = None
    session_secret_key: str = "change-me-too"

    # URLs (for OAuth callbacks)
    backend_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:3000"

    # Where studio state lives: per-user documents, local JSON slots or nowhere
    storage_backend: Literal["database", "file", "memory"] = "database"
    local_storage_dir: str = "./suno_data"

    # Prompt tuning
    lyrics_snippet_chars: int = 150
    history_prompt_limit: int = 10

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
