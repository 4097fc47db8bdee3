"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=".env", extra="ignore"
    )

    # Hey future me - SQLite is the zero-config default for dev and tests. In docker-compose
    # we point this at PostgreSQL (postgresql+asyncpg://...). The Database class reads the URL
    # scheme to decide whether pool settings apply, so keep the driver prefix in the URL!
    url: str = Field(
        default="sqlite+aiosqlite:///./multitune.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_pre_ping: bool = Field(default=True)
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=1800, ge=-1)


class AuthSettings(BaseSettings):
    """Bearer token settings for the API."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_", env_file=".env", extra="ignore"
    )

    jwt_secret: str = Field(default="dev_secret", description="HMAC secret for tokens")
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_days: int = Field(default=7, ge=1)


class GoogleSettings(BaseSettings):
    """Google OAuth client settings (YouTube link and Google login)."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_", env_file=".env", extra="ignore"
    )

    client_id: str = Field(default="")
    client_secret: str = Field(default="")
    youtube_redirect_uri: str = Field(
        default="http://localhost:8000/auth/youtube/callback"
    )
    login_redirect_uri: str = Field(
        default="http://localhost:8000/auth/google/callback"
    )


class SpotifySettings(BaseSettings):
    """Spotify OAuth client settings."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_", env_file=".env", extra="ignore"
    )

    client_id: str = Field(default="")
    client_secret: str = Field(default="")
    redirect_uri: str = Field(default="http://127.0.0.1:8000/auth/spotify/callback")


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABILITY_", env_file=".env", extra="ignore"
    )

    log_json_format: bool = Field(
        default=False, description="Emit JSON logs (recommended in production)"
    )
    log_request_body: bool = Field(default=False)


class Settings(BaseSettings):
    """Top-level application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = Field(default="multitune")
    log_level: str = Field(default="INFO")
    frontend_url: str = Field(default="http://localhost:3000")
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite file path, or None for other engines and :memory:."""
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path == ":memory:":
            return None
        return Path(path)


# Yo, lru_cache makes this a process-wide singleton without a global. FastAPI uses it as a
# dependency (Depends(get_settings)) and tests override it via app.dependency_overrides.
@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
