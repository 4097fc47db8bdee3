"""Application lifecycle: startup and shutdown of shared resources.

Startup order: logging → database (tables created for SQLite) → provider API clients →
OAuth clients. Shutdown closes them in reverse. Everything lands on app.state so the
dependencies in api/dependencies.py can hand it to request handlers.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from multitune.config import Settings, get_settings
from multitune.domain.entities import Provider
from multitune.domain.exceptions import ConfigurationError
from multitune.domain.ports import IProviderClient
from multitune.infrastructure.integrations import (
    OAuthClient,
    SpotifyClient,
    YouTubeClient,
    google_oauth_client,
    spotify_oauth_client,
    youtube_oauth_client,
)
from multitune.infrastructure.observability import configure_logging
from multitune.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, this makes sure the SQLite file's directory exists BEFORE the engine tries
# to open it. Otherwise you get "unable to open database file" with zero context. Only
# applies to file-backed SQLite; PostgreSQL and :memory: return early.
def _validate_sqlite_path(settings: Settings) -> None:
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc


def build_provider_clients() -> dict[Provider, IProviderClient]:
    return {Provider.YOUTUBE: YouTubeClient(), Provider.SPOTIFY: SpotifyClient()}


def build_oauth_clients(settings: Settings) -> dict[str, OAuthClient]:
    clients = {
        "youtube": youtube_oauth_client(settings.google),
        "google": google_oauth_client(settings.google),
        "spotify": spotify_oauth_client(settings.spotify),
    }
    for name, client in clients.items():
        if not client.config.is_configured:
            logger.warning("OAuth flow %s is not configured (missing client id/secret)", name)
    return clients


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open shared resources on startup, close them on shutdown."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting %s", settings.app_name)

    _validate_sqlite_path(settings)
    db = Database(settings)
    # Listen up - SQLite (dev, tests) gets its schema straight from the models. PostgreSQL
    # is migrated with Alembic (alembic upgrade head) and never touched here.
    if settings.database.url.startswith("sqlite"):
        await db.create_tables()

    provider_clients = build_provider_clients()
    oauth_clients = build_oauth_clients(settings)

    app.state.db = db
    app.state.provider_clients = provider_clients
    app.state.oauth_clients = oauth_clients

    try:
        yield
    finally:
        logger.info("Shutting down %s", settings.app_name)
        for oauth_client in oauth_clients.values():
            await oauth_client.close()
        for provider_client in provider_clients.values():
            await provider_client.close()
        await db.close()
