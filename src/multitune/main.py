"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from multitune import __version__
from multitune.api.exception_handlers import register_exception_handlers
from multitune.api.routers import api_router
from multitune.config import Settings, get_settings
from multitune.infrastructure.lifecycle import lifespan
from multitune.infrastructure.observability import RequestLoggingMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings to use instead of the environment (tests)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Multitune",
        description="Mirror your YouTube and Spotify playlists in one place",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(
        RequestLoggingMiddleware,
        log_request_body=settings.observability.log_request_body,
    )
    # Added last so it runs first; preflight requests never reach the logger
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
