"""API router initialization."""

# Hey future me, this aggregates every router. Paths are kept exactly as the frontend
# calls them: "/" and "/api/health", the data API under /api, OAuth flows under /auth.

from fastapi import APIRouter

from multitune.api.routers import auth, health, playlists

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(playlists.router, prefix="/api", tags=["Playlists"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

__all__ = ["api_router"]
