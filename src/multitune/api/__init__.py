"""HTTP API layer (FastAPI routers, dependencies, error handlers)."""
