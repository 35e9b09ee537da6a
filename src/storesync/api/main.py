"""FastAPI application factory."""
from fastapi import FastAPI

from storesync.api.routes import sync as sync_routes


def create_app() -> FastAPI:
    """Build and return the FastAPI app."""
    app = FastAPI(
        title="Store Sync API",
        description="Sync progress for mirrored storefronts",
        version="0.1.0",
    )

    app.include_router(sync_routes.router, prefix="/sync", tags=["sync"])

    return app


# Module-level app instance for uvicorn
app = create_app()
