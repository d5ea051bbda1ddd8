import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from config import Settings, configure_logging, load_settings
from database import MongoStore
from errors import register_error_handlers
from routes import routers

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store=None) -> FastAPI:
    """Build the API around ``store`` (a MongoStore for ``settings`` by default)."""
    settings = settings or Settings()
    if store is None:
        store = MongoStore(settings.database_url, settings.database_name)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting pizza API ({settings.environment})")
        await store.connect()
        try:
            yield
        finally:
            logger.info("Shutting down pizza API")
            await store.close()

    app = FastAPI(title="Pizza Shop API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        https_only=settings.is_production,
        same_site="lax",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Authorization"],
        expose_headers=["Content-Length"],
        max_age=12 * 60 * 60,
    )

    register_error_handlers(app, settings)

    # Public endpoints

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the pizza api!"}

    @app.get("/health")
    async def health(request: Request):
        connected = await request.app.state.store.ping()
        return {
            "status": "ok" if connected else "degraded",
            "database": "connected" if connected else "unavailable",
        }

    for router in routers:
        app.include_router(router)

    return app


settings = load_settings()
configure_logging(settings)
app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
