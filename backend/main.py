"""Transfer server — Main application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.content.controllers.content_controller import router as content_router
from api.download.controllers.download_controller import router as download_router
from api.events.controllers.events_controller import router as events_router
from api.transfers.controllers.transfers_controller import router as transfers_router
from api.transfers.repositories.transfer_store import TransferStore
from api.upload.controllers.upload_controller import router as upload_router
from config import Settings
from dependencies import build_services
from errors import StorageError
from logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, store: TransferStore | None = None) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        services = build_services(settings, store=store)
        app.state.services = services
        if services.sweeper is not None:
            services.sweeper.start()
        try:
            yield
        finally:
            await services.close()

    app = FastAPI(title="Transfer", version="0.1.0", lifespan=lifespan)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"error": exc.code, "detail": str(exc)},
        )

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    app.include_router(transfers_router)
    app.include_router(upload_router)
    app.include_router(events_router)
    app.include_router(content_router)
    app.include_router(download_router)

    return app


app = create_app()


if __name__ == "__main__":
    _settings = Settings()
    uvicorn.run(app, host=_settings.host, port=_settings.port)
