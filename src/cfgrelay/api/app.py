"""FastAPI application factory and composition root."""
from __future__ import annotations
import time
from contextlib import asynccontextmanager
import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from cfgrelay.config import Settings
from cfgrelay.domain.exceptions import (
    ConfigurationError,
    QueueClosed,
    StorageError,
    StorageUnavailable,
    ValidationError,
)
from cfgrelay.logging import logger


def create_app(
    settings: Settings | None = None,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app.

    ``http_transport`` replaces the network layer of every outbound httpx
    client (webhook and storage); tests pass an ``httpx.MockTransport``.
    """
    if settings is None:
        from cfgrelay.config import settings as default_settings
        settings = default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from cfgrelay.infra.storage.client import StorageClient
        from cfgrelay.infra.webhook.transport import WebhookTransport
        from cfgrelay.services.storage_facade import StorageFacade
        from cfgrelay.services.upload_queue import UploadQueue
        from cfgrelay.services.upload_service import UploadService

        webhook_http = httpx.AsyncClient(
            timeout=settings.WEBHOOK_TIMEOUT_SECS, transport=http_transport,
        )
        storage_http = httpx.AsyncClient(
            timeout=settings.STORAGE_TIMEOUT_SECS, transport=http_transport,
        )

        transport = WebhookTransport(settings.webhook_url, client=webhook_http)
        queue = UploadQueue(transport, pacing_seconds=settings.QUEUE_PACING_SECS)

        storage = None
        if settings.STORAGE_ENABLED:
            storage = StorageFacade(
                StorageClient(
                    settings.STORAGE_API_URL,
                    client=storage_http,
                    timeout=settings.STORAGE_TIMEOUT_SECS,
                    health_timeout=settings.STORAGE_HEALTH_TIMEOUT_SECS,
                ),
                probe_interval=settings.STORAGE_HEALTH_INTERVAL_SECS,
            )
            await storage.start()

        if not transport.configured:
            logger.warning("CLOUD_WEBHOOK is not set; uploads will be rejected with 500")

        app.state.settings = settings
        app.state.upload_queue = queue
        app.state.storage = storage
        app.state.upload_service = UploadService(settings, queue, storage)
        logger.info(
            "Relay ready: webhook=%s storage=%s",
            transport.display_url or "<unset>",
            settings.STORAGE_API_URL if storage else "disabled",
        )
        try:
            yield
        finally:
            await queue.close(settings.SHUTDOWN_GRACE_SECS)
            if storage is not None:
                await storage.stop()
            await webhook_http.aclose()
            await storage_http.aclose()
            logger.info("Relay shut down")

    app = FastAPI(
        title="Config Upload Relay",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path != "/health":
            logger.info(
                "%s %s -> %s (%dms)",
                request.method,
                request.url.path,
                response.status_code,
                int((time.perf_counter() - start) * 1000),
            )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Import routers inside create_app() to avoid circular imports at module load time
    from cfgrelay.api.deps import get_upload_queue
    from cfgrelay.api.routers.storage import router as storage_router
    from cfgrelay.api.routers.upload import router as upload_router

    app.include_router(upload_router)
    app.include_router(storage_router)

    @app.exception_handler(ValidationError)
    def _bad_request(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(ConfigurationError)
    def _misconfigured(request: Request, exc: ConfigurationError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(StorageUnavailable)
    def _storage_down(request: Request, exc: StorageUnavailable) -> JSONResponse:
        return JSONResponse(status_code=503, content={"error": exc.message})

    @app.exception_handler(QueueClosed)
    def _queue_closed(request: Request, exc: QueueClosed) -> JSONResponse:
        return JSONResponse(status_code=503, content={"error": exc.message})

    @app.exception_handler(StorageError)
    def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
        status = 404 if exc.status == 404 else 502
        return JSONResponse(status_code=status, content={"error": exc.message})

    @app.exception_handler(httpx.HTTPError)
    def _upstream_unreachable(request: Request, exc: httpx.HTTPError) -> JSONResponse:
        logger.warning("Upstream request failed: %s", exc)
        return JSONResponse(status_code=503, content={"error": "Storage API unavailable"})

    @app.get("/health", tags=["ops"])
    def health(request: Request, queue=Depends(get_upload_queue)) -> dict:
        storage = request.app.state.storage
        return {
            "status": "ok",
            "queue": queue.snapshot(),
            "storage": storage.status() if storage is not None else None,
        }

    return app
