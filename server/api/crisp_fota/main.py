import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .database import create_engine, create_session_factory, create_tables
from .errors import FotaError
from .routers import fota_router, firmware_router
from .storage import create_blob_store

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: misconfiguration raises here and stops the process
        app.state.blob_store = create_blob_store(settings)
        engine = create_engine(settings.database_url)
        if settings.create_tables:
            await create_tables(engine)
        app.state.session_factory = create_session_factory(engine)
        app.state.ready = True
        logger.info("FOTA service started")
        yield
        # Shutdown
        app.state.ready = False
        await app.state.blob_store.close()
        await engine.dispose()

    app = FastAPI(
        title="Crisp FOTA API",
        description="Firmware over-the-air distribution for Crisp game devices",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.ready = False

    app.include_router(fota_router)
    # Path prefix used by deployed devices
    app.include_router(fota_router, prefix="/api/fota")
    app.include_router(firmware_router)

    @app.exception_handler(FotaError)
    async def fota_error_handler(request: Request, exc: FotaError):
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s (params=%s)",
                request.method, request.url.path, exc.message, dict(request.query_params),
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/ready")
    async def readiness_check(request: Request):
        """Readiness check: storage and database are initialised."""
        if not request.app.state.ready:
            return JSONResponse(status_code=503, content={"status": "starting"})
        return {"status": "ready"}

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Crisp FOTA API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "check": "/check",
        }

    return app
