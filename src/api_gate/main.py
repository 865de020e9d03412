import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from .config import Settings, settings as default_settings
from .database import build_engine, build_session_factory, create_tables, get_redis_client
from .errors import GateError, LoginRequired
from .services.analytics import LogAnalytics
from .services.api_keys import APIKeyService
from .services.request_logger import RequestLogMiddleware, RequestLogWriter
from .store.api_keys import APIKeyStore
from .store.request_logs import RequestLogStore
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def error_body(message: str, error_type: str) -> dict:
    return {"error": {"message": message, "type": error_type}}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("🚀 Starting API Gate Service...")

    create_tables(app.state.engine)
    logger.info("✅ Database initialized")

    if not app.state.settings.master_api_key:
        logger.warning(
            "⚠️ MASTER_API_KEY is not set: admin and dashboard routes will refuse all requests"
        )

    await app.state.log_writer.start()
    logger.info("🎯 API Gate Service is ready!")

    yield

    # Shutdown
    logger.info("🛑 Shutting down API Gate Service...")
    await app.state.log_writer.stop()
    app.state.engine.dispose()


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application from an explicit settings value."""
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="API Gate Service",
        description="API key issuance, request authorization and request analytics",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Wiring
    engine = build_engine(
        app_settings.database_url, timeout=app_settings.log_write_timeout_seconds
    )
    session_factory = build_session_factory(engine)

    api_key_store = APIKeyStore(session_factory, get_redis_client(app_settings.redis_url))
    log_store = RequestLogStore(session_factory)
    log_writer = RequestLogWriter(
        log_store,
        max_queue_size=app_settings.log_queue_size,
        workers=app_settings.log_workers,
        write_timeout=app_settings.log_write_timeout_seconds,
    )

    app.state.settings = app_settings
    app.state.engine = engine
    app.state.api_key_store = api_key_store
    app.state.api_key_service = APIKeyService(api_key_store)
    app.state.log_store = log_store
    app.state.log_writer = log_writer
    app.state.log_analytics = LogAnalytics(
        log_store, default_window_days=app_settings.stats_default_days
    )

    app.add_middleware(RequestLogMiddleware, writer=log_writer)

    # Exception handlers
    @app.exception_handler(GateError)
    async def gate_error_handler(request: Request, exc: GateError):
        if isinstance(exc, LoginRequired):
            return RedirectResponse(exc.location, status_code=302)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.error_type),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        fields = [".".join(str(part) for part in err.get("loc", ())) for err in errors]
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "message": "Invalid request",
                    "type": "invalid_request",
                    "fields": fields,
                }
            },
        )

    @app.exception_handler(404)
    async def not_found_handler(request, exc):
        return JSONResponse(status_code=404, content=error_body("Not found", "not_found"))

    @app.exception_handler(500)
    async def internal_error_handler(request, exc):
        logger.error(f"Internal server error: {exc}")
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", "internal_error"),
        )

    # Root endpoints
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "request_log": {
                "running": log_writer.running,
                "pending": log_writer.pending,
                "written": log_writer.written,
                "failed": log_writer.failed,
                "dropped": log_writer.dropped,
            },
            "redis": "connected" if api_key_store.redis else "disabled",
        }

    # Include API routers
    from .api.api_keys import router as api_keys_router
    from .api.auth import router as auth_router
    from .api.dashboard import router as dashboard_router
    from .api.dependencies import MasterKeyGate, UserKeyGate
    from .api.hello import router as hello_router

    master_gate = MasterKeyGate(
        app_settings.master_api_key,
        login_path=app_settings.login_path,
        dashboard_path=dashboard_router.prefix,
    )
    user_gate = UserKeyGate()

    app.include_router(auth_router)
    app.include_router(api_keys_router, dependencies=[Depends(master_gate)])
    app.include_router(dashboard_router, dependencies=[Depends(master_gate)])
    app.include_router(hello_router, dependencies=[Depends(user_gate)])
    logger.info("✅ Routers included")

    return app


setup_logging(default_settings.log_level)
app = create_app()


# Development server
if __name__ == "__main__":
    import uvicorn

    logger.info("🚀 Starting development server...")
    uvicorn.run(
        "api_gate.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        log_level=default_settings.log_level,
    )
