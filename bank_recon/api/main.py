import logging
import time
import uuid
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bank_recon import __version__
from bank_recon.api.endpoints import aliases, export, imports, reference
from bank_recon.api.state import SessionManager
from bank_recon.common.activity_log import configure_activity_logger
from bank_recon.common.logging_config import get_logger, set_request_id, setup_logging
from bank_recon.common.settings import ImportSettings
from bank_recon.core.aliases import InMemoryAliasStore, JsonFileAliasStore
from bank_recon.parsing.exceptions import UnsupportedFormatError
from bank_recon.parsing.pipeline import ImportPipeline

logger = get_logger("api.main")

# CORS Setup - Enable frontend access
origins = [
    "http://localhost:5173",  # Vite Default
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]


def create_app(settings: Optional[ImportSettings] = None) -> FastAPI:
    """
    Build the API. Settings come from ``BANK_RECON_*`` environment
    variables unless given.
    """
    settings = settings or ImportSettings.from_env()

    setup_logging(getattr(logging, settings.log_level, logging.INFO), settings.log_file)
    if settings.activity_log_dir:
        configure_activity_logger(Path(settings.activity_log_dir))

    app = FastAPI(title="Bank Statement Reconciliation API", version=__version__)
    app.state.settings = settings
    app.state.sessions = SessionManager()
    app.state.pipeline = ImportPipeline(settings=settings)
    if settings.alias_store_path:
        app.state.alias_store = JsonFileAliasStore(settings.alias_store_path)
    else:
        app.state.alias_store = InMemoryAliasStore()

    # Middleware for Request ID, Session ID and Logging
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        session_id = request.headers.get("X-Session-ID") or SessionManager.generate_session_id()
        request.state.session_id = session_id
        set_request_id(request_id, session_id)

        start_time = time.time()
        logger.info(
            f"Request started: {request.method} {request.url.path}",
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else "unknown",
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {str(e)}",
                error=str(e),
                process_time_ms=round((time.time() - start_time) * 1000, 2),
                exc_info=True,
            )
            raise

        logger.info(
            f"Request completed: {request.method} {request.url.path} - Status: {response.status_code}",
            status_code=response.status_code,
            process_time_ms=round((time.time() - start_time) * 1000, 2),
        )

        # Add request ID to response headers for tracking
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Session-ID"] = session_id
        return response

    @app.exception_handler(UnsupportedFormatError)
    async def unsupported_format_handler(request: Request, exc: UnsupportedFormatError):
        logger.warning("Import rejected: no transactions recognized.", file_name=exc.filename)
        return JSONResponse(
            status_code=422,
            content={"detail": "No transactions recognized", "file_name": exc.filename},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Session-ID"],
    )

    # Include Routers
    app.include_router(reference.router, prefix="/api/reference", tags=["Reference"])
    app.include_router(imports.router, prefix="/api/import", tags=["Import"])
    app.include_router(aliases.router, prefix="/api/aliases", tags=["Aliases"])
    app.include_router(export.router, prefix="/api/export", tags=["Export"])

    @app.get("/api/health")
    def health_check():
        return {"status": "ok", "app": "bank-recon", "version": __version__}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8010)
