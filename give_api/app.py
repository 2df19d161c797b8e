"""
FastAPI application factory for the GiveWP enhanced API.

Usage:
    python -m give_api.app                      # Dev server on port 8000
    GIVE_DB_PATH=/data/givewp.sqlite python -m give_api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

Endpoints (default prefix /wp-json/give-api-enhanced/v1):
    /donation/{id}  /donor/{id}  /subscription/{id}  /campaign/{id}  /form/{id}

Authentication uses the key/token pairs from GiveWP -> Tools -> API.

Logging: text by default, newline-delimited JSON when APP_LOG_FORMAT=json.
Query strings carry credentials and are never logged.
"""

import dataclasses
import json
import logging
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from give_api.database import ApiContext, open_readonly
from give_api.errors import ApiError
from give_api.models import HealthOut
from give_api.routes import resources
from give_store.config import AppConfig

_REQUIRED_TABLES = (
    "posts", "give_donationmeta", "give_donors", "give_donormeta",
    "give_subscriptions", "give_campaigns", "give_campaign_forms",
    "give_formmeta", "usermeta",
)


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id",
                    "user_id", "kind", "resource_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def configure_logging(log_format: str) -> None:
    """Send logs to stderr as text or JSON and enable INFO for ``give_api``.

    The root handler is only installed when the root logger has none yet, so
    a host that already configured logging keeps its handlers.
    """
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    logging.basicConfig(handlers=[handler], level=logging.INFO)
    # Auth audit lines are INFO.
    logging.getLogger("give_api").setLevel(logging.INFO)


_logger = logging.getLogger("give_api")


def _error_body(code: str, message: str, status_code: int) -> dict:
    return {"code": code, "error": message, "status_code": status_code}


def create_app(db_path: Path | None = None, config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the database path (useful for testing).
        config: Full settings; read from the environment when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = AppConfig.from_env()
    if db_path is not None:
        config = dataclasses.replace(config, db_path=Path(db_path))
    configure_logging(config.log_format)
    context = ApiContext(config=config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not config.db_path.exists():
            _logger.warning("GiveWP database not found at %s", config.db_path)
        yield

    app = FastAPI(
        title="GiveWP Enhanced API",
        summary="Read-only GiveWP donations, donors, subscriptions, campaigns and forms.",
        description=(
            "Single-record endpoints returning GiveWP records with their related "
            "records, custom fields and campaign goal progress.\n\n"
            "Authenticate with the `key` and `token` query parameters issued in "
            "GiveWP -> Tools -> API.\n\n"
            "- **401** key or token missing\n"
            "- **403** key or token invalid\n"
            "- **404** no such record\n"
            "- **503** GiveWP data unavailable"
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "resources", "description": "Single GiveWP records by ID."},
            {"name": "meta", "description": "Health check."},
        ],
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=False,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging ───────────────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request without its query string and tag it with an ID."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Content-Type-Options"] = "nosniff"

        if config.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, path, response.status_code, duration_ms, request_id,
            )
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.status_code),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON without internal detail."""
        _logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_error", "Internal server error", 500),
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check", response_model=HealthOut)
    def health():
        """Return 200 if the GiveWP database is readable and has its tables."""
        db_path = config.db_path
        if not db_path.exists():
            return JSONResponse(
                status_code=503,
                content={"status": "no_database", "database": str(db_path)},
            )
        try:
            conn = open_readonly(db_path)
            try:
                present = {
                    r[0] for r in conn.execute(
                        "SELECT name FROM sqlite_master WHERE type='table'"
                    ).fetchall()
                }
            finally:
                conn.close()
        except sqlite3.Error:
            _logger.error("Health check could not read %s", db_path, exc_info=True)
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "database": str(db_path)},
            )
        missing = [t for t in _REQUIRED_TABLES if config.table(t) not in present]
        if missing:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "database": str(db_path), "tables_missing": missing},
            )
        return {"status": "ok", "database": str(db_path), "tables_missing": []}

    app.include_router(resources.router, prefix=config.api_prefix)

    return app


def main() -> None:
    """Run the API server with uvicorn; create_app() configures logging."""
    import uvicorn

    cfg = AppConfig.from_env()
    uvicorn.run(
        "give_api.app:create_app",
        factory=True,
        host=cfg.api_host,
        port=cfg.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
