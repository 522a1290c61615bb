"""
FastAPI Application

Thin HTTP surface over OracleService and the resolution queue.

Usage:
    uvicorn api.app:app --reload

    # Or run directly
    python -m api.app
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import (
    APIError,
    api_error_handler,
    generic_error_handler,
    oracle_error_handler,
)
from api.routes import health, jobs, resolve, status
from core.config import load_runtime_config
from core.schemas import OracleException


def _resolve_log_level() -> int:
    """ORACLE_LOG_LEVEL, then the config file log_level, then INFO."""
    raw = os.getenv("ORACLE_LOG_LEVEL") or load_runtime_config().log_level or "INFO"
    return getattr(logging, raw.upper(), logging.INFO)


logging.basicConfig(
    level=_resolve_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="AI Oracle API",
        description="""
HTTP API for the AI prediction-market oracle.

## Endpoints

- **GET /health** - Liveness probe
- **POST /resolve/{market_id}** - Resolve a market synchronously
- **POST /jobs** - Enqueue a market for the worker pool
- **GET /jobs/{job_id}** - Job status and result
- **GET /status** - Signer, authorization and engine stats

Errors are returned as `{ok: false, error: {code, message, details}}`.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(OracleException, oracle_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    app.include_router(health.router)
    app.include_router(resolve.router)
    app.include_router(jobs.router)
    app.include_router(status.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
