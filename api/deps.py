"""
API Dependencies

Dependency injection for the API: one OracleService and one
ResolutionQueue per process, built lazily from configuration.

ORACLE_MODE=test wires the in-memory ledger, in-memory storage and the
mock LLM. Tests replace `get_service` / `get_queue` through FastAPI's
dependency_overrides.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional

from core.config import load_runtime_config
from orchestrator import OracleService, ResolutionQueue, build_service, build_test_service

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_service: Optional[OracleService] = None
_queue: Optional[ResolutionQueue] = None


def is_test_mode() -> bool:
    return os.getenv("ORACLE_MODE", "").lower() == "test"


def get_service() -> OracleService:
    """Process-wide OracleService."""
    global _service
    with _lock:
        if _service is None:
            config = load_runtime_config()
            if is_test_mode():
                logger.info("ORACLE_MODE=test: using in-memory ledger, storage and mock LLM")
                _service = build_test_service(config)
            else:
                _service = build_service(config)
        return _service


def get_queue() -> ResolutionQueue:
    """Process-wide job queue; workers start on first use."""
    global _queue
    service = get_service()
    with _lock:
        if _queue is None:
            config = service.ctx.config
            workers = config.engine.workers if config else 1
            max_attempts = config.engine.job_max_attempts if config else 3
            _queue = ResolutionQueue(service, max_attempts=max_attempts)
            _queue.start(workers=workers)
        return _queue


def reset_dependencies() -> None:
    """Stop workers and drop the cached service and queue."""
    global _service, _queue
    with _lock:
        if _queue is not None:
            _queue.stop(wait=False)
        _service = None
        _queue = None
