"""
Request logging middleware for FastAPI application.

Logs method, path, status and duration with a correlation id. Bodies and
query strings are never logged: they carry patient data, emails and
passwords. The ``X-Session-ID`` bearer value is never logged either; lines
carry a short one-way fingerprint of it so one session's requests can be
followed without the id being replayable from the logs.
"""

import hashlib
import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from patient_portal.api.dependencies import SESSION_HEADER

logger = logging.getLogger(__name__)


def session_fingerprint(session_id: str | None) -> str:
    """Short SHA-256 prefix of a session id, or "-" without one."""
    if not session_id:
        return "-"
    return hashlib.sha256(session_id.encode("utf-8")).hexdigest()[:10]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    HTTP middleware for request/response logging.

    Adds correlation ID to requests for tracing.
    """

    # Paths to exclude from detailed logging (high-frequency, low-value)
    EXCLUDE_PATHS: tuple[str, ...] = (
        "/health",
        "/favicon.ico",
    )

    def _should_log(self, path: str) -> bool:
        return not any(path.startswith(exclude) for exclude in self.EXCLUDE_PATHS)

    def _generate_correlation_id(self) -> str:
        return str(uuid.uuid4())[:8]

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", self._generate_correlation_id())
        request.state.correlation_id = correlation_id

        if not self._should_log(request.url.path):
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            return response

        session = session_fingerprint(request.headers.get(SESSION_HEADER))
        prefix = f"[{correlation_id}] [session {session}]"

        start_time = time.perf_counter()
        logger.info(f"{prefix} --> {request.method} {request.url.path}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"{prefix} <-- {request.method} {request.url.path} "
                f"ERROR in {duration_ms:.2f}ms: {type(e).__name__}"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            log_level,
            f"{prefix} <-- {request.method} {request.url.path} "
            f"{response.status_code} in {duration_ms:.2f}ms",
        )

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"
        return response
