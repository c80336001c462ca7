"""
Middleware package for FastAPI application.
"""

from patient_portal.api.middleware.logging_middleware import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
]
