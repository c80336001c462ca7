"""
Exception handlers for FastAPI application.

Every error body uses the envelope ``{"error": "<message>", ...}``. Healthie
integration errors are mapped here so routes can let them propagate.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from patient_portal.integrations.healthie.exceptions import (
    ConfigurationError,
    GraphQLError,
    NetworkError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "status_code": status_code, **extra},
    )


def _field_errors(errors: list[dict]) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "query")),
            "message": error["msg"],
        }
        for error in errors
    ]


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle HTTPException with consistent response format."""
    http_exc = exc if isinstance(exc, HTTPException) else HTTPException(status_code=500, detail=str(exc))
    response = _error_response(http_exc.status_code, str(http_exc.detail))
    if http_exc.headers:
        response.headers.update(http_exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle request validation errors with per-field messages."""
    if not isinstance(exc, RequestValidationError):
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))

    details = _field_errors(list(exc.errors()))
    logger.warning(f"Validation error on {request.url.path}: {details}")
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error", details=details)


async def pydantic_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle Pydantic validation errors raised outside request parsing."""
    if not isinstance(exc, PydanticValidationError):
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))

    details = _field_errors(list(exc.errors()))
    logger.warning(f"Pydantic validation error: {details}")
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "Data validation error", details=details)


async def healthie_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Field-level messages from Healthie go back to the form for correction."""
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.message, details=exc.to_details())


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, exc.message)


async def network_error_handler(request: Request, exc: NetworkError) -> JSONResponse:
    logger.warning(f"Healthie unavailable on {request.method} {request.url.path}: {exc}")
    status_code = status.HTTP_504_GATEWAY_TIMEOUT if exc.timeout else status.HTTP_502_BAD_GATEWAY
    return _error_response(status_code, "Upstream EHR request failed", retryable=exc.retryable)


async def graphql_error_handler(request: Request, exc: GraphQLError) -> JSONResponse:
    logger.error(f"Healthie GraphQL error on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_502_BAD_GATEWAY, "Upstream EHR rejected the request", retryable=False)


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Operational failure; the message never includes key material."""
    logger.error(f"Configuration error on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Service is not configured")


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all unhandled exceptions.

    Logs the full exception with traceback and returns a safe error response.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc!s}",
        exc_info=True,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, pydantic_validation_handler)
    app.add_exception_handler(ValidationError, healthie_validation_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(NetworkError, network_error_handler)
    app.add_exception_handler(GraphQLError, graphql_error_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("Exception handlers registered")
