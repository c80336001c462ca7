# ============================================================================
# SCOPE: INTEGRATION (Healthie)
# Description: Exception types raised by the Healthie integration.
# ============================================================================
"""
Healthie Integration Exceptions.

Single Responsibility: Define the error taxonomy surfaced to callers of the
Healthie clients. The API layer translates each type to an HTTP response.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from patient_portal.domains.patients.domain import FieldMessage, Patient


class HealthieError(Exception):
    """Base class for Healthie integration errors."""

    default_code = "HEALTHIE_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(f"{self.code}: {message}")


class NetworkError(HealthieError):
    """
    Transport-level failure: timeout, connection error or non-2xx status.

    Recoverable by retrying. ``retryable`` is False only for HTTP statuses
    that will not change on retry (authentication, bad request).
    """

    default_code = "NETWORK_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = True,
        timeout: bool = False,
    ):
        code = "TIMEOUT" if timeout else (f"HTTP_{status_code}" if status_code else None)
        super().__init__(message, code)
        self.status_code = status_code
        self.retryable = retryable
        self.timeout = timeout


class GraphQLError(HealthieError):
    """The remote API reported query or schema errors. Retrying rarely helps."""

    default_code = "GRAPHQL_ERROR"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ValidationError(HealthieError):
    """
    Healthie rejected one or more input fields.

    Raised whenever the mutation returns a non-empty ``messages`` list, even
    if a (partial) user record came back with it.
    """

    default_code = "VALIDATION_ERROR"

    def __init__(self, messages: list[FieldMessage], patient: Patient | None = None):
        self.messages = list(messages)
        self.patient = patient
        super().__init__("Validation errors: " + ", ".join(str(m) for m in self.messages))

    def to_details(self) -> list[dict[str, str]]:
        return [m.to_dict() for m in self.messages]


class ConfigurationError(HealthieError):
    """Missing API key or provider id. Operational problem, never user-recoverable."""

    default_code = "CONFIGURATION_ERROR"


class NotFoundError(HealthieError):
    """
    No patient matches where one is required.

    Raised by the hub endpoint (``GET /portal/hub``) when the signed-in
    session resolves to no patient. ``find_by_email`` never raises this: an
    empty result is a valid outcome there.
    """

    default_code = "PATIENT_NOT_FOUND"
