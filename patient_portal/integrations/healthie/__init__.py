# ============================================================================
# SCOPE: INTEGRATION (Healthie)
# Description: Healthie integration module exports.
# ============================================================================
"""
Healthie Integration Module.

Provides patient resolution against the Healthie EHR GraphQL API.

Usage:
    from patient_portal.integrations.healthie import HealthieGraphQLClient, HealthiePatientClient

    async with HealthieGraphQLClient.from_settings() as graphql:
        patients = HealthiePatientClient(graphql, provider_id=settings.HEALTHIE_PROVIDER_ID)
        patient = await patients.find_by_email("jane@example.com")
"""

from .exceptions import (
    ConfigurationError,
    GraphQLError,
    HealthieError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from .graphql_client import RETRYABLE_STATUS_CODES, HealthieGraphQLClient
from .patient_client import HealthiePatientClient

__all__ = [
    "HealthieGraphQLClient",
    "HealthiePatientClient",
    "RETRYABLE_STATUS_CODES",
    # Exceptions
    "HealthieError",
    "NetworkError",
    "GraphQLError",
    "ValidationError",
    "ConfigurationError",
    "NotFoundError",
]
