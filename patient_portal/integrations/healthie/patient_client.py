# ============================================================================
# SCOPE: INTEGRATION (Healthie)
# Description: Patient resolution client on top of the GraphQL transport.
# ============================================================================
"""Healthie Patient Client.

Implements IPatientDirectory: find-by-email, client creation, demographic
update, and the read-only forms and appointments lists shown on the hub.
"""

import logging
from typing import Any

from patient_portal.domains.patients.domain import (
    Appointment,
    Demographics,
    FieldMessage,
    FormTask,
    NewPatient,
    Patient,
    normalize_email,
)

from . import queries
from .exceptions import ConfigurationError, GraphQLError, HealthieError, ValidationError
from .graphql_client import HealthieGraphQLClient

logger = logging.getLogger(__name__)


class HealthiePatientClient:
    """Patient resolution against Healthie.

    The Healthie ``users(keywords:)`` search is fuzzy, so ``find_by_email``
    post-filters candidates with an exact case-insensitive comparison.
    Creation and demographic update are separate mutations because
    createClient does not accept a date of birth.
    """

    def __init__(self, graphql: HealthieGraphQLClient, provider_id: str | None = None) -> None:
        """Initialize client.

        Args:
            graphql: GraphQL transport.
            provider_id: Provider assigned to newly created clients (``dietitian_id``).
        """
        self._graphql = graphql
        self._provider_id = provider_id

    async def find_by_email(self, email: str) -> Patient | None:
        normalized = normalize_email(email)
        if not normalized:
            return None

        data = await self._graphql.execute(
            queries.FIND_USERS_BY_EMAIL,
            {"email": normalized},
            operation="FindUserByEmail",
            retry=True,
        )
        candidates = data.get("users") or []

        # Keyword search is not exact match
        matches = [u for u in candidates if normalize_email(u.get("email") or "") == normalized]
        if not matches:
            logger.info(f"No patient matches email lookup ({len(candidates)} candidates)")
            return None
        if len(matches) > 1:
            logger.warning(f"{len(matches)} Healthie users share one email, using the first")

        return Patient.from_external_data(matches[0])

    async def create(self, new_patient: NewPatient) -> Patient:
        if not self._provider_id:
            logger.error("createClient aborted: HEALTHIE_PROVIDER_ID is not configured")
            raise ConfigurationError("Healthie provider id is not configured")

        variables = {
            "input": {
                "email": normalize_email(new_patient.email),
                "first_name": new_patient.first_name,
                "last_name": new_patient.last_name,
                "phone_number": new_patient.phone,
                "dietitian_id": self._provider_id,
                # Onboarding happens in the portal, not through Healthie's emails
                "dont_send_welcome": True,
                "skip_set_password_state": True,
            }
        }
        data = await self._graphql.execute(queries.CREATE_CLIENT, variables, operation="CreateClient")
        patient = self._unwrap_mutation(data, "createClient")
        logger.info(f"Created Healthie client {patient.id}")
        return patient

    async def update_demographics(self, patient_id: str, demographics: Demographics) -> Patient:
        if not patient_id:
            raise ValidationError([FieldMessage("id", "Patient id is required")])

        update: dict[str, Any] = {
            "id": patient_id,
            "dob": demographics.dob,
            "sex": demographics.sex_at_birth.value,
        }
        if demographics.phone:
            update["phone_number"] = demographics.phone

        data = await self._graphql.execute(queries.UPDATE_USER, {"input": update}, operation="UpdateUser")
        patient = self._unwrap_mutation(data, "updateUser")
        # Insurance has no field on the basic user update
        patient.insurance = demographics.insurance
        logger.info(f"Updated demographics for Healthie client {patient.id}")
        return patient

    async def list_forms(self, patient_id: str) -> list[FormTask]:
        data = await self._graphql.execute(
            queries.REQUESTED_FORMS, {"userId": patient_id}, operation="RequestedForms", retry=True
        )
        return [FormTask.from_external_data(item) for item in data.get("requestedFormCompletions") or []]

    async def list_appointments(self, patient_id: str) -> list[Appointment]:
        data = await self._graphql.execute(
            queries.UPCOMING_APPOINTMENTS, {"userId": patient_id}, operation="UpcomingAppointments", retry=True
        )
        return [Appointment.from_external_data(item) for item in data.get("appointments") or []]

    async def ping(self) -> bool:
        """Check connectivity and credentials with a ``currentUser`` query."""
        try:
            data = await self._graphql.execute(queries.CURRENT_USER, operation="CurrentUser")
            return data.get("currentUser") is not None
        except HealthieError as e:
            logger.error(f"Healthie connection test failed: {e}")
            return False

    def _unwrap_mutation(self, data: dict[str, Any], field: str) -> Patient:
        """Extract the user from a mutation payload, failing on any field message."""
        result = data.get(field) or {}
        user = result.get("user")
        messages = [
            FieldMessage(field=str(m.get("field") or "base"), message=str(m.get("message") or ""))
            for m in result.get("messages") or []
        ]

        if messages:
            partial = self._safe_patient(user)
            logger.warning(f"{field} rejected: {', '.join(str(m) for m in messages)}")
            raise ValidationError(messages, patient=partial)

        if not user:
            raise GraphQLError(f"{field} returned no user")

        return Patient.from_external_data(user)

    @staticmethod
    def _safe_patient(user: dict[str, Any] | None) -> Patient | None:
        if not user:
            return None
        try:
            return Patient.from_external_data(user)
        except ValueError:
            return None
