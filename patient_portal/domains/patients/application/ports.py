# ============================================================================
# SCOPE: APPLICATION LAYER (Patients)
# Description: Patient directory port.
# ============================================================================
"""Patient Directory Port.

Defines the interface the application layer needs from the EHR.
Implementation: HealthiePatientClient.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..domain import Appointment, Demographics, FormTask, NewPatient, Patient


@runtime_checkable
class IPatientDirectory(Protocol):
    """Interface for patient resolution against the EHR."""

    async def find_by_email(self, email: str) -> "Patient | None":
        """Find the patient whose email matches exactly (case-insensitive).

        Returns:
            The matching Patient, or None when there is no match.
        """
        ...

    async def create(self, new_patient: "NewPatient") -> "Patient":
        """Create a client record. Raises ValidationError on field messages."""
        ...

    async def update_demographics(self, patient_id: str, demographics: "Demographics") -> "Patient":
        """Apply demographics to an existing record. Raises ValidationError on field messages."""
        ...

    async def list_forms(self, patient_id: str) -> "list[FormTask]":
        ...

    async def list_appointments(self, patient_id: str) -> "list[Appointment]":
        ...
