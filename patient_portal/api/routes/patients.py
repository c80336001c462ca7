"""
Patient proxy endpoints.

Forward sanitized requests to Healthie so the API key stays server side.
Success bodies are ``{"patient": ...}``; failures are mapped by the
exception handlers to ``{"error": ...}`` with a non-2xx status.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from patient_portal.api.dependencies import get_patient_directory
from patient_portal.api.schemas import CreatePatientRequest, UpdateDemographicsRequest
from patient_portal.domains.patients.application import IPatientDirectory

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def find_patient(
    email: str | None = Query(None, description="Email to resolve (case-insensitive)"),
    directory: IPatientDirectory = Depends(get_patient_directory),  # noqa: B008
):
    """Look a patient up by email. ``patient`` is null when nothing matches."""
    if not email or not email.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email parameter is required")

    patient = await directory.find_by_email(email)
    return {"patient": patient.to_dict() if patient else None}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_patient(
    body: CreatePatientRequest,
    directory: IPatientDirectory = Depends(get_patient_directory),  # noqa: B008
):
    """Create a Healthie client (first onboarding step)."""
    patient = await directory.create(body.to_new_patient())
    return {"patient": patient.to_dict()}


@router.patch("/{patient_id}")
async def update_patient_demographics(
    patient_id: str,
    body: UpdateDemographicsRequest,
    directory: IPatientDirectory = Depends(get_patient_directory),  # noqa: B008
):
    """Apply demographics to an existing client (second onboarding step)."""
    patient = await directory.update_demographics(patient_id, body.to_demographics())
    return {"patient": patient.to_dict()}
