"""
Read-only hub records: intake forms and upcoming appointments.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from patient_portal.api.dependencies import get_patient_directory
from patient_portal.domains.patients.application import IPatientDirectory

router = APIRouter()


def _require_patient_id(patient_id: str | None) -> str:
    if not patient_id or not patient_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Patient ID parameter is required")
    return patient_id.strip()


@router.get("/forms")
async def list_forms(
    patient_id: str | None = Query(None),
    directory: IPatientDirectory = Depends(get_patient_directory),  # noqa: B008
):
    forms = await directory.list_forms(_require_patient_id(patient_id))
    return {"forms": [form.to_dict() for form in forms]}


@router.get("/appointments")
async def list_appointments(
    patient_id: str | None = Query(None),
    directory: IPatientDirectory = Depends(get_patient_directory),  # noqa: B008
):
    appointments = await directory.list_appointments(_require_patient_id(patient_id))
    return {"appointments": [appointment.to_dict() for appointment in appointments]}
