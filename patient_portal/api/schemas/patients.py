# ============================================================================
# SCOPE: API LAYER
# Description: Request bodies for the Healthie proxy endpoints.
# ============================================================================
"""Pydantic schemas for the patient proxy endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from patient_portal.domains.patients.domain import Demographics, Insurance, NewPatient, SexAtBirth


class InsuranceSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    provider: str = Field(..., min_length=1)
    member_id: str = Field(..., min_length=1)


class CreatePatientRequest(BaseModel):
    """Body of ``POST /patients``."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=30)

    def to_new_patient(self) -> NewPatient:
        return NewPatient(
            email=str(self.email),
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone or None,
        )


class UpdateDemographicsRequest(BaseModel):
    """Body of ``PATCH /patients/{patient_id}``."""

    model_config = ConfigDict(str_strip_whitespace=True)

    dob: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD")
    sex_at_birth: SexAtBirth
    phone: str | None = Field(None, max_length=30)
    insurance: InsuranceSchema | None = None

    def to_demographics(self) -> Demographics:
        insurance = (
            Insurance(provider=self.insurance.provider, member_id=self.insurance.member_id)
            if self.insurance
            else None
        )
        return Demographics(
            dob=self.dob,
            sex_at_birth=self.sex_at_birth,
            insurance=insurance,
            phone=self.phone or None,
        )
