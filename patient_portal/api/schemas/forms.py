# ============================================================================
# SCOPE: API LAYER
# Description: Form schemas (login and demographics) with input validation.
# ============================================================================
"""
Pydantic schemas for the portal forms.

Field errors surface through the request-validation handler as
``{"error": ..., "details": [{"field", "message"}]}``.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from patient_portal.domains.patients.domain import Demographics, Insurance, SexAtBirth

MAX_AGE_YEARS = 120


class LoginForm(BaseModel):
    """Sign-in form. The password is not verified."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr = Field(..., description="Email used to resolve the patient")
    password: str = Field(..., min_length=1, description="Password (required, not verified)")


class DemographicsForm(BaseModel):
    """Demographics collected during onboarding."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    dob: date = Field(..., description="Date of birth (YYYY-MM-DD)")
    sex_at_birth: SexAtBirth = Field(SexAtBirth.PREFER_NOT_TO_SAY)
    insurance_provider: str = Field(..., min_length=1, max_length=200)
    insurance_member_id: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=30)

    @field_validator("dob")
    @classmethod
    def validate_dob(cls, v: date) -> date:
        today = date.today()
        if v > today:
            raise ValueError("Please enter a valid date of birth")
        age = today.year - v.year - ((today.month, today.day) < (v.month, v.day))
        if age > MAX_AGE_YEARS:
            raise ValueError("Please enter a valid date of birth")
        return v

    @field_validator("phone")
    @classmethod
    def empty_phone_is_none(cls, v: str | None) -> str | None:
        return v or None

    def to_demographics(self) -> Demographics:
        return Demographics(
            dob=self.dob.isoformat(),
            sex_at_birth=self.sex_at_birth,
            insurance=Insurance(provider=self.insurance_provider, member_id=self.insurance_member_id),
            phone=self.phone,
        )
