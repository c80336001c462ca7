"""API request schemas."""

from .forms import DemographicsForm, LoginForm
from .patients import CreatePatientRequest, InsuranceSchema, UpdateDemographicsRequest

__all__ = [
    "CreatePatientRequest",
    "DemographicsForm",
    "InsuranceSchema",
    "LoginForm",
    "UpdateDemographicsRequest",
]
