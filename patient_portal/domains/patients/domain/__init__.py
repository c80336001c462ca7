"""Domain layer for the patients domain."""

from .entities import (
    Appointment,
    DashboardData,
    Demographics,
    FieldMessage,
    FormStatus,
    FormTask,
    Insurance,
    NewPatient,
    Patient,
    SexAtBirth,
    normalize_email,
)

__all__ = [
    "Appointment",
    "DashboardData",
    "Demographics",
    "FieldMessage",
    "FormStatus",
    "FormTask",
    "Insurance",
    "NewPatient",
    "Patient",
    "SexAtBirth",
    "normalize_email",
]
