"""Patient portal entities.

Records mirrored from the Healthie EHR. The portal never persists them; they
live for the duration of a request (or an onboarding saga).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address.

    Healthie compares emails case-sensitively, so every lookup, create and
    update goes through this first.
    """
    return (email or "").strip().lower()


class SexAtBirth(str, Enum):
    """Sex assigned at birth, as collected by the demographics form."""

    FEMALE = "female"
    MALE = "male"
    INTERSEX = "intersex"
    UNKNOWN = "unknown"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"

    @classmethod
    def from_external(cls, value: str | None) -> "SexAtBirth | None":
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class FormStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class Insurance:
    provider: str
    member_id: str

    def to_dict(self) -> dict[str, str]:
        return {"provider": self.provider, "member_id": self.member_id}


@dataclass
class Patient:
    """Patient record held by Healthie.

    Keyed remotely by ``id`` and looked up by normalized ``email``.
    """

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    dob: str | None = None  # YYYY-MM-DD
    sex_at_birth: SexAtBirth | None = None
    insurance: Insurance | None = None
    phone: str | None = None

    def __post_init__(self) -> None:
        self.email = normalize_email(self.email)
        if not self.email:
            raise ValueError("A patient cannot be built without an email")

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    @classmethod
    def from_external_data(cls, data: dict[str, Any]) -> "Patient":
        """Build a Patient from a Healthie ``User`` payload.

        Args:
            data: User fields as returned by the GraphQL API (snake_case).

        Returns:
            New Patient instance.

        Raises:
            ValueError: If the payload carries no email.
        """
        return cls(
            id=str(data.get("id") or ""),
            email=data.get("email") or "",
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            dob=data.get("dob") or None,
            sex_at_birth=SexAtBirth.from_external(data.get("sex")),
            phone=data.get("phone_number") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "dob": self.dob,
            "sex_at_birth": self.sex_at_birth.value if self.sex_at_birth else None,
            "insurance": self.insurance.to_dict() if self.insurance else None,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class FormTask:
    """Intake form requested from the patient (read only)."""

    id: str
    title: str
    status: FormStatus = FormStatus.PENDING

    @classmethod
    def from_external_data(cls, data: dict[str, Any]) -> "FormTask":
        form = data.get("custom_module_form") or {}
        status = str(data.get("status") or "").lower()
        return cls(
            id=str(data.get("id") or ""),
            title=form.get("name") or data.get("name") or "Untitled form",
            status=FormStatus.COMPLETED if status in ("complete", "completed") else FormStatus.PENDING,
        )

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "title": self.title, "status": self.status.value}


@dataclass(frozen=True)
class Appointment:
    """Upcoming appointment (read only)."""

    id: str
    starts_at: str  # ISO-8601

    @classmethod
    def from_external_data(cls, data: dict[str, Any]) -> "Appointment":
        return cls(id=str(data.get("id") or ""), starts_at=data.get("date") or data.get("start") or "")

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "starts_at": self.starts_at}


@dataclass(frozen=True)
class NewPatient:
    """Input for the first onboarding step (client creation)."""

    email: str
    first_name: str
    last_name: str
    phone: str | None = None


@dataclass(frozen=True)
class Demographics:
    """Input for the second onboarding step (demographic update).

    Healthie does not accept a date of birth at creation time, hence the
    separate update.
    """

    dob: str
    sex_at_birth: SexAtBirth
    insurance: Insurance | None = None
    phone: str | None = None


@dataclass(frozen=True)
class FieldMessage:
    """One field-level validation message reported by Healthie."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class DashboardData:
    patient: Patient
    forms: list[FormTask] = field(default_factory=list)
    appointments: list[Appointment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "patient": self.patient.to_dict(),
            "forms": [form.to_dict() for form in self.forms],
            "appointments": [appointment.to_dict() for appointment in self.appointments],
        }
