"""
Shared pytest fixtures for all tests.

Provides an in-memory patient directory double, settings for the test
environment and a FastAPI TestClient wired to both.
"""

import os
from collections.abc import Generator
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

# Ensure test environment (before settings are read)
os.environ["ENVIRONMENT"] = "test"
os.environ["HEALTHIE_API_KEY"] = "test-api-key"
os.environ["HEALTHIE_PROVIDER_ID"] = "provider-1"
os.environ["HEALTHIE_CONFIRM_INDEXING"] = "false"

from patient_portal.api.dependencies import get_di_container  # noqa: E402
from patient_portal.config.settings import Settings  # noqa: E402
from patient_portal.core.app_factory import create_app  # noqa: E402
from patient_portal.core.container import DependencyContainer, reset_container  # noqa: E402
from patient_portal.domains.patients.domain import (  # noqa: E402
    Appointment,
    FormStatus,
    FormTask,
    Patient,
    SexAtBirth,
)

API_V1_STR = "/api/v1"


# ============================================================================
# DOMAIN FIXTURES
# ============================================================================


@pytest.fixture
def patient() -> Patient:
    """Sample patient as Healthie returns it."""
    return Patient(
        id="patient-123",
        email="Jane.Doe@Example.com",
        first_name="Jane",
        last_name="Doe",
        dob="1990-04-12",
        sex_at_birth=SexAtBirth.FEMALE,
    )


@pytest.fixture
def forms() -> list[FormTask]:
    return [
        FormTask(id="form-1", title="Intake questionnaire", status=FormStatus.PENDING),
        FormTask(id="form-2", title="Consent", status=FormStatus.COMPLETED),
    ]


@pytest.fixture
def appointments() -> list[Appointment]:
    return [Appointment(id="appt-1", starts_at="2030-01-15T10:00:00Z")]


@pytest.fixture
def directory(patient, forms, appointments) -> AsyncMock:
    """
    Patient directory double.

    Defaults to "no patient matches"; tests set return values or side
    effects on the individual operations.
    """
    mock = AsyncMock()
    mock.find_by_email.return_value = None
    mock.create.return_value = patient
    mock.update_demographics.return_value = patient
    mock.list_forms.return_value = forms
    mock.list_appointments.return_value = appointments
    mock.ping.return_value = True
    return mock


class FakeClock:
    """Settable clock for session expiry tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2030, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    """Recorded delays of the fake sleep below."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


# ============================================================================
# APPLICATION FIXTURES
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        HEALTHIE_API_KEY="test-api-key",
        HEALTHIE_PROVIDER_ID="provider-1",
        HEALTHIE_CONFIRM_INDEXING=False,
    )


@pytest.fixture
def container(settings, directory) -> DependencyContainer:
    """Container whose patient directory is the test double."""
    container = DependencyContainer(settings)
    container._patients = directory
    return container


@pytest.fixture
def app(settings, container):
    """FastAPI app with the container overridden."""
    reset_container()
    application = create_app(settings)
    application.dependency_overrides[get_di_container] = lambda: container
    yield application
    application.dependency_overrides.clear()
    reset_container()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client that returns 500 responses instead of raising."""
    yield TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def signed_in(client) -> dict[str, str]:
    """Headers for a signed-in session."""
    response = client.post(
        f"{API_V1_STR}/session",
        json={"email": "jane.doe@example.com", "password": "secret"},
    )
    assert response.status_code == 201
    return {"X-Session-ID": response.json()["session"]["session_id"]}
