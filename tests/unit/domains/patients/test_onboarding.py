"""
Tests for the two-step onboarding saga.

Verifies:
- Creation success never depends on the post-create lookup
- A failure between create and update is visible in the saga
- Retrying after an update failure resumes without a second create
"""

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest

from patient_portal.domains.patients.application import (
    OnboardingRequest,
    OnboardingService,
    OnboardingState,
)
from patient_portal.domains.patients.domain import Demographics, Insurance, Patient, SexAtBirth
from patient_portal.integrations.healthie.exceptions import NetworkError, ValidationError


@pytest.fixture
def demographics() -> Demographics:
    return Demographics(
        dob="1990-04-12",
        sex_at_birth=SexAtBirth.FEMALE,
        insurance=Insurance(provider="Acme Health", member_id="M-100"),
    )


@pytest.fixture
def request_(demographics) -> OnboardingRequest:
    return OnboardingRequest(
        email="New.Patient@Example.com",
        first_name="New",
        last_name="Patient",
        demographics=demographics,
    )


@pytest.fixture
def created() -> Patient:
    return Patient(id="created-1", email="new.patient@example.com", first_name="New", last_name="Patient")


@pytest.fixture
def completed(created, demographics) -> Patient:
    return Patient(
        id=created.id,
        email=created.email,
        first_name="New",
        last_name="Patient",
        dob=demographics.dob,
        sex_at_birth=demographics.sex_at_birth,
        insurance=demographics.insurance,
    )


class TestOnboardingService:
    @pytest.mark.asyncio
    async def test_creates_then_updates(self, directory, request_, created, completed):
        directory.create.return_value = created
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=False)

        saga = await service.run(request_)

        assert saga.state == OnboardingState.COMPLETED
        assert saga.patient is completed
        new_patient = directory.create.await_args.args[0]
        assert new_patient.email == "new.patient@example.com"
        directory.update_demographics.assert_awaited_once_with("created-1", request_.demographics)

    @pytest.mark.asyncio
    async def test_reuses_existing_patient(self, directory, request_, patient):
        directory.find_by_email.return_value = patient
        service = OnboardingService(directory, confirm_indexing=False)

        saga = await service.run(request_)

        assert saga.is_completed
        assert saga.indexed is True
        directory.create.assert_not_awaited()
        assert directory.update_demographics.await_args.args[0] == patient.id

    @pytest.mark.asyncio
    async def test_empty_lookup_after_create_is_not_a_failure(self, directory, request_, created, completed):
        """The index may lag; success comes from createClient alone."""
        directory.create.return_value = created
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=True, lookup_attempts=2)

        with patch(
            "patient_portal.domains.patients.application.onboarding.wait_until_indexed",
            return_value=None,
        ) as mock_wait:
            saga = await service.run(request_)

        mock_wait.assert_awaited_once()
        assert saga.state == OnboardingState.COMPLETED
        assert saga.indexed is False
        assert saga.patient_id == "created-1"

    @pytest.mark.asyncio
    async def test_indexed_flag_set_when_lookup_confirms(self, directory, request_, created, completed):
        directory.create.return_value = created
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=True)

        with patch(
            "patient_portal.domains.patients.application.onboarding.wait_until_indexed",
            return_value=created,
        ):
            saga = await service.run(request_)

        assert saga.indexed is True

    @pytest.mark.asyncio
    async def test_update_failure_leaves_created_pending_state(self, directory, request_, created):
        directory.create.return_value = created
        directory.update_demographics.side_effect = NetworkError("Healthie API error: 503", status_code=503)
        service = OnboardingService(directory, confirm_indexing=False)

        with pytest.raises(NetworkError):
            await service.run(request_)

        saga = service.get(request_.email)
        assert saga is not None
        assert saga.state == OnboardingState.FAILED
        assert saga.failed_step == OnboardingState.CREATED_PENDING_DEMOGRAPHICS
        assert saga.patient_id == "created-1"
        assert "503" in saga.last_error

    @pytest.mark.asyncio
    async def test_retry_after_update_failure_does_not_create_twice(self, directory, request_, created, completed):
        directory.create.return_value = created
        directory.update_demographics.side_effect = [NetworkError("timeout", timeout=True), completed]
        service = OnboardingService(directory, confirm_indexing=False)

        with pytest.raises(NetworkError):
            await service.run(request_)
        saga = await service.run(request_)

        assert saga.state == OnboardingState.COMPLETED
        assert saga.failed_step is None
        assert directory.create.await_count == 1
        assert directory.update_demographics.await_count == 2

    @pytest.mark.asyncio
    async def test_create_failure_retries_from_start(self, directory, request_, created, completed):
        directory.create.side_effect = [NetworkError("Healthie API error: 500", status_code=500), created]
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=False)

        with pytest.raises(NetworkError):
            await service.run(request_)
        assert service.get(request_.email).failed_step == OnboardingState.STARTED

        saga = await service.run(request_)

        assert saga.is_completed
        assert directory.create.await_count == 2

    @pytest.mark.asyncio
    async def test_validation_error_on_update_is_recorded(self, directory, request_, created):
        from patient_portal.domains.patients.domain import FieldMessage

        directory.create.return_value = created
        directory.update_demographics.side_effect = ValidationError([FieldMessage("dob", "is invalid")])
        service = OnboardingService(directory, confirm_indexing=False)

        with pytest.raises(ValidationError):
            await service.run(request_)

        assert service.get(request_.email).failed_step == OnboardingState.CREATED_PENDING_DEMOGRAPHICS

    @pytest.mark.asyncio
    async def test_completed_patient_only_after_completion(self, directory, request_, created, completed):
        directory.create.return_value = created
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=False)

        assert service.completed_patient(request_.email) is None
        await service.run(request_)

        assert service.completed_patient("NEW.PATIENT@example.com") is completed

    @pytest.mark.asyncio
    async def test_saga_to_dict(self, directory, request_, created, completed):
        directory.create.return_value = created
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=False)

        data = (await service.run(request_)).to_dict()

        assert data["state"] == "completed"
        assert data["patient"]["insurance"] == {"provider": "Acme Health", "member_id": "M-100"}
        assert data["error"] is None


class TestOnboardingConcurrency:
    @pytest.mark.asyncio
    async def test_double_submit_creates_one_client(self, directory, request_, created, completed):
        async def slow_create(new_patient):
            await asyncio.sleep(0.01)
            return created

        directory.create.side_effect = slow_create
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=False)

        first, second = await asyncio.gather(service.run(request_), service.run(request_))

        assert directory.create.await_count == 1
        assert first.is_completed and second.is_completed
        assert second.patient_id == "created-1"

    @pytest.mark.asyncio
    async def test_resubmission_after_completion_only_updates(self, directory, request_, created, completed):
        directory.create.return_value = created
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=False)

        await service.run(request_)
        saga = await service.run(request_)

        assert saga.is_completed
        assert directory.create.await_count == 1
        assert directory.update_demographics.await_count == 2
        assert directory.update_demographics.await_args.args[0] == "created-1"


class TestOnboardingExpiry:
    @pytest.mark.asyncio
    async def test_saga_expires_after_ttl(self, directory, request_, created, completed, clock):
        directory.create.return_value = created
        directory.update_demographics.return_value = completed
        service = OnboardingService(directory, confirm_indexing=False, ttl_hours=24, clock=clock)

        await service.run(request_)
        clock.now += timedelta(hours=23)
        assert service.completed_patient(request_.email) is completed

        clock.now += timedelta(hours=1)
        assert service.get(request_.email) is None
        assert service.completed_patient(request_.email) is None

    @pytest.mark.asyncio
    async def test_expired_sagas_are_evicted_on_next_run(self, directory, demographics, clock):
        service = OnboardingService(directory, confirm_indexing=False, ttl_hours=24, clock=clock)
        for i in range(50):
            await service.run(
                OnboardingRequest(
                    email=f"patient{i}@example.com", first_name="P", last_name=str(i), demographics=demographics
                )
            )

        clock.now += timedelta(hours=48)
        await service.run(
            OnboardingRequest(email="late@example.com", first_name="L", last_name="Late", demographics=demographics)
        )

        assert list(service._sagas) == ["late@example.com"]
        assert list(service._locks) == ["late@example.com"]
