"""
Tests for the portal routing controller.
"""

import asyncio

import pytest

from patient_portal.domains.patients.application import (
    OnboardingService,
    PortalRouter,
    RouteState,
)
from patient_portal.domains.sessions import SessionManager
from patient_portal.integrations.healthie.exceptions import ConfigurationError, GraphQLError, NetworkError


@pytest.fixture
def sessions(clock) -> SessionManager:
    return SessionManager(ttl_hours=24, clock=clock)


@pytest.fixture
def router(directory, sessions) -> PortalRouter:
    return PortalRouter(directory, sessions)


class TestResolve:
    @pytest.mark.asyncio
    async def test_no_session_is_unauthenticated(self, router, directory):
        decision = await router.resolve(None)

        assert decision.state == RouteState.UNAUTHENTICATED
        assert decision.redirect_to == "/login"
        directory.find_by_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existing_patient_goes_to_dashboard(self, router, sessions, directory, patient):
        directory.find_by_email.return_value = patient
        session = sessions.sign_in("JANE.DOE@example.com", "pw")

        decision = await router.resolve(session)

        assert decision.state == RouteState.DASHBOARD
        assert decision.redirect_to == "/hub"
        assert decision.patient is patient
        directory.find_by_email.assert_awaited_once_with("jane.doe@example.com")

    @pytest.mark.asyncio
    async def test_unknown_patient_goes_to_onboarding(self, router, sessions):
        session = sessions.sign_in("new@example.com", "pw")

        decision = await router.resolve(session)

        assert decision.state == RouteState.ONBOARDING
        assert decision.redirect_to == "/intake/demographics"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [NetworkError("down", status_code=503), GraphQLError("bad")])
    async def test_lookup_error_stays_resolving_with_retry(self, router, sessions, directory, error):
        directory.find_by_email.side_effect = error
        session = sessions.sign_in("jane.doe@example.com", "pw")

        decision = await router.resolve(session)

        assert decision.state == RouteState.RESOLVING
        assert decision.retryable is True
        assert decision.redirect_to is None
        assert decision.error == "We could not load your information. Please try again."

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, router, sessions, directory):
        directory.find_by_email.side_effect = ConfigurationError("missing key")
        session = sessions.sign_in("jane.doe@example.com", "pw")

        with pytest.raises(ConfigurationError):
            await router.resolve(session)

    @pytest.mark.asyncio
    async def test_signed_out_session_is_unauthenticated(self, router, sessions, directory):
        session = sessions.sign_in("jane.doe@example.com", "pw")
        sessions.sign_out(session.session_id)

        decision = await router.resolve(session)

        assert decision.state == RouteState.UNAUTHENTICATED
        directory.find_by_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_result_for_replaced_session_is_discarded(self, router, sessions, directory, patient):
        """A sign-in as someone else while the lookup is in flight wins."""
        session_a = sessions.sign_in("jane.doe@example.com", "pw")
        lookup_started = asyncio.Event()
        release = asyncio.Event()

        async def slow_lookup(email):
            lookup_started.set()
            await release.wait()
            return patient

        directory.find_by_email.side_effect = slow_lookup

        task = asyncio.create_task(router.resolve(session_a))
        await lookup_started.wait()
        sessions.sign_out(session_a.session_id)
        sessions.sign_in("other@example.com", "pw")
        release.set()
        decision = await task

        assert decision.state == RouteState.UNAUTHENTICATED
        assert decision.patient is None

    @pytest.mark.asyncio
    async def test_expired_session_is_unauthenticated(self, router, sessions, clock):
        from datetime import timedelta

        session = sessions.sign_in("jane.doe@example.com", "pw")
        clock.now += timedelta(hours=25)

        decision = await router.resolve(session)

        assert decision.state == RouteState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_completed_onboarding_bridges_index_lag(self, directory, sessions, patient):
        onboarding = OnboardingService(directory, confirm_indexing=False)
        router = PortalRouter(directory, sessions, onboarding)
        session = sessions.sign_in(patient.email, "pw")
        request = _onboarding_request(patient.email)

        await onboarding.run(request)
        directory.find_by_email.return_value = None  # still not searchable

        decision = await router.resolve(session)

        assert decision.state == RouteState.DASHBOARD
        assert decision.patient is patient

    @pytest.mark.asyncio
    async def test_to_dict(self, router, sessions, directory, patient):
        directory.find_by_email.return_value = patient
        session = sessions.sign_in(patient.email, "pw")

        data = (await router.resolve(session)).to_dict()

        assert data["state"] == "dashboard"
        assert data["redirect_to"] == "/hub"
        assert data["patient"]["email"] == "jane.doe@example.com"


class TestLoadDashboard:
    @pytest.mark.asyncio
    async def test_loads_forms_and_appointments(self, router, directory, patient):
        dashboard = await router.load_dashboard(patient)

        assert [f.id for f in dashboard.forms] == ["form-1", "form-2"]
        assert [a.id for a in dashboard.appointments] == ["appt-1"]
        directory.list_forms.assert_awaited_once_with("patient-123")
        directory.list_appointments.assert_awaited_once_with("patient-123")

    @pytest.mark.asyncio
    async def test_empty_lists_are_valid(self, router, directory, patient):
        directory.list_forms.return_value = []
        directory.list_appointments.return_value = []

        dashboard = await router.load_dashboard(patient)

        assert dashboard.forms == []
        assert dashboard.appointments == []


def _onboarding_request(email):
    from patient_portal.domains.patients.application import OnboardingRequest
    from patient_portal.domains.patients.domain import Demographics, SexAtBirth

    return OnboardingRequest(
        email=email,
        first_name="Jane",
        last_name="Doe",
        demographics=Demographics(dob="1990-04-12", sex_at_birth=SexAtBirth.FEMALE),
    )
