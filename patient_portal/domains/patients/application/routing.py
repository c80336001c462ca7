# ============================================================================
# SCOPE: APPLICATION LAYER (Patients)
# Description: Routing controller deciding between onboarding and the hub.
# ============================================================================
"""Portal Routing Controller.

State machine::

    UNAUTHENTICATED -> RESOLVING -> ONBOARDING | DASHBOARD

``find_by_email`` is the only transition gate out of RESOLVING. A lookup
error keeps the user in RESOLVING with a retry affordance; there is no
automatic transition. Finishing onboarding triggers a new resolution which
should land on DASHBOARD.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from patient_portal.integrations.healthie.exceptions import GraphQLError, NetworkError

from ..domain import DashboardData, Patient

if TYPE_CHECKING:
    from patient_portal.domains.sessions import Session, SessionManager

    from .onboarding import OnboardingService
    from .ports import IPatientDirectory

logger = logging.getLogger(__name__)


class RouteState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    RESOLVING = "resolving"
    ONBOARDING = "onboarding"
    DASHBOARD = "dashboard"


@dataclass(frozen=True)
class RoutingDecision:
    state: RouteState
    patient: Patient | None = None
    error: str | None = None
    retryable: bool = False

    @property
    def redirect_to(self) -> str | None:
        return {
            RouteState.UNAUTHENTICATED: "/login",
            RouteState.ONBOARDING: "/intake/demographics",
            RouteState.DASHBOARD: "/hub",
        }.get(self.state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "redirect_to": self.redirect_to,
            "patient": self.patient.to_dict() if self.patient else None,
            "error": self.error,
            "retryable": self.retryable,
        }


class PortalRouter:
    """Resolves a session to the page the user should see.

    The session is passed in explicitly; the controller holds no per-user
    state of its own.
    """

    def __init__(
        self,
        directory: "IPatientDirectory",
        sessions: "SessionManager",
        onboarding: "OnboardingService | None" = None,
    ) -> None:
        self._directory = directory
        self._sessions = sessions
        self._onboarding = onboarding

    async def resolve(self, session: "Session | None") -> RoutingDecision:
        """Decide where ``session`` goes.

        ConfigurationError is not caught: it is an operational failure, not
        something the user can retry.
        """
        if session is None or not self._sessions.is_current(session):
            return RoutingDecision(RouteState.UNAUTHENTICATED)

        try:
            patient = await self._directory.find_by_email(session.email)
        except (NetworkError, GraphQLError) as e:
            logger.warning(f"Patient resolution failed, staying in RESOLVING: {e}")
            return RoutingDecision(
                RouteState.RESOLVING,
                error="We could not load your information. Please try again.",
                retryable=True,
            )

        # Discard results for a session signed out or replaced meanwhile
        if not self._sessions.is_current(session):
            logger.info("Discarding stale resolution result")
            return RoutingDecision(RouteState.UNAUTHENTICATED)

        if patient is not None:
            return RoutingDecision(RouteState.DASHBOARD, patient=patient)

        # Search index may lag right after onboarding
        onboarded = self._onboarding.completed_patient(session.email) if self._onboarding else None
        if onboarded is not None:
            logger.info(f"Patient {onboarded.id} not searchable yet, using onboarding result")
            return RoutingDecision(RouteState.DASHBOARD, patient=onboarded)

        return RoutingDecision(RouteState.ONBOARDING)

    async def load_dashboard(self, patient: Patient) -> DashboardData:
        """Fetch forms and appointments concurrently; either may finish first."""
        forms, appointments = await asyncio.gather(
            self._directory.list_forms(patient.id),
            self._directory.list_appointments(patient.id),
        )
        return DashboardData(patient=patient, forms=forms, appointments=appointments)
