"""
Dependency Injection Container

Wires the Healthie clients, sessions, onboarding and routing together.
"""

import logging

from patient_portal.config.settings import Settings, get_settings
from patient_portal.domains.patients.application import OnboardingService, PortalRouter
from patient_portal.domains.sessions import SessionManager
from patient_portal.integrations.healthie import HealthieGraphQLClient, HealthiePatientClient

logger = logging.getLogger(__name__)


class DependencyContainer:
    """
    Dependency Injection Container.

    Single Responsibility: Create and wire application dependencies.
    Singleton Pattern: one GraphQL client (connection pool), one session
    store and one onboarding registry per process.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

        self._graphql: HealthieGraphQLClient | None = None
        self._patients: HealthiePatientClient | None = None
        self._sessions: SessionManager | None = None
        self._onboarding: OnboardingService | None = None

        logger.info("DependencyContainer initialized")

    def get_graphql_client(self) -> HealthieGraphQLClient:
        if self._graphql is None:
            self._graphql = HealthieGraphQLClient.from_settings(self.settings)
            if not self._graphql.is_configured:
                logger.warning("HEALTHIE_API_KEY is not set; every Healthie call will fail")
        return self._graphql

    def get_patient_directory(self) -> HealthiePatientClient:
        if self._patients is None:
            self._patients = HealthiePatientClient(
                self.get_graphql_client(),
                provider_id=self.settings.HEALTHIE_PROVIDER_ID,
            )
        return self._patients

    def get_session_manager(self) -> SessionManager:
        if self._sessions is None:
            self._sessions = SessionManager(ttl_hours=self.settings.SESSION_TTL_HOURS)
        return self._sessions

    def get_onboarding_service(self) -> OnboardingService:
        if self._onboarding is None:
            self._onboarding = OnboardingService(
                self.get_patient_directory(),
                confirm_indexing=self.settings.HEALTHIE_CONFIRM_INDEXING,
                lookup_attempts=self.settings.HEALTHIE_LOOKUP_ATTEMPTS,
                lookup_initial_delay=self.settings.HEALTHIE_LOOKUP_INITIAL_DELAY,
                lookup_delay_increment=self.settings.HEALTHIE_LOOKUP_DELAY_INCREMENT,
                ttl_hours=self.settings.SESSION_TTL_HOURS,
            )
        return self._onboarding

    def get_portal_router(self) -> PortalRouter:
        # Stateless; cheap to build per request
        return PortalRouter(
            self.get_patient_directory(),
            self.get_session_manager(),
            self.get_onboarding_service(),
        )

    async def close(self) -> None:
        if self._graphql is not None:
            await self._graphql.close()


_container: DependencyContainer | None = None


def get_container() -> DependencyContainer:
    """Get the process-wide container (created lazily)."""
    global _container
    if _container is None:
        _container = DependencyContainer()
    return _container


def reset_container() -> None:
    """Drop the process-wide container (tests)."""
    global _container
    _container = None
