# ============================================================================
# SCOPE: API LAYER
# Description: FastAPI dependencies (container, services, session).
# ============================================================================
import logging

from fastapi import Depends, Header, HTTPException, status

from patient_portal.core.container import DependencyContainer, get_container
from patient_portal.domains.patients.application import IPatientDirectory, OnboardingService, PortalRouter
from patient_portal.domains.sessions import Session, SessionManager

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-ID"


def get_di_container() -> DependencyContainer:
    """Get Dependency Injection Container singleton."""
    return get_container()


def get_patient_directory(
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> IPatientDirectory:
    return container.get_patient_directory()


def get_session_manager(
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> SessionManager:
    return container.get_session_manager()


def get_onboarding_service(
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> OnboardingService:
    return container.get_onboarding_service()


def get_portal_router(
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
) -> PortalRouter:
    return container.get_portal_router()


def get_optional_session(
    x_session_id: str | None = Header(None, alias=SESSION_HEADER),
    sessions: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> Session | None:
    """Session for the request, or None when missing or expired."""
    return sessions.get(x_session_id)


def get_current_session(
    session: Session | None = Depends(get_optional_session),  # noqa: B008
) -> Session:
    """Require a live session; protected actions redirect to login otherwise."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
        )
    return session
