"""
Portal flow endpoints.

``/portal/route`` tells the client where the signed-in user belongs
(onboarding or hub), ``/portal/demographics`` runs the onboarding saga and
``/portal/hub`` loads the dashboard.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from patient_portal.api.dependencies import (
    get_current_session,
    get_onboarding_service,
    get_optional_session,
    get_portal_router,
)
from patient_portal.api.schemas import DemographicsForm
from patient_portal.domains.patients.application import (
    OnboardingRequest,
    OnboardingService,
    PortalRouter,
    RouteState,
)
from patient_portal.domains.sessions import Session
from patient_portal.integrations.healthie.exceptions import GraphQLError, NetworkError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/route")
async def resolve_route(
    session: Session | None = Depends(get_optional_session),  # noqa: B008
    portal: PortalRouter = Depends(get_portal_router),  # noqa: B008
):
    """Resolve the session to UNAUTHENTICATED, RESOLVING, ONBOARDING or DASHBOARD."""
    decision = await portal.resolve(session)
    return {"route": decision.to_dict()}


@router.post("/demographics")
async def submit_demographics(
    form: DemographicsForm,
    session: Session = Depends(get_current_session),  # noqa: B008
    onboarding: OnboardingService = Depends(get_onboarding_service),  # noqa: B008
    portal: PortalRouter = Depends(get_portal_router),  # noqa: B008
):
    """
    Run (or resume) onboarding for the signed-in email.

    Healthie field messages surface as 400 with per-field details. Upstream
    failures return 502 with the saga state so the client can retry; a retry
    after creation resumes at the demographic update.
    """
    request = OnboardingRequest(
        email=session.email,
        first_name=form.first_name,
        last_name=form.last_name,
        phone=form.phone,
        demographics=form.to_demographics(),
    )
    try:
        saga = await onboarding.run(request)
    except (NetworkError, GraphQLError) as e:
        saga = onboarding.get(session.email)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "error": "An error occurred while saving your information. Please try again.",
                "retryable": True,
                "onboarding": saga.to_dict() if saga else None,
                "code": e.code,
            },
        )

    decision = await portal.resolve(session)
    return {"onboarding": saga.to_dict(), "route": decision.to_dict()}


@router.get("/onboarding")
async def onboarding_status(
    session: Session = Depends(get_current_session),  # noqa: B008
    onboarding: OnboardingService = Depends(get_onboarding_service),  # noqa: B008
):
    saga = onboarding.get(session.email)
    return {"onboarding": saga.to_dict() if saga else None}


@router.get("/hub")
async def load_hub(
    session: Session = Depends(get_current_session),  # noqa: B008
    portal: PortalRouter = Depends(get_portal_router),  # noqa: B008
):
    """Patient, forms and appointments for the dashboard."""
    decision = await portal.resolve(session)

    if decision.state == RouteState.UNAUTHENTICATED:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
    if decision.state == RouteState.RESOLVING:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": decision.error, "retryable": True, "route": decision.to_dict()},
        )
    if decision.state == RouteState.ONBOARDING or decision.patient is None:
        raise NotFoundError("No patient record matches this session")

    dashboard = await portal.load_dashboard(decision.patient)
    return {"hub": dashboard.to_dict()}
