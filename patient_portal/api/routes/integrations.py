"""
Integration status endpoints.
"""

from fastapi import APIRouter, Depends

from patient_portal.api.dependencies import get_di_container
from patient_portal.core.container import DependencyContainer

router = APIRouter()


@router.get("/healthie/status")
async def healthie_status(
    container: DependencyContainer = Depends(get_di_container),  # noqa: B008
):
    """Check that Healthie is configured and accepts our credentials."""
    configured = container.get_graphql_client().is_configured
    reachable = await container.get_patient_directory().ping() if configured else False
    return {"healthie": {"configured": configured, "reachable": reachable}}
