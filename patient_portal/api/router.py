from fastapi import APIRouter

from patient_portal.api.routes import integrations, patients, portal, records, session

api_router = APIRouter()

# API routes (all have /api/v1 prefix from the app factory)
api_router.include_router(session.router, prefix="/session", tags=["session"])
api_router.include_router(portal.router, prefix="/portal", tags=["portal"])
api_router.include_router(patients.router, prefix="/patients", tags=["patients"])
api_router.include_router(records.router, tags=["records"])
api_router.include_router(integrations.router, prefix="/integrations", tags=["integrations"])
