# ============================================================================
# SCOPE: APPLICATION LAYER (Patients)
# Description: Application layer exports.
# ============================================================================
"""Application layer for the patients domain."""

from .onboarding import OnboardingRequest, OnboardingSaga, OnboardingService, OnboardingState
from .ports import IPatientDirectory
from .resolution import wait_until_indexed
from .routing import PortalRouter, RouteState, RoutingDecision

__all__ = [
    # Ports
    "IPatientDirectory",
    # Onboarding
    "OnboardingRequest",
    "OnboardingSaga",
    "OnboardingService",
    "OnboardingState",
    # Resolution
    "wait_until_indexed",
    # Routing
    "PortalRouter",
    "RouteState",
    "RoutingDecision",
]
