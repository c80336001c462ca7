"""
Application entry point.

Configures logging and error tracking, then delegates app construction to
the factory.
"""

import logging
from typing import Any

import sentry_sdk

from patient_portal.api.dependencies import SESSION_HEADER
from patient_portal.config.settings import get_settings
from patient_portal.core.app_factory import create_app

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)
settings = get_settings()

SCRUBBED_HEADERS = frozenset({SESSION_HEADER.lower(), "authorization", "cookie"})


def scrub_sentry_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """Drop session and credential headers and the request body before an event leaves the process."""
    request = event.get("request")
    if isinstance(request, dict):
        headers = request.get("headers")
        if isinstance(headers, dict):
            request["headers"] = {k: v for k, v in headers.items() if k.lower() not in SCRUBBED_HEADERS}
        request.pop("data", None)
        request.pop("query_string", None)
    return event


# Sentry only when a DSN is configured; never send PII
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        send_default_pii=False,
        environment=settings.ENVIRONMENT,
        before_send=scrub_sentry_event,
    )

app = create_app()

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")
    uvicorn.run(
        "patient_portal.main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.DEBUG,
    )
