# ============================================================================
# SCOPE: INTEGRATION (Healthie)
# Description: GraphQL transport for the Healthie API with retry on reads.
# ============================================================================
"""
Healthie GraphQL Client.

Single Responsibility: POST GraphQL documents to Healthie and classify the
outcome into the integration error taxonomy.

Error classification:
- Missing API key: ConfigurationError (no request is sent)
- Timeout / connection failure: NetworkError (retryable)
- HTTP 429 / 5xx: NetworkError (retryable)
- Other non-2xx: NetworkError (not retryable)
- ``errors`` in the GraphQL payload: GraphQLError

Only read queries are retried (``retry=True``). Mutations are sent once
because createClient is not idempotent.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from patient_portal.config.settings import Settings, get_settings

from .exceptions import ConfigurationError, GraphQLError, NetworkError

logger = logging.getLogger(__name__)

# HTTP status codes worth retrying for read queries
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, NetworkError) and exc.retryable


class HealthieGraphQLClient:
    """
    Async GraphQL client for Healthie.

    Uses a persistent httpx.AsyncClient for connection reuse. The API key is
    sent as ``Authorization: <scheme> <key>`` together with
    ``AuthorizationSource: API``; the same scheme is used for every call.

    Example:
        async with HealthieGraphQLClient.from_settings() as client:
            data = await client.execute(FIND_USERS_BY_EMAIL, {"email": email}, retry=True)
    """

    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 3

    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        auth_scheme: str = "Basic",
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_wait: Any = None,
    ) -> None:
        """
        Initialize GraphQL client.

        Args:
            api_url: Healthie GraphQL endpoint
            api_key: Healthie API key; calls fail with ConfigurationError when empty
            auth_scheme: "Basic" or "Bearer"
            timeout: Request timeout in seconds
            max_retries: Total attempts for read queries
            retry_wait: tenacity wait strategy (exponential with jitter by default)
        """
        self._api_url = api_url
        self._api_key = api_key or ""
        self._auth_scheme = auth_scheme
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._retry_wait = retry_wait or wait_exponential_jitter(initial=0.5, max=5.0, jitter=1.0)
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "HealthieGraphQLClient":
        settings = settings or get_settings()
        return cls(
            api_url=settings.HEALTHIE_API_URL,
            api_key=settings.HEALTHIE_API_KEY,
            auth_scheme=settings.HEALTHIE_AUTH_SCHEME,
            timeout=settings.HEALTHIE_API_TIMEOUT,
            max_retries=settings.HEALTHIE_MAX_RETRIES,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def initialize(self) -> None:
        """Initialize persistent HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HealthieGraphQLClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            await self.initialize()
        return self._client  # type: ignore

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with authorization."""
        return {
            "Authorization": f"{self._auth_scheme} {self._api_key}",
            "AuthorizationSource": "API",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation: str = "query",
        retry: bool = False,
    ) -> dict[str, Any]:
        """
        Execute a GraphQL document and return its ``data`` object.

        Args:
            query: GraphQL document
            variables: Document variables
            operation: Operation name, used for logging only
            retry: Retry transient failures (read queries only)

        Returns:
            The ``data`` member of the response (empty dict when null)

        Raises:
            ConfigurationError: API key not configured
            NetworkError: Transport failure or non-2xx status
            GraphQLError: The payload carries ``errors``
        """
        if not self._api_key:
            logger.error(f"Healthie {operation} aborted: HEALTHIE_API_KEY is not configured")
            raise ConfigurationError("Healthie API key is not configured")

        if not retry:
            return await self._post(query, variables or {}, operation)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self._max_retries),
            wait=self._retry_wait,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self._post(query, variables or {}, operation)

        return {}  # Should not reach here

    async def _post(self, query: str, variables: dict[str, Any], operation: str) -> dict[str, Any]:
        """Send a single request and classify the outcome."""
        client = await self._ensure_client()
        logger.debug(f"Healthie {operation} -> {self._api_url}")

        try:
            response = await client.post(
                self._api_url,
                headers=self._get_headers(),
                json={"query": query, "variables": variables},
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Healthie {operation} timed out after {self._timeout}s")
            raise NetworkError(
                f"Healthie API request timed out after {self._timeout}s", timeout=True
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"Healthie {operation} connection error: {e}")
            raise NetworkError(f"Connection error: {e}") from e

        if response.status_code >= 400:
            retryable = response.status_code in RETRYABLE_STATUS_CODES
            error_preview = response.text[:200] if response.text else "No body"
            logger.warning(f"Healthie {operation} returned {response.status_code}: {error_preview}")
            raise NetworkError(
                f"Healthie API error: {response.status_code}",
                status_code=response.status_code,
                retryable=retryable,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise GraphQLError("Healthie returned a response that is not JSON") from e

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            summary = "; ".join(str(err.get("message", err)) for err in errors if isinstance(err, dict)) or str(errors)
            logger.error(f"Healthie {operation} GraphQL errors: {summary}")
            raise GraphQLError(f"GraphQL errors: {summary}", errors=errors)

        if not isinstance(payload, dict):
            raise GraphQLError("Healthie returned an unexpected payload")

        return payload.get("data") or {}
