# ============================================================================
# SCOPE: APPLICATION LAYER (Patients)
# Description: Lookup helpers that tolerate Healthie's search index lag.
# ============================================================================
"""Eventual-consistency lookups.

Healthie indexes new clients asynchronously, so a lookup right after
createClient can miss. ``wait_until_indexed`` retries the lookup with an
increasing delay and reports a miss as ``None``; it never decides whether a
creation succeeded.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_incrementing,
)

from patient_portal.integrations.healthie.exceptions import NetworkError

if TYPE_CHECKING:
    from ..domain import Patient
    from .ports import IPatientDirectory

logger = logging.getLogger(__name__)


def _log_miss(retry_state: RetryCallState) -> None:
    logger.info(
        f"Patient not searchable yet (attempt {retry_state.attempt_number}), "
        f"next lookup in {retry_state.next_action.sleep if retry_state.next_action else 0:.1f}s"
    )


async def wait_until_indexed(
    directory: "IPatientDirectory",
    email: str,
    attempts: int = 3,
    initial_delay: float = 2.0,
    delay_increment: float = 2.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> "Patient | None":
    """Look a freshly created patient up until the search index catches up.

    Args:
        directory: Patient directory to query.
        email: Email of the created patient.
        attempts: Maximum number of lookups.
        initial_delay: Seconds to wait before the first lookup.
        delay_increment: Seconds added to the delay after each miss.
        sleep: Awaitable sleep (injectable for tests).

    Returns:
        The Patient once visible, or None if every lookup missed. A
        NetworkError during a lookup counts as a miss.
    """
    await sleep(initial_delay)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_incrementing(start=initial_delay + delay_increment, increment=delay_increment),
        retry=retry_if_result(lambda patient: patient is None) | retry_if_exception_type(NetworkError),
        before_sleep=_log_miss,
        retry_error_callback=lambda retry_state: None,
        sleep=sleep,
    )
    patient = await retrying(directory.find_by_email, email)

    if patient is None:
        logger.warning(f"Created patient still not searchable after {attempts} lookups")
    return patient
