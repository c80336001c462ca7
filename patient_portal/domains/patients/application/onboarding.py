# ============================================================================
# SCOPE: APPLICATION LAYER (Patients)
# Description: Two-step onboarding saga (create client, update demographics).
# ============================================================================
"""Onboarding Saga.

Healthie splits patient creation (createClient) and demographics
(updateUser) into separate calls. The saga makes the intermediate state
explicit so a failure between the two steps is observable and a retry
resumes at the demographic update instead of creating a second client.

    STARTED -> CREATED_PENDING_DEMOGRAPHICS -> COMPLETED
                 (any step may record FAILED with the step reached)

Runs for one email are serialized; a resubmission after completion only
updates demographics on the patient already created.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from patient_portal.integrations.healthie.exceptions import HealthieError

from ..domain import Demographics, NewPatient, Patient, normalize_email
from .resolution import wait_until_indexed

if TYPE_CHECKING:
    from .ports import IPatientDirectory

logger = logging.getLogger(__name__)


class OnboardingState(str, Enum):
    STARTED = "started"
    CREATED_PENDING_DEMOGRAPHICS = "created_pending_demographics"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class OnboardingSaga:
    """Progress of one patient's onboarding, keyed by normalized email."""

    email: str
    state: OnboardingState = OnboardingState.STARTED
    patient: Patient | None = None
    indexed: bool | None = None
    failed_step: OnboardingState | None = None
    last_error: str | None = None
    updated_at: datetime | None = None

    @property
    def patient_id(self) -> str | None:
        return self.patient.id if self.patient else None

    @property
    def is_completed(self) -> bool:
        return self.state == OnboardingState.COMPLETED

    @property
    def resume_step(self) -> OnboardingState:
        """Step to run next; a failed saga resumes where it stopped."""
        if self.state == OnboardingState.FAILED:
            return self.failed_step or OnboardingState.STARTED
        return self.state

    def mark_failed(self, error: Exception) -> None:
        self.failed_step = self.resume_step
        self.state = OnboardingState.FAILED
        self.last_error = str(error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "patient": self.patient.to_dict() if self.patient else None,
            "indexed": self.indexed,
            "failed_step": self.failed_step.value if self.failed_step else None,
            "error": self.last_error,
        }


@dataclass(frozen=True)
class OnboardingRequest:
    email: str
    first_name: str
    last_name: str
    demographics: Demographics
    phone: str | None = None


class OnboardingService:
    """Runs and remembers onboarding sagas.

    Sagas live in memory only, like sessions, and expire ``ttl_hours`` after
    their last run. Completed sagas are kept until then so the routing
    controller can bridge the search index lag right after onboarding.
    """

    def __init__(
        self,
        directory: "IPatientDirectory",
        confirm_indexing: bool = True,
        lookup_attempts: int = 3,
        lookup_initial_delay: float = 2.0,
        lookup_delay_increment: float = 2.0,
        ttl_hours: int = 24,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize onboarding service.

        Args:
            directory: Patient directory (DIP).
            confirm_indexing: Wait for a created client to become searchable.
            lookup_attempts: Lookups made while waiting for the index.
            lookup_initial_delay: Delay before the first indexing lookup.
            lookup_delay_increment: Delay added after each miss.
            ttl_hours: Lifetime of a saga after its last run.
            clock: Current time provider (injectable for tests).
        """
        self._directory = directory
        self._confirm_indexing = confirm_indexing
        self._lookup_attempts = lookup_attempts
        self._lookup_initial_delay = lookup_initial_delay
        self._lookup_delay_increment = lookup_delay_increment
        self._ttl = timedelta(hours=ttl_hours)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._sagas: dict[str, OnboardingSaga] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, email: str) -> OnboardingSaga | None:
        saga = self._sagas.get(normalize_email(email))
        if saga is None or self._is_expired(saga, self._clock()):
            return None
        return saga

    def completed_patient(self, email: str) -> Patient | None:
        saga = self.get(email)
        if saga and saga.is_completed:
            return saga.patient
        return None

    async def run(self, request: OnboardingRequest) -> OnboardingSaga:
        """Run (or resume) onboarding for the request's email.

        Returns:
            The completed saga.

        Raises:
            Whatever the failing step raised; the saga records the failure
            and keeps the step reached.
        """
        email = normalize_email(request.email)
        self._evict_expired()
        lock = self._locks.setdefault(email, asyncio.Lock())

        async with lock:
            saga = self._sagas.get(email)
            if saga is None:
                saga = OnboardingSaga(email=email)
                self._sagas[email] = saga
            elif saga.is_completed:
                # Resubmission: the patient exists, only demographics change
                saga.state = OnboardingState.CREATED_PENDING_DEMOGRAPHICS

            try:
                if saga.resume_step == OnboardingState.STARTED:
                    await self._ensure_patient(saga, request)
                await self._apply_demographics(saga, request.demographics)
            except Exception as e:
                saga.mark_failed(e)
                logger.warning(
                    f"Onboarding stopped at {saga.failed_step.value if saga.failed_step else '?'}: {e}"
                )
                raise
            finally:
                saga.updated_at = self._clock()

        return saga

    def _is_expired(self, saga: OnboardingSaga, now: datetime) -> bool:
        return saga.updated_at is not None and now - saga.updated_at >= self._ttl

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [email for email, saga in self._sagas.items() if self._is_expired(saga, now)]
        for email in expired:
            del self._sagas[email]
            lock = self._locks.get(email)
            if lock is not None and not lock.locked():
                del self._locks[email]
        if expired:
            logger.info(f"Evicted {len(expired)} expired onboarding sagas")

    async def _ensure_patient(self, saga: OnboardingSaga, request: OnboardingRequest) -> None:
        """Step 1: reuse an existing record or create one."""
        existing = await self._directory.find_by_email(saga.email)
        if existing is not None:
            logger.info(f"Onboarding reuses existing patient {existing.id}")
            saga.patient = existing
            saga.indexed = True
            saga.state = OnboardingState.CREATED_PENDING_DEMOGRAPHICS
            return

        created = await self._directory.create(
            NewPatient(
                email=saga.email,
                first_name=request.first_name,
                last_name=request.last_name,
                phone=request.phone,
            )
        )
        # Creation success comes from createClient itself, never from a lookup
        saga.patient = created
        saga.state = OnboardingState.CREATED_PENDING_DEMOGRAPHICS
        logger.info(f"Onboarding created patient {created.id}, demographics pending")

        if self._confirm_indexing:
            try:
                found = await wait_until_indexed(
                    self._directory,
                    saga.email,
                    attempts=self._lookup_attempts,
                    initial_delay=self._lookup_initial_delay,
                    delay_increment=self._lookup_delay_increment,
                )
            except HealthieError as e:
                logger.warning(f"Could not confirm indexing of patient {created.id}: {e}")
                found = None
            saga.indexed = found is not None

    async def _apply_demographics(self, saga: OnboardingSaga, demographics: Demographics) -> None:
        """Step 2: update demographics on the record from step 1."""
        if saga.patient is None:
            raise RuntimeError("Onboarding reached the demographics step without a patient")

        updated = await self._directory.update_demographics(saga.patient.id, demographics)
        saga.patient = updated
        saga.state = OnboardingState.COMPLETED
        saga.failed_step = None
        saga.last_error = None
        logger.info(f"Onboarding completed for patient {updated.id}")
