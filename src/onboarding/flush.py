"""
Generated Asset Flush.

Moves the images generated during onboarding into the user's permanent
account once a session exists. Runs at most once per onboarding session and
never raises for backend failures: a lost onboarding image is a soft failure,
navigation must not depend on it.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from .errors import BackendError
from .gateways import BackendGateway
from .state import OnboardingSession
from .storage import PersistedOnboardingStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 1.0


class FlushStatus(Enum):
    SAVED = "saved"
    ALREADY_SAVED = "already_saved"        # images_saved flag was set
    NOTHING_TO_FLUSH = "nothing_to_flush"  # no generated images
    NO_BACKEND = "no_backend"
    FAILED = "failed"                      # rejected or retries exhausted


@dataclass
class FlushResult:
    status: FlushStatus
    count: int = 0
    already_persisted: bool = False  # backend found a prior onboarding batch
    attempts: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (FlushStatus.SAVED, FlushStatus.ALREADY_SAVED)


def backoff_delay(attempt: int, base_seconds: float) -> float:
    """Exponential delay before retry number attempt + 1."""
    return base_seconds * (2 ** (attempt - 1))


def is_client_error(error: BackendError) -> bool:
    """4xx responses fail the same way on every retry."""
    return error.status_code is not None and 400 <= error.status_code < 500


async def flush_generated_assets(
    session: OnboardingSession,
    backend: BackendGateway | None,
    store: PersistedOnboardingStore | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> FlushResult:
    """
    Send the session's generated images to the backend.

    Skips when the images were already saved this session. On success sets
    session.images_saved and persists the marker so a reload does not send
    them again.
    """
    if session.images_saved:
        logger.info("Onboarding images already saved, skipping")
        return FlushResult(status=FlushStatus.ALREADY_SAVED)

    images = session.data.get("generated_images")
    if not images or not isinstance(images, list):
        logger.info("No generated images to save")
        return FlushResult(status=FlushStatus.NOTHING_TO_FLUSH)

    if backend is None:
        logger.warning("No backend configured, onboarding images stay local")
        return FlushResult(status=FlushStatus.NO_BACKEND)

    logo = session.data.get("logo") or None
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = await backend.persist_generated_images(images, logo)
        except Exception as e:
            last_error = e
            if isinstance(e, BackendError) and is_client_error(e):
                logger.error(f"Backend rejected onboarding images ({e.status_code}), not retrying: {e}")
                return FlushResult(status=FlushStatus.FAILED, attempts=attempt, error=str(e))
            logger.warning(f"Attempt {attempt}/{max_attempts} failed to save onboarding images: {e}")
            if attempt < max_attempts:
                await sleep(backoff_delay(attempt, backoff_seconds))
            continue

        session.mark_images_saved()
        if store is not None:
            store.save(session.stored_snapshot())

        logger.info(f"Saved {result.count} onboarding images (already_persisted={result.already_persisted})")
        return FlushResult(
            status=FlushStatus.SAVED,
            count=result.count,
            already_persisted=result.already_persisted,
            attempts=attempt,
        )

    logger.error(f"Failed to save onboarding images after {max_attempts} attempts: {last_error}")
    return FlushResult(
        status=FlushStatus.FAILED,
        attempts=max_attempts,
        error=str(last_error) if last_error else None,
    )
