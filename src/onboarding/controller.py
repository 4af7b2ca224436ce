"""
Onboarding Flow Controller.

Sequences the onboarding steps and keeps browser history in line with the
logical step, so the back button walks back through the wizard one step per
press instead of leaving the page.

History protocol:
- initialize() pushes one synthetic entry for the starting step.
- Forward moves push an entry for the new step.
- A popstate (native back) at step k > 1 consumes one entry. The handler
  retreats to k-1 and re-pushes an entry for k-1, so the next press is
  interceptable too. At step 1 the handler does nothing and the browser
  leaves the flow.
- While a popstate is handled, session.handling_back suppresses the forward
  push of any transition it triggers.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from tasy.observability.onboarding_tracker import OnboardingTracker

from .flush import (
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    FlushResult,
    flush_generated_assets,
)
from .gateways import AuthEvent, BackendGateway
from .history import HistoryAPI
from .state import OnboardingSession, validate_partial
from .steps import (
    AUTH_SHORTCUT_MAX_STEP,
    FIRST_STEP,
    POST_AUTH_STEP,
    TOTAL_STEPS,
    OnboardingStep,
    clamp_step,
)
from .storage import PersistedOnboardingStore

logger = logging.getLogger(__name__)


class OnboardingFlowController:
    """
    Step state machine for one onboarding session.

    Every collaborator is optional. Without a history API (server-side
    rendering, tests) stepping works in memory only; without a store the
    answers are not persisted; without a backend nothing is flushed.
    """

    def __init__(
        self,
        session: OnboardingSession | None = None,
        store: PersistedOnboardingStore | None = None,
        history: HistoryAPI | None = None,
        backend: BackendGateway | None = None,
        tracker: OnboardingTracker | None = None,
        total_steps: int = TOTAL_STEPS,
        flush_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        flush_backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session = session or OnboardingSession()
        self.store = store
        self.history = history
        self.backend = backend
        self.tracker = tracker or OnboardingTracker()
        self.total_steps = total_steps
        self.flush_max_attempts = flush_max_attempts
        self.flush_backoff_seconds = flush_backoff_seconds
        self._sleep = sleep
        self._flush_lock: asyncio.Lock | None = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def current_step(self) -> int:
        return self.session.current_step

    @property
    def data(self) -> dict[str, Any]:
        return self.session.data

    @property
    def is_complete(self) -> bool:
        return self.session.current_step >= self.total_steps

    @property
    def post_auth_step(self) -> int:
        return min(POST_AUTH_STEP, self.total_steps)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self, authenticated: bool = False) -> None:
        """
        Mount the flow. Runs once per session; later calls do nothing.

        Restores stored answers, applies the already-authenticated shortcut,
        pushes the first synthetic history entry and starts listening for
        popstate.
        """
        if self.session.initialized:
            logger.debug("Onboarding flow already initialized")
            return
        self.session.initialized = True

        if self.store is not None:
            self.session.restore(self.store.load())

        self.tracker.start()

        if authenticated and self.session.current_step <= AUTH_SHORTCUT_MAX_STEP:
            previous = self.session.current_step
            self.session.current_step = self.post_auth_step
            self.tracker.record_transition(previous, self.session.current_step, self.total_steps)
            logger.info(f"Visitor already authenticated, starting at step {self.session.current_step}")

        self._push_entry(self.session.current_step)

        if self.history is not None:
            try:
                self.history.add_popstate_listener(self.on_browser_back)
            except Exception as e:
                self._disable_history(e)

    def teardown(self) -> None:
        """Stop listening for popstate (flow unmounted)."""
        if self.history is not None:
            try:
                self.history.remove_popstate_listener(self.on_browser_back)
            except Exception as e:
                logger.warning(f"Failed to remove popstate listener: {e}")

    def reset(self) -> None:
        """Destroy the session: back to step 1 with no answers."""
        self.session.reset()
        if self.store is not None:
            self.store.clear()
        if self.session.initialized:
            self._replace_entry(FIRST_STEP)
        logger.info("Onboarding session reset")

    def clear_data(self) -> None:
        """Forget collected answers but stay on the current step."""
        self.session.data = {}
        if self.store is not None:
            self.store.clear()

    # =========================================================================
    # Transitions
    # =========================================================================

    def advance(self) -> int:
        """Move to the next step. No-op on the last step."""
        if self.session.current_step >= self.total_steps:
            logger.debug("Already on the last onboarding step")
            return self.session.current_step
        return self._transition(self.session.current_step + 1)

    def retreat(self) -> int:
        """Move to the previous step. No-op on step 1."""
        if self.session.current_step <= FIRST_STEP:
            return self.session.current_step
        return self._transition(self.session.current_step - 1)

    def set_step(self, step: int) -> int:
        """Jump to an absolute step, clamped to [1, total_steps]."""
        return self._transition(step)

    def on_browser_back(self, state: dict | None = None) -> bool:
        """
        popstate handler.

        Returns True when the press was consumed as a step back, False when
        the browser default should run (step 1, or already handling one).
        """
        if self.session.handling_back:
            logger.debug("Ignoring popstate while a back press is being handled")
            return False

        step_before = self.session.current_step
        if step_before <= FIRST_STEP:
            logger.debug("Back pressed on first step, leaving onboarding")
            return False

        self.session.handling_back = True
        try:
            # The browser already dropped the top entry
            if self.session.history:
                self.session.history.pop()
            new_step = self.retreat()
            self._push_entry(new_step)
        finally:
            self.session.handling_back = False

        return True

    def apply_auth_shortcut(self) -> bool:
        """Jump to the post-auth step if still in the pre-auth part."""
        if self.session.current_step <= AUTH_SHORTCUT_MAX_STEP:
            self.set_step(self.post_auth_step)
            return True
        return False

    def skip_generation(self) -> bool:
        """Leave the generating step early when images already exist."""
        if self.session.current_step != OnboardingStep.GENERATING:
            return False
        if not self.session.data.get("generated_images"):
            return False
        self.set_step(OnboardingStep.GENERATING + 1)
        return True

    def _transition(self, target: int) -> int:
        target = clamp_step(target, self.total_steps)
        previous = self.session.current_step
        if target == previous:
            return previous

        self.session.current_step = target

        if self.session.initialized and not self.session.handling_back:
            if target > previous:
                self._push_entry(target)
            else:
                self._replace_entry(target)

        self.tracker.record_transition(previous, target, self.total_steps)
        return target

    # =========================================================================
    # History
    # =========================================================================

    def _push_entry(self, step: int) -> None:
        self.session.history.append(step)
        self._call_history("push_state", {"step": step})

    def _replace_entry(self, step: int) -> None:
        if self.session.history:
            self.session.history[-1] = step
        else:
            self.session.history.append(step)
        self._call_history("replace_state", {"step": step})

    def _call_history(self, method: str, state: dict) -> None:
        if self.history is None:
            return
        try:
            getattr(self.history, method)(state)
        except Exception as e:
            self._disable_history(e)

    def _disable_history(self, error: Exception) -> None:
        logger.warning(f"History API unavailable, continuing without it: {error}")
        self.history = None

    # =========================================================================
    # Data
    # =========================================================================

    def merge_data(self, partial: dict[str, Any]) -> dict[str, Any]:
        """
        Shallow-merge answers (last write wins per key) and persist them.

        Raises InvalidOnboardingData if a known field has the wrong type.
        """
        validated = validate_partial(partial)
        self.session.data.update(validated)
        if self.store is not None:
            self.store.save(self.session.stored_snapshot())
        return self.session.data

    async def flush_generated_assets(self) -> FlushResult:
        """Persist generated images to the account, at most once per session."""
        if self._flush_lock is None:
            self._flush_lock = asyncio.Lock()

        # Duplicate auth notifications queue here and then see images_saved
        async with self._flush_lock:
            result = await flush_generated_assets(
                self.session,
                self.backend,
                store=self.store,
                max_attempts=self.flush_max_attempts,
                backoff_seconds=self.flush_backoff_seconds,
                sleep=self._sleep,
            )

        self.tracker.action("flush_generated_assets", self.session.current_step, status=result.status.value)
        return result

    async def handle_auth_event(
        self, event: AuthEvent | str, has_session: bool = True
    ) -> FlushResult | None:
        """
        React to an auth state change.

        On sign-in the post-auth jump happens before anything is awaited, so
        navigation never waits on the image flush.
        """
        name = event.value if isinstance(event, AuthEvent) else event
        if name != AuthEvent.SIGNED_IN.value or not has_session:
            logger.debug(f"Ignoring auth event {name}")
            return None

        self.apply_auth_shortcut()
        return await self.flush_generated_assets()
