"""
Tasy - Onboarding Tracker.

Funnel analytics for the onboarding wizard.

Features:
- One JSONL file per flow when enabled (tail -f friendly)
- Step views, completions, abandons with time spent per step
- Smart truncation of large values (logos arrive as data URLs)

Usage:
    from tasy.observability.onboarding_tracker import OnboardingTracker

    tracker = OnboardingTracker(enabled=True)
    tracker.start()
    tracker.record_transition(1, 2, total_steps=18)
    tracker.close()

Log format (JSONL):
    {"ts": "2026-01-01T17:30:00", "event": "step_view", "step": 2, "previous_step": 1}
"""

import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

LOG_DIR = Path("onboarding_logs")

# Leaving a step after this long counts as an abandon
ABANDON_THRESHOLD_MS = 3000

MAX_STRING_LEN = 200
MAX_LIST_ITEMS = 5


def _truncate_value(value: Any, depth: int = 0) -> Any:
    """Shrink values before they hit the log file."""
    if depth > 3:
        return "<nested>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > MAX_STRING_LEN:
            return value[:MAX_STRING_LEN] + f"... ({len(value)} chars)"
        return value

    if isinstance(value, (list, tuple)):
        items = [_truncate_value(v, depth + 1) for v in value[:MAX_LIST_ITEMS]]
        if len(value) > MAX_LIST_ITEMS:
            items.append(f"... +{len(value) - MAX_LIST_ITEMS} more")
        return items

    if isinstance(value, dict):
        return {k: _truncate_value(v, depth + 1) for k, v in value.items()}

    return str(value)[:MAX_STRING_LEN]


# =============================================================================
# Tracker
# =============================================================================


class OnboardingTracker:
    """
    Records funnel events for one onboarding flow.

    Events are always kept in memory (self.events). When enabled they are
    also appended to a JSONL file under LOG_DIR.
    """

    def __init__(
        self,
        flow_id: str | None = None,
        enabled: bool = False,
        log_dir: Path | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.enabled = enabled
        self.clock = clock
        self.events: list[dict] = []
        self._flow_started = clock()
        self._step_started = self._flow_started

        self.flow_id = flow_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.log_path: Path | None = None
        self.log_file = None

        if enabled:
            directory = log_dir or LOG_DIR
            directory.mkdir(parents=True, exist_ok=True)
            self.log_path = directory / f"onboarding_{self.flow_id}.jsonl"
            self.log_file = open(self.log_path, "a", encoding="utf-8")

    def _write(self, data: dict) -> None:
        entry = {"ts": datetime.now().isoformat(), **_truncate_value(data)}
        self.events.append(entry)
        logger.debug(f"onboarding event: {entry['event']}")

        if self.log_file is not None:
            self.log_file.write(json.dumps(entry, default=str) + "\n")
            self.log_file.flush()

    def _elapsed_ms(self, since: float) -> int:
        return int((self.clock() - since) * 1000)

    # =========================================================================
    # Funnel Events
    # =========================================================================

    def start(self) -> None:
        self._flow_started = self.clock()
        self._step_started = self._flow_started
        self._write({"event": "onboarding_start", "flow_id": self.flow_id})

    def step_view(self, step: int, previous_step: int | None = None) -> None:
        self._write({"event": "step_view", "step": step, "previous_step": previous_step})

    def step_completed(self, step: int, time_spent_ms: int, data: dict | None = None) -> None:
        entry = {"event": "step_completed", "step": step, "time_spent_ms": time_spent_ms}
        if data:
            entry["data"] = data
        self._write(entry)

    def step_abandoned(self, step: int, time_spent_ms: int) -> None:
        self._write({"event": "step_abandoned", "step": step, "time_spent_ms": time_spent_ms})

    def completed(self, total_time_ms: int, total_steps: int) -> None:
        self._write({
            "event": "onboarding_completed",
            "total_time_ms": total_time_ms,
            "total_steps": total_steps,
        })

    def action(self, action: str, step: int, **properties) -> None:
        """Log a custom in-step action (button press, auth event, flush)."""
        self._write({"event": "onboarding_action", "action": action, "step": step, **properties})

    def record_transition(self, from_step: int, to_step: int, total_steps: int) -> None:
        """Emit the funnel events for one step change."""
        if from_step == to_step:
            return

        time_spent = self._elapsed_ms(self._step_started)

        if to_step > from_step:
            self.step_completed(from_step, time_spent)

        self.step_view(to_step, from_step)

        if time_spent > ABANDON_THRESHOLD_MS:
            self.step_abandoned(from_step, time_spent)

        if to_step == total_steps:
            self.completed(self._elapsed_ms(self._flow_started), total_steps)

        self._step_started = self.clock()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> str | None:
        """Close the log file. Returns log path."""
        if self.log_file is not None:
            self.log_file.close()
            self.log_file = None
            return str(self.log_path)
        return None
