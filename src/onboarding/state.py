"""
Onboarding Session State.

One OnboardingSession per browser tab. It holds the current step, the shadow
stack of synthetic history entries pushed by the flow, the free-form answers
collected so far, and the flags that guard one-shot side effects.

The answers bag stays schema-less when stored; OnboardingData only declares
the fields we know about so bad values are caught before they are merged.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import InvalidOnboardingData
from .steps import FIRST_STEP

logger = logging.getLogger(__name__)

# Marker persisted next to the answers so a reload does not re-flush images
IMAGES_SAVED_KEY = "images_saved"


class OnboardingData(BaseModel):
    """Known onboarding answers. Unknown keys are allowed through."""

    model_config = ConfigDict(extra="allow")

    # Step 1: logo
    logo: str | None = None  # Data URL or remote URL
    logo_type: Literal["uploaded", "sample"] | None = None
    sample_logo_type: Literal["fashion", "beauty", "tech"] | None = None

    # Goals
    goal: str | None = None
    custom_goal: str | None = None
    monthly_goal: str | None = None
    usage: str | None = None
    selected_plan: str | None = None

    # Contact
    email: str | None = None
    name: str | None = None

    # Content preferences (multi-select)
    creating_for: list[str] | None = None
    aesthetic_vibe: list[str] | None = None
    content_type: list[str] | None = None
    platforms: list[str] | None = None

    # Background generation output (image URLs)
    generated_images: list[str] | None = None


KNOWN_FIELDS = frozenset(OnboardingData.model_fields)


def validate_partial(partial: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a partial answers update against the known field types.

    Returns the update unchanged (values are stored as given). Raises
    InvalidOnboardingData if a known field has the wrong type.
    """
    if IMAGES_SAVED_KEY in partial:
        raise InvalidOnboardingData(f"'{IMAGES_SAVED_KEY}' is managed by the flow, not by steps")

    unknown = set(partial) - KNOWN_FIELDS
    if unknown:
        logger.debug(f"Accepting unknown onboarding fields: {sorted(unknown)}")

    try:
        OnboardingData.model_validate(partial)
    except ValidationError as e:
        raise InvalidOnboardingData(str(e)) from e

    return dict(partial)


@dataclass
class OnboardingSession:
    """
    Ephemeral onboarding session for one tab.

    current_step is 1-indexed. history mirrors the synthetic browser-history
    entries pushed by the flow; its top equals current_step after every
    completed transition.
    """
    current_step: int = FIRST_STEP
    history: list[int] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    images_saved: bool = False

    # Guards
    handling_back: bool = False  # Set while a popstate is being handled
    initialized: bool = False    # initialize() already ran

    def reset(self) -> None:
        """Destroy the session contents (explicit reset only)."""
        self.current_step = FIRST_STEP
        self.history = []
        self.data = {}
        self.images_saved = False
        self.handling_back = False

    def mark_images_saved(self) -> None:
        """Flip the flush flag. Never reverts outside reset()."""
        self.images_saved = True

    def stored_snapshot(self) -> dict[str, Any]:
        """Answers as written to the persisted store."""
        snapshot = dict(self.data)
        if self.images_saved:
            snapshot[IMAGES_SAVED_KEY] = True
        return snapshot

    def restore(self, stored: dict[str, Any]) -> None:
        """Load answers previously written by stored_snapshot()."""
        stored = dict(stored)
        if stored.pop(IMAGES_SAVED_KEY, False):
            self.images_saved = True
        self.data.update(stored)
