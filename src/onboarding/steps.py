"""
Onboarding Step Catalog.

The wizard is an ordered list of 18 screens. Steps 1-9 run before sign-up,
step 10 is where an authenticated visitor lands, and the remaining steps
are only reachable once a session exists.
"""

import logging
from enum import IntEnum

logger = logging.getLogger(__name__)


class OnboardingStep(IntEnum):
    """Onboarding screens, in display order (1-indexed)."""
    LOGO_UPLOAD = 1
    TRUST = 2
    GENERATING = 3          # Background image generation preview
    AGREEMENT = 4
    MONTHLY_GOAL = 5
    SOCIAL_PROOF = 6
    GOAL_SELECTION = 7
    BUILDING_STRATEGY = 8
    SIGNUP = 9              # Last pre-auth step
    NAME = 10               # Post-auth landing step
    SOCIAL_PROOF_1 = 11
    SOCIAL_PROOF_2 = 12
    CREATING_FOR = 13
    PRICING = 14
    DASHBOARD = 15
    AESTHETIC_VIBE = 16
    CONTENT_TYPE = 17
    PLATFORMS = 18          # Terminal step, hands off to the app shell


TOTAL_STEPS = len(OnboardingStep)
FIRST_STEP = int(OnboardingStep.LOGO_UPLOAD)

# Any step up to and including this one jumps to POST_AUTH_STEP on sign-in
AUTH_SHORTCUT_MAX_STEP = int(OnboardingStep.SIGNUP)
POST_AUTH_STEP = int(OnboardingStep.NAME)


def clamp_step(step: int, total_steps: int = TOTAL_STEPS) -> int:
    """Clamp a step number into [1, total_steps]."""
    if step < FIRST_STEP:
        logger.warning(f"Step {step} below first step, clamping to {FIRST_STEP}")
        return FIRST_STEP
    if step > total_steps:
        logger.warning(f"Step {step} beyond last step, clamping to {total_steps}")
        return total_steps
    return step


def step_name(step: int) -> str:
    """Human-readable name for a step number ("step_19" if unknown)."""
    try:
        return OnboardingStep(step).name.lower()
    except ValueError:
        return f"step_{step}"


def get_step_catalog() -> list[dict]:
    """Step metadata for clients rendering the wizard."""
    return [
        {
            "number": int(step),
            "name": step.name.lower(),
            "requires_auth": step > AUTH_SHORTCUT_MAX_STEP,
            "is_post_auth_landing": step == POST_AUTH_STEP,
        }
        for step in OnboardingStep
    ]
