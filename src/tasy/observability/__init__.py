"""
Tasy - Observability Package.

Provides:
- Onboarding funnel tracking
"""

from tasy.observability.onboarding_tracker import OnboardingTracker

__all__ = [
    "OnboardingTracker",
]
