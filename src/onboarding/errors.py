"""Onboarding exceptions."""


class OnboardingError(Exception):
    """Base class for onboarding errors."""


class InvalidOnboardingData(OnboardingError, ValueError):
    """A known onboarding field was given a value of the wrong type."""


class BackendError(OnboardingError):
    """The permanent backend rejected or failed a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
