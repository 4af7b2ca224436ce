"""
Tasy Onboarding System.

Multi-step onboarding wizard: logo upload and preview generation, goals,
sign-up, then post-auth preferences. Answers accumulate locally and only the
generated images are flushed to the account after sign-in.

Pieces:
1. Step catalog - ordered steps and the auth shortcut constants
2. Session state - current step, history shadow stack, answers, guards
3. Flow controller - transitions and browser-history synchronisation
4. Store and flush - local persistence, one-shot image persistence
"""

from .controller import OnboardingFlowController
from .flush import FlushResult, FlushStatus
from .gateways import AuthEvent, PersistResult
from .history import InMemoryHistory
from .state import OnboardingData, OnboardingSession
from .steps import OnboardingStep, TOTAL_STEPS
from .storage import PersistedOnboardingStore, MemoryStorage, JsonFileStorage

__all__ = [
    "OnboardingFlowController",
    "OnboardingSession",
    "OnboardingData",
    "OnboardingStep",
    "TOTAL_STEPS",
    "FlushResult",
    "FlushStatus",
    "AuthEvent",
    "PersistResult",
    "InMemoryHistory",
    "PersistedOnboardingStore",
    "MemoryStorage",
    "JsonFileStorage",
]
