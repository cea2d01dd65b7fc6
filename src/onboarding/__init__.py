"""
TRVL Onboarding System.

Guides a new user through the introduction flow and turns personality quiz
answers into a durable travel personality assessment.

Steps:
1. Welcome
2. Personality Quiz (skippable)
3. Quiz Results
4. Personalized Welcome
5. Complete - one-time durable write to the user's profile

Core pieces:
- traits: answer aggregation into normalized trait scores
- archetypes: ordered threshold rules -> personality archetype
- state: immutable progress record + pure transitions
- service: session driver (persistence, finalization, analytics)
- reminder: "take the quiz" banner decision for users who skipped
"""

from .archetypes import Archetype, classify
from .errors import (
    CompletionError,
    EmptyAssessmentError,
    InvalidStepError,
    MissingUserError,
    NotInitializedError,
    OnboardingError,
    PersistenceError,
)
from .profile import Assessment, OnboardingFlag, ProfileStore
from .service import OnboardingService
from .state import OnboardingProgress, OnboardingStep
from .store import MemoryCache, ProgressStore
from .traits import AnswerContribution, TraitScoreVector, aggregate_answers

__all__ = [
    "AnswerContribution",
    "Archetype",
    "Assessment",
    "CompletionError",
    "EmptyAssessmentError",
    "InvalidStepError",
    "MemoryCache",
    "MissingUserError",
    "NotInitializedError",
    "OnboardingError",
    "OnboardingFlag",
    "OnboardingProgress",
    "OnboardingService",
    "OnboardingStep",
    "PersistenceError",
    "ProfileStore",
    "ProgressStore",
    "TraitScoreVector",
    "aggregate_answers",
    "classify",
]
