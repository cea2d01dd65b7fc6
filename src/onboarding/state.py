"""
Onboarding State Management.

OnboardingProgress is an immutable value. Transition functions take a
progress record and return a new one; nothing here touches storage.
The service layer persists each returned record before adopting it.

Step flow:
    WELCOME -> PERSONALITY_QUIZ -> QUIZ_RESULTS -> WELCOME_PERSONALIZED -> COMPLETE
    PERSONALITY_QUIZ --skip--> WELCOME_PERSONALIZED (prior assessment) | COMPLETE
"""

import copy
import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Union

from .errors import InvalidStepError
from .profile import Assessment, parse_timestamp
from .traits import AnswerContribution


class OnboardingStep(Enum):
    """Onboarding flow steps."""
    WELCOME = "welcome"
    PERSONALITY_QUIZ = "personality_quiz"
    QUIZ_RESULTS = "quiz_results"
    WELCOME_PERSONALIZED = "welcome_personalized"
    COMPLETE = "complete"


def parse_step(value: "OnboardingStep | str") -> OnboardingStep:
    """Resolve a step label. Raises InvalidStepError for unknown labels."""
    if isinstance(value, OnboardingStep):
        return value
    try:
        return OnboardingStep(value)
    except ValueError:
        raise InvalidStepError(f"Invalid step: {value}", {"step": value})


# =============================================================================
# Step Data (tagged union)
# =============================================================================
# Each payload knows its step and flattens itself into the open `data`
# mapping that gets persisted.


@dataclass(frozen=True)
class WelcomeData:
    step: ClassVar[OnboardingStep] = OnboardingStep.WELCOME

    def to_data(self) -> dict:
        return {"welcome_seen": True}


@dataclass(frozen=True)
class QuizData:
    """Quiz finished with a scored assessment."""
    step: ClassVar[OnboardingStep] = OnboardingStep.PERSONALITY_QUIZ

    assessment: Assessment
    answers: tuple[AnswerContribution, ...] = ()

    def to_data(self) -> dict:
        completed_at = self.assessment.completed_at or datetime.now(timezone.utc)
        data = {
            "quiz_results": self.assessment.to_dict(),
            "quiz_completed": True,
            "quiz_completed_at": completed_at.isoformat(),
            "quiz_skipped": False,
        }
        if self.answers:
            data["quiz_answers"] = [a.model_dump() for a in self.answers]
        return data


@dataclass(frozen=True)
class QuizSkipData:
    step: ClassVar[OnboardingStep] = OnboardingStep.PERSONALITY_QUIZ

    skipped_at: datetime

    def to_data(self) -> dict:
        return {
            "quiz_skipped": True,
            "quiz_skipped_at": self.skipped_at.isoformat(),
        }


@dataclass(frozen=True)
class ResultsData:
    step: ClassVar[OnboardingStep] = OnboardingStep.QUIZ_RESULTS

    assessment: Assessment | None = None

    def to_data(self) -> dict:
        data: dict[str, Any] = {"results_viewed": True}
        if self.assessment is not None:
            data["personality_type"] = self.assessment.personality_type
        return data


@dataclass(frozen=True)
class PersonalizedWelcomeData:
    step: ClassVar[OnboardingStep] = OnboardingStep.WELCOME_PERSONALIZED

    interests: tuple[str, ...] = ()

    def to_data(self) -> dict:
        return {"selected_interests": list(self.interests)}


StepData = Union[WelcomeData, QuizData, QuizSkipData, ResultsData, PersonalizedWelcomeData]


def step_data_to_dict(step: OnboardingStep, step_data: "StepData | dict | None") -> dict:
    """Flatten step data for merging. Typed payloads must match the step."""
    if step_data is None:
        return {}
    if isinstance(step_data, dict):
        return copy.deepcopy(step_data)
    if step_data.step != step:
        raise InvalidStepError(
            f"{type(step_data).__name__} cannot complete step {step.value}",
            {"step": step.value, "data_step": step_data.step.value},
        )
    return step_data.to_data()


# =============================================================================
# Progress Record
# =============================================================================


@dataclass(frozen=True)
class OnboardingProgress:
    """
    One user's onboarding progress.

    Persisted to the transient progress store as JSON.
    completed_steps is append-only and may repeat a step that was re-entered.
    """
    user_id: str
    current_step: OnboardingStep = OnboardingStep.WELCOME
    completed_steps: tuple[OnboardingStep, ...] = ()
    data: dict = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated: datetime | None = None
    completed_at: datetime | None = None
    is_complete: bool = False

    def to_dict(self) -> dict:
        """Serialize state to dict for JSON storage."""
        return {
            "user_id": self.user_id,
            "current_step": self.current_step.value,
            "completed_steps": [s.value for s in self.completed_steps],
            "data": copy.deepcopy(self.data),
            "started_at": self.started_at.isoformat(),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "is_complete": self.is_complete,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OnboardingProgress":
        """Deserialize state from dict. Unknown keys are ignored."""
        if not isinstance(data, dict):
            raise TypeError(f"Expected a progress record, got {type(data).__name__}")
        step_data = data.get("data") or {}
        if not isinstance(step_data, dict):
            raise TypeError(f"Expected step data mapping, got {type(step_data).__name__}")

        started_at = parse_timestamp(data.get("started_at"))
        return cls(
            user_id=data["user_id"],
            current_step=OnboardingStep(data.get("current_step", OnboardingStep.WELCOME.value)),
            completed_steps=tuple(OnboardingStep(s) for s in data.get("completed_steps", [])),
            data=copy.deepcopy(step_data),
            started_at=started_at or datetime.now(timezone.utc),
            last_updated=parse_timestamp(data.get("last_updated")),
            completed_at=parse_timestamp(data.get("completed_at")),
            is_complete=bool(data.get("is_complete", False)),
        )

    def to_json(self) -> str:
        """Serialize state to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "OnboardingProgress":
        """Deserialize state from JSON string."""
        return cls.from_dict(json.loads(json_str))


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def new_progress(user_id: str, now: datetime) -> OnboardingProgress:
    """Fresh record at WELCOME."""
    return OnboardingProgress(user_id=user_id, started_at=now, last_updated=now)


# =============================================================================
# Transitions
# =============================================================================


def get_next_step(step: OnboardingStep) -> OnboardingStep:
    """Next step after completing `step` on the main path."""
    if step == OnboardingStep.WELCOME:
        return OnboardingStep.PERSONALITY_QUIZ

    elif step == OnboardingStep.PERSONALITY_QUIZ:
        return OnboardingStep.QUIZ_RESULTS

    elif step == OnboardingStep.QUIZ_RESULTS:
        return OnboardingStep.WELCOME_PERSONALIZED

    return OnboardingStep.COMPLETE


def get_skip_step(has_assessment: bool) -> OnboardingStep:
    """
    Where skipping the quiz leads.

    Users who already have an assessment still get the personalized welcome.
    Only checked at the moment of skipping.
    """
    if has_assessment:
        return OnboardingStep.WELCOME_PERSONALIZED
    return OnboardingStep.COMPLETE


def apply_step(
    progress: OnboardingProgress,
    step: "OnboardingStep | str",
    step_data: "StepData | dict | None",
    now: datetime,
) -> OnboardingProgress:
    """
    Record completion of `step` and move to the step that follows it.

    The next step derives from `step`, not from current_step, so replaying
    the same call lands on the same state. Reaching COMPLETE here does not
    set is_complete; that happens only after finalization.
    """
    step = parse_step(step)
    merged = {**progress.data, **step_data_to_dict(step, step_data)}

    return replace(
        progress,
        current_step=get_next_step(step),
        completed_steps=progress.completed_steps + (step,),
        data=merged,
        last_updated=now,
    )


def apply_skip(
    progress: OnboardingProgress,
    has_assessment: bool,
    now: datetime,
) -> OnboardingProgress:
    """Record a skipped quiz and route per get_skip_step."""
    skip_data = QuizSkipData(skipped_at=now).to_data()

    return replace(
        progress,
        current_step=get_skip_step(has_assessment),
        completed_steps=progress.completed_steps + (OnboardingStep.PERSONALITY_QUIZ,),
        data={**progress.data, **skip_data},
        last_updated=now,
    )


def mark_complete(progress: OnboardingProgress, now: datetime) -> OnboardingProgress:
    """Terminal record after the durable completion write succeeded."""
    return replace(
        progress,
        current_step=OnboardingStep.COMPLETE,
        is_complete=True,
        completed_at=progress.completed_at or now,
        last_updated=now,
    )
