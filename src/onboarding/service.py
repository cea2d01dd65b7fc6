"""
Onboarding Service.

Drives one user's onboarding session: holds the current OnboardingProgress,
applies the pure transitions from state.py, persists every result, and
performs the one-time completion finalization.

The held record is only replaced after the persistence step for that
transition succeeds. On failure the previous record is kept and the error
is raised, so callers can simply retry the same call.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Iterable

from .analytics import AnalyticsEvent, AnalyticsSink, track
from .archetypes import classify, describe_traits, map_to_travel_preferences
from .errors import CompletionError, MissingUserError, NotInitializedError, PersistenceError
from .profile import Assessment, OnboardingFlag, ProfileStore
from .reminder import QuizReminder
from .state import (
    OnboardingProgress,
    OnboardingStep,
    QuizData,
    StepData,
    apply_skip,
    apply_step,
    mark_complete,
    new_progress,
    parse_step,
    utc_now,
)
from .store import ProgressStore
from .traits import DEFAULT_MAX_DELTA_PER_QUESTION, AnswerContribution, aggregate_answers

logger = logging.getLogger(__name__)


class OnboardingService:
    """
    Onboarding session for a single user.

    Collaborators are injected:
    - store: transient ProgressStore for in-flight progress
    - profile: durable ProfileStore (completion flag + assessments)
    - analytics: optional AnalyticsSink
    - reminder: optional QuizReminder whose skip flag is kept in sync
    """

    def __init__(
        self,
        store: ProgressStore,
        profile: ProfileStore,
        analytics: AnalyticsSink | None = None,
        reminder: QuizReminder | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_delta_per_question: int = DEFAULT_MAX_DELTA_PER_QUESTION,
    ):
        self.store = store
        self.profile = profile
        self.analytics = analytics
        self.reminder = reminder
        self.clock = clock
        self.max_delta_per_question = max_delta_per_question
        self.progress: OnboardingProgress | None = None

    @property
    def user_id(self) -> str | None:
        return self.progress.user_id if self.progress else None

    # =========================================================================
    # Session setup
    # =========================================================================

    def is_first_time_user(self, user_id: str | None) -> bool:
        """
        Whether the user still needs onboarding.

        Defaults to True (show onboarding) if the profile can't be read.
        """
        if not user_id:
            return False

        try:
            return not self.profile.read_onboarding_flag(user_id).completed
        except Exception as e:
            logger.warning(f"Error checking onboarding status for user {user_id}: {e}")
            return True

    def initialize(self, user_id: str | None) -> OnboardingProgress:
        """
        Start or resume onboarding for a user.

        Idempotent. Never fails on storage errors: if progress can't be
        loaded or saved, a fresh in-memory record is returned so the user
        still sees onboarding.

        Raises:
            MissingUserError: If no user id is supplied
        """
        if not user_id:
            raise MissingUserError("User is required to initialize onboarding")

        now = self.clock()

        flag = self._read_flag(user_id)
        if flag.completed:
            logger.info(f"User {user_id} already completed onboarding")
            self._discard_transient(user_id)
            self.progress = self._completed_record(user_id, flag, now)
            return self.progress

        try:
            saved = self.store.load(user_id)
        except PersistenceError as e:
            logger.warning(f"Could not load onboarding progress for user {user_id}, starting fresh: {e}")
            saved = None

        progress = saved or new_progress(user_id, now)

        try:
            self.store.save(progress)
        except PersistenceError as e:
            logger.warning(f"Could not persist onboarding progress for user {user_id}: {e}")

        self.progress = progress

        track(self.analytics, AnalyticsEvent.ONBOARDING_STARTED, {
            "user_id": user_id,
            "is_returning": saved is not None,
        })

        return progress

    def resume(self, user_id: str | None) -> OnboardingProgress:
        """
        Load existing progress.

        The durable flag wins over the transient record: users whose flag is
        set get a COMPLETE record, and any leftover transient record (from a
        clear that failed during finalization) is cleared best-effort.

        Raises:
            MissingUserError: If no user id is supplied
            NotInitializedError: If the user has no onboarding in progress
            PersistenceError: If storage can't be read
        """
        if not user_id:
            raise MissingUserError("User is required to resume onboarding")

        flag = self.profile.read_onboarding_flag(user_id)
        if flag.completed:
            self._discard_transient(user_id)
            self.progress = self._completed_record(user_id, flag, self.clock())
            return self.progress

        saved = self.store.load(user_id)
        if saved is not None:
            self.progress = saved
            return saved

        raise NotInitializedError("Onboarding not initialized", {"user_id": user_id})

    # =========================================================================
    # Transitions
    # =========================================================================

    def complete_step(
        self,
        step: OnboardingStep | str,
        step_data: StepData | dict | None = None,
    ) -> OnboardingProgress:
        """
        Complete `step` and advance.

        Raises:
            NotInitializedError: Before initialize/resume
            InvalidStepError: Unknown step label (progress unchanged)
            PersistenceError: Progress save failed (progress unchanged)
            CompletionError: Durable completion write failed (progress unchanged)
        """
        progress = self._require_progress()
        step = parse_step(step)

        if progress.is_complete:
            logger.debug(f"Onboarding already complete for user {progress.user_id}, ignoring {step.value}")
            return progress

        now = self.clock()
        candidate = apply_step(progress, step, step_data, now)
        self._commit(candidate, now)

        track(self.analytics, AnalyticsEvent.STEP_COMPLETED, {
            "user_id": progress.user_id,
            "step": step.value,
            "next_step": candidate.current_step.value,
        })

        return self.progress

    def skip_quiz(self) -> OnboardingProgress:
        """
        Skip the personality quiz.

        Goes to WELCOME_PERSONALIZED if the user already has an assessment,
        otherwise straight to COMPLETE. Sets the reminder skip flag.
        """
        progress = self._require_progress()
        if progress.is_complete:
            return progress

        now = self.clock()
        candidate = apply_skip(progress, self._has_assessment(progress.user_id), now)
        self._commit(candidate, now)

        if self.reminder is not None:
            try:
                self.reminder.mark_quiz_skipped()
            except Exception as e:
                logger.warning(f"Failed to set quiz skip flag for user {progress.user_id}: {e}")

        track(self.analytics, AnalyticsEvent.QUIZ_SKIPPED, {
            "user_id": progress.user_id,
            "step": OnboardingStep.PERSONALITY_QUIZ.value,
            "next_step": candidate.current_step.value,
        })

        return self.progress

    def complete_quiz(
        self,
        assessment: Assessment,
        answers: Iterable[AnswerContribution] = (),
    ) -> OnboardingProgress:
        """
        Record quiz results, clear any skip flag, and complete PERSONALITY_QUIZ.

        quiz_taken is only emitted when the quiz step commits; on an already
        completed record the step is a no-op and no event is sent.
        """
        progress = self._require_progress()
        already_complete = progress.is_complete

        self.complete_step(
            OnboardingStep.PERSONALITY_QUIZ,
            QuizData(assessment=assessment, answers=tuple(answers)),
        )

        if self.reminder is not None:
            try:
                self.reminder.clear_quiz_skipped()
            except Exception as e:
                logger.warning(f"Failed to clear quiz skip flag for user {progress.user_id}: {e}")

        if already_complete:
            return self.progress

        track(self.analytics, AnalyticsEvent.QUIZ_TAKEN, {
            "user_id": progress.user_id,
            "personality_type": assessment.personality_type,
        })

        return self.progress

    def submit_quiz(self, answers: Iterable[AnswerContribution | dict]) -> Assessment:
        """
        Score answers, save the assessment, and complete the quiz step.

        Raises:
            EmptyAssessmentError: No answers
            PersistenceError: Assessment could not be saved (progress unchanged)
        """
        progress = self._require_progress()
        parsed = [
            a if isinstance(a, AnswerContribution) else AnswerContribution.model_validate(a)
            for a in answers
        ]

        aggregate = aggregate_answers(parsed, self.max_delta_per_question, now=self.clock())
        archetype = classify(aggregate.scores)
        assessment = Assessment.from_aggregate(progress.user_id, aggregate, archetype)

        self.profile.write_assessment(assessment)
        self.complete_quiz(assessment, parsed)

        return assessment

    def abandon(self, reason: str | None = None) -> None:
        """Report that the user left onboarding. Progress is kept for resume."""
        progress = self._require_progress()

        track(self.analytics, AnalyticsEvent.ONBOARDING_ABANDONED, {
            "user_id": progress.user_id,
            "current_step": progress.current_step.value,
            "completed_steps": [s.value for s in progress.completed_steps],
            "reason": reason,
        })

    # =========================================================================
    # Queries
    # =========================================================================

    def get_personalized_data(self) -> dict[str, Any] | None:
        """Stored assessment reshaped for the personalized welcome, or None."""
        if self.progress is None:
            return None

        try:
            assessment = self.profile.read_assessment(self.progress.user_id)
        except Exception as e:
            logger.warning(f"Error getting personalized data for user {self.progress.user_id}: {e}")
            return None

        if assessment is None:
            return None

        return {
            "personality_type": assessment.personality_type,
            "traits": assessment.scores.to_dict(),
            "trait_descriptions": describe_traits(assessment.scores),
            "travel_preferences": map_to_travel_preferences(assessment.scores),
        }

    def calculate_duration(self, now: datetime | None = None) -> int:
        """Whole minutes from start to completion (or now)."""
        if self.progress is None:
            return 0

        end = self.progress.completed_at or now or self.clock()
        seconds = (end - self.progress.started_at).total_seconds()
        return max(0, round(seconds / 60))

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_progress(self) -> OnboardingProgress:
        if self.progress is None:
            raise NotInitializedError("Onboarding not initialized")
        return self.progress

    def _read_flag(self, user_id: str) -> OnboardingFlag:
        try:
            return self.profile.read_onboarding_flag(user_id)
        except Exception as e:
            logger.warning(f"Error checking onboarding status for user {user_id}: {e}")
            return OnboardingFlag()

    def _has_assessment(self, user_id: str) -> bool:
        try:
            return self.profile.read_assessment(user_id) is not None
        except Exception as e:
            logger.warning(f"Error checking for existing assessment for user {user_id}: {e}")
            return False

    def _discard_transient(self, user_id: str) -> None:
        try:
            self.store.clear(user_id)
        except PersistenceError as e:
            logger.warning(f"Failed to clear onboarding progress for user {user_id}: {e}")

    def _completed_record(self, user_id: str, flag: OnboardingFlag, now: datetime) -> OnboardingProgress:
        return mark_complete(new_progress(user_id, now), flag.completed_at or now)

    def _commit(self, candidate: OnboardingProgress, now: datetime) -> None:
        """Persist a transition result, then adopt it."""
        if candidate.current_step == OnboardingStep.COMPLETE:
            self._finalize(candidate, now)
            return

        self.store.save(candidate)
        self.progress = candidate

    def _finalize(self, candidate: OnboardingProgress, now: datetime) -> None:
        """
        One-time completion: durable write, then adopt, then clear transient.

        If the durable write fails nothing changes and CompletionError is
        raised; the transient record stays the source of truth.
        """
        user_id = candidate.user_id
        try:
            self.profile.write_onboarding_complete(user_id, now)
        except Exception as e:
            logger.error(f"Failed to complete onboarding for user {user_id}: {e}")
            raise CompletionError("Failed to complete onboarding", {"user_id": user_id}) from e

        self.progress = mark_complete(candidate, now)
        self._discard_transient(user_id)

        logger.info(f"Onboarding completed for user {user_id}")

        track(self.analytics, AnalyticsEvent.ONBOARDING_COMPLETED, {
            "user_id": user_id,
            "completed_steps": [s.value for s in self.progress.completed_steps],
            "duration_minutes": self.calculate_duration(now),
        })
