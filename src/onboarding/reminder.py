"""
Quiz Re-engagement Reminder.

Decides whether to resurface the personality quiz for users who skipped it.
Flags live in their own session-scoped KeyValueCache and never touch
OnboardingProgress, so a dismissed or snoozed banner cannot affect
onboarding completion.

Decision (should_prompt_later):
    skip flag set for this session
    AND not dismissed this session
    AND not snoozed past now
    AND no Assessment exists yet
Any lookup failure answers False.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from .profile import ProfileStore, parse_timestamp
from .state import utc_now
from .store import KeyValueCache

logger = logging.getLogger(__name__)


QUIZ_SKIPPED_KEY = "quiz_skipped"
PROMPT_DISMISSED_KEY = "quiz_prompt_dismissed"
PROMPT_SNOOZED_KEY = "quiz_prompt_snoozed_until"

DEFAULT_SNOOZE_HOURS = 24


class QuizReminder:
    """Show/dismiss/snooze decision for the "take the quiz" banner."""

    def __init__(
        self,
        flags: KeyValueCache,
        profile: ProfileStore,
        clock: Callable[[], datetime] = utc_now,
        snooze_hours: int = DEFAULT_SNOOZE_HOURS,
    ):
        self.flags = flags
        self.profile = profile
        self.clock = clock
        self.snooze_hours = snooze_hours

    def should_prompt_later(self, user_id: str | None) -> bool:
        """True only when the quiz was skipped this session and no assessment exists."""
        if not user_id:
            return False

        try:
            if not self.flags.load(QUIZ_SKIPPED_KEY):
                return False

            if self.flags.load(PROMPT_DISMISSED_KEY):
                return False

            snoozed = self.flags.load(PROMPT_SNOOZED_KEY)
            if snoozed:
                until = parse_timestamp(snoozed.get("until"))
                if until is not None and until > self.clock():
                    return False

            return self.profile.read_assessment(user_id) is None

        except Exception as e:
            logger.warning(f"Quiz reminder check failed for user {user_id}: {e}")
            return False

    def mark_quiz_skipped(self) -> None:
        self.flags.save(QUIZ_SKIPPED_KEY, {"skipped_at": self.clock().isoformat()})

    def clear_quiz_skipped(self) -> None:
        self.flags.clear(QUIZ_SKIPPED_KEY)

    def dismiss(self) -> None:
        """Stop prompting for the rest of this session."""
        self.flags.save(PROMPT_DISMISSED_KEY, {"dismissed_at": self.clock().isoformat()})
        logger.info("Quiz reminder dismissed")

    def snooze(self, hours: int | None = None) -> datetime:
        """
        Defer the prompt.

        Args:
            hours: Deferral length (defaults to snooze_hours)

        Returns:
            When the prompt may show again
        """
        hours = self.snooze_hours if hours is None else hours
        until = self.clock() + timedelta(hours=hours)
        self.flags.save(PROMPT_SNOOZED_KEY, {"until": until.isoformat()})
        logger.info(f"Quiz reminder snoozed until {until.isoformat()}")
        return until
