"""
Durable Profile Store.

The user's profile lives outside onboarding. Onboarding reads the
"onboarding completed" flag and the personality assessment, and writes
each of them exactly once.

Tables:
- profiles: onboarding_completed, onboarding_completed_at
- personality_assessments: one row per user (upsert on user_id)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from .archetypes import Archetype
from .errors import PersistenceError
from .traits import TraitAggregate, TraitScoreVector

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string (with or without Z) to datetime."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return datetime.fromisoformat(value)
    except (AttributeError, ValueError):
        return None


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class OnboardingFlag:
    """Durable completion flag from the profiles table."""
    completed: bool = False
    completed_at: datetime | None = None


@dataclass(frozen=True)
class Assessment:
    """Stored personality assessment."""
    user_id: str
    personality_type: str
    scores: TraitScoreVector = field(default_factory=TraitScoreVector)
    completed_at: datetime | None = None
    total_questions: int = 0
    answered_questions: int = 0

    @classmethod
    def from_aggregate(
        cls,
        user_id: str,
        aggregate: TraitAggregate,
        archetype: Archetype,
    ) -> "Assessment":
        """Build the record produced by a completed quiz."""
        return cls(
            user_id=user_id,
            personality_type=archetype.value,
            scores=aggregate.scores,
            completed_at=aggregate.calculated_at,
            total_questions=aggregate.total_questions,
            answered_questions=aggregate.answered_questions,
        )

    def to_dict(self) -> dict:
        """Flatten for storage (personality_assessments row / progress data)."""
        return {
            "user_id": self.user_id,
            "personality_type": self.personality_type,
            **self.scores.to_dict(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_questions": self.total_questions,
            "answered_questions": self.answered_questions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Assessment":
        """Rebuild from a stored row. Extra columns (id, created_at) are ignored."""
        return cls(
            user_id=data["user_id"],
            personality_type=data.get("personality_type") or Archetype.CURIOUS_TRAVELER.value,
            scores=TraitScoreVector.from_dict(data),
            completed_at=parse_timestamp(data.get("completed_at")),
            total_questions=data.get("total_questions") or 0,
            answered_questions=data.get("answered_questions") or 0,
        )


# =============================================================================
# Port
# =============================================================================


@runtime_checkable
class ProfileStore(Protocol):
    """Durable user-profile store. I/O failures raise PersistenceError."""

    def read_onboarding_flag(self, user_id: str) -> OnboardingFlag:
        ...

    def write_onboarding_complete(self, user_id: str, completed_at: datetime) -> None:
        ...

    def read_assessment(self, user_id: str) -> Assessment | None:
        ...

    def write_assessment(self, assessment: Assessment) -> None:
        ...


# =============================================================================
# Supabase Adapter
# =============================================================================


class SupabaseProfileStore:
    """ProfileStore backed by the profiles and personality_assessments tables."""

    def __init__(self, client: Any):
        self.client = client

    def read_onboarding_flag(self, user_id: str) -> OnboardingFlag:
        try:
            result = (
                self.client.table("profiles")
                .select("onboarding_completed, onboarding_completed_at")
                .eq("id", user_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to read onboarding flag for user {user_id}: {e}")
            raise PersistenceError("Failed to read onboarding status") from e

        # maybe_single() yields None (or empty data) when the row is missing
        if result is None or not result.data:
            return OnboardingFlag()

        return OnboardingFlag(
            completed=bool(result.data.get("onboarding_completed")),
            completed_at=parse_timestamp(result.data.get("onboarding_completed_at")),
        )

    def write_onboarding_complete(self, user_id: str, completed_at: datetime) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            self.client.table("profiles").update({
                "onboarding_completed": True,
                "onboarding_completed_at": completed_at.isoformat(),
                "updated_at": now,
            }).eq("id", user_id).execute()
        except Exception as e:
            logger.error(f"Failed to mark onboarding complete for user {user_id}: {e}")
            raise PersistenceError("Failed to update profile") from e

    def read_assessment(self, user_id: str) -> Assessment | None:
        try:
            result = (
                self.client.table("personality_assessments")
                .select("*")
                .eq("user_id", user_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch assessment for user {user_id}: {e}")
            raise PersistenceError("Failed to fetch assessment") from e

        if result is None or not result.data:
            return None
        return Assessment.from_dict(result.data)

    def write_assessment(self, assessment: Assessment) -> None:
        try:
            self.client.table("personality_assessments").upsert(
                assessment.to_dict(),
                on_conflict="user_id",
            ).execute()
        except Exception as e:
            logger.error(f"Failed to save assessment for user {assessment.user_id}: {e}")
            raise PersistenceError("Failed to save assessment") from e

        logger.info(f"Assessment saved for user {assessment.user_id}: {assessment.personality_type}")
