"""
Onboarding test fixtures: in-memory fakes, no Supabase.

The fakes implement the ProfileStore / KeyValueCache / AnalyticsSink
contracts with switchable failures so persistence edge cases can be
exercised without a database.
"""

from datetime import datetime, timedelta, timezone

import pytest

from onboarding.errors import PersistenceError
from onboarding.profile import Assessment, OnboardingFlag
from onboarding.reminder import QuizReminder
from onboarding.service import OnboardingService
from onboarding.store import MemoryCache, ProgressStore
from onboarding.traits import TraitScoreVector


USER_ID = "user-1"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeProfileStore:
    """Durable profile store held in dicts."""

    def __init__(self):
        self.flags: dict[str, OnboardingFlag] = {}
        self.assessments: dict[str, Assessment] = {}
        self.completion_writes: list[tuple[str, datetime]] = []
        self.fail_flag_read = False
        self.fail_completion_write = False
        self.fail_assessment_read = False
        self.fail_assessment_write = False

    def read_onboarding_flag(self, user_id: str) -> OnboardingFlag:
        if self.fail_flag_read:
            raise PersistenceError("profile unavailable")
        return self.flags.get(user_id, OnboardingFlag())

    def write_onboarding_complete(self, user_id: str, completed_at: datetime) -> None:
        if self.fail_completion_write:
            raise PersistenceError("profile unavailable")
        self.completion_writes.append((user_id, completed_at))
        self.flags[user_id] = OnboardingFlag(completed=True, completed_at=completed_at)

    def read_assessment(self, user_id: str) -> Assessment | None:
        if self.fail_assessment_read:
            raise PersistenceError("assessments unavailable")
        return self.assessments.get(user_id)

    def write_assessment(self, assessment: Assessment) -> None:
        if self.fail_assessment_write:
            raise PersistenceError("assessments unavailable")
        self.assessments[assessment.user_id] = assessment


class FlakyCache(MemoryCache):
    """MemoryCache whose operations can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_load = False
        self.fail_save = False
        self.fail_clear = False

    def load(self, key):
        if self.fail_load:
            raise RuntimeError("cache unavailable")
        return super().load(key)

    def save(self, key, record):
        if self.fail_save:
            raise RuntimeError("cache unavailable")
        super().save(key, record)

    def clear(self, key):
        if self.fail_clear:
            raise RuntimeError("cache unavailable")
        super().clear(key)


class RecordingSink:
    """Analytics sink that remembers every event."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def emit(self, event, properties):
        self.events.append((event, properties))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def last(self, name: str) -> dict:
        for event, properties in reversed(self.events):
            if event == name:
                return properties
        raise AssertionError(f"No {name} event recorded")


class FixedClock:
    """Controllable clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def profile():
    return FakeProfileStore()


@pytest.fixture
def cache():
    return FlakyCache()


@pytest.fixture
def store(cache):
    return ProgressStore(cache)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def flags():
    """Session-scoped reminder flags (separate from progress)."""
    return FlakyCache()


@pytest.fixture
def reminder(flags, profile, clock):
    return QuizReminder(flags=flags, profile=profile, clock=clock)


@pytest.fixture
def service(store, profile, sink, reminder, clock):
    return OnboardingService(
        store=store,
        profile=profile,
        analytics=sink,
        reminder=reminder,
        clock=clock,
    )


@pytest.fixture
def make_assessment(clock):
    """Factory for stored assessments."""

    def _make(user_id: str = USER_ID, personality_type: str = "The Adventurer", **scores) -> Assessment:
        return Assessment(
            user_id=user_id,
            personality_type=personality_type,
            scores=TraitScoreVector(**scores),
            completed_at=clock(),
            total_questions=4,
            answered_questions=4,
        )

    return _make
