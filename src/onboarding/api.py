"""
Onboarding API Endpoints.

Separate router from the rest of the TRVL API.
Each request builds an OnboardingService for the authenticated user and
resumes the persisted progress before mutating it.
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from trvl.config import core_settings
from trvl.db.client import get_service_client
from trvl.observability.event_log import EventLog
from trvl.web.auth import AuthenticatedUser, get_current_user

from .analytics import AnalyticsSink, FanOutSink, LoggingAnalyticsSink
from .errors import (
    CompletionError,
    NotInitializedError,
    OnboardingError,
    PersistenceError,
)
from .profile import SupabaseProfileStore
from .reminder import QuizReminder
from .service import OnboardingService
from .state import OnboardingProgress
from .store import MemoryCache, ProgressStore, SupabaseSessionCache
from .traits import AnswerContribution

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# =============================================================================
# Request/Response Models
# =============================================================================


class StepRequest(BaseModel):
    """Complete one onboarding step."""
    step: str
    data: dict = Field(default_factory=dict)


class QuizRequest(BaseModel):
    """Answered quiz questions, in order."""
    answers: list[AnswerContribution] = Field(default_factory=list)


class AbandonRequest(BaseModel):
    reason: str | None = None


class SnoozeRequest(BaseModel):
    hours: int | None = Field(default=None, ge=1)


class ProgressResponse(BaseModel):
    """Current onboarding progress."""
    user_id: str
    current_step: str
    completed_steps: list[str]
    data: dict
    is_complete: bool
    started_at: str | None = None
    completed_at: str | None = None

    @classmethod
    def from_progress(cls, progress: OnboardingProgress) -> "ProgressResponse":
        record = progress.to_dict()
        return cls(
            user_id=record["user_id"],
            current_step=record["current_step"],
            completed_steps=record["completed_steps"],
            data=record["data"],
            is_complete=record["is_complete"],
            started_at=record["started_at"],
            completed_at=record["completed_at"],
        )


class QuizResponse(BaseModel):
    progress: ProgressResponse
    assessment: dict


class ReminderResponse(BaseModel):
    show: bool
    snoozed_until: str | None = None


# =============================================================================
# Service Wiring
# =============================================================================

# Process-local progress store, used when the memory backend is configured
_memory_progress = MemoryCache()

# Reminder flags are kept for the most recently active users only;
# an evicted user starts a new reminder session.
MAX_SESSION_FLAG_USERS = 1024


@lru_cache(maxsize=MAX_SESSION_FLAG_USERS)
def get_session_flags(user_id: str) -> MemoryCache:
    """Session-scoped reminder flags for a user."""
    return MemoryCache()


@lru_cache
def get_analytics_sink() -> AnalyticsSink:
    """Application log, plus a JSONL event log when TRVL_ANALYTICS_LOG_DIR is set."""
    sink = LoggingAnalyticsSink()
    log_dir = core_settings.trvl_analytics_log_dir
    if log_dir is None:
        return sink

    event_log = EventLog(log_dir=log_dir)
    logger.info(f"Analytics event log: {event_log.log_path}")
    return FanOutSink(sink, event_log)


def build_service(user_id: str) -> OnboardingService:
    """Wire an OnboardingService to Supabase (and configured caches)."""
    client = get_service_client()
    profile = SupabaseProfileStore(client)

    if core_settings.onboarding_progress_backend == "memory":
        cache = _memory_progress
    else:
        cache = SupabaseSessionCache(client)

    reminder = QuizReminder(
        flags=get_session_flags(user_id),
        profile=profile,
        snooze_hours=core_settings.quiz_reminder_snooze_hours,
    )

    return OnboardingService(
        store=ProgressStore(cache, namespace=core_settings.onboarding_progress_namespace),
        profile=profile,
        analytics=get_analytics_sink(),
        reminder=reminder,
        max_delta_per_question=core_settings.quiz_max_delta_per_question,
    )


async def get_onboarding_service(
    user: AuthenticatedUser = Depends(get_current_user),
) -> OnboardingService:
    return build_service(user.id)


def to_http_exception(error: OnboardingError) -> HTTPException:
    """Map onboarding errors to HTTP status codes."""
    if isinstance(error, (PersistenceError, CompletionError)):
        status_code = 503
    elif isinstance(error, NotInitializedError):
        status_code = 409
    else:
        status_code = 400

    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message, "retryable": error.retryable},
    )


# =============================================================================
# Endpoints: Progress
# =============================================================================


@router.get("/first-time")
async def get_first_time(
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> dict:
    """Whether the user still needs onboarding."""
    return {"first_time_user": service.is_first_time_user(user.id)}


@router.get("/state", response_model=ProgressResponse)
async def get_onboarding_state(
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> ProgressResponse:
    """Get current onboarding progress (409 if not started)."""
    try:
        progress = service.resume(user.id)
    except OnboardingError as e:
        raise to_http_exception(e)

    return ProgressResponse.from_progress(progress)


@router.post("/start", response_model=ProgressResponse)
async def start_onboarding(
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> ProgressResponse:
    """Start or resume onboarding. Always succeeds for an authenticated user."""
    try:
        progress = service.initialize(user.id)
    except OnboardingError as e:
        raise to_http_exception(e)

    return ProgressResponse.from_progress(progress)


@router.post("/step", response_model=ProgressResponse)
async def complete_step(
    request: StepRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> ProgressResponse:
    """Complete a step and advance."""
    try:
        service.resume(user.id)
        progress = service.complete_step(request.step, request.data)
    except OnboardingError as e:
        raise to_http_exception(e)

    return ProgressResponse.from_progress(progress)


# =============================================================================
# Endpoints: Personality Quiz
# =============================================================================


@router.post("/quiz", response_model=QuizResponse)
async def submit_quiz(
    request: QuizRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> QuizResponse:
    """Score quiz answers, save the assessment, and advance to results."""
    try:
        service.resume(user.id)
        assessment = service.submit_quiz(request.answers)
    except OnboardingError as e:
        raise to_http_exception(e)

    return QuizResponse(
        progress=ProgressResponse.from_progress(service.progress),
        assessment=assessment.to_dict(),
    )


@router.post("/quiz/skip", response_model=ProgressResponse)
async def skip_quiz(
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> ProgressResponse:
    """Skip the quiz."""
    try:
        service.resume(user.id)
        progress = service.skip_quiz()
    except OnboardingError as e:
        raise to_http_exception(e)

    return ProgressResponse.from_progress(progress)


@router.get("/personalized")
async def get_personalized(
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> dict:
    """Assessment-based data for the personalized welcome step."""
    try:
        service.resume(user.id)
    except OnboardingError as e:
        raise to_http_exception(e)

    return {"personalized": service.get_personalized_data()}


@router.post("/abandon")
async def abandon_onboarding(
    request: AbandonRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> dict:
    """Record that the user left onboarding. Progress is kept."""
    try:
        service.resume(user.id)
        service.abandon(request.reason)
    except OnboardingError as e:
        raise to_http_exception(e)

    return {"success": True}


# =============================================================================
# Endpoints: Quiz Reminder
# =============================================================================


@router.get("/reminder", response_model=ReminderResponse)
async def get_reminder(
    user: AuthenticatedUser = Depends(get_current_user),
    service: OnboardingService = Depends(get_onboarding_service),
) -> ReminderResponse:
    """Whether to show the "take the quiz" banner."""
    return ReminderResponse(show=service.reminder.should_prompt_later(user.id))


@router.post("/reminder/dismiss", response_model=ReminderResponse)
async def dismiss_reminder(
    service: OnboardingService = Depends(get_onboarding_service),
) -> ReminderResponse:
    service.reminder.dismiss()
    return ReminderResponse(show=False)


@router.post("/reminder/snooze", response_model=ReminderResponse)
async def snooze_reminder(
    request: SnoozeRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> ReminderResponse:
    until = service.reminder.snooze(request.hours)
    return ReminderResponse(show=False, snoozed_until=until.isoformat())
