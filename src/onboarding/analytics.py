"""
Onboarding Analytics.

Event names and the sink contract the state machine emits through.
Analytics is fire-and-forget: a failing sink is logged and never breaks
a transition.
"""

import logging
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class AnalyticsEvent(str, Enum):
    """Recognized onboarding analytics events."""
    ONBOARDING_STARTED = "onboarding_started"
    STEP_COMPLETED = "onboarding_step_completed"
    QUIZ_SKIPPED = "quiz_skipped"
    QUIZ_TAKEN = "quiz_taken"
    ONBOARDING_COMPLETED = "onboarding_completed"
    ONBOARDING_ABANDONED = "onboarding_abandoned"


@runtime_checkable
class AnalyticsSink(Protocol):
    """Anything with emit(event_name, properties)."""

    def emit(self, event: str, properties: dict[str, Any]) -> None:
        ...


class LoggingAnalyticsSink:
    """Writes events to the application log."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def emit(self, event: str, properties: dict[str, Any]) -> None:
        logger.log(self.level, f"[analytics] {event}: {properties}")


class FanOutSink:
    """Forwards each event to several sinks. One failing sink does not stop the rest."""

    def __init__(self, *sinks: AnalyticsSink):
        self.sinks = list(sinks)

    def emit(self, event: str, properties: dict[str, Any]) -> None:
        for sink in self.sinks:
            track(sink, event, properties)


def track(sink: AnalyticsSink | None, event: AnalyticsEvent | str, properties: dict[str, Any]) -> None:
    """Emit an event, logging and swallowing sink failures."""
    if sink is None:
        return

    name = event.value if isinstance(event, AnalyticsEvent) else event
    try:
        sink.emit(name, properties)
    except Exception as e:
        logger.warning(f"Failed to track analytics event {name}: {e}")
