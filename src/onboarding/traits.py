"""
Trait Aggregator.

Reduces quiz answers into normalized per-trait scores.

Each answer carries a partial mapping of trait name -> small integer delta
(0..max_delta). Deltas are summed per trait across all answers and then
normalized against the best possible total:

    score = round_half_up(total / (answer_count * max_delta) * 100)

so every score lands in [0, 100].
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator

from pydantic import AliasChoices, BaseModel, Field

from .errors import EmptyAssessmentError

logger = logging.getLogger(__name__)


DEFAULT_MAX_DELTA_PER_QUESTION = 5


class TraitName(str, Enum):
    """The four fixed personality traits."""
    ENERGY_LEVEL = "energy_level"
    SOCIAL_PREFERENCE = "social_preference"
    ADVENTURE_STYLE = "adventure_style"
    RISK_TOLERANCE = "risk_tolerance"


# Quiz UIs send camelCase trait keys
_TRAIT_ALIASES = {
    "energyLevel": TraitName.ENERGY_LEVEL,
    "socialPreference": TraitName.SOCIAL_PREFERENCE,
    "adventureStyle": TraitName.ADVENTURE_STYLE,
    "riskTolerance": TraitName.RISK_TOLERANCE,
}


def parse_trait_name(name: str) -> TraitName | None:
    """Resolve a snake_case or camelCase trait key. Unknown keys -> None."""
    if name in _TRAIT_ALIASES:
        return _TRAIT_ALIASES[name]
    try:
        return TraitName(name)
    except ValueError:
        return None


# =============================================================================
# Models
# =============================================================================


class AnswerContribution(BaseModel):
    """One answered quiz question, as supplied by the quiz UI."""

    question_id: int | str = Field(validation_alias=AliasChoices("question_id", "questionId"))
    option_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("option_id", "optionId"),
    )
    trait_scores: dict[str, int] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("trait_scores", "traitScores"),
        description="Partial mapping of trait name -> delta for this answer",
    )


@dataclass(frozen=True)
class TraitScoreVector:
    """Normalized trait scores, each an integer in [0, 100]."""
    energy_level: int = 0
    social_preference: int = 0
    adventure_style: int = 0
    risk_tolerance: int = 0

    def __getitem__(self, trait: TraitName | str) -> int:
        name = trait.value if isinstance(trait, TraitName) else trait
        return getattr(self, name)

    def __iter__(self) -> Iterator[tuple[TraitName, int]]:
        for trait in TraitName:
            yield trait, self[trait]

    def to_dict(self) -> dict[str, int]:
        return {trait.value: score for trait, score in self}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TraitScoreVector":
        values = {}
        for key, score in data.items():
            trait = parse_trait_name(key)
            if trait is not None and score is not None:
                values[trait.value] = int(score)
        return cls(**values)


@dataclass(frozen=True)
class TraitAggregate:
    """Aggregator output: scores plus answer bookkeeping."""
    scores: TraitScoreVector
    total_questions: int
    answered_questions: int
    calculated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# Aggregation
# =============================================================================


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def aggregate_answers(
    answers: list[AnswerContribution],
    max_delta: int = DEFAULT_MAX_DELTA_PER_QUESTION,
    now: datetime | None = None,
) -> TraitAggregate:
    """
    Sum per-trait deltas across answers and normalize to 0-100.

    Args:
        answers: Ordered quiz answers
        max_delta: Highest delta a single answer may contribute to one trait
        now: Calculation timestamp (defaults to current UTC time)

    Raises:
        EmptyAssessmentError: If answers is empty
    """
    if not answers:
        raise EmptyAssessmentError("No answers provided for calculation")
    if max_delta < 1:
        raise ValueError("max_delta must be at least 1")

    totals = {trait: 0 for trait in TraitName}
    answered = 0

    for answer in answers:
        if answer.trait_scores:
            answered += 1
        for key, delta in answer.trait_scores.items():
            trait = parse_trait_name(key)
            if trait is None:
                logger.debug(f"Ignoring unknown trait '{key}' on question {answer.question_id}")
                continue
            totals[trait] += max(0, min(max_delta, delta))

    divisor = len(answers) * max_delta
    scores = TraitScoreVector(**{
        trait.value: max(0, min(100, _round_half_up(total / divisor * 100)))
        for trait, total in totals.items()
    })

    return TraitAggregate(
        scores=scores,
        total_questions=len(answers),
        answered_questions=answered,
        calculated_at=now or datetime.now(timezone.utc),
    )


# =============================================================================
# Answer Helpers
# =============================================================================


def validate_answers(answers: Any) -> bool:
    """Check raw answer payloads have question_id and a trait_scores mapping."""
    if not isinstance(answers, list):
        return False

    return all(
        isinstance(answer, dict)
        and isinstance(answer.get("question_id", answer.get("questionId")), (int, str))
        and isinstance(answer.get("trait_scores", answer.get("traitScores")), dict)
        for answer in answers
    )


def completion_percentage(answers: list[AnswerContribution], total_questions: int) -> int:
    """Percent of the question bank answered with trait scores."""
    if not answers or total_questions <= 0:
        return 0

    answered = sum(1 for a in answers if a.trait_scores)
    return _round_half_up(answered / total_questions * 100)
