"""
Tests for the trait aggregator.
"""

from datetime import datetime, timezone

import pytest

from onboarding.errors import EmptyAssessmentError
from onboarding.traits import (
    AnswerContribution,
    TraitName,
    TraitScoreVector,
    aggregate_answers,
    completion_percentage,
    parse_trait_name,
    validate_answers,
)


def _answers(*trait_scores: dict) -> list[AnswerContribution]:
    return [
        AnswerContribution(question_id=i, trait_scores=scores)
        for i, scores in enumerate(trait_scores, start=1)
    ]


class TestAggregateAnswers:
    """Sum-then-normalize scoring."""

    def test_max_adventure_and_risk(self, adventurer_answers):
        answers = [AnswerContribution.model_validate(a) for a in adventurer_answers]

        result = aggregate_answers(answers)

        assert result.scores.adventure_style == 100
        assert result.scores.risk_tolerance == 100
        assert result.scores.energy_level == 0
        assert result.scores.social_preference == 0

    def test_zero_deltas_give_zero_scores(self):
        result = aggregate_answers(_answers({}, {}, {}, {}))

        assert result.scores == TraitScoreVector()
        assert result.total_questions == 4
        assert result.answered_questions == 0

    def test_empty_answers_raise(self):
        with pytest.raises(EmptyAssessmentError):
            aggregate_answers([])

    def test_normalizes_against_answer_count(self):
        # 3 + 2 out of 2 * 5
        result = aggregate_answers(_answers({"energy_level": 3}, {"energy_level": 2}))
        assert result.scores.energy_level == 50

    def test_rounds_half_up(self):
        # 1 / (4 * 2) * 100 = 12.5
        result = aggregate_answers(
            _answers({"energy_level": 1}, {}, {}, {}),
            max_delta=2,
        )
        assert result.scores.energy_level == 13

    def test_deltas_are_clamped(self):
        result = aggregate_answers(_answers({"energy_level": 50, "risk_tolerance": -3}))

        assert result.scores.energy_level == 100
        assert result.scores.risk_tolerance == 0

    def test_unknown_traits_ignored(self):
        result = aggregate_answers(_answers({"patience": 5, "social_preference": 5}))

        assert result.scores.social_preference == 100
        assert result.scores.to_dict().keys() == {t.value for t in TraitName}

    def test_scores_always_in_range(self):
        answers = _answers(
            {"energy_level": 5, "social_preference": 1},
            {"energy_level": 9, "adventure_style": 4},
            {"risk_tolerance": 2, "adventure_style": -1},
        )
        result = aggregate_answers(answers)

        for _, score in result.scores:
            assert isinstance(score, int)
            assert 0 <= score <= 100

    def test_answered_questions_counts_scored_answers(self):
        result = aggregate_answers(_answers({"energy_level": 1}, {}, {"risk_tolerance": 2}))

        assert result.total_questions == 3
        assert result.answered_questions == 2

    def test_uses_supplied_timestamp(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        result = aggregate_answers(_answers({"energy_level": 1}), now=now)
        assert result.calculated_at == now

    def test_invalid_max_delta(self):
        with pytest.raises(ValueError):
            aggregate_answers(_answers({"energy_level": 1}), max_delta=0)


class TestAnswerContribution:
    """Inbound answer model."""

    def test_accepts_camel_case(self):
        answer = AnswerContribution.model_validate({
            "questionId": 7,
            "optionId": "b",
            "traitScores": {"socialPreference": 4},
        })
        assert answer.question_id == 7
        assert answer.option_id == "b"
        assert answer.trait_scores == {"socialPreference": 4}

    def test_trait_scores_default_empty(self):
        answer = AnswerContribution(question_id="q1")
        assert answer.trait_scores == {}


class TestTraitScoreVector:
    """Vector helpers."""

    def test_from_dict_accepts_both_spellings(self):
        vector = TraitScoreVector.from_dict({
            "energyLevel": 10,
            "social_preference": 20,
            "id": "row-1",
        })
        assert vector.energy_level == 10
        assert vector.social_preference == 20
        assert vector.adventure_style == 0

    def test_lookup_by_trait(self):
        vector = TraitScoreVector(risk_tolerance=42)
        assert vector[TraitName.RISK_TOLERANCE] == 42
        assert vector["risk_tolerance"] == 42

    def test_parse_trait_name(self):
        assert parse_trait_name("adventureStyle") is TraitName.ADVENTURE_STYLE
        assert parse_trait_name("adventure_style") is TraitName.ADVENTURE_STYLE
        assert parse_trait_name("bravery") is None


class TestAnswerHelpers:
    """validate_answers and completion_percentage."""

    def test_validate_answers(self):
        assert validate_answers([{"question_id": 1, "trait_scores": {}}])
        assert validate_answers([{"questionId": "q1", "traitScores": {"energyLevel": 2}}])
        assert not validate_answers({"question_id": 1})
        assert not validate_answers([{"question_id": 1}])
        assert not validate_answers([{"trait_scores": {}}])

    def test_completion_percentage(self):
        answers = _answers({"energy_level": 1}, {"risk_tolerance": 1}, {})
        assert completion_percentage(answers, 10) == 20
        assert completion_percentage([], 10) == 0
        assert completion_percentage(answers, 0) == 0
