import pytest
from conftest import THREE_BANDS, rating_question

from counsel.domain.models import CategoryScoring, InterpretationRange, ScoringRules
from counsel.domain.scoring_rules import validate_scoring_rules
from counsel.infrastructure.exceptions import (
    InvalidRangeCoverageError,
    MissingScoringCategoriesError,
    UnscoredCategoryError,
)


def rules(*names, overall=THREE_BANDS):
    return ScoringRules(
        categories=tuple(CategoryScoring(n, THREE_BANDS) for n in names),
        overall_interpretations=overall,
    )


QUESTIONS = [rating_question("q1", "mood"), rating_question("q2", "sleep")]


def test_consistent_rules_pass():
    validate_scoring_rules(QUESTIONS, rules("mood", "sleep"))


def test_extra_scoring_category_is_allowed():
    validate_scoring_rules(QUESTIONS, rules("mood", "sleep", "energy"))


def test_no_categories_rejected():
    with pytest.raises(MissingScoringCategoriesError):
        validate_scoring_rules(QUESTIONS, rules())


def test_missing_category_reported_by_name():
    with pytest.raises(UnscoredCategoryError) as exc:
        validate_scoring_rules(QUESTIONS, rules("mood"))
    assert exc.value.category == "sleep"
    assert exc.value.message == 'Category "sleep" is missing scoring interpretations'


def test_category_ranges_checked_before_overall():
    broken = ScoringRules(
        categories=(
            CategoryScoring("mood", (InterpretationRange(90, "Most", "Almost all"),)),
            CategoryScoring("sleep", THREE_BANDS),
        ),
        overall_interpretations=(),
    )
    with pytest.raises(InvalidRangeCoverageError) as exc:
        validate_scoring_rules(QUESTIONS, broken)
    assert exc.value.subject == "mood"


def test_overall_ranges_checked():
    with pytest.raises(InvalidRangeCoverageError) as exc:
        validate_scoring_rules(QUESTIONS, rules("mood", "sleep", overall=()))
    assert exc.value.subject == "overall"
    assert exc.value.detail == "At least one range is required"


def test_coverage_checked_before_ranges():
    # Overall ranges are also broken, but the uncovered category is reported first.
    with pytest.raises(UnscoredCategoryError):
        validate_scoring_rules(QUESTIONS, rules("mood", overall=()))
