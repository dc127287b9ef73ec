from __future__ import annotations

from collections.abc import Sequence

from ..infrastructure.exceptions import MissingScoringCategoriesError, UnscoredCategoryError
from .models import Question, ScoringRules
from .questions import question_categories
from .ranges import validate_ranges

OVERALL_SUBJECT = "overall"


def validate_scoring_rules(questions: Sequence[Question], rules: ScoringRules) -> None:
    """
    Check that scoring rules are consistent with the questions they score.

    Steps run in order and the first violation wins:

    1. at least one scoring category must exist;
    2. every distinct question category needs a scoring category of the same
       name (extra scoring categories are allowed, for questions added later);
    3. each category's interpretation ranges must cover 0..100;
    4. the overall interpretation ranges must cover 0..100.
    """
    if not rules.categories:
        raise MissingScoringCategoriesError()

    scored = {c.name for c in rules.categories}
    for category in sorted(question_categories(questions)):
        if category not in scored:
            raise UnscoredCategoryError(category)

    for category_scoring in rules.categories:
        validate_ranges(category_scoring.interpretations, category_scoring.name)

    validate_ranges(rules.overall_interpretations, OVERALL_SUBJECT)
