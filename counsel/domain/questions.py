from __future__ import annotations

from collections.abc import Sequence

from ..infrastructure.exceptions import InvalidQuestionError, MissingQuestionsError
from .models import CHOICE_QUESTION_TYPES, Question, QuestionType

MIN_CHOICE_OPTIONS = 2


def validate_question(question: Question) -> None:
    """Check the cross-field rules of a single question; fail on the first defect."""
    if question.type in CHOICE_QUESTION_TYPES:
        if not question.options or len(question.options) < MIN_CHOICE_OPTIONS:
            raise InvalidQuestionError(question.text, "must have at least 2 options")

    if question.type == QuestionType.RATING_SCALE:
        scale = question.scale
        if scale is None or scale.min >= scale.max:
            raise InvalidQuestionError(question.text, "has invalid rating scale")

        for value in sorted(scale.labels or {}):
            if not (scale.min <= value <= scale.max):
                raise InvalidQuestionError(
                    question.text,
                    f"rating scale label {value} is outside {scale.min}..{scale.max}",
                )


def validate_questions(questions: Sequence[Question]) -> None:
    """
    Structural validation of a question set.

    Raises:
        MissingQuestionsError: If ``questions`` is empty.
        InvalidQuestionError: For the first malformed question, in order.
    """
    if not questions:
        raise MissingQuestionsError()

    for question in questions:
        validate_question(question)


def question_categories(questions: Sequence[Question]) -> set[str]:
    return {q.category for q in questions}
