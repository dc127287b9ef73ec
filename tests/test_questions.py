import pytest

from counsel.domain.models import Question, QuestionType, RatingScale
from counsel.domain.questions import question_categories, validate_question, validate_questions
from counsel.infrastructure.exceptions import InvalidQuestionError, MissingQuestionsError


def question(qtype, text="Pick one", options=None, scale=None, category="general"):
    return Question(
        id="q", text=text, type=qtype, required=True, category=category, options=options, scale=scale
    )


class TestChoiceQuestions:
    @pytest.mark.parametrize(
        "qtype", [QuestionType.MULTIPLE_CHOICE_SINGLE, QuestionType.MULTIPLE_CHOICE_MULTI]
    )
    def test_two_options_accepted(self, qtype):
        validate_question(question(qtype, options=("Yes", "No")))

    @pytest.mark.parametrize("options", [None, (), ("Only",)])
    def test_fewer_than_two_options_rejected(self, options):
        with pytest.raises(InvalidQuestionError) as exc:
            validate_question(question(QuestionType.MULTIPLE_CHOICE_SINGLE, options=options))
        assert exc.value.message == 'Question "Pick one" must have at least 2 options'

    def test_options_ignored_for_text_questions(self):
        validate_question(question(QuestionType.TEXT_SHORT, options=None))
        validate_question(question(QuestionType.YES_NO))


class TestRatingScaleQuestions:
    def test_valid_scale(self):
        validate_question(
            question(
                QuestionType.RATING_SCALE,
                scale=RatingScale(min=1, max=5, labels={1: "Never", 5: "Always"}),
            )
        )

    @pytest.mark.parametrize("scale", [None, RatingScale(3, 3), RatingScale(5, 1)])
    def test_missing_or_inverted_scale_rejected(self, scale):
        with pytest.raises(InvalidQuestionError) as exc:
            validate_question(question(QuestionType.RATING_SCALE, text="Rate it", scale=scale))
        assert exc.value.message == 'Question "Rate it" has invalid rating scale'

    def test_label_outside_scale_rejected(self):
        scale = RatingScale(min=0, max=4, labels={0: "Never", 7: "Beyond"})
        with pytest.raises(InvalidQuestionError) as exc:
            validate_question(question(QuestionType.RATING_SCALE, scale=scale))
        assert exc.value.reason == "rating scale label 7 is outside 0..4"


class TestQuestionSet:
    def test_empty_set_rejected(self):
        with pytest.raises(MissingQuestionsError):
            validate_questions([])

    def test_first_invalid_question_reported(self):
        questions = [
            question(QuestionType.TEXT_LONG, text="Tell us more"),
            question(QuestionType.MULTIPLE_CHOICE_MULTI, text="First bad", options=("A",)),
            question(QuestionType.RATING_SCALE, text="Second bad", scale=None),
        ]
        with pytest.raises(InvalidQuestionError) as exc:
            validate_questions(questions)
        assert exc.value.question_text == "First bad"

    def test_categories_are_distinct(self):
        questions = [
            question(QuestionType.YES_NO, category="mood"),
            question(QuestionType.YES_NO, category="sleep"),
            question(QuestionType.YES_NO, category="mood"),
        ]
        assert question_categories(questions) == {"mood", "sleep"}
