import pytest

from factories import quiz

from app.features.courses.schemas import QuizDefinition
from app.features.submissions.quiz_grader import grade_quiz, normalise_answers


def _quiz(answers):
    return QuizDefinition.model_validate(quiz(answers=answers))


def test_all_correct():
    result = grade_quiz(_quiz([0, 1, 2]), [0, 1, 2])
    assert result.correct_count == 3
    assert result.score == 100


def test_score_is_unrounded():
    result = grade_quiz(_quiz([0, 1, 2]), [0, 1, 3])
    assert result.correct_count == 2
    assert result.score == pytest.approx(200 / 3)


def test_missing_and_null_answers_are_incorrect():
    result = grade_quiz(_quiz([0, 1, 2, 3]), [0, None])
    assert result.correct_count == 1
    assert result.total_questions == 4
    assert result.answers == [0, None, None, None]
    assert [d.is_correct for d in result.details] == [True, False, False, False]
    assert result.details[1].selected_option is None
    assert result.details[3].correct_option == 3


def test_extra_answers_are_ignored():
    result = grade_quiz(_quiz([1]), [1, 2, 3])
    assert result.answers == [1]
    assert result.score == 100


def test_quiz_without_questions_scores_zero():
    empty = QuizDefinition.model_construct(title="empty", questions=[])
    result = grade_quiz(empty, [1, 2])
    assert result.score == 0
    assert result.total_questions == 0
    assert result.details == []


def test_normalise_answers_pads_and_truncates():
    assert normalise_answers([1], 3) == [1, None, None]
    assert normalise_answers([1, 2, 3], 2) == [1, 2]


def test_quiz_definition_rejects_out_of_range_answer():
    bad = quiz(answers=[4])
    with pytest.raises(ValueError):
        QuizDefinition.model_validate(bad)
