import pytest

from study_quiz.models import Question, SessionQuestion
from study_quiz.scoring import correct_index, percentage, round_half_up, score


def sq(correct, shuffled_correct=None):
    question = Question(id=correct, subject_id=1, document_id=1, question="Q",
                        options=("a", "b", "c", "d"), correct_answer=correct)
    if shuffled_correct is None:
        return SessionQuestion(question=question)
    options = list(question.options)
    options[shuffled_correct], options[correct] = options[correct], options[shuffled_correct]
    return SessionQuestion(question=question, shuffled_options=tuple(options),
                           shuffled_correct_answer=shuffled_correct)


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(2.5) == 3
    assert round_half_up(66.666) == 67
    assert round_half_up(33.333) == 33
    assert round_half_up(0) == 0


def test_percentage():
    assert percentage(1, 8) == 13
    assert percentage(2, 3) == 67
    assert percentage(0, 0) == 0


def test_correct_index_prefers_shuffled_view():
    assert correct_index(sq(2)) == 2
    assert correct_index(sq(2, shuffled_correct=0)) == 0


def test_score_counts_matches_against_shuffled_indices():
    questions = [sq(0, 3), sq(1), sq(2, 1), sq(3)]
    result = score(questions, [3, 1, 2, 0])
    assert result.correct == 2
    assert result.total == 4
    assert result.percent == 50


def test_original_index_is_wrong_when_options_were_shuffled():
    result = score([sq(0, shuffled_correct=2)], [0])
    assert result.correct == 0
    assert result.percent == 0


def test_score_all_correct():
    questions = [sq(i) for i in range(4)]
    result = score(questions, [0, 1, 2, 3])
    assert (result.correct, result.total, result.percent) == (4, 4, 100)


def test_score_rounds_half_up():
    questions = [sq(0) for _ in range(8)]
    result = score(questions, [0, 1, 1, 1, 1, 1, 1, 1])
    assert result.percent == 13


def test_score_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        score([sq(0), sq(1)], [0])


def test_score_rejects_empty_session():
    with pytest.raises(ValueError):
        score([], [])
