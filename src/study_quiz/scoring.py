"""Scoring of completed quiz sessions."""
import math
from typing import Sequence

from study_quiz.models import ScoreResult, SessionQuestion


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def percentage(correct: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(correct / total * 100)


def correct_index(session_question: SessionQuestion) -> int:
    return session_question.correct_index


def score(session_questions: Sequence[SessionQuestion], answers: Sequence[int]) -> ScoreResult:
    """Score answers against the questions as they were shown.

    ``answers[i]`` is the option index submitted for ``session_questions[i]``.
    """
    if len(session_questions) != len(answers):
        raise ValueError(
            f"Got {len(answers)} answers for {len(session_questions)} questions"
        )
    if not session_questions:
        raise ValueError("Cannot score a session with no questions")
    correct = sum(
        1 for question, answer in zip(session_questions, answers)
        if answer == correct_index(question)
    )
    total = len(session_questions)
    return ScoreResult(correct=correct, total=total, percent=percentage(correct, total))
