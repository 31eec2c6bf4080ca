"""Random permutation of questions and answer options."""
import random
from typing import Optional, Sequence, TypeVar

from study_quiz.models import Question, SessionQuestion

T = TypeVar("T")


def shuffle(sequence: Sequence[T], rng: Optional[random.Random] = None) -> list[T]:
    """Return a uniformly shuffled copy of ``sequence`` (Fisher-Yates)."""
    rng = rng or random
    shuffled = list(sequence)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def shuffle_question_options(question: Question, rng: Optional[random.Random] = None) -> SessionQuestion:
    """Shuffle a question's options and track where the correct one landed."""
    paired = shuffle(list(enumerate(question.options)), rng)
    shuffled_options = tuple(option for _, option in paired)
    shuffled_correct = next(
        position for position, (original_index, _) in enumerate(paired)
        if original_index == question.correct_answer
    )
    return SessionQuestion(
        question=question,
        shuffled_options=shuffled_options,
        shuffled_correct_answer=shuffled_correct,
    )
