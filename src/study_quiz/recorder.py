"""Best-effort persistence of completed quiz attempts."""
import logging
from concurrent.futures import Executor, Future
from typing import Callable, Iterable, Optional, Sequence

from study_quiz.models import QuestionResult, QuizAttempt, SessionQuestion
from study_quiz.scoring import score
from study_quiz.store import QuestionStore

logger = logging.getLogger(__name__)

Observer = Callable[[str], None]


class AttemptRecorder:
    """Writes one attempt per completed session and tells observers about it.

    The write is at-most-once: failures are logged and swallowed so the
    user still sees their score, and nothing is retried.
    """

    def __init__(self, store: QuestionStore, user_id: Optional[str], observers: Iterable[Observer] = ()):
        self.store = store
        self.user_id = user_id
        self.observers: list[Observer] = list(observers)

    def subscribe(self, observer: Observer) -> None:
        self.observers.append(observer)

    def build_attempt(
        self,
        subject_id: int,
        document_id: Optional[int],
        session_questions: Sequence[SessionQuestion],
        answers: Sequence[int],
        is_mega: bool = False,
    ) -> tuple[QuizAttempt, list[QuestionResult]]:
        result = score(session_questions, answers)
        attempt = QuizAttempt(
            user_id=self.user_id,
            subject_id=subject_id,
            document_id=None if is_mega else document_id,
            correct_answers=result.correct,
            total_questions=result.total,
            score=result.percent,
        )
        results = [
            QuestionResult(
                question_id=question.id,
                user_answer=answer,
                correct_answer=question.correct_index,
                is_correct=answer == question.correct_index,
                user_id=self.user_id,
            )
            for question, answer in zip(session_questions, answers)
        ]
        return attempt, results

    def record(
        self,
        subject_id: int,
        document_id: Optional[int],
        session_questions: Sequence[SessionQuestion],
        answers: Sequence[int],
        is_mega: bool = False,
    ) -> QuizAttempt | None:
        """Persist the attempt; return it, or None if the write failed."""
        attempt, results = self.build_attempt(subject_id, document_id, session_questions, answers, is_mega)
        try:
            saved = self.store.insert_attempt(attempt, results)
        except Exception:
            logger.exception(
                "Failed to record attempt for subject %s (document %s)", subject_id, attempt.document_id
            )
            return None
        logger.info(
            "Recorded attempt %s: %d/%d (%d%%)",
            saved.id, saved.correct_answers, saved.total_questions, saved.score,
        )
        self._notify()
        return saved

    def record_in_background(self, executor: Executor, *args, **kwargs) -> Future:
        """Submit ``record`` to an executor and return without waiting."""
        return executor.submit(self.record, *args, **kwargs)

    def _notify(self) -> None:
        for observer in self.observers:
            observer(self.user_id)
