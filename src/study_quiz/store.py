"""Persistence contract consumed by the session and statistics core."""
from typing import Iterable, Optional, Protocol

from study_quiz import quiz, review, subjects
from study_quiz.exceptions import NotAuthenticatedError
from study_quiz.models import Question, QuestionResult, QuizAttempt, Subject


class QuestionStore(Protocol):
    user_id: Optional[str]

    def fetch_questions(
        self, subject_id: Optional[int] = None, document_id: Optional[int] = None
    ) -> list[Question]: ...

    def fetch_wrong_questions(
        self, subject_id: Optional[int] = None, document_id: Optional[int] = None
    ) -> list[Question]: ...

    def insert_attempt(
        self, attempt: QuizAttempt, results: Iterable[QuestionResult] = ()
    ) -> QuizAttempt: ...

    def fetch_attempts(self) -> list[QuizAttempt]: ...

    def fetch_subjects(self) -> list[Subject]: ...


class SQLiteStore:
    """QuestionStore backed by the local SQLite database, scoped to one user."""

    def __init__(self, db_path: str, user_id: Optional[str]):
        self.db_path = db_path
        self.user_id = user_id

    def fetch_questions(self, subject_id=None, document_id=None) -> list[Question]:
        return quiz.get_questions(self.db_path, self.user_id, subject_id, document_id)

    def fetch_wrong_questions(self, subject_id=None, document_id=None) -> list[Question]:
        return review.get_wrong_questions(self.db_path, self.user_id, subject_id, document_id)

    def insert_attempt(self, attempt: QuizAttempt, results: Iterable[QuestionResult] = ()) -> QuizAttempt:
        if not self.user_id or attempt.user_id != self.user_id:
            raise NotAuthenticatedError()
        return quiz.record_attempt(self.db_path, attempt, results)

    def fetch_attempts(self) -> list[QuizAttempt]:
        return quiz.get_attempts(self.db_path, self.user_id)

    def fetch_subjects(self) -> list[Subject]:
        return subjects.list_subjects(self.db_path, self.user_id)
