"""Quiz session construction and the forward-only session runner."""
import logging
import random
from enum import Enum
from typing import Optional, Sequence

from study_quiz.exceptions import InvalidAnswerError, SessionStateError
from study_quiz.models import (
    Precomputed, QuizAttempt, QuizType, Remediation, ScoreResult,
    SessionQuestion, SessionSource, SingleDocument, SubjectWide,
)
from study_quiz.recorder import AttemptRecorder
from study_quiz.scoring import score
from study_quiz.shuffle import shuffle, shuffle_question_options
from study_quiz.store import QuestionStore

logger = logging.getLogger(__name__)


def clamp_limit(limit: Optional[int], total: int) -> int:
    """Clamp a requested question limit to ``[1, total]``; None means all."""
    if limit is None or total == 0:
        return total
    return max(1, min(limit, total))


def build_session(
    store: QuestionStore,
    source: SessionSource,
    rng: Optional[random.Random] = None,
) -> list[SessionQuestion]:
    """Assemble the ordered questions for a session.

    An empty list means the scope has no questions; callers show a
    "no questions available" message rather than treating it as an error.
    """
    match source:
        case SingleDocument(document_id=document_id, shuffle=shuffle_order):
            questions = store.fetch_questions(document_id=document_id)
            if shuffle_order:
                questions = shuffle(questions, rng)
            session = [shuffle_question_options(q, rng) for q in questions]

        case SubjectWide(subject_id=subject_id, question_limit=limit, shuffle=shuffle_order):
            questions = store.fetch_questions(subject_id=subject_id)
            if shuffle_order:
                questions = shuffle(questions, rng)
            session = [shuffle_question_options(q, rng) for q in questions]
            session = session[:clamp_limit(limit, len(session))]

        case Remediation(subject_id=subject_id, document_id=document_id):
            questions = store.fetch_wrong_questions(subject_id=subject_id, document_id=document_id)
            session = [shuffle_question_options(q, rng) for q in questions]

        case Precomputed(questions=questions, shuffle_options=shuffle_options):
            session = []
            for item in questions:
                if isinstance(item, SessionQuestion):
                    session.append(item)
                elif shuffle_options:
                    session.append(shuffle_question_options(item, rng))
                else:
                    session.append(SessionQuestion(question=item))

        case _:
            raise TypeError(f"Unknown session source: {source!r}")

    logger.debug("Built %s session with %d questions", type(source).__name__, len(session))
    return session


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SessionRunner:
    """Drives one quiz session, one question and one answer at a time.

    Navigation is strictly forward: every answer is final and there is no
    way back to an earlier question. Completed full sessions are handed to
    the recorder; remediation sessions never are.
    """

    def __init__(
        self,
        questions: Sequence[SessionQuestion],
        wrong_questions: Sequence[SessionQuestion] = (),
        subject_id: Optional[int] = None,
        document_id: Optional[int] = None,
        is_mega: bool = False,
        recorder: Optional[AttemptRecorder] = None,
    ):
        self.full_questions = tuple(questions)
        self.wrong_questions = tuple(wrong_questions)
        self.subject_id = subject_id
        self.document_id = document_id
        self.is_mega = is_mega
        self.recorder = recorder
        self._reset()

    def _reset(self) -> None:
        self.state = SessionState.NOT_STARTED
        self.quiz_type: Optional[QuizType] = None
        self.questions: tuple[SessionQuestion, ...] = ()
        self.current_index = 0
        self._answers: list[int] = []
        self.result: Optional[ScoreResult] = None
        self.attempt: Optional[QuizAttempt] = None

    @property
    def answers(self) -> tuple[int, ...]:
        return tuple(self._answers)

    @property
    def is_complete(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def current_question(self) -> Optional[SessionQuestion]:
        if self.state is not SessionState.IN_PROGRESS:
            return None
        return self.questions[self.current_index]

    @property
    def progress(self) -> tuple[int, int]:
        return len(self._answers), len(self.questions)

    def start(self, quiz_type: QuizType = QuizType.FULL) -> bool:
        """Lock in the question pool and move to the first question.

        Returns False, staying NOT_STARTED, when the chosen pool is empty.
        """
        if self.state is not SessionState.NOT_STARTED:
            raise SessionStateError(f"Cannot start a session that is {self.state.value}")
        quiz_type = QuizType(quiz_type)
        pool = self.wrong_questions if quiz_type is QuizType.WRONG else self.full_questions
        if not pool:
            return False
        self.quiz_type = quiz_type
        self.questions = pool
        self.current_index = 0
        self.state = SessionState.IN_PROGRESS
        return True

    def answer(self, option_index: int) -> SessionState:
        if self.state is not SessionState.IN_PROGRESS:
            raise SessionStateError(f"Cannot answer while the session is {self.state.value}")
        option_count = len(self.questions[self.current_index].options)
        if isinstance(option_index, bool) or not isinstance(option_index, int) \
                or not 0 <= option_index < option_count:
            raise InvalidAnswerError(option_index, option_count)
        self._answers.append(option_index)
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
        else:
            self._complete()
        return self.state

    def _complete(self) -> None:
        self.state = SessionState.COMPLETED
        self.result = score(self.questions, self._answers)
        if self.quiz_type is QuizType.WRONG:
            logger.debug("Remediation session complete; not recorded")
            return
        if self.recorder is not None and self.subject_id is not None:
            self.attempt = self.recorder.record(
                self.subject_id, self.document_id, self.questions, self._answers, self.is_mega,
            )

    def restart(self) -> None:
        self._reset()

    def exit(self) -> None:
        """Abandon the session; nothing is recorded."""
        self._reset()
