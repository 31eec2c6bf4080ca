"""Data classes for the quiz domain model."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from study_quiz.exceptions import QuizFormatError

OPTION_COUNT = 4
OPTION_LETTERS = ("A", "B", "C", "D")


@dataclass
class Subject:
    id: int
    user_id: str
    name: str
    color: str = "blue"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    document_count: int = 0
    question_count: int = 0
    mastery_score: int = 0
    last_studied: Optional[str] = None


@dataclass
class Document:
    id: int
    user_id: str
    subject_id: int
    name: str
    file_size: int = 0
    upload_date: Optional[str] = None
    text_content: Optional[str] = None
    processed: bool = False


@dataclass(frozen=True)
class Question:
    id: int
    subject_id: int
    document_id: int
    question: str
    options: tuple[str, ...]
    correct_answer: int
    created_at: Optional[str] = None

    @staticmethod
    def validate(question: str, options, correct_answer) -> None:
        """Reject question data that can't be quizzed on."""
        if not question or not str(question).strip():
            raise QuizFormatError("Question text is empty")
        if len(options) != OPTION_COUNT:
            raise QuizFormatError(
                f"Question must have exactly {OPTION_COUNT} options, got {len(options)}"
            )
        if isinstance(correct_answer, bool) or not isinstance(correct_answer, int):
            raise QuizFormatError(f"Correct answer must be an integer index, got {correct_answer!r}")
        if not 0 <= correct_answer < OPTION_COUNT:
            raise QuizFormatError(f"Correct answer index {correct_answer} is out of range")


@dataclass(frozen=True)
class SessionQuestion:
    """A question as presented in one session, with an optional shuffle overlay."""
    question: Question
    shuffled_options: Optional[tuple[str, ...]] = None
    shuffled_correct_answer: Optional[int] = None

    @property
    def id(self) -> int:
        return self.question.id

    @property
    def is_shuffled(self) -> bool:
        return self.shuffled_options is not None

    @property
    def options(self) -> tuple[str, ...]:
        if self.shuffled_options is not None:
            return self.shuffled_options
        return self.question.options

    @property
    def correct_index(self) -> int:
        if self.shuffled_options is not None:
            return self.shuffled_correct_answer
        return self.question.correct_answer

    @property
    def correct_text(self) -> str:
        return self.options[self.correct_index]


@dataclass
class QuizAttempt:
    user_id: str
    subject_id: int
    correct_answers: int
    total_questions: int
    score: int
    document_id: Optional[int] = None
    attempted_at: Optional[str] = None
    id: Optional[int] = None
    subject_name: Optional[str] = None
    document_name: Optional[str] = None


@dataclass
class QuestionResult:
    question_id: int
    user_answer: int
    correct_answer: int
    is_correct: bool
    user_id: Optional[str] = None
    quiz_attempt_id: Optional[int] = None
    created_at: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class ScoreResult:
    correct: int
    total: int
    percent: int


# Session sources

@dataclass(frozen=True)
class SingleDocument:
    document_id: int
    shuffle: bool = True


@dataclass(frozen=True)
class SubjectWide:
    """A "mega quiz" across every document of a subject."""
    subject_id: int
    question_limit: Optional[int] = None
    shuffle: bool = True


@dataclass(frozen=True)
class Remediation:
    subject_id: Optional[int] = None
    document_id: Optional[int] = None


@dataclass(frozen=True)
class Precomputed:
    questions: tuple = ()
    shuffle_options: bool = False


SessionSource = Union[SingleDocument, SubjectWide, Remediation, Precomputed]


class QuizType(str, Enum):
    FULL = "full"
    WRONG = "wrong"


# Statistics

class MasteryLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class ProgressTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


@dataclass
class SubjectActivity:
    date: str
    quiz_name: str
    score: int


@dataclass
class OverallActivity:
    date: str
    subject_name: str
    quiz_name: str
    score: int


@dataclass
class QuizStatistics:
    quiz_id: int
    quiz_name: str
    subject_id: int
    subject_name: str
    total_attempts: int
    best_score: int
    average_score: int
    last_attempted: Optional[str]
    mastery_level: MasteryLevel
    progress_trend: ProgressTrend


@dataclass
class SubjectStatistics:
    subject_id: int
    subject_name: str
    total_quizzes: int
    total_attempts: int
    average_score: int
    mastery_score: int
    last_studied: Optional[str]
    progress_trend: ProgressTrend
    recent_activity: list[SubjectActivity] = field(default_factory=list)


@dataclass
class OverallStatistics:
    total_subjects: int = 0
    total_quizzes: int = 0
    total_attempts: int = 0
    overall_mastery: int = 0
    study_streak: int = 0
    recent_activity: list[OverallActivity] = field(default_factory=list)


@dataclass
class Statistics:
    quiz_statistics: list[QuizStatistics] = field(default_factory=list)
    subject_statistics: list[SubjectStatistics] = field(default_factory=list)
    overall_statistics: OverallStatistics = field(default_factory=OverallStatistics)
