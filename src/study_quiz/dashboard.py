"""Mastery statistics derived from the attempt history."""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from study_quiz.models import (
    MasteryLevel, OverallActivity, OverallStatistics, ProgressTrend, QuizAttempt,
    QuizStatistics, Statistics, Subject, SubjectActivity, SubjectStatistics,
)
from study_quiz.scoring import round_half_up
from study_quiz.store import QuestionStore

logger = logging.getLogger(__name__)

UNKNOWN_QUIZ = "Unknown Quiz"
UNKNOWN_SUBJECT = "Unknown Subject"

QUIZ_TREND_WINDOW = 3
SUBJECT_TREND_WINDOW = 5
TREND_THRESHOLD = 5
SUBJECT_ACTIVITY_LIMIT = 10
OVERALL_ACTIVITY_LIMIT = 20


def get_mastery_level(score: float) -> MasteryLevel:
    if score >= 90:
        return MasteryLevel.EXPERT
    elif score >= 80:
        return MasteryLevel.ADVANCED
    elif score >= 70:
        return MasteryLevel.INTERMEDIATE
    return MasteryLevel.BEGINNER


def get_mastery_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 60:
        return "yellow"
    return "red"


def _mean(scores: Sequence[int]) -> float:
    return sum(scores) / len(scores)


def rounded_mean(scores: Sequence[int]) -> int:
    return round_half_up(_mean(scores)) if scores else 0


def get_progress_trend(scores: Sequence[int], window: int) -> ProgressTrend:
    """Compare the newest ``window`` scores against the oldest ``window``.

    ``scores`` is ordered newest first. Fewer than ``window`` scores is
    always stable.
    """
    if len(scores) < window:
        return ProgressTrend.STABLE
    recent = _mean(scores[:window])
    older = _mean(scores[-window:])
    if recent > older + TREND_THRESHOLD:
        return ProgressTrend.IMPROVING
    elif recent < older - TREND_THRESHOLD:
        return ProgressTrend.DECLINING
    return ProgressTrend.STABLE


def _attempt_date(attempt: QuizAttempt) -> date:
    return datetime.fromisoformat(attempt.attempted_at).date()


def calculate_study_streak(days: Iterable[date], today: Optional[date] = None) -> int:
    """Consecutive calendar days with an attempt, counting back from today."""
    studied = set(days)
    day = today or date.today()
    streak = 0
    while day in studied:
        streak += 1
        day -= timedelta(days=1)
    return streak


def _quiz_name(attempt: QuizAttempt) -> str:
    return attempt.document_name or UNKNOWN_QUIZ


def _subject_name(attempt: QuizAttempt) -> str:
    return attempt.subject_name or UNKNOWN_SUBJECT


def attempt_key(attempt: QuizAttempt) -> str:
    if attempt.document_id is not None:
        return f"{attempt.document_id}_{attempt.subject_id}"
    return f"subject_{attempt.subject_id}"


def get_quiz_statistics(attempts: Sequence[QuizAttempt]) -> list[QuizStatistics]:
    groups: dict[tuple[int, int], list[QuizAttempt]] = {}
    for attempt in attempts:
        if attempt.document_id is None:
            continue
        groups.setdefault((attempt.document_id, attempt.subject_id), []).append(attempt)

    stats = []
    for (document_id, subject_id), group in groups.items():
        newest = group[0]
        scores = [a.score for a in group]
        average = rounded_mean(scores)
        stats.append(QuizStatistics(
            quiz_id=document_id,
            quiz_name=_quiz_name(newest),
            subject_id=subject_id,
            subject_name=_subject_name(newest),
            total_attempts=len(group),
            best_score=max(scores),
            average_score=average,
            last_attempted=newest.attempted_at,
            # Level follows the unrounded mean, so 89.6 stays "advanced".
            mastery_level=get_mastery_level(_mean(scores)),
            progress_trend=get_progress_trend(scores, QUIZ_TREND_WINDOW),
        ))
    return stats


def get_subject_statistics(
    attempts: Sequence[QuizAttempt], subjects: Sequence[Subject]
) -> list[SubjectStatistics]:
    stats = []
    for subject in subjects:
        subject_attempts = [a for a in attempts if a.subject_id == subject.id]
        scores = [a.score for a in subject_attempts]
        average = rounded_mean(scores)
        stats.append(SubjectStatistics(
            subject_id=subject.id,
            subject_name=subject.name,
            total_quizzes=subject.document_count,
            total_attempts=len(subject_attempts),
            average_score=average,
            mastery_score=average,
            last_studied=subject_attempts[0].attempted_at if subject_attempts else None,
            progress_trend=get_progress_trend(scores, SUBJECT_TREND_WINDOW),
            recent_activity=[
                SubjectActivity(date=a.attempted_at, quiz_name=_quiz_name(a), score=a.score)
                for a in subject_attempts[:SUBJECT_ACTIVITY_LIMIT]
            ],
        ))
    return stats


def get_overall_statistics(
    attempts: Sequence[QuizAttempt],
    subjects: Sequence[Subject],
    today: Optional[date] = None,
) -> OverallStatistics:
    # Only the newest attempt per quiz counts, so heavily repeated quizzes
    # don't dominate the average.
    latest: dict[str, int] = {}
    for attempt in attempts:
        latest.setdefault(attempt_key(attempt), attempt.score)

    return OverallStatistics(
        total_subjects=len(subjects),
        total_quizzes=sum(s.document_count for s in subjects),
        total_attempts=len(attempts),
        overall_mastery=rounded_mean(list(latest.values())),
        study_streak=calculate_study_streak((_attempt_date(a) for a in attempts), today),
        recent_activity=[
            OverallActivity(
                date=a.attempted_at,
                subject_name=_subject_name(a),
                quiz_name=_quiz_name(a),
                score=a.score,
            )
            for a in attempts[:OVERALL_ACTIVITY_LIMIT]
        ],
    )


def compute_statistics(
    attempts: Sequence[QuizAttempt],
    subjects: Sequence[Subject],
    today: Optional[date] = None,
) -> Statistics:
    """Reduce the attempt history to quiz, subject and overall statistics.

    ``attempts`` must be ordered newest first, as ``fetch_attempts`` returns
    them.
    """
    attempts = list(attempts)
    return Statistics(
        quiz_statistics=get_quiz_statistics(attempts),
        subject_statistics=get_subject_statistics(attempts, subjects),
        overall_statistics=get_overall_statistics(attempts, subjects, today),
    )


class StatisticsService:
    """Caches statistics per user until an attempt write invalidates them."""

    def __init__(self, store: QuestionStore):
        self.store = store
        self._cache: dict[str, Statistics] = {}

    def get(self, user_id: str, today: Optional[date] = None) -> Statistics:
        """Statistics for ``user_id``; empty when the store belongs to someone else."""
        if user_id != self.store.user_id:
            return Statistics()
        if user_id not in self._cache:
            logger.debug("Recomputing statistics for %s", user_id)
            self._cache[user_id] = compute_statistics(
                self.store.fetch_attempts(), self.store.fetch_subjects(), today
            )
        return self._cache[user_id]

    def invalidate(self, user_id: str) -> None:
        self._cache.pop(user_id, None)

    def is_cached(self, user_id: str) -> bool:
        return user_id in self._cache
