"""Question and attempt persistence."""
import json
import sqlite3
from datetime import datetime
from typing import Iterable, Mapping, Optional

from study_quiz.db import get_connection
from study_quiz.exceptions import NotAuthenticatedError
from study_quiz.models import Question, QuestionResult, QuizAttempt


def row_to_question(row: sqlite3.Row) -> Question:
    return Question(
        id=row["id"],
        subject_id=row["subject_id"],
        document_id=row["document_id"],
        question=row["question"],
        options=tuple(str(option) for option in json.loads(row["options"])),
        correct_answer=row["correct_answer"],
        created_at=row["created_at"],
    )


def _scope_clause(subject_id: Optional[int], document_id: Optional[int], alias: str = "") -> tuple[str, list]:
    prefix = f"{alias}." if alias else ""
    clauses, params = [], []
    if document_id is not None:
        clauses.append(f"{prefix}document_id = ?")
        params.append(document_id)
    if subject_id is not None:
        clauses.append(f"{prefix}subject_id = ?")
        params.append(subject_id)
    sql = "".join(f" AND {c}" for c in clauses)
    return sql, params


def insert_questions(
    db_path: str,
    user_id: str,
    subject_id: int,
    document_id: int,
    questions: Iterable[Mapping],
) -> list[Question]:
    """Validate and store questions for a document.

    Each item needs ``question``, ``options`` and ``correct_answer``. Nothing is
    written if any item is invalid.
    """
    if not user_id:
        raise NotAuthenticatedError()
    items = list(questions)
    for item in items:
        Question.validate(item["question"], item["options"], item["correct_answer"])
    conn = get_connection(db_path)
    try:
        ids = []
        for item in items:
            cursor = conn.execute(
                """INSERT INTO questions (user_id, subject_id, document_id, question, options, correct_answer, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    user_id, subject_id, document_id, item["question"].strip(),
                    json.dumps([str(o) for o in item["options"]]), item["correct_answer"],
                    datetime.now().isoformat(),
                ),
            )
            ids.append(cursor.lastrowid)
        conn.commit()
        rows = [conn.execute("SELECT * FROM questions WHERE id = ?", (qid,)).fetchone() for qid in ids]
    finally:
        conn.close()
    return [row_to_question(row) for row in rows]


def get_questions(
    db_path: str,
    user_id: Optional[str],
    subject_id: Optional[int] = None,
    document_id: Optional[int] = None,
) -> list[Question]:
    """Questions in creation order, scoped to a subject and/or document."""
    if not user_id:
        return []
    scope, params = _scope_clause(subject_id, document_id)
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            f"SELECT * FROM questions WHERE user_id = ?{scope} ORDER BY created_at, id",
            [user_id, *params],
        ).fetchall()
    finally:
        conn.close()
    return [row_to_question(row) for row in rows]


def count_questions(
    db_path: str,
    user_id: Optional[str],
    subject_id: Optional[int] = None,
    document_id: Optional[int] = None,
) -> int:
    if not user_id:
        return 0
    scope, params = _scope_clause(subject_id, document_id)
    conn = get_connection(db_path)
    try:
        count = conn.execute(
            f"SELECT COUNT(*) FROM questions WHERE user_id = ?{scope}", [user_id, *params]
        ).fetchone()[0]
    finally:
        conn.close()
    return count


def record_attempt(
    db_path: str,
    attempt: QuizAttempt,
    results: Iterable[QuestionResult] = (),
) -> QuizAttempt:
    """Insert an attempt and its per-question results in one transaction."""
    if not attempt.user_id:
        raise NotAuthenticatedError()
    attempted_at = attempt.attempted_at or datetime.now().isoformat()
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            """INSERT INTO quiz_attempts
            (user_id, subject_id, document_id, correct_answers, total_questions, score, attempted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                attempt.user_id, attempt.subject_id, attempt.document_id,
                attempt.correct_answers, attempt.total_questions, attempt.score, attempted_at,
            ),
        )
        attempt_id = cursor.lastrowid
        for result in results:
            conn.execute(
                """INSERT INTO question_results
                (user_id, quiz_attempt_id, question_id, user_answer, correct_answer, is_correct, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    attempt.user_id, attempt_id, result.question_id, result.user_answer,
                    result.correct_answer, int(result.is_correct), attempted_at,
                ),
            )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    finally:
        conn.close()
    attempt.id = attempt_id
    attempt.attempted_at = attempted_at
    return attempt


def get_attempts(db_path: str, user_id: Optional[str]) -> list[QuizAttempt]:
    """All attempts for a user, newest first, joined with subject and document names."""
    if not user_id:
        return []
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            """SELECT a.*, s.name AS subject_name, d.name AS document_name
            FROM quiz_attempts a
            LEFT JOIN subjects s ON a.subject_id = s.id
            LEFT JOIN documents d ON a.document_id = d.id
            WHERE a.user_id = ?
            ORDER BY a.attempted_at DESC, a.id DESC""",
            (user_id,),
        ).fetchall()
    finally:
        conn.close()
    return [
        QuizAttempt(
            id=r["id"],
            user_id=r["user_id"],
            subject_id=r["subject_id"],
            document_id=r["document_id"],
            correct_answers=r["correct_answers"],
            total_questions=r["total_questions"],
            score=r["score"],
            attempted_at=r["attempted_at"],
            subject_name=r["subject_name"],
            document_name=r["document_name"],
        )
        for r in rows
    ]


def get_question_results(db_path: str, attempt_id: int) -> list[QuestionResult]:
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            "SELECT * FROM question_results WHERE quiz_attempt_id = ? ORDER BY id", (attempt_id,)
        ).fetchall()
    finally:
        conn.close()
    return [
        QuestionResult(
            id=r["id"],
            user_id=r["user_id"],
            quiz_attempt_id=r["quiz_attempt_id"],
            question_id=r["question_id"],
            user_answer=r["user_answer"],
            correct_answer=r["correct_answer"],
            is_correct=bool(r["is_correct"]),
            created_at=r["created_at"],
        )
        for r in rows
    ]
