"""Previously missed questions for remediation sessions."""
from typing import Optional

from study_quiz.db import get_connection
from study_quiz.models import Question
from study_quiz.quiz import row_to_question


def get_wrong_questions(
    db_path: str,
    user_id: Optional[str],
    subject_id: Optional[int] = None,
    document_id: Optional[int] = None,
) -> list[Question]:
    """Questions the user has answered incorrectly at least once.

    Each question appears once, most recently missed first. Without any
    recorded results the pool is empty.
    """
    if not user_id:
        return []
    clauses, params = "", [user_id]
    if document_id is not None:
        clauses += " AND q.document_id = ?"
        params.append(document_id)
    if subject_id is not None:
        clauses += " AND q.subject_id = ?"
        params.append(subject_id)
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            f"""SELECT q.*, MAX(r.created_at) AS last_missed, MAX(r.id) AS last_result_id
            FROM question_results r
            JOIN questions q ON r.question_id = q.id
            WHERE r.user_id = ? AND r.is_correct = 0{clauses}
            GROUP BY q.id
            ORDER BY last_missed DESC, last_result_id DESC""",
            params,
        ).fetchall()
    finally:
        conn.close()
    return [row_to_question(row) for row in rows]


def get_miss_counts(db_path: str, user_id: Optional[str], subject_id: Optional[int] = None) -> dict[int, int]:
    """Number of incorrect answers recorded per question id."""
    if not user_id:
        return {}
    sql = """SELECT r.question_id, COUNT(*) AS misses
        FROM question_results r JOIN questions q ON r.question_id = q.id
        WHERE r.user_id = ? AND r.is_correct = 0"""
    params = [user_id]
    if subject_id is not None:
        sql += " AND q.subject_id = ?"
        params.append(subject_id)
    conn = get_connection(db_path)
    try:
        rows = conn.execute(sql + " GROUP BY r.question_id", params).fetchall()
    finally:
        conn.close()
    return {row["question_id"]: row["misses"] for row in rows}
