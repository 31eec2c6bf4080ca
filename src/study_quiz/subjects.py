"""Subject management."""
from datetime import datetime
from typing import Optional

from study_quiz.db import get_connection
from study_quiz.exceptions import NotAuthenticatedError, NotFoundError, QuizFormatError
from study_quiz.models import Subject
from study_quiz.scoring import round_half_up

SUBJECT_COLORS = ("blue", "green", "purple", "orange", "red", "cyan", "magenta", "yellow")
MASTERY_WINDOW = 5


def create_subject(db_path: str, user_id: str, name: str, color: str = "blue") -> Subject:
    if not user_id:
        raise NotAuthenticatedError()
    name = (name or "").strip()
    if not name:
        raise QuizFormatError("Subject name is required")
    now = datetime.now().isoformat()
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            "INSERT INTO subjects (user_id, name, color, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (user_id, name, color, now, now),
        )
        conn.commit()
        subject_id = cursor.lastrowid
    finally:
        conn.close()
    return Subject(id=subject_id, user_id=user_id, name=name, color=color, created_at=now, updated_at=now)


def get_subject(db_path: str, user_id: Optional[str], subject_id: int) -> Subject | None:
    if not user_id:
        return None
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT * FROM subjects WHERE id = ? AND user_id = ?", (subject_id, user_id)
        ).fetchone()
    finally:
        conn.close()
    if row is None:
        return None
    return Subject(
        id=row["id"], user_id=row["user_id"], name=row["name"], color=row["color"],
        created_at=row["created_at"], updated_at=row["updated_at"],
    )


def touch_subject(conn, subject_id: int) -> None:
    conn.execute(
        "UPDATE subjects SET updated_at = ? WHERE id = ?", (datetime.now().isoformat(), subject_id)
    )


def list_subjects(db_path: str, user_id: Optional[str]) -> list[Subject]:
    """Subjects with document/question counts, recent mastery and last studied date."""
    if not user_id:
        return []
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            """SELECT s.*,
                (SELECT COUNT(*) FROM documents d WHERE d.subject_id = s.id) AS document_count,
                (SELECT COUNT(*) FROM questions q WHERE q.subject_id = s.id) AS question_count
            FROM subjects s
            WHERE s.user_id = ?
            ORDER BY s.updated_at DESC, s.id DESC""",
            (user_id,),
        ).fetchall()
        subjects = []
        for row in rows:
            recent = conn.execute(
                """SELECT score, attempted_at FROM quiz_attempts
                WHERE subject_id = ? AND user_id = ?
                ORDER BY attempted_at DESC, id DESC LIMIT ?""",
                (row["id"], user_id, MASTERY_WINDOW),
            ).fetchall()
            mastery = round_half_up(sum(r["score"] for r in recent) / len(recent)) if recent else 0
            subjects.append(Subject(
                id=row["id"],
                user_id=row["user_id"],
                name=row["name"],
                color=row["color"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                document_count=row["document_count"],
                question_count=row["question_count"],
                mastery_score=mastery,
                last_studied=recent[0]["attempted_at"] if recent else None,
            ))
    finally:
        conn.close()
    return subjects


def delete_subject(db_path: str, user_id: str, subject_id: int) -> None:
    """Delete a subject with its documents, questions and attempts."""
    if not user_id:
        raise NotAuthenticatedError()
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            "DELETE FROM subjects WHERE id = ? AND user_id = ?", (subject_id, user_id)
        )
        conn.commit()
    finally:
        conn.close()
    if cursor.rowcount == 0:
        raise NotFoundError("Subject", subject_id)
