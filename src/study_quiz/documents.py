"""Quiz source documents."""
import sqlite3
from datetime import datetime
from typing import Optional

from study_quiz.db import get_connection
from study_quiz.exceptions import NotAuthenticatedError, NotFoundError
from study_quiz.models import Document
from study_quiz.subjects import touch_subject


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        user_id=row["user_id"],
        subject_id=row["subject_id"],
        name=row["name"],
        file_size=row["file_size"],
        upload_date=row["upload_date"],
        text_content=row["text_content"],
        processed=bool(row["processed"]),
    )


def create_document(
    db_path: str,
    user_id: str,
    subject_id: int,
    name: str,
    file_size: int = 0,
    text_content: Optional[str] = None,
    processed: bool = False,
) -> Document:
    if not user_id:
        raise NotAuthenticatedError()
    conn = get_connection(db_path)
    try:
        owner = conn.execute(
            "SELECT id FROM subjects WHERE id = ? AND user_id = ?", (subject_id, user_id)
        ).fetchone()
        if owner is None:
            raise NotFoundError("Subject", subject_id)
        cursor = conn.execute(
            """INSERT INTO documents (user_id, subject_id, name, file_size, upload_date, text_content, processed)
            VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (user_id, subject_id, name, file_size, datetime.now().isoformat(), text_content, int(processed)),
        )
        touch_subject(conn, subject_id)
        conn.commit()
        row = conn.execute("SELECT * FROM documents WHERE id = ?", (cursor.lastrowid,)).fetchone()
    finally:
        conn.close()
    return _row_to_document(row)


def get_document(db_path: str, user_id: Optional[str], document_id: int) -> Document | None:
    if not user_id:
        return None
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT * FROM documents WHERE id = ? AND user_id = ?", (document_id, user_id)
        ).fetchone()
    finally:
        conn.close()
    return _row_to_document(row) if row else None


def list_documents(db_path: str, user_id: Optional[str], subject_id: Optional[int] = None) -> list[Document]:
    """Documents newest upload first, optionally for one subject."""
    if not user_id:
        return []
    sql = "SELECT * FROM documents WHERE user_id = ?"
    params: list = [user_id]
    if subject_id is not None:
        sql += " AND subject_id = ?"
        params.append(subject_id)
    conn = get_connection(db_path)
    try:
        rows = conn.execute(sql + " ORDER BY upload_date DESC, id DESC", params).fetchall()
    finally:
        conn.close()
    return [_row_to_document(row) for row in rows]


def mark_processed(db_path: str, document_id: int, processed: bool = True) -> None:
    conn = get_connection(db_path)
    try:
        conn.execute("UPDATE documents SET processed = ? WHERE id = ?", (int(processed), document_id))
        conn.commit()
    finally:
        conn.close()


def delete_document(db_path: str, user_id: str, document_id: int) -> None:
    """Delete a document and its questions. Past attempts keep their scores."""
    if not user_id:
        raise NotAuthenticatedError()
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            "DELETE FROM documents WHERE id = ? AND user_id = ?", (document_id, user_id)
        )
        conn.commit()
    finally:
        conn.close()
    if cursor.rowcount == 0:
        raise NotFoundError("Document", document_id)
