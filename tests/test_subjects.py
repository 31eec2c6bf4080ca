import pytest

from study_quiz.db import get_connection, init_db
from study_quiz.documents import create_document, delete_document, get_document, list_documents, mark_processed
from study_quiz.exceptions import NotAuthenticatedError, NotFoundError, QuizFormatError
from study_quiz.models import QuizAttempt
from study_quiz.quiz import count_questions, get_attempts, record_attempt
from study_quiz.subjects import create_subject, delete_subject, get_subject, list_subjects

USER = "alice"


def add_attempt(biology, score, when, document_id="default"):
    return record_attempt(biology["db_path"], QuizAttempt(
        user_id=USER, subject_id=biology["subject"].id,
        document_id=biology["document"].id if document_id == "default" else document_id,
        correct_answers=0, total_questions=4, score=score, attempted_at=when,
    ))


def test_create_and_get_subject(tmp_db):
    init_db(tmp_db)
    subject = create_subject(tmp_db, USER, "  Chemistry  ", "purple")
    assert subject.name == "Chemistry"
    fetched = get_subject(tmp_db, USER, subject.id)
    assert (fetched.name, fetched.color) == ("Chemistry", "purple")
    assert get_subject(tmp_db, "bob", subject.id) is None


def test_create_subject_requires_name_and_user(tmp_db):
    init_db(tmp_db)
    with pytest.raises(QuizFormatError):
        create_subject(tmp_db, USER, "   ")
    with pytest.raises(NotAuthenticatedError):
        create_subject(tmp_db, None, "Physics")


def test_list_subjects_counts_and_mastery(biology):
    for i, score in enumerate([100, 100, 60, 60, 50, 0]):
        add_attempt(biology, score, f"2026-02-{10 - i:02d}T08:00:00")
    [subject] = list_subjects(biology["db_path"], USER)
    assert subject.document_count == 1
    assert subject.question_count == 4
    # five newest: 100, 100, 60, 60, 50
    assert subject.mastery_score == 74
    assert subject.last_studied == "2026-02-10T08:00:00"


def test_list_subjects_without_attempts(biology):
    [subject] = list_subjects(biology["db_path"], USER)
    assert subject.mastery_score == 0
    assert subject.last_studied is None


def test_list_subjects_most_recently_updated_first(biology):
    chemistry = create_subject(biology["db_path"], USER, "Chemistry")
    assert [s.name for s in list_subjects(biology["db_path"], USER)] == ["Chemistry", "Biology"]
    create_document(biology["db_path"], USER, biology["subject"].id, "genetics.txt")
    assert [s.id for s in list_subjects(biology["db_path"], USER)] == [biology["subject"].id, chemistry.id]


def test_list_subjects_scoped_to_user(biology):
    create_subject(biology["db_path"], "bob", "Bob's subject")
    assert [s.name for s in list_subjects(biology["db_path"], USER)] == ["Biology"]
    assert list_subjects(biology["db_path"], None) == []


def test_delete_subject_cascades(biology):
    add_attempt(biology, 80, "2026-02-01T08:00:00")
    delete_subject(biology["db_path"], USER, biology["subject"].id)
    assert list_subjects(biology["db_path"], USER) == []
    assert list_documents(biology["db_path"], USER) == []
    assert count_questions(biology["db_path"], USER) == 0
    assert get_attempts(biology["db_path"], USER) == []


def test_delete_missing_subject(biology):
    with pytest.raises(NotFoundError):
        delete_subject(biology["db_path"], USER, 999)
    with pytest.raises(NotFoundError):
        delete_subject(biology["db_path"], "bob", biology["subject"].id)


def test_create_document_requires_owned_subject(biology):
    with pytest.raises(NotFoundError):
        create_document(biology["db_path"], "bob", biology["subject"].id, "x.txt")
    with pytest.raises(NotAuthenticatedError):
        create_document(biology["db_path"], None, biology["subject"].id, "x.txt")


def test_list_and_mark_documents(biology):
    pending = create_document(biology["db_path"], USER, biology["subject"].id, "notes.txt",
                              file_size=12, text_content="hello")
    assert pending.processed is False
    docs = list_documents(biology["db_path"], USER, biology["subject"].id)
    assert [d.name for d in docs] == ["notes.txt", "cells.txt"]
    mark_processed(biology["db_path"], pending.id)
    assert get_document(biology["db_path"], USER, pending.id).processed is True


def test_delete_document_keeps_attempt_history(biology):
    add_attempt(biology, 75, "2026-02-01T08:00:00")
    delete_document(biology["db_path"], USER, biology["document"].id)

    assert count_questions(biology["db_path"], USER) == 0
    [attempt] = get_attempts(biology["db_path"], USER)
    assert attempt.score == 75
    assert attempt.document_id is None
    assert attempt.document_name is None
    conn = get_connection(biology["db_path"])
    assert conn.execute("SELECT COUNT(*) FROM question_results").fetchone()[0] == 0
    conn.close()


def test_delete_missing_document(biology):
    with pytest.raises(NotFoundError):
        delete_document(biology["db_path"], USER, 12345)
