import random

import pytest

from study_quiz.db import init_db
from study_quiz.documents import create_document
from study_quiz.quiz import insert_questions
from study_quiz.store import SQLiteStore
from study_quiz.subjects import create_subject

USER = "alice"

BIOLOGY_QUESTIONS = [
    {"question": "Powerhouse of the cell?",
     "options": ["Mitochondria", "Nucleus", "Ribosome", "Golgi"], "correct_answer": 0},
    {"question": "Carrier of genetic information?",
     "options": ["Lipid", "DNA", "Glucose", "Protein"], "correct_answer": 1},
    {"question": "Site of photosynthesis?",
     "options": ["Vacuole", "Lysosome", "Chloroplast", "Centriole"], "correct_answer": 2},
    {"question": "Basic unit of life?",
     "options": ["Atom", "Organ", "Tissue", "Cell"], "correct_answer": 3},
]


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_quiz.db")
    return db_path


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def biology(tmp_db):
    """A Biology subject with one document holding four questions."""
    init_db(tmp_db)
    subject = create_subject(tmp_db, USER, "Biology", "green")
    document = create_document(tmp_db, USER, subject.id, "cells.txt", processed=True)
    questions = insert_questions(tmp_db, USER, subject.id, document.id, BIOLOGY_QUESTIONS)
    return {
        "db_path": tmp_db,
        "subject": subject,
        "document": document,
        "questions": questions,
        "store": SQLiteStore(tmp_db, USER),
    }
