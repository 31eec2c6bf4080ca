import json
import logging
import shlex
import subprocess
import sys

import pytest

from study_quiz.db import init_db
from study_quiz.documents import list_documents
from study_quiz.exceptions import GenerationError
from study_quiz.generation import (
    GENERATOR_ENV, MAX_PROMPT_CHARS, build_prompt, command_generator, configured_generator,
    extract_question_payload, generate_document_questions, validate_generated_questions,
)
from study_quiz.quiz import get_questions
from study_quiz.subjects import create_subject

USER = "alice"

GOOD = [
    {"question": "What do ribosomes build?", "options": ["Proteins", "Lipids", "Sugars", "DNA"],
     "correct_answer": 0},
    {"question": "Where is DNA stored?", "options": ["Membrane", "Nucleus", "Wall", "Vacuole"],
     "correct_answer": 1},
]


def test_build_prompt_truncates_text():
    prompt = build_prompt("x" * (MAX_PROMPT_CHARS + 500), 7)
    assert "exactly 7" in prompt
    assert "x" * MAX_PROMPT_CHARS in prompt
    assert "x" * (MAX_PROMPT_CHARS + 1) not in prompt


def test_extract_plain_array():
    assert extract_question_payload(json.dumps(GOOD)) == GOOD


def test_extract_array_surrounded_by_prose():
    raw = f"Here are your questions:\n{json.dumps(GOOD)}\nGood luck!"
    assert extract_question_payload(raw) == GOOD


def test_extract_fenced_block():
    raw = "Sure [see below]:\n```json\n" + json.dumps(GOOD) + "\n```"
    assert extract_question_payload(raw) == GOOD


def test_extract_without_json_raises():
    with pytest.raises(GenerationError):
        extract_question_payload("I can't help with that.")


def test_validate_skips_bad_items(caplog):
    items = GOOD + [
        "not an object",
        {"question": "Three options", "options": ["a", "b", "c"], "correct_answer": 0},
        {"question": "Bad index", "options": ["a", "b", "c", "d"], "correct_answer": 4},
        {"question": "", "options": ["a", "b", "c", "d"], "correct_answer": 0},
    ]
    with caplog.at_level(logging.WARNING, logger="study_quiz.generation"):
        valid = validate_generated_questions(items, 10)
    assert valid == GOOD
    assert caplog.text.count("Skipping generated question") == 4


def test_validate_truncates_to_count():
    assert len(validate_generated_questions(GOOD * 3, 4)) == 4


def test_validate_with_nothing_valid_raises():
    with pytest.raises(GenerationError, match="No valid questions"):
        validate_generated_questions([{"question": "?"}], 5)


def setup_subject(tmp_path, tmp_db):
    init_db(tmp_db)
    subject = create_subject(tmp_db, USER, "Biology")
    f = tmp_path / "cells.md"
    f.write_text("# Cells\n\nRibosomes build proteins. DNA lives in the nucleus.")
    return subject, str(f)


def test_generate_document_questions(tmp_path, tmp_db):
    subject, path = setup_subject(tmp_path, tmp_db)
    prompts = []

    def generator(prompt):
        prompts.append(prompt)
        return json.dumps(GOOD)

    result = generate_document_questions(tmp_db, USER, subject.id, path, 2, generator)

    assert result["question_count"] == 2
    assert "Ribosomes build proteins" in prompts[0]
    [document] = list_documents(tmp_db, USER, subject.id)
    assert document.processed is True
    assert [q.question for q in get_questions(tmp_db, USER, document_id=document.id)] == \
        [g["question"] for g in GOOD]


def test_generator_failure_still_marks_processed(tmp_path, tmp_db):
    subject, path = setup_subject(tmp_path, tmp_db)

    def generator(prompt):
        raise ConnectionError("model unavailable")

    with pytest.raises(GenerationError, match="model unavailable"):
        generate_document_questions(tmp_db, USER, subject.id, path, 2, generator)

    [document] = list_documents(tmp_db, USER, subject.id)
    assert document.processed is True
    assert get_questions(tmp_db, USER, document_id=document.id) == []


def test_unparseable_reply_still_marks_processed(tmp_path, tmp_db):
    subject, path = setup_subject(tmp_path, tmp_db)
    with pytest.raises(GenerationError):
        generate_document_questions(tmp_db, USER, subject.id, path, 2, lambda prompt: "no json")
    [document] = list_documents(tmp_db, USER, subject.id)
    assert document.processed is True


def reply_script(tmp_path, body):
    script = tmp_path / "reply.py"
    script.write_text(body)
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"


def test_command_generator_pipes_prompt_through_stdin(tmp_path):
    command = reply_script(tmp_path, "import sys\nprint(sys.stdin.read().upper())\n")
    assert command_generator(command)("ribosomes").strip() == "RIBOSOMES"


def test_command_generator_rejects_empty_command():
    with pytest.raises(GenerationError, match="empty"):
        command_generator("   ")


def test_configured_generator_requires_environment(monkeypatch):
    monkeypatch.delenv(GENERATOR_ENV, raising=False)
    with pytest.raises(GenerationError, match=GENERATOR_ENV):
        configured_generator()


def test_configured_generator_runs_command(monkeypatch, tmp_path):
    command = reply_script(tmp_path, f"import sys\nsys.stdin.read()\nprint({json.dumps(GOOD)!r})\n")
    monkeypatch.setenv(GENERATOR_ENV, command)
    assert extract_question_payload(configured_generator()("prompt")) == GOOD


def test_failing_command_marks_processed(tmp_path, tmp_db):
    subject, path = setup_subject(tmp_path, tmp_db)
    command = reply_script(tmp_path, "import sys\nsys.exit(3)\n")
    with pytest.raises(GenerationError) as excinfo:
        generate_document_questions(tmp_db, USER, subject.id, path, 2, command_generator(command))
    assert isinstance(excinfo.value.__cause__, subprocess.CalledProcessError)
    [document] = list_documents(tmp_db, USER, subject.id)
    assert document.processed is True
