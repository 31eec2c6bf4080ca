import json

import pytest
from unittest.mock import patch

from study_quiz.app import (
    AppContext, SessionExitRequested, cmd_add, cmd_generate, format_date, main, run_quiz_session,
    session_prompt,
)
from study_quiz.documents import list_documents
from study_quiz.exceptions import GenerationError
from study_quiz.generation import GENERATOR_ENV
from study_quiz.models import QuizType, SingleDocument
from study_quiz.quiz import count_questions, get_attempts
from study_quiz.session import SessionRunner, SessionState, build_session
from study_quiz.settings import set_current_user
from study_quiz.subjects import list_subjects

USER = "alice"
LETTERS = "abcd"


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


@pytest.mark.parametrize("word", ["q", "quit", "menu", " Q "])
def test_session_prompt_raises_on_exit_words(word):
    with patch("study_quiz.app.Prompt.ask", return_value=word):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("study_quiz.app.Prompt.ask", return_value="b"):
        assert session_prompt("test prompt") == "b"


def test_format_date():
    assert format_date("2026-03-10T14:22:01.123456") == "2026-03-10"
    assert format_date(None) == "Never"


def make_runner(biology, ctx):
    questions = build_session(ctx.store, SingleDocument(biology["document"].id, shuffle=False))
    return SessionRunner(questions, subject_id=biology["subject"].id,
                         document_id=biology["document"].id, recorder=ctx.recorder)


def test_run_quiz_session_completes_and_records(biology):
    ctx = AppContext(biology["db_path"], USER)
    runner = make_runner(biology, ctx)

    def answer_correctly(*args, **kwargs):
        return LETTERS[runner.current_question.correct_index]

    with patch("study_quiz.app.Prompt.ask", side_effect=answer_correctly):
        assert run_quiz_session(runner) is True
    assert runner.result.percent == 100
    [attempt] = get_attempts(biology["db_path"], USER)
    assert attempt.score == 100


def test_run_quiz_session_invalidates_statistics(biology):
    ctx = AppContext(biology["db_path"], USER)
    assert ctx.statistics.get(USER).overall_statistics.total_attempts == 0
    runner = make_runner(biology, ctx)
    with patch("study_quiz.app.Prompt.ask", side_effect=["a", "a", "a", "a"]):
        run_quiz_session(runner)
    assert not ctx.statistics.is_cached(USER)
    assert ctx.statistics.get(USER).overall_statistics.total_attempts == 1


def test_run_quiz_session_exit_discards(biology):
    ctx = AppContext(biology["db_path"], USER)
    runner = make_runner(biology, ctx)
    with patch("study_quiz.app.Prompt.ask", side_effect=["a", "b", "q"]):
        assert run_quiz_session(runner) is False
    assert runner.state is SessionState.NOT_STARTED
    assert get_attempts(biology["db_path"], USER) == []


def test_run_quiz_session_without_questions():
    runner = SessionRunner([])
    with patch("study_quiz.app.Prompt.ask") as ask:
        assert run_quiz_session(runner) is False
    ask.assert_not_called()


def test_wrong_practice_is_not_recorded(biology):
    ctx = AppContext(biology["db_path"], USER)
    wrong = build_session(ctx.store, SingleDocument(biology["document"].id, shuffle=False))[:2]
    runner = SessionRunner((), wrong, subject_id=biology["subject"].id, recorder=ctx.recorder)
    with patch("study_quiz.app.Prompt.ask", side_effect=["a", "a"]):
        assert run_quiz_session(runner, QuizType.WRONG) is True
    assert get_attempts(biology["db_path"], USER) == []


def test_cmd_add_creates_subject(biology):
    ctx = AppContext(biology["db_path"], USER)
    with patch("study_quiz.app.Prompt.ask", side_effect=["Chemistry", "orange"]):
        cmd_add(ctx)
    names = {s.name: s.color for s in list_subjects(biology["db_path"], USER)}
    assert names["Chemistry"] == "orange"


GENERATED = [
    {"question": "What do ribosomes build?", "options": ["Proteins", "Lipids", "Sugars", "DNA"],
     "correct_answer": 0},
    {"question": "Where is DNA stored?", "options": ["Membrane", "Nucleus", "Wall", "Vacuole"],
     "correct_answer": 1},
]


def test_cmd_generate_stores_generated_quiz(biology, tmp_path):
    ctx = AppContext(biology["db_path"], USER)
    notes = tmp_path / "genetics.md"
    notes.write_text("DNA lives in the nucleus. Ribosomes build proteins.")
    with patch("study_quiz.app.configured_generator", return_value=lambda prompt: json.dumps(GENERATED)), \
            patch("study_quiz.app.Prompt.ask", return_value=str(notes)), \
            patch("study_quiz.app.IntPrompt.ask", side_effect=[1, 2]):
        cmd_generate(ctx)
    generated = [d for d in list_documents(ctx.db_path, USER, biology["subject"].id) if d.name == "genetics.md"]
    assert len(generated) == 1 and generated[0].processed
    assert count_questions(ctx.db_path, USER, document_id=generated[0].id) == 2


def test_cmd_generate_requires_configured_command(biology, monkeypatch):
    monkeypatch.delenv(GENERATOR_ENV, raising=False)
    ctx = AppContext(biology["db_path"], USER)
    with patch("study_quiz.app.Prompt.ask") as ask, pytest.raises(GenerationError):
        cmd_generate(ctx)
    ask.assert_not_called()


def test_main_shows_generation_errors(biology, monkeypatch):
    monkeypatch.delenv(GENERATOR_ENV, raising=False)
    monkeypatch.setattr("study_quiz.app.DEFAULT_DB_PATH", biology["db_path"])
    set_current_user(biology["db_path"], USER)
    with patch("study_quiz.app.setup_logging"), patch("study_quiz.app.console") as console, \
            patch("study_quiz.app.Prompt.ask", side_effect=["generate", "quit"]):
        main()
    printed = [str(call.args[0]) for call in console.print.call_args_list if call.args]
    assert any(line.startswith("[red]Error:") and GENERATOR_ENV in line for line in printed)
