"""Interactive CLI application."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.prompt import Prompt, IntPrompt, Confirm

from study_quiz.db import init_db, DEFAULT_DB_PATH
from study_quiz.log import setup_logging
from study_quiz.exceptions import QuizAppError
from study_quiz.models import (
    OPTION_LETTERS, QuizType, Remediation, SingleDocument, SubjectWide, Subject,
)
from study_quiz.store import SQLiteStore
from study_quiz.session import SessionRunner, build_session
from study_quiz.recorder import AttemptRecorder
from study_quiz.dashboard import StatisticsService, get_mastery_color
from study_quiz.subjects import SUBJECT_COLORS, create_subject, delete_subject, list_subjects
from study_quiz.documents import delete_document, list_documents
from study_quiz.quiz import count_questions
from study_quiz.review import get_miss_counts
from study_quiz.importer import DOCUMENT_SUFFIXES, import_quiz_file
from study_quiz.generation import configured_generator, generate_document_questions
from study_quiz.settings import get_current_user, get_int_setting, set_current_user, set_setting

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "quit", "menu")


class SessionExitRequested(Exception):
    """Raised when the user leaves a quiz midway."""


@dataclass
class AppContext:
    db_path: str
    user_id: str
    store: SQLiteStore = field(init=False)
    statistics: StatisticsService = field(init=False)
    recorder: AttemptRecorder = field(init=False)

    def __post_init__(self):
        self.store = SQLiteStore(self.db_path, self.user_id)
        self.statistics = StatisticsService(self.store)
        self.recorder = AttemptRecorder(self.store, self.user_id, observers=[self.statistics.invalidate])


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def format_date(value: str | None) -> str:
    if not value:
        return "Never"
    return datetime.fromisoformat(value).strftime("%Y-%m-%d")


def show_welcome(user_id: str):
    console.print(Panel(
        f"[bold]Study Quiz[/bold]\n[dim]Signed in as {user_id}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("subjects", "List subjects"),
        ("add", "Create a subject"),
        ("upload", "Import a quiz file"),
        ("generate", "Generate a quiz from notes"),
        ("documents", "List quizzes in a subject"),
        ("quiz", "Take a quiz"),
        ("mega", "Mega quiz across a subject"),
        ("wrong", "Practice missed questions"),
        ("stats", "Statistics + mastery"),
        ("delete", "Delete a subject or quiz"),
        ("user", "Switch user"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def choose_subject(ctx: AppContext) -> Subject | None:
    subjects = list_subjects(ctx.db_path, ctx.user_id)
    if not subjects:
        console.print("[yellow]No subjects yet. Use 'add' to create one.[/yellow]")
        return None
    for i, s in enumerate(subjects, 1):
        console.print(f"  [cyan]{i}[/cyan]) [{s.color}]{s.name}[/{s.color}] "
                      f"[dim]({s.document_count} quizzes, {s.question_count} questions)[/dim]")
    choice = IntPrompt.ask("Select subject", choices=[str(i) for i in range(1, len(subjects) + 1)])
    return subjects[choice - 1]


def run_quiz_session(runner: SessionRunner, quiz_type: QuizType = QuizType.FULL) -> bool:
    """Drive a runner to completion. Returns False if nothing was asked or the user quit."""
    if not runner.start(quiz_type):
        console.print("[yellow]No questions available![/yellow]")
        return False
    total = len(runner.questions)
    label = "Wrong Questions Practice" if quiz_type is QuizType.WRONG else "Quiz"
    console.print(f"\n[bold]{label}[/bold]: {total} questions [dim](q to exit)[/dim]\n")
    try:
        while not runner.is_complete:
            question = runner.current_question
            console.print(f"[bold]Q{runner.current_index + 1}/{total}.[/bold] {question.question.question}\n")
            for letter, option in zip(OPTION_LETTERS, question.options):
                console.print(f"  [cyan]{letter.lower()})[/cyan] {option}")
            answer = session_prompt(
                "\nYour answer", choices=[l.lower() for l in OPTION_LETTERS] + list(EXIT_WORDS),
            )
            runner.answer(OPTION_LETTERS.index(answer.strip().upper()))
            console.print()
    except SessionExitRequested:
        runner.exit()
        console.print("[dim]Quiz abandoned. Nothing was saved.[/dim]")
        return False
    show_results(runner)
    return True


def show_results(runner: SessionRunner) -> None:
    result = runner.result
    color = get_mastery_color(result.percent)
    console.print(Panel(
        f"[bold {color}]{result.percent}%[/bold {color}]\n"
        f"You got {result.correct} out of {result.total} questions correct",
        title="Quiz Complete!", border_style=color,
    ))
    for question, answer in zip(runner.questions, runner.answers):
        if answer == question.correct_index:
            console.print(f"[green]✓[/green] {question.question.question}")
        else:
            console.print(f"[red]✗[/red] {question.question.question}")
            console.print(f"    [green]Correct: {question.correct_text}[/green]")
            console.print(f"    [red]Your answer: {question.options[answer]}[/red]")
    if runner.quiz_type is QuizType.WRONG:
        console.print("\n[dim]Practice results don't count towards mastery.[/dim]")
    elif runner.recorder is not None and runner.attempt is None:
        console.print("\n[yellow]Your score couldn't be saved this time.[/yellow]")


def cmd_subjects(ctx: AppContext):
    subjects = list_subjects(ctx.db_path, ctx.user_id)
    if not subjects:
        console.print("[yellow]No subjects yet. Use 'add' to create one.[/yellow]")
        return
    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Quizzes", justify="right")
    table.add_column("Questions", justify="right")
    table.add_column("Mastery", justify="right")
    table.add_column("Last Studied")
    for s in subjects:
        mc = get_mastery_color(s.mastery_score)
        table.add_row(
            f"[{s.color}]{s.name}[/{s.color}]", str(s.document_count), str(s.question_count),
            f"[{mc}]{s.mastery_score}%[/{mc}]", format_date(s.last_studied),
        )
    console.print(table)


def cmd_add(ctx: AppContext):
    name = Prompt.ask("Subject name")
    color = Prompt.ask("Color", choices=list(SUBJECT_COLORS), default="blue")
    subject = create_subject(ctx.db_path, ctx.user_id, name, color)
    console.print(f"[green]Created subject {subject.name}[/green]")


def cmd_upload(ctx: AppContext):
    subject = choose_subject(ctx)
    if subject is None:
        return
    file_path = Prompt.ask("Quiz file path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_quiz_file(ctx.db_path, ctx.user_id, subject.id, file_path)
    console.print(f"[green]Imported {result['filename']} → {result['question_count']} questions[/green]")


def cmd_generate(ctx: AppContext):
    generator = configured_generator()
    subject = choose_subject(ctx)
    if subject is None:
        return
    file_path = Prompt.ask(f"Notes file path ({', '.join(DOCUMENT_SUFFIXES)})")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    count = IntPrompt.ask("Number of questions", default=10)
    console.print("[dim]Generating questions...[/dim]")
    result = generate_document_questions(ctx.db_path, ctx.user_id, subject.id, file_path, count, generator)
    console.print(f"[green]Generated {result['question_count']} questions from {result['filename']}[/green]")


def cmd_documents(ctx: AppContext):
    subject = choose_subject(ctx)
    if subject is None:
        return
    documents = list_documents(ctx.db_path, ctx.user_id, subject.id)
    table = Table(title=f"{subject.name} Quizzes")
    table.add_column("Quiz", style="cyan")
    table.add_column("Questions", justify="right")
    table.add_column("Uploaded")
    table.add_column("Status")
    for d in documents:
        count = count_questions(ctx.db_path, ctx.user_id, document_id=d.id)
        status = "[green]Ready[/green]" if d.processed else "[yellow]Processing[/yellow]"
        table.add_row(d.name, str(count), format_date(d.upload_date), status)
    console.print(table)


def cmd_quiz(ctx: AppContext):
    subject = choose_subject(ctx)
    if subject is None:
        return
    documents = [d for d in list_documents(ctx.db_path, ctx.user_id, subject.id) if d.processed]
    if not documents:
        console.print("[yellow]No quizzes in this subject. Use 'upload' to add one.[/yellow]")
        return
    for i, d in enumerate(documents, 1):
        console.print(f"  [cyan]{i}[/cyan]) {d.name}")
    choice = IntPrompt.ask("Select quiz", choices=[str(i) for i in range(1, len(documents) + 1)])
    document = documents[choice - 1]

    questions = build_session(ctx.store, SingleDocument(document.id))
    wrong = build_session(ctx.store, Remediation(document_id=document.id))
    runner = SessionRunner(
        questions, wrong, subject_id=subject.id, document_id=document.id, recorder=ctx.recorder,
    )
    quiz_type = QuizType.FULL
    if wrong:
        mode = Prompt.ask(
            f"Quiz mode (full: {len(questions)} questions, wrong: {len(wrong)} missed)",
            choices=["full", "wrong"], default="full",
        )
        quiz_type = QuizType(mode)
    run_quiz_session(runner, quiz_type)


def cmd_mega(ctx: AppContext):
    subject = choose_subject(ctx)
    if subject is None:
        return
    total = count_questions(ctx.db_path, ctx.user_id, subject_id=subject.id)
    if total == 0:
        console.print("[yellow]No questions available![/yellow]")
        return
    default_limit = get_int_setting(ctx.db_path, ctx.user_id, "mega_question_limit", total)
    limit = IntPrompt.ask(f"Number of questions (max {total})", default=min(default_limit, total))
    shuffle_order = Confirm.ask("Shuffle questions randomly?", default=True)
    set_setting(ctx.db_path, ctx.user_id, "mega_question_limit", str(limit))
    questions = build_session(ctx.store, SubjectWide(subject.id, question_limit=limit, shuffle=shuffle_order))
    runner = SessionRunner(questions, subject_id=subject.id, is_mega=True, recorder=ctx.recorder)
    run_quiz_session(runner)


def cmd_wrong(ctx: AppContext):
    subject = choose_subject(ctx)
    if subject is None:
        return
    wrong = build_session(ctx.store, Remediation(subject_id=subject.id))
    if wrong:
        misses = get_miss_counts(ctx.db_path, ctx.user_id, subject.id)
        worst = max(wrong, key=lambda q: misses.get(q.id, 0))
        console.print(f"[dim]Most missed ({misses.get(worst.id, 0)}x): {worst.question.question}[/dim]")
    runner = SessionRunner((), wrong, subject_id=subject.id)
    run_quiz_session(runner, QuizType.WRONG)


def cmd_stats(ctx: AppContext):
    stats = ctx.statistics.get(ctx.user_id)
    overall = stats.overall_statistics
    color = get_mastery_color(overall.overall_mastery)
    bar_filled = int(overall.overall_mastery / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(Panel(
        f"Overall Mastery: [bold]{overall.overall_mastery}%[/bold] {bar}\n"
        f"Subjects: [bold]{overall.total_subjects}[/bold]  |  "
        f"Quizzes: [bold]{overall.total_quizzes}[/bold]  |  "
        f"Attempts: [bold]{overall.total_attempts}[/bold]  |  "
        f"Streak: [bold]{overall.study_streak}[/bold] days",
        title="Statistics", border_style="blue",
    ))

    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Mastery", justify="right")
    table.add_column("Trend")
    table.add_column("Last Studied")
    for s in stats.subject_statistics:
        mc = get_mastery_color(s.mastery_score)
        table.add_row(s.subject_name, str(s.total_attempts), f"[{mc}]{s.mastery_score}%[/{mc}]",
                      s.progress_trend.value, format_date(s.last_studied))
    console.print(table)

    if stats.quiz_statistics:
        table = Table(title="Quizzes")
        table.add_column("Quiz", style="cyan")
        table.add_column("Subject")
        table.add_column("Attempts", justify="right")
        table.add_column("Best", justify="right")
        table.add_column("Average", justify="right")
        table.add_column("Level")
        table.add_column("Trend")
        for q in stats.quiz_statistics:
            table.add_row(q.quiz_name, q.subject_name, str(q.total_attempts), f"{q.best_score}%",
                          f"{q.average_score}%", q.mastery_level.value, q.progress_trend.value)
        console.print(table)

    if overall.recent_activity:
        console.print("\n[bold]Recent Activity:[/bold]")
        for a in overall.recent_activity[:10]:
            mc = get_mastery_color(a.score)
            console.print(f"  {format_date(a.date)}  [{mc}]{a.score:>3}%[/{mc}]  {a.quiz_name} [dim]({a.subject_name})[/dim]")


def cmd_delete(ctx: AppContext):
    kind = Prompt.ask("Delete what", choices=["subject", "quiz"], default="quiz")
    subject = choose_subject(ctx)
    if subject is None:
        return
    if kind == "subject":
        if Confirm.ask(f"Delete {subject.name} with all its quizzes and history?", default=False):
            delete_subject(ctx.db_path, ctx.user_id, subject.id)
            ctx.statistics.invalidate(ctx.user_id)
            console.print(f"[green]Deleted {subject.name}[/green]")
        return
    documents = list_documents(ctx.db_path, ctx.user_id, subject.id)
    if not documents:
        console.print("[yellow]No quizzes in this subject.[/yellow]")
        return
    for i, d in enumerate(documents, 1):
        console.print(f"  [cyan]{i}[/cyan]) {d.name}")
    choice = IntPrompt.ask("Select quiz", choices=[str(i) for i in range(1, len(documents) + 1)])
    document = documents[choice - 1]
    if Confirm.ask(f"Delete {document.name} and its questions?", default=False):
        delete_document(ctx.db_path, ctx.user_id, document.id)
        ctx.statistics.invalidate(ctx.user_id)
        console.print(f"[green]Deleted {document.name}[/green]")


def ask_user(db_path: str) -> str:
    user_id = ""
    while not user_id:
        user_id = Prompt.ask("Username").strip()
    set_current_user(db_path, user_id)
    return user_id


def main():
    setup_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    user_id = get_current_user(db_path) or ask_user(db_path)
    ctx = AppContext(db_path, user_id)
    show_welcome(user_id)

    commands = {
        "subjects": cmd_subjects,
        "add": cmd_add,
        "upload": cmd_upload,
        "generate": cmd_generate,
        "documents": cmd_documents,
        "quiz": cmd_quiz,
        "mega": cmd_mega,
        "wrong": cmd_wrong,
        "stats": cmd_stats,
        "delete": cmd_delete,
    }
    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="subjects").strip().lower()
        try:
            if choice in commands:
                commands[choice](ctx)
            elif choice == "user":
                ctx = AppContext(db_path, ask_user(db_path))
                show_welcome(ctx.user_id)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Happy studying![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except QuizAppError as e:
            console.print(f"[red]Error: {e.message}[/red]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
