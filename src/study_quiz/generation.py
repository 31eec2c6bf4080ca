"""Question generation from uploaded documents through an external LLM."""
import json
import logging
import os
import re
import shlex
import subprocess
from pathlib import Path
from typing import Callable

from study_quiz.documents import create_document, mark_processed
from study_quiz.exceptions import GenerationError, QuizFormatError
from study_quiz.importer import read_file_content
from study_quiz.models import Question
from study_quiz.quiz import insert_questions

logger = logging.getLogger(__name__)

# Takes the prompt, returns the model's raw text reply.
QuestionGenerator = Callable[[str], str]

GENERATOR_ENV = "STUDY_QUIZ_GENERATOR"
MAX_PROMPT_CHARS = 6000
JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def build_prompt(text: str, count: int) -> str:
    return (
        f"Based on the following text content, generate exactly {count} multiple-choice "
        "questions. Each question should have 4 options and indicate which option is "
        "correct (0, 1, 2, or 3).\n\n"
        f"Text content:\n{text[:MAX_PROMPT_CHARS]}\n\n"
        "Please respond with a JSON array in this exact format:\n"
        '[\n  {\n    "question": "What is the main topic discussed?",\n'
        '    "options": ["Option A", "Option B", "Option C", "Option D"],\n'
        '    "correct_answer": 0\n  }\n]\n\n'
        "Requirements:\n"
        f"- Generate exactly {count} questions\n"
        "- Each question must have exactly 4 options\n"
        "- The correct_answer must be a number between 0 and 3\n"
        "- Questions should test understanding of key concepts from the text"
    )


def extract_question_payload(raw: str) -> list:
    """Pull the JSON array of questions out of a model reply."""
    candidates = []
    match = JSON_ARRAY.search(raw)
    if match:
        candidates.append(match.group(0))
    candidates.extend(m.group(1) for m in FENCED_BLOCK.finditer(raw))
    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, list):
            return payload
    raise GenerationError("Failed to extract a JSON array of questions from the model response")


def validate_generated_questions(items: list, expected_count: int) -> list[dict]:
    """Keep well-formed questions, up to ``expected_count`` of them."""
    valid = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning("Skipping generated question %d: not an object", index)
            continue
        options = item.get("options")
        try:
            if not isinstance(options, list):
                raise QuizFormatError("options is not a list")
            Question.validate(item.get("question"), options, item.get("correct_answer"))
        except QuizFormatError as e:
            logger.warning("Skipping generated question %d: %s", index, e.message)
            continue
        valid.append({
            "question": str(item["question"]),
            "options": [str(o) for o in options],
            "correct_answer": item["correct_answer"],
        })
    if not valid:
        raise GenerationError("No valid questions were generated")
    logger.info("Validated %d of %d generated questions", len(valid), len(items))
    return valid[:expected_count]


def command_generator(command: str) -> QuestionGenerator:
    """Generator that pipes the prompt into ``command`` and reads the reply from stdout."""
    args = shlex.split(command)
    if not args:
        raise GenerationError("Generator command is empty")

    def generate(prompt: str) -> str:
        logger.debug("Running generator %s", args[0])
        completed = subprocess.run(args, input=prompt, capture_output=True, text=True, check=True)
        return completed.stdout

    return generate


def configured_generator() -> QuestionGenerator:
    command = os.environ.get(GENERATOR_ENV, "").strip()
    if not command:
        raise GenerationError(f"Set {GENERATOR_ENV} to a command that answers prompts on stdout")
    return command_generator(command)


def generate_document_questions(
    db_path: str,
    user_id: str,
    subject_id: int,
    file_path: str,
    count: int,
    generator: QuestionGenerator,
) -> dict:
    """Store a document, generate questions for it and mark it processed.

    The document is marked processed even when generation fails, so it never
    stays pending; the failure is then raised as GenerationError.
    """
    path = Path(file_path)
    text = read_file_content(file_path)
    document = create_document(
        db_path, user_id, subject_id, path.name,
        file_size=path.stat().st_size, text_content=text, processed=False,
    )
    try:
        raw = generator(build_prompt(text, count))
        parsed = validate_generated_questions(extract_question_payload(raw), count)
        questions = insert_questions(db_path, user_id, subject_id, document.id, parsed)
    except Exception as e:
        logger.warning("Question generation failed for document %s: %s", document.id, e)
        mark_processed(db_path, document.id)
        if isinstance(e, GenerationError):
            raise
        raise GenerationError(f"Question generation failed: {e}") from e
    mark_processed(db_path, document.id)
    logger.info("Generated %d questions for document %s", len(questions), document.id)
    return {"filename": path.name, "document_id": document.id, "question_count": len(questions)}
