"""Import of pre-authored quiz files and text extraction from documents."""
import logging
import re
from pathlib import Path

from study_quiz.documents import create_document
from study_quiz.exceptions import QuizFormatError, UnsupportedFileError
from study_quiz.models import OPTION_LETTERS, Question
from study_quiz.quiz import insert_questions

logger = logging.getLogger(__name__)

QUIZ_SUFFIXES = (".txt", ".md")
DOCUMENT_SUFFIXES = (".txt", ".md", ".pdf", ".docx", ".html", ".htm")

BLOCK_SEPARATOR = re.compile(r"^\s*-{3,}\s*$", re.MULTILINE)
FIELD_PATTERN = re.compile(r'^\s*\[\s*(Question|[A-D]|Solution)\s*:\s*"(.*)"\s*\]\s*$', re.IGNORECASE)

# Example block:
#
#   [Question: "What is the powerhouse of the cell?"]
#   [A: "Mitochondria"]
#   [B: "Nucleus"]
#   [C: "Ribosome"]
#   [D: "Golgi apparatus"]
#   [Solution: "A"]
#   ---


def parse_block(block: str, number: int) -> dict:
    """Parse one question block into ``question``/``options``/``correct_answer``."""
    fields = {}
    for line in block.splitlines():
        if not line.strip():
            continue
        match = FIELD_PATTERN.match(line)
        if not match:
            raise QuizFormatError(f"Block {number}: unrecognized line: {line.strip()}")
        key = match.group(1).upper()
        if key in fields:
            raise QuizFormatError(f"Block {number}: duplicate [{match.group(1)}] line")
        fields[key] = match.group(2).strip()

    missing = [k for k in ("QUESTION", *OPTION_LETTERS, "SOLUTION") if k not in fields]
    if missing:
        names = ", ".join(k.title() if len(k) > 1 else k for k in missing)
        raise QuizFormatError(f"Block {number}: missing {names}")

    solution = fields["SOLUTION"].upper()
    if solution not in OPTION_LETTERS:
        raise QuizFormatError(f"Block {number}: solution must be one of A-D, got {fields['SOLUTION']!r}")

    item = {
        "question": fields["QUESTION"],
        "options": [fields[letter] for letter in OPTION_LETTERS],
        "correct_answer": OPTION_LETTERS.index(solution),
    }
    try:
        Question.validate(item["question"], item["options"], item["correct_answer"])
    except QuizFormatError as e:
        raise QuizFormatError(f"Block {number}: {e.message}") from e
    return item


def parse_quiz_text(text: str) -> list[dict]:
    """Parse a whole quiz file. Raises QuizFormatError on the first bad block."""
    blocks = [b for b in BLOCK_SEPARATOR.split(text) if b.strip()]
    if not blocks:
        raise QuizFormatError("No questions found in quiz file")
    return [parse_block(block, number) for number, block in enumerate(blocks, 1)]


def read_file_content(file_path: str) -> str:
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix in (".txt", ".md"):
        return path.read_text(encoding="utf-8")
    elif suffix == ".pdf":
        from PyPDF2 import PdfReader
        reader = PdfReader(file_path)
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    elif suffix == ".docx":
        from docx import Document
        doc = Document(file_path)
        return "\n".join(p.text for p in doc.paragraphs)
    elif suffix in (".html", ".htm"):
        from bs4 import BeautifulSoup
        html = path.read_text(encoding="utf-8")
        return BeautifulSoup(html, "html.parser").get_text()
    raise UnsupportedFileError(path.name, DOCUMENT_SUFFIXES)


def import_quiz_file(db_path: str, user_id: str, subject_id: int, file_path: str) -> dict:
    """Import a pre-authored quiz file as a processed document with its questions.

    The file is fully parsed before anything is written.
    """
    path = Path(file_path)
    if path.suffix.lower() not in QUIZ_SUFFIXES:
        raise UnsupportedFileError(path.name, QUIZ_SUFFIXES)
    content = read_file_content(file_path)
    parsed = parse_quiz_text(content)
    document = create_document(
        db_path, user_id, subject_id, path.name,
        file_size=path.stat().st_size, text_content=content, processed=True,
    )
    questions = insert_questions(db_path, user_id, subject_id, document.id, parsed)
    logger.info("Imported %d questions from %s", len(questions), path.name)
    return {"filename": path.name, "document_id": document.id, "question_count": len(questions)}
