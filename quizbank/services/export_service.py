"""
Quiz export.

A quiz the caller may read can be downloaded as plain text (with an answer
key), Moodle GIFT, JSON or CSV. Several quizzes can be exported at once as a
ZIP archive holding one file per quiz. The formatters are pure functions of
the loaded quiz; ``ExportService`` adds the permission check and file naming.
"""

import csv
import io
import json
import logging
import re
import zipfile
from collections import Counter
from dataclasses import dataclass
from string import ascii_lowercase
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import utcnow
from ..errors import ValidationError
from ..models.quiz import Quiz, QuizQuestion
from .permission_service import PermissionService
from .quiz_validator import ValidatorLimits

logger = logging.getLogger(__name__)

GIFT_QUESTION_TYPES = ("multiple_choice", "true_false", "fill_in_blank")
GIFT_SPECIAL_CHARS = re.compile(r"([\\~=#{}:])")
TRUE_ANSWERS = ("true", "t", "yes", "1")
MAX_FILENAME_LENGTH = 50


@dataclass
class ExportedFile:
    """A rendered export ready to be sent as a download."""

    content: bytes
    media_type: str
    filename: str


def _answer_label(question: QuizQuestion) -> str:
    """Letter of the correct option (``b)``), or the answer text when there are no options."""
    options = [o.strip() for o in question.options or []]
    answer = question.correct_answer.strip()
    if answer in options:
        return f"{ascii_lowercase[options.index(answer)]})"
    return answer


def to_text(quiz: Quiz, include_answers: bool = True) -> str:
    """Readable handout: questions with lettered options, then an answer key."""
    lines = [f"Quiz Title: {quiz.title}"]
    if quiz.description:
        lines.append(f"Description: {quiz.description}")
    lines.append(f"Total Questions: {len(quiz.questions)}")
    lines += ["", "=" * 60, ""]

    for number, question in enumerate(quiz.questions, start=1):
        lines += [f"Question {number}: {question.question}", ""]
        if question.options:
            for letter, option in zip(ascii_lowercase, question.options):
                marker = " [Correct]" if include_answers and option.strip() == question.correct_answer.strip() else ""
                lines.append(f"   {letter}) {option}{marker}")
        elif question.question_type == "true_false":
            lines += ["   True", "   False"]
        if include_answers and not question.options:
            lines.append(f"   Answer: {question.correct_answer}")
        if include_answers and question.explanation:
            lines.append(f"   Explanation: {question.explanation}")
        lines += ["", "-" * 40, ""]

    if include_answers and quiz.questions:
        lines += ["=" * 60, "Answer Key", "=" * 60, ""]
        lines += [f"{number}. {_answer_label(q)}" for number, q in enumerate(quiz.questions, start=1)]

    return "\n".join(lines) + "\n"


def escape_gift(text: str) -> str:
    return GIFT_SPECIAL_CHARS.sub(r"\\\1", text)


def _gift_question(question: QuizQuestion) -> str:
    text = escape_gift(question.question)
    answer = question.correct_answer.strip()
    if question.question_type == "true_false":
        return f"{text} {{{'TRUE' if answer.lower() in TRUE_ANSWERS else 'FALSE'}}}\n"
    if question.options:
        choices = "\n".join(
            f"  {'=' if option.strip() == answer else '~'}{escape_gift(option)}" for option in question.options
        )
        return f"{text} {{\n{choices}\n}}\n"
    # fill_in_blank without options is a GIFT short answer
    return f"{text} {{={escape_gift(answer)}}}\n"


def to_gift(quiz: Quiz, category: Optional[str] = None) -> str:
    """
    Moodle GIFT import file.

    Essay and matching questions have no GIFT equivalent here and are
    skipped; question numbers in the comments keep the quiz's numbering.
    """
    parts = [f"$CATEGORY: {category or quiz.category}\n"]
    skipped = 0
    for number, question in enumerate(quiz.questions, start=1):
        if question.question_type not in GIFT_QUESTION_TYPES:
            skipped += 1
            continue
        parts.append(f"// Question {number}\n::Q{number}:: {_gift_question(question)}")
    if skipped:
        logger.debug(f"GIFT export skipped {skipped} unsupported question(s): quiz={quiz.id}")
    return "\n".join(parts)


def _question_dict(question: QuizQuestion) -> dict:
    return {
        "question": question.question,
        "question_type": question.question_type,
        "options": list(question.options or []),
        "correct_answer": question.correct_answer,
        "explanation": question.explanation,
        "points": question.points,
    }


def to_json(quiz: Quiz) -> str:
    """Full quiz document; the ``questions`` list is accepted back by quiz creation."""
    document = {
        "title": quiz.title,
        "description": quiz.description,
        "category": quiz.category,
        "tags": list(quiz.tags or []),
        "questions": [_question_dict(q) for q in quiz.questions],
        "metadata": {
            "id": str(quiz.id),
            "status": quiz.status,
            "difficulty": quiz.difficulty,
            "estimated_time": quiz.estimated_time,
            "question_count": len(quiz.questions),
            "question_types": dict(Counter(q.question_type for q in quiz.questions)),
            "created_at": quiz.created_at.isoformat() if quiz.created_at else None,
            "updated_at": quiz.updated_at.isoformat() if quiz.updated_at else None,
            "exported_at": utcnow().isoformat(),
        },
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def to_csv(quiz: Quiz) -> str:
    """One row per question, options spread over fixed columns."""
    option_columns = ValidatorLimits().max_options
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(
        ["Question Number", "Question Text", "Question Type", "Correct Answer"]
        + [f"Option {ascii_lowercase[i].upper()}" for i in range(option_columns)]
        + ["Points", "Explanation"]
    )
    for number, question in enumerate(quiz.questions, start=1):
        options = list(question.options or [])[:option_columns]
        writer.writerow(
            [number, question.question, question.question_type, question.correct_answer]
            + options + [""] * (option_columns - len(options))
            + [question.points, question.explanation]
        )
    return buffer.getvalue()


# format -> (renderer, media type, file extension)
EXPORT_FORMATS: dict[str, tuple[Callable[[Quiz], str], str, str]] = {
    "text": (to_text, "text/plain; charset=utf-8", "txt"),
    "gift": (to_gift, "text/plain; charset=utf-8", "gift"),
    "json": (to_json, "application/json", "json"),
    "csv": (to_csv, "text/csv; charset=utf-8", "csv"),
}


def export_filename(title: str, extension: str) -> str:
    """Filesystem-safe file name derived from the quiz title."""
    stem = re.sub(r"[^\w\s-]", "", title).strip()
    stem = re.sub(r"\s+", "_", stem)[:MAX_FILENAME_LENGTH] or "quiz"
    return f"{stem}.{extension}"


class ExportService:
    """
    Renders quizzes the caller may read.

    Args:
        db: SQLAlchemy async database session
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.permissions = PermissionService(db)

    @staticmethod
    def _format(fmt: str) -> tuple[Callable[[Quiz], str], str, str]:
        try:
            return EXPORT_FORMATS[fmt.lower()]
        except KeyError:
            raise ValidationError(
                f"Unsupported export format '{fmt}', use one of: {', '.join(EXPORT_FORMATS)}", field="format"
            )

    async def export_quiz(self, quiz_id: UUID, caller_id: UUID, fmt: str) -> ExportedFile:
        """
        Render one quiz.

        Raises:
            ValidationError: Unknown format
            NotFoundError: Quiz missing or soft-deleted
            UnauthorizedError: Caller may not read it
        """
        render, media_type, extension = self._format(fmt)
        quiz = await self.permissions.require_read(quiz_id, caller_id)
        content = render(quiz).encode("utf-8")

        logger.info(f"Quiz exported: id={quiz_id}, by={caller_id}, format={fmt}, bytes={len(content)}")
        return ExportedFile(content=content, media_type=media_type, filename=export_filename(quiz.title, extension))

    async def export_quizzes(self, quiz_ids: list[UUID], caller_id: UUID, fmt: str) -> ExportedFile:
        """
        Render several quizzes into one ZIP archive.

        Every quiz must be readable by the caller; the first one that is not
        fails the whole export.

        Raises:
            ValidationError: Unknown format, no ids or too many ids
            NotFoundError: A quiz is missing or soft-deleted
            UnauthorizedError: Caller may not read one of them
        """
        render, _, extension = self._format(fmt)
        quiz_ids = list(dict.fromkeys(quiz_ids))
        if not quiz_ids:
            raise ValidationError("At least one quiz is required", field="quiz_ids")
        if len(quiz_ids) > settings.bulk_operation_limit:
            raise ValidationError(
                f"Cannot export more than {settings.bulk_operation_limit} quizzes at once", field="quiz_ids"
            )

        buffer = io.BytesIO()
        names: Counter = Counter()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for quiz_id in quiz_ids:
                quiz = await self.permissions.require_read(quiz_id, caller_id)
                name = export_filename(quiz.title, extension)
                names[name] += 1
                if names[name] > 1:
                    stem, _, ext = name.rpartition(".")
                    name = f"{stem}_{names[name]}.{ext}"
                archive.writestr(name, render(quiz))

        logger.info(f"Quizzes exported: count={len(quiz_ids)}, by={caller_id}, format={fmt}")
        return ExportedFile(
            content=buffer.getvalue(), media_type="application/zip", filename=f"quizzes_{fmt.lower()}.zip"
        )
