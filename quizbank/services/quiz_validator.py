"""
Quiz validation and derived-field computation.

``QuizValidator`` collects structural errors instead of failing on the first
one, so callers can report every problem at once. ``compute_derived_fields``
is a pure function deriving ``question_count``, ``estimated_time`` and
``difficulty`` from the question list; those fields are never user-editable.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

QUESTION_TYPES = ("multiple_choice", "true_false", "fill_in_blank", "essay", "matching")
CATEGORIES = ("general", "mathematics", "science", "language", "history", "technology", "other")
STATUSES = ("active", "draft", "archived")
DIFFICULTIES = ("low", "medium", "high")

# Base answering time per question type, in seconds
SECONDS_PER_QUESTION_TYPE = {
    "multiple_choice": 60,
    "true_false": 30,
    "fill_in_blank": 45,
    "matching": 90,
    "essay": 300,
}
READING_CHARS_PER_SECOND = 20


@dataclass
class ValidationResult:
    """
    Outcome of a validation pass.

    Attributes:
        is_valid: True when no errors were found
        errors: Human-readable error messages, one per problem
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors))


@dataclass
class ValidatorLimits:
    """Length and count bounds applied by the validator."""

    min_title_length: int = 3
    max_title_length: int = 255
    max_description_length: int = 1000
    max_questions: int = 100
    max_question_length: int = 1000
    min_options: int = 2
    max_options: int = 6
    max_option_length: int = 200
    max_explanation_length: int = 500
    min_points: int = 1
    max_points: int = 10
    max_tags: int = 10
    max_tag_length: int = 50


class QuizValidator:
    """Validates quiz fields and question structure."""

    def __init__(self, limits: Optional[ValidatorLimits] = None):
        self.limits = limits or ValidatorLimits()

    def validate_title(self, title: Any) -> list[str]:
        if not isinstance(title, str) or not title.strip():
            return ["Quiz title is required"]
        title = title.strip()
        if len(title) < self.limits.min_title_length:
            return [f"Quiz title must be at least {self.limits.min_title_length} characters"]
        if len(title) > self.limits.max_title_length:
            return [f"Quiz title must not exceed {self.limits.max_title_length} characters"]
        return []

    def validate_tags(self, tags: Any) -> list[str]:
        if not isinstance(tags, list):
            return ["Tags must be a list of strings"]
        errors = []
        if len(tags) > self.limits.max_tags:
            errors.append(f"A quiz can have at most {self.limits.max_tags} tags")
        for tag in tags:
            if not isinstance(tag, str) or not tag.strip():
                errors.append("Tags must be non-empty strings")
                break
            if len(tag.strip()) > self.limits.max_tag_length:
                errors.append(f"Tag '{tag[:20]}' exceeds {self.limits.max_tag_length} characters")
        return errors

    def validate_quiz_fields(self, data: dict, partial: bool = False) -> list[str]:
        """
        Validate top-level quiz fields.

        Args:
            data: Field values keyed by model attribute name
            partial: When True only the keys present are checked (updates)

        Returns:
            List of error messages (empty when valid)
        """
        errors: list[str] = []

        if not partial or "title" in data:
            errors.extend(self.validate_title(data.get("title")))

        description = data.get("description")
        if description is not None and len(description) > self.limits.max_description_length:
            errors.append(f"Description must not exceed {self.limits.max_description_length} characters")

        category = data.get("category")
        if category is not None and category not in CATEGORIES:
            errors.append(f"Invalid category: {category}")

        status = data.get("status")
        if status is not None and status not in STATUSES:
            errors.append(f"Invalid status: {status}")

        if data.get("tags") is not None:
            errors.extend(self.validate_tags(data["tags"]))

        return errors

    def validate_questions(self, questions: Any) -> ValidationResult:
        """Validate an ordered question list, collecting every structural error."""
        if not isinstance(questions, list):
            return ValidationResult.from_errors(["Questions must be a list"])

        errors: list[str] = []
        if len(questions) > self.limits.max_questions:
            errors.append(f"A quiz can have at most {self.limits.max_questions} questions")

        seen_texts: set[str] = set()
        for index, question in enumerate(questions):
            number = index + 1
            if not isinstance(question, dict):
                errors.append(f"Question {number}: must be an object")
                continue
            errors.extend(self._validate_question(question, number))

            text = question.get("question")
            if isinstance(text, str) and text.strip():
                key = text.strip().lower()
                if key in seen_texts:
                    errors.append(f"Question {number}: duplicates an earlier question")
                seen_texts.add(key)

        return ValidationResult.from_errors(errors)

    def _validate_question(self, question: dict, number: int) -> list[str]:
        errors: list[str] = []
        limits = self.limits

        text = question.get("question")
        if not isinstance(text, str) or not text.strip():
            errors.append(f"Question {number}: question text is required")
        elif len(text.strip()) > limits.max_question_length:
            errors.append(f"Question {number}: question text exceeds {limits.max_question_length} characters")

        question_type = question.get("question_type") or "multiple_choice"
        if question_type not in QUESTION_TYPES:
            errors.append(f"Question {number}: invalid question type '{question_type}'")

        options = question.get("options") or []
        if not isinstance(options, list):
            errors.append(f"Question {number}: options must be a list")
            options = []
        elif options:
            if len(options) < limits.min_options or len(options) > limits.max_options:
                errors.append(
                    f"Question {number}: must have between {limits.min_options} and {limits.max_options} options"
                )
            if any(not isinstance(o, str) or not o.strip() for o in options):
                errors.append(f"Question {number}: options must be non-empty strings")
            elif any(len(o) > limits.max_option_length for o in options):
                errors.append(f"Question {number}: option exceeds {limits.max_option_length} characters")
        elif question_type == "multiple_choice":
            errors.append(f"Question {number}: multiple choice questions need options")

        answer = question.get("correct_answer")
        if not isinstance(answer, str) or not answer.strip():
            errors.append(f"Question {number}: correct answer is required")
        elif options and all(isinstance(o, str) for o in options):
            if answer.strip() not in (o.strip() for o in options):
                errors.append(f"Question {number}: correct answer must be one of the options")

        explanation = question.get("explanation")
        if explanation and len(explanation) > limits.max_explanation_length:
            errors.append(f"Question {number}: explanation exceeds {limits.max_explanation_length} characters")

        points = question.get("points", 1)
        if not isinstance(points, int) or isinstance(points, bool) or not (
            limits.min_points <= points <= limits.max_points
        ):
            errors.append(f"Question {number}: points must be between {limits.min_points} and {limits.max_points}")

        return errors


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Trim tags and drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(tag.strip() for tag in tags if tag and tag.strip()))


def estimate_completion_minutes(questions: list[dict]) -> int:
    """Estimated minutes to complete: per-type base time plus reading time, rounded up."""
    total_seconds = 0
    for question in questions:
        question_type = question.get("question_type") or "multiple_choice"
        total_seconds += SECONDS_PER_QUESTION_TYPE.get(question_type, 60)
        total_seconds += len(question.get("question") or "") // READING_CHARS_PER_SECOND
    return math.ceil(total_seconds / 60)


def derive_difficulty(questions: list[dict]) -> str:
    """
    Derive quiz difficulty from question complexity.

    Each question scores +2 for text over 200 characters (+1 over 100),
    +1 for more than four options and +1 when it carries an explanation.
    An average of 3 or more is ``high``, 1.5 or more ``medium``.
    """
    if not questions:
        return "low"

    score = 0
    for question in questions:
        length = len(question.get("question") or "")
        if length > 200:
            score += 2
        elif length > 100:
            score += 1
        if len(question.get("options") or []) > 4:
            score += 1
        if question.get("explanation"):
            score += 1

    average = score / len(questions)
    if average >= 3:
        return "high"
    if average >= 1.5:
        return "medium"
    return "low"


def compute_derived_fields(questions: list[dict]) -> dict:
    """Derived quiz columns for the given question list."""
    return {
        "question_count": len(questions),
        "estimated_time": estimate_completion_minutes(questions),
        "difficulty": derive_difficulty(questions),
    }
