"""Unit tests for quiz validation and derived fields."""

import pytest

from quizbank.services.quiz_validator import (
    QuizValidator,
    ValidatorLimits,
    compute_derived_fields,
    derive_difficulty,
    estimate_completion_minutes,
    normalize_tags,
)


def _question(**overrides):
    question = {
        "question": "What is the capital of France?",
        "question_type": "multiple_choice",
        "options": ["Paris", "Lyon", "Nice"],
        "correct_answer": "Paris",
        "explanation": "",
        "points": 1,
    }
    question.update(overrides)
    return question


class TestValidateQuestions:
    """Tests for structural question validation."""

    def test_valid_questions(self):
        result = QuizValidator().validate_questions(
            [_question(), _question(question="2 + 2?", options=["3", "4"], correct_answer="4")]
        )

        assert result.is_valid is True
        assert result.errors == []

    def test_not_a_list(self):
        result = QuizValidator().validate_questions("nope")

        assert result.errors == ["Questions must be a list"]

    def test_collects_every_error(self):
        questions = [
            _question(question=" "),
            _question(question="Pick one", options=["A", "B"], correct_answer="C", points=0),
            "not an object",
        ]

        errors = QuizValidator().validate_questions(questions).errors

        assert "Question 1: question text is required" in errors
        assert "Question 2: correct answer must be one of the options" in errors
        assert "Question 2: points must be between 1 and 10" in errors
        assert "Question 3: must be an object" in errors

    def test_multiple_choice_needs_options(self):
        errors = QuizValidator().validate_questions([_question(options=[])]).errors

        assert errors == ["Question 1: multiple choice questions need options"]

    def test_free_text_question_without_options(self):
        result = QuizValidator().validate_questions(
            [_question(question_type="essay", options=[], correct_answer="Any thoughtful answer")]
        )

        assert result.is_valid is True

    @pytest.mark.parametrize("options", [["Paris"], ["Paris", "B", "C", "D", "E", "F", "G"]])
    def test_option_count_bounds(self, options):
        errors = QuizValidator().validate_questions([_question(options=options)]).errors

        assert "Question 1: must have between 2 and 6 options" in errors

    def test_duplicate_question_text(self):
        errors = QuizValidator().validate_questions(
            [_question(), _question(question="  what is the capital of france?  ")]
        ).errors

        assert errors == ["Question 2: duplicates an earlier question"]

    def test_unknown_question_type(self):
        errors = QuizValidator().validate_questions([_question(question_type="riddle")]).errors

        assert "Question 1: invalid question type 'riddle'" in errors

    def test_boolean_points_rejected(self):
        errors = QuizValidator().validate_questions([_question(points=True)]).errors

        assert errors == ["Question 1: points must be between 1 and 10"]

    def test_question_limit(self):
        validator = QuizValidator(ValidatorLimits(max_questions=2))
        questions = [_question(question=f"Question {n}?") for n in range(3)]

        assert validator.validate_questions(questions).errors == ["A quiz can have at most 2 questions"]


class TestValidateQuizFields:
    """Tests for top-level field validation."""

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("", "Quiz title is required"),
            (None, "Quiz title is required"),
            ("ab", "Quiz title must be at least 3 characters"),
            ("x" * 256, "Quiz title must not exceed 255 characters"),
        ],
    )
    def test_title_rules(self, title, expected):
        assert QuizValidator().validate_quiz_fields({"title": title}) == [expected]

    def test_partial_update_skips_missing_title(self):
        assert QuizValidator().validate_quiz_fields({"category": "science"}, partial=True) == []

    def test_invalid_enums_and_tags(self):
        errors = QuizValidator().validate_quiz_fields(
            {"title": "Valid title", "category": "astrology", "status": "published", "tags": ["ok", ""]}
        )

        assert errors == ["Invalid category: astrology", "Invalid status: published", "Tags must be non-empty strings"]

    def test_too_many_tags(self):
        errors = QuizValidator().validate_tags([f"tag{n}" for n in range(11)])

        assert errors == ["A quiz can have at most 10 tags"]


class TestDerivedFields:
    """Tests for completion time and difficulty."""

    def test_estimate_uses_type_and_reading_time(self):
        questions = [
            _question(question="x" * 40),  # 60s + 2s
            _question(question_type="essay", question="y" * 20, options=[]),  # 300s + 1s
        ]

        assert estimate_completion_minutes(questions) == 7

    def test_estimate_rounds_up(self):
        assert estimate_completion_minutes([_question(question="short")]) == 1
        assert estimate_completion_minutes([]) == 0

    def test_difficulty_thresholds(self):
        easy = _question()
        medium = _question(question="m" * 150, explanation="because")
        hard = _question(question="h" * 250, options=["a", "b", "c", "d", "e"], correct_answer="a", explanation="why")

        assert derive_difficulty([]) == "low"
        assert derive_difficulty([easy]) == "low"
        assert derive_difficulty([medium]) == "medium"
        assert derive_difficulty([hard]) == "high"
        assert derive_difficulty([easy, hard]) == "medium"

    def test_compute_derived_fields(self):
        assert compute_derived_fields([_question(question="Short one?"), _question(question="Another one?")]) == {
            "question_count": 2,
            "estimated_time": 2,
            "difficulty": "low",
        }

    def test_normalize_tags(self):
        assert normalize_tags([" exam ", "exam", "", "final"]) == ["exam", "final"]
