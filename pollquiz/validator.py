"""
Question validation for submitted quizzes.

Turns raw, untyped input (a decoded JSON document or delimited text) into a
Question, or a ValidationError describing why it could not.
"""
import logging
from typing import Any, Mapping, Optional, Union

from .models import ErrorKind, Question, QuestionLimits, ValidationError, normalize_choices

logger = logging.getLogger(__name__)

ValidationResult = Union[Question, ValidationError]

# Marks the correct line in delimited text input
ANSWER_MARKER = "*"


class QuestionValidator:
    """Validates raw question input against the configured limits."""

    def __init__(self, limits: Optional[QuestionLimits] = None, allow_text: bool = False):
        """
        Initialize the validator.

        Args:
            limits: Bounds for choice count and time limit
            allow_text: Whether delimited plain text is accepted
        """
        self.limits = limits or QuestionLimits()
        self.allow_text = allow_text

    def validate(self, raw: Any) -> ValidationResult:
        """
        Validate raw input into a Question.

        Accepted shapes:
            {"description": str, "choices": [str], "answer": int, "limit": int}  # limit in ms
            {"question": str, "choices": [str], "answer": int, "timeout": int}   # timeout in s
            "prompt\\nchoice\\n*correct choice\\n..."                            # text mode only

        Args:
            raw: Decoded JSON value or text

        Returns:
            A Question, or a ValidationError. Never raises for bad input.
        """
        if isinstance(raw, Mapping):
            return self._validate_mapping(raw)
        if isinstance(raw, str):
            if not self.allow_text:
                return self._malformed("Plain text questions are not enabled")
            return self._validate_text(raw)
        return self._malformed(f"Expected a JSON object, got {type(raw).__name__}")

    def _validate_mapping(self, data: Mapping) -> ValidationResult:
        if "description" in data:
            description = data.get("description")
            limit = data.get("limit")
            units_per_second = 1000
        else:
            description = data.get("question")
            limit = data.get("timeout")
            units_per_second = 1
        choices = data.get("choices")
        answer = data.get("answer")

        # Structural checks
        if not isinstance(description, str) or not description.strip():
            return self._malformed("'description' must be non-empty text")
        if not isinstance(choices, (list, tuple)):
            return self._malformed("'choices' must be an array")
        if not all(isinstance(choice, str) and choice.strip() for choice in choices):
            return self._malformed("Every choice must be non-empty text")
        if not _is_integer(answer):
            return self._malformed("'answer' must be an integer")
        if not _is_integer(limit):
            return self._malformed("Time limit must be an integer")

        return self._check_ranges(description.strip(), normalize_choices(choices), answer,
                                  limit, units_per_second)

    def _validate_text(self, text: str) -> ValidationResult:
        lines = [line.strip() for line in text.strip().splitlines()]
        lines = [line for line in lines if line]
        if not lines:
            return self._malformed("Question text is empty")

        description, *raw_choices = lines
        choices = []
        answers = []
        for index, line in enumerate(raw_choices):
            if line.startswith(ANSWER_MARKER):
                answers.append(index)
                line = line[len(ANSWER_MARKER):].strip()
            if not line:
                return self._malformed(f"Choice {index + 1} is empty")
            choices.append(line)

        if len(answers) != 1:
            return self._malformed(f"Exactly one choice must be marked with '{ANSWER_MARKER}'")

        return self._check_ranges(description, tuple(choices), answers[0],
                                  self.limits.default_time_limit)

    def _check_ranges(self, description: str, choices: tuple, answer: int,
                      limit: float, units_per_second: int = 1) -> ValidationResult:
        """
        Range checks in fixed order, stopping at the first failure.

        ``limit`` is compared in its own units so oversized integers never
        reach float conversion.
        """
        if not 2 <= len(choices) <= self.limits.max_choices:
            return self._out_of_range(
                f"Expected 2 to {self.limits.max_choices} choices, got {len(choices)}"
            )
        if not 0 <= answer < len(choices):
            return self._out_of_range(f"Answer index {answer} is outside 0..{len(choices) - 1}")
        if not (self.limits.min_time_limit * units_per_second <= limit
                <= self.limits.max_time_limit * units_per_second):
            return self._out_of_range(
                f"Time limit {_describe(limit, units_per_second)} is outside "
                f"{self.limits.min_time_limit:g}..{self.limits.max_time_limit:g}s"
            )

        try:
            return Question(description, choices, answer, limit / units_per_second)
        except ValueError as e:
            return self._malformed(str(e))

    @staticmethod
    def _malformed(message: str) -> ValidationError:
        logger.debug(f"Question rejected as malformed: {message}")
        return ValidationError(ErrorKind.MALFORMED, message)

    @staticmethod
    def _out_of_range(message: str) -> ValidationError:
        logger.debug(f"Question rejected as out of range: {message}")
        return ValidationError(ErrorKind.OUT_OF_RANGE, message)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _describe(limit: Any, units_per_second: int) -> str:
    if abs(limit) >= 10 ** 12:
        return "an oversized value"
    return f"{limit / units_per_second:g}s"
