"""
Core data models for the poll quiz bot.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple


# Regional indicator symbol letter A; choice i is shown as chr(BASE + i)
REGIONAL_INDICATOR_A = 0x1F1E6


class SessionState(Enum):
    """Lifecycle states of a quiz session."""
    IDLE = "idle"
    OPEN = "open"
    COLLECTING = "collecting"
    RESOLVING = "resolving"
    CLOSED = "closed"


class VoteMode(Enum):
    """How a second vote from the same voter is recorded."""
    ACCUMULATE = "accumulate"
    REPLACE = "replace"


class QuestionSource(Enum):
    """How the create command reads its argument."""
    URL = "url"
    TEXT = "text"


class ErrorKind(Enum):
    """Failure categories reported by the question validator."""
    MALFORMED = "malformed"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class Question:
    """A validated multiple-choice question."""
    description: str
    choices: Tuple[str, ...]
    answer_index: int
    time_limit: float  # seconds

    def __post_init__(self):
        if not isinstance(self.description, str) or not self.description.strip():
            raise ValueError("Question description must be non-empty text")
        if isinstance(self.choices, list):
            object.__setattr__(self, "choices", tuple(self.choices))
        if len(self.choices) < 2:
            raise ValueError("Question needs at least two choices")
        if any(not isinstance(choice, str) or not choice.strip() for choice in self.choices):
            raise ValueError("Every choice must be non-empty text")
        if isinstance(self.answer_index, bool) or not isinstance(self.answer_index, int):
            raise ValueError("Answer index must be an integer")
        if not 0 <= self.answer_index < len(self.choices):
            raise ValueError(f"Answer index {self.answer_index} is outside the choices")
        if self.time_limit <= 0:
            raise ValueError("Time limit must be positive")

    @property
    def answer(self) -> str:
        """Text of the correct choice."""
        return self.choices[self.answer_index]

    @property
    def answer_label(self) -> str:
        return choice_label(self.answer_index)

    @property
    def labels(self) -> List[str]:
        return [choice_label(index) for index in range(len(self.choices))]


@dataclass(frozen=True)
class QuestionLimits:
    """Configurable bounds applied when validating submitted questions."""
    max_choices: int = 10
    min_time_limit: float = 5
    max_time_limit: float = 600
    default_time_limit: float = 30


@dataclass
class QuizSettings:
    """Runtime configuration for quizzes."""
    command_prefix: str = "%"
    max_choices: int = 10
    min_time_limit: int = 5
    max_time_limit: int = 600
    default_time_limit: int = 30
    vote_mode: VoteMode = VoteMode.ACCUMULATE
    question_source: QuestionSource = QuestionSource.URL
    max_content_length: int = 1024
    trusted_urls_only: bool = False

    def limits(self) -> QuestionLimits:
        return QuestionLimits(
            max_choices=self.max_choices,
            min_time_limit=self.min_time_limit,
            max_time_limit=self.max_time_limit,
            default_time_limit=self.default_time_limit
        )


@dataclass(frozen=True)
class ValidationError:
    """Discriminated failure returned by the validator instead of raising."""
    kind: ErrorKind
    message: str

    @property
    def user_message(self) -> str:
        if self.kind is ErrorKind.MALFORMED:
            return "Could not parse questionnaire."
        return "Invalid question parameters."


@dataclass
class QuizSession:
    """One running quiz instance hosted on a broadcast message."""
    session_id: str
    question: Question
    host_id: str
    state: SessionState = SessionState.IDLE
    opened_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a resolved session."""
    session_id: str
    question: Question
    winners: List[str]
    voter_count: int


@dataclass(frozen=True)
class PollAnnouncement:
    """What the messaging layer needs to render a poll."""
    question: Question
    host_name: str

    @property
    def fields(self) -> List[Tuple[str, str]]:
        return list(zip(self.question.labels, self.question.choices))


def choice_label(index: int) -> str:
    """Emoji label for a zero-based choice index."""
    return chr(REGIONAL_INDICATOR_A + index)


def choice_index(label: Optional[str], choice_count: int = 26) -> Optional[int]:
    """Inverse of choice_label; None for anything that is not a choice emoji."""
    if not label or len(label) != 1:
        return None
    index = ord(label) - REGIONAL_INDICATOR_A
    if 0 <= index < choice_count:
        return index
    return None


def normalize_choices(choices: Sequence[str]) -> Tuple[str, ...]:
    return tuple(choice.strip() for choice in choices)
