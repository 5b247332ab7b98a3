"""
Staging area for questions awaiting a start command.
"""
import logging
from typing import Dict, Optional

from .models import Question


class QuestionRegistry:
    """Holds at most one pending question per submitting user."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._staged: Dict[str, Question] = {}

    def stage(self, user_id: str, question: Question) -> None:
        """Stage a question for a user, replacing any earlier one."""
        replaced = user_id in self._staged
        self._staged[user_id] = question
        self.logger.info(
            f"Staged question for user {user_id}" + (" (replaced previous)" if replaced else ""),
            extra={'event_type': 'question_staged', 'user_id': user_id, 'replaced': replaced}
        )

    def take(self, user_id: str) -> Optional[Question]:
        """
        Remove and return the user's staged question.

        Returns:
            The staged Question, or None if the user has nothing staged
        """
        question = self._staged.pop(user_id, None)
        if question is not None:
            self.logger.debug(f"Took staged question for user {user_id}")
        return question

    def peek(self, user_id: str) -> Optional[Question]:
        return self._staged.get(user_id)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._staged

    def __len__(self) -> int:
        return len(self._staged)
