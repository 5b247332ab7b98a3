"""
Test fixtures and sample data for poll quiz bot tests.
"""
import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple
from unittest.mock import AsyncMock, Mock

import discord

from pollquiz.messaging import Messenger
from pollquiz.models import PollAnnouncement, Question


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def create_sample_question(time_limit: float = 30, answer_index: int = 1) -> Question:
        return Question(
            "What is the capital of France?",
            ("London", "Paris", "Berlin", "Madrid"),
            answer_index,
            time_limit
        )

    @staticmethod
    def create_quick_question(time_limit: float = 0.05) -> Question:
        """Question with a short countdown for scheduler tests."""
        return Question("What is 2+2?", ("3", "4", "5"), 1, time_limit)

    @staticmethod
    def create_description_document() -> Dict[str, Any]:
        """Document using the description/limit shape (limit in milliseconds)."""
        return {
            "description": "Which planet is the largest?",
            "choices": ["Earth", "Mars", "Jupiter", "Saturn"],
            "answer": 2,
            "limit": 15000
        }

    @staticmethod
    def create_question_document() -> Dict[str, Any]:
        """Document using the question/timeout shape (timeout in seconds)."""
        return {
            "question": "How many days are in a week?",
            "choices": ["5", "6", "7"],
            "answer": 2,
            "timeout": 20
        }

    @staticmethod
    def create_text_question() -> str:
        return "What color is the sky?\nGreen\n*Blue\nRed"

    @staticmethod
    def create_malformed_documents() -> List[Any]:
        """Inputs that are not a question at all."""
        return [
            None,
            42,
            ["not", "a", "mapping"],
            {},
            {"description": "Missing everything else"},
            {"description": "Choices not a list", "choices": "A, B", "answer": 0, "limit": 10000},
            {"description": "Answer not an int", "choices": ["A", "B"], "answer": "0", "limit": 10000},
            {"description": "Boolean answer", "choices": ["A", "B"], "answer": True, "limit": 10000},
            {"description": "Choice not text", "choices": ["A", 2], "answer": 0, "limit": 10000},
            {"description": "", "choices": ["A", "B"], "answer": 0, "limit": 10000},
        ]


class FakeHandle:
    """Stands in for a broadcast poll message."""

    def __init__(self, message_id: int):
        self.id = message_id


class FakeMessenger(Messenger):
    """Messenger that records every outbound call."""

    def __init__(self, handle_id: int = 11111, fail_affordances: bool = False):
        self.handle_id = handle_id
        self.fail_affordances = fail_affordances
        self.broadcasts: List[PollAnnouncement] = []
        self.replies: List[str] = []
        self.sent: List[Tuple[str, List[str]]] = []
        self.affordances: List[Tuple[Any, List[str]]] = []
        self.retracted: List[Any] = []

    async def broadcast(self, poll: PollAnnouncement) -> FakeHandle:
        self.broadcasts.append(poll)
        return FakeHandle(self.handle_id)

    async def reply(self, content: str) -> None:
        self.replies.append(content)

    async def send(self, content: str, mentions: Sequence[str] = ()) -> None:
        self.sent.append((content, list(mentions)))

    async def add_option_affordances(self, handle: Any, labels: Sequence[str]) -> None:
        if self.fail_affordances:
            raise discord.HTTPException(Mock(status=403, reason="Forbidden"), "Missing Permissions")
        self.affordances.append((handle, list(labels)))

    async def retract(self, handle: Any) -> None:
        self.retracted.append(handle)

    @property
    def last_reply(self) -> Optional[str]:
        return self.replies[-1] if self.replies else None


class MockDiscordObjects:
    """Mock Discord objects for testing bot functionality."""

    @staticmethod
    def create_mock_member(user_id: int = 67890, bot: bool = False, system: bool = False,
                           name: str = "tester") -> Mock:
        member = Mock(spec=discord.Member)
        member.id = user_id
        member.bot = bot
        member.system = system
        member.name = name
        member.display_name = name
        return member

    @staticmethod
    def create_mock_channel(channel_id: int = 12345) -> Mock:
        """Create mock Discord channel."""
        channel = Mock(spec=discord.TextChannel)
        channel.id = channel_id
        channel.send = AsyncMock()
        return channel

    @staticmethod
    def create_mock_message(message_id: int = 11111, content: str = "%ping",
                            author: Optional[Mock] = None, channel: Optional[Mock] = None) -> Mock:
        """Create mock Discord message."""
        message = Mock(spec=discord.Message)
        message.id = message_id
        message.content = content
        message.author = author or MockDiscordObjects.create_mock_member()
        message.channel = channel or MockDiscordObjects.create_mock_channel()
        message.reply = AsyncMock()
        message.add_reaction = AsyncMock()
        message.delete = AsyncMock()
        return message

    @staticmethod
    def create_reaction_payload(message_id: int, user_id: int, emoji: str,
                                member: Optional[Mock] = None) -> Mock:
        """Create a raw reaction add/remove payload."""
        payload = Mock(spec=discord.RawReactionActionEvent)
        payload.message_id = message_id
        payload.user_id = user_id
        payload.member = member
        payload.emoji = discord.PartialEmoji(name=emoji)
        return payload


class AsyncTestHelpers:
    """Helper functions for async testing."""

    @staticmethod
    async def run_with_timeout(coro, timeout: float = 5.0):
        """Run coroutine with timeout."""
        return await asyncio.wait_for(coro, timeout=timeout)
