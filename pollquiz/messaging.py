"""
Messaging interface used by the session engine.

The engine never talks to the chat platform directly; it calls these methods
on whatever Messenger the command layer hands it.
"""
from typing import Any, Iterable, Sequence

from .models import PollAnnouncement


class Messenger:
    """Outbound operations for one command invocation."""

    async def broadcast(self, poll: PollAnnouncement) -> Any:
        """Post a poll and return a handle whose ``id`` identifies the session."""
        raise NotImplementedError

    async def reply(self, content: str) -> None:
        """Reply to the user who issued the command."""
        raise NotImplementedError

    async def send(self, content: str, mentions: Iterable[str] = ()) -> None:
        """Post to the command's channel, allowing pings for ``mentions``."""
        raise NotImplementedError

    async def add_option_affordances(self, handle: Any, labels: Sequence[str]) -> None:
        """Seed the poll with one reaction per choice label."""
        raise NotImplementedError

    async def retract(self, handle: Any) -> None:
        """Remove a poll that will never be resolved."""
        raise NotImplementedError

    def mention(self, user_id: str) -> str:
        """Inline reference to a user that pings them when sent."""
        return f"<@{user_id}>"
