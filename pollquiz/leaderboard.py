"""
Process-lifetime win counts.
"""
import logging
from typing import Callable, Dict, List, Optional, Tuple

NameResolver = Callable[[str], str]


class LeaderboardService:
    """Tracks how many sessions each user has won."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._wins: Dict[str, int] = {}

    def increment(self, user_id: str) -> int:
        """Add one win for the user and return the new total."""
        wins = self._wins.get(user_id, 0) + 1
        self._wins[user_id] = wins
        self.logger.debug(f"User {user_id} now has {wins} wins")
        return wins

    def get_wins(self, user_id: str) -> int:
        return self._wins.get(user_id, 0)

    def snapshot(self, name_resolver: Optional[NameResolver] = None) -> List[Tuple[str, int]]:
        """
        Ranked view of the leaderboard.

        Args:
            name_resolver: Maps a user ID to a display name for tie-breaking

        Returns:
            (user ID, wins) pairs, most wins first, ties ordered by name
        """
        resolve = name_resolver or str
        names = {user_id: resolve(user_id) for user_id in self._wins}
        return sorted(
            self._wins.items(),
            key=lambda item: (-item[1], names[item[0]])
        )

    def __len__(self) -> int:
        return len(self._wins)
