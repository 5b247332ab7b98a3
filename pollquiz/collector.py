"""
Vote collection for running quiz sessions.

Maps a session ID to the choices each voter has signalled while the session
is open. Events for sessions that are not open are ignored, which makes late
or duplicated reaction events harmless.
"""
import logging
from typing import Dict, List, Optional

from .models import VoteMode

# voter ID -> insertion-ordered set of choices (dict keys keep order)
VoterChoices = Dict[str, Dict[int, None]]


class VoteTracker:
    """
    Accumulates votes per session.

    In ACCUMULATE mode a voter may hold several choices at once and the first
    one recorded is the one that counts. In REPLACE mode a voter holds a
    single choice and each new vote overwrites it.
    """

    def __init__(self, mode: VoteMode = VoteMode.ACCUMULATE):
        self.logger = logging.getLogger(__name__)
        self.mode = mode
        self._sessions: Dict[str, VoterChoices] = {}

    def begin(self, session_id: str) -> None:
        """Start collecting for a session. Existing state for the ID is discarded."""
        if session_id in self._sessions:
            self.logger.warning(
                f"Collection restarted for session {session_id}, previous votes discarded",
                extra={'event_type': 'collection_restarted', 'session_id': session_id}
            )
        self._sessions[session_id] = {}

    def is_open(self, session_id: str) -> bool:
        return session_id in self._sessions

    def open_sessions(self) -> List[str]:
        return list(self._sessions)

    def record(self, session_id: str, voter_id: str, choice: int) -> bool:
        """
        Record a vote.

        Returns:
            True if the vote changed the session state, False otherwise
        """
        votes = self._sessions.get(session_id)
        if votes is None:
            return False

        choices = votes.get(voter_id)
        if choices is None:
            votes[voter_id] = {choice: None}
            return True

        if self.mode is VoteMode.REPLACE:
            if list(choices) == [choice]:
                return False
            votes[voter_id] = {choice: None}
            return True

        if choice in choices:
            return False
        choices[choice] = None
        return True

    def revoke(self, session_id: str, voter_id: str, choice: int) -> bool:
        """Withdraw one choice; voters left with no choices are dropped."""
        votes = self._sessions.get(session_id)
        if votes is None:
            return False

        choices = votes.get(voter_id)
        if choices is None or choice not in choices:
            return False

        del choices[choice]
        if not choices:
            del votes[voter_id]
        return True

    def clear(self, session_id: str) -> None:
        """Drop every vote in a session while keeping it open."""
        if session_id in self._sessions:
            self._sessions[session_id] = {}

    def clear_choice(self, session_id: str, choice: int) -> None:
        """Remove one choice from every voter in the session."""
        votes = self._sessions.get(session_id)
        if votes is None:
            return

        for voter_id in list(votes):
            choices = votes[voter_id]
            choices.pop(choice, None)
            if not choices:
                del votes[voter_id]

    def snapshot(self, session_id: str) -> Optional[Dict[str, List[int]]]:
        """Copy of the current votes without closing the session."""
        votes = self._sessions.get(session_id)
        if votes is None:
            return None
        return {voter_id: list(choices) for voter_id, choices in votes.items()}

    def end(self, session_id: str) -> Optional[Dict[str, List[int]]]:
        """
        Stop collecting and hand back the final votes.

        Returns:
            Voter ID -> choices in the order they were recorded, or None if
            the session was not open
        """
        votes = self._sessions.pop(session_id, None)
        if votes is None:
            return None

        self.logger.debug(
            f"Collection ended for session {session_id} with {len(votes)} voters",
            extra={'event_type': 'collection_ended', 'session_id': session_id, 'voters': len(votes)}
        )
        return {voter_id: list(choices) for voter_id, choices in votes.items()}
