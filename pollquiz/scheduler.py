"""
Session scheduler for the poll quiz bot.
Drives each session from broadcast through vote collection to resolution.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .collector import VoteTracker
from .leaderboard import LeaderboardService
from .messaging import Messenger
from .models import PollAnnouncement, Question, QuizSession, SessionResult, SessionState

logger = logging.getLogger(__name__)


class SchedulerError(Exception):
    """Base exception for session scheduler errors."""
    pass


class SessionConflictError(SchedulerError):
    """Raised when a session ID is already in use by an open session."""
    pass


class SessionNotFoundError(SchedulerError):
    """Raised when operating on a session that is not running."""
    pass


class SessionLifecycleLogger:
    """Structured logging for session lifecycle events."""

    @staticmethod
    def log_state_transition(session_id: str, from_state: SessionState, to_state: SessionState,
                             reason: str = None) -> None:
        logger.info(
            f"Session lifecycle: STATE_TRANSITION - Session {session_id}, "
            f"{from_state.value} -> {to_state.value}" + (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'session_state_transition',
                'session_id': session_id,
                'from_state': from_state.value,
                'to_state': to_state.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_started(session_id: str, duration: float) -> None:
        logger.info(
            f"Session lifecycle: COUNTDOWN_START - Session {session_id}, Duration {duration:g}s",
            extra={
                'event_type': 'session_countdown_start',
                'session_id': session_id,
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_resolved(session_id: str, winners: int, voters: int) -> None:
        logger.info(
            f"Session lifecycle: RESOLVED - Session {session_id}, {winners}/{voters} voters correct",
            extra={
                'event_type': 'session_resolved',
                'session_id': session_id,
                'winners': winners,
                'voters': voters,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_error(session_id: str, error_type: str, error_message: str, operation: str) -> None:
        logger.error(
            f"Session lifecycle: ERROR - Session {session_id}, Operation {operation}, "
            f"Type {error_type}: {error_message}",
            extra={
                'event_type': 'session_error',
                'session_id': session_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class SessionTimer:
    """Single-shot countdown for one session."""

    def __init__(self, session_id: str):
        self._session_id = session_id
        self._task: Optional[asyncio.Task] = None
        self._is_cancelled = False

    def start(self, duration: float, completion_callback: Callable[[], Awaitable[Any]]) -> None:
        """
        Schedule the completion callback to run once after ``duration`` seconds.

        Args:
            duration: Countdown length in seconds
            completion_callback: Awaited when the countdown elapses, unless cancelled
        """
        if self._task is not None:
            raise SchedulerError(f"Timer for session {self._session_id} already started")
        self._task = asyncio.create_task(self._run(duration, completion_callback))
        SessionLifecycleLogger.log_timer_started(self._session_id, duration)

    async def _run(self, duration: float, completion_callback: Callable[[], Awaitable[Any]]) -> None:
        try:
            await asyncio.sleep(duration)
        except asyncio.CancelledError:
            self._is_cancelled = True
            logger.debug(f"Countdown cancelled for session {self._session_id}")
            raise
        if not self._is_cancelled:
            await completion_callback()

    def cancel(self) -> None:
        """Stop the countdown. From inside the callback this only marks the timer."""
        self._is_cancelled = True
        if self._task and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the countdown (and its callback) to finish."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def is_done(self) -> bool:
        return self._task is not None and self._task.done()


class SessionScheduler:
    """
    Runs quiz sessions concurrently, one timer per session.

    The vote tracker and leaderboard are shared by every session; sessions
    never touch each other's keys.
    """

    def __init__(self, collector: VoteTracker, leaderboard: LeaderboardService):
        self.logger = logging.getLogger(__name__)
        self.collector = collector
        self.leaderboard = leaderboard
        self._sessions: Dict[str, QuizSession] = {}
        self._timers: Dict[str, SessionTimer] = {}
        self._messengers: Dict[str, Messenger] = {}

    async def launch(self, question: Question, messenger: Messenger, host_id: str,
                     host_name: str) -> QuizSession:
        """
        Broadcast a question and start collecting votes for it.

        Args:
            question: Validated question to run
            messenger: Messaging collaborator for the invoking channel
            host_id: ID of the user who launched the quiz
            host_name: Display name shown on the poll

        Returns:
            The session, in COLLECTING state

        Raises:
            SessionConflictError: If the broadcast ID belongs to an open session
        """
        handle = await messenger.broadcast(PollAnnouncement(question, host_name))
        session_id = str(handle.id)

        if session_id in self._sessions or self.collector.is_open(session_id):
            SessionLifecycleLogger.log_error(session_id, "SessionConflictError",
                                             "broadcast ID already in use", "launch")
            await self._retract(messenger, handle, session_id)
            raise SessionConflictError(f"Session {session_id} is already running")

        session = QuizSession(session_id=session_id, question=question, host_id=host_id)
        self._set_state(session, SessionState.OPEN, "poll broadcast")
        self.collector.begin(session_id)
        self._sessions[session_id] = session
        self._messengers[session_id] = messenger

        try:
            await messenger.add_option_affordances(handle, question.labels)
        except Exception as e:
            SessionLifecycleLogger.log_error(session_id, type(e).__name__, str(e), "add_option_affordances")
            self.collector.end(session_id)
            self._discard(session_id)
            self._set_state(session, SessionState.CLOSED, "could not seed choices")
            await self._retract(messenger, handle, session_id)
            raise

        timer = SessionTimer(session_id)
        self._timers[session_id] = timer
        self._set_state(session, SessionState.COLLECTING, "choices seeded")
        timer.start(question.time_limit, lambda: self.resolve(session_id))
        return session

    async def resolve(self, session_id: str) -> Optional[SessionResult]:
        """
        Close voting for a session, record winners and announce the result.

        Returns:
            The result, or None if the session is not collecting
        """
        session = self._sessions.get(session_id)
        if session is None or session.state is not SessionState.COLLECTING:
            return None

        # No await between draining the votes and updating the leaderboard
        self._set_state(session, SessionState.RESOLVING, "voting closed")
        timer = self._timers.get(session_id)
        if timer is not None:
            timer.cancel()
        votes = self.collector.end(session_id) or {}
        winners = self.compute_winners(session.question, votes)
        for winner in winners:
            self.leaderboard.increment(winner)
        result = SessionResult(session_id, session.question, winners, len(votes))
        SessionLifecycleLogger.log_resolved(session_id, len(winners), len(votes))

        messenger = self._messengers.get(session_id)
        try:
            if messenger is not None:
                await messenger.send(self.format_results(result, messenger), mentions=winners)
        except Exception as e:
            SessionLifecycleLogger.log_error(session_id, type(e).__name__, str(e), "announce_results")
        finally:
            self._discard(session_id)
            self._set_state(session, SessionState.CLOSED, "results announced")

        return result

    @staticmethod
    def compute_winners(question: Question, votes: Dict[str, List[int]]) -> List[str]:
        """Voters whose first recorded choice is the correct one, in voting order."""
        return [
            voter_id for voter_id, choices in votes.items()
            if choices and choices[0] == question.answer_index
        ]

    @staticmethod
    def format_results(result: SessionResult, messenger: Optional[Messenger] = None) -> str:
        question = result.question
        header = f"**Time's up! The correct answer is {question.answer_label} {question.answer}.**"
        if not result.winners:
            return f"{header} Nobody answered correctly..."
        mention = (messenger or Messenger()).mention
        winners = " ".join(mention(user_id) for user_id in result.winners)
        return f"{header} Congratulations to {winners}!"

    def get_session(self, session_id: str) -> Optional[QuizSession]:
        return self._sessions.get(session_id)

    def get_session_state(self, session_id: str) -> SessionState:
        """Current state, or CLOSED for sessions that are not running."""
        session = self._sessions.get(session_id)
        return session.state if session is not None else SessionState.CLOSED

    def active_session_count(self) -> int:
        return len(self._sessions)

    async def wait_for(self, session_id: str) -> None:
        """Wait until a running session has resolved."""
        timer = self._timers.get(session_id)
        if timer is None:
            raise SessionNotFoundError(f"Session {session_id} is not running")
        await timer.wait()

    async def shutdown(self) -> None:
        """Cancel every outstanding countdown without tallying."""
        timers = list(self._timers.items())
        for session_id, timer in timers:
            timer.cancel()
            self.collector.end(session_id)
        for _, timer in timers:
            await timer.wait()
        for session_id in list(self._sessions):
            session = self._sessions[session_id]
            self._discard(session_id)
            self._set_state(session, SessionState.CLOSED, "scheduler shutdown")
        self.logger.info(f"Scheduler shut down, {len(timers)} countdowns cancelled")

    def _discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._timers.pop(session_id, None)
        self._messengers.pop(session_id, None)

    async def _retract(self, messenger: Messenger, handle: Any, session_id: str) -> None:
        try:
            await messenger.retract(handle)
        except Exception as e:
            SessionLifecycleLogger.log_error(session_id, type(e).__name__, str(e), "retract")

    @staticmethod
    def _set_state(session: QuizSession, state: SessionState, reason: str) -> None:
        SessionLifecycleLogger.log_state_transition(session.session_id, session.state, state, reason)
        session.state = state
