"""
Handlers for the quiz bot commands.
"""
import logging
from typing import List, Optional

from .dispatcher import Command, CommandContext, CommandDispatcher
from .fetcher import FetchError, QuestionFetcher
from .leaderboard import LeaderboardService, NameResolver
from .models import Question, QuestionSource, ValidationError
from .registry import QuestionRegistry
from .scheduler import SchedulerError, SessionScheduler
from .validator import QuestionValidator

PARSE_FAILED = "Could not parse questionnaire."
CREATE_SUCCESS = "Successfully set you as the host of this quiz!"
LEADERBOARD_EMPTY = "The leaderboards are currently empty!"
START_FAILED = "Could not start the quiz. Please try again."


class QuizCommands:
    """The create/start/leaderboard/ping command set."""

    def __init__(
        self,
        validator: QuestionValidator,
        registry: QuestionRegistry,
        scheduler: SessionScheduler,
        leaderboard: LeaderboardService,
        fetcher: QuestionFetcher,
        question_source: QuestionSource = QuestionSource.URL,
        name_resolver: Optional[NameResolver] = None,
        prefix: str = "%"
    ):
        self.logger = logging.getLogger(__name__)
        self.validator = validator
        self.registry = registry
        self.scheduler = scheduler
        self.leaderboard = leaderboard
        self.fetcher = fetcher
        self.question_source = question_source
        self.name_resolver = name_resolver or str
        self.prefix = prefix

    def register_all(self, dispatcher: CommandDispatcher) -> None:
        p = self.prefix
        if self.question_source is QuestionSource.TEXT:
            create_help = ("Set the given question as your active quiz. First line is the prompt, "
                           "one choice per following line, correct choice marked with `*`.",
                           f"{p}create <question>")
        else:
            create_help = ("Set the given URL as your active quiz. The URL should link to a valid JSON file.",
                           f"{p}create <url>")
        dispatcher.register(Command("create", create_help[0], create_help[1], self.handle_create))
        dispatcher.register(Command(
            "start",
            "Start your hosted quiz, or run the quiz at the given URL right away.",
            f"{p}start [url]",
            self.handle_start,
        ))
        dispatcher.register(Command("leaderboard", "Display the current leaderboard.",
                                    f"{p}leaderboard", self.handle_leaderboard))
        dispatcher.register(Command("ping", "Pong!", f"{p}ping", self.handle_ping))

    async def handle_create(self, context: CommandContext, args: List[str]) -> None:
        if self.question_source is QuestionSource.TEXT:
            raw = context.body
        else:
            if not args:
                await context.messenger.reply(f"Usage: `{self.prefix}create <url>`")
                return
            raw = await self._fetch(args[0])
            if raw is None:
                await context.messenger.reply(PARSE_FAILED)
                return

        result = self.validator.validate(raw)
        if isinstance(result, ValidationError):
            self.logger.info(f"Rejected question from user {context.author_id}: {result.message}")
            await context.messenger.reply(result.user_message)
            return

        self.registry.stage(context.author_id, result)
        await context.messenger.reply(CREATE_SUCCESS)

    async def handle_start(self, context: CommandContext, args: List[str]) -> None:
        if args:
            raw = await self._fetch(args[0])
            if raw is None:
                await context.messenger.reply(PARSE_FAILED)
                return
            result = self.validator.validate(raw)
            if isinstance(result, ValidationError):
                await context.messenger.reply(result.user_message)
                return
            question = result
        else:
            question = self.registry.take(context.author_id)
            if question is None:
                await context.messenger.reply(
                    f"You currently don't host a quiz! Create one with `{self.prefix}create <url>`."
                )
                return

        try:
            launched = await self._launch(context, question)
        except Exception:
            if not args:
                self._restage(context.author_id, question)
            raise
        if not launched and not args:
            self._restage(context.author_id, question)

    async def handle_leaderboard(self, context: CommandContext, args: List[str]) -> None:
        ranking = self.leaderboard.snapshot(self.name_resolver)
        if not ranking:
            await context.messenger.send(LEADERBOARD_EMPTY)
            return

        text = "\n".join(
            f"{position}. {self.name_resolver(user_id)} [{wins}]"
            for position, (user_id, wins) in enumerate(ranking, start=1)
        )
        await context.messenger.send(f"**Leaderboard:**\n{text}")

    async def handle_ping(self, context: CommandContext, args: List[str]) -> None:
        await context.messenger.reply("Pong!")

    async def _launch(self, context: CommandContext, question: Question) -> bool:
        try:
            session = await self.scheduler.launch(
                question, context.messenger, context.author_id, context.author_name
            )
        except SchedulerError as e:
            self.logger.error(f"Could not launch quiz for user {context.author_id}: {e}")
            await context.messenger.reply(START_FAILED)
            return False
        self.logger.info(
            f"User {context.author_id} started session {session.session_id}",
            extra={'event_type': 'session_launched', 'session_id': session.session_id,
                   'user_id': context.author_id}
        )
        return True

    def _restage(self, user_id: str, question: Question) -> None:
        # A question staged while the launch was in flight wins
        if user_id not in self.registry:
            self.registry.stage(user_id, question)
            self.logger.info(f"Restored staged question for user {user_id} after failed launch")

    async def _fetch(self, url: str):
        try:
            return await self.fetcher.fetch(url)
        except FetchError as e:
            self.logger.info(f"Could not fetch question from {url}: {e}")
            return None
