import discord
from discord.ext import commands
import logging
import os
from typing import Any, Dict, Iterable, Optional, Sequence

from .collector import VoteTracker
from .config_manager import ConfigManager
from .dispatcher import CommandContext, CommandDispatcher
from .fetcher import QuestionFetcher
from .handlers import QuizCommands
from .leaderboard import LeaderboardService
from .messaging import Messenger
from .models import PollAnnouncement, QuestionSource, choice_index
from .registry import QuestionRegistry
from .scheduler import SessionScheduler
from .validator import QuestionValidator

logger = logging.getLogger(__name__)

BRAND_COLOR = 0x236EA5
GENERIC_ERROR = "An error occurred while processing your command. Please try again."


class DiscordMessenger(Messenger):
    """Messenger bound to the Discord message that invoked a command."""

    def __init__(self, message: discord.Message):
        self.message = message

    async def broadcast(self, poll: PollAnnouncement) -> discord.Message:
        author = self.message.author
        embed = discord.Embed(
            title="Quiz Question",
            description=poll.question.description,
            color=BRAND_COLOR
        )
        embed.set_author(name=poll.host_name, icon_url=author.display_avatar.url)
        for label, choice in poll.fields:
            embed.add_field(name=label, value=choice, inline=False)
        embed.set_footer(text=f"Time Limit: {poll.question.time_limit:.1f} Seconds")
        return await self.message.channel.send(embed=embed)

    async def reply(self, content: str) -> None:
        await self.message.reply(content, mention_author=False)

    async def send(self, content: str, mentions: Iterable[str] = ()) -> None:
        allowed = discord.AllowedMentions(
            everyone=False,
            roles=False,
            users=[discord.Object(id=int(user_id)) for user_id in mentions]
        )
        await self.message.channel.send(content, allowed_mentions=allowed)

    async def add_option_affordances(self, handle: discord.Message, labels: Sequence[str]) -> None:
        for label in labels:
            await handle.add_reaction(label)

    async def retract(self, handle: discord.Message) -> None:
        await handle.delete()


class QuizBot(commands.Bot):
    """Discord bot that runs reaction-poll quizzes"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True
        intents.guild_messages = True
        intents.message_content = True  # Enable this in the Discord Developer Portal
        intents.guild_reactions = True

        self.app_config: Dict[str, Any] = config or {}
        command_prefix = self.app_config.get('bot', {}).get('command_prefix', '%')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None  # help is generated by the dispatcher
        )

        self.config_manager: Optional[ConfigManager] = None
        self.collector: Optional[VoteTracker] = None
        self.leaderboard: Optional[LeaderboardService] = None
        self.registry: Optional[QuestionRegistry] = None
        self.scheduler: Optional[SessionScheduler] = None
        self.fetcher: Optional[QuestionFetcher] = None
        self.dispatcher: Optional[CommandDispatcher] = None
        self.quiz_commands: Optional[QuizCommands] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")
            self.build_components()
            logger.info("Bot setup completed successfully")
        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def build_components(self) -> None:
        """Wire the quiz engine together from the current configuration."""
        self.config_manager = ConfigManager()
        if self.app_config:
            self.config_manager.apply_config(self.app_config)

        validation = self.config_manager.validate_settings()
        if not validation["valid"]:
            logger.warning(f"Configuration issues: {validation['issues']}")
        settings = self.config_manager.get_quiz_settings()
        logger.info(self.config_manager.get_settings_summary())

        self.collector = VoteTracker(settings.vote_mode)
        self.leaderboard = LeaderboardService()
        self.registry = QuestionRegistry()
        self.scheduler = SessionScheduler(self.collector, self.leaderboard)
        self.fetcher = QuestionFetcher(
            max_content_length=settings.max_content_length,
            trusted_urls_only=settings.trusted_urls_only
        )
        validator = QuestionValidator(
            settings.limits(),
            allow_text=settings.question_source is QuestionSource.TEXT
        )

        self.dispatcher = CommandDispatcher(settings.command_prefix)
        self.quiz_commands = QuizCommands(
            validator,
            self.registry,
            self.scheduler,
            self.leaderboard,
            self.fetcher,
            question_source=settings.question_source,
            name_resolver=self.resolve_name,
            prefix=settings.command_prefix
        )
        self.quiz_commands.register_all(self.dispatcher)

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")
        print(f"🤖 {self.user} is Ready and Online!")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def on_message(self, message: discord.Message):
        """Route prefixed messages to the command dispatcher"""
        if message.author.bot or self.dispatcher is None:
            return

        parsed = self.dispatcher.parse(message.content)
        if parsed is None:
            return
        name, args, body = parsed
        command = self.dispatcher.resolve(name)
        if command is None:
            return  # Ignore unknown commands

        messenger = DiscordMessenger(message)
        context = CommandContext(
            author_id=str(message.author.id),
            author_name=message.author.display_name,
            messenger=messenger,
            body=body
        )
        try:
            await command.execute(context, args)
        except Exception as e:
            logger.error(f"Command error in {name}: {e}", exc_info=True)
            try:
                await messenger.reply(GENERIC_ERROR)
            except discord.HTTPException:
                logger.error("Failed to send error response to user")

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        choice = self._resolve_vote(payload)
        if choice is not None:
            self.collector.record(str(payload.message_id), str(payload.user_id), choice)

    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent):
        choice = self._resolve_vote(payload)
        if choice is not None:
            self.collector.revoke(str(payload.message_id), str(payload.user_id), choice)

    async def on_raw_reaction_clear(self, payload: discord.RawReactionClearEvent):
        if self.collector is not None:
            self.collector.clear(str(payload.message_id))

    async def on_raw_reaction_clear_emoji(self, payload: discord.RawReactionClearEmojiEvent):
        choice = self._choice_for(str(payload.message_id), payload.emoji)
        if choice is not None:
            self.collector.clear_choice(str(payload.message_id), choice)

    def resolve_name(self, user_id: str) -> str:
        """Display name for leaderboard rows, falling back to the raw ID."""
        user = self.get_user(int(user_id))
        return user.name if user is not None else user_id

    def _resolve_vote(self, payload: discord.RawReactionActionEvent) -> Optional[int]:
        if self._is_automated(payload):
            return None
        return self._choice_for(str(payload.message_id), payload.emoji)

    def _choice_for(self, session_id: str, emoji: discord.PartialEmoji) -> Optional[int]:
        if self.scheduler is None:
            return None
        session = self.scheduler.get_session(session_id)
        if session is None:
            return None
        return choice_index(emoji.name, len(session.question.choices))

    def _is_automated(self, payload: discord.RawReactionActionEvent) -> bool:
        """Whether a reaction came from this bot, another bot or a system account."""
        if self.user is not None and payload.user_id == self.user.id:
            return True
        user = payload.member or self.get_user(payload.user_id)
        if user is None:
            return False
        return user.bot or user.system

    async def close(self):
        if self.scheduler is not None:
            await self.scheduler.shutdown()
        if self.fetcher is not None:
            await self.fetcher.close()
        await super().close()



async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    # Fall back to environment variable if no token provided
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting Discord Quiz Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
