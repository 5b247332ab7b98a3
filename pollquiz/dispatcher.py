"""
Command registry for prefix-invoked bot commands.
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .messaging import Messenger


@dataclass
class CommandContext:
    """Who invoked a command, and how to answer them."""
    author_id: str
    author_name: str
    messenger: Messenger
    body: str = ""  # raw text after the command name, newlines intact


Handler = Callable[[CommandContext, List[str]], Awaitable[Any]]


@dataclass
class Command:
    name: str
    description: str
    usage: str
    execute: Handler


class CommandDispatcher:
    """Maps command names to handlers and synthesizes ``help`` from them."""

    HELP_NAME = "help"

    def __init__(self, prefix: str = "%"):
        self.logger = logging.getLogger(__name__)
        self.prefix = prefix
        self._commands: Dict[str, Command] = {}

    def register(self, command: Command) -> None:
        if command.name == self.HELP_NAME:
            raise ValueError("'help' is generated from the registry and cannot be registered")
        if command.name in self._commands:
            self.logger.warning(f"Command '{command.name}' re-registered, replacing previous handler")
        self._commands[command.name] = command

    def resolve(self, name: str) -> Optional[Command]:
        """Look up a command by name; ``help`` is always available."""
        if name == self.HELP_NAME:
            return self._help_command()
        return self._commands.get(name)

    def commands(self) -> List[Command]:
        return list(self._commands.values())

    def parse(self, content: str) -> Optional[Tuple[str, List[str], str]]:
        """
        Split a message into command name, whitespace-separated args and raw body.

        Returns:
            (name, args, body), or None if the message is not a command
        """
        if not content.startswith(self.prefix):
            return None
        invocation = content[len(self.prefix):]
        parts = invocation.split(maxsplit=1)
        if not parts:
            return None
        name = parts[0].lower()
        body = parts[1] if len(parts) > 1 else ""
        return name, body.split(), body

    def help_text(self) -> str:
        lines = [f"`{command.usage}` - {command.description}" for command in self.commands()]
        lines.append(f"`{self.prefix}{self.HELP_NAME}` - Display this help message.")
        return "**Available commands:**\n" + "\n".join(lines)

    def _help_command(self) -> Command:
        async def execute(context: CommandContext, args: List[str]) -> None:
            await context.messenger.reply(self.help_text())

        return Command(
            name=self.HELP_NAME,
            description="Display this help message.",
            usage=f"{self.prefix}{self.HELP_NAME}",
            execute=execute,
        )
