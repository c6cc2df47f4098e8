"""Slash command detection for explicit workout logging."""

import re
from dataclasses import dataclass

WORKOUT_SLASH_COMMANDS = ("log-workout", "log", "workout")

_SLASH_COMMAND = re.compile(r"^/([\w-]+)\s*(.*)$", re.DOTALL)


@dataclass(frozen=True)
class SlashCommand:
    """Parsed slash command.

    Attributes:
        command: Lowercased command name without the leading slash
        content: Remaining message text
    """

    command: str
    content: str

    @property
    def is_workout_command(self) -> bool:
        return self.command in WORKOUT_SLASH_COMMANDS


def parse_slash_command(message: str) -> SlashCommand | None:
    """Parse ``/command content`` messages.

    Examples:
        >>> parse_slash_command("/log-workout Fran in 8:57")
        SlashCommand(command='log-workout', content='Fran in 8:57')
        >>> parse_slash_command("just finished my workout") is None
        True
    """
    if not message:
        return None

    match = _SLASH_COMMAND.match(message.strip())
    if match is None:
        return None

    command, content = match.groups()
    return SlashCommand(command=command.lower(), content=content.strip())
