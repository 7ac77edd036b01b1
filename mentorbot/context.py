"""Command contexts, built once from an incoming message by the router."""

from dataclasses import dataclass
from typing import Optional, Union

import discord


@dataclass(frozen=True)
class GuildCommandContext:
    """A command sent on a server channel."""
    message: discord.Message
    guild: discord.Guild
    author: discord.Member
    channel: discord.abc.GuildChannel
    command: str
    args: list
    mentioned: Optional[discord.abc.User] = None

    @property
    def arg_text(self) -> str:
        return " ".join(self.args)

    async def send(self, text: str):
        return await self.channel.send(text)


@dataclass(frozen=True)
class DirectMessageContext:
    """A command sent in a DM. None of the commands work there."""
    message: discord.Message
    author: discord.abc.User
    command: str
    args: list


CommandContext = Union[GuildCommandContext, DirectMessageContext]


def parse_command(content: str, prefix: str):
    """Splits "<prefix>name arg1 arg2" into ("name", ["arg1", "arg2"]).
       The command name is lowercased, arguments are left as they are.
    """
    parts = content[len(prefix):].split()
    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


def build_context(message: discord.Message,
                  prefix: str) -> Optional[CommandContext]:
    """Returns the context for a command message, or None if the message
       isn't a command for us.
    """
    if message.author.bot or not message.content.startswith(prefix):
        return None
    command, args = parse_command(message.content, prefix)
    if message.guild is None:
        return DirectMessageContext(message=message, author=message.author,
                                    command=command, args=args)
    return GuildCommandContext(
        message=message,
        guild=message.guild,
        author=message.author,
        channel=message.channel,
        command=command,
        args=args,
        mentioned=message.mentions[0] if message.mentions else None,
    )
