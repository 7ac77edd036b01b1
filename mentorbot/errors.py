"""Exceptions raised by the mentor bot commands.

   The string form of each exception is the reply shown to the requester,
   except for NotManaged, which is only ever logged.
"""

from typing import Iterable


class MentorBotError(Exception):
    """Base class for all the bot's own errors."""


class RoleNotFound(MentorBotError):
    """A role the command needs does not exist on the server."""
    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Server has no {role_name} role!")


class UnknownCategory(MentorBotError):
    """Requested category key does not name any managed pool."""
    def __init__(self, key: str, valid_keys: Iterable[str]):
        self.key = key
        self.valid_keys = list(valid_keys)
        quoted = ", ".join(f'"{k}"' for k in self.valid_keys)
        super().__init__(f"Unrecognized category! Recognized categories: "
                         f"{quoted}")


class PoolExhausted(MentorBotError):
    """Every bin of a pool is full, and no new bin could be created."""
    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__(f"Out of room for {prefix}! Ask someone to make "
                         "more!")


class OverCapacity(MentorBotError):
    """Requester already owns more channels than allowed."""
    def __init__(self, owned: Iterable[str], limit: int):
        self.owned = list(owned)
        self.limit = limit
        super().__init__("You are at capacity!\n"
                         f"Found: {' '.join(self.owned)}")


class NotOwner(MentorBotError):
    """Requester holds no permission overwrite on the channel."""
    def __init__(self):
        super().__init__("Only channel owners may use this command")


class NotManaged(MentorBotError):
    """Channel is not inside a managed category. Logged, never replied."""
    def __init__(self, channel_name: str):
        self.channel_name = channel_name
        super().__init__(f"Channel not in a managed category: {channel_name}")


class NegativeDurationError(MentorBotError, ValueError):
    """Duration expression started with a minus sign."""
    def __init__(self, expression: str):
        self.expression = expression
        super().__init__(f"Negative times aren't allowed! {expression}")


class BadArguments(MentorBotError):
    """Command was called with the wrong arguments; message is a usage hint.
    """


class TransientPlatformError(MentorBotError):
    """A Discord API call failed (network, permissions, rate limit...)."""
    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__("Something went wrong while talking to Discord, "
                         "please try again later.")
