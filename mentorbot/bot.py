#!/usr/bin/env python3

"""Discord bot for managing private mentor channels.

   Usage:
     Commands:
       Commands are prefixed with a character defined by the config value
       "MENTORBOT_CMD_PREFIX", by default "!", so the command find becomes
       "!find" in the Discord chat, and so on. See the mentorbot.commands
       module for the full list, or use "!help".

     Config values:
       The config values have been documented as comments in the
       cfg/config.yml file itself.
"""

# MIT License
#
# Copyright (c) 2022- the Mentor Bot collaborators
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import logging

import discord

from mentorbot import commands
from mentorbot.config import cfg
from mentorbot.context import GuildCommandContext, build_context
from mentorbot.errors import (MentorBotError, NotManaged,
                              TransientPlatformError)


assert discord.version_info.major == 2

SCRIPT_NAME = "Mentor Bot for Discord"
SCRIPT_VERSION = "1.0.0"

BANNED_PREFIXES = cfg("MENTORBOT_BANNED_PREFIXES")
assert cfg("MENTORBOT_CMD_PREFIX") not in BANNED_PREFIXES, \
    "Requested command prefix is disallowed"

THINKING = "🤔"
DONE = "💯"
UNKNOWN = "👎"
FAILED = "🤯"

log = logging.getLogger(__name__)


async def on_message(msg):
    """Turns a chat message into a command context and runs the command.
       Messages from other bots, in DMs, or for other bots' prefixes are
       ignored.
    """
    # Testing for the banned prefixes first, because they usually share
    # their first character with our own prefix.
    if any(msg.content.startswith(ban) for ban in BANNED_PREFIXES):
        return
    ctx = build_context(msg, cfg("MENTORBOT_CMD_PREFIX"))
    if not isinstance(ctx, GuildCommandContext):
        return
    await handle(ctx)


async def handle(ctx: GuildCommandContext):
    """Runs one command to completion, reporting the outcome with a reply
       and a reaction on the command message.
    """
    log.info("processing %s from %s in %s", ctx.command,
             ctx.author.display_name, ctx.channel.name)
    handler = commands.handler_for(ctx.command)
    if handler is None:
        await ctx.send("Unrecognized command! try "
                       f"{cfg('MENTORBOT_CMD_PREFIX')}help for a list of "
                       "commands")
        await ctx.message.add_reaction(UNKNOWN)
        return

    await ctx.message.add_reaction(THINKING)
    try:
        try:
            reply = await commands.run(handler, ctx)
        except NotManaged as err:
            # Not our channel, so keep quiet about it.
            log.debug("%s", err)
            reply = None
        except TransientPlatformError as err:
            log.error("Error handling command %s: %s", ctx.command,
                      err.detail, exc_info=err)
            await ctx.message.add_reaction(FAILED)
            await ctx.send(str(err))
            return
        except MentorBotError as err:
            reply = str(err)
        except Exception:
            await ctx.message.add_reaction(FAILED)
            raise
        if reply:
            await ctx.send(reply)
        await ctx.message.add_reaction(DONE)
    finally:
        await ctx.message.remove_reaction(THINKING, ctx.guild.me)
    log.debug("finished processing %s from %s", ctx.command,
              ctx.author.display_name)


def create_bot() -> discord.Client:
    """Returns a new client with the event handlers attached."""
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True  # for the !commands
    intents.message_content = True  # for the !commands
    intents.guild_reactions = True
    # Overwrite targets and channel.members are resolved from the member
    # cache, so it has to be populated.
    intents.members = True
    client = discord.Client(intents=intents)

    @client.event
    async def on_ready():
        log.info("Logged in as %s!", client.user)

    client.event(on_message)
    return client


def main():
    logging.basicConfig(
        level=cfg("MENTORBOT_LOG_LEVEL").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print(f"Now running {SCRIPT_NAME} v.{SCRIPT_VERSION}", flush=True)
    client = create_bot()
    if cfg("MENTORBOT_DEBUG"):
        print(f"Intents ({client.intents}):")
        for intent, enabled in iter(client.intents):
            if enabled:
                print(f"* {intent}")
    client.run(cfg("MENTORBOT_SECRET_TOKEN"))


if __name__ == "__main__":
    main()
