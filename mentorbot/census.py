"""Scans over every managed channel: stale channels, unanswered students,
   and the student members of mentor channels.

   Each scan keeps going when a single channel's history can't be fetched;
   the failure is logged and that channel is left out of the result.
"""

from dataclasses import dataclass, field
import logging
from typing import Optional

import discord

from mentorbot.categories import CategoryIndex
from mentorbot.ownership import RESULT_LIMIT, managed_channels


log = logging.getLogger(__name__)

# Channel types that keep a message history we can read. Voice channels
# have a text chat of their own.
HISTORY_CHANNEL_TYPES = (discord.ChannelType.text, discord.ChannelType.news,
                         discord.ChannelType.voice)

# How many recent messages findstudents looks at for a mentor reply.
RECENT_MESSAGES = 5


@dataclass
class StaleReport:
    """Result of a stale channel scan, as lists of channel mentions."""
    privileged_only: list = field(default_factory=list)
    idle: list = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.privileged_only and not self.idle


def has_role(member, role: discord.Role) -> bool:
    # Authors who already left the guild come back as a User, without roles.
    return any(r.id == role.id for r in getattr(member, "roles", ()))


def only_privileged(channel, privileged_role: discord.Role,
                    bot_id: int) -> bool:
    """Whether everyone who can see the channel, apart from the bot itself,
       holds the privileged role. True for a channel with nobody else in it.
    """
    return all(has_role(member, privileged_role) for member in channel.members
               if member.id != bot_id)


async def latest_message(channel) -> Optional[discord.Message]:
    async for message in channel.history(limit=1):
        return message
    return None


async def scan_stales(index: CategoryIndex, privileged_role: discord.Role,
                      bot_id: int,
                      threshold=None) -> StaleReport:
    """Classifies managed channels as privileged-only, or idle since the
       threshold datetime. Without a threshold, only the privileged-only
       check runs.
    """
    report = StaleReport()
    for channel in managed_channels(index):
        if only_privileged(channel, privileged_role, bot_id):
            report.privileged_only.append(channel.mention)
            continue
        if threshold is None or channel.type not in HISTORY_CHANNEL_TYPES:
            continue
        try:
            message = await latest_message(channel)
        except discord.HTTPException as err:
            log.error("Failed to fetch latest message of %s: %s",
                      channel.name, err)
            continue
        if message is None or message.created_at < threshold:
            report.idle.append(channel.mention)
    report.privileged_only = report.privileged_only[:RESULT_LIMIT]
    report.idle = report.idle[:RESULT_LIMIT]
    return report


async def find_unanswered(index: CategoryIndex, privileged_role: discord.Role,
                          me: discord.Member, limit=RESULT_LIMIT):
    """Returns mentions of managed channels where nobody holding the
       privileged role wrote any of the last few messages.
       Channels the bot can't see are skipped.
    """
    found = []
    for channel in managed_channels(index):
        if len(found) >= limit:
            break
        if not channel.permissions_for(me).view_channel:
            continue
        if channel.type not in HISTORY_CHANNEL_TYPES:
            continue
        try:
            answered = False
            async for message in channel.history(limit=RECENT_MESSAGES):
                if has_role(message.author, privileged_role):
                    answered = True
                    break
        except discord.HTTPException as err:
            log.error("Error fetching channel messages %s: %s", channel.name,
                      err)
            continue
        if not answered:
            found.append(channel.mention)
    return found


def students_in(index: CategoryIndex, privileged_role: discord.Role,
                bot_id: int):
    """Returns each distinct non-privileged member of any managed channel,
       in order of first appearance.
    """
    students = {}
    for channel in managed_channels(index):
        for member in channel.members:
            if member.id == bot_id or has_role(member, privileged_role):
                continue
            students.setdefault(member.id, member)
    return list(students.values())
