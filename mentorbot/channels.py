"""Creating and renaming mentor channels."""

import logging

import discord

from mentorbot.categories import (allocate_or_extend, build_index,
                                  has_overwrite)
from mentorbot.errors import NotManaged, NotOwner, UnknownCategory
from mentorbot.ownership import is_managed


log = logging.getLogger(__name__)


def channel_name(owner: discord.Member, suffix: str) -> str:
    return f"{owner.display_name}-{suffix}"


def mentor_channel_overwrites(guild: discord.Guild, owner: discord.Member,
                              mentor_role: discord.Role):
    """Hidden from everyone but the owner and the mentors."""
    allowed = discord.PermissionOverwrite(view_channel=True,
                                          manage_messages=True,
                                          send_messages=True)
    return {
        guild.default_role: discord.PermissionOverwrite(view_channel=False),
        owner: allowed,
        mentor_role: allowed,
    }


async def create_mentor_channel(guild: discord.Guild, owner: discord.Member,
                                mentor_role: discord.Role, category_key: str,
                                suffix: str, cap: int,
                                marker_role_name: str) -> discord.TextChannel:
    """Creates a private channel for the owner in the first bin of the
       category_key pool that has room.
    """
    index = await build_index(guild, marker_role_name)
    if category_key not in index:
        raise UnknownCategory(category_key, index.keys())
    category = await allocate_or_extend(guild, category_key,
                                        index[category_key], cap,
                                        marker_role_name)
    log.info("Creating channel for %s in %s", owner.display_name,
             category.name)
    return await guild.create_text_channel(
        channel_name(owner, suffix),
        category=category,
        overwrites=mentor_channel_overwrites(guild, owner, mentor_role),
    )


async def rename_channel(guild: discord.Guild, channel: discord.TextChannel,
                         requester: discord.Member, category_key: str,
                         suffix: str, cap: int, marker_role_name: str):
    """Moves a mentor channel into the category_key pool and renames it
       after its owner.

       Only the channel's owner may do this. Nothing is changed unless
       every check passes.
    """
    index = await build_index(guild, marker_role_name)
    if not is_managed(channel, index):
        raise NotManaged(channel.name)
    if not has_overwrite(channel, requester.id):
        log.debug("Non owner requested rename of unauthorized channel. "
                  "%s, %s", requester.display_name, channel.name)
        raise NotOwner()
    if category_key not in index:
        raise UnknownCategory(category_key, index.keys())
    category = await allocate_or_extend(guild, category_key,
                                        index[category_key], cap,
                                        marker_role_name)
    await channel.edit(category=category,
                       name=channel_name(requester, suffix))
    return channel
