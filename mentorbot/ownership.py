"""Finding mentor channels by their owner.

   A mentor channel's owner is whoever holds an explicit member permission
   overwrite on it. There is no separate registry.
"""

import discord

from mentorbot.categories import CategoryIndex, build_index, has_overwrite


# Listings are cut off here to keep replies under Discord's message limit.
RESULT_LIMIT = 50


def managed_channels(index: CategoryIndex):
    """Yields every child channel of every managed category, in index order.
    """
    for pool in index.values():
        for category in pool:
            yield from category.channels


def is_managed(channel: discord.abc.GuildChannel,
               index: CategoryIndex) -> bool:
    """Whether the channel's parent category is part of any pool."""
    return any(channel.category_id == category.id
               for pool in index.values() for category in pool)


def owned_in(index: CategoryIndex, user_id: int, limit=RESULT_LIMIT):
    """Managed channels from an already built index that have an overwrite
       keyed by this user id.
    """
    found = []
    for channel in managed_channels(index):
        if len(found) >= limit:
            break
        if has_overwrite(channel, user_id):
            found.append(channel)
    return found


async def find_owned(guild: discord.Guild, user_id: int,
                     marker_role_name: str, limit=RESULT_LIMIT):
    """Returns up to limit managed channels owned by this user id.

       Mentors looking up someone else pass that user's id; deciding which
       id to use is up to the caller.
    """
    return owned_in(await build_index(guild, marker_role_name), user_id,
                    limit)
