"""Managed category pools: discovery, allocation, and extension.

   A managed category is any category carrying a permission overwrite for the
   marker role (MENTORBOT_CATEGORY_ROLE). Categories are pooled by the first
   word of their name, so "Modern 1" and "Modern 2" are both bins of the
   "modern" pool. New mentor channels go to the first bin with room, and a
   new numbered bin is created when every bin is full.

   Nothing here is cached; all state is re-read from the guild on each call.
   Two concurrent allocations can therefore both see the last free slot of a
   bin and overshoot its capacity by one. The capacity is a soft limit, so
   this is accepted rather than serialized.
"""

import logging
from typing import Optional, Sequence

import discord

from mentorbot.errors import PoolExhausted, RoleNotFound


log = logging.getLogger(__name__)

# Highest bin number extend_category() will ever create.
MAX_BIN_NUMBER = 10

CategoryIndex = dict[str, list[discord.CategoryChannel]]


async def find_role(guild: discord.Guild, role_name: str) -> discord.Role:
    """Fetches the guild's roles from Discord and returns the one with this
       exact name. Raises RoleNotFound if there is no such role.
    """
    role = discord.utils.get(await guild.fetch_roles(), name=role_name)
    if role is None:
        raise RoleNotFound(role_name)
    return role


def pool_key(name: str) -> str:
    """Pool key for a category name: its first word, lowercased."""
    return name.split(" ")[0].lower()


def has_overwrite(channel, target_id: int) -> bool:
    """Whether the channel has an explicit permission overwrite for this
       role or member id.
    """
    return any(target.id == target_id for target in channel.overwrites)


async def build_index(guild: discord.Guild,
                      marker_role_name: str) -> CategoryIndex:
    """Returns the managed categories of this guild, grouped by pool key.

       Pools keep the order in which the guild lists its categories. Discord
       sorts those by position, but positions can be shuffled between two
       calls by anyone with manage channels permission.
    """
    marker = await find_role(guild, marker_role_name)
    index: CategoryIndex = {}
    for category in guild.categories:
        if not has_overwrite(category, marker.id):
            continue
        index.setdefault(pool_key(category.name), []).append(category)
    return index


def allocate(pool: Sequence[discord.CategoryChannel],
             cap: int) -> Optional[discord.CategoryChannel]:
    """Returns the first bin of the pool holding fewer than cap channels,
       or None if every bin is full.
    """
    for category in pool:
        if len(category.channels) < cap:
            return category
    return None


async def extend_category(guild: discord.Guild, prefix: str,
                          marker_role_name: str
                          ) -> Optional[discord.CategoryChannel]:
    """Creates the next numbered bin "<prefix> <n>" right after the highest
       existing one, and marks it as managed.

       Returns None, creating nothing, if there is no "<prefix> 1" to extend
       from, or if the next number would go past MAX_BIN_NUMBER.
    """
    log.info("Extending %s", prefix)
    marker = await find_role(guild, marker_role_name)

    def bin_named(number):
        wanted = f"{prefix} {number}".lower()
        return discord.utils.find(lambda c: c.name.lower() == wanted,
                                  guild.categories)

    counter = 1
    found = bin_named(counter)
    if found is None:
        return None
    last_found = found
    while found is not None:
        last_found = found
        counter += 1
        found = bin_named(counter)
        if counter > MAX_BIN_NUMBER:
            log.warning("Refusing to extend %s past %d bins", prefix,
                        MAX_BIN_NUMBER)
            return None
    return await guild.create_category(
        f"{prefix} {counter}",
        overwrites={marker: discord.PermissionOverwrite()},
        position=last_found.position + 1,
    )


async def allocate_or_extend(guild: discord.Guild, prefix: str,
                             pool: Sequence[discord.CategoryChannel],
                             cap: int,
                             marker_role_name: str) -> discord.CategoryChannel:
    """Picks a bin with room from the pool, extending the pool if needed.
       Raises PoolExhausted when neither works.
    """
    category = allocate(pool, cap)
    if category is None:
        category = await extend_category(guild, prefix, marker_role_name)
    if category is None:
        raise PoolExhausted(prefix)
    return category
