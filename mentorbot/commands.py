"""Bot command handlers.

   Every handler takes a GuildCommandContext and returns the text to reply
   with, or None for no reply. Failures the requester should hear about are
   raised as MentorBotError subclasses, whose message is the reply.

   Commands:
     - init                — Check the bot's permissions and create any
                             missing roles.
     - <mentor role>       — "!mentor <category> <nation>": create your own
                             private mentor channel.
     - rename              — "!rename <category> <nation>": move and rename
                             the mentor channel the command is sent in.
     - find                — List your mentor channels. Mentors can mention
                             a user to list theirs instead.
     - stales              — [Mentors] List channels only mentors can see,
                             and with a duration, eg. "!stales 1d12h", the
                             channels idle for at least that long.
     - findstudents        — [Mentors] List channels where no mentor wrote
                             any of the last five messages.
     - bulkapplystudenttag — Give the student role to every student in the
                             mentor channels.
     - drn                 — "!drn 12 vs 14": odds of an opposed 2DRN check.
     - loveme / leaveme    — Add or remove the sub role.
     - blitzme / protectme — Add or remove the blitz role.
     - help                — List the commands.
"""

import logging

import discord

from mentorbot import drn as drn_stats
from mentorbot.categories import build_index, find_role
from mentorbot.census import (find_unanswered, has_role, scan_stales,
                              students_in)
from mentorbot.channels import create_mentor_channel, rename_channel
from mentorbot.config import cfg
from mentorbot.errors import (BadArguments, OverCapacity,
                              TransientPlatformError)
from mentorbot.ownership import find_owned
from mentorbot.util import load_greeting, threshold_from


log = logging.getLogger(__name__)

# What the bot needs to manage the mentor channels and roles.
REQUIRED_PERMISSIONS = discord.Permissions(
    manage_channels=True,
    add_reactions=True,
    view_audit_log=True,
    view_channel=True,
    send_messages=True,
    read_message_history=True,
    manage_roles=True,
)

COMMANDS = {}


def command(name):
    """Registers the decorated coroutine as the handler of a command."""
    def register(func):
        COMMANDS[name] = func
        return func
    return register


def mentor_command() -> str:
    """The channel creation command is named after the mentor role."""
    return cfg("MENTORBOT_MENTOR_ROLE").lower()


def handler_for(name: str):
    """Returns the handler for a lowercased command name, or None."""
    if name == mentor_command():
        return create_channel
    return COMMANDS.get(name)


async def run(handler, ctx):
    """Runs a handler, turning Discord API failures into our own error type.
    """
    try:
        return await handler(ctx)
    except discord.HTTPException as err:
        raise TransientPlatformError(str(err)) from err


def is_mentor(member) -> bool:
    return discord.utils.get(member.roles,
                             name=cfg("MENTORBOT_MENTOR_ROLE")) is not None


@command("init")
async def init_guild(ctx):
    """Creates whichever of the bot's roles are still missing."""
    have = ctx.guild.me.guild_permissions
    if not REQUIRED_PERMISSIONS <= have:
        missing = [name for name, value in REQUIRED_PERMISSIONS
                   if value and not getattr(have, name)]
        return "Missing permissions!\n" + "\n".join(missing)

    log.info("Initializing %s", ctx.guild.name)
    roles = await ctx.guild.fetch_roles()
    changed = False
    for config_key, label in (("MENTORBOT_STUDENT_ROLE", "student"),
                              ("MENTORBOT_MENTOR_ROLE", "mentor"),
                              ("MENTORBOT_SUB_ROLE", "sub"),
                              ("MENTORBOT_BLITZ_ROLE", "blitz"),
                              ("MENTORBOT_CATEGORY_ROLE", "mentor channel")):
        role_name = cfg(config_key)
        if discord.utils.get(roles, name=role_name) is not None:
            continue
        role = await ctx.guild.create_role(
            name=role_name, mentionable=False,
            permissions=discord.Permissions.none())
        await ctx.send(f"Created {role.mention} as {label} role")
        changed = True
        if config_key == "MENTORBOT_MENTOR_ROLE":
            await ctx.guild.me.add_roles(role)

    if changed:
        log.info("Initialized %s", ctx.guild.name)
        return f"Initialized {ctx.guild.name}"
    if is_mentor(ctx.author):
        return "Already initialized"
    return None


async def create_channel(ctx):
    """Creates a mentor channel for the requester."""
    marker_role_name = cfg("MENTORBOT_CATEGORY_ROLE")
    limit = cfg("MENTORBOT_CHANNELS_PER_STUDENT")
    owned = await find_owned(ctx.guild, ctx.author.id, marker_role_name)
    if len(owned) > limit:
        raise OverCapacity([c.mention for c in owned], limit)

    mentor_role = await find_role(ctx.guild, cfg("MENTORBOT_MENTOR_ROLE"))
    student_role = await find_role(ctx.guild, cfg("MENTORBOT_STUDENT_ROLE"))
    if len(ctx.args) < 2:
        raise BadArguments(
            "Please format the request in "
            f"`{cfg('MENTORBOT_CMD_PREFIX')}{mentor_command()} "
            "<CATEGORY> <NATION>`")

    channel = await create_mentor_channel(
        ctx.guild, ctx.author, mentor_role,
        category_key=ctx.args[0].lower(),
        suffix="".join(ctx.args[1:]),
        cap=cfg("MENTORBOT_CATEGORY_CAPACITY"),
        marker_role_name=marker_role_name)
    await ctx.author.add_roles(student_role)
    await ctx.send(f"Created {channel.mention}")
    greeting = load_greeting(cfg("MENTORBOT_GREETING_FILE"))
    if greeting.strip():
        await channel.send(greeting.replace("@name", ctx.author.mention))
    return None


@command("rename")
async def rename(ctx):
    """Moves and renames the mentor channel this was sent in."""
    if len(ctx.args) < 2:
        raise BadArguments(
            "Please format the request in "
            f"`{cfg('MENTORBOT_CMD_PREFIX')}rename <NEW_CATEGORY> "
            "<NEW_NATION>`")
    channel = await rename_channel(
        ctx.guild, ctx.channel, ctx.author,
        category_key=ctx.args[0].lower(),
        suffix="".join(ctx.args[1:]),
        cap=cfg("MENTORBOT_CATEGORY_CAPACITY"),
        marker_role_name=cfg("MENTORBOT_CATEGORY_ROLE"))
    return f"Renamed to {channel.mention}"


@command("find")
async def find(ctx):
    """Lists the requester's mentor channels, or a mentioned user's ones if
       the requester is a mentor.
    """
    user_id = ctx.author.id
    if ctx.mentioned is not None and is_mentor(ctx.author):
        user_id = ctx.mentioned.id
    owned = await find_owned(ctx.guild, user_id,
                             cfg("MENTORBOT_CATEGORY_ROLE"))
    return f"Found: {' '.join(c.mention for c in owned)}"


@command("stales")
async def stales(ctx):
    """Mentor command for listing the mentor channels nobody is using."""
    role = await find_role(ctx.guild, cfg("MENTORBOT_MENTOR_ROLE"))
    if not has_role(ctx.author, role):
        return None

    threshold = threshold_from(ctx.arg_text)
    log.info("Looking for stale channels, idle threshold: %s", threshold)
    index = await build_index(ctx.guild, cfg("MENTORBOT_CATEGORY_ROLE"))
    report = await scan_stales(index, role, ctx.guild.me.id, threshold)

    replies = []
    if report.privileged_only:
        replies.append(f"Only {role.name}:\n"
                       + "\n".join(report.privileged_only))
    if report.idle:
        replies.append(f"Idle since {threshold.format('YYYY-MM-DD HH:mm')}:\n"
                       + "\n".join(report.idle))
    if not replies:
        return "No stale channels found"
    for reply in replies[:-1]:
        await ctx.send(reply)
    return replies[-1]


@command("findstudents")
async def findstudents(ctx):
    """Mentor command for listing channels still waiting for a mentor."""
    role = await find_role(ctx.guild, cfg("MENTORBOT_MENTOR_ROLE"))
    if not has_role(ctx.author, role):
        return None
    index = await build_index(ctx.guild, cfg("MENTORBOT_CATEGORY_ROLE"))
    found = await find_unanswered(index, role, ctx.guild.me)
    return f"Found {len(found)} channels\n" + "\n".join(found)


@command("bulkapplystudenttag")
async def bulkapplystudenttag(ctx):
    """Gives the student role to everyone in a mentor channel who isn't a
       mentor, for channels created before the role existed.
    """
    mentor_role = await find_role(ctx.guild, cfg("MENTORBOT_MENTOR_ROLE"))
    student_role = await find_role(ctx.guild, cfg("MENTORBOT_STUDENT_ROLE"))
    index = await build_index(ctx.guild, cfg("MENTORBOT_CATEGORY_ROLE"))
    changes = 0
    for student in students_in(index, mentor_role, ctx.guild.me.id):
        if has_role(student, student_role):
            continue
        try:
            await student.add_roles(student_role)
        except discord.HTTPException as err:
            log.error("Could not give %s the %s role: %s", student,
                      student_role.name, err)
            continue
        changes += 1
    return f"Added {student_role.mention} to {changes} users"


@command("drn")
async def drn(ctx):
    matchup = drn_stats.parse_matchup(ctx.arg_text)
    if matchup is None:
        raise BadArguments("Unrecognized input")
    return drn_stats.report(drn_stats.simulate(*matchup))


async def toggle_role(ctx, config_key: str, add: bool, already: str,
                      done: str):
    role_name = cfg(config_key)
    role = await find_role(ctx.guild, role_name)
    if has_role(ctx.author, role) == add:
        return already.format(role=role_name)
    if add:
        await ctx.author.add_roles(role)
    else:
        await ctx.author.remove_roles(role)
    return done.format(role=role_name)


@command("loveme")
async def loveme(ctx):
    return await toggle_role(
        ctx, "MENTORBOT_SUB_ROLE", add=True,
        already=("Looks like I already love you as much as I can! I can only "
                 "love you more if you don't have the {role} role!"),
        done="Now I love you the maximum amount! Thank you for being a "
             "{role}")


@command("leaveme")
async def leaveme(ctx):
    return await toggle_role(
        ctx, "MENTORBOT_SUB_ROLE", add=False,
        already=("Looks like you've already left me! You can only leave me "
                 "to my sorrows if you have the {role} role!"),
        done="You have left me! I'll try to remember the time when you were "
             "a {role}")


@command("blitzme")
async def blitzme(ctx):
    return await toggle_role(
        ctx, "MENTORBOT_BLITZ_ROLE", add=True,
        already=("Looks like I already blitz you as much as I can! I can "
                 "only blitz you more if you don't have the {role} role!"),
        done="Now I blitz you the maximum amount! Thank you for being a "
             "{role}")


@command("protectme")
async def protectme(ctx):
    return await toggle_role(
        ctx, "MENTORBOT_BLITZ_ROLE", add=False,
        already=("Looks like you don't want to be blitzed! You can only "
                 "renounce being blitzed if you have the {role} role!"),
        done="You have activated a NAP3! I can no longer blitz you... I'll "
             "try to remember the time when you were a {role}")


@command("help")
async def help_text(ctx):
    prefix = cfg("MENTORBOT_CMD_PREFIX")
    mentor = mentor_command()
    mentor_role = cfg("MENTORBOT_MENTOR_ROLE")
    sub_role = cfg("MENTORBOT_SUB_ROLE")
    blitz_role = cfg("MENTORBOT_BLITZ_ROLE")
    lines = [
        "Commands",
        "```",
        f"{prefix}{mentor} <category> <nation> -- create a {mentor} channel "
        "for yourself",
        f"{prefix}rename <category> <nation> -- rename your {mentor} channel "
        f"(must be done within your {mentor} channel)",
        f"{prefix}drn <number_A> vs <number_B> -- generate stats for an "
        "opposed 2drn vs 2drn check - gives the success probability of A "
        "beating B by one or more",
        f"{prefix}find -- find your channel",
        f"{prefix}loveMe causes me to love you more (Gives you the "
        f"{sub_role} role)",
        f"{prefix}leaveMe because you don't love me anymore (Removes the "
        f"{sub_role} role)",
        f"{prefix}blitzMe causes me to blitz you more (Gives you the "
        f"{blitz_role} role)",
        f"{prefix}protectMe because you don't want to be a Blitzer anymore "
        f"(Removes the {blitz_role} role)",
    ]
    if is_mentor(ctx.author):
        lines += [
            f"[{mentor_role} only] {prefix}findStudents -- find {mentor} "
            "channel(s) where a mentor hasn't talked in the last five "
            "messages",
            f"[{mentor_role} only] {prefix}find <@user> -- find {mentor} "
            "channel(s) for a user",
            f"[{mentor_role} only] {prefix}stales <optional time: 1d> -- "
            "limit 50 channels",
        ]
    lines.append("```")
    return "\n".join(lines)
