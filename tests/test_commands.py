from datetime import datetime, timedelta, timezone

import discord
import pytest

from fakes import (FakeGuild, FakeMember, FakeMessage, FakeRole,
                   FakeTextChannel, fill, http_error)
from mentorbot import commands
from mentorbot.context import GuildCommandContext
from mentorbot.errors import (BadArguments, NegativeDurationError,
                              OverCapacity, RoleNotFound,
                              TransientPlatformError)


def make_ctx(guild, author, command, args=(), channel=None, mentioned=None):
    channel = channel or FakeTextChannel("bot-commands")
    content = " ".join(["!" + command] + list(args))
    message = FakeMessage(author, content=content, guild=guild,
                          channel=channel)
    return GuildCommandContext(message=message, guild=guild, author=author,
                               channel=channel, command=command,
                               args=list(args), mentioned=mentioned)


def own(member, category, count):
    return fill(category, count, owner=member).channels[-count:]


def test_handler_lookup():
    assert commands.handler_for("mentor") is commands.create_channel
    assert commands.handler_for("find") is commands.find
    assert commands.handler_for("nope") is None


@pytest.mark.asyncio
async def test_run_wraps_discord_errors(guild, student):
    async def failing(_ctx):
        raise http_error()

    with pytest.raises(TransientPlatformError) as err:
        await commands.run(failing, make_ctx(guild, student, "find"))
    assert isinstance(err.value.__cause__, discord.HTTPException)


class TestCreateChannel:
    @pytest.mark.asyncio
    async def test_over_capacity_before_role_checks(self, marker, student):
        guild = FakeGuild(roles=[marker])
        owned = own(student, guild.add_category("Modern 1", managed_by=marker),
                    6)

        with pytest.raises(OverCapacity) as err:
            await commands.create_channel(make_ctx(guild, student, "mentor"))

        assert all(c.mention in str(err.value) for c in owned)
        assert guild.created_channels == []

    @pytest.mark.asyncio
    async def test_at_limit_may_still_create(self, guild, marker, student):
        modern = guild.add_category("Modern 1", managed_by=marker)
        own(student, modern, 5)

        await commands.create_channel(
            make_ctx(guild, student, "mentor", ["modern", "Ulm"]))

        assert len(guild.created_channels) == 1

    @pytest.mark.asyncio
    async def test_creates_channel_and_greets(self, guild, marker, student,
                                              student_role):
        guild.add_category("Modern 1", managed_by=marker)
        ctx = make_ctx(guild, student, "mentor", ["Modern", "Pan", "Ulm"])

        reply = await commands.create_channel(ctx)

        channel, = guild.created_channels
        assert reply is None
        assert channel.name == "Alice-PanUlm"
        assert ctx.channel.sent == [f"Created {channel.mention}"]
        assert student.mention in channel.sent[0]
        assert "@name" not in channel.sent[0]
        assert student_role in student.roles

    @pytest.mark.asyncio
    async def test_needs_category_and_nation(self, guild, marker, student):
        guild.add_category("Modern 1", managed_by=marker)
        with pytest.raises(BadArguments) as err:
            await commands.create_channel(
                make_ctx(guild, student, "mentor", ["modern"]))
        assert "!mentor <CATEGORY> <NATION>" in str(err.value)

    @pytest.mark.asyncio
    async def test_missing_mentor_role(self, marker, student):
        guild = FakeGuild(roles=[marker, FakeRole("Student")])
        guild.add_category("Modern 1", managed_by=marker)
        with pytest.raises(RoleNotFound):
            await commands.create_channel(
                make_ctx(guild, student, "mentor", ["modern", "Ulm"]))
        assert guild.created_channels == []

    @pytest.mark.asyncio
    async def test_missing_marker_role_is_reported(self, student):
        guild = FakeGuild(roles=[FakeRole("Mentor"), FakeRole("Student")])
        with pytest.raises(RoleNotFound) as err:
            await commands.create_channel(
                make_ctx(guild, student, "mentor", ["modern"]))
        assert str(err.value) == "Server has no Teaching Channel role!"


@pytest.mark.asyncio
async def test_rename_replies_with_channel(guild, marker, student):
    modern = guild.add_category("Modern 1", managed_by=marker)
    channel, = own(student, modern, 1)

    reply = await commands.rename(
        make_ctx(guild, student, "rename", ["modern", "Ermor"],
                 channel=channel))

    assert reply == f"Renamed to {channel.mention}"
    assert channel.name == "Alice-Ermor"


@pytest.mark.asyncio
async def test_rename_needs_arguments(guild, student):
    with pytest.raises(BadArguments):
        await commands.rename(make_ctx(guild, student, "rename", ["modern"]))


class TestFind:
    @pytest.mark.asyncio
    async def test_own_channels(self, guild, marker, student):
        mine = own(student, guild.add_category("Modern 1", managed_by=marker),
                   2)
        reply = await commands.find(make_ctx(guild, student, "find"))
        assert reply == f"Found: {mine[0].mention} {mine[1].mention}"

    @pytest.mark.asyncio
    async def test_mentor_can_look_up_others(self, guild, marker, student,
                                             mentor):
        theirs = own(student,
                     guild.add_category("Modern 1", managed_by=marker), 1)
        reply = await commands.find(
            make_ctx(guild, mentor, "find", [student.mention],
                     mentioned=student))
        assert reply == f"Found: {theirs[0].mention}"

    @pytest.mark.asyncio
    async def test_students_only_see_their_own(self, guild, marker, student):
        other = FakeMember("Bob")
        own(other, guild.add_category("Modern 1", managed_by=marker), 1)
        reply = await commands.find(
            make_ctx(guild, student, "find", [other.mention],
                     mentioned=other))
        assert reply == "Found: "


class TestStales:
    @pytest.mark.asyncio
    async def test_mentors_only(self, guild, marker, student):
        FakeTextChannel("empty",
                        category=guild.add_category("Modern 1",
                                                    managed_by=marker))
        assert await commands.stales(make_ctx(guild, student, "stales")) \
            is None

    @pytest.mark.asyncio
    async def test_reports_both_kinds(self, guild, marker, student, mentor):
        modern = guild.add_category("Modern 1", managed_by=marker)
        lonely = FakeTextChannel("lonely", category=modern, members=[mentor])
        old = datetime.now(timezone.utc) - timedelta(days=3)
        idle = FakeTextChannel(
            "idle", category=modern, members=[student, mentor],
            messages=[FakeMessage(student, created_at=old)])
        ctx = make_ctx(guild, mentor, "stales", ["1d", "12h"])

        reply = await commands.stales(ctx)

        assert ctx.channel.sent == [f"Only Mentor:\n{lonely.mention}"]
        assert reply.startswith("Idle since ")
        assert reply.endswith(f":\n{idle.mention}")

    @pytest.mark.asyncio
    async def test_nothing_stale(self, guild, marker, student, mentor):
        modern = guild.add_category("Modern 1", managed_by=marker)
        FakeTextChannel("active", category=modern, members=[student, mentor],
                        messages=[FakeMessage(student)])
        reply = await commands.stales(make_ctx(guild, mentor, "stales",
                                               ["2h"]))
        assert reply == "No stale channels found"

    @pytest.mark.asyncio
    async def test_negative_duration(self, guild, marker, mentor):
        with pytest.raises(NegativeDurationError):
            await commands.stales(make_ctx(guild, mentor, "stales", ["-1d"]))


@pytest.mark.asyncio
async def test_findstudents(guild, marker, student, mentor):
    modern = guild.add_category("Modern 1", managed_by=marker)
    waiting = FakeTextChannel("waiting", category=modern,
                              messages=[FakeMessage(student)])
    FakeTextChannel("answered", category=modern,
                    messages=[FakeMessage(mentor)])

    assert await commands.findstudents(
        make_ctx(guild, student, "findstudents")) is None
    reply = await commands.findstudents(
        make_ctx(guild, mentor, "findstudents"))
    assert reply == f"Found 1 channels\n{waiting.mention}"


@pytest.mark.asyncio
async def test_bulkapplystudenttag(guild, marker, student, mentor,
                                   student_role):
    veteran = FakeMember("Vera", roles=[student_role])
    newcomer = FakeMember("Ned")
    modern = guild.add_category("Modern 1", managed_by=marker)
    FakeTextChannel("a", category=modern,
                    members=[guild.me, mentor, student, veteran])
    FakeTextChannel("b", category=modern, members=[student, newcomer])

    reply = await commands.bulkapplystudenttag(
        make_ctx(guild, mentor, "bulkapplystudenttag"))

    assert reply == f"Added {student_role.mention} to 2 users"
    assert student_role in student.roles
    assert student_role in newcomer.roles
    assert student_role not in mentor.roles


@pytest.mark.asyncio
async def test_bulkapplystudenttag_continues_past_failures(
        guild, marker, mentor, student_role, mocker):
    first = FakeMember("Ann")
    banned = FakeMember("Ben")
    last = FakeMember("Cat")
    mocker.patch.object(banned, "add_roles", side_effect=http_error(403))
    FakeTextChannel("a", category=guild.add_category("Modern 1",
                                                      managed_by=marker),
                    members=[mentor, first, banned, last])

    reply = await commands.bulkapplystudenttag(
        make_ctx(guild, mentor, "bulkapplystudenttag"))

    assert reply == f"Added {student_role.mention} to 2 users"
    assert student_role in first.roles
    assert student_role in last.roles
    assert student_role not in banned.roles


class TestInit:
    @pytest.mark.asyncio
    async def test_reports_missing_permissions(self, student):
        permissions = discord.Permissions(commands.REQUIRED_PERMISSIONS.value)
        permissions.manage_roles = False
        guild = FakeGuild(me=FakeMember("MentorBot", bot=True,
                                        permissions=permissions))

        reply = await commands.init_guild(make_ctx(guild, student, "init"))

        assert reply.startswith("Missing permissions!")
        assert "manage_roles" in reply
        assert guild.created_roles == []

    @pytest.mark.asyncio
    async def test_creates_missing_roles(self, student):
        guild = FakeGuild(roles=[FakeRole("Student"), FakeRole("Blitzer")])
        ctx = make_ctx(guild, student, "init")

        reply = await commands.init_guild(ctx)

        names = [role.name for role in guild.created_roles]
        assert names == ["Mentor", "BELOVED SUBS", "Teaching Channel"]
        assert guild.created_roles[0] in guild.me.roles
        assert len(ctx.channel.sent) == 3
        assert reply == f"Initialized {guild.name}"

    @pytest.mark.asyncio
    async def test_already_initialized(self, guild, student, mentor):
        assert await commands.init_guild(make_ctx(guild, mentor, "init")) \
            == "Already initialized"
        assert await commands.init_guild(make_ctx(guild, student, "init")) \
            is None
        assert guild.created_roles == []


class TestRoleToggles:
    @pytest.mark.asyncio
    async def test_loveme_and_leaveme(self, guild, student):
        sub = discord.utils.get(guild.roles, name="BELOVED SUBS")

        reply = await commands.loveme(make_ctx(guild, student, "loveme"))
        assert sub in student.roles
        assert reply.startswith("Now I love you")

        reply = await commands.loveme(make_ctx(guild, student, "loveme"))
        assert reply.startswith("Looks like I already love you")
        assert student.roles.count(sub) == 1

        reply = await commands.leaveme(make_ctx(guild, student, "leaveme"))
        assert sub not in student.roles
        assert reply.startswith("You have left me!")

    @pytest.mark.asyncio
    async def test_protectme_without_role(self, guild, student):
        reply = await commands.protectme(make_ctx(guild, student,
                                                  "protectme"))
        assert "renounce being blitzed" in reply

    @pytest.mark.asyncio
    async def test_blitzme(self, guild, student):
        reply = await commands.blitzme(make_ctx(guild, student, "blitzme"))
        assert "Blitzer" in reply
        assert any(role.name == "Blitzer" for role in student.roles)

    @pytest.mark.asyncio
    async def test_missing_role(self, student):
        with pytest.raises(RoleNotFound):
            await commands.loveme(make_ctx(FakeGuild(), student, "loveme"))


@pytest.mark.asyncio
async def test_drn(guild, student):
    reply = await commands.drn(make_ctx(guild, student, "drn",
                                        ["12", "vs", "14"]))
    assert reply.startswith("```")
    with pytest.raises(BadArguments):
        await commands.drn(make_ctx(guild, student, "drn", ["twelve"]))


@pytest.mark.asyncio
async def test_help_shows_mentor_commands_to_mentors(guild, student, mentor):
    student_help = await commands.help_text(make_ctx(guild, student, "help"))
    mentor_help = await commands.help_text(make_ctx(guild, mentor, "help"))
    assert "!mentor <category> <nation>" in student_help
    assert "[Mentor only]" not in student_help
    assert "[Mentor only] !stales" in mentor_help
