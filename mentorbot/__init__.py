"""
Discord bot for managing private mentor channels.
Built for a Dominions mentoring community, but works for any server that
hands out one private channel per student.

Usage:
 Prefix commands (prefix set by the config value MENTORBOT_CMD_PREFIX):
   - init                 — Check the bot's permissions and create any
                            missing roles.

   - mentor               — Create a private mentor channel for yourself.
                            The command is named after the config value
                            MENTORBOT_MENTOR_ROLE, eg. "!mentor modern Ulm".

   - rename               — Move and rename your mentor channel.

   - find                 — List your mentor channels.

   - stales               — List channels only mentors are in, or idle ones.

   - findstudents         — List channels waiting for a mentor reply.

   - bulkapplystudenttag  — Give the student role to all students.

   - drn                  — Odds of an opposed 2DRN check.

   - loveme, leaveme, blitzme, protectme — Toggle the opt-in roles.

 Config values:
   The config values have been documented as comments in the cfg/config.yml
   file itself.

:license: MIT License; please see the LICENSE file for info.
"""

__title__ = "Mentor Bot for Discord"
__license__ = "MIT"
__version__ = "1.0.0"
