"""Generic utilities for the mentor bot."""

import os
import re
from typing import Optional

import pendulum

from mentorbot.errors import NegativeDurationError


SECS_IN_MIN = 60
SECS_IN_HOUR = SECS_IN_MIN * 60
SECS_IN_DAY = SECS_IN_HOUR * 24

DURATION_UNITS = (
    (re.compile(r"(\d+)\s*d"), SECS_IN_DAY),
    (re.compile(r"(\d+)\s*h"), SECS_IN_HOUR),
    (re.compile(r"(\d+)\s*m"), SECS_IN_MIN),
    (re.compile(r"(\d+)\s*s"), 1),
)

REPO_ROOT = os.path.join(os.path.dirname(os.path.realpath(__file__)), "..")


def parse_duration(expression: str) -> int:
    """Parses a duration like "1d12h" or "2h 30m" into seconds.
       Each of the d/h/m/s units counts once; unknown text is ignored.
    """
    expression = expression.strip()
    if expression.startswith("-"):
        raise NegativeDurationError(expression)
    seconds = 0
    for pattern, multiplier in DURATION_UNITS:
        match = pattern.search(expression)
        if match:
            seconds += int(match.group(1)) * multiplier
    return seconds


def threshold_from(expression: str) -> Optional[pendulum.DateTime]:
    """Returns the moment the duration expression reaches back to from now,
       or None if no duration was given at all.
    """
    if not expression.strip():
        return None
    return pendulum.now("UTC").subtract(seconds=parse_duration(expression))


def load_greeting(path: str) -> str:
    """Reads the new channel greeting text. Relative paths are resolved
       against the repository root.
    """
    if not os.path.isabs(path):
        path = os.path.join(REPO_ROOT, path)
    with open(file=path, mode="r", encoding="utf-8") as f_greeting:
        return f_greeting.read()
