"""Module for reading the config preferences.

   Preferences are primarily read from the corresponding system environment
   variables, and from the cfg/config.yml config file as a fallback.
   Note that the type of the config values is enforced by the YAML schema.
"""

from ast import literal_eval
import os
import inspect

from strictyaml import (as_document, load, Bool, EmptyList, Int, Map, Seq,
                        Str)


class PredicatedInt(Int):
    """StrictYAML Int validator, with optional predicates."""
    def __init__(self, predicates=None):
        self.predicates = predicates if predicates is not None else []

    def validate_scalar(self, chunk):
        val = super().validate_scalar(chunk)
        for pred in self.predicates:
            if not pred(val):
                chunk.expecting_but_found(str(inspect.getsourcelines(pred)[0]))
        return val


# The schema used for StrictYAML parsing.
YAML_CFG_SCHEMA = {
    "MENTORBOT_SECRET_TOKEN": Str(),
    "MENTORBOT_CMD_PREFIX": Str(),
    "MENTORBOT_BANNED_PREFIXES": Seq(Str()) | EmptyList(),
    "MENTORBOT_STUDENT_ROLE": Str(),
    "MENTORBOT_MENTOR_ROLE": Str(),
    "MENTORBOT_SUB_ROLE": Str(),
    "MENTORBOT_BLITZ_ROLE": Str(),
    "MENTORBOT_CATEGORY_ROLE": Str(),
    "MENTORBOT_CHANNELS_PER_STUDENT": PredicatedInt([lambda x: x > 0]),
    "MENTORBOT_CATEGORY_CAPACITY": PredicatedInt([lambda x: x > 0]),
    "MENTORBOT_GREETING_FILE": Str(),
    "MENTORBOT_LOG_LEVEL": Str(),
    "MENTORBOT_DEBUG": Bool(),
}
CFG_PATH = os.path.join(os.path.dirname(os.path.realpath(__file__)),
                        "..", "cfg", "config.yml")
assert os.path.isfile(CFG_PATH)
with open(file=CFG_PATH, mode="r", encoding="utf-8") as f_config:
    CFG = load(f_config.read(), Map(YAML_CFG_SCHEMA))
assert CFG is not None


def cfg(key):
    """Returns a bot config value from environment variable or config file,
       in that order. If using an env var, its format has to match the type
       determined by the config values' StrictYAML schema. Plain strings are
       taken as-is, everything else is parsed as a Python literal first.
    """
    assert isinstance(key, str)
    if os.environ.get(key):
        expected_ret_type = YAML_CFG_SCHEMA[key]
        raw = os.environ.get(key)
        value = (raw if isinstance(expected_ret_type, Str)
                 else literal_eval(raw))
        # Small placeholder schema used for validating just this type.
        # We don't want to use the main schema because then we'd need
        # to populate it entirely, even though we're only interested
        # in returning this particular var.
        mini_schema = {key: expected_ret_type}
        return as_document({key: value}, Map(mini_schema))[key].data
    return CFG[key].data
