import os
import sys

import pytest

sys.path.insert(
    0,
    os.path.join(os.path.dirname(os.path.realpath(__file__)), "..")
)

from fakes import FakeGuild, FakeMember, FakeRole


@pytest.fixture
def marker():
    return FakeRole("Teaching Channel")


@pytest.fixture
def mentor_role():
    return FakeRole("Mentor")


@pytest.fixture
def student_role():
    return FakeRole("Student")


@pytest.fixture
def guild(marker, mentor_role, student_role):
    return FakeGuild(roles=[marker, mentor_role, student_role,
                            FakeRole("BELOVED SUBS"), FakeRole("Blitzer")])


@pytest.fixture
def student():
    return FakeMember("Alice")


@pytest.fixture
def mentor(mentor_role):
    return FakeMember("Morgan", roles=[mentor_role])
