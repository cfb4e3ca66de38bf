"""
Shared pytest fixtures for the TAS Builder test suite.
No fixture reaches a real model provider.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import os
import sys

_tests_dir = os.path.dirname(__file__)
_root_dir = os.path.join(_tests_dir, "..")
for _p in (_tests_dir, _root_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

import pytest

from factories import StubLLMClient, make_intake, make_plan, make_plan_dict

from tas_builder.agents.prompts import load_system_prompt


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def intake():
    return make_intake()


@pytest.fixture
def plan_dict():
    return make_plan_dict()


@pytest.fixture
def plan():
    return make_plan()


@pytest.fixture
def system_prompt():
    return load_system_prompt()


@pytest.fixture
def stub_client():
    return StubLLMClient()
