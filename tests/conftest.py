"""Shared pytest fixtures."""

import pytest

from helpers import EchoTool, FakeImageTool, RecordingSummarizer, ScriptedProvider
from troll.agent import Agent
from troll.store import InMemoryStore


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def summarizer():
    return RecordingSummarizer()


@pytest.fixture
def echo_tool():
    return EchoTool()


@pytest.fixture
def image_tool():
    return FakeImageTool()


@pytest.fixture
def make_agent(store, summarizer, echo_tool, image_tool):
    def factory(replies, **kwargs):
        provider = ScriptedProvider(replies, repeat_last=kwargs.pop("repeat_last", False))
        kwargs.setdefault("tools", [echo_tool, image_tool])
        agent = Agent(provider=provider, store=store, summarizer=summarizer, **kwargs)
        return agent, provider
    return factory
