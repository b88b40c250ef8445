"""Pytest configuration and fixtures for reactgraph tests."""

import pytest

from reactgraph.adapters.checkpointer import InMemoryCheckpointer
from reactgraph.common.schemas import Message, Role, ToolCall
from reactgraph.core.state import State
from reactgraph.core.tools import ToolRegistry

WEATHER = "It's 60 degrees and foggy."


class ScriptedModel:
    """Model stub replaying a fixed list of replies and recording its inputs."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[State] = []

    async def __call__(self, state: State) -> Message:
        self.calls.append(state)
        if not self.replies:
            raise AssertionError("ScriptedModel ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class WeatherModel:
    """Deterministic model: searches once per user turn, then answers.

    Tool call ids depend only on the log length, so two runs over the same
    input produce identical logs.
    """

    def __init__(self):
        self.calls = 0

    async def __call__(self, state: State) -> Message:
        self.calls += 1
        last = state.last_message
        if last is not None and last.role == Role.USER:
            return Message.assistant(
                tool_calls=[
                    ToolCall(
                        id=f"call_{len(state.messages)}",
                        name="search",
                        arguments={"query": "sf weather"},
                    )
                ]
            )
        return Message.assistant(content=last.content if last else "")


@pytest.fixture
def registry():
    """Registry holding a single ``search`` tool."""
    registry = ToolRegistry()

    @registry.tool
    async def search(query: str) -> str:
        """Search the web."""
        return WEATHER

    return registry


@pytest.fixture
def checkpointer():
    return InMemoryCheckpointer()


@pytest.fixture
def weather_model():
    return WeatherModel()


@pytest.fixture
def scripted_model():
    """Factory for ScriptedModel instances."""
    return ScriptedModel


@pytest.fixture
def search_call():
    return ToolCall(id="call_1", name="search", arguments={"query": "sf weather"})
