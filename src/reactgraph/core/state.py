"""Immutable execution state threaded through the graph."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

from reactgraph.common.errors import StateConflictError
from reactgraph.common.schemas import Message, Role


def _freeze(values: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(values))


# Copied on validation and exposed read-only, so no two states share a dict.
FrozenValues = Annotated[
    Mapping[str, Any],
    AfterValidator(_freeze),
    PlainSerializer(dict, return_type=dict[str, Any]),
]


class StateUpdate(BaseModel):
    """Partial update produced by a node.

    ``messages`` are appended to the log; ``values`` overwrite auxiliary fields
    key by key.
    """

    model_config = ConfigDict(frozen=True)

    messages: tuple[Message, ...] = Field(default=(), description="Messages to append")
    values: FrozenValues = Field(
        default_factory=dict,
        validate_default=True,
        description="Auxiliary fields to overwrite",
    )

    @property
    def is_empty(self) -> bool:
        return not self.messages and not self.values

    @classmethod
    def coerce(cls, update: Any, current: State | None = None) -> StateUpdate:
        """Normalize anything a node may return into a ``StateUpdate``.

        Accepts a StateUpdate, a State, a Message, a sequence of messages, a
        mapping with an optional ``"messages"`` key, a plain string (a user
        message) or None. A State is diffed against ``current`` (see
        ``from_state``).
        """
        if update is None:
            return cls()
        if isinstance(update, StateUpdate):
            return update
        if isinstance(update, State):
            return cls.from_state(update, current)
        if isinstance(update, Message):
            return cls(messages=(update,))
        if isinstance(update, str):
            return cls(messages=(Message.user(update),))
        if isinstance(update, Mapping):
            values = {k: v for k, v in update.items() if k != "messages"}
            return cls(messages=tuple(update.get("messages", ())), values=values)
        if isinstance(update, Sequence):
            return cls(messages=tuple(update))
        raise TypeError(f"Cannot build a state update from {type(update).__name__}")

    @classmethod
    def from_state(cls, state: State, current: State | None = None) -> StateUpdate:
        """Express a full state as an update on top of ``current``.

        Only the messages past the current log and the values that differ are
        kept, so handing back an unchanged state is an empty update.

        Raises:
            StateConflictError: if ``state`` does not extend the current log
        """
        if current is None:
            return cls(messages=state.messages, values=state.values)

        prefix = len(current.messages)
        for index, message in enumerate(current.messages):
            if index >= len(state.messages) or state.messages[index] != message:
                raise StateConflictError(prefix, index)

        missing = object()
        values = {
            key: value
            for key, value in state.values.items()
            if current.values.get(key, missing) != value
        }
        return cls(messages=state.messages[prefix:], values=values)


class State(BaseModel):
    """The unit of data threaded through the graph.

    ``messages`` is an append-only log and the single source of truth for turn
    order. States are never mutated: ``merge`` returns a new value that shares
    the existing message objects. ``values`` is a read-only mapping.
    """

    model_config = ConfigDict(frozen=True)

    messages: tuple[Message, ...] = Field(default=(), description="Conversation log")
    values: FrozenValues = Field(
        default_factory=dict,
        validate_default=True,
        description="Auxiliary keyed fields",
    )

    def merge(self, update: StateUpdate) -> State:
        if update.is_empty:
            return self
        return State(
            messages=self.messages + update.messages,
            values={**self.values, **update.values},
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def last_assistant_message(self) -> Message | None:
        for message in reversed(self.messages):
            if message.role == Role.ASSISTANT:
                return message
        return None
