"""Message schemas shared by the engine, the nodes and the adapters."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


def generate_tool_call_id() -> str:
    """Generate an id for a tool call that arrived without one."""
    return f"call_{uuid.uuid4().hex[:24]}"


class Role(str, Enum):
    """Author of a message in the conversation log."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=generate_tool_call_id,
        description="Identifier echoed back by the tool result message",
    )
    name: str = Field(description="Name of the tool")
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Raw tool arguments"
    )


class Message(BaseModel):
    """One immutable turn in the conversation log."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Author of the message")
    content: str = Field(default="", description="Text content, may be empty")
    tool_calls: tuple[ToolCall, ...] = Field(
        default=(), description="Tool calls requested by an assistant message"
    )
    tool_call_id: str | None = Field(
        default=None, description="Originating call id, tool messages only"
    )
    name: str | None = Field(default=None, description="Tool name on tool results")
    status: Literal["success", "error"] = Field(
        default="success", description="Outcome of a tool result"
    )

    @model_validator(mode="after")
    def validate_role_fields(self) -> Message:
        """Keep tool-specific fields on the roles that own them."""
        if self.tool_calls and self.role != Role.ASSISTANT:
            raise ValueError("tool_calls are only allowed on assistant messages")
        if self.role == Role.TOOL and not self.tool_call_id:
            raise ValueError("tool messages must carry a tool_call_id")
        if self.role != Role.TOOL and self.tool_call_id is not None:
            raise ValueError("tool_call_id is only allowed on tool messages")
        return self

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def assistant(
        cls,
        content: str = "",
        tool_calls: list[ToolCall] | tuple[ToolCall, ...] = (),
    ) -> Message:
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool_result(
        cls,
        call: ToolCall,
        content: str,
        status: Literal["success", "error"] = "success",
    ) -> Message:
        """Build the tool message answering ``call``."""
        return cls(
            role=Role.TOOL,
            content=content,
            tool_call_id=call.id,
            name=call.name,
            status=status,
        )
