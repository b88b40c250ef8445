"""Tool definitions and the registry the Tool Node resolves calls against."""

from __future__ import annotations

import asyncio
import inspect
import logging
import typing
from collections.abc import Callable, Iterator
from typing import Any

from langchain_core.tools import BaseTool
from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from reactgraph.common.errors import (
    InvalidToolArgumentsError,
    ToolExecutionError,
    ToolNotFoundError,
)

log = logging.getLogger(__name__)


def schema_from_signature(handler: Callable[..., Any]) -> type[BaseModel]:
    """Build a pydantic argument model from a handler's signature.

    Parameters without annotations accept any value; parameters without
    defaults are required. Unknown arguments are rejected.
    """
    hints = typing.get_type_hints(handler)
    fields: dict[str, Any] = {}

    for name, param in inspect.signature(handler).parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = hints.get(name, Any)
        default = ... if param.default is param.empty else param.default
        fields[name] = (annotation, default)

    return create_model(
        f"{handler.__name__}_arguments",
        __config__=ConfigDict(extra="forbid"),
        **fields,
    )


class Tool:
    """A named capability with a pydantic argument schema.

    The handler may be a plain function or a coroutine function. Plain
    functions run in a worker thread so a batch of calls stays concurrent.
    """

    def __init__(
        self,
        name: str,
        args_schema: type[BaseModel],
        handler: Callable[..., Any],
        description: str = "",
    ):
        self.name = name
        self.args_schema = args_schema
        self.handler = handler
        self.description = description

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r})"

    def validate(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate raw arguments, returning the handler keyword arguments.

        Raises:
            InvalidToolArgumentsError: if validation fails
        """
        try:
            parsed = self.args_schema.model_validate(arguments)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidToolArgumentsError(
                self.name, f"Invalid arguments for tool '{self.name}': {errors}"
            ) from e
        return {field: getattr(parsed, field) for field in type(parsed).model_fields}

    async def execute(self, arguments: dict[str, Any]) -> Any:
        """Run the handler with validated arguments.

        Raises:
            ToolExecutionError: wrapping any exception raised by the handler
        """
        try:
            if inspect.iscoroutinefunction(self.handler):
                return await self.handler(**arguments)
            result = await asyncio.to_thread(self.handler, **arguments)
            if inspect.isawaitable(result):
                result = await result
            return result
        except ToolExecutionError:
            raise
        except Exception as e:
            raise ToolExecutionError(
                self.name, f"Tool '{self.name}' failed: {e}"
            ) from e

    def json_schema(self) -> dict[str, Any]:
        schema = self.args_schema.model_json_schema()
        schema.pop("title", None)
        return schema

    def to_openai_tool(self) -> dict[str, Any]:
        """Describe the tool in the OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }


class ToolRegistry:
    """Registry of callable tools, keyed by name."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def register(
        self,
        name: str,
        schema: type[BaseModel] | None,
        handler: Callable[..., Any],
        description: str = "",
    ) -> Tool:
        """Register a handler under ``name``.

        Args:
            name: Tool name the model uses in its tool calls
            schema: Pydantic model validating the arguments; inferred from the
                handler signature when None
            handler: Sync or async callable receiving the validated arguments
            description: Human readable description shown to the model

        Returns:
            The registered Tool
        """
        tool = Tool(
            name=name,
            args_schema=schema or schema_from_signature(handler),
            handler=handler,
            description=description or inspect.getdoc(handler) or "",
        )
        return self.register_tool(tool)

    def register_tool(self, tool: Tool) -> Tool:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        log.info(f"Registered tool: {tool.name}")
        return tool

    def register_langchain_tool(self, base_tool: BaseTool) -> Tool:
        """Register a LangChain tool, keeping its input schema."""

        async def _invoke(**arguments: Any) -> Any:
            return await base_tool.ainvoke(arguments)

        return self.register_tool(
            Tool(
                name=base_tool.name,
                args_schema=base_tool.get_input_schema(),
                handler=_invoke,
                description=base_tool.description,
            )
        )

    def tool(
        self, func: Callable[..., Any] | None = None, *, name: str | None = None
    ) -> Any:
        """Decorator registering a function with a signature-derived schema.

        Usable bare (``@registry.tool``) or with a name
        (``@registry.tool(name="search")``). Returns the function unchanged.
        """

        def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or handler.__name__, None, handler)
            return handler

        if func is not None:
            return decorator(func)
        return decorator

    def resolve(self, name: str) -> Tool:
        """Look up a tool by name.

        Raises:
            ToolNotFoundError: if no tool has that name
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)
