"""Audit logging for engine steps, messages and tool calls."""

from __future__ import annotations

import logging
from typing import Any

from reactgraph.common.schemas import Message, Role

log = logging.getLogger(__name__)


class AuditLogger:
    """Audit logger tracking what each thread's execution did."""

    def __init__(self, preview_chars: int = 100):
        """Initialize audit logger.

        Args:
            preview_chars: Message content longer than this is truncated
        """
        self.preview_chars = preview_chars

    async def log_step(
        self,
        thread_id: str,
        node: str,
        sequence: int,
        next_node: str | None,
    ) -> None:
        """Log a completed, checkpointed step.

        Args:
            thread_id: Thread identifier
            node: Node that ran
            sequence: Checkpoint sequence written for the step
            next_node: Node scheduled next, None when the execution finished
        """
        log.info(f"[{thread_id}] Step {sequence}: {node} -> {next_node or 'END'}")

    async def log_message(self, thread_id: str, message: Message) -> None:
        """Log a message appended to the thread's log."""
        content = message.content
        if len(content) > self.preview_chars:
            content = f"{content[: self.preview_chars]}..."
        log.debug(f"[{thread_id}] {message.role.value}: {content}")

        if message.role == Role.ASSISTANT:
            for call in message.tool_calls:
                await self.log_tool_call(thread_id, call.name, call.arguments)
        elif message.role == Role.TOOL:
            status = "failed" if message.is_error else "completed"
            await self.log_tool_call(
                thread_id, message.name or "unknown", {}, status=status
            )

    async def log_tool_call(
        self,
        thread_id: str,
        tool_name: str,
        arguments: dict[str, Any],
        status: str = "requested",
    ) -> None:
        """Log a tool call event.

        Args:
            thread_id: Thread identifier
            tool_name: Name of the tool
            arguments: Tool arguments (empty for results)
            status: Call status (requested, completed, failed)
        """
        if status == "failed":
            log.warning(f"[{thread_id}] Tool {status}: {tool_name}")
        else:
            log.debug(f"[{thread_id}] Tool {status}: {tool_name} {arguments or ''}")
