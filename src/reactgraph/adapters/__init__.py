"""Adapters for external integrations."""

from reactgraph.adapters.audit_logger import AuditLogger
from reactgraph.adapters.chat_model import LangChainChatModel, create_chat_model
from reactgraph.adapters.checkpointer import (
    BaseCheckpointer,
    Checkpoint,
    InMemoryCheckpointer,
    SqliteCheckpointer,
    create_checkpointer,
)

__all__ = [
    "AuditLogger",
    "LangChainChatModel",
    "create_chat_model",
    "BaseCheckpointer",
    "Checkpoint",
    "InMemoryCheckpointer",
    "SqliteCheckpointer",
    "create_checkpointer",
]
