"""Checkpoint persistence for thread-scoped execution state."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Literal

import aiosqlite
from pydantic import BaseModel, ConfigDict, Field

from reactgraph.common.errors import CheckpointNotFoundError
from reactgraph.core.state import State

log = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Checkpoint(BaseModel):
    """Immutable, sequence-numbered snapshot of one thread's state."""

    model_config = ConfigDict(frozen=True)

    thread_id: str = Field(description="Thread/session identifier")
    sequence: int = Field(ge=1, description="Monotonic sequence within the thread")
    state: State = Field(description="State after the step")
    next_node: str | None = Field(
        default=None, description="Node to run next, None once execution finished"
    )
    created_at: datetime = Field(default_factory=_utc_now)

    @property
    def is_complete(self) -> bool:
        return self.next_node is None


class BaseCheckpointer(ABC):
    """Thread id -> ordered checkpoint sequence.

    ``save`` is serialized per thread id; saves for different threads never
    wait on each other. Backends are created at startup (``setup``) and torn
    down at shutdown (``close``).
    """

    def __init__(self) -> None:
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def setup(self) -> None:
        """Prepare backing storage."""

    async def close(self) -> None:
        """Release backing storage."""

    async def save(
        self, thread_id: str, state: State, next_node: str | None = None
    ) -> Checkpoint:
        """Persist ``state`` as the thread's next checkpoint.

        Args:
            thread_id: Thread/session identifier
            state: State to snapshot
            next_node: Node to execute next, None when the execution finished

        Returns:
            The stored checkpoint, numbered previous sequence + 1
        """
        async with self._locks[thread_id]:
            sequence = await self._latest_sequence(thread_id) + 1
            checkpoint = Checkpoint(
                thread_id=thread_id,
                sequence=sequence,
                state=state,
                next_node=next_node,
            )
            await self._put(checkpoint)

        log.debug(
            f"[{thread_id}] Saved checkpoint {sequence} "
            f"({len(state.messages)} messages, next={next_node})"
        )
        return checkpoint

    @abstractmethod
    async def load(self, thread_id: str) -> Checkpoint:
        """Return the highest-sequence checkpoint.

        Raises:
            CheckpointNotFoundError: if the thread has no checkpoints
        """

    @abstractmethod
    async def history(self, thread_id: str) -> list[Checkpoint]:
        """All checkpoints of a thread, oldest first."""

    @abstractmethod
    async def delete(self, thread_id: str) -> None:
        """Drop every checkpoint of a thread."""

    @abstractmethod
    async def _latest_sequence(self, thread_id: str) -> int:
        """Highest stored sequence, 0 when the thread is empty."""

    @abstractmethod
    async def _put(self, checkpoint: Checkpoint) -> None:
        """Store a checkpoint. Called with the thread lock held."""


class InMemoryCheckpointer(BaseCheckpointer):
    """Process-lifetime checkpoint store.

    Checkpoints hold immutable states, so stored snapshots share message
    objects with live executions without copying.
    """

    def __init__(self) -> None:
        super().__init__()
        self._threads: dict[str, list[Checkpoint]] = {}

    async def load(self, thread_id: str) -> Checkpoint:
        checkpoints = self._threads.get(thread_id)
        if not checkpoints:
            raise CheckpointNotFoundError(thread_id)
        return checkpoints[-1]

    async def history(self, thread_id: str) -> list[Checkpoint]:
        return list(self._threads.get(thread_id, []))

    async def delete(self, thread_id: str) -> None:
        async with self._locks[thread_id]:
            self._threads.pop(thread_id, None)
        self._locks.pop(thread_id, None)

    async def _latest_sequence(self, thread_id: str) -> int:
        checkpoints = self._threads.get(thread_id)
        return checkpoints[-1].sequence if checkpoints else 0

    async def _put(self, checkpoint: Checkpoint) -> None:
        self._threads.setdefault(checkpoint.thread_id, []).append(checkpoint)


class SqliteCheckpointer(BaseCheckpointer):
    """Durable checkpoint store on SQLite via aiosqlite.

    States are stored as JSON, so auxiliary state values must be
    JSON-serializable.
    """

    def __init__(self, db_path: str = "sessions.db"):
        super().__init__()
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    async def setup(self) -> None:
        """Open the connection and ensure the table exists.

        Must be called during application startup.
        """
        self._connection = await aiosqlite.connect(self.db_path)
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS checkpoints (
                thread_id TEXT NOT NULL,
                sequence INTEGER NOT NULL,
                state TEXT NOT NULL,
                next_node TEXT,
                created_at TEXT NOT NULL,
                PRIMARY KEY (thread_id, sequence)
            )
        """)
        await self._connection.commit()
        log.info(f"SqliteCheckpointer initialized with database: {self.db_path}")

    async def close(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None
            log.info("SqliteCheckpointer connection closed")

    def _conn(self) -> aiosqlite.Connection:
        if not self._connection:
            raise RuntimeError("SqliteCheckpointer not initialized")
        return self._connection

    async def load(self, thread_id: str) -> Checkpoint:
        cursor = await self._conn().execute(
            """
            SELECT thread_id, sequence, state, next_node, created_at
            FROM checkpoints
            WHERE thread_id = ?
            ORDER BY sequence DESC
            LIMIT 1
            """,
            (thread_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise CheckpointNotFoundError(thread_id)
        return self._row_to_checkpoint(row)

    async def history(self, thread_id: str) -> list[Checkpoint]:
        cursor = await self._conn().execute(
            """
            SELECT thread_id, sequence, state, next_node, created_at
            FROM checkpoints
            WHERE thread_id = ?
            ORDER BY sequence ASC
            """,
            (thread_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_checkpoint(row) for row in rows]

    async def delete(self, thread_id: str) -> None:
        async with self._locks[thread_id]:
            await self._conn().execute(
                "DELETE FROM checkpoints WHERE thread_id = ?", (thread_id,)
            )
            await self._conn().commit()
        self._locks.pop(thread_id, None)

    async def _latest_sequence(self, thread_id: str) -> int:
        cursor = await self._conn().execute(
            "SELECT MAX(sequence) FROM checkpoints WHERE thread_id = ?",
            (thread_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row and row[0] is not None else 0

    async def _put(self, checkpoint: Checkpoint) -> None:
        await self._conn().execute(
            """
            INSERT INTO checkpoints (thread_id, sequence, state, next_node, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                checkpoint.thread_id,
                checkpoint.sequence,
                checkpoint.state.model_dump_json(),
                checkpoint.next_node,
                checkpoint.created_at.isoformat(),
            ),
        )
        await self._conn().commit()

    @staticmethod
    def _row_to_checkpoint(row: tuple) -> Checkpoint:
        return Checkpoint(
            thread_id=row[0],
            sequence=row[1],
            state=State.model_validate_json(row[2]),
            next_node=row[3],
            created_at=datetime.fromisoformat(row[4]),
        )


@asynccontextmanager
async def create_checkpointer(
    backend: Literal["memory", "sqlite"] = "memory",
    db_path: str = "sessions.db",
) -> AsyncGenerator[BaseCheckpointer, None]:
    """Create a checkpointer and own its lifecycle.

    Args:
        backend: "memory" for a process-lifetime store, "sqlite" for a durable one
        db_path: Path to the SQLite database file (sqlite backend only)

    Yields:
        Initialized checkpointer, closed on exit
    """
    if backend == "sqlite":
        log.info(f"Creating SQLite checkpointer at {db_path}")
        checkpointer: BaseCheckpointer = SqliteCheckpointer(db_path)
    elif backend == "memory":
        log.info("Creating in-memory checkpointer")
        checkpointer = InMemoryCheckpointer()
    else:
        raise ValueError(f"Unknown checkpoint backend: {backend!r}")

    await checkpointer.setup()
    try:
        yield checkpointer
    finally:
        await checkpointer.close()
        log.info("Checkpointer closed")
