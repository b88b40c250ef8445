"""Execution engine interpreting a compiled graph against checkpointed state."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from reactgraph.adapters.audit_logger import AuditLogger
from reactgraph.adapters.checkpointer import BaseCheckpointer, Checkpoint
from reactgraph.common.errors import (
    CancelledError,
    CheckpointNotFoundError,
    NodeTimeoutError,
    PendingExecutionError,
    StepLimitExceededError,
)
from reactgraph.config import Settings, get_settings
from reactgraph.core.graph import END, Graph
from reactgraph.core.retry import RetryPolicy
from reactgraph.core.state import State, StateUpdate

log = logging.getLogger(__name__)


class StepEvent(BaseModel):
    """Partial update produced by one checkpointed step."""

    model_config = ConfigDict(frozen=True)

    node: str
    update: StateUpdate
    checkpoint: Checkpoint

    @property
    def state(self) -> State:
        return self.checkpoint.state

    @property
    def sequence(self) -> int:
        return self.checkpoint.sequence

    @property
    def next_node(self) -> str | None:
        return self.checkpoint.next_node


class Done(BaseModel):
    """Returned by ``step`` once the thread's execution has finished."""

    model_config = ConfigDict(frozen=True)

    checkpoint: Checkpoint

    @property
    def state(self) -> State:
        return self.checkpoint.state


class ExecutionEngine:
    """Runs a compiled graph one checkpointed step at a time.

    Holds no per-run state, so one engine serves any number of threads
    concurrently. Each executed node produces exactly one checkpoint; a step
    that fails, times out or is cancelled writes nothing, leaving the previous
    checkpoint as the resumption point.
    """

    def __init__(
        self,
        graph: Graph,
        checkpointer: BaseCheckpointer,
        *,
        step_limit: int = 25,
        node_timeout: float | None = None,
        node_timeouts: Mapping[str, float] | None = None,
        retry_policies: Mapping[str, RetryPolicy] | None = None,
        audit_logger: AuditLogger | None = None,
    ):
        if step_limit < 1:
            raise ValueError("step_limit must be at least 1")
        self.graph = graph
        self.checkpointer = checkpointer
        self.step_limit = step_limit
        self.node_timeout = node_timeout
        self.node_timeouts = dict(node_timeouts or {})
        self.retry_policies = dict(retry_policies or {})
        self.audit = audit_logger or AuditLogger()

    @classmethod
    def from_settings(
        cls,
        graph: Graph,
        checkpointer: BaseCheckpointer,
        settings: Settings | None = None,
        *,
        retry_nodes: Iterable[str] = (),
    ) -> ExecutionEngine:
        """Build an engine from application settings.

        Args:
            graph: Compiled graph
            checkpointer: Initialized checkpointer
            settings: Settings, defaults to ``get_settings()``
            retry_nodes: Nodes wrapped in a retry policy when
                ``model_max_attempts`` is above 1
        """
        settings = settings or get_settings()
        retry_policies: dict[str, RetryPolicy] = {}
        if settings.model_max_attempts > 1:
            policy = RetryPolicy(
                max_attempts=settings.model_max_attempts,
                initial_wait=settings.retry_initial_wait,
                max_wait=settings.retry_max_wait,
            )
            retry_policies = {name: policy for name in retry_nodes}

        return cls(
            graph,
            checkpointer,
            step_limit=settings.step_limit,
            node_timeout=settings.node_timeout,
            retry_policies=retry_policies,
        )

    async def run(
        self,
        input: Any,
        thread_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> State:
        """Run the thread until the graph reaches END.

        Args:
            input: Initial state or update for this turn (see
                ``StateUpdate.coerce``); None resumes a pending execution. A
                full State must extend the thread's latest checkpoint
            thread_id: Thread/session identifier
            cancel_event: Setting this event cancels the in-flight step

        Returns:
            Final state
        """
        state: State | None = None
        async for event in self.stream(input, thread_id, cancel_event=cancel_event):
            state = event.state

        if state is None:
            state = (await self.checkpointer.load(thread_id)).state
        return state

    async def resume(
        self,
        thread_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> State:
        """Continue a pending execution from its latest checkpoint."""
        return await self.run(None, thread_id, cancel_event=cancel_event)

    async def stream(
        self,
        input: Any,
        thread_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[StepEvent]:
        """Run the thread, yielding one event per checkpointed step."""
        state, current = await self._prepare(input, thread_id)
        steps = 0

        while current is not None:
            if steps >= self.step_limit:
                log.error(
                    f"[{thread_id}] Step limit {self.step_limit} reached before END "
                    f"(next node: {current})"
                )
                raise StepLimitExceededError(thread_id, self.step_limit)
            steps += 1

            event = await self._execute_step(thread_id, current, state, cancel_event)
            yield event
            state, current = event.state, event.next_node

        log.info(f"[{thread_id}] Execution finished after {steps} step(s)")

    async def step(
        self,
        thread_id: str,
        input: Any = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> StepEvent | Done:
        """Execute exactly one node of the thread.

        Returns:
            The step's event, or ``Done`` when nothing is left to run
        """
        state, current = await self._prepare(input, thread_id)
        if current is None:
            return Done(checkpoint=await self.checkpointer.load(thread_id))
        return await self._execute_step(thread_id, current, state, cancel_event)

    async def get_state(self, thread_id: str) -> State | None:
        try:
            return (await self.checkpointer.load(thread_id)).state
        except CheckpointNotFoundError:
            return None

    async def get_history(self, thread_id: str) -> list[Checkpoint]:
        return await self.checkpointer.history(thread_id)

    async def _prepare(self, input: Any, thread_id: str) -> tuple[State, str | None]:
        """Resolve the starting state and node for a call.

        Returns:
            (state, node to run), node is None when the thread is already
            complete and no new input was given
        """
        try:
            latest = await self.checkpointer.load(thread_id)
        except CheckpointNotFoundError:
            update = StateUpdate.coerce(input)
            if update.is_empty:
                raise
            log.info(f"[{thread_id}] No checkpoint found, starting fresh")
            return await self._start(thread_id, State().merge(update))

        # A submitted State counts only for what it adds to the checkpoint
        update = StateUpdate.coerce(input, latest.state)
        if not latest.is_complete:
            if not update.is_empty:
                raise PendingExecutionError(thread_id, latest.next_node or "")
            log.info(
                f"[{thread_id}] Resuming from checkpoint {latest.sequence} "
                f"at node {latest.next_node}"
            )
            return latest.state, latest.next_node

        if update.is_empty:
            log.info(f"[{thread_id}] Execution already complete, nothing to run")
            return latest.state, None

        return await self._start(thread_id, latest.state.merge(update))

    async def _start(self, thread_id: str, state: State) -> tuple[State, str]:
        entry = self.graph.entry()
        checkpoint = await self.checkpointer.save(thread_id, state, next_node=entry)
        log.info(
            f"[{thread_id}] Starting at {entry} with {len(state.messages)} messages "
            f"(checkpoint {checkpoint.sequence})"
        )
        return state, entry

    async def _execute_step(
        self,
        thread_id: str,
        node: str,
        state: State,
        cancel_event: asyncio.Event | None,
    ) -> StepEvent:
        result = await self._invoke_node(thread_id, node, state, cancel_event)
        update = StateUpdate.coerce(result, state)
        merged = state.merge(update)

        next_node = self.graph.next(node, merged)
        checkpoint = await self.checkpointer.save(
            thread_id, merged, next_node=None if next_node == END else next_node
        )

        await self.audit.log_step(
            thread_id, node, checkpoint.sequence, checkpoint.next_node
        )
        for message in update.messages:
            await self.audit.log_message(thread_id, message)

        return StepEvent(node=node, update=update, checkpoint=checkpoint)

    async def _invoke_node(
        self,
        thread_id: str,
        name: str,
        state: State,
        cancel_event: asyncio.Event | None,
    ) -> Any:
        """Run one node, honoring its timeout, retry policy and cancellation."""
        if cancel_event is not None and cancel_event.is_set():
            raise CancelledError(thread_id, name)

        node = self.graph.node(name)
        policy = self.retry_policies.get(name)

        async def _call() -> Any:
            result = node(state)
            if inspect.isawaitable(result):
                result = await result
            return result

        task = asyncio.ensure_future(policy.call(_call) if policy else _call())
        waiters: set[asyncio.Future[Any]] = {task}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        timeout = self.node_timeouts.get(name, self.node_timeout)
        log.debug(f"[{thread_id}] Running node {name} (timeout={timeout})")

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        if cancel_event is not None and cancel_event.is_set():
            log.warning(f"[{thread_id}] Node {name} cancelled by caller")
            raise CancelledError(thread_id, name)

        log.warning(f"[{thread_id}] Node {name} timed out after {timeout}s")
        raise NodeTimeoutError(thread_id, name, timeout or 0.0)
