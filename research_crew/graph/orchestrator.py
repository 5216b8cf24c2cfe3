"""Graph builder and the step-by-step orchestrator.

A graph is a set of named nodes (agents, the tool dispatcher, or any step
callable) joined by edges. Each node has exactly one outgoing edge: either a
fixed successor or a router with its declared destinations.

Running a thread:

    load checkpoint -> merge new messages -> [entry node]
        invoke node -> merge delta -> save checkpoint -> pick next node
    ... until END.

One run per thread id is active at a time; runs on different threads proceed
independently.
"""
import asyncio
import inspect
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import structlog
from langchain_core.messages import BaseMessage

from research_crew.errors import (
    CheckpointError,
    GraphDefinitionError,
    InvalidStateUpdate,
    RunAborted,
    RunPending,
    StepLimitExceeded,
    StepTimeout,
)
from research_crew.graph.checkpoint import Checkpoint, CheckpointStore, SaverCheckpointStore
from research_crew.graph.routing import END, Goto, Route, Router, _End, destination_name
from research_crew.graph.state import CONVERSATION_SCHEMA, StateSchema

logger = structlog.get_logger(__name__)

START = "__start__"
DEFAULT_MAX_STEPS = 25


@dataclass(frozen=True)
class FixedEdge:
    target: Route


@dataclass(frozen=True)
class ConditionalEdge:
    router: Router
    destinations: frozenset


Edge = Union[FixedEdge, ConditionalEdge]


@dataclass(frozen=True)
class GraphDefinition:
    nodes: Dict[str, Any]
    edges: Dict[str, Edge]
    entry: str
    agent_nodes: frozenset
    schema: StateSchema = field(default=CONVERSATION_SCHEMA)

    def describe(self) -> dict:
        edges = {}
        for source, edge in self.edges.items():
            if isinstance(edge, FixedEdge):
                edges[source] = [destination_name(edge.target)]
            else:
                edges[source] = sorted(destination_name(d) for d in edge.destinations)
        return {
            "entry": self.entry,
            "nodes": list(self.nodes),
            "agents": sorted(self.agent_nodes),
            "edges": edges,
        }


def _as_route(target: Union[str, Route]) -> Route:
    if isinstance(target, (Goto, _End)):
        return target
    if target == "__end__":
        return END
    return Goto(target)


class GraphBuilder:
    """Collects nodes and edges, then validates and freezes them with compile()."""

    def __init__(self, schema: StateSchema = CONVERSATION_SCHEMA):
        self._schema = schema
        self._nodes: Dict[str, Any] = {}
        self._agent_nodes: set[str] = set()
        self._edges: Dict[str, Edge] = {}
        self._entry: Optional[str] = None

    def add_node(self, name: str, step: Any, *, agent: Optional[bool] = None) -> "GraphBuilder":
        """Register a step under a node name.

        Agent nodes may set ``sender``; their node name is the sender value
        they write. ``agent`` defaults to the step's own ``is_agent`` flag.
        """
        if name in (START, "__end__"):
            raise GraphDefinitionError(f"'{name}' is a reserved node name")
        if name in self._nodes:
            raise GraphDefinitionError(f"Node '{name}' already exists")
        self._nodes[name] = step
        if agent is None:
            agent = getattr(step, "is_agent", False)
        if agent:
            self._agent_nodes.add(name)
        return self

    def set_entry_point(self, name: str) -> "GraphBuilder":
        self._entry = name
        return self

    def add_edge(self, source: str, target: Union[str, Route]) -> "GraphBuilder":
        if source == START:
            target = _as_route(target)
            if target is END:
                raise GraphDefinitionError("The entry point cannot be END")
            return self.set_entry_point(target.node)
        self._claim_source(source)
        self._edges[source] = FixedEdge(_as_route(target))
        return self

    def add_conditional_edges(
        self,
        source: str,
        router: Router,
        destinations: Sequence[Union[str, Route]],
    ) -> "GraphBuilder":
        self._claim_source(source)
        if not destinations:
            raise GraphDefinitionError(f"Conditional edge from '{source}' declares no destinations")
        routes = frozenset(_as_route(d) for d in destinations)
        self._edges[source] = ConditionalEdge(router, routes)
        return self

    def _claim_source(self, source: str) -> None:
        if source in self._edges:
            raise GraphDefinitionError(f"Node '{source}' already has an outgoing edge")

    def compile(
        self,
        checkpointer: Optional[CheckpointStore] = None,
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
        step_timeout: Optional[float] = None,
    ) -> "CompiledGraph":
        if self._entry is None:
            raise GraphDefinitionError("Graph has no entry point")
        if self._entry not in self._nodes:
            raise GraphDefinitionError(f"Entry point '{self._entry}' is not a node")

        for name in self._nodes:
            if name not in self._edges:
                raise GraphDefinitionError(f"Node '{name}' has no outgoing edge")
        for source, edge in self._edges.items():
            if source not in self._nodes:
                raise GraphDefinitionError(f"Edge starts at unknown node '{source}'")
            targets = [edge.target] if isinstance(edge, FixedEdge) else edge.destinations
            for target in targets:
                if isinstance(target, Goto) and target.node not in self._nodes:
                    raise GraphDefinitionError(f"Edge from '{source}' points to unknown node '{target.node}'")

        definition = GraphDefinition(
            nodes=dict(self._nodes),
            edges=dict(self._edges),
            entry=self._entry,
            agent_nodes=frozenset(self._agent_nodes),
            schema=self._schema,
        )
        return CompiledGraph(
            definition,
            checkpointer=checkpointer,
            max_steps=max_steps,
            step_timeout=step_timeout,
        )


async def call_step(step: Any, state: dict) -> Any:
    if hasattr(step, "ainvoke"):
        return await step.ainvoke(state)
    if inspect.iscoroutinefunction(step) or inspect.iscoroutinefunction(getattr(step, "__call__", None)):
        return await step(state)
    result = await asyncio.to_thread(step, state)
    if inspect.isawaitable(result):
        result = await result
    return result


class CompiledGraph:
    """Immutable graph plus the run loop that drives it."""

    def __init__(
        self,
        definition: GraphDefinition,
        *,
        checkpointer: Optional[CheckpointStore] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        step_timeout: Optional[float] = None,
    ):
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.definition = definition
        self.checkpointer = checkpointer if checkpointer is not None else SaverCheckpointStore()
        self.max_steps = max_steps
        self.step_timeout = step_timeout
        # thread id -> [lock, runs holding or waiting for it]
        self._thread_locks: Dict[str, list] = {}

    async def run(
        self,
        thread_id: str,
        initial_messages: Sequence[BaseMessage],
        *,
        max_steps: Optional[int] = None,
        abort: Optional[asyncio.Event] = None,
    ) -> dict:
        """Start a new turn on a thread and run it to END.

        Prior state for the thread is loaded from the checkpoint store and the
        new messages are appended to it before the entry node runs. A thread
        whose previous run stopped before END must be resumed first.
        """
        async with self._thread_lock(thread_id):
            with structlog.contextvars.bound_contextvars(thread_id=thread_id):
                checkpoint = await self._load(thread_id)
                if checkpoint is not None and checkpoint.next_node is not None:
                    raise RunPending(thread_id, checkpoint.next_node)
                schema = self.definition.schema
                state = checkpoint.values if checkpoint else schema.initial()
                state = schema.merge(state, {"messages": list(initial_messages)})
                step = checkpoint.step if checkpoint else 0
                await self._save(thread_id, Checkpoint(state, self.definition.entry, step))

                logger.info("run_started", entry=self.definition.entry, history=len(state["messages"]))
                return await self._execute(thread_id, state, self.definition.entry, step, max_steps, abort)

    async def resume(
        self,
        thread_id: str,
        *,
        max_steps: Optional[int] = None,
        abort: Optional[asyncio.Event] = None,
    ) -> dict:
        """Continue a thread from its checkpoint (after a step limit, abort or error)."""
        async with self._thread_lock(thread_id):
            with structlog.contextvars.bound_contextvars(thread_id=thread_id):
                checkpoint = await self._load(thread_id)
                if checkpoint is None:
                    raise CheckpointError(thread_id, "no checkpoint to resume from")
                if checkpoint.next_node is None:
                    return checkpoint.values
                logger.info("run_resumed", node=checkpoint.next_node, step=checkpoint.step)
                return await self._execute(
                    thread_id, checkpoint.values, checkpoint.next_node, checkpoint.step, max_steps, abort
                )

    def invoke(self, thread_id: str, initial_messages: Sequence[BaseMessage], **kwargs) -> dict:
        """Blocking wrapper around run() for scripts."""
        return asyncio.run(self.run(thread_id, initial_messages, **kwargs))

    async def get_state(self, thread_id: str) -> Optional[Checkpoint]:
        return await self._load(thread_id)

    async def delete_state(self, thread_id: str) -> bool:
        """Forget a thread. Returns False if nothing was saved for it."""
        async with self._thread_lock(thread_id):
            try:
                deleted = await self.checkpointer.delete(thread_id)
            except Exception as e:
                raise CheckpointError(thread_id, f"delete failed: {e}") from e
        logger.info("thread_deleted", thread_id=thread_id, deleted=deleted)
        return deleted

    @asynccontextmanager
    async def _thread_lock(self, thread_id: str):
        entry = self._thread_locks.setdefault(thread_id, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._thread_locks[thread_id]

    async def _execute(
        self,
        thread_id: str,
        state: dict,
        node: Optional[str],
        step: int,
        max_steps: Optional[int],
        abort: Optional[asyncio.Event],
    ) -> dict:
        limit = max_steps if max_steps is not None else self.max_steps
        steps = 0

        while node is not None:
            if abort is not None and abort.is_set():
                logger.warning("run_aborted", node=node, steps=steps)
                raise RunAborted(state, steps)
            if steps >= limit:
                logger.warning("step_limit_exceeded", limit=limit, pending_node=node)
                raise StepLimitExceeded(limit, state, steps)

            delta = await self._invoke_node(node, state)
            self._check_sender(node, delta)
            state = self.definition.schema.merge(state, delta)
            steps += 1
            step += 1

            next_node = self._next_node(node, state)
            await self._save(thread_id, Checkpoint(state, next_node, step))
            logger.info(
                "workflow_transition",
                from_node=node,
                to_node=next_node or "__end__",
                step=step,
                messages=len(state["messages"]),
                sender=state.get("sender"),
            )
            node = next_node

        logger.info("run_finished", steps=steps, messages=len(state["messages"]))
        return state

    async def _invoke_node(self, node: str, state: dict) -> Any:
        step = self.definition.nodes[node]
        # Nodes get their own view; the orchestrator's copy only changes through merge().
        view = {key: list(value) if isinstance(value, list) else value for key, value in state.items()}
        if self.step_timeout is None:
            return await call_step(step, view)
        try:
            return await asyncio.wait_for(call_step(step, view), timeout=self.step_timeout)
        except asyncio.TimeoutError:
            raise StepTimeout(node, self.step_timeout) from None

    def _check_sender(self, node: str, delta: Any) -> None:
        if not isinstance(delta, Mapping) or "sender" not in delta:
            return
        sender = delta["sender"]
        if sender is None:
            return
        if node not in self.definition.agent_nodes:
            raise InvalidStateUpdate(f"Node '{node}' is not an agent and cannot set sender to '{sender}'")
        if sender != node:
            raise InvalidStateUpdate(f"Agent node '{node}' set sender to '{sender}', expected '{node}'")

    def _next_node(self, node: str, state: dict) -> Optional[str]:
        edge = self.definition.edges[node]
        if isinstance(edge, FixedEdge):
            route = edge.target
        else:
            route = edge.router(state)
            if not isinstance(route, (Goto, _End)):
                raise GraphDefinitionError(
                    f"Router for '{node}' returned {route!r}; expected Goto(...) or END"
                )
            if route not in edge.destinations:
                raise GraphDefinitionError(
                    f"Router for '{node}' chose undeclared destination '{destination_name(route)}'"
                )
        return None if route is END else route.node

    async def _load(self, thread_id: str) -> Optional[Checkpoint]:
        try:
            return await self.checkpointer.load(thread_id)
        except CheckpointError:
            raise
        except Exception as e:
            raise CheckpointError(thread_id, f"load failed: {e}") from e

    async def _save(self, thread_id: str, checkpoint: Checkpoint) -> None:
        try:
            await self.checkpointer.save(thread_id, checkpoint)
        except CheckpointError:
            raise
        except Exception as e:
            raise CheckpointError(thread_id, f"save failed: {e}") from e
        logger.debug("checkpoint_saved", next_node=checkpoint.next_node, step=checkpoint.step)
