"""Graph construction, compile-time validation and edge resolution."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Final

from reactgraph.common.errors import GraphDefinitionError, RoutingError
from reactgraph.core.state import State

log = logging.getLogger(__name__)

END: Final = "__end__"
"""Terminal marker: routing to END finishes the execution."""

NodeCallable = Callable[[State], Any]
Router = Callable[[State], Hashable]


@dataclass(frozen=True)
class ConditionalEdge:
    """Outgoing edge chosen at runtime by a pure function of State."""

    router: Router
    candidates: Mapping[Hashable, str]

    def resolve(self, source: str, state: State) -> str:
        outcome = self.router(state)
        try:
            return self.candidates[outcome]
        except (KeyError, TypeError) as e:
            raise RoutingError(source, outcome, list(self.candidates)) from e


def _as_callable(node: Any) -> NodeCallable | None:
    invoke = getattr(node, "invoke", None)
    if callable(invoke):
        return invoke
    if callable(node):
        return node
    return None


class Graph:
    """Compiled, immutable graph structure.

    Holds no execution state and is shared read-only by every run. Built by
    ``GraphBuilder.compile``.
    """

    def __init__(
        self,
        nodes: Mapping[str, NodeCallable],
        edges: Mapping[str, str],
        conditional_edges: Mapping[str, ConditionalEdge],
        entry: str,
    ):
        self._nodes = MappingProxyType(dict(nodes))
        self._edges = MappingProxyType(dict(edges))
        self._conditional_edges = MappingProxyType(dict(conditional_edges))
        self._entry = entry

    @property
    def nodes(self) -> Mapping[str, NodeCallable]:
        return self._nodes

    def entry(self) -> str:
        return self._entry

    def node(self, name: str) -> NodeCallable:
        return self._nodes[name]

    def next(self, current: str, state: State) -> str:
        """Resolve the node that follows ``current``, or END."""
        if current in self._edges:
            return self._edges[current]
        return self._conditional_edges[current].resolve(current, state)

    def successors(self, name: str) -> set[str]:
        if name in self._edges:
            return {self._edges[name]}
        if name in self._conditional_edges:
            return set(self._conditional_edges[name].candidates.values())
        return set()


class GraphBuilder:
    """Declarative node/edge specification compiled into a ``Graph``.

    Conditional-edge routers must be pure functions of State. This cannot be
    checked at compile time; it is a usage contract.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, NodeCallable] = {}
        self._edges: dict[str, list[str]] = {}
        self._conditional_edges: dict[str, list[ConditionalEdge]] = {}
        self._entry: str | None = None
        self._problems: list[str] = []

    def add_node(self, name: str, node: Any) -> GraphBuilder:
        if name == END:
            self._problems.append(f"Node name '{END}' is reserved")
        elif name in self._nodes:
            self._problems.append(f"Node '{name}' declared twice")

        func = _as_callable(node)
        if func is None:
            self._problems.append(
                f"Node '{name}' must be callable or expose invoke(), "
                f"got {type(node).__name__}"
            )
        # Kept under its name so edges to it validate; compile() still fails
        self._nodes[name] = func if func is not None else node
        return self

    def add_edge(self, source: str, target: str) -> GraphBuilder:
        self._edges.setdefault(source, []).append(target)
        return self

    def add_conditional_edges(
        self,
        source: str,
        router: Router,
        candidates: Mapping[Hashable, str] | Sequence[str],
    ) -> GraphBuilder:
        """Add a conditional edge from ``source``.

        Args:
            source: Node the edge leaves from
            router: Pure function of State returning one outcome
            candidates: Outcome to target mapping, or a sequence of target
                names meaning each name maps to itself
        """
        if isinstance(candidates, Mapping):
            mapping = dict(candidates)
        else:
            mapping = {name: name for name in candidates}
        edge = ConditionalEdge(router=router, candidates=MappingProxyType(mapping))
        self._conditional_edges.setdefault(source, []).append(edge)
        return self

    def set_entry_point(self, name: str) -> GraphBuilder:
        self._entry = name
        return self

    def compile(self) -> Graph:
        """Validate the declaration and build an immutable ``Graph``.

        Raises:
            GraphDefinitionError: listing every problem found
        """
        problems = self._validate()
        if problems:
            raise GraphDefinitionError(problems)

        graph = self._build()

        reachable = self._find_reachable(graph)
        for name in self._nodes:
            if name not in reachable:
                log.warning(f"Node '{name}' is unreachable from entry '{self._entry}'")

        log.info(f"Graph compiled: entry={self._entry}, nodes={list(self._nodes)}")
        return graph

    def _validate(self) -> list[str]:
        problems = list(self._problems)

        if not self._nodes:
            problems.append("Graph has no nodes")

        if not self._entry:
            problems.append("No entry point set")
        elif self._entry not in self._nodes:
            problems.append(f"Entry point '{self._entry}' is not a declared node")

        for source, targets in self._edges.items():
            if source not in self._nodes:
                problems.append(f"Edge source '{source}' is not a declared node")
            for target in targets:
                if target != END and target not in self._nodes:
                    problems.append(f"Edge target '{target}' is not a declared node")

        for source, edges in self._conditional_edges.items():
            if source not in self._nodes:
                problems.append(
                    f"Conditional edge source '{source}' is not a declared node"
                )
            for edge in edges:
                for outcome, target in edge.candidates.items():
                    if target != END and target not in self._nodes:
                        problems.append(
                            f"Conditional target '{target}' is not a declared node "
                            f"(outcome: {outcome!r})"
                        )

        for name in self._nodes:
            outgoing = len(self._edges.get(name, [])) + len(
                self._conditional_edges.get(name, [])
            )
            if outgoing == 0:
                problems.append(f"Node '{name}' has no outgoing edge")
            elif outgoing > 1:
                problems.append(f"Node '{name}' has more than one outgoing edge")

        if problems:
            return problems

        if END not in self._find_reachable(self._build()):
            problems.append(f"No path from entry '{self._entry}' to {END}")

        return problems

    def _build(self) -> Graph:
        return Graph(
            nodes=self._nodes,
            edges={source: targets[0] for source, targets in self._edges.items()},
            conditional_edges={
                source: edges[0] for source, edges in self._conditional_edges.items()
            },
            entry=self._entry or "",
        )

    @staticmethod
    def _find_reachable(graph: Graph) -> set[str]:
        """Names reachable from the entry, END included when reachable."""
        reachable: set[str] = set()
        to_visit = [graph.entry()]

        while to_visit:
            name = to_visit.pop()
            if name in reachable:
                continue
            reachable.add(name)
            if name != END:
                to_visit.extend(graph.successors(name))

        return reachable
