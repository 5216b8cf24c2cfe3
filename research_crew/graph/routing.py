"""Routing results and the routing functions used by the shipped graphs.

A router is a pure function of the state. It returns a Route: either
Goto(node) or END. The orchestrator checks the destination against the set
declared for the conditional edge, so a typo in a router is an error rather
than a silent jump.
"""
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from research_crew.graph.state import last_message, message_text, pending_tool_calls

FINAL_ANSWER_MARKER = "FINAL ANSWER"


@dataclass(frozen=True)
class Goto:
    node: str


class _End:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END"


END = _End()

Route = Goto | _End
Router = Callable[[Mapping[str, Any]], Route]


def destination_name(route: Route) -> str:
    return "__end__" if route is END else route.node


def route_tools(state: Mapping[str, Any], tools_node: str = "tools") -> Route:
    """Single-agent loop: run the tools if the agent asked for any, otherwise stop."""
    if pending_tool_calls(last_message(state)):
        return Goto(tools_node)
    return END


def has_final_answer(message) -> bool:
    if message is None:
        return False
    return message_text(message.content).lstrip().startswith(FINAL_ANSWER_MARKER)


class CollaborationRouter:
    """Route after an agent step in a fixed collaboration order.

    - tool invocations pending: go to the tool node
    - reply prefixed with FINAL ANSWER: stop
    - otherwise: hand over to the next agent in the order (wrapping around)
    """

    def __init__(self, order: Sequence[str], tool_node: str = "call_tool"):
        if not order:
            raise ValueError("Collaboration order needs at least one agent")
        self.order = list(order)
        self.tool_node = tool_node

    @property
    def destinations(self) -> set[str]:
        return {*self.order, self.tool_node}

    def __call__(self, state: Mapping[str, Any]) -> Route:
        message = last_message(state)
        if pending_tool_calls(message):
            return Goto(self.tool_node)
        if has_final_answer(message):
            return END
        speaker = getattr(message, "name", None) or state.get("sender")
        if speaker not in self.order:
            return Goto(self.order[0])
        index = self.order.index(speaker)
        return Goto(self.order[(index + 1) % len(self.order)])


def route_to_sender(state: Mapping[str, Any]) -> Route:
    """After the tool node, hand control back to the agent that asked."""
    return Goto(state["sender"])
