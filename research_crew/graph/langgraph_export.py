"""Compile a graph definition into a LangGraph StateGraph.

Same nodes, edges and reducers, run by LangGraph's runtime instead of
CompiledGraph, with LangGraph's MemorySaver keyed by ``thread_id``:

    app = to_langgraph(graph.definition)
    await app.ainvoke(
        {"messages": [HumanMessage("What is LangGraph??")], "sender": "user"},
        {"configurable": {"thread_id": "42"}},
    )
"""
import operator
from typing import Annotated, Any, Optional, TypedDict

from langchain_core.messages import BaseMessage
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END as LANGGRAPH_END
from langgraph.graph import START as LANGGRAPH_START
from langgraph.graph import StateGraph

from research_crew.graph.orchestrator import FixedEdge, GraphDefinition, call_step
from research_crew.graph.routing import END, destination_name


class LangGraphState(TypedDict):
    # Plain concatenation; no id-based replacement as with add_messages.
    messages: Annotated[list[BaseMessage], operator.add]
    sender: str


def _node(step: Any):
    async def run_step(state: LangGraphState) -> dict:
        return await call_step(step, dict(state))
    return run_step


def _router(router):
    def route(state: LangGraphState) -> str:
        return destination_name(router(dict(state)))
    return route


def _target(route) -> str:
    return LANGGRAPH_END if route is END else route.node


def to_langgraph(definition: GraphDefinition, checkpointer: Optional[Any] = None):
    """Return a compiled LangGraph graph equivalent to ``definition``."""
    builder = StateGraph(LangGraphState)

    for name, step in definition.nodes.items():
        builder.add_node(name, _node(step))
    builder.add_edge(LANGGRAPH_START, definition.entry)

    for source, edge in definition.edges.items():
        if isinstance(edge, FixedEdge):
            builder.add_edge(source, _target(edge.target))
        else:
            path_map = {destination_name(d): _target(d) for d in edge.destinations}
            builder.add_conditional_edges(source, _router(edge.router), path_map)

    return builder.compile(checkpointer=checkpointer if checkpointer is not None else MemorySaver())
