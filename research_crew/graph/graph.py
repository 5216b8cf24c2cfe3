"""Build and compile the two example graphs.

Single agent:

    START -> agent -> (tool calls?) -> tools -> agent ... -> END

Research collaboration:

    START -> Researcher -> (tool calls?) -> call_tool -> back to sender
                       -> (FINAL ANSWER?) -> END
                       -> otherwise -> ChartGenerator -> ... (same rules)

Agents and tools are passed in; create_*_graph() wires the production ones
from settings.
"""
from functools import partial
from typing import Optional, Sequence

from langchain_core.tools import BaseTool
from langchain_openai import ChatOpenAI

from research_crew.agents import Agent, ChartGeneratorAgent, ResearcherAgent, SearchAssistant
from research_crew.config import Settings, get_settings
from research_crew.errors import ConfigurationError
from research_crew.graph.checkpoint import CheckpointStore
from research_crew.graph.orchestrator import START, CompiledGraph, GraphBuilder
from research_crew.graph.routing import END, CollaborationRouter, route_to_sender, route_tools
from research_crew.tools import HtmlChartSink, ToolDispatcher, ToolRegistry, create_chart_tool, create_search_tool

TOOLS_NODE = "tools"
CALL_TOOL_NODE = "call_tool"

SINGLE_AGENT_GRAPH = "single"
RESEARCH_GRAPH = "research"


def build_single_agent_graph(
    agent: Agent,
    tools: Sequence[BaseTool],
    *,
    checkpointer: Optional[CheckpointStore] = None,
    max_steps: int = 25,
    step_timeout: Optional[float] = None,
) -> CompiledGraph:
    """Tool-calling loop around one agent."""
    builder = GraphBuilder()

    builder.add_node(agent.name, agent)
    builder.add_node(TOOLS_NODE, ToolDispatcher(tools, handle_tool_errors=True))
    builder.add_edge(START, agent.name)
    builder.add_conditional_edges(
        agent.name,
        partial(route_tools, tools_node=TOOLS_NODE),
        [TOOLS_NODE, END],
    )
    builder.add_edge(TOOLS_NODE, agent.name)

    return builder.compile(checkpointer, max_steps=max_steps, step_timeout=step_timeout)


def build_research_graph(
    researcher: Agent,
    chart_generator: Agent,
    *,
    checkpointer: Optional[CheckpointStore] = None,
    max_steps: int = 25,
    step_timeout: Optional[float] = None,
) -> CompiledGraph:
    """Researcher and chart generator taking turns, sharing one tool node."""
    registry = ToolRegistry()
    for agent in (researcher, chart_generator):
        for tool in agent.tools:
            if tool.name not in registry:
                registry.add(tool)

    order = [researcher.name, chart_generator.name]
    router = CollaborationRouter(order, tool_node=CALL_TOOL_NODE)

    builder = GraphBuilder()
    builder.add_node(researcher.name, researcher)
    builder.add_node(chart_generator.name, chart_generator)
    builder.add_node(CALL_TOOL_NODE, ToolDispatcher(registry, handle_tool_errors=True))
    builder.add_edge(START, researcher.name)
    for name in order:
        builder.add_conditional_edges(name, router, [*router.destinations, END])
    builder.add_conditional_edges(CALL_TOOL_NODE, route_to_sender, order)

    return builder.compile(checkpointer, max_steps=max_steps, step_timeout=step_timeout)


def _require_keys(settings: Settings) -> None:
    missing = settings.validate_keys()
    if missing:
        raise ConfigurationError(missing)


def _get_llm(settings: Settings) -> ChatOpenAI:
    return ChatOpenAI(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        temperature=settings.openai_temperature,
    )


def create_single_agent_graph(settings: Optional[Settings] = None, **kwargs) -> CompiledGraph:
    settings = settings or get_settings()
    _require_keys(settings)
    search = create_search_tool(api_key=settings.tavily_api_key, max_results=settings.search_max_results)
    agent = SearchAssistant(_get_llm(settings), [search])
    return build_single_agent_graph(
        agent,
        [search],
        max_steps=settings.max_steps,
        step_timeout=settings.step_timeout_seconds,
        **kwargs,
    )


def create_research_graph(settings: Optional[Settings] = None, **kwargs) -> CompiledGraph:
    settings = settings or get_settings()
    _require_keys(settings)
    llm = _get_llm(settings)
    search = create_search_tool(api_key=settings.tavily_api_key, max_results=settings.search_max_results)
    chart = create_chart_tool(HtmlChartSink(settings.chart_output_dir))
    return build_research_graph(
        ResearcherAgent(llm, [search]),
        ChartGeneratorAgent(llm, [chart]),
        max_steps=settings.max_steps,
        step_timeout=settings.step_timeout_seconds,
        **kwargs,
    )


GRAPH_FACTORIES = {
    SINGLE_AGENT_GRAPH: create_single_agent_graph,
    RESEARCH_GRAPH: create_research_graph,
}

# One compiled instance per graph name for the API.
_compiled: dict[str, CompiledGraph] = {}


def get_compiled_graph(name: str) -> CompiledGraph:
    """Return the named compiled graph, building it once."""
    if name not in GRAPH_FACTORIES:
        raise KeyError(f"Unknown graph '{name}'. Choose from: {sorted(GRAPH_FACTORIES)}")
    if name not in _compiled:
        _compiled[name] = GRAPH_FACTORIES[name]()
    return _compiled[name]
