"""End-to-end tests of the two shipped graphs with scripted models."""
import json

import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from research_crew.agents import ChartGeneratorAgent, ResearcherAgent, SearchAssistant
from research_crew.errors import StepLimitExceeded
from research_crew.graph.graph import CALL_TOOL_NODE, TOOLS_NODE, build_research_graph, build_single_agent_graph
from research_crew.tools import create_chart_tool, create_search_tool
from tests.fakes import FakeChatModel, FakeSearchClient, tool_call_message


def single_agent_graph(responses, **kwargs):
    search = create_search_tool(FakeSearchClient(), max_results=1)
    llm = FakeChatModel(responses)
    return build_single_agent_graph(SearchAssistant(llm, [search]), [search], **kwargs), llm


class TestSingleAgentGraph:
    @pytest.mark.asyncio
    async def test_search_then_answer(self):
        graph, llm = single_agent_graph([
            tool_call_message("web_search", {"query": "What is LangGraph??"}),
            AIMessage(content="LangGraph is a library for building stateful agents."),
        ])

        state = await graph.run("42", [HumanMessage(content="What is LangGraph??")])

        human, request, result, answer = state["messages"]
        assert request.tool_calls[0]["name"] == "web_search"
        assert isinstance(result, ToolMessage)
        assert json.loads(result.content)[0]["title"] == "LangGraph"
        assert answer.content.startswith("LangGraph is")
        assert state["sender"] == "agent"
        assert [t.name for t in llm.bound_tools] == ["web_search"]

        checkpoint = await graph.get_state("42")
        assert checkpoint.next_node is None
        assert checkpoint.step == 3

    @pytest.mark.asyncio
    async def test_unknown_tool_is_reported_back_to_the_agent(self):
        graph, llm = single_agent_graph([
            tool_call_message("foo", {}),
            AIMessage(content="I could not use that tool."),
        ])

        state = await graph.run("t", [HumanMessage(content="hi")])

        assert state["messages"][2].status == "error"
        assert "Unknown tool 'foo'" in state["messages"][2].content
        assert "Unknown tool 'foo'" in llm.calls[1][-1].content

    @pytest.mark.asyncio
    async def test_endless_tool_calls_hit_the_step_limit(self):
        graph, _ = single_agent_graph(
            [tool_call_message("web_search", {"query": "again"}, call_id=f"c{i}") for i in range(10)],
            max_steps=3,
        )

        with pytest.raises(StepLimitExceeded) as exc_info:
            await graph.run("t", [HumanMessage(content="loop")])

        assert exc_info.value.steps == 3
        assert len(exc_info.value.state["messages"]) == 4

    def test_topology(self):
        graph, _ = single_agent_graph([])
        assert graph.definition.describe()["edges"] == {
            "agent": ["__end__", TOOLS_NODE],
            TOOLS_NODE: ["agent"],
        }


def research_graph(researcher_script, chart_script, **kwargs):
    figures = []
    search = create_search_tool(FakeSearchClient(), max_results=1)
    chart = create_chart_tool(figures.append)
    researcher_llm = FakeChatModel(researcher_script)
    chart_llm = FakeChatModel(chart_script)
    graph = build_research_graph(
        ResearcherAgent(researcher_llm, [search]),
        ChartGeneratorAgent(chart_llm, [chart]),
        **kwargs,
    )
    return graph, figures, researcher_llm, chart_llm


class TestResearchGraph:
    @pytest.mark.asyncio
    async def test_research_then_chart(self):
        data = [{"label": "Candidate A", "value": 1215}, {"label": "Candidate B", "value": 980}]
        graph, figures, researcher_llm, chart_llm = research_graph(
            [
                tool_call_message("web_search", {"query": "2024 primaries delegates"}, call_id="r1"),
                AIMessage(content="Candidate A: 1215, Candidate B: 980"),
            ],
            [
                tool_call_message("generate_bar_chart", {"data": data}, call_id="c1"),
                AIMessage(content="FINAL ANSWER: the chart shows the delegate counts."),
            ],
        )

        state = await graph.run("42", [HumanMessage(content="Research the 2024 primaries and chart them")])

        messages = state["messages"]
        assert len(messages) == 7
        assert [m.type for m in messages] == ["human", "ai", "tool", "human", "ai", "tool", "human"]
        assert messages[3].name == "Researcher"
        assert messages[4].name == "ChartGenerator"
        assert messages[5].content == "Chart has been generated and displayed to the user!"
        assert messages[6].content.startswith("FINAL ANSWER")
        assert state["sender"] == "ChartGenerator"
        assert len(figures) == 1
        # the chart generator sees the researcher's findings
        assert "Candidate A: 1215" in chart_llm.calls[0][-1].content

    @pytest.mark.asyncio
    async def test_researcher_can_finish_alone(self):
        graph, figures, _, chart_llm = research_graph(
            [AIMessage(content="FINAL ANSWER: nothing to chart.")],
            [],
        )

        state = await graph.run("t", [HumanMessage(content="hi")])

        assert len(state["messages"]) == 2
        assert state["sender"] == "Researcher"
        assert chart_llm.calls == []
        assert figures == []

    @pytest.mark.asyncio
    async def test_agents_without_final_answer_hand_over_until_the_limit(self):
        graph, _, _, _ = research_graph(
            [AIMessage(content=f"researching {i}") for i in range(5)],
            [AIMessage(content=f"need more data {i}") for i in range(5)],
            max_steps=4,
        )

        with pytest.raises(StepLimitExceeded) as exc_info:
            await graph.run("t", [HumanMessage(content="hi")])

        names = [m.name for m in exc_info.value.state["messages"][1:]]
        assert names == ["Researcher", "ChartGenerator", "Researcher", "ChartGenerator"]

    def test_topology(self):
        graph, _, _, _ = research_graph([], [])
        edges = graph.definition.describe()["edges"]
        assert edges["Researcher"] == ["ChartGenerator", "Researcher", "__end__", CALL_TOOL_NODE]
        assert edges[CALL_TOOL_NODE] == ["ChartGenerator", "Researcher"]
        assert graph.definition.entry == "Researcher"
