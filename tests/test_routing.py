"""Tests for routing results and routing functions."""
import pytest
from langchain_core.messages import AIMessage, HumanMessage

from research_crew.graph.routing import (
    END,
    CollaborationRouter,
    Goto,
    destination_name,
    route_to_sender,
    route_tools,
)
from tests.fakes import tool_call_message


def state_with(message, sender="user"):
    return {"messages": [HumanMessage(content="question"), message], "sender": sender}


class TestRouteTools:
    def test_tool_calls_go_to_tools(self):
        assert route_tools(state_with(tool_call_message("web_search", {"query": "X"}))) == Goto("tools")

    def test_custom_tools_node(self):
        state = state_with(tool_call_message("web_search", {"query": "X"}))
        assert route_tools(state, tools_node="call_tool") == Goto("call_tool")

    def test_plain_answer_ends(self):
        assert route_tools(state_with(AIMessage(content="LangGraph is a library"))) is END

    def test_same_last_message_same_route(self):
        message = tool_call_message("web_search", {"query": "X"})
        a = {"messages": [HumanMessage(content="one"), message], "sender": "agent"}
        b = {"messages": [HumanMessage(content="two"), AIMessage(content="x"), message], "sender": "user"}
        assert route_tools(a) == route_tools(b)


class TestCollaborationRouter:
    router = CollaborationRouter(["Researcher", "ChartGenerator"])

    def test_tool_calls_go_to_tool_node(self):
        message = tool_call_message("web_search", {"query": "X"}, name="Researcher")
        assert self.router(state_with(message, "Researcher")) == Goto("call_tool")

    def test_final_answer_prefix_ends(self):
        message = HumanMessage(content="FINAL ANSWER: the chart is above", name="ChartGenerator")
        assert self.router(state_with(message, "ChartGenerator")) is END

    def test_final_answer_prefix_after_whitespace(self):
        message = HumanMessage(content="\n FINAL ANSWER done", name="Researcher")
        assert self.router(state_with(message, "Researcher")) is END

    def test_final_answer_in_content_blocks_ends(self):
        message = HumanMessage(content=[{"type": "text", "text": "FINAL ANSWER: done"}], name="Researcher")
        assert self.router(state_with(message, "Researcher")) is END

    def test_marker_in_the_middle_does_not_end(self):
        message = HumanMessage(content="Not yet the FINAL ANSWER", name="Researcher")
        assert self.router(state_with(message, "Researcher")) == Goto("ChartGenerator")

    def test_hands_over_in_order(self):
        from_researcher = HumanMessage(content="Data: A=1", name="Researcher")
        from_chart = HumanMessage(content="Need more data", name="ChartGenerator")
        assert self.router(state_with(from_researcher, "Researcher")) == Goto("ChartGenerator")
        assert self.router(state_with(from_chart, "ChartGenerator")) == Goto("Researcher")

    def test_unknown_speaker_starts_at_first_agent(self):
        assert self.router(state_with(HumanMessage(content="hi"), "user")) == Goto("Researcher")

    def test_destinations(self):
        assert self.router.destinations == {"Researcher", "ChartGenerator", "call_tool"}

    def test_requires_an_agent(self):
        with pytest.raises(ValueError):
            CollaborationRouter([])


class TestRouteToSender:
    def test_returns_to_sender(self):
        state = {"messages": [AIMessage(content="tool result")], "sender": "ChartGenerator"}
        assert route_to_sender(state) == Goto("ChartGenerator")


def test_destination_names():
    assert destination_name(END) == "__end__"
    assert destination_name(Goto("tools")) == "tools"
    assert repr(END) == "END"
