"""Tests for the conversation state schema and its reducers."""
import pytest
from langchain_core.messages import AIMessage, HumanMessage

from research_crew.errors import InvalidStateUpdate
from research_crew.graph.state import (
    CONVERSATION_SCHEMA,
    INITIAL_SENDER,
    concat,
    last_message,
    last_write_wins,
    pending_tool_calls,
)
from tests.fakes import tool_call_message


class TestReducers:
    def test_concat_appends_lists_and_single_values(self):
        assert concat([1], [2, 3]) == [1, 2, 3]
        assert concat([1], 2) == [1, 2]

    def test_last_write_wins_ignores_none(self):
        assert last_write_wins("Researcher", "ChartGenerator") == "ChartGenerator"
        assert last_write_wins("Researcher", None) == "Researcher"


class TestConversationSchema:
    def test_initial_state(self):
        state = CONVERSATION_SCHEMA.initial()
        assert state == {"messages": [], "sender": INITIAL_SENDER}

    def test_merge_appends_messages_and_overwrites_sender(self):
        first = HumanMessage(content="Research X")
        reply = AIMessage(content="Done", name="Researcher")
        state = {"messages": [first], "sender": "user"}

        merged = CONVERSATION_SCHEMA.merge(state, {"messages": [reply], "sender": "Researcher"})

        assert merged["messages"] == [first, reply]
        assert merged["sender"] == "Researcher"

    def test_merge_without_sender_keeps_previous_sender(self):
        state = {"messages": [HumanMessage(content="hi")], "sender": "Researcher"}
        merged = CONVERSATION_SCHEMA.merge(state, {"messages": [AIMessage(content="tool output")]})
        assert merged["sender"] == "Researcher"
        assert len(merged["messages"]) == 2

    def test_merge_does_not_mutate_input_state(self):
        messages = [HumanMessage(content="hi")]
        state = {"messages": messages, "sender": "user"}
        CONVERSATION_SCHEMA.merge(state, {"messages": [AIMessage(content="hello")]})
        assert len(messages) == 1
        assert state["messages"] is messages

    def test_merge_rejects_unknown_fields(self):
        with pytest.raises(InvalidStateUpdate, match="next_agent"):
            CONVERSATION_SCHEMA.merge(CONVERSATION_SCHEMA.initial(), {"next_agent": "x"})

    def test_merge_rejects_non_mapping_delta(self):
        with pytest.raises(InvalidStateUpdate):
            CONVERSATION_SCHEMA.merge(CONVERSATION_SCHEMA.initial(), ["not", "a", "delta"])

    def test_merge_none_delta_is_noop(self):
        state = CONVERSATION_SCHEMA.initial()
        assert CONVERSATION_SCHEMA.merge(state, None) == state


class TestMessageHelpers:
    def test_last_message(self):
        assert last_message({"messages": []}) is None
        msg = HumanMessage(content="hi")
        assert last_message({"messages": [msg]}) is msg

    def test_pending_tool_calls(self):
        assert pending_tool_calls(None) == []
        assert pending_tool_calls(HumanMessage(content="hi")) == []
        calls = pending_tool_calls(tool_call_message("web_search", {"query": "X"}))
        assert [c["name"] for c in calls] == ["web_search"]
