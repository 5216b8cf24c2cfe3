"""Stand-ins for the chat model and the search client."""
from typing import Any, Callable, Optional

from langchain_core.messages import AIMessage
from langchain_core.tools import StructuredTool


class FakeChatModel:
    """Replays scripted responses. An exception in the script is raised instead."""

    def __init__(self, responses: list):
        self._responses = list(responses)
        self.calls: list[list] = []
        self.bound_tools: Optional[list] = None

    def bind_tools(self, tools: list) -> "FakeChatModel":
        self.bound_tools = list(tools)
        return self

    async def ainvoke(self, messages: list, config: Any = None) -> AIMessage:
        self.calls.append(list(messages))
        if not self._responses:
            raise AssertionError("FakeChatModel ran out of scripted responses")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(messages)
        return response


class FakeSearchClient:
    """Mimics TavilyClient.search."""

    def __init__(self, results: Optional[list[dict]] = None):
        self.results = results if results is not None else [
            {"title": "LangGraph", "url": "https://example.com/langgraph", "content": "A graph library", "score": 0.9},
        ]
        self.queries: list[tuple[str, int]] = []

    def search(self, query: str, max_results: int = 5, **kwargs) -> dict:
        self.queries.append((query, max_results))
        return {"query": query, "results": self.results[:max_results]}


def tool_call_message(tool_name: str, args: dict, call_id: str = "call_1", **kwargs) -> AIMessage:
    return AIMessage(content="", tool_calls=[{"name": tool_name, "args": args, "id": call_id}], **kwargs)


def multi_tool_call_message(calls: list[tuple[str, dict, str]]) -> AIMessage:
    return AIMessage(
        content="",
        tool_calls=[{"name": name, "args": args, "id": call_id} for name, args, call_id in calls],
    )


def make_tool(name: str, func: Optional[Callable] = None, *, coroutine: Optional[Callable] = None, **kwargs) -> StructuredTool:
    return StructuredTool.from_function(
        func=func,
        coroutine=coroutine,
        name=name,
        description=kwargs.pop("description", f"Test tool {name}"),
        **kwargs,
    )
