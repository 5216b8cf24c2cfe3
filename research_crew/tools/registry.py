"""
Tool registry.

Holds the tools a graph's dispatcher can execute, keyed by unique name.
"""
from typing import Iterable

from langchain_core.tools import BaseTool

from research_crew.errors import UnknownTool


class ToolRegistry:
    """
    Registry of the tools available to the dispatcher.

    Usage:
        registry = ToolRegistry([create_search_tool(client)])
        registry.add(create_chart_tool(sink))
        registry.get("web_search")
    """

    def __init__(self, tools: Iterable[BaseTool] = ()):
        self._tools: dict[str, BaseTool] = {}
        for tool in tools:
            self.add(tool)

    def add(self, tool: BaseTool) -> BaseTool:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        return tool

    def get(self, name: str) -> BaseTool:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name, self.names()) from None

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> list[str]:
        return list(self._tools)
