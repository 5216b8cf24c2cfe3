"""Web search tool backed by Tavily."""
from typing import Any, Optional

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field
from tavily import TavilyClient

SEARCH_TOOL_NAME = "web_search"


class SearchInput(BaseModel):
    query: str = Field(..., min_length=1, description="What to look up on the web")


def create_search_tool(
    client: Optional[Any] = None,
    *,
    api_key: Optional[str] = None,
    max_results: int = 5,
) -> StructuredTool:
    """Build the web search tool.

    ``client`` is anything with Tavily's ``search(query=..., max_results=...)``
    method; when omitted a ``TavilyClient`` is created from ``api_key``.
    """
    search_client = client if client is not None else TavilyClient(api_key=api_key)

    def web_search(query: str) -> list[dict]:
        response = search_client.search(query=query, max_results=max_results)
        return [
            {
                "title": item.get("title", ""),
                "url": item.get("url", ""),
                "content": item.get("content", ""),
            }
            for item in (response or {}).get("results", [])
        ]

    return StructuredTool.from_function(
        func=web_search,
        name=SEARCH_TOOL_NAME,
        description=(
            "Search the web for current information. "
            "Returns a list of results with title, url and content."
        ),
        args_schema=SearchInput,
    )
