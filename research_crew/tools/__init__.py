"""Tools agents can call: web search and bar charts, plus the registry and dispatcher."""
from .chart import HtmlChartSink, build_bar_chart, create_chart_tool
from .dispatcher import ToolDispatcher
from .registry import ToolRegistry
from .search import create_search_tool

__all__ = [
    "HtmlChartSink",
    "ToolDispatcher",
    "ToolRegistry",
    "build_bar_chart",
    "create_chart_tool",
    "create_search_tool",
]
