"""Agents: Researcher, Chart Generator and the single Search Assistant."""
from .assistant import SearchAssistant
from .base import Agent, AgentOutput, FinalAnswer, ToolInvocation, ToolRequest, classify_response
from .chart_agent import ChartGeneratorAgent
from .researcher import ResearcherAgent

__all__ = [
    "Agent",
    "AgentOutput",
    "ChartGeneratorAgent",
    "FinalAnswer",
    "ResearcherAgent",
    "SearchAssistant",
    "ToolInvocation",
    "ToolRequest",
    "classify_response",
]
