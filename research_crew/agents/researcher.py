"""Researcher: searches the web and gathers data for the chart generator."""
from typing import Any, Sequence

from langchain_core.tools import BaseTool

from .base import Agent
from .prompts import RESEARCHER_SYSTEM


class ResearcherAgent(Agent):
    """Agent that looks things up and reports accurate figures."""

    name = "Researcher"
    system_prompt = RESEARCHER_SYSTEM

    def __init__(self, llm: Any, tools: Sequence[BaseTool], **kwargs):
        super().__init__(llm, tools, **kwargs)
