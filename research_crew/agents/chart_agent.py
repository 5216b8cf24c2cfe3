"""Chart Generator: turns the researcher's figures into charts for the user."""
from typing import Any, Sequence

from langchain_core.tools import BaseTool

from .base import Agent
from .prompts import CHART_GENERATOR_SYSTEM


class ChartGeneratorAgent(Agent):
    """Agent that draws charts; whatever it displays is visible to the user."""

    name = "ChartGenerator"
    system_prompt = CHART_GENERATOR_SYSTEM

    def __init__(self, llm: Any, tools: Sequence[BaseTool], **kwargs):
        super().__init__(llm, tools, **kwargs)
