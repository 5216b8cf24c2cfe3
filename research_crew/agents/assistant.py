"""Search Assistant: the single agent of the tool-calling loop."""
from typing import Any, Sequence

from langchain_core.tools import BaseTool

from .base import Agent
from .prompts import ASSISTANT_TEMPLATE


class SearchAssistant(Agent):
    """Answers questions on its own, searching the web when needed."""

    name = "agent"
    prompt_template = ASSISTANT_TEMPLATE
    final_answer_as_human = False

    def __init__(self, llm: Any, tools: Sequence[BaseTool], **kwargs):
        super().__init__(llm, tools, **kwargs)
