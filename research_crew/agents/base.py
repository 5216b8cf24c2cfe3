"""Agent: a chat model bound to a tool subset and a system directive.

An agent is stateless. Each call reads the conversation from the graph
state, asks the model for the next turn, and returns a delta naming itself
as the sender.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

import structlog
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_core.tools import BaseTool

from research_crew.agents.prompts import COLLABORATION_TEMPLATE, build_agent_prompt
from research_crew.errors import ModelCallError
from research_crew.graph.state import message_text
from research_crew.logging import summarize

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    args: dict
    id: Optional[str] = None


@dataclass(frozen=True)
class FinalAnswer:
    text: str
    message: BaseMessage


@dataclass(frozen=True)
class ToolRequest:
    invocations: tuple
    message: AIMessage


AgentOutput = Union[FinalAnswer, ToolRequest]


def classify_response(response: BaseMessage) -> AgentOutput:
    """Decide once whether the model answered or asked for tools."""
    tool_calls = getattr(response, "tool_calls", None) or []
    if tool_calls:
        invocations = tuple(
            ToolInvocation(name=call["name"], args=dict(call.get("args") or {}), id=call.get("id"))
            for call in tool_calls
        )
        return ToolRequest(invocations=invocations, message=response)
    return FinalAnswer(text=message_text(response.content), message=response)


class Agent:
    """Base agent. Subclasses set ``name`` and ``system_prompt``."""

    name: str = "agent"
    system_prompt: str = ""
    prompt_template: str = COLLABORATION_TEMPLATE
    # Collaborating agents hand their answer to the next agent as a human turn.
    final_answer_as_human = True
    is_agent = True

    def __init__(
        self,
        llm: Any,
        tools: Sequence[BaseTool] = (),
        *,
        name: Optional[str] = None,
        system_prompt: Optional[str] = None,
        prompt_template: Optional[str] = None,
    ):
        if name is not None:
            self.name = name
        if system_prompt is not None:
            self.system_prompt = system_prompt
        if prompt_template is not None:
            self.prompt_template = prompt_template

        self.tools = tuple(tools)
        self.prompt = build_agent_prompt(
            self.prompt_template,
            self.system_prompt,
            [tool.name for tool in self.tools],
        )
        self._model = llm.bind_tools(list(self.tools)) if self.tools else llm

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self.tools]

    async def ainvoke(self, state: Mapping[str, Any]) -> dict:
        """Run one turn and return ``{"messages": [reply], "sender": name}``."""
        prompt_value = await self.prompt.ainvoke({"messages": list(state["messages"])})
        try:
            response = await self._model.ainvoke(prompt_value.to_messages())
        except Exception as e:
            logger.error("model_call_failed", agent_name=self.name, error=str(e))
            raise ModelCallError(self.name, str(e)) from e

        output = classify_response(response)
        logger.info(
            "agent_invoked",
            agent_name=self.name,
            output=type(output).__name__,
            tools=[i.name for i in output.invocations] if isinstance(output, ToolRequest) else [],
            preview=summarize(output.text, 100) if isinstance(output, FinalAnswer) else "",
        )
        return {"messages": [self.to_message(output)], "sender": self.name}

    def to_message(self, output: AgentOutput) -> BaseMessage:
        """Name the reply after the agent; final answers may be re-expressed as a human turn."""
        if isinstance(output, FinalAnswer) and self.final_answer_as_human:
            return HumanMessage(content=output.message.content, name=self.name)
        return output.message.model_copy(update={"name": self.name})
