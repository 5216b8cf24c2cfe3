"""System prompts for the agents."""
from typing import Sequence

from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

COLLABORATION_TEMPLATE = (
    "You are a helpful AI assistant, collaborating with other assistants."
    " Use the provided tools to progress towards answering the question."
    " If you are unable to fully answer, that's OK, another assistant with different tools"
    " will help where you left off. Execute what you can to make progress."
    " If you or any of the other assistants have the final answer or deliverable,"
    " prefix your response with FINAL ANSWER so the team knows to stop."
    " You have access to the following tools: {tool_names}.\n{system_message}"
)

ASSISTANT_TEMPLATE = (
    "You are a helpful research assistant."
    " Use the search tool whenever the question needs current information,"
    " then answer the user directly."
    " You have access to the following tools: {tool_names}.\n{system_message}"
)

RESEARCHER_SYSTEM = "You should provide accurate data for the chart generator to use."

CHART_GENERATOR_SYSTEM = "Any charts you display will be visible by the user."


def build_agent_prompt(
    template: str,
    system_message: str,
    tool_names: Sequence[str],
) -> ChatPromptTemplate:
    """System directive followed by the whole conversation so far."""
    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", template),
            MessagesPlaceholder(variable_name="messages"),
        ]
    )
    return prompt.partial(
        system_message=system_message,
        tool_names=", ".join(tool_names) or "none",
    )
