"""State schema for the conversation graphs.

Every node receives the full conversation state and returns a delta. The
orchestrator merges each delta field by field, using the reducer declared for
that field in the merge-policy table below:

- messages: concatenation. New messages are appended, never replacing earlier
  ones.
- sender: last write wins. Only agent steps supply it, so after a tool step it
  still names the agent that asked for the tools.
"""
from dataclasses import dataclass
from typing import Any, Callable, Mapping, TypedDict

from langchain_core.messages import BaseMessage

from research_crew.errors import InvalidStateUpdate

INITIAL_SENDER = "user"


class ConversationState(TypedDict):
    """State shared across all nodes in the graph."""

    messages: list[BaseMessage]
    # Name of the agent that produced the most recent agent message.
    sender: str


Reducer = Callable[[Any, Any], Any]


def concat(current: list, update: Any) -> list:
    if isinstance(update, (list, tuple)):
        return list(current) + list(update)
    return list(current) + [update]


def last_write_wins(current: Any, update: Any) -> Any:
    return current if update is None else update


@dataclass(frozen=True)
class FieldPolicy:
    reducer: Reducer
    default: Callable[[], Any]


class StateSchema:
    """Per-field merge-policy table applied generically to every delta."""

    def __init__(self, fields: Mapping[str, FieldPolicy]):
        self.fields = dict(fields)

    def initial(self) -> dict[str, Any]:
        return {name: policy.default() for name, policy in self.fields.items()}

    def merge(self, state: Mapping[str, Any], delta: Mapping[str, Any] | None) -> dict[str, Any]:
        """Return a new state with the delta folded in; the input state is left untouched."""
        if delta is None:
            return dict(state)
        if not isinstance(delta, Mapping):
            raise InvalidStateUpdate(f"Step returned {type(delta).__name__}, expected a mapping")

        unknown = set(delta) - set(self.fields)
        if unknown:
            raise InvalidStateUpdate(f"Unknown state fields in delta: {sorted(unknown)}")

        merged = dict(state)
        for name, update in delta.items():
            policy = self.fields[name]
            current = merged.get(name)
            if current is None:
                current = policy.default()
            merged[name] = policy.reducer(current, update)
        return merged


CONVERSATION_SCHEMA = StateSchema(
    {
        "messages": FieldPolicy(reducer=concat, default=list),
        "sender": FieldPolicy(reducer=last_write_wins, default=lambda: INITIAL_SENDER),
    }
)


def last_message(state: Mapping[str, Any]) -> BaseMessage | None:
    messages = state.get("messages") or []
    return messages[-1] if messages else None


def pending_tool_calls(message: BaseMessage | None) -> list[dict]:
    """Tool invocations a message is still waiting on (empty for non-AI messages)."""
    if message is None:
        return []
    return list(getattr(message, "tool_calls", None) or [])


def message_text(content: Any) -> str:
    """Text of a message body, whether a plain string or a list of content blocks."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)
