"""Error taxonomy for agents, tools, and the orchestrator."""
from typing import Any


class ResearchCrewError(Exception):
    """Base class for every error raised by research_crew."""


class GraphDefinitionError(ResearchCrewError):
    """The graph is malformed, or a router picked an undeclared destination."""


class InvalidStateUpdate(ResearchCrewError):
    """A step returned a delta the state schema cannot merge."""


class ModelCallError(ResearchCrewError):
    """The language model call failed (network, auth, rate limit...)."""

    def __init__(self, agent: str, message: str):
        super().__init__(f"{agent}: {message}")
        self.agent = agent


class ToolError(ResearchCrewError):
    """Base class for dispatcher-local tool failures."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(message)
        self.tool_name = tool_name


class UnknownTool(ToolError):
    def __init__(self, tool_name: str, available: list[str] | None = None):
        known = ", ".join(available or []) or "none"
        super().__init__(tool_name, f"Unknown tool '{tool_name}'. Available tools: {known}")


class InvalidToolArguments(ToolError):
    def __init__(self, tool_name: str, detail: str):
        super().__init__(tool_name, f"Invalid arguments for tool '{tool_name}': {detail}")


class ToolExecutionError(ToolError):
    def __init__(self, tool_name: str, detail: str):
        super().__init__(tool_name, f"Tool '{tool_name}' failed: {detail}")


class RunStopped(ResearchCrewError):
    """A run ended before reaching END. Carries the state as of the last merged step."""

    def __init__(self, message: str, state: dict[str, Any], steps: int):
        super().__init__(message)
        self.state = state
        self.steps = steps


class StepLimitExceeded(RunStopped):
    def __init__(self, limit: int, state: dict[str, Any], steps: int):
        super().__init__(f"Step limit of {limit} exceeded", state, steps)
        self.limit = limit


class RunAborted(RunStopped):
    def __init__(self, state: dict[str, Any], steps: int):
        super().__init__("Run aborted by caller", state, steps)


class StepTimeout(ResearchCrewError):
    """A node did not produce its delta within the configured timeout."""

    def __init__(self, node: str, timeout: float):
        super().__init__(f"Step '{node}' timed out after {timeout}s")
        self.node = node
        self.timeout = timeout


class CheckpointError(ResearchCrewError):
    """The checkpoint store failed to load or persist a thread's state."""

    def __init__(self, thread_id: str, message: str):
        super().__init__(f"Checkpoint error for thread '{thread_id}': {message}")
        self.thread_id = thread_id


class RunPending(ResearchCrewError):
    """The thread's previous run stopped before END; resume it before starting a new turn."""

    def __init__(self, thread_id: str, next_node: str):
        super().__init__(
            f"Thread '{thread_id}' has an unfinished run (next node '{next_node}'); resume it first"
        )
        self.thread_id = thread_id
        self.next_node = next_node


class ConfigurationError(ResearchCrewError):
    """Required settings are missing."""

    def __init__(self, missing: list[str]):
        super().__init__(f"Missing settings: {', '.join(missing)}")
        self.missing = missing
