"""Tool node: runs the tool invocations requested by the last agent message."""
import asyncio
import json
import time
from typing import Any, Iterable, Mapping, Union

import structlog
from langchain_core.messages import ToolMessage
from langchain_core.tools import BaseTool
from pydantic import BaseModel, ValidationError

from research_crew.errors import (
    InvalidStateUpdate,
    InvalidToolArguments,
    ToolError,
    ToolExecutionError,
)
from research_crew.graph.state import last_message, pending_tool_calls
from research_crew.logging import summarize
from research_crew.tools.registry import ToolRegistry

logger = structlog.get_logger(__name__)


class ToolDispatcher:
    """Executes pending tool calls and returns their results as tool messages.

    Calls in one batch run concurrently; the returned messages keep the order
    in which the agent requested them.

    With ``handle_tool_errors=False`` an unknown tool, invalid arguments or a
    failing handler raises and nothing is merged. With ``True`` the failure is
    reported back to the agent as a tool message with ``status="error"``.
    """

    def __init__(
        self,
        tools: Union[ToolRegistry, Iterable[BaseTool]],
        *,
        handle_tool_errors: bool = False,
    ):
        self.registry = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        self.handle_tool_errors = handle_tool_errors

    async def ainvoke(self, state: Mapping[str, Any]) -> dict:
        calls = pending_tool_calls(last_message(state))
        if not calls:
            raise InvalidStateUpdate("Tool node reached without pending tool invocations")

        logger.info("tool_dispatch", tools=[call["name"] for call in calls])

        # Every call is looked up and validated before any handler runs.
        planned = []
        for call in calls:
            try:
                planned.append(self._resolve(call))
            except ToolError as e:
                if not self.handle_tool_errors:
                    raise
                planned.append(e)

        results = await asyncio.gather(
            *(self._dispatch(call, plan) for call, plan in zip(calls, planned)),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return {"messages": list(results)}

    def _resolve(self, call: dict) -> tuple:
        tool = self.registry.get(call.get("name"))
        return tool, _validate_args(tool, call.get("args"))

    async def _dispatch(self, call: dict, plan: Any) -> ToolMessage:
        try:
            if isinstance(plan, ToolError):
                raise plan
            tool, args = plan
            return await self._execute(call, tool, args)
        except ToolError as e:
            if not self.handle_tool_errors:
                raise
            logger.warning("tool_failed", tool_name=call.get("name"), error=str(e))
            return ToolMessage(
                content=f"Error: {e}. Please fix your request and try again.",
                tool_call_id=call.get("id") or "",
                name=call.get("name"),
                status="error",
            )

    async def _execute(self, call: dict, tool: BaseTool, args: dict) -> ToolMessage:
        name = tool.name
        started = time.perf_counter()
        try:
            result = await tool.ainvoke(args)
        except Exception as e:
            raise ToolExecutionError(name, str(e)) from e
        duration_ms = (time.perf_counter() - started) * 1000

        logger.info(
            "tool_execution",
            tool_name=name,
            input_data=summarize(args, 150),
            output_data=summarize(result),
            duration_ms=round(duration_ms, 2),
        )
        return ToolMessage(
            content=_as_content(result),
            tool_call_id=call.get("id") or "",
            name=name,
        )


def _validate_args(tool: BaseTool, args: Any) -> dict:
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise InvalidToolArguments(tool.name, f"expected an object, got {type(args).__name__}")
    schema = tool.args_schema
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        try:
            schema.model_validate(args)
        except ValidationError as e:
            raise InvalidToolArguments(tool.name, str(e)) from e
    return args


def _as_content(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str, ensure_ascii=False)
