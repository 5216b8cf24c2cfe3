"""Run one of the example graphs from the command line and print the conversation.

    python -m research_crew.demo single "What is LangGraph??"
    python -m research_crew.demo research "Research the US primaries in 2024, then chart the delegate counts"
    python -m research_crew.demo single --runtime langgraph
"""
import argparse
import asyncio
import sys

from langchain_core.messages import HumanMessage
from langgraph.errors import GraphRecursionError

from research_crew.config import get_settings
from research_crew.errors import ConfigurationError, StepLimitExceeded
from research_crew.graph.graph import GRAPH_FACTORIES, RESEARCH_GRAPH, SINGLE_AGENT_GRAPH
from research_crew.graph.langgraph_export import to_langgraph
from research_crew.graph.state import INITIAL_SENDER
from research_crew.logging import setup_logging

DEFAULT_QUESTIONS = {
    SINGLE_AGENT_GRAPH: "What is LangGraph??",
    RESEARCH_GRAPH: "Research the US primaries in 2024 and chart the results.",
}

RUNTIMES = ("native", "langgraph")


def print_messages(messages) -> None:
    for message in messages:
        speaker = getattr(message, "name", None) or message.type
        print(f"[{speaker}] {message.content}")
        for call in getattr(message, "tool_calls", None) or []:
            print(f"  -> {call['name']}({call.get('args', {})})")
        print("-------------")


async def main(
    graph_name: str,
    question: str,
    thread_id: str,
    max_steps: int | None,
    runtime: str = "native",
) -> int:
    graph = GRAPH_FACTORIES[graph_name]()
    if runtime == "langgraph":
        app = to_langgraph(graph.definition)
        config = {
            "configurable": {"thread_id": thread_id},
            "recursion_limit": max_steps or graph.max_steps,
        }
        try:
            state = await app.ainvoke(
                {"messages": [HumanMessage(content=question)], "sender": INITIAL_SENDER},
                config,
            )
        except GraphRecursionError as e:
            print(f"Stopped: {e}", file=sys.stderr)
            return 1
        print_messages(state["messages"])
        return 0

    try:
        state = await graph.run(thread_id, [HumanMessage(content=question)], max_steps=max_steps)
    except StepLimitExceeded as e:
        print_messages(e.state["messages"])
        print(f"Stopped: {e}", file=sys.stderr)
        return 1
    print_messages(state["messages"])
    return 0


def cli() -> None:
    parser = argparse.ArgumentParser(description="Run a research crew example graph")
    parser.add_argument("graph", choices=sorted(GRAPH_FACTORIES))
    parser.add_argument("question", nargs="?", help="User question (defaults to the example question)")
    parser.add_argument("--thread-id", default="42")
    parser.add_argument("--max-steps", type=int, default=None)
    parser.add_argument("--runtime", choices=RUNTIMES, default="native", help="Run loop to execute the graph with")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(log_level=settings.log_level, log_format=settings.log_format)

    question = args.question or DEFAULT_QUESTIONS[args.graph]
    try:
        code = asyncio.run(main(args.graph, question, args.thread_id, args.max_steps, args.runtime))
    except ConfigurationError as e:
        parser.error(str(e))
    sys.exit(code)


if __name__ == "__main__":
    cli()
