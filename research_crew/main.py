"""FastAPI application: run the research crew graphs per conversation thread.

Each thread keeps its conversation in the graph's checkpoint store, so
posting again to the same thread id continues the conversation.
"""
from contextlib import asynccontextmanager
from typing import Callable, Literal

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from langchain_core.messages import BaseMessage, HumanMessage
from pydantic import BaseModel, Field

from research_crew.config import get_settings
from research_crew.errors import (
    ConfigurationError,
    ModelCallError,
    ResearchCrewError,
    RunPending,
    StepLimitExceeded,
    StepTimeout,
)
from research_crew.graph.graph import GRAPH_FACTORIES, RESEARCH_GRAPH, get_compiled_graph
from research_crew.graph.orchestrator import CompiledGraph
from research_crew.graph.state import message_text
from research_crew.logging import setup_logging

# ---------------------------------------------------------------------------
# Request/Response models
# ---------------------------------------------------------------------------

GraphName = Literal["single", "research"]


class RunRequest(BaseModel):
    """Request body for one conversation turn."""

    input: str = Field(..., description="User message for this turn")
    graph: GraphName = Field(RESEARCH_GRAPH, description="'single' (search loop) or 'research' (researcher + chart generator)")
    max_steps: int | None = Field(None, ge=1, description="Override the configured step limit")


class MessageRecord(BaseModel):
    """One message in the conversation (for API response)."""

    role: str  # "human" | "ai" | "tool" | "system"
    name: str | None = None  # agent or tool that produced it
    content: str
    tool_calls: list[dict] = Field(default_factory=list)


class RunResponse(BaseModel):
    """Conversation after the turn."""

    thread_id: str
    graph: str
    sender: str
    output: str  # last non-tool message content
    messages: list[MessageRecord]


class ResumeRequest(BaseModel):
    """Request body for continuing an unfinished run."""

    graph: GraphName = Field(RESEARCH_GRAPH, description="Graph the thread runs on")
    max_steps: int | None = Field(None, ge=1, description="Override the configured step limit")


class ThreadResponse(BaseModel):
    thread_id: str
    graph: str
    next_node: str | None
    step: int
    messages: list[MessageRecord]


def to_record(message: BaseMessage) -> MessageRecord:
    return MessageRecord(
        role=message.type,
        name=getattr(message, "name", None),
        content=message_text(message.content),
        tool_calls=[
            {"name": call["name"], "args": call.get("args", {}), "id": call.get("id")}
            for call in getattr(message, "tool_calls", None) or []
        ],
    )


def final_output(messages: list[BaseMessage]) -> str:
    for message in reversed(messages):
        if message.type != "tool" and not getattr(message, "tool_calls", None):
            return message_text(message.content)
    return ""


GraphLoader = Callable[[str], CompiledGraph]


def get_graph_loader() -> GraphLoader:
    """Loader that compiles a graph on first request; overridden in tests."""
    return get_compiled_graph


def load_graph(loader: GraphLoader, name: str) -> CompiledGraph:
    try:
        return loader(name)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))


async def run_to_end(run) -> dict:
    """Await a graph run, mapping crew errors to HTTP errors."""
    try:
        return await run
    except StepLimitExceeded as e:
        raise HTTPException(
            status_code=422,
            detail={
                "error": str(e),
                "steps": e.steps,
                "messages": [to_record(m).model_dump() for m in e.state["messages"]],
            },
        )
    except RunPending as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ModelCallError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except StepTimeout as e:
        raise HTTPException(status_code=504, detail=str(e))
    except ResearchCrewError as e:
        raise HTTPException(status_code=500, detail=str(e))


def to_response(thread_id: str, graph_name: str, state: dict) -> RunResponse:
    messages = state["messages"]
    return RunResponse(
        thread_id=thread_id,
        graph=graph_name,
        sender=state["sender"],
        output=final_output(messages),
        messages=[to_record(m) for m in messages],
    )


# ---------------------------------------------------------------------------
# App and routes
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(log_level=settings.log_level, log_format=settings.log_format)
    yield


app = FastAPI(
    title="Research Crew API",
    description="Multi-agent workflows: a search tool loop, and a Researcher + Chart Generator collaboration.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/graphs")
async def list_graphs(loader: GraphLoader = Depends(get_graph_loader)):
    """Return the available graphs and their topology."""
    return {"graphs": {name: load_graph(loader, name).definition.describe() for name in GRAPH_FACTORIES}}


@app.post("/threads/{thread_id}/run", response_model=RunResponse)
async def run_thread(
    thread_id: str,
    request: RunRequest,
    loader: GraphLoader = Depends(get_graph_loader),
):
    """Append the user's message to the thread and run the graph until it stops."""
    user_input = (request.input or "").strip()
    if not user_input:
        raise HTTPException(status_code=400, detail="'input' must be non-empty.")
    graph = load_graph(loader, request.graph)

    final_state = await run_to_end(
        graph.run(thread_id, [HumanMessage(content=user_input)], max_steps=request.max_steps)
    )
    return to_response(thread_id, request.graph, final_state)


@app.post("/threads/{thread_id}/resume", response_model=RunResponse)
async def resume_thread(
    thread_id: str,
    request: ResumeRequest,
    loader: GraphLoader = Depends(get_graph_loader),
):
    """Continue a run that stopped before END (step limit, timeout, model error)."""
    graph = load_graph(loader, request.graph)
    if await graph.get_state(thread_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown thread '{thread_id}'")

    final_state = await run_to_end(graph.resume(thread_id, max_steps=request.max_steps))
    return to_response(thread_id, request.graph, final_state)


@app.get("/threads/{thread_id}", response_model=ThreadResponse)
async def get_thread(
    thread_id: str,
    graph: GraphName = RESEARCH_GRAPH,
    loader: GraphLoader = Depends(get_graph_loader),
):
    """Return the thread's saved conversation."""
    checkpoint = await load_graph(loader, graph).get_state(thread_id)
    if checkpoint is None:
        raise HTTPException(status_code=404, detail=f"Unknown thread '{thread_id}'")
    return ThreadResponse(
        thread_id=thread_id,
        graph=graph,
        next_node=checkpoint.next_node,
        step=checkpoint.step,
        messages=[to_record(m) for m in checkpoint.values["messages"]],
    )


@app.delete("/threads/{thread_id}")
async def delete_thread(
    thread_id: str,
    graph: GraphName = RESEARCH_GRAPH,
    loader: GraphLoader = Depends(get_graph_loader),
):
    """Forget the thread's saved conversation."""
    if not await load_graph(loader, graph).delete_state(thread_id):
        raise HTTPException(status_code=404, detail=f"Unknown thread '{thread_id}'")
    return {"thread_id": thread_id, "deleted": True}


@app.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}
