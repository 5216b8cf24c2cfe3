"""Checkpoint storage keyed by thread id.

Checkpoints are persisted through a LangGraph checkpoint saver
(``MemorySaver`` unless another ``BaseCheckpointSaver`` is given), so state is
serialized on save and every load returns fresh objects.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from langgraph.checkpoint.base import BaseCheckpointSaver, empty_checkpoint
from langgraph.checkpoint.base.id import uuid6
from langgraph.checkpoint.memory import MemorySaver


@dataclass
class Checkpoint:
    """State of one thread after its latest merged step."""

    values: Dict[str, Any]
    # None once the run reached END
    next_node: Optional[str]
    step: int
    saved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class CheckpointStore(Protocol):
    async def save(self, thread_id: str, checkpoint: Checkpoint) -> None: ...

    async def load(self, thread_id: str) -> Optional[Checkpoint]: ...

    async def delete(self, thread_id: str) -> bool: ...


class SaverCheckpointStore:
    """CheckpointStore on top of a LangGraph checkpoint saver.

    Each save writes a new LangGraph checkpoint whose channels are the state
    fields; the next node and step count travel in the checkpoint metadata.
    """

    def __init__(self, saver: Optional[BaseCheckpointSaver] = None):
        self.saver = saver if saver is not None else MemorySaver()

    @staticmethod
    def _config(thread_id: str) -> dict:
        return {"configurable": {"thread_id": thread_id, "checkpoint_ns": ""}}

    async def save(self, thread_id: str, checkpoint: Checkpoint) -> None:
        config = self._config(thread_id)
        previous = await self.saver.aget_tuple(config)
        previous_versions = previous.checkpoint["channel_versions"] if previous else {}

        versions = {
            name: self.saver.get_next_version(previous_versions.get(name), None)
            for name in checkpoint.values
        }
        saved = empty_checkpoint()
        saved.update(
            id=str(uuid6(clock_seq=checkpoint.step)),
            ts=checkpoint.saved_at.isoformat(),
            channel_values=dict(checkpoint.values),
            channel_versions=versions,
        )
        metadata = {
            "source": "loop",
            "step": checkpoint.step,
            "parents": {},
            "next_node": checkpoint.next_node,
        }
        await self.saver.aput(config, saved, metadata, versions)

    async def load(self, thread_id: str) -> Optional[Checkpoint]:
        saved = await self.saver.aget_tuple(self._config(thread_id))
        if saved is None:
            return None
        metadata = saved.metadata or {}
        return Checkpoint(
            values=dict(saved.checkpoint["channel_values"]),
            next_node=metadata.get("next_node"),
            step=metadata.get("step", 0),
            saved_at=datetime.fromisoformat(saved.checkpoint["ts"]),
        )

    async def delete(self, thread_id: str) -> bool:
        if await self.saver.aget_tuple(self._config(thread_id)) is None:
            return False
        await self.saver.adelete_thread(thread_id)
        return True
