"""Orchestration core: state schema, routing, checkpoints and the graph runner."""
from .checkpoint import Checkpoint, CheckpointStore, SaverCheckpointStore
from .orchestrator import START, CompiledGraph, GraphBuilder, GraphDefinition
from .routing import END, CollaborationRouter, Goto, Route, route_to_sender, route_tools
from .state import CONVERSATION_SCHEMA, ConversationState, StateSchema

__all__ = [
    "CONVERSATION_SCHEMA",
    "Checkpoint",
    "CheckpointStore",
    "CollaborationRouter",
    "CompiledGraph",
    "ConversationState",
    "END",
    "GraphBuilder",
    "GraphDefinition",
    "Goto",
    "SaverCheckpointStore",
    "Route",
    "START",
    "StateSchema",
    "route_to_sender",
    "route_tools",
]
