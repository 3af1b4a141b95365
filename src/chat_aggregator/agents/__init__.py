"""
Agents Module

Generic agent state machine, its data-described provider descriptors, and
the orchestrator that runs several agents side by side.
"""

from .agent import Agent, AgentState
from .completion import (
    completion_detector,
    get_completion_detector,
    list_completion_detectors,
)
from .descriptors import (
    BUILTIN_DESCRIPTORS,
    AgentDescriptor,
    CompletionSettings,
    LocatorSet,
    build_registry,
    list_agents,
    load_descriptors,
)
from .orchestrator import AgentOrchestrator, Settled, create_orchestrator
from .resolver import ElementResolver

__all__ = [
    # State machine
    "Agent",
    "AgentState",
    "ElementResolver",
    # Completion detection
    "completion_detector",
    "get_completion_detector",
    "list_completion_detectors",
    # Descriptors
    "BUILTIN_DESCRIPTORS",
    "AgentDescriptor",
    "CompletionSettings",
    "LocatorSet",
    "build_registry",
    "list_agents",
    "load_descriptors",
    # Orchestration
    "AgentOrchestrator",
    "Settled",
    "create_orchestrator",
]
