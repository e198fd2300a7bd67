"""Orchestration module for task lifecycle management."""

from profitdesk.orchestration.state_machine import (
    TaskStateMachine,
    TransitionNotAllowed,
    create_state_machine,
    transition_task,
)

__all__ = [
    "TaskStateMachine",
    "TransitionNotAllowed",
    "create_state_machine",
    "transition_task",
]
