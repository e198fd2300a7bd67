"""Task lifecycle state machine.

Provides declarative status transitions for tasks with callbacks that keep
the task row (status, completed_at) in step with the machine.
"""

from typing import TYPE_CHECKING

import structlog
from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from profitdesk.models.base import utcnow
from profitdesk.models.task import TaskStatus

if TYPE_CHECKING:
    from profitdesk.models.task import Task

logger = structlog.get_logger()


class TaskStateMachine(StateMachine):
    """State machine for task lifecycle management.

    States match the TaskStatus enum:
    - todo: created, not started
    - in_progress: being worked on
    - completed: done (reopenable); completing clears the high-impact flag

    Transitions:
    - start: todo -> in_progress
    - complete: todo/in_progress -> completed
    - pause: in_progress -> todo
    - reopen: completed -> todo
    """

    todo = State(initial=True, value=TaskStatus.TODO)
    in_progress = State(value=TaskStatus.IN_PROGRESS)
    completed = State(value=TaskStatus.COMPLETED)

    start = todo.to(in_progress)
    complete = todo.to(completed) | in_progress.to(completed)
    pause = in_progress.to(todo)
    reopen = completed.to(todo)

    def __init__(self, task: "Task") -> None:
        """Initialize the machine in the task's current status.

        Args:
            task: Task model instance to manage
        """
        self.task = task
        super().__init__(start_value=task.status or TaskStatus.TODO)

    @property
    def current_status(self) -> TaskStatus:
        """Current state as TaskStatus enum."""
        return self.current_state_value

    def on_start(self) -> None:
        self.task.status = TaskStatus.IN_PROGRESS
        logger.info("task_started", task_id=self.task.id)

    def on_complete(self) -> None:
        self.task.status = TaskStatus.COMPLETED
        self.task.completed_at = utcnow()
        # High impact ranks open work only.
        self.task.is_high_impact = False
        logger.info("task_completed", task_id=self.task.id)

    def on_pause(self) -> None:
        self.task.status = TaskStatus.TODO
        logger.info("task_paused", task_id=self.task.id)

    def on_reopen(self) -> None:
        self.task.status = TaskStatus.TODO
        self.task.completed_at = None
        logger.info("task_reopened", task_id=self.task.id)


# (current, target) -> event name; pairs not listed go through the event
# that leads to the target and are rejected by the machine.
_TRANSITION_EVENTS: dict[tuple[TaskStatus, TaskStatus], str] = {
    (TaskStatus.IN_PROGRESS, TaskStatus.TODO): "pause",
    (TaskStatus.COMPLETED, TaskStatus.TODO): "reopen",
}
_TARGET_EVENTS: dict[TaskStatus, str] = {
    TaskStatus.IN_PROGRESS: "start",
    TaskStatus.COMPLETED: "complete",
    TaskStatus.TODO: "reopen",
}


def create_state_machine(task: "Task") -> TaskStateMachine:
    """Factory function to create a state machine for a task."""
    return TaskStateMachine(task=task)


def transition_task(task: "Task", target: TaskStatus) -> bool:
    """Move a task to ``target`` through the matching event.

    Returns:
        True if the status changed, False if the task was already there.

    Raises:
        TransitionNotAllowed: If the machine has no such transition, e.g.
            completed -> in_progress without reopening first.
    """
    sm = create_state_machine(task)
    current = sm.current_status
    if current == target:
        return False
    event = _TRANSITION_EVENTS.get((current, target), _TARGET_EVENTS[target])
    sm.send(event)
    return True


__all__ = [
    "TaskStateMachine",
    "TransitionNotAllowed",
    "create_state_machine",
    "transition_task",
]
