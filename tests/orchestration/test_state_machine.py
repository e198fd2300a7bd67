"""Tests for task state machine."""

import pytest
from statemachine.exceptions import TransitionNotAllowed

from profitdesk.models.task import Task, TaskStatus
from profitdesk.orchestration.state_machine import (
    TaskStateMachine,
    create_state_machine,
    transition_task,
)


class TestTaskStateMachine:
    """Tests for TaskStateMachine transitions."""

    def _create_task(self, status: TaskStatus = TaskStatus.TODO) -> Task:
        """Create a task for testing.

        Args:
            status: Initial task status

        Returns:
            Task instance with minimal required fields
        """
        return Task(id=1, user_id=1, title="Write proposal", status=status)

    def test_initial_state_from_todo_task(self) -> None:
        """State machine starts in todo state for a new task."""
        task = self._create_task()
        sm = TaskStateMachine(task=task)

        assert sm.current_state_value == sm.todo.value
        assert sm.current_status == TaskStatus.TODO

    def test_initial_state_from_in_progress_task(self) -> None:
        """State machine starts in the task's stored state."""
        task = self._create_task(TaskStatus.IN_PROGRESS)
        sm = TaskStateMachine(task=task)

        assert sm.current_state_value == sm.in_progress.value

    def test_start_transition(self) -> None:
        """Transition from todo to in_progress."""
        task = self._create_task()
        sm = create_state_machine(task)

        sm.start()

        assert task.status == TaskStatus.IN_PROGRESS

    def test_complete_sets_completed_at(self) -> None:
        """Completing stamps completed_at."""
        task = self._create_task(TaskStatus.IN_PROGRESS)
        sm = create_state_machine(task)

        sm.complete()

        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at is not None

    def test_complete_directly_from_todo(self) -> None:
        """A todo task can be completed without being started."""
        task = self._create_task()
        create_state_machine(task).complete()

        assert task.status == TaskStatus.COMPLETED

    def test_reopen_clears_completed_at(self) -> None:
        """Reopening moves back to todo and clears the completion stamp."""
        task = self._create_task()
        sm = create_state_machine(task)
        sm.complete()

        sm.reopen()

        assert task.status == TaskStatus.TODO
        assert task.completed_at is None

    def test_cannot_start_completed_task(self) -> None:
        """completed -> in_progress requires reopening first."""
        task = self._create_task(TaskStatus.COMPLETED)
        sm = create_state_machine(task)

        with pytest.raises(TransitionNotAllowed):
            sm.start()


class TestTransitionTask:
    """Tests for the status-target helper."""

    def test_returns_false_when_already_at_target(self) -> None:
        task = Task(id=1, user_id=1, title="t", status=TaskStatus.TODO)

        assert transition_task(task, TaskStatus.TODO) is False

    def test_pauses_in_progress_task(self) -> None:
        task = Task(id=1, user_id=1, title="t", status=TaskStatus.IN_PROGRESS)

        assert transition_task(task, TaskStatus.TODO) is True
        assert task.status == TaskStatus.TODO

    def test_reopens_completed_task(self) -> None:
        task = Task(id=1, user_id=1, title="t", status=TaskStatus.COMPLETED)

        transition_task(task, TaskStatus.TODO)

        assert task.status == TaskStatus.TODO

    def test_rejects_completed_to_in_progress(self) -> None:
        task = Task(id=1, user_id=1, title="t", status=TaskStatus.COMPLETED)

        with pytest.raises(TransitionNotAllowed):
            transition_task(task, TaskStatus.IN_PROGRESS)
