"""Tests for the Pareto task impact classifier."""

from datetime import date

import pytest

from profitdesk.core.errors import InvalidInputError
from profitdesk.models.task import Task, TaskStatus
from profitdesk.services.impact import (
    compute_statistics,
    pareto_threshold,
    partition_high_impact,
    validate_impact_score,
)


def _task(
    task_id: int,
    score: int,
    due_date: date | None = None,
    status: TaskStatus = TaskStatus.TODO,
) -> Task:
    return Task(
        id=task_id,
        user_id=1,
        title=f"Task {task_id}",
        status=status,
        impact_score=score,
        due_date=due_date,
    )


@pytest.mark.parametrize(
    ("count", "expected"),
    [(0, 0), (1, 1), (4, 1), (5, 1), (6, 2), (10, 2), (11, 3)],
)
def test_pareto_threshold_rounds_up(count: int, expected: int) -> None:
    """Threshold is ceil(count * 0.2)."""
    assert pareto_threshold(count, 0.2) == expected


def test_only_top_task_of_five_is_high_impact() -> None:
    """Scores 90..50 mark only the 90 task."""
    tasks = [_task(i, score) for i, score in enumerate([90, 80, 70, 60, 50], start=1)]

    split = partition_high_impact(tasks, 0.2)

    assert [task.impact_score for task in split.high_impact] == [90]
    assert [task.impact_score for task in split.other] == [80, 70, 60, 50]


def test_top_two_of_six_are_high_impact() -> None:
    """Scores 10..60 mark the 60 and 50 tasks."""
    tasks = [_task(i, score) for i, score in enumerate([10, 20, 30, 40, 50, 60], start=1)]

    split = partition_high_impact(tasks, 0.2)

    assert split.threshold == 2
    assert [task.impact_score for task in split.high_impact] == [60, 50]


def test_empty_task_set_has_no_high_impact() -> None:
    split = partition_high_impact([], 0.2)

    assert split.high_impact == []
    assert split.other == []


def test_single_task_is_high_impact() -> None:
    split = partition_high_impact([_task(1, 0)], 0.2)

    assert [task.id for task in split.high_impact] == [1]


def test_ties_break_by_due_date_then_id() -> None:
    """Equal scores: earlier due date first, undated last, then lower id."""
    tasks = [
        _task(1, 50),
        _task(2, 50, due_date=date(2026, 3, 1)),
        _task(3, 50, due_date=date(2026, 1, 15)),
        _task(4, 50),
    ]

    split = partition_high_impact(tasks, 1.0)

    assert [task.id for task in split.high_impact] == [3, 2, 1, 4]


def test_statistics_over_mixed_tasks() -> None:
    """Completion rate and average impact cover every task."""
    tasks = [
        _task(1, 80, status=TaskStatus.COMPLETED),
        _task(2, 40),
        _task(3, 30, status=TaskStatus.IN_PROGRESS),
        _task(4, 50, status=TaskStatus.COMPLETED),
    ]

    stats = compute_statistics(tasks)

    assert stats.total_tasks == 4
    assert stats.completed_tasks == 2
    assert stats.completion_rate == 50.0
    assert stats.average_impact == 50.0


def test_statistics_without_tasks_are_zero() -> None:
    stats = compute_statistics([])

    assert stats.completion_rate == 0.0
    assert stats.average_impact == 0.0


@pytest.mark.parametrize("score", [-1, 101, 3.5, True])
def test_validate_impact_score_rejects_out_of_range(score: object) -> None:
    with pytest.raises(InvalidInputError):
        validate_impact_score(score)


def test_validate_impact_score_accepts_bounds() -> None:
    assert validate_impact_score(0) == 0
    assert validate_impact_score(100) == 100
