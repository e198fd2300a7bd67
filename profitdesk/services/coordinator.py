"""Consistency coordinator for multi-entity writes.

Each public method is one compound operation. It opens its own session, runs
every read and write inside a single transaction and either returns the
result or raises a ProfitDeskError after the transaction has been rolled
back. Client counters are only changed through relative SQL increments, so
two concurrent requests touching the same client cannot lose updates.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from profitdesk.core.errors import (
    ActiveTimerExistsError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PersistenceFailure,
    ProfitDeskError,
)
from profitdesk.core.logging import get_logger
from profitdesk.models.base import utcnow
from profitdesk.models.client import Client, ClientStatus
from profitdesk.models.gamification import Activity, Badge, EarnedBadge
from profitdesk.models.objective import Objective
from profitdesk.models.profitability import Profitability
from profitdesk.models.task import Task, TaskPriority, TaskStatus
from profitdesk.models.timer import Timer
from profitdesk.orchestration.state_machine import TransitionNotAllowed, transition_task
from profitdesk.services.gamification import (
    TaskRewards,
    add_activity,
    apply_level_up,
    get_or_create_progress,
    grant_task_rewards,
)
from profitdesk.services.impact import (
    ParetoSplit,
    fetch_open_tasks,
    partition_high_impact,
    validate_impact_score,
)
from profitdesk.services.ledger import duration_hours, get_active_timer
from profitdesk.services.profitability import (
    MAX_HOURS,
    ZERO,
    apply_recalculation,
    q_hours,
    q_money,
    require_non_negative,
    require_positive_rate,
    target_hours_from_budget,
)

logger = get_logger(__name__)

MIN_CLIENT_NAME_LENGTH = 2

TASK_STATUS_COUNTERS: dict[TaskStatus, str] = {
    TaskStatus.TODO: "tasks_pending",
    TaskStatus.IN_PROGRESS: "tasks_in_progress",
    TaskStatus.COMPLETED: "tasks_completed",
}


def objective_slot(is_completed: bool) -> str:
    """Client counter holding an objective in the given completion state."""
    return "objectives_completed" if is_completed else "objectives_pending"


def objective_progress(current_value: Decimal, target_value: Decimal) -> int:
    """Progress percentage, capped at 100; 0 without a positive target."""
    if target_value is None or target_value <= ZERO:
        return 0
    ratio = Decimal(current_value or 0) / Decimal(target_value) * 100
    return min(100, int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))


# =============================================================================
# Operation inputs
# =============================================================================


@dataclass(slots=True)
class ProfitabilitySetup:
    """Profitability figures supplied with a new client."""

    hourly_rate: Decimal
    target_hours: Decimal | None = None
    monthly_budget: Decimal | None = None


@dataclass(slots=True)
class ClientCreateData:
    name: str
    description: str = ""
    status: ClientStatus = ClientStatus.ACTIVE
    notes: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TaskCreateData:
    title: str
    client_id: int | None = None
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = "other"
    due_date: date | None = None
    estimated_time: Decimal = ZERO
    impact_score: int = 0


@dataclass(slots=True)
class TaskUpdateData:
    """Partial task update. ``None`` leaves a field unchanged.

    ``clear_client`` detaches the task from its client.
    """

    title: str | None = None
    description: str | None = None
    client_id: int | None = None
    clear_client: bool = False
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    category: str | None = None
    due_date: date | None = None
    estimated_time: Decimal | None = None
    actual_time: Decimal | None = None
    impact_score: int | None = None


@dataclass(slots=True)
class ProfitabilityUpdateData:
    hourly_rate: Decimal | None = None
    target_hours: Decimal | None = None
    actual_hours: Decimal | None = None
    revenue: Decimal | None = None


@dataclass(slots=True)
class ObjectiveCreateData:
    client_id: int
    title: str
    due_date: date
    description: str | None = None
    target_value: Decimal = Decimal("100")
    current_value: Decimal = ZERO
    unit: str = "%"
    is_high_impact: bool = False


@dataclass(slots=True)
class ObjectiveUpdateData:
    client_id: int | None = None
    title: str | None = None
    description: str | None = None
    target_value: Decimal | None = None
    current_value: Decimal | None = None
    unit: str | None = None
    due_date: date | None = None
    is_high_impact: bool | None = None
    is_completed: bool | None = None


@dataclass(slots=True)
class TimerStartData:
    client_id: int | None = None
    task_id: int | None = None
    description: str = ""
    billable: bool = True
    started_at: datetime | None = None


# =============================================================================
# Operation results
# =============================================================================


@dataclass
class ClientCreateResult:
    client: Client
    profitability: Profitability | None = None


@dataclass
class ClientDeleteResult:
    """Outcome of a cascading client delete.

    ``verified`` is False when the post-commit check still found rows; the
    delete itself has committed either way.
    """

    client_id: int
    tasks_count: int
    objectives_count: int
    profitability_deleted: bool
    verified: bool = True


@dataclass
class TaskCompletionResult:
    task: Task
    rewards: TaskRewards


@dataclass
class TimerStopResult:
    timer: Timer
    task: Task | None = None


# =============================================================================
# Coordinator
# =============================================================================


class ConsistencyCoordinator:
    """Runs compound writes atomically against one session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session and a transaction; translate storage failures."""
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except ProfitDeskError as exc:
                logger.info(
                    "transaction_aborted",
                    operation=operation,
                    reason=exc.message,
                )
                raise
            except StaleDataError as exc:
                logger.warning("concurrent_update_rejected", operation=operation)
                raise ConflictError(
                    f"{operation} conflicted with a concurrent update; reload and retry"
                ) from exc
            except SQLAlchemyError as exc:
                logger.exception("transaction_failed", operation=operation)
                raise PersistenceFailure(operation) from exc

    # -------------------------------------------------------------------------
    # Shared lookups and counter updates
    # -------------------------------------------------------------------------

    async def _require_client(
        self, session: AsyncSession, user_id: int, client_id: int
    ) -> Client:
        result = await session.execute(
            select(Client).where(Client.id == client_id, Client.user_id == user_id)
        )
        client = result.scalar_one_or_none()
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    async def _require_task(
        self, session: AsyncSession, user_id: int, task_id: int
    ) -> Task:
        result = await session.execute(
            select(Task).where(Task.id == task_id, Task.user_id == user_id)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def _require_objective(
        self, session: AsyncSession, user_id: int, objective_id: int
    ) -> Objective:
        result = await session.execute(
            select(Objective).where(
                Objective.id == objective_id, Objective.user_id == user_id
            )
        )
        objective = result.scalar_one_or_none()
        if objective is None:
            raise NotFoundError("Objective", objective_id)
        return objective

    async def _adjust_client(
        self, session: AsyncSession, client_id: int, **deltas: int
    ) -> None:
        """Apply relative counter changes and stamp last_activity."""
        values: dict[str, object] = {
            name: getattr(Client, name) + delta for name, delta in deltas.items() if delta
        }
        values["last_activity"] = self._clock()
        await session.execute(
            update(Client)
            .where(Client.id == client_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )

    async def _move_task_counters(
        self,
        session: AsyncSession,
        old_client_id: int | None,
        old_status: TaskStatus,
        new_client_id: int | None,
        new_status: TaskStatus,
    ) -> None:
        old_counter = TASK_STATUS_COUNTERS[old_status]
        new_counter = TASK_STATUS_COUNTERS[new_status]

        if old_client_id == new_client_id:
            if old_client_id is not None and old_status != new_status:
                await self._adjust_client(
                    session, old_client_id, **{old_counter: -1, new_counter: 1}
                )
            return

        if old_client_id is not None:
            await self._adjust_client(session, old_client_id, **{old_counter: -1})
        if new_client_id is not None:
            await self._adjust_client(session, new_client_id, **{new_counter: 1})

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    async def create_client(
        self,
        user_id: int,
        data: ClientCreateData,
        profitability: ProfitabilitySetup | None = None,
    ) -> ClientCreateResult:
        """Create a client and, when figures are supplied, its profitability record.

        Without an explicit target, target hours default to
        ``monthly_budget / hourly_rate`` rounded to one decimal. The new record
        starts with no hours worked, zero profit and zero profitability.
        """
        name = data.name.strip()
        if len(name) < MIN_CLIENT_NAME_LENGTH:
            raise InvalidInputError(
                f"Client name must be at least {MIN_CLIENT_NAME_LENGTH} characters"
            )

        record: Profitability | None = None
        if profitability is not None:
            rate = q_money(require_positive_rate(profitability.hourly_rate))
            budget = (
                require_non_negative(profitability.monthly_budget, "monthly_budget")
                if profitability.monthly_budget is not None
                else ZERO
            )
            if profitability.target_hours is not None:
                target = require_non_negative(
                    profitability.target_hours, "target_hours", MAX_HOURS
                )
            elif budget > ZERO:
                target = target_hours_from_budget(budget, rate)
            else:
                target = ZERO

        now = self._clock()
        async with self._transaction("create_client") as session:
            client = Client(
                user_id=user_id,
                name=name,
                description=data.description.strip(),
                status=data.status,
                notes=data.notes,
                tags=list(data.tags),
                last_activity=now,
            )
            session.add(client)
            await session.flush()

            if profitability is not None:
                record = Profitability(
                    user_id=user_id,
                    client_id=client.id,
                    hourly_rate=rate,
                    target_hours=q_hours(target),
                    actual_hours=ZERO,
                    revenue=q_money(budget),
                    profit=ZERO,
                    profitability=ZERO,
                    remaining_hours=q_hours(target),
                )
                session.add(record)
                await session.flush()

        logger.info(
            "client_created",
            client_id=client.id,
            user_id=user_id,
            with_profitability=record is not None,
        )
        return ClientCreateResult(client=client, profitability=record)

    async def delete_client(self, user_id: int, client_id: int) -> ClientDeleteResult:
        """Delete a client with its tasks, objectives and profitability record.

        Ledger entries survive with their client and task references cleared.
        After commit a fresh session checks that nothing is left behind.
        """
        async with self._transaction("delete_client") as session:
            await self._require_client(session, user_id, client_id)

            client_task_ids = select(Task.id).where(Task.client_id == client_id)
            await session.execute(
                update(Timer)
                .where(Timer.task_id.in_(client_task_ids))
                .values(task_id=None)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                update(Timer)
                .where(Timer.client_id == client_id)
                .values(client_id=None)
                .execution_options(synchronize_session=False)
            )

            tasks_result = await session.execute(
                delete(Task)
                .where(Task.client_id == client_id)
                .execution_options(synchronize_session=False)
            )
            objectives_result = await session.execute(
                delete(Objective)
                .where(Objective.client_id == client_id)
                .execution_options(synchronize_session=False)
            )
            profitability_result = await session.execute(
                delete(Profitability)
                .where(Profitability.client_id == client_id)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                delete(Client)
                .where(Client.id == client_id)
                .execution_options(synchronize_session=False)
            )

        result = ClientDeleteResult(
            client_id=client_id,
            tasks_count=tasks_result.rowcount or 0,
            objectives_count=objectives_result.rowcount or 0,
            profitability_deleted=bool(profitability_result.rowcount),
        )
        result.verified = await self._verify_client_deleted(client_id)
        logger.info(
            "client_deleted",
            client_id=client_id,
            user_id=user_id,
            tasks_count=result.tasks_count,
            objectives_count=result.objectives_count,
        )
        return result

    async def _verify_client_deleted(self, client_id: int) -> bool:
        """Post-commit check; residual rows are logged, never raised."""
        async with self._session_factory() as session:
            client_left = await session.get(Client, client_id)
            tasks_left = await session.scalar(
                select(func.count(Task.id)).where(Task.client_id == client_id)
            )
        if client_left is not None or tasks_left:
            logger.warning(
                "client_delete_verification_failed",
                client_id=client_id,
                client_exists=client_left is not None,
                remaining_tasks=tasks_left,
            )
            return False
        return True

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    async def create_task(self, user_id: int, data: TaskCreateData) -> Task:
        """Create a to-do task and count it on its client."""
        score = validate_impact_score(data.impact_score)
        estimated = require_non_negative(data.estimated_time, "estimated_time", MAX_HOURS)

        async with self._transaction("create_task") as session:
            if data.client_id is not None:
                await self._require_client(session, user_id, data.client_id)

            task = Task(
                user_id=user_id,
                client_id=data.client_id,
                title=data.title.strip(),
                description=data.description,
                status=TaskStatus.TODO,
                priority=data.priority,
                category=data.category,
                due_date=data.due_date,
                estimated_time=q_hours(estimated),
                actual_time=ZERO,
                impact_score=score,
                is_high_impact=False,
            )
            session.add(task)
            await session.flush()

            if data.client_id is not None:
                await self._adjust_client(
                    session, data.client_id, **{TASK_STATUS_COUNTERS[TaskStatus.TODO]: 1}
                )

        logger.info("task_created", task_id=task.id, client_id=task.client_id)
        return task

    async def update_task(
        self, user_id: int, task_id: int, data: TaskUpdateData
    ) -> Task:
        """Update a task; move client counters on status or client changes."""
        async with self._transaction("update_task") as session:
            task = await self._require_task(session, user_id, task_id)
            old_status = task.status
            old_client_id = task.client_id

            new_client_id = old_client_id
            if data.clear_client:
                new_client_id = None
            elif data.client_id is not None:
                new_client_id = data.client_id
            if new_client_id is not None and new_client_id != old_client_id:
                await self._require_client(session, user_id, new_client_id)

            if data.title is not None:
                task.title = data.title.strip()
            if data.description is not None:
                task.description = data.description
            if data.priority is not None:
                task.priority = data.priority
            if data.category is not None:
                task.category = data.category
            if data.due_date is not None:
                task.due_date = data.due_date
            if data.estimated_time is not None:
                task.estimated_time = q_hours(
                    require_non_negative(data.estimated_time, "estimated_time", MAX_HOURS)
                )
            if data.actual_time is not None:
                task.actual_time = q_hours(
                    require_non_negative(data.actual_time, "actual_time", MAX_HOURS)
                )
            if data.impact_score is not None:
                task.impact_score = validate_impact_score(data.impact_score)

            if data.status is not None:
                try:
                    transition_task(task, data.status)
                except TransitionNotAllowed as exc:
                    raise ConflictError(
                        f"Invalid transition from {old_status.value} to {data.status.value}"
                    ) from exc

            task.client_id = new_client_id
            await session.flush()

            await self._move_task_counters(
                session, old_client_id, old_status, new_client_id, task.status
            )

        if new_client_id != old_client_id:
            logger.info(
                "task_reassigned",
                task_id=task_id,
                old_client_id=old_client_id,
                new_client_id=new_client_id,
            )
        return task

    async def complete_task(
        self,
        user_id: int,
        task_id: int,
        actual_time: Decimal | None = None,
    ) -> TaskCompletionResult:
        """Complete a task, move client counters and grant rewards.

        ``actual_time``, when given, replaces the accumulated hours with a
        final figure.
        """
        async with self._transaction("complete_task") as session:
            task = await self._require_task(session, user_id, task_id)
            if task.status == TaskStatus.COMPLETED:
                raise ConflictError("Task is already completed")

            old_status = task.status
            if actual_time is not None:
                task.actual_time = q_hours(
                    require_non_negative(actual_time, "actual_time", MAX_HOURS)
                )
            transition_task(task, TaskStatus.COMPLETED)
            await session.flush()

            await self._move_task_counters(
                session, task.client_id, old_status, task.client_id, task.status
            )
            rewards = await grant_task_rewards(session, user_id, task.impact_score)
            await add_activity(
                session,
                user_id,
                "task_completed",
                f'Completed task "{task.title}"',
                occurred_at=task.completed_at,
                task_id=task.id,
                client_id=task.client_id,
                points=rewards.points,
                experience=rewards.experience,
                level_up=rewards.level_up,
            )

        logger.info(
            "task_completion_rewarded",
            task_id=task_id,
            points=rewards.points,
            experience=rewards.experience,
            level_up=rewards.level_up,
        )
        return TaskCompletionResult(task=task, rewards=rewards)

    async def delete_task(self, user_id: int, task_id: int) -> None:
        """Delete a task and release its slot in the client counters."""
        async with self._transaction("delete_task") as session:
            task = await self._require_task(session, user_id, task_id)
            await session.execute(
                update(Timer)
                .where(Timer.task_id == task.id)
                .values(task_id=None)
                .execution_options(synchronize_session=False)
            )
            if task.client_id is not None:
                await self._adjust_client(
                    session, task.client_id, **{TASK_STATUS_COUNTERS[task.status]: -1}
                )
            await session.delete(task)
            await session.flush()

        logger.info("task_deleted", task_id=task_id)

    # -------------------------------------------------------------------------
    # Objectives
    # -------------------------------------------------------------------------

    async def create_objective(
        self, user_id: int, data: ObjectiveCreateData
    ) -> Objective:
        target = require_non_negative(data.target_value, "target_value")
        current = require_non_negative(data.current_value, "current_value")

        async with self._transaction("create_objective") as session:
            await self._require_client(session, user_id, data.client_id)
            objective = Objective(
                user_id=user_id,
                client_id=data.client_id,
                title=data.title.strip(),
                description=data.description,
                target_value=q_money(target),
                current_value=q_money(current),
                unit=data.unit,
                progress=objective_progress(current, target),
                due_date=data.due_date,
                is_high_impact=data.is_high_impact,
                is_completed=False,
            )
            session.add(objective)
            await session.flush()
            await self._adjust_client(
                session, data.client_id, objectives_count=1, objectives_pending=1
            )

        logger.info("objective_created", objective_id=objective.id)
        return objective

    async def update_objective(
        self, user_id: int, objective_id: int, data: ObjectiveUpdateData
    ) -> Objective:
        """Update an objective; move counters on client or completion changes."""
        async with self._transaction("update_objective") as session:
            objective = await self._require_objective(session, user_id, objective_id)
            old_client_id = objective.client_id
            was_completed = objective.is_completed

            new_client_id = data.client_id if data.client_id is not None else old_client_id
            if new_client_id != old_client_id:
                await self._require_client(session, user_id, new_client_id)

            if data.title is not None:
                objective.title = data.title.strip()
            if data.description is not None:
                objective.description = data.description
            if data.target_value is not None:
                objective.target_value = q_money(
                    require_non_negative(data.target_value, "target_value")
                )
            if data.current_value is not None:
                objective.current_value = q_money(
                    require_non_negative(data.current_value, "current_value")
                )
            if data.unit is not None:
                objective.unit = data.unit
            if data.due_date is not None:
                objective.due_date = data.due_date
            if data.is_high_impact is not None:
                objective.is_high_impact = data.is_high_impact
            if data.is_completed is not None and data.is_completed != was_completed:
                objective.is_completed = data.is_completed
                objective.completed_at = self._clock() if data.is_completed else None

            objective.progress = objective_progress(
                objective.current_value, objective.target_value
            )
            objective.client_id = new_client_id
            await session.flush()

            if new_client_id != old_client_id:
                await self._adjust_client(
                    session,
                    old_client_id,
                    objectives_count=-1,
                    **{objective_slot(was_completed): -1},
                )
                await self._adjust_client(
                    session,
                    new_client_id,
                    objectives_count=1,
                    **{objective_slot(objective.is_completed): 1},
                )
            elif objective.is_completed != was_completed:
                delta = 1 if objective.is_completed else -1
                await self._adjust_client(
                    session,
                    new_client_id,
                    objectives_completed=delta,
                    objectives_pending=-delta,
                )

        return objective

    async def delete_objective(self, user_id: int, objective_id: int) -> None:
        async with self._transaction("delete_objective") as session:
            objective = await self._require_objective(session, user_id, objective_id)
            await self._adjust_client(
                session,
                objective.client_id,
                objectives_count=-1,
                **{objective_slot(objective.is_completed): -1},
            )
            await session.delete(objective)
            await session.flush()

        logger.info("objective_deleted", objective_id=objective_id)

    # -------------------------------------------------------------------------
    # Profitability
    # -------------------------------------------------------------------------

    async def _find_profitability(
        self, session: AsyncSession, user_id: int, client_id: int
    ) -> Profitability | None:
        result = await session.execute(
            select(Profitability).where(
                Profitability.user_id == user_id,
                Profitability.client_id == client_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_profitability(
        self,
        user_id: int,
        client_id: int,
        data: ProfitabilityUpdateData,
    ) -> Profitability:
        """Manual edit of a client's figures followed by a full recalculation.

        Creates the record when the client has none yet; the hourly rate is
        then mandatory.
        """
        async with self._transaction("upsert_profitability") as session:
            client = await self._require_client(session, user_id, client_id)
            record = await self._find_profitability(session, user_id, client_id)

            if record is None:
                if data.hourly_rate is None:
                    raise InvalidInputError(
                        "hourly_rate is required to create a profitability record"
                    )
                record = Profitability(
                    user_id=user_id,
                    client_id=client_id,
                    hourly_rate=q_money(require_positive_rate(data.hourly_rate)),
                    target_hours=ZERO,
                    actual_hours=ZERO,
                    revenue=ZERO,
                )
                session.add(record)

            if data.hourly_rate is not None:
                record.hourly_rate = q_money(require_positive_rate(data.hourly_rate))
            if data.target_hours is not None:
                record.target_hours = q_hours(
                    require_non_negative(data.target_hours, "target_hours", MAX_HOURS)
                )
            if data.actual_hours is not None:
                record.actual_hours = q_hours(
                    require_non_negative(data.actual_hours, "actual_hours", MAX_HOURS)
                )
            if data.revenue is not None:
                record.revenue = q_money(require_non_negative(data.revenue, "revenue"))

            apply_recalculation(record)
            client.last_profitability_update = self._clock()
            await session.flush()

        logger.info(
            "profitability_updated",
            client_id=client_id,
            profit=record.profit,
            profitability=record.profitability,
        )
        return record

    async def rollup_hours(self, user_id: int, client_id: int) -> Profitability:
        """Resync actual hours from completed tasks and recalculate.

        Running it again without new completions leaves the record unchanged.
        """
        async with self._transaction("rollup_hours") as session:
            record = await self._find_profitability(session, user_id, client_id)
            if record is None:
                raise NotFoundError("Profitability", client_id)

            total = await session.scalar(
                select(func.coalesce(func.sum(Task.actual_time), 0)).where(
                    Task.user_id == user_id,
                    Task.client_id == client_id,
                    Task.status == TaskStatus.COMPLETED,
                )
            )
            record.actual_hours = q_hours(Decimal(str(total or 0)))
            apply_recalculation(record)
            await session.execute(
                update(Client)
                .where(Client.id == client_id)
                .values(last_profitability_update=self._clock())
                .execution_options(synchronize_session=False)
            )
            await session.flush()

        logger.info(
            "profitability_hours_rolled_up",
            client_id=client_id,
            actual_hours=record.actual_hours,
        )
        return record

    # -------------------------------------------------------------------------
    # Time ledger
    # -------------------------------------------------------------------------

    async def start_timer(self, user_id: int, data: TimerStartData) -> Timer:
        """Open a timer; a user can only have one running at a time."""
        async with self._transaction("start_timer") as session:
            active = await get_active_timer(session, user_id)
            if active is not None:
                raise ActiveTimerExistsError(active.id)

            client_id = data.client_id
            if data.task_id is not None:
                task = await self._require_task(session, user_id, data.task_id)
                if client_id is None:
                    client_id = task.client_id
                elif task.client_id is not None and task.client_id != client_id:
                    raise InvalidInputError("Task belongs to a different client")
            if client_id is not None:
                await self._require_client(session, user_id, client_id)

            timer = Timer(
                user_id=user_id,
                client_id=client_id,
                task_id=data.task_id,
                description=data.description,
                billable=data.billable,
                start_time=data.started_at or self._clock(),
                duration=ZERO,
            )
            session.add(timer)
            try:
                await session.flush()
            except IntegrityError as exc:
                # Lost the race against a concurrent start for the same user.
                raise ActiveTimerExistsError() from exc

        logger.info("timer_started", timer_id=timer.id, task_id=timer.task_id)
        return timer

    async def stop_timer(
        self,
        user_id: int,
        timer_id: int,
        ended_at: datetime | None = None,
    ) -> TimerStopResult:
        """Close a running timer and add its duration to the linked task."""
        async with self._transaction("stop_timer") as session:
            result = await session.execute(
                select(Timer).where(
                    Timer.id == timer_id,
                    Timer.user_id == user_id,
                    Timer.end_time.is_(None),
                )
            )
            timer = result.scalar_one_or_none()
            if timer is None:
                raise NotFoundError("Running timer", timer_id)

            end_time = ended_at or self._clock()
            timer.duration = duration_hours(timer.start_time, end_time)
            timer.end_time = end_time
            await session.flush()

            task: Task | None = None
            if timer.task_id is not None:
                await session.execute(
                    update(Task)
                    .where(Task.id == timer.task_id)
                    .values(actual_time=Task.actual_time + timer.duration)
                    .execution_options(synchronize_session=False)
                )
                task = await session.get(Task, timer.task_id, populate_existing=True)
            if timer.client_id is not None:
                await self._adjust_client(session, timer.client_id)

        logger.info(
            "timer_stopped",
            timer_id=timer.id,
            duration_hours=timer.duration,
            task_id=timer.task_id,
        )
        return TimerStopResult(timer=timer, task=task)

    # -------------------------------------------------------------------------
    # Task impact
    # -------------------------------------------------------------------------

    async def classify_impact(self, user_id: int) -> ParetoSplit:
        """Recompute the Pareto split and persist the high-impact flags.

        Completed tasks are never high impact; stale flags on them are cleared.
        """
        async with self._transaction("classify_impact") as session:
            await session.execute(
                update(Task)
                .where(
                    Task.user_id == user_id,
                    Task.status == TaskStatus.COMPLETED,
                    Task.is_high_impact.is_(True),
                )
                .values(is_high_impact=False)
                .execution_options(synchronize_session=False)
            )
            tasks = await fetch_open_tasks(session, user_id)
            split = partition_high_impact(tasks)
            for task in split.high_impact:
                task.is_high_impact = True
            for task in split.other:
                task.is_high_impact = False
            await session.flush()

        logger.info(
            "task_impact_classified",
            user_id=user_id,
            open_tasks=len(tasks),
            high_impact=split.threshold,
        )
        return split

    # -------------------------------------------------------------------------
    # Gamification
    # -------------------------------------------------------------------------

    async def award_badge(self, user_id: int, badge_id: int) -> EarnedBadge:
        """Grant a badge once and credit its rewards."""
        async with self._transaction("award_badge") as session:
            badge = await session.get(Badge, badge_id)
            if badge is None:
                raise NotFoundError("Badge", badge_id)

            already_earned = await session.scalar(
                select(func.count(EarnedBadge.id)).where(
                    EarnedBadge.user_id == user_id,
                    EarnedBadge.badge_id == badge_id,
                )
            )
            if already_earned:
                raise ConflictError("Badge already earned")

            earned = EarnedBadge(user_id=user_id, badge_id=badge_id, earned_at=self._clock())
            session.add(earned)

            progress = await get_or_create_progress(session, user_id)
            progress.experience += badge.reward_experience
            progress.points += badge.reward_points
            level_up = apply_level_up(progress)
            try:
                await session.flush()
            except IntegrityError as exc:
                raise ConflictError("Badge already earned") from exc
            earned.badge = badge

            await add_activity(
                session,
                user_id,
                "badge_earned",
                f'Earned badge "{badge.name}"',
                occurred_at=earned.earned_at,
                badge_id=badge.id,
                points=badge.reward_points,
                experience=badge.reward_experience,
                level_up=level_up,
            )

        logger.info("badge_awarded", user_id=user_id, badge_id=badge_id)
        return earned

    async def record_activity(
        self,
        user_id: int,
        activity_type: str,
        description: str,
        points: int = 0,
        experience: int = 0,
    ) -> Activity:
        """Log an activity and credit the points and experience it carries."""
        activity_type = (activity_type or "").strip()
        description = (description or "").strip()
        if not activity_type:
            raise InvalidInputError("type is required")
        if not description:
            raise InvalidInputError("description is required")
        if points < 0 or experience < 0:
            raise InvalidInputError("points and experience must not be negative")

        async with self._transaction("record_activity") as session:
            progress = await get_or_create_progress(session, user_id)
            progress.points += points
            progress.experience += experience
            level_up = apply_level_up(progress)
            activity = await add_activity(
                session,
                user_id,
                activity_type,
                description,
                occurred_at=self._clock(),
                points=points,
                experience=experience,
                level_up=level_up,
            )

        logger.info(
            "activity_recorded",
            user_id=user_id,
            activity_type=activity_type,
            level_up=level_up,
        )
        return activity


__all__ = [
    "ClientCreateData",
    "ClientCreateResult",
    "ClientDeleteResult",
    "ConsistencyCoordinator",
    "ObjectiveCreateData",
    "ObjectiveUpdateData",
    "ProfitabilitySetup",
    "ProfitabilityUpdateData",
    "TaskCompletionResult",
    "TaskCreateData",
    "TaskUpdateData",
    "TimerStartData",
    "TimerStopResult",
    "objective_progress",
]
