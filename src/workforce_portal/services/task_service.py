from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date as Date, datetime, timedelta, timezone, tzinfo
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Tuple

from workforce_portal.domain.task_models import (
    Activity,
    ActivityEvent,
    Priority,
    ReferenceType,
    Task,
    TaskCreateItem,
    TaskStatus,
    TaskType,
    TaskUpdateItem,
)
from workforce_portal.domain.task_types import TaskTypeTable

logger = logging.getLogger("workforce.tasks")

DAY_MS = 24 * 60 * 60 * 1000


def system_clock() -> int:
    return time.time_ns() // 1_000_000


def start_of_day(day: Date, tz: tzinfo) -> datetime:
    """
    Local midnight of `day`. When a DST gap swallows midnight the day starts at
    the first instant after the gap.
    """
    midnight = datetime.combine(day, datetime.min.time(), tzinfo=tz)
    wall = midnight.replace(tzinfo=None)
    if midnight.astimezone(timezone.utc).astimezone(tz).replace(tzinfo=None) == wall:
        return midnight

    # the transition lies between the two readings of the missing wall time
    a = int(midnight.replace(fold=0).timestamp()) // 60
    b = int(midnight.replace(fold=1).timestamp()) // 60
    lo, hi = min(a, b), max(a, b)
    while lo < hi:
        mid = (lo + hi) // 2
        if datetime.fromtimestamp(mid * 60, tz).date() < day:
            lo = mid + 1
        else:
            hi = mid
    return datetime.fromtimestamp(lo * 60, tz)


@dataclass
class _ReferenceLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class TaskService:
    def __init__(
        self,
        repo,
        task_types: Optional[TaskTypeTable] = None,
        clock: Callable[[], int] = system_clock,
        tz: tzinfo = timezone.utc,
    ):
        self.repo = repo
        self.task_types = task_types or TaskTypeTable()
        self.clock = clock
        self.tz = tz
        self._reference_locks: Dict[Tuple[int, ReferenceType], _ReferenceLock] = {}

    def _activity(self, event: ActivityEvent, comment: str, user_id: int) -> Activity:
        return Activity(event_type=event.value, comment=comment, timestamp=self.clock(), user_id=user_id)

    async def find_task(self, task_id: int) -> Task:
        lookup = await self.repo.get(task_id)
        if not lookup.found:
            logger.warning("task.not_found", extra={"category": "tasks", "event": "task.not_found", "task_id": task_id})
        return lookup.unwrap()

    async def create_tasks(self, items: Iterable[TaskCreateItem]) -> List[Task]:
        created: List[Task] = []
        for item in items:
            task = Task(
                reference_id=item.reference_id,
                reference_type=item.reference_type,
                task_type=item.task_type,
                assignee_id=item.assignee_id,
                priority=item.priority,
                deadline_time=item.deadline_time,
                status=TaskStatus.ASSIGNED,
                description="New task created.",
                created_at=self.clock(),
            )
            task.activities.append(
                self._activity(ActivityEvent.CREATED, f"Task created by user {item.assignee_id}", item.assignee_id)
            )
            task = await self.repo.save(task)
            logger.info(
                "task.create",
                extra={"category": "tasks", "event": "task.create", "task_id": task.id,
                       "reference_id": task.reference_id, "task_type": task.task_type.value},
            )
            created.append(task)
        return created

    async def update_tasks(self, items: Iterable[TaskUpdateItem]) -> List[Task]:
        """
        Apply status/description changes in order. The first unknown id raises
        TaskNotFoundError and the remaining items are skipped; items before it
        have already been saved.
        """
        updated: List[Task] = []
        for item in items:
            task = await self.find_task(item.task_id)

            if item.task_status is not None:
                task.activities.append(self._activity(
                    ActivityEvent.STATUS_CHANGED,
                    f"Status changed to {item.task_status.value} by user {task.assignee_id}",
                    task.assignee_id,
                ))
                task.status = item.task_status
            if item.description is not None:
                task.activities.append(self._activity(
                    ActivityEvent.DESCRIPTION_CHANGED,
                    f"Description updated by user {task.assignee_id}",
                    task.assignee_id,
                ))
                task.description = item.description

            updated.append(await self.repo.save(task))
            logger.info(
                "task.update",
                extra={"category": "tasks", "event": "task.update", "task_id": task.id,
                       "status": task.status.value},
            )
        return updated

    async def assign_by_reference(self, reference_id: int, reference_type: ReferenceType, assignee_id: int) -> str:
        async with self._reference_scope(reference_id, reference_type):
            applicable = self.task_types.get_applicable_task_types(reference_type)
            existing = await self.repo.get_by_reference(reference_id, reference_type)

            for task_type in applicable:
                active = [t for t in existing if t.task_type == task_type and t.status != TaskStatus.COMPLETED]
                if active:
                    await self._reassign(active, assignee_id)
                else:
                    await self._create_for_reference(reference_id, reference_type, task_type, assignee_id)

        return f"Tasks assigned successfully for reference {reference_id}"

    @asynccontextmanager
    async def _reference_scope(self, reference_id: int, reference_type: ReferenceType) -> AsyncIterator[None]:
        """Serialise work on one reference; the entry goes away with its last user."""
        key = (reference_id, reference_type)
        entry = self._reference_locks.get(key)
        if entry is None:
            entry = self._reference_locks[key] = _ReferenceLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._reference_locks[key]

    async def _reassign(self, active: List[Task], assignee_id: int) -> None:
        primary, duplicates = active[0], active[1:]

        primary.assignee_id = assignee_id
        primary.status = TaskStatus.ASSIGNED
        primary.activities.append(
            self._activity(ActivityEvent.REASSIGNED, f"Task reassigned to user {assignee_id}", assignee_id)
        )
        await self.repo.save(primary)
        logger.info(
            "task.assign",
            extra={"category": "tasks", "event": "task.assign", "task_id": primary.id, "assignee_id": assignee_id},
        )

        for duplicate in duplicates:
            duplicate.status = TaskStatus.CANCELLED
            duplicate.activities.append(self._activity(
                ActivityEvent.CANCELLED,
                f"Task cancelled due to reassignment by user {assignee_id}",
                assignee_id,
            ))
            await self.repo.save(duplicate)
            logger.info(
                "task.cancel_duplicate",
                extra={"category": "tasks", "event": "task.cancel_duplicate", "task_id": duplicate.id,
                       "kept_task_id": primary.id},
            )

    async def _create_for_reference(
        self, reference_id: int, reference_type: ReferenceType, task_type: TaskType, assignee_id: int
    ) -> Task:
        now = self.clock()
        task = Task(
            reference_id=reference_id,
            reference_type=reference_type,
            task_type=task_type,
            assignee_id=assignee_id,
            status=TaskStatus.ASSIGNED,
            description=f"New task created for {task_type.value}",
            deadline_time=now + DAY_MS,
            priority=Priority.MEDIUM,
            created_at=now,
        )
        task.activities.append(
            self._activity(ActivityEvent.CREATED, f"Task created by user {assignee_id}", assignee_id)
        )
        task = await self.repo.save(task)
        logger.info(
            "task.create",
            extra={"category": "tasks", "event": "task.create", "task_id": task.id,
                   "reference_id": reference_id, "task_type": task_type.value},
        )
        return task

    async def fetch_tasks_by_date(self, assignee_ids: Iterable[int], start_date: int, end_date: int) -> List[Task]:
        tasks = await self.repo.get_by_assignees(assignee_ids)
        return [
            t for t in tasks
            if t.status != TaskStatus.CANCELLED and start_date <= t.deadline_time <= end_date
        ]

    def day_window(self, date: Optional[int] = None) -> Tuple[int, int]:
        """[start, end] in epoch ms of the local day containing `date` (default: today)."""
        instant = self.clock() if date is None else date
        day = datetime.fromtimestamp(instant / 1000, self.tz).date()
        start = start_of_day(day, self.tz)
        next_start = start_of_day(day + timedelta(days=1), self.tz)
        return int(start.timestamp() * 1000), int(next_start.timestamp() * 1000) - 1

    async def fetch_daily_tasks(self, assignee_ids: Iterable[int], date: Optional[int] = None) -> List[Task]:
        start, end = self.day_window(date)
        tasks = await self.repo.get_by_assignees(assignee_ids)

        def wanted(t: Task) -> bool:
            if t.status == TaskStatus.CANCELLED:
                return False
            if start <= t.created_at <= end:
                return True
            # older work that is still open keeps showing up
            return t.created_at < start and t.status in (TaskStatus.ASSIGNED, TaskStatus.STARTED)

        return [t for t in tasks if wanted(t)]

    async def add_comment(self, task_id: int, comment: str, user_id: int) -> Task:
        task = await self.find_task(task_id)
        task.activities.append(self._activity(ActivityEvent.COMMENT, comment, user_id))
        await self.repo.save(task)
        task.activities.sort(key=lambda a: a.timestamp)
        logger.info(
            "task.comment",
            extra={"category": "tasks", "event": "task.comment", "task_id": task_id, "user_id": user_id},
        )
        return task

    async def update_task_priority(self, task_id: int, priority: Priority, user_id: int) -> Task:
        task = await self.find_task(task_id)
        task.priority = priority
        task.activities.append(self._activity(
            ActivityEvent.PRIORITY_CHANGED,
            f"Priority changed to {priority.value} by user {user_id}",
            user_id,
        ))
        await self.repo.save(task)
        logger.info(
            "task.priority",
            extra={"category": "tasks", "event": "task.priority", "task_id": task_id, "priority": priority.value},
        )
        return task

    async def fetch_tasks_by_priority(self, priority: Priority) -> List[Task]:
        return await self.repo.get_by_priority(priority)
