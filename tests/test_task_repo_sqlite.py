# tests/test_task_repo_sqlite.py

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import timezone
from pathlib import Path

import pytest
import pytest_asyncio

from workforce_portal.domain.task_models import (
    Activity,
    Priority,
    ReferenceType,
    Task,
    TaskStatus,
    TaskType,
    TaskUpdateItem,
)
from workforce_portal.infra.db.sqlite import create_schema, make_engine, make_sessionmaker, make_sqlite_url
from workforce_portal.infra.db.task_repo_sqlite import SQLiteTaskRepo
from workforce_portal.services.task_service import TaskService

from .fakes import T0, FakeClock, make_item


@pytest_asyncio.fixture
async def sqlite_repo(tmp_path: Path) -> AsyncGenerator[SQLiteTaskRepo, None]:
    engine = make_engine(make_sqlite_url(str(tmp_path / "tasks.db")))
    await create_schema(engine)
    yield SQLiteTaskRepo(make_sessionmaker(engine))
    await engine.dispose()


def new_task(**overrides) -> Task:
    fields = dict(
        reference_id=100,
        reference_type=ReferenceType.ORDER,
        task_type=TaskType.ARRANGE_PICKUP,
        assignee_id=5,
        status=TaskStatus.ASSIGNED,
        priority=Priority.LOW,
        description="New task created.",
        deadline_time=T0,
        created_at=T0,
        activities=[Activity(event_type="CREATED", comment="Task created by user 5", timestamp=T0, user_id=5)],
    )
    fields.update(overrides)
    return Task(**fields)


@pytest.mark.asyncio
async def test_save_assigns_id_and_round_trips(sqlite_repo):
    saved = await sqlite_repo.save(new_task())
    assert saved.id is not None

    lookup = await sqlite_repo.get(saved.id)
    assert lookup.found
    assert lookup.unwrap() == saved


@pytest.mark.asyncio
async def test_get_missing_is_not_found(sqlite_repo):
    lookup = await sqlite_repo.get(123)
    assert not lookup.found
    assert lookup.task is None


@pytest.mark.asyncio
async def test_save_existing_rewrites_fields_and_activity_log(sqlite_repo):
    task = await sqlite_repo.save(new_task())
    task.status = TaskStatus.STARTED
    task.activities.append(Activity(event_type="STATUS_CHANGED", comment="x", timestamp=T0 + 5, user_id=5))
    task.activities.append(Activity(event_type="COMMENT", comment="y", timestamp=T0 + 1, user_id=6))

    await sqlite_repo.save(task)

    stored = (await sqlite_repo.get(task.id)).unwrap()
    assert stored.status == TaskStatus.STARTED
    # insertion order is kept, not timestamp order
    assert [a.event_type for a in stored.activities] == ["CREATED", "STATUS_CHANGED", "COMMENT"]


@pytest.mark.asyncio
async def test_queries_filter_and_order_by_id(sqlite_repo):
    a = await sqlite_repo.save(new_task(assignee_id=1, priority=Priority.HIGH))
    b = await sqlite_repo.save(new_task(assignee_id=2, reference_id=200))
    c = await sqlite_repo.save(new_task(assignee_id=3, priority=Priority.HIGH, reference_type=ReferenceType.ENTITY,
                                        task_type=TaskType.ASSIGN_CUSTOMER_TO_SALES_PERSON))

    assert [t.id for t in await sqlite_repo.get_by_reference(100, ReferenceType.ORDER)] == [a.id]
    assert [t.id for t in await sqlite_repo.get_by_assignees([3, 1])] == [a.id, c.id]
    assert [t.id for t in await sqlite_repo.get_by_priority(Priority.HIGH)] == [a.id, c.id]
    assert await sqlite_repo.get_by_assignees([]) == []
    assert b.id not in [t.id for t in await sqlite_repo.get_by_priority(Priority.HIGH)]


@pytest.mark.asyncio
async def test_service_reassignment_against_sqlite(sqlite_repo):
    service = TaskService(sqlite_repo, clock=FakeClock(), tz=timezone.utc)
    await service.create_tasks([make_item(task_type=TaskType.ARRANGE_PICKUP) for _ in range(2)])
    await service.update_tasks([TaskUpdateItem(task_id=1, description="first")])

    await service.assign_by_reference(100, ReferenceType.ORDER, 7)

    tasks = await sqlite_repo.get_by_reference(100, ReferenceType.ORDER)
    by_type = {}
    for t in tasks:
        by_type.setdefault(t.task_type, []).append(t)

    kept, dup = by_type[TaskType.ARRANGE_PICKUP]
    assert (kept.status, kept.assignee_id, kept.description) == (TaskStatus.ASSIGNED, 7, "first")
    assert dup.status == TaskStatus.CANCELLED
    assert [a.event_type for a in kept.activities] == ["CREATED", "DESCRIPTION_CHANGED", "REASSIGNED"]
    # the other ORDER task types did not exist yet
    assert len(by_type[TaskType.CREATE_INVOICE]) == 1
    assert len(by_type[TaskType.COLLECT_PAYMENT]) == 1
