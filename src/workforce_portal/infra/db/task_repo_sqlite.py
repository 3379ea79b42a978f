from __future__ import annotations
from typing import Iterable, List, Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String, Text, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from workforce_portal.domain.errors import TaskLookup
from workforce_portal.domain.task_models import (
    Activity,
    Priority,
    ReferenceType,
    Task,
    TaskStatus,
    TaskType,
)


class Base(DeclarativeBase):
    pass


class ActivityRow(Base):
    __tablename__ = "task_activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(ForeignKey("tasks.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def to_domain(self) -> Activity:
        return Activity(
            event_type=self.event_type,
            comment=self.comment,
            timestamp=self.timestamp,
            user_id=self.user_id,
        )


class TaskRow(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reference_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    reference_type: Mapped[str] = mapped_column(String(20), nullable=False)
    task_type: Mapped[str] = mapped_column(String(40), nullable=False)
    assignee_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(12), nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    deadline_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    activities: Mapped[List[ActivityRow]] = relationship(
        order_by=ActivityRow.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def apply(self, task: Task) -> None:
        self.reference_id = task.reference_id
        self.reference_type = task.reference_type.value
        self.task_type = task.task_type.value
        self.assignee_id = task.assignee_id
        self.status = task.status.value
        self.priority = task.priority.value
        self.description = task.description
        self.deadline_time = task.deadline_time
        self.created_at = task.created_at
        # the log is rewritten wholesale; comment saves may reorder it
        self.activities = [
            ActivityRow(
                position=i,
                event_type=a.event_type,
                comment=a.comment,
                timestamp=a.timestamp,
                user_id=a.user_id,
            )
            for i, a in enumerate(task.activities)
        ]

    def to_domain(self) -> Task:
        return Task(
            id=self.id,
            reference_id=self.reference_id,
            reference_type=ReferenceType(self.reference_type),
            task_type=TaskType(self.task_type),
            assignee_id=self.assignee_id,
            status=TaskStatus(self.status),
            priority=Priority(self.priority),
            description=self.description,
            deadline_time=self.deadline_time,
            created_at=self.created_at,
            activities=[a.to_domain() for a in self.activities],
        )


class SQLiteTaskRepo:
    def __init__(self, sessionmaker):
        self.sessionmaker = sessionmaker

    async def get(self, task_id: int) -> TaskLookup:
        async with self.sessionmaker() as session:
            row = await session.get(TaskRow, task_id)
            return TaskLookup(task_id, row.to_domain() if row else None)

    async def get_by_reference(self, reference_id: int, reference_type: ReferenceType) -> List[Task]:
        return await self._select(
            TaskRow.reference_id == reference_id,
            TaskRow.reference_type == reference_type.value,
        )

    async def get_by_assignees(self, assignee_ids: Iterable[int]) -> List[Task]:
        return await self._select(TaskRow.assignee_id.in_(list(assignee_ids)))

    async def get_by_priority(self, priority: Priority) -> List[Task]:
        return await self._select(TaskRow.priority == priority.value)

    async def save(self, task: Task) -> Task:
        async with self.sessionmaker() as session:
            row: Optional[TaskRow] = None
            if task.id is not None:
                row = await session.get(TaskRow, task.id)
            if row is None:
                row = TaskRow(id=task.id)
                session.add(row)
            row.apply(task)
            await session.commit()
            task.id = row.id
            return task

    async def _select(self, *criteria) -> List[Task]:
        async with self.sessionmaker() as session:
            res = await session.execute(select(TaskRow).where(*criteria).order_by(TaskRow.id))
            rows = res.scalars().all()
            return [r.to_domain() for r in rows]
