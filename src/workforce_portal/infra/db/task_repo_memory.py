from __future__ import annotations
from typing import Dict, Iterable, List

from workforce_portal.domain.errors import TaskLookup
from workforce_portal.domain.task_models import Priority, ReferenceType, Task


class InMemoryTaskRepo:
    """
    In-memory task store for tests and TASK_STORE=memory runs.
    Hands out deep copies so callers only change stored state through save().
    """
    def __init__(self):
        self._tasks: Dict[int, Task] = {}
        self._next_id = 1

    async def get(self, task_id: int) -> TaskLookup:
        task = self._tasks.get(task_id)
        return TaskLookup(task_id, task.model_copy(deep=True) if task else None)

    async def get_by_reference(self, reference_id: int, reference_type: ReferenceType) -> List[Task]:
        return self._select(
            t for t in self._tasks.values()
            if t.reference_id == reference_id and t.reference_type == reference_type
        )

    async def get_by_assignees(self, assignee_ids: Iterable[int]) -> List[Task]:
        wanted = set(assignee_ids)
        return self._select(t for t in self._tasks.values() if t.assignee_id in wanted)

    async def get_by_priority(self, priority: Priority) -> List[Task]:
        return self._select(t for t in self._tasks.values() if t.priority == priority)

    async def save(self, task: Task) -> Task:
        if task.id is None:
            task.id = self._next_id
            self._next_id += 1
        self._tasks[task.id] = task.model_copy(deep=True)
        return task

    def _select(self, tasks: Iterable[Task]) -> List[Task]:
        # ascending id, same as the sqlite repo
        return [t.model_copy(deep=True) for t in sorted(tasks, key=lambda t: t.id)]
