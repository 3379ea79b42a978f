from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from workforce_portal.domain.task_models import Task


class TaskNotFoundError(Exception):
    def __init__(self, task_id: int):
        super().__init__(f"Task not found with id: {task_id}")
        self.task_id = task_id


@dataclass(frozen=True)
class TaskLookup:
    """Result of a store lookup by id. Call unwrap() to get the task or fail."""
    task_id: int
    task: Optional[Task] = None

    @property
    def found(self) -> bool:
        return self.task is not None

    def unwrap(self) -> Task:
        if self.task is None:
            raise TaskNotFoundError(self.task_id)
        return self.task
