from typing import List

from fastapi import APIRouter
from workforce_portal.domain.task_models import (
    AssignByReferenceRequest,
    DailyTaskRequest,
    Priority,
    Task,
    TaskCommentRequest,
    TaskCreateRequest,
    TaskFetchByDateRequest,
    TaskUpdateRequest,
    UpdateTaskPriorityRequest,
)
from workforce_portal.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def get_service() -> TaskService:
    # Overwritten in main.py:
    # tasks.get_service = lambda: svc
    raise RuntimeError("TaskService not wired")


@router.post("/create", response_model=List[Task])
async def create_tasks(payload: TaskCreateRequest):
    return await get_service().create_tasks(payload.requests)


@router.post("/update", response_model=List[Task])
async def update_tasks(payload: TaskUpdateRequest):
    return await get_service().update_tasks(payload.requests)


@router.post("/assign-by-ref")
async def assign_by_reference(payload: AssignByReferenceRequest):
    message = await get_service().assign_by_reference(
        payload.reference_id, payload.reference_type, payload.assignee_id
    )
    return {"message": message}


@router.post("/fetch-by-date", response_model=List[Task])
async def fetch_by_date(payload: TaskFetchByDateRequest):
    return await get_service().fetch_tasks_by_date(payload.assignee_ids, payload.start_date, payload.end_date)


@router.post("/daily", response_model=List[Task])
async def fetch_daily(payload: DailyTaskRequest):
    return await get_service().fetch_daily_tasks(payload.assignee_ids, payload.date)


@router.put("/priority", response_model=Task)
async def update_priority(payload: UpdateTaskPriorityRequest):
    return await get_service().update_task_priority(payload.task_id, payload.priority, payload.user_id)


@router.get("/priority/{priority}", response_model=List[Task])
async def fetch_by_priority(priority: Priority):
    return await get_service().fetch_tasks_by_priority(priority)


@router.post("/{task_id}/comment", response_model=Task)
async def add_comment(task_id: int, payload: TaskCommentRequest):
    return await get_service().add_comment(task_id, payload.comment, payload.user_id)


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: int):
    # TaskNotFoundError becomes a 404 in main.py
    return await get_service().find_task(task_id)
