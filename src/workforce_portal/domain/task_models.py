from __future__ import annotations
from pydantic import BaseModel, Field
from enum import Enum
from typing import List, Optional


class TaskStatus(str, Enum):
    ASSIGNED = "ASSIGNED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ReferenceType(str, Enum):
    ORDER = "ORDER"
    ENTITY = "ENTITY"


class TaskType(str, Enum):
    CREATE_INVOICE = "CREATE_INVOICE"
    ARRANGE_PICKUP = "ARRANGE_PICKUP"
    COLLECT_PAYMENT = "COLLECT_PAYMENT"
    ASSIGN_CUSTOMER_TO_SALES_PERSON = "ASSIGN_CUSTOMER_TO_SALES_PERSON"


class ActivityEvent(str, Enum):
    CREATED = "CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    DESCRIPTION_CHANGED = "DESCRIPTION_CHANGED"
    REASSIGNED = "REASSIGNED"
    CANCELLED = "CANCELLED"
    COMMENT = "COMMENT"
    PRIORITY_CHANGED = "PRIORITY_CHANGED"


class Activity(BaseModel):
    # event_type stays a plain string so callers can log their own kinds
    event_type: str
    comment: str
    timestamp: int
    user_id: int


class Task(BaseModel):
    id: Optional[int] = None
    reference_id: int
    reference_type: ReferenceType
    task_type: TaskType
    assignee_id: int
    status: TaskStatus = TaskStatus.ASSIGNED
    priority: Priority = Priority.MEDIUM
    description: str = ""
    deadline_time: int
    created_at: int
    activities: List[Activity] = Field(default_factory=list)


# --- request payloads ---

class TaskCreateItem(BaseModel):
    reference_id: int
    reference_type: ReferenceType
    task_type: TaskType
    assignee_id: int
    priority: Priority = Priority.MEDIUM
    deadline_time: int


class TaskCreateRequest(BaseModel):
    requests: List[TaskCreateItem]


class TaskUpdateItem(BaseModel):
    task_id: int
    task_status: Optional[TaskStatus] = None
    description: Optional[str] = Field(default=None, max_length=4000)


class TaskUpdateRequest(BaseModel):
    requests: List[TaskUpdateItem]


class AssignByReferenceRequest(BaseModel):
    reference_id: int
    reference_type: ReferenceType
    assignee_id: int


class TaskFetchByDateRequest(BaseModel):
    assignee_ids: List[int]
    start_date: int
    end_date: int


class DailyTaskRequest(BaseModel):
    assignee_ids: List[int]
    date: Optional[int] = None


class TaskCommentRequest(BaseModel):
    comment: str = Field(min_length=1, max_length=4000)
    user_id: int


class UpdateTaskPriorityRequest(BaseModel):
    task_id: int
    priority: Priority
    user_id: int
