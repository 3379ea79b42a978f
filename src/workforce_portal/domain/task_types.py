from __future__ import annotations
from typing import Dict, List, Mapping, Sequence

from workforce_portal.domain.task_models import ReferenceType, TaskType


DEFAULT_TASK_TYPES: Dict[ReferenceType, List[TaskType]] = {
    ReferenceType.ORDER: [
        TaskType.CREATE_INVOICE,
        TaskType.ARRANGE_PICKUP,
        TaskType.COLLECT_PAYMENT,
    ],
    ReferenceType.ENTITY: [
        TaskType.ASSIGN_CUSTOMER_TO_SALES_PERSON,
    ],
}


class TaskTypeTable:
    """
    Which task kinds are expected for each reference type.
    Handed to TaskService so tests can swap in their own mapping.
    """
    def __init__(self, mapping: Mapping[ReferenceType, Sequence[TaskType]] = DEFAULT_TASK_TYPES):
        self._mapping = {ref: list(types) for ref, types in mapping.items()}

    def get_applicable_task_types(self, reference_type: ReferenceType) -> List[TaskType]:
        return list(self._mapping.get(reference_type, []))
