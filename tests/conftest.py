# tests/conftest.py

from __future__ import annotations

from datetime import timezone

import pytest

from workforce_portal.infra.db.task_repo_memory import InMemoryTaskRepo
from workforce_portal.services.task_service import TaskService

from .fakes import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def repo() -> InMemoryTaskRepo:
    return InMemoryTaskRepo()


@pytest.fixture()
def service(repo: InMemoryTaskRepo, clock: FakeClock) -> TaskService:
    """TaskService over the in-memory store, a fake clock and UTC day boundaries."""
    return TaskService(repo, clock=clock, tz=timezone.utc)
