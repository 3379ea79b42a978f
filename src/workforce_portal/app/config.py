from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class Settings:
    log_level: str
    log_dir: str
    db_path: str
    task_store: str
    tz: tzinfo


def load_settings() -> Settings:
    store = os.getenv("TASK_STORE", "sqlite").lower()
    if store not in ("sqlite", "memory"):
        raise ValueError(f"TASK_STORE must be 'sqlite' or 'memory', got {store!r}")

    tz_name = os.getenv("TASKS_TZ")
    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=os.getenv("LOG_DIR", "./logs"),
        db_path=os.getenv("DB_PATH", "./data/workforce.db"),
        task_store=store,
        tz=ZoneInfo(tz_name) if tz_name else timezone.utc,
    )
