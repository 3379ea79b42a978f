# tests/test_logging.py

from __future__ import annotations

import json
import logging

from workforce_portal.observability.logging import JsonFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("workforce.tasks", logging.INFO, __file__, 1, "task.create", None, None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_extras():
    line = JsonFormatter().format(_record(category="tasks", event="task.create", task_id=3))
    payload = json.loads(line)

    assert payload["level"] == "INFO"
    assert payload["logger"] == "workforce.tasks"
    assert payload["msg"] == "task.create"
    assert payload["category"] == "tasks"
    assert payload["task_id"] == 3
    assert payload["ts"].endswith("Z")
    assert "lineno" not in payload


def test_json_formatter_stringifies_unserialisable_values():
    payload = json.loads(JsonFormatter().format(_record(obj=object())))
    assert payload["obj"].startswith("<object object")
