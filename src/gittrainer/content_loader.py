"""Load declarative lesson content from bundled JSON resources."""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

from .models import Lesson, Module, Task
from .state import state_from_dict, validate_state

CONTENT_PACKAGE = "gittrainer.content.modules"
DIFFICULTIES = ("basic", "intermediate", "advanced", "expert")

logger = logging.getLogger(__name__)


def _task_from_dict(lesson_id: str, raw: dict[str, Any]) -> Task:
    """Build a task from raw JSON content."""
    task_id = str(raw.get("id", "<unknown>"))
    expected = str(raw.get("expected_command", "")).strip()
    if not expected:
        raise ValueError(f"Task '{task_id}' in lesson '{lesson_id}' has no expected command.")
    return Task(
        id=task_id,
        instruction=str(raw["instruction"]),
        expected_command=expected,
        hint=str(raw.get("hint", "")),
    )


def _lesson_from_dict(module_id: str, raw: dict[str, Any]) -> Lesson:
    """Build a lesson from raw JSON content."""
    lesson_id = str(raw["id"])
    tasks = [_task_from_dict(lesson_id, item) for item in raw.get("tasks", [])]
    if not tasks:
        raise ValueError(f"Lesson '{lesson_id}' has no tasks.")
    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            raise ValueError(f"Duplicate task id '{task.id}' in lesson '{lesson_id}'.")
        seen.add(task.id)

    difficulty = str(raw.get("difficulty", "basic"))
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"Lesson '{lesson_id}' has unknown difficulty '{difficulty}'.")

    initial_state = state_from_dict(raw.get("initial_state", {}))
    problems = validate_state(initial_state)
    if problems:
        raise ValueError(f"Lesson '{lesson_id}' has an invalid initial state: {'; '.join(problems)}")

    return Lesson(
        id=lesson_id,
        module_id=module_id,
        title=str(raw["title"]),
        description=str(raw.get("description", "")),
        difficulty=difficulty,
        order=int(raw.get("order", 0)),
        initial_state=initial_state,
        tasks=tasks,
    )


def _module_from_dict(raw: dict[str, Any]) -> Module:
    """Build a module from raw JSON content."""
    module_id = str(raw["id"])
    lessons = [_lesson_from_dict(module_id, lesson) for lesson in raw.get("lessons", [])]
    lessons.sort(key=lambda item: item.order)
    return Module(
        id=module_id,
        title=str(raw["title"]),
        description=str(raw.get("description", "")),
        order=int(raw.get("order", 0)),
        lessons=lessons,
    )


def load_modules() -> dict[str, Module]:
    """Load bundled modules."""
    raw_modules = []
    for entry in sorted(resources.files(CONTENT_PACKAGE).iterdir(), key=lambda item: item.name):
        if entry.name.endswith(".json"):
            raw_modules.append(json.loads(entry.read_text(encoding="utf-8-sig")))
    return _build_modules(raw_modules)


def load_modules_from_dir(path: Path) -> dict[str, Module]:
    """Load modules from directory for tests/tools."""
    raw_modules = [json.loads(file_path.read_text(encoding="utf-8-sig")) for file_path in sorted(path.glob("*.json"))]
    return _build_modules(raw_modules)


def _build_modules(raw_modules: list[dict[str, Any]]) -> dict[str, Module]:
    modules: dict[str, Module] = {}
    for raw in raw_modules:
        module = _module_from_dict(raw)
        if module.id in modules:
            raise ValueError(f"Duplicate module id: {module.id}")
        modules[module.id] = module
    _validate_unique_lesson_ids(modules)
    logger.debug("Loaded %d modules", len(modules))
    return dict(sorted(modules.items(), key=lambda item: (item[1].order, item[0])))


def _validate_unique_lesson_ids(modules: dict[str, Module]) -> None:
    """Validate that lesson IDs are globally unique across all modules."""
    seen: dict[str, str] = {}
    for module in modules.values():
        for lesson in module.lessons:
            previous = seen.get(lesson.id)
            if previous is not None:
                raise ValueError(f"Duplicate lesson id: {lesson.id} (in {previous} and {module.id})")
            seen[lesson.id] = module.id
