"""Core domain models for lesson-based git practice."""

from __future__ import annotations

from dataclasses import dataclass

from .state import RepositoryState


@dataclass(frozen=True)
class Task:
    """One step of a lesson: an instruction and the command that completes it."""

    id: str
    instruction: str
    expected_command: str
    hint: str


@dataclass(frozen=True)
class Lesson:
    """Ordered practice tasks run against one starting repository."""

    id: str
    module_id: str
    title: str
    description: str
    difficulty: str
    order: int
    initial_state: RepositoryState
    tasks: list[Task]


@dataclass(frozen=True)
class Module:
    """Top-level group of lessons."""

    id: str
    title: str
    description: str
    order: int
    lessons: list[Lesson]
