"""Application service for lesson sessions and batch verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .content_loader import load_modules
from .interpreter import GitInterpreter, InterpretationResult
from .models import Lesson, Module, Task
from .state import RepositoryState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of one command typed into a lesson session."""

    task: Task
    result: InterpretationResult
    advanced: bool
    completed: bool


@dataclass(frozen=True)
class TaskCheck:
    """One task whose expected command did not simulate cleanly."""

    lesson_id: str
    task_id: str
    command: str
    output: str


@dataclass(frozen=True)
class LessonVerification:
    """Batch verification outcome for one lesson."""

    lesson: Lesson
    failures: tuple[TaskCheck, ...]
    fallbacks: tuple[TaskCheck, ...]

    @property
    def passed(self) -> bool:
        return not self.failures


@dataclass(frozen=True)
class VerificationReport:
    """Batch verification outcome for a lesson bank.

    ``fallbacks`` lists tasks that only pass because the typed command equals
    the expected command; the simulation itself rejected them.
    """

    lessons: tuple[LessonVerification, ...]

    @property
    def passed_count(self) -> int:
        return sum(1 for item in self.lessons if item.passed)

    @property
    def failed_count(self) -> int:
        return len(self.lessons) - self.passed_count

    @property
    def fallbacks(self) -> tuple[TaskCheck, ...]:
        return tuple(check for item in self.lessons for check in item.fallbacks)

    def ok(self, *, strict: bool = False) -> bool:
        """Return True when every lesson passed (and, if strict, none fell back)."""
        if self.failed_count:
            return False
        return not (strict and self.fallbacks)


class LessonSession:
    """Runs one lesson: holds the current repository and the task cursor."""

    def __init__(self, lesson: Lesson, interpreter: GitInterpreter) -> None:
        self.lesson = lesson
        self._interpreter = interpreter
        self.state = lesson.initial_state.clone()
        self.task_index = 0
        self._history: list[tuple[RepositoryState, int]] = []

    @property
    def current_task(self) -> Task | None:
        if self.task_index >= len(self.lesson.tasks):
            return None
        return self.lesson.tasks[self.task_index]

    @property
    def completed(self) -> bool:
        return self.task_index >= len(self.lesson.tasks)

    @property
    def can_go_back(self) -> bool:
        return bool(self._history)

    def submit(self, user_input: str) -> SubmitOutcome:
        """Interpret one command against the current task."""
        task = self.current_task
        if task is None:
            raise RuntimeError(f"Lesson '{self.lesson.id}' is already complete.")
        result = self._interpreter.interpret(user_input, task.expected_command, self.state)
        if not result.succeeded:
            return SubmitOutcome(task=task, result=result, advanced=False, completed=False)

        self._history.append((self.state, self.task_index))
        self.state = result.next_state
        self.task_index += 1
        logger.debug("Lesson %s advanced to task %d/%d", self.lesson.id, self.task_index, len(self.lesson.tasks))
        return SubmitOutcome(task=task, result=result, advanced=True, completed=self.completed)

    def back(self) -> bool:
        """Restore the state and task from before the last successful step."""
        if not self._history:
            return False
        self.state, self.task_index = self._history.pop()
        logger.debug("Lesson %s went back to task %d", self.lesson.id, self.task_index)
        return True

    def restart(self) -> None:
        self.state = self.lesson.initial_state.clone()
        self.task_index = 0
        self._history.clear()


class TrainerService:
    """Coordinates lesson content, sessions and verification."""

    def __init__(
        self,
        modules: dict[str, Module] | None = None,
        interpreter: GitInterpreter | None = None,
    ) -> None:
        """Initialize service with bundled content unless modules are given."""
        self.modules = load_modules() if modules is None else modules
        self.interpreter = interpreter or GitInterpreter()
        self._lessons: dict[str, Lesson] = {
            lesson.id: lesson for module in self.modules.values() for lesson in module.lessons
        }

    def list_modules(self) -> list[Module]:
        """Return modules in display order."""
        return sorted(self.modules.values(), key=lambda item: (item.order, item.id))

    def get_module(self, module_id: str) -> Module:
        """Get module by id."""
        return self.modules[module_id]

    def get_lesson(self, lesson_id: str) -> Lesson:
        """Get lesson by id from any module."""
        return self._lessons[lesson_id]

    def start_lesson(self, lesson_id: str) -> LessonSession:
        """Start a fresh session for one lesson."""
        return LessonSession(self.get_lesson(lesson_id), self.interpreter)

    def verify_lesson(self, lesson: Lesson) -> LessonVerification:
        """Feed every expected command to the interpreter in order.

        A task that the simulation rejects is retried with itself as the
        expected command and recorded in ``fallbacks``. With the lexical
        match in ``GitInterpreter`` that retry always succeeds, so
        ``failures`` only fills up for interpreters that do not honour the
        expected command.
        """
        state = lesson.initial_state.clone()
        failures: list[TaskCheck] = []
        fallbacks: list[TaskCheck] = []
        for task in lesson.tasks:
            command = task.expected_command
            strict = self.interpreter.interpret(command, "", state)
            if strict.succeeded:
                state = strict.next_state
                continue
            fallbacks.append(TaskCheck(lesson.id, task.id, command, strict.display_text))
            result = self.interpreter.interpret(command, command, state)
            if not result.succeeded:
                logger.debug("Verification failed for %s/%s: %s", lesson.id, task.id, result.display_text)
                failures.append(TaskCheck(lesson.id, task.id, command, result.display_text))
                continue
            state = result.next_state
        return LessonVerification(lesson=lesson, failures=tuple(failures), fallbacks=tuple(fallbacks))

    def verify_all(self) -> VerificationReport:
        """Verify every lesson of every module."""
        results = [
            self.verify_lesson(lesson) for module in self.list_modules() for lesson in module.lessons
        ]
        return VerificationReport(lessons=tuple(results))
