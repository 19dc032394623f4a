"""CLI entrypoint for the git practice simulator."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from .content_loader import load_modules_from_dir
from .models import Lesson, Module
from .service import LessonSession, TrainerService, VerificationReport

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
T = TypeVar("T")
BACK_COMMANDS = {":back", ":b"}
HINT_COMMANDS = {":hint", ":h"}
RESTART_COMMANDS = {":restart", ":r"}
FLOW_EXIT_COMMANDS = {":quit", ":exit", ":q"}
MENU_QUIT_COMMANDS = {"q"}
MENU_BACK_COMMANDS = {"b"}


class QuitApp(Exception):
    """Signal immediate app exit from nested menu flows."""


def _service(lessons_dir: Path | None = None) -> TrainerService:
    """Create app service from bundled content or a lesson directory."""
    if lessons_dir is None:
        return TrainerService()
    return TrainerService(modules=load_modules_from_dir(lessons_dir))


def run(argv: list[str] | None = None, input_fn: InputFn = input, print_fn: PrintFn = print) -> int:
    """Run the CLI application."""
    parser = argparse.ArgumentParser(prog="gittrainer", description="Practice git commands in a simulated repository")
    parser.add_argument("command", nargs="?", default="play", choices=["play", "verify", "list"])
    parser.add_argument("--lessons-dir", type=Path, default=None, help="load lesson JSON files from this directory")
    parser.add_argument(
        "--strict", action="store_true", help="with verify: also fail tasks that only pass by matching text"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        service = _service(args.lessons_dir)
    except (OSError, KeyError, ValueError) as exc:
        print_fn(f"Could not load lessons: {exc}")
        return 2

    if args.command == "verify":
        return verify_command(service, print_fn, strict=args.strict)
    if args.command == "list":
        return list_command(service, print_fn)
    return play_shell(service, input_fn, print_fn)


def list_command(service: TrainerService, print_fn: PrintFn) -> int:
    """Print every module with its lessons."""
    for module in service.list_modules():
        print_fn(f"{module.id}: {module.title}")
        for lesson in module.lessons:
            print_fn(f"  {lesson.id:<24} {lesson.difficulty:<12} {len(lesson.tasks):>2} tasks  {lesson.title}")
    return 0


def verify_command(service: TrainerService, print_fn: PrintFn, *, strict: bool = False) -> int:
    """Run every lesson's expected commands and print a summary."""
    report = service.verify_all()
    _print_report(report, print_fn, strict=strict)
    return 0 if report.ok(strict=strict) else 1


def _print_report(report: VerificationReport, print_fn: PrintFn, *, strict: bool) -> None:
    for item in report.lessons:
        status = "PASSED" if item.passed and not (strict and item.fallbacks) else "FAILED"
        print_fn(f"[{status}] {item.lesson.id}: {item.lesson.title}")
        for check in item.failures:
            print_fn(f"  task {check.task_id}: {check.command}")
            print_fn(f"    {check.output}")
        for check in item.fallbacks:
            label = "not simulated" if strict else "accepted by match"
            print_fn(f"  task {check.task_id} ({label}): {check.command}")

    print_fn("\n--- Verification Summary ---")
    print_fn(f"Total: {len(report.lessons)}")
    print_fn(f"Passed: {report.passed_count}")
    print_fn(f"Failed: {report.failed_count}")
    print_fn(f"Accepted by match: {len(report.fallbacks)}")


def play_shell(service: TrainerService, input_fn: InputFn = input, print_fn: PrintFn = print) -> int:
    """Run persistent menu-driven shell."""
    try:
        while True:
            modules = service.list_modules()
            print_fn("\n=== Git Practice ===")
            for idx, module in enumerate(modules, start=1):
                print_fn(f"{idx}) {module.title} ({len(module.lessons)} lessons)")
            print_fn("q) Quit")
            choice = input_fn("Choose: ").strip().lower()
            if choice in MENU_QUIT_COMMANDS:
                return 0
            module = _pick(modules, choice)
            if module is None:
                print_fn("Invalid choice.")
                continue
            _module_flow(service, module, input_fn, print_fn)
    except QuitApp:
        return 0


def _pick(items: list[T], choice: str) -> T | None:
    if not choice.isdigit():
        return None
    index = int(choice) - 1
    if 0 <= index < len(items):
        return items[index]
    return None


def _module_flow(service: TrainerService, module: Module, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Choose a lesson from one module."""
    while True:
        print_fn(f"\n=== {module.title} ===")
        if module.description:
            print_fn(module.description)
        title_width = max(len(lesson.title) for lesson in module.lessons) if module.lessons else 0
        for idx, lesson in enumerate(module.lessons, start=1):
            print_fn(f"{idx:>2}) {lesson.title:<{title_width}}  [{lesson.difficulty}]")
        print_fn("b) Back")
        print_fn("q) Quit")
        choice = input_fn("Choose lesson: ").strip().lower()
        if choice in MENU_BACK_COMMANDS:
            return
        if choice in MENU_QUIT_COMMANDS:
            raise QuitApp()
        lesson = _pick(module.lessons, choice)
        if lesson is None:
            print_fn("Invalid choice.")
            continue
        _run_lesson(service.start_lesson(lesson.id), input_fn, print_fn)


def _run_lesson(session: LessonSession, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Prompt for commands until every task in the lesson succeeds."""
    lesson: Lesson = session.lesson
    print_fn(f"\nLesson: {lesson.title}")
    if lesson.description:
        print_fn(lesson.description)
    print_fn("Type :hint for a hint, :b to undo the last step, :r to restart, :q to leave.")

    while not session.completed:
        task = session.current_task
        assert task is not None
        print_fn(f"\nStep {session.task_index + 1}/{len(lesson.tasks)}: {task.instruction}")
        user_input = input_fn("$ ").strip()
        lowered = user_input.lower()
        if lowered in FLOW_EXIT_COMMANDS:
            print_fn("Leaving lesson.")
            return
        if lowered in HINT_COMMANDS:
            print_fn(f"Hint: {task.hint or task.expected_command}")
            continue
        if lowered in BACK_COMMANDS:
            if not session.back():
                print_fn("Nothing to undo.")
            continue
        if lowered in RESTART_COMMANDS:
            session.restart()
            continue

        outcome = session.submit(user_input)
        if outcome.result.display_text:
            print_fn(outcome.result.display_text)
        if not outcome.advanced:
            print_fn("Not quite. Try again (:hint for help).")

    print_fn(f"\nLesson complete: {lesson.title}")


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
