import json
from pathlib import Path
from typing import Any

from conftest import sequential_interpreter

import gittrainer.main as main
from gittrainer.models import Lesson, Module, Task
from gittrainer.service import LessonVerification, TaskCheck, TrainerService, VerificationReport
from gittrainer.state import initial_state

TASKS = [
    Task(id="t1", instruction="Create index.html.", expected_command="touch index.html", hint=""),
    Task(id="t2", instruction="Stage it.", expected_command="git add index.html", hint="git add <file>"),
]


def _service() -> TrainerService:
    lesson = Lesson(
        id="first",
        module_id="basics",
        title="First steps",
        description="Stage a file.",
        difficulty="basic",
        order=1,
        initial_state=initial_state(),
        tasks=list(TASKS),
    )
    module = Module(id="basics", title="Basics", description="Start here.", order=1, lessons=[lesson])
    return TrainerService(modules={"basics": module}, interpreter=sequential_interpreter())


def _play(inputs: list[str], monkeypatch: Any) -> tuple[int, list[str]]:
    service = _service()
    monkeypatch.setattr(main, "_service", lambda lessons_dir=None: service)
    scripted = iter(inputs)
    outputs: list[str] = []
    code = main.run([], input_fn=lambda _: next(scripted), print_fn=outputs.append)
    return code, outputs


def test_run_enters_play_shell(monkeypatch: Any) -> None:
    monkeypatch.setattr(main, "_service", lambda lessons_dir=None: _service())
    monkeypatch.setattr(main, "play_shell", lambda service, input_fn, print_fn: 7)
    assert main.run([]) == 7


def test_play_shell_completes_lesson(monkeypatch: Any) -> None:
    code, outputs = _play(["1", "1", "touch index.html", "git add index.html", "q"], monkeypatch)
    assert code == 0
    assert "=== Git Practice ===" in "\n".join(outputs)
    assert "Step 1/2: Create index.html." in "\n".join(outputs)
    assert any("Lesson complete: First steps" in line for line in outputs)


def test_play_shell_invalid_choice_then_quit(monkeypatch: Any) -> None:
    code, outputs = _play(["9", "x", "q"], monkeypatch)
    assert code == 0
    assert outputs.count("Invalid choice.") == 2


def test_module_flow_back_and_quit(monkeypatch: Any) -> None:
    code, outputs = _play(["1", "b", "1", "7", "q"], monkeypatch)
    assert code == 0
    assert sum(1 for line in outputs if "=== Basics ===" in line) == 3
    assert "Invalid choice." in outputs


def test_lesson_hint_error_and_leave(monkeypatch: Any) -> None:
    code, outputs = _play(["1", "1", "touch index.html", ":hint", "git commit -m x", ":q", "b", "q"], monkeypatch)
    assert code == 0
    assert "Hint: git add <file>" in outputs
    assert "nothing to commit, working tree clean" in outputs
    assert "Not quite. Try again (:hint for help)." in outputs
    assert "Leaving lesson." in outputs


def test_lesson_hint_falls_back_to_expected_command(monkeypatch: Any) -> None:
    _, outputs = _play(["1", "1", ":h", ":q", "q"], monkeypatch)
    assert "Hint: touch index.html" in outputs


def test_lesson_back_and_restart(monkeypatch: Any) -> None:
    inputs = ["1", "1", ":b", "touch index.html", ":back", "touch index.html", ":r", ":q", "q"]
    _, outputs = _play(inputs, monkeypatch)
    assert outputs.count("Nothing to undo.") == 1
    assert sum(1 for line in outputs if "Step 1/2" in line) == 4


def test_list_command(monkeypatch: Any) -> None:
    monkeypatch.setattr(main, "_service", lambda lessons_dir=None: _service())
    outputs: list[str] = []
    assert main.run(["list"], print_fn=outputs.append) == 0
    assert outputs[0] == "basics: Basics"
    assert "first" in outputs[1]
    assert "2 tasks" in outputs[1]


def test_verify_command_passes(monkeypatch: Any) -> None:
    monkeypatch.setattr(main, "_service", lambda lessons_dir=None: _service())
    outputs: list[str] = []
    assert main.run(["verify"], print_fn=outputs.append) == 0
    assert "[PASSED] first: First steps" in outputs
    assert "Failed: 0" in outputs


def test_verify_strict_fails_on_text_match(tmp_path: Path) -> None:
    payload = {
        "id": "m",
        "title": "M",
        "lessons": [
            {
                "id": "loose",
                "title": "Loose",
                "tasks": [{"id": "t1", "instruction": "Commit.", "expected_command": 'git commit -m "x"'}],
            }
        ],
    }
    (tmp_path / "m.json").write_text(json.dumps(payload), encoding="utf-8")
    outputs: list[str] = []

    assert main.run(["verify", "--lessons-dir", str(tmp_path)], print_fn=outputs.append) == 0
    assert "Accepted by match: 1" in outputs

    strict_outputs: list[str] = []
    code = main.run(["verify", "--strict", "--lessons-dir", str(tmp_path)], print_fn=strict_outputs.append)
    assert code == 1
    assert "[FAILED] loose: Loose" in strict_outputs
    assert any("not simulated" in line for line in strict_outputs)


def test_run_reports_invalid_lessons(tmp_path: Path) -> None:
    (tmp_path / "bad.json").write_text(json.dumps({"id": "m", "title": "M", "lessons": [{"id": "l"}]}), "utf-8")
    outputs: list[str] = []
    assert main.run(["list", "--lessons-dir", str(tmp_path)], print_fn=outputs.append) == 2
    assert outputs[0].startswith("Could not load lessons:")


def test_main_entry_raises_system_exit(monkeypatch: Any) -> None:
    monkeypatch.setattr(main, "run", lambda: 3)
    try:
        main.main_entry()
        raise AssertionError("Expected SystemExit.")
    except SystemExit as exc:
        assert exc.code == 3


def test_verify_prints_failures(monkeypatch: Any) -> None:
    failing = VerificationReport(
        lessons=(
            LessonVerification(
                lesson=_service().get_lesson("first"),
                failures=(TaskCheck("first", "t2", "git add index.html", "fatal: broken"),),
                fallbacks=(),
            ),
        )
    )
    service = _service()
    monkeypatch.setattr(service, "verify_all", lambda: failing)
    monkeypatch.setattr(main, "_service", lambda lessons_dir=None: service)
    outputs: list[str] = []
    assert main.run(["verify"], print_fn=outputs.append) == 1
    assert "[FAILED] first: First steps" in outputs
    assert "  task t2: git add index.html" in outputs
    assert "    fatal: broken" in outputs
    assert "Failed: 1" in outputs


def test_run_reports_lessons_with_missing_keys(tmp_path: Path) -> None:
    task = {"id": "t1", "expected_command": "git status"}
    payload = {"id": "m", "title": "M", "lessons": [{"id": "l", "title": "L", "tasks": [task]}]}
    (tmp_path / "m.json").write_text(json.dumps(payload), encoding="utf-8")
    outputs: list[str] = []
    assert main.run(["verify", "--lessons-dir", str(tmp_path)], print_fn=outputs.append) == 2
    assert outputs == ["Could not load lessons: 'instruction'"]
