from typing import Any

import gittrainer.__main__ as module_main


def test_module_entrypoint_forwards_arguments(monkeypatch: Any) -> None:
    seen: list[list[str] | None] = []
    monkeypatch.setattr(module_main, "run", lambda argv: seen.append(argv) or 5)
    assert module_main.main(["verify", "--strict"]) == 5
    assert seen == [["verify", "--strict"]]
