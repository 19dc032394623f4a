from __future__ import annotations

import itertools
import shutil
import sys
from collections.abc import Iterator
from pathlib import Path
from uuid import uuid4

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from gittrainer.interpreter import GitInterpreter, SequentialIds  # noqa: E402
from gittrainer.state import Commit, RepositoryState  # noqa: E402

FIXED_TIME = 1767225600.0


def _tmp_path_fixture() -> Iterator[Path]:
    """Per-test directory under the project root at ``.tmp_pytest/``."""
    base = ROOT / ".tmp_pytest"
    base.mkdir(parents=True, exist_ok=True)
    path = base / str(uuid4())
    path.mkdir(parents=True, exist_ok=False)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        try:
            next(base.iterdir())
        except StopIteration:
            base.rmdir()
        except FileNotFoundError:
            pass


tmp_path = pytest.fixture(name="tmp_path")(_tmp_path_fixture)


def sequential_interpreter() -> GitInterpreter:
    """Interpreter handing out ids 0000001, 0000002, ... at a fixed time."""
    ids = SequentialIds(f"{number:07x}" for number in itertools.count(1))
    return GitInterpreter(id_factory=ids, clock=lambda: FIXED_TIME)


@pytest.fixture
def interpreter() -> GitInterpreter:
    return sequential_interpreter()


def linear_state(count: int, branch: str = "main") -> RepositoryState:
    """State with commits C1..C<count> in a line on one branch."""
    commits = []
    for number in range(1, count + 1):
        parents = [f"C{number - 1}"] if number > 1 else []
        commits.append(
            Commit(
                hash=f"C{number}",
                message=f"C{number}",
                parents=parents,
                branch=branch,
                timestamp=FIXED_TIME + number,
            )
        )
    tip = commits[-1].hash if commits else ""
    return RepositoryState(
        branches={branch: tip},
        current_branch=branch,
        commits=commits,
        head=tip or None,
    )
