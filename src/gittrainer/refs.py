"""Revision and refspec resolution against a repository snapshot."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .state import RepositoryState

MIN_PREFIX_LENGTH = 4
_RELATIVE_STEP = re.compile(r"(~\d*|\^\d*)")


@dataclass(frozen=True)
class Refspec:
    """`source:destination` pair.

    ``destination`` is None for a bare `name`; an empty ``source`` with a
    destination deletes (push) or creates (fetch) the destination ref.
    """

    source: str
    destination: str | None

    @property
    def is_delete(self) -> bool:
        return self.source == "" and bool(self.destination)

    def __str__(self) -> str:
        if self.destination is None:
            return self.source
        return f"{self.source}:{self.destination}"


def parse_refspec(text: str) -> Refspec:
    """Parse `src:dst`, `:dst`, or a bare `name`."""
    spec = text[1:] if text.startswith("+") else text
    if ":" not in spec:
        return Refspec(source=spec, destination=None)
    source, destination = spec.split(":", 1)
    return Refspec(source=source, destination=destination or None)


def split_relative(spec: str) -> tuple[str, int]:
    """Split `base~N^^` into the base name and the total number of steps back.

    `~` alone counts as one step, `^N` counts as one step (the Nth parent is
    not modelled).
    """
    match = re.search(r"[~^]", spec)
    if match is None:
        return spec, 0
    base, suffix = spec[: match.start()], spec[match.start() :]
    steps = 0
    position = 0
    for step in _RELATIVE_STEP.finditer(suffix):
        if step.start() != position:
            raise ValueError(spec)
        token = step.group(0)
        if token.startswith("~"):
            steps += int(token[1:]) if len(token) > 1 else 1
        else:
            steps += 1
        position = step.end()
    if position != len(suffix):
        raise ValueError(spec)
    return base, steps


def resolve_name(state: RepositoryState, name: str) -> str | None:
    """Resolve a plain ref name or commit id, without relative suffixes."""
    if name in {"HEAD", "@"}:
        return state.head
    if name in state.branches:
        return state.branch_tip(name)
    if name in state.tags:
        return state.tags[name] or None
    if name.startswith("remotes/"):
        name = name[len("remotes/") :]
    if name in state.remote_branches:
        return state.remote_branches[name] or None
    if state.find_commit(name) is not None:
        return name
    if len(name) >= MIN_PREFIX_LENGTH:
        matches = [commit.hash for commit in state.commits if commit.hash.startswith(name)]
        if len(matches) == 1:
            return matches[0]
    return None


def resolve_revision(state: RepositoryState, spec: str) -> str | None:
    """Resolve `spec` to a commit id, or None when it names nothing.

    Relative steps walk back through ``state.commits`` in creation order
    rather than along parent links, so on branched histories `HEAD~N` can
    land on a commit from another branch.
    """
    try:
        base, steps = split_relative(spec)
    except ValueError:
        return None
    commit_id = resolve_name(state, base or "HEAD")
    if commit_id is None or steps == 0:
        return commit_id
    index = state.commit_index(commit_id)
    if index is None or index - steps < 0:
        return None
    return state.commits[index - steps].hash


def first_parent_chain(state: RepositoryState, commit_id: str | None) -> list[str]:
    """Return `commit_id` followed by its first-parent ancestors."""
    chain: list[str] = []
    seen: set[str] = set()
    current = state.find_commit(commit_id)
    while current is not None and current.hash not in seen:
        chain.append(current.hash)
        seen.add(current.hash)
        current = state.find_commit(current.parents[0]) if current.parents else None
    return chain


def reachable(state: RepositoryState, starts: list[str]) -> list[str]:
    """Return ids reachable from `starts`, newest first by creation order."""
    wanted: set[str] = set()
    pending = [commit_id for commit_id in starts if commit_id]
    while pending:
        commit_id = pending.pop()
        if commit_id in wanted:
            continue
        commit = state.find_commit(commit_id)
        if commit is None:
            continue
        wanted.add(commit_id)
        pending.extend(commit.parents)
    return [commit.hash for commit in reversed(state.commits) if commit.hash in wanted]
