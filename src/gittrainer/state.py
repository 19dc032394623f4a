"""In-memory repository snapshot used by the command interpreter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_BRANCH = "main"


@dataclass
class Commit:
    """One commit record."""

    hash: str
    message: str
    parents: list[str]
    branch: str
    timestamp: float = 0.0

    def clone(self) -> Commit:
        return Commit(
            hash=self.hash,
            message=self.message,
            parents=list(self.parents),
            branch=self.branch,
            timestamp=self.timestamp,
        )


@dataclass
class StashEntry:
    """Saved work on the stash stack."""

    hash: str
    message: str
    branch: str
    staged: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    def clone(self) -> StashEntry:
        return StashEntry(
            hash=self.hash,
            message=self.message,
            branch=self.branch,
            staged=list(self.staged),
            untracked=list(self.untracked),
        )


@dataclass
class UserConfig:
    """User identity plus any other `section.key` settings."""

    name: str = ""
    email: str = ""
    values: dict[str, str] = field(default_factory=dict)

    def clone(self) -> UserConfig:
        return UserConfig(name=self.name, email=self.email, values=dict(self.values))


@dataclass
class RepositoryState:
    """Aggregate root for one simulated repository.

    ``staging`` and ``working_directory`` are ordered, duplicate-free lists.
    ``head`` is ``None`` until the first commit exists. An empty string as a
    branch value means the branch has no commits yet. While ``detached`` is
    set, ``current_branch`` keeps the last attached branch name.
    """

    branches: dict[str, str] = field(default_factory=lambda: {DEFAULT_BRANCH: ""})
    current_branch: str = DEFAULT_BRANCH
    commits: list[Commit] = field(default_factory=list)
    head: str | None = None
    staging: list[str] = field(default_factory=list)
    working_directory: list[str] = field(default_factory=list)
    remotes: dict[str, str] = field(default_factory=dict)
    remote_branches: dict[str, str] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    stash: list[StashEntry] = field(default_factory=list)
    config: UserConfig = field(default_factory=UserConfig)
    detached: bool = False

    def clone(self) -> RepositoryState:
        """Return a structurally independent copy."""
        return RepositoryState(
            branches=dict(self.branches),
            current_branch=self.current_branch,
            commits=[commit.clone() for commit in self.commits],
            head=self.head,
            staging=list(self.staging),
            working_directory=list(self.working_directory),
            remotes=dict(self.remotes),
            remote_branches=dict(self.remote_branches),
            tags=dict(self.tags),
            stash=[entry.clone() for entry in self.stash],
            config=self.config.clone(),
            detached=self.detached,
        )

    def branch_tip(self, name: str) -> str | None:
        """Return branch tip id, or None for unknown or unborn branches."""
        return self.branches.get(name) or None

    def find_commit(self, commit_id: str | None) -> Commit | None:
        if not commit_id:
            return None
        for commit in self.commits:
            if commit.hash == commit_id:
                return commit
        return None

    def commit_index(self, commit_id: str | None) -> int | None:
        if not commit_id:
            return None
        for index, commit in enumerate(self.commits):
            if commit.hash == commit_id:
                return index
        return None

    def known_ids(self) -> set[str]:
        return {commit.hash for commit in self.commits} | {entry.hash for entry in self.stash}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible data."""
        return {
            "branches": dict(self.branches),
            "current_branch": self.current_branch,
            "commits": [
                {
                    "hash": commit.hash,
                    "message": commit.message,
                    "parents": list(commit.parents),
                    "branch": commit.branch,
                    "timestamp": commit.timestamp,
                }
                for commit in self.commits
            ],
            "head": self.head,
            "staging": list(self.staging),
            "working_directory": list(self.working_directory),
            "remotes": dict(self.remotes),
            "remote_branches": dict(self.remote_branches),
            "tags": dict(self.tags),
            "stash": [
                {
                    "hash": entry.hash,
                    "message": entry.message,
                    "branch": entry.branch,
                    "staged": list(entry.staged),
                    "untracked": list(entry.untracked),
                }
                for entry in self.stash
            ],
            "config": {"name": self.config.name, "email": self.config.email, "values": dict(self.config.values)},
            "detached": self.detached,
        }


def initial_state() -> RepositoryState:
    """Return the default empty repository."""
    return RepositoryState()


def state_from_dict(raw: dict[str, Any]) -> RepositoryState:
    """Build a state from lesson data, filling defaults for missing keys."""
    commits = [
        Commit(
            hash=str(item["hash"]),
            message=str(item.get("message", "")),
            parents=[str(parent) for parent in item.get("parents", [])],
            branch=str(item.get("branch", DEFAULT_BRANCH)),
            timestamp=float(item.get("timestamp", 0.0)),
        )
        for item in raw.get("commits", [])
    ]
    branches = {str(key): str(value or "") for key, value in raw.get("branches", {DEFAULT_BRANCH: ""}).items()}
    current_branch = str(raw.get("current_branch", DEFAULT_BRANCH))
    head_raw = raw.get("head")
    if head_raw is None and "head" not in raw:
        head_raw = branches.get(current_branch) or None
    stash = [
        StashEntry(
            hash=str(item["hash"]),
            message=str(item.get("message", "")),
            branch=str(item.get("branch", current_branch)),
            staged=[str(name) for name in item.get("staged", [])],
            untracked=[str(name) for name in item.get("untracked", [])],
        )
        for item in raw.get("stash", [])
    ]
    config_raw = raw.get("config", {})
    config = UserConfig(
        name=str(config_raw.get("name", "")),
        email=str(config_raw.get("email", "")),
        values={str(key): str(value) for key, value in config_raw.get("values", {}).items()},
    )
    return RepositoryState(
        branches=branches,
        current_branch=current_branch,
        commits=commits,
        head=str(head_raw) if head_raw else None,
        staging=_unique([str(name) for name in raw.get("staging", [])]),
        working_directory=_unique([str(name) for name in raw.get("working_directory", [])]),
        remotes={str(key): str(value) for key, value in raw.get("remotes", {}).items()},
        remote_branches={str(key): str(value) for key, value in raw.get("remote_branches", {}).items()},
        tags={str(key): str(value) for key, value in raw.get("tags", {}).items()},
        stash=stash,
        config=config,
        detached=bool(raw.get("detached", False)),
    )


def validate_state(state: RepositoryState) -> list[str]:
    """Return invariant violations, empty when the snapshot is consistent."""
    problems: list[str] = []
    seen: set[str] = set()
    for commit in state.commits:
        if commit.hash in seen:
            problems.append(f"duplicate commit id '{commit.hash}'")
        for parent in commit.parents:
            if parent not in seen:
                problems.append(f"commit '{commit.hash}' has parent '{parent}' that is not an earlier commit")
        seen.add(commit.hash)

    for kind, refs in (("branch", state.branches), ("tag", state.tags), ("remote branch", state.remote_branches)):
        for name, target in refs.items():
            if target and target not in seen:
                problems.append(f"{kind} '{name}' points at unknown commit '{target}'")

    if state.head is not None and state.head not in seen:
        problems.append(f"HEAD points at unknown commit '{state.head}'")
    if not state.detached:
        if state.current_branch not in state.branches:
            problems.append(f"current branch '{state.current_branch}' does not exist")
        elif state.branch_tip(state.current_branch) != state.head:
            problems.append(f"HEAD does not match branch '{state.current_branch}'")

    overlap = set(state.staging) & set(state.working_directory)
    for name in sorted(overlap):
        problems.append(f"file '{name}' is both staged and in the working directory")
    return problems


def _unique(names: list[str]) -> list[str]:
    return list(dict.fromkeys(names))
