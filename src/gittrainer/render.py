"""Console-style text for read-only commands."""

from __future__ import annotations

from datetime import UTC, datetime

from .refs import first_parent_chain
from .state import Commit, RepositoryState

DEFAULT_AUTHOR = "User"
DEFAULT_EMAIL = "user@example.com"
SHORT_ID_LENGTH = 7


def short_id(commit_id: str | None) -> str:
    return (commit_id or "")[:SHORT_ID_LENGTH]


def subject(message: str) -> str:
    """First line of a commit message."""
    return message.split("\n", 1)[0]


def format_date(timestamp: float) -> str:
    """Format like git's default date: `Mon Jan 5 14:03:00 2026 +0000`."""
    moment = datetime.fromtimestamp(timestamp, UTC)
    return f"{moment:%a %b} {moment.day} {moment:%H:%M:%S %Y} +0000"


def author_line(state: RepositoryState) -> str:
    name = state.config.name or DEFAULT_AUTHOR
    email = state.config.email or DEFAULT_EMAIL
    return f"Author: {name} <{email}>"


def decorations(state: RepositoryState, commit_id: str) -> list[str]:
    """Ref labels pointing at one commit, in git's decoration order."""
    labels: list[str] = []
    if state.head == commit_id:
        if state.detached:
            labels.append("HEAD")
        elif state.current_branch in state.branches:
            labels.append(f"HEAD -> {state.current_branch}")
    for name, target in state.branches.items():
        if target == commit_id and (state.detached or name != state.current_branch or state.head != commit_id):
            labels.append(name)
    for name, target in state.remote_branches.items():
        if target == commit_id:
            labels.append(name)
    for name, target in state.tags.items():
        if target == commit_id:
            labels.append(f"tag: {name}")
    return labels


def _decorated(state: RepositoryState, commit_id: str) -> str:
    labels = decorations(state, commit_id)
    return f" ({', '.join(labels)})" if labels else ""


def render_log(state: RepositoryState, commit_ids: list[str], *, oneline: bool, graph: bool) -> str:
    """Render commits newest first."""
    commits = [commit for commit in (state.find_commit(commit_id) for commit_id in commit_ids) if commit]
    if oneline:
        lines = [f"{short_id(c.hash)}{_decorated(state, c.hash)} {subject(c.message)}" for c in commits]
        if graph:
            lines = [f"* {line}" for line in lines]
        return "\n".join(lines)

    blocks: list[str] = []
    for commit in commits:
        header = [f"commit {commit.hash}{_decorated(state, commit.hash)}"]
        if len(commit.parents) > 1:
            header.append("Merge: " + " ".join(short_id(parent) for parent in commit.parents))
        header.append(author_line(state))
        header.append(f"Date:   {format_date(commit.timestamp)}")
        block = "\n".join(header) + "\n\n" + _indent_message(commit.message)
        if graph:
            block = "\n".join(("* " if index == 0 else "| ") + line for index, line in enumerate(block.splitlines()))
        blocks.append(block)
    return "\n\n".join(blocks)


def render_show(state: RepositoryState, commit: Commit, *, oneline: bool, patch: bool) -> str:
    if oneline:
        text = f"{short_id(commit.hash)}{_decorated(state, commit.hash)} {subject(commit.message)}"
    else:
        text = (
            f"commit {commit.hash}{_decorated(state, commit.hash)}\n"
            f"{author_line(state)}\n"
            f"Date:   {format_date(commit.timestamp)}\n\n"
            f"{_indent_message(commit.message)}"
        )
    if patch:
        text += "\n\n" + placeholder_diff(["file.txt"])
    return text


def placeholder_diff(files: list[str]) -> str:
    """Fixed-content diff; no real content is tracked."""
    chunks = []
    for name in files:
        chunks.append(
            f"diff --git a/{name} b/{name}\n"
            "index 83db48f..f0168e8 100644\n"
            f"--- a/{name}\n"
            f"+++ b/{name}\n"
            "@@ -1 +1 @@\n"
            "-Old content\n"
            "+New content"
        )
    return "\n".join(chunks)


def render_status(state: RepositoryState, *, short: bool) -> str:
    if short:
        lines = [f"A  {name}" for name in state.staging]
        lines.extend(f"?? {name}" for name in state.working_directory)
        return "\n".join(lines)

    if state.detached:
        lines = [f"HEAD detached at {short_id(state.head)}"]
    else:
        lines = [f"On branch {state.current_branch}"]
        tracking = _tracking_line(state)
        if tracking:
            lines.append(tracking)
    if state.head is None:
        lines.extend(["", "No commits yet"])

    if state.staging:
        lines.extend(["", "Changes to be committed:", '  (use "git restore --staged <file>..." to unstage)'])
        lines.extend(f"\tnew file:   {name}" for name in state.staging)
    if state.working_directory:
        lines.extend(["", "Untracked files:", '  (use "git add <file>..." to include in what will be committed)'])
        lines.extend(f"\t{name}" for name in state.working_directory)

    if not state.staging and not state.working_directory:
        lines.append("")
        lines.append("nothing to commit, working tree clean")
    elif not state.staging:
        lines.append("")
        lines.append('nothing added to commit but untracked files present (use "git add" to track)')
    return "\n".join(lines)


def _tracking_line(state: RepositoryState) -> str | None:
    """Describe the current branch against `<remote>/<branch>`, if tracked."""
    for remote in state.remotes:
        upstream = f"{remote}/{state.current_branch}"
        if upstream not in state.remote_branches:
            continue
        remote_tip = state.remote_branches[upstream] or None
        if remote_tip == state.head:
            return f"Your branch is up to date with '{upstream}'."
        chain = first_parent_chain(state, state.head)
        if remote_tip in chain:
            ahead = chain.index(remote_tip)
            plural = "commit" if ahead == 1 else "commits"
            return f"Your branch is ahead of '{upstream}' by {ahead} {plural}."
        behind_chain = first_parent_chain(state, remote_tip)
        if state.head in behind_chain:
            behind = behind_chain.index(state.head)
            plural = "commit" if behind == 1 else "commits"
            return f"Your branch is behind '{upstream}' by {behind} {plural}, and can be fast-forwarded."
        return f"Your branch and '{upstream}' have diverged."
    return None


def render_branch_list(state: RepositoryState, *, show_local: bool, show_remote: bool) -> str:
    lines: list[str] = []
    if show_local:
        if state.detached:
            lines.append(f"* (HEAD detached at {short_id(state.head)})")
        for name in sorted(state.branches):
            current = not state.detached and name == state.current_branch
            lines.append(f"* {name}" if current else f"  {name}")
    if show_remote:
        prefix = "remotes/" if show_local else ""
        lines.extend(f"  {prefix}{name}" for name in sorted(state.remote_branches))
    return "\n".join(lines)


def _indent_message(message: str) -> str:
    return "\n".join(f"    {line}" for line in message.splitlines() or [""])
