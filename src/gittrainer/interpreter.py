"""Apply parsed commands to a repository snapshot and render console output."""

from __future__ import annotations

import logging
import random
import re
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from . import commands as cmd
from .commands import CommandError, normalize_command_text, parse_command
from .refs import first_parent_chain, reachable, resolve_revision
from .render import (
    placeholder_diff,
    render_branch_list,
    render_log,
    render_show,
    render_status,
    short_id,
    subject,
)
from .state import DEFAULT_BRANCH, Commit, RepositoryState, StashEntry

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Command executed successfully."
DEFAULT_COMMIT_MESSAGE = "Commit message"
PROJECT_ROOT = "/project"
MAX_ID_ATTEMPTS = 32
_INVALID_BRANCH_NAME = re.compile(r"[\s~^:?*\[\\]|\.\.|@\{|^[-/]|/$|\.lock$|^\.|^@$")

IdFactory = Callable[[], str]
Clock = Callable[[], float]


def random_commit_id() -> str:
    """Return a random 7-digit hex id."""
    return f"{random.getrandbits(28):07x}"


class SequentialIds:
    """Id factory that hands out a fixed sequence, for reproducible runs."""

    def __init__(self, ids: Iterable[str]) -> None:
        self._ids = iter(ids)

    def __call__(self) -> str:
        try:
            return next(self._ids)
        except StopIteration:
            raise RuntimeError("Id sequence exhausted.") from None


@dataclass(frozen=True)
class InterpretationResult:
    """Outcome of one console command."""

    succeeded: bool
    is_error: bool
    display_text: str
    next_state: RepositoryState


class GitInterpreter:
    """Stateless command interpreter with injectable id and time sources."""

    def __init__(self, id_factory: IdFactory | None = None, clock: Clock | None = None) -> None:
        self._id_factory = id_factory or random_commit_id
        self._clock = clock or time.time
        self._handlers: dict[type, Callable[[Any, RepositoryState], str]] = {
            cmd.Empty: self._empty,
            cmd.Touch: self._touch,
            cmd.ShellCommand: self._shell_command,
            cmd.GitUsage: self._git_usage,
            cmd.UnknownGitCommand: self._unknown_git_command,
            cmd.Init: self._init,
            cmd.Clone: self._clone,
            cmd.Add: self._add,
            cmd.Commit: self._commit,
            cmd.Status: self._status,
            cmd.Log: self._log,
            cmd.BranchList: self._branch_list,
            cmd.BranchCreate: self._branch_create,
            cmd.BranchDelete: self._branch_delete,
            cmd.BranchRename: self._branch_rename,
            cmd.Checkout: self._checkout,
            cmd.Merge: self._merge,
            cmd.Pull: self._pull,
            cmd.Push: self._push,
            cmd.Fetch: self._fetch,
            cmd.RemoteList: self._remote_list,
            cmd.RemoteAdd: self._remote_add,
            cmd.RemoveRemote: self._remove_remote,
            cmd.Reset: self._reset,
            cmd.Revert: self._revert,
            cmd.StashPush: self._stash_push,
            cmd.StashPop: self._stash_pop,
            cmd.StashDrop: self._stash_drop,
            cmd.StashList: self._stash_list,
            cmd.Rebase: self._rebase,
            cmd.Diff: self._diff,
            cmd.Show: self._show,
            cmd.TagList: self._tag_list,
            cmd.TagCreate: self._tag_create,
            cmd.TagDelete: self._tag_delete,
            cmd.CherryPick: self._cherry_pick,
            cmd.ConfigSet: self._config_set,
            cmd.ConfigGet: self._config_get,
            cmd.ConfigList: self._config_list,
            cmd.Describe: self._describe,
        }

    @property
    def handled_types(self) -> frozenset[type]:
        return frozenset(self._handlers)

    def interpret(self, user_input: str, expected: str, state: RepositoryState) -> InterpretationResult:
        """Run one command against a copy of `state`.

        A command that lexically equals `expected` always succeeds; if its
        simulation failed, the state is left unchanged and a generic
        acknowledgement is shown instead of the error.
        """
        is_expected = normalize_command_text(user_input) == normalize_command_text(expected)
        working = state.clone()
        try:
            command = parse_command(user_input)
            logger.debug("Parsed %r as %s", user_input, type(command).__name__)
            output = self._handlers[type(command)](command, working)
        except CommandError as exc:
            if is_expected:
                logger.debug("Accepting %r by expected-command match despite: %s", user_input, exc.message)
                return InterpretationResult(
                    succeeded=True, is_error=False, display_text=FALLBACK_MESSAGE, next_state=state.clone()
                )
            return InterpretationResult(
                succeeded=False, is_error=True, display_text=exc.message, next_state=state.clone()
            )
        return InterpretationResult(succeeded=True, is_error=False, display_text=output, next_state=working)

    # Shared helpers

    def _new_id(self, state: RepositoryState) -> str:
        known = state.known_ids()
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate not in known:
                return candidate
        raise CommandError("fatal: unable to allocate a new object id")

    def _new_commit(
        self, state: RepositoryState, message: str, parents: list[str], branch: str | None = None
    ) -> Commit:
        commit = Commit(
            hash=self._new_id(state),
            message=message,
            parents=parents,
            branch=branch or ("HEAD" if state.detached else state.current_branch),
            timestamp=self._clock(),
        )
        state.commits.append(commit)
        return commit

    def _require_head(self, state: RepositoryState) -> str:
        if state.head is None:
            raise CommandError(f"fatal: your current branch '{state.current_branch}' does not have any commits yet")
        return state.head

    def _require_remote(self, state: RepositoryState, name: str | None, missing_message: str) -> str:
        if not state.remotes:
            raise CommandError(missing_message)
        if name is None:
            return "origin" if "origin" in state.remotes else next(iter(state.remotes))
        if name not in state.remotes:
            raise CommandError(
                f"fatal: '{name}' does not appear to be a git repository\n"
                "fatal: Could not read from remote repository."
            )
        return name

    def _fetched_commit(self, state: RepositoryState, remote: str, branch: str) -> Commit:
        """Synthesize the commit a fetch of `remote/branch` would bring in."""
        ref = f"{remote}/{branch}"
        parent = state.remote_branches.get(ref) or state.head
        commit = self._new_commit(state, f"Update {branch} from {remote}", [parent] if parent else [], branch=branch)
        state.remote_branches[ref] = commit.hash
        return commit

    # Filesystem stubs and unrecognized input

    def _empty(self, command: cmd.Empty, state: RepositoryState) -> str:
        raise CommandError("")

    def _touch(self, command: cmd.Touch, state: RepositoryState) -> str:
        for name in command.files:
            if name not in state.working_directory and name not in state.staging:
                state.working_directory.append(name)
        return ""

    def _shell_command(self, command: cmd.ShellCommand, state: RepositoryState) -> str:
        raise CommandError(f"{command.program}: command not found")

    def _git_usage(self, command: cmd.GitUsage, state: RepositoryState) -> str:
        raise CommandError("usage: git [--version] [--help] <command> [<args>]")

    def _unknown_git_command(self, command: cmd.UnknownGitCommand, state: RepositoryState) -> str:
        raise CommandError(f"git: '{command.name}' is not a git command. See 'git --help'.")

    # Repository setup

    def _init(self, command: cmd.Init, state: RepositoryState) -> str:
        if command.directory:
            return f"Initialized empty Git repository in {PROJECT_ROOT}/{command.directory}/.git/"
        if state.commits:
            return f"Reinitialized existing Git repository in {PROJECT_ROOT}/.git/"
        state.branches = {DEFAULT_BRANCH: ""}
        state.current_branch = DEFAULT_BRANCH
        state.head = None
        state.detached = False
        state.remotes = {}
        state.remote_branches = {}
        state.tags = {}
        state.stash = []
        return f"Initialized empty Git repository in {PROJECT_ROOT}/.git/"

    def _clone(self, command: cmd.Clone, state: RepositoryState) -> str:
        directory = command.directory or _directory_from_url(command.url)
        root = Commit(
            hash=self._new_id(state),
            message="Initial commit from remote",
            parents=[],
            branch=DEFAULT_BRANCH,
            timestamp=self._clock(),
        )
        state.commits = [root]
        state.branches = {DEFAULT_BRANCH: root.hash}
        state.current_branch = DEFAULT_BRANCH
        state.head = root.hash
        state.detached = False
        state.staging = []
        state.working_directory = []
        state.remotes = {"origin": command.url}
        state.remote_branches = {f"origin/{DEFAULT_BRANCH}": root.hash}
        state.tags = {}
        state.stash = []
        return (
            f"Cloning into '{directory}'...\n"
            "remote: Enumerating objects: 10, done.\n"
            "remote: Total 10 (delta 1), reused 10 (delta 1), pack-reused 0\n"
            "Receiving objects: 100% (10/10), done."
        )

    # Staging and committing

    def _add(self, command: cmd.Add, state: RepositoryState) -> str:
        names = list(state.working_directory) if command.all else []
        names.extend(command.paths)
        for name in names:
            if name in state.staging:
                continue
            if name in state.working_directory:
                state.working_directory.remove(name)
            # Unknown names are staged as if the file had just been created.
            state.staging.append(name)
        return ""

    def _commit(self, command: cmd.Commit, state: RepositoryState) -> str:
        if command.amend:
            return self._amend(command, state)
        if not state.staging and not command.all:
            raise CommandError("nothing to commit, working tree clean")
        if command.all:
            state.staging.extend(name for name in state.working_directory if name not in state.staging)
            state.working_directory = []

        message = command.message or DEFAULT_COMMIT_MESSAGE
        files = list(state.staging)
        root = state.head is None
        commit = self._new_commit(state, message, [state.head] if state.head else [])
        _move_head(state, commit.hash)
        state.staging = []

        root_label = " (root-commit)" if root else ""
        summary = f"[{_ref_label(state)}{root_label} {short_id(commit.hash)}] {subject(message)}"
        if files:
            summary += "\n" + _files_changed(files)
        return summary

    def _amend(self, command: cmd.Commit, state: RepositoryState) -> str:
        target = state.find_commit(state.head)
        if target is None:
            raise CommandError("fatal: You have nothing to amend.")
        if command.all:
            state.staging.extend(name for name in state.working_directory if name not in state.staging)
            state.working_directory = []
        # Rewritten in place: the id stays the same.
        if command.message is not None:
            target.message = command.message
        state.staging = []
        return f"[{_ref_label(state)} {short_id(target.hash)}] {subject(target.message)}"

    def _status(self, command: cmd.Status, state: RepositoryState) -> str:
        return render_status(state, short=command.short)

    def _log(self, command: cmd.Log, state: RepositoryState) -> str:
        if not state.commits:
            self._require_head(state)
        if command.all:
            starts = [state.head or ""]
            starts.extend(state.branches.values())
            starts.extend(state.remote_branches.values())
            starts.extend(state.tags.values())
        elif command.revision is not None:
            commit_id = resolve_revision(state, command.revision)
            if commit_id is None:
                raise CommandError(
                    f"fatal: ambiguous argument '{command.revision}': unknown revision or path not in the working tree."
                )
            starts = [commit_id]
        else:
            starts = [self._require_head(state)]
        commit_ids = reachable(state, starts)
        if command.max_count is not None:
            commit_ids = commit_ids[: command.max_count]
        return render_log(state, commit_ids, oneline=command.oneline, graph=command.graph)

    # Branches

    def _branch_list(self, command: cmd.BranchList, state: RepositoryState) -> str:
        return render_branch_list(state, show_local=command.show_local, show_remote=command.show_remote)

    def _branch_create(self, command: cmd.BranchCreate, state: RepositoryState) -> str:
        _check_branch_name(command.name)
        exists = command.name in state.branches
        if exists and not command.force:
            raise CommandError(f"fatal: A branch named '{command.name}' already exists.")
        if exists and not state.detached and command.name == state.current_branch:
            raise CommandError(
                f"fatal: cannot force update the branch '{command.name}' used by worktree at '{PROJECT_ROOT}'"
            )
        start = state.head
        if command.start_point is not None:
            start = resolve_revision(state, command.start_point)
            if start is None:
                raise CommandError(f"fatal: not a valid object name: '{command.start_point}'")
        state.branches[command.name] = start or ""
        return ""

    def _branch_delete(self, command: cmd.BranchDelete, state: RepositoryState) -> str:
        if command.name not in state.branches:
            raise CommandError(f"error: branch '{command.name}' not found.")
        if not state.detached and command.name == state.current_branch:
            raise CommandError(f"error: Cannot delete branch '{command.name}' checked out at '{PROJECT_ROOT}'")
        tip = state.branches.pop(command.name)
        return f"Deleted branch {command.name} (was {short_id(tip)})."

    def _branch_rename(self, command: cmd.BranchRename, state: RepositoryState) -> str:
        if command.old_name is None and state.detached:
            raise CommandError("fatal: cannot rename the current branch while not on any.")
        old_name = command.old_name or state.current_branch
        if old_name not in state.branches:
            raise CommandError(f"error: refname refs/heads/{old_name} not found\nfatal: Branch rename failed")
        _check_branch_name(command.new_name)
        if command.new_name in state.branches and command.new_name != old_name:
            raise CommandError(f"fatal: A branch named '{command.new_name}' already exists.")
        state.branches[command.new_name] = state.branches.pop(old_name)
        if not state.detached and state.current_branch == old_name:
            state.current_branch = command.new_name
        return ""

    def _checkout(self, command: cmd.Checkout, state: RepositoryState) -> str:
        target = command.target
        if command.create:
            return self._checkout_new_branch(command, state)

        if target in state.branches:
            if not state.detached and target == state.current_branch:
                return f"Already on '{target}'"
            state.current_branch = target
            state.head = state.branch_tip(target)
            state.detached = False
            return f"Switched to branch '{target}'"

        tracking = [ref for ref in state.remote_branches if ref.split("/", 1)[-1] == target and "/" in ref]
        if len(tracking) == 1 and "/" not in target:
            upstream = tracking[0]
            state.branches[target] = state.remote_branches[upstream]
            state.current_branch = target
            state.head = state.branch_tip(target)
            state.detached = False
            return f"branch '{target}' set up to track '{upstream}'.\nSwitched to a new branch '{target}'"

        commit_id = resolve_revision(state, target)
        if commit_id is None:
            if target in state.staging or target in state.working_directory:
                return "Updated 1 path from the index"
            raise CommandError(f"error: pathspec '{target}' did not match any file(s) known to git")
        if not command.allow_detach:
            raise CommandError(
                f"fatal: a branch is expected, got '{target}'\n"
                "hint: If you want to detach HEAD at the commit, try again with the --detach option."
            )
        state.head = commit_id
        state.detached = True
        commit = state.find_commit(commit_id)
        message = subject(commit.message) if commit else ""
        return (
            f"Note: switching to '{target}'.\n\n"
            "You are in 'detached HEAD' state. You can look around, make experimental\n"
            "changes and commit them, and you can discard any commits you make in this\n"
            "state without impacting any branches by switching back to a branch.\n\n"
            f"HEAD is now at {short_id(commit_id)} {message}"
        )

    def _checkout_new_branch(self, command: cmd.Checkout, state: RepositoryState) -> str:
        name = command.target
        _check_branch_name(name)
        existed = name in state.branches
        if existed and not command.reset:
            raise CommandError(f"fatal: A branch named '{name}' already exists.")
        start = state.head
        if command.start_point is not None:
            start = resolve_revision(state, command.start_point)
            if start is None:
                raise CommandError(
                    f"fatal: '{command.start_point}' is not a commit and a branch '{name}' cannot be created from it"
                )
        state.branches[name] = start or ""
        state.current_branch = name
        state.head = start
        state.detached = False
        if existed:
            return f"Switched to and reset branch '{name}'"
        return f"Switched to a new branch '{name}'"

    def _merge(self, command: cmd.Merge, state: RepositoryState) -> str:
        name = command.branch
        if name in state.branches:
            tip = state.branch_tip(name)
            message = f"Merge branch '{name}'"
        else:
            tip = state.remote_branches.get(name) or None
            message = f"Merge remote-tracking branch '{name}'"
        if tip is None:
            raise CommandError(f"merge: {name} - not something we can merge")
        if not state.detached and state.current_branch != DEFAULT_BRANCH:
            message += f" into {state.current_branch}"

        if state.head is None:
            _move_head(state, tip)
            return f"Fast-forward to {short_id(tip)}"
        commit = self._new_commit(state, message, [state.head, tip])
        _move_head(state, commit.hash)
        return "Merge made by the 'ort' strategy."

    # Remotes

    def _pull(self, command: cmd.Pull, state: RepositoryState) -> str:
        remote = self._require_remote(state, command.remote, "fatal: No remote repository specified.")
        url = state.remotes[remote]
        refspec = command.refspec
        if refspec is not None and refspec.source == "":
            raise CommandError(f"fatal: invalid refspec '{refspec}'")
        if refspec is None and state.detached:
            raise CommandError(
                "You are not currently on a branch.\nPlease specify which branch you want to merge with."
            )
        branch = refspec.source if refspec is not None else state.current_branch
        old_head = state.head
        fetched = self._fetched_commit(state, remote, branch)
        header = f"From {url}\n * branch            {branch} -> FETCH_HEAD"

        if refspec is not None and refspec.destination:
            destination = refspec.destination
            _check_branch_name(destination)
            state.branches[destination] = fetched.hash
            merge_message = f"Merge branch '{destination}' of {url}"
        else:
            merge_message = f"Merge branch '{branch}' of {url}"

        # Only a plain pull may fast-forward; with a refspec it always merges.
        fast_forward = refspec is None and old_head in first_parent_chain(state, fetched.hash)
        if old_head is None or fast_forward:
            _move_head(state, fetched.hash)
            return (
                f"{header}\nUpdating {short_id(old_head)}..{short_id(fetched.hash)}\n"
                "Fast-forward\n README.md | 2 ++\n 1 file changed, 2 insertions(+)"
            )
        merge = self._new_commit(state, merge_message, [old_head, fetched.hash])
        _move_head(state, merge.hash)
        return f"{header}\nMerge made by the 'ort' strategy."

    def _push(self, command: cmd.Push, state: RepositoryState) -> str:
        remote = self._require_remote(state, command.remote, "fatal: No configured push destination.")
        url = state.remotes[remote]
        refspec = command.refspec
        if refspec is not None and refspec.is_delete:
            destination = refspec.destination or ""
            ref = f"{remote}/{destination}"
            if ref not in state.remote_branches:
                raise CommandError(
                    f"error: unable to delete '{destination}': remote ref does not exist\n"
                    f"error: failed to push some refs to '{url}'"
                )
            del state.remote_branches[ref]
            return f"To {url}\n - [deleted]         {destination}"

        if refspec is None:
            if state.detached:
                raise CommandError("fatal: You are not currently on a branch.")
            source = destination = state.current_branch
        else:
            source = refspec.source
            destination = refspec.destination or source
        commit_id = resolve_revision(state, source)
        if commit_id is None:
            raise CommandError(
                f"error: src refspec {source} does not match any\nerror: failed to push some refs to '{url}'"
            )
        _check_branch_name(destination)
        ref = f"{remote}/{destination}"
        previous = state.remote_branches.get(ref)
        state.remote_branches[ref] = commit_id

        if previous == commit_id:
            lines = ["Everything up-to-date"]
        else:
            lines = ["Enumerating objects: 5, done.", "Writing objects: 100% (3/3), done.", f"To {url}"]
            if previous is None:
                lines.append(f" * [new branch]      {source} -> {destination}")
            else:
                lines.append(f"   {short_id(previous)}..{short_id(commit_id)}  {source} -> {destination}")
        if command.set_upstream:
            lines.append(f"branch '{source}' set up to track '{ref}'.")
        return "\n".join(lines)

    def _fetch(self, command: cmd.Fetch, state: RepositoryState) -> str:
        remote = self._require_remote(state, command.remote, "fatal: No remote repository specified.")
        url = state.remotes[remote]
        refspec = command.refspec
        if refspec is None:
            refs = sorted(ref for ref in state.remote_branches if ref.startswith(f"{remote}/"))
            if not refs:
                return ""
            lines = [f"From {url}"]
            lines.extend(f" = [up to date]      {ref.split('/', 1)[1]} -> {ref}" for ref in refs)
            return "\n".join(lines)

        if refspec.is_delete:
            destination = refspec.destination or ""
            _check_branch_name(destination)
            if destination in state.branches:
                return ""
            state.branches[destination] = state.head or ""
            return f"From {url}\n * [new branch]      -> {destination}"

        source = refspec.source
        destination = refspec.destination
        if destination and not state.detached and destination == state.current_branch:
            raise CommandError(
                f"fatal: refusing to fetch into branch 'refs/heads/{destination}' checked out at '{PROJECT_ROOT}'"
            )
        existed = f"{remote}/{source}" in state.remote_branches
        fetched = self._fetched_commit(state, remote, source)
        lines = [f"From {url}"]
        if existed:
            lines.append(f"   {short_id(fetched.parents[0] if fetched.parents else '')}..{short_id(fetched.hash)}"
                         f"  {source} -> {remote}/{source}")
        else:
            lines.append(f" * [new branch]      {source} -> {remote}/{source}")
        if destination:
            _check_branch_name(destination)
            state.branches[destination] = fetched.hash
            lines.append(f" * [new branch]      {source} -> {destination}")
        return "\n".join(lines)

    def _remote_list(self, command: cmd.RemoteList, state: RepositoryState) -> str:
        if not command.verbose:
            return "\n".join(state.remotes)
        lines: list[str] = []
        for name, url in state.remotes.items():
            lines.append(f"{name}\t{url} (fetch)")
            lines.append(f"{name}\t{url} (push)")
        return "\n".join(lines)

    def _remote_add(self, command: cmd.RemoteAdd, state: RepositoryState) -> str:
        if command.name in state.remotes:
            raise CommandError(f"error: remote {command.name} already exists.")
        state.remotes[command.name] = command.url
        return ""

    def _remove_remote(self, command: cmd.RemoveRemote, state: RepositoryState) -> str:
        if command.name not in state.remotes:
            raise CommandError(f"error: No such remote: '{command.name}'")
        del state.remotes[command.name]
        prefix = f"{command.name}/"
        state.remote_branches = {
            ref: target for ref, target in state.remote_branches.items() if not ref.startswith(prefix)
        }
        return ""

    # History rewriting

    def _reset(self, command: cmd.Reset, state: RepositoryState) -> str:
        paths = list(command.paths)
        target = command.target or "HEAD"
        commit_id = resolve_revision(state, target)
        if commit_id is None and command.target is not None and not paths:
            if target in state.staging or target in state.working_directory:
                paths = [target]
                target = "HEAD"
                commit_id = state.head
        if paths:
            for name in paths:
                if name in state.staging:
                    state.staging.remove(name)
                    state.working_directory.append(name)
            return ""

        if commit_id is None:
            if state.head is None and command.target is None:
                state.working_directory.extend(state.staging)
                state.staging = []
                return ""
            raise CommandError(
                f"fatal: ambiguous argument '{target}': unknown revision or path not in the working tree."
            )

        _move_head(state, commit_id)
        if command.mode == "hard":
            state.staging = []
            commit = state.find_commit(commit_id)
            return f"HEAD is now at {short_id(commit_id)} {subject(commit.message) if commit else ''}"
        if command.mode == "mixed" and state.staging:
            unstaged = list(state.staging)
            state.working_directory.extend(unstaged)
            state.staging = []
            return "Unstaged changes after reset:\n" + "\n".join(f"M\t{name}" for name in unstaged)
        return ""

    def _revert(self, command: cmd.Revert, state: RepositoryState) -> str:
        if state.head is None:
            raise CommandError(f"fatal: bad revision '{command.target}'")
        commit_id = resolve_revision(state, command.target)
        reverted = state.find_commit(commit_id)
        if reverted is None:
            raise CommandError(f"fatal: bad revision '{command.target}'")
        message = f'Revert "{subject(reverted.message)}"'
        commit = self._new_commit(state, f"{message}\n\nThis reverts commit {reverted.hash}.", [state.head])
        _move_head(state, commit.hash)
        return f"[{_ref_label(state)} {short_id(commit.hash)}] {message}\n 1 file changed, 1 deletion(-)"

    # Stash

    def _stash_push(self, command: cmd.StashPush, state: RepositoryState) -> str:
        if state.head is None:
            raise CommandError("You do not have the initial commit yet")
        untracked = list(state.working_directory) if command.include_untracked else []
        if not state.staging and not untracked:
            return "No local changes to save"
        branch = "(no branch)" if state.detached else state.current_branch
        tip = state.find_commit(state.head)
        if command.message:
            label = f"On {branch}: {command.message}"
        else:
            label = f"WIP on {branch}: {short_id(state.head)} {subject(tip.message) if tip else ''}"
        entry = StashEntry(
            hash=self._new_id(state),
            message=label,
            branch=branch,
            staged=list(state.staging),
            untracked=untracked,
        )
        state.stash.append(entry)
        state.staging = []
        state.working_directory = [name for name in state.working_directory if name not in untracked]
        return f"Saved working directory and index state {label}"

    def _stash_pop(self, command: cmd.StashPop, state: RepositoryState) -> str:
        if not state.stash:
            raise CommandError("No stash entries found.")
        entry = state.stash[-1]
        for name in entry.staged:
            if name in state.working_directory:
                state.working_directory.remove(name)
            if name not in state.staging:
                state.staging.append(name)
        for name in entry.untracked:
            if name not in state.working_directory and name not in state.staging:
                state.working_directory.append(name)
        output = render_status(state, short=False)
        if not command.keep:
            state.stash.pop()
            output += f"\nDropped refs/stash@{{0}} ({entry.hash})"
        return output

    def _stash_drop(self, command: cmd.StashDrop, state: RepositoryState) -> str:
        if not state.stash:
            raise CommandError("No stash entries found.")
        entry = state.stash.pop()
        return f"Dropped refs/stash@{{0}} ({entry.hash})"

    def _stash_list(self, command: cmd.StashList, state: RepositoryState) -> str:
        return "\n".join(f"stash@{{{index}}}: {entry.message}" for index, entry in enumerate(reversed(state.stash)))

    def _rebase(self, command: cmd.Rebase, state: RepositoryState) -> str:
        # History is never rewritten; only the two-argument form switches branch.
        upstream = None
        if command.upstream is not None:
            upstream = resolve_revision(state, command.upstream)
            if upstream is None:
                raise CommandError(f"fatal: invalid upstream '{command.upstream}'")
        if command.branch is not None and command.branch in state.branches:
            state.current_branch = command.branch
            state.head = state.branch_tip(command.branch)
            state.detached = False
        ref = "HEAD" if state.detached else f"refs/heads/{state.current_branch}"
        if not command.interactive and upstream is not None and upstream in first_parent_chain(state, state.head):
            label = "HEAD" if state.detached else f"branch {state.current_branch}"
            return f"Current {label} is up to date."
        return f"Successfully rebased and updated {ref}."

    def _cherry_pick(self, command: cmd.CherryPick, state: RepositoryState) -> str:
        outputs: list[str] = []
        for revision in command.revisions:
            picked = state.find_commit(resolve_revision(state, revision))
            if picked is None:
                raise CommandError(f"fatal: bad revision '{revision}'")
            message = f"{subject(picked.message)}\n\n(cherry picked from commit {picked.hash})"
            commit = self._new_commit(state, message, [state.head] if state.head else [])
            _move_head(state, commit.hash)
            outputs.append(
                f"[{_ref_label(state)} {short_id(commit.hash)}] {subject(picked.message)}\n"
                " 1 file changed, 1 insertion(+)"
            )
        return "\n".join(outputs)

    # Inspection

    def _diff(self, command: cmd.Diff, state: RepositoryState) -> str:
        files = state.staging if command.staged else state.working_directory
        return placeholder_diff(list(files))

    def _show(self, command: cmd.Show, state: RepositoryState) -> str:
        if command.revision == "HEAD":
            self._require_head(state)
        commit = state.find_commit(resolve_revision(state, command.revision))
        if commit is None:
            raise CommandError(f"fatal: bad object {command.revision}")
        return render_show(state, commit, oneline=command.oneline, patch=command.patch)

    def _describe(self, command: cmd.Describe, state: RepositoryState) -> str:
        if not state.tags:
            raise CommandError("fatal: No names found, cannot describe anything.")
        commit_id = resolve_revision(state, command.revision)
        if commit_id is None:
            raise CommandError(f"fatal: Not a valid object name {command.revision}")
        tag_by_commit: dict[str, str] = {}
        for name in sorted(state.tags):
            tag_by_commit.setdefault(state.tags[name], name)
        for distance, ancestor in enumerate(first_parent_chain(state, commit_id)):
            name = tag_by_commit.get(ancestor)
            if name is None:
                continue
            if distance == 0:
                return name
            return f"{name}-{distance}-g{short_id(commit_id)}"
        raise CommandError(f"fatal: No tags can describe '{commit_id}'.\nTry --always, or create some tags.")

    # Tags

    def _tag_list(self, command: cmd.TagList, state: RepositoryState) -> str:
        return "\n".join(sorted(state.tags))

    def _tag_create(self, command: cmd.TagCreate, state: RepositoryState) -> str:
        if command.name in state.tags:
            raise CommandError(f"fatal: tag '{command.name}' already exists")
        target = command.target or "HEAD"
        commit_id = resolve_revision(state, target)
        if commit_id is None:
            raise CommandError(f"fatal: Failed to resolve '{target}' as a valid ref.")
        state.tags[command.name] = commit_id
        return ""

    def _tag_delete(self, command: cmd.TagDelete, state: RepositoryState) -> str:
        if command.name not in state.tags:
            raise CommandError(f"error: tag '{command.name}' not found.")
        target = state.tags.pop(command.name)
        return f"Deleted tag '{command.name}' (was {short_id(target)})"

    # Config

    def _config_set(self, command: cmd.ConfigSet, state: RepositoryState) -> str:
        if "." not in command.key:
            raise CommandError(f"error: key does not contain a section: {command.key}")
        if command.key == "user.name":
            state.config.name = command.value
        elif command.key == "user.email":
            state.config.email = command.value
        else:
            state.config.values[command.key] = command.value
        return ""

    def _config_get(self, command: cmd.ConfigGet, state: RepositoryState) -> str:
        if command.key == "user.name":
            value = state.config.name
        elif command.key == "user.email":
            value = state.config.email
        else:
            value = state.config.values.get(command.key, "")
        if not value:
            # git exits non-zero without output for unset keys.
            raise CommandError("")
        return value

    def _config_list(self, command: cmd.ConfigList, state: RepositoryState) -> str:
        lines: list[str] = []
        if state.config.name:
            lines.append(f"user.name={state.config.name}")
        if state.config.email:
            lines.append(f"user.email={state.config.email}")
        lines.extend(f"{key}={value}" for key, value in sorted(state.config.values.items()))
        return "\n".join(lines)


def _move_head(state: RepositoryState, commit_id: str) -> None:
    """Point HEAD, and the checked-out branch unless detached, at `commit_id`."""
    state.head = commit_id
    if not state.detached:
        state.branches[state.current_branch] = commit_id


def _ref_label(state: RepositoryState) -> str:
    return "detached HEAD" if state.detached else state.current_branch


def _files_changed(files: list[str]) -> str:
    noun = "file" if len(files) == 1 else "files"
    lines = [f" {len(files)} {noun} changed, 0 insertions(+), 0 deletions(-)"]
    lines.extend(f" create mode 100644 {name}" for name in files)
    return "\n".join(lines)


def _check_branch_name(name: str) -> None:
    if not name or _INVALID_BRANCH_NAME.search(name):
        raise CommandError(f"fatal: '{name}' is not a valid branch name")


def _directory_from_url(url: str) -> str:
    name = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name or "repo"


_default_interpreter = GitInterpreter()


def interpret(user_input: str, expected: str, state: RepositoryState) -> InterpretationResult:
    """Interpret one command with random ids and wall-clock timestamps."""
    return _default_interpreter.interpret(user_input, expected, state)
