"""Parse raw console input into typed command variants."""

from __future__ import annotations

import re
import shlex
from collections.abc import Callable
from dataclasses import dataclass

from .refs import Refspec, parse_refspec

ALL_PATHS = "."


class CommandError(Exception):
    """Command could not be applied; the message is shown to the learner."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class Empty:
    """Blank input."""


@dataclass(frozen=True)
class Touch:
    files: tuple[str, ...]


@dataclass(frozen=True)
class ShellCommand:
    """Any program other than `git` and the filesystem stubs."""

    program: str


@dataclass(frozen=True)
class GitUsage:
    """Bare `git` with no subcommand."""


@dataclass(frozen=True)
class UnknownGitCommand:
    name: str


@dataclass(frozen=True)
class Init:
    directory: str | None


@dataclass(frozen=True)
class Clone:
    url: str
    directory: str | None


@dataclass(frozen=True)
class Add:
    paths: tuple[str, ...]
    all: bool


@dataclass(frozen=True)
class Commit:
    message: str | None
    amend: bool
    all: bool


@dataclass(frozen=True)
class Status:
    short: bool


@dataclass(frozen=True)
class Log:
    oneline: bool
    graph: bool
    all: bool
    max_count: int | None
    revision: str | None


@dataclass(frozen=True)
class BranchList:
    show_local: bool
    show_remote: bool


@dataclass(frozen=True)
class BranchCreate:
    name: str
    start_point: str | None
    force: bool


@dataclass(frozen=True)
class BranchDelete:
    name: str
    force: bool


@dataclass(frozen=True)
class BranchRename:
    old_name: str | None
    new_name: str


@dataclass(frozen=True)
class Checkout:
    """`checkout` and `switch`: attach to a branch, create one, or detach."""

    target: str
    create: bool
    reset: bool
    start_point: str | None
    allow_detach: bool


@dataclass(frozen=True)
class Merge:
    branch: str


@dataclass(frozen=True)
class Pull:
    remote: str | None
    refspec: Refspec | None


@dataclass(frozen=True)
class Push:
    remote: str | None
    refspec: Refspec | None
    set_upstream: bool


@dataclass(frozen=True)
class Fetch:
    remote: str | None
    refspec: Refspec | None


@dataclass(frozen=True)
class RemoteList:
    verbose: bool


@dataclass(frozen=True)
class RemoteAdd:
    name: str
    url: str


@dataclass(frozen=True)
class RemoveRemote:
    name: str


@dataclass(frozen=True)
class Reset:
    mode: str
    target: str | None
    paths: tuple[str, ...]


@dataclass(frozen=True)
class Revert:
    target: str


@dataclass(frozen=True)
class StashPush:
    message: str | None
    include_untracked: bool


@dataclass(frozen=True)
class StashPop:
    keep: bool


@dataclass(frozen=True)
class StashDrop:
    pass


@dataclass(frozen=True)
class StashList:
    pass


@dataclass(frozen=True)
class Rebase:
    upstream: str | None
    branch: str | None
    interactive: bool


@dataclass(frozen=True)
class Diff:
    staged: bool


@dataclass(frozen=True)
class Show:
    revision: str
    oneline: bool
    patch: bool


@dataclass(frozen=True)
class TagList:
    pass


@dataclass(frozen=True)
class TagCreate:
    name: str
    target: str | None


@dataclass(frozen=True)
class TagDelete:
    name: str


@dataclass(frozen=True)
class CherryPick:
    revisions: tuple[str, ...]


@dataclass(frozen=True)
class ConfigSet:
    key: str
    value: str


@dataclass(frozen=True)
class ConfigGet:
    key: str


@dataclass(frozen=True)
class ConfigList:
    pass


@dataclass(frozen=True)
class Describe:
    revision: str


Command = (
    Empty
    | Touch
    | ShellCommand
    | GitUsage
    | UnknownGitCommand
    | Init
    | Clone
    | Add
    | Commit
    | Status
    | Log
    | BranchList
    | BranchCreate
    | BranchDelete
    | BranchRename
    | Checkout
    | Merge
    | Pull
    | Push
    | Fetch
    | RemoteList
    | RemoteAdd
    | RemoveRemote
    | Reset
    | Revert
    | StashPush
    | StashPop
    | StashDrop
    | StashList
    | Rebase
    | Diff
    | Show
    | TagList
    | TagCreate
    | TagDelete
    | CherryPick
    | ConfigSet
    | ConfigGet
    | ConfigList
    | Describe
)

COMMAND_TYPES: tuple[type, ...] = Command.__args__  # type: ignore[attr-defined]


def normalize_command_text(text: str) -> str:
    """Collapse whitespace and treat both quote characters as the same."""
    return " ".join(text.split()).replace('"', "'")


def tokenize(text: str) -> list[str]:
    """Split shell-style, falling back to whitespace on unbalanced quotes."""
    stripped = text.strip()
    if not stripped:
        return []
    try:
        return shlex.split(stripped, posix=True)
    except ValueError:
        return [token.strip("\"'") for token in stripped.split() if token.strip("\"'")]


def parse_command(text: str) -> Command:
    """Parse one console line into a command variant."""
    tokens = tokenize(text)
    if not tokens:
        return Empty()
    program, args = tokens[0], tokens[1:]
    if program == "touch":
        if not args:
            raise CommandError("usage: touch <file>")
        return Touch(files=tuple(args))
    if program != "git":
        return ShellCommand(program=program)
    if not args:
        return GitUsage()
    parser = _GIT_PARSERS.get(args[0])
    if parser is None:
        return UnknownGitCommand(name=args[0])
    return parser(args[1:])


def _scan(args: list[str], value_options: frozenset[str] = frozenset()) -> tuple[dict[str, str | None], list[str]]:
    """Split arguments into options and positionals.

    Options in ``value_options`` consume the next token; ``--key=value`` is
    split in place; everything after ``--`` is positional.
    """
    options: dict[str, str | None] = {}
    positionals: list[str] = []
    force_positionals = False
    index = 0
    while index < len(args):
        token = args[index]
        if force_positionals:
            positionals.append(token)
        elif token == "--":
            force_positionals = True
        elif token.startswith("--") and "=" in token:
            key, value = token.split("=", 1)
            options[key] = value
        elif token in value_options:
            if index + 1 < len(args):
                options[token] = args[index + 1]
                index += 1
            else:
                options[token] = None
        elif token.startswith("-") and len(token) > 1:
            options[token] = None
        else:
            positionals.append(token)
        index += 1
    return options, positionals


def _has(options: dict[str, str | None], *names: str) -> bool:
    return any(name in options for name in names)


def _option_value(options: dict[str, str | None], *names: str) -> str | None:
    for name in names:
        value = options.get(name)
        if value is not None:
            return value
    return None


def _parse_init(args: list[str]) -> Command:
    _, positionals = _scan(args)
    return Init(directory=positionals[0] if positionals else None)


def _parse_clone(args: list[str]) -> Command:
    _, positionals = _scan(args)
    if not positionals:
        raise CommandError("fatal: You must specify a repository to clone.")
    return Clone(url=positionals[0], directory=positionals[1] if len(positionals) > 1 else None)


def _parse_add(args: list[str]) -> Command:
    options, positionals = _scan(args)
    add_all = _has(options, "-A", "--all") or ALL_PATHS in positionals
    if not positionals and not add_all:
        raise CommandError("Nothing specified, nothing added.\nhint: Maybe you wanted to say 'git add .'?")
    return Add(paths=tuple(path for path in positionals if path != ALL_PATHS), all=add_all)


_COMMIT_FLAGS = {"-a", "--all", "--amend", "--no-edit", "-m", "-am", "-ma", "--message", "-v", "-q"}


def _parse_commit(args: list[str]) -> Command:
    message_parts: list[str] | None = None
    amend = False
    stage_all = False
    index = 0
    while index < len(args):
        token = args[index]
        if token.startswith("--message="):
            message_parts = [token.split("=", 1)[1]]
        elif token in {"-m", "-am", "-ma", "--message"}:
            if token in {"-am", "-ma"}:
                stage_all = True
            message_parts = []
            while index + 1 < len(args) and args[index + 1] not in _COMMIT_FLAGS:
                index += 1
                message_parts.append(args[index])
        elif token in {"-a", "--all"}:
            stage_all = True
        elif token == "--amend":
            amend = True
        index += 1
    message = " ".join(message_parts) if message_parts is not None else None
    return Commit(message=message, amend=amend, all=stage_all)


def _parse_status(args: list[str]) -> Command:
    options, _ = _scan(args)
    return Status(short=_has(options, "-s", "--short"))


def _parse_log(args: list[str]) -> Command:
    options, positionals = _scan(args, frozenset({"-n", "--max-count"}))
    max_count: int | None = None
    raw_count = _option_value(options, "-n", "--max-count")
    if raw_count is not None:
        if not raw_count.isdecimal():
            raise CommandError(f"fatal: '{raw_count}': not an integer")
        max_count = int(raw_count)
    for key in options:
        match = re.fullmatch(r"-n?(\d+)", key)
        if match:
            max_count = int(match.group(1))
    return Log(
        oneline=_has(options, "--oneline"),
        graph=_has(options, "--graph"),
        all=_has(options, "--all"),
        max_count=max_count,
        revision=positionals[0] if positionals else None,
    )


def _parse_branch(args: list[str]) -> Command:
    options, positionals = _scan(args)
    if _has(options, "-d", "-D", "--delete"):
        if not positionals:
            raise CommandError("fatal: branch name required")
        return BranchDelete(name=positionals[0], force=_has(options, "-D", "--force", "-f"))
    if _has(options, "-m", "-M", "--move"):
        if not positionals:
            raise CommandError("fatal: branch name required")
        if len(positionals) == 1:
            return BranchRename(old_name=None, new_name=positionals[0])
        return BranchRename(old_name=positionals[0], new_name=positionals[1])
    if positionals:
        return BranchCreate(
            name=positionals[0],
            start_point=positionals[1] if len(positionals) > 1 else None,
            force=_has(options, "-f", "--force"),
        )
    remote = _has(options, "-r", "--remotes")
    every = _has(options, "-a", "--all")
    return BranchList(show_local=not remote or every, show_remote=remote or every)


def _parse_checkout(args: list[str]) -> Command:
    options, positionals = _scan(args, frozenset({"-b", "-B"}))
    new_branch = _option_value(options, "-b", "-B")
    if _has(options, "-b", "-B"):
        if new_branch is None:
            raise CommandError(f"error: switch `{'B' if '-B' in options else 'b'}' requires a value")
        return Checkout(
            target=new_branch,
            create=True,
            reset="-B" in options,
            start_point=positionals[0] if positionals else None,
            allow_detach=False,
        )
    if not positionals:
        raise CommandError("error: you must specify a branch to checkout")
    return Checkout(target=positionals[0], create=False, reset=False, start_point=None, allow_detach=True)


def _parse_switch(args: list[str]) -> Command:
    options, positionals = _scan(args, frozenset({"-c", "-C", "--create", "--force-create"}))
    new_branch = _option_value(options, "-c", "-C", "--create", "--force-create")
    if _has(options, "-c", "-C", "--create", "--force-create"):
        if new_branch is None:
            raise CommandError("error: switch `c' requires a value")
        return Checkout(
            target=new_branch,
            create=True,
            reset=_has(options, "-C", "--force-create"),
            start_point=positionals[0] if positionals else None,
            allow_detach=False,
        )
    if not positionals:
        raise CommandError("fatal: missing branch or commit argument")
    return Checkout(
        target=positionals[0],
        create=False,
        reset=False,
        start_point=None,
        allow_detach=_has(options, "-d", "--detach"),
    )


def _parse_merge(args: list[str]) -> Command:
    _, positionals = _scan(args, frozenset({"-m"}))
    if not positionals:
        raise CommandError("fatal: No remote for the current branch.")
    return Merge(branch=positionals[0])


def _remote_and_refspec(positionals: list[str]) -> tuple[str | None, Refspec | None]:
    remote = positionals[0] if positionals else None
    refspec = parse_refspec(positionals[1]) if len(positionals) > 1 else None
    return remote, refspec


def _parse_pull(args: list[str]) -> Command:
    _, positionals = _scan(args)
    remote, refspec = _remote_and_refspec(positionals)
    return Pull(remote=remote, refspec=refspec)


def _parse_push(args: list[str]) -> Command:
    options, positionals = _scan(args)
    remote, refspec = _remote_and_refspec(positionals)
    return Push(remote=remote, refspec=refspec, set_upstream=_has(options, "-u", "--set-upstream"))


def _parse_fetch(args: list[str]) -> Command:
    _, positionals = _scan(args)
    remote, refspec = _remote_and_refspec(positionals)
    return Fetch(remote=remote, refspec=refspec)


def _parse_remote(args: list[str]) -> Command:
    options, positionals = _scan(args)
    if not positionals:
        return RemoteList(verbose=_has(options, "-v", "--verbose"))
    action, rest = positionals[0], positionals[1:]
    if action == "add":
        if len(rest) < 2:
            raise CommandError("usage: git remote add <name> <url>")
        return RemoteAdd(name=rest[0], url=rest[1])
    if action in {"remove", "rm"}:
        if not rest:
            raise CommandError("usage: git remote remove <name>")
        return RemoveRemote(name=rest[0])
    raise CommandError(f"error: unknown subcommand: `{action}'")


def _parse_reset(args: list[str]) -> Command:
    options, positionals = _scan(args)
    mode = "mixed"
    if "--soft" in options:
        mode = "soft"
    elif "--hard" in options:
        mode = "hard"
    if "--" in args:
        split = args.index("--")
        before = [token for token in args[:split] if not token.startswith("-")]
        return Reset(mode=mode, target=before[0] if before else None, paths=tuple(args[split + 1 :]))
    return Reset(
        mode=mode,
        target=positionals[0] if positionals else None,
        paths=tuple(positionals[1:]),
    )


def _parse_revert(args: list[str]) -> Command:
    _, positionals = _scan(args)
    return Revert(target=positionals[0] if positionals else "HEAD")


def _parse_stash(args: list[str]) -> Command:
    action = args[0] if args and not args[0].startswith("-") else "push"
    rest = args[1:] if args and not args[0].startswith("-") else args
    if action in {"push", "save"}:
        options, positionals = _scan(rest, frozenset({"-m", "--message"}))
        message = _option_value(options, "-m", "--message")
        if message is None and action == "save" and positionals:
            message = " ".join(positionals)
        return StashPush(message=message, include_untracked=_has(options, "-u", "--include-untracked"))
    if action == "pop":
        return StashPop(keep=False)
    if action == "apply":
        return StashPop(keep=True)
    if action == "drop":
        return StashDrop()
    if action == "list":
        return StashList()
    raise CommandError(f"error: unknown subcommand: {action}")


def _parse_rebase(args: list[str]) -> Command:
    options, positionals = _scan(args, frozenset({"--onto"}))
    return Rebase(
        upstream=positionals[0] if positionals else None,
        branch=positionals[1] if len(positionals) > 1 else None,
        interactive=_has(options, "-i", "--interactive"),
    )


def _parse_diff(args: list[str]) -> Command:
    options, _ = _scan(args)
    return Diff(staged=_has(options, "--staged", "--cached"))


def _parse_show(args: list[str]) -> Command:
    options, positionals = _scan(args)
    return Show(
        revision=positionals[0] if positionals else "HEAD",
        oneline=_has(options, "--oneline"),
        patch=not _has(options, "--no-patch", "-s", "--quiet"),
    )


def _parse_tag(args: list[str]) -> Command:
    options, positionals = _scan(args, frozenset({"-m", "--message"}))
    if _has(options, "-d", "--delete"):
        if not positionals:
            raise CommandError("usage: git tag -d <tagname>")
        return TagDelete(name=positionals[0])
    if not positionals or _has(options, "-l", "--list"):
        return TagList()
    return TagCreate(name=positionals[0], target=positionals[1] if len(positionals) > 1 else None)


def _parse_cherry_pick(args: list[str]) -> Command:
    _, positionals = _scan(args)
    if not positionals:
        raise CommandError("usage: git cherry-pick <commit>...")
    return CherryPick(revisions=tuple(positionals))


def _parse_config(args: list[str]) -> Command:
    options, positionals = _scan(args)
    if _has(options, "--list", "-l"):
        return ConfigList()
    if not positionals:
        raise CommandError("usage: git config [<options>]")
    if len(positionals) == 1:
        return ConfigGet(key=positionals[0])
    return ConfigSet(key=positionals[0], value=" ".join(positionals[1:]))


def _parse_describe(args: list[str]) -> Command:
    _, positionals = _scan(args)
    return Describe(revision=positionals[0] if positionals else "HEAD")


_GIT_PARSERS: dict[str, Callable[[list[str]], Command]] = {
    "init": _parse_init,
    "clone": _parse_clone,
    "add": _parse_add,
    "commit": _parse_commit,
    "status": _parse_status,
    "log": _parse_log,
    "branch": _parse_branch,
    "checkout": _parse_checkout,
    "switch": _parse_switch,
    "merge": _parse_merge,
    "pull": _parse_pull,
    "push": _parse_push,
    "fetch": _parse_fetch,
    "remote": _parse_remote,
    "reset": _parse_reset,
    "revert": _parse_revert,
    "stash": _parse_stash,
    "rebase": _parse_rebase,
    "diff": _parse_diff,
    "show": _parse_show,
    "tag": _parse_tag,
    "cherry-pick": _parse_cherry_pick,
    "config": _parse_config,
    "describe": _parse_describe,
}
