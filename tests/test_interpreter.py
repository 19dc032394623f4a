from conftest import FIXED_TIME, linear_state, sequential_interpreter

from gittrainer import commands as cmd
from gittrainer.interpreter import FALLBACK_MESSAGE, GitInterpreter, SequentialIds, interpret
from gittrainer.state import Commit, RepositoryState, initial_state, validate_state


def _run(interpreter: GitInterpreter, state: RepositoryState, *commands: str) -> RepositoryState:
    for command in commands:
        result = interpreter.interpret(command, "", state)
        assert result.succeeded, f"{command}: {result.display_text}"
        state = result.next_state
    return state


def test_handler_table_covers_every_command_variant(interpreter: GitInterpreter) -> None:
    assert interpreter.handled_types == frozenset(cmd.COMMAND_TYPES)


def test_interpret_never_mutates_input(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    state.working_directory = ["a.txt"]
    before = state.clone()
    for command in ["git add a.txt", 'git commit -am "x"', "git checkout -b x", "git reset --hard HEAD~1", "git init"]:
        interpreter.interpret(command, "", state)
        assert state == before


def test_first_commit_scenario(interpreter: GitInterpreter) -> None:
    state = _run(interpreter, initial_state(), "git init", "touch index.html", "git add index.html")
    result = interpreter.interpret('git commit -m "Initial commit"', 'git commit -m "Initial commit"', state)
    final = result.next_state

    assert result.succeeded is True
    assert len(final.commits) == 1
    assert final.branches["main"] == final.commits[0].hash
    assert final.head == final.commits[0].hash
    assert final.staging == []
    assert final.working_directory == []
    assert final.commits[0].timestamp == FIXED_TIME
    assert "(root-commit)" in result.display_text


def test_commit_without_staged_files_fails_atomically(interpreter: GitInterpreter) -> None:
    state = initial_state()
    result = interpreter.interpret('git commit -m "x"', "", state)
    assert result.succeeded is False
    assert result.is_error is True
    assert result.next_state == state
    assert result.next_state is not state
    assert "nothing to commit" in result.display_text


def test_expected_command_always_passes(interpreter: GitInterpreter) -> None:
    state = initial_state()
    result = interpreter.interpret('git commit -m "x"', "git   commit -m 'x'", state)
    assert result.succeeded is True
    assert result.is_error is False
    assert result.display_text == FALLBACK_MESSAGE
    assert result.next_state == state


def test_expected_command_covers_unknown_input(interpreter: GitInterpreter) -> None:
    result = interpreter.interpret("git frobnicate --now", "git frobnicate --now", initial_state())
    assert result.succeeded is True
    assert result.display_text == FALLBACK_MESSAGE


def test_unrecognized_input_errors(interpreter: GitInterpreter) -> None:
    state = initial_state()
    assert interpreter.interpret("ls", "", state).display_text == "ls: command not found"
    assert "not a git command" in interpreter.interpret("git frob", "", state).display_text
    assert interpreter.interpret("git", "", state).is_error is True
    assert interpreter.interpret("", "", state).succeeded is False


def test_commit_monotonicity(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    state.staging = ["a.txt"]
    result = interpreter.interpret('git commit -m "next"', "", state)
    final = result.next_state
    assert len(final.commits) == len(state.commits) + 1
    new_commit = final.commits[-1]
    assert new_commit.parents == ["C2"]
    assert final.head == new_commit.hash == "0000001"
    assert final.branches["main"] == new_commit.hash


def test_commit_all_stages_working_directory(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.working_directory = ["a.txt", "b.txt"]
    final = _run(interpreter, state, 'git commit -am "both"')
    assert final.working_directory == []
    assert final.staging == []
    assert final.commits[-1].message == "both"


def test_commit_message_defaults(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.staging = ["a.txt"]
    final = _run(interpreter, state, "git commit")
    assert final.commits[-1].message == "Commit message"


def test_amend_rewrites_message_in_place(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    final = _run(interpreter, state, 'git commit --amend -m "C2 Updated"')
    assert [commit.hash for commit in final.commits] == ["C1", "C2"]
    assert final.commits[-1].message == "C2 Updated"
    assert final.head == "C2"

    kept = _run(interpreter, final, "git commit --amend --no-edit")
    assert kept.commits[-1].message == "C2 Updated"


def test_amend_without_commits_fails(interpreter: GitInterpreter) -> None:
    result = interpreter.interpret('git commit --amend -m "x"', "", initial_state())
    assert result.is_error is True


def test_branch_isolation(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    result = interpreter.interpret("git branch feature", "", state)
    final = result.next_state
    assert final.branches["feature"] == "C2"
    assert final.head == state.head
    assert final.current_branch == state.current_branch


def test_branch_errors(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.branches["feature"] = "C1"
    assert interpreter.interpret("git branch feature", "", state).is_error is True
    assert interpreter.interpret("git branch -d main", "", state).is_error is True
    assert interpreter.interpret("git branch -d missing", "", state).is_error is True
    assert interpreter.interpret("git branch bad..name", "", state).is_error is True
    assert interpreter.interpret("git branch -f main C1", "", state).is_error is True


def test_branch_delete_and_rename(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.branches["old"] = "C1"
    result = interpreter.interpret("git branch -d old", "", state)
    assert "old" not in result.next_state.branches
    assert "Deleted branch old (was C1)." == result.display_text

    renamed = _run(interpreter, state, "git branch -m trunk")
    assert "main" not in renamed.branches
    assert renamed.current_branch == "trunk"
    assert renamed.branches["trunk"] == "C1"


def test_idempotent_staging(interpreter: GitInterpreter) -> None:
    state = initial_state()
    state.working_directory = ["a.txt"]
    once = _run(interpreter, state, "git add a.txt")
    result = interpreter.interpret("git add a.txt", "", once)
    assert result.succeeded is True
    assert result.next_state.staging == ["a.txt"]


def test_add_all_and_unknown_files(interpreter: GitInterpreter) -> None:
    state = initial_state()
    state.working_directory = ["a.txt", "b.txt"]
    final = _run(interpreter, state, "git add .", "git add ghost.txt")
    assert final.staging == ["a.txt", "b.txt", "ghost.txt"]
    assert final.working_directory == []


def test_touch_skips_known_files(interpreter: GitInterpreter) -> None:
    state = initial_state()
    state.staging = ["a.txt"]
    final = _run(interpreter, state, "touch a.txt b.txt b.txt")
    assert final.working_directory == ["b.txt"]
    assert final.staging == ["a.txt"]


def test_init_keeps_existing_history(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    result = interpreter.interpret("git init", "", state)
    assert result.display_text.startswith("Reinitialized")
    assert result.next_state == state

    fresh = initial_state()
    fresh.working_directory = ["a.txt"]
    fresh.branches = {"main": "", "stale": ""}
    final = _run(interpreter, fresh, "git init")
    assert final.branches == {"main": ""}
    assert final.working_directory == ["a.txt"]


def test_checkout_branch_and_detached(interpreter: GitInterpreter) -> None:
    state = linear_state(3)
    state.branches["feature"] = "C2"
    on_feature = _run(interpreter, state, "git checkout feature")
    assert on_feature.current_branch == "feature"
    assert on_feature.head == "C2"

    result = interpreter.interpret("git checkout HEAD~1", "", on_feature)
    detached = result.next_state
    assert detached.detached is True
    assert detached.head == "C1"
    assert detached.branches["feature"] == "C2"
    assert "detached HEAD" in result.display_text

    back = _run(interpreter, detached, "git checkout main")
    assert back.detached is False
    assert back.head == "C3"


def test_switch_requires_detach_flag(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    assert interpreter.interpret("git switch C1", "", state).is_error is True
    assert _run(interpreter, state, "git switch --detach C1").head == "C1"


def test_checkout_unknown_target_fails(interpreter: GitInterpreter) -> None:
    result = interpreter.interpret("git checkout nowhere", "", linear_state(1))
    assert result.is_error is True
    assert "did not match" in result.display_text


def test_checkout_create_branch(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    final = _run(interpreter, state, "git checkout -b topic C1")
    assert final.current_branch == "topic"
    assert final.head == "C1"
    assert interpreter.interpret("git checkout -b topic", "", final).is_error is True
    reset = _run(interpreter, final, "git checkout -B topic main")
    assert reset.branches["topic"] == "C2"


def test_checkout_remote_name_creates_tracking_branch(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.remotes["origin"] = "https://example.com/repo.git"
    state.remote_branches["origin/feature"] = "C1"
    result = interpreter.interpret("git checkout feature", "", state)
    assert result.next_state.branches["feature"] == "C1"
    assert result.next_state.current_branch == "feature"
    assert "track 'origin/feature'" in result.display_text


def test_commit_while_detached_moves_only_head(interpreter: GitInterpreter) -> None:
    state = _run(interpreter, linear_state(2), "git checkout C1")
    state.staging = ["a.txt"]
    result = interpreter.interpret('git commit -m "experiment"', "", state)
    final = result.next_state
    assert final.head == "0000001"
    assert final.branches["main"] == "C2"
    assert final.commits[-1].branch == "HEAD"
    assert result.display_text.startswith("[detached HEAD 0000001]")
    assert validate_state(final) == []


def test_merge_creates_two_parent_commit(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    state.commits.append(Commit(hash="F1", message="feature", parents=["C2"], branch="feature"))
    state.branches["feature"] = "F1"
    final = _run(interpreter, state, "git merge feature")
    merge = final.commits[-1]
    assert merge.parents == ["C2", "F1"]
    assert merge.message == "Merge branch 'feature'"
    assert final.branches["main"] == merge.hash


def test_merge_of_branch_at_same_commit_still_creates_merge(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.branches["feature"] = "C1"
    result = interpreter.interpret("git merge feature", "", state)
    final = result.next_state
    assert result.succeeded is True
    assert len(final.commits) == 2
    merge = final.commits[-1]
    assert merge.parents == ["C1", "C1"]
    assert final.branches["main"] == final.head == merge.hash
    assert final.branches["feature"] == "C1"


def test_merge_message_names_target_off_default_branch(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.branches["topic"] = "C1"
    state.branches["other"] = "C1"
    final = _run(interpreter, state, "git checkout topic", "git merge other")
    assert final.commits[-1].message == "Merge branch 'other' into topic"


def test_merge_unknown_branch_fails(interpreter: GitInterpreter) -> None:
    result = interpreter.interpret("git merge nope", "", linear_state(1))
    assert result.is_error is True
    assert "not something we can merge" in result.display_text


def test_merge_into_unborn_branch_fast_forwards(interpreter: GitInterpreter) -> None:
    state = linear_state(1, branch="feature")
    state.branches["main"] = ""
    final = _run(interpreter, state, "git checkout main", "git merge feature")
    assert final.head == "C1"
    assert len(final.commits) == 1


def test_reset_modes(interpreter: GitInterpreter) -> None:
    state = linear_state(3)
    state.staging = ["a.txt"]

    soft = _run(interpreter, state, "git reset --soft HEAD~1")
    assert soft.head == "C2"
    assert soft.staging == ["a.txt"]

    mixed = _run(interpreter, state, "git reset HEAD~1")
    assert mixed.staging == []
    assert mixed.working_directory == ["a.txt"]

    hard = _run(interpreter, state, "git reset --hard HEAD~2")
    assert hard.head == "C1"
    assert hard.branches["main"] == "C1"
    assert hard.staging == []
    assert len(hard.commits) == 3


def test_reset_path_only_unstages(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.staging = ["a.txt", "b.txt"]
    final = _run(interpreter, state, "git reset a.txt")
    assert final.staging == ["b.txt"]
    assert final.working_directory == ["a.txt"]
    assert final.head == "C1"


def test_reset_unknown_revision_fails(interpreter: GitInterpreter) -> None:
    assert interpreter.interpret("git reset --hard nowhere", "", linear_state(1)).is_error is True


def test_revert_creates_new_commit(interpreter: GitInterpreter) -> None:
    final = _run(interpreter, linear_state(2), "git revert HEAD")
    revert = final.commits[-1]
    assert revert.message.startswith('Revert "C2"')
    assert revert.parents == ["C2"]
    assert final.head == revert.hash


def test_stash_push_and_pop(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.staging = ["work.txt"]
    stashed = _run(interpreter, state, "git stash")
    assert stashed.staging == []
    assert len(stashed.stash) == 1
    assert stashed.stash[0].message == "WIP on main: C1 C1"

    listed = interpreter.interpret("git stash list", "", stashed)
    assert listed.display_text == "stash@{0}: WIP on main: C1 C1"

    popped = _run(interpreter, stashed, "git stash pop")
    assert popped.stash == []
    assert popped.staging == ["work.txt"]


def test_stash_apply_keeps_entry(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.working_directory = ["notes.txt"]
    stashed = _run(interpreter, state, 'git stash push -u -m "notes"')
    assert stashed.working_directory == []
    applied = _run(interpreter, stashed, "git stash apply")
    assert applied.working_directory == ["notes.txt"]
    assert len(applied.stash) == 1


def test_stash_errors(interpreter: GitInterpreter) -> None:
    assert interpreter.interpret("git stash pop", "", linear_state(1)).display_text == "No stash entries found."
    assert interpreter.interpret("git stash drop", "", linear_state(1)).is_error is True
    assert interpreter.interpret("git stash", "", initial_state()).is_error is True
    nothing = interpreter.interpret("git stash", "", linear_state(1))
    assert nothing.succeeded is True
    assert nothing.display_text == "No local changes to save"


def test_rebase_never_rewrites_history(interpreter: GitInterpreter) -> None:
    state = linear_state(3)
    state.branches["feature"] = "C2"
    result = interpreter.interpret("git rebase -i HEAD~2", "", state)
    assert result.succeeded is True
    assert result.next_state == state

    switched = _run(interpreter, state, "git rebase main feature")
    assert switched.current_branch == "feature"
    assert switched.commits == state.commits


def test_rebase_reports_up_to_date_and_rejects_unknown_upstream(interpreter: GitInterpreter) -> None:
    state = linear_state(3)
    up_to_date = interpreter.interpret("git rebase HEAD~1", "", state)
    assert up_to_date.display_text == "Current branch main is up to date."
    assert interpreter.interpret("git rebase -i HEAD~1", "", state).display_text == (
        "Successfully rebased and updated refs/heads/main."
    )

    state.branches["feature"] = "C2"
    result = interpreter.interpret("git rebase nowhere feature", "", state)
    assert result.is_error is True
    assert result.display_text == "fatal: invalid upstream 'nowhere'"
    assert result.next_state == state


def test_log_rejects_non_decimal_count(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    for text in ["git log -n ²", "git log --max-count=x"]:
        result = interpreter.interpret(text, "", state)
        assert result.is_error is True
        assert "not an integer" in result.display_text
        assert result.next_state == state


def test_cherry_pick_references_picked_commit(interpreter: GitInterpreter) -> None:
    state = linear_state(1)
    state.commits.append(Commit(hash="C2", message="Fix", parents=["C1"], branch="side"))
    state.commits.append(Commit(hash="C3", message="Logs", parents=["C2"], branch="side"))
    state.branches["side"] = "C3"
    final = _run(interpreter, state, "git cherry-pick C2 C3")
    first, second = final.commits[-2:]
    assert first.parents == ["C1"]
    assert second.parents == [first.hash]
    assert "(cherry picked from commit C2)" in first.message
    assert final.head == second.hash


def test_cherry_pick_unknown_commit_is_atomic(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    result = interpreter.interpret("git cherry-pick C1 nope", "", state)
    assert result.is_error is True
    assert result.next_state == state


def test_tags(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    tagged = _run(interpreter, state, "git tag v1 HEAD~1", "git tag v2")
    assert tagged.tags == {"v1": "C1", "v2": "C2"}
    assert interpreter.interpret("git tag", "", tagged).display_text == "v1\nv2"
    assert interpreter.interpret("git tag v1", "", tagged).is_error is True
    assert interpreter.interpret("git tag v3 nowhere", "", tagged).is_error is True
    assert _run(interpreter, tagged, "git tag -d v1").tags == {"v2": "C2"}
    assert interpreter.interpret("git tag -d v9", "", tagged).is_error is True


def test_describe(interpreter: GitInterpreter) -> None:
    state = linear_state(3)
    assert interpreter.interpret("git describe", "", state).is_error is True
    state.tags["v1"] = "C1"
    assert interpreter.interpret("git describe", "", state).display_text == "v1-2-gC3"
    assert interpreter.interpret("git describe HEAD~1", "", state).display_text == "v1-1-gC2"
    assert interpreter.interpret("git describe v1", "", state).display_text == "v1"


def test_config_set_get_list(interpreter: GitInterpreter) -> None:
    state = initial_state()
    final = _run(
        interpreter,
        state,
        'git config --global user.name "Your Name"',
        "git config user.email me@example.com",
        "git config core.editor vim",
    )
    assert final.config.name == "Your Name"
    assert interpreter.interpret("git config user.name", "", final).display_text == "Your Name"
    listing = interpreter.interpret("git config --list", "", final).display_text
    assert listing.splitlines() == ["user.name=Your Name", "user.email=me@example.com", "core.editor=vim"]
    missing = interpreter.interpret("git config user.signingkey", "", final)
    assert missing.is_error is True
    assert missing.display_text == ""


def test_status_and_log_output(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    state.working_directory = ["new.txt"]
    status = interpreter.interpret("git status", "", state).display_text
    assert status.startswith("On branch main")
    assert "Untracked files:" in status
    assert "new.txt" in status

    log = interpreter.interpret("git log --oneline", "", state).display_text
    assert log.splitlines() == ["C2 (HEAD -> main) C2", "C1 C1"]
    assert interpreter.interpret("git log -n 1 --oneline", "", state).display_text == "C2 (HEAD -> main) C2"
    assert interpreter.interpret("git log", "", initial_state()).is_error is True


def test_show_and_diff(interpreter: GitInterpreter) -> None:
    state = linear_state(2)
    state.staging = ["a.txt"]
    show = interpreter.interpret("git show C1 --no-patch", "", state).display_text
    assert show.startswith("commit C1")
    assert "diff --git" not in show
    assert "fatal: bad object" in interpreter.interpret("git show nope", "", state).display_text
    assert "a/a.txt" in interpreter.interpret("git diff --staged", "", state).display_text
    assert interpreter.interpret("git diff", "", state).display_text == ""


def test_id_factory_collisions_are_retried() -> None:
    interpreter = GitInterpreter(id_factory=SequentialIds(["C1", "C1", "fresh01"]), clock=lambda: 0.0)
    state = linear_state(1)
    state.staging = ["a.txt"]
    final = interpreter.interpret('git commit -m "x"', "", state).next_state
    assert final.head == "fresh01"


def test_module_level_interpret_uses_random_ids() -> None:
    state = initial_state()
    state.staging = ["a.txt"]
    result = interpret('git commit -m "x"', "", state)
    commit_id = result.next_state.head
    assert commit_id is not None
    assert len(commit_id) == 7
    int(commit_id, 16)


def test_sequential_interpreter_is_reproducible() -> None:
    state = initial_state()
    state.staging = ["a.txt"]
    first = sequential_interpreter().interpret('git commit -m "x"', "", state).next_state
    second = sequential_interpreter().interpret('git commit -m "x"', "", state).next_state
    assert first == second
