"""Tests for the branch and worktree commands."""

import io
from pathlib import Path
from typing import Optional, TypeVar

import pytest
from rich.console import Console

from fgb.commands import BranchCommands, WorktreeCommands
from fgb.config import Config
from fgb.exceptions import PreconditionError
from fgb.formatter import strip_ansi
from fgb.models import RefScope
from tests.fakes import FakePicker, FakeRepo, ScriptedPrompter

CommandsT = TypeVar("CommandsT", BranchCommands, WorktreeCommands)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200, highlight=False)


def make_commands(
    cls: type[CommandsT],
    repo: FakeRepo,
    picker: FakePicker,
    prompter: ScriptedPrompter,
    console: Console,
    config: Optional[Config] = None,
) -> CommandsT:
    return cls(
        repo,
        config or Config(),
        picker=picker,
        prompter=prompter,
        console=console,
        terminal_width=120,
    )


class TestBranchCommands:
    """Tests for ``fgb branch``."""

    @pytest.fixture
    def repo(self) -> FakeRepo:
        repo = FakeRepo()
        repo.add_branch("heads/main", author="Alice")
        repo.add_branch("heads/feature", author="Bob", upstream="remotes/origin/feature")
        repo.add_branch("remotes/origin/main", author="Alice")
        repo.add_branch("remotes/origin/feature", author="Bob")
        return repo

    def test_list(
        self,
        repo: FakeRepo,
        picker: FakePicker,
        prompter: ScriptedPrompter,
        console: Console,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        make_commands(BranchCommands, repo, picker, prompter, console).list()

        lines = capsys.readouterr().out.splitlines()
        assert [strip_ansi(line).split()[0] for line in lines] == ["[main]", "[feature]"]
        assert "Bob" in strip_ansi(lines[1])

    def test_list_all_with_filter(
        self,
        repo: FakeRepo,
        picker: FakePicker,
        prompter: ScriptedPrompter,
        console: Console,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        commands = make_commands(BranchCommands, repo, picker, prompter, console)
        commands.list(RefScope.ALL, "feature")

        lines = capsys.readouterr().out.splitlines()
        assert [strip_ansi(line).split()[0] for line in lines] == ["[feature]", "(origin/feature)"]

    def test_list_uses_configured_brackets(
        self,
        repo: FakeRepo,
        picker: FakePicker,
        prompter: ScriptedPrompter,
        console: Console,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        config = Config(local_brackets="<>", remote_brackets="{}")
        make_commands(BranchCommands, repo, picker, prompter, console, config).list(RefScope.ALL)

        tokens = [strip_ansi(line).split()[0] for line in capsys.readouterr().out.splitlines()]
        assert tokens == ["<main>", "<feature>", "{origin/main}", "{origin/feature}"]

    def test_manage_passes_keys_and_query(self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console) -> None:
        picker = FakePicker()
        make_commands(BranchCommands, repo, picker, prompter, console).manage(query="feat")

        call = picker.calls[0]
        assert call["expect_keys"] == ["ctrl-d", "ctrl-alt-d", "ctrl-o"]
        assert call["query"] == "feat"
        assert call["header"].startswith("Manage Git Branches")
        assert repo.deletions() == []

    def test_manage_switch(self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console) -> None:
        picker = FakePicker(choose=["[feature]"])
        make_commands(BranchCommands, repo, picker, prompter, console).manage()

        assert ("switch", "feature") in repo.calls
        assert "Switched to branch 'feature'" in console.file.getvalue()

    def test_manage_switch_to_remote_uses_local_name(
        self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console
    ) -> None:
        picker = FakePicker(choose=["(origin/feature)"])
        make_commands(BranchCommands, repo, picker, prompter, console).manage(RefScope.REMOTE)

        assert ("switch", "feature") in repo.calls

    def test_manage_delete_selected(self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console) -> None:
        """Test that the delete key deletes every selected branch in order."""
        repo.add_branch("heads/old")
        picker = FakePicker(key="ctrl-d", choose=["[old]", "[feature]"])
        make_commands(BranchCommands, repo, picker, prompter, console).manage()

        assert repo.deletions() == [("delete_local", "old", False), ("delete_local", "feature", False)]
        assert repo.has("remotes/origin/feature")

    def test_manage_extended_delete(self, repo: FakeRepo, console: Console) -> None:
        picker = FakePicker(key="ctrl-alt-d", choose=["[feature]"])
        prompter = ScriptedPrompter(answers=[True])
        make_commands(BranchCommands, repo, picker, prompter, console).manage()

        assert not repo.has("heads/feature")
        assert not repo.has("remotes/origin/feature")

    def test_manage_info_uses_last_selected(self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console) -> None:
        picker = FakePicker(key="ctrl-o", choose=["[main]", "[feature]"])
        make_commands(BranchCommands, repo, picker, prompter, console).manage()

        out = console.file.getvalue()
        assert "heads/feature" in out
        assert "Last commit on heads/feature" in out
        assert "Worktree:" not in out
        assert repo.deletions() == []

    def test_manage_cancelled(
        self, repo: FakeRepo, picker: FakePicker, prompter: ScriptedPrompter, console: Console
    ) -> None:
        make_commands(BranchCommands, repo, picker, prompter, console).manage()

        assert not any(call[0] == "switch" for call in repo.calls)
        assert console.file.getvalue() == ""

    def test_manage_with_custom_keys(self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console) -> None:
        config = Config(delete_key="alt-x")
        picker = FakePicker(key="alt-x", choose=["[feature]"])
        make_commands(BranchCommands, repo, picker, prompter, console, config).manage()

        assert picker.calls[0]["expect_keys"][0] == "alt-x"
        assert not repo.has("heads/feature")


class TestWorktreeCommands:
    """Tests for ``fgb worktree``."""

    @pytest.fixture
    def repo(self, fake_repo: FakeRepo) -> FakeRepo:
        fake_repo.add_branch("heads/a", upstream="remotes/origin/a")
        fake_repo.add_branch("heads/b", upstream="remotes/origin/b", worktree=True)
        fake_repo.add_branch("heads/c")
        fake_repo.add_branch("remotes/origin/a")
        fake_repo.add_branch("remotes/origin/b")
        return fake_repo

    def test_requires_bare_repository(self, picker: FakePicker, prompter: ScriptedPrompter, console: Console) -> None:
        with pytest.raises(PreconditionError, match="bare"):
            make_commands(WorktreeCommands, FakeRepo(), picker, prompter, console)

    def test_list_shows_worktree_branches_with_paths(
        self,
        repo: FakeRepo,
        picker: FakePicker,
        prompter: ScriptedPrompter,
        console: Console,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        make_commands(WorktreeCommands, repo, picker, prompter, console).list()

        lines = [strip_ansi(line) for line in capsys.readouterr().out.splitlines()]
        assert len(lines) == 1
        assert lines[0].split()[0] == "[b]"
        assert str(repo.worktrees["b"]) in lines[0]

    def test_add_candidates_skip_existing_worktrees(
        self, repo: FakeRepo, picker: FakePicker, prompter: ScriptedPrompter, console: Console
    ) -> None:
        """Test that branches with a worktree are not offered again."""
        commands = make_commands(WorktreeCommands, repo, picker, prompter, console)

        local = commands.add_candidates(RefScope.LOCAL)
        assert [ref.full_name for ref in local] == ["heads/a", "heads/c"]

        everything = commands.add_candidates(RefScope.ALL)
        assert [ref.full_name for ref in everything] == ["heads/a", "heads/c", "remotes/origin/a"]

    def test_add_candidates_skip_remote_by_name(
        self, fake_repo: FakeRepo, picker: FakePicker, prompter: ScriptedPrompter, console: Console
    ) -> None:
        """Test that a remote branch is skipped when its local name has a worktree."""
        fake_repo.add_branch("heads/b", worktree=True)
        fake_repo.add_branch("remotes/upstream/b")
        fake_repo.add_branch("remotes/upstream/d")
        commands = make_commands(WorktreeCommands, fake_repo, picker, prompter, console)

        candidates = commands.add_candidates(RefScope.REMOTE)
        assert [ref.full_name for ref in candidates] == ["remotes/upstream/d"]

    def test_add_shows_candidates_only(self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console) -> None:
        picker = FakePicker()
        make_commands(WorktreeCommands, repo, picker, prompter, console).add()

        assert picker.tokens() == ["[a]", "[c]"]
        assert picker.calls[0]["expect_keys"] == ["ctrl-d", "ctrl-alt-d", "ctrl-o", "ctrl-alt-a"]

    def test_add_confirmed_creates_at_bare_root(
        self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console, restore_cwd: Path
    ) -> None:
        picker = FakePicker(choose=["[c]"])
        make_commands(WorktreeCommands, repo, picker, prompter, console).add(confirm=True)

        assert repo.worktrees["c"] == repo.bare_root / "c"
        assert prompter.path_prompts == []
        assert Path.cwd() == (repo.bare_root / "c").resolve()

    def test_add_without_confirm_asks_for_path(self, repo: FakeRepo, console: Console, restore_cwd: Path) -> None:
        picker = FakePicker(choose=["[c]"])
        prompter = ScriptedPrompter(paths=["elsewhere"])
        make_commands(WorktreeCommands, repo, picker, prompter, console).add()

        assert prompter.path_prompts == [("Add worktree for branch 'c' at", "c")]
        assert repo.worktrees["c"] == repo.bare_root / "elsewhere"

    def test_verbose_key_asks_even_when_confirmed(self, repo: FakeRepo, console: Console, restore_cwd: Path) -> None:
        picker = FakePicker(key="ctrl-alt-a", choose=["[a]"])
        prompter = ScriptedPrompter()
        make_commands(WorktreeCommands, repo, picker, prompter, console).add(confirm=True)

        assert prompter.path_prompts == [("Add worktree for branch 'a' at", "a")]
        assert repo.worktrees["a"] == repo.bare_root / "a"

    def test_manage_jumps_and_exports_directory(
        self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console, tmp_path: Path, restore_cwd: Path
    ) -> None:
        """Test that the final directory is written for the shell wrapper."""
        cd_file = tmp_path / "cd"
        picker = FakePicker(choose=["[b]"])
        config = Config(cd_file=str(cd_file))
        make_commands(WorktreeCommands, repo, picker, prompter, console, config).manage()

        assert Path.cwd() == repo.worktrees["b"].resolve()
        assert cd_file.read_text().strip() == str(repo.worktrees["b"].resolve())

    def test_cancel_does_not_export_directory(
        self, repo: FakeRepo, picker: FakePicker, prompter: ScriptedPrompter, console: Console, tmp_path: Path
    ) -> None:
        cd_file = tmp_path / "cd"
        config = Config(cd_file=str(cd_file))
        make_commands(WorktreeCommands, repo, picker, prompter, console, config).manage()

        assert not cd_file.exists()

    def test_manage_delete(self, repo: FakeRepo, console: Console, restore_cwd: Path) -> None:
        picker = FakePicker(key="ctrl-d", choose=["[b]"])
        prompter = ScriptedPrompter(answers=[True, False])
        make_commands(WorktreeCommands, repo, picker, prompter, console).manage()

        assert "b" not in repo.worktrees
        assert repo.has("heads/b")

    def test_manage_info_shows_worktree(self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console) -> None:
        picker = FakePicker(key="ctrl-o", choose=["[b]"])
        make_commands(WorktreeCommands, repo, picker, prompter, console).manage()

        out = console.file.getvalue()
        assert "Worktree:" in out
        assert str(repo.worktrees["b"]) in out

    def test_total_lists_every_branch(
        self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console, restore_cwd: Path
    ) -> None:
        picker = FakePicker(choose=["[a]"])
        make_commands(WorktreeCommands, repo, picker, prompter, console).total(confirm=True)

        assert picker.tokens() == ["[a]", "[b]", "[c]"]
        assert picker.calls[0]["header"].startswith("Manage Git Worktrees (total)")
        assert repo.worktrees["a"] == repo.bare_root / "a"

    def test_total_jumps_to_existing_worktree(
        self, repo: FakeRepo, prompter: ScriptedPrompter, console: Console, restore_cwd: Path
    ) -> None:
        picker = FakePicker(choose=["[b]"])
        make_commands(WorktreeCommands, repo, picker, prompter, console).total()

        assert Path.cwd() == repo.worktrees["b"].resolve()
        assert not any(call[0] == "add_worktree" for call in repo.calls)
