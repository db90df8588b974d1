"""Test configuration and fixtures."""

import os
from pathlib import Path
from typing import Generator

import pytest
from git import Actor, Repo

from tests.fakes import FakePicker, FakeRepo, ScriptedPrompter

AUTHOR = Actor("Test User", "test@example.com")


def _commit_file(repo: Repo, root: Path, name: str, content: str) -> None:
    target = root / name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)
    repo.index.add([name])
    repo.index.commit(f"Add {name}", author=AUTHOR, committer=AUTHOR)


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Branches:
        main: current branch, tracks origin/main
        feature/merged: merged into main, tracks origin/feature/merged
        feature/test: has a commit that is not in main, tracks origin/feature/test
        origin/feature/remote: exists only on the remote

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    local_path.mkdir()

    remote_repo = Repo.init(remote_path, bare=True)
    remote_repo.git.symbolic_ref("HEAD", "refs/heads/main")
    local_repo = Repo.init(local_path)
    with local_repo.config_writer() as writer:
        writer.set_value("user", "name", AUTHOR.name)
        writer.set_value("user", "email", AUTHOR.email)

    _commit_file(local_repo, local_path, "README.md", "# Test Repository")
    local_repo.git.branch("-M", "main")
    main_branch = local_repo.heads.main

    origin = local_repo.create_remote("origin", url=str(remote_path))
    origin.push("main")
    main_branch.set_tracking_branch(origin.refs.main)

    def create_branch(name: str, merge: bool = False) -> None:
        main_branch.checkout()
        branch = local_repo.create_head(name)
        branch.checkout()
        _commit_file(local_repo, local_path, f"{name}.txt", f"{name} content")
        origin.push(name)
        branch.set_tracking_branch(origin.refs[name])
        if merge:
            main_branch.checkout()
            local_repo.git.merge(name, "--no-ff")
            origin.push("main")

    create_branch("feature/merged", merge=True)
    create_branch("feature/test")

    # A branch that only exists on the remote
    main_branch.checkout()
    local_repo.create_head("feature/remote").checkout()
    _commit_file(local_repo, local_path, "remote.txt", "remote content")
    origin.push("feature/remote")
    main_branch.checkout()
    local_repo.delete_head("feature/remote", force=True)

    yield local_path, remote_path


@pytest.fixture
def bare_env(tmp_path: Path, test_env: tuple[Path, Path]) -> Generator[Path, None, None]:
    """Create a bare clone of the remote with worktrees for main and feature/test.

    Worktrees live inside the bare repository: ``<bare>/<branch>``.
    """
    _, remote_path = test_env
    bare_path = tmp_path / "bare.git"
    repo = Repo.clone_from(str(remote_path), str(bare_path), bare=True)
    with repo.config_writer() as writer:
        writer.set_value("user", "name", AUTHOR.name)
        writer.set_value("user", "email", AUTHOR.email)
    repo.git.worktree("add", str(bare_path / "main"), "main")
    repo.git.worktree("add", str(bare_path / "feature" / "test"), "feature/test")
    yield bare_path


@pytest.fixture
def restore_cwd() -> Generator[Path, None, None]:
    """Restore the working directory after tests that change it."""
    original = Path.cwd()
    yield original
    os.chdir(original)


@pytest.fixture
def fake_repo(tmp_path: Path) -> FakeRepo:
    """In-memory repository with a bare root under tmp_path."""
    return FakeRepo(bare_root=tmp_path / "repo.git")


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def picker() -> FakePicker:
    return FakePicker()
