"""Pytest fixtures for git-workon tests"""
import tempfile
from pathlib import Path
from typing import Optional
from unittest.mock import Mock

import git
import pytest

from git_workon.models.worktree import WorktreeInfo, WorktreeStatus


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture(autouse=True)
def isolated_git_config(tmp_path_factory, monkeypatch):
    """Point git's global config at a throwaway file and ignore the system one."""
    config_dir = tmp_path_factory.mktemp("gitconfig")
    global_config = config_dir / "global.gitconfig"
    global_config.write_text(
        "[user]\n"
        "\tname = Test User\n"
        "\temail = test@example.com\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return global_config


class RepoLayout:
    """A worktrees root: ``<root>/.bare`` cloned from a seed repo, plus a ``main`` worktree."""

    def __init__(self, base: Path):
        self.seed_path = base / "origin"
        self.root = base / "project"
        self.bare_path = self.root / ".bare"

        self.seed = git.Repo.init(self.seed_path)
        self.seed.git.config("receive.denyCurrentBranch", "updateInstead")
        (self.seed_path / "README.md").write_text("# Test Repository\n")
        self.seed.git.add("README.md")
        self.seed.git.commit("-q", "-m", "Initial commit")
        self.seed.git.branch("-M", "main")

        self.root.mkdir()
        self.bare = git.Repo.clone_from(str(self.seed_path), str(self.bare_path), bare=True)
        self.bare.git.config("remote.origin.fetch", "+refs/heads/*:refs/remotes/origin/*")
        self.bare.git.fetch("origin")
        self.bare.git.worktree("add", str(self.main_path), "main")
        self.bare.git.branch("--set-upstream-to=origin/main", "main")

    @property
    def main_path(self) -> Path:
        return self.root / "main"

    def path(self, name: str) -> Path:
        return self.root.joinpath(*name.split("/"))

    def git_in(self, path: Path, *args) -> str:
        return self.bare.git.execute(["git", "-C", str(path), *args])

    def add_worktree(self, branch: str, start: str = "main", push: bool = False) -> Path:
        path = self.path(branch)
        self.bare.git.worktree("add", "-b", branch, str(path), start)
        if push:
            self.push(path, branch)
        return path

    def commit(self, path: Path, filename: str = "change.txt", content: str = "change\n") -> str:
        (path / filename).write_text(content)
        self.git_in(path, "add", filename)
        self.git_in(path, "commit", "-q", "-m", f"Update {filename}")
        return self.git_in(path, "rev-parse", "HEAD")

    def push(self, path: Path, branch: str) -> None:
        self.git_in(path, "push", "-q", "-u", "origin", branch)

    def delete_remote_branch(self, branch: str) -> None:
        self.seed.git.branch("-D", branch)
        self.bare.git.fetch("--prune", "origin")

    def set_config(self, key: str, *values: str, scope: str = "local") -> None:
        for value in values:
            self.bare.git.config(f"--{scope}", "--add", key, value)

    def close(self) -> None:
        self.seed.close()
        self.bare.close()


@pytest.fixture
def layout(temp_dir):
    """Create a real bare repository with a main worktree for testing."""
    repo_layout = RepoLayout(temp_dir)
    yield repo_layout
    repo_layout.close()


def make_worktree(
    name: str,
    branch: Optional[str] = None,
    root: str = "/work",
    is_main: bool = False,
    is_orphaned: bool = False,
    is_locked: bool = False,
    sha: str = "abc1234def5678",
) -> WorktreeInfo:
    """WorktreeInfo for pure tests; branch defaults to the name, '' means detached."""
    return WorktreeInfo(
        path=f"{root}/{name}",
        branch_name=name if branch is None else branch,
        commit_sha=sha,
        is_main=is_main,
        is_orphaned=is_orphaned,
        is_locked=is_locked,
        root=root,
    )


def make_status(
    dirty: bool = False,
    unpushed: bool = False,
    merged: bool = False,
    gone: bool = False,
    detached: bool = False,
    branch_deleted: bool = False,
) -> WorktreeStatus:
    return WorktreeStatus(
        is_detached=detached,
        is_dirty=dirty,
        has_unpushed_commits=unpushed,
        is_merged=merged,
        is_gone=gone or branch_deleted,
        branch_deleted=branch_deleted,
    )


@pytest.fixture
def mock_git_ops():
    """Create a mock GitOperations for a clean, pushed branch."""
    ops = Mock()
    ops.is_dirty = Mock(return_value=False)
    ops.has_unstaged_changes = Mock(return_value=False)
    ops.branch_exists = Mock(return_value=True)
    ops.ref_exists = Mock(return_value=True)
    ops.upstream_of = Mock(side_effect=lambda branch: f"refs/remotes/origin/{branch}")
    ops.ahead_behind = Mock(return_value=(0, 0))
    ops.is_ancestor = Mock(return_value=False)
    ops.unpushed_detached_commits = Mock(return_value=0)
    ops.find_remote_branch = Mock(return_value=None)
    return ops


@pytest.fixture
def mock_github():
    """Create a mock GitHub API object."""
    github = Mock()

    pr = Mock()
    pr.number = 42
    pr.title = "Fix: Crash on Startup!"
    pr.user.login = "octocat"
    pr.head.ref = "fix/startup"
    pr.base.ref = "main"

    repo = Mock()
    repo.full_name = "test/repo"
    repo.get_pull = Mock(return_value=pr)
    github.get_repo = Mock(return_value=repo)

    return github
