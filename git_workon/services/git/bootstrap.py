"""Create new worktrees roots from scratch or from a remote"""

import shutil
from pathlib import Path
from typing import Optional

import git

from git_workon.constants import BARE_DIR_NAME
from git_workon.exceptions import GitBackendError
from git_workon.logging_config import get_logger
from git_workon.models.worktree import CreationMode, WorktreeInfo

from .worktrees import WorktreeService

logger = get_logger(__name__)

GIT_LINK_NAME = ".git"
GIT_LINK_CONTENT = "gitdir: ./.bare\n"
CLONE_REMOTE = "origin"


class RepositoryBootstrap:
    """Lay out ``<root>/.bare``, a ``.git`` link file and a first worktree.

    Both ``init`` and ``clone`` refuse a root that already holds ``.bare``
    or ``.git``. On failure before the first worktree exists, whatever they
    created is removed again.
    """

    def init(self, path: Path) -> WorktreeInfo:
        """Create an empty repository whose default branch has one empty commit.

        The branch is ``init.defaultBranch``, or ``main`` when unset.

        Raises:
            GitBackendError: if the root is taken or git fails
        """
        root = self._prepare_root(Path(path), "init")
        bare_path = root / BARE_DIR_NAME
        logger.debug(f"Initializing bare repository at {bare_path}")

        try:
            repo = self._git("init", str(bare_path), lambda: git.Repo.init(str(bare_path), bare=True))
            branch = self._init_default_branch(repo)
            self._git("symbolic-ref", branch, repo.git.symbolic_ref, "HEAD", f"refs/heads/{branch}")
            self._write_link(root)
            worktree = WorktreeService(str(bare_path), root=str(root)).create_worktree(
                root / branch, branch, CreationMode.ORPHAN
            )
        except GitBackendError:
            self._cleanup(root)
            raise

        logger.info(f"Initialized {root} with worktree {worktree.name}")
        return worktree

    def clone(self, url: str, path: Path) -> WorktreeInfo:
        """Clone url into a bare repository and check out its default branch.

        A path ending in ``.bare`` names the bare directory itself; its parent
        becomes the root.

        Raises:
            GitBackendError: if the root is taken, the remote is unreachable
                or has no default branch
        """
        path = Path(path)
        if path.name == BARE_DIR_NAME:
            path = path.parent
        root = self._prepare_root(path, "clone")
        bare_path = root / BARE_DIR_NAME
        logger.debug(f"Cloning {url} into {bare_path}")

        try:
            repo = self._git("init", str(bare_path), lambda: git.Repo.init(str(bare_path), bare=True))
            # `remote add` installs +refs/heads/*:refs/remotes/origin/*
            self._git("remote add", url, repo.git.remote, "add", CLONE_REMOTE, url)
            self._git("fetch", url, repo.git.fetch, CLONE_REMOTE)

            branch = self._remote_default_branch(repo, url)
            self._git("branch", branch, repo.git.branch, "--track", branch, f"{CLONE_REMOTE}/{branch}")
            self._git("symbolic-ref", branch, repo.git.symbolic_ref, "HEAD", f"refs/heads/{branch}")
            self._write_link(root)
            worktree = WorktreeService(str(bare_path), root=str(root)).create_worktree(
                root / branch, branch, CreationMode.NORMAL
            )
        except GitBackendError:
            self._cleanup(root)
            raise

        logger.info(f"Cloned {url} into {root} with worktree {worktree.name}")
        return worktree

    @staticmethod
    def _prepare_root(root: Path, operation: str) -> Path:
        root = root.resolve()
        for name in (BARE_DIR_NAME, GIT_LINK_NAME):
            if (root / name).exists():
                raise GitBackendError(operation, str(root), f"{name} already exists")
        root.mkdir(parents=True, exist_ok=True)
        return root

    @staticmethod
    def _git(operation: str, target: str, command, *args):
        try:
            return command(*args)
        except git.exc.GitCommandError as e:
            error = GitBackendError.from_command_error(operation, target, e)
            logger.error(str(error))
            raise error

    @staticmethod
    def _init_default_branch(repo: git.Repo) -> str:
        try:
            return repo.git.config("--get", "init.defaultBranch").strip() or "main"
        except git.exc.GitCommandError:
            return "main"

    def _remote_default_branch(self, repo: git.Repo, url: str) -> str:
        """Branch the remote's HEAD points at, from ``ls-remote --symref``."""
        output = self._git("ls-remote", url, repo.git.ls_remote, "--symref", CLONE_REMOTE, "HEAD")
        branch = self._parse_symref(output)
        if branch is None:
            raise GitBackendError("clone", url, "remote has no default branch (empty repository?)")
        logger.debug(f"Remote default branch: {branch}")
        return branch

    @staticmethod
    def _parse_symref(output: str) -> Optional[str]:
        # ref: refs/heads/main\tHEAD
        for line in output.splitlines():
            if line.startswith("ref: ") and line.endswith("\tHEAD"):
                ref = line[len("ref: "):-len("\tHEAD")].strip()
                return ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref
        return None

    @staticmethod
    def _write_link(root: Path) -> None:
        (root / GIT_LINK_NAME).write_text(GIT_LINK_CONTENT)

    @staticmethod
    def _cleanup(root: Path) -> None:
        shutil.rmtree(root / BARE_DIR_NAME, ignore_errors=True)
        link = root / GIT_LINK_NAME
        if link.is_file():
            link.unlink()
        logger.debug(f"Removed partial repository under {root}")
