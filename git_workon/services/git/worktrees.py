"""Worktree operations service for git-workon."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import git

from git_workon.constants import ORPHAN_INITIAL_MESSAGE
from git_workon.exceptions import GitBackendError
from git_workon.logging_config import get_logger
from git_workon.models.worktree import CreationMode, WorktreeInfo

logger = get_logger(__name__)


class WorktreeService:
    """Service for managing git worktrees."""

    def __init__(self, repo_path: str, root: Optional[str] = None):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the git repository
            root: Worktrees root, used to give each worktree a relative name
        """
        self.repo_path = repo_path
        self.root = root

    def _get_repo(self):
        """Get a fresh git.Repo instance.

        Returns:
            git.Repo: A fresh repository instance
        """
        return git.Repo(self.repo_path)

    def _git(self, operation: str, target: str, *args, cwd: Optional[str] = None) -> str:
        repo = self._get_repo()
        try:
            if cwd:
                return repo.git.execute(["git", "-C", str(cwd), *args])
            return repo.git.worktree(*args)
        except git.exc.GitCommandError as e:
            error = GitBackendError.from_command_error(operation, target, e)
            logger.error(str(error))
            raise error

    def list_worktrees(self) -> list[WorktreeInfo]:
        """Get detailed information about all worktrees.

        The bare repository entry is not a worktree and is left out.

        Returns:
            List of WorktreeInfo objects in git's registry order
        """
        output = self._git("worktree list", self.repo_path, "list", "--porcelain")

        # Parse porcelain output
        # Format:
        # worktree /path/to/worktree
        # HEAD commit_sha
        # branch refs/heads/branch-name   (or "detached", or "bare")
        # locked [reason]                 (optional)
        # (blank line between worktrees)
        worktree_list = []
        entries: list[Dict[str, Any]] = []
        current: Dict[str, Any] = {}
        for line in output.split("\n") + [""]:
            line = line.strip()
            if not line:
                if current:
                    entries.append(current)
                    current = {}
                continue

            if line.startswith("worktree "):
                current["path"] = line.split(" ", 1)[1]
            elif line.startswith("HEAD "):
                current["HEAD"] = line.split(" ", 1)[1]
            elif line.startswith("branch "):
                branch_ref = line.split(" ", 1)[1]
                if branch_ref.startswith("refs/heads/"):
                    current["branch"] = branch_ref[len("refs/heads/"):]
            elif line == "bare":
                current["bare"] = True
            elif line.startswith("locked"):
                current["locked"] = True

        for index, entry in enumerate(entries):
            path = entry.get("path", "")
            if not path or entry.get("bare"):
                continue
            worktree_list.append(
                WorktreeInfo(
                    path=path,
                    branch_name=entry.get("branch", ""),
                    commit_sha=entry.get("HEAD", ""),
                    # First entry is the repository itself; a bare one was skipped above
                    is_main=index == 0,
                    is_orphaned=not os.path.exists(path),
                    is_locked=entry.get("locked", False),
                    root=self.root,
                )
            )

        logger.debug(f"Found {len(worktree_list)} worktrees")
        for wt in worktree_list:
            logger.debug(f"  {wt}")
        return worktree_list

    def find_worktree(self, path: str) -> Optional[WorktreeInfo]:
        """Look up a registered worktree by path."""
        wanted = os.path.realpath(path)
        for wt in self.list_worktrees():
            if os.path.realpath(wt.path) == wanted:
                return wt
        return None

    def create_worktree(
        self,
        path: Path,
        branch_name: str,
        mode: CreationMode,
        start_point: Optional[str] = None,
        track: bool = False,
    ) -> WorktreeInfo:
        """Create a worktree at path.

        Args:
            path: Absolute target directory, parents are created as needed
            branch_name: Branch to check out or create (ignored for detached)
            mode: Creation mode
            start_point: Commit-ish to start a new branch or detached HEAD from
            track: Set up upstream tracking when creating from a remote branch

        Returns:
            WorktreeInfo for the new worktree
        """
        path = Path(path)
        created_dirs = [p for p in path.parents if not p.exists()]
        path.parent.mkdir(parents=True, exist_ok=True)
        target = str(path)
        logger.debug(f"Adding worktree for {branch_name!r} ({mode.value}) at {target}")

        try:
            if mode is CreationMode.DETACHED:
                self._git("worktree add", target, "add", "--detach", target, start_point or "HEAD")
            elif mode is CreationMode.ORPHAN:
                self._create_orphan(path, branch_name)
            elif self._branch_exists(branch_name):
                self._git("worktree add", target, "add", target, branch_name)
            else:
                args = ["add", "--track" if track else "--no-track", "-b", branch_name, target]
                if start_point:
                    args.append(start_point)
                self._git("worktree add", target, *args)
        except GitBackendError:
            self._remove_empty_dirs(created_dirs)
            raise

        logger.info(f"Created worktree at {target}")
        created = self.find_worktree(target)
        if created is None:
            raise GitBackendError("worktree add", target, "worktree was not registered")
        return created

    @staticmethod
    def _remove_empty_dirs(dirs: list[Path]) -> None:
        """Remove namespace directories made for a worktree git refused, deepest first."""
        for directory in dirs:
            try:
                directory.rmdir()
            except OSError:
                # Not empty or already gone; parents cannot be empty either
                break
            logger.debug(f"Removed empty directory {directory}")

    def _branch_exists(self, branch_name: str) -> bool:
        repo = self._get_repo()
        try:
            repo.git.show_ref("--verify", "--quiet", f"refs/heads/{branch_name}")
            return True
        except git.exc.GitCommandError:
            return False

    def _create_orphan(self, path: Path, branch_name: str) -> None:
        """Create a worktree on a new branch with no history and one empty commit."""
        target = str(path)
        if self._branch_exists(branch_name):
            raise GitBackendError("worktree add", branch_name, "branch already exists, cannot create orphan")

        repo = self._get_repo()
        try:
            repo.git.rev_parse("--verify", "--quiet", "HEAD")
            has_head = True
        except git.exc.GitCommandError:
            has_head = False

        if has_head:
            self._git("worktree add", target, "add", "--detach", target, "HEAD")
            self._git("checkout", branch_name, "checkout", "--orphan", branch_name, cwd=target)
            self._git("rm", target, "rm", "-r", "-f", "-q", "--ignore-unmatch", ".", cwd=target)
        else:
            # Unborn HEAD: nothing to detach from
            self._git("worktree add", target, "add", "--orphan", "-b", branch_name, target)

        self._git(
            "commit", branch_name, "commit", "--allow-empty", "-q", "-m", ORPHAN_INITIAL_MESSAGE, cwd=target
        )
        logger.debug(f"Orphan branch {branch_name} seeded with an empty commit")

    def remove_worktree(self, path: str) -> None:
        """Remove a worktree at the specified path.

        The safety decision has already been made by the caller, so untracked
        files do not block removal. A worktree whose directory is already gone
        only has its administrative entry pruned.

        Raises:
            GitBackendError: if git refuses, e.g. the worktree is locked
        """
        if not os.path.exists(path):
            self._git("worktree prune", path, "prune")
            logger.info(f"Pruned stale worktree metadata for {path}")
            return

        self._git("worktree remove", path, "remove", "--force", path)
        logger.info(f"Removed worktree at {path}")
