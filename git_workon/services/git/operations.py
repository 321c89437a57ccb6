"""Git operations service"""

from pathlib import Path
from typing import Optional

import git

from git_workon.exceptions import GitBackendError
from git_workon.logging_config import get_logger

logger = get_logger(__name__)


class GitOperations:
    """Read-mostly queries against the shared repository and its worktrees."""

    def __init__(self, repo_path: str):
        """Initialize the service.

        Args:
            repo_path: Path to the git repository or any of its worktrees
        """
        self.repo_path = repo_path

    def _get_repo(self):
        """Get a git.Repo instance.

        GitPython repos are lightweight - they don't clone, just open the
        existing repo - so each call gets a fresh one and nothing is cached
        between queries.

        Returns:
            git.Repo: A fresh repository instance
        """
        return git.Repo(self.repo_path)

    def _run(self, operation: str, target: Optional[str], *args, cwd: Optional[str] = None) -> str:
        """Run a git command, translating failures into GitBackendError."""
        repo = self._get_repo()
        try:
            if cwd:
                return repo.git.execute(["git", "-C", str(cwd), *args])
            return repo.git.execute(["git", *args])
        except git.exc.GitCommandError as e:
            raise GitBackendError.from_command_error(operation, target, e)

    def _succeeds(self, *args, cwd: Optional[str] = None) -> bool:
        """Run a predicate-style git command: exit 0 is True, exit 1 is False."""
        repo = self._get_repo()
        command = ["git", "-C", str(cwd), *args] if cwd else ["git", *args]
        try:
            repo.git.execute(command)
            return True
        except git.exc.GitCommandError as e:
            if e.status == 1:
                return False
            raise GitBackendError.from_command_error(args[0], " ".join(args[1:]), e)

    @property
    def common_dir(self) -> Path:
        """The shared git directory (the bare repository)."""
        repo = self._get_repo()
        return Path(repo.common_dir).resolve()

    def workon_root(self) -> Path:
        """Directory that holds the shared git dir and all worktrees."""
        return self.common_dir.parent

    def ref_exists(self, ref: str) -> bool:
        """Check if a fully qualified ref exists."""
        return self._succeeds("show-ref", "--verify", "--quiet", ref)

    def branch_exists(self, branch_name: str) -> bool:
        """Check if a local branch exists."""
        return self.ref_exists(f"refs/heads/{branch_name}")

    def remotes(self) -> list[str]:
        """Configured remote names, in config order."""
        output = self._run("remote", None, "remote")
        return [line.strip() for line in output.split("\n") if line.strip()]

    def find_remote_branch(self, branch_name: str) -> Optional[str]:
        """Find a remote-tracking ref for a branch name, preferring origin."""
        remotes = self.remotes()
        ordered = sorted(remotes, key=lambda r: r != "origin")
        for remote in ordered:
            ref = f"refs/remotes/{remote}/{branch_name}"
            if self.ref_exists(ref):
                logger.debug(f"Found remote branch {ref}")
                return ref
        return None

    def current_branch_of(self, path: str) -> Optional[str]:
        """Branch checked out in a worktree, or None when HEAD is detached."""
        repo = self._get_repo()
        try:
            return repo.git.execute(["git", "-C", str(path), "symbolic-ref", "--quiet", "--short", "HEAD"]).strip()
        except git.exc.GitCommandError as e:
            if e.status == 1:
                return None
            raise GitBackendError.from_command_error("symbolic-ref", str(path), e)

    def is_dirty(self, path: str) -> bool:
        """True if a worktree has staged or unstaged changes to tracked files.

        Untracked files are deliberately ignored.
        """
        status = self._run("status", str(path), "status", "--porcelain", "--untracked-files=no", cwd=path)
        return bool(status.strip())

    def has_unstaged_changes(self, path: str) -> bool:
        """True if tracked files in a worktree differ from its index."""
        return not self._succeeds("diff", "--quiet", cwd=path)

    def upstream_of(self, branch_name: str) -> Optional[str]:
        """Configured upstream ref of a local branch, even if that ref is gone."""
        output = self._run(
            "for-each-ref", branch_name, "for-each-ref", "--format=%(upstream)", f"refs/heads/{branch_name}"
        )
        return output.strip() or None

    def ahead_behind(self, local_ref: str, remote_ref: str) -> tuple[int, int]:
        """Commits on local_ref not on remote_ref, and the reverse."""
        output = self._run(
            "rev-list", local_ref, "rev-list", "--left-right", "--count", f"{local_ref}...{remote_ref}"
        )
        ahead, behind = output.split()
        return int(ahead), int(behind)

    def is_ancestor(self, ref: str, base_ref: str) -> bool:
        """True if every commit reachable from ref is reachable from base_ref."""
        return self._succeeds("merge-base", "--is-ancestor", ref, base_ref)

    def unpushed_detached_commits(self, path: str) -> int:
        """Commits reachable from a worktree's HEAD but from no remote-tracking ref."""
        output = self._run("rev-list", str(path), "rev-list", "--count", "HEAD", "--not", "--remotes", cwd=path)
        return int(output.strip() or 0)

    def fetch_ref(self, remote: str, refspec: str) -> None:
        """Fetch a single refspec from a remote."""
        logger.info(f"Fetching {refspec} from {remote}")
        self._run("fetch", remote, "fetch", remote, refspec)

    def set_upstream(self, branch_name: str, remote: str, merge_ref: str) -> None:
        """Point a branch's upstream at merge_ref on remote.

        The upstream ref is whatever the remote's fetch refspec maps merge_ref
        to, e.g. refs/heads/pull/7/head -> refs/remotes/origin/pull/7/head.
        """
        logger.debug(f"Setting upstream of {branch_name} to {remote} {merge_ref}")
        self._run("config", branch_name, "config", f"branch.{branch_name}.remote", remote)
        self._run("config", branch_name, "config", f"branch.{branch_name}.merge", merge_ref)

    def remote_url(self, remote: str) -> Optional[str]:
        try:
            return self._run("remote", remote, "remote", "get-url", remote).strip() or None
        except GitBackendError:
            return None

    def default_branch(self, configured: Optional[str] = None) -> Optional[str]:
        """Resolve the default base branch.

        Order: the configured value, init.defaultBranch if that branch exists,
        then main, then master.
        """
        if configured:
            return configured

        repo = self._get_repo()
        try:
            init_default = repo.git.config("--get", "init.defaultBranch").strip()
        except git.exc.GitCommandError:
            init_default = ""

        for candidate in (init_default, "main", "master"):
            if candidate and self.branch_exists(candidate):
                return candidate

        logger.debug("Could not determine a default branch")
        return None
