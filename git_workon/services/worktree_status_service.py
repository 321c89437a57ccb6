"""Service for computing the live status of a worktree"""

from typing import Optional

from git_workon.logging_config import get_logger
from git_workon.models.worktree import WorktreeInfo, WorktreeStatus

logger = get_logger(__name__)


class WorktreeDescriptor:
    """Point-in-time status of one worktree.

    Every call queries git again; nothing is cached between calls.
    """

    def __init__(self, git_ops):
        """Initialize the service.

        Args:
            git_ops: GitOperations (or a compatible mock)
        """
        self.git_ops = git_ops

    def describe(self, worktree: WorktreeInfo, base_branch: Optional[str] = None) -> WorktreeStatus:
        """Compute the status of a worktree.

        Args:
            worktree: Registered worktree
            base_branch: Branch used for merge detection

        Returns:
            WorktreeStatus snapshot

        Raises:
            GitBackendError: if git cannot answer one of the queries
        """
        logger.debug(f"Describing worktree {worktree.name} (base: {base_branch})")

        if worktree.is_orphaned:
            deleted = bool(worktree.branch_name) and not self.git_ops.branch_exists(worktree.branch_name)
            # Directory is gone: removing the registration loses nothing
            return WorktreeStatus(
                is_detached=worktree.is_detached,
                is_dirty=False,
                has_unpushed_commits=False,
                is_merged=self._is_merged(worktree.branch_name, base_branch),
                is_gone=deleted,
                branch_deleted=deleted,
                base_branch=base_branch,
            )

        if worktree.is_detached:
            is_dirty = self.git_ops.is_dirty(worktree.path)
            unpushed = self.git_ops.unpushed_detached_commits(worktree.path)
            logger.debug(f"{worktree.name}: detached, {unpushed} commits not on any remote")
            return WorktreeStatus(
                is_detached=True,
                is_dirty=is_dirty,
                has_unpushed_commits=unpushed > 0,
                is_merged=False,
                ahead=unpushed,
                base_branch=base_branch,
            )

        branch = worktree.branch_name
        if not self.git_ops.branch_exists(branch):
            logger.debug(f"{worktree.name}: local branch {branch} was deleted")
            # HEAD is unborn, so every indexed file reads as staged; only edits count
            return WorktreeStatus(
                is_detached=False,
                is_dirty=self.git_ops.has_unstaged_changes(worktree.path),
                has_unpushed_commits=False,
                is_merged=False,
                is_gone=True,
                branch_deleted=True,
                base_branch=base_branch,
            )

        is_dirty = self.git_ops.is_dirty(worktree.path)
        upstream = self.git_ops.upstream_of(branch)
        ahead = behind = 0
        is_gone = False
        if upstream is None:
            # No tracking information: treat every commit as unpushed
            has_unpushed = True
        elif not self.git_ops.ref_exists(upstream):
            is_gone = True
            has_unpushed = True
        else:
            ahead, behind = self.git_ops.ahead_behind(f"refs/heads/{branch}", upstream)
            has_unpushed = ahead > 0

        status = WorktreeStatus(
            is_detached=False,
            is_dirty=is_dirty,
            has_unpushed_commits=has_unpushed,
            is_merged=self._is_merged(branch, base_branch),
            is_gone=is_gone,
            ahead=ahead,
            behind=behind,
            upstream=upstream,
            base_branch=base_branch,
        )
        logger.debug(f"{worktree.name}: {status}")
        return status

    def _is_merged(self, branch: str, base_branch: Optional[str]) -> bool:
        """Branch tip reachable from the base tip. Never true for the base itself."""
        if not branch or not base_branch or branch == base_branch:
            return False
        if not self.git_ops.branch_exists(branch):
            return False

        base_ref = f"refs/heads/{base_branch}"
        if not self.git_ops.ref_exists(base_ref):
            base_ref = self.git_ops.find_remote_branch(base_branch)
            if base_ref is None:
                logger.debug(f"Base branch {base_branch} not found, {branch} is not merged")
                return False

        return self.git_ops.is_ancestor(f"refs/heads/{branch}", base_ref)
