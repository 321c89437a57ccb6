"""Worktree data models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class CreationMode(Enum):
    """How a new worktree gets its HEAD."""
    NORMAL = "normal"
    ORPHAN = "orphan"  # New branch with no parent history, seeded with one empty commit
    DETACHED = "detached"  # No branch, HEAD points at a commit
    PR_TRACKING = "pr"


@dataclass(frozen=True)
class PullRequestRef:
    """A pull request the user asked to check out."""

    number: int
    remote: Optional[str] = None

    @property
    def head_ref(self) -> str:
        """Remote-side ref holding the PR head."""
        return f"refs/pull/{self.number}/head"

    def tracking_ref(self, remote: str) -> str:
        """Local ref the PR head is fetched into."""
        return f"refs/remotes/{remote}/pull/{self.number}/head"

    @property
    def upstream_merge_ref(self) -> str:
        """branch.<name>.merge value that resolves to the tracking ref."""
        return f"refs/heads/pull/{self.number}/head"


@dataclass(frozen=True)
class ResolvedName:
    """What a user token means: branch, path and creation mode."""

    branch_name: str
    worktree_path: Path
    mode: CreationMode = CreationMode.NORMAL
    pr: Optional[PullRequestRef] = None
    start_point: Optional[str] = None

    def __post_init__(self):
        if (self.mode is CreationMode.PR_TRACKING) != (self.pr is not None):
            raise ValueError("pull request reference is required for, and only for, PR mode")


@dataclass
class WorktreeInfo:
    """Information about a git worktree."""

    path: str
    branch_name: str
    commit_sha: str
    is_main: bool  # The repository's own working tree
    is_orphaned: bool  # Directory missing?
    is_locked: bool = False
    root: Optional[str] = None  # Worktrees root, used to derive the name

    @property
    def is_detached(self) -> bool:
        return not self.branch_name

    @property
    def name(self) -> str:
        """Path relative to the worktrees root, '/' separated."""
        if self.root:
            try:
                return Path(self.path).relative_to(self.root).as_posix()
            except ValueError:
                pass
        return Path(self.path).name

    def matches(self, token: str) -> bool:
        """True if the user named this worktree by name, path or branch."""
        if token in (self.name, self.path):
            return True
        return bool(self.branch_name) and token == self.branch_name

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "orphaned" if self.is_orphaned else "active"
        main_marker = " (main)" if self.is_main else ""
        branch = self.branch_name or f"(detached {self.commit_sha[:7]})"
        return f"{branch} @ {self.path}{main_marker} [{status}]"


@dataclass(frozen=True)
class WorktreeStatus:
    """Point-in-time status of one worktree. Never cached."""

    is_detached: bool
    is_dirty: bool
    has_unpushed_commits: bool
    is_merged: bool
    is_gone: bool = False
    branch_deleted: bool = False  # Local branch ref no longer exists (implies is_gone)
    ahead: int = 0
    behind: int = 0
    upstream: Optional[str] = None
    base_branch: Optional[str] = None


@dataclass
class HookResult:
    """Outcome of one post-create hook command."""

    command: str
    success: bool
    returncode: Optional[int] = None
    timed_out: bool = False
    error: Optional[str] = None


@dataclass
class CreateResult:
    """Outcome of creating a worktree.

    Copy and hook problems are collected in ``warnings``; the worktree itself
    exists whenever a CreateResult is returned.
    """

    worktree: WorktreeInfo
    resolved: ResolvedName
    base_branch: Optional[str] = None
    copied_files: list[str] = field(default_factory=list)
    hook_results: list[HookResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
