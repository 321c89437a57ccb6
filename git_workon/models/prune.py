"""Prune plan models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from git_workon.models.worktree import WorktreeInfo, WorktreeStatus


class UnsafeReason(Enum):
    """Why the safety gate refused a worktree."""
    DIRTY = "dirty"
    UNPUSHED = "unpushed"
    LOCKED = "locked"  # git refuses to remove it without unlocking first
    STATUS_UNKNOWN = "status-unknown"


@dataclass(frozen=True)
class PruneSelector:
    """Which worktrees a prune request is about. Selectors combine with OR.

    With no selector at all, worktrees whose local branch was deleted are
    selected.
    """

    names: tuple[str, ...] = ()
    gone: bool = False
    merged: bool = False
    all: bool = False
    merged_into: Optional[str] = None  # Branch --merged measures against; default branch if None

    @property
    def is_empty(self) -> bool:
        return not (self.names or self.gone or self.merged or self.all)

    def describe(self) -> str:
        parts = [f"name '{n}'" for n in self.names]
        if self.gone:
            parts.append("--gone")
        if self.merged:
            parts.append(f"--merged {self.merged_into}" if self.merged_into else "--merged")
        if self.all:
            parts.append("--all")
        return ", ".join(parts) or "deleted branches"


@dataclass
class PruneCandidate:
    """A worktree together with its status, or the error describing it."""

    worktree: WorktreeInfo
    status: Optional[WorktreeStatus] = None
    error: Optional[str] = None


@dataclass
class ProtectedWorktree:
    worktree: WorktreeInfo
    rule: str  # The pattern or built-in rule that protected it


@dataclass
class UnsafeWorktree:
    worktree: WorktreeInfo
    reasons: tuple[UnsafeReason, ...]
    detail: Optional[str] = None

    @property
    def reason_text(self) -> str:
        text = " and ".join(r.value for r in self.reasons)
        return f"{text}: {self.detail}" if self.detail else text


@dataclass
class PrunePlan:
    """Decision engine output: three disjoint, ordered partitions."""

    to_remove: list[WorktreeInfo] = field(default_factory=list)
    skipped_protected: list[ProtectedWorktree] = field(default_factory=list)
    skipped_unsafe: list[UnsafeWorktree] = field(default_factory=list)
    is_dry_run: bool = False
    unmatched_names: list[str] = field(default_factory=list)

    @property
    def selected_paths(self) -> list[str]:
        """Every worktree the selector matched, in all partitions."""
        return (
            [wt.path for wt in self.to_remove]
            + [p.worktree.path for p in self.skipped_protected]
            + [u.worktree.path for u in self.skipped_unsafe]
        )


@dataclass
class PruneOutcome:
    """Per-item result of executing a plan."""

    worktree: WorktreeInfo
    removed: bool
    error: Optional[str] = None
