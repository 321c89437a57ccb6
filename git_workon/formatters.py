"""Formatting utilities for git-workon output."""

from typing import Optional

from git_workon.constants import (
    SYMBOL_DETACHED,
    SYMBOL_DIRTY,
    SYMBOL_GONE,
    SYMBOL_MERGED,
    SYMBOL_UNPUSHED,
)
from git_workon.models.prune import PrunePlan
from git_workon.models.worktree import WorktreeInfo, WorktreeStatus


def format_branch(worktree: WorktreeInfo) -> str:
    """
    Format the branch column of a worktree.

    Args:
        worktree: Worktree to describe

    Returns:
        Branch name, or "(detached abc1234)" for a detached HEAD
    """
    if worktree.branch_name:
        return worktree.branch_name
    return f"(detached {worktree.commit_sha[:7]})"


def format_status_flags(status: Optional[WorktreeStatus]) -> str:
    """
    Format a status snapshot as compact symbols.

    Args:
        status: Worktree status, or None if it could not be computed

    Returns:
        Symbols such as "M ↑" ("?" when unknown, "" when clean)
    """
    if status is None:
        return "?"
    flags = []
    if status.is_detached:
        flags.append(SYMBOL_DETACHED)
    if status.is_dirty:
        flags.append(SYMBOL_DIRTY)
    if status.has_unpushed_commits:
        flags.append(SYMBOL_UNPUSHED)
    if status.is_merged:
        flags.append(SYMBOL_MERGED)
    if status.is_gone:
        flags.append(SYMBOL_GONE)
    return " ".join(flags)


def format_sync(status: Optional[WorktreeStatus]) -> str:
    """Format ahead/behind counts against the upstream."""
    if status is None or status.is_detached:
        return ""
    if status.upstream is None:
        return "no upstream"
    if status.is_gone:
        return "gone"
    parts = []
    if status.ahead:
        parts.append(f"↑{status.ahead}")
    if status.behind:
        parts.append(f"↓{status.behind}")
    return " ".join(parts) or "up to date"


def format_upstream(status: Optional[WorktreeStatus]) -> str:
    if status is None or not status.upstream:
        return ""
    return status.upstream.removeprefix("refs/remotes/")


def format_removal_items(plan: PrunePlan) -> str:
    """
    Format the worktrees of a plan for the confirmation prompt.

    Returns:
        One "  • name (branch)" line per worktree to remove
    """
    return "\n".join(f"  • {wt.name} ({format_branch(wt)})" for wt in plan.to_remove)
