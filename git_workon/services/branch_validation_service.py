"""Branch validation service for git-workon."""

import re
from typing import Iterable, Optional

from git_workon.models.prune import UnsafeReason
from git_workon.models.worktree import WorktreeStatus

# Characters git refuses anywhere in a ref name (see git-check-ref-format)
_FORBIDDEN_REF_CHARS = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")


def is_valid_protected_pattern(pattern: str) -> bool:
    """Protected patterns are an exact name, '*', or '<namespace>/*'."""
    if pattern == "*":
        return True
    if pattern.endswith("/*"):
        prefix = pattern[:-2]
        return bool(prefix) and "*" not in prefix
    return bool(pattern) and "*" not in pattern


def branch_name_error(name: str) -> Optional[str]:
    """Explain why name is not a valid branch name, or None if it is."""
    if not name:
        return "branch name is empty"
    if name == "@":
        return "'@' is not a valid branch name"
    if name.startswith("-"):
        return "branch name cannot start with '-'"
    if _FORBIDDEN_REF_CHARS.search(name):
        return "branch name contains a space, control character or one of ~^:?*[\\"
    if ".." in name:
        return "branch name cannot contain '..'"
    if "@{" in name:
        return "branch name cannot contain '@{'"
    if name.endswith("/") or name.endswith("."):
        return "branch name cannot end with '/' or '.'"
    for component in name.split("/"):
        if not component:
            return "branch name cannot contain an empty path component"
        if component.startswith("."):
            return f"path component '{component}' cannot start with '.'"
        if component.endswith(".lock"):
            return f"path component '{component}' cannot end with '.lock'"
    return None


class ProtectedBranchMatcher:
    """Decides whether a branch is exempt from destructive operations.

    Patterns are evaluated in configured order and the first match wins:

    - an exact name matches only itself
    - '*' matches every branch
    - '<ns>/*' matches branches exactly one level below <ns>, so 'release/*'
      matches 'release/1.0' but not 'release/1.0/hotfix'
    """

    @staticmethod
    def pattern_matches(pattern: str, branch_name: str) -> bool:
        if pattern == "*":
            return True
        if pattern.endswith("/*"):
            namespace, sep, _leaf = branch_name.rpartition("/")
            return bool(sep) and namespace == pattern[:-2]
        return pattern == branch_name

    @classmethod
    def matching_pattern(cls, branch_name: str, patterns: Iterable[str]) -> Optional[str]:
        """Return the first pattern protecting branch_name, if any."""
        for pattern in patterns:
            if cls.pattern_matches(pattern, branch_name):
                return pattern
        return None

    @classmethod
    def is_protected(cls, branch_name: str, patterns: Iterable[str]) -> bool:
        """
        Check if a branch is protected.

        Args:
            branch_name: Name of the branch
            patterns: Configured protected-branch patterns

        Returns:
            True if any pattern matches
        """
        return cls.matching_pattern(branch_name, patterns) is not None


class BranchValidationService:
    """Service for validating destructive worktree operations."""

    @staticmethod
    def unsafe_reasons(
        status: WorktreeStatus, allow_dirty: bool = False, allow_unpushed: bool = False
    ) -> tuple[UnsafeReason, ...]:
        """
        Reasons a worktree may not be removed without an override.

        Args:
            status: Worktree status snapshot
            allow_dirty: Override for uncommitted tracked changes
            allow_unpushed: Override for commits not on the remote

        Returns:
            Empty tuple if removal is safe
        """
        reasons = []
        if status.is_dirty and not allow_dirty:
            reasons.append(UnsafeReason.DIRTY)
        if status.has_unpushed_commits and not allow_unpushed:
            reasons.append(UnsafeReason.UNPUSHED)
        return tuple(reasons)
