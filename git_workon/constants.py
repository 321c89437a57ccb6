"""Shared constants for git-workon."""

# Git config keys (all live in git's native config, section "workon")
KEY_DEFAULT_BRANCH = "workon.defaultBranch"
KEY_POST_CREATE_HOOK = "workon.postCreateHook"
KEY_COPY_PATTERN = "workon.copyPattern"
KEY_COPY_EXCLUDE = "workon.copyExclude"
KEY_AUTO_COPY_UNTRACKED = "workon.autoCopyUntracked"
KEY_PROTECTED_BRANCHES = "workon.pruneProtectedBranches"
KEY_PR_FORMAT = "workon.prFormat"
KEY_HOOK_TIMEOUT = "workon.hookTimeout"

# Config scopes, strongest first
SCOPE_CLI = "cli"
SCOPE_LOCAL = "local"
SCOPE_GLOBAL = "global"
SCOPE_DEFAULT = "default"
STORE_SCOPES = (SCOPE_LOCAL, SCOPE_GLOBAL)

DEFAULT_PR_FORMAT = "pr-{number}"
DEFAULT_HOOK_TIMEOUT = 300
DEFAULT_COPY_PATTERN = "**/*"
PR_FORMAT_PLACEHOLDERS = ("{number}", "{title}", "{author}", "{branch}")

# Remote preference when fetching pull request heads
PR_REMOTE_PREFERENCE = ("upstream", "origin")

# Environment passed to post-create hooks
ENV_WORKTREE_PATH = "WORKON_WORKTREE_PATH"
ENV_BRANCH_NAME = "WORKON_BRANCH_NAME"
ENV_BASE_BRANCH = "WORKON_BASE_BRANCH"

# Git booleans, as accepted by `git config --type=bool`
GIT_TRUE_VALUES = ("true", "yes", "on", "1")
GIT_FALSE_VALUES = ("false", "no", "off", "0")

BARE_DIR_NAME = ".bare"  # Shared repository inside a worktrees root
ORPHAN_INITIAL_MESSAGE = "Initial commit"


# Color/style constants for the prune report
class PruneStyleType:
    """Style types for prune plan rows."""

    REMOVE = "remove"
    PROTECTED = "protected"
    UNSAFE = "unsafe"
    FAILED = "failed"


# CLI colors (Rich color names)
CLI_COLORS = {
    PruneStyleType.REMOVE: "red",  # Will be removed
    PruneStyleType.PROTECTED: "cyan",
    PruneStyleType.UNSAFE: "yellow",  # Can't remove without an override
    PruneStyleType.FAILED: "bold red",
}

SYMBOL_DIRTY = "M"
SYMBOL_UNPUSHED = "↑"
SYMBOL_MERGED = "✓"
SYMBOL_GONE = "✗"
SYMBOL_DETACHED = "⊘"

LEGEND_TEXT = """
Legend:
M = Uncommitted tracked changes   ↑ = Unpushed commits
✓ = Merged into base branch       ✗ = Upstream gone
⊘ = Detached HEAD
"""
