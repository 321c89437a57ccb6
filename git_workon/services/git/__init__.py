"""Git-related services for git-workon."""

from .operations import GitOperations
from .worktrees import WorktreeService
from .config_store import GitConfigStore
from .bootstrap import RepositoryBootstrap

__all__ = [
    "GitOperations",
    "WorktreeService",
    "GitConfigStore",
    "RepositoryBootstrap",
]
