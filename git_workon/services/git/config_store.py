"""Scoped access to git's native configuration."""

from typing import Optional

import git

from git_workon.constants import STORE_SCOPES
from git_workon.exceptions import GitBackendError
from git_workon.logging_config import get_logger

logger = get_logger(__name__)


class GitConfigStore:
    """Read one git config scope at a time.

    Reads go through ``git config --<scope>`` so key matching, includes and
    value syntax are exactly git's own.
    """

    def __init__(self, repo_path: str):
        self.repo_path = repo_path

    def _get_repo(self):
        return git.Repo(self.repo_path)

    def _read(self, key: str, scope: str) -> list[str]:
        if scope not in STORE_SCOPES:
            raise ValueError(f"Unknown config scope '{scope}'")
        try:
            output = self._get_repo().git.config(f"--{scope}", "--get-all", key)
        except git.exc.GitCommandError as e:
            # Exit status 1 means the key is not set in this scope
            if e.status == 1:
                return []
            raise GitBackendError.from_command_error("config", key, e)
        return output.split("\n") if output else [""]

    def get_scoped(self, key: str, scope: str) -> Optional[str]:
        """Last value of a key in one scope, as git itself would pick it."""
        values = self._read(key, scope)
        if not values:
            return None
        logger.debug(f"{key} ({scope}) = {values[-1]!r}")
        return values[-1]

    def get_all_scoped(self, key: str, scope: str) -> list[str]:
        """All values of a multi-value key in one scope, in file order."""
        values = self._read(key, scope)
        logger.debug(f"{key} ({scope}) = {values!r}")
        return values
