"""Custom exceptions for git-workon"""

from typing import Optional


class GitWorkonError(Exception):
    """Base exception for all git-workon errors."""
    pass


class ConfigError(GitWorkonError, ValueError):
    """Exception raised when a configuration value fails validation.

    Always fatal for the operation that asked for the key: nothing has been
    mutated yet when it is raised.
    """

    def __init__(self, key: str, scope: str, rule: str, value: Optional[str] = None):
        self.key = key
        self.scope = scope
        self.rule = rule
        self.value = value

        error_msg = f"Invalid value for '{key}' ({scope} config)"
        if value is not None:
            error_msg += f": '{value}'"
        error_msg += f" - {rule}"

        super().__init__(error_msg)


class ResolutionError(GitWorkonError):
    """Exception raised when a user token cannot be turned into a worktree."""

    def __init__(self, token: str, rule: str):
        self.token = token
        self.rule = rule
        super().__init__(f"Cannot resolve '{token}': {rule}")


class NameCollisionError(ResolutionError):
    """Exception raised when the resolved worktree name is already in use."""

    def __init__(self, token: str, rule: str, path: Optional[str] = None):
        self.path = path
        super().__init__(token, f"name already in use ({rule})")


class PullRequestError(ResolutionError):
    """Exception raised for malformed or unusable pull request references."""
    pass


class GitBackendError(GitWorkonError):
    """Exception raised for errors in Git operations."""

    def __init__(
        self,
        operation: str,
        target: Optional[str] = None,
        message: Optional[str] = None,
        status: Optional[int] = None,
    ):
        self.operation = operation
        self.target = target
        self.message = message
        self.status = status

        error_msg = f"Git operation '{operation}' failed"
        if target:
            error_msg += f" for '{target}'"
        if status is not None:
            error_msg += f" (exit {status})"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)

    @classmethod
    def from_command_error(cls, operation: str, target: Optional[str], error) -> "GitBackendError":
        """Build from a git.exc.GitCommandError, keeping git's own stderr."""
        stderr = (getattr(error, "stderr", None) or str(error)).strip()
        if stderr.startswith("stderr: "):
            stderr = stderr[len("stderr: "):].strip("'")
        status = getattr(error, "status", None)
        return cls(operation, target, stderr or None, status if isinstance(status, int) else None)
