"""Post-create hook execution"""

import os
import subprocess
from typing import Mapping, Optional, Sequence

from rich.console import Console

from git_workon.logging_config import get_logger
from git_workon.models.worktree import HookResult

console = Console(stderr=True)
logger = get_logger(__name__)


class HookRunner:
    """Run post-create shell commands inside a new worktree."""

    def __init__(self, timeout: int = 0, show_progress: bool = True):
        """
        Args:
            timeout: Seconds each command may run; 0 disables the limit
            show_progress: Print one line per command
        """
        self.timeout = timeout
        self.show_progress = show_progress

    def run(self, commands: Sequence[str], cwd: str, env: Optional[Mapping[str, str]] = None) -> list[HookResult]:
        """Run commands in order through the shell.

        Stops after the first command that fails or times out. Never raises
        for a failing command; the failure is reported in its HookResult.

        Args:
            commands: Shell command lines
            cwd: Working directory (the new worktree)
            env: Extra environment variables, layered over the current environment

        Returns:
            One HookResult per command that was started
        """
        full_env = dict(os.environ)
        full_env.update(env or {})
        timeout = self.timeout or None

        results = []
        for i, command in enumerate(commands, 1):
            if self.show_progress:
                console.print(f"[dim]Running hook {i}/{len(commands)}:[/dim] {command}")
            logger.debug(f"Executing hook in {cwd}: {command}")

            result = self._run_one(command, cwd, full_env, timeout)
            results.append(result)
            if not result.success:
                logger.warning(f"Hook failed: {command} ({result.error})")
                break
            logger.debug(f"Hook completed: {command}")

        return results

    @staticmethod
    def _run_one(command: str, cwd: str, env: dict, timeout: Optional[int]) -> HookResult:
        try:
            completed = subprocess.run(command, shell=True, cwd=cwd, env=env, timeout=timeout)
        except subprocess.TimeoutExpired:
            return HookResult(command, success=False, timed_out=True, error=f"timed out after {timeout}s")
        except OSError as e:
            return HookResult(command, success=False, error=str(e))

        if completed.returncode != 0:
            return HookResult(
                command,
                success=False,
                returncode=completed.returncode,
                error=f"exit code {completed.returncode}",
            )
        return HookResult(command, success=True, returncode=0)
