"""Turns user tokens into branch names, worktree paths and creation modes."""

import os
import re
from pathlib import Path
from typing import Iterable, Optional, Protocol

from git_workon.constants import DEFAULT_PR_FORMAT, PR_FORMAT_PLACEHOLDERS
from git_workon.exceptions import NameCollisionError, PullRequestError, ResolutionError
from git_workon.logging_config import get_logger
from git_workon.models.worktree import CreationMode, PullRequestRef, ResolvedName, WorktreeInfo
from git_workon.services.branch_validation_service import branch_name_error

logger = get_logger(__name__)

_PR_SHORTHAND = re.compile(r"^pr[#-](\d+)$", re.IGNORECASE)
_PR_URL = re.compile(r"^https?://[^/]+/.+/pull/(\d+)(?:[/?#].*)?$")
_PR_REMOTE_REF = re.compile(r"^([^/\s]+)/pull/(\d+)/head$")


class PullRequestMetadataProvider(Protocol):
    def get_pull_request_metadata(self, number: int) -> Optional[dict]:
        ...


def parse_pr_reference(token: str) -> Optional[PullRequestRef]:
    """Recognize a pull request reference.

    Accepted forms: ``#123``, ``pr#123``, ``pr-123``, a hosted URL such as
    ``https://github.com/owner/repo/pull/123`` and a remote ref such as
    ``origin/pull/123/head``.

    Returns:
        PullRequestRef, or None if the token is an ordinary branch name

    Raises:
        PullRequestError: if the token starts with '#' but is not '#<digits>'
    """
    token = token.strip()

    if token.startswith("#"):
        number = token[1:]
        if not number.isdigit():
            raise PullRequestError(token, "a '#' reference must be followed by a pull request number")
        return PullRequestRef(int(number))

    match = _PR_SHORTHAND.match(token)
    if match:
        return PullRequestRef(int(match.group(1)))

    match = _PR_URL.match(token)
    if match:
        return PullRequestRef(int(match.group(1)))

    match = _PR_REMOTE_REF.match(token)
    if match:
        return PullRequestRef(int(match.group(2)), remote=match.group(1))

    return None


def slugify(text: str) -> str:
    """Lowercase text and collapse anything outside [a-z0-9._-] into '-'."""
    slug = re.sub(r"[^a-z0-9._-]+", "-", text.lower())
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-.")


def render_pr_name(pr_format: str, number: int, metadata: Optional[dict] = None, token: str = "") -> str:
    """Render the PR naming template.

    ``{number}`` is always available. ``{title}``, ``{author}`` and
    ``{branch}`` come from PR metadata; a missing value is an error.
    """
    name = pr_format.replace("{number}", str(number))
    metadata = metadata or {}

    for placeholder in PR_FORMAT_PLACEHOLDERS:
        if placeholder == "{number}" or placeholder not in name:
            continue
        field = placeholder.strip("{}")
        value = metadata.get(field)
        if not value:
            raise ResolutionError(
                token or f"#{number}", f"pull request {field} is unavailable for placeholder {placeholder}"
            )
        value = str(value).strip("/") if field == "branch" else slugify(str(value))
        name = name.replace(placeholder, value)

    return name


class NameResolver:
    """Resolve a token against the worktrees root and the registered worktrees.

    Args:
        root: Worktrees root directory
        worktrees: Registered worktrees, as listed by the git backend
        pr_format: Naming template for pull request worktrees
        metadata_provider: Source of PR title/author/branch, optional
    """

    def __init__(
        self,
        root: Path,
        worktrees: Iterable[WorktreeInfo],
        pr_format: str = DEFAULT_PR_FORMAT,
        metadata_provider: Optional[PullRequestMetadataProvider] = None,
    ):
        self.root = Path(root)
        self.worktrees = list(worktrees)
        self.pr_format = pr_format
        self.metadata_provider = metadata_provider

    def resolve(
        self, token: str, mode: CreationMode = CreationMode.NORMAL, start_point: Optional[str] = None
    ) -> ResolvedName:
        """Resolve token into a ResolvedName.

        PR references are only recognized for a normal creation without an
        explicit start point.

        Raises:
            ResolutionError: invalid name or malformed PR reference
            NameCollisionError: the path or branch is already in use
        """
        token = token.strip()
        if not token:
            raise ResolutionError(token, "name cannot be empty")

        pr = None
        if mode is CreationMode.NORMAL and start_point is None:
            pr = parse_pr_reference(token)

        if pr is not None:
            branch_name = self._pr_branch_name(token, pr)
            mode = CreationMode.PR_TRACKING
            logger.debug(f"Token {token!r} is pull request #{pr.number}, branch {branch_name!r}")
        elif mode is CreationMode.PR_TRACKING:
            raise PullRequestError(token, "not a pull request reference")
        else:
            branch_name = token

        error = branch_name_error(branch_name)
        if error:
            raise ResolutionError(token, error)

        resolved = ResolvedName(
            branch_name=branch_name,
            worktree_path=self.path_for(branch_name),
            mode=mode,
            pr=pr,
            start_point=start_point,
        )
        self.check_collision(token, resolved)
        return resolved

    def _pr_branch_name(self, token: str, pr: PullRequestRef) -> str:
        metadata = None
        needs_metadata = any(
            p in self.pr_format for p in PR_FORMAT_PLACEHOLDERS if p != "{number}"
        )
        if needs_metadata and self.metadata_provider is not None:
            metadata = self.metadata_provider.get_pull_request_metadata(pr.number)
        return render_pr_name(self.pr_format, pr.number, metadata, token)

    def path_for(self, branch_name: str) -> Path:
        """Worktree directory for a branch: namespaces become nested directories."""
        return self.root.joinpath(*branch_name.split("/"))

    def check_collision(self, token: str, resolved: ResolvedName) -> None:
        target = os.path.realpath(resolved.worktree_path)

        for wt in self.worktrees:
            wt_path = os.path.realpath(wt.path)
            if wt_path == target:
                raise NameCollisionError(token, f"a worktree is registered at {wt.path}", wt.path)
            if not wt.is_main and target.startswith(wt_path + os.sep):
                raise NameCollisionError(token, f"path is inside worktree {wt.name}", wt.path)
            if (
                resolved.mode is not CreationMode.DETACHED
                and wt.branch_name
                and wt.branch_name == resolved.branch_name
            ):
                raise NameCollisionError(
                    token, f"branch {wt.branch_name} is checked out at {wt.path}", wt.path
                )

        if os.path.lexists(resolved.worktree_path):
            raise NameCollisionError(
                token, f"{resolved.worktree_path} already exists", str(resolved.worktree_path)
            )
