"""GitHub API integration service"""
import os
from typing import Optional, TYPE_CHECKING
from urllib.parse import urlparse

from github import Github

from git_workon.logging_config import get_logger

if TYPE_CHECKING:
    from github.Repository import Repository

logger = get_logger(__name__)


def parse_github_repo(remote_url: str) -> Optional[str]:
    """Extract 'owner/repo' from a GitHub remote URL, or None for other hosts."""
    if not remote_url or "github.com" not in remote_url:
        return None

    if "github.com:" in remote_url and "://" not in remote_url:
        # scp-like SSH: git@github.com:owner/repo.git
        path = remote_url.split("github.com:", 1)[1]
    else:
        path = urlparse(remote_url).path

    path = path.strip("/")
    path = path[:-len(".git")] if path.endswith(".git") else path
    return path or None


class GitHubService:
    """Pull request metadata for the PR naming template.

    Only consulted when ``workon.prFormat`` uses {title}, {author} or
    {branch}. Without a token or a GitHub remote every lookup returns None.
    """

    def __init__(self, github_token: Optional[str] = None):
        self.github_token = github_token or os.environ.get("GITHUB_TOKEN")
        self.github_repo: Optional[str] = None
        self.github_enabled = False
        self.github: Optional[Github] = None
        self.gh_repo: Optional["Repository"] = None

    def setup_github_api(self, remote_url: Optional[str]) -> None:
        """Connect to the repository behind remote_url, if it is on GitHub."""
        self.github_repo = parse_github_repo(remote_url or "")
        if self.github_repo is None:
            logger.debug(f"[GitHub] {remote_url!r} is not a GitHub remote, PR metadata unavailable")
            return
        if not self.github_token:
            logger.info("[GitHub] GITHUB_TOKEN not set, PR title/author/branch placeholders unavailable")
            return

        try:
            self.github = Github(self.github_token)
            self.gh_repo = self.github.get_repo(self.github_repo)
        except Exception as e:
            logger.warning(f"[GitHub] Could not open {self.github_repo}: {e}")
            self.github_enabled = False
            return

        self.github_enabled = True
        logger.debug(f"[GitHub] Using {self.github_repo} for PR metadata")

    def get_pull_request_metadata(self, number: int) -> Optional[dict]:
        """Title, author, head branch and base branch of a pull request."""
        if not self.github_enabled or self.gh_repo is None:
            return None

        try:
            pr = self.gh_repo.get_pull(number)
            metadata = {
                "number": pr.number,
                "title": pr.title,
                "author": pr.user.login if pr.user else None,
                "branch": pr.head.ref,
                "base": pr.base.ref,
            }
            logger.debug(f"[GitHub] PR #{number}: {metadata}")
            return metadata
        except Exception as e:
            logger.debug(f"[GitHub] Error fetching PR #{number}: {e}")
            return None
