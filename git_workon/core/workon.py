"""Core functionality for git-workon"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import git

from git_workon.config import ConfigResolver, WorkonConfig
from git_workon.constants import (
    BARE_DIR_NAME,
    ENV_BASE_BRANCH,
    ENV_BRANCH_NAME,
    ENV_WORKTREE_PATH,
    KEY_AUTO_COPY_UNTRACKED,
    KEY_PR_FORMAT,
    PR_FORMAT_PLACEHOLDERS,
    PR_REMOTE_PREFERENCE,
)
from git_workon.exceptions import GitBackendError, GitWorkonError, PullRequestError, ResolutionError
from git_workon.logging_config import get_logger
from git_workon.models.prune import PruneCandidate, PruneOutcome, PrunePlan, PruneSelector
from git_workon.models.worktree import (
    CreateResult,
    CreationMode,
    PullRequestRef,
    ResolvedName,
    WorktreeInfo,
    WorktreeStatus,
)
from git_workon.services.copy_service import CopyEngine, glob_pattern_error
from git_workon.services.git import GitConfigStore, GitOperations, RepositoryBootstrap, WorktreeService
from git_workon.services.github_service import GitHubService
from git_workon.services.hook_service import HookRunner
from git_workon.services.name_resolver import NameResolver
from git_workon.services.prune_service import PruneEngine
from git_workon.services.worktree_status_service import WorktreeDescriptor

logger = get_logger(__name__)


def get_repo(path: Optional[str] = None) -> git.Repo:
    """Open the repository containing path.

    Parent directories are searched, and a worktrees root holding a
    ``.bare`` directory opens that bare repository.

    Raises:
        GitBackendError: if no repository is found
    """
    path = os.path.abspath(path or os.getcwd())
    try:
        return git.Repo(path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        pass

    bare = os.path.join(path, BARE_DIR_NAME)
    if os.path.isdir(bare):
        try:
            return git.Repo(bare)
        except git.exc.InvalidGitRepositoryError:
            pass
    raise GitBackendError("open repository", path, "not a git repository (or any parent directory)")


def init_repository(path: Optional[str] = None) -> WorktreeInfo:
    """Create a new worktrees root at path (default: current directory).

    Raises:
        GitBackendError: if path already holds a repository or git fails
    """
    return RepositoryBootstrap().init(Path(path or os.getcwd()))


def clone_repository(url: str, path: Optional[str] = None) -> WorktreeInfo:
    """Clone url into a new worktrees root and check out its default branch.

    Raises:
        GitBackendError: if path already holds a repository or the clone fails
    """
    return RepositoryBootstrap().clone(url, Path(path or os.getcwd()))


@dataclass
class CreateOptions:
    """Options for creating a worktree."""

    base: Optional[str] = None  # Start point; disables PR detection
    orphan: bool = False
    detach: bool = False
    copy_untracked: Optional[bool] = None  # None defers to workon.autoCopyUntracked
    no_hooks: bool = False
    pr_format: Optional[str] = None

    def __post_init__(self):
        if self.orphan and self.detach:
            raise ValueError("orphan and detach are mutually exclusive")

    @property
    def mode(self) -> CreationMode:
        if self.orphan:
            return CreationMode.ORPHAN
        if self.detach:
            return CreationMode.DETACHED
        return CreationMode.NORMAL


@dataclass
class StatusFilter:
    """Status conditions a worktree must all meet. No flag set matches everything."""

    dirty: bool = False
    clean: bool = False
    ahead: bool = False
    behind: bool = False
    gone: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.dirty or self.clean or self.ahead or self.behind or self.gone)

    def matches(self, status: Optional[WorktreeStatus]) -> bool:
        if self.is_empty:
            return True
        if status is None:
            return False
        if self.dirty and not status.is_dirty:
            return False
        if self.clean and status.is_dirty:
            return False
        if self.ahead and not status.has_unpushed_commits:
            return False
        if self.behind and not status.behind:
            return False
        if self.gone and not status.is_gone:
            return False
        return True


@dataclass
class PruneOptions:
    """Options for pruning worktrees. ``force`` implies both allow flags."""

    allow_dirty: bool = False
    allow_unpushed: bool = False
    force: bool = False
    dry_run: bool = False

    def __post_init__(self):
        if self.force:
            self.allow_dirty = True
            self.allow_unpushed = True


class Workon:
    """Sequences config, name resolution, status, prune decisions and git."""

    def __init__(
        self,
        repo_path: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        github_service: Optional[GitHubService] = None,
    ):
        """Initialize Workon.

        Args:
            repo_path: Any path inside the repository, its worktrees or the
                worktrees root (defaults to the current directory)
            overrides: CLI config overrides keyed by config key
            github_service: PR metadata provider (created on demand)
        """
        repo = get_repo(repo_path)
        self.repo_path = repo.working_tree_dir or repo.git_dir
        self.overrides = dict(overrides or {})

        self.git_ops = GitOperations(self.repo_path)
        self.root = self.git_ops.workon_root()
        self.worktree_service = WorktreeService(self.repo_path, root=str(self.root))
        self.config_store = GitConfigStore(self.repo_path)
        self.descriptor = WorktreeDescriptor(self.git_ops)
        self.prune_engine = PruneEngine()
        self.copy_engine = CopyEngine()
        self.github_service = github_service

        logger.debug(f"Repository: {self.repo_path}, worktrees root: {self.root}")

    def config(self, extra_overrides: Optional[Dict[str, Any]] = None) -> WorkonConfig:
        """Resolve the configuration for one operation.

        Raises:
            ConfigError: if any value is invalid
        """
        overrides = dict(self.overrides)
        overrides.update({k: v for k, v in (extra_overrides or {}).items() if v is not None})
        return ConfigResolver(self.config_store, overrides).resolve_all()

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def create_worktree(self, token: str, options: Optional[CreateOptions] = None) -> CreateResult:
        """Create a worktree for a branch name or pull request reference.

        Config and name resolution problems are raised before anything is
        changed. Once the worktree exists, copy and hook failures only add
        warnings to the result.

        Raises:
            ConfigError, ResolutionError: nothing was changed
            GitBackendError: git refused to create the worktree
        """
        options = options or CreateOptions()
        config = self.config(
            {KEY_PR_FORMAT: options.pr_format, KEY_AUTO_COPY_UNTRACKED: options.copy_untracked}
        )
        default_branch = self.git_ops.default_branch(config.default_branch)

        resolver = NameResolver(
            self.root,
            self.worktree_service.list_worktrees(),
            config.pr_format,
            metadata_provider=self._metadata_provider(config.pr_format),
        )
        resolved = resolver.resolve(token, options.mode, start_point=options.base)
        logger.info(f"Resolved {token!r} to {resolved.branch_name} ({resolved.mode.value}) at {resolved.worktree_path}")

        if resolved.mode is CreationMode.PR_TRACKING:
            worktree, base_branch = self._create_pr_worktree(resolved, default_branch)
        else:
            worktree, base_branch = self._create_branch_worktree(resolved, default_branch)

        result = CreateResult(worktree=worktree, resolved=resolved, base_branch=base_branch)

        if config.auto_copy_untracked:
            self._copy_from_base(result, config)
        if not options.no_hooks and config.post_create_hooks:
            self._run_hooks(result, config)

        return result

    def _create_branch_worktree(
        self, resolved: ResolvedName, default_branch: Optional[str]
    ) -> Tuple[WorktreeInfo, Optional[str]]:
        base_branch = resolved.start_point or default_branch
        default_start = default_branch if default_branch and self.git_ops.branch_exists(default_branch) else None

        if resolved.mode is CreationMode.ORPHAN:
            wt = self.worktree_service.create_worktree(resolved.worktree_path, resolved.branch_name, resolved.mode)
            return wt, None

        if resolved.mode is CreationMode.DETACHED:
            wt = self.worktree_service.create_worktree(
                resolved.worktree_path,
                resolved.branch_name,
                resolved.mode,
                start_point=resolved.start_point or default_start,
            )
            return wt, base_branch

        start_point, track = resolved.start_point, False
        if start_point is None and not self.git_ops.branch_exists(resolved.branch_name):
            remote_ref = self.git_ops.find_remote_branch(resolved.branch_name)
            if remote_ref:
                start_point, track = remote_ref, True
            else:
                start_point = default_start

        wt = self.worktree_service.create_worktree(
            resolved.worktree_path, resolved.branch_name, resolved.mode, start_point=start_point, track=track
        )
        return wt, base_branch

    def _create_pr_worktree(
        self, resolved: ResolvedName, default_branch: Optional[str]
    ) -> Tuple[WorktreeInfo, Optional[str]]:
        pr = resolved.pr
        remote = self._pr_remote(pr)
        tracking_ref = pr.tracking_ref(remote)

        if not self.git_ops.ref_exists(tracking_ref):
            self.git_ops.fetch_ref(remote, f"+{pr.head_ref}:{tracking_ref}")
        else:
            logger.debug(f"{tracking_ref} already present, not fetching")

        wt = self.worktree_service.create_worktree(
            resolved.worktree_path, resolved.branch_name, resolved.mode, start_point=tracking_ref
        )

        metadata = self._pr_metadata(pr.number) or {}
        self._track_pr_head(resolved.branch_name, pr, remote, metadata.get("branch"))
        return wt, metadata.get("base") or default_branch

    def _track_pr_head(self, branch_name: str, pr: PullRequestRef, remote: str, head_branch: Optional[str]) -> None:
        """Give a PR branch an upstream so an untouched checkout counts as pushed.

        The PR's head branch is used when the remote carries it, otherwise the
        fetched pull ref (refs/heads/pull/N/head maps onto
        refs/remotes/<remote>/pull/N/head through the usual fetch refspec).
        """
        if head_branch and self.git_ops.ref_exists(f"refs/remotes/{remote}/{head_branch}"):
            merge_ref = f"refs/heads/{head_branch}"
        else:
            merge_ref = pr.upstream_merge_ref
        try:
            self.git_ops.set_upstream(branch_name, remote, merge_ref)
        except GitBackendError as e:
            # The worktree exists; without an upstream it only reads as unpushed
            logger.warning(f"Could not set upstream of {branch_name}: {e}")

    def _pr_remote(self, pr: PullRequestRef) -> str:
        """Remote to fetch a PR from: the one named in the ref, else upstream > origin > first."""
        remotes = self.git_ops.remotes()
        if pr.remote:
            if pr.remote not in remotes:
                raise PullRequestError(f"{pr.remote}/pull/{pr.number}/head", f"no remote named '{pr.remote}'")
            return pr.remote
        for preferred in PR_REMOTE_PREFERENCE:
            if preferred in remotes:
                return preferred
        if remotes:
            return remotes[0]
        raise PullRequestError(f"#{pr.number}", "no remote configured to fetch the pull request from")

    def _metadata_provider(self, pr_format: str) -> Optional[GitHubService]:
        """PR metadata is only looked up when the format needs more than {number}."""
        if not any(p in pr_format for p in PR_FORMAT_PLACEHOLDERS if p != "{number}"):
            return self.github_service
        if self.github_service is None:
            self.github_service = GitHubService()
            remotes = self.git_ops.remotes()
            remote = next((r for r in PR_REMOTE_PREFERENCE if r in remotes), remotes[0] if remotes else None)
            if remote:
                self.github_service.setup_github_api(self.git_ops.remote_url(remote))
        return self.github_service

    def _pr_metadata(self, number: int) -> Optional[dict]:
        if self.github_service is None:
            return None
        return self.github_service.get_pull_request_metadata(number)

    def _copy_source(self, base_branch: Optional[str], exclude_path: str) -> Optional[str]:
        """Worktree holding the base branch, else the one holding the repository HEAD branch."""
        candidates = [base_branch]
        try:
            candidates.append(self.git_ops.current_branch_of(self.repo_path))
        except GitBackendError as e:
            logger.debug(f"Could not read repository HEAD: {e}")

        worktrees = self.worktree_service.list_worktrees()
        for branch in candidates:
            if not branch:
                continue
            for wt in worktrees:
                if wt.branch_name == branch and not wt.is_orphaned and wt.path != exclude_path:
                    return wt.path
        return None

    def _copy_from_base(self, result: CreateResult, config: WorkonConfig) -> None:
        try:
            source = self._copy_source(result.base_branch, result.worktree.path)
            if source is None:
                logger.debug("No source worktree to copy untracked files from")
                return
            logger.info(f"Copying files from {source}")
            result.copied_files = self.copy_engine.copy_matching(
                Path(source),
                Path(result.worktree.path),
                include=config.copy_patterns,
                exclude=config.copy_excludes,
            )
        except Exception as e:
            # The worktree already exists; a copy problem never undoes it
            logger.warning(f"Copying untracked files failed: {e}")
            result.warnings.append(f"copying untracked files failed: {e}")

    def _run_hooks(self, result: CreateResult, config: WorkonConfig) -> None:
        wt = result.worktree
        env = {ENV_WORKTREE_PATH: wt.path}
        if wt.branch_name:
            env[ENV_BRANCH_NAME] = wt.branch_name
        if result.base_branch:
            env[ENV_BASE_BRANCH] = result.base_branch

        runner = HookRunner(timeout=config.hook_timeout)
        result.hook_results = runner.run(config.post_create_hooks, cwd=wt.path, env=env)
        for hook in result.hook_results:
            if not hook.success:
                result.warnings.append(f"post-create hook '{hook.command}' failed: {hook.error}")

    # ------------------------------------------------------------------
    # prune
    # ------------------------------------------------------------------

    def plan_prune(self, selector: PruneSelector, options: Optional[PruneOptions] = None) -> PrunePlan:
        """Compute a prune plan without changing anything.

        An empty selector picks worktrees whose local branch was deleted.
        ``selector.merged_into`` replaces the default branch as the base
        merged status is measured against.

        Raises:
            ResolutionError: if the merged-into branch does not exist
            ConfigError: if protected patterns are invalid
        """
        options = options or PruneOptions()
        config = self.config()
        default_branch = self.git_ops.default_branch(config.default_branch)

        logger.info(f"Selecting worktrees by {selector.describe()}")
        merge_base = default_branch
        if selector.merged_into:
            merge_base = selector.merged_into
            if not self.git_ops.branch_exists(merge_base) and not self.git_ops.find_remote_branch(merge_base):
                raise ResolutionError(merge_base, "no local or remote branch with that name to check merges against")

        candidates = [
            PruneCandidate(wt, status, error) for wt, status, error in self._describe_all(merge_base)
        ]

        return self.prune_engine.plan(
            candidates,
            selector,
            protected_patterns=config.protected_branches,
            allow_dirty=options.allow_dirty,
            allow_unpushed=options.allow_unpushed,
            dry_run=options.dry_run,
            default_branch=default_branch,
        )

    def execute_prune(self, plan: PrunePlan) -> List[PruneOutcome]:
        """Remove the worktrees of a plan, recording each result."""
        return self.prune_engine.execute(plan, self.worktree_service)

    def prune_worktrees(
        self, selector: PruneSelector, options: Optional[PruneOptions] = None
    ) -> Tuple[PrunePlan, List[PruneOutcome]]:
        """Plan and, unless dry-run, execute a prune."""
        plan = self.plan_prune(selector, options)
        return plan, self.execute_prune(plan)

    # ------------------------------------------------------------------
    # list / copy
    # ------------------------------------------------------------------

    def list_worktrees(self) -> List[Tuple[WorktreeInfo, Optional[WorktreeStatus]]]:
        """Every registered worktree with its current status (None if unknown)."""
        config = self.config()
        default_branch = self.git_ops.default_branch(config.default_branch)
        return [(wt, status) for wt, status, _error in self._describe_all(default_branch)]

    def _describe_all(self, base_branch: Optional[str]):
        described = []
        for wt in self.worktree_service.list_worktrees():
            try:
                described.append((wt, self.descriptor.describe(wt, base_branch), None))
            except GitWorkonError as e:
                logger.warning(f"Could not compute status of {wt.name}: {e}")
                described.append((wt, None, str(e)))
        return described

    def find_worktree(self, token: str) -> WorktreeInfo:
        """Find a registered worktree by name, path or branch.

        Raises:
            ResolutionError: if no worktree matches
        """
        path = os.path.realpath(token)
        for wt in self.worktree_service.list_worktrees():
            if wt.matches(token) or os.path.realpath(wt.path) == path:
                return wt
        raise ResolutionError(token, "no such worktree")

    def search_worktrees(self, name: Optional[str] = None, filters: Optional[StatusFilter] = None) -> WorktreeInfo:
        """Pick one worktree by exact or partial name among those passing filters.

        An exact name, path or branch match wins; otherwise name is matched
        case-insensitively as a substring of worktree names and must select
        exactly one. Without a name, exactly one worktree must pass the filters.

        Raises:
            ResolutionError: if nothing or more than one worktree matches
        """
        filters = filters or StatusFilter()
        default_branch = self.git_ops.default_branch(self.config().default_branch)
        if filters.is_empty:
            worktrees = self.worktree_service.list_worktrees()
        else:
            worktrees = [wt for wt, status, _error in self._describe_all(default_branch) if filters.matches(status)]

        token = name or "find"
        if not worktrees:
            raise ResolutionError(token, "no worktrees match the given filters")

        if name is None:
            matches = worktrees
        else:
            for wt in worktrees:
                if wt.matches(name):
                    return wt
            needle = name.lower()
            matches = [wt for wt in worktrees if needle in wt.name.lower()]

        if not matches:
            raise ResolutionError(token, "no matching worktree")
        if len(matches) > 1:
            names = ", ".join(wt.name for wt in matches)
            raise ResolutionError(token, f"matches more than one worktree ({names}); use a longer name")
        logger.debug(f"Found worktree {matches[0].name} for {token!r}")
        return matches[0]

    def copy_untracked(
        self, source: str, dest: str, patterns: Sequence[str] = (), overwrite: bool = False
    ) -> List[str]:
        """Copy files between two worktrees.

        Args:
            source: Worktree to copy from (name, path or branch)
            dest: Worktree to copy into (name, path or branch)
            patterns: Include globs; defaults to workon.copyPattern, then ``**/*``
            overwrite: Replace existing files

        Returns:
            Relative paths of the copied files
        """
        config = self.config()
        for pattern in patterns:
            error = glob_pattern_error(pattern)
            if error:
                raise ResolutionError(pattern, error)
        source_wt = self.find_worktree(source)
        dest_wt = self.find_worktree(dest)
        if source_wt.path == dest_wt.path:
            raise ResolutionError(dest, "source and destination are the same worktree")
        return self.copy_engine.copy_matching(
            Path(source_wt.path),
            Path(dest_wt.path),
            include=list(patterns) or config.copy_patterns,
            exclude=config.copy_excludes,
            overwrite=overwrite,
        )
