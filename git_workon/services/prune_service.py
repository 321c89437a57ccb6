"""Prune decision engine"""

from typing import Iterable, Optional, Sequence

from git_workon.exceptions import GitWorkonError
from git_workon.logging_config import get_logger
from git_workon.models.prune import (
    PruneCandidate,
    PruneOutcome,
    PrunePlan,
    PruneSelector,
    ProtectedWorktree,
    UnsafeReason,
    UnsafeWorktree,
)
from git_workon.services.branch_validation_service import BranchValidationService, ProtectedBranchMatcher

logger = get_logger(__name__)

RULE_MAIN_WORKTREE = "main working tree"
RULE_DEFAULT_BRANCH = "default branch"


class PruneEngine:
    """Decide which worktrees may be removed, then remove them."""

    def plan(
        self,
        candidates: Sequence[PruneCandidate],
        selector: PruneSelector,
        protected_patterns: Iterable[str] = (),
        allow_dirty: bool = False,
        allow_unpushed: bool = False,
        dry_run: bool = False,
        default_branch: Optional[str] = None,
    ) -> PrunePlan:
        """Build a prune plan. Never touches the repository.

        Each candidate passes through selection, protection and safety gates;
        the first gate that stops it decides its partition.
        """
        patterns = list(protected_patterns)
        plan = PrunePlan(is_dry_run=dry_run)

        for candidate in candidates:
            wt = candidate.worktree
            if not self._is_selected(candidate, selector):
                continue

            rule = self._protection_rule(candidate, patterns, default_branch)
            if rule is not None:
                logger.debug(f"{wt.name}: protected by {rule!r}")
                plan.skipped_protected.append(ProtectedWorktree(wt, rule))
                continue

            if wt.is_locked:
                logger.debug(f"{wt.name}: locked")
                plan.skipped_unsafe.append(
                    UnsafeWorktree(wt, (UnsafeReason.LOCKED,), "run git worktree unlock first")
                )
                continue

            if candidate.status is None:
                logger.debug(f"{wt.name}: status unknown ({candidate.error})")
                plan.skipped_unsafe.append(
                    UnsafeWorktree(wt, (UnsafeReason.STATUS_UNKNOWN,), candidate.error)
                )
                continue

            reasons = BranchValidationService.unsafe_reasons(candidate.status, allow_dirty, allow_unpushed)
            if reasons:
                logger.debug(f"{wt.name}: unsafe ({', '.join(r.value for r in reasons)})")
                plan.skipped_unsafe.append(UnsafeWorktree(wt, reasons))
                continue

            plan.to_remove.append(wt)

        plan.unmatched_names = [
            name for name in selector.names if not any(c.worktree.matches(name) for c in candidates)
        ]
        for name in plan.unmatched_names:
            logger.warning(f"No worktree named '{name}'")

        logger.debug(
            f"Prune plan: {len(plan.to_remove)} to remove, {len(plan.skipped_protected)} protected, "
            f"{len(plan.skipped_unsafe)} unsafe"
        )
        return plan

    @staticmethod
    def _is_selected(candidate: PruneCandidate, selector: PruneSelector) -> bool:
        wt = candidate.worktree
        if any(wt.matches(name) for name in selector.names):
            return True
        if wt.is_main:
            return False
        if selector.all:
            return True
        status = candidate.status
        if status is None:
            return False
        if selector.is_empty:
            return status.branch_deleted
        return (selector.gone and status.is_gone) or (selector.merged and status.is_merged)

    @staticmethod
    def _protection_rule(
        candidate: PruneCandidate, patterns: list, default_branch: Optional[str]
    ) -> Optional[str]:
        wt = candidate.worktree
        if wt.is_main:
            return RULE_MAIN_WORKTREE
        if not wt.branch_name:
            return None
        if default_branch and wt.branch_name == default_branch:
            return RULE_DEFAULT_BRANCH
        return ProtectedBranchMatcher.matching_pattern(wt.branch_name, patterns)

    def execute(self, plan: PrunePlan, worktree_service) -> list[PruneOutcome]:
        """Remove every worktree in plan.to_remove, in order.

        A failure is recorded for that worktree and the rest still run.
        """
        if plan.is_dry_run:
            logger.debug("Dry run: nothing removed")
            return []

        outcomes = []
        for wt in plan.to_remove:
            try:
                worktree_service.remove_worktree(wt.path)
                outcomes.append(PruneOutcome(wt, removed=True))
            except GitWorkonError as e:
                logger.error(f"Failed to remove worktree {wt.name}: {e}")
                outcomes.append(PruneOutcome(wt, removed=False, error=str(e)))
        return outcomes
