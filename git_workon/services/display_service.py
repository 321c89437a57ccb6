"""Display and formatting service for worktree information"""
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from git_workon.constants import CLI_COLORS, LEGEND_TEXT, PruneStyleType
from git_workon.formatters import (
    format_branch,
    format_removal_items,
    format_status_flags,
    format_sync,
    format_upstream,
)
from git_workon.logging_config import get_logger
from git_workon.models.prune import PruneOutcome, PrunePlan
from git_workon.models.worktree import CreateResult, WorktreeInfo, WorktreeStatus

console = Console()
logger = get_logger(__name__)


class DisplayService:
    def __init__(self, verbose: bool = False, output: Optional[Console] = None):
        self.verbose = verbose
        self.console = output or console

    def display_worktree_table(
        self, rows: List[Tuple[WorktreeInfo, Optional[WorktreeStatus]]], show_legend: bool = False
    ) -> None:
        """Display a table of worktrees with their status."""
        if not rows:
            self.console.print("No worktrees found.")
            return

        table = Table()
        for label in ("Worktree", "Branch", "Status", "Sync", "Upstream", "Path"):
            table.add_column(label)

        for wt, status in rows:
            name = f"{wt.name} (main)" if wt.is_main else wt.name
            if wt.is_orphaned:
                name += " (orphaned)"
            table.add_row(
                name,
                format_branch(wt),
                format_status_flags(status),
                format_sync(status),
                format_upstream(status),
                wt.path,
                style="dim" if wt.is_orphaned else None,
            )

        self.console.print(table)
        if show_legend:
            self.console.print(LEGEND_TEXT)

    def display_prune_plan(self, plan: PrunePlan) -> None:
        """Display what a prune would do, one row per selected worktree."""
        if not (plan.to_remove or plan.skipped_protected or plan.skipped_unsafe):
            self.console.print("No worktrees to prune.")
            return

        table = Table(title="Dry run: nothing will be removed" if plan.is_dry_run else None)
        table.add_column("Worktree")
        table.add_column("Branch")
        table.add_column("Action")

        for wt in plan.to_remove:
            action = "would remove" if plan.is_dry_run else "remove"
            table.add_row(wt.name, format_branch(wt), action, style=CLI_COLORS[PruneStyleType.REMOVE])
        for protected in plan.skipped_protected:
            table.add_row(
                protected.worktree.name,
                format_branch(protected.worktree),
                f"skip: protected ({protected.rule})",
                style=CLI_COLORS[PruneStyleType.PROTECTED],
            )
        for unsafe in plan.skipped_unsafe:
            table.add_row(
                unsafe.worktree.name,
                format_branch(unsafe.worktree),
                f"skip: {unsafe.reason_text}",
                style=CLI_COLORS[PruneStyleType.UNSAFE],
            )

        self.console.print(table)

        if plan.skipped_unsafe:
            self.console.print(
                "[yellow]Use --allow-dirty / --allow-unpushed (or --force) to remove unsafe worktrees.[/yellow]"
            )

    def display_removal_confirmation(self, plan: PrunePlan) -> None:
        self.console.print(f"\nThe following {len(plan.to_remove)} worktree(s) will be removed:")
        self.console.print(format_removal_items(plan))

    def display_prune_outcomes(self, outcomes: List[PruneOutcome]) -> None:
        """Display the per-worktree results of an executed prune."""
        for outcome in outcomes:
            if outcome.removed:
                self.console.print(f"[green]Removed[/green] {outcome.worktree.name}")
            else:
                style = CLI_COLORS[PruneStyleType.FAILED]
                self.console.print(f"[{style}]Failed[/{style}] {outcome.worktree.name}: {outcome.error}")

        removed = sum(1 for o in outcomes if o.removed)
        failed = len(outcomes) - removed
        summary = f"\nRemoved {removed} worktree(s)"
        if failed:
            summary += f", {failed} failed"
        self.console.print(summary)

    def display_create_result(self, result: CreateResult) -> None:
        wt = result.worktree
        self.console.print(f"[green]Created worktree[/green] {wt.name} ({format_branch(wt)})")
        self.console.print(f"  path: {wt.path}")
        if self.verbose and result.base_branch:
            self.console.print(f"  base: {result.base_branch}")
        if result.copied_files:
            self.console.print(f"  copied {len(result.copied_files)} file(s)")
            if self.verbose:
                for rel_path in result.copied_files:
                    self.console.print(f"    {rel_path}")
        for warning in result.warnings:
            self.console.print(f"[yellow]Warning:[/yellow] {warning}")
