"""Command-line interface for git-workon"""

import os
import sys
from typing import Optional, Sequence

from rich.console import Console

from git_workon.cli.args import parse_args
from git_workon.constants import KEY_HOOK_TIMEOUT, KEY_PROTECTED_BRANCHES
from git_workon.core.workon import (
    CreateOptions,
    PruneOptions,
    StatusFilter,
    Workon,
    clone_repository,
    init_repository,
)
from git_workon.exceptions import GitWorkonError
from git_workon.logging_config import get_logger, setup_logging
from git_workon.models.prune import PruneSelector
from git_workon.services.display_service import DisplayService

console = Console()
logger = get_logger(__name__)


def run_new(workon: Workon, args, display: DisplayService) -> int:
    options = CreateOptions(
        base=args.base,
        orphan=args.orphan,
        detach=args.detach,
        copy_untracked=args.copy_untracked,
        no_hooks=args.no_hooks,
        pr_format=args.pr_format,
    )
    result = workon.create_worktree(args.name, options)
    display.display_create_result(result)
    return 0


def run_prune(workon: Workon, args, display: DisplayService) -> int:
    selector = PruneSelector(
        names=tuple(args.names),
        gone=args.gone,
        merged=args.merged is not None,
        merged_into=args.merged or None,
        all=args.all,
    )
    options = PruneOptions(
        allow_dirty=args.allow_dirty,
        allow_unpushed=args.allow_unpushed,
        force=args.force,
        dry_run=args.dry_run,
    )
    plan = workon.plan_prune(selector, options)
    display.display_prune_plan(plan)

    if plan.is_dry_run or not plan.to_remove:
        return 0

    if not args.yes:
        if not sys.stdin.isatty():
            console.print("[yellow]Not a terminal; pass --yes to remove without confirmation[/yellow]")
            return 1
        display.display_removal_confirmation(plan)
        response = console.input("\nProceed with removal? [y/N] ")
        if response.strip().lower() != "y":
            console.print("Cancelled.")
            return 0

    outcomes = workon.execute_prune(plan)
    display.display_prune_outcomes(outcomes)
    return 1 if any(not o.removed for o in outcomes) else 0


def run_list(workon: Workon, args, display: DisplayService) -> int:
    display.display_worktree_table(workon.list_worktrees(), show_legend=args.verbose)
    return 0


def run_find(workon: Workon, args, display: DisplayService) -> int:
    filters = StatusFilter(
        dirty=args.dirty, clean=args.clean, ahead=args.ahead, behind=args.behind, gone=args.gone
    )
    worktree = workon.search_worktrees(args.name, filters)
    console.print(worktree.path, highlight=False, soft_wrap=True)
    return 0


def _target_path(args) -> str:
    return os.path.join(args.repo_path or os.getcwd(), args.path or ".")


def run_init(args) -> int:
    worktree = init_repository(_target_path(args))
    console.print(f"[green]Initialized repository with worktree {worktree.name}[/green] at {worktree.path}")
    return 0


def run_clone(args) -> int:
    worktree = clone_repository(args.url, _target_path(args))
    console.print(f"[green]Cloned {args.url}[/green] with worktree {worktree.name} at {worktree.path}")
    return 0


def run_copy_untracked(workon: Workon, args, display: DisplayService) -> int:
    copied = workon.copy_untracked(args.source, args.dest, args.pattern, overwrite=args.force)
    for rel_path in copied:
        console.print(rel_path)
    console.print(f"Copied {len(copied)} file(s)")
    return 0


COMMANDS = {
    "new": run_new,
    "prune": run_prune,
    "list": run_list,
    "find": run_find,
    "copy-untracked": run_copy_untracked,
}

# Commands that create the repository rather than open one
BOOTSTRAP_COMMANDS = {
    "init": run_init,
    "clone": run_clone,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the application."""
    debug = False
    try:
        parsed_args = parse_args(argv)
        debug = parsed_args.debug

        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        if parsed_args.command in BOOTSTRAP_COMMANDS:
            return BOOTSTRAP_COMMANDS[parsed_args.command](parsed_args)

        overrides = {}
        if getattr(parsed_args, "protect", None):
            overrides[KEY_PROTECTED_BRANCHES] = parsed_args.protect
        if getattr(parsed_args, "hook_timeout", None) is not None:
            overrides[KEY_HOOK_TIMEOUT] = parsed_args.hook_timeout

        workon = Workon(parsed_args.repo_path, overrides=overrides)

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in workon.config().to_dict().items():
                console.print(f"  {key}: {value}")

        display = DisplayService(verbose=parsed_args.verbose)
        return COMMANDS[parsed_args.command](workon, parsed_args, display)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except GitWorkonError as e:
        console.print(f"[red]Error: {e}[/red]")
        if debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
