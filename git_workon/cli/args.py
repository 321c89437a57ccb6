"""Command-line argument parsing for git-workon."""

import argparse
from typing import Optional, Sequence

from git_workon.__version__ import __version__


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a whole number")
    if number < 0:
        raise argparse.ArgumentTypeError("must be 0 or greater")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-workon",
        description="Manage a bare repository with one worktree per branch",
        epilog="Settings are read from git config, section [workon]. "
        "PR title/author placeholders need the GITHUB_TOKEN environment variable.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--version", action="version", version=f"git-workon {__version__}")
    parser.add_argument(
        "-C",
        dest="repo_path",
        metavar="PATH",
        default=None,
        help="Run as if started in PATH (default: current directory)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    new = subparsers.add_parser("new", help="Create a worktree for a branch or pull request")
    new.add_argument(
        "name",
        help="Branch name (namespaces become directories) or a PR reference: "
        "#123, pr-123, pr#123, a pull request URL or <remote>/pull/123/head",
    )
    new.add_argument("-b", "--base", help="Start point for a new branch (disables PR detection)")
    mode = new.add_mutually_exclusive_group()
    mode.add_argument("--orphan", action="store_true", help="New branch with no history and one empty commit")
    mode.add_argument("-d", "--detach", action="store_true", help="Detached HEAD, no branch")
    copy = new.add_mutually_exclusive_group()
    copy.add_argument(
        "--copy-untracked",
        dest="copy_untracked",
        action="store_true",
        default=None,
        help="Copy files from the base worktree (overrides workon.autoCopyUntracked)",
    )
    copy.add_argument(
        "--no-copy-untracked",
        dest="copy_untracked",
        action="store_false",
        help="Do not copy files from the base worktree",
    )
    new.add_argument("--no-hooks", action="store_true", help="Skip workon.postCreateHook commands")
    new.add_argument("--pr-format", metavar="FORMAT", help="Naming template for PR worktrees, e.g. pr-{number}")
    new.add_argument(
        "--hook-timeout",
        type=_non_negative_int,
        metavar="SECONDS",
        help="Per-hook timeout, 0 for none (overrides workon.hookTimeout)",
    )

    prune = subparsers.add_parser(
        "prune",
        help="Remove worktrees that are safe to remove",
        description="Without names or selection flags, removes worktrees whose local branch was deleted.",
    )
    prune.add_argument("names", nargs="*", help="Worktrees to remove, by name, path or branch")
    prune.add_argument("--gone", action="store_true", help="Select worktrees whose upstream or branch is gone")
    prune.add_argument(
        "--merged",
        nargs="?",
        const="",
        default=None,
        metavar="BRANCH",
        help="Select worktrees merged into BRANCH (default: the default branch)",
    )
    prune.add_argument("--all", action="store_true", help="Select every worktree except the main one")
    prune.add_argument("--allow-dirty", action="store_true", help="Remove worktrees with uncommitted changes")
    prune.add_argument("--allow-unpushed", action="store_true", help="Remove worktrees with unpushed commits")
    prune.add_argument(
        "-f", "--force", action="store_true", help="Same as --allow-dirty --allow-unpushed"
    )
    prune.add_argument(
        "-n", "--dry-run", action="store_true", help="Preview mode - show what would be removed"
    )
    prune.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    prune.add_argument(
        "--protect",
        action="append",
        metavar="PATTERN",
        help="Protected branch pattern, repeatable (replaces workon.pruneProtectedBranches)",
    )

    subparsers.add_parser("list", help="List worktrees with their status")

    find = subparsers.add_parser("find", help="Print the path of one worktree")
    find.add_argument("name", nargs="?", help="Exact name, or a unique case-insensitive part of one")
    state = find.add_mutually_exclusive_group()
    state.add_argument("--dirty", action="store_true", help="Only worktrees with uncommitted changes")
    state.add_argument("--clean", action="store_true", help="Only worktrees without uncommitted changes")
    find.add_argument("--ahead", action="store_true", help="Only worktrees with unpushed commits")
    find.add_argument("--behind", action="store_true", help="Only worktrees behind their upstream")
    find.add_argument("--gone", action="store_true", help="Only worktrees whose upstream or branch is gone")

    init = subparsers.add_parser("init", help="Create a bare repository with a first worktree")
    init.add_argument("path", nargs="?", help="Worktrees root to create (default: current directory)")

    clone = subparsers.add_parser("clone", help="Clone into a bare repository with a worktree for the default branch")
    clone.add_argument("url", help="Repository to clone")
    clone.add_argument("path", nargs="?", help="Worktrees root to create (default: current directory)")

    copy_cmd = subparsers.add_parser("copy-untracked", help="Copy files from one worktree into another")
    copy_cmd.add_argument("source", metavar="FROM", help="Worktree to copy from")
    copy_cmd.add_argument("dest", metavar="TO", help="Worktree to copy into")
    copy_cmd.add_argument(
        "-p",
        "--pattern",
        action="append",
        default=[],
        help="Glob to copy, repeatable (default: workon.copyPattern, then **/*)",
    )
    copy_cmd.add_argument("-f", "--force", action="store_true", help="Overwrite existing files")

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
