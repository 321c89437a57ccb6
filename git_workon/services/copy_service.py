"""Copy untracked files between worktrees"""

import fnmatch
import glob
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Iterable, Optional

from git_workon.constants import DEFAULT_COPY_PATTERN
from git_workon.logging_config import get_logger

logger = get_logger(__name__)

GIT_METADATA = ".git"


def glob_pattern_error(pattern: str) -> Optional[str]:
    """Explain why pattern is not a usable worktree-relative glob, or None."""
    if not pattern.strip():
        return "pattern cannot be empty"
    if pattern.startswith("/") or os.path.isabs(pattern):
        return "pattern must be relative to the worktree"
    if ".." in pattern.split("/"):
        return "pattern cannot leave the worktree ('..')"

    # Same bracket rules as fnmatch: '[!' and a leading ']' belong to the set
    i = 0
    while i < len(pattern):
        if pattern[i] == "[":
            j = i + 1
            if j < len(pattern) and pattern[j] == "!":
                j += 1
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            end = pattern.find("]", j)
            if end == -1:
                return f"unclosed '[' at position {i}"
            i = end
        i += 1
    return None


def _ancestors(rel_path: str) -> list[str]:
    """'a/b/c' -> ['a', 'a/b', 'a/b/c']"""
    parts = rel_path.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts) + 1)]


class CopyEngine:
    """Copy files matching glob patterns from one worktree into another.

    Include patterns use ``glob`` semantics: ``**`` spans directories, ``*``
    stays inside one path component and hidden files are matched too.
    """

    def copy_matching(
        self,
        source: Path,
        dest: Path,
        include: Optional[Iterable[str]] = None,
        exclude: Iterable[str] = (),
        overwrite: bool = False,
    ) -> list[str]:
        """Copy files from source to dest.

        Args:
            source: Worktree to copy from; a missing source copies nothing
            dest: Worktree to copy into
            include: Glob patterns relative to source (default ``**/*``); a
                matching directory is copied recursively
            exclude: fnmatch patterns tested against each relative path and
                its parent directories
            overwrite: Replace files that already exist in dest

        Returns:
            Relative paths of the copied files, sorted
        """
        source, dest = Path(source), Path(dest)
        include = list(include or []) or [DEFAULT_COPY_PATTERN]
        exclude = list(exclude)

        if not source.is_dir():
            logger.debug(f"Copy source {source} does not exist, nothing to copy")
            return []

        copied = []
        for rel_path in self.matching_files(source, include):
            chain = _ancestors(rel_path)
            if any(fnmatch.fnmatchcase(part, p) for p in exclude for part in chain):
                logger.debug(f"Excluded: {rel_path}")
                continue

            target = dest / rel_path
            if os.path.lexists(target) and not overwrite:
                logger.debug(f"Skipping (already exists): {rel_path}")
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            self._copy_file(source / rel_path, target)
            copied.append(rel_path)

        logger.info(f"Copied {len(copied)} files from {source} to {dest}")
        return copied

    def matching_files(self, source: Path, include: Iterable[str]) -> list[str]:
        """Sorted relative paths of the files the include patterns select.

        Git metadata (a ``.git`` file or directory) is never selected.
        """
        found = set()
        for pattern in include:
            matches = glob.glob(pattern, root_dir=source, recursive=True, include_hidden=True)
            for match in matches:
                rel_path = Path(match).as_posix().rstrip("/")
                if GIT_METADATA in rel_path.split("/"):
                    continue
                full = source / rel_path
                if full.is_dir() and not full.is_symlink():
                    found.update(self._walk(source, rel_path))
                elif full.is_file() or full.is_symlink():
                    found.add(rel_path)
        return sorted(found)

    @staticmethod
    def _walk(source: Path, rel_dir: str) -> list[str]:
        """Relative posix paths of all files below source/rel_dir, skipping git metadata."""
        files = []
        for dirpath, dirnames, filenames in os.walk(source / rel_dir):
            dirnames[:] = [d for d in dirnames if d != GIT_METADATA]
            base = Path(dirpath).relative_to(source)
            for filename in filenames:
                if filename != GIT_METADATA:
                    files.append((base / filename).as_posix())
        return files

    @staticmethod
    def _copy_file(src: Path, dst: Path) -> None:
        """Copy one file, using copy-on-write clones where the platform has them."""
        if sys.platform == "darwin":
            command = ["cp", "-c", str(src), str(dst)]
        elif sys.platform.startswith("linux"):
            command = ["cp", "--reflink=auto", str(src), str(dst)]
        else:
            command = None

        if command:
            try:
                result = subprocess.run(command, capture_output=True, text=True)
                if result.returncode == 0:
                    return
                logger.debug(f"cp failed for {src} ({result.stderr.strip()}), falling back to a plain copy")
            except OSError as e:
                logger.debug(f"cp unavailable ({e}), falling back to a plain copy")

        shutil.copy2(src, dst, follow_symlinks=False)
