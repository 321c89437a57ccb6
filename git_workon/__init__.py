"""
git-workon - Manage a bare repository with one worktree per branch
"""

from .__version__ import __version__
from .core.workon import Workon
from .cli.main import main

__all__ = ["Workon", "main", "__version__"]
