"""Manager modules for badge progress.

Managers orchestrate workflows and coordinate between engines.
They hold an immutable catalog index and never touch storage.
"""

from .progress_manager import ProgressManager

__all__ = [
    "ProgressManager",
]
