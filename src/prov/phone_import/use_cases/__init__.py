"""Use cases for phone import.

Each use case represents a single operator action and orchestrates
domain logic without knowing about infrastructure details.
"""

from .classify_upload import ClassificationResult, ClassifyUploadUseCase
from .commit_rows import CommitResult, CommitRowsUseCase, ImportExecutor, KeyedLocks

__all__ = [
    "ClassifyUploadUseCase",
    "ClassificationResult",
    "CommitRowsUseCase",
    "CommitResult",
    "ImportExecutor",
    "KeyedLocks",
]
