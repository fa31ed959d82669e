"""Progress tracking package.

Provides the cancellable, observable progress handle shared by decode and export.
"""

from .handle import OperationState, ProgressHandle, ProgressSnapshot

__all__ = [
    "OperationState",
    "ProgressHandle",
    "ProgressSnapshot",
]
