"""Image export package.

Provides batch export to a directory and ephemeral export for clipboard/drag handoff.
"""

from .base import EPHEMERAL, ExportJob, ExportReport
from .executor import ExportExecutor
from .writer import atomic_write_bytes, resolve_target

__all__ = [
    "EPHEMERAL",
    "ExportJob",
    "ExportReport",
    "ExportExecutor",
    "atomic_write_bytes",
    "resolve_target",
]
