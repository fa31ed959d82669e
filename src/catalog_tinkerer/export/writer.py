"""Atomic-replace file writing.

Bytes go to a temporary file in the destination directory and are renamed
into place, so a partially written file is never visible at the final path.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from ..errors import ExportItemFailed


def resolve_target(directory: Path, filename: str) -> Path:
    """Resolve the final path for a record inside a directory.

    Raises:
        ExportItemFailed: If the filename is empty or would leave the directory

    """
    if not filename or filename in (".", "..") or "/" in filename or "\\" in filename:
        raise ExportItemFailed(filename, "filename is not a plain file name")
    return directory / filename


def atomic_write_bytes(path: Path, data: bytes) -> Path:
    """Write bytes to path with atomic-replace semantics.

    Args:
        path: Final file path
        data: Bytes to write

    Returns:
        The final path

    Raises:
        OSError: If the temporary file cannot be written or renamed

    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return path
