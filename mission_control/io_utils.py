"""
mission_control.io_utils - Atomic JSON File Operations

Write protocol used for every snapshot:
    1. Serialize and write to a temp file in the target's directory
    2. Copy the current target (if any) to the backup path
    3. os.replace() the temp file over the target
    4. fsync the containing directory so the rename itself is durable

The rename is the only operation that touches the target, so a crash at any
point leaves either the old file or the new one, never a partial write.
"""

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def atomic_write_json(
    path: PathLike,
    data: Any,
    backup_path: Optional[PathLike] = None,
    mode: int = 0o640,
) -> int:
    """
    Atomically replace a JSON file, optionally keeping the previous version.

    Args:
        path: Target JSON file
        data: JSON-serializable data
        backup_path: Where to copy the current target before replacing it
        mode: Permission bits for the new file

    Returns:
        Size of the written file in bytes

    Raises:
        OSError: On any filesystem failure; the target is left untouched
        TypeError: If data is not JSON-serializable
    """
    file_path = Path(path)

    # Temp file in the same directory so the rename stays on one filesystem
    fd, temp_path = tempfile.mkstemp(
        prefix=f".{file_path.name}.",
        suffix=".tmp",
        dir=str(file_path.parent),
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, mode)

        if backup_path is not None and file_path.exists():
            shutil.copy2(file_path, backup_path)

        os.replace(temp_path, file_path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise

    fsync_directory(file_path.parent)
    return file_path.stat().st_size


def fsync_directory(path: PathLike) -> None:
    """Flush a directory entry so a completed rename survives power loss."""
    if os.name != "posix":
        return
    dir_fd = os.open(str(path), os.O_RDONLY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


def read_json(path: PathLike) -> Any:
    """
    Read and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        json.JSONDecodeError: If the content is not valid JSON
        OSError: On other read failures
    """
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def ensure_directory(path: PathLike, mode: int = 0o750) -> Path:
    """Create a directory (and parents) with restrictive permissions."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True, mode=mode)
    # mkdir applies the umask and skips existing directories
    os.chmod(dir_path, mode)
    return dir_path
