# CCGLM Path Utilities
# Atomic file replacement and permission hardening

import errno
import os
import shutil
import stat
import tempfile
from pathlib import Path

SECURE_FILE_MODE = 0o600
SECURE_DIR_MODE = 0o700


def ensure_dir(path: Path, *, mode: int | None = None) -> Path:
    """
    Ensure directory exists, creating if necessary.

    Args:
        path: Directory path.
        mode: Optional permission bits applied to the directory itself.

    Returns:
        The path that was ensured.
    """
    path.mkdir(parents=True, exist_ok=True)
    if mode is not None:
        restrict_permissions(path, mode)
    return path


def restrict_permissions(path: Path, mode: int) -> bool:
    """
    Tighten permissions of a file or directory to ``mode``.

    Only bits are ever removed: a path that is already at or below ``mode``
    is left alone.

    Args:
        path: File or directory.
        mode: Maximum permission bits.

    Returns:
        True if permissions were changed.
    """
    if os.name == "nt" or not path.exists():
        return False

    current = stat.S_IMODE(path.stat().st_mode)
    if current & ~mode == 0:
        return False

    os.chmod(path, current & mode)
    return True


def atomic_write(path: Path, content: str | bytes, *, encoding: str = "utf-8", mode: int = SECURE_FILE_MODE) -> None:
    """
    Atomically write content to file.

    Uses a temporary file in the target directory and an atomic rename, so
    readers see either the old or the new content, never a partial write.

    Args:
        path: Target file path.
        content: Content to write (str or bytes).
        encoding: Encoding for string content (default utf-8).
        mode: Permission bits of the written file (default 0600).
    """
    ensure_dir(path.parent)

    # Create temp file in same directory for atomic rename
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if isinstance(content, str):
            with os.fdopen(fd, "w", encoding=encoding) as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        else:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        if os.name != "nt":
            os.chmod(temp_path, mode)
        # Atomic rename
        os.replace(temp_path, path)
    except BaseException:
        # Cleanup on failure, including Ctrl-C between write and rename
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def atomic_move(source: Path, dest: Path) -> None:
    """
    Move ``source`` over ``dest`` atomically.

    A plain rename is used when both paths live on the same filesystem.
    Across filesystems the content is first copied next to ``dest`` and
    then renamed into place; ``source`` is removed only after that rename.

    Args:
        source: File to move.
        dest: Destination path (replaced if it exists).

    Raises:
        FileNotFoundError: If source doesn't exist.
    """
    if not source.exists():
        raise FileNotFoundError(f"Source does not exist: {source}")

    ensure_dir(dest.parent)

    try:
        os.replace(source, dest)
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise

    fd, temp_path = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    os.close(fd)
    try:
        shutil.copy2(source, temp_path)
        os.replace(temp_path, dest)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
    source.unlink()


def safe_delete(path: Path, *, missing_ok: bool = False) -> bool:
    """
    Safely delete a file.

    Args:
        path: Path to delete.
        missing_ok: If True, don't raise error if path doesn't exist.

    Returns:
        True if something was deleted, False if path didn't exist.

    Raises:
        FileNotFoundError: If path doesn't exist and missing_ok is False.
    """
    if not path.exists():
        if missing_ok:
            return False
        raise FileNotFoundError(f"Path does not exist: {path}")

    path.unlink()
    return True
