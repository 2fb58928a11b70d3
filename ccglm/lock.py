"""
Single-instance lock for mutating commands.

The lock is a file created with O_EXCL that holds the owner's PID. It is
advisory and fail-fast: a second process gets LockHeldError immediately.
A lock left behind by a hard crash must be removed by hand.
"""

import os
import signal
from pathlib import Path
from typing import Any, Optional

from ccglm.errors import LockError, LockHeldError
from ccglm.utils.paths import SECURE_FILE_MODE, ensure_dir

_HANDLED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGHUP") if hasattr(signal, name)
)


def _raise_on_signal(signum: int, frame: Any) -> None:
    """Turn a termination signal into SystemExit so cleanup runs."""
    if signum == signal.SIGINT:
        raise KeyboardInterrupt
    raise SystemExit(128 + signum)


class SwitcherLock:
    """File-based lock guarding the settings file.

    Use as a context manager; the lock file is removed on every exit path,
    including exceptions and SIGINT/SIGTERM/SIGHUP.
    """

    def __init__(self, lock_file: Path):
        """Initialize lock.

        Args:
            lock_file: Path of the lock file.
        """
        self.lock_file = lock_file
        self._acquired = False
        self._previous_handlers: dict[int, Any] = {}

    @property
    def acquired(self) -> bool:
        """Whether this instance currently owns the lock."""
        return self._acquired

    def read_owner(self) -> Optional[str]:
        """Return the PID recorded in the lock file, if readable."""
        try:
            owner = self.lock_file.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return owner or None

    def acquire(self) -> None:
        """Create the lock file exclusively.

        Raises:
            LockHeldError: If the lock file already exists.
            LockError: If the lock file cannot be created.
        """
        try:
            ensure_dir(self.lock_file.parent)
        except OSError as e:
            raise self._unusable(e) from e

        try:
            fd = os.open(self.lock_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY, SECURE_FILE_MODE)
        except FileExistsError:
            pid = self.read_owner()
            owner = f" by PID {pid}" if pid else ""
            raise LockHeldError(
                f"Another instance is running (lock held{owner})",
                hint=f"If no other instance is running, remove the stale lock file: {self.lock_file}",
                pid=pid,
            ) from None
        except OSError as e:
            raise self._unusable(e) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{os.getpid()}\n")
        except OSError as e:
            self.lock_file.unlink(missing_ok=True)
            raise self._unusable(e) from e
        except BaseException:
            self.lock_file.unlink(missing_ok=True)
            raise

        self._acquired = True
        self._install_signal_handlers()

    def _unusable(self, error: OSError) -> LockError:
        return LockError(
            f"Cannot create lock file {self.lock_file}: {error.strerror or error}",
            hint="Check that the lock directory exists, is a directory and is writable (see CCGLM_LOCK_FILE).",
        )

    def release(self) -> None:
        """Remove the lock file if this instance owns it."""
        if not self._acquired:
            return
        try:
            self.lock_file.unlink(missing_ok=True)
        finally:
            self._acquired = False
            self._restore_signal_handlers()

    def _install_signal_handlers(self) -> None:
        for signum in _HANDLED_SIGNALS:
            try:
                self._previous_handlers[signum] = signal.signal(signum, _raise_on_signal)
            except ValueError:
                # Not in the main thread; rely on the context manager alone.
                break

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous_handlers.clear()

    def __enter__(self) -> "SwitcherLock":
        """Context manager entry."""
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Context manager exit."""
        self.release()
        return False
