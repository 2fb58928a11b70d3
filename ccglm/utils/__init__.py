# CCGLM Utilities Module
# Helper functions for atomic file handling

from ccglm.utils.paths import (
    SECURE_DIR_MODE,
    SECURE_FILE_MODE,
    atomic_move,
    atomic_write,
    ensure_dir,
    restrict_permissions,
    safe_delete,
)

__all__ = [
    "SECURE_DIR_MODE",
    "SECURE_FILE_MODE",
    "ensure_dir",
    "restrict_permissions",
    "atomic_write",
    "atomic_move",
    "safe_delete",
]
