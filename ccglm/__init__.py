"""ccglm - Claude Code <-> Z.AI GLM switcher.

Toggles ~/.claude/settings.json between the default Anthropic backend and
Z.AI's GLM models, with timestamped backups, restore and a single-instance
lock.
"""

__version__ = "1.0.0"
__author__ = "dkmnx"

__all__ = [
    "__version__",
    "Profile",
    "classify",
    "compute_clean_baseline",
    "compute_target_document",
    "BackupManager",
    "BackupRecord",
    "ProfileSwitcher",
    "SwitchResult",
    "RestoreResult",
    "SwitcherLock",
]


def __getattr__(name: str):
    """Lazy import to avoid loading dependencies during setup."""
    if name in ("Profile", "classify", "compute_clean_baseline", "compute_target_document"):
        from ccglm import profiles

        return getattr(profiles, name)
    if name in ("BackupManager", "BackupRecord"):
        from ccglm import backup

        return getattr(backup, name)
    if name in ("ProfileSwitcher", "SwitchResult", "RestoreResult"):
        from ccglm import switcher

        return getattr(switcher, name)
    if name == "SwitcherLock":
        from ccglm.lock import SwitcherLock

        return SwitcherLock
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
