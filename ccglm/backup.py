# CCGLM Backup Manager
# Timestamped settings snapshots, listing, restore and retention

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from ccglm import store
from ccglm.errors import BackupError, InvalidBackupIndexError, InvalidJsonError, NoBackupsError, SettingsFileError
from ccglm.profiles import Profile, classify, compute_clean_baseline
from ccglm.store import SettingsDocument
from ccglm.utils.paths import SECURE_DIR_MODE, atomic_move, atomic_write, ensure_dir, safe_delete

BACKUP_PREFIX = "settings_backup_"
BACKUP_GLOB = f"{BACKUP_PREFIX}*.json"
PRE_RESTORE_TAG = "before_restore"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"

_NAME_PATTERN = re.compile(
    rf"^{BACKUP_PREFIX}(?:(?P<tag>{PRE_RESTORE_TAG})_)?(?P<ts>\d{{8}}_\d{{6}})(?:_(?P<seq>\d+))?\.json$"
)


class BackupKind(str, Enum):
    """Why a backup was taken."""

    SNAPSHOT = "snapshot"
    PRE_RESTORE = "pre-restore"


@dataclass
class BackupRecord:
    """A backup file on disk."""

    path: Path
    created: datetime
    kind: BackupKind = BackupKind.SNAPSHOT
    sequence: int = 0

    @property
    def name(self) -> str:
        """Backup file name."""
        return self.path.name

    @property
    def created_display(self) -> str:
        """Creation time for humans."""
        return self.created.strftime(DISPLAY_FORMAT)

    @property
    def sort_key(self) -> tuple[datetime, int, str]:
        """Key ordering backups oldest to newest."""
        return (self.created, self.sequence, self.name)

    @classmethod
    def from_path(cls, path: Path) -> "BackupRecord":
        """
        Build a record from a backup file name.

        The timestamp embedded in the name is used when present; otherwise
        the file's modification time.
        """
        match = _NAME_PATTERN.match(path.name)
        if match:
            created = datetime.strptime(match.group("ts"), TIMESTAMP_FORMAT)
            kind = BackupKind.PRE_RESTORE if match.group("tag") else BackupKind.SNAPSHOT
            sequence = int(match.group("seq") or 0)
            return cls(path=path, created=created, kind=kind, sequence=sequence)

        kind = BackupKind.PRE_RESTORE if PRE_RESTORE_TAG in path.name else BackupKind.SNAPSHOT
        return cls(path=path, created=datetime.fromtimestamp(path.stat().st_mtime), kind=kind)


@dataclass
class Snapshot:
    """Outcome of a pre-mutation snapshot."""

    document: SettingsDocument
    source_profile: Profile
    live: SettingsDocument = field(default_factory=dict)
    record: Optional[BackupRecord] = None
    planned_name: str = ""

    @property
    def cleaned(self) -> bool:
        """True if profile keys were stripped from the snapshot."""
        return self.source_profile == Profile.ALTERNATE


class BackupManager:
    """
    Manages settings backups in a single directory.

    Backups are named ``settings_backup_<YYYYMMDD_HHMMSS>.json`` and listed
    newest first.
    """

    def __init__(
        self,
        backup_dir: Path,
        max_backups: int = 5,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize backup manager.

        Args:
            backup_dir: Directory holding the backups.
            max_backups: Number of backups kept by :meth:`prune`.
            clock: Source of the current time for backup names.
        """
        if max_backups < 1:
            raise ValueError("max_backups must be at least 1")
        self.backup_dir = backup_dir
        self.max_backups = max_backups
        self._clock = clock

    def list_backups(self) -> list[BackupRecord]:
        """
        List backups, newest first.

        A missing or empty directory yields an empty list.
        """
        if not self.backup_dir.is_dir():
            return []

        records = [BackupRecord.from_path(p) for p in self.backup_dir.glob(BACKUP_GLOB) if p.is_file()]
        return sorted(records, key=lambda r: r.sort_key, reverse=True)

    def resolve(self, index: int) -> BackupRecord:
        """
        Look up a backup by its 1-based position in :meth:`list_backups`.

        Raises:
            NoBackupsError: If there are no backups.
            InvalidBackupIndexError: If index is out of range.
        """
        backups = self.list_backups()
        if not backups:
            raise NoBackupsError("No backup files found", hint="Backups are created by 'ccglm cc' and 'ccglm glm'.")
        if index < 1 or index > len(backups):
            raise InvalidBackupIndexError(
                f"Invalid backup number: {index}",
                hint=f"Choose a number between 1 and {len(backups)} (see 'ccglm list').",
            )
        return backups[index - 1]

    def _next_path(self, tag: Optional[str] = None) -> Path:
        """
        Generate an unused backup path for the current time.

        Backups taken within the same second get a ``_N`` suffix numbered
        past the highest one present, so pruning never lets a newer backup
        reuse an older name.
        """
        timestamp = self._clock().strftime(TIMESTAMP_FORMAT)
        stem = f"{BACKUP_PREFIX}{tag}_{timestamp}" if tag else f"{BACKUP_PREFIX}{timestamp}"

        sequences = []
        for path in self.backup_dir.glob(f"{stem}*.json"):
            match = _NAME_PATTERN.match(path.name)
            if match and match.group("ts") == timestamp and bool(match.group("tag")) == bool(tag):
                sequences.append(int(match.group("seq") or 0))

        if not sequences:
            return self.backup_dir / f"{stem}.json"
        return self.backup_dir / f"{stem}_{max(sequences) + 1}.json"

    def _write(self, content: str | bytes, tag: Optional[str] = None) -> BackupRecord:
        try:
            ensure_dir(self.backup_dir, mode=SECURE_DIR_MODE)
            path = self._next_path(tag)
            atomic_write(path, content)
        except OSError as e:
            raise BackupError(f"Failed to write backup to {self.backup_dir}: {e}") from e
        return BackupRecord.from_path(path)

    def snapshot_before_mutation(self, settings_path: Path, *, dry_run: bool = False) -> Snapshot:
        """
        Back up the live settings before a profile switch.

        Alternate-profile settings are stored as a clean baseline (profile
        keys stripped); anything else is copied byte for byte.

        Args:
            settings_path: Live settings file (must pass store.validate).
            dry_run: Compute and validate the snapshot without writing it.

        Returns:
            Snapshot with the baseline document and the written record.

        Raises:
            InvalidJsonError: If the live file or the computed snapshot is invalid.
        """
        store.validate(settings_path)
        live = store.read(settings_path)
        profile = classify(live)

        if profile == Profile.ALTERNATE:
            document = compute_clean_baseline(live)
            content: str | bytes = store.serialize(document)
        else:
            document = live
            content = self._read_live(settings_path)

        snapshot = Snapshot(document=document, source_profile=profile, live=live)
        if dry_run:
            snapshot.planned_name = self._next_path().name
            return snapshot

        snapshot.record = self._write(content)
        snapshot.planned_name = snapshot.record.name
        return snapshot

    def _read_live(self, settings_path: Path) -> bytes:
        try:
            return settings_path.read_bytes()
        except OSError as e:
            raise BackupError(f"Failed to read {settings_path} for backup: {e.strerror or e}") from e

    def needs_pre_restore_backup(self, settings_path: Path) -> bool:
        """
        Decide whether a restore has live settings worth preserving.

        A missing or zero-length live file has nothing to preserve.

        Raises:
            SettingsFileError: If the live path is not a regular file or is unreadable.
            InvalidJsonError: If the live file is not valid JSON.
        """
        if not settings_path.exists():
            return False
        if settings_path.is_file() and settings_path.stat().st_size == 0:
            return False
        store.validate(settings_path)
        return True

    def create_pre_restore_backup(self, settings_path: Path) -> Optional[BackupRecord]:
        """
        Copy the live settings verbatim before a restore.

        Returns:
            The new record, or None when there is no live file to preserve.

        Raises:
            InvalidJsonError: If the live file is not valid JSON.
        """
        if not self.needs_pre_restore_backup(settings_path):
            return None
        return self._write(self._read_live(settings_path), tag=PRE_RESTORE_TAG)

    def validate_backup(self, record: BackupRecord) -> SettingsDocument:
        """
        Check that a backup holds a valid settings document.

        Raises:
            InvalidJsonError: If the backup is empty, malformed or not an object.
        """
        try:
            store.validate(record.path)
        except SettingsFileError as e:
            raise InvalidJsonError(f"Backup {record.name} is empty") from e
        return store.read(record.path)

    def restore(self, record: BackupRecord, settings_path: Path) -> None:
        """
        Move a backup over the live settings file.

        The backup file is consumed: it no longer appears in the listing.

        Args:
            record: Backup to promote.
            settings_path: Live settings file.
        """
        self.validate_backup(record)
        try:
            atomic_move(record.path, settings_path)
        except OSError as e:
            raise BackupError(f"Failed to restore {record.name}: {e}") from e

    def prune(self, *, protect: Optional[Path] = None) -> list[Path]:
        """
        Delete backups beyond the retention limit, oldest first.

        Args:
            protect: A backup that must survive regardless of its position.

        Returns:
            Paths that were deleted.
        """
        backups = self.list_backups()
        keep = backups[: self.max_backups]
        if protect is not None and all(r.path != protect for r in keep):
            keep = [r for r in backups if r.path == protect] + keep[: self.max_backups - 1]

        kept_paths = {r.path for r in keep}
        removed: list[Path] = []
        for record in backups:
            if record.path in kept_paths:
                continue
            try:
                deleted = safe_delete(record.path, missing_ok=True)
            except OSError as e:
                raise BackupError(f"Failed to remove old backup {record.name}: {e.strerror or e}") from e
            if deleted:
                removed.append(record.path)
        return removed
