# CCGLM Switcher
# Lock-guarded profile switch and restore, reported as result objects

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ccglm import store
from ccglm.backup import BackupManager, BackupRecord
from ccglm.config.schema import SwitcherConfig
from ccglm.config.secrets import Secrets
from ccglm.errors import InvalidJsonError, MissingDependencyError, SwitcherError
from ccglm.lock import SwitcherLock
from ccglm.profiles import Profile, compute_target_document, env_changes, validate_auth_token

if TYPE_CHECKING:
    from ccglm.logger import SwitchLogger

CLIENT_INSTALL_URL = "https://github.com/anthropics/claude-code"


@dataclass
class SwitchResult:
    """Result of a profile switch."""

    target: Profile
    dry_run: bool = False
    previous: Optional[Profile] = None
    backup: Optional[BackupRecord] = None
    planned_backup: str = ""
    backup_cleaned: bool = False
    keys_added: list[str] = field(default_factory=list)
    keys_removed: list[str] = field(default_factory=list)
    keys_changed: list[str] = field(default_factory=list)
    pruned: list[Path] = field(default_factory=list)
    applied: bool = False
    error: Optional[str] = None
    hint: Optional[str] = None
    exit_code: int = 0

    @property
    def success(self) -> bool:
        """Check if operation completed without errors."""
        return self.error is None

    @property
    def has_changes(self) -> bool:
        """Check if the target differs from the live env block."""
        return bool(self.keys_added or self.keys_removed or self.keys_changed)


@dataclass
class RestoreResult:
    """Result of restoring a backup."""

    index: int
    dry_run: bool = False
    restored: Optional[BackupRecord] = None
    pre_restore: Optional[BackupRecord] = None
    pre_restore_skipped: Optional[str] = None
    pre_restore_planned: bool = False
    pruned: list[Path] = field(default_factory=list)
    applied: bool = False
    error: Optional[str] = None
    hint: Optional[str] = None
    exit_code: int = 0

    @property
    def success(self) -> bool:
        """Check if operation completed without errors."""
        return self.error is None


def _report_os_error(result: SwitchResult | RestoreResult, error: OSError) -> None:
    location = f": {error.filename}" if error.filename else ""
    result.error = f"File system error: {error.strerror or error}{location}"
    result.hint = "Check file permissions and free disk space."
    result.exit_code = 1


def check_dependencies(config: SwitcherConfig) -> None:
    """
    Make sure the client command is installed.

    Raises:
        MissingDependencyError: If require_client is set and the command is not on PATH.
    """
    if not config.require_client:
        return
    if shutil.which(config.client_command) is None:
        raise MissingDependencyError(
            f"{config.client_command} command not found",
            hint=f"See {CLIENT_INSTALL_URL} for installation instructions, or set require_client: false.",
        )


class ProfileSwitcher:
    """
    Applies profiles and restores backups for one settings file.

    Every mutating call holds the lock for its whole duration. The live
    file is only ever replaced by an atomic rename, so a failure at any
    step leaves it as it was.
    """

    def __init__(
        self,
        config: SwitcherConfig,
        secrets: Optional[Secrets] = None,
        *,
        backups: Optional[BackupManager] = None,
        logger: Optional["SwitchLogger"] = None,
    ):
        """
        Initialize switcher.

        Args:
            config: Active configuration.
            secrets: Secrets file values (token is only needed for glm).
            backups: Backup manager (creates one from config if not provided).
            logger: Optional logger receiving verbose diagnostics.
        """
        self.config = config
        self.secrets = secrets or Secrets()
        self.backups = backups or BackupManager(config.backup_path, config.max_backups)
        self.logger = logger

    def _debug(self, message: str) -> None:
        if self.logger is not None:
            self.logger.debug(message)

    def _lock(self) -> SwitcherLock:
        return SwitcherLock(self.config.lock_path)

    def preflight(self, profile: Profile) -> None:
        """
        Check preconditions before the lock is taken.

        Raises:
            MissingDependencyError: If the client is not installed.
            MissingSecretsError: If glm is requested without a token.
            InvalidTokenError: If the token has an invalid format.
        """
        check_dependencies(self.config)
        if profile == Profile.ALTERNATE:
            validate_auth_token(self.secrets.require_token())

    def switch(self, profile: Profile, *, dry_run: bool = False) -> SwitchResult:
        """
        Switch the live settings to ``profile``.

        Args:
            profile: Target profile.
            dry_run: Run every read/compute/validate step but write nothing.

        Returns:
            SwitchResult describing what happened (or would happen).
        """
        result = SwitchResult(target=profile, dry_run=dry_run)
        try:
            self.preflight(profile)
            with self._lock():
                self._debug(f"Lock acquired: {self.config.lock_path}")
                self._switch_locked(profile, result)
            self._debug("Lock released")
        except SwitcherError as e:
            result.error = e.message
            result.hint = e.hint
            result.exit_code = e.exit_code
        except OSError as e:
            _report_os_error(result, e)
        return result

    def _switch_locked(self, profile: Profile, result: SwitchResult) -> None:
        settings = self.config.settings_file

        store.validate(settings)
        self._debug(f"Settings validated: {settings}")

        snapshot = self.backups.snapshot_before_mutation(settings, dry_run=result.dry_run)
        result.previous = snapshot.source_profile
        result.backup = snapshot.record
        result.planned_backup = snapshot.planned_name
        result.backup_cleaned = snapshot.cleaned
        self._debug(f"Current profile: {snapshot.source_profile.value}")
        if snapshot.record is not None:
            self._debug(f"Backup created: {snapshot.record.path}")

        token = None
        if profile == Profile.ALTERNATE:
            token = self.secrets.require_token()
            self._debug(f"Auth token loaded from {self.secrets.source}")

        target = compute_target_document(snapshot.document, profile, token)
        store.validate_document(target)
        self._debug("Target settings validated")

        result.keys_added, result.keys_removed, result.keys_changed = env_changes(snapshot.live, target)

        if result.dry_run:
            return

        store.write_atomic(settings, target)
        result.applied = True
        self._debug(f"Settings written: {settings}")

        protect = snapshot.record.path if snapshot.record is not None else None
        result.pruned = self.backups.prune(protect=protect)
        for path in result.pruned:
            self._debug(f"Removed old backup: {path.name}")

    def restore(self, index: int, *, dry_run: bool = False) -> RestoreResult:
        """
        Restore the backup at 1-based ``index`` of the current listing.

        The live settings are first saved as a pre-restore backup, then
        the selected backup is moved over the live file.

        Args:
            index: Position in :meth:`BackupManager.list_backups`.
            dry_run: Validate the selection but write nothing.

        Returns:
            RestoreResult describing what happened (or would happen).
        """
        result = RestoreResult(index=index, dry_run=dry_run)
        try:
            with self._lock():
                self._debug(f"Lock acquired: {self.config.lock_path}")
                self._restore_locked(index, result)
            self._debug("Lock released")
        except SwitcherError as e:
            result.error = e.message
            result.hint = e.hint
            result.exit_code = e.exit_code
        except OSError as e:
            _report_os_error(result, e)
        return result

    def _restore_locked(self, index: int, result: RestoreResult) -> None:
        settings = self.config.settings_file

        record = self.backups.resolve(index)
        result.restored = record
        self.backups.validate_backup(record)
        self._debug(f"Backup validated: {record.path}")

        if result.dry_run:
            try:
                result.pre_restore_planned = self.backups.needs_pre_restore_backup(settings)
            except InvalidJsonError as e:
                result.pre_restore_skipped = e.message
            return

        try:
            result.pre_restore = self.backups.create_pre_restore_backup(settings)
        except InvalidJsonError as e:
            result.pre_restore_skipped = e.message
        if result.pre_restore is not None:
            self._debug(f"Pre-restore backup created: {result.pre_restore.path}")

        self.backups.restore(record, settings)
        result.applied = True
        self._debug(f"Settings restored from {record.name}")

        if result.pre_restore is not None:
            result.pruned = self.backups.prune(protect=result.pre_restore.path)
            for path in result.pruned:
                self._debug(f"Removed old backup: {path.name}")
