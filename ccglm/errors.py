# CCGLM Errors
# Exception taxonomy shared by the core and the CLI front end

from typing import Optional


class SwitcherError(Exception):
    """Base exception for all switcher failures.

    Carries an optional remedy hint that the CLI prints below the message.
    """

    exit_code = 1

    def __init__(self, message: str, hint: Optional[str] = None):
        self.message = message
        self.hint = hint
        super().__init__(message)


class ConfigError(SwitcherError):
    """Configuration file is malformed or violates the schema."""


class MissingDependencyError(SwitcherError):
    """A required external command is not installed."""


class MissingSecretsError(SwitcherError):
    """Secrets file or auth token is missing."""


class InvalidTokenError(SwitcherError):
    """Auth token contains characters outside [A-Za-z0-9._-]."""


class SettingsFileError(SwitcherError):
    """Settings file is missing, empty, not a file or cannot be read or written."""


class InvalidJsonError(SwitcherError):
    """A document is not well-formed JSON (or not a JSON object)."""


class BackupError(SwitcherError):
    """Backup directory or backup file could not be processed."""


class NoBackupsError(BackupError):
    """Restore requested but no backups exist."""


class InvalidBackupIndexError(BackupError):
    """Backup index is not a number within the current listing."""


class LockError(SwitcherError):
    """Lock file could not be created or its directory is unusable."""


class LockHeldError(LockError):
    """Another switcher process holds the lock."""

    def __init__(self, message: str, hint: Optional[str] = None, pid: Optional[str] = None):
        self.pid = pid
        super().__init__(message, hint)
