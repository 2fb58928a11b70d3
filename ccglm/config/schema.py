# CCGLM Configuration Schema
# Pydantic model for the YAML configuration file

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _expand(value: str) -> str:
    return str(Path(os.path.expandvars(value)).expanduser())


class SwitcherConfig(BaseModel):
    """Root configuration model for ccglm.

    Built once per invocation and passed to each component.
    """

    model_config = ConfigDict(extra="forbid", validate_default=True)

    settings_path: str = Field(
        default="~/.claude/settings.json",
        description="Live settings file of the Claude Code client",
    )
    backup_dir: str = Field(default="~/.config/ccglm/backups", description="Directory for settings backups")
    lock_file: str = Field(default="~/.config/ccglm/switcher.lock", description="Single-instance lock file")
    max_backups: int = Field(default=5, ge=1, description="Number of backups kept after each switch")
    secrets_file: str | None = Field(
        default=None,
        description="Explicit path to the KEY=VALUE secrets file (default: ./.env, then ~/.config/ccglm/.env)",
    )
    require_client: bool = Field(default=True, description="Require the client command to be installed")
    client_command: str = Field(default="claude", description="Client command checked before switching")

    @field_validator("settings_path", "backup_dir", "lock_file")
    @classmethod
    def expand_paths(cls, v: str) -> str:
        """Expand ~ and environment variables in paths."""
        return _expand(v)

    @field_validator("secrets_file")
    @classmethod
    def expand_optional_path(cls, v: str | None) -> str | None:
        """Expand ~ in the optional secrets path."""
        if v is None:
            return None
        return _expand(v)

    @property
    def settings_file(self) -> Path:
        """Live settings file as a Path."""
        return Path(self.settings_path)

    @property
    def backup_path(self) -> Path:
        """Backup directory as a Path."""
        return Path(self.backup_dir)

    @property
    def lock_path(self) -> Path:
        """Lock file as a Path."""
        return Path(self.lock_file)
