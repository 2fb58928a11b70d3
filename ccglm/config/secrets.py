# CCGLM Secrets
# KEY=VALUE secrets file holding the Z.AI token and retention override

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

from ccglm.config.loader import get_config_dir
from ccglm.config.schema import SwitcherConfig
from ccglm.errors import MissingSecretsError
from ccglm.utils.paths import SECURE_FILE_MODE, restrict_permissions

SECRETS_FILE_NAME = ".env"
AUTH_TOKEN_VAR = "ZAI_AUTH_TOKEN"
MAX_BACKUPS_VAR = "MAX_BACKUPS"


@dataclass
class Secrets:
    """Values read from the secrets file."""

    source: Optional[Path] = None
    auth_token: Optional[str] = None
    max_backups: Optional[int] = None
    permissions_tightened: bool = False
    permission_error: Optional[str] = None

    def require_token(self) -> str:
        """
        Return the auth token or explain how to provide it.

        Raises:
            MissingSecretsError: If the file or the token is missing.
        """
        if self.source is None:
            raise MissingSecretsError(
                "Secrets file not found",
                hint=f"Create {SECRETS_FILE_NAME} in the current directory or {get_config_dir()} "
                f"containing {AUTH_TOKEN_VAR}=<your token>.",
            )
        if not self.auth_token:
            raise MissingSecretsError(
                f"{AUTH_TOKEN_VAR} not found in {self.source}",
                hint=f"Add {AUTH_TOKEN_VAR}=<your token> to {self.source}.",
            )
        return self.auth_token


def secrets_search_path(config: SwitcherConfig) -> list[Path]:
    """Candidate secrets files in lookup order."""
    if config.secrets_file:
        return [Path(config.secrets_file)]
    return [Path.cwd() / SECRETS_FILE_NAME, get_config_dir() / SECRETS_FILE_NAME]


def find_secrets_file(config: SwitcherConfig) -> Optional[Path]:
    """Return the first existing secrets file, if any."""
    for candidate in secrets_search_path(config):
        if candidate.is_file():
            return candidate
    return None


def parse_max_backups(value: Optional[str]) -> Optional[int]:
    """Parse a retention override; anything but a positive integer yields None."""
    if value is None:
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def load_secrets(config: SwitcherConfig) -> Secrets:
    """
    Locate and parse the secrets file.

    Malformed lines are ignored. A missing file yields empty Secrets;
    only commands that need the token treat that as an error.

    Args:
        config: Active configuration (for an explicit secrets_file).

    Returns:
        Secrets instance.
    """
    path = find_secrets_file(config)
    if path is None:
        return Secrets()

    secrets = Secrets(source=path)
    try:
        secrets.permissions_tightened = restrict_permissions(path, SECURE_FILE_MODE)
    except OSError as e:
        secrets.permission_error = f"Could not secure permissions of {path}: {e}"

    values = dotenv_values(path)
    token = values.get(AUTH_TOKEN_VAR)
    secrets.auth_token = token if token else None
    secrets.max_backups = parse_max_backups(values.get(MAX_BACKUPS_VAR))
    return secrets


def apply_secrets(config: SwitcherConfig, secrets: Secrets) -> SwitcherConfig:
    """Return config with the secrets file's retention override applied."""
    if secrets.max_backups is None:
        return config
    return config.model_copy(update={"max_backups": secrets.max_backups})
