# CCGLM Configuration Loader
# Load, save, and manage the YAML configuration file

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from ccglm.config.defaults import generate_default_config
from ccglm.config.schema import SwitcherConfig
from ccglm.errors import ConfigError

# Environment variable -> config field
ENV_OVERRIDES: dict[str, str] = {
    "CCGLM_SETTINGS_PATH": "settings_path",
    "CCGLM_BACKUP_DIR": "backup_dir",
    "CCGLM_LOCK_FILE": "lock_file",
    "CCGLM_MAX_BACKUPS": "max_backups",
    "CCGLM_SECRETS_FILE": "secrets_file",
    "CCGLM_REQUIRE_CLIENT": "require_client",
}


def get_config_dir() -> Path:
    """Get the ccglm configuration directory."""
    return Path.home() / ".config" / "ccglm"


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    # Allow override via environment variable
    env_path = os.environ.get("CCGLM_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return get_config_dir() / "config.yaml"


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        loc = " -> ".join(str(part) for part in item["loc"])
        messages.append(f"{loc}: {item['msg']}")
    return "; ".join(messages)


def _read_yaml(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {config_path}")
    return data


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    result = dict(data)
    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            result[field_name] = value
    return result


def load_config(config_path: Optional[Path] = None) -> SwitcherConfig:
    """
    Load configuration from YAML file and environment.

    A missing file is not an error: defaults apply.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        SwitcherConfig: Validated configuration object.

    Raises:
        ConfigError: If the file is malformed or fails validation.
    """
    if config_path is None:
        config_path = get_config_path()

    data = _apply_env_overrides(_read_yaml(config_path))

    try:
        return SwitcherConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration: {_format_validation_error(e)}",
            hint=f"Check {config_path} and CCGLM_* environment variables.",
        ) from e


def ensure_config_exists(config_path: Optional[Path] = None) -> tuple[Path, bool]:
    """
    Ensure configuration file exists, creating default if needed.

    Returns:
        Tuple of (config_path, was_created).
    """
    if config_path is None:
        config_path = get_config_path()

    if config_path.exists():
        return config_path, False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(generate_default_config(), encoding="utf-8")
    return config_path, True
