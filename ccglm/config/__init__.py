# CCGLM Configuration Module
# YAML configuration, environment overrides and the secrets file

from ccglm.config.defaults import DEFAULT_CONFIG, generate_default_config
from ccglm.config.loader import (
    ensure_config_exists,
    get_config_dir,
    get_config_path,
    load_config,
)
from ccglm.config.schema import SwitcherConfig
from ccglm.config.secrets import Secrets, apply_secrets, load_secrets

__all__ = [
    # Schema
    "SwitcherConfig",
    # Loader
    "load_config",
    "get_config_dir",
    "get_config_path",
    "ensure_config_exists",
    # Secrets
    "Secrets",
    "load_secrets",
    "apply_secrets",
    # Defaults
    "DEFAULT_CONFIG",
    "generate_default_config",
]
