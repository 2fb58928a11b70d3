# CCGLM Default Configuration
# Default configuration as Python dict and YAML generator

from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "settings_path": "~/.claude/settings.json",
    "backup_dir": "~/.config/ccglm/backups",
    "lock_file": "~/.config/ccglm/switcher.lock",
    "max_backups": 5,
    "require_client": True,
    "client_command": "claude",
}


def generate_default_config() -> str:
    """Generate default configuration as YAML string with comments."""
    header = """# ccglm - Claude Code <-> Z.AI GLM switcher configuration
#
# settings_path:  settings.json of the Claude Code client
# backup_dir:     where settings_backup_*.json snapshots are kept
# lock_file:      prevents two switches from running at once
# max_backups:    backups kept after each switch (MAX_BACKUPS in .env overrides)
# secrets_file:   optional path to the .env file holding ZAI_AUTH_TOKEN
#
# The auth token is never stored here. Put it in .env:
#   ZAI_AUTH_TOKEN=<your token>

"""
    return header + yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False, allow_unicode=True)
