# CCGLM Test Fixtures
# Pytest fixtures for ccglm tests

import json
import tempfile
from collections.abc import Callable, Generator
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from ccglm.backup import BackupManager
from ccglm.config.schema import SwitcherConfig
from ccglm.config.secrets import Secrets

TEST_TOKEN = "abc123"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory and run from inside it."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in (
        "CCGLM_CONFIG",
        "CCGLM_SETTINGS_PATH",
        "CCGLM_BACKUP_DIR",
        "CCGLM_LOCK_FILE",
        "CCGLM_MAX_BACKUPS",
        "CCGLM_SECRETS_FILE",
        "CCGLM_REQUIRE_CLIENT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(home)
    return home


@pytest.fixture
def settings_file(temp_home: Path) -> Path:
    """Path of the live settings file (not created)."""
    claude_dir = temp_home / ".claude"
    claude_dir.mkdir()
    return claude_dir / "settings.json"


@pytest.fixture
def backup_dir(temp_home: Path) -> Path:
    """Path of the backup directory (not created)."""
    return temp_home / ".config" / "ccglm" / "backups"


@pytest.fixture
def lock_file(temp_home: Path) -> Path:
    """Path of the lock file (not created)."""
    return temp_home / ".config" / "ccglm" / "switcher.lock"


@pytest.fixture
def secrets_file(temp_home: Path) -> Path:
    """A secrets file holding the test token."""
    path = temp_home / ".config" / "ccglm" / ".env"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"ZAI_AUTH_TOKEN={TEST_TOKEN}\n", encoding="utf-8")
    return path


@pytest.fixture
def config(settings_file: Path, backup_dir: Path, lock_file: Path) -> SwitcherConfig:
    """Configuration pointing at the temporary home, without the client check."""
    return SwitcherConfig(
        settings_path=str(settings_file),
        backup_dir=str(backup_dir),
        lock_file=str(lock_file),
        require_client=False,
    )


@pytest.fixture
def secrets(secrets_file: Path) -> Secrets:
    """Secrets carrying the test token."""
    return Secrets(source=secrets_file, auth_token=TEST_TOKEN)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """A clock that advances one minute per call."""
    state = {"now": datetime(2025, 1, 1, 12, 0, 0)}

    def tick() -> datetime:
        state["now"] += timedelta(minutes=1)
        return state["now"]

    return tick


@pytest.fixture
def backups(config: SwitcherConfig, clock: Callable[[], datetime]) -> BackupManager:
    """Backup manager with a deterministic clock."""
    return BackupManager(config.backup_path, config.max_backups, clock=clock)


@pytest.fixture
def write_settings(settings_file: Path) -> Callable[[dict], Path]:
    """Write a document to the live settings file."""

    def _write(document: dict) -> Path:
        settings_file.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
        return settings_file

    return _write


@pytest.fixture
def cli_env(settings_file: Path, backup_dir: Path, lock_file: Path, secrets_file: Path) -> dict[str, str]:
    """Environment for CliRunner pointing every path at the temporary home."""
    return {
        "CCGLM_SETTINGS_PATH": str(settings_file),
        "CCGLM_BACKUP_DIR": str(backup_dir),
        "CCGLM_LOCK_FILE": str(lock_file),
        "CCGLM_SECRETS_FILE": str(secrets_file),
        "CCGLM_REQUIRE_CLIENT": "false",
    }
